"""MongoDB connection management using Motor async driver."""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


class MongoDB:
    """
    MongoDB connection manager.

    Holds the single Motor client (and its connection pool) for the
    lifetime of the process. Opened and closed by the app lifespan.
    """

    client: AsyncIOMotorClient | None = None
    _db_name: str = "nutrivision"

    @classmethod
    def connect(cls, uri: str, db_name: str = "nutrivision") -> None:
        """
        Initialize the Motor client.

        Motor connects lazily, so this never blocks; use `ping()` to
        confirm the server is reachable.
        """
        cls.client = AsyncIOMotorClient(uri)
        cls._db_name = db_name
        logger.info(f"MongoDB client created for database '{db_name}'")

    @classmethod
    def close(cls) -> None:
        """Close MongoDB connection."""
        if cls.client is not None:
            cls.client.close()
            cls.client = None
            logger.info("MongoDB connection closed")

    @classmethod
    def get_database(cls, name: str | None = None) -> AsyncIOMotorDatabase:
        """
        Get a database instance.

        Raises:
            RuntimeError: If MongoDB is not connected
        """
        if cls.client is None:
            raise RuntimeError("MongoDB not connected. Call MongoDB.connect() first.")
        return cls.client[name or cls._db_name]

    @classmethod
    async def ping(cls) -> bool:
        """Return True if the server answers a ping."""
        if cls.client is None:
            return False
        try:
            await cls.client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

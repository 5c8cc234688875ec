"""Base repository class with common database operations."""

from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(id: str) -> ObjectId | None:
    """Parse a document id, returning None for malformed ids."""
    try:
        return ObjectId(id)
    except (InvalidId, TypeError):
        return None


class BaseRepository:
    """
    Base repository providing common CRUD operations over one collection.

    Documents are returned as plain dicts; subclasses convert them to
    models where they need to.
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        """
        Initialize repository with a MongoDB collection.

        Args:
            collection: Motor collection instance
        """
        self.collection = collection

    @property
    def name(self) -> str:
        """Full collection name."""
        return self.collection.name

    async def find_one(self, filter: dict[str, Any]) -> dict[str, Any] | None:
        """Find single document matching filter."""
        return await self.collection.find_one(filter)

    async def find_many(
        self,
        filter: dict[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        limit: int = 100,
        skip: int = 0,
    ) -> list[dict[str, Any]]:
        """
        Find multiple documents matching filter.

        Args:
            filter: MongoDB query filter
            sort: List of (field, direction) tuples
            limit: Maximum documents to return
            skip: Number of documents to skip
        """
        cursor = self.collection.find(filter or {})

        if sort:
            cursor = cursor.sort(sort)

        cursor = cursor.skip(skip).limit(limit)
        return await cursor.to_list(length=limit)

    async def insert_one(self, document: dict[str, Any]) -> str:
        """
        Insert a single document, stamping created_at/updated_at.

        Returns:
            Inserted document ID as string
        """
        now = utcnow()
        document.setdefault("created_at", now)
        document.setdefault("updated_at", now)

        result = await self.collection.insert_one(document)
        return str(result.inserted_id)

    async def update_where(
        self,
        filter: dict[str, Any],
        changes: dict[str, Any],
    ) -> dict[str, Any] | None:
        """
        Apply a $set to the first document matching filter.

        Returns:
            The updated document, or None if nothing matched
        """
        update = {"$set": {**changes, "updated_at": utcnow()}}
        return await self.collection.find_one_and_update(
            filter,
            update,
            return_document=ReturnDocument.AFTER,
        )

    async def delete_where(self, filter: dict[str, Any]) -> bool:
        """Delete the first document matching filter. True if one was deleted."""
        result = await self.collection.delete_one(filter)
        return result.deleted_count > 0

    async def count(self, filter: dict[str, Any] | None = None) -> int:
        """Count documents matching filter."""
        return await self.collection.count_documents(filter or {})

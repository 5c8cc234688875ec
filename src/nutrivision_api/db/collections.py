"""Per-user collection routing for nutrition records."""

import logging
from typing import Any

from .repositories.nutrition import NutritionRepository

logger = logging.getLogger(__name__)

NUTRITION_SUFFIX = "nutritionData"


def nutrition_namespace(user_id: str) -> str:
    """Collection name holding one user's nutrition records."""
    return f"{user_id}.{NUTRITION_SUFFIX}"


class CollectionRegistry:
    """
    Resolves a user identity to the repository over that user's collection.

    Each user's records live in their own physical collection so they can be
    exported, scaled or dropped independently. Handles are cached for the
    lifetime of the registry; there is no eviction.

    The registry is created once by the app lifespan and handed to request
    handlers through `app.state`, so tests can build their own over a fake
    database.

    Usage:
        registry = CollectionRegistry(db)
        repo = registry.resolve(user.uuid)
        record_id = await repo.create(draft, user_id=user.uuid, image=image)
    """

    def __init__(self, db: Any):
        """
        Args:
            db: Motor database (or anything indexable by collection name)
        """
        self._db = db
        self._handles: dict[str, NutritionRepository] = {}

    def resolve(self, user_id: str) -> NutritionRepository:
        """
        Get the nutrition repository for a user.

        Check and insert happen without an await in between, so concurrent
        sessions on the event loop never register the same namespace twice.

        Raises:
            ValueError: If user_id is empty
        """
        if not user_id:
            raise ValueError("user_id is required to resolve a collection")

        namespace = nutrition_namespace(user_id)
        handle = self._handles.get(namespace)
        if handle is None:
            handle = NutritionRepository(self._db[namespace])
            self._handles[namespace] = handle
            logger.debug(f"Registered collection handle {namespace}")
        return handle

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, user_id: str) -> bool:
        return nutrition_namespace(user_id) in self._handles

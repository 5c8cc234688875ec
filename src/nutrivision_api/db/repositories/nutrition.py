"""Repository for one user's nutrition records."""

import logging
import re
from typing import Any

from nutrivision_api.models.nutrition import ImageInfo, NutritionDraft, NutritionRecord

from .base import BaseRepository, to_object_id

logger = logging.getLogger(__name__)


class NutritionRepository(BaseRepository):
    """
    CRUD over a per-user nutrition collection.

    The collection already belongs to one user, but every query is still
    filtered by `user_id` so a misrouted handle can never leak records.
    """

    async def create(
        self,
        draft: NutritionDraft,
        *,
        user_id: str,
        image: ImageInfo,
    ) -> str:
        """
        Persist a normalized record.

        Args:
            draft: Flat nutrition values (raw model output kept for audit)
            user_id: Owning user identity
            image: Source image reference and capture metadata

        Returns:
            Storage id of the new record
        """
        document = {
            "user_id": user_id,
            "image_url": image.image_url,
            "image_id": image.image_id,
            "file_name": image.file_name,
            "file_type": image.file_type,
            "file_size": image.file_size,
            "food_name": draft.food_name,
            "calories": draft.calories,
            "carbs": draft.carbs,
            "protein": draft.protein,
            "fat": draft.fat,
            "sugar": draft.sugar or 0,
            "fiber": draft.fiber or 0,
            "additional_info": draft.additional_info,
            "raw_analysis_data": draft.raw_data if draft.raw_data is not None else {},
        }
        record_id = await self.insert_one(document)
        logger.info(f"Saved nutrition record {record_id} in {self.name}")
        return record_id

    async def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = 50,
        skip: int = 0,
        search: str | None = None,
    ) -> tuple[list[NutritionRecord], int]:
        """
        Newest-first records for a user.

        Args:
            search: Optional case-insensitive substring match on food name

        Returns:
            (records, total matching count)
        """
        query: dict[str, Any] = {"user_id": user_id}
        if search:
            query["food_name"] = {"$regex": re.escape(search), "$options": "i"}

        total = await self.count(query)
        docs = await self.find_many(
            query,
            sort=[("created_at", -1)],
            limit=limit,
            skip=skip,
        )
        return [NutritionRecord.from_mongo(doc) for doc in docs], total

    async def get(self, record_id: str, user_id: str) -> NutritionRecord | None:
        """Fetch one of the user's records; None if missing or id is malformed."""
        oid = to_object_id(record_id)
        if oid is None:
            return None
        doc = await self.find_one({"_id": oid, "user_id": user_id})
        return NutritionRecord.from_mongo(doc) if doc else None

    async def update(
        self,
        record_id: str,
        user_id: str,
        changes: dict[str, Any],
    ) -> NutritionRecord | None:
        """Apply changes to one of the user's records and return the new version."""
        oid = to_object_id(record_id)
        if oid is None:
            return None
        if not changes:
            return await self.get(record_id, user_id)
        doc = await self.update_where({"_id": oid, "user_id": user_id}, changes)
        return NutritionRecord.from_mongo(doc) if doc else None

    async def delete(self, record_id: str, user_id: str) -> bool:
        """Delete one of the user's records. False if it did not exist."""
        oid = to_object_id(record_id)
        if oid is None:
            return False
        return await self.delete_where({"_id": oid, "user_id": user_id})

"""Nutrition record CRUD routes.

All routes require a bearer token and only ever touch the caller's own
collection.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query, status

from nutrivision_api.api.dependencies import CurrentUserDep, NutritionRepoDep
from nutrivision_api.core.exceptions import DatabaseError, NotFoundError
from nutrivision_api.models.nutrition import (
    NutritionCreate,
    NutritionListResponse,
    NutritionRecord,
    NutritionUpdate,
)

router = APIRouter()
logger = logging.getLogger(__name__)

RESOURCE = "Nutrition data"


@router.post("", response_model=NutritionRecord, status_code=status.HTTP_201_CREATED)
async def create_nutrition_data(
    body: NutritionCreate,
    user: CurrentUserDep,
    repo: NutritionRepoDep,
):
    """
    Create a nutrition record directly (without running an analysis).

    Sugar and fiber default to 0 when omitted.
    """
    record_id = await repo.create(body.to_draft(), user_id=user.uuid, image=body.to_image())
    record = await repo.get(record_id, user.uuid)
    if record is None:
        raise DatabaseError("Created record could not be read back", details={"id": record_id})
    return record


@router.get("", response_model=NutritionListResponse)
async def list_nutrition_data(
    user: CurrentUserDep,
    repo: NutritionRepoDep,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    skip: Annotated[int, Query(ge=0)] = 0,
    search: Annotated[str | None, Query(max_length=100)] = None,
):
    """
    List the caller's records, newest first.

    - **limit**: Maximum records to return
    - **skip**: Records to skip
    - **search**: Case-insensitive match on food name
    """
    items, total = await repo.list_for_user(user.uuid, limit=limit, skip=skip, search=search)
    return NutritionListResponse(items=items, total=total, limit=limit, skip=skip)


@router.get("/{record_id}", response_model=NutritionRecord)
async def get_nutrition_data(
    record_id: str,
    user: CurrentUserDep,
    repo: NutritionRepoDep,
):
    """Get one of the caller's records."""
    record = await repo.get(record_id, user.uuid)
    if record is None:
        raise NotFoundError(RESOURCE, record_id)
    return record


@router.put("/{record_id}", response_model=NutritionRecord)
async def update_nutrition_data(
    record_id: str,
    body: NutritionUpdate,
    user: CurrentUserDep,
    repo: NutritionRepoDep,
):
    """Update fields of one of the caller's records. Omitted fields are unchanged."""
    record = await repo.update(record_id, user.uuid, body.changes())
    if record is None:
        raise NotFoundError(RESOURCE, record_id)
    return record


@router.delete("/{record_id}")
async def delete_nutrition_data(
    record_id: str,
    user: CurrentUserDep,
    repo: NutritionRepoDep,
):
    """Delete one of the caller's records."""
    deleted = await repo.delete(record_id, user.uuid)
    if not deleted:
        raise NotFoundError(RESOURCE, record_id)
    logger.info(f"User {user.uuid} deleted nutrition record {record_id}")
    return {"success": True, "message": "Nutrition data deleted successfully"}

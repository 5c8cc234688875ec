"""Pydantic models for nutrition records.

Python attributes are snake_case; the wire format (HTTP bodies and
streaming events) is camelCase to match the mobile client.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe dict in wire format."""
        return self.model_dump(mode="json", by_alias=True)


class ImageInfo(CamelModel):
    """Where an analyzed image came from."""

    image_url: str = Field(..., min_length=1)
    image_id: str | None = None
    file_name: str | None = None
    file_type: str | None = None
    file_size: int | None = Field(None, ge=0)


class NutritionDraft(CamelModel):
    """Flat nutrition values produced by the normalizer, before persistence."""

    id: str | None = Field(None, description="Storage id, set once persisted")
    food_name: str
    calories: float = 0
    carbs: float = 0
    protein: float = 0
    fat: float = 0
    sugar: float = 0
    fiber: float = 0
    additional_info: str | None = None
    raw_data: Any = None


class NutritionRecord(CamelModel):
    """A persisted nutrition record owned by one user."""

    id: str
    user_id: str
    image_url: str
    image_id: str | None = None
    file_name: str | None = None
    file_type: str | None = None
    file_size: int | None = None
    food_name: str
    calories: float
    carbs: float
    protein: float
    fat: float
    sugar: float = 0
    fiber: float = 0
    additional_info: str | None = None
    raw_analysis_data: Any = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_mongo(cls, doc: dict) -> "NutritionRecord":
        """Create from a MongoDB document."""
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)


class NutritionCreate(CamelModel):
    """Request body for creating a record directly."""

    image_url: str = Field(..., min_length=1, description="Image URL is required")
    food_name: str = Field(..., min_length=1, description="Food name is required")
    calories: float
    carbs: float
    protein: float
    fat: float
    sugar: float | None = None
    fiber: float | None = None
    additional_info: str | None = None
    image_id: str | None = None
    file_name: str | None = None
    file_type: str | None = None
    file_size: int | None = Field(None, ge=0)

    def to_draft(self) -> NutritionDraft:
        """Nutrition values with sugar/fiber defaulted to 0."""
        return NutritionDraft(
            food_name=self.food_name,
            calories=self.calories,
            carbs=self.carbs,
            protein=self.protein,
            fat=self.fat,
            sugar=self.sugar or 0,
            fiber=self.fiber or 0,
            additional_info=self.additional_info,
        )

    def to_image(self) -> ImageInfo:
        """Image metadata part of the request."""
        return ImageInfo(
            image_url=self.image_url,
            image_id=self.image_id,
            file_name=self.file_name,
            file_type=self.file_type,
            file_size=self.file_size,
        )


class NutritionUpdate(CamelModel):
    """Request body for a partial update; omitted fields stay unchanged."""

    food_name: str | None = Field(None, min_length=1, description="Food name cannot be empty")
    calories: float | None = None
    carbs: float | None = None
    protein: float | None = None
    fat: float | None = None
    sugar: float | None = None
    fiber: float | None = None
    additional_info: str | None = None

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, keyed by storage name.

        Explicit nulls are dropped for numeric and name fields, which must
        stay populated once a record exists.
        """
        sent = self.model_dump(exclude_unset=True)
        return {
            key: value
            for key, value in sent.items()
            if value is not None or key == "additional_info"
        }


class NutritionListResponse(CamelModel):
    """A page of a user's records."""

    items: list[NutritionRecord] = Field(default_factory=list)
    total: int = 0
    limit: int
    skip: int

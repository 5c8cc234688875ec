"""
Flattens vision model output into a storage-ready nutrition draft.

`normalize()` is total: it never raises. Missing values become 0 (numbers)
or are omitted (text). Output that cannot be read at all yields a
placeholder draft with `degraded=True`, so callers branch on a flag
instead of catching exceptions.
"""

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from nutrivision_api.models.nutrition import NutritionDraft
from nutrivision_api.services.vlm.schema import Nutrient, NutritionLabel

logger = logging.getLogger(__name__)

DEFAULT_FOOD_NAME = "Food item"
NO_ADDITIONAL_INFO = "No additional information available"


@dataclass(frozen=True)
class NormalizationResult:
    """Normalized draft plus whether it came from unusable model output."""

    draft: NutritionDraft
    degraded: bool = False


def _unknown_food() -> NutritionDraft:
    return NutritionDraft(
        food_name="Unknown food",
        additional_info="No data available",
        raw_data=None,
    )


def _unreadable_food() -> NutritionDraft:
    return NutritionDraft(
        food_name="Processed food item",
        additional_info="Error extracting detailed nutrition information",
        raw_data=None,
    )


def _fmt(value: int | float) -> str:
    """12.0 -> "12", 12.5 -> "12.5"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _amount(nutrient: Nutrient | None) -> int | float:
    if nutrient is None or nutrient.amount is None:
        return 0
    return nutrient.amount


def build_additional_info(label: NutritionLabel) -> str:
    """
    Human-readable summary of label fields that have no flat column.

    One line each for serving size, sodium, vitamins and allergens, in that
    order, when present.
    """
    parts: list[str] = []
    nutrients = label.nutrients

    serving = label.product_details.serving_size if label.product_details else None
    if serving is not None and serving.amount:
        parts.append(f"Serving size: {_fmt(serving.amount)} {serving.unit or ''}".rstrip())

    sodium = nutrients.sodium if nutrients else None
    if sodium is not None and sodium.amount:
        parts.append(f"Sodium: {_fmt(sodium.amount)}{sodium.unit or 'mg'}")

    vitamins = [v for v in (nutrients.vitamins or []) if v.vitamin_type] if nutrients else []
    if vitamins:
        entries = []
        for vitamin in vitamins:
            if vitamin.amount is None:
                entries.append(vitamin.vitamin_type)
            else:
                entries.append(f"{vitamin.vitamin_type}: {_fmt(vitamin.amount)}{vitamin.unit or ''}")
        parts.append(f"Vitamins: {', '.join(entries)}")

    if label.allergens:
        parts.append(f"Allergens: {', '.join(label.allergens)}")

    return "\n".join(parts) or NO_ADDITIONAL_INFO


def _flatten(label: NutritionLabel) -> dict[str, Any]:
    nutrients = label.nutrients
    carbs = nutrients.carbohydrates if nutrients else None
    carb_subs = carbs.sub_nutrients if carbs else None
    details = label.product_details

    return {
        "food_name": (details.name if details and details.name else None) or DEFAULT_FOOD_NAME,
        "calories": label.total_calories or 0,
        "carbs": _amount(carbs),
        "protein": _amount(nutrients.protein if nutrients else None),
        "fat": _amount(nutrients.total_fat if nutrients else None),
        "sugar": _amount(carb_subs.total_sugar if carb_subs else None),
        "fiber": _amount(carb_subs.dietary_fiber if carb_subs else None),
        "additional_info": build_additional_info(label),
    }


def normalize(parsed_content: Any) -> NormalizationResult:
    """
    Map parsed model output to a flat NutritionDraft.

    Args:
        parsed_content: Object recovered from the model response (may be None)

    Returns:
        NormalizationResult; `draft.raw_data` is the input for audit unless
        the input was unusable
    """
    if parsed_content is None:
        return NormalizationResult(draft=_unknown_food(), degraded=True)

    try:
        label = NutritionLabel.model_validate(parsed_content)
        draft = NutritionDraft(**_flatten(label), raw_data=parsed_content)
    except ValidationError as e:
        logger.error(f"Error extracting nutrition data: {e.error_count()} schema violations")
        return NormalizationResult(draft=_unreadable_food(), degraded=True)
    except Exception:
        logger.exception("Unexpected error extracting nutrition data")
        return NormalizationResult(draft=_unreadable_food(), degraded=True)

    # Extractor fallback: the model answered in prose
    text_only = isinstance(parsed_content, dict) and set(parsed_content) == {"text"}
    return NormalizationResult(draft=draft, degraded=text_only)

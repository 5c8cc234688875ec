"""
Expected shape of the vision model's nutrition label output.

These models are the single source of truth for both sides of the
contract: `build_prompt_template()` renders the JSON template embedded in
the extraction prompt from them, and the normalizer validates model output
against them. Adding or renaming a field here changes both at once.

Everything is optional and lenient. Models routinely return numbers as
strings, "N/A", or omit whole sections. A section of the wrong shape (a
string where an object belongs, strings in the vitamins list) is read as
missing, so the rest of the label still comes through.
"""

import re
import types
from typing import Annotated, Any, Union, get_args, get_origin

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

# "12", "12.5g", "-3 mg", ".5"; units and trailing text are ignored
_LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d+)?|\.\d+)")
# "1,250" -> "1250"; a comma followed by exactly three digits
_THOUSANDS_SEPARATOR = re.compile(r"(?<=\d),(?=\d{3}(?!\d))")


def _coerce_amount(value: Any) -> int | float | None:
    """Numbers pass through, numeric strings are parsed, everything else is null."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        match = _LEADING_NUMBER.match(_THOUSANDS_SEPARATOR.sub("", value.strip()))
        if match is None:
            return None
        text = match.group(0)
        return float(text) if "." in text else int(text)
    return None


def _coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _coerce_text_list(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return [value] if value.strip() else None
    if isinstance(value, list):
        return [str(item) for item in value if item is not None and str(item).strip()]
    return None


def _coerce_flag(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def _object_or_none(value: Any) -> dict | None:
    """A malformed section (string, number, list) is treated as missing."""
    return value if isinstance(value, dict) else None


def _objects_only(value: Any) -> list[dict] | None:
    """Keep the object entries of a list; a lone object becomes a one-item list."""
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    return None


Amount = Annotated[Union[int, float, None], BeforeValidator(_coerce_amount)]
Text = Annotated[Union[str, None], BeforeValidator(_coerce_text)]
TextList = Annotated[Union[list[str], None], BeforeValidator(_coerce_text_list)]
Flag = Annotated[Union[bool, None], BeforeValidator(_coerce_flag)]

# Applied to every nested section so one bad branch never sinks the whole label
Section = BeforeValidator(_object_or_none)
SectionList = BeforeValidator(_objects_only)


class LabelModel(BaseModel):
    """Base for label schema models; unknown keys from the model are kept."""

    model_config = ConfigDict(extra="allow")


class Metadata(LabelModel):
    confidence_score: Amount = Field(None, description="float or null")
    error_status: Flag = Field(None, description="boolean or null")


class ServingSize(LabelModel):
    amount: Amount = Field(None, description="float or null")
    unit: Text = Field(None, description="string")
    type: Text = Field(None, description="string or null")


class ProductDetails(LabelModel):
    name: Text = Field(None, description="string or null")
    serving_size: Annotated[ServingSize | None, Section] = None


class Nutrient(LabelModel):
    amount: Amount = Field(None, description="float or null")
    unit: Text = None
    daily_value_percentage: Amount = Field(None, description="float or null")
    group: Text = None
    category: Text = None


class FatSubNutrients(LabelModel):
    saturated_fat: Annotated[Nutrient | None, Section] = None
    trans_fat: Annotated[Nutrient | None, Section] = None


class FatNutrient(Nutrient):
    sub_nutrients: Annotated[FatSubNutrients | None, Section] = None


class CarbohydrateSubNutrients(LabelModel):
    dietary_fiber: Annotated[Nutrient | None, Section] = None
    total_sugar: Annotated[Nutrient | None, Section] = None
    added_sugar: Annotated[Nutrient | None, Section] = None


class CarbohydrateNutrient(Nutrient):
    sub_nutrients: Annotated[CarbohydrateSubNutrients | None, Section] = None


class Vitamin(Nutrient):
    vitamin_type: Text = Field(None, description="string")


class Nutrients(LabelModel):
    total_fat: Annotated[FatNutrient | None, Section] = None
    cholesterol: Annotated[Nutrient | None, Section] = None
    carbohydrates: Annotated[CarbohydrateNutrient | None, Section] = None
    protein: Annotated[Nutrient | None, Section] = None
    sodium: Annotated[Nutrient | None, Section] = None
    calcium: Annotated[Nutrient | None, Section] = None
    iron: Annotated[Nutrient | None, Section] = None
    vitamins: Annotated[list[Vitamin] | None, SectionList] = None


class NutritionLabel(LabelModel):
    """Top-level object the model is asked to return."""

    metadata: Annotated[Metadata | None, Section] = None
    product_details: Annotated[ProductDetails | None, Section] = None
    total_calories: Amount = Field(None, description="integer")
    nutrients: Annotated[Nutrients | None, Section] = None
    ingredients: TextList = Field(None, description="string")
    allergens: TextList = Field(None, description="string")


# (unit, group, category) the prompt pre-fills for each named nutrient
NUTRIENT_PROFILES: dict[str, tuple[str, str, str]] = {
    "total_fat": ("g", "fats", "macronutrient"),
    "saturated_fat": ("g", "fats", "macronutrient"),
    "trans_fat": ("g", "fats", "macronutrient"),
    "cholesterol": ("mg", "fats", "macronutrient"),
    "carbohydrates": ("g", "carbohydrates", "macronutrient"),
    "dietary_fiber": ("g", "carbohydrates", "macronutrient"),
    "total_sugar": ("g", "carbohydrates", "macronutrient"),
    "added_sugar": ("g", "carbohydrates", "macronutrient"),
    "protein": ("g", "protein", "macronutrient"),
    "sodium": ("mg", "mineral", "micronutrient"),
    "calcium": ("mg", "mineral", "micronutrient"),
    "iron": ("mg", "mineral", "micronutrient"),
    "vitamins": ("mg", "vitamins", "micronutrient"),
}

_PROFILE_FIELDS = ("unit", "group", "category")


def _unwrap(annotation: Any) -> tuple[Any, bool]:
    """Strip Optional/Annotated wrappers. Returns (inner type, is_list)."""
    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            annotation = get_args(annotation)[0]
        elif origin in (Union, types.UnionType):
            args = [arg for arg in get_args(annotation) if arg is not type(None)]
            if len(args) != 1:
                # Amount-style unions (int | float) are scalars
                return args[0] if args else annotation, False
            annotation = args[0]
        elif origin is list:
            inner, _ = _unwrap(get_args(annotation)[0])
            return inner, True
        else:
            return annotation, False


def _template_for(model: type[LabelModel], owner: str | None = None) -> dict[str, Any]:
    profile = NUTRIENT_PROFILES.get(owner or "")
    template: dict[str, Any] = {}
    for name, field in model.model_fields.items():
        inner, is_list = _unwrap(field.annotation)
        if isinstance(inner, type) and issubclass(inner, LabelModel):
            value: Any = _template_for(inner, name)
        elif profile and name in _PROFILE_FIELDS:
            value = profile[_PROFILE_FIELDS.index(name)]
        else:
            value = field.description or "string"
        template[name] = [value] if is_list else value
    return template


def build_prompt_template() -> dict[str, Any]:
    """
    JSON template describing `NutritionLabel`, as shown to the model.

    Nutrient entries get their unit/group/category pre-filled from
    NUTRIENT_PROFILES; other leaves carry their type hint.
    """
    return _template_for(NutritionLabel)

"""Tests for flattening model output into nutrition drafts."""

import copy

import pytest

from nutrivision_api.services.normalizer import (
    NO_ADDITIONAL_INFO,
    build_additional_info,
    normalize,
)
from nutrivision_api.services.vlm.schema import NutritionLabel


class TestNormalize:
    """Tests for normalize()."""

    def test_full_label(self, full_label):
        result = normalize(full_label)
        draft = result.draft

        assert result.degraded is False
        assert draft.food_name == "Crunchy Peanut Butter"
        assert draft.calories == 190
        assert draft.carbs == 7
        assert draft.protein == 8
        assert draft.fat == 16
        assert draft.sugar == 3
        assert draft.fiber == 2
        assert draft.raw_data == full_label
        assert draft.id is None

    def test_additional_info_lines(self, full_label):
        info = normalize(full_label).draft.additional_info
        assert info.split("\n") == [
            "Serving size: 32 g",
            "Sodium: 140mg",
            "Vitamins: Vitamin D: 0mcg, Vitamin E: 2.5mg",
            "Allergens: peanuts",
        ]

    def test_calories_and_protein_only(self):
        """Scenario: a sparse label with no carbohydrate breakdown."""
        parsed = {"total_calories": 250, "nutrients": {"protein": {"amount": 12}}}
        result = normalize(parsed)
        draft = result.draft

        assert result.degraded is False
        assert draft.food_name == "Food item"
        assert draft.calories == 250
        assert draft.protein == 12
        assert draft.sugar == 0
        assert draft.fiber == 0
        assert draft.carbs == 0
        assert draft.fat == 0
        assert "Vitamins" not in draft.additional_info
        assert "Allergens" not in draft.additional_info

    def test_none_yields_unknown_food_placeholder(self):
        result = normalize(None)

        assert result.degraded is True
        assert result.draft.food_name == "Unknown food"
        assert result.draft.additional_info == "No data available"
        assert result.draft.calories == 0
        assert result.draft.raw_data is None

    def test_empty_object_yields_zero_defaults(self):
        result = normalize({})

        assert result.degraded is False
        assert result.draft.food_name == "Food item"
        assert result.draft.calories == 0
        assert result.draft.additional_info == NO_ADDITIONAL_INFO
        assert result.draft.raw_data == {}

    @pytest.mark.parametrize("parsed", ["just a string", 42, [{"total_calories": 1}]])
    def test_non_object_yields_processed_placeholder(self, parsed):
        result = normalize(parsed)

        assert result.degraded is True
        assert result.draft.food_name == "Processed food item"
        assert result.draft.additional_info == "Error extracting detailed nutrition information"
        assert result.draft.raw_data is None

    def test_text_fallback_is_degraded(self):
        """The extractor wraps prose answers as {"text": ...}."""
        parsed = {"text": "I cannot read this label."}
        result = normalize(parsed)

        assert result.degraded is True
        assert result.draft.food_name == "Food item"
        assert result.draft.raw_data == parsed

    def test_string_amounts_are_coerced(self):
        parsed = {
            "total_calories": "180 kcal",
            "nutrients": {
                "carbohydrates": {
                    "amount": "24g",
                    "sub_nutrients": {"total_sugar": {"amount": "N/A"}},
                }
            },
        }
        draft = normalize(parsed).draft

        assert draft.calories == 180
        assert draft.carbs == 24
        assert draft.sugar == 0

    @pytest.mark.parametrize(
        "raw, expected",
        [("1,250 kcal", 1250), ("2,000", 2000), (".5g", 0.5), ("12,5", 12)],
    )
    def test_formatted_numbers(self, raw, expected):
        parsed = {
            "total_calories": raw,
            "nutrients": {"sodium": {"amount": "1,200", "unit": "mg"}},
        }
        draft = normalize(parsed).draft

        assert draft.calories == expected
        assert draft.additional_info == "Sodium: 1200mg"

    def test_normalize_never_raises_on_odd_input(self):
        for parsed in (42, [], [{"total_calories": 1}], True):
            result = normalize(parsed)
            assert result.degraded is True


class TestBuildAdditionalInfo:
    """Tests for the additional_info summary."""

    def test_nothing_to_report(self):
        assert build_additional_info(NutritionLabel()) == NO_ADDITIONAL_INFO

    def test_zero_sodium_and_serving_are_omitted(self):
        label = NutritionLabel.model_validate(
            {
                "product_details": {"serving_size": {"amount": 0, "unit": "g"}},
                "nutrients": {"sodium": {"amount": 0, "unit": "mg"}},
            }
        )
        assert build_additional_info(label) == NO_ADDITIONAL_INFO

    def test_whole_float_drops_decimal(self):
        label = NutritionLabel.model_validate(
            {"product_details": {"serving_size": {"amount": 30.0, "unit": "ml"}}}
        )
        assert build_additional_info(label) == "Serving size: 30 ml"

    def test_sodium_without_unit_defaults_to_mg(self):
        label = NutritionLabel.model_validate({"nutrients": {"sodium": {"amount": 55}}})
        assert build_additional_info(label) == "Sodium: 55mg"

    def test_vitamin_without_amount(self):
        label = NutritionLabel.model_validate(
            {"nutrients": {"vitamins": [{"vitamin_type": "Vitamin C"}, {"amount": 3}]}}
        )
        assert build_additional_info(label) == "Vitamins: Vitamin C"

    def test_multiple_allergens(self):
        label = NutritionLabel.model_validate({"allergens": ["milk", "soy"]})
        assert build_additional_info(label) == "Allergens: milk, soy"


def _with(label: dict, path: str, value) -> dict:
    """Copy of label with the dotted path replaced by value."""
    parsed = copy.deepcopy(label)
    node = parsed
    *parents, leaf = path.split(".")
    for key in parents:
        node = node[key]
    node[leaf] = value
    return parsed


class TestMalformedSections:
    """One badly shaped section zeroes only that section."""

    @pytest.mark.parametrize(
        "path, value, lost",
        [
            ("product_details.serving_size", "1 cup (40g)", {}),
            ("nutrients.vitamins", ["Vitamin C", "Vitamin D"], {}),
            ("nutrients.protein", 8, {"protein": 0}),
            ("nutrients.carbohydrates.sub_nutrients", [3, 2], {"sugar": 0, "fiber": 0}),
            ("nutrients.total_fat", "16g", {"fat": 0}),
            (
                "nutrients",
                "see label",
                {"carbs": 0, "protein": 0, "fat": 0, "sugar": 0, "fiber": 0},
            ),
            ("product_details", ["Crunchy Peanut Butter"], {"food_name": "Food item"}),
            ("metadata", "high confidence", {}),
        ],
    )
    def test_other_fields_survive(self, full_label, path, value, lost):
        parsed = _with(full_label, path, value)
        expected = {
            "food_name": "Crunchy Peanut Butter",
            "calories": 190,
            "carbs": 7,
            "protein": 8,
            "fat": 16,
            "sugar": 3,
            "fiber": 2,
            **lost,
        }

        result = normalize(parsed)

        assert result.degraded is False
        assert result.draft.model_dump(include=set(expected)) == expected
        assert result.draft.raw_data == parsed

    def test_bad_serving_size_drops_only_that_line(self, full_label):
        parsed = _with(full_label, "product_details.serving_size", "1 cup (40g)")

        info = normalize(parsed).draft.additional_info

        assert "Serving size" not in info
        assert "Sodium: 140mg" in info
        assert "Allergens: peanuts" in info

    def test_bad_vitamin_entries_are_skipped(self, full_label):
        vitamins = ["Vitamin C", {"vitamin_type": "Vitamin E", "amount": 2.5, "unit": "mg"}, None]
        parsed = _with(full_label, "nutrients.vitamins", vitamins)

        info = normalize(parsed).draft.additional_info

        assert "Vitamins: Vitamin E: 2.5mg" in info

    def test_single_vitamin_object_is_accepted(self):
        vitamin = {"vitamin_type": "Vitamin C", "amount": 60, "unit": "mg"}
        parsed = {"nutrients": {"vitamins": vitamin}}

        assert normalize(parsed).draft.additional_info == "Vitamins: Vitamin C: 60mg"

    def test_sparse_label_with_bad_sections(self):
        parsed = {
            "product_details": {"name": "Oats", "serving_size": "1 cup (40g)"},
            "total_calories": 150,
            "nutrients": {"protein": {"amount": 5}, "vitamins": ["Vitamin C"]},
        }

        result = normalize(parsed)

        assert result.degraded is False
        assert result.draft.food_name == "Oats"
        assert result.draft.calories == 150
        assert result.draft.protein == 5
        assert result.draft.raw_data == parsed

"""Prompts sent to the vision model."""

import json

from .schema import build_prompt_template

NUTRITION_INSTRUCTIONS = """Extract comprehensive nutritional information from the food label image. \
Structure the output in JSON format, including fields even if values are missing (use 0 or null). \
Ensure all units are standardized (g, mg, mcg, %DV) and include daily value percentages where available. \
Handle abbreviations appropriately (e.g., 'sat.' -> 'saturated', 'cholest.' -> 'cholesterol'). \
If any field is missing from the label, use 0 for numerical values and empty strings/null for text fields. \
Put the product or food name in product_details.name. \
Add your confidence score precisely up to 2 decimal places to the metadata field. \
Respond ONLY with JSON data, no text outside the JSON."""


def build_nutrition_prompt() -> str:
    """Full extraction prompt: instructions followed by the response template."""
    template = json.dumps(build_prompt_template(), indent=4)
    return f"{NUTRITION_INSTRUCTIONS}\n\nResponse Structure:\n{template}"


NUTRITION_PROMPT = build_nutrition_prompt()

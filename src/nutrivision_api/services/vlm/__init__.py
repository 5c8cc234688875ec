"""
Vision-language model gateway.

Client, response extraction and the shared label schema the extraction
prompt is generated from.
"""

from .client import (
    ChatMessage,
    ImagePart,
    ModelResponse,
    OpenRouterClient,
    TextPart,
    VLMError,
)
from .extraction import extract_json
from .factory import create_vlm_client
from .prompts import NUTRITION_PROMPT, build_nutrition_prompt
from .schema import NutritionLabel, build_prompt_template
from .service import VLMService

__all__ = [
    "ChatMessage",
    "ImagePart",
    "ModelResponse",
    "NUTRITION_PROMPT",
    "NutritionLabel",
    "OpenRouterClient",
    "TextPart",
    "VLMError",
    "VLMService",
    "build_nutrition_prompt",
    "build_prompt_template",
    "create_vlm_client",
    "extract_json",
]

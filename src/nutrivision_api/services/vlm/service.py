"""High-level vision model operations used by the HTTP routes."""

import logging
from typing import Any

from .client import ChatMessage, ModelResponse, OpenRouterClient

logger = logging.getLogger(__name__)


class VLMService:
    """Thin facade over OpenRouterClient for nutrition analysis and free-form prompts."""

    def __init__(self, client: OpenRouterClient):
        self.client = client

    async def analyze_food(self, image_url: str) -> ModelResponse:
        """Run the nutrition extraction prompt against an image."""
        return await self.client.extract_nutrition_info(image_url)

    async def call(
        self,
        prompt: str,
        image_url: str | None = None,
        model: str | None = None,
    ) -> dict[str, Any]:
        """
        General prompt, optionally with an image.

        An image with an empty prompt is treated as a nutrition analysis.

        Raises:
            VLMError: If the gateway call fails
        """
        if image_url and not prompt.strip():
            logger.debug("Empty prompt with image, running nutrition extraction")
            result = await self.analyze_food(image_url)
        else:
            result = await self.client.chat_completion(
                messages=[ChatMessage.user(prompt, image_url=image_url)],
                model=model,
            )
        return result.parsed_content

"""
OpenRouter client for vision-language model requests.

Sends OpenAI-style chat completions (text plus optional image URL) and
returns both the raw message content and a best-effort parsed JSON object.
No retries: a failed call surfaces immediately as `VLMError`.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Literal

import httpx
from pydantic import BaseModel

from .extraction import extract_json
from .prompts import NUTRITION_PROMPT

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-2.0-flash-exp:free"
DEFAULT_TEMPERATURE = 0.2


class ImageURL(BaseModel):
    url: str


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


class ChatMessage(BaseModel):
    """One role-tagged message; content is a string or ordered parts."""

    role: str
    content: str | list[TextPart | ImagePart]

    @classmethod
    def user(cls, text: str, image_url: str | None = None) -> "ChatMessage":
        """Build a single user turn, attaching the image after the text."""
        if image_url is None:
            return cls(role="user", content=text)
        return cls(
            role="user",
            content=[TextPart(text=text), ImagePart(image_url=ImageURL(url=image_url))],
        )


@dataclass
class ModelResponse:
    """Result of one gateway call."""

    parsed_content: dict[str, Any]
    raw_content: str
    full_response: dict[str, Any]
    elapsed_seconds: float


class VLMError(Exception):
    """Transport or upstream failure from the model gateway."""

    def __init__(
        self,
        error: str,
        elapsed_seconds: float = 0.0,
        details: Any = None,
    ):
        super().__init__(error)
        self.error = error
        self.elapsed_seconds = elapsed_seconds
        self.details = details if details is not None else {}

    @property
    def message(self) -> str:
        return self.error


class OpenRouterClient:
    """
    Client for the OpenRouter chat completions endpoint.

    Usage:
        client = OpenRouterClient(api_key="sk-or-...")
        result = await client.extract_nutrition_info("https://.../label.jpg")
        result.parsed_content["total_calories"]
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        timeout: float = 120.0,
        app_title: str = "VLM Nutrition Info App",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize OpenRouter client.

        Args:
            api_key: OpenRouter API key (sent as a Bearer token)
            base_url: Full chat completions URL
            model: Default model when a call does not name one
            temperature: Default sampling temperature
            timeout: Transport timeout in seconds
            app_title: Sent as X-Title for OpenRouter attribution
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.app_title = app_title
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if not self.api_key:
            logger.warning("OpenRouter API key is missing")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float | None = None,
    ) -> ModelResponse:
        """
        Send a chat completion request.

        Args:
            messages: Ordered conversation turns
            model: Model id (defaults to the client's model)
            temperature: Sampling temperature (defaults to the client's)

        Returns:
            ModelResponse with raw text, parsed JSON and timing

        Raises:
            VLMError: On network failure, non-2xx status, or a body that
                is not JSON
        """
        start_time = time.monotonic()
        model = model or self.model
        request_body = {
            "model": model,
            "messages": [m.model_dump(mode="json") for m in messages],
            "temperature": self.temperature if temperature is None else temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": self.app_title,
        }

        logger.debug(f"Making OpenRouter request to model: {model}")

        try:
            client = await self._get_client()
            response = await client.post(self.base_url, json=request_body, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            elapsed = time.monotonic() - start_time
            details = _error_body(e.response)
            logger.error(
                f"OpenRouter request failed in {elapsed:.2f}s: "
                f"HTTP {e.response.status_code} {details}"
            )
            raise VLMError(
                error=f"Model gateway returned HTTP {e.response.status_code}",
                elapsed_seconds=elapsed,
                details=details,
            ) from e
        except httpx.HTTPError as e:
            elapsed = time.monotonic() - start_time
            logger.error(f"OpenRouter request failed in {elapsed:.2f}s: {e!r}")
            raise VLMError(
                error=f"Failed to reach model gateway: {e or type(e).__name__}",
                elapsed_seconds=elapsed,
                details={"type": type(e).__name__},
            ) from e
        except ValueError as e:
            elapsed = time.monotonic() - start_time
            logger.error(f"OpenRouter returned a non-JSON body: {e}")
            raise VLMError(
                error="Model gateway returned an invalid response body",
                elapsed_seconds=elapsed,
            ) from e

        elapsed = time.monotonic() - start_time
        raw_content = _message_content(data)
        logger.debug(f"OpenRouter request completed in {elapsed:.2f}s")
        logger.debug(f"Raw content from response: {raw_content[:500]}")

        return ModelResponse(
            parsed_content=extract_json(raw_content),
            raw_content=raw_content,
            full_response=data,
            elapsed_seconds=elapsed,
        )

    async def extract_nutrition_info(self, image_url: str) -> ModelResponse:
        """Extract nutrition information from a food label image."""
        return await self.chat_completion(
            messages=[ChatMessage.user(NUTRITION_PROMPT, image_url=image_url)],
            model=self.model,
        )


def _message_content(data: Any) -> str:
    """`choices[0].message.content`, or "" when any step is missing."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"body": response.text}

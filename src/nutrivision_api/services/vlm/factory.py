"""Builds the model gateway client from application settings."""

import logging

from nutrivision_api.core.config import Settings, get_settings

from .client import OpenRouterClient

logger = logging.getLogger(__name__)


def create_vlm_client(settings: Settings | None = None) -> OpenRouterClient:
    """
    Create an OpenRouter client from settings.

    The app lifespan owns the instance and closes it on shutdown.
    """
    settings = settings or get_settings()
    logger.info(f"Configuring OpenRouter client: model={settings.openrouter_model}")
    return OpenRouterClient(
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
        model=settings.openrouter_model,
        temperature=settings.vlm_temperature,
        timeout=settings.vlm_timeout,
        app_title=settings.app_name,
    )

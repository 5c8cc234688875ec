"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    db_name: str = "nutrivision"

    # OpenRouter (vision-language model gateway)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1/chat/completions"
    openrouter_model: str = "google/gemini-2.0-flash-exp:free"
    vlm_temperature: float = 0.2
    vlm_timeout: float = 120.0  # Vision models can take a while on large labels

    # Auth
    jwt_secret: str = "default_jwt_secret"
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60 * 24 * 7

    # Streaming
    max_analyses_per_connection: int = 1

    # App
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: list[str] = ["*"]
    app_name: str = "NutriVision API"
    api_version: str = "1.0.0"

    @property
    def is_vlm_configured(self) -> bool:
        """Check if the model gateway has credentials."""
        return bool(self.openrouter_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Tests for settings and logging setup."""

import logging

from nutrivision_api.core.config import Settings
from nutrivision_api.core.logging import configure_logging


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.vlm_temperature == 0.2
        assert settings.openrouter_model == "google/gemini-2.0-flash-exp:free"
        assert settings.max_analyses_per_connection == 1
        assert settings.jwt_algorithm == "HS256"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-env")
        monkeypatch.setenv("MAX_ANALYSES_PER_CONNECTION", "3")
        monkeypatch.setenv("ALLOWED_ORIGINS", '["https://app.example.com"]')

        settings = Settings(_env_file=None)

        assert settings.is_vlm_configured is True
        assert settings.max_analyses_per_connection == 3
        assert settings.allowed_origins == ["https://app.example.com"]

    def test_vlm_not_configured_without_key(self, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        assert Settings(_env_file=None).is_vlm_configured is False


def test_configure_logging_quiets_drivers(test_settings):
    configure_logging(test_settings)

    assert logging.getLogger("pymongo").level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING

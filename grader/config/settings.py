"""
Grader Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from grader.config import settings

    # Access settings
    timeout_ms = settings.SANDBOX_TIMEOUT_MS
    backend = settings.SANDBOX_BACKEND
"""

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Grader settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Answer Grader"
    LOG_LEVEL: str = "INFO"

    # Sandbox
    # "worker" keeps one long-lived Python process per executor,
    # "docker" starts a throw-away container for every run.
    SANDBOX_BACKEND: str = "worker"
    SANDBOX_TIMEOUT_MS: int = 5000
    SANDBOX_STARTUP_TIMEOUT_MS: int = 10000
    SANDBOX_MEMORY_LIMIT_MB: int = 256
    SANDBOX_PYTHON_BINARY: str = ""  # Empty means the running interpreter
    SANDBOX_DOCKER_IMAGE: str = "python:3.11-slim"

    # JavaScript execution
    NODE_BINARY: str = "node"

    # Grading
    DEFAULT_COACHING_FEEDBACK: str = (
        "Great job! Consider trying the suggested approach next time."
    )
    TELEMETRY_ENABLED: bool = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


def configure_logging(log_level: str | None = None) -> None:
    """Apply LOG_LEVEL to the root logger, installing a handler if none exists."""
    normalized_level = (log_level or settings.LOG_LEVEL).strip().upper()
    level = getattr(logging, normalized_level, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    else:
        root_logger.setLevel(level)

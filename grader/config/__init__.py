"""Configuration package."""

from grader.config.settings import (
    Settings,
    configure_logging,
    get_settings,
    settings,
)

__all__ = [
    "Settings",
    "configure_logging",
    "get_settings",
    "settings",
]

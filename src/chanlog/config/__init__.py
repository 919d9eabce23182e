"""
Chanlog Configuration Module.

Implements the Nested Settings Pattern: each concern is a pydantic-settings
class with its own environment variable prefix, composed by :class:`Settings`.

Multi-Environment Support:
    Set `CHANLOG_ENV` to one of: development, testing, staging, production
    The system will load .env files in this order (later overrides earlier):
    1. .env
    2. .env.local
    3. .env.{environment}
    4. .env.{environment}.local

Usage:
    from chanlog.config import Config, settings

    config = Config.from_settings(settings)
    config.get("logger", "handlers")

    # Or from a plain mapping
    config = Config({"logger": {"handlers": {...}, "formatter": {...}}})
"""

from __future__ import annotations

import os
from functools import cached_property
from typing import Any, Mapping, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from chanlog.exceptions import MissingConfigError

from .logger import FormatterSettings, LoggerSettings


def _get_env_files() -> tuple[str, ...]:
    """
    Determine which .env files to load based on CHANLOG_ENV.
    """
    env = os.getenv("CHANLOG_ENV", "development")
    return (
        ".env",
        ".env.local",
        f".env.{env}",
        f".env.{env}.local",
    )


class Settings(BaseSettings):
    """
    Composite settings aggregating all configuration domains.
    """

    model_config = SettingsConfigDict(
        env_file=_get_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @cached_property
    def logger(self) -> LoggerSettings:
        return LoggerSettings(_env_file=_get_env_files())


class Config:
    """Read-only ``section -> key -> value`` configuration source.

    :meth:`get` fails loudly with :class:`MissingConfigError`; nothing here
    substitutes defaults.
    """

    def __init__(self, sections: Mapping[str, Mapping[str, Any]]):
        self._sections = sections

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Config":
        if settings is None:
            settings = Settings()
        return cls({"logger": settings.logger.to_config()})

    def get(self, section: str, key: str) -> Any:
        try:
            values = self._sections[section]
        except KeyError:
            raise MissingConfigError(section=section) from None
        try:
            return values[key]
        except KeyError:
            raise MissingConfigError(section=section, key=key) from None

    def __repr__(self) -> str:
        return f"Config(sections={sorted(self._sections)!r})"


# Singleton instance
settings = Settings()

__all__ = [
    "Config",
    "Settings",
    "settings",
    "LoggerSettings",
    "FormatterSettings",
]

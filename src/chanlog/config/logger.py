"""
Logger Configuration.
"""

from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chanlog.formatters import DEFAULT_DATE_FORMAT, DEFAULT_FORMAT


class FormatterSettings(BaseModel):
    """Template shared by every handler of every channel."""

    format: str = Field(default=DEFAULT_FORMAT, description="Line template")
    date_format: str = Field(default=DEFAULT_DATE_FORMAT, description="strftime pattern for {datetime}")
    allow_inline_line_breaks: bool = Field(default=True, description="Keep newlines inside records")


def _default_handlers() -> dict[str, dict[str, Any]]:
    return {"stream": {"path": "logs/chanlog.log", "level": "DEBUG"}}


class LoggerSettings(BaseSettings):
    """Handler and formatter configuration.

    ``CHANLOG_LOGGER_HANDLERS`` takes a JSON object mapping handler kind to
    its options; nested formatter fields use ``CHANLOG_LOGGER_FORMATTER__*``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHANLOG_LOGGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    handlers: dict[str, dict[str, Any]] = Field(
        default_factory=_default_handlers,
        description="Handler kind -> handler options, in attachment order",
    )
    formatter: FormatterSettings = Field(default_factory=FormatterSettings)

    def to_config(self) -> dict[str, Any]:
        """Plain mapping in the shape read through ``Config.get("logger", ...)``."""
        return {
            "handlers": {kind: dict(options) for kind, options in self.handlers.items()},
            "formatter": self.formatter.model_dump(),
        }

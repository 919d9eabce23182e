"""
Channel Logger Factory.

Builds one structured logger per named channel, lazily and once:
- handlers come from the ``logger.handlers`` configuration (stream, syslog-logstash)
- one formatter, from ``logger.formatter``, is shared by every handler
- one global context is merged into every record of every channel

Design Pattern: Registry Pattern for channels and handler kinds.
Library: structlog + orjson, configuration via pydantic-settings.
"""

from .context import GlobalContext
from .core import (
    ChannelLogger,
    LoggingContext,
    configure_logging,
    get_global_context,
    get_logger,
    get_logging_context,
    get_root_logger,
)
from .handlers import register_handler

__all__ = [
    "ChannelLogger",
    "GlobalContext",
    "LoggingContext",
    "configure_logging",
    "get_global_context",
    "get_logger",
    "get_logging_context",
    "get_root_logger",
    "register_handler",
]

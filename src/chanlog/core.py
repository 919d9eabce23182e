"""
Channel logger registry and the process-default logging context.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, TypeVar

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from .config import Config
from .context import GlobalContext, GlobalContextProcessor
from .exceptions import MissingConfigError
from .formatters import LogFormatter
from .handlers import BaseHandler, build_handler

ROOT_CHANNEL = "Root"

_T = TypeVar("_T")


# =============================================================================
# Structlog Processors
# =============================================================================


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add a timezone-aware local timestamp to the log event."""
    event_dict["timestamp"] = datetime.now().astimezone()
    return event_dict


def add_channel(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the channel name of the wrapped :class:`Channel`."""
    event_dict["channel"] = getattr(logger, "name", ROOT_CHANNEL)
    return event_dict


def dispatch_to_channel(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Final processor: pass the event dict on as keyword arguments to :meth:`Channel.emit`."""
    return event_dict


# =============================================================================
# Channel & Logger
# =============================================================================


class Channel:
    """The object wrapped by a :class:`ChannelLogger`.

    Holds the channel name and its handlers, fixed at construction, and fans
    every processed record out to them in order.
    """

    def __init__(self, name: str, handlers: Iterable[BaseHandler] = ()):
        self.name = name
        self.handlers: tuple[BaseHandler, ...] = tuple(handlers)

    def emit(self, /, **event_dict: Any) -> None:
        for handler in self.handlers:
            handler.handle(event_dict)

    # structlog calls the wrapped logger's method named after the level.
    debug = info = warning = error = critical = msg = emit

    def close(self) -> None:
        for handler in self.handlers:
            handler.close()

    def __repr__(self) -> str:
        return f"<Channel {self.name!r} handlers={list(self.handlers)!r}>"


class ChannelLogger(structlog.make_filtering_bound_logger(logging.NOTSET)):  # type: ignore[misc]
    """Bound logger for one channel.

    Usage:
        logger = context.get_logger("Billing")
        logger.info("invoice_sent", invoice_id=42)
    """

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def channel(self) -> Channel:
        return self._logger

    @property
    def handlers(self) -> tuple[BaseHandler, ...]:
        return self._logger.handlers

    @property
    def processors(self) -> tuple[Processor, ...]:
        return tuple(self._processors)


# =============================================================================
# Logging Context
# =============================================================================


class LoggingContext:
    """Holds the channel logger cache, the shared formatter and the global context.

    Loggers are built lazily from ``config.get("logger", "handlers")`` and live
    as long as the context. All three caches use an atomic get-or-insert, so
    concurrent first access builds each object once.
    """

    def __init__(self, config: Config | Mapping[str, Mapping[str, Any]]):
        self._config = config if isinstance(config, Config) else Config(config)
        self._lock = threading.RLock()
        self._loggers: dict[str, ChannelLogger] = {}
        self._formatter: LogFormatter | None = None
        self._global_context: GlobalContext | None = None

    @property
    def config(self) -> Config:
        return self._config

    @property
    def channels(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._loggers)

    def _get_or_create(self, get: Callable[[], _T | None], create: Callable[[], _T]) -> _T:
        existing = get()
        if existing is not None:
            return existing
        with self._lock:
            existing = get()
            if existing is None:
                existing = create()
            return existing

    def get_root_logger(self) -> ChannelLogger:
        return self.get_logger(ROOT_CHANNEL)

    def get_logger(self, name: str) -> ChannelLogger:
        """Get the logger for channel *name*, building it on first use."""
        return self._get_or_create(lambda: self._loggers.get(name), lambda: self._register(name))

    def _register(self, name: str) -> ChannelLogger:
        logger = self._create_logger(name)
        self._loggers[name] = logger
        return logger

    def _create_logger(self, name: str) -> ChannelLogger:
        handlers: list[BaseHandler] = []
        for kind, handler_config in self._config.get("logger", "handlers").items():
            handler = build_handler(kind, handler_config)
            if handler is None:
                continue
            handler.set_formatter(self.get_formatter())
            handlers.append(handler)

        processors: list[Processor] = [
            structlog.processors.add_log_level,
            add_timestamp,
            add_channel,
            GlobalContextProcessor(self.get_global_context()),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            dispatch_to_channel,
        ]
        return ChannelLogger(Channel(name, handlers), processors=processors, context={})

    def get_formatter(self) -> LogFormatter:
        """Shared formatter built from ``logger.formatter``."""
        return self._get_or_create(lambda: self._formatter, self._create_formatter)

    def _create_formatter(self) -> LogFormatter:
        formatter_config = self._config.get("logger", "formatter")
        try:
            self._formatter = LogFormatter(
                formatter_config["format"],
                formatter_config["date_format"],
                formatter_config.get("allow_inline_line_breaks", True),
            )
        except KeyError as exc:
            raise MissingConfigError(section="logger.formatter", key=exc.args[0]) from None
        return self._formatter

    def get_global_context(self) -> GlobalContext:
        return self._get_or_create(lambda: self._global_context, self._create_global_context)

    def _create_global_context(self) -> GlobalContext:
        self._global_context = GlobalContext()
        return self._global_context

    def close(self) -> None:
        """Close the handlers of every cached logger."""
        with self._lock:
            for logger in self._loggers.values():
                logger.channel.close()

    def __repr__(self) -> str:
        return f"<LoggingContext channels={list(self.channels)!r}>"


# =============================================================================
# Process-Default Context
# =============================================================================

_default_context: LoggingContext | None = None
_default_lock = threading.Lock()


def configure_logging(config: Config | Mapping[str, Mapping[str, Any]] | None = None) -> LoggingContext:
    """
    Install a new process-default logging context.

    Args:
        config: Configuration source or plain ``{"logger": {...}}`` mapping.
            Defaults to the environment-driven settings.

    The previous default context, if any, has its handlers closed.
    """
    global _default_context

    context = LoggingContext(config if config is not None else Config.from_settings())
    with _default_lock:
        previous, _default_context = _default_context, context
    if previous is not None:
        previous.close()
    return context


def get_logging_context() -> LoggingContext:
    """Process-default context, created from settings on first use."""
    global _default_context

    if _default_context is None:
        with _default_lock:
            if _default_context is None:
                _default_context = LoggingContext(Config.from_settings())
    return _default_context


def get_logger(name: str) -> ChannelLogger:
    """Get a channel logger from the process-default context."""
    return get_logging_context().get_logger(name)


def get_root_logger() -> ChannelLogger:
    return get_logging_context().get_root_logger()


def get_global_context() -> GlobalContext:
    return get_logging_context().get_global_context()

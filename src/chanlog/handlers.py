"""
Log handler abstractions, concrete handlers and the kind -> builder registry.

Design Pattern: Strategy Pattern for handler abstraction, Registry Pattern for
construction by kind string. New kinds are added with :func:`register_handler`.
"""

from __future__ import annotations

import logging
import os
import socket
import sys
import threading
import traceback
from abc import ABC, abstractmethod
from datetime import datetime
from logging.handlers import SysLogHandler
from pathlib import Path
from typing import IO, Any, Callable, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from structlog.typing import EventDict

from .exceptions import HandlerConfigError
from .formatters import LogFormatter
from .levels import coerce_level, level_number

# =============================================================================
# Handler Abstraction (Strategy Pattern)
# =============================================================================


class BaseHandler(ABC):
    """Abstract base class for log handlers.

    A handler owns a minimum severity level and a formatter. Records below the
    level are ignored; the rest are formatted and passed to :meth:`emit`.
    """

    raise_exceptions = False

    def __init__(self, level: int | str = logging.DEBUG):
        self._level = coerce_level(level)
        self._formatter: LogFormatter | None = None
        self._lock = threading.Lock()

    @property
    def level(self) -> int:
        return self._level

    @property
    def formatter(self) -> LogFormatter:
        if self._formatter is None:
            self._formatter = LogFormatter()
        return self._formatter

    def set_formatter(self, formatter: LogFormatter) -> None:
        self._formatter = formatter

    def is_handling(self, level: int) -> bool:
        return level >= self._level

    def handle(self, event_dict: EventDict) -> bool:
        """Format and emit *event_dict* if its level passes. Returns whether it did."""
        if not self.is_handling(level_number(str(event_dict.get("level", "info")))):
            return False

        try:
            line = self.formatter.format(event_dict)
            with self._lock:
                self.emit(line, event_dict)
        except Exception:
            self.handle_error(event_dict)
        return True

    def handle_error(self, event_dict: EventDict) -> None:
        """Report an emission failure on stderr without interrupting the caller."""
        if self.raise_exceptions:
            raise
        sys.stderr.write(f"--- Logging error in {type(self).__name__} ---\n")
        traceback.print_exc(file=sys.stderr)
        sys.stderr.write(f"Record: {event_dict.get('event')!r}\n")

    @abstractmethod
    def emit(self, line: str, event_dict: EventDict) -> None:
        """Write one formatted record to the destination."""
        ...

    def close(self) -> None:
        """Release resources held by the handler."""
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} level={logging.getLevelName(self._level)}>"


STDOUT = "ext://sys.stdout"
STDERR = "ext://sys.stderr"


class StreamHandler(BaseHandler):
    """Appends formatted records to a file or a process stream.

    Args:
        path: File path, an open text stream, or ``ext://sys.stdout`` /
            ``ext://sys.stderr``. Files are opened in append mode on first
            write; missing parent directories are created.
        level: Minimum severity to record.
    """

    def __init__(self, path: str | Path | IO[str], level: int | str = logging.DEBUG):
        super().__init__(level)
        self._stream: IO[str] | None = None
        self._owns_stream = False
        self._path: Path | None = None

        if path == STDOUT:
            self._stream = sys.stdout
        elif path == STDERR:
            self._stream = sys.stderr
        elif isinstance(path, (str, Path)):
            self._path = Path(path)
        else:
            self._stream = path

    @property
    def path(self) -> Path | None:
        return self._path

    def _open(self) -> IO[str]:
        if self._stream is None:
            assert self._path is not None
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = open(self._path, "a", encoding="utf-8")
            self._owns_stream = True
        return self._stream

    def emit(self, line: str, event_dict: EventDict) -> None:
        stream = self._open()
        stream.write(line + "\n")
        stream.flush()

    def close(self) -> None:
        with self._lock:
            if self._owns_stream and self._stream is not None:
                self._stream.close()
                self._stream = None
                self._owns_stream = False

    def __repr__(self) -> str:
        target = self._path if self._path is not None else getattr(self._stream, "name", self._stream)
        return f"<StreamHandler {target} level={logging.getLevelName(self._level)}>"


# =============================================================================
# Syslog over UDP for Logstash
# =============================================================================

SYSLOG_SEVERITY = {
    logging.DEBUG: 7,
    logging.INFO: 6,
    logging.WARNING: 4,
    logging.ERROR: 3,
    logging.CRITICAL: 2,
}

# Largest payload that fits one UDP datagram over IPv4.
MAX_DATAGRAM = 65023


def resolve_facility(value: int | str) -> int:
    """Map ``"local0"``/``"user"``/``16`` to a syslog facility number."""
    if isinstance(value, str):
        name = value.strip().lower()
        if name.isdigit():
            value = int(name)
        elif name in SysLogHandler.facility_names:
            return SysLogHandler.facility_names[name]
        else:
            raise ValueError(f"Unknown syslog facility: {value!r}")
    if isinstance(value, bool) or not 0 <= value <= 23:
        raise ValueError(f"Syslog facility out of range: {value!r}")
    return value


class LogstashSyslogUdpHandler(BaseHandler):
    """Ships records as RFC 5424 syslog datagrams for Logstash's syslog input.

    Each line of the formatted record becomes one datagram::

        <PRI>1 TIMESTAMP source_host source_program PID channel - line
    """

    def __init__(
        self,
        source_program: str,
        source_host: str,
        syslog_host: str,
        syslog_port: int,
        syslog_facility: int | str = "local0",
        level: int | str = logging.DEBUG,
    ):
        super().__init__(level)
        self.source_program = source_program
        self.source_host = source_host
        self.syslog_host = syslog_host
        self.syslog_port = int(syslog_port)
        self.facility = resolve_facility(syslog_facility)
        self._socket: socket.socket | None = None
        self._address: Any = None

    def _connect(self) -> socket.socket:
        if self._socket is None:
            family, socktype, proto, _, address = socket.getaddrinfo(
                self.syslog_host, self.syslog_port, type=socket.SOCK_DGRAM
            )[0]
            self._socket = socket.socket(family, socktype, proto)
            self._address = address
        return self._socket

    def priority(self, level: int) -> int:
        severity = SYSLOG_SEVERITY.get(level)
        if severity is None:
            severity = next((sev for lvl, sev in sorted(SYSLOG_SEVERITY.items(), reverse=True) if level >= lvl), 7)
        return (self.facility << 3) | severity

    @staticmethod
    def _header_token(value: Any, limit: int) -> str:
        token = "".join(ch if 33 <= ord(ch) <= 126 else "_" for ch in str(value))
        return token[:limit] or "-"

    def make_header(self, event_dict: EventDict) -> str:
        timestamp = event_dict.get("timestamp")
        if not isinstance(timestamp, datetime):
            timestamp = datetime.now().astimezone()
        return "<{pri}>1 {ts} {host} {app} {pid} {msgid} - ".format(
            pri=self.priority(level_number(str(event_dict.get("level", "info")))),
            ts=timestamp.isoformat(),
            host=self._header_token(self.source_host, 255),
            app=self._header_token(self.source_program, 48),
            pid=os.getpid(),
            msgid=self._header_token(event_dict.get("channel", "-"), 32),
        )

    def emit(self, line: str, event_dict: EventDict) -> None:
        header = self.make_header(event_dict).encode("utf-8")
        sock = self._connect()
        for chunk in line.splitlines() or [""]:
            datagram = (header + chunk.encode("utf-8"))[:MAX_DATAGRAM]
            sock.sendto(datagram, self._address)

    def close(self) -> None:
        with self._lock:
            if self._socket is not None:
                self._socket.close()
                self._socket = None

    def __repr__(self) -> str:
        return (
            f"<LogstashSyslogUdpHandler {self.syslog_host}:{self.syslog_port} "
            f"level={logging.getLevelName(self._level)}>"
        )


# =============================================================================
# Handler Configuration Models
# =============================================================================


class _HandlerConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    level: int = Field(description="Minimum severity to record")

    @field_validator("level", mode="before")
    @classmethod
    def _coerce_level(cls, v: Any) -> int:
        return coerce_level(v)


class StreamHandlerConfig(_HandlerConfig):
    path: str | Path = Field(description="Output file, or ext://sys.stdout / ext://sys.stderr")


class LogstashSyslogHandlerConfig(_HandlerConfig):
    source_program: str
    source_host: str
    syslog_host: str
    syslog_port: int = Field(gt=0, lt=65536)
    syslog_facility: int

    @field_validator("syslog_facility", mode="before")
    @classmethod
    def _resolve_facility(cls, v: Any) -> int:
        return resolve_facility(v)


# =============================================================================
# Handler Registry
# =============================================================================

HandlerBuilder = Callable[[Mapping[str, Any]], BaseHandler]
_BuilderT = TypeVar("_BuilderT", bound=HandlerBuilder)

_HANDLER_BUILDERS: dict[str, HandlerBuilder] = {}

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_handler_config(kind: str, model: type[ModelT], config: Any) -> ModelT:
    """Validate *config* with *model*, raising :class:`HandlerConfigError`."""
    try:
        return model.model_validate(config)
    except ValidationError as exc:
        raise HandlerConfigError(kind=kind, errors=exc.errors(include_url=False)) from exc


def register_handler(kind: str) -> Callable[[_BuilderT], _BuilderT]:
    """Register a builder for handler *kind*; a later registration replaces an earlier one."""

    def decorator(builder: _BuilderT) -> _BuilderT:
        _HANDLER_BUILDERS[kind] = builder
        return builder

    return decorator


def unregister_handler(kind: str) -> None:
    _HANDLER_BUILDERS.pop(kind, None)


def registered_kinds() -> tuple[str, ...]:
    return tuple(_HANDLER_BUILDERS)


def build_handler(kind: str, config: Any) -> BaseHandler | None:
    """Build a new handler of *kind* from *config*, or ``None`` for an unknown kind."""
    builder = _HANDLER_BUILDERS.get(kind)
    if builder is None:
        return None
    return builder(config)


@register_handler("stream")
def _build_stream(config: Mapping[str, Any]) -> BaseHandler:
    cfg = validate_handler_config("stream", StreamHandlerConfig, config)
    return StreamHandler(cfg.path, cfg.level)


@register_handler("syslog-logstash")
def _build_syslog_logstash(config: Mapping[str, Any]) -> BaseHandler:
    cfg = validate_handler_config("syslog-logstash", LogstashSyslogHandlerConfig, config)
    return LogstashSyslogUdpHandler(
        cfg.source_program,
        cfg.source_host,
        cfg.syslog_host,
        cfg.syslog_port,
        cfg.syslog_facility,
        cfg.level,
    )

import socket
import typing as t

import pytest
from structlog.typing import EventDict

from chanlog import core
from chanlog.core import LoggingContext
from chanlog.handlers import BaseHandler, register_handler, unregister_handler

PLAIN_FORMAT = "{level_name} {channel} {context}: {message}"


class RecordingHandler(BaseHandler):
    """Keeps formatted lines in memory."""

    def __init__(self, level: int | str = "DEBUG"):
        super().__init__(level)
        self.lines: list[str] = []
        self.records: list[EventDict] = []
        self.closed = False

    def emit(self, line: str, event_dict: EventDict) -> None:
        self.lines.append(line)
        self.records.append(dict(event_dict))

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def recording_kind():
    """Registers the in-memory ``recording`` handler kind for the test."""
    register_handler("recording")(lambda cfg: RecordingHandler(cfg.get("level", "DEBUG")))
    yield "recording"
    unregister_handler("recording")


@pytest.fixture(autouse=True)
def isolate_default_context(monkeypatch, tmp_path):
    """Keeps the process-default context and .env lookups away from the real environment."""
    for var in ("CHANLOG_ENV", "CHANLOG_LOGGER_HANDLERS", "CHANLOG_LOGGER_FORMATTER"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(core, "_default_context", None)
    yield
    if core._default_context is not None:
        core._default_context.close()


@pytest.fixture
def make_context():
    """Factory building a LoggingContext from a handlers mapping; closes them all afterwards."""
    contexts: list[LoggingContext] = []

    def _make(
        handlers: t.Mapping[str, t.Any],
        fmt: str = PLAIN_FORMAT,
        date_format: str = "%Y-%m-%d %H:%M:%S",
        **formatter_options: t.Any,
    ) -> LoggingContext:
        context = LoggingContext(
            {
                "logger": {
                    "handlers": dict(handlers),
                    "formatter": {"format": fmt, "date_format": date_format, **formatter_options},
                }
            }
        )
        contexts.append(context)
        return context

    yield _make

    for context in contexts:
        context.close()


@pytest.fixture
def udp_listener():
    """UDP socket on an ephemeral localhost port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()

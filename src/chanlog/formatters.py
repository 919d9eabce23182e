"""
Record formatter shared by every handler.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import orjson
from structlog.typing import EventDict

DEFAULT_FORMAT = "{datetime} {level_name} {channel} {context}: {message}"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Event dict keys that are record fields rather than record context.
RESERVED_KEYS = frozenset({"event", "level", "timestamp", "channel", "exception", "stack"})


def orjson_dumps(v: Any, *, default: Any = str) -> str:
    """Fast JSON serialization using orjson."""
    return orjson.dumps(
        v,
        default=default,
        option=orjson.OPT_UTC_Z | orjson.OPT_NAIVE_UTC | orjson.OPT_NON_STR_KEYS,
    ).decode()


class LogFormatter:
    """Renders an event dict with a ``str.format`` template.

    Placeholders: ``{datetime}``, ``{level_name}``, ``{channel}``,
    ``{context}`` (record context as JSON) and ``{message}``.

    Args:
        fmt: Line template.
        date_format: ``strftime`` pattern for ``{datetime}``.
        allow_inline_line_breaks: Keep newlines inside messages and append
            rendered exceptions. When false, newlines become spaces and the
            output is always a single line.
    """

    def __init__(
        self,
        fmt: str = DEFAULT_FORMAT,
        date_format: str = DEFAULT_DATE_FORMAT,
        allow_inline_line_breaks: bool = True,
    ) -> None:
        self._fmt = fmt
        self._date_format = date_format
        self._allow_inline_line_breaks = allow_inline_line_breaks

    @property
    def fmt(self) -> str:
        return self._fmt

    @property
    def date_format(self) -> str:
        return self._date_format

    @property
    def allow_inline_line_breaks(self) -> bool:
        return self._allow_inline_line_breaks

    @staticmethod
    def context_of(event_dict: EventDict) -> dict[str, Any]:
        return {k: v for k, v in event_dict.items() if k not in RESERVED_KEYS and not k.startswith("_")}

    def _format_timestamp(self, timestamp: Any) -> str:
        if isinstance(timestamp, datetime):
            return timestamp.strftime(self._date_format)
        if isinstance(timestamp, str):
            try:
                return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).strftime(self._date_format)
            except ValueError:
                return timestamp
        return datetime.now().astimezone().strftime(self._date_format)

    def _normalize(self, text: str) -> str:
        if self._allow_inline_line_breaks:
            return text
        return text.replace("\r\n", " ").replace("\r", " ").replace("\n", " ")

    def format(self, event_dict: EventDict) -> str:
        """Format an event dict into a single output string (no trailing newline)."""
        context = self.context_of(event_dict)
        output = self._fmt.format_map(
            {
                "datetime": self._format_timestamp(event_dict.get("timestamp")),
                "level_name": str(event_dict.get("level", "info")).upper(),
                "channel": event_dict.get("channel", ""),
                "context": self._normalize(orjson_dumps(context)),
                "message": self._normalize(str(event_dict.get("event", ""))),
            }
        )

        if self._allow_inline_line_breaks:
            for key in ("stack", "exception"):
                if event_dict.get(key):
                    output = f"{output.rstrip()}\n{event_dict[key]}"

        return output.rstrip("\n")

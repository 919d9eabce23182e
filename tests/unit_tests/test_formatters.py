from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from chanlog.formatters import DEFAULT_DATE_FORMAT, DEFAULT_FORMAT, LogFormatter

TIMESTAMP = datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone.utc)


def _event(**overrides) -> dict:
    event = {"event": "hello", "level": "info", "timestamp": TIMESTAMP, "channel": "Root"}
    event.update(overrides)
    return event


def test_default_template() -> None:
    formatter = LogFormatter()
    assert formatter.fmt == DEFAULT_FORMAT
    assert formatter.date_format == DEFAULT_DATE_FORMAT
    assert formatter.format(_event(user="bob")) == '2024-05-01 12:30:45 INFO Root {"user":"bob"}: hello'


def test_date_format_is_applied() -> None:
    formatter = LogFormatter("[{datetime}] {message}", "%d/%m/%Y %H:%M")
    assert formatter.format(_event()) == "[01/05/2024 12:30] hello"


def test_iso_string_timestamp_is_accepted() -> None:
    formatter = LogFormatter("{datetime}", "%Y")
    assert formatter.format(_event(timestamp="2021-01-01T00:00:00Z")) == "2021"


def test_empty_context_renders_as_empty_object() -> None:
    assert LogFormatter("{context}").format(_event()) == "{}"


def test_private_keys_stay_out_of_context() -> None:
    assert LogFormatter("{context}").format(_event(_record="x", a=1)) == '{"a":1}'


def test_unserializable_values_fall_back_to_str() -> None:
    rendered = LogFormatter("{context}").format(_event(path=Path("/tmp/x.log")))
    assert rendered == '{"path":"/tmp/x.log"}'


def test_trailing_newline_in_template_is_dropped() -> None:
    assert LogFormatter("{message}\n").format(_event()) == "hello"


def test_inline_line_breaks_are_kept_by_default() -> None:
    formatter = LogFormatter("{level_name}: {message}")
    assert formatter.format(_event(event="a\nb", level="warning")) == "WARNING: a\nb"


def test_line_breaks_can_be_flattened() -> None:
    formatter = LogFormatter("{message} {context}", allow_inline_line_breaks=False)
    rendered = formatter.format(_event(event="a\r\nb\nc", note="x\ny", exception="Traceback..."))

    assert rendered == 'a b c {"note":"x\\ny"}'
    assert "\n" not in rendered


def test_exception_is_appended() -> None:
    formatter = LogFormatter("{level_name} {message}")
    rendered = formatter.format(_event(level="error", exception="Traceback (most recent call last):\nValueError: x"))
    assert rendered == "ERROR hello\nTraceback (most recent call last):\nValueError: x"

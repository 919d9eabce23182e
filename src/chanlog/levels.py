"""
Severity level helpers.
"""

from __future__ import annotations

import logging

LEVEL_NAMES = ("debug", "info", "warning", "error", "critical")


def coerce_level(value: int | str) -> int:
    """Turn ``"debug"``, ``"INFO"`` or ``logging.WARNING`` into an int level."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid log level: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        name = value.strip().upper()
        if name.isdigit():
            return int(name)
        level = getattr(logging, name, None)
        if isinstance(level, int) and name.lower() in LEVEL_NAMES + ("notset", "warn", "fatal"):
            return level
    raise ValueError(f"Invalid log level: {value!r}")


def level_number(method_name: str) -> int:
    """Level of a record given the structlog method name that produced it."""
    return getattr(logging, method_name.upper(), logging.INFO)

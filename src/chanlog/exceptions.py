"""
Chanlog exception hierarchy.

Every error carries a machine-readable ``code`` and a ``details`` mapping so
callers can report configuration problems without parsing messages.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ChanlogError(Exception):
    """Root of all chanlog errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


# ================================
# Configuration errors
# ================================


class ConfigError(ChanlogError):
    """Configuration is absent or unusable."""

    pass


class MissingConfigError(ConfigError):
    """A configuration section or key does not exist."""

    def __init__(self, *, section: str, key: Optional[str] = None) -> None:
        if key is None:
            message = f"Configuration section '{section}' not found"
            details = {"section": section}
        else:
            message = f"Configuration key '{section}.{key}' not found"
            details = {"section": section, "key": key}

        super().__init__(message, code="CONFIG_KEY_MISSING", details=details)


class HandlerConfigError(ConfigError):
    """A known handler kind was given missing or invalid options."""

    def __init__(self, *, kind: str, errors: list[dict[str, Any]]) -> None:
        fields = sorted({".".join(str(p) for p in err.get("loc", ())) for err in errors})
        message = f"Invalid configuration for handler '{kind}': {', '.join(fields) or 'unknown field'}"
        super().__init__(
            message,
            code="HANDLER_CONFIG_INVALID",
            details={"kind": kind, "fields": fields, "errors": errors},
        )
        self.kind = kind


__all__ = [
    "ChanlogError",
    "ConfigError",
    "MissingConfigError",
    "HandlerConfigError",
]

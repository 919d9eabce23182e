"""
Process-wide log context and the processor that injects it into records.
"""

from __future__ import annotations

import threading
from typing import Any, Iterator, Mapping

from structlog.typing import EventDict, WrappedLogger


class GlobalContext:
    """Thread-safe key/value store merged into every emitted record.

    Callers mutate it directly (``set``/``update``/``remove``); loggers read a
    snapshot through :class:`GlobalContextProcessor` on every record, so
    changes are visible to loggers that already exist.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def update(self, mapping: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        with self._lock:
            if mapping:
                self._data.update(mapping)
            self._data.update(kwargs)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def remove(self, key: str) -> None:
        """Drop *key*; a missing key is ignored."""
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def all(self) -> dict[str, Any]:
        """Snapshot of the current contents."""
        with self._lock:
            return dict(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self.all())

    def __repr__(self) -> str:
        return f"GlobalContext({self.all()!r})"


class GlobalContextProcessor:
    """structlog processor merging a :class:`GlobalContext` into the event dict.

    Keys passed at the call site take precedence over global ones.
    """

    def __init__(self, global_context: GlobalContext) -> None:
        self.global_context = global_context

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in self.global_context.all().items():
            event_dict.setdefault(key, value)
        return event_dict

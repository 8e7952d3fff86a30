"""In-memory live buffer of not-yet-archived log records.

Holds every record received since the last archive, in arrival order.  The
buffer is owned by the ingestion engine; everything else gets a copy through
:meth:`LiveBuffer.snapshot`.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

# A record is whatever JSON value was submitted as ``log`` (normally a string).
LogRecord = Any


class LiveBuffer:
    """Ordered, unbounded sequence of log records."""

    def __init__(self, records: Iterable[LogRecord] = ()) -> None:
        self._records: list[LogRecord] = list(records)

    def append(self, record: LogRecord) -> None:
        self._records.append(record)

    def replace(self, records: Iterable[LogRecord]) -> None:
        self._records = list(records)

    def clear(self) -> None:
        self._records = []

    def snapshot(self) -> list[LogRecord]:
        """Return a point-in-time copy safe to hand to other components."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __bool__(self) -> bool:
        return bool(self._records)

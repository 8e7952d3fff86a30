"""Durable store for the live buffer.

The whole buffer is kept as one pretty-printed JSON array.  Every save is a
full rewrite of the document; there is no write-ahead log, so a crash between
a buffer mutation and its save loses that mutation.
"""

import json
import logging
from pathlib import Path

from logrelay.errors import StoreCorruptError, StoreError
from logrelay.live_buffer import LogRecord

logger = logging.getLogger(__name__)


def _dumps(records: list[LogRecord]) -> str:
    return json.dumps(records, indent=2, ensure_ascii=False)


class DurableStore:
    def __init__(self, path: Path, corrupt_policy: str = "fallback") -> None:
        self.path = Path(path)
        self.corrupt_policy = corrupt_policy

    def load(self) -> list[LogRecord]:
        """Read the persisted buffer.

        A missing document is created holding ``[]``.  A document that cannot
        be created, read or parsed is handled according to ``corrupt_policy``:
        ``"fallback"`` logs and returns an empty buffer (the persisted file is
        left untouched until the next save), ``"fail"`` raises
        :class:`StoreError` (:class:`StoreCorruptError` for unparseable
        content).
        """
        if not self.path.exists():
            try:
                self.save([])
            except StoreError as exc:
                return self._unusable(exc)
            return []

        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return self._unusable(StoreError(f"Cannot read {self.path}: {exc}"))

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            return self._unusable(StoreCorruptError(f"{self.path} is not valid JSON: {exc}"))

        if data is None:
            return []
        if not isinstance(data, list):
            return self._unusable(StoreCorruptError(f"{self.path} does not hold a JSON array"))
        return data

    def save(self, records: list[LogRecord]) -> None:
        """Overwrite the document with ``records``."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(_dumps(records), encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Cannot write {self.path}: {exc}") from exc

    def _unusable(self, error: StoreError) -> list[LogRecord]:
        if self.corrupt_policy == "fail":
            raise error
        logger.error("Error loading logs from disk, starting empty: %s", error)
        return []

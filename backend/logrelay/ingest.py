"""Ingestion engine — the only writer of the live buffer.

Flow for one submission:
1. Reject falsy ``log`` values
2. Append to the live buffer
3. Persist the whole buffer
4. Publish a ``new`` envelope carrying just that record
5. If the record contains the sentinel, run the archival transition:
   snapshot → clear → persist → publish ``archive``

Steps 2-5 run under one asyncio.Lock and never await, so concurrent
submissions cannot interleave and viewers never see a torn archive.
Storage failures are logged and swallowed: ingestion stays available even
when the disk does not.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from logrelay.archive import ArchiveStore
from logrelay.errors import ArchiveError, NoLogProvided, StoreError
from logrelay.hub import BroadcastHub, Subscription, archive_envelope, new_envelope
from logrelay.live_buffer import LiveBuffer, LogRecord
from logrelay.store import DurableStore

logger = logging.getLogger(__name__)


def has_log(value: object) -> bool:
    """Whether ``value`` counts as a provided log.

    ``None``, ``False``, numeric zero and the empty string do not; every
    other JSON value (including empty arrays and objects) does.
    """
    if value is None or value is False:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value != ""
    return True


@dataclass
class SubmitResult:
    sentinel: bool = False
    archived: str | None = None


class IngestionEngine:
    def __init__(
        self,
        store: DurableStore,
        archive: ArchiveStore,
        hub: BroadcastHub,
        sentinel: str = "shutdown",
    ) -> None:
        self.store = store
        self.archive_store = archive
        self.hub = hub
        self.sentinel = sentinel.lower()
        self._buffer = LiveBuffer()
        self._lock = asyncio.Lock()
        self._loaded = False

    # ── State ─────────────────────────────────────────────────────────────────

    def load(self) -> None:
        """Replace the live buffer with the persisted one.

        Raises StoreError (including StoreCorruptError under the ``fail``
        policy) when the document cannot be used.
        """
        self._buffer.replace(self.store.load())
        self._loaded = True

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        try:
            self.load()
        except StoreError:
            # Ingestion stays available; the buffer starts from what is in memory.
            logger.exception("Error loading logs from disk, continuing with in-memory buffer")
            self._loaded = True

    def snapshot(self) -> list[LogRecord]:
        return self._buffer.snapshot()

    async def reload(self) -> list[LogRecord]:
        """Re-read the persisted buffer and return a copy of it."""
        async with self._lock:
            try:
                self.load()
            except StoreError:
                logger.exception("Error loading logs from disk, keeping in-memory buffer")
            return self._buffer.snapshot()

    def subscribe(self) -> Subscription:
        """Attach a viewer; its first envelope is ``init`` with the current buffer."""
        self._ensure_loaded()
        return self.hub.subscribe(self._buffer.snapshot())

    def is_sentinel(self, record: LogRecord) -> bool:
        return isinstance(record, str) and self.sentinel in record.lower()

    # ── Submit ────────────────────────────────────────────────────────────────

    async def submit(self, record: LogRecord) -> SubmitResult:
        if not has_log(record):
            raise NoLogProvided("No log provided")

        async with self._lock:
            self._ensure_loaded()
            self._buffer.append(record)
            logger.info("Received log: %s", record)
            self._persist()
            self.hub.publish(new_envelope(record))

            if self.is_sentinel(record):
                return SubmitResult(sentinel=True, archived=self._archive())
        return SubmitResult()

    # ── Internals (caller holds the lock) ─────────────────────────────────────

    def _persist(self) -> None:
        try:
            self.store.save(self._buffer.snapshot())
        except StoreError:
            logger.exception("Error saving logs to disk")

    def _archive(self) -> str | None:
        if not self._buffer:
            return None

        try:
            name = self.archive_store.snapshot(self._buffer.snapshot())
        except ArchiveError:
            # Without a snapshot the buffer is the only copy: keep it.
            logger.exception("Error archiving logs, live buffer kept")
            self.hub.publish(archive_envelope(None, cleared=False))
            return None

        count = len(self._buffer)
        self._buffer.clear()
        self._persist()
        self.hub.publish(archive_envelope(name, cleared=True))
        logger.info("Archived %d logs to %s", count, name)
        return name

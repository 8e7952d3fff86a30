"""Archive store — immutable, timestamp-named snapshots of the live buffer.

Snapshots are JSON files in the archive directory named
``logs-<timestamp>-<seq>.json`` where the ISO-8601 UTC timestamp has ``:``
and ``.`` replaced by ``-`` and ``<seq>`` is a three-digit counter, e.g.
``logs-2026-10-16T22-58-00-123456Z-000.json``.  Names sort lexicographically
in creation order.

A snapshot is never overwritten: if the name is taken (two archives inside
the same microsecond) the counter is bumped to ``-001``, ``-002``, ...
"""

import json
import logging
import re
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from logrelay.errors import ArchiveError, ArchiveNotFound, InvalidArchiveName
from logrelay.live_buffer import LogRecord

logger = logging.getLogger(__name__)

_PREFIX = "logs-"
_SUFFIX = ".json"
_UNSAFE = re.compile(r"[:.]")
_MAX_COLLISIONS = 1000


def _utcnow() -> datetime:
    return datetime.now(UTC)


def snapshot_stem(moment: datetime) -> str:
    """Filesystem-safe name stem for a snapshot taken at ``moment``."""
    stamp = moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return _PREFIX + _UNSAFE.sub("-", stamp)


class ArchiveStore:
    def __init__(self, directory: Path, clock: Callable[[], datetime] = _utcnow) -> None:
        self.directory = Path(directory)
        self._clock = clock

    def _ensure_dir(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    # ── Write ─────────────────────────────────────────────────────────────────

    def snapshot(self, records: list[LogRecord]) -> str:
        """Write ``records`` to a new snapshot and return its file name."""
        try:
            self._ensure_dir()
            stem = snapshot_stem(self._clock())
            payload = json.dumps(records, indent=2, ensure_ascii=False)
            for attempt in range(_MAX_COLLISIONS):
                name = f"{stem}-{attempt:03d}{_SUFFIX}"
                try:
                    with open(self.directory / name, "x", encoding="utf-8") as f:
                        f.write(payload)
                except FileExistsError:
                    continue
                return name
        except OSError as exc:
            raise ArchiveError(f"Cannot write snapshot: {exc}") from exc
        raise ArchiveError(f"No free snapshot name for {stem}")

    # ── Read ──────────────────────────────────────────────────────────────────

    def list_snapshots(self) -> list[str]:
        """Return snapshot names, newest first."""
        try:
            self._ensure_dir()
            names = [p.name for p in self.directory.iterdir() if p.is_file() and p.name.endswith(_SUFFIX)]
        except OSError as exc:
            raise ArchiveError(f"Cannot list {self.directory}: {exc}") from exc
        return sorted(names, reverse=True)

    def resolve(self, name: str) -> Path:
        """Map a snapshot name to its path, refusing anything outside the archive directory."""
        if not name or name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
            raise InvalidArchiveName(name)
        root = self.directory.resolve()
        full = (root / name).resolve()
        if full.parent != root:
            raise InvalidArchiveName(name)
        return full

    def path_for(self, name: str) -> Path:
        """Like :meth:`resolve` but also require the snapshot to exist."""
        full = self.resolve(name)
        if not full.is_file():
            raise ArchiveNotFound(name)
        return full

    def read(self, name: str) -> list[LogRecord]:
        full = self.path_for(name)
        try:
            return json.loads(full.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ArchiveError(f"Cannot read snapshot {name}: {exc}") from exc

    # ── Delete ────────────────────────────────────────────────────────────────

    def delete(self, name: str) -> str:
        full = self.path_for(name)
        try:
            full.unlink()
        except FileNotFoundError as exc:
            raise ArchiveNotFound(name) from exc
        except OSError as exc:
            raise ArchiveError(f"Cannot delete snapshot {name}: {exc}") from exc
        return full.name

    def delete_all(self) -> list[str]:
        """Remove every snapshot; return the names actually deleted."""
        deleted: list[str] = []
        for name in self.list_snapshots():
            try:
                (self.directory / name).unlink()
            except OSError:
                logger.exception("Failed to delete archive file %s", name)
                continue
            deleted.append(name)
        return deleted

"""Per-user history of recently opened archives."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

from ZipLens.models import RecentFileRecord

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path.home() / ".ziplens" / "recent_files.json"
MAX_RECENT_FILES = 5

_TICK = timedelta(milliseconds=1)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class StoreUnavailable(Exception):
    """Raised by a backend when recent files cannot be read or written."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def record_to_dict(record: RecentFileRecord) -> dict:
    return {
        "path": record.path,
        "user_id": record.user_id,
        "timestamp": (record.timestamp - _EPOCH) // _TICK,
    }


def record_from_dict(data: dict) -> RecentFileRecord:
    """Parse one stored record, raising ValueError if any field is malformed."""
    path, user_id, stamp = data["path"], data["user_id"], data["timestamp"]
    if not isinstance(path, str) or not isinstance(user_id, str):
        raise ValueError(f"Malformed recent file record: {data!r}")
    # bool is an int subclass but never a valid timestamp
    if isinstance(stamp, bool) or not isinstance(stamp, int):
        raise ValueError(f"Malformed timestamp in recent file record: {stamp!r}")
    try:
        timestamp = _EPOCH + timedelta(milliseconds=stamp)
    except OverflowError as exc:
        raise ValueError(f"Timestamp out of range: {stamp}") from exc
    return RecentFileRecord(path=path, user_id=user_id, timestamp=timestamp)


class RecentFilesBackend(ABC):
    """Keyed persistence for recent-file records."""

    @abstractmethod
    def upsert(self, record: RecentFileRecord) -> None:
        """Insert or replace the record for (record.user_id, record.path)."""

    @abstractmethod
    def records_for(self, user_id: str) -> list[RecentFileRecord]:
        """Return every stored record for *user_id*, in any order."""


class MemoryBackend(RecentFilesBackend):
    """In-process store, lost on exit."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], RecentFileRecord] = {}

    def upsert(self, record: RecentFileRecord) -> None:
        self._records[(record.user_id, record.path)] = record

    def records_for(self, user_id: str) -> list[RecentFileRecord]:
        return [r for (uid, _), r in self._records.items() if uid == user_id]


class JsonFileBackend(RecentFilesBackend):
    """Records kept in a JSON list file, trimmed to *max_per_user* per user."""

    def __init__(
        self,
        path: str | os.PathLike = DEFAULT_STORE_PATH,
        max_per_user: int = MAX_RECENT_FILES,
    ) -> None:
        self.path = Path(path)
        self.max_per_user = max_per_user
        self._lock = threading.Lock()

    def _read(self) -> list[RecentFileRecord]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return [record_from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise StoreUnavailable(
                f"Failed to read recent files from {self.path}: {exc}"
            ) from exc

    def _write(self, records: list[RecentFileRecord]) -> None:
        payload = json.dumps([record_to_dict(r) for r in records], indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=".recent_files.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            raise StoreUnavailable(
                f"Failed to write recent files to {self.path}: {exc}"
            ) from exc

    def upsert(self, record: RecentFileRecord) -> None:
        with self._lock:
            records = [
                r
                for r in self._read()
                if (r.user_id, r.path) != (record.user_id, record.path)
            ]
            records.append(record)

            # Drop the oldest entries beyond the per-user limit
            mine = sorted(
                (r for r in records if r.user_id == record.user_id),
                key=lambda r: r.timestamp,
                reverse=True,
            )
            stale = {id(r) for r in mine[self.max_per_user:]}
            self._write([r for r in records if id(r) not in stale])

    def records_for(self, user_id: str) -> list[RecentFileRecord]:
        with self._lock:
            return [r for r in self._read() if r.user_id == user_id]


class RecentFilesClient:
    """Add and list recent archives for a user without ever failing the caller.

    Backend failures are logged; ``add_recent_file`` then returns False and
    ``get_recent_files`` returns an empty list.
    """

    def __init__(
        self,
        backend: RecentFilesBackend,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.backend = backend
        self.clock = clock
        self._last_stamp: datetime | None = None
        self._stamp_lock = threading.Lock()

    def _next_timestamp(self) -> datetime:
        # Successive adds must order strictly, even on a coarse clock
        with self._stamp_lock:
            now = self.clock()
            now = now.replace(microsecond=now.microsecond // 1000 * 1000)
            if self._last_stamp is not None and now <= self._last_stamp:
                now = self._last_stamp + _TICK
            self._last_stamp = now
            return now

    def add_recent_file(self, user_id: str, path: str) -> bool:
        """Record that *user_id* opened *path* just now. Returns True on success."""
        record = RecentFileRecord(
            path=path, user_id=user_id, timestamp=self._next_timestamp()
        )
        try:
            self.backend.upsert(record)
            return True
        except StoreUnavailable as exc:
            logger.warning("Could not record recent file %s: %s", path, exc)
            return False

    def get_recent_files(self, user_id: str) -> list[RecentFileRecord]:
        """Return the user's recent files, most recent first."""
        try:
            records = self.backend.records_for(user_id)
        except StoreUnavailable as exc:
            logger.warning("Could not load recent files: %s", exc)
            return []
        return sorted(records, key=lambda r: r.timestamp, reverse=True)

"""Data classes for ZipLens."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class ArchiveEntry:
    path: str
    encrypted: bool = False
    size: int = 0
    is_dir: bool = False


@dataclass(frozen=True)
class Leaf:
    """A terminal file in a directory tree."""


@dataclass
class Directory:
    """A directory node; children keep first-seen insertion order."""

    children: dict[str, Leaf | Directory] = field(default_factory=dict)


DirectoryNode = Leaf | Directory


@dataclass(frozen=True)
class RecentFileRecord:
    path: str
    user_id: str
    timestamp: datetime


class OpenState(Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    AWAITING_PASSWORD = "awaiting_password"
    SUCCESS = "success"
    FAILURE = "failure"


class OpenOutcome(Enum):
    OPENED = "opened"
    NEEDS_PASSWORD = "needs_password"
    ABANDONED = "abandoned"
    FAILED = "failed"


@dataclass
class OpenResult:
    outcome: OpenOutcome
    archive_path: str | None = None
    entries: list[ArchiveEntry] = field(default_factory=list)
    tree: Directory | None = None
    error: Exception | None = None

"""Abstract base class for archive engines."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ZipLens.models import ArchiveEntry


class EngineError(Exception):
    """Raised when an archive cannot be listed. The message is shown as-is."""


class BadPasswordError(EngineError):
    """Raised when the supplied password does not decrypt the archive."""


class ArchiveReadError(EngineError):
    """Raised for missing, unreadable, corrupt or unsupported archives."""


class ArchiveEngine(ABC):
    """Base class for services that list the entries of an archive."""

    @abstractmethod
    def list_contents(
        self, archive_path: str, password: str | None = None
    ) -> list[ArchiveEntry]:
        """List every entry in the archive.

        Without a password, encrypted entries are reported with
        ``encrypted=True``. With a password, every encrypted entry must
        decrypt with it, and the returned entries are the authoritative
        listing.
        """

"""Open-archive flow: list, ask for a password if needed, record the access.

One ``ArchiveListingOrchestrator`` drives one "open archive" action at a time:

    IDLE -> REQUESTING (no password)
         -> SUCCESS
         -> AWAITING_PASSWORD -> REQUESTING (password) -> SUCCESS | FAILURE

SUCCESS and FAILURE are reported in the returned ``OpenResult`` and the
orchestrator drops back to IDLE, ready for the next selection. The password
step is split into ``submit_password`` so a UI that collects the password on
a later rerun can resume the same flow.
"""

from __future__ import annotations

import logging
from typing import Callable

from ZipLens.engines.base import ArchiveEngine, EngineError
from ZipLens.models import ArchiveEntry, OpenOutcome, OpenResult, OpenState
from ZipLens.recent_store import RecentFilesClient
from ZipLens.tree_builder import InvalidPathError, build_tree, split_path

logger = logging.getLogger(__name__)

Prompt = Callable[[], "str | None"]


def needs_password(entries: list[ArchiveEntry]) -> bool:
    """True if any entry is encrypted; the whole listing is then untrusted."""
    return any(entry.encrypted for entry in entries)


def entry_paths(entries: list[ArchiveEntry]) -> list[str]:
    """Paths that belong in the tree; directory placeholders are skipped."""
    return [entry.path for entry in entries if not entry.is_dir]


def displayable_paths(entries: list[ArchiveEntry]) -> list[str]:
    """Entry paths with malformed names (empty segments) logged and dropped."""
    paths: list[str] = []
    for path in entry_paths(entries):
        try:
            split_path(path)
        except InvalidPathError as exc:
            logger.warning("Skipping archive entry: %s", exc)
            continue
        paths.append(path)
    return paths


class ArchiveListingOrchestrator:
    """State machine for opening one archive, possibly password protected."""

    def __init__(
        self,
        engine: ArchiveEngine,
        recent_files: RecentFilesClient,
        user_id: str,
    ) -> None:
        self.engine = engine
        self.recent_files = recent_files
        self.user_id = user_id
        self._state = OpenState.IDLE
        self._pending_path: str | None = None

    @property
    def state(self) -> OpenState:
        return self._state

    @property
    def pending_path(self) -> str | None:
        """The archive waiting for a password, if any."""
        return self._pending_path

    def select(self, archive_path: str | None) -> OpenResult:
        """Start opening *archive_path*; ``None`` means the user cancelled."""
        if not archive_path:
            logger.info("No archive selected")
            self._reset()
            return OpenResult(outcome=OpenOutcome.ABANDONED)

        # A new selection supersedes any flow still waiting for a password
        self._reset()
        entries = self._request(archive_path, None)
        if isinstance(entries, OpenResult):
            return entries

        if needs_password(entries):
            logger.info("%s is encrypted; waiting for a password", archive_path)
            self._state = OpenState.AWAITING_PASSWORD
            self._pending_path = archive_path
            return OpenResult(
                outcome=OpenOutcome.NEEDS_PASSWORD, archive_path=archive_path
            )

        return self._succeed(archive_path, entries)

    def submit_password(self, password: str | None) -> OpenResult:
        """Resume a flow in AWAITING_PASSWORD; ``None`` abandons it."""
        if self._state is not OpenState.AWAITING_PASSWORD:
            raise RuntimeError(
                f"No archive is waiting for a password (state: {self._state.value})"
            )

        archive_path = self._pending_path
        if password is None:
            logger.info("Password prompt for %s was cancelled", archive_path)
            self._reset()
            return OpenResult(
                outcome=OpenOutcome.ABANDONED, archive_path=archive_path
            )

        entries = self._request(archive_path, password)
        if isinstance(entries, OpenResult):
            return entries
        return self._succeed(archive_path, entries)

    def open_archive(self, choose_file: Prompt, ask_password: Prompt) -> OpenResult:
        """Run the whole flow with two prompt callables."""
        result = self.select(choose_file())
        if result.outcome is OpenOutcome.NEEDS_PASSWORD:
            result = self.submit_password(ask_password())
        return result

    # ------------------------------------------------------------------

    def _request(
        self, archive_path: str, password: str | None
    ) -> list[ArchiveEntry] | OpenResult:
        self._state = OpenState.REQUESTING
        try:
            return self.engine.list_contents(archive_path, password)
        except EngineError as exc:
            return self._fail(archive_path, exc)

    def _succeed(self, archive_path: str, entries: list[ArchiveEntry]) -> OpenResult:
        tree = build_tree(displayable_paths(entries))
        self._state = OpenState.SUCCESS
        self.recent_files.add_recent_file(self.user_id, archive_path)
        logger.info("Opened %s (%d entries)", archive_path, len(entries))
        self._reset()
        return OpenResult(
            outcome=OpenOutcome.OPENED,
            archive_path=archive_path,
            entries=entries,
            tree=tree,
        )

    def _fail(self, archive_path: str, exc: Exception) -> OpenResult:
        self._state = OpenState.FAILURE
        logger.warning("Failed to list %s: %s", archive_path, exc)
        self._reset()
        return OpenResult(
            outcome=OpenOutcome.FAILED, archive_path=archive_path, error=exc
        )

    def _reset(self) -> None:
        self._state = OpenState.IDLE
        self._pending_path = None

"""Workspace sync orchestrator.

The ``SyncOrchestrator`` drives one commit / pull-rebase / push cycle over
the whole workspace on behalf of every open document.  It:

1. Refuses to start while any document is in ``conflict`` (and, for timer
   triggered runs, while any document is in ``error``).
2. Saves unsaved edits first when auto-save is enabled; otherwise marks
   those documents ``conflict`` and stops.
3. Marks every open document ``syncing``.
4. Commits, fetches, rebases onto the remote when behind, and pushes when
   there is anything to push.
5. On a git failure, decides between ``conflict`` and ``error``.
6. Reloads every open document and settles each one on a terminal status.
   Documents closed while git ran are skipped.  A document edited while git
   ran keeps its editor content and settles on ``out-of-date``.

The whole cycle runs under the workspace git lock, so concurrent requests
queue instead of overlapping.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Protocol

from ..core.async_utils import run_sync
from ..core.git import GitRepository
from ..errors import DocumentNotOpen, GitOperationError
from ..file_handler import content_hash
from .conflicts import has_conflict_markers, is_conflict_error
from .models import (
    DocumentOutcome,
    OpenDocument,
    SyncReport,
    SyncStatus,
    SyncTrigger,
    aggregate_status,
)
from .tracker import SyncStatusTracker

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_TEMPLATE = "Auto-sync at {timestamp}"


class DocumentHost(Protocol):
    """What the orchestrator needs from the editor session."""

    def open_documents(self) -> list[OpenDocument]: ...

    async def save(self, path: str) -> OpenDocument: ...

    async def reload(self, path: str) -> OpenDocument: ...


class _CycleResult:
    __slots__ = ("committed", "pulled", "pushed")

    def __init__(self) -> None:
        self.committed = False
        self.pulled = False
        self.pushed = False


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncOrchestrator:
    """Run workspace-wide sync cycles.

    Args:
        git: Git facade for the workspace.
        tracker: Status tracker shared with the session.
        host: The editor session holding the open documents.
        lock: Workspace git lock; every git call must hold it.
        auto_save_enabled: Save unsaved edits before syncing.
        commit_message_template: Default commit message; ``{timestamp}`` is
            replaced with the current UTC time.
    """

    def __init__(
        self,
        git: GitRepository,
        tracker: SyncStatusTracker,
        host: DocumentHost,
        lock: asyncio.Lock | None = None,
        auto_save_enabled: bool = True,
        commit_message_template: str = DEFAULT_COMMIT_TEMPLATE,
    ) -> None:
        self.git = git
        self.tracker = tracker
        self.host = host
        self.lock = lock or asyncio.Lock()
        self.auto_save_enabled = auto_save_enabled
        self.commit_message_template = commit_message_template

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def default_commit_message(self) -> str:
        return self.commit_message_template.format(timestamp=_now())

    async def sync_workspace(
        self,
        commit_message: str | None = None,
        trigger: SyncTrigger = SyncTrigger.MANUAL,
    ) -> SyncReport:
        """Run one full sync cycle.

        Args:
            commit_message: Message for the local commit; defaults to the
                configured template.
            trigger: ``manual`` for user requests, ``auto`` for the timer.

        Returns:
            ``SyncReport``; no open document is left ``syncing``.
        """
        async with self.lock:
            return await self._sync_locked(
                commit_message or self.default_commit_message(), trigger
            )

    async def _sync_locked(
        self, message: str, trigger: SyncTrigger
    ) -> SyncReport:
        started_at = _now()
        manual = trigger == SyncTrigger.MANUAL
        documents = self.host.open_documents()

        def report(result: SyncStatus, **fields) -> SyncReport:
            outcomes = fields.pop("outcomes", None)
            if outcomes is None:
                outcomes = [
                    DocumentOutcome(path=doc.path, status=doc.sync_status)
                    for doc in documents
                ]
            return SyncReport(
                result=result,
                trigger=trigger,
                started_at=started_at,
                completed_at=_now(),
                commit_message=message,
                documents=outcomes,
                **fields,
            )

        # Step 1: never layer a sync on top of an unresolved conflict
        blocked = [d.path for d in documents if d.sync_status == SyncStatus.CONFLICT]
        if blocked:
            logger.warning("Sync refused: unresolved conflict in %s", ", ".join(blocked))
            return report(
                SyncStatus.CONFLICT,
                aborted=True,
                error=f"Unresolved conflict in: {', '.join(blocked)}",
            )
        failed = [d.path for d in documents if d.sync_status == SyncStatus.ERROR]
        if failed and not manual:
            logger.warning("Auto-sync skipped: %s need attention", ", ".join(failed))
            return report(
                SyncStatus.ERROR,
                aborted=True,
                error=f"Documents in error state: {', '.join(failed)}",
            )

        # Step 2: unsaved edits
        dirty = [d for d in documents if d.has_unsaved_changes]
        if dirty and not self.auto_save_enabled:
            for doc in dirty:
                self.tracker.transition(doc.path, SyncStatus.CONFLICT, user_action=manual)
            logger.warning(
                "Sync refused: %d document(s) have unsaved changes and auto-save is off",
                len(dirty),
            )
            return report(
                SyncStatus.CONFLICT,
                aborted=True,
                error="Unsaved changes; save them or enable auto-save",
            )
        for doc in dirty:
            if not self._is_open(doc):
                continue
            try:
                await self.host.save(doc.path)
            except OSError as exc:
                logger.error("Could not save %s before sync: %s", doc.path, exc)
                return report(SyncStatus.ERROR, aborted=True, error=str(exc))

        # Step 3
        documents = self._still_open(documents)
        synced_hashes: dict[int, str] = {}
        for doc in documents:
            self.tracker.transition(doc.path, SyncStatus.SYNCING, user_action=manual)
            synced_hashes[id(doc)] = content_hash(doc.content)

        # Step 4
        cycle = _CycleResult()
        try:
            await run_sync(self._git_cycle, message, cycle)
        except GitOperationError as exc:
            return await self._handle_git_failure(
                exc, documents, synced_hashes, cycle, report
            )
        except Exception as exc:
            logger.exception("Sync failed unexpectedly")
            outcomes = self._settle_all(
                self._still_open(documents), SyncStatus.ERROR, str(exc)
            )
            return report(SyncStatus.ERROR, error=str(exc), outcomes=outcomes)

        # Step 6
        outcomes = []
        for doc in self._still_open(documents):
            outcome = await self._settle_after_reload(doc, synced_hashes[id(doc)])
            if outcome is not None:
                outcomes.append(outcome)
        result = aggregate_status([o.status for o in outcomes])
        logger.info(
            "Sync %s: committed=%s pulled=%s pushed=%s (%d document(s))",
            result.value,
            cycle.committed,
            cycle.pulled,
            cycle.pushed,
            len(outcomes),
        )
        return report(
            result,
            committed=cycle.committed,
            pulled=cycle.pulled,
            pushed=cycle.pushed,
            outcomes=outcomes,
        )

    # ------------------------------------------------------------------
    # Git cycle (runs in a worker thread)
    # ------------------------------------------------------------------

    def _git_cycle(self, message: str, cycle: _CycleResult) -> None:
        git = self.git
        if git.remote not in git.remotes():
            raise GitOperationError(
                ("remote",), f"Remote '{git.remote}' is not configured"
            )
        branch = git.current_branch()
        if branch != git.branch:
            raise GitOperationError(
                ("symbolic-ref", "HEAD"),
                f"Current branch is '{branch}', expected '{git.branch}'",
            )

        cycle.committed = git.commit_all(message)

        if git.remote_branch_exists():
            git.fetch()
            _, behind = git.ahead_behind()
            if behind:
                git.pull_rebase()
                cycle.pulled = True
            ahead, _ = git.ahead_behind()
            if cycle.committed or ahead > 0:
                git.push()
                cycle.pushed = True
        else:
            # first push creates the remote branch
            git.push()
            cycle.pushed = True

    # ------------------------------------------------------------------
    # Outcome handling
    # ------------------------------------------------------------------

    def _is_open(self, document: OpenDocument) -> bool:
        return (
            self.tracker.is_tracked(document.path)
            and self.tracker.get(document.path) is document
        )

    def _still_open(self, documents: list[OpenDocument]) -> list[OpenDocument]:
        """Drop documents closed since ``documents`` was captured.

        Renamed documents stay: the tracker re-keys the same object.
        """
        remaining = [doc for doc in documents if self._is_open(doc)]
        if len(remaining) != len(documents):
            logger.debug(
                "%d document(s) closed during sync", len(documents) - len(remaining)
            )
        return remaining

    @staticmethod
    def _edited_since(document: OpenDocument, synced_hash: str) -> bool:
        return (
            document.has_unsaved_changes
            and content_hash(document.content) != synced_hash
        )

    def _unmerged_paths(self) -> set[str]:
        try:
            return set(self.git.status().conflicted)
        except GitOperationError as exc:
            logger.debug("Could not read status after failure: %s", exc.message)
            return set()

    async def _handle_git_failure(
        self,
        exc: GitOperationError,
        documents: list[OpenDocument],
        synced_hashes: dict[int, str],
        cycle: _CycleResult,
        report,
    ) -> SyncReport:
        unmerged = await run_sync(self._unmerged_paths)
        if not unmerged and not is_conflict_error(exc.message):
            logger.error("Sync failed: %s", exc)
            outcomes = self._settle_all(
                self._still_open(documents), SyncStatus.ERROR, exc.message
            )
            return report(
                SyncStatus.ERROR,
                error=exc.message,
                committed=cycle.committed,
                outcomes=outcomes,
            )

        logger.error("Sync hit a merge conflict: %s", exc.message)
        outcomes: list[DocumentOutcome] = []
        for doc in self._still_open(documents):
            try:
                outcomes.append(
                    await self._settle_conflict(doc, synced_hashes[id(doc)])
                )
            except DocumentNotOpen:
                logger.debug("%s was closed while settling", doc.path)
        return report(
            SyncStatus.CONFLICT,
            error=exc.message,
            committed=cycle.committed,
            pulled=cycle.pulled,
            outcomes=outcomes,
        )

    async def _settle_conflict(
        self, document: OpenDocument, synced_hash: str
    ) -> DocumentOutcome:
        path = document.path
        reloaded = False
        error = None
        if self._edited_since(document, synced_hash):
            logger.info("%s was edited during sync; not reloading", path)
        else:
            try:
                await self.host.reload(path)
                reloaded = True
            except OSError as reload_exc:
                error = str(reload_exc)
                logger.warning("Could not reload %s: %s", path, reload_exc)
        self.tracker.transition(path, SyncStatus.CONFLICT)
        return DocumentOutcome(
            path=path, status=SyncStatus.CONFLICT, reloaded=reloaded, error=error
        )

    def _settle_all(
        self, documents: list[OpenDocument], status: SyncStatus, error: str
    ) -> list[DocumentOutcome]:
        outcomes = []
        for doc in documents:
            try:
                self.tracker.transition(doc.path, status)
            except DocumentNotOpen:
                continue
            outcomes.append(DocumentOutcome(path=doc.path, status=status, error=error))
        return outcomes

    async def _settle_after_reload(
        self, document: OpenDocument, synced_hash: str
    ) -> DocumentOutcome | None:
        """Settle one document after a successful cycle; None if it was closed."""
        path = document.path
        try:
            return await self._settle_one(document, synced_hash)
        except DocumentNotOpen:
            logger.debug("%s was closed while settling", path)
            return None

    async def _settle_one(
        self, document: OpenDocument, synced_hash: str
    ) -> DocumentOutcome:
        path = document.path
        if self._edited_since(document, synced_hash):
            # keep what the user typed; the next cycle picks it up
            logger.info("%s was edited during sync; keeping editor content", path)
            self.tracker.transition(path, SyncStatus.OUT_OF_DATE)
            return DocumentOutcome(path=path, status=SyncStatus.OUT_OF_DATE)

        try:
            document = await self.host.reload(path)
        except OSError as exc:
            logger.error("Could not reload %s after sync: %s", path, exc)
            self.tracker.transition(path, SyncStatus.ERROR)
            return DocumentOutcome(path=path, status=SyncStatus.ERROR, error=str(exc))

        if has_conflict_markers(document.content):
            logger.warning("Conflict markers found in %s after sync", path)
            self.tracker.transition(path, SyncStatus.CONFLICT)
            return DocumentOutcome(path=path, status=SyncStatus.CONFLICT, reloaded=True)

        self.tracker.transition(path, SyncStatus.SYNCED)
        self.tracker.snapshot(path, document.content)
        return DocumentOutcome(path=path, status=SyncStatus.SYNCED, reloaded=True)

"""Editor session: the set of open documents and their on-disk lifecycle.

The session owns each ``OpenDocument``'s content and dirty flag.  Status
changes go through the shared ``SyncStatusTracker``.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from .core.async_utils import run_sync
from .core.git import GitRepository
from .errors import DocumentNotOpen, GitOperationError
from .events import EventBus, PathDeleted, PathRenamed
from .file_handler import WorkspaceIO, content_hash
from .links.paths import is_within, normalize_document_path, relocate
from .sync.models import OpenDocument, SyncStatus
from .sync.scheduler import DebouncedSaver
from .sync.tracker import SyncStatusTracker

logger = logging.getLogger(__name__)


class ExternalChange(str, Enum):
    """How the session reacted to a watcher notification."""

    IGNORED = "ignored"
    NOT_OPEN = "not_open"
    UNCHANGED = "unchanged"
    RELOADED = "reloaded"
    NEEDS_CONFIRMATION = "needs_confirmation"


class EditorSession:
    """Open documents of one workspace.

    Args:
        io: Workspace file access.
        git: Git facade used for the initial status of a document.
        tracker: Status tracker shared with the sync orchestrator.
        git_lock: Workspace git lock.
        bus: Event bus; the session follows renames and deletions.
        auto_save_delay: Debounce delay for auto-save, or ``None`` to
            disable auto-save on edit.
    """

    def __init__(
        self,
        io: WorkspaceIO,
        git: GitRepository,
        tracker: SyncStatusTracker,
        git_lock: asyncio.Lock | None = None,
        bus: EventBus | None = None,
        auto_save_delay: float | None = None,
    ) -> None:
        self.io = io
        self.git = git
        self.tracker = tracker
        self.git_lock = git_lock or asyncio.Lock()
        self._documents: dict[str, OpenDocument] = {}
        self._saved_hashes: dict[str, str] = {}
        self._saver = (
            DebouncedSaver(auto_save_delay, self._auto_save)
            if auto_save_delay is not None
            else None
        )
        if bus is not None:
            bus.subscribe(PathRenamed, self.on_path_renamed)
            bus.subscribe(PathDeleted, self.on_path_deleted)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def open_documents(self) -> list[OpenDocument]:
        return list(self._documents.values())

    def is_open(self, path: str) -> bool:
        return normalize_document_path(path) in self._documents

    def get(self, path: str) -> OpenDocument:
        key = normalize_document_path(path)
        try:
            return self._documents[key]
        except KeyError:
            raise DocumentNotOpen(key) from None

    # ------------------------------------------------------------------
    # Open / close
    # ------------------------------------------------------------------

    async def initial_status(self, path: str) -> SyncStatus:
        """Ask git where ``path`` stands right now."""
        try:
            async with self.git_lock:
                state = await run_sync(self.git.file_sync_state, path)
        except GitOperationError as exc:
            logger.warning("Could not query git status of %s: %s", path, exc.message)
            return SyncStatus.ERROR
        if state.is_conflicted:
            return SyncStatus.CONFLICT
        if state.has_local_changes or state.has_unpushed_commits:
            return SyncStatus.OUT_OF_DATE
        return SyncStatus.SYNCED

    async def open(self, path: str) -> OpenDocument:
        """Open ``path`` (or return the already open document)."""
        key = normalize_document_path(path)
        if key in self._documents:
            return self._documents[key]

        content = await self.io.read(key)
        modified = await run_sync(self.io.last_modified, key)
        status = await self.initial_status(key)

        document = OpenDocument(path=key, content=content, last_modified=modified)
        self._documents[key] = document
        self._saved_hashes[key] = content_hash(content)
        self.tracker.track(document, status)
        logger.debug("Opened %s (%s)", key, status.value)
        return document

    def close(self, path: str) -> None:
        """Close ``path``, dropping unsaved edits and any pending auto-save."""
        key = normalize_document_path(path)
        if key not in self._documents:
            raise DocumentNotOpen(key)
        if self._saver is not None:
            self._saver.cancel(key)
        del self._documents[key]
        self._saved_hashes.pop(key, None)
        self.tracker.forget(key)
        logger.debug("Closed %s", key)

    async def shutdown(self) -> None:
        """Cancel pending auto-saves; documents stay open."""
        if self._saver is not None:
            await self._saver.cancel_all()

    # ------------------------------------------------------------------
    # Edit / save / reload
    # ------------------------------------------------------------------

    def edit(self, path: str, content: str) -> OpenDocument:
        """Replace the editor content of an open document."""
        document = self.get(path)
        document.content = content
        document.has_unsaved_changes = (
            content_hash(content) != self._saved_hashes.get(document.path)
        )
        self.tracker.note_edit(document.path, content)
        if self._saver is not None and document.has_unsaved_changes:
            self._saver.schedule(document.path)
        return document

    async def save(self, path: str) -> OpenDocument:
        """Write the editor content of ``path`` to disk."""
        document = self.get(path)
        async with self.io.locked(document.path):
            await self.io.write(document.path, document.content)
            document.last_modified = await run_sync(
                self.io.last_modified, document.path
            )
        document.has_unsaved_changes = False
        self._saved_hashes[document.path] = content_hash(document.content)
        if self._saver is not None:
            self._saver.cancel(document.path)
        logger.debug("Saved %s", document.path)
        return document

    async def _auto_save(self, path: str) -> None:
        """Debounced save; deferred while a sync cycle owns the document."""
        syncing = (
            self.tracker.is_tracked(path)
            and self.tracker.status(path) == SyncStatus.SYNCING
        )
        if syncing:
            self._saver.schedule(path)
            return
        await self.save(path)

    async def save_all(self) -> list[OpenDocument]:
        return [
            await self.save(doc.path)
            for doc in self.open_documents()
            if doc.has_unsaved_changes
        ]

    async def reload(self, path: str, content: str | None = None) -> OpenDocument:
        """Replace editor content with the on-disk content of ``path``.

        Args:
            path: Open document path.
            content: Content already read from disk, to skip a second read.
        """
        document = self.get(path)
        if content is None:
            content = await self.io.read(document.path)
        document.content = content
        document.has_unsaved_changes = False
        document.last_modified = await run_sync(self.io.last_modified, document.path)
        self._saved_hashes[document.path] = content_hash(content)
        if self._saver is not None:
            self._saver.cancel(document.path)
        return document

    async def reload_if_open(self, path: str, content: str | None = None) -> None:
        """Reload ``path`` if a tab shows it; used after programmatic rewrites."""
        if self.is_open(path):
            await self.reload(path, content)
            logger.debug("Reloaded %s after rewrite", path)

    async def handle_external_change(self, path: str) -> ExternalChange:
        """React to a watcher notification for ``path``.

        Muted paths and writes this process made are ignored.  Clean
        documents reload; documents with unsaved edits are left alone and
        the caller must ask the user.
        """
        key = normalize_document_path(path)
        if self.io.muter.should_ignore(key):
            return ExternalChange.IGNORED
        if key not in self._documents:
            return ExternalChange.NOT_OPEN

        try:
            content = await self.io.read(key)
        except FileNotFoundError:
            logger.info("%s disappeared from disk", key)
            return ExternalChange.NEEDS_CONFIRMATION
        if self.io.muter.should_ignore(key, content):
            return ExternalChange.IGNORED

        document = self._documents[key]
        if content_hash(content) == content_hash(document.content):
            return ExternalChange.UNCHANGED
        if document.has_unsaved_changes:
            logger.info("%s changed on disk while it has unsaved edits", key)
            return ExternalChange.NEEDS_CONFIRMATION

        await self.reload(key, content)
        self.tracker.note_edit(key, content)
        return ExternalChange.RELOADED

    # ------------------------------------------------------------------
    # Event reactions
    # ------------------------------------------------------------------

    def on_path_renamed(self, event: PathRenamed) -> None:
        for old_key in list(self._documents):
            if not is_within(old_key, event.old_path):
                continue
            new_key = relocate(old_key, event.old_path, event.new_path)
            document = self._documents.pop(old_key)
            self._documents[new_key] = document
            self._saved_hashes[new_key] = self._saved_hashes.pop(old_key, "")
            self.tracker.rename(old_key, new_key)
            document.path = new_key
            if self._saver is not None:
                self._saver.rename(old_key, new_key)
            logger.debug("Tab %s now shows %s", old_key, new_key)

    def on_path_deleted(self, event: PathDeleted) -> None:
        for key in list(self._documents):
            if is_within(key, event.path):
                self.close(key)

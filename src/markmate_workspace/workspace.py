"""The workspace facade: one object per workspace root exposing every
operation the editor layer (and the MCP tools) call.

It wires the shared pieces together: one ``WorkspaceIO`` with its watcher
muter, one git facade guarded by one lock, one status tracker, the editor
session, the propagator, the validators and the sync orchestrator.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .config import Config, validate_config
from .core.async_utils import run_sync
from .core.git import GitRepository
from .core.git_models import GitCommit
from .errors import GitOperationError
from .events import EventBus, PathDeleted, PathRenamed
from .file_handler import WatchMuter, WorkspaceIO
from .links.models import (
    ImageLinkValidationResult,
    MoveResult,
    PageLinkValidationResult,
    UnusedImage,
    ValidationReport,
)
from .links.paths import is_within, normalize_document_path
from .links.propagator import LinkPropagator
from .links.validators import LinkValidator
from .session import EditorSession
from .sync.conflicts import has_conflict_markers
from .sync.engine import SyncOrchestrator
from .sync.models import SyncReport, SyncStatus, SyncTrigger
from .sync.scheduler import AutoSyncScheduler
from .sync.tracker import SyncStatusTracker

logger = logging.getLogger(__name__)


class Workspace:
    """Everything that operates on one workspace root.

    Args:
        config: Validated runtime configuration.
        bus: Event bus shared with other reactors; a private one is created
            when omitted.
        git: Git facade override (tests pass a fake).
    """

    def __init__(
        self,
        config: Config,
        bus: EventBus | None = None,
        git: GitRepository | None = None,
    ) -> None:
        self.config = config
        self.root = Path(config.workspace_root)
        self.bus = bus or EventBus()
        self.muter = WatchMuter(timeout=config.mute_timeout)
        self.io = WorkspaceIO(self.root, self.muter)
        self.git = git or GitRepository(
            self.root,
            timeout=config.git_timeout,
            remote=config.remote,
            branch=config.branch,
        )
        self.git_lock = asyncio.Lock()
        self.tracker = SyncStatusTracker()
        self.session = EditorSession(
            self.io,
            self.git,
            self.tracker,
            git_lock=self.git_lock,
            bus=self.bus,
            auto_save_delay=config.auto_save_delay if config.auto_save_enabled else None,
        )
        self.propagator = LinkPropagator(
            self.io,
            batch_size=config.move_batch_size,
            on_rewrite=self.session.reload_if_open,
        )
        self.validator = LinkValidator(
            self.io, assets_dir=config.assets_dir, batch_size=config.batch_size
        )
        self.orchestrator = SyncOrchestrator(
            self.git,
            self.tracker,
            self.session,
            lock=self.git_lock,
            auto_save_enabled=config.auto_save_enabled,
            commit_message_template=config.commit_message_template,
        )
        self._auto_sync: AutoSyncScheduler | None = None

    @classmethod
    def from_root(cls, root: str | Path, **overrides) -> Workspace:
        """Build a workspace for ``root`` with default settings plus ``overrides``."""
        config = Config(workspace_root=str(root), **overrides)
        validate_config(config)
        return cls(config)

    async def _git(self, func, *args):
        async with self.git_lock:
            return await run_sync(func, *args)

    # ------------------------------------------------------------------
    # File tree
    # ------------------------------------------------------------------

    async def list_documents(self) -> list[str]:
        return await self.io.markdown_files()

    async def move_path(
        self, old_path: str, new_path: str, is_folder: bool | None = None
    ) -> MoveResult:
        """Move a file or folder on disk, then keep every link valid.

        Unsaved edits are saved first so the rewrite works on current text.
        """
        old_path = normalize_document_path(old_path)
        new_path = normalize_document_path(new_path)
        if is_within(new_path, old_path):
            raise ValueError(f"Cannot move {old_path} into itself ({new_path})")
        if is_folder is None:
            is_folder = (self.root / old_path).is_dir()

        await self.session.save_all()
        await run_sync(self.io.move, old_path, new_path)
        logger.info("Moved %s -> %s", old_path, new_path)
        self.bus.publish(
            PathRenamed(old_path=old_path, new_path=new_path, is_folder=is_folder)
        )
        return await self.propagate_move(old_path, new_path, is_folder)

    async def delete_path(self, path: str) -> None:
        path = normalize_document_path(path)
        if not await self.io.file_exists(path):
            raise FileNotFoundError(f"Not found: {path}")
        is_folder = (self.root / path).is_dir()
        await run_sync(self.io.delete, path)
        logger.info("Deleted %s", path)
        self.bus.publish(PathDeleted(path=path, is_folder=is_folder))

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    async def propagate_move(
        self, old_path: str, new_path: str, is_folder: bool = False
    ) -> MoveResult:
        """Rewrite links for a move that already happened on disk."""
        return await self.propagator.propagate_move(old_path, new_path, is_folder)

    async def validate_all_page_links(
        self,
    ) -> ValidationReport[PageLinkValidationResult]:
        return await self.validator.validate_all_page_links()

    async def validate_all_image_links(
        self,
    ) -> ValidationReport[ImageLinkValidationResult]:
        return await self.validator.validate_all_image_links()

    async def find_unused_images(self) -> ValidationReport[UnusedImage]:
        return await self.validator.find_unused_images()

    async def delete_unused_images(self, file_names: list[str]) -> int:
        return await self.validator.delete_unused_images(file_names)

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def get_sync_status(self, path: str) -> SyncStatus:
        """Status of an open document, or git's view of a closed one."""
        key = normalize_document_path(path)
        if self.tracker.is_tracked(key):
            return self.tracker.status(key)
        return await self.session.initial_status(key)

    async def sync_workspace(
        self,
        commit_message: str | None = None,
        trigger: SyncTrigger = SyncTrigger.MANUAL,
    ) -> SyncReport:
        return await self.orchestrator.sync_workspace(commit_message, trigger)

    async def _auto_sync_tick(self) -> None:
        await self.sync_workspace(trigger=SyncTrigger.AUTO)

    def start_auto_sync(self) -> AutoSyncScheduler:
        if self._auto_sync is None:
            self._auto_sync = AutoSyncScheduler(
                self.config.auto_sync_interval, self._auto_sync_tick
            )
        self._auto_sync.start()
        return self._auto_sync

    async def close(self) -> None:
        """Stop timers; pending auto-saves are cancelled, not flushed."""
        if self._auto_sync is not None:
            await self._auto_sync.stop()
        await self.session.shutdown()

    # ------------------------------------------------------------------
    # Version history
    # ------------------------------------------------------------------

    async def get_history(self, path: str, limit: int = 20) -> list[GitCommit]:
        return await self._git(
            self.git.log_for_file, normalize_document_path(path), limit
        )

    async def show_at_commit(self, path: str, commit_hash: str) -> str:
        return await self._git(
            self.git.show_file_at_commit, normalize_document_path(path), commit_hash
        )

    async def get_diff(
        self,
        path: str,
        from_commit: str | None = None,
        to_commit: str | None = None,
    ) -> str:
        """Diff between two commits, or of the working tree against HEAD."""
        key = normalize_document_path(path)
        if from_commit is None:
            return await self._git(self.git.diff_working_tree, key)
        return await self._git(
            self.git.diff_commits, key, from_commit, to_commit or "HEAD"
        )

    async def _after_user_action(self, key: str) -> None:
        if not self.tracker.is_tracked(key):
            return
        await self.session.reload(key)
        status = await self.session.initial_status(key)
        self.tracker.transition(key, status, user_action=True)
        if status == SyncStatus.SYNCED:
            self.tracker.snapshot(key, self.session.get(key).content)

    def _mark_error(self, key: str) -> None:
        if self.tracker.is_tracked(key):
            self.tracker.transition(key, SyncStatus.ERROR, user_action=True)

    async def restore_to_commit(self, path: str, commit_hash: str) -> str | None:
        """Restore ``path`` to ``commit_hash`` and commit it.

        A failure leaves the document in ``error`` and re-raises.
        """
        key = normalize_document_path(path)
        try:
            message = await self._git(
                self.git.restore_file_from_commit, key, commit_hash
            )
        except GitOperationError:
            self._mark_error(key)
            raise
        await self._after_user_action(key)
        return message

    async def discard_changes(self, path: str) -> None:
        key = normalize_document_path(path)
        try:
            await self._git(self.git.discard_working_changes, key)
        except GitOperationError:
            self._mark_error(key)
            raise
        await self._after_user_action(key)

    async def resolve_conflict(self, path: str, message: str | None = None) -> SyncStatus:
        """Finish a merge once ``path`` no longer contains conflict markers.

        Raises:
            ValueError: If markers remain.
        """
        key = normalize_document_path(path)
        if self.session.is_open(key) and self.session.get(key).has_unsaved_changes:
            await self.session.save(key)
        content = await self.io.read(key)
        if has_conflict_markers(content):
            raise ValueError(f"{key} still contains conflict markers")
        await self._git(
            self.git.complete_merge, message or f"Resolve conflict in {key}"
        )
        logger.info("Conflict in %s resolved", key)
        await self._after_user_action(key)
        return await self.get_sync_status(key)

    async def remotes(self) -> list[str]:
        return await self._git(self.git.remotes)

    async def configure_git(self, name: str, email: str, url: str) -> None:
        await self._git(self.git.configure_identity_and_remote, name, email, url)

    async def init_repository(self) -> bool:
        kwargs = {}
        if self.config.user_name:
            kwargs["user_name"] = self.config.user_name
        if self.config.user_email:
            kwargs["user_email"] = self.config.user_email
        async with self.git_lock:
            return await run_sync(self.git.init_repository, **kwargs)

    async def info(self) -> dict:
        """Summary of the workspace for diagnostics."""
        async with self.git_lock:
            branch = await run_sync(self.git.current_branch)
            remotes = await run_sync(self.git.remotes)
        documents = await self.list_documents()
        return {
            "root": str(self.root),
            "assets_dir": self.config.assets_dir,
            "documents": len(documents),
            "branch": branch,
            "remotes": remotes,
            "open_documents": {
                path: status.value for path, status in self.tracker.statuses().items()
            },
            "auto_sync": bool(self._auto_sync and self._auto_sync.running),
        }

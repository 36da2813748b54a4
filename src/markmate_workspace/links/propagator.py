"""Rewrite link text across the workspace after a file or folder move.

Two passes run over the markdown files, each in fixed-size concurrent
batches:

1. Files inside the moved content: every link is resolved against the
   file's *old* location and re-expressed from its new one.
2. Every other file: links that resolved into the moved path are
   re-expressed to reach the relocated target.

A file is only written when at least one link text actually changed.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from ..core.async_utils import process_in_batches
from ..errors import PathEscapesWorkspace
from ..file_handler import WorkspaceIO
from . import scanner
from .models import MoveResult
from .paths import (
    is_within,
    normalize_document_path,
    relative_from,
    relocate,
    resolve_relative,
)

logger = logging.getLogger(__name__)

DEFAULT_MOVE_BATCH_SIZE = 10

RewriteHook = Callable[[str, str], Awaitable[None]]


class LinkPropagator:
    """Keep links valid when documents move.

    Args:
        io: Workspace file access; writes go through its muted write path.
        batch_size: Files read/rewritten concurrently per batch.
        on_rewrite: Awaited with ``(path, new_content)`` after each write so
            open documents can reload.
    """

    def __init__(
        self,
        io: WorkspaceIO,
        batch_size: int = DEFAULT_MOVE_BATCH_SIZE,
        on_rewrite: RewriteHook | None = None,
    ) -> None:
        self.io = io
        self.batch_size = batch_size
        self.on_rewrite = on_rewrite

    @property
    def root(self) -> str:
        return str(self.io.root)

    def rewrite_content(
        self,
        content: str,
        current_path: str,
        source_path: str,
        old_path: str,
        new_path: str,
    ) -> tuple[str, int]:
        """Return ``content`` with links re-expressed for the move.

        Args:
            content: Document text.
            current_path: Where the document lives now.
            source_path: Where the document lived when its links were
                written (equals ``current_path`` for documents that did
                not move).
            old_path: Moved file or folder, before the move.
            new_path: Moved file or folder, after the move.

        Returns:
            ``(new_content, links_changed)``.
        """
        moved_self = current_path != source_path
        replacements: list[tuple[int, int, str]] = []

        for ref in scanner.scan(content, current_path):
            try:
                target = resolve_relative(self.root, source_path, ref.raw_text)
            except PathEscapesWorkspace:
                continue

            if is_within(target, old_path):
                target = relocate(target, old_path, new_path)
            elif not moved_self:
                continue

            try:
                if resolve_relative(self.root, current_path, ref.raw_text) == target:
                    continue
            except PathEscapesWorkspace:
                pass

            new_text = relative_from(self.root, current_path, target)
            if new_text != ref.raw_text:
                replacements.append((ref.start, ref.end, new_text))

        if not replacements:
            return content, 0
        return scanner.replace_spans(content, replacements), len(replacements)

    async def _rewrite_file(
        self, current_path: str, source_path: str, old_path: str, new_path: str
    ) -> int:
        async with self.io.locked(current_path):
            content = await self.io.read(current_path)
            updated, changed = self.rewrite_content(
                content, current_path, source_path, old_path, new_path
            )
            if not changed:
                return 0
            await self.io.write(current_path, updated)

        logger.debug("Rewrote %d link(s) in %s", changed, current_path)
        if self.on_rewrite is not None:
            await self.on_rewrite(current_path, updated)
        return changed

    async def propagate_move(
        self, old_path: str, new_path: str, is_folder: bool = False
    ) -> MoveResult:
        """Rewrite links after ``old_path`` was moved to ``new_path`` on disk.

        The relocation itself must already have happened.  Per-file failures
        are logged and counted; they never abort the remaining files.

        Raises:
            ValueError: If either path is not a valid root-relative path.
        """
        old_path = normalize_document_path(old_path)
        new_path = normalize_document_path(new_path)
        files = await self.io.markdown_files()

        moved = [path for path in files if is_within(path, new_path)]
        others = [path for path in files if not is_within(path, new_path)]

        async def inside(path: str) -> int:
            source = relocate(path, new_path, old_path)
            return await self._rewrite_file(path, source, old_path, new_path)

        async def elsewhere(path: str) -> int:
            return await self._rewrite_file(path, path, old_path, new_path)

        first = await process_in_batches(
            moved, inside, self.batch_size, label="move: rewrite moved content"
        )
        second = await process_in_batches(
            others, elsewhere, self.batch_size, label="move: rewrite references"
        )

        counts = first.values() + second.values()
        failed = [path for path, _ in first.failures + second.failures]
        result = MoveResult(
            old_path=old_path,
            new_path=new_path,
            is_folder=is_folder,
            files_updated=sum(1 for count in counts if count),
            links_updated=sum(counts),
            files_failed=len(failed),
            failed_paths=failed,
        )
        logger.info(
            "Propagated move %s -> %s: %d file(s), %d link(s) updated, %d failed",
            old_path,
            new_path,
            result.files_updated,
            result.links_updated,
            result.files_failed,
        )
        return result

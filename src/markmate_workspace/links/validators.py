"""Workspace-wide link checks: broken page links, broken images, unused images."""

from __future__ import annotations

import logging
import posixpath

from ..core.async_utils import (
    DEFAULT_BATCH_SIZE,
    BatchOutcome,
    process_in_batches,
    run_sync,
)
from ..file_handler import WorkspaceIO
from . import scanner
from .models import (
    UNRESOLVED,
    BrokenImageLink,
    BrokenPageLink,
    FileFailure,
    ImageLinkValidationResult,
    PageLinkValidationResult,
    ResolvedLink,
    UnusedImage,
    ValidationReport,
)
from .paths import to_posix

logger = logging.getLogger(__name__)


def _failures(outcome: BatchOutcome) -> list[FileFailure]:
    return [
        FileFailure(file_path=path, error=str(exc)) for path, exc in outcome.failures
    ]


def asset_file_name(src: str, assets_dir: str = ".images") -> str | None:
    """Reduce an image reference to a bare file name inside ``assets_dir``.

    The last occurrence of ``<assets_dir>/`` wins, so any number of leading
    ``../`` segments is accepted.  References into sub-folders of the assets
    directory, or outside it, return ``None``.

    >>> asset_file_name("../../.images/x.png")
    'x.png'
    """
    text = to_posix(src.strip())
    marker = assets_dir.strip("/") + "/"
    index = text.rfind(marker)
    if index == -1:
        return None
    if index > 0 and text[index - 1] != "/":
        return None
    name = text[index + len(marker) :]
    if not name or "/" in name:
        return None
    return name


class LinkValidator:
    """Batch scanners reporting link health for a whole workspace.

    Args:
        io: Workspace file access.
        assets_dir: Root-relative folder that holds image assets.
        batch_size: Files read concurrently per batch.
    """

    def __init__(
        self,
        io: WorkspaceIO,
        assets_dir: str = ".images",
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.io = io
        self.assets_dir = assets_dir
        self.batch_size = batch_size

    def _missing(self, references: list) -> list[ResolvedLink]:
        """Return the resolved links whose target does not exist on disk."""
        missing: list[ResolvedLink] = []
        for link in scanner.resolve(references, str(self.io.root)):
            target = link.target_path
            if target == "." or (target is not None and self.io.exists(target)):
                continue
            missing.append(link)
        return missing

    # ------------------------------------------------------------------
    # Page links
    # ------------------------------------------------------------------

    def check_page_links(self, file_path: str, content: str) -> list[BrokenPageLink]:
        return [
            BrokenPageLink(
                file_path=file_path,
                link_text=link.reference.raw_text,
                resolved_path=link.target_path or UNRESOLVED,
                line_number=link.reference.line_number,
            )
            for link in self._missing(scanner.page_links(content, file_path))
        ]

    async def validate_all_page_links(
        self,
    ) -> ValidationReport[PageLinkValidationResult]:
        """Report every ``[[...]]`` link whose target file is missing.

        Only files with at least one broken link appear in ``results``.
        """
        files = await self.io.markdown_files()

        async def check(path: str) -> list[BrokenPageLink]:
            content = await self.io.read(path)
            return await run_sync(self.check_page_links, path, content)

        outcome = await process_in_batches(
            files, check, self.batch_size, label="validate page links"
        )
        results = [
            PageLinkValidationResult(file_path=path, broken_links=broken)
            for path, broken in outcome.results
            if broken
        ]
        logger.info(
            "Page link check: %d file(s) scanned, %d with broken links, %d failed",
            len(files),
            len(results),
            outcome.failed_count,
        )
        return ValidationReport[PageLinkValidationResult](
            results=results, failures=_failures(outcome), files_scanned=len(files)
        )

    # ------------------------------------------------------------------
    # Image links
    # ------------------------------------------------------------------

    def check_image_links(self, file_path: str, content: str) -> list[BrokenImageLink]:
        return [
            BrokenImageLink(
                file_path=file_path,
                image_src=link.reference.raw_text,
                resolved_path=link.target_path or UNRESOLVED,
                line_number=link.reference.line_number,
                link_type=link.reference.syntax,
            )
            for link in self._missing(scanner.image_links(content, file_path))
        ]

    async def validate_all_image_links(
        self,
    ) -> ValidationReport[ImageLinkValidationResult]:
        """Report every local image reference whose file is missing."""
        files = await self.io.markdown_files()

        async def check(path: str) -> list[BrokenImageLink]:
            content = await self.io.read(path)
            return await run_sync(self.check_image_links, path, content)

        outcome = await process_in_batches(
            files, check, self.batch_size, label="validate image links"
        )
        results = [
            ImageLinkValidationResult(file_path=path, broken_images=broken)
            for path, broken in outcome.results
            if broken
        ]
        logger.info(
            "Image link check: %d file(s) scanned, %d with broken images, %d failed",
            len(files),
            len(results),
            outcome.failed_count,
        )
        return ValidationReport[ImageLinkValidationResult](
            results=results, failures=_failures(outcome), files_scanned=len(files)
        )

    # ------------------------------------------------------------------
    # Unused images
    # ------------------------------------------------------------------

    async def find_unused_images(self) -> ValidationReport[UnusedImage]:
        """List assets whose file name no document references.

        This is a set difference on file names, not a per-link resolution.
        """
        images = await self.io.images(self.assets_dir)
        if not images:
            return ValidationReport[UnusedImage](files_scanned=0)

        files = await self.io.markdown_files()

        async def referenced(path: str) -> set[str]:
            content = await self.io.read(path)
            names: set[str] = set()
            for ref in scanner.image_links(content, path):
                name = asset_file_name(ref.raw_text, self.assets_dir)
                if name:
                    names.add(name)
            return names

        outcome = await process_in_batches(
            files, referenced, self.batch_size, label="find unused images"
        )
        used: set[str] = set().union(*outcome.values())
        unused = [
            UnusedImage(file_name=name, file_path=rel_path, last_modified=mtime)
            for name, rel_path, mtime in images
            if name not in used
        ]
        logger.info(
            "Unused image scan: %d image(s), %d unused, %d file(s) failed",
            len(images),
            len(unused),
            outcome.failed_count,
        )
        return ValidationReport[UnusedImage](
            results=unused, failures=_failures(outcome), files_scanned=len(files)
        )

    async def delete_unused_images(self, file_names: list[str]) -> int:
        """Delete ``<assets_dir>/<name>`` for each name; return how many went.

        Names containing a path separator are rejected and skipped.
        """

        async def delete(name: str) -> None:
            if "/" in to_posix(name) or name in ("", ".", ".."):
                raise ValueError(f"Not a bare image file name: {name}")
            await run_sync(self.io.delete, posixpath.join(self.assets_dir, name))

        outcome = await process_in_batches(
            file_names, delete, self.batch_size, label="delete unused image"
        )
        logger.info(
            "Deleted %d of %d unused image(s)", len(outcome.results), outcome.total
        )
        return len(outcome.results)

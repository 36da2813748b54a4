"""Pydantic models for link scanning, validation and move propagation.

- ``LinkKind`` / ``LinkSyntax``: what a reference points at and how it is written.
- ``LinkReference``: one occurrence of a link in a document.
- ``ResolvedLink``: a reference plus its canonical target.
- ``BrokenPageLink`` / ``PageLinkValidationResult``: page link validation output.
- ``BrokenImageLink`` / ``ImageLinkValidationResult``: image link validation output.
- ``UnusedImage``: an asset file nothing references.
- ``MoveResult``: aggregate counts of a move propagation.

All models are frozen (immutable).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel

UNRESOLVED = "Unable to resolve"


class LinkKind(str, Enum):
    """Target category of a link."""

    PAGE = "page"
    IMAGE = "image"


class LinkSyntax(str, Enum):
    """Source syntax a link was written in."""

    WIKI = "wiki"
    MARKDOWN = "markdown"
    HTML = "html"


class LinkReference(BaseModel):
    """A single link occurrence inside a document.

    Attributes:
        source_document: Root-relative path of the containing document.
        raw_text: Link text exactly as written (trimmed), relative to the
            document's directory.
        kind: ``page`` for ``[[...]]``, ``image`` for image syntax.
        syntax: How the link was written.
        byte_offset: UTF-8 byte offset of the start of the whole link token.
        line_number: 1-based line of ``byte_offset``.
        start: Character index where ``raw_text`` begins in the content.
        end: Character index one past the end of ``raw_text``.
    """

    source_document: str
    raw_text: str
    kind: LinkKind
    syntax: LinkSyntax
    byte_offset: int
    line_number: int
    start: int
    end: int

    model_config = {"frozen": True}


class ResolvedLink(BaseModel):
    """A ``LinkReference`` and the canonical path it resolves to.

    ``target_path`` is ``None`` when resolution failed.
    """

    reference: LinkReference
    target_path: str | None = None

    model_config = {"frozen": True}

    @property
    def resolved(self) -> bool:
        return self.target_path is not None


class BrokenPageLink(BaseModel):
    """A ``[[...]]`` link whose target does not exist."""

    file_path: str
    link_text: str
    resolved_path: str
    line_number: int

    model_config = {"frozen": True}


class PageLinkValidationResult(BaseModel):
    """All broken page links of one document."""

    file_path: str
    broken_links: list[BrokenPageLink]

    model_config = {"frozen": True}


class BrokenImageLink(BaseModel):
    """An image reference whose target does not exist."""

    file_path: str
    image_src: str
    resolved_path: str
    line_number: int
    link_type: LinkSyntax

    model_config = {"frozen": True}


class ImageLinkValidationResult(BaseModel):
    """All broken image links of one document."""

    file_path: str
    broken_images: list[BrokenImageLink]

    model_config = {"frozen": True}


class UnusedImage(BaseModel):
    """An image in the assets directory that no document references."""

    file_name: str
    file_path: str
    last_modified: datetime | None = None

    model_config = {"frozen": True}


class FileFailure(BaseModel):
    """A file that could not be processed during a batch scan."""

    file_path: str
    error: str

    model_config = {"frozen": True}


ResultT = TypeVar("ResultT")


class ValidationReport(BaseModel, Generic[ResultT]):
    """Results of a workspace scan.

    ``results`` is always a list (possibly empty) and lists only files with
    findings; ``failures`` counts files that could not be scanned.
    """

    results: list[ResultT] = []
    failures: list[FileFailure] = []
    files_scanned: int = 0

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return not self.results and not self.failures


class MoveResult(BaseModel):
    """Aggregate outcome of a move propagation.

    Attributes:
        old_path: Root-relative path before the move.
        new_path: Root-relative path after the move.
        is_folder: Whether a folder was moved.
        files_updated: Files whose content was rewritten.
        links_updated: Total link occurrences rewritten.
        files_failed: Files that could not be processed.
        failed_paths: Paths of those files.
    """

    old_path: str
    new_path: str
    is_folder: bool = False
    files_updated: int = 0
    links_updated: int = 0
    files_failed: int = 0
    failed_paths: list[str] = []

    model_config = {"frozen": True}

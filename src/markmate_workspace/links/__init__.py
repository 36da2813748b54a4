"""Link resolution, scanning, move propagation and validation."""

from .models import (
    UNRESOLVED,
    BrokenImageLink,
    BrokenPageLink,
    ImageLinkValidationResult,
    LinkKind,
    LinkReference,
    LinkSyntax,
    MoveResult,
    PageLinkValidationResult,
    ResolvedLink,
    UnusedImage,
    ValidationReport,
)
from .paths import relative_from, resolve_relative
from .scanner import scan

__all__ = [
    "UNRESOLVED",
    "BrokenImageLink",
    "BrokenPageLink",
    "ImageLinkValidationResult",
    "LinkKind",
    "LinkReference",
    "LinkSyntax",
    "MoveResult",
    "PageLinkValidationResult",
    "ResolvedLink",
    "UnusedImage",
    "ValidationReport",
    "relative_from",
    "resolve_relative",
    "scan",
]

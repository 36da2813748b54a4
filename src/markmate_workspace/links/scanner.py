"""Extract wiki-links and image references from markdown text."""

from __future__ import annotations

import re

from ..errors import PathEscapesWorkspace
from .models import LinkKind, LinkReference, LinkSyntax, ResolvedLink
from .paths import resolve_relative

PAGE_LINK_RE = re.compile(r"\[\[([^\]]+)\]\]")
MARKDOWN_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(([^)]+)\)")
HTML_IMAGE_RE = re.compile(
    r"<img[^>]+src\s*=\s*[\"']([^\"']+)[\"'][^>]*>", re.IGNORECASE
)

_EXTERNAL_PREFIXES = ("http://", "https://", "data:")


def is_external_source(src: str) -> bool:
    """Return True for image sources that are never resolved locally."""
    return src.strip().lower().startswith(_EXTERNAL_PREFIXES)


def line_number(content: str, byte_offset: int) -> int:
    """Return the 1-based line number for a UTF-8 byte offset in ``content``."""
    return content.encode("utf-8")[:byte_offset].count(b"\n") + 1


def _trimmed_span(match: re.Match, group: int) -> tuple[str, int, int]:
    raw = match.group(group)
    stripped = raw.strip()
    start = match.start(group) + (len(raw) - len(raw.lstrip()))
    return stripped, start, start + len(stripped)


def scan(content: str, source_document: str = "") -> list[LinkReference]:
    """Find every page link and local image reference in ``content``.

    Page links are ``[[...]]`` tokens.  Image references are markdown
    ``![alt](src)`` and HTML ``<img src="...">``; sources starting with
    ``http://``, ``https://`` or ``data:`` are skipped.

    Args:
        content: Raw document text.
        source_document: Root-relative path stored on each reference.

    Returns:
        References in document order.
    """
    found: list[tuple[int, str, int, int, LinkKind, LinkSyntax]] = []

    for match in PAGE_LINK_RE.finditer(content):
        text, start, end = _trimmed_span(match, 1)
        if text:
            found.append(
                (match.start(), text, start, end, LinkKind.PAGE, LinkSyntax.WIKI)
            )

    for regex, syntax in (
        (MARKDOWN_IMAGE_RE, LinkSyntax.MARKDOWN),
        (HTML_IMAGE_RE, LinkSyntax.HTML),
    ):
        for match in regex.finditer(content):
            text, start, end = _trimmed_span(match, 1)
            if not text or is_external_source(text):
                continue
            found.append(
                (match.start(), text, start, end, LinkKind.IMAGE, syntax)
            )

    found.sort(key=lambda entry: entry[0])

    references: list[LinkReference] = []
    for offset, text, start, end, kind, syntax in found:
        byte_offset = len(content[:offset].encode("utf-8"))
        references.append(
            LinkReference(
                source_document=source_document,
                raw_text=text,
                kind=kind,
                syntax=syntax,
                byte_offset=byte_offset,
                line_number=line_number(content, byte_offset),
                start=start,
                end=end,
            )
        )
    return references


def page_links(content: str, source_document: str = "") -> list[LinkReference]:
    """Return only the ``[[...]]`` references of ``content``."""
    return [
        ref
        for ref in scan(content, source_document)
        if ref.kind == LinkKind.PAGE
    ]


def image_links(content: str, source_document: str = "") -> list[LinkReference]:
    """Return only the image references of ``content``."""
    return [
        ref
        for ref in scan(content, source_document)
        if ref.kind == LinkKind.IMAGE
    ]


def replace_spans(content: str, replacements: list[tuple[int, int, str]]) -> str:
    """Apply ``(start, end, text)`` replacements to ``content``.

    Spans must not overlap; they are applied right to left so earlier
    indices stay valid.
    """
    result = content
    for start, end, text in sorted(replacements, key=lambda r: r[0], reverse=True):
        result = result[:start] + text + result[end:]
    return result


def resolve(
    references: list[LinkReference], workspace_root: str
) -> list[ResolvedLink]:
    """Pair each reference with its canonical target.

    A reference whose resolution leaves the workspace gets ``target_path=None``.
    """
    resolved: list[ResolvedLink] = []
    for ref in references:
        try:
            target = resolve_relative(workspace_root, ref.source_document, ref.raw_text)
        except PathEscapesWorkspace:
            target = None
        resolved.append(ResolvedLink(reference=ref, target_path=target))
    return resolved

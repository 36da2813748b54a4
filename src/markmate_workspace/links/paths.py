"""Conversion between link text and workspace-root-relative paths.

All functions here are pure: they never touch the filesystem and always
produce forward-slash paths, whatever the host separator convention.
"""

from __future__ import annotations

import posixpath
from pathlib import PurePosixPath, PureWindowsPath

from ..errors import PathEscapesWorkspace


def to_posix(path: str) -> str:
    """Replace backslash separators with forward slashes."""
    return path.replace("\\", "/")


def normalize_document_path(path: str) -> str:
    """Normalize a root-relative path: forward slashes, no ``.`` segments,
    no leading ``./`` or trailing ``/``.

    Raises:
        ValueError: If the path is empty or absolute, or climbs above the root.
    """
    text = to_posix(path).strip()
    if not text:
        raise ValueError("Document path cannot be empty")
    if text.startswith("/") or PureWindowsPath(text).drive:
        raise ValueError(f"Document path must be workspace-relative: {path}")
    normalized = posixpath.normpath(text)
    if normalized == ".." or normalized.startswith("../"):
        raise ValueError(f"Document path escapes the workspace: {path}")
    return normalized


def _root_posix(workspace_root: str) -> PurePosixPath:
    root = to_posix(str(workspace_root))
    drive = PureWindowsPath(str(workspace_root)).drive
    if drive:
        # C:/notes -> /C:/notes so it compares as an absolute posix path
        root = "/" + root
    return PurePosixPath(posixpath.normpath(root))


def _absolute_to_relative(
    workspace_root: str, absolute: str, current: str, raw: str
) -> str:
    root = _root_posix(workspace_root)
    text = to_posix(absolute)
    if PureWindowsPath(absolute).drive:
        text = "/" + text
    candidate = PurePosixPath(posixpath.normpath(text))
    try:
        relative = candidate.relative_to(root)
    except ValueError:
        raise PathEscapesWorkspace(current, raw) from None
    return relative.as_posix()


def resolve_relative(
    workspace_root: str, current_document: str, relative_text: str
) -> str:
    """Resolve link text found in ``current_document`` to a root-relative path.

    ``relative_text`` is joined onto the directory of ``current_document``
    and normalized.  Absolute link text is accepted only when it points
    inside ``workspace_root``.

    Args:
        workspace_root: Absolute workspace root (any separator style).
        current_document: Root-relative path of the document holding the link.
        relative_text: The raw link text.

    Returns:
        Canonical root-relative path using ``/``.  The workspace root itself
        resolves to ``"."``.

    Raises:
        PathEscapesWorkspace: If the result would lie outside the root.
    """
    raw = to_posix(relative_text.strip())
    if raw.startswith("/") or PureWindowsPath(relative_text.strip()).drive:
        return _absolute_to_relative(
            workspace_root, relative_text.strip(), current_document, relative_text
        )

    base = posixpath.dirname(to_posix(current_document))
    joined = posixpath.normpath(posixpath.join(base, raw)) if raw else base
    if not joined:
        return "."
    if joined == ".." or joined.startswith("../"):
        raise PathEscapesWorkspace(current_document, relative_text)
    return joined


def relative_from(
    workspace_root: str, current_document: str, target_document: str
) -> str:
    """Compute the shortest link text from ``current_document`` to ``target_document``.

    Inverse of :func:`resolve_relative`:
    ``resolve_relative(root, a, relative_from(root, a, b)) == b`` for any
    normalized root-relative ``a`` and ``b``.

    Returns:
        Relative path using ``/`` and ``..`` segments, or ``"."`` when the
        target is the document's own directory.
    """
    start = [
        part
        for part in posixpath.dirname(to_posix(current_document)).split("/")
        if part and part != "."
    ]
    target = [
        part
        for part in posixpath.normpath(to_posix(target_document)).split("/")
        if part and part != "."
    ]

    common = 0
    for left, right in zip(start, target):
        if left != right:
            break
        common += 1

    parts = [".."] * (len(start) - common) + target[common:]
    return "/".join(parts) if parts else "."


def is_within(path: str, folder: str) -> bool:
    """Return True if ``path`` equals ``folder`` or lies beneath it."""
    return path == folder or path.startswith(folder.rstrip("/") + "/")


def relocate(path: str, old_prefix: str, new_prefix: str) -> str:
    """Map ``path`` from under ``old_prefix`` to the same place under ``new_prefix``.

    ``path`` must satisfy ``is_within(path, old_prefix)``.
    """
    if path == old_prefix:
        return new_prefix
    return new_prefix.rstrip("/") + "/" + path[len(old_prefix.rstrip("/")) + 1 :]

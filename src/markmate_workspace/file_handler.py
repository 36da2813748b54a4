"""Workspace file handler: encoding-aware read/write, tree enumeration, watcher muting.

This is the content read/write primitive every core component goes
through.  Paths passed in and out are workspace-root-relative and use
forward slashes; the sync functions do the I/O and the async wrappers
compose them via run_sync().
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import shutil
import threading
import time
import weakref
from collections.abc import Callable, Iterator
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timezone
from pathlib import Path

from charset_normalizer import from_bytes

from .core.async_utils import run_sync
from .links.paths import normalize_document_path

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = (".md",)
IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".bmp")


# =============================================================================
# Encoding-aware read/write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")
    encoding = result.encoding
    if encoding == "ascii":
        encoding = "utf-8"
    return (str(result), encoding)


def write_file(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Write content to a file, creating parent directories as needed.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)


def content_hash(content: str) -> str:
    """SHA-256 hex digest of ``content`` with normalised line endings."""
    text = content.lstrip("\ufeff").replace("\r\n", "\n")
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


# =============================================================================
# Watcher feedback suppression
# =============================================================================


class WatchMuter:
    """Per-path mute flags for file watcher notifications.

    A path is muted for the duration of a programmatic write and unmuted
    when the write completes or ``timeout`` seconds elapse, whichever comes
    first.  The hash of the last content this process wrote to each path is
    kept as well, so a late watcher event for our own write can still be
    recognised after the mute window closed.

    Args:
        timeout: Maximum mute duration in seconds.
        clock: Monotonic clock, replaceable in tests.
    """

    def __init__(
        self,
        timeout: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout = timeout
        self._clock = clock
        self._muted: dict[str, float] = {}
        self._last_written: dict[str, str] = {}
        self._lock = threading.Lock()

    def mute(self, path: str) -> None:
        with self._lock:
            self._muted[path] = self._clock() + self.timeout

    def unmute(self, path: str) -> None:
        with self._lock:
            self._muted.pop(path, None)

    def is_muted(self, path: str) -> bool:
        with self._lock:
            deadline = self._muted.get(path)
            if deadline is None:
                return False
            if self._clock() >= deadline:
                del self._muted[path]
                return False
            return True

    @contextmanager
    def muted(self, path: str) -> Iterator[None]:
        """Mute ``path`` while the block runs."""
        self.mute(path)
        try:
            yield
        finally:
            self.unmute(path)

    def record_write(self, path: str, content: str) -> None:
        with self._lock:
            self._last_written[path] = content_hash(content)

    def is_own_write(self, path: str, content: str) -> bool:
        """Return True if ``content`` is what this process last wrote to ``path``."""
        with self._lock:
            return self._last_written.get(path) == content_hash(content)

    def forget(self, path: str) -> None:
        with self._lock:
            self._muted.pop(path, None)
            self._last_written.pop(path, None)

    def should_ignore(self, path: str, content: str | None = None) -> bool:
        """Decide whether a watcher event for ``path`` came from our own write."""
        if self.is_muted(path):
            return True
        return content is not None and self.is_own_write(path, content)


# =============================================================================
# Workspace I/O
# =============================================================================


class WorkspaceIO:
    """Root-relative file access for one workspace.

    Args:
        root: Absolute workspace root.
        muter: Watcher mute registry shared with the editor session.
    """

    def __init__(self, root: Path, muter: WatchMuter | None = None) -> None:
        self.root = Path(root).resolve()
        self.muter = muter or WatchMuter()
        # entries vanish once no holder or waiter references the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # -- path helpers --------------------------------------------------

    def absolute(self, rel_path: str) -> Path:
        """Return the absolute path for a root-relative ``rel_path``.

        Raises:
            ValueError: If ``rel_path`` is absolute or escapes the root.
        """
        return self.root / normalize_document_path(rel_path)

    def relative(self, path: Path) -> str:
        return path.resolve().relative_to(self.root).as_posix()

    # -- sync primitives -----------------------------------------------

    def read_text(self, rel_path: str) -> str:
        content, _ = read_file_with_encoding(self.absolute(rel_path))
        return content

    def write_text(self, rel_path: str, content: str) -> int:
        """Write ``rel_path`` with watcher notifications muted for it."""
        target = self.absolute(rel_path)
        key = normalize_document_path(rel_path)
        with self.muter.muted(key):
            written = write_file(target, content)
            self.muter.record_write(key, content)
        return written

    def exists(self, rel_path: str) -> bool:
        try:
            return self.absolute(rel_path).exists()
        except ValueError:
            return False

    def last_modified(self, rel_path: str) -> datetime:
        mtime = self.absolute(rel_path).stat().st_mtime
        return datetime.fromtimestamp(mtime, tz=timezone.utc)

    def list_markdown_files(self) -> list[str]:
        """Return every markdown file under the root, skipping hidden entries."""
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for name in sorted(filenames):
                if name.startswith(".") or not name.endswith(MARKDOWN_SUFFIXES):
                    continue
                found.append(self.relative(Path(dirpath) / name))
        return found

    def list_images(self, assets_dir: str) -> list[tuple[str, str, datetime]]:
        """Return ``(file_name, rel_path, last_modified)`` for images in ``assets_dir``.

        Only direct children are listed.  A missing directory yields an
        empty list.
        """
        folder = self.absolute(assets_dir)
        if not folder.is_dir():
            return []
        images: list[tuple[str, str, datetime]] = []
        for entry in sorted(folder.iterdir()):
            if not entry.is_file() or entry.suffix.lower() not in IMAGE_SUFFIXES:
                continue
            rel_path = self.relative(entry)
            images.append((entry.name, rel_path, self.last_modified(rel_path)))
        return images

    def move(self, old_path: str, new_path: str) -> None:
        source = self.absolute(old_path)
        target = self.absolute(new_path)
        if not source.exists():
            raise FileNotFoundError(f"Source not found: {old_path}")
        if target.exists():
            raise FileExistsError(f"Target already exists: {new_path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        with self.muter.muted(normalize_document_path(old_path)), self.muter.muted(
            normalize_document_path(new_path)
        ):
            shutil.move(str(source), str(target))

    def delete(self, rel_path: str) -> None:
        target = self.absolute(rel_path)
        with self.muter.muted(normalize_document_path(rel_path)):
            if target.is_dir():
                shutil.rmtree(target)
            else:
                target.unlink()

    # -- async wrappers ------------------------------------------------

    def lock_for(self, rel_path: str) -> asyncio.Lock:
        """Return the lock serialising read-modify-write cycles on ``rel_path``."""
        key = normalize_document_path(rel_path)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def locked(self, rel_path: str):
        async with self.lock_for(rel_path):
            yield

    async def read(self, rel_path: str) -> str:
        return await run_sync(self.read_text, rel_path)

    async def write(self, rel_path: str, content: str) -> int:
        return await run_sync(self.write_text, rel_path, content)

    async def file_exists(self, rel_path: str) -> bool:
        return await run_sync(self.exists, rel_path)

    async def markdown_files(self) -> list[str]:
        return await run_sync(self.list_markdown_files)

    async def images(self, assets_dir: str) -> list[tuple[str, str, datetime]]:
        return await run_sync(self.list_images, assets_dir)

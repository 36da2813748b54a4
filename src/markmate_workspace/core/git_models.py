"""Pydantic models returned by the git facade.

- ``GitFileStatus``: one entry of ``git status --porcelain``.
- ``GitStatus``: parsed working tree status with branch tracking info.
- ``GitCommit``: one history entry for a file.
- ``FileSyncState``: git's view of a single document.

All models are frozen (immutable).
"""

from __future__ import annotations

from pydantic import BaseModel

# XY codes git uses for unmerged paths
UNMERGED_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})


class GitFileStatus(BaseModel):
    """Status of one path.

    Attributes:
        path: Root-relative path (the new path for renames).
        index: Staging area status letter (``X``).
        worktree: Working tree status letter (``Y``).
        orig_path: Source path of a rename or copy.
    """

    path: str
    index: str
    worktree: str
    orig_path: str | None = None

    model_config = {"frozen": True}

    @property
    def code(self) -> str:
        return self.index + self.worktree

    @property
    def is_conflicted(self) -> bool:
        return self.code in UNMERGED_CODES

    @property
    def is_untracked(self) -> bool:
        return self.code == "??"


class GitStatus(BaseModel):
    """Parsed ``git status --porcelain=v1 --branch`` output."""

    branch: str | None = None
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    files: list[GitFileStatus] = []

    model_config = {"frozen": True}

    @property
    def has_changes(self) -> bool:
        return bool(self.files)

    @property
    def conflicted(self) -> list[str]:
        return [f.path for f in self.files if f.is_conflicted]

    @property
    def staged(self) -> list[str]:
        return [
            f.path
            for f in self.files
            if f.index not in (" ", "?") and not f.is_conflicted
        ]

    @property
    def modified(self) -> list[str]:
        return [f.path for f in self.files if f.worktree == "M"]

    @property
    def not_added(self) -> list[str]:
        return [f.path for f in self.files if f.is_untracked]

    @property
    def deleted(self) -> list[str]:
        return [f.path for f in self.files if "D" in f.code and not f.is_conflicted]

    def entry(self, path: str) -> GitFileStatus | None:
        for item in self.files:
            if item.path == path or item.orig_path == path:
                return item
        return None

    def has_local_changes(self, path: str) -> bool:
        """Return True if ``path`` differs from HEAD in the index or working tree."""
        return self.entry(path) is not None

    def is_conflicted(self, path: str) -> bool:
        item = self.entry(path)
        return item is not None and item.is_conflicted


class GitCommit(BaseModel):
    """One commit touching a file."""

    hash: str
    message: str
    date: str
    author: str
    file_path: str

    model_config = {"frozen": True}


class FileSyncState(BaseModel):
    """Git's view of one document relative to HEAD and the remote branch."""

    has_local_changes: bool
    has_unpushed_commits: bool = False
    has_remote_updates: bool = False
    is_conflicted: bool = False

    model_config = {"frozen": True}

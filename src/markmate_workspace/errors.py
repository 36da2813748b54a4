"""Exception taxonomy for the workspace consistency engine.

``ConflictDetected`` is intentionally absent: conflicts are a derived
condition reported as ``SyncStatus.CONFLICT``, never raised.  Batch
failures are counted in ``BatchOutcome.failures`` rather than raised.
"""

from __future__ import annotations

from collections.abc import Sequence


class MarkmateError(Exception):
    """Base class for all errors raised by markmate_workspace."""


class PathEscapesWorkspace(MarkmateError, ValueError):
    """A link or path resolves to a location outside the workspace root."""

    def __init__(self, current: str, raw: str) -> None:
        self.current = current
        self.raw = raw
        super().__init__(
            f"Link '{raw}' in '{current}' resolves outside the workspace"
        )


class GitOperationError(MarkmateError):
    """A git command failed.

    Attributes:
        command: The git argument list that was executed.
        message: The tool's error text (stderr, falling back to stdout).
        returncode: Process exit code, or ``None`` for timeouts/missing git.
    """

    def __init__(
        self,
        command: Sequence[str],
        message: str,
        returncode: int | None = None,
    ) -> None:
        self.command = list(command)
        self.message = message
        self.returncode = returncode
        super().__init__(f"git {' '.join(self.command)} failed: {message}")


class InvalidSyncTransition(MarkmateError):
    """A sync status change is not allowed by the state machine."""

    def __init__(self, path: str, current: str, target: str) -> None:
        self.path = path
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move '{path}' from {current} to {target}"
        )


class DocumentNotOpen(MarkmateError, KeyError):
    """The requested document has no open tab in the editor session."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(path)

    def __str__(self) -> str:
        return f"Document is not open: {self.path}"

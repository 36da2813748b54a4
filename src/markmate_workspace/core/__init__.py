"""Core helpers shared by the link, sync and tool layers."""

from .async_utils import BatchOutcome, process_in_batches, run_sync
from .git import GitRepository
from .git_models import FileSyncState, GitCommit, GitFileStatus, GitStatus

__all__ = [
    "BatchOutcome",
    "FileSyncState",
    "GitCommit",
    "GitFileStatus",
    "GitRepository",
    "GitStatus",
    "process_in_batches",
    "run_sync",
]

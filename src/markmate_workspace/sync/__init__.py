"""Per-document sync status tracking and workspace git sync.

Public API:

- ``SyncStatus`` / ``SyncTrigger`` / ``OpenDocument`` / ``SyncReport``
- ``SyncStatusTracker``: guarded status state machine
- ``SyncOrchestrator``: commit / rebase / push cycle over open documents
- ``AutoSyncScheduler`` / ``DebouncedSaver``: timers
- ``has_conflict_markers`` / ``is_conflict_error``: conflict detection
"""

from .conflicts import has_conflict_markers, is_conflict_error
from .engine import SyncOrchestrator
from .models import (
    DocumentOutcome,
    OpenDocument,
    SyncReport,
    SyncStatus,
    SyncTrigger,
    aggregate_status,
)
from .scheduler import AutoSyncScheduler, DebouncedSaver
from .tracker import SyncStatusTracker

__all__ = [
    "AutoSyncScheduler",
    "DebouncedSaver",
    "DocumentOutcome",
    "OpenDocument",
    "SyncOrchestrator",
    "SyncReport",
    "SyncStatus",
    "SyncStatusTracker",
    "SyncTrigger",
    "aggregate_status",
    "has_conflict_markers",
    "is_conflict_error",
]

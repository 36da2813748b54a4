"""Data contracts for per-document sync status and workspace sync runs.

- ``SyncStatus``: the five states a document can be in.
- ``SyncTrigger``: what started a sync cycle.
- ``OpenDocument``: an open editor tab (mutable; owned by the session).
- ``DocumentOutcome``: where one document ended after a cycle.
- ``SyncReport``: aggregate result of one workspace sync.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class SyncStatus(str, Enum):
    """Sync state of one open document."""

    SYNCED = "synced"
    OUT_OF_DATE = "out-of-date"
    SYNCING = "syncing"
    CONFLICT = "conflict"
    ERROR = "error"


class SyncTrigger(str, Enum):
    """Origin of a sync request."""

    MANUAL = "manual"
    AUTO = "auto"


@dataclass
class OpenDocument:
    """An open document (editor tab).

    The session owns ``content`` and ``has_unsaved_changes``; only the
    ``SyncStatusTracker`` writes ``sync_status``.

    Attributes:
        path: Root-relative document path.
        content: Current editor content.
        has_unsaved_changes: Editor content differs from disk.
        sync_status: Current ``SyncStatus``.
        last_modified: On-disk modification time at last load or save.
    """

    path: str
    content: str
    has_unsaved_changes: bool = False
    sync_status: SyncStatus = SyncStatus.SYNCED
    last_modified: datetime | None = None


class DocumentOutcome(BaseModel):
    """Terminal status of one document after a sync cycle."""

    path: str
    status: SyncStatus
    reloaded: bool = False
    error: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for one workspace sync.

    Attributes:
        result: Aggregate status (``conflict`` > ``error`` > ``synced``).
        trigger: Manual or timer-triggered.
        started_at: ISO 8601 timestamp when the cycle started.
        completed_at: ISO 8601 timestamp when the cycle finished.
        commit_message: Message used for the local commit.
        committed: A local commit was created.
        pulled: Remote commits were rebased in.
        pushed: Local commits were pushed.
        aborted: The cycle stopped before touching git.
        error: Failure text, if any.
        documents: Per-document terminal statuses.
    """

    result: SyncStatus
    trigger: SyncTrigger = SyncTrigger.MANUAL
    started_at: str
    completed_at: str | None = None
    commit_message: str | None = None
    committed: bool = False
    pulled: bool = False
    pushed: bool = False
    aborted: bool = False
    error: str | None = None
    documents: list[DocumentOutcome] = []

    model_config = {"frozen": True}

    @property
    def conflicts(self) -> list[DocumentOutcome]:
        return [d for d in self.documents if d.status == SyncStatus.CONFLICT]

    @property
    def errors(self) -> list[DocumentOutcome]:
        return [d for d in self.documents if d.status == SyncStatus.ERROR]


def aggregate_status(statuses: list[SyncStatus]) -> SyncStatus:
    """Combine per-document statuses: ``conflict`` > ``error`` > ``synced``."""
    if SyncStatus.CONFLICT in statuses:
        return SyncStatus.CONFLICT
    if SyncStatus.ERROR in statuses:
        return SyncStatus.ERROR
    return SyncStatus.SYNCED

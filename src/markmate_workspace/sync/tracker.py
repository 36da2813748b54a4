"""Per-document sync status state machine.

The tracker is the only writer of ``OpenDocument.sync_status``.  Automatic
transitions follow ``ALLOWED_TRANSITIONS``; ``conflict`` and ``error`` have
no automatic exits and only change through an explicit user action
(discard, restore, resolve, or a manual sync out of ``error``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..errors import DocumentNotOpen, InvalidSyncTransition
from ..file_handler import content_hash
from .models import OpenDocument, SyncStatus

logger = logging.getLogger(__name__)

StatusListener = Callable[[str, SyncStatus, SyncStatus], None]

ALLOWED_TRANSITIONS: dict[SyncStatus, frozenset[SyncStatus]] = {
    SyncStatus.SYNCED: frozenset(
        {SyncStatus.OUT_OF_DATE, SyncStatus.SYNCING, SyncStatus.CONFLICT}
    ),
    SyncStatus.OUT_OF_DATE: frozenset(
        {SyncStatus.SYNCING, SyncStatus.CONFLICT, SyncStatus.SYNCED}
    ),
    SyncStatus.SYNCING: frozenset(
        {
            SyncStatus.SYNCED,
            SyncStatus.OUT_OF_DATE,
            SyncStatus.CONFLICT,
            SyncStatus.ERROR,
        }
    ),
    SyncStatus.CONFLICT: frozenset(),
    SyncStatus.ERROR: frozenset(),
}

USER_ACTION_TRANSITIONS: dict[SyncStatus, frozenset[SyncStatus]] = {
    SyncStatus.CONFLICT: frozenset(
        {SyncStatus.OUT_OF_DATE, SyncStatus.SYNCED, SyncStatus.ERROR}
    ),
    SyncStatus.ERROR: frozenset(
        {
            SyncStatus.OUT_OF_DATE,
            SyncStatus.SYNCED,
            SyncStatus.SYNCING,
            SyncStatus.CONFLICT,
        }
    ),
    SyncStatus.SYNCED: frozenset({SyncStatus.ERROR}),
    SyncStatus.OUT_OF_DATE: frozenset({SyncStatus.ERROR}),
}


def can_transition(
    current: SyncStatus, target: SyncStatus, user_action: bool = False
) -> bool:
    """Return True if ``current -> target`` is permitted."""
    if current == target:
        return True
    if target in ALLOWED_TRANSITIONS[current]:
        return True
    return user_action and target in USER_ACTION_TRANSITIONS.get(current, frozenset())


class SyncStatusTracker:
    """Track and guard the sync status of every open document."""

    def __init__(self) -> None:
        self._documents: dict[str, OpenDocument] = {}
        self._snapshots: dict[str, str] = {}
        self._listeners: list[StatusListener] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def track(
        self, document: OpenDocument, initial: SyncStatus, snapshot: str | None = None
    ) -> None:
        """Start tracking ``document`` with its computed initial status.

        Args:
            document: The open document.
            initial: Status computed at open time.
            snapshot: Content that counts as "synced"; defaults to the
                document's current content.
        """
        self._documents[document.path] = document
        self._snapshots[document.path] = content_hash(
            document.content if snapshot is None else snapshot
        )
        previous = document.sync_status
        document.sync_status = initial
        logger.debug("Tracking %s as %s", document.path, initial.value)
        if previous != initial:
            self._notify(document.path, previous, initial)

    def forget(self, path: str) -> None:
        self._documents.pop(path, None)
        self._snapshots.pop(path, None)

    def rename(self, old_path: str, new_path: str) -> None:
        """Re-key a tracked document after a move."""
        document = self._documents.pop(old_path, None)
        if document is None:
            return
        document.path = new_path
        self._documents[new_path] = document
        if old_path in self._snapshots:
            self._snapshots[new_path] = self._snapshots.pop(old_path)

    def subscribe(self, listener: StatusListener) -> None:
        """Register ``listener(path, old, new)`` for every status change."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, path: str) -> OpenDocument:
        try:
            return self._documents[path]
        except KeyError:
            raise DocumentNotOpen(path) from None

    def status(self, path: str) -> SyncStatus:
        return self.get(path).sync_status

    def statuses(self) -> dict[str, SyncStatus]:
        return {path: doc.sync_status for path, doc in self._documents.items()}

    def is_tracked(self, path: str) -> bool:
        return path in self._documents

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(
        self, path: str, target: SyncStatus, user_action: bool = False
    ) -> SyncStatus:
        """Move ``path`` to ``target``.

        Returns:
            The previous status.

        Raises:
            DocumentNotOpen: If ``path`` is not tracked.
            InvalidSyncTransition: If the state machine forbids the change.
        """
        document = self.get(path)
        current = document.sync_status
        if not can_transition(current, target, user_action):
            raise InvalidSyncTransition(path, current.value, target.value)
        if current != target:
            document.sync_status = target
            logger.debug("%s: %s -> %s", path, current.value, target.value)
            self._notify(path, current, target)
        return current

    def note_edit(self, path: str, content: str) -> SyncStatus:
        """Record a local edit; ``synced`` becomes ``out-of-date`` if content changed."""
        document = self.get(path)
        if (
            document.sync_status == SyncStatus.SYNCED
            and content_hash(content) != self._snapshots.get(path)
        ):
            self.transition(path, SyncStatus.OUT_OF_DATE)
        return document.sync_status

    def snapshot(self, path: str, content: str) -> None:
        """Remember ``content`` as the state of ``path`` at its last successful sync."""
        self.get(path)
        self._snapshots[path] = content_hash(content)

    def _notify(self, path: str, old: SyncStatus, new: SyncStatus) -> None:
        for listener in list(self._listeners):
            listener(path, old, new)

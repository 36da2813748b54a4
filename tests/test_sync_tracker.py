"""Tests for sync.tracker — the per-document status state machine."""

import pytest

from markmate_workspace.errors import DocumentNotOpen, InvalidSyncTransition
from markmate_workspace.sync.models import OpenDocument, SyncStatus
from markmate_workspace.sync.tracker import (
    ALLOWED_TRANSITIONS,
    SyncStatusTracker,
    can_transition,
)

S = SyncStatus


@pytest.fixture
def tracker():
    return SyncStatusTracker()


def open_doc(tracker, path="A.md", status=S.SYNCED, content="hello"):
    document = OpenDocument(path=path, content=content)
    tracker.track(document, status)
    return document


class TestCanTransition:
    """Automatic and user-action transition rules."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (S.SYNCED, S.OUT_OF_DATE),
            (S.SYNCED, S.SYNCING),
            (S.OUT_OF_DATE, S.SYNCING),
            (S.SYNCING, S.SYNCED),
            (S.SYNCING, S.OUT_OF_DATE),
            (S.SYNCING, S.CONFLICT),
            (S.SYNCING, S.ERROR),
        ],
    )
    def test_automatic_transitions(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("terminal", [S.CONFLICT, S.ERROR])
    @pytest.mark.parametrize("target", [S.SYNCED, S.OUT_OF_DATE, S.SYNCING])
    def test_conflict_and_error_have_no_automatic_exit(self, terminal, target):
        assert not can_transition(terminal, target)

    def test_user_action_leaves_conflict(self):
        assert can_transition(S.CONFLICT, S.SYNCED, user_action=True)
        assert can_transition(S.CONFLICT, S.OUT_OF_DATE, user_action=True)

    def test_manual_sync_leaves_error(self):
        assert can_transition(S.ERROR, S.SYNCING, user_action=True)

    def test_conflict_cannot_start_syncing(self):
        assert not can_transition(S.CONFLICT, S.SYNCING, user_action=True)

    def test_synced_never_jumps_to_error_automatically(self):
        assert not can_transition(S.SYNCED, S.ERROR)

    def test_same_state_is_allowed(self):
        for status in S:
            assert can_transition(status, status)

    def test_every_status_has_rules(self):
        assert set(ALLOWED_TRANSITIONS) == set(S)


class TestTracker:
    def test_track_sets_initial_status(self, tracker):
        document = open_doc(tracker, status=S.OUT_OF_DATE)
        assert document.sync_status == S.OUT_OF_DATE
        assert tracker.status("A.md") == S.OUT_OF_DATE
        assert tracker.statuses() == {"A.md": S.OUT_OF_DATE}

    def test_transition_returns_previous(self, tracker):
        open_doc(tracker)
        assert tracker.transition("A.md", S.SYNCING) == S.SYNCED
        assert tracker.status("A.md") == S.SYNCING

    def test_invalid_transition_raises(self, tracker):
        open_doc(tracker, status=S.CONFLICT)
        with pytest.raises(InvalidSyncTransition) as exc_info:
            tracker.transition("A.md", S.SYNCED)
        assert exc_info.value.current == "conflict"
        assert exc_info.value.target == "synced"
        assert tracker.status("A.md") == S.CONFLICT

    def test_unknown_document(self, tracker):
        with pytest.raises(DocumentNotOpen):
            tracker.status("nope.md")
        with pytest.raises(KeyError):
            tracker.transition("nope.md", S.SYNCING)

    def test_listeners_see_changes(self, tracker):
        seen = []
        tracker.subscribe(lambda path, old, new: seen.append((path, old, new)))
        open_doc(tracker)
        tracker.transition("A.md", S.SYNCING)
        tracker.transition("A.md", S.SYNCING)

        assert seen == [("A.md", S.SYNCED, S.SYNCING)]

    def test_forget_and_rename(self, tracker):
        document = open_doc(tracker)
        tracker.rename("A.md", "docs/A.md")

        assert document.path == "docs/A.md"
        assert tracker.is_tracked("docs/A.md")
        assert not tracker.is_tracked("A.md")

        tracker.forget("docs/A.md")
        assert tracker.statuses() == {}


class TestNoteEdit:
    """Local edits make a synced document out-of-date."""

    def test_edit_marks_out_of_date(self, tracker):
        open_doc(tracker, content="hello")
        assert tracker.note_edit("A.md", "hello world") == S.OUT_OF_DATE

    def test_identical_content_stays_synced(self, tracker):
        open_doc(tracker, content="hello")
        assert tracker.note_edit("A.md", "hello") == S.SYNCED

    def test_line_endings_do_not_count(self, tracker):
        open_doc(tracker, content="a\nb\n")
        assert tracker.note_edit("A.md", "a\r\nb\r\n") == S.SYNCED

    def test_edit_does_not_leave_conflict(self, tracker):
        open_doc(tracker, status=S.CONFLICT)
        assert tracker.note_edit("A.md", "changed") == S.CONFLICT

    def test_snapshot_moves_the_baseline(self, tracker):
        open_doc(tracker, content="v1")
        tracker.snapshot("A.md", "v2")
        assert tracker.note_edit("A.md", "v2") == S.SYNCED

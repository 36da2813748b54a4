"""Tests for session — open documents, save/reload and watcher reactions."""

import asyncio

import pytest

from markmate_workspace.core.git_models import FileSyncState
from markmate_workspace.errors import DocumentNotOpen, GitOperationError
from markmate_workspace.events import EventBus, PathDeleted, PathRenamed
from markmate_workspace.session import EditorSession, ExternalChange
from markmate_workspace.sync.models import SyncStatus
from markmate_workspace.sync.tracker import SyncStatusTracker

from conftest import write


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def session(io, fake_git, bus):
    return EditorSession(io, fake_git, SyncStatusTracker(), bus=bus)


@pytest.fixture
def notes(workspace_root):
    write(workspace_root, "A.md", "alpha\n")
    write(workspace_root, "docs/B.md", "beta\n")
    return workspace_root


class TestOpen:
    async def test_open_reads_content_and_status(self, session, notes):
        document = await session.open("A.md")

        assert document.content == "alpha\n"
        assert document.sync_status == SyncStatus.SYNCED
        assert document.last_modified is not None
        assert not document.has_unsaved_changes
        assert session.is_open("./A.md")

    async def test_open_twice_returns_same_document(self, session, notes):
        first = await session.open("A.md")
        assert await session.open("A.md") is first

    @pytest.mark.parametrize(
        "state,expected",
        [
            (FileSyncState(has_local_changes=True), SyncStatus.OUT_OF_DATE),
            (
                FileSyncState(has_local_changes=False, has_unpushed_commits=True),
                SyncStatus.OUT_OF_DATE,
            ),
            (
                FileSyncState(has_local_changes=True, is_conflicted=True),
                SyncStatus.CONFLICT,
            ),
        ],
    )
    async def test_initial_status_from_git(self, session, fake_git, notes, state, expected):
        fake_git.file_sync_state.return_value = state
        assert (await session.open("A.md")).sync_status == expected

    async def test_git_failure_opens_in_error(self, session, fake_git, notes):
        fake_git.file_sync_state.side_effect = GitOperationError(
            ["status"], "not a git repository", 128
        )
        assert (await session.open("A.md")).sync_status == SyncStatus.ERROR

    async def test_missing_file(self, session):
        with pytest.raises(FileNotFoundError):
            await session.open("nope.md")
        assert session.open_documents() == []

    async def test_close(self, session, notes):
        await session.open("A.md")
        session.close("A.md")

        assert not session.is_open("A.md")
        assert not session.tracker.is_tracked("A.md")
        with pytest.raises(DocumentNotOpen):
            session.close("A.md")


class TestEditAndSave:
    async def test_edit_marks_dirty_and_out_of_date(self, session, notes):
        await session.open("A.md")
        document = session.edit("A.md", "alpha changed\n")

        assert document.has_unsaved_changes
        assert document.sync_status == SyncStatus.OUT_OF_DATE

    async def test_edit_back_to_saved_content_is_clean(self, session, notes):
        await session.open("A.md")
        session.edit("A.md", "x")
        assert not session.edit("A.md", "alpha\n").has_unsaved_changes

    async def test_save_writes_disk(self, session, notes):
        await session.open("A.md")
        session.edit("A.md", "saved\n")

        document = await session.save("A.md")

        assert (notes / "A.md").read_text() == "saved\n"
        assert not document.has_unsaved_changes
        assert document.sync_status == SyncStatus.OUT_OF_DATE

    async def test_save_all_only_dirty(self, session, notes):
        await session.open("A.md")
        await session.open("docs/B.md")
        session.edit("docs/B.md", "beta 2\n")

        saved = await session.save_all()
        assert [doc.path for doc in saved] == ["docs/B.md"]

    async def test_edit_unknown_document(self, session):
        with pytest.raises(DocumentNotOpen):
            session.edit("A.md", "x")

    async def test_reload_drops_edits(self, session, notes):
        await session.open("A.md")
        session.edit("A.md", "scratch")

        document = await session.reload("A.md")
        assert document.content == "alpha\n"
        assert not document.has_unsaved_changes


class TestAutoSave:
    async def test_edit_schedules_save(self, io, fake_git, notes):
        session = EditorSession(io, fake_git, SyncStatusTracker(), auto_save_delay=0.01)
        await session.open("A.md")
        session.edit("A.md", "auto\n")

        await asyncio.sleep(0.1)

        assert (notes / "A.md").read_text() == "auto\n"
        assert not session.get("A.md").has_unsaved_changes
        await session.shutdown()

    async def test_close_cancels_pending_save(self, io, fake_git, notes):
        session = EditorSession(io, fake_git, SyncStatusTracker(), auto_save_delay=0.02)
        await session.open("A.md")
        session.edit("A.md", "never\n")
        session.close("A.md")

        await asyncio.sleep(0.05)
        assert (notes / "A.md").read_text() == "alpha\n"

    async def test_save_waits_while_syncing(self, io, fake_git, notes):
        tracker = SyncStatusTracker()
        session = EditorSession(io, fake_git, tracker, auto_save_delay=0.01)
        await session.open("A.md")
        tracker.transition("A.md", SyncStatus.SYNCING)
        session.edit("A.md", "typed during sync\n")

        await asyncio.sleep(0.05)
        assert (notes / "A.md").read_text() == "alpha\n"
        assert session.get("A.md").has_unsaved_changes

        tracker.transition("A.md", SyncStatus.OUT_OF_DATE)
        await asyncio.sleep(0.1)
        assert (notes / "A.md").read_text() == "typed during sync\n"
        await session.shutdown()


class TestExternalChange:
    async def test_not_open(self, session, notes):
        assert await session.handle_external_change("A.md") == ExternalChange.NOT_OPEN

    async def test_clean_document_reloads(self, session, notes):
        await session.open("A.md")
        write(notes, "A.md", "changed elsewhere\n")

        result = await session.handle_external_change("A.md")

        assert result == ExternalChange.RELOADED
        document = session.get("A.md")
        assert document.content == "changed elsewhere\n"
        assert document.sync_status == SyncStatus.OUT_OF_DATE

    async def test_dirty_document_needs_confirmation(self, session, notes):
        await session.open("A.md")
        session.edit("A.md", "my edit\n")
        write(notes, "A.md", "their edit\n")

        result = await session.handle_external_change("A.md")

        assert result == ExternalChange.NEEDS_CONFIRMATION
        assert session.get("A.md").content == "my edit\n"

    async def test_own_write_ignored(self, session, notes):
        await session.open("A.md")
        session.edit("A.md", "mine\n")
        await session.save("A.md")

        assert await session.handle_external_change("A.md") == ExternalChange.IGNORED

    async def test_muted_path_ignored(self, session, io, notes):
        await session.open("A.md")
        io.muter.mute("A.md")
        assert await session.handle_external_change("A.md") == ExternalChange.IGNORED

    async def test_same_content_unchanged(self, session, notes):
        await session.open("A.md")
        write(notes, "A.md", "alpha\r\n")
        assert await session.handle_external_change("A.md") == ExternalChange.UNCHANGED

    async def test_deleted_on_disk(self, session, notes):
        await session.open("A.md")
        (notes / "A.md").unlink()
        result = await session.handle_external_change("A.md")
        assert result == ExternalChange.NEEDS_CONFIRMATION


class TestTreeEvents:
    async def test_file_rename_follows_tab(self, session, bus, notes):
        document = await session.open("A.md")
        bus.publish(PathRenamed(old_path="A.md", new_path="docs/A.md"))

        assert document.path == "docs/A.md"
        assert session.get("docs/A.md") is document
        assert session.tracker.is_tracked("docs/A.md")
        assert not session.is_open("A.md")

    async def test_folder_rename_moves_children(self, session, bus, notes):
        await session.open("docs/B.md")
        await session.open("A.md")
        bus.publish(
            PathRenamed(old_path="docs", new_path="archive/docs", is_folder=True)
        )

        assert sorted(doc.path for doc in session.open_documents()) == [
            "A.md",
            "archive/docs/B.md",
        ]

    async def test_folder_delete_closes_children(self, session, bus, notes):
        await session.open("docs/B.md")
        await session.open("A.md")
        bus.publish(PathDeleted(path="docs", is_folder=True))

        assert [doc.path for doc in session.open_documents()] == ["A.md"]

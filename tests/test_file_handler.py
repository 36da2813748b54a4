"""Tests for file_handler module: encoding-aware read/write, tree listing, watcher muting."""

import asyncio
import gc

import pytest

from markmate_workspace.file_handler import (
    WatchMuter,
    WorkspaceIO,
    content_hash,
    read_file_with_encoding,
    write_file,
)

from conftest import write

# =============================================================================
# read_file_with_encoding / write_file
# =============================================================================


class TestReadWrite:
    def test_utf8_roundtrip(self, tmp_path):
        target = tmp_path / "sub" / "note.md"
        written = write_file(target, "héllo")
        assert written == len("héllo".encode("utf-8"))
        assert read_file_with_encoding(target) == ("héllo", "utf-8")

    def test_empty_file(self, tmp_path):
        target = tmp_path / "empty.md"
        target.write_bytes(b"")
        assert read_file_with_encoding(target) == ("", "utf-8")

    def test_non_utf8_is_detected(self, tmp_path):
        target = tmp_path / "latin.md"
        target.write_bytes("Café crème brûlée, déjà vu à la française".encode("latin-1"))
        content, encoding = read_file_with_encoding(target)
        assert "crème" in content
        assert encoding != "utf-8"

    def test_content_hash_ignores_bom_and_crlf(self):
        assert content_hash("\ufeffa\r\nb") == content_hash("a\nb")
        assert content_hash("a") != content_hash("b")


# =============================================================================
# WatchMuter
# =============================================================================


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestWatchMuter:
    def test_muted_block(self):
        muter = WatchMuter()
        with muter.muted("A.md"):
            assert muter.is_muted("A.md")
            assert muter.should_ignore("A.md")
        assert not muter.is_muted("A.md")

    def test_mute_expires(self):
        clock = FakeClock()
        muter = WatchMuter(timeout=1.0, clock=clock)
        muter.mute("A.md")
        clock.now += 0.5
        assert muter.is_muted("A.md")
        clock.now += 0.6
        assert not muter.is_muted("A.md")

    def test_own_write_recognised_after_unmute(self):
        muter = WatchMuter()
        muter.record_write("A.md", "content")
        assert muter.should_ignore("A.md", "content")
        assert not muter.should_ignore("A.md", "someone else's edit")
        assert not muter.should_ignore("A.md")

    def test_forget(self):
        muter = WatchMuter()
        muter.mute("A.md")
        muter.record_write("A.md", "x")
        muter.forget("A.md")
        assert not muter.should_ignore("A.md", "x")


# =============================================================================
# WorkspaceIO
# =============================================================================


class TestWorkspaceIO:
    def test_write_mutes_and_records(self, io, workspace_root, monkeypatch):
        seen = []
        original = io.muter.mute
        monkeypatch.setattr(
            io.muter, "mute", lambda path: (seen.append(path), original(path))
        )

        io.write_text("docs/A.md", "hello")

        assert (workspace_root / "docs/A.md").read_text() == "hello"
        assert seen == ["docs/A.md"]
        assert not io.muter.is_muted("docs/A.md")
        assert io.muter.is_own_write("docs/A.md", "hello")

    def test_paths_must_stay_inside(self, io):
        with pytest.raises(ValueError):
            io.absolute("../outside.md")
        assert not io.exists("../outside.md")

    def test_list_markdown_skips_hidden(self, io, workspace_root):
        write(workspace_root, "b.md", "")
        write(workspace_root, "a/c.md", "")
        write(workspace_root, ".git/x.md", "")
        write(workspace_root, ".hidden.md", "")
        write(workspace_root, "notes.txt", "")

        assert io.list_markdown_files() == ["b.md", "a/c.md"]

    def test_list_images(self, io, workspace_root):
        write(workspace_root, ".images/b.PNG", "")
        write(workspace_root, ".images/a.jpg", "")
        write(workspace_root, ".images/readme.txt", "")
        write(workspace_root, ".images/sub/c.png", "")

        names = [(name, rel) for name, rel, _ in io.list_images(".images")]
        assert names == [("a.jpg", ".images/a.jpg"), ("b.PNG", ".images/b.PNG")]
        assert io.list_images("missing") == []

    def test_move_file(self, io, workspace_root):
        write(workspace_root, "A.md", "a")
        io.move("A.md", "docs/guides/A.md")
        assert (workspace_root / "docs/guides/A.md").read_text() == "a"
        assert not (workspace_root / "A.md").exists()

    def test_move_refuses_existing_target(self, io, workspace_root):
        write(workspace_root, "A.md", "a")
        write(workspace_root, "B.md", "b")
        with pytest.raises(FileExistsError):
            io.move("A.md", "B.md")

    def test_move_missing_source(self, io):
        with pytest.raises(FileNotFoundError):
            io.move("nope.md", "other.md")

    def test_delete_folder(self, io, workspace_root):
        write(workspace_root, "docs/A.md", "a")
        io.delete("docs")
        assert not (workspace_root / "docs").exists()

    async def test_async_wrappers(self, io, workspace_root):
        await io.write("A.md", "async")
        assert await io.read("A.md") == "async"
        assert await io.file_exists("A.md")
        assert await io.markdown_files() == ["A.md"]

    def test_lock_is_per_normalised_path(self, io):
        assert io.lock_for("./docs/A.md") is io.lock_for("docs/A.md")
        assert io.lock_for("docs/A.md") is not io.lock_for("docs/B.md")

    async def test_waiters_share_one_lock(self, io):
        order = []

        async def worker(name):
            async with io.locked("A.md"):
                order.append(f"{name} in")
                await asyncio.sleep(0)
                order.append(f"{name} out")

        await asyncio.gather(worker("a"), worker("b"))
        assert order == ["a in", "a out", "b in", "b out"]

    async def test_idle_locks_are_dropped(self, io):
        async with io.locked("A.md"):
            assert "A.md" in io._locks
        gc.collect()
        assert "A.md" not in io._locks

"""Tests for the workspace and open-document tool handlers."""

import mcp.types as types
import pytest

from markmate_workspace.core.git_models import FileSyncState
from markmate_workspace.mcp.tools import ALL_SPECS, ToolRegistry
from markmate_workspace.sync.models import SyncReport, SyncStatus, SyncTrigger
from markmate_workspace.workspace import Workspace

from conftest import write


@pytest.fixture
def workspace(make_config, fake_git, workspace_root):
    write(workspace_root, "A.md", "alpha\n")
    write(workspace_root, "docs/B.md", "beta\n")
    return Workspace(make_config(), git=fake_git)


@pytest.fixture
def registry():
    return ToolRegistry(ALL_SPECS)


def _text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


class TestWorkspaceInfo:
    async def test_summary(self, registry, workspace):
        await workspace.session.open("A.md")
        result = await registry.call_tool("workspace_info", {}, workspace)

        text = _text(result)
        assert "Branch: main | Remotes: origin" in text
        assert "Documents: 2" in text
        assert "  A.md: synced" in text
        assert result.structuredContent["documents"] == 2


class TestOpenClose:
    async def test_open_returns_content_and_status(self, registry, workspace):
        result = await registry.call_tool("doc_open", {"path": "A.md"}, workspace)

        assert not result.isError
        assert "Status: synced" in _text(result)
        assert _text(result).endswith("alpha\n")
        assert result.structuredContent["content"] == "alpha\n"
        assert result.structuredContent["sync_status"] == "synced"

    async def test_open_missing_file(self, registry, workspace):
        result = await registry.call_tool("doc_open", {"path": "nope.md"}, workspace)
        assert result.isError
        assert "validation_error" in _text(result)

    async def test_open_requires_path(self, registry, workspace):
        result = await registry.call_tool("doc_open", {}, workspace)
        assert "path is required" in _text(result)

    async def test_close(self, registry, workspace):
        await registry.call_tool("doc_open", {"path": "A.md"}, workspace)
        result = await registry.call_tool("doc_close", {"path": "A.md"}, workspace)

        assert _text(result) == "Closed A.md."
        assert not workspace.session.is_open("A.md")

    async def test_close_not_open(self, registry, workspace):
        result = await registry.call_tool("doc_close", {"path": "A.md"}, workspace)
        assert "doc_open" in _text(result)


class TestSyncStatus:
    async def test_closed_document(self, registry, workspace, fake_git):
        fake_git.file_sync_state.return_value = FileSyncState(
            has_local_changes=True, is_conflicted=True
        )
        result = await registry.call_tool(
            "doc_sync_status", {"path": "docs/B.md"}, workspace
        )

        assert _text(result) == "docs/B.md: conflict"
        assert result.structuredContent == {"path": "docs/B.md", "status": "conflict"}


class TestWorkspaceSync:
    async def test_success(self, registry, workspace, fake_git):
        await workspace.session.open("A.md")
        result = await registry.call_tool(
            "workspace_sync", {"commit_message": "Notes"}, workspace
        )

        assert not result.isError
        assert result.structuredContent["result"] == "synced"
        fake_git.commit_all.assert_called_once_with("Notes")
        fake_git.push.assert_called_once_with()

    async def test_aborted_sync_is_an_error_result(self, registry, workspace, monkeypatch):
        async def refused(message=None, trigger=SyncTrigger.MANUAL):
            return SyncReport(
                result=SyncStatus.CONFLICT,
                trigger=trigger,
                started_at="t0",
                completed_at="t1",
                commit_message="m",
                aborted=True,
                error="Unresolved conflict in: A.md",
            )

        monkeypatch.setattr(workspace, "sync_workspace", refused)
        result = await registry.call_tool("workspace_sync", {}, workspace)

        assert result.isError
        assert result.structuredContent["result"] == "conflict"

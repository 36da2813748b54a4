"""Tests for tool registration and routing in the MCP server.

Handler behaviour is tested in tests/test_mcp/tools/; this file only
covers the server routing layer and the global accessors.
"""

from unittest.mock import MagicMock

import mcp.types as types
import pytest

from markmate_workspace.mcp.server import (
    get_registry,
    get_workspace,
    handle_call_tool,
    handle_list_tools,
    set_registry,
    set_workspace,
)
from markmate_workspace.mcp.tools import ALL_SPECS
from markmate_workspace.mcp.tools.registry import ToolRegistry


@pytest.fixture
def installed():
    workspace = MagicMock()
    set_registry(ToolRegistry(ALL_SPECS))
    set_workspace(workspace)
    yield workspace
    set_registry(None)
    set_workspace(None)


class TestAccessors:
    def test_uninitialised(self):
        set_registry(None)
        set_workspace(None)
        with pytest.raises(RuntimeError, match="ToolRegistry not initialized"):
            get_registry()
        with pytest.raises(RuntimeError, match="Workspace not initialized"):
            get_workspace()


class TestRouting:
    async def test_list_tools(self, installed):
        names = [t.name for t in await handle_list_tools()]

        for expected in (
            "workspace_info",
            "workspace_sync",
            "doc_open",
            "link_move",
            "link_check_pages",
            "image_find_unused",
            "doc_history",
            "doc_resolve_conflict",
        ):
            assert expected in names

    async def test_schemas_are_objects(self, installed):
        for tool in await handle_list_tools():
            assert tool.inputSchema["type"] == "object"

    async def test_unknown_tool(self, installed):
        result = await handle_call_tool("ticket_get", {})

        assert result.isError
        content = result.content[0]
        assert isinstance(content, types.TextContent)
        assert content.text.startswith("Error (unknown_tool): Unknown tool: ticket_get")

    async def test_call_routes_to_workspace(self, installed):
        async def info():
            return {
                "root": "/notes",
                "assets_dir": ".images",
                "documents": 0,
                "branch": "main",
                "remotes": [],
                "open_documents": {},
                "auto_sync": False,
            }

        installed.info = info
        result = await handle_call_tool("workspace_info", None)

        assert not result.isError
        assert "Workspace: /notes" in result.content[0].text
        assert "Remotes: none" in result.content[0].text

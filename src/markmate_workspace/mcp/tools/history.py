"""Version history tool handlers.

- ``doc_history`` -- commits touching a document.
- ``doc_show_at_commit`` -- document content at a commit.
- ``doc_diff`` -- diff between commits, or of uncommitted changes.
- ``doc_restore`` -- restore a document to a commit and commit that.
- ``doc_discard`` -- drop uncommitted changes to a document.
- ``doc_resolve_conflict`` -- finish a merge once markers are gone.
"""

from __future__ import annotations

import logging

import mcp.types as types

from ...sync.reporter import format_history
from ...workspace import Workspace
from .errors import require, text_result
from .registry import ToolSpec

logger = logging.getLogger(__name__)


def _path_schema(extra: dict | None = None, required: list[str] | None = None) -> dict:
    properties = {
        "path": {
            "type": "string",
            "description": "Workspace-relative document path (required)",
        },
    }
    properties.update(extra or {})
    return {
        "type": "object",
        "properties": properties,
        "required": ["path", *(required or [])],
    }


_COMMIT = {"type": "string", "description": "Commit hash (required)"}


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

HISTORY_TOOLS: list[types.Tool] = [
    types.Tool(
        name="doc_history",
        description="List the commits that touched a document, newest first.",
        annotations=types.ToolAnnotations(readOnlyHint=True, openWorldHint=False),
        inputSchema=_path_schema(
            {
                "limit": {
                    "type": "integer",
                    "description": "Maximum commits to return (default: 20, max: 200)",
                    "default": 20,
                    "minimum": 1,
                    "maximum": 200,
                }
            }
        ),
    ),
    types.Tool(
        name="doc_show_at_commit",
        description="Show a document's content as of a commit.",
        annotations=types.ToolAnnotations(readOnlyHint=True, openWorldHint=False),
        inputSchema=_path_schema({"commit": _COMMIT}, ["commit"]),
    ),
    types.Tool(
        name="doc_diff",
        description=(
            "Unified diff of a document. Without commits: uncommitted changes "
            "against HEAD. With from_commit: changes from that commit to "
            "to_commit (default HEAD)."
        ),
        annotations=types.ToolAnnotations(readOnlyHint=True, openWorldHint=False),
        inputSchema=_path_schema(
            {
                "from_commit": {"type": "string", "description": "Base commit (optional)"},
                "to_commit": {"type": "string", "description": "Target commit (optional)"},
            }
        ),
    ),
    types.Tool(
        name="doc_restore",
        description=(
            "Restore a document to its content at a commit and record that as "
            "a new commit."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema=_path_schema({"commit": _COMMIT}, ["commit"]),
    ),
    types.Tool(
        name="doc_discard",
        description="Discard uncommitted changes to a document (checkout from HEAD).",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema=_path_schema(),
    ),
    types.Tool(
        name="doc_resolve_conflict",
        description=(
            "Mark a conflicted document as resolved and finish the rebase. "
            "Fails while the file still contains conflict markers."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema=_path_schema(
            {"message": {"type": "string", "description": "Commit message (optional)"}}
        ),
    ),
]


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_history(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle doc_history."""
    path = require(args, "path")
    limit = min(max(1, int(args.get("limit", 20))), 200)
    commits = await workspace.get_history(path, limit)
    return text_result(
        format_history(path, commits),
        {"path": path, "commits": [c.model_dump() for c in commits]},
    )


async def _handle_show(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle doc_show_at_commit."""
    path = require(args, "path")
    commit = require(args, "commit")
    content = await workspace.show_at_commit(path, commit)
    text = f"# {path} @ {commit[:8]}\n----\n\n{content}"
    return text_result(text, {"path": path, "commit": commit, "content": content})


async def _handle_diff(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle doc_diff."""
    path = require(args, "path")
    from_commit = args.get("from_commit") or None
    to_commit = args.get("to_commit") or None
    if to_commit and not from_commit:
        raise ValueError("to_commit requires from_commit")
    diff = await workspace.get_diff(path, from_commit, to_commit)
    return text_result(
        diff or f"No differences for {path}.",
        {"path": path, "from_commit": from_commit, "to_commit": to_commit, "diff": diff},
    )


async def _handle_restore(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle doc_restore."""
    path = require(args, "path")
    commit = require(args, "commit")
    message = await workspace.restore_to_commit(path, commit)
    status = await workspace.get_sync_status(path)
    text = message or f"{path} already matches {commit[:8]}; nothing to commit."
    return text_result(
        f"{text}\nStatus: {status.value}",
        {"path": path, "commit": commit, "commit_message": message, "status": status.value},
    )


async def _handle_discard(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle doc_discard."""
    path = require(args, "path")
    await workspace.discard_changes(path)
    status = await workspace.get_sync_status(path)
    return text_result(
        f"Discarded local changes to {path}.\nStatus: {status.value}",
        {"path": path, "status": status.value},
    )


async def _handle_resolve(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle doc_resolve_conflict."""
    path = require(args, "path")
    status = await workspace.resolve_conflict(path, args.get("message") or None)
    return text_result(
        f"Conflict in {path} resolved.\nStatus: {status.value}",
        {"path": path, "status": status.value},
    )


# ToolSpec list for registry-based dispatch
HISTORY_SPECS: list[ToolSpec] = [
    ToolSpec(tool=HISTORY_TOOLS[0], writes=False, handler=_handle_history),
    ToolSpec(tool=HISTORY_TOOLS[1], writes=False, handler=_handle_show),
    ToolSpec(tool=HISTORY_TOOLS[2], writes=False, handler=_handle_diff),
    ToolSpec(tool=HISTORY_TOOLS[3], writes=True, handler=_handle_restore),
    ToolSpec(tool=HISTORY_TOOLS[4], writes=True, handler=_handle_discard),
    ToolSpec(tool=HISTORY_TOOLS[5], writes=True, handler=_handle_resolve),
]

"""Workspace and open-document tool handlers.

- ``workspace_info`` -- root, branch, remotes and open document statuses.
- ``doc_open`` / ``doc_close`` -- manage the session's open documents.
- ``doc_sync_status`` -- sync status of one document.
- ``workspace_sync`` -- commit, rebase onto the remote and push.
"""

from __future__ import annotations

import logging

import mcp.types as types

from ...sync.reporter import format_sync_report, report_to_json
from ...workspace import Workspace
from .errors import format_timestamp, require, text_result
from .registry import ToolSpec

logger = logging.getLogger(__name__)

_PATH_SCHEMA = {
    "type": "object",
    "properties": {
        "path": {
            "type": "string",
            "description": "Workspace-relative document path, e.g. docs/A.md (required)",
        },
    },
    "required": ["path"],
}


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

DOCUMENT_TOOLS: list[types.Tool] = [
    types.Tool(
        name="workspace_info",
        description=(
            "Show the workspace root, git branch and remotes, document count "
            "and the sync status of every open document."
        ),
        annotations=types.ToolAnnotations(readOnlyHint=True, openWorldHint=False),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="doc_open",
        description=(
            "Open a document so its sync status is tracked. Returns its content "
            "and initial status."
        ),
        annotations=types.ToolAnnotations(readOnlyHint=True, openWorldHint=False),
        inputSchema=_PATH_SCHEMA,
    ),
    types.Tool(
        name="doc_close",
        description="Close an open document. Unsaved edits are dropped.",
        annotations=types.ToolAnnotations(readOnlyHint=True, openWorldHint=False),
        inputSchema=_PATH_SCHEMA,
    ),
    types.Tool(
        name="doc_sync_status",
        description=(
            "Get the sync status of a document: synced, out-of-date, syncing, "
            "conflict or error."
        ),
        annotations=types.ToolAnnotations(readOnlyHint=True, openWorldHint=False),
        inputSchema=_PATH_SCHEMA,
    ),
    types.Tool(
        name="workspace_sync",
        description=(
            "Commit local changes, rebase onto the remote branch and push. "
            "Refuses to run while any open document is in conflict."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "commit_message": {
                    "type": "string",
                    "description": "Commit message (optional, defaults to the configured template)",
                },
            },
            "required": [],
        },
    ),
]


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_info(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle workspace_info."""
    info = await workspace.info()
    lines = [
        f"Workspace: {info['root']}",
        f"Branch: {info['branch'] or '(detached)'} | Remotes: {', '.join(info['remotes']) or 'none'}",
        f"Documents: {info['documents']} | Assets: {info['assets_dir']}",
        f"Auto-sync: {'on' if info['auto_sync'] else 'off'}",
    ]
    if info["open_documents"]:
        lines.append("Open documents:")
        for path, status in sorted(info["open_documents"].items()):
            lines.append(f"  {path}: {status}")
    return text_result("\n".join(lines), info)


async def _handle_open(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle doc_open."""
    document = await workspace.session.open(require(args, "path"))
    modified = format_timestamp(document.last_modified)
    text = "\n".join(
        [
            f"# {document.path}",
            f"Status: {document.sync_status.value} | Modified: {modified}",
            "----",
            "",
            document.content,
        ]
    )
    return text_result(
        text,
        {
            "path": document.path,
            "content": document.content,
            "sync_status": document.sync_status.value,
            "last_modified": modified,
        },
    )


async def _handle_close(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle doc_close."""
    path = require(args, "path")
    workspace.session.close(path)
    return text_result(f"Closed {path}.", {"path": path, "closed": True})


async def _handle_status(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle doc_sync_status."""
    path = require(args, "path")
    status = await workspace.get_sync_status(path)
    return text_result(f"{path}: {status.value}", {"path": path, "status": status.value})


async def _handle_sync(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle workspace_sync."""
    report = await workspace.sync_workspace(args.get("commit_message") or None)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=format_sync_report(report))],
        structuredContent=report_to_json(report),
        isError=report.result.value != "synced",
    )


# ToolSpec list for registry-based dispatch
DOCUMENT_SPECS: list[ToolSpec] = [
    ToolSpec(tool=DOCUMENT_TOOLS[0], writes=False, handler=_handle_info),
    ToolSpec(tool=DOCUMENT_TOOLS[1], writes=False, handler=_handle_open),
    ToolSpec(tool=DOCUMENT_TOOLS[2], writes=False, handler=_handle_close),
    ToolSpec(tool=DOCUMENT_TOOLS[3], writes=False, handler=_handle_status),
    ToolSpec(tool=DOCUMENT_TOOLS[4], writes=True, handler=_handle_sync),
]

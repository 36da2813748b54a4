"""Link maintenance tool handlers.

- ``link_move`` -- move a file or folder and rewrite every affected link.
- ``link_check_pages`` -- report broken ``[[...]]`` links.
- ``link_check_images`` -- report broken image references.
- ``image_find_unused`` -- list assets nothing references.
- ``image_delete_unused`` -- delete named assets.
"""

from __future__ import annotations

import logging

import mcp.types as types

from ...links.reporter import (
    format_image_link_report,
    format_move_result,
    format_page_link_report,
    format_unused_images,
    report_to_json,
)
from ...workspace import Workspace
from .errors import require, text_result
from .registry import ToolSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

LINK_TOOLS: list[types.Tool] = [
    types.Tool(
        name="link_move",
        description=(
            "Move or rename a markdown file or folder inside the workspace and "
            "rewrite every [[link]] and image reference so they keep resolving."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "old_path": {
                    "type": "string",
                    "description": "Current workspace-relative path (required)",
                },
                "new_path": {
                    "type": "string",
                    "description": "New workspace-relative path (required)",
                },
            },
            "required": ["old_path", "new_path"],
        },
    ),
    types.Tool(
        name="link_check_pages",
        description="Find [[links]] whose target document does not exist, with line numbers.",
        annotations=types.ToolAnnotations(readOnlyHint=True, openWorldHint=False),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="link_check_images",
        description=(
            "Find markdown and HTML image references whose file does not exist. "
            "http(s) and data: sources are skipped."
        ),
        annotations=types.ToolAnnotations(readOnlyHint=True, openWorldHint=False),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="image_find_unused",
        description="List images in the assets folder that no document references.",
        annotations=types.ToolAnnotations(readOnlyHint=True, openWorldHint=False),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="image_delete_unused",
        description=(
            "Delete images from the assets folder by file name. Run "
            "image_find_unused first and pass the names it returned."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "file_names": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Bare image file names, e.g. ['x.png'] (required)",
                    "minItems": 1,
                },
            },
            "required": ["file_names"],
        },
    ),
]


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_move(workspace: Workspace, args: dict) -> types.CallToolResult:
    """Handle link_move."""
    old_path = require(args, "old_path")
    new_path = require(args, "new_path")
    result = await workspace.move_path(old_path, new_path)
    return text_result(format_move_result(result), report_to_json(result))


async def _handle_check_pages(
    workspace: Workspace, args: dict
) -> types.CallToolResult:
    """Handle link_check_pages."""
    report = await workspace.validate_all_page_links()
    return text_result(format_page_link_report(report), report_to_json(report))


async def _handle_check_images(
    workspace: Workspace, args: dict
) -> types.CallToolResult:
    """Handle link_check_images."""
    report = await workspace.validate_all_image_links()
    return text_result(format_image_link_report(report), report_to_json(report))


async def _handle_find_unused(
    workspace: Workspace, args: dict
) -> types.CallToolResult:
    """Handle image_find_unused."""
    report = await workspace.find_unused_images()
    return text_result(format_unused_images(report), report_to_json(report))


async def _handle_delete_unused(
    workspace: Workspace, args: dict
) -> types.CallToolResult:
    """Handle image_delete_unused."""
    names = require(args, "file_names")
    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        raise ValueError("file_names must be a list of strings")
    deleted = await workspace.delete_unused_images(names)
    text = f"Deleted {deleted} of {len(names)} image(s)."
    return text_result(text, {"requested": len(names), "deleted": deleted})


# ToolSpec list for registry-based dispatch
LINK_SPECS: list[ToolSpec] = [
    ToolSpec(tool=LINK_TOOLS[0], writes=True, handler=_handle_move),
    ToolSpec(tool=LINK_TOOLS[1], writes=False, handler=_handle_check_pages),
    ToolSpec(tool=LINK_TOOLS[2], writes=False, handler=_handle_check_images),
    ToolSpec(tool=LINK_TOOLS[3], writes=False, handler=_handle_find_unused),
    ToolSpec(tool=LINK_TOOLS[4], writes=True, handler=_handle_delete_unused),
]

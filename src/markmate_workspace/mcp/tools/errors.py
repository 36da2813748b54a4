"""Error response builders and shared helpers for MCP tool handlers.

Errors carry a corrective action so an agent can recover without human
intervention.
"""

from datetime import datetime
from typing import Any

import mcp.types as types

from ...errors import GitOperationError
from ...sync.conflicts import is_conflict_error


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (validation_error, git_error, server_error, unknown_tool)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("validation_error", "path is required", "Provide path.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def translate_git_error(error: GitOperationError) -> types.CallToolResult:
    """Translate a failed git command into a ``git_error`` response."""
    text = error.message.lower()
    if is_conflict_error(text):
        action = (
            "Edit the conflicted documents to remove the conflict markers, "
            "then call doc_resolve_conflict, or use doc_discard / doc_restore."
        )
    elif error.returncode is None:
        action = "Check that git is installed and the remote is reachable, then retry."
    elif "could not read" in text or "authentication" in text or "permission denied" in text:
        action = "Check the git credentials for the remote, then retry."
    elif "not configured" in text or "expected" in text:
        action = "Configure the remote and branch in config.yml (git section)."
    else:
        action = "Inspect the workspace with workspace_info and retry."
    return build_error_response("git_error", str(error), action)


def require(args: dict, key: str) -> Any:
    """Return ``args[key]`` or raise ValueError naming the missing parameter."""
    value = args.get(key)
    if value is None or value == "":
        raise ValueError(f"{key} is required")
    return value


def text_result(text: str, structured: dict | None = None) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


def format_timestamp(timestamp: Any) -> str:
    """Format a datetime (or pass anything else through ``str``)."""
    match timestamp:
        case datetime() as dt:
            return dt.strftime("%Y-%m-%d %H:%M")
        case None:
            return "unknown"
        case _:
            return str(timestamp)

"""ToolSpec and ToolRegistry for read-only filtering and error translation.

Key concepts:
- ToolSpec: Immutable dataclass linking a Tool definition, whether the tool
  writes to the workspace, and an async handler with the standardized
  signature (workspace, args) -> CallToolResult.
- ToolRegistry: Drops writing tools in read-only mode at construction time,
  then provides list_tools() and call_tool() dispatch with error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...errors import DocumentNotOpen, GitOperationError
from ...workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable description of a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        writes: True if the tool changes files, git state or open documents.
        handler: Async handler with signature (workspace, args) -> CallToolResult.
    """

    tool: types.Tool
    writes: bool
    handler: Callable[[Workspace, dict], Awaitable[types.CallToolResult]]


class ToolRegistry:
    """Registry of ToolSpecs.

    With ``read_only=True`` every spec that writes is left out, so it is
    neither listed nor callable.
    """

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            if read_only and spec.writes:
                continue
            self._specs[spec.tool.name] = spec

    def list_tools(self) -> list[types.Tool]:
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        workspace: Workspace,
    ) -> types.CallToolResult:
        """Dispatch a tool call to its handler.

        Translates git failures, validation errors and unexpected exceptions
        into structured error responses with corrective actions.

        Raises:
            ValueError: If the tool name is not registered (unknown or filtered out).
        """
        from .errors import build_error_response, translate_git_error

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(workspace, args)
        except GitOperationError as e:
            logger.warning("git failed in %s: %s", name, e.message)
            return translate_git_error(e)
        except DocumentNotOpen as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Open the document with doc_open first.",
            )
        except (ValueError, FileNotFoundError, FileExistsError) as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log and retry.",
            )

"""MCP server for a MarkMate workspace using stdio transport.

This module implements the Model Context Protocol server that lets AI
agents open documents, move files with link propagation, validate links
and sync the workspace with its git remote.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..logger import DEFAULT_LOG_FILE, setup_logging
from ..workspace import Workspace
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response

logger = logging.getLogger(__name__)

# Initialize server instance
server = Server("markmate-workspace")

# Global workspace instance (initialized in lifespan)
_workspace: Workspace | None = None

# Global registry instance (initialized in main)
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_workspace() -> Workspace:
    """Get the global Workspace instance.

    Raises:
        RuntimeError: If the workspace is not initialized
    """
    if _workspace is None:
        raise RuntimeError("Workspace not initialized. Server lifespan not started.")
    return _workspace


def set_workspace(workspace: Workspace | None) -> None:
    """Set the global Workspace instance, or None to clear."""
    global _workspace
    _workspace = workspace


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    """Set the global ToolRegistry instance, or None to clear."""
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List the registered tools (writing tools are absent in read-only mode)."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch.

    Args:
        name: The name of the tool to execute.
        arguments: Tool arguments (optional).

    Returns:
        CallToolResult with tool output content and optional isError flag.
    """
    workspace = get_workspace()
    try:
        return await get_registry().call_tool(name, arguments, workspace)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Logging goes to a file only; stdout carries the protocol.

    Args:
        config_overrides: Optional dict with config values to override
            (workspace, log_file, debug, read_only)
    """
    overrides = dict(config_overrides or {})
    read_only = overrides.pop("read_only", False)

    # Must run before stdio_server so nothing reaches stdout
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=overrides.get("log_file"),
    )

    registry = ToolRegistry(ALL_SPECS, read_only=read_only)
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(ALL_SPECS),
    )
    if read_only:
        print(
            f"Read-only mode ({registry.tool_count()} of {len(ALL_SPECS)} tools enabled)",
            file=sys.stderr,
        )

    set_registry(registry)

    # set_workspace() is called here rather than in the lifespan so that
    # running this file as __main__ updates the module the handlers read.
    async with server_lifespan(config_overrides=overrides or None) as ctx:
        set_workspace(ctx["workspace"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="markmate-workspace",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_workspace(None)
            set_registry(None)


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="MarkMate workspace server - MCP access to a git-backed markdown workspace",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .markmate/config.yml)
  markmate-workspace-mcp

  # Serve a specific folder
  markmate-workspace-mcp --workspace ~/notes

  # Hide every tool that changes files or git state
  markmate-workspace-mcp --workspace ~/notes --read-only

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )

    parser.add_argument(
        "--workspace",
        help="Workspace root (takes precedence over MARKMATE_WORKSPACE and config files)",
    )
    parser.add_argument(
        "--log-file",
        default=DEFAULT_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Only register tools that do not change files or git state",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"markmate-workspace version {__version__}",
    )

    args = parser.parse_args()

    config_overrides = {}
    if args.workspace:
        config_overrides["workspace"] = args.workspace
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.debug:
        config_overrides["debug"] = True
    if args.read_only:
        config_overrides["read_only"] = True

    if config_overrides:
        print(
            f"Config overrides from CLI: {', '.join(config_overrides)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()

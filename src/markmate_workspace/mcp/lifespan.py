"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config, to_fallbacks
from ..core.git import DEFAULT_USER_EMAIL, DEFAULT_USER_NAME
from ..errors import GitOperationError
from ..workspace import Workspace

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config file if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Initialise the git repository if the root is not one yet
    - Start the auto-sync timer when enabled

    On shutdown:
    - Stop the auto-sync timer and pending auto-saves

    Args:
        config_overrides: Optional dict with config values from CLI (workspace, debug, log_file)

    Yields:
        Dict with 'workspace' key containing the initialized Workspace

    Raises:
        RuntimeError: If configuration is invalid or git is unusable.
    """
    logger.info("MCP server starting...")
    _stderr_print("MarkMate workspace server starting...")

    try:
        # .env first so ${VAR} interpolation in YAML can use its values
        load_dotenv()

        yaml_fallbacks: dict[str, Any] | None = None
        config_files = discover_config_files()
        sources = []

        if config_files:
            raw = load_hierarchical_config()
            yaml_fallbacks = to_fallbacks(build_config(raw))
            sources.append(f"config file: {config_files[0]}")

        overrides = config_overrides or {}
        config = load_config(
            workspace=overrides.get("workspace"),
            debug=overrides.get("debug", False),
            log_file=overrides.get("log_file"),
            yaml_fallbacks=yaml_fallbacks,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Workspace root: %s", config.workspace_root)
        _stderr_print(f"  Workspace: {config.workspace_root}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print("  Ensure MARKMATE_WORKSPACE points at an existing folder.")
        raise RuntimeError(
            f"Configuration error: {e}. Ensure MARKMATE_WORKSPACE points at an existing folder."
        ) from e

    workspace = Workspace(config)
    try:
        if await workspace.init_repository():
            _stderr_print("  Initialised a new git repository")
        if config.remote_url and config.remote not in await workspace.remotes():
            await workspace.configure_git(
                config.user_name or DEFAULT_USER_NAME,
                config.user_email or DEFAULT_USER_EMAIL,
                config.remote_url,
            )
            _stderr_print(f"  Remote {config.remote}: {config.remote_url}")
    except GitOperationError as e:
        logger.error("Git setup failed: %s", e)
        _stderr_print("ERROR: Git setup failed.")
        _stderr_print(f"  {e}")
        raise RuntimeError(
            f"Git setup failed: {e}. Check that git is installed and the remote URL is valid."
        ) from e

    if config.auto_sync_enabled:
        workspace.start_auto_sync()
        _stderr_print(f"  Auto-sync every {config.auto_sync_interval:g}s")
    _stderr_print("Server ready. Waiting for MCP client connection...")

    try:
        yield {"workspace": workspace}
    finally:
        logger.info("MCP server shutting down")
        await workspace.close()
        _stderr_print("MarkMate workspace server shutting down.")

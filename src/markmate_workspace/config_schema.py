"""Unified configuration schema for markmate_workspace.

Defines Pydantic models for the YAML config structure with dedicated
sections for the workspace, git, sync timers and logging, plus an adapter
that flattens the sections into fallback values for ``load_config()``.

Usage:
    from markmate_workspace.config_schema import build_config, to_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class WorkspaceSection(BaseModel):
    """Workspace location and scan settings.

    ``root`` is optional to support zero-config: the env var or CLI flag
    can supply it at runtime instead.
    """

    root: str | None = Field(default=None, description="Workspace root folder")
    assets_dir: str = Field(
        default=".images", description="Root-relative folder holding images"
    )
    batch_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Files scanned concurrently by link checks (1-50)",
    )
    move_batch_size: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Files rewritten concurrently after a move (1-50)",
    )
    mute_timeout_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Maximum time a programmatic write mutes the watcher",
    )

    model_config = {"frozen": True}


class GitSection(BaseModel):
    """Git remote, branch and identity settings."""

    remote: str = Field(default="origin", description="Remote name")
    branch: str = Field(default="main", description="Branch to sync")
    user_name: str | None = Field(default=None, description="Commit author name")
    user_email: str | None = Field(default=None, description="Commit author email")
    remote_url: str | None = Field(default=None, description="Remote URL")
    timeout_seconds: float = Field(
        default=120.0, gt=0, description="Timeout for a single git command"
    )

    model_config = {"frozen": True}


class SyncSection(BaseModel):
    """Auto-save and auto-sync timers."""

    auto_save_enabled: bool = True
    auto_save_delay_seconds: float = Field(default=10.0, ge=0)
    auto_sync_enabled: bool = True
    auto_sync_interval_seconds: float = Field(default=300.0, gt=0)
    commit_message_template: str = "Auto-sync at {timestamp}"

    model_config = {"frozen": True}


class LoggingSection(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()`` (zero-config)
    is always valid.
    """

    workspace: WorkspaceSection = Field(default_factory=WorkspaceSection)
    git: GitSection = Field(default_factory=GitSection)
    sync: SyncSection = Field(default_factory=SyncSection)
    logging: LoggingSection = Field(default_factory=LoggingSection)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> load_config() fallbacks
# ---------------------------------------------------------------------------

# runtime field name -> (section, key)
_FALLBACK_FIELDS: dict[str, tuple[str, str]] = {
    "workspace_root": ("workspace", "root"),
    "assets_dir": ("workspace", "assets_dir"),
    "batch_size": ("workspace", "batch_size"),
    "move_batch_size": ("workspace", "move_batch_size"),
    "mute_timeout": ("workspace", "mute_timeout_seconds"),
    "remote": ("git", "remote"),
    "branch": ("git", "branch"),
    "user_name": ("git", "user_name"),
    "user_email": ("git", "user_email"),
    "remote_url": ("git", "remote_url"),
    "git_timeout": ("git", "timeout_seconds"),
    "auto_save_enabled": ("sync", "auto_save_enabled"),
    "auto_save_delay": ("sync", "auto_save_delay_seconds"),
    "auto_sync_enabled": ("sync", "auto_sync_enabled"),
    "auto_sync_interval": ("sync", "auto_sync_interval_seconds"),
    "commit_message_template": ("sync", "commit_message_template"),
    "log_file": ("logging", "file"),
}


def to_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten a ``UnifiedConfig`` into ``Config`` field names.

    ``None`` values are omitted so they never mask built-in defaults.
    """
    fallbacks: dict[str, Any] = {}
    for field_name, (section, key) in _FALLBACK_FIELDS.items():
        value = getattr(getattr(unified, section), key)
        if value is not None:
            fallbacks[field_name] = value
    return fallbacks

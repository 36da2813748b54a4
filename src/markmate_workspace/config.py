"""Runtime configuration for the workspace engine and its MCP server.

Reads settings from CLI args, environment variables, .env files and YAML
config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    MARKMATE_WORKSPACE: Workspace root folder (required)
    MARKMATE_ASSETS_DIR: Image folder, relative to the root (default: .images)
    MARKMATE_BATCH_SIZE: Files scanned concurrently by link checks (default: 5)
    MARKMATE_REMOTE: Git remote name (default: origin)
    MARKMATE_BRANCH: Git branch to sync (default: main)
    MARKMATE_AUTO_SAVE: Save edits before syncing (default: true)
    MARKMATE_AUTO_SYNC: Sync on a timer (default: true)
    MARKMATE_GIT_TIMEOUT: Seconds before a git command is abandoned (default: 120)
    MARKMATE_DEBUG: Enable debug logging (default: false)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class Config:
    workspace_root: str
    assets_dir: str = ".images"
    batch_size: int = 5
    move_batch_size: int = 10
    mute_timeout: float = 1.0
    remote: str = "origin"
    branch: str = "main"
    user_name: str | None = None
    user_email: str | None = None
    remote_url: str | None = None
    git_timeout: float = 120.0
    auto_save_enabled: bool = True
    auto_save_delay: float = 10.0
    auto_sync_enabled: bool = True
    auto_sync_interval: float = 300.0
    commit_message_template: str = "Auto-sync at {timestamp}"
    log_file: str | None = None
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Normalizes ``workspace_root`` to an absolute path.

    Raises:
        ValueError: If the workspace root is missing or not a directory, or a
            numeric setting is out of range.
    """
    root = Path(config.workspace_root.strip()).expanduser()
    if not root.is_dir():
        raise ValueError(
            f"Workspace root '{config.workspace_root}' is not a directory. "
            "Set MARKMATE_WORKSPACE or pass --workspace."
        )
    config.workspace_root = str(root.resolve())

    config.assets_dir = config.assets_dir.strip().strip("/") or ".images"

    for name in ("batch_size", "move_batch_size"):
        value = getattr(config, name)
        if not (1 <= value <= 50):
            raise ValueError(f"Invalid {name} {value}: must be between 1 and 50")

    for name in ("git_timeout", "auto_sync_interval", "mute_timeout"):
        if getattr(config, name) <= 0:
            raise ValueError(f"Invalid {name}: must be positive")
    if config.auto_save_delay < 0:
        raise ValueError("Invalid auto_save_delay: must not be negative")

    if "{timestamp}" not in config.commit_message_template:
        logger.warning(
            "commit_message_template has no {timestamp} placeholder; "
            "every auto-sync commit will share one message"
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_number_env(key: str, kind: type, low: float, high: float | None = None):
    raw = os.getenv(key)
    if raw is None:
        return None
    bounds = f"between {low} and {high}" if high is not None else f"at least {low}"
    try:
        value = kind(raw)
    except ValueError:
        raise ValueError(f"Invalid {key} '{raw}': must be a number {bounds}") from None
    if value < low or (high is not None and value > high):
        raise ValueError(f"Invalid {key} '{raw}': must be a number {bounds}")
    return value


def load_config(
    workspace: str | None = None,
    debug: bool = False,
    log_file: str | None = None,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        workspace: Override workspace root (``--workspace``).
        debug: Enable debug logging (CLI flag).
        log_file: Override log file (``--log-file``).
        yaml_fallbacks: Flattened YAML values (see ``config_schema.to_fallbacks``).

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the workspace root is missing or any value is invalid.
    """
    fb = yaml_fallbacks or {}

    root = workspace or os.getenv("MARKMATE_WORKSPACE") or fb.get("workspace_root")
    if not root:
        raise ValueError(
            "Workspace root not found. Set MARKMATE_WORKSPACE environment variable, "
            "pass --workspace, or add 'workspace.root' to config.yml."
        )

    def pick(env_value, key: str, default):
        if env_value is not None:
            return env_value
        return fb.get(key, default)

    config = Config(
        workspace_root=root,
        assets_dir=pick(os.getenv("MARKMATE_ASSETS_DIR"), "assets_dir", ".images"),
        batch_size=pick(
            _get_number_env("MARKMATE_BATCH_SIZE", int, 1, 50), "batch_size", 5
        ),
        move_batch_size=int(fb.get("move_batch_size", 10)),
        mute_timeout=float(fb.get("mute_timeout", 1.0)),
        remote=pick(os.getenv("MARKMATE_REMOTE"), "remote", "origin"),
        branch=pick(os.getenv("MARKMATE_BRANCH"), "branch", "main"),
        user_name=fb.get("user_name"),
        user_email=fb.get("user_email"),
        remote_url=fb.get("remote_url"),
        git_timeout=pick(
            _get_number_env("MARKMATE_GIT_TIMEOUT", float, 1), "git_timeout", 120.0
        ),
        auto_save_enabled=pick(
            _get_bool_env("MARKMATE_AUTO_SAVE"), "auto_save_enabled", True
        ),
        auto_save_delay=float(fb.get("auto_save_delay", 10.0)),
        auto_sync_enabled=pick(
            _get_bool_env("MARKMATE_AUTO_SYNC"), "auto_sync_enabled", True
        ),
        auto_sync_interval=float(fb.get("auto_sync_interval", 300.0)),
        commit_message_template=fb.get(
            "commit_message_template", "Auto-sync at {timestamp}"
        ),
        log_file=log_file or fb.get("log_file"),
        debug=debug or bool(_get_bool_env("MARKMATE_DEBUG")),
    )

    validate_config(config)

    return config

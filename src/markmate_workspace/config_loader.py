"""
Hierarchical configuration loader for markmate_workspace.

Finds YAML config files by convention, merges them with "project wins"
semantics and expands ``${VAR}`` references afterwards.

Usage:
    from markmate_workspace.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MARKMATE_CONFIG"
PROJECT_CONFIG = Path(".markmate") / "config.yml"
GLOBAL_CONFIG = Path(".config") / "markmate" / "config.yml"

# ---------------------------------------------------------------------------
# 1. Env var interpolation
# ---------------------------------------------------------------------------

# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` in ``value``.

    An unset or empty variable expands to its default, or to ``""`` when
    there is none.
    """

    def _expand(match: re.Match) -> str:
        current = os.environ.get(match.group(1))
        if current:
            return current
        return match.group(2) or ""

    return _ENV_VAR_PATTERN.sub(_expand, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(item) for key, item in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# 2. Convention-based file discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config files, highest precedence first.

    Search order:
        1. ``MARKMATE_CONFIG`` env var (explicit single path)
        2. ``.markmate/config.yml`` in CWD (project-level)
        3. ``~/.config/markmate/config.yml`` (user-level)
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())
    candidates.append(Path.cwd() / PROJECT_CONFIG)
    candidates.append(Path.home() / GLOBAL_CONFIG)

    return [path for path in candidates if path.is_file()]


# ---------------------------------------------------------------------------
# 3. Config bootstrapping
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# markmate-workspace configuration
#
# Values can also come from environment variables (or a .env file):
#   MARKMATE_WORKSPACE, MARKMATE_ASSETS_DIR, MARKMATE_BATCH_SIZE,
#   MARKMATE_REMOTE, MARKMATE_BRANCH, MARKMATE_AUTO_SAVE, MARKMATE_AUTO_SYNC,
#   MARKMATE_GIT_TIMEOUT
#
# workspace:
#   root: ~/notes
#   assets_dir: .images
#   batch_size: 5
#   move_batch_size: 10
#
# git:
#   remote: origin
#   branch: main
#   user_name: ${GIT_AUTHOR_NAME:-MarkMate User}
#   user_email: ${GIT_AUTHOR_EMAIL:-user@markmate.local}
#   remote_url: git@example.com:me/notes.git
#   timeout_seconds: 120
#
# sync:
#   auto_save_enabled: true
#   auto_save_delay_seconds: 10
#   auto_sync_enabled: true
#   auto_sync_interval_seconds: 300
#   commit_message_template: "Auto-sync at {timestamp}"
#
# logging:
#   level: INFO
#   file: null
"""


def resolve_config_path() -> Path:
    """Return the active config file, or the project-level default path.

    Does not create anything; see ``ensure_config()``.
    """
    existing = discover_config_files()
    if existing:
        return existing[0]
    return Path.cwd() / PROJECT_CONFIG


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none exists.

    Args:
        target: Where to create the starter file; defaults to
            ``resolve_config_path()``.

    Returns:
        Path to the config file (existing or newly created).
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or resolve_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path


# ---------------------------------------------------------------------------
# 4. Hierarchical merge
# ---------------------------------------------------------------------------


def load_yaml_file(path: Path) -> Any:
    with open(path, encoding="utf-8") as fh:
        return yaml.safe_load(fh)


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    Files load from lowest precedence to highest; top-level keys of a later
    file replace (not deep-merge) those of earlier ones.  Env var
    interpolation runs on the merged result.

    Returns an empty dict when no config files exist (zero-config).
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using zero-config defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = load_yaml_file(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)

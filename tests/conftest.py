"""Shared pytest fixtures for markmate-workspace tests."""

import shutil
import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from markmate_workspace.config import Config
from markmate_workspace.core.git import GitRepository
from markmate_workspace.core.git_models import FileSyncState, GitStatus
from markmate_workspace.file_handler import WatchMuter, WorkspaceIO

requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git executable not available"
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "git: test needs the git executable")


def git(cwd: Path, *args: str) -> str:
    """Run git in ``cwd`` for test setup and return stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


def write(root: Path, rel_path: str, content: str) -> Path:
    """Create ``root/rel_path`` with ``content``, making parent folders."""
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def workspace_root(tmp_path):
    root = tmp_path / "notes"
    root.mkdir()
    return root


@pytest.fixture
def io(workspace_root):
    return WorkspaceIO(workspace_root, WatchMuter())


@pytest.fixture
def make_config(workspace_root):
    """Factory for a valid Config rooted at the test workspace."""

    def _make(**overrides):
        values = {"workspace_root": str(workspace_root), "auto_sync_enabled": False}
        values.update(overrides)
        return Config(**values)

    return _make


@pytest.fixture
def git_remote(tmp_path):
    """A bare repository acting as the shared remote."""
    remote = tmp_path / "remote.git"
    git(tmp_path, "init", "--bare", str(remote))
    git(remote, "symbolic-ref", "HEAD", "refs/heads/main")
    return remote


@pytest.fixture
def git_workspace(workspace_root, git_remote):
    """Initialised working tree with one commit pushed to ``git_remote``."""
    repo = GitRepository(workspace_root)
    repo.init_repository("Test User", "test@example.com")
    git(workspace_root, "remote", "add", "origin", str(git_remote))
    write(workspace_root, "README.md", "# Notes\n")
    git(workspace_root, "add", "-A")
    git(workspace_root, "commit", "-m", "Initial commit")
    git(workspace_root, "push", "origin", "main")
    return workspace_root


@pytest.fixture
def second_clone(tmp_path, git_remote, git_workspace):
    """Another clone of the remote, standing in for a second device."""
    clone = tmp_path / "other"
    git(tmp_path, "clone", str(git_remote), str(clone))
    git(clone, "config", "user.name", "Other User")
    git(clone, "config", "user.email", "other@example.com")
    return clone


@pytest.fixture
def fake_git():
    """A MagicMock GitRepository that reports a clean, synced tree."""
    repo = MagicMock(spec=GitRepository)
    repo.remote = "origin"
    repo.branch = "main"
    repo.remotes.return_value = ["origin"]
    repo.current_branch.return_value = "main"
    repo.commit_all.return_value = True
    repo.remote_branch_exists.return_value = True
    repo.ahead_behind.return_value = (0, 0)
    repo.status.return_value = GitStatus(branch="main")
    repo.file_sync_state.return_value = FileSyncState(has_local_changes=False)
    return repo

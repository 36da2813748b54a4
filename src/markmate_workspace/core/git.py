"""Git facade for a workspace working tree.

Every method runs one or more ``git`` subprocesses synchronously and either
returns structured data or raises ``GitOperationError`` carrying the tool's
output.  Callers must serialise calls per working tree and run them off the
event loop (see ``run_sync``).
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
import subprocess
from datetime import datetime, timezone
from pathlib import Path

from ..errors import GitOperationError
from .git_models import FileSyncState, GitCommit, GitFileStatus, GitStatus

logger = logging.getLogger(__name__)

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_TRACKING_RE = re.compile(r"\[(?P<info>[^\]]+)\]")

DEFAULT_USER_NAME = "MarkMate User"
DEFAULT_USER_EMAIL = "user@markmate.local"


def parse_porcelain_status(output: str) -> GitStatus:
    """Parse ``git status --porcelain=v1 --branch -z`` output.

    Args:
        output: Raw NUL-separated status output.

    Returns:
        ``GitStatus`` with branch tracking info and one entry per path.
    """
    records = output.split("\0")
    branch: str | None = None
    upstream: str | None = None
    ahead = behind = 0
    files: list[GitFileStatus] = []

    index = 0
    while index < len(records):
        record = records[index]
        index += 1
        if not record:
            continue
        if record.startswith("## "):
            header = record[3:]
            tracking = _TRACKING_RE.search(header)
            if tracking:
                for part in tracking.group("info").split(","):
                    word, _, count = part.strip().partition(" ")
                    if word == "ahead" and count.isdigit():
                        ahead = int(count)
                    elif word == "behind" and count.isdigit():
                        behind = int(count)
                header = header[: tracking.start()].strip()
            for prefix in ("No commits yet on ", "Initial commit on "):
                if header.startswith(prefix):
                    header = header[len(prefix) :]
            local, sep, remote = header.partition("...")
            branch = None if local.startswith("HEAD (") else local.strip() or None
            upstream = remote.strip() or None if sep else None
            continue

        code, path = record[:2], record[3:]
        orig_path = None
        if code[0] in ("R", "C") and index < len(records):
            orig_path = records[index]
            index += 1
        files.append(
            GitFileStatus(
                path=path,
                index=code[0],
                worktree=code[1],
                orig_path=orig_path,
            )
        )

    return GitStatus(
        branch=branch,
        upstream=upstream,
        ahead=ahead,
        behind=behind,
        files=files,
    )


class GitRepository:
    """Thin wrapper over the ``git`` binary for one working tree.

    Args:
        root: Working tree root.
        timeout: Seconds before a single git subprocess is abandoned.
        remote: Default remote name.
        branch: Default branch name.
    """

    def __init__(
        self,
        root: Path,
        timeout: float = 120.0,
        remote: str = "origin",
        branch: str = "main",
    ) -> None:
        self.root = Path(root)
        self.timeout = timeout
        self.remote = remote
        self.branch = branch

    # ------------------------------------------------------------------
    # Subprocess plumbing
    # ------------------------------------------------------------------

    def _run(
        self,
        *args: str,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess:
        command = ["git", *args]
        run_env = {**os.environ, "GIT_TERMINAL_PROMPT": "0", "GIT_EDITOR": ":"}
        if env:
            run_env.update(env)
        logger.debug("Running %s in %s", " ".join(command), self.root)
        try:
            result = subprocess.run(
                command,
                cwd=str(self.root),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                env=run_env,
            )
        except subprocess.TimeoutExpired:
            raise GitOperationError(
                args, f"timed out after {self.timeout:g}s"
            ) from None
        except FileNotFoundError:
            raise GitOperationError(args, "git executable not found") from None

        if check and result.returncode != 0:
            message = "\n".join(
                part
                for part in (result.stderr.strip(), result.stdout.strip())
                if part
            ) or f"exit code {result.returncode}"
            raise GitOperationError(args, message, result.returncode)
        return result

    def _git(self, *args: str, **kwargs) -> str:
        return self._run(*args, **kwargs).stdout

    # ------------------------------------------------------------------
    # Repository setup
    # ------------------------------------------------------------------

    def is_repository(self) -> bool:
        result = self._run("rev-parse", "--is-inside-work-tree", check=False)
        return result.returncode == 0 and result.stdout.strip() == "true"

    def init_repository(
        self,
        user_name: str = DEFAULT_USER_NAME,
        user_email: str = DEFAULT_USER_EMAIL,
    ) -> bool:
        """Initialise a repository with a default identity.

        Returns:
            ``True`` if a repository was created, ``False`` if one existed.
        """
        if self.is_repository():
            return False
        self._git("init")
        self._git("symbolic-ref", "HEAD", f"refs/heads/{self.branch}")
        self._git("config", "user.name", user_name)
        self._git("config", "user.email", user_email)
        logger.info("Initialised git repository in %s", self.root)
        return True

    def configure_identity_and_remote(
        self, name: str, email: str, url: str, remote: str | None = None
    ) -> None:
        """Set the commit identity and remote URL, then verify by fetching."""
        remote = remote or self.remote
        self._git("config", "user.name", name)
        self._git("config", "user.email", email)
        if remote in self.remotes():
            self._git("remote", "set-url", remote, url)
        else:
            self._git("remote", "add", remote, url)
        self._git("fetch", remote)

    def remotes(self) -> list[str]:
        return [line.strip() for line in self._git("remote").splitlines() if line.strip()]

    def remote_branch_exists(
        self, remote: str | None = None, branch: str | None = None
    ) -> bool:
        """Return True if ``branch`` exists on ``remote`` (queries the remote)."""
        result = self._run(
            "ls-remote",
            "--exit-code",
            "--heads",
            remote or self.remote,
            branch or self.branch,
            check=False,
        )
        if result.returncode == 2:
            return False
        if result.returncode != 0:
            raise GitOperationError(
                ("ls-remote", remote or self.remote),
                result.stderr.strip() or f"exit code {result.returncode}",
                result.returncode,
            )
        return True

    def current_branch(self) -> str | None:
        result = self._run("symbolic-ref", "--short", "-q", "HEAD", check=False)
        return result.stdout.strip() or None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> GitStatus:
        output = self._git(
            "status", "--porcelain=v1", "--branch", "-z", "--untracked-files=all"
        )
        return parse_porcelain_status(output)

    def raw_status(self) -> str:
        """Human readable ``git status`` output for diagnostics."""
        return self._git("status")

    def ahead_behind(
        self, remote: str | None = None, branch: str | None = None
    ) -> tuple[int, int]:
        """Count commits ahead of and behind ``remote/branch``.

        Returns ``(0, 0)`` when the remote-tracking ref does not exist yet.
        """
        ref = f"{remote or self.remote}/{branch or self.branch}"
        result = self._run(
            "rev-list", "--left-right", "--count", f"HEAD...{ref}", check=False
        )
        if result.returncode != 0:
            return (0, 0)
        left, _, right = result.stdout.strip().partition("\t")
        return (int(left or 0), int(right or 0))

    def file_sync_state(self, path: str) -> FileSyncState:
        """Combine working tree status and ahead/behind counts for ``path``."""
        status = self.status()
        ahead, behind = self.ahead_behind()
        return FileSyncState(
            has_local_changes=status.has_local_changes(path),
            has_unpushed_commits=ahead > 0,
            has_remote_updates=behind > 0,
            is_conflicted=status.is_conflicted(path),
        )

    # ------------------------------------------------------------------
    # Commit / pull / push
    # ------------------------------------------------------------------

    def commit_all(self, message: str) -> bool:
        """Stage everything and commit if there is anything to commit.

        Returns:
            ``True`` if a commit was created.
        """
        self._git("add", "-A")
        if not self.status().staged:
            logger.debug("Nothing to commit in %s", self.root)
            return False
        self._git("commit", "-m", message)
        logger.info("Committed workspace changes: %s", message)
        return True

    def fetch(self, remote: str | None = None, branch: str | None = None) -> None:
        self._git("fetch", remote or self.remote, branch or self.branch)

    def pull_rebase(self, remote: str | None = None, branch: str | None = None) -> None:
        self._git("pull", "--rebase", remote or self.remote, branch or self.branch)

    def push(self, remote: str | None = None, branch: str | None = None) -> None:
        self._git("push", remote or self.remote, branch or self.branch)

    def complete_merge(self, message: str) -> None:
        """Stage resolved files and finish the rebase or merge in progress."""
        self._git("add", "-A")
        try:
            self._git("rebase", "--continue")
        except GitOperationError as exc:
            logger.debug("rebase --continue failed (%s); committing instead", exc.message)
            self._git("commit", "-m", message)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def log_for_file(self, path: str, limit: int = 20) -> list[GitCommit]:
        output = self._git(
            "log",
            f"--max-count={limit}",
            f"--format=%H{_FIELD_SEP}%an{_FIELD_SEP}%aI{_FIELD_SEP}%s{_RECORD_SEP}",
            "--",
            path,
        )
        commits: list[GitCommit] = []
        for record in output.split(_RECORD_SEP):
            record = record.strip()
            if not record:
                continue
            commit_hash, author, date, message = record.split(_FIELD_SEP, 3)
            commits.append(
                GitCommit(
                    hash=commit_hash,
                    message=message,
                    date=date,
                    author=author or "Unknown",
                    file_path=path,
                )
            )
        return commits

    def show_file_at_commit(self, path: str, commit_hash: str) -> str:
        return self._git("show", f"{commit_hash}:{path}")

    def diff_commits(self, path: str, from_commit: str, to_commit: str) -> str:
        return self._git("diff", f"{from_commit}..{to_commit}", "--", path)

    def diff_working_tree(self, path: str) -> str:
        return self._git("diff", "HEAD", "--", path)

    # ------------------------------------------------------------------
    # Restore / discard
    # ------------------------------------------------------------------

    def restore_file_from_commit(self, path: str, commit_hash: str) -> str | None:
        """Restore ``path`` to its content at ``commit_hash`` and commit that.

        A failure after the restore step leaves the working tree changed but
        uncommitted; no rollback is attempted.

        Returns:
            The commit message, or ``None`` if the file already matched.
        """
        self._git("restore", "--source", commit_hash, "--", path)
        self._git("add", "--", path)
        staged = self._run("diff", "--cached", "--quiet", "--", path, check=False)
        if staged.returncode == 0:
            logger.info("%s already matches %s; nothing to commit", path, commit_hash[:8])
            return None
        timestamp = datetime.now(timezone.utc).isoformat()
        message = (
            f"Restore: {posixpath.basename(path)} to {commit_hash[:8]} at {timestamp}"
        )
        self._git("commit", "-m", message, "--", path)
        return message

    def discard_working_changes(self, path: str) -> None:
        self._git("checkout", "HEAD", "--", path)

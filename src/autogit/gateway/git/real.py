"""Production Git implementation using subprocess."""

import logging
import subprocess
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from autogit.core.errors import (
    ConflictError,
    NonFastForwardError,
    TransientNetworkError,
)
from autogit.gateway.git.abc import Git, parse_conflicted_paths
from autogit.gateway.git.lock import wait_for_index_lock
from autogit.gateway.git.types import CommitInfo
from autogit.gateway.time.abc import Time
from autogit.subprocess_utils import copied_env_for_git_subprocess, run_subprocess_with_context

logger = logging.getLogger(__name__)

# Timeout in seconds for network-touching git operations (fetch, pull, clone, ls-remote).
_GIT_NETWORK_TIMEOUT = 120

_GIT_PUSH_TIMEOUT = 30

_NON_FAST_FORWARD_MARKERS = ("non-fast-forward", "fetch first")

# NUL-separated: sha, subject, strict ISO author date
_LOG_FORMAT = "%H%x00%s%x00%aI"


def _parse_log_line(line: str) -> CommitInfo | None:
    parts = line.split("\x00")
    if len(parts) != 3:
        return None
    sha, subject, authored = parts
    return CommitInfo(sha=sha, message=subject, authored_at=datetime.fromisoformat(authored))


class RealGit(Git):
    """Git gateway backed by the git executable."""

    def __init__(self, time: Time) -> None:
        self._time = time

    def is_repository(self, path: Path) -> bool:
        if not path.is_dir():
            return False
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=path,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return False
        return Path(result.stdout.strip()).resolve() == path.resolve()

    def init_repository(self, path: Path) -> None:
        run_subprocess_with_context(
            cmd=["git", "init"],
            operation_context=f"initialize repository at {path}",
            cwd=path,
        )

    def clone_repository(self, url: str, dest: Path, *, depth: int | None) -> None:
        cmd = ["git", "clone"]
        if depth is not None:
            cmd.extend(["--depth", str(depth)])
        cmd.extend([url, str(dest)])
        run_subprocess_with_context(
            cmd=cmd,
            operation_context=f"clone {url}",
            cwd=dest.parent,
            timeout=_GIT_NETWORK_TIMEOUT,
            env=copied_env_for_git_subprocess(),
        )

    def list_remotes(self, repo_root: Path) -> list[str]:
        result = run_subprocess_with_context(
            cmd=["git", "remote"],
            operation_context="list remotes",
            cwd=repo_root,
        )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def get_remote_url(self, repo_root: Path, remote: str) -> str:
        result = subprocess.run(
            ["git", "remote", "get-url", remote],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            raise ValueError(f"Remote '{remote}' not found in repository")
        url = result.stdout.strip()
        if not url:
            raise ValueError(f"Remote '{remote}' has no URL configured")
        return url

    def get_config_value(self, repo_root: Path, key: str) -> str | None:
        result = subprocess.run(
            ["git", "config", "--get", key],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def get_current_branch(self, repo_root: Path) -> str | None:
        # symbolic-ref also works on an unborn branch, unlike rev-parse
        result = subprocess.run(
            ["git", "symbolic-ref", "--short", "-q", "HEAD"],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def list_local_branches(self, repo_root: Path) -> list[str]:
        result = run_subprocess_with_context(
            cmd=["git", "for-each-ref", "--format=%(refname:short)", "refs/heads/"],
            operation_context="list local branches",
            cwd=repo_root,
        )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def branch_exists_on_remote(self, repo_root: Path, remote: str, branch: str) -> bool:
        try:
            result = run_subprocess_with_context(
                cmd=["git", "ls-remote", "--heads", remote, branch],
                operation_context=f"check for branch '{branch}' on remote '{remote}'",
                cwd=repo_root,
                timeout=_GIT_NETWORK_TIMEOUT,
                env=copied_env_for_git_subprocess(),
            )
        except (RuntimeError, TransientNetworkError) as e:
            logger.debug("Treating remote branch as absent: %s", e)
            return False
        return any(
            line.split("\t")[-1].strip() == f"refs/heads/{branch}"
            for line in result.stdout.splitlines()
        )

    def checkout_branch(self, repo_root: Path, branch: str) -> None:
        run_subprocess_with_context(
            cmd=["git", "checkout", branch],
            operation_context=f"checkout branch '{branch}'",
            cwd=repo_root,
        )

    def create_and_checkout_branch(self, repo_root: Path, branch: str) -> None:
        run_subprocess_with_context(
            cmd=["git", "checkout", "-b", branch],
            operation_context=f"create branch '{branch}'",
            cwd=repo_root,
        )

    def fetch(self, repo_root: Path, remote: str) -> None:
        run_subprocess_with_context(
            cmd=["git", "fetch", remote],
            operation_context=f"fetch from remote '{remote}'",
            cwd=repo_root,
            timeout=_GIT_NETWORK_TIMEOUT,
            env=copied_env_for_git_subprocess(),
        )

    def pull_branch(self, repo_root: Path, remote: str, branch: str) -> None:
        wait_for_index_lock(repo_root, self._time)
        run_subprocess_with_context(
            cmd=["git", "pull", "--no-rebase", "--no-edit", remote, branch],
            operation_context=f"pull branch '{branch}' from remote '{remote}'",
            cwd=repo_root,
            timeout=_GIT_NETWORK_TIMEOUT,
            env=copied_env_for_git_subprocess(),
        )

    def delete_remote_branch(self, repo_root: Path, remote: str, branch: str) -> None:
        run_subprocess_with_context(
            cmd=["git", "push", remote, "--delete", branch],
            operation_context=f"delete branch '{branch}' from remote '{remote}'",
            cwd=repo_root,
            timeout=_GIT_PUSH_TIMEOUT,
            env=copied_env_for_git_subprocess(),
        )

    def push_to_remote(
        self,
        repo_root: Path,
        remote: str,
        branch: str,
        *,
        set_upstream: bool,
        force: bool,
    ) -> None:
        cmd = ["git", "push"]
        if set_upstream:
            cmd.append("-u")
        if force:
            cmd.append("--force")
        cmd.extend([remote, branch])

        try:
            run_subprocess_with_context(
                cmd=cmd,
                operation_context=f"push branch '{branch}' to remote '{remote}'",
                cwd=repo_root,
                timeout=_GIT_PUSH_TIMEOUT,
                env=copied_env_for_git_subprocess(),
            )
        except RuntimeError as e:
            if any(marker in str(e) for marker in _NON_FAST_FORWARD_MARKERS):
                raise NonFastForwardError(str(e)) from e
            raise

    def stage_files(self, repo_root: Path, paths: Sequence[str]) -> None:
        wait_for_index_lock(repo_root, self._time)
        run_subprocess_with_context(
            cmd=["git", "add", "--", *paths],
            operation_context=f"stage {', '.join(paths)}",
            cwd=repo_root,
        )

    def commit(
        self,
        repo_root: Path,
        message: str,
        *,
        authored_at: datetime | None,
        co_author: str | None,
        no_verify: bool,
    ) -> None:
        wait_for_index_lock(repo_root, self._time)
        cmd = ["git", "commit", "-m", message]
        if co_author is not None:
            cmd.extend(["-m", f"Co-authored-by: {co_author}"])
        if no_verify:
            cmd.append("--no-verify")

        env = copied_env_for_git_subprocess()
        if authored_at is not None:
            stamp = authored_at.isoformat()
            env["GIT_AUTHOR_DATE"] = stamp
            env["GIT_COMMITTER_DATE"] = stamp

        run_subprocess_with_context(
            cmd=cmd,
            operation_context=f"commit '{message}'",
            cwd=repo_root,
            env=env,
        )

    def merge(self, repo_root: Path, ref: str) -> None:
        result = run_subprocess_with_context(
            cmd=["git", "merge", "--no-edit", ref],
            operation_context=f"merge '{ref}'",
            cwd=repo_root,
            check=False,
        )
        if result.returncode == 0:
            return
        conflicted = self.get_conflicted_files(repo_root)
        if conflicted:
            raise ConflictError(
                f"Merge of '{ref}' produced conflicts in {len(conflicted)} file(s)",
                paths=conflicted,
            )
        detail = result.stderr.strip() or result.stdout.strip()
        raise RuntimeError(f"Failed to merge '{ref}': {detail}")

    def abort_merge(self, repo_root: Path) -> None:
        run_subprocess_with_context(
            cmd=["git", "merge", "--abort"],
            operation_context="abort merge",
            cwd=repo_root,
        )

    def get_conflicted_files(self, repo_root: Path) -> list[str]:
        result = run_subprocess_with_context(
            cmd=["git", "status", "--porcelain"],
            operation_context="get conflicted files",
            cwd=repo_root,
        )
        return parse_conflicted_paths(result.stdout)

    def get_head_commit(self, repo_root: Path, branch: str) -> CommitInfo | None:
        result = subprocess.run(
            ["git", "log", "-1", f"--format={_LOG_FORMAT}", branch, "--"],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0 or not result.stdout.strip():
            return None
        return _parse_log_line(result.stdout.strip())

    def list_commits(
        self, repo_root: Path, branch: str, *, since: datetime, until: datetime
    ) -> list[CommitInfo]:
        result = subprocess.run(
            [
                "git",
                "log",
                f"--format={_LOG_FORMAT}",
                f"--since={since.isoformat()}",
                f"--until={until.isoformat()}",
                branch,
                "--",
            ],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            logger.debug("git log on %s failed: %s", branch, result.stderr.strip())
            return []
        commits: list[CommitInfo] = []
        for line in result.stdout.splitlines():
            info = _parse_log_line(line)
            if info is not None and since <= info.authored_at <= until:
                commits.append(info)
        return commits

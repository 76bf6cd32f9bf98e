"""Abstract interface for the git primitives the pipeline drives.

The pipeline owns sequencing and failure interpretation; implementations
only run one primitive per call.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from autogit.gateway.git.types import CommitInfo

# Porcelain v1 XY codes for unmerged paths
CONFLICT_STATUS_CODES = frozenset({"UU", "AA", "DD", "AU", "UA", "DU", "UD"})


def parse_conflicted_paths(porcelain: str) -> list[str]:
    """Return unmerged paths from `git status --porcelain` output."""
    paths: list[str] = []
    for line in porcelain.splitlines():
        if len(line) < 4:
            continue
        if line[:2] in CONFLICT_STATUS_CODES:
            paths.append(line[3:].strip())
    return paths


class Git(ABC):
    """Git operations against one working copy."""

    # ----- Repository setup -----

    @abstractmethod
    def is_repository(self, path: Path) -> bool:
        """True if ``path`` is the top level of a git working copy."""
        ...

    @abstractmethod
    def init_repository(self, path: Path) -> None: ...

    @abstractmethod
    def clone_repository(self, url: str, dest: Path, *, depth: int | None) -> None:
        """Clone ``url`` into ``dest``; shallow when ``depth`` is set.

        Raises:
            RuntimeError: If the clone fails
        """
        ...

    @abstractmethod
    def list_remotes(self, repo_root: Path) -> list[str]: ...

    @abstractmethod
    def get_remote_url(self, repo_root: Path, remote: str) -> str:
        """Return the fetch URL of ``remote``.

        Raises:
            ValueError: If the remote does not exist or has no URL
        """
        ...

    @abstractmethod
    def get_config_value(self, repo_root: Path, key: str) -> str | None: ...

    # ----- Branches -----

    @abstractmethod
    def get_current_branch(self, repo_root: Path) -> str | None:
        """Return the checked-out branch, or None when HEAD is detached."""
        ...

    @abstractmethod
    def list_local_branches(self, repo_root: Path) -> list[str]: ...

    @abstractmethod
    def branch_exists_on_remote(self, repo_root: Path, remote: str, branch: str) -> bool:
        """True if ``remote`` has ``branch``. A failed query reports False."""
        ...

    @abstractmethod
    def checkout_branch(self, repo_root: Path, branch: str) -> None:
        """Raises RuntimeError if the branch cannot be checked out."""
        ...

    @abstractmethod
    def create_and_checkout_branch(self, repo_root: Path, branch: str) -> None:
        """Create ``branch`` at HEAD and check it out."""
        ...

    @abstractmethod
    def fetch(self, repo_root: Path, remote: str) -> None: ...

    @abstractmethod
    def pull_branch(self, repo_root: Path, remote: str, branch: str) -> None: ...

    @abstractmethod
    def delete_remote_branch(self, repo_root: Path, remote: str, branch: str) -> None: ...

    @abstractmethod
    def push_to_remote(
        self,
        repo_root: Path,
        remote: str,
        branch: str,
        *,
        set_upstream: bool,
        force: bool,
    ) -> None:
        """Push ``branch`` to ``remote``.

        Raises:
            NonFastForwardError: If the remote rejects the push as non-fast-forward
            TransientNetworkError: If the push times out
            RuntimeError: For any other push failure
        """
        ...

    # ----- Commits -----

    @abstractmethod
    def stage_files(self, repo_root: Path, paths: Sequence[str]) -> None: ...

    @abstractmethod
    def commit(
        self,
        repo_root: Path,
        message: str,
        *,
        authored_at: datetime | None,
        co_author: str | None,
        no_verify: bool,
    ) -> None:
        """Commit the index.

        Args:
            repo_root: Repository root
            message: Commit subject
            authored_at: Timestamp for both author and committer dates;
                None uses the current time
            co_author: "Name <email>" added as a Co-authored-by trailer
            no_verify: Skip commit hooks
        """
        ...

    # ----- Merging -----

    @abstractmethod
    def merge(self, repo_root: Path, ref: str) -> None:
        """Merge ``ref`` into the current branch with the default message.

        Raises:
            ConflictError: If the merge stops with unmerged paths
            RuntimeError: For any other merge failure
        """
        ...

    @abstractmethod
    def abort_merge(self, repo_root: Path) -> None: ...

    @abstractmethod
    def get_conflicted_files(self, repo_root: Path) -> list[str]: ...

    # ----- History -----

    @abstractmethod
    def get_head_commit(self, repo_root: Path, branch: str) -> CommitInfo | None: ...

    @abstractmethod
    def list_commits(
        self, repo_root: Path, branch: str, *, since: datetime, until: datetime
    ) -> list[CommitInfo]:
        """Commits reachable from ``branch`` authored within [since, until], newest first."""
        ...

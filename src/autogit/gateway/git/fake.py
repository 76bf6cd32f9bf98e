"""Fake git operations for testing.

FakeGit is an in-memory implementation that accepts pre-configured state
in its constructor. Construct instances directly with keyword arguments.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from autogit.core.errors import ConflictError
from autogit.gateway.git.abc import Git
from autogit.gateway.git.types import CommitInfo


@dataclass(frozen=True)
class RecordedCommit:
    repo_root: Path
    branch: str | None
    message: str
    authored_at: datetime | None
    co_author: str | None
    no_verify: bool


@dataclass(frozen=True)
class RecordedPush:
    remote: str
    branch: str
    set_upstream: bool
    force: bool


class FakeGit(Git):
    """In-memory fake implementation of git operations.

    Constructor Injection:
    ---------------------
    All INITIAL state is provided via constructor. Operation methods mutate
    that state the way git would (pushing creates the remote branch, staging
    a conflicted path resolves it, and so on).

    Failure Injection:
    -----------------
    - push_failures: exceptions raised by successive push_to_remote() calls;
      once exhausted, pushes succeed
    - merge_conflicts: ref -> paths; merge(ref) raises ConflictError once
      and marks the paths as unmerged
    - *_raises: exception raised by every call of that operation

    Mutation Tracking:
    -----------------
    - checked_out_branches, created_branches, pulled_branches, fetched_remotes
    - deleted_remote_branches, pushes, staged_files, commits
    - merged_refs, aborted_merges, cloned_urls, initialized_paths
    """

    def __init__(
        self,
        *,
        repositories: set[Path] | None = None,
        remotes: dict[Path, dict[str, str]] | None = None,
        current_branches: dict[Path, str | None] | None = None,
        local_branches: dict[Path, list[str]] | None = None,
        remote_branches: dict[Path, list[str]] | None = None,
        config_values: dict[str, str] | None = None,
        commit_history: dict[str, list[CommitInfo]] | None = None,
        merge_conflicts: dict[str, list[str]] | None = None,
        push_failures: list[Exception] | None = None,
        checkout_raises: dict[str, Exception] | None = None,
        create_branch_raises: Exception | None = None,
        pull_raises: Exception | None = None,
        fetch_raises: Exception | None = None,
        delete_remote_branch_raises: Exception | None = None,
        commit_raises: Exception | None = None,
        merge_raises: Exception | None = None,
        clone_raises: Exception | None = None,
        init_raises: Exception | None = None,
        unresolvable_paths: set[str] | None = None,
    ) -> None:
        """Create FakeGit with pre-configured state.

        Args:
            repositories: Paths that are working-copy roots
            remotes: repo_root -> {remote name: url}
            current_branches: repo_root -> checked-out branch
            local_branches: repo_root -> local branch names
            remote_branches: repo_root -> remote branches as 'origin/name'
            config_values: git config key -> value
            commit_history: branch -> pre-existing commits, newest first
            merge_conflicts: ref -> paths left unmerged when that ref is merged
            push_failures: Exceptions raised by successive pushes
            checkout_raises: branch -> exception raised when checking it out
            create_branch_raises: Exception for create_and_checkout_branch()
            pull_raises: Exception for pull_branch()
            fetch_raises: Exception for fetch()
            delete_remote_branch_raises: Exception for delete_remote_branch()
            commit_raises: Exception for commit()
            merge_raises: Exception for merge() when the ref has no conflicts
            clone_raises: Exception for clone_repository()
            init_raises: Exception for init_repository()
            unresolvable_paths: Paths that stay unmerged even after staging
        """
        self._repositories = set(repositories or set())
        self._remotes = {k: dict(v) for k, v in (remotes or {}).items()}
        self._current_branches = dict(current_branches or {})
        self._local_branches = {k: list(v) for k, v in (local_branches or {}).items()}
        self._remote_branches = {k: list(v) for k, v in (remote_branches or {}).items()}
        self._config_values = config_values or {}
        self._commit_history = {k: list(v) for k, v in (commit_history or {}).items()}
        self._merge_conflicts = dict(merge_conflicts or {})
        self._push_failures = list(push_failures or [])
        self._checkout_raises = checkout_raises or {}
        self._create_branch_raises = create_branch_raises
        self._pull_raises = pull_raises
        self._fetch_raises = fetch_raises
        self._delete_remote_branch_raises = delete_remote_branch_raises
        self._commit_raises = commit_raises
        self._merge_raises = merge_raises
        self._clone_raises = clone_raises
        self._init_raises = init_raises
        self._unresolvable_paths = unresolvable_paths or set()

        self._conflicted: dict[Path, list[str]] = {}

        # Mutation tracking
        self._checked_out_branches: list[str] = []
        self._created_branches: list[str] = []
        self._pulled_branches: list[tuple[str, str]] = []
        self._fetched_remotes: list[str] = []
        self._deleted_remote_branches: list[tuple[str, str]] = []
        self._pushes: list[RecordedPush] = []
        self._staged_files: list[str] = []
        self._commits: list[RecordedCommit] = []
        self._merged_refs: list[str] = []
        self._aborted_merges: list[Path] = []
        self._cloned_urls: list[tuple[str, Path]] = []
        self._initialized_paths: list[Path] = []

    # ----- Repository setup -----

    def is_repository(self, path: Path) -> bool:
        return path in self._repositories

    def init_repository(self, path: Path) -> None:
        if self._init_raises is not None:
            raise self._init_raises
        self._repositories.add(path)
        self._initialized_paths.append(path)
        self._current_branches.setdefault(path, "main")
        self._local_branches.setdefault(path, [])

    def clone_repository(self, url: str, dest: Path, *, depth: int | None) -> None:
        if self._clone_raises is not None:
            raise self._clone_raises
        self._cloned_urls.append((url, dest))
        self._repositories.add(dest)
        self._remotes.setdefault(dest, {})["origin"] = url
        self._current_branches[dest] = "main"
        self._local_branches[dest] = ["main"]
        self._remote_branches[dest] = ["origin/main"]

    def list_remotes(self, repo_root: Path) -> list[str]:
        return list(self._remotes.get(repo_root, {}))

    def get_remote_url(self, repo_root: Path, remote: str) -> str:
        url = self._remotes.get(repo_root, {}).get(remote)
        if url is None:
            raise ValueError(f"Remote '{remote}' not found in repository")
        return url

    def get_config_value(self, repo_root: Path, key: str) -> str | None:
        return self._config_values.get(key)

    # ----- Branches -----

    def get_current_branch(self, repo_root: Path) -> str | None:
        return self._current_branches.get(repo_root)

    def list_local_branches(self, repo_root: Path) -> list[str]:
        return list(self._local_branches.get(repo_root, []))

    def branch_exists_on_remote(self, repo_root: Path, remote: str, branch: str) -> bool:
        return f"{remote}/{branch}" in self._remote_branches.get(repo_root, [])

    def checkout_branch(self, repo_root: Path, branch: str) -> None:
        if branch in self._checkout_raises:
            raise self._checkout_raises[branch]
        if branch not in self._local_branches.get(repo_root, []):
            raise RuntimeError(
                f"Failed to checkout branch '{branch}': pathspec did not match"
            )
        self._current_branches[repo_root] = branch
        self._checked_out_branches.append(branch)

    def create_and_checkout_branch(self, repo_root: Path, branch: str) -> None:
        if self._create_branch_raises is not None:
            raise self._create_branch_raises
        branches = self._local_branches.setdefault(repo_root, [])
        if branch in branches:
            raise RuntimeError(f"Failed to create branch '{branch}': already exists")
        branches.append(branch)
        self._created_branches.append(branch)
        self._current_branches[repo_root] = branch
        self._checked_out_branches.append(branch)

    def fetch(self, repo_root: Path, remote: str) -> None:
        if self._fetch_raises is not None:
            raise self._fetch_raises
        self._fetched_remotes.append(remote)

    def pull_branch(self, repo_root: Path, remote: str, branch: str) -> None:
        if self._pull_raises is not None:
            raise self._pull_raises
        self._pulled_branches.append((remote, branch))

    def delete_remote_branch(self, repo_root: Path, remote: str, branch: str) -> None:
        if self._delete_remote_branch_raises is not None:
            raise self._delete_remote_branch_raises
        self._deleted_remote_branches.append((remote, branch))
        ref = f"{remote}/{branch}"
        self._remote_branches[repo_root] = [
            b for b in self._remote_branches.get(repo_root, []) if b != ref
        ]

    def push_to_remote(
        self,
        repo_root: Path,
        remote: str,
        branch: str,
        *,
        set_upstream: bool,
        force: bool,
    ) -> None:
        self._pushes.append(
            RecordedPush(remote=remote, branch=branch, set_upstream=set_upstream, force=force)
        )
        if self._push_failures:
            raise self._push_failures.pop(0)
        remote_branches = self._remote_branches.setdefault(repo_root, [])
        ref = f"{remote}/{branch}"
        if ref not in remote_branches:
            remote_branches.append(ref)

    # ----- Commits -----

    def stage_files(self, repo_root: Path, paths: Sequence[str]) -> None:
        self._staged_files.extend(paths)
        if repo_root in self._conflicted:
            self._conflicted[repo_root] = [
                p for p in self._conflicted[repo_root]
                if p not in paths or p in self._unresolvable_paths
            ]

    def commit(
        self,
        repo_root: Path,
        message: str,
        *,
        authored_at: datetime | None,
        co_author: str | None,
        no_verify: bool,
    ) -> None:
        if self._commit_raises is not None:
            raise self._commit_raises
        self._commits.append(
            RecordedCommit(
                repo_root=repo_root,
                branch=self._current_branches.get(repo_root),
                message=message,
                authored_at=authored_at,
                co_author=co_author,
                no_verify=no_verify,
            )
        )
        self._conflicted.pop(repo_root, None)

    # ----- Merging -----

    def merge(self, repo_root: Path, ref: str) -> None:
        self._merged_refs.append(ref)
        if ref in self._merge_conflicts:
            paths = self._merge_conflicts.pop(ref)
            self._conflicted[repo_root] = list(paths)
            raise ConflictError(f"Merge of '{ref}' produced conflicts", paths=paths)
        if self._merge_raises is not None:
            raise self._merge_raises

    def abort_merge(self, repo_root: Path) -> None:
        self._aborted_merges.append(repo_root)
        self._conflicted.pop(repo_root, None)

    def get_conflicted_files(self, repo_root: Path) -> list[str]:
        return list(self._conflicted.get(repo_root, []))

    # ----- History -----

    def _commits_on(self, branch: str) -> list[CommitInfo]:
        created = [
            CommitInfo(
                sha=f"{index:040x}",
                message=c.message,
                authored_at=c.authored_at if c.authored_at is not None else datetime.min,
            )
            for index, c in enumerate(self._commits, start=1)
            if c.branch == branch
        ]
        created.reverse()
        return created + self._commit_history.get(branch, [])

    def get_head_commit(self, repo_root: Path, branch: str) -> CommitInfo | None:
        commits = self._commits_on(branch)
        if not commits:
            return None
        return commits[0]

    def list_commits(
        self, repo_root: Path, branch: str, *, since: datetime, until: datetime
    ) -> list[CommitInfo]:
        return [
            c
            for c in self._commits_on(branch)
            if c.authored_at.tzinfo is not None and since <= c.authored_at <= until
        ]

    # ----- Mutation tracking -----

    @property
    def checked_out_branches(self) -> list[str]:
        return list(self._checked_out_branches)

    @property
    def created_branches(self) -> list[str]:
        return list(self._created_branches)

    @property
    def pulled_branches(self) -> list[tuple[str, str]]:
        return list(self._pulled_branches)

    @property
    def fetched_remotes(self) -> list[str]:
        return list(self._fetched_remotes)

    @property
    def deleted_remote_branches(self) -> list[tuple[str, str]]:
        return list(self._deleted_remote_branches)

    @property
    def pushes(self) -> list[RecordedPush]:
        return list(self._pushes)

    @property
    def staged_files(self) -> list[str]:
        return list(self._staged_files)

    @property
    def commits(self) -> list[RecordedCommit]:
        return list(self._commits)

    @property
    def merged_refs(self) -> list[str]:
        return list(self._merged_refs)

    @property
    def aborted_merges(self) -> list[Path]:
        return list(self._aborted_merges)

    @property
    def cloned_urls(self) -> list[tuple[str, Path]]:
        return list(self._cloned_urls)

    @property
    def initialized_paths(self) -> list[Path]:
        return list(self._initialized_paths)

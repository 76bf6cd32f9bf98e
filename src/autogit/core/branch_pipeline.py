"""Realize one assignment: base checkout, branch reconcile, commits, push.

Each step is a generator that yields ProgressEvent and returns its outcome,
so callers compose them with ``yield from``.
"""

import logging
import random
from collections.abc import Generator
from dataclasses import dataclass
from datetime import date, datetime

from autogit.core.conflicts import ACTIVITY_LOG_FILENAME
from autogit.core.errors import NonFastForwardError, TransientNetworkError
from autogit.core.events import ProgressEvent
from autogit.core.planning import BRANCH_PREFIX, Assignment
from autogit.core.repository import RepositoryHandle
from autogit.core.results import BranchOutcome, CommitOutcome, CommitRecord, PushOutcome
from autogit.gateway.git.abc import Git

logger = logging.getLogger(__name__)

BASE_BRANCH_CANDIDATES = ("main", "master")

PHASE = "branch"


@dataclass(frozen=True)
class BranchState:
    """Local/remote presence of a branch, recomputed for every assignment."""

    exists_locally: bool
    exists_remotely: bool


@dataclass(frozen=True)
class CommitOptions:
    co_authors: tuple[str, ...] = ()
    co_author_rate: int = 0


def local_noon(day: date) -> datetime:
    """Noon on ``day`` in the local timezone, as an aware datetime."""
    return datetime(day.year, day.month, day.day, 12, 0, 0).astimezone()


def commit_message(day: date, index: int) -> str:
    return f"Auto commit {index} for {day.isoformat()}"


def activity_line(day: date, index: int, authored_at: datetime) -> str:
    return f"{day.isoformat()} - Commit {index} at {authored_at.isoformat()}\n"


def pick_co_author(rng: random.Random, options: CommitOptions) -> str | None:
    if not options.co_authors or options.co_author_rate <= 0:
        return None
    if rng.randrange(100) >= options.co_author_rate:
        return None
    return rng.choice(options.co_authors)


def checkout_base_branch(
    git: Git, handle: RepositoryHandle
) -> Generator[ProgressEvent, None, str | None]:
    """Check out main, else master, else stay put; then pull it.

    Returns:
        The branch left checked out, or None on a detached HEAD
    """
    local = git.list_local_branches(handle.root)
    base: str | None = None
    for candidate in BASE_BRANCH_CANDIDATES:
        if candidate not in local:
            continue
        try:
            git.checkout_branch(handle.root, candidate)
        except RuntimeError as e:
            yield ProgressEvent(
                f"Could not check out {candidate}: {e}", level="warning", phase=PHASE
            )
            continue
        base = candidate
        break

    if base is None:
        base = git.get_current_branch(handle.root)
        if base is None:
            yield ProgressEvent(
                "Neither main nor master exists and HEAD is detached", level="warning", phase=PHASE
            )
            return None
        yield ProgressEvent(
            f"Neither main nor master exists; staying on {base}", level="info", phase=PHASE
        )

    try:
        git.pull_branch(handle.root, handle.remote, base)
    except (RuntimeError, TransientNetworkError) as e:
        yield ProgressEvent(
            f"Could not pull {handle.remote}/{base}, continuing with local state: {e}",
            level="warning",
            phase=PHASE,
        )
    return base


def compute_branch_state(git: Git, handle: RepositoryHandle, branch: str) -> BranchState:
    return BranchState(
        exists_locally=branch in git.list_local_branches(handle.root),
        exists_remotely=git.branch_exists_on_remote(handle.root, handle.remote, branch),
    )


def prepare_branch(
    git: Git, handle: RepositoryHandle, branch: str
) -> Generator[ProgressEvent, None, BranchOutcome]:
    """Delete a stale remote branch, then check out or create ``branch`` locally.

    Only branches carrying BRANCH_PREFIX are ever deleted from the remote.
    """
    state = compute_branch_state(git, handle, branch)
    logger.debug("Branch %s state: %s", branch, state)

    remote_deleted = False
    if state.exists_remotely:
        if not branch.startswith(BRANCH_PREFIX):
            return BranchOutcome(
                success=False,
                message=f"Refusing to delete remote branch '{branch}' without the "
                f"'{BRANCH_PREFIX}' prefix",
                existed_locally=state.exists_locally,
                existed_remotely=True,
            )
        try:
            git.delete_remote_branch(handle.root, handle.remote, branch)
            remote_deleted = True
            yield ProgressEvent(
                f"Deleted stale remote branch {handle.remote}/{branch}", level="info", phase=PHASE
            )
        except (RuntimeError, TransientNetworkError) as e:
            yield ProgressEvent(
                f"Could not delete remote branch {branch}, push will fall back to --force: {e}",
                level="warning",
                phase=PHASE,
            )

    try:
        if state.exists_locally:
            git.checkout_branch(handle.root, branch)
        else:
            git.create_and_checkout_branch(handle.root, branch)
    except RuntimeError as e:
        return BranchOutcome(
            success=False,
            message=f"Failed to create branch {branch}: {e}",
            existed_locally=state.exists_locally,
            existed_remotely=state.exists_remotely,
            remote_deleted=remote_deleted,
        )

    current = git.get_current_branch(handle.root)
    if current != branch:
        return BranchOutcome(
            success=False,
            message=f"Branch verification failed: expected {branch}, on {current}",
            existed_locally=state.exists_locally,
            existed_remotely=state.exists_remotely,
            remote_deleted=remote_deleted,
        )

    verb = "Checked out existing" if state.exists_locally else "Created"
    yield ProgressEvent(f"{verb} branch {branch}", level="info", phase=PHASE)
    return BranchOutcome(
        success=True,
        message=f"{verb} branch {branch}",
        existed_locally=state.exists_locally,
        existed_remotely=state.exists_remotely,
        remote_deleted=remote_deleted,
    )


def synthesize_commits(
    git: Git,
    handle: RepositoryHandle,
    assignment: Assignment,
    options: CommitOptions,
    rng: random.Random,
) -> Generator[ProgressEvent, None, CommitOutcome]:
    """Append one activity line per commit and commit it at local noon of the date."""
    authored_at = local_noon(assignment.date)
    log_path = handle.root / ACTIVITY_LOG_FILENAME
    records: list[CommitRecord] = []

    for index in range(1, assignment.commit_count + 1):
        message = commit_message(assignment.date, index)
        co_author = pick_co_author(rng, options)
        try:
            with log_path.open("a", encoding="utf-8") as f:
                f.write(activity_line(assignment.date, index, authored_at))
            git.stage_files(handle.root, [ACTIVITY_LOG_FILENAME])
            git.commit(
                handle.root,
                message,
                authored_at=authored_at,
                co_author=co_author,
                no_verify=False,
            )
        except (RuntimeError, OSError) as e:
            return CommitOutcome(
                success=False,
                message=f"Failed to create commit {index}/{assignment.commit_count}: {e}",
                commits=tuple(records),
            )
        records.append(
            CommitRecord(message=message, authored_at=authored_at.isoformat(), co_author=co_author)
        )

    yield ProgressEvent(
        f"Created {len(records)} commit(s) dated {authored_at.isoformat()}",
        level="info",
        phase=PHASE,
    )
    return CommitOutcome(
        success=True,
        message=f"Created {len(records)} commit(s) for {assignment.date.isoformat()}",
        commits=tuple(records),
    )


def push_branch(
    git: Git, handle: RepositoryHandle, branch: str
) -> Generator[ProgressEvent, None, PushOutcome]:
    """Push, retrying exactly once with --force on a non-fast-forward rejection."""
    try:
        git.push_to_remote(handle.root, handle.remote, branch, set_upstream=True, force=False)
    except NonFastForwardError:
        yield ProgressEvent(
            f"Push of {branch} rejected as non-fast-forward; retrying with --force",
            level="warning",
            phase=PHASE,
        )
    except (RuntimeError, TransientNetworkError) as e:
        return PushOutcome(success=False, message=f"Failed to push {branch}: {e}")
    else:
        yield ProgressEvent(f"Pushed {branch} to {handle.remote}", level="success", phase=PHASE)
        return PushOutcome(success=True, message=f"Pushed {branch}")

    try:
        git.push_to_remote(handle.root, handle.remote, branch, set_upstream=True, force=True)
    except (NonFastForwardError, RuntimeError, TransientNetworkError) as e:
        return PushOutcome(
            success=False, message=f"Failed to force-push {branch}: {e}", forced=True
        )
    yield ProgressEvent(f"Force-pushed {branch} to {handle.remote}", level="success", phase=PHASE)
    return PushOutcome(success=True, message=f"Force-pushed {branch}", forced=True)


def verify_head_commit(
    git: Git, handle: RepositoryHandle, branch: str, commits: CommitOutcome
) -> Generator[ProgressEvent, None, None]:
    """Warn when the branch head is not the last synthesized commit."""
    if not commits.commits:
        return
    expected = commits.commits[-1].message
    head = git.get_head_commit(handle.root, branch)
    if head is None or head.message != expected:
        observed = head.message if head is not None else "no commits"
        yield ProgressEvent(
            f"Head of {branch} is '{observed}', expected '{expected}'",
            level="warning",
            phase=PHASE,
        )

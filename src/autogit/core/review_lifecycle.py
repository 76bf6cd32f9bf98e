"""Pull request lifecycle: find-or-create, poll mergeability, resolve, merge.

SEARCHING -> FOUND | CREATING -> (auto-merge only) POLLING, which branches to
MERGING, AUTO_RESOLVE or WAIT until the request is MERGED or FAILED.
Mergeability is computed asynchronously by the remote, so polling tolerates
an unknown period of eventual consistency within the policy's ceilings.
"""

import logging
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TypeVar

from autogit.core.backoff import ReviewPolicy
from autogit.core.conflicts import resolve_conflicts
from autogit.core.context import AutogitContext
from autogit.core.credentials import Credential
from autogit.core.errors import (
    ConflictError,
    MergeBlockedError,
    NonFastForwardError,
    PartialResolutionError,
    ReviewApiError,
    TooManyRedirectsError,
    TransientNetworkError,
)
from autogit.core.events import ProgressEvent
from autogit.core.remote_url import RepoLocation, detect_platform, parse_repo_url
from autogit.core.repository import RepositoryHandle
from autogit.core.results import ReviewOutcome
from autogit.gateway.git.abc import Git
from autogit.gateway.github.abc import ReviewGateway
from autogit.gateway.github.retry import ShouldRetry, with_retry
from autogit.gateway.github.types import MergeMethod, PullRequestRef

logger = logging.getLogger(__name__)

T = TypeVar("T")

PHASE = "review"

# GitHub answers 422 when an open request already exists for head+base
_ALREADY_EXISTS_STATUS = 422


class MergeAction(Enum):
    """Action taken after one mergeability observation."""

    MERGING = "merging"
    MERGED = "merged"
    AUTO_RESOLVE = "auto_resolve"
    WAIT = "wait"
    FAILED = "failed"


@dataclass(frozen=True)
class ReviewOptions:
    credential: Credential | None
    auto_merge: bool = False
    base_branch: str | None = None
    merge_method: MergeMethod = "merge"


@dataclass(frozen=True)
class MergeAttempt:
    attempt_index: int
    observed: str
    action: MergeAction
    wait_seconds: float


@dataclass
class _Tracker:
    """Mutable per-request bookkeeping; discarded when the lifecycle ends."""

    pr: PullRequestRef | None = None
    created: bool = False
    attempts: list[MergeAttempt] = field(default_factory=list)

    def record(self, observed: str, action: MergeAction, wait_seconds: float) -> None:
        attempt = MergeAttempt(
            attempt_index=len(self.attempts) + 1,
            observed=observed,
            action=action,
            wait_seconds=wait_seconds,
        )
        self.attempts.append(attempt)
        logger.debug("PR merge attempt %s", attempt)

    def outcome(
        self,
        *,
        success: bool,
        message: str,
        merged: bool = False,
        requires_manual_resolution: bool = False,
    ) -> ReviewOutcome:
        return ReviewOutcome(
            success=success,
            message=message,
            pr_number=self.pr.number if self.pr is not None else None,
            pr_url=self.pr.url if self.pr is not None else None,
            created=self.created,
            merged=merged,
            requires_manual_resolution=requires_manual_resolution,
            attempts=len(self.attempts),
        )


def pr_title(day: date) -> str:
    return f"Auto PR for {day.isoformat()}"


def pr_body(day: date) -> str:
    return f"Automated pull request for date {day.isoformat()}"


def _remote_call(ctx: AutogitContext, operation_name: str, fn: Callable[[], T]) -> T:
    """Run a review API call, retrying TransientNetworkError with short delays."""

    def attempt() -> T:
        try:
            return fn()
        except TransientNetworkError as e:
            raise ShouldRetry(str(e)) from e

    try:
        return with_retry(ctx.time, operation_name, attempt)
    except ShouldRetry as e:
        raise TransientNetworkError(f"{operation_name} failed: {e}") from e


def _abort_merge(git: Git, handle: RepositoryHandle) -> None:
    try:
        git.abort_merge(handle.root)
    except RuntimeError as e:
        logger.debug("merge --abort failed: %s", e)


def sync_with_base(
    git: Git, handle: RepositoryHandle, *, head: str, base: str
) -> Generator[ProgressEvent, None, bool]:
    """Merge the remote base into ``head``, resolve conflicts, and force-push.

    Returns:
        True if ``head`` now contains the base and was pushed
    """
    root, remote = handle.root, handle.remote
    try:
        git.checkout_branch(root, head)
        git.fetch(root, remote)
    except (RuntimeError, TransientNetworkError) as e:
        yield ProgressEvent(f"Could not prepare {head} for merge: {e}", level="error", phase=PHASE)
        return False

    try:
        git.checkout_branch(root, base)
        git.pull_branch(root, remote, base)
    except (RuntimeError, TransientNetworkError) as e:
        yield ProgressEvent(f"Could not update {base}: {e}", level="warning", phase=PHASE)

    try:
        git.checkout_branch(root, head)
    except RuntimeError as e:
        yield ProgressEvent(f"Could not return to {head}: {e}", level="error", phase=PHASE)
        return False

    try:
        git.merge(root, f"{remote}/{base}")
        yield ProgressEvent(f"Merged {remote}/{base} into {head} cleanly", phase=PHASE)
    except ConflictError as conflict:
        yield ProgressEvent(
            f"Merge conflicts in {', '.join(conflict.paths)}; resolving automatically",
            level="warning",
            phase=PHASE,
        )
        try:
            resolution = resolve_conflicts(git, root, conflict.paths)
        except (PartialResolutionError, RuntimeError, OSError) as e:
            yield ProgressEvent(f"Automatic resolution failed: {e}", level="error", phase=PHASE)
            _abort_merge(git, handle)
            return False
        for skipped in resolution.skipped:
            yield ProgressEvent(f"Skipped missing file {skipped}", level="warning", phase=PHASE)
        yield ProgressEvent(
            f"Resolved conflicts in {len(resolution.resolved)} file(s)",
            level="success",
            phase=PHASE,
        )
    except RuntimeError as e:
        yield ProgressEvent(f"Merge of {base} into {head} failed: {e}", level="error", phase=PHASE)
        _abort_merge(git, handle)
        return False

    try:
        git.push_to_remote(root, remote, head, set_upstream=False, force=True)
    except (NonFastForwardError, RuntimeError, TransientNetworkError) as e:
        yield ProgressEvent(f"Could not push resolved {head}: {e}", level="error", phase=PHASE)
        return False
    return True


def _find_or_create(
    ctx: AutogitContext,
    gateway: ReviewGateway,
    location: RepoLocation,
    tracker: _Tracker,
    *,
    head: str,
    base: str,
    day: date,
) -> Generator[ProgressEvent, None, PullRequestRef]:
    existing = _remote_call(
        ctx,
        f"find open PRs for {head}",
        lambda: gateway.find_open_prs(location, head=head, base=base),
    )
    if existing:
        tracker.pr = existing[0]
        yield ProgressEvent(
            f"Found open PR #{tracker.pr.number} for {head} -> {base}", phase=PHASE
        )
        return tracker.pr

    # Not retried: a timed-out create may have succeeded remotely
    try:
        pr = gateway.create_pr(
            location, head=head, base=base, title=pr_title(day), body=pr_body(day)
        )
    except ReviewApiError as e:
        if e.status_code != _ALREADY_EXISTS_STATUS:
            raise
        existing = gateway.find_open_prs(location, head=head, base=base)
        if not existing:
            raise
        tracker.pr = existing[0]
        yield ProgressEvent(f"Found open PR #{tracker.pr.number} for {head}", phase=PHASE)
        return tracker.pr

    tracker.pr = pr
    tracker.created = True
    yield ProgressEvent(f"Created PR #{pr.number}: {pr.url}", level="success", phase=PHASE)
    return pr


def _merge_when_ready(
    ctx: AutogitContext,
    gateway: ReviewGateway,
    location: RepoLocation,
    handle: RepositoryHandle,
    tracker: _Tracker,
    *,
    pr: PullRequestRef,
    head: str,
    base: str,
    method: MergeMethod,
    policy: ReviewPolicy,
) -> Generator[ProgressEvent, None, ReviewOutcome]:
    blocked_attempts = 0
    unknown_attempts = 0
    resolution_rounds = 0

    while True:
        state = _remote_call(
            ctx, f"get PR #{pr.number}", lambda: gateway.get_pr(location, pr.number)
        )

        if state.merged:
            tracker.record("merged", MergeAction.MERGED, 0.0)
            yield ProgressEvent(f"PR #{pr.number} is merged", level="success", phase=PHASE)
            return tracker.outcome(success=True, message=f"PR #{pr.number} merged", merged=True)

        if state.mergeable is True:
            tracker.record(state.mergeable_reason, MergeAction.MERGING, 0.0)
            try:
                _remote_call(
                    ctx,
                    f"merge PR #{pr.number}",
                    lambda: gateway.merge_pr(location, pr.number, method=method),
                )
            except MergeBlockedError as e:
                blocked_attempts += 1
                if policy.blocked.exhausted(blocked_attempts):
                    tracker.record("merge rejected", MergeAction.FAILED, 0.0)
                    return tracker.outcome(
                        success=False,
                        message=f"PR #{pr.number} not mergeable after {blocked_attempts} "
                        f"attempts: {e}",
                    )
                wait = policy.blocked.delay_for(blocked_attempts)
                tracker.record("merge rejected", MergeAction.WAIT, wait)
                yield ProgressEvent(
                    f"Merge of PR #{pr.number} rejected, retrying in {wait:g}s: {e}",
                    level="warning",
                    phase=PHASE,
                )
                ctx.time.sleep(wait)
                continue
            yield ProgressEvent(
                f"Merged PR #{pr.number} ({method})", level="success", phase=PHASE
            )
            return tracker.outcome(success=True, message=f"PR #{pr.number} merged", merged=True)

        if state.mergeable is None:
            unknown_attempts += 1
            if policy.unknown.exhausted(unknown_attempts):
                tracker.record("unknown", MergeAction.FAILED, 0.0)
                return tracker.outcome(
                    success=False,
                    message=f"PR #{pr.number} mergeability still unknown after "
                    f"{unknown_attempts} attempts",
                )
            wait = policy.unknown.delay_for(unknown_attempts)
            tracker.record("unknown", MergeAction.WAIT, wait)
            yield ProgressEvent(
                f"Waiting {wait:g}s for PR #{pr.number} mergeability to be computed",
                level="progress",
                phase=PHASE,
            )
            ctx.time.sleep(wait)
            continue

        if state.is_conflicting:
            if resolution_rounds >= policy.max_resolution_rounds:
                tracker.record(state.mergeable_reason, MergeAction.FAILED, 0.0)
                return tracker.outcome(
                    success=False,
                    message=f"PR #{pr.number} still conflicts after {resolution_rounds} "
                    f"resolution attempt(s)",
                    requires_manual_resolution=True,
                )
            resolution_rounds += 1
            tracker.record(state.mergeable_reason, MergeAction.AUTO_RESOLVE, 0.0)
            yield ProgressEvent(
                f"PR #{pr.number} has merge conflicts; syncing {head} with {base}",
                level="warning",
                phase=PHASE,
            )
            resolved = yield from sync_with_base(ctx.git, handle, head=head, base=base)
            if not resolved:
                tracker.record(state.mergeable_reason, MergeAction.FAILED, 0.0)
                return tracker.outcome(
                    success=False,
                    message=f"PR #{pr.number} has conflicts that need manual resolution",
                    requires_manual_resolution=True,
                )
            ctx.time.sleep(policy.post_resolution_delay)
            continue

        blocked_attempts += 1
        if policy.blocked.exhausted(blocked_attempts):
            tracker.record(state.mergeable_reason, MergeAction.FAILED, 0.0)
            return tracker.outcome(
                success=False,
                message=f"PR #{pr.number} not mergeable after {blocked_attempts} attempts "
                f"(state: {state.mergeable_reason})",
            )
        wait = policy.blocked.delay_for(blocked_attempts)
        tracker.record(state.mergeable_reason, MergeAction.WAIT, wait)
        yield ProgressEvent(
            f"PR #{pr.number} is {state.mergeable_reason}; re-checking in {wait:g}s",
            level="progress",
            phase=PHASE,
        )
        ctx.time.sleep(wait)


def run_review_lifecycle(
    ctx: AutogitContext,
    handle: RepositoryHandle,
    *,
    head: str,
    base: str,
    day: date,
    options: ReviewOptions,
    policy: ReviewPolicy,
) -> Generator[ProgressEvent, None, ReviewOutcome]:
    """Drive the pull request for ``head`` into ``base`` to its terminal state."""
    tracker = _Tracker()
    if options.credential is None:
        return tracker.outcome(success=False, message="GitHub token is required for PR creation")

    platform = detect_platform(handle.remote_url)
    location = parse_repo_url(handle.remote_url)
    if platform != "github" or location is None:
        name = platform or handle.remote_url
        return tracker.outcome(success=False, message=f"Platform '{name}' is not yet supported")

    gateway = ctx.review_gateway_factory(options.credential)
    try:
        pr = yield from _find_or_create(
            ctx, gateway, location, tracker, head=head, base=base, day=day
        )
        if not options.auto_merge:
            verb = "created" if tracker.created else "already open"
            return tracker.outcome(success=True, message=f"PR #{pr.number} {verb}")
        return (
            yield from _merge_when_ready(
                ctx,
                gateway,
                location,
                handle,
                tracker,
                pr=pr,
                head=head,
                base=base,
                method=options.merge_method,
                policy=policy,
            )
        )
    except (TransientNetworkError, ReviewApiError, TooManyRedirectsError) as e:
        yield ProgressEvent(f"PR operation for {head} failed: {e}", level="error", phase=PHASE)
        return tracker.outcome(success=False, message=f"PR operation failed: {e}")

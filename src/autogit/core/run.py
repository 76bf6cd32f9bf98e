"""Run orchestration: plan once, then process assignments strictly in order."""

import logging
import threading
from collections.abc import Generator
from dataclasses import dataclass, field, replace
from datetime import date

from autogit.core.backoff import ReviewPolicy
from autogit.core.branch_pipeline import (
    CommitOptions,
    checkout_base_branch,
    prepare_branch,
    push_branch,
    synthesize_commits,
    verify_head_commit,
)
from autogit.core.context import AutogitContext
from autogit.core.errors import AutogitError
from autogit.core.events import CompletionEvent, ProgressEvent
from autogit.core.planning import Assignment, WorkPlan, build_work_plan
from autogit.core.repository import RepositoryHandle, open_repository
from autogit.core.results import ResultRecord, RunSummary
from autogit.core.review_lifecycle import ReviewOptions, run_review_lifecycle

logger = logging.getLogger(__name__)

PROGRESS_SUMMARY_EVERY = 5

DEFAULT_BASE_BRANCH = "main"

PHASE = "run"

IDENTITY_KEYS = ("user.name", "user.email")


@dataclass(frozen=True)
class RunRequest:
    source: str
    start: date
    end: date
    region: str
    branch_budget: int
    commit_budget: int
    remote: str = "origin"


@dataclass(frozen=True)
class RunOptions:
    commit: CommitOptions = field(default_factory=CommitOptions)
    review: ReviewOptions | None = None
    review_policy: ReviewPolicy = field(default_factory=ReviewPolicy)


@dataclass
class RunTally:
    """Counters shared with the heartbeat thread."""

    total: int
    started_at: float
    completed: int = 0
    succeeded: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, record: ResultRecord) -> None:
        with self._lock:
            self.completed += 1
            if record.success:
                self.succeeded += 1

    def heartbeat_message(self, now: float) -> str:
        with self._lock:
            completed, succeeded = self.completed, self.succeeded
        elapsed = max(0, int(now - self.started_at))
        minutes, seconds = divmod(elapsed, 60)
        return (
            f"Still processing... ({minutes}m {seconds}s elapsed, "
            f"{completed}/{self.total} completed, {succeeded} succeeded)"
        )


def prepare_run(ctx: AutogitContext, request: RunRequest) -> tuple[RepositoryHandle, WorkPlan]:
    """Validate input, build the plan and open the repository.

    Raises:
        ValidationError: If the request is malformed
        PoolExhaustionError: If no date in the range is eligible
        RepositoryStateError: If the repository or remote is unusable
    """
    plan = build_work_plan(
        ctx.calendar,
        start=request.start,
        end=request.end,
        region=request.region,
        branch_budget=request.branch_budget,
        commit_budget=request.commit_budget,
        rng=ctx.rng,
    )
    handle = open_repository(ctx.git, request.source, remote=request.remote, workspace=ctx.cwd)
    logger.debug("Prepared run on %s with %d assignment(s)", handle.root, plan.branch_count)
    return handle, plan


def check_identity(
    ctx: AutogitContext, handle: RepositoryHandle
) -> Generator[ProgressEvent, None, None]:
    """Warn when git has no commit identity configured for the repository."""
    missing = [key for key in IDENTITY_KEYS if ctx.git.get_config_value(handle.root, key) is None]
    if missing:
        yield ProgressEvent(
            f"git {' and '.join(missing)} not configured; commits may fail",
            level="warning",
            phase=PHASE,
        )


def process_assignment(
    ctx: AutogitContext,
    handle: RepositoryHandle,
    assignment: Assignment,
    options: RunOptions,
) -> Generator[ProgressEvent, None, ResultRecord]:
    """Branch, commit, push and (optionally) review one assignment, in that order."""
    record = ResultRecord(
        date=assignment.date,
        branch_name=assignment.branch_name,
        commit_count=assignment.commit_count,
    )
    base = yield from checkout_base_branch(ctx.git, handle)

    branch = yield from prepare_branch(ctx.git, handle, assignment.branch_name)
    if not branch.success:
        return replace(record, branch=branch)

    commits = yield from synthesize_commits(
        ctx.git, handle, assignment, options.commit, ctx.rng
    )
    if not commits.success:
        return replace(record, branch=branch, commits=commits)

    push = yield from push_branch(ctx.git, handle, assignment.branch_name)
    if not push.success:
        return replace(record, branch=branch, commits=commits, push=push)
    yield from verify_head_commit(ctx.git, handle, assignment.branch_name, commits)

    review = None
    if options.review is not None:
        ctx.time.sleep(options.review_policy.branch_sync_delay)
        review = yield from run_review_lifecycle(
            ctx,
            handle,
            head=assignment.branch_name,
            base=options.review.base_branch or base or DEFAULT_BASE_BRANCH,
            day=assignment.date,
            options=options.review,
            policy=options.review_policy,
        )

    return replace(record, branch=branch, commits=commits, push=push, review=review)


def execute_run(
    ctx: AutogitContext,
    handle: RepositoryHandle,
    plan: WorkPlan,
    options: RunOptions,
    tally: RunTally | None = None,
) -> Generator[ProgressEvent | CompletionEvent[RunSummary]]:
    """Process every assignment sequentially, continuing past per-assignment failures.

    Yields:
        ProgressEvent for each step, then a CompletionEvent with the RunSummary
    """
    if tally is None:
        tally = RunTally(total=plan.branch_count, started_at=ctx.time.monotonic())

    yield ProgressEvent(
        f"Found {len(plan.eligible_dates)} eligible date(s) in {plan.start} .. {plan.end} "
        f"(region {plan.region})",
        phase=PHASE,
    )
    if plan.adjusted_branches:
        yield ProgressEvent(
            f"Only {plan.branch_count} eligible date(s); reduced branches from "
            f"{plan.requested_branches} to {plan.branch_count}",
            level="warning",
            phase=PHASE,
        )
    yield from check_identity(ctx, handle)

    records: list[ResultRecord] = []
    total = plan.branch_count
    for index, assignment in enumerate(plan.assignments, start=1):
        yield ProgressEvent(
            f"[{index}/{total}] {assignment.date.isoformat()}: {assignment.commit_count} "
            f"commit(s) on {assignment.branch_name}",
            level="progress",
            phase=PHASE,
        )
        try:
            record = yield from process_assignment(ctx, handle, assignment, options)
        except (AutogitError, RuntimeError, OSError) as e:
            logger.debug("Assignment %s failed", assignment.branch_name, exc_info=True)
            record = ResultRecord(
                date=assignment.date,
                branch_name=assignment.branch_name,
                commit_count=assignment.commit_count,
                error=f"Unexpected error: {e}",
            )

        records.append(record)
        tally.record(record)
        if record.success:
            yield ProgressEvent(
                f"[{index}/{total}] {assignment.date.isoformat()}: {record.message}",
                level="success",
                phase=PHASE,
            )
        else:
            yield ProgressEvent(
                f"[{index}/{total}] {assignment.date.isoformat()} failed: {record.message}",
                level="error",
                phase=PHASE,
            )

        if index % PROGRESS_SUMMARY_EVERY == 0 or index == total:
            yield ProgressEvent(
                f"Progress: {index}/{total} processed, {tally.succeeded} succeeded, "
                f"{index - tally.succeeded} failed",
                phase=PHASE,
            )

    yield CompletionEvent(RunSummary(plan=plan, records=tuple(records)))

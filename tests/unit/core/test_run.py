"""Tests for run orchestration and the run summary."""

from datetime import date
from pathlib import Path

import pytest

from autogit.core.calendar import HolidayCalendar
from autogit.core.context import AutogitContext
from autogit.core.credentials import resolve_credential
from autogit.core.errors import PoolExhaustionError, RepositoryStateError
from autogit.core.planning import Assignment, WorkPlan
from autogit.core.review_lifecycle import ReviewOptions
from autogit.core.run import RunOptions, RunRequest, RunTally, execute_run, prepare_run
from autogit.gateway.github.fake import FakeReviewGateway
from autogit.gateway.github.types import PullRequestState
from autogit.gateway.time.fake import FakeTime
from tests.test_utils.context_builders import build_handle, build_repo_git
from tests.test_utils.events import drain_completion

EMPTY_CALENDAR = HolidayCalendar(version="test", regions={})


def _plan(*days: tuple[date, int]) -> WorkPlan:
    assignments = tuple(
        Assignment(date=d, branch_name=f"auto-{d.isoformat()}", commit_count=n) for d, n in days
    )
    return WorkPlan(
        start=min(d for d, _ in days),
        end=max(d for d, _ in days),
        region="XX",
        requested_branches=len(days),
        commit_budget=sum(n for _, n in days),
        eligible_dates=tuple(d for d, _ in days),
        assignments=assignments,
    )


def test_prepare_run_plans_and_opens_repository(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    ctx = AutogitContext.for_test(git=build_repo_git(root), calendar=EMPTY_CALENDAR, cwd=root)
    request = RunRequest(
        source=str(root),
        start=date(2024, 1, 1),
        end=date(2024, 1, 6),
        region="XX",
        branch_budget=3,
        commit_budget=9,
    )

    handle, plan = prepare_run(ctx, request)

    assert handle.root == root
    assert plan.branch_count == 3
    assert plan.total_commits == 9


def test_prepare_run_validates_before_touching_repository(tmp_path: Path) -> None:
    git = build_repo_git(tmp_path)
    ctx = AutogitContext.for_test(git=git, calendar=EMPTY_CALENDAR, cwd=tmp_path)
    request = RunRequest(
        source="brand-new",
        start=date(2024, 1, 7),
        end=date(2024, 1, 7),
        region="XX",
        branch_budget=1,
        commit_budget=1,
    )

    with pytest.raises(PoolExhaustionError):
        prepare_run(ctx, request)

    assert not (tmp_path / "brand-new").exists()


def test_prepare_run_rejects_missing_remote(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    ctx = AutogitContext.for_test(git=build_repo_git(root), calendar=EMPTY_CALENDAR, cwd=root)
    request = RunRequest(
        source=str(root),
        start=date(2024, 1, 2),
        end=date(2024, 1, 2),
        region="XX",
        branch_budget=1,
        commit_budget=1,
        remote="upstream",
    )

    with pytest.raises(RepositoryStateError, match="Remote 'upstream' does not exist"):
        prepare_run(ctx, request)


def test_execute_run_processes_assignments_in_plan_order(tmp_path: Path) -> None:
    git = build_repo_git(tmp_path)
    ctx = AutogitContext.for_test(git=git, cwd=tmp_path)
    plan = _plan((date(2024, 1, 5), 2), (date(2024, 1, 2), 1), (date(2024, 1, 3), 3))

    events, summary = drain_completion(execute_run(ctx, build_handle(tmp_path), plan, RunOptions()))

    assert [r.branch_name for r in summary.records] == [
        "auto-2024-01-05",
        "auto-2024-01-02",
        "auto-2024-01-03",
    ]
    assert summary.succeeded == 3
    assert summary.failed == 0
    assert summary.commits_created == 6
    assert summary.branches_created == 3
    assert summary.branches_pushed == 3
    assert git.created_branches == [a.branch_name for a in plan.assignments]
    assert [c.branch for c in git.commits] == [
        "auto-2024-01-05",
        "auto-2024-01-05",
        "auto-2024-01-02",
        "auto-2024-01-03",
        "auto-2024-01-03",
        "auto-2024-01-03",
    ]
    assert events[0].message.startswith("Found 3 eligible date(s)")
    assert events[-1].message == "Progress: 3/3 processed, 3 succeeded, 0 failed"


def test_one_failed_push_does_not_stop_the_run(tmp_path: Path) -> None:
    git = build_repo_git(tmp_path, push_failures=[RuntimeError("remote hung up")])
    ctx = AutogitContext.for_test(git=git, cwd=tmp_path)
    plan = _plan((date(2024, 1, 2), 1), (date(2024, 1, 3), 1))

    _events, summary = drain_completion(
        execute_run(ctx, build_handle(tmp_path), plan, RunOptions())
    )

    assert [r.success for r in summary.records] == [False, True]
    assert "remote hung up" in summary.records[0].message
    assert summary.records[0].commits is not None
    assert summary.records[0].review is None
    assert summary.branches_pushed == 1


def test_unexpected_errors_are_recorded_per_assignment(tmp_path: Path) -> None:
    git = build_repo_git(tmp_path, checkout_raises={"main": OSError("disk full")})
    ctx = AutogitContext.for_test(git=git, cwd=tmp_path)
    plan = _plan((date(2024, 1, 2), 1))

    # checkout of main fails with OSError, which is not a RuntimeError
    _events, summary = drain_completion(
        execute_run(ctx, build_handle(tmp_path), plan, RunOptions())
    )

    assert summary.failed == 1
    assert summary.records[0].error == "Unexpected error: disk full"


def test_clamped_plan_emits_warning(tmp_path: Path) -> None:
    ctx = AutogitContext.for_test(git=build_repo_git(tmp_path), cwd=tmp_path)
    plan = _plan((date(2024, 1, 2), 1))
    plan = WorkPlan(
        start=plan.start,
        end=plan.end,
        region=plan.region,
        requested_branches=10,
        commit_budget=1,
        eligible_dates=plan.eligible_dates,
        assignments=plan.assignments,
    )

    events, _summary = drain_completion(
        execute_run(ctx, build_handle(tmp_path), plan, RunOptions())
    )

    warnings = [e.message for e in events if e.level == "warning"]
    assert "reduced branches from 10 to 1" in warnings[0]


def test_review_runs_after_branch_sync_delay(tmp_path: Path) -> None:
    git = build_repo_git(tmp_path)
    reviews = FakeReviewGateway()
    time = FakeTime()
    ctx = AutogitContext.for_test(git=git, reviews=reviews, time=time, cwd=tmp_path)
    plan = _plan((date(2024, 1, 2), 1))
    options = RunOptions(
        review=ReviewOptions(credential=resolve_credential("ghp_x"), auto_merge=True)
    )

    _events, summary = drain_completion(execute_run(ctx, build_handle(tmp_path), plan, options))

    assert summary.prs_created == 1
    assert summary.prs_merged == 1
    assert time.sleep_calls == [5.0]
    assert reviews.created_prs[0].base == "main"
    assert summary.to_dict()["results"][0]["pr_merged"] is True


def test_review_failure_marks_assignment_failed(tmp_path: Path) -> None:
    ctx = AutogitContext.for_test(git=build_repo_git(tmp_path), cwd=tmp_path)
    plan = _plan((date(2024, 1, 2), 1))
    options = RunOptions(review=ReviewOptions(credential=None))

    _events, summary = drain_completion(execute_run(ctx, build_handle(tmp_path), plan, options))

    record = summary.records[0]
    assert not record.success
    assert record.push is not None and record.push.success
    assert record.message == "GitHub token is required for PR creation"
    assert summary.prs_failed == 1


def test_progress_summary_every_five(tmp_path: Path) -> None:
    ctx = AutogitContext.for_test(git=build_repo_git(tmp_path), cwd=tmp_path)
    plan = _plan(*((date(2024, 1, d), 1) for d in range(1, 7)))

    events, _summary = drain_completion(
        execute_run(ctx, build_handle(tmp_path), plan, RunOptions())
    )

    progress = [e.message for e in events if e.message.startswith("Progress:")]
    assert progress == [
        "Progress: 5/6 processed, 5 succeeded, 0 failed",
        "Progress: 6/6 processed, 6 succeeded, 0 failed",
    ]


def test_tally_heartbeat_message() -> None:
    tally = RunTally(total=4, started_at=10.0)
    tally.completed = 1
    tally.succeeded = 1

    assert tally.heartbeat_message(135.0) == (
        "Still processing... (2m 5s elapsed, 1/4 completed, 1 succeeded)"
    )


def test_missing_git_identity_is_a_warning(tmp_path: Path) -> None:
    ctx = AutogitContext.for_test(git=build_repo_git(tmp_path), cwd=tmp_path)

    events, summary = drain_completion(
        execute_run(ctx, build_handle(tmp_path), _plan((date(2024, 1, 2), 1)), RunOptions())
    )

    assert summary.succeeded == 1
    assert "git user.name and user.email not configured; commits may fail" in [
        e.message for e in events if e.level == "warning"
    ]


def test_configured_identity_is_silent(tmp_path: Path) -> None:
    git = build_repo_git(
        tmp_path, config_values={"user.name": "Ada", "user.email": "ada@example.com"}
    )
    ctx = AutogitContext.for_test(git=git, cwd=tmp_path)

    events, _summary = drain_completion(
        execute_run(ctx, build_handle(tmp_path), _plan((date(2024, 1, 2), 1)), RunOptions())
    )

    assert [e for e in events if e.level == "warning"] == []


def test_undecodable_conflict_fails_only_its_assignment(tmp_path: Path) -> None:
    (tmp_path / "menu.txt").write_bytes(
        "<<<<<<< HEAD\ncaf\xe9\n=======\nth\xe9\n>>>>>>> origin/main\n".encode("latin-1")
    )
    git = build_repo_git(tmp_path, merge_conflicts={"origin/main": ["menu.txt"]})
    dirty = PullRequestState(
        number=999,
        head_branch="auto-2024-01-02",
        base_branch="main",
        mergeable=False,
        mergeable_reason="dirty",
        merged=False,
        state="open",
        url="https://github.com/octo/widgets/pull/999",
    )
    reviews = FakeReviewGateway(pr_states={999: [dirty]})
    ctx = AutogitContext.for_test(git=git, reviews=reviews, cwd=tmp_path)
    plan = _plan((date(2024, 1, 2), 1), (date(2024, 1, 3), 1))
    options = RunOptions(
        review=ReviewOptions(credential=resolve_credential("ghp_x"), auto_merge=True)
    )

    _events, summary = drain_completion(execute_run(ctx, build_handle(tmp_path), plan, options))

    assert [r.success for r in summary.records] == [False, True]
    assert summary.manual_resolution_required == ["auto-2024-01-02"]
    assert git.aborted_merges == [tmp_path]
    assert reviews.merged_prs == [(1000, "merge")]

"""Per-step outcomes, per-assignment results and the run summary."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from autogit.core.planning import WorkPlan


@dataclass(frozen=True)
class CommitRecord:
    message: str
    authored_at: str
    co_author: str | None = None


@dataclass(frozen=True)
class BranchOutcome:
    success: bool
    message: str
    existed_locally: bool = False
    existed_remotely: bool = False
    remote_deleted: bool = False

    @property
    def created(self) -> bool:
        return self.success and not self.existed_locally


@dataclass(frozen=True)
class CommitOutcome:
    success: bool
    message: str
    commits: tuple[CommitRecord, ...] = ()

    @property
    def count(self) -> int:
        return len(self.commits)


@dataclass(frozen=True)
class PushOutcome:
    success: bool
    message: str
    forced: bool = False


@dataclass(frozen=True)
class ReviewOutcome:
    success: bool
    message: str
    pr_number: int | None = None
    pr_url: str | None = None
    created: bool = False
    merged: bool = False
    requires_manual_resolution: bool = False
    attempts: int = 0


@dataclass(frozen=True)
class ResultRecord:
    """Outcome of one assignment. Steps that never ran are None."""

    date: date
    branch_name: str
    commit_count: int
    branch: BranchOutcome | None = None
    commits: CommitOutcome | None = None
    push: PushOutcome | None = None
    review: ReviewOutcome | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        if self.error is not None:
            return False
        steps = (self.branch, self.commits, self.push)
        if any(step is None or not step.success for step in steps):
            return False
        return self.review is None or self.review.success

    @property
    def message(self) -> str:
        if self.error is not None:
            return self.error
        for step in (self.branch, self.commits, self.push, self.review):
            if step is not None and not step.success:
                return step.message
        if self.review is not None:
            return self.review.message
        if self.push is not None:
            return self.push.message
        return "Not processed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "branch": self.branch_name,
            "commit_count": self.commit_count,
            "success": self.success,
            "message": self.message,
            "commits_created": self.commits.count if self.commits is not None else 0,
            "pushed": self.push is not None and self.push.success,
            "forced_push": self.push is not None and self.push.forced,
            "pr_number": self.review.pr_number if self.review is not None else None,
            "pr_url": self.review.pr_url if self.review is not None else None,
            "pr_merged": self.review is not None and self.review.merged,
            "requires_manual_resolution": (
                self.review is not None and self.review.requires_manual_resolution
            ),
        }


@dataclass(frozen=True)
class RunSummary:
    plan: WorkPlan
    records: tuple[ResultRecord, ...] = field(default=())

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.records if r.success)

    @property
    def failed(self) -> int:
        return len(self.records) - self.succeeded

    @property
    def commits_created(self) -> int:
        return sum(r.commits.count for r in self.records if r.commits is not None)

    @property
    def branches_created(self) -> int:
        return sum(1 for r in self.records if r.branch is not None and r.branch.created)

    @property
    def branches_pushed(self) -> int:
        return sum(1 for r in self.records if r.push is not None and r.push.success)

    @property
    def prs_created(self) -> int:
        return sum(1 for r in self.records if r.review is not None and r.review.created)

    @property
    def prs_failed(self) -> int:
        return sum(1 for r in self.records if r.review is not None and not r.review.success)

    @property
    def prs_merged(self) -> int:
        return sum(1 for r in self.records if r.review is not None and r.review.merged)

    @property
    def manual_resolution_required(self) -> list[str]:
        return [
            r.branch_name
            for r in self.records
            if r.review is not None and r.review.requires_manual_resolution
        ]

    @property
    def commits_per_branch(self) -> dict[str, int]:
        return {a.branch_name: a.commit_count for a in self.plan.assignments}

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": len(self.records),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "commits_created": self.commits_created,
            "branches_created": self.branches_created,
            "branches_pushed": self.branches_pushed,
            "prs_created": self.prs_created,
            "prs_failed": self.prs_failed,
            "prs_merged": self.prs_merged,
            "manual_resolution_required": self.manual_resolution_required,
            "commits_per_branch": self.commits_per_branch,
            "requested_branches": self.plan.requested_branches,
            "adjusted_branches": self.plan.adjusted_branches,
            "results": [r.to_dict() for r in self.records],
        }

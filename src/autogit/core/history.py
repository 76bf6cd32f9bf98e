"""Summarize existing commits on a branch within a date range."""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path

from autogit.gateway.git.abc import Git
from autogit.gateway.git.types import CommitInfo


@dataclass(frozen=True)
class CommitHistory:
    branch: str
    start: date
    end: date
    by_date: dict[date, list[CommitInfo]] = field(default_factory=dict)

    @property
    def total_commits(self) -> int:
        return sum(len(commits) for commits in self.by_date.values())


def collect_commit_history(
    git: Git, repo_root: Path, *, branch: str, start: date, end: date
) -> CommitHistory:
    """Group commits on ``branch`` by the calendar date of their author timestamp."""
    since = datetime.combine(start, time.min).astimezone()
    until = datetime.combine(end, time.max).astimezone()
    by_date: dict[date, list[CommitInfo]] = {}
    for commit in git.list_commits(repo_root, branch, since=since, until=until):
        day = commit.authored_at.date()
        if start <= day <= end:
            by_date.setdefault(day, []).append(commit)
    return CommitHistory(
        branch=branch, start=start, end=end, by_date=dict(sorted(by_date.items()))
    )

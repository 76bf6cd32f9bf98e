from datetime import date, datetime
from pathlib import Path

from autogit.core.history import collect_commit_history
from autogit.gateway.git.fake import FakeGit
from autogit.gateway.git.types import CommitInfo


def _commit(sha: str, when: datetime) -> CommitInfo:
    return CommitInfo(sha=sha, message=f"commit {sha}", authored_at=when)


def test_commits_are_grouped_by_author_date() -> None:
    local = datetime.now().astimezone().tzinfo
    history = {
        "main": [
            _commit("c", datetime(2024, 1, 3, 12, tzinfo=local)),
            _commit("b", datetime(2024, 1, 2, 18, tzinfo=local)),
            _commit("a", datetime(2024, 1, 2, 9, tzinfo=local)),
            _commit("z", datetime(2023, 12, 20, 12, tzinfo=local)),
        ]
    }
    git = FakeGit(commit_history=history)

    result = collect_commit_history(
        git, Path("/repo"), branch="main", start=date(2024, 1, 1), end=date(2024, 1, 31)
    )

    assert list(result.by_date) == [date(2024, 1, 2), date(2024, 1, 3)]
    assert [c.sha for c in result.by_date[date(2024, 1, 2)]] == ["b", "a"]
    assert result.total_commits == 3


def test_empty_branch_has_no_history() -> None:
    result = collect_commit_history(
        FakeGit(), Path("/repo"), branch="main", start=date(2024, 1, 1), end=date(2024, 1, 2)
    )

    assert result.by_date == {}
    assert result.total_commits == 0

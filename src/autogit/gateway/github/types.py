"""Value types for the review (pull request) API."""

from dataclasses import dataclass
from typing import Literal

MergeMethod = Literal["merge", "squash", "rebase"]

MERGE_METHODS: tuple[MergeMethod, ...] = ("merge", "squash", "rebase")

# GitHub mergeable_state values that mean "conflicts with the base branch"
CONFLICTING_REASONS = frozenset({"dirty", "conflicting"})


@dataclass(frozen=True)
class PullRequestRef:
    number: int
    url: str


@dataclass(frozen=True)
class PullRequestState:
    """One observation of a pull request. Never cached beyond a single poll.

    ``mergeable`` is None while the remote is still computing it.
    """

    number: int
    head_branch: str
    base_branch: str
    mergeable: bool | None
    mergeable_reason: str
    merged: bool
    state: str
    url: str

    @property
    def is_conflicting(self) -> bool:
        return self.mergeable is False and self.mergeable_reason in CONFLICTING_REASONS

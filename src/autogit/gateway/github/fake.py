"""Fake review gateway for testing."""

from dataclasses import dataclass, replace

from autogit.core.remote_url import RepoLocation
from autogit.gateway.github.abc import ReviewGateway
from autogit.gateway.github.types import MergeMethod, PullRequestRef, PullRequestState


@dataclass(frozen=True)
class CreatedPullRequest:
    number: int
    head: str
    base: str
    title: str
    body: str


class FakeReviewGateway(ReviewGateway):
    """In-memory pull request store.

    Constructor Injection:
    ---------------------
    - open_prs: (head, base) -> already-open pull requests
    - pr_states: number -> successive get_pr() observations; the last one
      repeats once the sequence is exhausted
    - failures: operation name -> exceptions raised by successive calls of
      that operation ("create_pr", "find_open_prs", "get_pr", "merge_pr")
    - next_pr_number: number assigned to the first created pull request

    A pull request with no scripted states reports mergeable=True. Once
    merged through merge_pr(), every later observation reports merged=True.

    Mutation Tracking:
    -----------------
    - created_prs, merged_prs, get_pr_calls, find_calls
    """

    def __init__(
        self,
        *,
        open_prs: dict[tuple[str, str], list[PullRequestRef]] | None = None,
        pr_states: dict[int, list[PullRequestState]] | None = None,
        failures: dict[str, list[Exception]] | None = None,
        next_pr_number: int = 999,
    ) -> None:
        self._open_prs = {k: list(v) for k, v in (open_prs or {}).items()}
        self._pr_states = {k: list(v) for k, v in (pr_states or {}).items()}
        self._failures = {k: list(v) for k, v in (failures or {}).items()}
        self._next_pr_number = next_pr_number
        self._branches_by_number: dict[int, tuple[str, str]] = {
            ref.number: key for key, refs in self._open_prs.items() for ref in refs
        }
        self._merged: set[int] = set()

        self._created_prs: list[CreatedPullRequest] = []
        self._merged_prs: list[tuple[int, MergeMethod]] = []
        self._get_pr_calls: list[int] = []
        self._find_calls: list[tuple[str, str]] = []

    def _maybe_fail(self, operation: str) -> None:
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def create_pr(
        self, location: RepoLocation, *, head: str, base: str, title: str, body: str
    ) -> PullRequestRef:
        self._maybe_fail("create_pr")
        number = self._next_pr_number
        self._next_pr_number += 1
        ref = PullRequestRef(number=number, url=f"{location.web_url}/pull/{number}")
        self._open_prs.setdefault((head, base), []).append(ref)
        self._branches_by_number[number] = (head, base)
        self._created_prs.append(
            CreatedPullRequest(number=number, head=head, base=base, title=title, body=body)
        )
        return ref

    def find_open_prs(
        self, location: RepoLocation, *, head: str, base: str
    ) -> list[PullRequestRef]:
        self._find_calls.append((head, base))
        self._maybe_fail("find_open_prs")
        refs = self._open_prs.get((head, base), [])
        return [ref for ref in refs if ref.number not in self._merged]

    def get_pr(self, location: RepoLocation, number: int) -> PullRequestState:
        self._get_pr_calls.append(number)
        self._maybe_fail("get_pr")
        scripted = self._pr_states.get(number)
        if scripted:
            state = scripted.pop(0) if len(scripted) > 1 else scripted[0]
        else:
            head, base = self._branches_by_number.get(number, ("", ""))
            state = PullRequestState(
                number=number,
                head_branch=head,
                base_branch=base,
                mergeable=True,
                mergeable_reason="clean",
                merged=False,
                state="open",
                url=f"{location.web_url}/pull/{number}",
            )
        if number in self._merged:
            return replace(state, merged=True, state="closed")
        return state

    def merge_pr(self, location: RepoLocation, number: int, *, method: MergeMethod) -> None:
        self._maybe_fail("merge_pr")
        self._merged.add(number)
        self._merged_prs.append((number, method))

    @property
    def created_prs(self) -> list[CreatedPullRequest]:
        return list(self._created_prs)

    @property
    def merged_prs(self) -> list[tuple[int, MergeMethod]]:
        return list(self._merged_prs)

    @property
    def get_pr_calls(self) -> list[int]:
        return list(self._get_pr_calls)

    @property
    def find_calls(self) -> list[tuple[str, str]]:
        return list(self._find_calls)

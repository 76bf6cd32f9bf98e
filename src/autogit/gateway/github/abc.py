"""Abstract interface for the remote review API."""

from abc import ABC, abstractmethod

from autogit.core.remote_url import RepoLocation
from autogit.gateway.github.types import MergeMethod, PullRequestRef, PullRequestState


class ReviewGateway(ABC):
    """Pull request operations on a hosted repository.

    Every method may raise TransientNetworkError for timeouts, connection
    failures and 5xx responses, and ReviewApiError for other error responses.
    """

    @abstractmethod
    def create_pr(
        self, location: RepoLocation, *, head: str, base: str, title: str, body: str
    ) -> PullRequestRef: ...

    @abstractmethod
    def find_open_prs(
        self, location: RepoLocation, *, head: str, base: str
    ) -> list[PullRequestRef]:
        """Return open pull requests whose head and base match exactly."""
        ...

    @abstractmethod
    def get_pr(self, location: RepoLocation, number: int) -> PullRequestState: ...

    @abstractmethod
    def merge_pr(self, location: RepoLocation, number: int, *, method: MergeMethod) -> None:
        """Merge a pull request.

        Raises:
            MergeBlockedError: If the remote refuses the merge (not mergeable,
                head moved, required checks)
        """
        ...

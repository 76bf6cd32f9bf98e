"""Error taxonomy for autogit runs.

Run-level errors (validation, empty pool, broken repository) abort before any
assignment is processed. Everything else is caught per assignment and recorded
in that assignment's result.
"""

from collections.abc import Sequence


class AutogitError(Exception):
    """Base class for all autogit errors."""


class ValidationError(AutogitError):
    """Malformed run input: date range, budgets, or configuration values."""


class PoolExhaustionError(AutogitError):
    """No eligible dates remain after calendar filtering."""


EmptyPoolError = PoolExhaustionError


class RepositoryStateError(AutogitError):
    """The working copy is unusable: not a repository, or the remote is missing."""


class TransientNetworkError(AutogitError):
    """Timeout or connection failure talking to a remote."""


class NonFastForwardError(AutogitError):
    """Push rejected because the remote branch has diverged."""


class ConflictError(AutogitError):
    """A merge stopped with conflicted paths."""

    def __init__(self, message: str, *, paths: Sequence[str]) -> None:
        super().__init__(message)
        self.paths = list(paths)


class PartialResolutionError(ConflictError):
    """Conflict resolution left markers or unmerged paths behind."""


class MergeBlockedError(AutogitError):
    """The remote refused to merge a pull request (checks, protection, stale head)."""


class TooManyRedirectsError(AutogitError):
    """A remote API call exceeded the redirect limit."""


class ReviewApiError(AutogitError):
    """Non-retryable error response from the review API."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class MalformedResponseError(ReviewApiError):
    """A successful API response whose body is not the expected JSON."""

    def __init__(self, message: str, *, status_code: int = 200) -> None:
        super().__init__(status_code, f"Malformed response: {message}")

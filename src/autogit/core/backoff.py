"""Backoff policies for the review lifecycle."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BackoffPolicy:
    """Linear backoff with a per-wait cap and an attempt ceiling.

    Attempts are 1-based: delay_for(1) == base_delay.
    """

    base_delay: float
    max_delay: float
    max_attempts: int

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * attempt, self.max_delay)

    def exhausted(self, attempt: int) -> bool:
        return attempt >= self.max_attempts


# Mergeable is false for a reason other than conflicts (pending checks, protection)
BLOCKED_BACKOFF = BackoffPolicy(base_delay=2.0, max_delay=10.0, max_attempts=10)

# Remote is still computing mergeability
UNKNOWN_BACKOFF = BackoffPolicy(base_delay=1.0, max_delay=5.0, max_attempts=10)

# Wait after pushing a conflict resolution before polling again
POST_RESOLUTION_DELAY = 3.0

# Wait after pushing a branch before opening a pull request for it
BRANCH_SYNC_DELAY = 5.0

MAX_RESOLUTION_ROUNDS = 2


@dataclass(frozen=True)
class ReviewPolicy:
    blocked: BackoffPolicy = BLOCKED_BACKOFF
    unknown: BackoffPolicy = UNKNOWN_BACKOFF
    post_resolution_delay: float = POST_RESOLUTION_DELAY
    branch_sync_delay: float = BRANCH_SYNC_DELAY
    max_resolution_rounds: int = MAX_RESOLUTION_ROUNDS

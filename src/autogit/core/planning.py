"""Work partitioning: turn a date range and budgets into branch assignments."""

import logging
import random
from dataclasses import dataclass
from datetime import date

from autogit.core.calendar import HolidayCalendar
from autogit.core.errors import PoolExhaustionError, ValidationError

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "auto-"


def branch_name_for_date(day: date) -> str:
    """Return the branch name for a date; depends on nothing but the date."""
    return f"{BRANCH_PREFIX}{day.isoformat()}"


@dataclass(frozen=True)
class Assignment:
    date: date
    branch_name: str
    commit_count: int


@dataclass(frozen=True)
class WorkPlan:
    """Immutable plan produced once per run.

    Attributes:
        start: First date of the requested range
        end: Last date of the requested range (inclusive)
        region: Region code used for holiday exclusion
        requested_branches: Branch budget as requested by the caller
        commit_budget: Total commits across all assignments
        eligible_dates: Dates left after calendar filtering, oldest first
        assignments: Selected work, in processing order
    """

    start: date
    end: date
    region: str
    requested_branches: int
    commit_budget: int
    eligible_dates: tuple[date, ...]
    assignments: tuple[Assignment, ...]

    @property
    def branch_count(self) -> int:
        return len(self.assignments)

    @property
    def adjusted_branches(self) -> bool:
        return self.branch_count < self.requested_branches

    @property
    def total_commits(self) -> int:
        return sum(a.commit_count for a in self.assignments)


def validate_plan_request(
    *, start: date, end: date, branch_budget: int, commit_budget: int
) -> None:
    """Reject malformed requests before touching the calendar.

    Raises:
        ValidationError: On invalid budgets or an inverted range
    """
    if branch_budget < 1:
        raise ValidationError("Number of branches must be at least 1")
    if commit_budget < 1:
        raise ValidationError("Total commits must be at least 1")
    if commit_budget < branch_budget:
        raise ValidationError(
            f"Total commits must be at least equal to the number of branches "
            f"({commit_budget} < {branch_budget})"
        )
    if start > end:
        raise ValidationError("Start date must be before end date")


def distribute_commits(total: int, buckets: int, rng: random.Random) -> list[int]:
    """Split ``total`` into ``buckets`` positive integers in random order.

    Every bucket starts at one; the remaining credits land one at a time on
    uniformly random buckets, then the vector is shuffled.
    """
    counts = [1] * buckets
    for _ in range(total - buckets):
        counts[rng.randrange(buckets)] += 1
    rng.shuffle(counts)
    return counts


def build_work_plan(
    calendar: HolidayCalendar,
    *,
    start: date,
    end: date,
    region: str,
    branch_budget: int,
    commit_budget: int,
    rng: random.Random,
) -> WorkPlan:
    """Select dates and commit counts for a run.

    The branch budget is clamped to the size of the eligible pool rather than
    failing; WorkPlan.adjusted_branches reports when that happened.

    Raises:
        ValidationError: If inputs are malformed
        PoolExhaustionError: If every date in the range is excluded
    """
    validate_plan_request(
        start=start, end=end, branch_budget=branch_budget, commit_budget=commit_budget
    )

    pool = calendar.get_valid_dates(start, end, region)
    if not pool:
        raise PoolExhaustionError(
            "No valid dates found in the specified range "
            "(all dates are excluded by the weekly rest day or holidays)"
        )

    branches = min(branch_budget, len(pool))
    if branches < branch_budget:
        logger.debug(
            "Clamped branch budget from %d to %d (eligible pool size)", branch_budget, len(pool)
        )

    selected = rng.sample(pool, branches)
    counts = distribute_commits(commit_budget, branches, rng)
    assignments = tuple(
        Assignment(date=day, branch_name=branch_name_for_date(day), commit_count=count)
        for day, count in zip(selected, counts, strict=True)
    )
    return WorkPlan(
        start=start,
        end=end,
        region=region,
        requested_branches=branch_budget,
        commit_budget=commit_budget,
        eligible_dates=tuple(pool),
        assignments=assignments,
    )

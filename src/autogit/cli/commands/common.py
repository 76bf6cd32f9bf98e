"""Options and helpers shared by commands that build a work plan."""

import random
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime
from typing import Any, TypeVar

import click

from autogit.core.context import AutogitContext

F = TypeVar("F", bound=Callable[..., Any])

DATE_TYPE = click.DateTime(formats=["%Y-%m-%d"])


def as_date(value: datetime) -> date:
    return value.date()


def plan_options(fn: F) -> F:
    """Attach --start/--end/--branches/--commits/--region/--seed."""
    decorators = [
        click.option("--start", type=DATE_TYPE, required=True, help="First date (YYYY-MM-DD)"),
        click.option("--end", type=DATE_TYPE, required=True, help="Last date, inclusive"),
        click.option(
            "--branches", type=int, required=True, help="Number of branches (one per date)"
        ),
        click.option("--commits", type=int, required=True, help="Total commits across branches"),
        click.option(
            "--region",
            default=None,
            help="Holiday region code (see `autogit regions`); defaults to config",
        ),
        click.option("--seed", type=int, default=None, help="Seed for reproducible plans"),
    ]
    for decorator in reversed(decorators):
        fn = decorator(fn)
    return fn


def with_seed(ctx: AutogitContext, seed: int | None) -> AutogitContext:
    if seed is None:
        return ctx
    return replace(ctx, rng=random.Random(seed))


def resolve_region(ctx: AutogitContext, region: str | None) -> str:
    return (region or ctx.config.region).upper()

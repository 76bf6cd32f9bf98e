"""Preview a work plan without touching any repository."""

import json
from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

from autogit.cli.commands.common import as_date, plan_options, resolve_region, with_seed
from autogit.cli.output import user_output
from autogit.core.context import AutogitContext
from autogit.core.errors import AutogitError
from autogit.core.planning import WorkPlan, build_work_plan


def _plan_to_dict(plan: WorkPlan) -> dict[str, object]:
    return {
        "start": plan.start.isoformat(),
        "end": plan.end.isoformat(),
        "region": plan.region,
        "eligible_dates": len(plan.eligible_dates),
        "requested_branches": plan.requested_branches,
        "branches": plan.branch_count,
        "adjusted_branches": plan.adjusted_branches,
        "total_commits": plan.total_commits,
        "assignments": [
            {
                "date": a.date.isoformat(),
                "branch": a.branch_name,
                "commits": a.commit_count,
            }
            for a in plan.assignments
        ],
    }


@click.command("plan")
@plan_options
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON")
@click.pass_obj
def plan_cmd(
    ctx: AutogitContext,
    start: datetime,
    end: datetime,
    branches: int,
    commits: int,
    region: str | None,
    seed: int | None,
    as_json: bool,
) -> None:
    """Show which dates would get branches and how many commits each."""
    ctx = with_seed(ctx, seed)
    try:
        plan = build_work_plan(
            ctx.calendar,
            start=as_date(start),
            end=as_date(end),
            region=resolve_region(ctx, region),
            branch_budget=branches,
            commit_budget=commits,
            rng=ctx.rng,
        )
    except AutogitError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(_plan_to_dict(plan), indent=2))
        return

    user_output(
        f"{len(plan.eligible_dates)} eligible date(s) between {plan.start} and {plan.end} "
        f"(region {plan.region})"
    )
    if plan.adjusted_branches:
        user_output(
            click.style(
                f"Branches reduced from {plan.requested_branches} to {plan.branch_count}",
                fg="yellow",
            )
        )

    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("Branch", style="yellow", no_wrap=True)
    table.add_column("Commits", justify="right")
    for assignment in plan.assignments:
        table.add_row(
            assignment.date.isoformat(), assignment.branch_name, str(assignment.commit_count)
        )

    console = Console(stderr=True, force_terminal=True, width=200)
    console.print(table)
    user_output(f"Total: {plan.branch_count} branch(es), {plan.total_commits} commit(s)")

"""Run the full branch/commit/push (and optional pull request) pipeline."""

import json
from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

from autogit.cli.commands.common import as_date, plan_options, resolve_region, with_seed
from autogit.cli.config import validate_co_author_rate
from autogit.cli.output import echo_event, render_events, user_output
from autogit.core.branch_pipeline import CommitOptions
from autogit.core.context import AutogitContext
from autogit.core.credentials import find_token, resolve_credential
from autogit.core.errors import AutogitError
from autogit.core.heartbeat import Heartbeat
from autogit.core.results import ResultRecord, RunSummary
from autogit.core.review_lifecycle import ReviewOptions
from autogit.core.run import RunOptions, RunRequest, RunTally, execute_run, prepare_run
from autogit.gateway.github.types import MERGE_METHODS, MergeMethod


def _pr_cell(record: ResultRecord) -> str:
    review = record.review
    if review is None:
        return "-"
    label = f"#{review.pr_number}" if review.pr_number is not None else "none"
    if review.merged:
        return f"[green]{label} merged[/green]"
    if review.requires_manual_resolution:
        return f"[red]{label} needs manual resolution[/red]"
    if not review.success:
        return f"[red]{label} failed[/red]"
    return f"{label} open"


def _print_summary(summary: RunSummary) -> None:
    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("Branch", style="yellow", no_wrap=True)
    table.add_column("Commits", justify="right")
    table.add_column("Push", no_wrap=True)
    table.add_column("PR", no_wrap=True)
    table.add_column("Result")

    for record in summary.records:
        created = record.commits.count if record.commits is not None else 0
        if record.push is None:
            push_display = "-"
        elif not record.push.success:
            push_display = "[red]failed[/red]"
        elif record.push.forced:
            push_display = "forced"
        else:
            push_display = "ok"
        result_display = "[green]ok[/green]" if record.success else f"[red]{record.message}[/red]"
        table.add_row(
            record.date.isoformat(),
            record.branch_name,
            f"{created}/{record.commit_count}",
            push_display,
            _pr_cell(record),
            result_display,
        )

    console = Console(stderr=True, force_terminal=True, width=200)
    console.print(table)

    user_output(
        f"{summary.succeeded} succeeded, {summary.failed} failed; "
        f"{summary.commits_created} commit(s), {summary.branches_pushed} branch(es) pushed"
    )
    if summary.prs_created or summary.prs_merged or summary.prs_failed:
        user_output(
            f"PRs: {summary.prs_created} created, {summary.prs_merged} merged, "
            f"{summary.prs_failed} failed"
        )
    for branch in summary.manual_resolution_required:
        user_output(click.style(f"Manual conflict resolution required: {branch}", fg="red"))


@click.command("run")
@click.argument("repo")
@plan_options
@click.option("--remote", default=None, help="Remote to push to; defaults to config")
@click.option("--create-pr/--no-create-pr", default=False, help="Open a pull request per branch")
@click.option("--auto-merge", is_flag=True, help="Merge each pull request once mergeable")
@click.option("--base-branch", default=None, help="Pull request base (default: main/master)")
@click.option("--merge-method", type=click.Choice(MERGE_METHODS), default=None)
@click.option("--token", default=None, help="GitHub token (default: env var, then gh CLI)")
@click.option(
    "--co-author", "co_authors", multiple=True, help="'Name <email>' for co-author trailers"
)
@click.option(
    "--co-author-rate",
    type=int,
    default=None,
    help="Percent of commits (0-100) that get a co-author trailer",
)
@click.option("--json", "as_json", is_flag=True, help="Print the run summary as JSON")
@click.pass_obj
def run_cmd(
    ctx: AutogitContext,
    repo: str,
    start: datetime,
    end: datetime,
    branches: int,
    commits: int,
    region: str | None,
    seed: int | None,
    remote: str | None,
    create_pr: bool,
    auto_merge: bool,
    base_branch: str | None,
    merge_method: MergeMethod | None,
    token: str | None,
    co_authors: tuple[str, ...],
    co_author_rate: int | None,
    as_json: bool,
) -> None:
    """Create dated commits on one branch per selected date in REPO.

    REPO is a local path (created and initialized if needed) or a GitHub,
    GitLab or Bitbucket URL, which is shallow-cloned into the current directory.
    """
    ctx = with_seed(ctx, seed)
    request = RunRequest(
        source=repo,
        start=as_date(start),
        end=as_date(end),
        region=resolve_region(ctx, region),
        branch_budget=branches,
        commit_budget=commits,
        remote=remote or ctx.config.remote,
    )
    try:
        rate = validate_co_author_rate(
            co_author_rate if co_author_rate is not None else ctx.config.co_author_rate
        )
        handle, plan = prepare_run(ctx, request)
    except AutogitError as e:
        raise click.ClickException(str(e)) from e

    review: ReviewOptions | None = None
    if create_pr or auto_merge:
        secret = find_token(explicit=token, env_var=ctx.config.token_env)
        review = ReviewOptions(
            credential=resolve_credential(secret) if secret else None,
            auto_merge=auto_merge,
            base_branch=base_branch,
            merge_method=merge_method or ctx.config.merge_method,
        )

    options = RunOptions(
        commit=CommitOptions(
            co_authors=co_authors or ctx.config.co_authors,
            co_author_rate=rate,
        ),
        review=review,
        review_policy=ctx.config.review_policy,
    )

    tally = RunTally(total=plan.branch_count, started_at=ctx.time.monotonic())
    heartbeat = Heartbeat(
        interval=ctx.config.heartbeat_interval,
        describe=lambda: tally.heartbeat_message(ctx.time.monotonic()),
        emit=echo_event,
    )
    with heartbeat:
        summary = render_events(execute_run(ctx, handle, plan, options, tally))

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
    else:
        _print_summary(summary)

    if summary.failed:
        raise SystemExit(1)

"""Show existing commits per date on a branch."""

from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from autogit.cli.commands.common import DATE_TYPE, as_date
from autogit.cli.output import user_output
from autogit.core.context import AutogitContext
from autogit.core.history import collect_commit_history


@click.command("history")
@click.argument("repo", type=click.Path(file_okay=False, path_type=Path))
@click.option("--start", type=DATE_TYPE, required=True, help="First date (YYYY-MM-DD)")
@click.option("--end", type=DATE_TYPE, required=True, help="Last date, inclusive")
@click.option("--branch", default=None, help="Branch to inspect (default: current branch)")
@click.pass_obj
def history_cmd(
    ctx: AutogitContext,
    repo: Path,
    start: datetime,
    end: datetime,
    branch: str | None,
) -> None:
    """Count commits per date on a branch of REPO."""
    root = repo if repo.is_absolute() else ctx.cwd / repo
    if not ctx.git.is_repository(root):
        raise click.ClickException(f"{root} is not a git repository")
    if start > end:
        raise click.ClickException("Start date must be before end date")

    target = branch or ctx.git.get_current_branch(root)
    if target is None:
        raise click.ClickException("HEAD is detached; pass --branch")

    history = collect_commit_history(
        ctx.git, root, branch=target, start=as_date(start), end=as_date(end)
    )
    if not history.by_date:
        user_output(f"No commits on {target} between {history.start} and {history.end}")
        return

    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("Commits", justify="right")
    table.add_column("Latest")
    for day, commits in history.by_date.items():
        table.add_row(day.isoformat(), str(len(commits)), commits[0].message)

    console = Console(stderr=True, force_terminal=True, width=200)
    console.print(table)
    user_output(
        f"{history.total_commits} commit(s) on {target} across {len(history.by_date)} date(s)"
    )

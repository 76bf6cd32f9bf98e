"""List region codes usable for holiday exclusion."""

import click
from rich.console import Console
from rich.table import Table

from autogit.cli.output import user_output
from autogit.core.context import AutogitContext


@click.command("regions")
@click.pass_obj
def regions_cmd(ctx: AutogitContext) -> None:
    """List holiday regions grouped by area."""
    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("Code", style="cyan", no_wrap=True)
    table.add_column("Name", no_wrap=True)
    table.add_column("Group", style="dim", no_wrap=True)
    table.add_column("Holidays", justify="right")

    for region in ctx.calendar.list_regions():
        table.add_row(region.code, region.name, region.group, str(len(region.holidays)))

    # Use width=200 to prevent truncation in terminal environments with narrow defaults
    console = Console(stderr=True, force_terminal=True, width=200)
    console.print(table)
    user_output(f"Holiday table version {ctx.calendar.version}")

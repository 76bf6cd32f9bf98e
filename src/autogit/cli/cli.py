import logging

import click

from autogit.cli.commands.history_cmd import history_cmd
from autogit.cli.commands.plan_cmd import plan_cmd
from autogit.cli.commands.regions_cmd import regions_cmd
from autogit.cli.commands.run_cmd import run_cmd
from autogit.core.context import create_context
from autogit.core.errors import ValidationError

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="autogit")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Backfill dated commit activity across a calendar window."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s - %(levelname)s - %(message)s")

    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        try:
            ctx.obj = create_context()
        except ValidationError as e:
            raise click.ClickException(str(e)) from e


cli.add_command(history_cmd)
cli.add_command(plan_cmd)
cli.add_command(regions_cmd)
cli.add_command(run_cmd)


def main() -> None:
    """CLI entry point used by the `autogit` console script."""
    cli()

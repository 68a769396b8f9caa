"""hide-helper CLI - hidehelper command."""

import click

from hidehelper import __version__
from hidehelper.cli.apply import apply_command
from hidehelper.cli.stats import stats_command
from hidehelper.core.logging import configure_logging, set_request_id


@click.group()
@click.version_option(version=__version__, prog_name="hidehelper")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """hide-helper - keep only the last N chat messages visible."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")
    set_request_id()


cli.add_command(stats_command, name="stats")
cli.add_command(apply_command, name="apply")


if __name__ == "__main__":
    cli()

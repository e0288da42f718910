"""scenariokit CLI - skit command."""

import click

from scenariokit.cli.build import build_command
from scenariokit.cli.check_config import check_config_command
from scenariokit.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="skit")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """scenariokit - scenario source resolution for interference studies."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(build_command, name="build")
cli.add_command(check_config_command, name="check-config")


if __name__ == "__main__":
    cli()

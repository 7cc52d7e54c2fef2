"""contextpilot CLI main entry point."""

import click

from contextpilot import __version__
from contextpilot.config import settings
from contextpilot.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="contextpilot")
@click.option("--log-level", default=None, help="Override CONTEXTPILOT_LOG_LEVEL")
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default=None,
    help="Override CONTEXTPILOT_LOG_FORMAT",
)
def cli(log_level: str | None, log_format: str | None) -> None:
    """contextpilot - automatic context management for AI coding assistants.

    Extracts project knowledge, ranks it against the task at hand and fits
    it into a token budget.
    """
    configure_logging(
        log_level=log_level or settings.logging.level,
        log_format=log_format or settings.logging.format,
    )


# Import and register subcommands
from contextpilot.cli.context import context  # noqa: E402
from contextpilot.cli.health import health  # noqa: E402
from contextpilot.cli.scan import scan  # noqa: E402
from contextpilot.cli.watch import watch  # noqa: E402

cli.add_command(scan)
cli.add_command(health)
cli.add_command(context)
cli.add_command(watch)

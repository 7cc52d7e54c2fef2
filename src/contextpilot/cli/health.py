"""contextpilot health command."""

import asyncio
from pathlib import Path

import click

from contextpilot.cli.common import scanned_engine
from contextpilot.models import ContextHealth


async def _assess(workspace: Path) -> ContextHealth:
    engine = await scanned_engine(workspace)
    try:
        return await engine.autopilot.run_health_check()
    finally:
        await engine.aclose()


@click.command()
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
def health(path: Path) -> None:
    """Report the health of a project's extracted context."""
    report = asyncio.run(_assess(path.resolve()))
    metrics = report.metrics

    click.echo("=== Context Health ===")
    click.echo(f"Score: {report.score:.1f}/100")
    click.echo()
    click.echo("Metrics:")
    click.echo(f"  Items: {metrics.total_items}")
    click.echo(f"  Fresh: {metrics.fresh_items}")
    click.echo(f"  Stale: {metrics.stale_items}")
    click.echo(f"  Conflicts: {metrics.conflicts}")
    click.echo(f"  Coverage: {metrics.coverage:.0f}%")

    if report.issues:
        click.echo()
        click.echo("Issues:")
        for issue in report.issues:
            click.echo(f"  [{issue.severity.value}] {issue.description}")
            for affected in issue.affected:
                click.echo(f"      {affected}")

    if report.recommendations:
        click.echo()
        click.echo("Recommendations:")
        for rec in report.recommendations:
            click.echo(f"  - {rec}")

"""contextpilot watch command."""

import asyncio
from pathlib import Path

import click

from contextpilot.engine import create_context_engine
from contextpilot.events import Event


async def _run(workspace: Path, duration: float | None) -> None:
    engine = await create_context_engine(workspace, autostart=True, watch=True)

    def _report(event: Event) -> None:
        click.echo(f"{event.timestamp:%H:%M:%S} {event.name.value}")

    engine.bus.subscribe(None, _report)
    info = engine.extractor.watcher_info()
    click.echo(f"Watching {info.count} paths in {workspace} (Ctrl+C to stop)")
    try:
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)
    finally:
        await engine.aclose()


@click.command()
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option("--duration", type=float, default=None, help="Stop after this many seconds")
def watch(path: Path, duration: float | None) -> None:
    """Run the autopilot on a project and print its events."""
    try:
        asyncio.run(_run(path.resolve(), duration))
    except KeyboardInterrupt:
        click.echo("Stopped.")

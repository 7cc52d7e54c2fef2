"""contextpilot scan command."""

import asyncio
import json
from pathlib import Path

import click

from contextpilot.events import Event, EventName
from contextpilot.extraction import AutoExtractor
from contextpilot.models import ExtractedContext


async def _scan(workspace: Path) -> list[ExtractedContext]:
    extractor = AutoExtractor()
    found: list[ExtractedContext] = []

    def _collect(event: Event) -> None:
        found.append(event.payload["context"])

    extractor.bus.subscribe(EventName.CONTEXT_ITEM_EXTRACTED, _collect)
    paths = extractor.project_paths(workspace) or [workspace]
    await extractor.scan_paths(paths)
    return found


@click.command()
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON lines")
def scan(path: Path, as_json: bool) -> None:
    """Extract context from a project without storing it."""
    contexts = asyncio.run(_scan(path.resolve()))

    if as_json:
        for c in contexts:
            click.echo(json.dumps(c.to_dict()))
        return

    if not contexts:
        click.echo("No context found.")
        return

    click.echo(f"{'Type':<14} {'Conf':<5} {'Source'}")
    click.echo("-" * 60)
    for c in contexts:
        click.echo(f"{c.type.value:<14} {c.confidence:<5} {c.source}")
    click.echo()
    click.echo(f"Extracted {len(contexts)} contexts")

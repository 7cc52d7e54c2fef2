"""contextpilot context command."""

import asyncio
from pathlib import Path

import click

from contextpilot.cli.common import scanned_engine
from contextpilot.models import ScoredItem


async def _select(
    workspace: Path,
    files: tuple[str, ...],
    messages: tuple[str, ...],
    task: str | None,
    max_tokens: int | None,
) -> list[ScoredItem]:
    engine = await scanned_engine(workspace)
    if max_tokens is not None:
        engine.autopilot.config.max_context_tokens = max_tokens
    try:
        return await engine.autopilot.get_optimal_context(list(files), list(messages), task)
    finally:
        await engine.aclose()


@click.command()
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option("--file", "-f", "files", multiple=True, help="File being worked on (repeatable)")
@click.option("--message", "-m", "messages", multiple=True, help="Conversation snippet (repeatable)")
@click.option("--task", default=None, help="Task description")
@click.option("--max-tokens", type=int, default=None, help="Token budget")
def context(
    path: Path,
    files: tuple[str, ...],
    messages: tuple[str, ...],
    task: str | None,
    max_tokens: int | None,
) -> None:
    """Print the most relevant context for a task."""
    selected = asyncio.run(_select(path.resolve(), files, messages, task, max_tokens))

    if not selected:
        click.echo("No relevant context found.")
        return

    total = 0
    for scored in selected:
        total += scored.tokens
        click.echo(f"[{scored.score:>3}] {scored.type.value} ({scored.tokens} tokens)")
        click.echo(f"      {scored.relevance.reasoning}")
        first_line = scored.item.content.splitlines()[0] if scored.item.content else ""
        click.echo(f"      {first_line[:100]}")
    click.echo()
    click.echo(f"{len(selected)} items, {total} tokens")

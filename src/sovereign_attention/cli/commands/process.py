"""
Process Command

Run a single content unit through the rules and track attention for it.
"""

import asyncio
from typing import Annotated, Optional

import typer
from rich.markup import escape

from sovereign_attention.cli.config_utils import build_cli_args, load_config_from_cli
from sovereign_attention.cli.error_handling import handle_error
from sovereign_attention.cli.utils import console
from sovereign_attention.content import Content
from sovereign_attention.core.config import AppConfig
from sovereign_attention.core.exceptions import SovereignAttentionError
from sovereign_attention.processor import LocalProcessor


async def _process(app_config: AppConfig, content: Content) -> Optional[Content]:
    async with LocalProcessor(app_config) as processor:
        return await processor.process_content(content)


def process(
    content_id: Annotated[str, typer.Option("--id", "-i", help="Content identifier")],
    text: Annotated[str, typer.Option("--text", "-t", help="Content text")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="View duration in seconds")] = 0,

    # Configuration
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    db: Annotated[Optional[str], typer.Option("--db", help="Database file path")] = None,
):
    """
    Process a piece of content.

    [bold cyan]Examples:[/bold cyan]

    • [green]sap process --id post-1 --text 'Check this link: https://example.com' --duration 5[/green]
    """
    app_config = load_config_from_cli(config_file=config, cli_args=build_cli_args(db=db))

    try:
        content = Content(id=content_id, text=text, view_duration=duration * 1000)
        processed = asyncio.run(_process(app_config, content))
    except SovereignAttentionError as e:
        handle_error(e)

    if processed is None:
        console.print(f"[yellow]Content {escape(content_id)} was filtered out by rules[/yellow]")
        return

    console.print("[green]Content processed successfully:[/green]")
    console.print(f"  ID: {escape(processed.id)}")
    console.print(f"  Text: {escape(processed.text)}")
    if processed.flags:
        console.print(f"  Flags: {escape(', '.join(processed.flags))}")

"""
Rendering of SovereignAttentionError for the terminal.
"""

import logging
from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.padding import Padding
from rich.panel import Panel
from rich.text import Text

from sovereign_attention.core.exceptions import SovereignAttentionError

console = Console(stderr=True)
logger = logging.getLogger(__name__)


def handle_error(err: SovereignAttentionError) -> NoReturn:
    """Print err with its recovery suggestions, then exit with status 1."""
    logger.debug(f"{err.error_code.name}: {err.message}", exc_info=err)

    title = f"Error: {escape(type(err).__name__)} ({err.error_code.value})"
    console.print()
    console.print(Panel(Text(err.message), title=f"[bold red]{title}[/bold red]",
                        border_style="red", expand=False))

    if err.suggestions:
        console.print("\n[bold green]Suggested solutions:[/bold green]")
    for number, hint in enumerate(err.suggestions, 1):
        line = Text(f"{number}. {hint.action}: {hint.description}")
        if hint.command:
            line.append("\n   Run: ", style="bold")
            line.append(hint.command, style="cyan")
        console.print(Padding(line, (0, 1)))

    console.print(Padding(f"Trace ID: [yellow]{err.context.correlation_id}[/yellow]", (1, 0, 0, 0)))
    raise typer.Exit(code=1)

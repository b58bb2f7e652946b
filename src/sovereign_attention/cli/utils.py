"""
CLI Utilities

Shared utilities for CLI commands including formatting and common
functionality.
"""

from datetime import datetime
from typing import Any, Dict, List

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from sovereign_attention.attention import Metrics
from sovereign_attention.rules import Rule

console = Console()


def format_timestamp(value: datetime) -> str:
    """Format a UTC timestamp for display."""
    return value.strftime('%Y-%m-%d %H:%M:%S UTC')


def format_duration(milliseconds: float) -> str:
    """Format a millisecond duration, e.g. 1500 -> '1.5s'."""
    if milliseconds < 1000:
        return f"{milliseconds:.0f}ms"
    seconds = milliseconds / 1000
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{int(minutes)}m {seconds:.0f}s"
    hours, minutes = divmod(minutes, 60)
    return f"{int(hours)}h {int(minutes)}m"


def rules_table(rules: List[Rule]) -> Table:
    """Build a table of rules."""
    table = Table(title="Rules", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold")
    table.add_column("Condition")
    table.add_column("Action")

    for rule in rules:
        table.add_row(escape(rule.id), escape(str(rule.condition)), escape(str(rule.action)))
    return table


def metrics_table(metrics: List[Metrics], title: str = "Attention Metrics") -> Table:
    """Build a table of metrics records."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Content", style="bold")
    table.add_column("Duration", justify="right")
    table.add_column("Interactions", justify="right")
    table.add_column("Last interaction")

    for record in metrics:
        table.add_row(
            escape(record.content_id),
            f"{record.total_duration}ms",
            str(record.interactions),
            format_timestamp(record.last_interaction),
        )
    return table


def print_metrics_detail(record: Metrics) -> None:
    """Print a single metrics record."""
    lines = [
        f"Duration: [cyan]{record.total_duration}ms[/cyan] ({format_duration(record.total_duration)})",
        f"Interactions: [cyan]{record.interactions}[/cyan]",
        f"Last interaction: [cyan]{format_timestamp(record.last_interaction)}[/cyan]",
        f"First seen: [cyan]{format_timestamp(record.created_at)}[/cyan]",
    ]
    console.print(Panel(
        "\n".join(lines),
        title=f"[bold]Metrics for {escape(record.content_id)}[/bold]",
        border_style="green"
    ))


def print_summary(values: Dict[str, Any], title: str) -> None:
    """Print a key/value summary panel."""
    lines = [f"{key}: [cyan]{escape(str(value))}[/cyan]" for key, value in values.items()]
    console.print(Panel("\n".join(lines), title=f"[bold]{title}[/bold]", border_style="green"))


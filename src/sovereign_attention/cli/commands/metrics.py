"""
Metrics Commands

Commands for viewing, cleaning up, exporting and importing attention metrics.
"""

import asyncio
from pathlib import Path
from typing import Annotated, List, Optional

import typer
from rich.markup import escape
from rich.table import Table

from sovereign_attention.attention import AttentionStatistics, Metrics
from sovereign_attention.cli.config_utils import build_cli_args, load_config_from_cli
from sovereign_attention.cli.error_handling import handle_error
from sovereign_attention.cli.utils import (
    console,
    format_duration,
    metrics_table,
    print_metrics_detail,
    print_summary,
)
from sovereign_attention.core.config import AppConfig
from sovereign_attention.core.exceptions import SovereignAttentionError
from sovereign_attention.processor import LocalProcessor


async def _get_metrics(app_config: AppConfig, content_id: Optional[str]) -> List[Metrics]:
    async with LocalProcessor(app_config) as processor:
        if content_id is None:
            return await processor.get_all_metrics()
        record = await processor.get_metrics(content_id)
        return [record] if record else []


async def _get_statistics(app_config: AppConfig, top: Optional[int]) -> AttentionStatistics:
    async with LocalProcessor(app_config) as processor:
        return await processor.get_statistics(top)


async def _cleanup(app_config: AppConfig, days: int) -> int:
    async with LocalProcessor(app_config) as processor:
        return await processor.cleanup(days)


async def _export(app_config: AppConfig, output: Path) -> int:
    async with LocalProcessor(app_config) as processor:
        return await processor.export_metrics(output)


async def _import(app_config: AppConfig, input_path: Path) -> int:
    async with LocalProcessor(app_config) as processor:
        return len(await processor.import_metrics(input_path))


def metrics(
    content_id: Annotated[Optional[str], typer.Option("--id", "-i", help="Show metrics for one content id")] = None,
    top: Annotated[Optional[int], typer.Option("--top", "-n", min=1, help="Number of records to list (default 10)")] = None,

    # Configuration
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    db: Annotated[Optional[str], typer.Option("--db", help="Database file path")] = None,
):
    """
    View attention metrics for one content id, or the most recent records.
    """
    app_config = load_config_from_cli(config_file=config, cli_args=build_cli_args(db=db, top=top))

    try:
        records = asyncio.run(_get_metrics(app_config, content_id))
    except SovereignAttentionError as e:
        handle_error(e)

    if content_id is not None:
        if not records:
            console.print(f"[yellow]No metrics found for content {escape(content_id)}[/yellow]")
            return
        print_metrics_detail(records[0])
        return

    if not records:
        console.print("[yellow]No metrics recorded yet[/yellow]")
        return

    limit = app_config.attention.default_top
    console.print(metrics_table(records[:limit], title=f"Top {limit} by last interaction"))


def stats(
    top: Annotated[Optional[int], typer.Option("--top", "-n", min=1, help="Length of the top lists (default 10)")] = None,

    # Configuration
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    db: Annotated[Optional[str], typer.Option("--db", help="Database file path")] = None,
):
    """
    Show aggregate attention statistics.
    """
    app_config = load_config_from_cli(config_file=config, cli_args=build_cli_args(db=db, top=top))

    try:
        statistics = asyncio.run(_get_statistics(app_config, top))
    except SovereignAttentionError as e:
        handle_error(e)

    if statistics.tracked == 0:
        console.print("[yellow]No metrics recorded yet[/yellow]")
        return

    average = statistics.average_duration
    print_summary({
        "Tracked content": statistics.tracked,
        "Interactions": statistics.total_interactions,
        "Total duration": format_duration(statistics.total_duration),
        "Average duration": format_duration(average) if average is not None else "n/a",
    }, title="Attention Statistics")

    console.print(metrics_table(statistics.most_interacted, title="Most interacted"))

    if statistics.distribution:
        table = Table(title="Attention distribution", show_header=True, header_style="bold cyan")
        table.add_column("Content", style="bold")
        table.add_column("Share", justify="right")
        ranked = sorted(statistics.distribution.items(), key=lambda item: item[1], reverse=True)
        for content_id, share in ranked[:app_config.attention.default_top]:
            table.add_row(escape(content_id), f"{share:.1f}%")
        console.print(table)


def cleanup(
    days: Annotated[Optional[int], typer.Option("--days", "-d", help="Keep metrics from the last N days (default 30)")] = None,

    # Configuration
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    db: Annotated[Optional[str], typer.Option("--db", help="Database file path")] = None,
):
    """
    Delete metrics whose last interaction is older than the retention window.
    """
    app_config = load_config_from_cli(config_file=config, cli_args=build_cli_args(db=db, days=days))
    days_to_keep = app_config.storage.cleanup_days

    try:
        deleted = asyncio.run(_cleanup(app_config, days_to_keep))
    except SovereignAttentionError as e:
        handle_error(e)

    console.print(f"[green]✓[/green] Removed {deleted} metrics records older than {days_to_keep} days")


def export_metrics(
    output: Annotated[Path, typer.Option("--output", "-o", help="Output JSON file")],

    # Configuration
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    db: Annotated[Optional[str], typer.Option("--db", help="Database file path")] = None,
):
    """
    Export metrics to a JSON file.
    """
    app_config = load_config_from_cli(config_file=config, cli_args=build_cli_args(db=db))

    try:
        count = asyncio.run(_export(app_config, output))
    except SovereignAttentionError as e:
        handle_error(e)

    console.print(f"[green]✓[/green] Exported {count} metrics records to {escape(str(output))}")


def import_metrics(
    input_path: Annotated[Path, typer.Option("--input", "-i", help="Input JSON file")],

    # Configuration
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    db: Annotated[Optional[str], typer.Option("--db", help="Database file path")] = None,
):
    """
    Import metrics from a JSON file (existing records are kept or overwritten by id).
    """
    app_config = load_config_from_cli(config_file=config, cli_args=build_cli_args(db=db))

    try:
        count = asyncio.run(_import(app_config, input_path))
    except SovereignAttentionError as e:
        handle_error(e)

    console.print(f"[green]✓[/green] Imported {count} metrics records from {escape(str(input_path))}")

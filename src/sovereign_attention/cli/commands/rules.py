"""
Rule Commands

Commands for adding, removing and listing content filtering rules.
"""

import asyncio
from typing import Annotated, List, Optional

import typer
from rich.markup import escape

from sovereign_attention.cli.config_utils import build_cli_args, load_config_from_cli
from sovereign_attention.cli.error_handling import handle_error
from sovereign_attention.cli.utils import console, rules_table
from sovereign_attention.core.config import AppConfig
from sovereign_attention.core.exceptions import SovereignAttentionError
from sovereign_attention.processor import LocalProcessor
from sovereign_attention.rules import Rule, RuleFactory
from sovereign_attention.rules.factory import DEFAULT_ML_THRESHOLD


async def _add_rule(app_config: AppConfig, rule: Rule) -> None:
    async with LocalProcessor(app_config) as processor:
        await processor.add_rule(rule)


async def _remove_rule(app_config: AppConfig, rule_id: str) -> Optional[Rule]:
    async with LocalProcessor(app_config) as processor:
        return await processor.remove_rule(rule_id)


async def _list_rules(app_config: AppConfig) -> List[Rule]:
    async with LocalProcessor(app_config) as processor:
        return await processor.get_rules()


def add_rule(
    rule_id: Annotated[str, typer.Option("--id", "-i", help="Unique rule identifier")],
    condition_type: Annotated[str, typer.Option("--condition-type", "-t", help="Condition type: keyword, regex or ml")],
    value: Annotated[str, typer.Option("--value", "-v", help="Keyword, regex pattern or model id")],
    action: Annotated[str, typer.Option("--action", "-a", help="Action type: filter, modify or flag")],
    params: Annotated[Optional[str], typer.Option("--params", "-p", help="Modify template or JSON list of flags")] = None,
    threshold: Annotated[float, typer.Option("--threshold", help="Score threshold for ml conditions")] = DEFAULT_ML_THRESHOLD,

    # Configuration
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    db: Annotated[Optional[str], typer.Option("--db", help="Database file path")] = None,
):
    """
    Add a content filtering rule.

    [bold cyan]Examples:[/bold cyan]

    • Drop ads: [green]sap add-rule --id no-ads -t keyword -v sponsored -a filter[/green]
    • Flag links: [green]sap add-rule --id urls -t regex -v 'https?://\\S+' -a flag -p '["contains-url"]'[/green]
    • Rewrite: [green]sap add-rule --id quote -t keyword -v news -a modify -p '> {content}'[/green]
    """
    app_config = load_config_from_cli(config_file=config, cli_args=build_cli_args(db=db))

    try:
        rule = RuleFactory.create_rule(rule_id, condition_type, value, action, params, threshold)
        asyncio.run(_add_rule(app_config, rule))
    except SovereignAttentionError as e:
        handle_error(e)

    console.print(f"[green]✓[/green] Rule [bold]{escape(rule.id)}[/bold] added successfully")


def remove_rule(
    rule_id: Annotated[str, typer.Argument(help="Identifier of the rule to remove")],

    # Configuration
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    db: Annotated[Optional[str], typer.Option("--db", help="Database file path")] = None,
):
    """
    Remove a content filtering rule.
    """
    app_config = load_config_from_cli(config_file=config, cli_args=build_cli_args(db=db))

    try:
        removed = asyncio.run(_remove_rule(app_config, rule_id))
    except SovereignAttentionError as e:
        handle_error(e)

    if removed is None:
        console.print(f"[yellow]No rule found with id {escape(rule_id)}[/yellow]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Rule [bold]{escape(rule_id)}[/bold] removed")


def list_rules(
    # Configuration
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    db: Annotated[Optional[str], typer.Option("--db", help="Database file path")] = None,
):
    """
    List persisted content filtering rules, most recently written first.
    """
    app_config = load_config_from_cli(config_file=config, cli_args=build_cli_args(db=db))

    try:
        rules = asyncio.run(_list_rules(app_config))
    except SovereignAttentionError as e:
        handle_error(e)

    if not rules:
        console.print("[yellow]No rules found[/yellow]")
        return

    console.print(rules_table(rules))

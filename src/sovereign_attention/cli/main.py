"""
Entry point of the ``sap`` command.

Commands are defined in ``sovereign_attention.cli.commands`` and registered
on a single Typer application here.
"""

from typing import Optional

import typer
from rich.console import Console

from sovereign_attention.cli import __version__
from sovereign_attention.cli.commands import metrics, process, rules

console = Console()

app = typer.Typer(
    name="sap",
    help="Sovereign Attention: rule-filtered content with persistent attention metrics",
    context_settings={"help_option_names": ["-h", "--help"]},
    rich_markup_mode="rich",
    no_args_is_help=True,
)

COMMANDS = {
    "add-rule": rules.add_rule,
    "remove-rule": rules.remove_rule,
    "list-rules": rules.list_rules,
    "process": process.process,
    "metrics": metrics.metrics,
    "stats": metrics.stats,
    "cleanup": metrics.cleanup,
    "export": metrics.export_metrics,
    "import": metrics.import_metrics,
}

for command_name, command in COMMANDS.items():
    app.command(command_name)(command)


def _show_version(value: bool) -> None:
    if not value:
        return
    console.print(f"[bold cyan]Sovereign Attention[/bold cyan] version [green]{__version__}[/green]")
    raise typer.Exit()


@app.callback()
def app_callback(
    version: Optional[bool] = typer.Option(
        None, "--version", "-V",
        callback=_show_version,
        is_eager=True,
        help="Print the version and exit"
    ),
):
    """
    Filter content through your own rules and keep attention metrics on your machine.

    [bold]Examples:[/bold]

    • [cyan]sap add-rule --id no-ads -t keyword -v sponsored -a filter[/cyan]
    • [cyan]sap process --id post-1 --text 'hello' --duration 5[/cyan]
    • [cyan]sap metrics --top 5[/cyan]
    """


def main():
    """Console script entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise SystemExit(130)


if __name__ == "__main__":
    main()

"""
Option-to-config plumbing shared by every command.
"""

from typing import Any, Dict, Optional

from sovereign_attention.cli.error_handling import handle_error
from sovereign_attention.cli.utils import console
from sovereign_attention.core.config import AppConfig, ConfigManager
from sovereign_attention.core.exceptions import ConfigurationError
from sovereign_attention.core.logging import setup_logging


def build_cli_args(**options: Any) -> Dict[str, Any]:
    """Keep only the options the user actually passed."""
    return {name: value for name, value in options.items() if value is not None}


def load_config_from_cli(
    config_file: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None
) -> AppConfig:
    """
    Resolve the configuration for a command and configure logging from it.

    Configuration errors are rendered and end the command with exit code 1.
    Non-fatal problems are printed as warnings before the command runs.
    """
    manager = ConfigManager(config_file=config_file)
    try:
        app_config = manager.load_config(cli_args=cli_args)
    except ConfigurationError as e:
        handle_error(e)

    setup_logging(app_config.logging)

    problems = manager.validate_config(app_config)
    for problem in problems:
        console.print(f"[yellow]Config warning:[/yellow] {problem}")
    if problems:
        console.print()

    return app_config

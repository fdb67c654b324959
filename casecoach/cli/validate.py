"""Validate command for configuration files."""

from pathlib import Path

import typer

from casecoach.services.config_manager import ConfigManager
from casecoach.cli.utils import handle_errors, display_success, display_error


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(..., help="Config file to validate"),
):
    """Validate configuration file syntax and cascade policies."""
    try:
        manager = ConfigManager(config_path=str(config_path))
        config = manager.load_config()
    except Exception as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    display_success("Configuration is valid!")
    for name, policy in sorted(config.policies.items()):
        chain = " -> ".join(attempt.label for attempt in policy.attempts)
        typer.echo(f"  {name}: {chain}")

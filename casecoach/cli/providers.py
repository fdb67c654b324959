"""Providers command: show which providers have credentials."""

from pathlib import Path
from typing import Optional

import typer

from casecoach.cli.utils import (
    display_error,
    display_info,
    display_success,
    get_config_manager,
    handle_errors,
    load_config,
)


@handle_errors
def providers_command(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config file (defaults when omitted)"
    ),
):
    """List configured providers and the attempts each policy can run."""
    config = load_config(config_path)
    credentials = get_config_manager(config_path).load_credentials()
    configured = credentials.configured_providers

    for provider in ("groq", "gemini"):
        if provider in configured:
            display_success(f"{provider}: configured")
        else:
            display_info(f"{provider}: not configured")

    if not configured:
        display_error("No provider API keys configured (GROQ_API_KEY, GEMINI_API_KEY)")
        raise typer.Exit(code=1)

    for name, policy in sorted(config.policies.items()):
        usable = [a.label for a in policy.attempts if a.provider in configured]
        typer.echo(f"  {name}: {len(usable)}/{len(policy.attempts)} attempts usable")

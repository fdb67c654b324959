"""Serve command for the coaching API."""

from pathlib import Path
from typing import Optional

import typer

from casecoach.cli.utils import (
    display_info,
    display_warning,
    get_config_manager,
    handle_errors,
    load_config,
)
from casecoach.observability.logging import configure_logging


@handle_errors
def serve_command(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config file (defaults when omitted)"
    ),
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Bind host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
):
    """Run the coaching API under uvicorn."""
    from casecoach.api.server import run_server

    config = load_config(config_path)
    credentials = get_config_manager(config_path).load_credentials()
    configure_logging(level=config.server.log_level, json_output=config.server.json_logs)

    if not credentials.configured_providers:
        display_warning(
            "No provider API keys configured; requests will fail with a 500 error."
        )

    host = host or config.server.host
    port = port or config.server.port
    display_info(f"Starting casecoach API at http://{host}:{port}")
    run_server(config=config, credentials=credentials, host=host, port=port)

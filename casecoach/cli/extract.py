"""Extract command: run JSON recovery over a saved model response.

Useful for checking how a captured provider output would be handled.
"""

import json
from pathlib import Path

import typer

from casecoach.cli.utils import display_error, display_success, handle_errors
from casecoach.services.llm.json_recovery import extract_json


@handle_errors
def extract_command(
    file_path: Path = typer.Argument(..., help="File containing raw model output"),
):
    """Recover a JSON object from raw model output."""
    if not file_path.exists():
        display_error(f"File not found: {file_path}")
        raise typer.Exit(code=1)

    outcome = extract_json(file_path.read_text(encoding="utf-8"))
    if not outcome.ok:
        display_error(f"Extraction failed: {outcome.reason.value}")
        raise typer.Exit(code=1)

    display_success(f"Recovered JSON (strategy: {outcome.strategy.value})")
    typer.echo(json.dumps(outcome.value, indent=2, ensure_ascii=False))

"""casecoach CLI Package.

Usage:
    python -m casecoach.cli serve --config config/casecoach.yaml
    python -m casecoach.cli validate config/casecoach.yaml
    python -m casecoach.cli extract response.txt
    python -m casecoach.cli providers
"""

import typer

from casecoach.cli.serve import serve_command
from casecoach.cli.validate import validate_command
from casecoach.cli.extract import extract_command
from casecoach.cli.providers import providers_command

app = typer.Typer(help="casecoach: case interview coaching API")

app.command(name="serve")(serve_command)
app.command(name="validate")(validate_command)
app.command(name="extract")(extract_command)
app.command(name="providers")(providers_command)

__all__ = [
    "app",
    "serve_command",
    "validate_command",
    "extract_command",
    "providers_command",
]

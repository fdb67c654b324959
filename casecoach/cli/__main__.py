"""CLI entry point.

Allows running the CLI as a module: python -m casecoach.cli
"""

from casecoach.cli import app

if __name__ == "__main__":
    app()

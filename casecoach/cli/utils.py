"""Shared CLI utilities.

Provides common functionality for all CLI commands.
"""

import functools
from pathlib import Path
from typing import Callable, Optional, TypeVar

import structlog
import typer

from casecoach.models.config import AppConfig
from casecoach.observability.logging import configure_logging
from casecoach.services.config_manager import ConfigManager, ConfigValidationError

# Human-readable logs for interactive use; `serve` reconfigures from the config
configure_logging(json_output=False)
logger = structlog.get_logger()

F = TypeVar("F", bound=Callable)


def get_config_manager(config_path: Optional[Path] = None) -> ConfigManager:
    return ConfigManager(config_path=str(config_path) if config_path else None)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and validate configuration.

    Args:
        config_path: Path to configuration file, or None for defaults.

    Returns:
        Validated AppConfig.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    config_manager = get_config_manager(config_path)
    try:
        return config_manager.load_config()
    except (FileNotFoundError, ConfigValidationError) as e:
        typer.secho(f"Configuration Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    Catches exceptions and displays user-friendly error messages.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except Exception as e:
            logger.exception("command_failed")
            typer.secho(f"Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def display_success(message: str) -> None:
    typer.secho(message, fg=typer.colors.GREEN)


def display_warning(message: str) -> None:
    typer.secho(message, fg=typer.colors.YELLOW)


def display_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)


def display_info(message: str) -> None:
    typer.secho(message, fg=typer.colors.CYAN)

"""Decorators for dircat CLI commands."""

import functools
import logging
from typing import Any, Callable

import typer
from rich.console import Console

from dircat.storage import InvalidRootError

logger = logging.getLogger(__name__)
console = Console()


def handle_errors(func: Callable) -> Callable:
    """
    Decorator to handle common command errors.

    Centralizes error reporting for:
    - InvalidRootError: Catalog root missing or not a directory
    - PermissionError: No access to files
    - ValueError: Invalid arguments or configuration
    - General exceptions: Unexpected errors
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except InvalidRootError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            console.print("[yellow]Tip: Pass a root directory or set one with 'dircat config --root'[/yellow]")
            raise typer.Exit(code=1)
        except PermissionError as e:
            console.print(f"[bold red]Error:[/bold red] Permission denied: {e}")
            raise typer.Exit(code=1)
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] Invalid input: {e}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(code=130)
        except typer.Exit:
            raise
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            console.print(f"[bold red]Unexpected error:[/bold red] {e}")
            raise typer.Exit(code=1)

    return wrapper

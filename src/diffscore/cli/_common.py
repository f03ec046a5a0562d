"""Shared CLI helpers."""

from contextlib import contextmanager
from typing import Iterator

import typer
from rich.console import Console

from ..exceptions import DiffScoreError
from ..logging_config import get_logger

console = Console()

logger = get_logger(__name__)


@contextmanager
def cli_errors(verbose: bool = False) -> Iterator[None]:
    """Turn errors into messages and exit codes the way every command reports them."""
    try:
        yield

    except typer.Exit:
        raise

    except DiffScoreError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)

    except Exception as e:
        logger.exception("Unexpected error")
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)


def severity_style(severity: str) -> str:
    return {
        "CRITICAL": "bold red",
        "MAJOR": "red",
        "MINOR": "yellow",
        "INFO": "dim",
    }.get(severity, "")


def score_style(score: float) -> str:
    if score >= 90:
        return "green"
    if score >= 70:
        return "yellow"
    return "red"

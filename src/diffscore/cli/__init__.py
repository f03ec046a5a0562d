"""CLI entry point, registers all subcommands."""

from typing import Optional

import typer

from ..logging_config import setup_logging
from ._common import console

app = typer.Typer(
    name="diffscore",
    help="diffscore - Pull request segmentation and quality scoring",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

config_app = typer.Typer(help="Create or inspect .ai-review.yml files", no_args_is_help=True)
app.add_typer(config_app, name="config")


def _show_version(value: bool):
    if value:
        from .. import __version__

        console.print(f"[bold cyan]diffscore[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to a file", hidden=True),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit", callback=_show_version, is_eager=True
    ),
):
    """
    Split pull request diffs into segments and score review findings.

    [bold cyan]Examples:[/bold cyan]

      diffscore segment changes.diff --strategy function

      diffscore score findings.json --lines 120

      diffscore config init .ai-review.yml
    """
    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# Import subcommands to register them
from .segment import segment as _segment  # noqa: F401, E402
from .score import score as _score  # noqa: F401, E402
from .config import config_init as _config_init, config_show as _config_show  # noqa: F401, E402

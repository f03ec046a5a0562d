"""Config commands: generate and inspect .ai-review.yml files."""

from pathlib import Path
from typing import Optional

import typer
import yaml

from ..config import CONFIG_FILE_NAME, ReviewConfig, dump_config, load_config
from . import config_app
from ._common import cli_errors, console


@config_app.command("init")
def config_init(
    path: Path = typer.Argument(Path(CONFIG_FILE_NAME), help="Where to write the config file"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Write a default review configuration."""
    with cli_errors():
        if path.is_dir():
            path = path / CONFIG_FILE_NAME
        if path.exists() and not force:
            console.print(f"[yellow]{path} already exists.[/yellow] Use --force to overwrite.")
            raise typer.Exit(1)

        dump_config(ReviewConfig.default(), path)
        console.print(f"[green]Wrote {path}[/green]")


@config_app.command("show")
def config_show(
    repo: Optional[Path] = typer.Argument(
        None,
        help="Repository root containing .ai-review.yml (default: current directory)",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    strict: bool = typer.Option(False, "--strict", help="Fail on an invalid config instead of using defaults"),
):
    """Show the effective review configuration for a repository."""
    with cli_errors():
        target = repo or Path.cwd()
        config = load_config(target, strict=strict)
        source = target / CONFIG_FILE_NAME
        origin = str(source) if source.exists() else "defaults"

        console.print(f"[dim]# effective configuration ({origin})[/dim]")
        print(yaml.safe_dump(config.to_dict(), sort_keys=False), end="")

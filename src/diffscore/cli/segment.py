"""Segment command: show how a diff would be split for providers."""

import json
from pathlib import Path

import typer
from rich.table import Table

from ..segmentation import Segmenter, SplittingStrategy, parse_unified_diff
from . import app
from ._common import cli_errors, console


@app.command()
def segment(
    ctx: typer.Context,
    patch: Path = typer.Argument(
        ...,
        help="Unified diff file (e.g. output of git diff)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    strategy: str = typer.Option(
        "intelligent",
        "--strategy",
        "-s",
        help="function | class | lines | intelligent | file",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output segments as JSON"),
):
    """
    Split a diff into code segments and list them.

    [bold cyan]Examples:[/bold cyan]

      git diff main | diffscore segment /dev/stdin

      diffscore segment changes.diff --strategy lines --json
    """
    verbose = (ctx.obj or {}).get("verbose", False)

    with cli_errors(verbose):
        splitting = SplittingStrategy.from_name(strategy)
        hunks = parse_unified_diff(patch.read_text(encoding="utf-8", errors="replace"))
        segments = Segmenter().split(hunks, splitting)

        if json_output:
            payload = [
                {
                    "file": s.file_path,
                    "kind": s.kind.value,
                    "start_line": s.start_line,
                    "end_line": s.end_line,
                    "language": s.language,
                    "metadata": dict(s.metadata),
                }
                for s in segments
            ]
            print(json.dumps(payload, indent=2))
            return

        if not segments:
            console.print("[yellow]No segments produced.[/yellow] The diff has no reviewable content.")
            return

        table = Table(title=f"{len(segments)} segments ({splitting.type.value})", expand=False)
        table.add_column("File", style="bold")
        table.add_column("Kind")
        table.add_column("Lines", justify="right")
        table.add_column("Language")
        table.add_column("Name", style="cyan")

        for s in segments:
            name = s.metadata.get("function_name") or s.metadata.get("class_name") or ""
            table.add_row(s.file_path, s.kind.value, f"{s.start_line}-{s.end_line}", s.language, name)

        console.print(table)
        console.print(f"[dim]{len(hunks)} files in diff[/dim]")

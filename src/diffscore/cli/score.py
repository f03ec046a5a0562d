"""Score command: score a set of findings the way a review run would."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..config import ScoringConfig, load_config
from ..exceptions import ConfigFileError
from ..models import Dimension
from ..review import FindingAggregator, OutcomeStatus, ProviderOutcome, ScoringEngine
from . import app
from ._common import cli_errors, console, score_style, severity_style


def _read_findings(path: Path) -> list:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigFileError(path, f"not valid JSON: {e}")

    if isinstance(data, dict):
        data = data.get("findings", [])
    if not isinstance(data, list):
        raise ConfigFileError(path, "expected a list of findings or {\"findings\": [...]}")
    return data


@app.command()
def score(
    ctx: typer.Context,
    findings_file: Path = typer.Argument(
        ...,
        help="JSON file with a list of findings",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    lines: int = typer.Option(0, "--lines", "-l", min=0, help="Lines changed in the pull request"),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Review configuration (.ai-review.yml) to take scoring settings from",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    json_output: bool = typer.Option(False, "--json", help="Output scores as JSON"),
):
    """
    Score findings: per-dimension scores, total, grade and recommendations.

    [bold cyan]Examples:[/bold cyan]

      diffscore score findings.json --lines 250

      diffscore score findings.json -c .ai-review.yml --json
    """
    verbose = (ctx.obj or {}).get("verbose", False)

    with cli_errors(verbose):
        scoring = (
            load_config(config_file=config, strict=True).scoring if config else ScoringConfig.default()
        )

        raw = _read_findings(findings_file)
        aggregation = FindingAggregator().aggregate(
            [ProviderOutcome("cli", OutcomeStatus.SUCCEEDED, findings=tuple(raw))]
        )

        engine = ScoringEngine()
        scores = engine.score(aggregation.findings, lines, scoring)
        summary = engine.summarize(scores, aggregation.findings)

        if json_output:
            payload = scores.to_dict()
            payload["grade"] = summary.grade.value
            payload["improvement_potential"] = summary.improvement_potential
            payload["recommendations"] = list(summary.recommendations)
            payload["rejected"] = aggregation.rejected
            print(json.dumps(payload, indent=2))
            return

        table = Table(title="Scores", expand=False)
        table.add_column("Dimension", style="bold")
        table.add_column("Weight", justify="right")
        table.add_column("Score", justify="right")
        table.add_column("Findings", justify="right")

        for dimension in Dimension:
            value = scores.dimensions[dimension]
            count = sum(1 for f in aggregation.findings if f.dimension is dimension)
            table.add_row(
                dimension.value,
                f"{scores.weights.get(dimension, 0.0):.2f}",
                f"[{score_style(value)}]{value:.1f}[/{score_style(value)}]",
                str(count),
            )

        console.print(table)
        console.print(f"[bold]{summary.summary_text}[/bold]")

        if aggregation.rejected:
            console.print(f"[yellow]{aggregation.rejected} malformed finding(s) ignored[/yellow]")

        if verbose and aggregation.findings:
            console.print()
            for f in aggregation.findings:
                style = severity_style(f.severity.value)
                console.print(
                    f"  [{style}]{f.severity.value:<8}[/{style}] {f.file}:{f.start_line}  {f.title}"
                )

        console.print()
        for recommendation in summary.recommendations:
            console.print(f"  • {recommendation}")

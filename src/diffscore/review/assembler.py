"""Run assembler: diff statistics + findings + scores -> immutable ReviewRun."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from ..models import DiffHunk, PullRef, RepoRef, ReviewRun, RunStats, Scores
from .aggregator import AggregationResult


def lines_changed(hunks: Iterable[DiffHunk]) -> int:
    """Diff size fed to the scoring engine: sum of |added - deleted| per file."""
    return sum(abs(h.lines_added - h.lines_deleted) for h in hunks)


class RunAssembler:
    """Builds the final ReviewRun once every provider has resolved."""

    def assemble(
        self,
        run_id: str,
        repo: RepoRef,
        pull: PullRef,
        created_at: datetime,
        provider_keys: Sequence[str],
        hunks: Sequence[DiffHunk],
        aggregation: AggregationResult,
        scores: Scores,
        latency_ms: int,
        token_cost_usd: Optional[float] = None,
        warnings: Sequence[str] = (),
    ) -> ReviewRun:
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        stats = RunStats(
            files_changed=len(hunks),
            lines_added=sum(h.lines_added for h in hunks),
            lines_deleted=sum(h.lines_deleted for h in hunks),
            latency_ms=max(int(latency_ms), 0),
            token_cost_usd=token_cost_usd,
            warnings=tuple(warnings) + tuple(w for w in aggregation.warnings if w not in warnings),
        )

        return ReviewRun(
            run_id=run_id,
            repo=repo,
            pull=pull,
            created_at=created_at,
            provider_keys=tuple(provider_keys),
            stats=stats,
            findings=aggregation.findings,
            scores=scores,
        )

"""Review pipeline: DiffHunks -> Segmenter -> Runner -> Aggregator -> Scoring -> Assembler.

Usage:
    pipeline = ReviewPipeline([MyLinterProvider(), MyLlmProvider()], config=load_config(path))
    run = pipeline.run(repo, pull, hunks)
    print(run.scores.total)
"""

from __future__ import annotations

import secrets
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol, Sequence

from ..config import ReviewConfig
from ..costing import TokenCostCalculator, UsageLedger
from ..logging_config import get_logger
from ..models import DiffHunk, PullRef, RepoRef, ReviewRun
from ..providers.protocols import ProviderRequest, ReviewProvider
from ..segmentation.segmenter import Segmenter
from ..segmentation.strategy import SplittingStrategy
from .aggregator import FindingAggregator
from .assembler import RunAssembler, lines_changed
from .runner import AnalysisRunner, OutcomeStatus
from .scoring import ScoringEngine
from .tracking import RunState, RunTracker

logger = get_logger(__name__)


class DiffSource(Protocol):
    """SCM collaborator that lists a pull request's file diffs."""

    def list_diff(self, repo: RepoRef, pull: PullRef) -> list[DiffHunk]: ...


def new_run_id() -> str:
    """``run-<epoch millis>-<4 hex chars>``."""
    return f"run-{int(time.time() * 1000)}-{secrets.token_hex(2)}"


class ReviewPipeline:
    """Wires the review stages together for one pull request at a time.

    Core problems (unsplittable files, failing or slow providers, malformed
    findings, odd scoring config) are absorbed by the stages and surface as
    ``RunStats.warnings``; a run always ends with Scores.
    """

    def __init__(
        self,
        providers: Iterable[ReviewProvider],
        config: Optional[ReviewConfig] = None,
        segmenter: Optional[Segmenter] = None,
        scoring_engine: Optional[ScoringEngine] = None,
        aggregator: Optional[FindingAggregator] = None,
        tracker: Optional[RunTracker] = None,
        cost_calculator: Optional[TokenCostCalculator] = None,
        runner: Optional[AnalysisRunner] = None,
        assembler: Optional[RunAssembler] = None,
    ):
        self.providers: Sequence[ReviewProvider] = list(providers)
        self.config = config or ReviewConfig.default()
        self.segmenter = segmenter or Segmenter()
        self.scoring_engine = scoring_engine or ScoringEngine()
        self.aggregator = aggregator or FindingAggregator()
        self.tracker = tracker or RunTracker()
        self.cost_calculator = cost_calculator or TokenCostCalculator()
        self.runner = runner or AnalysisRunner(
            max_workers=self.config.runner.max_workers,
            provider_timeout_seconds=self.config.runner.provider_timeout_seconds,
            run_timeout_seconds=self.config.runner.run_timeout_seconds,
        )
        self.assembler = assembler or RunAssembler()

    def review_pull(
        self,
        source: DiffSource,
        repo: RepoRef,
        pull: PullRef,
        strategy: Optional[SplittingStrategy] = None,
        run_id: Optional[str] = None,
    ) -> ReviewRun:
        """Fetch the pull request's hunks from the SCM collaborator, then run."""
        hunks = source.list_diff(repo, pull)
        return self.run(repo, pull, hunks, strategy=strategy, run_id=run_id)

    def run(
        self,
        repo: RepoRef,
        pull: PullRef,
        hunks: Iterable[DiffHunk],
        strategy: Optional[SplittingStrategy] = None,
        run_id: Optional[str] = None,
    ) -> ReviewRun:
        run_id = run_id or new_run_id()
        hunks = tuple(hunks)
        strategy = strategy or SplittingStrategy.from_name(self.config.splitting)
        created_at = datetime.now(timezone.utc)
        started = time.monotonic()

        tracked = self.tracker.create(run_id)
        self.tracker.start(run_id)
        logger.info(
            f"Review {run_id} started for {repo.full_name}#{pull.number}: "
            f"{len(hunks)} files, {len(self.providers)} providers"
        )

        try:
            segments = self.segmenter.split(hunks, strategy)
            usage = UsageLedger()
            base_request = ProviderRequest(
                run_id=run_id,
                repo=repo,
                pull=pull,
                hunks=hunks,
                config=self.config,
                cancellation=tracked.cancellation,
                usage=usage,
            )

            def request_for(provider: ReviewProvider) -> ProviderRequest:
                supported = tuple(
                    s for s in segments if provider.supports(s.file_path, s.language)
                )
                return replace(
                    base_request, segments=supported, cancellation=tracked.cancellation.child()
                )

            outcomes = self.runner.run(self.providers, request_for, cancellation=tracked.cancellation)
            aggregation = self.aggregator.aggregate(outcomes)
            scores = self.scoring_engine.score(
                aggregation.findings, lines_changed(hunks), self.config.scoring
            )

            run = self.assembler.assemble(
                run_id=run_id,
                repo=repo,
                pull=pull,
                created_at=created_at,
                provider_keys=[o.provider_id for o in outcomes if o.status is not OutcomeStatus.SKIPPED],
                hunks=hunks,
                aggregation=aggregation,
                scores=scores,
                latency_ms=int((time.monotonic() - started) * 1000),
                token_cost_usd=usage.total_cost(self.cost_calculator),
            )
        except Exception as e:
            logger.error(f"Review {run_id} failed: {e}")
            if self._still_running(run_id):
                self.tracker.fail(run_id, str(e))
            raise

        if self._still_running(run_id):
            self.tracker.complete(run_id)

        logger.info(
            f"Review {run_id} finished in {run.stats.latency_ms}ms: "
            f"{len(run.findings)} findings, total score {run.scores.total:.1f}"
        )
        return run

    def _still_running(self, run_id: str) -> bool:
        # A run cancelled from outside may already have been evicted.
        tracked = self.tracker.get(run_id)
        return tracked is not None and tracked.state is RunState.RUNNING

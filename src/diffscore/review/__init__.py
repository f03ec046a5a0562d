"""Review stages: concurrent runner, aggregator, scoring, assembly and the pipeline."""

from .aggregator import AggregationResult, FindingAggregator
from .assembler import RunAssembler, lines_changed
from .pipeline import DiffSource, ReviewPipeline, new_run_id
from .runner import AnalysisRunner, OutcomeStatus, ProviderOutcome
from .scoring import Grade, ScoreSummary, ScoringEngine, grade_for
from .tracking import InvalidTransitionError, RunState, RunTracker, TrackedRun

__all__ = [
    "AggregationResult",
    "AnalysisRunner",
    "DiffSource",
    "FindingAggregator",
    "Grade",
    "InvalidTransitionError",
    "OutcomeStatus",
    "ProviderOutcome",
    "ReviewPipeline",
    "RunAssembler",
    "RunState",
    "RunTracker",
    "ScoreSummary",
    "ScoringEngine",
    "TrackedRun",
    "grade_for",
    "lines_changed",
    "new_run_id",
]

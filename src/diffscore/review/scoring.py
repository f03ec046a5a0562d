"""Scoring engine: findings -> per-dimension and total scores.

Per dimension D, over findings with confidence >= ignore_confidence_below:

    penalty(f)  = severity_penalty[f.severity] * f.confidence * ln(1 + lines_changed) / 6
    score(D)    = clamp(100 * exp(-sum(penalty) / 10), 0, 100)

The total is the weight-normalized average of the dimension scores, or 100
when no dimension carries weight. Bigger diffs are penalized more per
finding, but only logarithmically.

Scoring never raises for configuration problems: an unusable entry is
replaced by its default and a warning is logged.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional

from ..config import (
    DEFAULT_IGNORE_CONFIDENCE_BELOW,
    DEFAULT_SEVERITY_PENALTY,
    DEFAULT_WEIGHTS,
    ScoringConfig,
)
from ..logging_config import get_logger
from ..models import Dimension, Finding, Scores, Severity

logger = get_logger(__name__)

PROBLEM_THRESHOLD = 70.0
EXCELLENT_THRESHOLD = 90.0

# Only confident, actionable findings count towards improvement potential
_ADDRESSABLE_CONFIDENCE = 0.7
_POINTS_PER_ADDRESSABLE = 2.0
_MAX_IMPROVEMENT = 20.0

RECOMMENDATIONS: Mapping[Dimension, str] = {
    Dimension.SECURITY: "Review security-related findings and implement security best practices",
    Dimension.QUALITY: "Address code quality issues and consider refactoring complex areas",
    Dimension.MAINTAINABILITY: "Improve code maintainability through better documentation and structure",
    Dimension.PERFORMANCE: "Investigate performance issues and optimize critical paths",
    Dimension.TEST_COVERAGE: "Increase test coverage and add missing test cases",
}
NO_PROBLEMS_RECOMMENDATION = "Great work! Continue following best practices."


class Grade(Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


def grade_for(total: float) -> Grade:
    if total >= 90:
        return Grade.A
    if total >= 80:
        return Grade.B
    if total >= 70:
        return Grade.C
    if total >= 60:
        return Grade.D
    return Grade.F


@dataclass(frozen=True)
class ScoreSummary:
    """Human-oriented reading of a Scores record."""

    scores: Scores
    grade: Grade
    problem_areas: tuple[Dimension, ...] = ()
    strong_areas: tuple[Dimension, ...] = ()
    improvement_potential: float = 0.0
    recommendations: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_problems(self) -> bool:
        return bool(self.problem_areas)

    @property
    def is_excellent(self) -> bool:
        return self.grade is Grade.A and not self.problem_areas

    @property
    def summary_text(self) -> str:
        if self.has_problems:
            status = f"{len(self.problem_areas)} areas need attention"
        else:
            status = "All quality dimensions look good"
        return f"Overall Grade: {self.grade.value} ({self.scores.total:.1f}/100) - {status}"


def _usable(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    )


@dataclass(frozen=True)
class _EffectiveConfig:
    weights: Mapping[Dimension, float]
    penalties: Mapping[Severity, float]
    threshold: float


class ScoringEngine:
    """Pure scoring function over findings and diff size."""

    def score(
        self,
        findings: Iterable[Finding],
        lines_changed: int,
        config: Optional[ScoringConfig] = None,
    ) -> Scores:
        effective = self._effective(config)
        size_factor = math.log1p(max(lines_changed, 0)) / 6.0

        totals = {dimension: 0.0 for dimension in Dimension}
        for finding in findings:
            if finding.confidence < effective.threshold:
                continue
            penalty = effective.penalties[finding.severity] * finding.confidence * size_factor
            totals[finding.dimension] += penalty

        dimensions = {
            dimension: min(100.0, max(0.0, 100.0 * math.exp(-total_penalty / 10.0)))
            for dimension, total_penalty in totals.items()
        }

        weighted = {d: w for d, w in effective.weights.items() if w > 0}
        if weighted:
            weight_sum = sum(weighted.values())
            total = sum(w * dimensions[d] for d, w in weighted.items()) / weight_sum
            # A weighted average stays within its inputs; clamp float noise (100.00000000000001)
            covered = [dimensions[d] for d in weighted]
            total = min(max(total, min(covered)), max(covered))
        else:
            total = 100.0

        return Scores(total=total, dimensions=dimensions, weights=effective.weights)

    def summarize(self, scores: Scores, findings: Iterable[Finding]) -> ScoreSummary:
        findings = list(findings)

        problem_areas = tuple(
            d
            for d, _ in sorted(scores.dimensions.items(), key=lambda item: item[1])
            if scores.dimensions[d] < PROBLEM_THRESHOLD
        )
        strong_areas = tuple(
            d
            for d, _ in sorted(scores.dimensions.items(), key=lambda item: item[1], reverse=True)
            if scores.dimensions[d] >= EXCELLENT_THRESHOLD
        )

        addressable = sum(
            1
            for f in findings
            if f.confidence > _ADDRESSABLE_CONFIDENCE and f.severity.rank >= Severity.MINOR.rank
        )
        improvement = min(
            100.0 - scores.total,
            min(_MAX_IMPROVEMENT, addressable * _POINTS_PER_ADDRESSABLE),
        )

        recommendations = tuple(RECOMMENDATIONS[d] for d in problem_areas) or (
            NO_PROBLEMS_RECOMMENDATION,
        )

        return ScoreSummary(
            scores=scores,
            grade=grade_for(scores.total),
            problem_areas=problem_areas,
            strong_areas=strong_areas,
            improvement_potential=improvement,
            recommendations=recommendations,
        )

    def _effective(self, config: Optional[ScoringConfig]) -> _EffectiveConfig:
        """Resolve a usable config, falling back to defaults entry by entry."""
        if config is None:
            return _EffectiveConfig(
                dict(DEFAULT_WEIGHTS), dict(DEFAULT_SEVERITY_PENALTY), DEFAULT_IGNORE_CONFIDENCE_BELOW
            )

        weights = {}
        for dimension, weight in config.weights.items():
            if _usable(weight):
                weights[dimension] = float(weight)
            else:
                logger.warning(
                    f"Unusable weight {weight!r} for {dimension.value}, using default "
                    f"{DEFAULT_WEIGHTS[dimension]}"
                )
                weights[dimension] = DEFAULT_WEIGHTS[dimension]

        penalties = {}
        for severity in Severity:
            penalty = config.severity_penalty.get(severity)
            if _usable(penalty):
                penalties[severity] = float(penalty)
            else:
                logger.warning(
                    f"Unusable penalty {penalty!r} for {severity.value}, using default "
                    f"{DEFAULT_SEVERITY_PENALTY[severity]}"
                )
                penalties[severity] = DEFAULT_SEVERITY_PENALTY[severity]

        threshold = config.ignore_confidence_below
        if not (_usable(threshold) and threshold <= 1.0):
            logger.warning(
                f"Unusable confidence cutoff {threshold!r}, using default "
                f"{DEFAULT_IGNORE_CONFIDENCE_BELOW}"
            )
            threshold = DEFAULT_IGNORE_CONFIDENCE_BELOW

        return _EffectiveConfig(weights, penalties, float(threshold))

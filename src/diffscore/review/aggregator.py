"""Finding aggregator: merge provider outcomes into one ordered finding list."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

from ..exceptions import AggregationInconsistency
from ..logging_config import get_logger
from ..models import Dimension, Finding, Severity, is_valid_confidence, parse_enum
from .runner import ProviderOutcome

logger = get_logger(__name__)


@dataclass(frozen=True)
class AggregationResult:
    """Merged findings plus what had to be thrown away on the way."""

    findings: tuple[Finding, ...] = ()
    rejected: int = 0
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "findings", tuple(self.findings))
        object.__setattr__(self, "warnings", tuple(self.warnings))


class FindingAggregator:
    """Concatenates findings in provider order and tags their provenance.

    Overlapping findings from different providers are all kept.
    """

    def aggregate(self, outcomes: Iterable[ProviderOutcome]) -> AggregationResult:
        findings: list[Finding] = []
        warnings: list[str] = []
        rejected = 0

        for outcome in outcomes:
            if outcome.warning:
                warnings.append(outcome.warning)

            for raw in outcome.findings:
                try:
                    finding = self._accept(outcome.provider_id, raw)
                except AggregationInconsistency as e:
                    rejected += 1
                    logger.warning(f"{e.message}: {e.reason}")
                    continue
                findings.append(finding)

        if rejected:
            warnings.append(f"{rejected} finding(s) rejected as malformed")

        logger.debug(f"Aggregated {len(findings)} findings ({rejected} rejected)")
        return AggregationResult(findings=tuple(findings), rejected=rejected, warnings=tuple(warnings))

    def _accept(self, provider_id: str, raw: Any) -> Finding:
        """Validate one provider result; raises AggregationInconsistency."""
        if isinstance(raw, Finding):
            finding = raw
        elif isinstance(raw, Mapping):
            try:
                finding = Finding.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                raise AggregationInconsistency(provider_id, str(e))
        else:
            raise AggregationInconsistency(provider_id, f"unsupported result type {type(raw).__name__}")

        try:
            severity = parse_enum(Severity, finding.severity)
        except ValueError:
            raise AggregationInconsistency(provider_id, f"unknown severity {finding.severity!r}")
        try:
            dimension = parse_enum(Dimension, finding.dimension)
        except ValueError:
            raise AggregationInconsistency(provider_id, f"unknown dimension {finding.dimension!r}")
        if severity is not finding.severity or dimension is not finding.dimension:
            finding = replace(finding, severity=severity, dimension=dimension)
        if not is_valid_confidence(finding.confidence):
            raise AggregationInconsistency(
                provider_id, f"confidence {finding.confidence!r} is not a number in [0, 1]"
            )

        if not finding.sources:
            finding = finding.with_sources(provider_id)
        return finding

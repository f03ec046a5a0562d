"""Core data models: diff hunks, code segments, findings, scores and runs.

Every record here is a frozen dataclass. Collections are stored as tuples or
read-only mappings so a record can be shared across provider threads and
handed to persistence/report collaborators without defensive copies.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


class FileStatus(Enum):
    """How a file changed in the pull request."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    RENAMED = "RENAMED"


class Severity(Enum):
    """Ordinal issue seriousness: INFO < MINOR < MAJOR < CRITICAL."""

    INFO = "INFO"
    MINOR = "MINOR"
    MAJOR = "MAJOR"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.MINOR: 1,
    Severity.MAJOR: 2,
    Severity.CRITICAL: 3,
}


class Dimension(Enum):
    """Fixed code quality categories a finding is scored against."""

    SECURITY = "SECURITY"
    QUALITY = "QUALITY"
    MAINTAINABILITY = "MAINTAINABILITY"
    PERFORMANCE = "PERFORMANCE"
    TEST_COVERAGE = "TEST_COVERAGE"


class SegmentKind(Enum):
    """What a code segment represents."""

    FUNCTION = "FUNCTION"
    CLASS = "CLASS"
    LINES = "LINES"
    FILE = "FILE"


def parse_enum(enum_cls: type[Enum], value: Any) -> Enum:
    """Resolve an enum member from a member, its name, or its value.

    Names are matched case-insensitively. Raises ValueError for anything
    outside the enumeration.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        key = value.strip().upper().replace("-", "_").replace(" ", "_")
        if key in enum_cls.__members__:
            return enum_cls[key]
    raise ValueError(f"{value!r} is not a valid {enum_cls.__name__}")


def _frozen_mapping(data: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class RepoRef:
    """Opaque repository reference supplied by the SCM collaborator."""

    owner: str
    name: str
    provider: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class PullRef:
    """Opaque pull request reference supplied by the SCM collaborator."""

    number: str
    title: Optional[str] = None
    source_branch: Optional[str] = None
    target_branch: Optional[str] = None
    head_sha: Optional[str] = None


@dataclass(frozen=True)
class DiffHunk:
    """One file's change in unified-diff form."""

    file: str
    status: FileStatus
    patch: Optional[str]
    old_path: Optional[str] = None
    lines_added: int = 0
    lines_deleted: int = 0


@dataclass(frozen=True)
class CodeSegment:
    """A contiguous slice of a file's changed content offered to providers.

    Lines are 1-based and inclusive, relative to the extracted content of the
    file (deleted lines excluded).
    """

    file_path: str
    content: str
    start_line: int
    end_line: int
    language: str
    kind: SegmentKind
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.start_line < 1:
            raise ValueError(f"start_line must be >= 1, got {self.start_line}")
        if self.end_line < self.start_line:
            raise ValueError(
                f"end_line ({self.end_line}) must be >= start_line ({self.start_line})"
            )
        object.__setattr__(self, "metadata", _frozen_mapping(self.metadata))

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1


@dataclass(frozen=True)
class Finding:
    """One reported issue."""

    id: str
    file: str
    start_line: int
    end_line: int
    severity: Severity
    dimension: Dimension
    title: str
    evidence: str = ""
    suggestion: str = ""
    patch: Optional[str] = None
    sources: tuple[str, ...] = ()
    confidence: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "sources", tuple(self.sources))

    def with_sources(self, *sources: str) -> Finding:
        return replace(self, sources=tuple(sources))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Finding:
        """Build a Finding from a mapping (e.g. decoded JSON).

        Accepts snake_case or camelCase keys. Raises ValueError/KeyError when
        required fields are missing or enum values are unknown. ``confidence``
        is required: an unannotated result would otherwise count in full.
        """

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        start = int(pick("start_line", "startLine", "line", default=1))
        confidence = pick("confidence")
        if confidence is None:
            raise ValueError("finding has no confidence")
        sources = pick("sources", default=())
        if isinstance(sources, str):
            sources = (sources,)
        return cls(
            id=str(pick("id", default="")),
            file=str(pick("file", "file_path", "filePath", default="")),
            start_line=start,
            end_line=int(pick("end_line", "endLine", default=start)),
            severity=parse_enum(Severity, pick("severity")),
            dimension=parse_enum(Dimension, pick("dimension")),
            title=str(pick("title", "message", default="")),
            evidence=str(pick("evidence", default="")),
            suggestion=str(pick("suggestion", default="")),
            patch=pick("patch"),
            sources=tuple(sources),
            confidence=float(confidence),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "file": self.file,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "severity": self.severity.value,
            "dimension": self.dimension.value,
            "title": self.title,
            "evidence": self.evidence,
            "suggestion": self.suggestion,
            "patch": self.patch,
            "sources": list(self.sources),
            "confidence": self.confidence,
        }


def is_valid_confidence(value: Any) -> bool:
    """True for a real number in [0, 1]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and 0.0 <= value <= 1.0


@dataclass(frozen=True)
class Scores:
    """Total score, per-dimension scores and the weights used for the total."""

    total: float
    dimensions: Mapping[Dimension, float]
    weights: Mapping[Dimension, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "dimensions", _frozen_mapping(self.dimensions))
        object.__setattr__(self, "weights", _frozen_mapping(self.weights))

    @classmethod
    def perfect(cls, weights: Optional[Mapping[Dimension, float]] = None) -> Scores:
        return cls(
            total=100.0,
            dimensions={dimension: 100.0 for dimension in Dimension},
            weights=weights or {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "dimensions": {d.value: s for d, s in self.dimensions.items()},
            "weights": {d.value: w for d, w in self.weights.items()},
        }


@dataclass(frozen=True)
class RunStats:
    """Diff statistics, timing and cost for one run."""

    files_changed: int
    lines_added: int
    lines_deleted: int
    latency_ms: int
    token_cost_usd: Optional[float] = None
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "warnings", tuple(self.warnings))

    def to_dict(self) -> dict[str, Any]:
        return {
            "files_changed": self.files_changed,
            "lines_added": self.lines_added,
            "lines_deleted": self.lines_deleted,
            "latency_ms": self.latency_ms,
            "token_cost_usd": self.token_cost_usd,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class Artifacts:
    """Locations of rendered reports, supplied by the report collaborator."""

    sarif_path: Optional[str] = None
    report_md_path: Optional[str] = None
    report_html_path: Optional[str] = None
    report_pdf_path: Optional[str] = None
    report_json_path: Optional[str] = None

    def to_dict(self) -> dict[str, Optional[str]]:
        return {
            "sarif_path": self.sarif_path,
            "report_md_path": self.report_md_path,
            "report_html_path": self.report_html_path,
            "report_pdf_path": self.report_pdf_path,
            "report_json_path": self.report_json_path,
        }


@dataclass(frozen=True)
class ReviewRun:
    """Complete, immutable result of reviewing one pull request."""

    run_id: str
    repo: RepoRef
    pull: PullRef
    created_at: datetime
    provider_keys: tuple[str, ...]
    stats: RunStats
    findings: tuple[Finding, ...]
    scores: Scores
    artifacts: Optional[Artifacts] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "provider_keys", tuple(self.provider_keys))
        object.__setattr__(self, "findings", tuple(self.findings))

    @property
    def end_time(self) -> datetime:
        return self.created_at + timedelta(milliseconds=self.stats.latency_ms)

    def with_artifacts(self, artifacts: Artifacts) -> ReviewRun:
        return replace(self, artifacts=artifacts)

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view for persistence and report collaborators."""
        return {
            "run_id": self.run_id,
            "repo": {
                "owner": self.repo.owner,
                "name": self.repo.name,
                "provider": self.repo.provider,
            },
            "pull": {
                "number": self.pull.number,
                "title": self.pull.title,
                "source_branch": self.pull.source_branch,
                "target_branch": self.pull.target_branch,
                "head_sha": self.pull.head_sha,
            },
            "created_at": self.created_at.isoformat(),
            "provider_keys": list(self.provider_keys),
            "stats": self.stats.to_dict(),
            "findings": [f.to_dict() for f in self.findings],
            "scores": self.scores.to_dict(),
            "artifacts": self.artifacts.to_dict() if self.artifacts else None,
        }

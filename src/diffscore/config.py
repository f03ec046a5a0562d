"""Configuration loading and management for diffscore.

A repository describes how its pull requests are reviewed in a
``.ai-review.yml`` file at its root. Sources are merged in priority order:
    1. Defaults (defined in ReviewConfig.default())
    2. Repository config (<repo>/.ai-review.yml) or an explicit file
    3. Environment variables (DIFFSCORE_* prefix, runner settings only)
    4. Keyword overrides (typically from CLI flags)

A missing file means defaults. An invalid file also means defaults (logged at
ERROR) unless ``strict=True`` is passed, in which case ConfigFileError is
raised.

Example:
    >>> config = load_config("/path/to/checkout")
    >>> config.scoring.ignore_confidence_below
    0.3
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

import yaml

from .exceptions import ConfigFileError, InvalidConfigError
from .logging_config import get_logger
from .models import Dimension, Severity, parse_enum
from .segmentation.strategy import SplittingType

logger = get_logger(__name__)

CONFIG_FILE_NAME = ".ai-review.yml"

SUPPORTED_SCM_PROVIDERS = ("github", "gitlab")

DEFAULT_WEIGHTS: Mapping[Dimension, float] = MappingProxyType(
    {
        Dimension.SECURITY: 0.30,
        Dimension.QUALITY: 0.25,
        Dimension.MAINTAINABILITY: 0.20,
        Dimension.PERFORMANCE: 0.15,
        Dimension.TEST_COVERAGE: 0.10,
    }
)

DEFAULT_SEVERITY_PENALTY: Mapping[Severity, float] = MappingProxyType(
    {
        Severity.INFO: 1.0,
        Severity.MINOR: 3.0,
        Severity.MAJOR: 7.0,
        Severity.CRITICAL: 12.0,
    }
)

DEFAULT_IGNORE_CONFIDENCE_BELOW = 0.3


def _number(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidConfigError(key, value, "must be a number")
    return float(value)


def _mapping(key: str, value: Any) -> Mapping:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidConfigError(key, value, "must be a mapping")
    return value


def _enum_keyed(key: str, enum_cls: type, data: Optional[Mapping]) -> Mapping:
    result = {}
    for raw_key, raw_value in _mapping(key, data).items():
        try:
            member = parse_enum(enum_cls, raw_key)
        except ValueError:
            raise InvalidConfigError(key, raw_key, f"unknown {enum_cls.__name__}")
        result[member] = _number(f"{key}.{member.value}", raw_value)
    return MappingProxyType(result)


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass(frozen=True)
class ScoringConfig:
    """Dimension weights, severity penalties and the confidence cutoff.

    Construction only normalizes types (enum keys, float values). Business
    rules live in ``validate()`` so the scoring engine can still work with a
    partially sensible config supplied by a caller.
    """

    weights: Mapping[Dimension, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    severity_penalty: Mapping[Severity, float] = field(
        default_factory=lambda: dict(DEFAULT_SEVERITY_PENALTY)
    )
    ignore_confidence_below: float = DEFAULT_IGNORE_CONFIDENCE_BELOW

    def __post_init__(self) -> None:
        object.__setattr__(self, "weights", _enum_keyed("weights", Dimension, self.weights))
        object.__setattr__(
            self,
            "severity_penalty",
            _enum_keyed("severity_penalty", Severity, self.severity_penalty),
        )
        object.__setattr__(
            self,
            "ignore_confidence_below",
            _number("ignore_confidence_below", self.ignore_confidence_below),
        )

    @classmethod
    def default(cls) -> ScoringConfig:
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScoringConfig:
        defaults = cls.default()
        return cls(
            weights=_pick(data, "weights", default=defaults.weights),
            severity_penalty=_pick(
                data, "severity_penalty", "severityPenalty", default=defaults.severity_penalty
            ),
            ignore_confidence_below=_pick(
                data,
                "ignore_confidence_below",
                "ignoreConfidenceBelow",
                default=defaults.ignore_confidence_below,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "weights": {d.value: w for d, w in self.weights.items()},
            "severity_penalty": {s.value: p for s, p in self.severity_penalty.items()},
            "ignore_confidence_below": self.ignore_confidence_below,
        }

    def validate(self) -> None:
        """Enforce the rules a repository config file must satisfy."""
        if not 0.0 <= self.ignore_confidence_below <= 1.0:
            raise InvalidConfigError(
                "ignore_confidence_below", self.ignore_confidence_below, "must be between 0.0 and 1.0"
            )

        for dimension in Dimension:
            if dimension not in self.weights:
                raise InvalidConfigError("weights", dimension.value, "missing weight for dimension")
            weight = self.weights[dimension]
            if not 0.0 <= weight <= 1.0:
                raise InvalidConfigError(f"weights.{dimension.value}", weight, "must be between 0.0 and 1.0")

        weight_sum = sum(self.weights.values())
        if abs(weight_sum - 1.0) > 0.001:
            raise InvalidConfigError("weights", f"{weight_sum:.3f}", "weights must sum to 1.0")

        for severity in Severity:
            if severity not in self.severity_penalty:
                raise InvalidConfigError("severity_penalty", severity.value, "missing penalty for severity")
            penalty = self.severity_penalty[severity]
            if not math.isfinite(penalty) or penalty < 0:
                raise InvalidConfigError(f"severity_penalty.{severity.value}", penalty, "must be >= 0")

        ordered = [self.severity_penalty[s] for s in sorted(Severity, key=lambda s: s.rank)]
        if ordered != sorted(ordered):
            raise InvalidConfigError(
                "severity_penalty",
                ordered,
                "penalties must ascend: INFO <= MINOR <= MAJOR <= CRITICAL",
            )


@dataclass(frozen=True)
class LlmConfig:
    """Which LLM-backed providers a repository selects, and their budget."""

    adapters: tuple[str, ...] = ("gpt-4o", "claude-3.5-sonnet")
    budget_usd: float = 0.50

    def __post_init__(self) -> None:
        object.__setattr__(self, "adapters", tuple(self.adapters))
        if not self.adapters or any(not str(a).strip() for a in self.adapters):
            raise InvalidConfigError("llm.adapters", list(self.adapters), "at least one adapter must be specified")
        budget = _number("llm.budget_usd", self.budget_usd)
        if not 0.0 < budget <= 100.0:
            raise InvalidConfigError("llm.budget_usd", budget, "must be in (0, 100]")
        object.__setattr__(self, "budget_usd", budget)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LlmConfig:
        defaults = cls()
        return cls(
            adapters=tuple(_pick(data, "adapters", default=defaults.adapters)),
            budget_usd=_pick(data, "budget_usd", "budgetUsd", default=defaults.budget_usd),
        )


@dataclass(frozen=True)
class ExportConfig:
    """Report formats the report collaborator should produce."""

    sarif: bool = True
    json: bool = True
    pdf: bool = True
    html: bool = True

    def __post_init__(self) -> None:
        if not (self.sarif or self.json or self.pdf or self.html):
            raise InvalidConfigError("report.export", "none", "at least one export format must be enabled")


@dataclass(frozen=True)
class ReportConfig:
    export: ExportConfig = field(default_factory=ExportConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReportConfig:
        export = _mapping("report.export", data.get("export"))
        unknown = set(export) - {"sarif", "json", "pdf", "html"}
        if unknown:
            raise InvalidConfigError("report.export", sorted(unknown), "unknown export format")
        return cls(export=ExportConfig(**{k: bool(v) for k, v in export.items()}))


@dataclass(frozen=True)
class RunnerConfig:
    """Provider fan-out limits.

    Attributes:
        max_workers: Thread pool size (None = min(CPU count, 8))
        provider_timeout_seconds: Limit for one provider, from when it starts
        run_timeout_seconds: Limit for the whole analysis stage
    """

    max_workers: Optional[int] = None
    provider_timeout_seconds: float = 300.0
    run_timeout_seconds: float = 600.0

    def __post_init__(self) -> None:
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidConfigError("runner.max_workers", self.max_workers, "must be at least 1")
        if self.provider_timeout_seconds <= 0:
            raise InvalidConfigError(
                "runner.provider_timeout_seconds", self.provider_timeout_seconds, "must be positive"
            )
        if self.run_timeout_seconds <= 0:
            raise InvalidConfigError("runner.run_timeout_seconds", self.run_timeout_seconds, "must be positive")


@dataclass(frozen=True)
class ReviewConfig:
    """Per-repository review configuration."""

    provider: str = "github"
    llm: LlmConfig = field(default_factory=LlmConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    runner: RunnerConfig = field(default_factory=RunnerConfig)
    splitting: str = "intelligent"

    def __post_init__(self) -> None:
        if self.provider not in SUPPORTED_SCM_PROVIDERS:
            raise InvalidConfigError("provider", self.provider, "must be 'github' or 'gitlab'")
        splitting = self.splitting
        if not isinstance(splitting, str) or splitting.upper() not in SplittingType.__members__:
            raise InvalidConfigError(
                "splitting",
                self.splitting,
                f"must be one of {', '.join(t.value.lower() for t in SplittingType)}",
            )

    @classmethod
    def default(cls) -> ReviewConfig:
        return cls()

    def validate(self) -> None:
        self.scoring.validate()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReviewConfig:
        """Build from a decoded config file; absent sections take defaults."""
        defaults = cls.default()
        llm = _mapping("llm", data.get("llm"))
        scoring = _mapping("scoring", data.get("scoring"))
        report = _mapping("report", data.get("report"))
        runner = _mapping("runner", data.get("runner"))
        return cls(
            provider=data.get("provider", defaults.provider),
            llm=LlmConfig.from_dict(llm) if llm else defaults.llm,
            scoring=ScoringConfig.from_dict(scoring) if scoring else defaults.scoring,
            report=ReportConfig.from_dict(report) if report else defaults.report,
            runner=RunnerConfig(**runner) if runner else defaults.runner,
            splitting=data.get("splitting", defaults.splitting),
        )

    def to_dict(self) -> dict[str, Any]:
        export = self.report.export
        return {
            "provider": self.provider,
            "llm": {"adapters": list(self.llm.adapters), "budget_usd": self.llm.budget_usd},
            "scoring": self.scoring.to_dict(),
            "report": {
                "export": {
                    "sarif": export.sarif,
                    "json": export.json,
                    "pdf": export.pdf,
                    "html": export.html,
                }
            },
            "runner": {
                "max_workers": self.runner.max_workers,
                "provider_timeout_seconds": self.runner.provider_timeout_seconds,
                "run_timeout_seconds": self.runner.run_timeout_seconds,
            },
            "splitting": self.splitting,
        }


def load_config(
    repo_path: Optional[Union[str, Path]] = None,
    config_file: Optional[Path] = None,
    strict: bool = False,
    **overrides: Any,
) -> ReviewConfig:
    """Load the review configuration for a repository checkout.

    Args:
        repo_path: Repository root holding ``.ai-review.yml`` (optional)
        config_file: Explicit config file, takes precedence over repo_path
        strict: Raise ConfigFileError instead of falling back to defaults
        **overrides: Runner settings / ``splitting`` / ``provider`` overrides

    Returns:
        Validated ReviewConfig instance
    """
    config = ReviewConfig.default()

    path = config_file
    if path is None and repo_path:
        path = Path(repo_path) / CONFIG_FILE_NAME

    if path is None:
        logger.debug("No repository path given, using default configuration")
    elif not Path(path).exists():
        if config_file is not None and strict:
            raise ConfigFileError(Path(path), "file not found")
        logger.info(f"Configuration file not found at {path}, using default configuration")
    else:
        try:
            config = _load_yaml_file(Path(path))
            logger.info(f"Configuration loaded and validated from {path}")
        except ConfigFileError as e:
            if strict:
                raise
            logger.error(f"Failed to load configuration from {path}, falling back to default: {e}")

    runner_overrides = _load_env_vars()
    splitting = runner_overrides.pop("splitting", None)
    for key in ("max_workers", "provider_timeout_seconds", "run_timeout_seconds"):
        if overrides.get(key) is not None:
            runner_overrides[key] = overrides.pop(key)
    if overrides.get("splitting") is not None:
        splitting = overrides.pop("splitting")

    changes: dict[str, Any] = {}
    if runner_overrides:
        changes["runner"] = replace(config.runner, **runner_overrides)
    if splitting is not None:
        changes["splitting"] = splitting
    if overrides.get("provider") is not None:
        changes["provider"] = overrides.pop("provider")
    if overrides:
        raise InvalidConfigError("overrides", sorted(overrides), "unknown configuration keys")

    return replace(config, **changes) if changes else config


def _load_yaml_file(path: Path) -> ReviewConfig:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(path, str(e))

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigFileError(path, "top level must be a mapping")

    try:
        config = ReviewConfig.from_dict(data)
        config.validate()
    except (InvalidConfigError, AttributeError, TypeError, ValueError) as e:
        raise ConfigFileError(path, str(e))
    return config


def _load_env_vars() -> dict[str, Any]:
    """Load runner settings from DIFFSCORE_* environment variables.

    Supported environment variables:
        DIFFSCORE_MAX_WORKERS: int
        DIFFSCORE_PROVIDER_TIMEOUT_SECONDS: float
        DIFFSCORE_RUN_TIMEOUT_SECONDS: float
        DIFFSCORE_SPLITTING: function/class/lines/intelligent/file

    Returns:
        Dict of field_name -> parsed_value for any DIFFSCORE_* vars found.
    """
    parsers = {
        "max_workers": int,
        "provider_timeout_seconds": float,
        "run_timeout_seconds": float,
        "splitting": str,
    }
    result: dict[str, Any] = {}
    for field_name, parse in parsers.items():
        env_key = f"DIFFSCORE_{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue
        try:
            result[field_name] = parse(env_value)
        except ValueError:
            raise InvalidConfigError(env_key, env_value, f"expected {parse.__name__}")
    return result


def dump_config(config: ReviewConfig, path: Path) -> None:
    """Write a config as YAML (used to generate an example file)."""
    config.validate()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
    logger.info(f"Configuration saved to {path}")

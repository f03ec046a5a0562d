"""LLM token costing.

Providers that call a language model record their token usage in the run's
UsageLedger; the pipeline turns the ledger into ``RunStats.token_cost_usd``
with a TokenCostCalculator.

Prices are USD per 1,000 tokens.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenPricing:
    input_per_1k: float
    output_per_1k: float
    display_name: str


MODEL_PRICING: Mapping[str, TokenPricing] = MappingProxyType(
    {
        # OpenAI
        "gpt-4o": TokenPricing(0.005, 0.015, "GPT-4o"),
        "gpt-4o-mini": TokenPricing(0.00015, 0.0006, "GPT-4o Mini"),
        "gpt-4-turbo": TokenPricing(0.01, 0.03, "GPT-4 Turbo"),
        "gpt-4": TokenPricing(0.03, 0.06, "GPT-4"),
        "gpt-3.5-turbo": TokenPricing(0.0015, 0.002, "GPT-3.5 Turbo"),
        # Anthropic
        "claude-3-5-sonnet": TokenPricing(0.003, 0.015, "Claude 3.5 Sonnet"),
        "claude-3-opus": TokenPricing(0.015, 0.075, "Claude 3 Opus"),
        "claude-3-sonnet": TokenPricing(0.003, 0.015, "Claude 3 Sonnet"),
        "claude-3-haiku": TokenPricing(0.00025, 0.00125, "Claude 3 Haiku"),
        # Google
        "gemini-pro": TokenPricing(0.0005, 0.0015, "Gemini Pro"),
        "gemini-pro-vision": TokenPricing(0.0005, 0.0015, "Gemini Pro Vision"),
        # Local models
        "local-llm": TokenPricing(0.0, 0.0, "Local LLM"),
        "ollama": TokenPricing(0.0, 0.0, "Ollama"),
    }
)

UNKNOWN_MODEL_PRICING = TokenPricing(0.001, 0.002, "Unknown Model")

# Input/output split assumed when estimating from finding counts (2:1)
_ESTIMATE_INPUT_SHARE = 0.67
_ESTIMATE_OUTPUT_SHARE = 0.33


def _round(value: float, places: int) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class TokenUsage:
    """Tokens consumed by one model request."""

    model: str
    input_tokens: int
    output_tokens: int
    provider_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.input_tokens < 0 or self.output_tokens < 0:
            raise ValueError("token counts must be non-negative")

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class TokenCost:
    model: str
    input_tokens: int
    output_tokens: int
    input_cost: float
    output_cost: float
    total_cost: float

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class CostLevel(Enum):
    VERY_LOW = "VERY_LOW"
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


@dataclass(frozen=True)
class ReviewCostSummary:
    """Cost of all model requests made during one run."""

    total_cost: float
    total_input_tokens: int
    total_output_tokens: int
    model_costs: Mapping[str, TokenCost] = field(default_factory=dict)
    calculated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "model_costs", MappingProxyType(dict(self.model_costs)))

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    @property
    def cost_level(self) -> CostLevel:
        if self.total_cost < 0.01:
            return CostLevel.VERY_LOW
        if self.total_cost < 0.05:
            return CostLevel.LOW
        if self.total_cost < 0.20:
            return CostLevel.MODERATE
        if self.total_cost < 1.00:
            return CostLevel.HIGH
        return CostLevel.VERY_HIGH

    @property
    def most_expensive_model(self) -> Optional[str]:
        if not self.model_costs:
            return None
        return max(self.model_costs.items(), key=lambda item: item[1].total_cost)[0]


class TokenCostCalculator:
    """Prices token usage against a per-model table."""

    def __init__(self, pricing: Optional[Mapping[str, TokenPricing]] = None):
        self.pricing = dict(pricing if pricing is not None else MODEL_PRICING)

    def pricing_for(self, model: str) -> TokenPricing:
        """Pricing for a model name (case-insensitive); unknown models get a default."""
        return self.pricing.get(model.lower(), UNKNOWN_MODEL_PRICING)

    def request_cost(self, model: str, input_tokens: int, output_tokens: int) -> TokenCost:
        """Cost of a single request, rounded to 6 decimal places."""
        pricing = self.pricing_for(model)
        input_cost = input_tokens / 1000.0 * pricing.input_per_1k
        output_cost = output_tokens / 1000.0 * pricing.output_per_1k
        return TokenCost(
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            input_cost=_round(input_cost, 6),
            output_cost=_round(output_cost, 6),
            total_cost=_round(input_cost + output_cost, 6),
        )

    def review_cost(self, usages: Iterable[TokenUsage]) -> ReviewCostSummary:
        """Total cost of a run's usage entries, rounded to 4 decimal places.

        Per-model costs in the summary aggregate every request of that model.
        """
        total = 0.0
        tokens_in: dict[str, int] = {}
        tokens_out: dict[str, int] = {}

        for usage in usages:
            cost = self.request_cost(usage.model, usage.input_tokens, usage.output_tokens)
            total += cost.total_cost
            tokens_in[usage.model] = tokens_in.get(usage.model, 0) + usage.input_tokens
            tokens_out[usage.model] = tokens_out.get(usage.model, 0) + usage.output_tokens

        model_costs = {
            model: self.request_cost(model, tokens_in[model], tokens_out[model])
            for model in tokens_in
        }
        return ReviewCostSummary(
            total_cost=_round(total, 4),
            total_input_tokens=sum(tokens_in.values()),
            total_output_tokens=sum(tokens_out.values()),
            model_costs=model_costs,
        )

    def estimate_cost_by_findings(
        self, findings_count: int, models: Sequence[str], avg_tokens_per_finding: int
    ) -> float:
        """Rough cost estimate when only the number of findings is known."""
        if findings_count == 0 or not models:
            return 0.0

        tokens_per_model = (findings_count * avg_tokens_per_finding) // len(models)
        estimated = 0.0
        for model in models:
            pricing = self.pricing_for(model)
            input_tokens = int(tokens_per_model * _ESTIMATE_INPUT_SHARE)
            output_tokens = int(tokens_per_model * _ESTIMATE_OUTPUT_SHARE)
            estimated += (
                input_tokens / 1000.0 * pricing.input_per_1k
                + output_tokens / 1000.0 * pricing.output_per_1k
            )
        return _round(estimated, 4)

    def optimization_suggestions(self, summary: ReviewCostSummary) -> list[str]:
        suggestions = []
        if any(self.pricing_for(m).input_per_1k > 0.01 for m in summary.model_costs):
            suggestions.append(
                "Consider a cheaper model (e.g. GPT-4o Mini or Claude 3 Haiku) for first-pass analysis"
            )
        if summary.total_cost > 0.50:
            suggestions.append("Review cost is high; tune the splitting strategy to send fewer tokens")
        if summary.total_input_tokens > summary.total_output_tokens * 5:
            suggestions.append("Input tokens dominate; trim context sent with each segment")
        return suggestions


class UsageLedger:
    """Thread-safe record of token usage for one run.

    Shared by every provider of a run; providers call :meth:`record`.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[TokenUsage] = []

    def record(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int,
        provider_id: Optional[str] = None,
    ) -> TokenUsage:
        usage = TokenUsage(model, input_tokens, output_tokens, provider_id)
        with self._lock:
            self._entries.append(usage)
        logger.debug(
            f"Recorded {usage.total_tokens} tokens for {model}"
            + (f" ({provider_id})" if provider_id else "")
        )
        return usage

    def entries(self) -> tuple[TokenUsage, ...]:
        with self._lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def total_cost(self, calculator: Optional[TokenCostCalculator] = None) -> Optional[float]:
        """Cost of everything recorded, or None when nothing was recorded."""
        entries = self.entries()
        if not entries:
            return None
        return (calculator or TokenCostCalculator()).review_cost(entries).total_cost

"""Exception hierarchy for diffscore."""

from .analysis import (
    AggregationInconsistency,
    AnalysisError,
    ProviderCancelledError,
    ProviderFailure,
    ProviderTimeoutError,
    SegmentationError,
)
from .base import DiffScoreError
from .config import ConfigFileError, ConfigurationError, InvalidConfigError

__all__ = [
    "DiffScoreError",
    "AnalysisError",
    "SegmentationError",
    "ProviderFailure",
    "ProviderTimeoutError",
    "ProviderCancelledError",
    "AggregationInconsistency",
    "ConfigurationError",
    "InvalidConfigError",
    "ConfigFileError",
]

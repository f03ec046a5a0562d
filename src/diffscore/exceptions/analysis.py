"""Analysis-related exceptions: segmentation, providers, aggregation.

None of these abort a review run. They are raised inside a stage, caught at
the stage boundary, logged, and turned into a skipped file, an empty provider
outcome or a rejected finding.
"""

from typing import Optional

from .base import DiffScoreError


class AnalysisError(DiffScoreError):
    """Base class for analysis-related errors."""

    pass


class SegmentationError(AnalysisError):
    """Raised when a file's patch cannot be turned into segments."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(
            f"Cannot segment {file_path}",
            details={"file": file_path, "reason": reason},
        )
        self.file_path = file_path
        self.reason = reason


class ProviderFailure(AnalysisError):
    """Raised when a review provider errors out during a run."""

    def __init__(self, provider_id: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Provider {provider_id} failed",
            details={"provider": provider_id, "reason": reason},
        )
        self.provider_id = provider_id
        self.reason = reason
        self.cause = cause


class ProviderTimeoutError(ProviderFailure):
    """Raised when a provider exceeds its own or the run's deadline."""

    def __init__(self, provider_id: str, timeout_seconds: float):
        super().__init__(provider_id, f"exceeded {timeout_seconds:g}s timeout")
        self.timeout_seconds = timeout_seconds


class ProviderCancelledError(ProviderFailure):
    """Raised when a provider observes that its run was cancelled."""

    def __init__(self, provider_id: str):
        super().__init__(provider_id, "run cancelled")


class AggregationInconsistency(AnalysisError):
    """Raised when a provider returns a finding that cannot be accepted."""

    def __init__(self, provider_id: str, reason: str):
        super().__init__(
            f"Rejected finding from {provider_id}",
            details={"provider": provider_id, "reason": reason},
        )
        self.provider_id = provider_id
        self.reason = reason

"""
diffscore - Pull request review core

Splits a pull request diff into analyzable segments, runs any number of
pluggable review providers against them concurrently, merges their findings
and turns them into reproducible per-dimension and overall quality scores.
"""

__version__ = "0.1.0"
__author__ = "Naman Agarwal"

from .config import ReviewConfig, ScoringConfig, load_config
from .models import (
    CodeSegment,
    DiffHunk,
    Dimension,
    FileStatus,
    Finding,
    PullRef,
    RepoRef,
    ReviewRun,
    Scores,
    Severity,
)
from .providers import CancellationToken, ProviderRequest, ReviewProvider
from .review import ReviewPipeline, ScoringEngine
from .segmentation import Segmenter, SplittingStrategy

__all__ = [
    "ReviewPipeline",  # Main entry point
    "ReviewProvider",  # Plugin interface
    "ProviderRequest",
    "CancellationToken",
    "Segmenter",
    "SplittingStrategy",
    "ScoringEngine",
    "ReviewConfig",
    "ScoringConfig",
    "load_config",
    "CodeSegment",
    "DiffHunk",
    "Dimension",
    "FileStatus",
    "Finding",
    "PullRef",
    "RepoRef",
    "ReviewRun",
    "Scores",
    "Severity",
]

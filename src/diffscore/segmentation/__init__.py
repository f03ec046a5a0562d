"""Diff segmentation: turn file diffs into code segments for providers."""

from .boundaries import BoundaryDetector, BraceBoundaryDetector, IndentBoundaryDetector
from .languages import LANGUAGES, LanguageConfig, detect_language, get_language_config
from .patch import extract_content, parse_unified_diff
from .segmenter import Segmenter
from .strategy import SplittingStrategy, SplittingType

__all__ = [
    "Segmenter",
    "SplittingStrategy",
    "SplittingType",
    "BoundaryDetector",
    "BraceBoundaryDetector",
    "IndentBoundaryDetector",
    "LanguageConfig",
    "LANGUAGES",
    "detect_language",
    "get_language_config",
    "extract_content",
    "parse_unified_diff",
]

"""Splitting strategies: how a file's changed content is cut into segments."""

from __future__ import annotations

import sys
from dataclasses import dataclass, replace
from enum import Enum

from ..exceptions import InvalidConfigError


class SplittingType(Enum):
    FUNCTION = "FUNCTION"  # one segment per function/method
    CLASS = "CLASS"  # one segment per class/interface/struct
    LINES = "LINES"  # fixed, possibly overlapping, line windows
    INTELLIGENT = "INTELLIGENT"  # class -> function -> lines, bounded by max size
    FILE = "FILE"  # whole file as one segment


@dataclass(frozen=True)
class SplittingStrategy:
    """Splitting parameters.

    Attributes:
        type: Which splitting algorithm to use
        line_window_size: Window length for LINES splitting
        window_overlap: Lines shared by consecutive windows
        min_segment_lines: Smaller segments are dropped
        max_segment_lines: Larger segments are re-split where the type allows
        allow_nested_splitting: Oversized classes are replaced by their functions
    """

    type: SplittingType
    line_window_size: int
    window_overlap: int
    min_segment_lines: int
    max_segment_lines: int
    allow_nested_splitting: bool = False

    def __post_init__(self) -> None:
        if self.min_segment_lines < 1:
            raise InvalidConfigError("min_segment_lines", self.min_segment_lines, "must be at least 1")
        if self.max_segment_lines < self.min_segment_lines:
            raise InvalidConfigError(
                "max_segment_lines", self.max_segment_lines, "must be >= min_segment_lines"
            )
        if self.window_overlap < 0:
            raise InvalidConfigError("window_overlap", self.window_overlap, "must be non-negative")
        # Every type except FILE can end up in LINES splitting through a fallback.
        if self.type is not SplittingType.FILE and self.line_window_size <= self.window_overlap:
            raise InvalidConfigError(
                "line_window_size", self.line_window_size, "must be greater than window_overlap"
            )

    @property
    def window_step(self) -> int:
        return self.line_window_size - self.window_overlap

    @classmethod
    def by_function(cls) -> SplittingStrategy:
        return cls(SplittingType.FUNCTION, 50, 5, 3, 200, False)

    @classmethod
    def by_class(cls) -> SplittingStrategy:
        return cls(SplittingType.CLASS, 50, 5, 10, 500, True)

    @classmethod
    def by_lines(cls, window_size: int, overlap: int = 0) -> SplittingStrategy:
        return cls(SplittingType.LINES, window_size, overlap, 1, window_size, False)

    @classmethod
    def intelligent(cls) -> SplittingStrategy:
        return cls(SplittingType.INTELLIGENT, 100, 10, 5, 300, True)

    @classmethod
    def whole_file(cls) -> SplittingStrategy:
        return cls(SplittingType.FILE, 0, 0, 1, sys.maxsize, False)

    @classmethod
    def from_name(cls, name: str) -> SplittingStrategy:
        """Default strategy for a type name such as ``"intelligent"``."""
        factories = {
            SplittingType.FUNCTION: cls.by_function,
            SplittingType.CLASS: cls.by_class,
            SplittingType.LINES: lambda: cls.by_lines(50, 5),
            SplittingType.INTELLIGENT: cls.intelligent,
            SplittingType.FILE: cls.whole_file,
        }
        try:
            splitting_type = SplittingType[name.strip().upper()]
        except KeyError:
            raise InvalidConfigError("splitting", name, "unknown splitting strategy")
        return factories[splitting_type]()

    def with_type(self, splitting_type: SplittingType) -> SplittingStrategy:
        return replace(self, type=splitting_type)

    def with_min_lines(self, min_lines: int) -> SplittingStrategy:
        return replace(self, min_segment_lines=min_lines)

    def with_max_lines(self, max_lines: int) -> SplittingStrategy:
        return replace(self, max_segment_lines=max_lines)

    def with_nested_splitting(self, nested: bool) -> SplittingStrategy:
        return replace(self, allow_nested_splitting=nested)

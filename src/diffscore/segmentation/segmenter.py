"""Segmenter: split diff hunks into code segments per a splitting strategy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from ..exceptions import SegmentationError
from ..logging_config import get_logger
from ..models import CodeSegment, DiffHunk, FileStatus, SegmentKind
from .boundaries import detector_for
from .languages import declared_name, detect_language, get_language_config, is_declaration
from .patch import extract_content, split_lines
from .strategy import SplittingStrategy, SplittingType

logger = get_logger(__name__)


@dataclass(frozen=True)
class _Source:
    """One file's extracted lines."""

    file_path: str
    language: str
    lines: tuple[str, ...]

    def segment(
        self, start: int, end: int, kind: SegmentKind, metadata: Optional[dict[str, Any]] = None
    ) -> CodeSegment:
        """Segment over 0-based inclusive line indexes."""
        return CodeSegment(
            file_path=self.file_path,
            content="\n".join(self.lines[start : end + 1]),
            start_line=start + 1,
            end_line=end + 1,
            language=self.language,
            kind=kind,
            metadata=metadata or {},
        )


_Splitter = Callable[[_Source, SplittingStrategy], "list[CodeSegment]"]


class Segmenter:
    """Splits file diffs into analyzable code segments.

    Stateless apart from the dispatch table, so one instance can be shared
    across runs.
    """

    def __init__(self) -> None:
        self._splitters: dict[SplittingType, _Splitter] = {
            SplittingType.FUNCTION: self._split_by_function,
            SplittingType.CLASS: self._split_by_class,
            SplittingType.LINES: self._split_by_lines,
            SplittingType.INTELLIGENT: self._split_intelligently,
            SplittingType.FILE: self._split_whole_file,
        }
        missing = set(SplittingType) - set(self._splitters)
        if missing:
            names = ", ".join(sorted(t.name for t in missing))
            raise RuntimeError(f"No splitter registered for: {names}")

    def split(self, hunks: Iterable[DiffHunk], strategy: SplittingStrategy) -> list[CodeSegment]:
        """Split every non-deleted hunk; a hunk that cannot be split is skipped."""
        segments: list[CodeSegment] = []

        for hunk in hunks:
            if hunk.status is FileStatus.DELETED:
                logger.debug(f"Skipping deleted file {hunk.file}")
                continue

            try:
                file_segments = self.split_hunk(hunk, strategy)
            except SegmentationError as e:
                logger.debug(f"Skipping {e.file_path}: {e.reason}")
                continue
            except Exception as e:
                error = SegmentationError(hunk.file, f"{type(e).__name__}: {e}")
                logger.debug(f"Skipping {error.file_path}: {error.reason}")
                continue

            segments.extend(file_segments)

        logger.debug(
            f"Split {len(segments)} segments using {strategy.type.name} strategy"
        )
        return segments

    def split_hunk(self, hunk: DiffHunk, strategy: SplittingStrategy) -> list[CodeSegment]:
        """Split one hunk. Raises SegmentationError when it has no content."""
        content = extract_content(hunk.patch)
        if not content.strip():
            raise SegmentationError(hunk.file, "no content after patch extraction")
        return self.split_content(hunk.file, content, strategy)

    def split_content(
        self,
        file_path: str,
        content: str,
        strategy: SplittingStrategy,
        language: Optional[str] = None,
    ) -> list[CodeSegment]:
        """Split already-extracted file content."""
        lines = split_lines(content)
        if not lines:
            raise SegmentationError(file_path, "no content after patch extraction")
        source = _Source(file_path, language or detect_language(file_path), tuple(lines))
        return self._splitters[strategy.type](source, strategy)

    # ── Strategies ─────────────────────────────────────────────────

    def _split_by_function(self, source: _Source, strategy: SplittingStrategy) -> list[CodeSegment]:
        config = get_language_config(source.language)
        if config is None or not config.function_patterns:
            logger.debug(f"No function patterns for {source.language}, using LINES for {source.file_path}")
            return self._split_by_lines(source, strategy)

        return self._functions_in(source, strategy, 0, len(source.lines) - 1)

    def _split_by_class(self, source: _Source, strategy: SplittingStrategy) -> list[CodeSegment]:
        config = get_language_config(source.language)
        if config is None or not config.class_patterns:
            logger.debug(f"No class patterns for {source.language}, using FUNCTION for {source.file_path}")
            return self._split_by_function(source, strategy)

        segments: list[CodeSegment] = []
        for start, end, name in self._declarations(
            source, config.compiled_class_patterns(), 0, len(source.lines) - 1
        ):
            segment = source.segment(start, end, SegmentKind.CLASS, {"class_name": name})
            if self._too_small(segment, strategy):
                continue

            if strategy.allow_nested_splitting and segment.line_count > strategy.max_segment_lines:
                nested = self._functions_in(source, strategy, start, end, parent=name)
                nested = self._bound_size(source, nested, strategy)
                if nested:
                    logger.debug(
                        f"Class {name} in {source.file_path} replaced by {len(nested)} sub-segments"
                    )
                    segments.extend(nested)
                    continue

            segments.append(segment)

        return segments

    def _split_by_lines(self, source: _Source, strategy: SplittingStrategy) -> list[CodeSegment]:
        return self._windows(source, strategy, 0, len(source.lines) - 1)

    def _split_intelligently(
        self, source: _Source, strategy: SplittingStrategy
    ) -> list[CodeSegment]:
        segments = self._split_by_class(source, strategy)

        if not segments or any(s.line_count > strategy.max_segment_lines for s in segments):
            segments = self._split_by_function(source, strategy)

        segments = self._bound_size(source, segments, strategy)
        return segments or self._split_by_lines(source, strategy)

    def _split_whole_file(self, source: _Source, strategy: SplittingStrategy) -> list[CodeSegment]:
        return [source.segment(0, len(source.lines) - 1, SegmentKind.FILE)]

    # ── Helpers ────────────────────────────────────────────────────

    def _declarations(
        self, source: _Source, patterns: list, lo: int, hi: int
    ) -> list[tuple[int, int, str]]:
        """(start, end, name) for declarations between lines lo and hi.

        Only blocks that end after their declaration line count.
        """
        config = get_language_config(source.language)
        detector = detector_for(config.boundary_mode, config.line_comment, config.quotes)
        lines = source.lines[: hi + 1]
        found = []

        for index in range(lo, hi + 1):
            stripped = source.lines[index].strip()
            if not stripped:
                continue
            for pattern in patterns:
                match = pattern.match(stripped)
                if not match:
                    continue
                name = declared_name(match)
                if not is_declaration(stripped, name):
                    continue
                end = min(detector.find_end(lines, index), hi)
                if end > index:
                    found.append((index, end, name))
                break

        return found

    def _functions_in(
        self,
        source: _Source,
        strategy: SplittingStrategy,
        lo: int,
        hi: int,
        parent: Optional[str] = None,
    ) -> list[CodeSegment]:
        config = get_language_config(source.language)
        if config is None:
            return []

        segments = []
        for start, end, name in self._declarations(
            source, config.compiled_function_patterns(), lo, hi
        ):
            metadata: dict[str, Any] = {"function_name": name}
            if parent is not None:
                metadata["class_name"] = parent
            segment = source.segment(start, end, SegmentKind.FUNCTION, metadata)
            if not self._too_small(segment, strategy):
                segments.append(segment)
        return segments

    def _windows(
        self,
        source: _Source,
        strategy: SplittingStrategy,
        lo: int,
        hi: int,
        window: Optional[int] = None,
        parent: Optional[CodeSegment] = None,
    ) -> list[CodeSegment]:
        """Sliding windows over lines lo..hi (file indexes)."""
        window = window or strategy.line_window_size
        overlap = min(strategy.window_overlap, window - 1)
        step = window - overlap

        segments = []
        for start in range(lo, hi + 1, step):
            end = min(start + window - 1, hi)
            if end - start + 1 < strategy.min_segment_lines:
                continue
            if not any(line.strip() for line in source.lines[start : end + 1]):
                continue

            metadata: dict[str, Any] = {}
            if parent is not None:
                metadata = dict(parent.metadata)
                metadata["parent_kind"] = parent.kind.value
            segments.append(source.segment(start, end, SegmentKind.LINES, metadata))

        return segments

    def _bound_size(
        self, source: _Source, segments: list[CodeSegment], strategy: SplittingStrategy
    ) -> list[CodeSegment]:
        """Replace segments longer than max_segment_lines by line windows."""
        window = min(strategy.line_window_size, strategy.max_segment_lines)
        bounded = []
        for segment in segments:
            if segment.line_count <= strategy.max_segment_lines:
                bounded.append(segment)
                continue
            bounded.extend(
                self._windows(
                    source,
                    strategy,
                    segment.start_line - 1,
                    segment.end_line - 1,
                    window=window,
                    parent=segment,
                )
            )
        return bounded

    @staticmethod
    def _too_small(segment: CodeSegment, strategy: SplittingStrategy) -> bool:
        if strategy.min_segment_lines <= 1:
            return False
        return len(segment.content.strip().split("\n")) < strategy.min_segment_lines

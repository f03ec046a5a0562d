"""Tests for core data models."""

import pytest

from diffscore.models import (
    Artifacts,
    CodeSegment,
    Dimension,
    Finding,
    SegmentKind,
    Severity,
    is_valid_confidence,
    parse_enum,
)


class TestParseEnum:
    @pytest.mark.parametrize("value", [Severity.MAJOR, "MAJOR", "major", " Major "])
    def test_accepted_spellings(self, value):
        assert parse_enum(Severity, value) is Severity.MAJOR

    def test_dashes_and_spaces(self):
        assert parse_enum(Dimension, "test-coverage") is Dimension.TEST_COVERAGE
        assert parse_enum(Dimension, "test coverage") is Dimension.TEST_COVERAGE

    @pytest.mark.parametrize("value", ["BLOCKER", None, 3])
    def test_rejected(self, value):
        with pytest.raises(ValueError):
            parse_enum(Severity, value)


class TestSeverity:
    def test_ordinal_rank(self):
        ranks = [s.rank for s in (Severity.INFO, Severity.MINOR, Severity.MAJOR, Severity.CRITICAL)]
        assert ranks == sorted(ranks)
        assert len(set(ranks)) == 4


class TestCodeSegment:
    """Test segment invariants."""

    def test_line_count(self, segment):
        assert segment.line_count == 2

    def test_start_line_is_one_based(self):
        with pytest.raises(ValueError):
            CodeSegment("a.py", "x", 0, 1, "python", SegmentKind.LINES)

    def test_end_not_before_start(self):
        with pytest.raises(ValueError):
            CodeSegment("a.py", "x", 5, 4, "python", SegmentKind.LINES)

    def test_metadata_read_only(self, segment):
        with pytest.raises(TypeError):
            segment.metadata["function_name"] = "other"


class TestFinding:
    """Test Finding construction from mappings."""

    def test_from_dict_minimal(self):
        finding = Finding.from_dict(
            {"severity": "minor", "dimension": "quality", "line": 7, "confidence": 0.6}
        )
        assert finding.severity is Severity.MINOR
        assert (finding.start_line, finding.end_line) == (7, 7)
        assert finding.confidence == 0.6
        assert finding.sources == ()

    def test_from_dict_single_source_string(self):
        finding = Finding.from_dict({"severity": "INFO", "dimension": "QUALITY", "sources": "lint", "confidence": 1})
        assert finding.sources == ("lint",)

    def test_from_dict_requires_confidence(self):
        with pytest.raises(ValueError):
            Finding.from_dict({"severity": "INFO", "dimension": "QUALITY", "line": 1})

    def test_from_dict_bad_line(self):
        with pytest.raises(ValueError):
            Finding.from_dict({"severity": "INFO", "dimension": "QUALITY", "start_line": "seven"})

    def test_to_dict(self, make_finding):
        data = make_finding(sources=("lint",)).to_dict()
        assert data["severity"] == "MAJOR"
        assert data["dimension"] == "SECURITY"
        assert data["sources"] == ["lint"]

    def test_with_sources(self, make_finding):
        assert make_finding().with_sources("a", "b").sources == ("a", "b")


class TestConfidence:
    @pytest.mark.parametrize("value", [0, 0.0, 0.5, 1, 1.0])
    def test_valid(self, value):
        assert is_valid_confidence(value)

    @pytest.mark.parametrize("value", [-0.1, 1.01, float("nan"), float("inf"), True, "0.5", None])
    def test_invalid(self, value):
        assert not is_valid_confidence(value)


class TestReviewRun:
    def test_with_artifacts(self, repo, pull):
        from datetime import datetime, timezone

        from diffscore.models import ReviewRun, RunStats, Scores

        run = ReviewRun(
            run_id="run-1",
            repo=repo,
            pull=pull,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            provider_keys=[],
            stats=RunStats(0, 0, 0, 0),
            findings=[],
            scores=Scores.perfect(),
        )
        updated = run.with_artifacts(Artifacts(sarif_path="out/report.sarif"))
        assert run.artifacts is None
        assert updated.to_dict()["artifacts"]["sarif_path"] == "out/report.sarif"

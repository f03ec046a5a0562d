"""End-to-end tests for ReviewPipeline with fake providers."""

import math
import re
from dataclasses import replace

import pytest

from diffscore.config import ReviewConfig, RunnerConfig
from diffscore.models import Dimension
from diffscore.review.pipeline import ReviewPipeline, new_run_id
from diffscore.review.tracking import RunState, RunTracker
from diffscore.segmentation import SplittingStrategy


class TestNewRunId:
    def test_format(self):
        assert re.match(r"^run-\d+-[0-9a-f]{4}$", new_run_id())

    def test_unique(self):
        assert len({new_run_id() for _ in range(50)}) > 1


class TestPipeline:
    """Test full runs over diff hunks."""

    def test_empty_pull_request_scores_perfect(self, make_provider, repo, pull):
        """No hunks and nothing found: total is exactly 100."""
        pipeline = ReviewPipeline([make_provider("lint"), make_provider("llm")])
        run = pipeline.run(repo, pull, [])
        assert run.scores.total == 100.0
        assert run.findings == ()
        assert run.stats.files_changed == 0

    def test_failing_provider_does_not_block_others(
        self, make_provider, make_finding, repo, pull, python_hunk
    ):
        broken = make_provider("broken", error=RuntimeError("boom"))
        healthy = make_provider("healthy", findings=[make_finding()])
        run = ReviewPipeline([broken, healthy]).run(repo, pull, [python_hunk])
        assert [f.sources for f in run.findings] == [("healthy",)]
        assert run.scores.dimensions[Dimension.SECURITY] < 100.0
        assert "broken: failed (RuntimeError: boom)" in run.stats.warnings
        assert run.provider_keys == ("broken", "healthy")

    def test_single_finding_score(self, make_provider, make_finding, repo, pull, python_hunk):
        hunk = replace(python_hunk, lines_added=100)
        run = ReviewPipeline([make_provider("lint", findings=[make_finding()])]).run(repo, pull, [hunk])
        expected = 100 * math.exp(-(7 * 0.9 * math.log(101) / 6) / 10)
        assert run.scores.dimensions[Dimension.SECURITY] == pytest.approx(expected)

    def test_providers_only_get_supported_segments(self, make_provider, repo, pull, python_hunk, java_hunk):
        java_only = make_provider("java-lint", languages={"java"})
        go_only = make_provider("go-lint", languages={"go"})
        run = ReviewPipeline([java_only, go_only]).run(repo, pull, [python_hunk, java_hunk])

        segments = java_only.requests[0].segments
        assert segments
        assert all(s.language == "java" for s in segments)
        assert go_only.requests == []
        assert run.provider_keys == ("java-lint",)

    def test_request_carries_run_context(self, make_provider, repo, pull, python_hunk):
        provider = make_provider("lint")
        config = ReviewConfig(splitting="file")
        run = ReviewPipeline([provider], config=config).run(repo, pull, [python_hunk], run_id="run-fixed")
        request = provider.requests[0]
        assert run.run_id == "run-fixed"
        assert request.run_id == "run-fixed"
        assert request.repo == repo
        assert request.hunks == (python_hunk,)
        assert request.config is config
        assert len(request.segments) == 1

    def test_explicit_strategy(self, make_provider, repo, pull, java_hunk):
        provider = make_provider("lint")
        ReviewPipeline([provider]).run(repo, pull, [java_hunk], strategy=SplittingStrategy.by_function())
        names = [s.metadata["function_name"] for s in provider.requests[0].segments]
        assert names == ["add", "reset"]

    def test_token_cost(self, make_provider, repo, pull, python_hunk):
        provider = make_provider("llm", usage=("gpt-4o", 1000, 500))
        run = ReviewPipeline([provider]).run(repo, pull, [python_hunk])
        assert run.stats.token_cost_usd == pytest.approx(0.0125)

    def test_no_usage_no_cost(self, make_provider, repo, pull, python_hunk):
        run = ReviewPipeline([make_provider("lint")]).run(repo, pull, [python_hunk])
        assert run.stats.token_cost_usd is None

    def test_timeout_reported_as_warning(self, make_provider, make_finding, repo, pull, python_hunk):
        config = ReviewConfig(runner=RunnerConfig(provider_timeout_seconds=0.2))
        slow = make_provider("slow", delay=5.0)
        fast = make_provider("fast", findings=[make_finding()])
        run = ReviewPipeline([slow, fast], config=config).run(repo, pull, [python_hunk])
        assert "slow: timed out (exceeded 0.2s timeout)" in run.stats.warnings
        assert len(run.findings) == 1

    def test_run_tracked_to_completion(self, make_provider, repo, pull, python_hunk):
        tracker = RunTracker()
        run = ReviewPipeline([make_provider("lint")], tracker=tracker).run(repo, pull, [python_hunk])
        assert tracker.state(run.run_id) is RunState.COMPLETED

    def test_finished_runs_bounded(self, make_provider, repo, pull, python_hunk):
        tracker = RunTracker(max_finished=1)
        pipeline = ReviewPipeline([make_provider("lint")], tracker=tracker)
        pipeline.run(repo, pull, [python_hunk], run_id="run-1")
        pipeline.run(repo, pull, [python_hunk], run_id="run-2")
        assert tracker.get("run-1") is None
        assert tracker.state("run-2") is RunState.COMPLETED
        assert len(tracker) == 1

    def test_unexpected_error_marks_run_failed(self, make_provider, repo, pull, python_hunk):
        class BrokenSegmenter:
            def split(self, hunks, strategy):
                raise RuntimeError("segmenter crashed")

        tracker = RunTracker()
        pipeline = ReviewPipeline([make_provider("lint")], segmenter=BrokenSegmenter(), tracker=tracker)
        with pytest.raises(RuntimeError):
            pipeline.run(repo, pull, [python_hunk], run_id="run-broken")
        assert tracker.state("run-broken") is RunState.FAILED
        assert tracker.get("run-broken").error == "segmenter crashed"

    def test_review_pull_uses_diff_source(self, make_provider, repo, pull, python_hunk, java_hunk):
        class StaticSource:
            def __init__(self):
                self.calls = []

            def list_diff(self, repo, pull):
                self.calls.append((repo, pull))
                return [python_hunk, java_hunk]

        source = StaticSource()
        run = ReviewPipeline([make_provider("lint")]).review_pull(source, repo, pull)
        assert source.calls == [(repo, pull)]
        assert run.stats.files_changed == 2
        assert run.stats.lines_added == 28

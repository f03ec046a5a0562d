"""Shared test fixtures for diffscore tests."""

import pytest

from diffscore.models import (
    CodeSegment,
    DiffHunk,
    Dimension,
    FileStatus,
    Finding,
    PullRef,
    RepoRef,
    SegmentKind,
    Severity,
)


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


# ── Sample patches ─────────────────────────────────────────────────

PYTHON_PATCH = "\n".join(
    [
        "@@ -0,0 +1,14 @@",
        "+import os",
        "+",
        "+",
        "+class Greeter:",
        "+    def __init__(self, name):",
        "+        self.name = name",
        "+",
        "+    def greet(self):",
        '+        message = f"Hello {self.name}"',
        "+        return message",
        "+",
        "+",
        "+def helper(x):",
        "+    return x * 2",
    ]
)

JAVA_PATCH = "\n".join(
    [
        "@@ -1,3 +1,16 @@",
        " package demo;",
        " ",
        "+public class Calculator {",
        "+    private int total = 0;",
        "+",
        "+    public int add(int value) {",
        "+        if (value > 0) {",
        "+            total += value;",
        "+        }",
        "+        return total;",
        "+    }",
        "+",
        "+    public void reset() {",
        "+        total = 0;",
        "+    }",
        "+}",
        "-// old trailing comment",
        "\\ No newline at end of file",
    ]
)

GIT_DIFF = "\n".join(
    [
        "diff --git a/src/greeter.py b/src/greeter.py",
        "new file mode 100644",
        "index 0000000..1111111",
        "--- /dev/null",
        "+++ b/src/greeter.py",
        PYTHON_PATCH,
        "diff --git a/src/Calculator.java b/src/Calculator.java",
        "index 2222222..3333333 100644",
        "--- a/src/Calculator.java",
        "+++ b/src/Calculator.java",
        JAVA_PATCH,
        "diff --git a/docs/old.md b/docs/old.md",
        "deleted file mode 100644",
        "index 4444444..0000000",
        "--- a/docs/old.md",
        "+++ /dev/null",
        "@@ -1,2 +0,0 @@",
        "-# Old docs",
        "-gone",
        "diff --git a/lib/util.rb b/lib/helpers.rb",
        "similarity index 90%",
        "rename from lib/util.rb",
        "rename to lib/helpers.rb",
        "index 5555555..6666666 100644",
        "--- a/lib/util.rb",
        "+++ b/lib/helpers.rb",
        "@@ -1,2 +1,2 @@",
        " def helper",
        "-  1",
        "+  2",
    ]
)


@pytest.fixture
def python_hunk():
    """Newly added Python file with a class and a top-level function."""
    return DiffHunk(
        file="src/greeter.py",
        status=FileStatus.ADDED,
        patch=PYTHON_PATCH,
        lines_added=14,
        lines_deleted=0,
    )


@pytest.fixture
def java_hunk():
    """Modified Java file with one class and two methods."""
    return DiffHunk(
        file="src/Calculator.java",
        status=FileStatus.MODIFIED,
        patch=JAVA_PATCH,
        lines_added=14,
        lines_deleted=1,
    )


@pytest.fixture
def git_diff_text():
    """Multi-file git diff: added, modified, deleted and renamed files."""
    return GIT_DIFF


@pytest.fixture
def repo():
    return RepoRef(owner="acme", name="widgets", provider="github")


@pytest.fixture
def pull():
    return PullRef(number="42", title="Add greeter", source_branch="feature", target_branch="main")


@pytest.fixture
def segment():
    """A single Python function segment."""
    return CodeSegment(
        file_path="src/greeter.py",
        content="def helper(x):\n    return x * 2",
        start_line=13,
        end_line=14,
        language="python",
        kind=SegmentKind.FUNCTION,
        metadata={"function_name": "helper"},
    )


@pytest.fixture
def make_finding():
    """Factory for findings with sensible defaults."""

    def _make(
        severity=Severity.MAJOR,
        dimension=Dimension.SECURITY,
        confidence=0.9,
        finding_id="f-1",
        file="src/greeter.py",
        sources=(),
    ):
        return Finding(
            id=finding_id,
            file=file,
            start_line=1,
            end_line=2,
            severity=severity,
            dimension=dimension,
            title=f"{severity.value} {dimension.value} issue",
            evidence="evidence",
            suggestion="fix it",
            sources=sources,
            confidence=confidence,
        )

    return _make


# ── Fake providers ─────────────────────────────────────────────────


class FakeProvider:
    """Configurable ReviewProvider for tests.

    Args:
        findings: What review() returns
        error: Exception raised by review()
        delay: Seconds to block, waking early when the request is cancelled
        sleep: Seconds to block while ignoring cancellation
        languages: Supported languages (None = all)
        usage: (model, input_tokens, output_tokens) recorded in the ledger
    """

    def __init__(
        self,
        provider_id,
        findings=(),
        error=None,
        delay=0.0,
        sleep=0.0,
        languages=None,
        enabled=True,
        usage=None,
    ):
        self.provider_id = provider_id
        self.name = f"Fake {provider_id}"
        self.version = "1.0.0"
        self.enabled = enabled
        self.findings = list(findings)
        self.error = error
        self.delay = delay
        self.sleep = sleep
        self.languages = languages
        self.usage = usage
        self.requests = []

    def supports(self, file_path, language):
        return self.languages is None or language in self.languages

    def review(self, request):
        import time

        self.requests.append(request)
        if self.sleep:
            time.sleep(self.sleep)
        if self.delay and request.cancellation.wait(self.delay):
            request.cancellation.raise_if_cancelled(self.provider_id)
        if self.error is not None:
            raise self.error
        if self.usage is not None:
            model, tokens_in, tokens_out = self.usage
            request.usage.record(model, tokens_in, tokens_out, provider_id=self.provider_id)
        return list(self.findings)


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider

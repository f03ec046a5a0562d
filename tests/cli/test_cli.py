"""Tests for the diffscore command line."""

import json

import pytest
from typer.testing import CliRunner

from diffscore import __version__
from diffscore.cli import app

runner = CliRunner()


@pytest.fixture
def diff_file(tmp_path, git_diff_text):
    path = tmp_path / "changes.diff"
    path.write_text(git_diff_text, encoding="utf-8")
    return path


@pytest.fixture
def findings_file(tmp_path):
    path = tmp_path / "findings.json"
    path.write_text(
        json.dumps(
            {
                "findings": [
                    {
                        "id": "f-1",
                        "file": "src/greeter.py",
                        "start_line": 8,
                        "severity": "MAJOR",
                        "dimension": "SECURITY",
                        "title": "Unescaped output",
                        "confidence": 0.9,
                    },
                    {"id": "bad", "severity": "BLOCKER", "dimension": "SECURITY", "title": "?"},
                ]
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MAX_WORKERS", "PROVIDER_TIMEOUT_SECONDS", "RUN_TIMEOUT_SECONDS", "SPLITTING"):
        monkeypatch.delenv(f"DIFFSCORE_{name}", raising=False)


class TestApp:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "segment" in result.output
        assert "score" in result.output


class TestSegmentCommand:
    """Test `diffscore segment`."""

    def test_json_output(self, diff_file):
        result = runner.invoke(app, ["-q", "segment", str(diff_file), "--json"])
        assert result.exit_code == 0
        segments = json.loads(result.stdout)
        assert [s["file"] for s in segments] == ["src/greeter.py", "src/Calculator.java"]
        assert segments[0]["kind"] == "CLASS"
        assert segments[0]["metadata"] == {"class_name": "Greeter"}
        assert (segments[1]["start_line"], segments[1]["end_line"]) == (3, 16)

    def test_function_strategy(self, diff_file):
        result = runner.invoke(app, ["-q", "segment", str(diff_file), "-s", "function", "--json"])
        assert result.exit_code == 0
        names = [s["metadata"].get("function_name") for s in json.loads(result.stdout)]
        assert names == ["greet", "add", "reset"]

    def test_table_output(self, diff_file):
        result = runner.invoke(app, ["segment", str(diff_file)])
        assert result.exit_code == 0
        assert "Calculator" in result.output

    def test_unknown_strategy(self, diff_file):
        result = runner.invoke(app, ["-q", "segment", str(diff_file), "-s", "paragraphs"])
        assert result.exit_code == 1

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["segment", str(tmp_path / "missing.diff")])
        assert result.exit_code != 0


class TestScoreCommand:
    """Test `diffscore score`."""

    def test_json_output(self, findings_file):
        result = runner.invoke(app, ["-q", "score", str(findings_file), "--lines", "100", "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["dimensions"]["SECURITY"] == pytest.approx(61.6, abs=0.05)
        assert payload["dimensions"]["QUALITY"] == 100.0
        assert payload["grade"] == "B"
        assert payload["rejected"] == 1
        assert payload["recommendations"] == [
            "Review security-related findings and implement security best practices"
        ]

    def test_table_output(self, findings_file):
        result = runner.invoke(app, ["-q", "score", str(findings_file), "-l", "100"])
        assert result.exit_code == 0
        assert "Overall Grade: B" in result.output
        assert "1 malformed finding(s) ignored" in result.output

    def test_plain_list_accepted(self, tmp_path):
        path = tmp_path / "findings.json"
        path.write_text("[]", encoding="utf-8")
        result = runner.invoke(app, ["-q", "score", str(path), "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["total"] == 100.0

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "findings.json"
        path.write_text("{not json", encoding="utf-8")
        result = runner.invoke(app, ["-q", "score", str(path)])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_scoring_from_config(self, tmp_path, findings_file):
        config = tmp_path / "review.yml"
        config.write_text(
            "scoring:\n"
            "  weights: {SECURITY: 1.0, QUALITY: 0.0, MAINTAINABILITY: 0.0, PERFORMANCE: 0.0, TEST_COVERAGE: 0.0}\n",
            encoding="utf-8",
        )
        result = runner.invoke(
            app, ["-q", "score", str(findings_file), "-l", "100", "-c", str(config), "--json"]
        )
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["total"] == payload["dimensions"]["SECURITY"]

    def test_invalid_config(self, tmp_path, findings_file):
        config = tmp_path / "review.yml"
        config.write_text("scoring:\n  weights: {SECURITY: 2.0}\n", encoding="utf-8")
        result = runner.invoke(app, ["-q", "score", str(findings_file), "-c", str(config)])
        assert result.exit_code == 1


class TestConfigCommands:
    """Test `diffscore config init|show`."""

    def test_init_writes_defaults(self, tmp_path):
        result = runner.invoke(app, ["config", "init", str(tmp_path)])
        assert result.exit_code == 0
        written = (tmp_path / ".ai-review.yml").read_text(encoding="utf-8")
        assert "provider: github" in written
        assert "SECURITY: 0.3" in written

    def test_init_refuses_to_overwrite(self, tmp_path):
        target = tmp_path / ".ai-review.yml"
        target.write_text("provider: gitlab\n", encoding="utf-8")
        result = runner.invoke(app, ["config", "init", str(target)])
        assert result.exit_code == 1
        assert target.read_text(encoding="utf-8") == "provider: gitlab\n"

    def test_init_force(self, tmp_path):
        target = tmp_path / ".ai-review.yml"
        target.write_text("provider: gitlab\n", encoding="utf-8")
        result = runner.invoke(app, ["config", "init", str(target), "--force"])
        assert result.exit_code == 0
        assert "provider: github" in target.read_text(encoding="utf-8")

    def test_show_repository_config(self, tmp_path):
        (tmp_path / ".ai-review.yml").write_text("provider: gitlab\nsplitting: lines\n", encoding="utf-8")
        result = runner.invoke(app, ["config", "show", str(tmp_path)])
        assert result.exit_code == 0
        assert "provider: gitlab" in result.output
        assert "splitting: lines" in result.output

    def test_show_strict_invalid(self, tmp_path):
        (tmp_path / ".ai-review.yml").write_text("provider: bitbucket\n", encoding="utf-8")
        result = runner.invoke(app, ["-q", "config", "show", str(tmp_path), "--strict"])
        assert result.exit_code == 1

    def test_show_invalid_falls_back(self, tmp_path):
        (tmp_path / ".ai-review.yml").write_text("provider: bitbucket\n", encoding="utf-8")
        result = runner.invoke(app, ["-q", "config", "show", str(tmp_path)])
        assert result.exit_code == 0
        assert "provider: github" in result.output

"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


@pytest.fixture
def cli(tmp_path):
    """Runner bound to a throwaway state directory."""
    env = dict(os.environ)
    env["STATE_DIR"] = str(tmp_path / "learners")
    env["LOG_LEVEL"] = "ERROR"
    # Unreachable port; content commands must fail fast
    env["CONTENT_API_URL"] = "http://127.0.0.1:9"
    env["CONTENT_API_RETRY_ATTEMPTS"] = "1"

    def run_cli_command(*args: str, timeout: int = 30) -> tuple[int, str, str]:
        """
        Run a CLI command and return exit code, stdout, stderr.

        Args:
            args: Arguments after 'python -m src.cli'
            timeout: Maximum time to wait

        Returns:
            Tuple of (exit_code, stdout, stderr)
        """
        result = subprocess.run(
            [sys.executable, "-m", "src.cli", "--learner", "smoke", *args],
            cwd=PROJECT_ROOT,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode, result.stdout, result.stderr

    return run_cli_command


@pytest.fixture
def roadmap_file(tmp_path, sample_roadmap):
    path = tmp_path / "roadmap.json"
    path.write_text(json.dumps(sample_roadmap.to_dict()), encoding="utf-8")
    return path


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self, cli):
        """Main help should display without errors."""
        code, stdout, stderr = cli("--help")

        assert code == 0, f"Help failed: {stderr}"
        assert "Commands" in stdout
        assert "submit" in stdout

    def test_submit_help(self, cli):
        code, stdout, stderr = cli("submit", "--help")

        assert code == 0, f"Submit help failed: {stderr}"


class TestCLIProgression:
    """Profile, roadmap and a full lesson."""

    def test_next_without_roadmap(self, cli):
        code, stdout, stderr = cli("next")

        assert code == 0, f"Next failed: {stderr}"
        assert "No roadmap" in stdout

    def test_lesson_walkthrough(self, cli, roadmap_file):
        assert cli("profile", "German", "--level", "A1-A2")[0] == 0
        assert cli("roadmap", str(roadmap_file))[0] == 0

        code, stdout, _ = cli("next")
        assert "L1" in stdout

        code, stdout, _ = cli("begin", "L1")
        assert code == 0
        assert "InSection(L1, grammar)" in stdout

        code, stdout, _ = cli("submit", "L1", "grammar", "1100")
        assert "repeat grammar" in stdout

        code, stdout, _ = cli("submit", "L1", "grammar", "11111111")
        assert "continue with vocabulary" in stdout

        code, stdout, _ = cli("submit", "L1", "vocabulary", "1111111000")
        assert "lesson L1 finished" in stdout
        assert "L2" in stdout

    def test_stale_submission_fails(self, cli, roadmap_file):
        cli("roadmap", str(roadmap_file))

        code, stdout, _ = cli("submit", "L1", "grammar", "1")

        assert code == 1
        assert "Error" in stdout

    def test_bad_outcome_marks(self, cli):
        code, _, _ = cli("submit", "L1", "grammar", "1x1")
        assert code == 2


class TestCLIVocabulary:
    def test_review_and_due(self, cli):
        code, stdout, stderr = cli("review", "Apfel", "--incorrect", "--lang", "German", "-t", "apple")
        assert code == 0, f"Review failed: {stderr}"
        assert "stage 0" in stdout

        code, stdout, _ = cli("due")
        assert "Apfel" in stdout

        code, stdout, _ = cli("new-words")
        assert "Apfel" in stdout

    def test_review_without_language_or_profile(self, cli):
        code, stdout, _ = cli("review", "Apfel", "--correct")
        assert code == 1


class TestCLIMistakes:
    def test_archive_and_clear(self, cli):
        assert cli("mistake", "grammar", "ich ___ müde", "bist", "--answer", "bin")[0] == 0

        code, stdout, _ = cli("mistakes")
        assert "bist" in stdout

        assert cli("clear-mistakes", "--yes")[0] == 0
        code, stdout, _ = cli("mistakes")
        assert "No mistakes" in stdout


class TestCLIStats:
    def test_stats_runs(self, cli):
        code, stdout, stderr = cli("stats")

        assert code == 0, f"Stats failed with: {stderr}"
        assert "Learning Statistics" in stdout

    def test_reset_runs(self, cli):
        code, stdout, stderr = cli("reset", "--yes")

        assert code == 0, f"Reset failed: {stderr}"

    @pytest.mark.parametrize("command", ["stats", "next", "due", "new-words", "lessons", "mistakes"])
    def test_unreadable_state_reported(self, cli, tmp_path, command):
        """A corrupt learner document should fail with an error line, not a traceback."""
        state_dir = tmp_path / "learners"
        state_dir.mkdir(parents=True, exist_ok=True)
        (state_dir / "smoke.json").write_text("{not json", encoding="utf-8")

        code, stdout, stderr = cli(command)

        assert code == 1, f"{command} exited {code}: {stderr}"
        assert "Error" in stdout
        assert "Traceback" not in stderr

    def test_content_fails_gracefully(self, cli, roadmap_file):
        cli("roadmap", str(roadmap_file))

        code, stdout, _ = cli("content", "L1", "grammar")

        assert code == 1
        assert "Content generation failed" in stdout

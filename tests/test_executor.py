"""GitCommandExecutor against a real git binary."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from git_merge_helper.executor import CommandOutcome, GitCommandExecutor

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


@pytest.fixture()
def real_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    repo.mkdir()
    subprocess.run(["git", "init"], cwd=repo, check=True, capture_output=True)
    subprocess.run(
        ["git", "symbolic-ref", "HEAD", "refs/heads/main"], cwd=repo, check=True, capture_output=True
    )
    return repo


class TestCommandOutcome:
    def test_first_line_skips_blank_lines(self) -> None:
        outcome = CommandOutcome(success=True, output_lines=["", "  main  ", "other"])
        assert outcome.first_line == "main"

    def test_first_line_empty(self) -> None:
        assert CommandOutcome(success=True).first_line == ""


@requires_git
class TestGitCommandExecutor:
    def test_successful_command_returns_lines(self, real_repo: Path) -> None:
        outcome = GitCommandExecutor(real_repo).run("branch", ["--show-current"])
        assert outcome.success
        assert outcome.first_line == "main"
        assert outcome.error == ""

    def test_nonzero_exit_carries_stderr(self, real_repo: Path) -> None:
        outcome = GitCommandExecutor(real_repo).run("checkout", ["does-not-exist"])
        assert not outcome.success
        assert "does-not-exist" in outcome.error

    def test_runs_in_repo_root(self, real_repo: Path) -> None:
        (real_repo / "new.txt").write_text("x", encoding="utf-8")
        outcome = GitCommandExecutor(real_repo).run("status", ["--porcelain"])
        assert outcome.output_lines == ["?? new.txt"]


class TestBinaryResolution:
    def test_missing_binary_becomes_failed_outcome(self, tmp_path: Path) -> None:
        executor = GitCommandExecutor(tmp_path, git_binary="git-binary-that-does-not-exist")
        outcome = executor.run("status")
        assert not outcome.success
        assert outcome.error

    def test_env_var_overrides_binary(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GIT_MERGE_HELPER_GIT", "/opt/git/bin/git")
        assert GitCommandExecutor(tmp_path).git_binary == "/opt/git/bin/git"

    def test_empty_stderr_reports_exit_status(self, tmp_path: Path) -> None:
        completed = subprocess.CompletedProcess(["git", "pull"], 128, stdout="", stderr="")
        with patch("git_merge_helper.executor.subprocess.run", return_value=completed) as run:
            outcome = GitCommandExecutor(tmp_path).run("pull")

        assert outcome == CommandOutcome(success=False, output_lines=[], error="exit status 128")
        assert run.call_args.args[0] == ["git", "pull"]
        assert run.call_args.kwargs["cwd"] == str(tmp_path)
        assert "timeout" not in run.call_args.kwargs

"""Shared fixtures: a scripted git executor, in-memory settings, real repos."""

from __future__ import annotations

import copy
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterator, Sequence

import pytest

from git_merge_helper.config import MergeConfig
from git_merge_helper.executor import CommandOutcome
from git_merge_helper.lock import OperationLock
from git_merge_helper.service import MergeService

FEATURE_BRANCH = "feature/login"


class FakeGitExecutor:
    """Replays scripted outcomes per ``(command, args)`` and records calls.

    Unscripted commands succeed with no output. When several outcomes are
    scripted for one key they are consumed in order and the last repeats.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self._scripts: dict[tuple[str, tuple[str, ...]], list[CommandOutcome]] = {}

    def script(self, command: str, args: Sequence[str], *outcomes: CommandOutcome) -> None:
        self._scripts[(command, tuple(args))] = list(outcomes)

    def ok(self, command: str, args: Sequence[str] = (), lines: Sequence[str] = ()) -> None:
        self.script(command, args, CommandOutcome(success=True, output_lines=list(lines)))

    def fail(self, command: str, args: Sequence[str] = (), error: str = "fatal: boom") -> None:
        self.script(command, args, CommandOutcome(success=False, error=error))

    def run(self, command: str, args: Sequence[str] = ()) -> CommandOutcome:
        key = (command, tuple(args))
        self.calls.append(key)
        queue = self._scripts.get(key)
        if not queue:
            return CommandOutcome(success=True)
        if len(queue) > 1:
            return queue.pop(0)
        return queue[0]

    @property
    def command_lines(self) -> list[str]:
        return [" ".join((command, *args)) for command, args in self.calls]


class MemorySettingsStore:
    """Settings store that keeps a private copy of the config."""

    def __init__(self, config: MergeConfig | None = None) -> None:
        self._config = copy.deepcopy(config or MergeConfig.default())
        self.saves = 0

    def load(self) -> MergeConfig:
        return copy.deepcopy(self._config)

    def save(self, config: MergeConfig) -> None:
        self._config = copy.deepcopy(config)
        self.saves += 1


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the global settings directory at a temporary location."""
    home = tmp_path / "helper-home"
    monkeypatch.setenv("GIT_MERGE_HELPER_HOME", str(home))
    monkeypatch.delenv("GIT_MERGE_HELPER_GIT", raising=False)
    return home


@pytest.fixture()
def git() -> FakeGitExecutor:
    return FakeGitExecutor()


@pytest.fixture()
def feature_git(git: FakeGitExecutor) -> FakeGitExecutor:
    """Executor positioned on a clean feature branch."""
    git.ok("branch", ["--show-current"], [FEATURE_BRANCH])
    return git


@pytest.fixture()
def settings() -> MemorySettingsStore:
    return MemorySettingsStore()


@pytest.fixture()
def lock() -> OperationLock:
    return OperationLock()


@pytest.fixture()
def make_service(
    git: FakeGitExecutor, settings: MemorySettingsStore, lock: OperationLock
) -> Iterator[Callable[..., MergeService]]:
    """Build MergeServices on the fake executor and shut them down afterwards."""
    created: list[MergeService] = []

    def factory(**kwargs) -> MergeService:
        kwargs.setdefault("lock", lock)
        service = MergeService(kwargs.pop("executor", git), kwargs.pop("settings", settings), **kwargs)
        created.append(service)
        return service

    yield factory
    for service in created:
        service.shutdown()


@pytest.fixture()
def repo_dir(tmp_path: Path) -> Path:
    """Directory that looks like a working copy to ``find_repo_root``."""
    repo = tmp_path / "repo"
    (repo / ".git").mkdir(parents=True)
    return repo


def run(cmd: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(cmd, cwd=cwd, check=True, capture_output=True, text=True)


@pytest.fixture()
def git_remote_repo(tmp_path: Path) -> Path:
    """Real working copy on ``feature/login`` with ``main`` and ``develop``
    pushed to a bare ``origin``."""
    if shutil.which("git") is None:
        pytest.skip("git binary not available")

    origin = tmp_path / "origin.git"
    work = tmp_path / "work"
    origin.mkdir()
    work.mkdir()
    run(["git", "init", "--bare"], cwd=origin)
    run(["git", "symbolic-ref", "HEAD", "refs/heads/main"], cwd=origin)

    run(["git", "init"], cwd=work)
    run(["git", "symbolic-ref", "HEAD", "refs/heads/main"], cwd=work)
    run(["git", "config", "user.name", "Merge Tester"], cwd=work)
    run(["git", "config", "user.email", "tester@example.com"], cwd=work)
    run(["git", "config", "pull.rebase", "false"], cwd=work)
    run(["git", "config", "commit.gpgsign", "false"], cwd=work)

    (work / "shared.txt").write_text("base\n", encoding="utf-8")
    run(["git", "add", "."], cwd=work)
    run(["git", "commit", "-m", "Initial commit"], cwd=work)
    run(["git", "remote", "add", "origin", str(origin)], cwd=work)
    run(["git", "push", "-u", "origin", "main"], cwd=work)

    run(["git", "checkout", "-b", "develop"], cwd=work)
    run(["git", "push", "-u", "origin", "develop"], cwd=work)

    run(["git", "checkout", "-b", FEATURE_BRANCH, "main"], cwd=work)
    return work

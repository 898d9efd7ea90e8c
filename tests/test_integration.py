"""Full workflows against real repositories with a bare ``origin``."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from git_merge_helper.config import MergeConfig
from git_merge_helper.executor import GitCommandExecutor
from git_merge_helper.lock import OperationLock
from git_merge_helper.models import ErrorKind
from git_merge_helper.service import MergeService
from git_merge_helper.settings import ProjectSettingsStore, YamlSettingsStore, open_settings_store

pytestmark = pytest.mark.integration

FEATURE = "feature/login"


def _git(repo: Path, *args: str) -> str:
    completed = subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    )
    return completed.stdout.strip()


def _commit(repo: Path, name: str, content: str, message: str) -> None:
    (repo / name).write_text(content, encoding="utf-8")
    _git(repo, "add", ".")
    _git(repo, "commit", "-m", message)


@pytest.fixture()
def service(git_remote_repo: Path, settings):
    with MergeService(GitCommandExecutor(git_remote_repo), settings, lock=OperationLock()) as svc:
        yield svc


def test_auto_merge_reaches_remote_target(git_remote_repo: Path, service: MergeService) -> None:
    _commit(git_remote_repo, "login.py", "print('login')\n", "Add login")

    result = service.execute_auto_merge("develop").result(timeout=60)

    assert result.success, result.message
    origin = git_remote_repo.parent / "origin.git"
    feature_head = _git(git_remote_repo, "rev-parse", FEATURE)
    assert _git(origin, "rev-parse", "develop") == feature_head
    assert _git(origin, "rev-parse", FEATURE) == feature_head
    assert _git(git_remote_repo, "branch", "--show-current") == FEATURE


def test_conflict_with_main_is_reported(git_remote_repo: Path, service: MergeService) -> None:
    _commit(git_remote_repo, "shared.txt", "feature side\n", "Feature edit")
    _git(git_remote_repo, "checkout", "main")
    _commit(git_remote_repo, "shared.txt", "main side\n", "Main edit")
    _git(git_remote_repo, "push", "origin", "main")
    _git(git_remote_repo, "checkout", FEATURE)

    result = service.execute_auto_merge("develop").result(timeout=60)

    assert result.error_kind is ErrorKind.CONFLICT_DETECTED
    assert result.conflict_files == ["shared.txt"]
    origin = git_remote_repo.parent / "origin.git"
    assert _git(origin, "branch", "--list", FEATURE) == ""
    assert service.check_conflicts() == ["shared.txt"]

    (git_remote_repo / "shared.txt").write_text("resolved\n", encoding="utf-8")
    resolved = service.resolve_conflicts_and_continue().result(timeout=60)
    assert resolved.success, resolved.message
    assert service.check_conflicts() == []


def test_create_branch_from_base(git_remote_repo: Path, service: MergeService) -> None:
    result = service.create_and_checkout_branch_from_base("feature/report", "develop").result(
        timeout=60
    )

    assert result.success, result.message
    assert _git(git_remote_repo, "branch", "--show-current") == "feature/report"

    again = service.create_and_checkout_branch("feature/report").result(timeout=60)
    assert again.message == "Branch 'feature/report' already exists locally"


def test_git_status_snapshot(git_remote_repo: Path, service: MergeService) -> None:
    (git_remote_repo / "scratch.txt").write_text("x", encoding="utf-8")
    assert not service.get_git_status().has_uncommitted_changes

    (git_remote_repo / "shared.txt").write_text("edited\n", encoding="utf-8")
    status = service.get_git_status()

    assert status.current_branch == FEATURE
    assert status.is_feature_branch
    assert status.has_uncommitted_changes
    assert status.remote_connected


def test_quick_commit_and_merge(git_remote_repo: Path, settings) -> None:
    config = MergeConfig.default()
    settings.save(config)
    (git_remote_repo / "quick.txt").write_text("quick\n", encoding="utf-8")

    with MergeService(GitCommandExecutor(git_remote_repo), settings, lock=OperationLock()) as svc:
        result = svc.quick_commit_and_merge(
            "Quick change", continue_with_merge=True, target_branch="develop"
        ).result(timeout=60)

    assert result.success, result.message
    origin = git_remote_repo.parent / "origin.git"
    assert _git(origin, "log", "-1", "--format=%s", "develop") == "Quick change"


def test_project_config_does_not_dirty_working_copy(git_remote_repo: Path) -> None:
    ProjectSettingsStore(git_remote_repo).init_from_global(MergeConfig.default())
    store = open_settings_store(git_remote_repo, YamlSettingsStore())
    _commit(git_remote_repo, "login.py", "print('login')\n", "Add login")

    with MergeService(GitCommandExecutor(git_remote_repo), store, lock=OperationLock()) as svc:
        assert svc.check_conflicts() == []
        assert not svc.get_git_status().has_uncommitted_changes
        result = svc.execute_auto_merge("develop").result(timeout=60)

    assert result.success, result.message
    assert _git(git_remote_repo, "status", "--porcelain") == ""

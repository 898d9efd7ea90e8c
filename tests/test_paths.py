"""Settings locations and working-copy discovery."""

from __future__ import annotations

from pathlib import Path

import pytest

from git_merge_helper.errors import RepositoryNotFoundError
from git_merge_helper.paths import (
    find_repo_root,
    get_git_dir,
    get_helper_home,
    get_project_config_path,
)


class TestProjectConfigPath:
    def test_main_checkout_uses_dot_git_directory(self, repo_dir: Path) -> None:
        """The project file sits in .git so it never appears in git status."""
        assert get_git_dir(repo_dir) == repo_dir / ".git"
        assert get_project_config_path(repo_dir) == repo_dir / ".git" / "git-merge-helper.yaml"

    def test_linked_worktree_follows_relative_gitdir(self, tmp_path: Path) -> None:
        main_git = tmp_path / "main" / ".git" / "worktrees" / "wt"
        main_git.mkdir(parents=True)
        worktree = tmp_path / "wt"
        worktree.mkdir()
        (worktree / ".git").write_text("gitdir: ../main/.git/worktrees/wt\n", encoding="utf-8")

        assert get_git_dir(worktree) == main_git.resolve()
        assert get_project_config_path(worktree).parent == main_git.resolve()

    def test_linked_worktree_with_absolute_gitdir(self, tmp_path: Path) -> None:
        git_dir = tmp_path / "elsewhere" / "wt"
        worktree = tmp_path / "wt"
        worktree.mkdir()
        (worktree / ".git").write_text(f"gitdir: {git_dir}\n", encoding="utf-8")

        assert get_git_dir(worktree) == git_dir


class TestRepoDiscovery:
    def test_walks_up_to_working_copy(self, repo_dir: Path) -> None:
        nested = repo_dir / "src" / "pkg"
        nested.mkdir(parents=True)
        assert find_repo_root(nested) == repo_dir.resolve()

    def test_outside_working_copy(self, tmp_path: Path) -> None:
        with pytest.raises(RepositoryNotFoundError):
            find_repo_root(tmp_path / "nowhere")


def test_home_env_override(isolated_home: Path) -> None:
    assert get_helper_home() == isolated_home

"""Locations of the settings files and of the working copy.

Provides the canonical functions for locating:
- The user-global settings directory (cross-platform)
- The per-project settings file inside the git directory
- The root of the git working copy containing a path
"""

from __future__ import annotations

import os
from pathlib import Path

from .errors import RepositoryNotFoundError

__all__ = [
    "GLOBAL_CONFIG_NAME",
    "PROJECT_CONFIG_NAME",
    "find_repo_root",
    "get_git_dir",
    "get_global_config_path",
    "get_helper_home",
    "get_project_config_path",
]

HOME_ENV_VAR = "GIT_MERGE_HELPER_HOME"
GLOBAL_CONFIG_NAME = "config.yaml"
PROJECT_CONFIG_NAME = "git-merge-helper.yaml"


def _is_windows() -> bool:
    """Return True when running on Windows."""
    return os.name == "nt"


def get_helper_home() -> Path:
    """Return the user-global settings directory.

    Resolution order:
    1. GIT_MERGE_HELPER_HOME environment variable (all platforms)
    2. ~/.git-merge-helper/ on macOS/Linux
    3. %LOCALAPPDATA%\\git-merge-helper\\ on Windows (via platformdirs)
    """
    if env_home := os.environ.get(HOME_ENV_VAR):
        return Path(env_home)

    if _is_windows():
        from platformdirs import user_data_dir

        return Path(user_data_dir("git-merge-helper"))

    return Path.home() / ".git-merge-helper"


def get_global_config_path() -> Path:
    return get_helper_home() / GLOBAL_CONFIG_NAME


def get_git_dir(repo_root: Path) -> Path:
    """Return the git directory of the working copy at ``repo_root``.

    Same answer as ``git rev-parse --git-dir``: ``.git`` itself for a main
    checkout, the ``gitdir:`` target of the ``.git`` file for a linked
    worktree or submodule.
    """
    dot_git = repo_root / ".git"
    if dot_git.is_file():
        for line in dot_git.read_text(encoding="utf-8").splitlines():
            if line.startswith("gitdir:"):
                target = Path(line[len("gitdir:"):].strip())
                return target if target.is_absolute() else (repo_root / target).resolve()
    return dot_git


def get_project_config_path(repo_root: Path) -> Path:
    """Per-project settings live in the git directory, outside the working tree."""
    return get_git_dir(repo_root) / PROJECT_CONFIG_NAME


def find_repo_root(start: Path | None = None) -> Path:
    """Walk up from ``start`` to the first directory containing ``.git``.

    ``.git`` may be a directory (main checkout) or a file (linked worktree).

    Raises:
        RepositoryNotFoundError: If no enclosing working copy exists.
    """
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    raise RepositoryNotFoundError(f"Not inside a git working copy: {current}")

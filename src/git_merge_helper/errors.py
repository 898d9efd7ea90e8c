"""Exception types raised outside the merge workflows.

Workflow failures are returned as ``MergeResult`` values; these exceptions
cover settings I/O and repository discovery, where the CLI needs to stop.
"""

from __future__ import annotations

__all__ = [
    "GitMergeHelperError",
    "SettingsError",
    "RepositoryNotFoundError",
]


class GitMergeHelperError(Exception):
    """Base class for all git-merge-helper errors."""


class SettingsError(GitMergeHelperError):
    """Raised when a settings file cannot be parsed or written."""


class RepositoryNotFoundError(GitMergeHelperError):
    """Raised when no git working copy can be located."""

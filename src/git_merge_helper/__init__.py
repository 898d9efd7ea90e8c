"""git-merge-helper: automate the feature-branch merge workflow.

Usage:
    git-merge-helper merge --target develop
    git-merge-helper commit -m "Fix login" --merge --target develop
    git-merge-helper branch create --description login_fix
"""

from __future__ import annotations

from .config import BranchPrefix, ConfigValidationResult, MergeConfig, TargetBranch
from .executor import CommandExecutor, CommandOutcome, GitCommandExecutor
from .lock import OperationLock, get_operation_lock
from .models import (
    BranchMergeInfo,
    BranchStatus,
    ErrorKind,
    GitOperationStatus,
    MergeResult,
)
from .service import MergeService
from .settings import ProjectSettingsStore, SettingsStore, YamlSettingsStore

__version__ = "1.1.0"

__all__ = [
    "BranchMergeInfo",
    "BranchPrefix",
    "BranchStatus",
    "CommandExecutor",
    "CommandOutcome",
    "ConfigValidationResult",
    "ErrorKind",
    "GitCommandExecutor",
    "GitOperationStatus",
    "MergeConfig",
    "MergeResult",
    "MergeService",
    "OperationLock",
    "ProjectSettingsStore",
    "SettingsStore",
    "TargetBranch",
    "YamlSettingsStore",
    "get_operation_lock",
]

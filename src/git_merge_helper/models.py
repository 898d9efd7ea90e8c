"""Result and status types produced by the merge workflows.

Every workflow hands back a fresh ``MergeResult``; nothing here is
persisted. ``ErrorKind`` lets callers tell a conflict apart from a plain
command failure without parsing messages.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

__all__ = [
    "BranchMergeInfo",
    "BranchStatus",
    "ErrorKind",
    "GitOperationStatus",
    "MergeResult",
]


class GitOperationStatus(str, Enum):
    """Progress states of the auto-merge workflow."""

    PREPARING = "preparing"
    CHECKING_ENVIRONMENT = "checking_environment"
    UPDATING_MAIN_BRANCH = "updating_main_branch"
    MERGING_MAIN_TO_FEATURE = "merging_main_to_feature"
    PUSHING_FEATURE_BRANCH = "pushing_feature_branch"
    MERGING_FEATURE_TO_TARGET = "merging_feature_to_target"
    PUSHING_TARGET_BRANCH = "pushing_target_branch"
    CLEANING_UP = "cleaning_up"
    COMPLETED = "completed"
    FAILED = "failed"
    CONFLICT = "conflict"


class ErrorKind(str, Enum):
    """Why a workflow did not succeed."""

    CONFIGURATION_INVALID = "configuration_invalid"
    PRECONDITION_FAILED = "precondition_failed"
    COMMAND_FAILED = "command_failed"
    CONFLICT_DETECTED = "conflict_detected"
    BUSY = "busy"


def _now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class BranchMergeInfo:
    """One completed merge step (``from_branch`` merged into ``to_branch``).

    ``commit_count`` is always reported as 0; commits are not counted.
    """

    from_branch: str
    to_branch: str
    commit_count: int = 0
    timestamp: int = field(default_factory=_now_millis)

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_branch": self.from_branch,
            "to_branch": self.to_branch,
            "commit_count": self.commit_count,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class MergeResult:
    """Outcome of a workflow or of a single workflow step."""

    success: bool
    message: str
    conflict_files: list[str] = field(default_factory=list)
    merged_branches: list[BranchMergeInfo] = field(default_factory=list)
    error_kind: ErrorKind | None = None
    status: GitOperationStatus = GitOperationStatus.COMPLETED

    @classmethod
    def ok(
        cls, message: str, merged_branches: list[BranchMergeInfo] | None = None
    ) -> MergeResult:
        return cls(
            success=True,
            message=message,
            merged_branches=list(merged_branches or []),
        )

    @classmethod
    def failure(
        cls, message: str, kind: ErrorKind = ErrorKind.COMMAND_FAILED
    ) -> MergeResult:
        return cls(
            success=False,
            message=message,
            error_kind=kind,
            status=GitOperationStatus.FAILED,
        )

    @classmethod
    def conflict(cls, message: str, conflict_files: list[str]) -> MergeResult:
        return cls(
            success=False,
            message=message,
            conflict_files=list(conflict_files),
            error_kind=ErrorKind.CONFLICT_DETECTED,
            status=GitOperationStatus.CONFLICT,
        )

    @classmethod
    def busy(cls, message: str) -> MergeResult:
        return cls.failure(message, ErrorKind.BUSY)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflict_files)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "conflict_files": list(self.conflict_files),
            "merged_branches": [info.to_dict() for info in self.merged_branches],
            "error_kind": self.error_kind.value if self.error_kind else None,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class BranchStatus:
    """Snapshot of the working copy, recomputed on every query."""

    current_branch: str
    is_feature_branch: bool
    has_uncommitted_changes: bool
    can_push: bool
    remote_connected: bool

    @property
    def remote_status(self) -> str:
        return "connected" if self.remote_connected else "not connected"

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_branch": self.current_branch,
            "is_feature_branch": self.is_feature_branch,
            "has_uncommitted_changes": self.has_uncommitted_changes,
            "can_push": self.can_push,
            "remote_status": self.remote_status,
        }

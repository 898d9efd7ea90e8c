"""MergeResult constructors and serialized forms."""

from __future__ import annotations

from git_merge_helper.models import (
    BranchMergeInfo,
    BranchStatus,
    ErrorKind,
    GitOperationStatus,
    MergeResult,
)


class TestMergeResult:
    def test_ok(self) -> None:
        info = BranchMergeInfo("main", "feature/x")
        result = MergeResult.ok("done", [info])
        assert result.success
        assert result.error_kind is None
        assert result.status is GitOperationStatus.COMPLETED
        assert result.merged_branches == [info]
        assert info.commit_count == 0

    def test_failure_defaults_to_command_failed(self) -> None:
        result = MergeResult.failure("nope")
        assert not result.success
        assert result.error_kind is ErrorKind.COMMAND_FAILED
        assert result.status is GitOperationStatus.FAILED

    def test_conflict(self) -> None:
        result = MergeResult.conflict("conflict", ["a.txt"])
        assert result.has_conflicts
        assert result.error_kind is ErrorKind.CONFLICT_DETECTED
        assert result.status is GitOperationStatus.CONFLICT

    def test_busy(self) -> None:
        result = MergeResult.busy("wait")
        assert not result.success
        assert result.error_kind is ErrorKind.BUSY
        assert not result.has_conflicts

    def test_to_dict(self) -> None:
        data = MergeResult.conflict("conflict", ["a.txt"]).to_dict()
        assert data == {
            "success": False,
            "message": "conflict",
            "conflict_files": ["a.txt"],
            "merged_branches": [],
            "error_kind": "conflict_detected",
            "status": "conflict",
        }


class TestBranchStatus:
    def test_remote_status_text(self) -> None:
        status = BranchStatus("feature/x", True, False, True, False)
        assert status.remote_status == "not connected"
        assert status.to_dict()["remote_status"] == "not connected"
        assert BranchStatus("x", False, False, False, True).remote_status == "connected"

"""Merge orchestration.

Drives the fixed sequence of git subcommands behind the three mutating
workflows:

1. Auto-merge: check environment, update main, merge main into the feature
   branch, push it, merge it into the target, push the target, return to the
   feature branch.
2. Quick commit: stage everything, commit, optionally continue with an
   auto-merge.
3. Create branch: from HEAD or from a base branch, with existence checks.

Each workflow runs on a single background worker and is guarded by the
process-wide ``OperationLock``. Steps are fail-fast: the first failing step's
result is returned as-is and nothing already done is rolled back.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date
from typing import Callable, Sequence

from .branch_naming import (
    generate_branch_name,
    resolve_author,
    validate_branch_name,
    validate_branch_name_strict,
    validate_commit_message,
    validate_description,
)
from .config import MergeConfig
from .executor import CommandExecutor, CommandOutcome
from .lock import OperationLock, get_operation_lock
from .models import (
    BranchMergeInfo,
    BranchStatus,
    ErrorKind,
    GitOperationStatus,
    MergeResult,
)
from .settings import SettingsStore

logger = logging.getLogger(__name__)

__all__ = [
    "CONFLICT_MARKERS",
    "DEFAULT_REMOTE",
    "MergeService",
    "has_tracked_changes",
    "parse_conflict_files",
]

DEFAULT_REMOTE = "origin"
CONFLICT_MARKERS = ("UU", "AA", "DD")
UNTRACKED_MARKER = "??"
DEFAULT_RESOLVE_MESSAGE = "Resolve merge conflicts"

ProgressCallback = Callable[[GitOperationStatus, float], None]
ResultCallback = Callable[[MergeResult], None]


def parse_conflict_files(porcelain_lines: Sequence[str]) -> list[str]:
    """Return the paths of unmerged entries in ``status --porcelain`` output."""
    return [
        line[3:].strip()
        for line in porcelain_lines
        if line.startswith(CONFLICT_MARKERS)
    ]


def has_tracked_changes(porcelain_lines: Sequence[str]) -> bool:
    """True if any entry other than an untracked ``??`` path is present."""
    return any(
        line.strip() and not line.startswith(UNTRACKED_MARKER)
        for line in porcelain_lines
    )


def _strip_branch_marker(line: str) -> str:
    stripped = line.strip()
    if stripped.startswith("* ") or stripped.startswith("+ "):
        stripped = stripped[2:].strip()
    return stripped


def _parse_branch_lines(lines: Sequence[str]) -> list[str]:
    """Names from ``git branch`` output, skipping symbolic refs and detached HEAD."""
    names: list[str] = []
    for line in lines:
        name = _strip_branch_marker(line)
        if not name or "->" in name or name.startswith("("):
            continue
        if name.startswith("remotes/"):
            name = name[len("remotes/"):]
        if name not in names:
            names.append(name)
    return names


def _without_remote(name: str) -> str:
    return name.split("/", 1)[1] if "/" in name else name


class MergeService:
    """Runs the merge, quick-commit and create-branch workflows.

    Args:
        executor: Runs git subcommands in the working copy
        settings: Source of the current ``MergeConfig``
        lock: Mutual-exclusion guard; defaults to the process-wide lock
        on_progress: Called with each ``GitOperationStatus`` and a 0..1 fraction
    """

    def __init__(
        self,
        executor: CommandExecutor,
        settings: SettingsStore,
        *,
        lock: OperationLock | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self.executor = executor
        self.settings = settings
        self.lock = lock or get_operation_lock()
        self.on_progress = on_progress
        self._worker: ThreadPoolExecutor | None = None

    def __enter__(self) -> MergeService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def shutdown(self, wait: bool = True) -> None:
        if self._worker is not None:
            self._worker.shutdown(wait=wait)
            self._worker = None

    # ── Public workflows ──────────────────────────────────────────

    def execute_auto_merge(
        self, target_branch: str, callback: ResultCallback | None = None
    ) -> Future[MergeResult]:
        """Merge the current feature branch into ``target_branch``."""
        return self._submit(
            "auto-merge",
            "A merge operation is already in progress, please try again later",
            lambda: self._perform_auto_merge(target_branch),
            callback,
        )

    def quick_commit_and_merge(
        self,
        commit_message: str,
        continue_with_merge: bool = False,
        target_branch: str | None = None,
        callback: ResultCallback | None = None,
    ) -> Future[MergeResult]:
        """Stage and commit everything, then optionally run the auto-merge."""
        return self._submit(
            "quick commit",
            "Another operation is already in progress, please try again later",
            lambda: self._perform_quick_commit(
                commit_message, continue_with_merge, target_branch
            ),
            callback,
        )

    def create_and_checkout_branch(
        self, branch_name: str, callback: ResultCallback | None = None
    ) -> Future[MergeResult]:
        """Create ``branch_name`` from HEAD and switch to it."""
        return self._submit(
            "create branch",
            "Another operation is already in progress, please try again later",
            lambda: self._perform_create_branch(branch_name, None),
            callback,
        )

    def create_and_checkout_branch_from_base(
        self,
        branch_name: str,
        base_branch: str,
        callback: ResultCallback | None = None,
    ) -> Future[MergeResult]:
        """Check out ``base_branch``, then create ``branch_name`` from it."""
        return self._submit(
            "create branch",
            "Another operation is already in progress, please try again later",
            lambda: self._perform_create_branch(branch_name, base_branch),
            callback,
        )

    def create_feature_branch(
        self,
        prefix: str,
        description: str,
        base_branch: str | None = None,
        callback: ResultCallback | None = None,
        today: date | None = None,
    ) -> Future[MergeResult]:
        """Create ``{prefix}/{yyyyMMdd}/{description}_{author}`` and switch to it."""
        return self._submit(
            "create feature branch",
            "Another operation is already in progress, please try again later",
            lambda: self._perform_create_feature_branch(
                prefix, description, base_branch, today
            ),
            callback,
        )

    def resolve_conflicts_and_continue(
        self,
        commit_message: str = DEFAULT_RESOLVE_MESSAGE,
        callback: ResultCallback | None = None,
    ) -> Future[MergeResult]:
        """Commit manually resolved conflicts so the workflow can be re-run."""
        return self._submit(
            "resolve conflicts",
            "Another operation is already in progress, please try again later",
            lambda: self._perform_resolve_conflicts(commit_message),
            callback,
        )

    # ── Read-only queries ─────────────────────────────────────────

    def get_current_branch(self) -> str | None:
        """Current branch name; empty on detached HEAD, None if git failed."""
        outcome = self.executor.run("branch", ["--show-current"])
        if not outcome.success:
            return None
        return outcome.first_line

    def get_all_branches(self) -> list[str]:
        """Local branches followed by remote-tracking ones (``origin/x``)."""
        outcome = self.executor.run("branch", ["-a"])
        if not outcome.success:
            return []
        return _parse_branch_lines(outcome.output_lines)

    def get_git_user_name(self) -> str | None:
        outcome = self.executor.run("config", ["user.name"])
        if not outcome.success:
            return None
        return outcome.first_line or None

    def check_conflicts(self) -> list[str]:
        outcome = self.executor.run("status", ["--porcelain"])
        if not outcome.success:
            return []
        return parse_conflict_files(outcome.output_lines)

    def get_git_status(self) -> BranchStatus | None:
        """Snapshot of the working copy, or None outside a repository."""
        current = self.get_current_branch()
        if current is None:
            return None

        config = self.settings.load()
        changes = self.executor.run("status", ["--porcelain"])
        short_status = self.executor.run("status", ["-sb"])
        remotes = self.executor.run("branch", ["-r"])

        return BranchStatus(
            current_branch=current or "unknown",
            is_feature_branch=config.is_feature_branch(current),
            has_uncommitted_changes=changes.success
            and has_tracked_changes(changes.output_lines),
            can_push=short_status.success
            and any("ahead" in line for line in short_status.output_lines),
            remote_connected=remotes.success
            and any(line.strip() for line in remotes.output_lines),
        )

    def build_feature_branch_name(
        self, prefix: str, description: str, today: date | None = None
    ) -> str:
        """Name a new branch with the configured or git author tag."""
        config = self.settings.load()
        author = resolve_author(config.custom_git_name, self.get_git_user_name())
        return generate_branch_name(prefix, description, author, today)

    # ── Worker plumbing ───────────────────────────────────────────

    def _get_worker(self) -> ThreadPoolExecutor:
        if self._worker is None:
            self._worker = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="git-merge-helper"
            )
        return self._worker

    def _submit(
        self,
        label: str,
        busy_message: str,
        work: Callable[[], MergeResult],
        callback: ResultCallback | None,
    ) -> Future[MergeResult]:
        if not self.lock.try_acquire():
            logger.info("Rejected %s: another operation holds the lock", label)
            future: Future[MergeResult] = Future()
            result = MergeResult.busy(busy_message)
            future.set_result(result)
            if callback:
                callback(result)
            return future

        def task() -> MergeResult:
            try:
                return self._run_workflow(label, work)
            finally:
                self.lock.release()

        try:
            future = self._get_worker().submit(task)
        except RuntimeError:
            self.lock.release()
            raise
        if callback:
            future.add_done_callback(lambda done: callback(done.result()))
        return future

    def _run_workflow(self, label: str, work: Callable[[], MergeResult]) -> MergeResult:
        logger.info("Starting %s", label)
        try:
            result = work()
        except Exception as exc:
            logger.exception("Unexpected error during %s", label)
            return MergeResult.failure(f"Error during {label}: {exc}")
        logger.info("Finished %s: %s", label, result.message)
        return result

    def _report(self, status: GitOperationStatus, fraction: float) -> None:
        if self.on_progress:
            self.on_progress(status, fraction)

    # ── Git primitives ────────────────────────────────────────────

    def _execute(self, command: str, args: Sequence[str] = ()) -> MergeResult:
        outcome = self.executor.run(command, args)
        if outcome.success:
            return MergeResult.ok("Command succeeded")
        return MergeResult.failure(f"Command failed: {outcome.error}")

    def _checkout(self, branch: str) -> MergeResult:
        return self._execute("checkout", [branch])

    def _push(self, branch: str) -> MergeResult:
        return self._execute("push", [DEFAULT_REMOTE, branch])

    def _list(self, args: Sequence[str]) -> CommandOutcome:
        return self.executor.run("branch", args)

    # ── Auto-merge steps ──────────────────────────────────────────

    def _perform_auto_merge(self, target_branch: str) -> MergeResult:
        self._report(GitOperationStatus.PREPARING, 0.0)
        config = self.settings.load()
        feature_branch = self.get_current_branch() or ""
        logger.info(
            "Auto-merge of '%s' into '%s' via '%s'",
            feature_branch,
            target_branch,
            config.main_branch,
        )

        steps: list[tuple[GitOperationStatus, float, Callable[[], MergeResult]]] = [
            (
                GitOperationStatus.CHECKING_ENVIRONMENT,
                0.1,
                lambda: self._check_environment(config, feature_branch),
            ),
            (
                GitOperationStatus.UPDATING_MAIN_BRANCH,
                0.2,
                lambda: self._update_main_branch(config.main_branch),
            ),
            (
                GitOperationStatus.MERGING_MAIN_TO_FEATURE,
                0.4,
                lambda: self._merge_into(config.main_branch, feature_branch),
            ),
            (
                GitOperationStatus.PUSHING_FEATURE_BRANCH,
                0.6,
                lambda: self._push(feature_branch),
            ),
            (
                GitOperationStatus.MERGING_FEATURE_TO_TARGET,
                0.8,
                lambda: self._merge_into(feature_branch, target_branch),
            ),
            (
                GitOperationStatus.PUSHING_TARGET_BRANCH,
                0.9,
                lambda: self._push(target_branch),
            ),
        ]

        for status, fraction, step in steps:
            self._report(status, fraction)
            result = step()
            if not result.success:
                logger.info("Auto-merge stopped at %s: %s", status.value, result.message)
                self._report(result.status, fraction)
                return result

        self._report(GitOperationStatus.CLEANING_UP, 1.0)
        cleanup = self._checkout(feature_branch)
        if not cleanup.success:
            logger.warning("Could not return to '%s': %s", feature_branch, cleanup.message)

        merged_branches = [
            BranchMergeInfo(config.main_branch, feature_branch, 0),
            BranchMergeInfo(feature_branch, target_branch, 0),
        ]
        self._report(GitOperationStatus.COMPLETED, 1.0)
        return MergeResult.ok(
            f"Auto-merge complete: merged feature branch '{feature_branch}' "
            f"into target branch '{target_branch}'",
            merged_branches,
        )

    def _check_environment(self, config: MergeConfig, current_branch: str) -> MergeResult:
        validation = config.validate()
        if not validation.is_valid:
            return MergeResult.failure(
                f"Invalid configuration: {', '.join(validation.errors)}",
                ErrorKind.CONFIGURATION_INVALID,
            )

        if not config.is_feature_branch(current_branch):
            return MergeResult.failure(
                f"Current branch '{current_branch}' is not a feature branch",
                ErrorKind.PRECONDITION_FAILED,
            )

        changes = self.executor.run("status", ["--porcelain"])
        if not changes.success:
            return MergeResult.failure(f"Command failed: {changes.error}")
        if has_tracked_changes(changes.output_lines):
            return MergeResult.failure(
                "There are uncommitted changes, commit or stash them first",
                ErrorKind.PRECONDITION_FAILED,
            )

        return MergeResult.ok("Environment check passed")

    def _update_main_branch(self, main_branch: str) -> MergeResult:
        checkout = self._checkout(main_branch)
        if not checkout.success:
            return checkout
        return self._execute("pull")

    def _merge_into(self, source: str, destination: str) -> MergeResult:
        """Check out ``destination`` and merge ``source`` into it.

        The working copy is rescanned after the merge whatever its exit
        status; unmerged paths turn the step into a conflict.
        """
        checkout = self._checkout(destination)
        if not checkout.success:
            return checkout

        merge = self._execute("merge", [source])
        conflicts = self.check_conflicts()
        if conflicts:
            return MergeResult.conflict(
                "Merge conflict, resolve it manually before continuing. "
                f"Conflict files: {', '.join(conflicts)}",
                conflicts,
            )
        return merge

    # ── Quick commit ──────────────────────────────────────────────

    def _perform_quick_commit(
        self,
        commit_message: str,
        continue_with_merge: bool,
        target_branch: str | None,
    ) -> MergeResult:
        if not validate_commit_message(commit_message):
            return MergeResult.failure(
                "Commit message must not be blank and must be at most 100 characters",
                ErrorKind.PRECONDITION_FAILED,
            )
        if (
            continue_with_merge
            and target_branch is not None
            and not validate_branch_name_strict(target_branch)
        ):
            return MergeResult.failure(
                f"Invalid target branch name: '{target_branch}'",
                ErrorKind.PRECONDITION_FAILED,
            )

        self._report(GitOperationStatus.PREPARING, 0.2)
        staged = self._execute("add", ["."])
        if not staged.success:
            return staged

        self._report(GitOperationStatus.PREPARING, 0.6)
        committed = self._execute("commit", ["-m", commit_message])
        if not committed.success:
            return committed

        if continue_with_merge and target_branch is not None:
            return self._perform_auto_merge(target_branch)

        self._report(GitOperationStatus.COMPLETED, 1.0)
        return MergeResult.ok("Quick commit complete")

    def _perform_resolve_conflicts(self, commit_message: str) -> MergeResult:
        staged = self._execute("add", ["."])
        if not staged.success:
            return staged
        committed = self._execute("commit", ["-m", commit_message])
        if not committed.success:
            return committed
        return MergeResult.ok(
            "Conflicts resolved and committed, the merge workflow can be run again"
        )

    # ── Branch creation ───────────────────────────────────────────

    def _perform_create_feature_branch(
        self,
        prefix: str,
        description: str,
        base_branch: str | None,
        today: date | None,
    ) -> MergeResult:
        description = description.strip()
        if not validate_description(description):
            return MergeResult.failure(
                f"Invalid description '{description}': use letters, digits, "
                "CJK characters, '_' or '-' only, without spaces",
                ErrorKind.PRECONDITION_FAILED,
            )
        branch_name = self.build_feature_branch_name(prefix, description, today)
        return self._perform_create_branch(branch_name, base_branch)

    def _perform_create_branch(self, branch_name: str, base_branch: str | None) -> MergeResult:
        if not validate_branch_name(branch_name):
            return MergeResult.failure(
                f"Invalid branch name: '{branch_name}'", ErrorKind.PRECONDITION_FAILED
            )

        local = self._list(["--list", branch_name])
        if not local.success:
            return MergeResult.failure(f"Command failed: {local.error}")
        if _parse_branch_lines(local.output_lines):
            return MergeResult.failure(
                f"Branch '{branch_name}' already exists locally",
                ErrorKind.PRECONDITION_FAILED,
            )

        remote = self._list(["-r"])
        if not remote.success:
            return MergeResult.failure(f"Command failed: {remote.error}")
        remote_names = [_without_remote(n) for n in _parse_branch_lines(remote.output_lines)]
        if branch_name in remote_names:
            return MergeResult.failure(
                f"Branch '{branch_name}' already exists on the remote",
                ErrorKind.PRECONDITION_FAILED,
            )

        if base_branch:
            known = self.get_all_branches()
            short_remote = {_without_remote(n) for n in _parse_branch_lines(remote.output_lines)}
            if base_branch not in known and base_branch not in short_remote:
                return MergeResult.failure(
                    f"Base branch '{base_branch}' does not exist",
                    ErrorKind.PRECONDITION_FAILED,
                )
            checkout = self._checkout(base_branch)
            if not checkout.success:
                return checkout

        created = self._execute("checkout", ["-b", branch_name])
        if not created.success:
            return created

        current = self.get_current_branch()
        if current != branch_name:
            return MergeResult.failure(
                f"Branch creation could not be verified: current branch is "
                f"'{current or 'unknown'}', expected '{branch_name}'"
            )

        if base_branch:
            return MergeResult.ok(
                f"Created branch '{branch_name}' from '{base_branch}' and switched to it"
            )
        return MergeResult.ok(f"Created branch '{branch_name}' and switched to it")

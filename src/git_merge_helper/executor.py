"""Command executor: the single primitive every workflow step goes through.

``GitCommandExecutor`` runs ``git <command> <args>`` in the working-copy root
and normalizes the outcome. There is no timeout and no retry; a failed
subcommand is reported once and the owning workflow stops.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

logger = logging.getLogger(__name__)

__all__ = [
    "CommandExecutor",
    "CommandOutcome",
    "GitCommandExecutor",
]

GIT_BINARY_ENV_VAR = "GIT_MERGE_HELPER_GIT"


@dataclass(frozen=True)
class CommandOutcome:
    """Normalized result of one git subcommand."""

    success: bool
    output_lines: list[str] = field(default_factory=list)
    error: str = ""

    @property
    def first_line(self) -> str:
        for line in self.output_lines:
            stripped = line.strip()
            if stripped:
                return stripped
        return ""


class CommandExecutor(Protocol):
    """Runs one git subcommand against a fixed working copy."""

    def run(self, command: str, args: Sequence[str] = ()) -> CommandOutcome: ...


def _join_error(stderr: str, returncode: int) -> str:
    text = "\n".join(line for line in stderr.splitlines() if line.strip())
    return text or f"exit status {returncode}"


class GitCommandExecutor:
    """Executes git subcommands with ``subprocess`` in ``repo_root``."""

    def __init__(self, repo_root: Path, git_binary: str | None = None):
        self.repo_root = Path(repo_root)
        self.git_binary = git_binary or os.environ.get(GIT_BINARY_ENV_VAR) or "git"

    def run(self, command: str, args: Sequence[str] = ()) -> CommandOutcome:
        cmd = [self.git_binary, command, *args]
        logger.debug("Running git command: %s", " ".join(cmd))
        try:
            completed = subprocess.run(
                cmd,
                cwd=str(self.repo_root),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as exc:
            logger.warning("git %s could not be executed: %s", command, exc)
            return CommandOutcome(success=False, error=str(exc))

        lines = (completed.stdout or "").splitlines()
        if completed.returncode != 0:
            error = _join_error(completed.stderr or "", completed.returncode)
            logger.warning("git %s failed: %s", command, error)
            return CommandOutcome(success=False, output_lines=lines, error=error)

        logger.debug("git %s succeeded", command)
        return CommandOutcome(success=True, output_lines=lines)

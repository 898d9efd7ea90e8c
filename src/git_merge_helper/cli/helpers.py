"""Shared plumbing for the CLI commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import typer
from rich.console import Console
from typing_extensions import Annotated

from ..errors import GitMergeHelperError
from ..executor import GitCommandExecutor
from ..models import GitOperationStatus
from ..paths import find_repo_root
from ..service import MergeService
from ..settings import SettingsStore, open_settings_store

console = Console()

RepoOption = Annotated[
    Optional[Path],
    typer.Option("--repo", help="Working copy to operate on (default: current directory)"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Machine-readable JSON output")]


def configure_logging(verbosity: int) -> None:
    """Configure the root logger from the ``-v`` count.

    0 -> WARNING, 1 -> INFO, 2+ -> DEBUG
    """
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
    )


def resolve_repo(repo: Path | None) -> Path:
    """Locate the working copy or exit with an error."""
    try:
        return find_repo_root(repo)
    except GitMergeHelperError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)


def settings_for(repo_root: Path | None) -> SettingsStore:
    return open_settings_store(repo_root)


def build_service(
    repo_root: Path,
    on_progress: Callable[[GitOperationStatus, float], None] | None = None,
) -> MergeService:
    """Wire a MergeService to real git in ``repo_root``."""
    return MergeService(
        GitCommandExecutor(repo_root),
        settings_for(repo_root),
        on_progress=on_progress,
    )


def output_error(json_mode: bool, error_message: str) -> None:
    """Output error in JSON or human-readable format."""
    if json_mode:
        print(json.dumps({"error": error_message}, ensure_ascii=False))
    else:
        console.print(f"[red]Error:[/red] {error_message}")


def output_json(data: dict[str, Any]) -> None:
    print(json.dumps(data, ensure_ascii=False))

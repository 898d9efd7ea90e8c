"""Merge workflow commands: ``status``, ``merge``, ``commit`` and ``resolve``."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.live import Live
from rich.table import Table
from typing_extensions import Annotated

from ...errors import GitMergeHelperError
from ...models import MergeResult
from ..helpers import (
    JsonOption,
    RepoOption,
    build_service,
    console,
    output_error,
    output_json,
    resolve_repo,
    settings_for,
)
from ..ui import (
    build_merge_tracker,
    exit_code_for,
    print_result,
    progress_to_tracker,
    select_with_arrows,
)


def _choose_target(repo_root: Path, json_output: bool) -> str:
    """Prompt for a configured target branch."""
    try:
        config = settings_for(repo_root).load()
    except GitMergeHelperError as exc:
        output_error(json_output, str(exc))
        raise typer.Exit(1)

    if json_output:
        output_error(json_output, "--target is required with --json")
        raise typer.Exit(1)
    if not config.target_branches:
        console.print(
            "[red]Error:[/red] No target branches configured. "
            "Add one with 'git-merge-helper config add-target <name>'."
        )
        raise typer.Exit(1)

    options = {t.name: t.description or t.name for t in config.target_branches}
    return select_with_arrows(options, "Select target branch", console=console)


def _finish(result: MergeResult, json_output: bool) -> None:
    print_result(console, result, json_output)
    raise typer.Exit(exit_code_for(result))


def status(
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show the current branch state and the effective configuration."""
    repo_root = resolve_repo(repo)
    try:
        config = settings_for(repo_root).load()
    except GitMergeHelperError as exc:
        output_error(json_output, str(exc))
        raise typer.Exit(1)

    with build_service(repo_root) as service:
        branch_status = service.get_git_status()
    validation = config.validate()

    if json_output:
        output_json(
            {
                "git": branch_status.to_dict() if branch_status else None,
                "config": config.to_dict(),
                "validation": {"is_valid": validation.is_valid, "errors": validation.errors},
            }
        )
        return

    table = Table(title="Git status", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    if branch_status is None:
        table.add_row("Repository", "[red]git status unavailable[/red]")
    else:
        table.add_row("Current branch", branch_status.current_branch)
        table.add_row("Feature branch", "yes" if branch_status.is_feature_branch else "no")
        table.add_row(
            "Uncommitted changes", "yes" if branch_status.has_uncommitted_changes else "no"
        )
        table.add_row("Ahead of remote", "yes" if branch_status.can_push else "no")
        table.add_row("Remote", branch_status.remote_status)
    console.print(table)

    console.print(f"\n[bold]Main branch:[/bold] {config.main_branch}")
    console.print("[bold]Target branches:[/bold]")
    for target in config.target_branches or []:
        console.print(f"  • {target.name} - {target.description}")
    if not config.target_branches:
        console.print("  [dim](none)[/dim]")
    console.print("[bold]Feature branch patterns:[/bold]")
    for pattern in config.feature_branch_patterns:
        console.print(f"  • {pattern}")
    if not config.feature_branch_patterns:
        console.print("  [dim](none)[/dim]")

    if validation.is_valid:
        console.print("\n[green]Configuration valid ✓[/green]")
    else:
        console.print("\n[red]Configuration invalid ✗[/red]")
        for error in validation.errors:
            console.print(f"  • {error}")


def merge(
    target: Annotated[
        Optional[str], typer.Option("--target", "-t", help="Target branch to merge into")
    ] = None,
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Update main, merge it into the feature branch, then merge into TARGET.

    Runs: checkout main, pull, checkout feature, merge main, push feature,
    checkout target, merge feature, push target, checkout feature.
    """
    repo_root = resolve_repo(repo)
    target_branch = target or _choose_target(repo_root, json_output)

    if json_output:
        with build_service(repo_root) as service:
            result = service.execute_auto_merge(target_branch).result()
        _finish(result, json_output)

    try:
        with build_service(repo_root) as probe:
            feature_branch = probe.get_current_branch() or "unknown"
            main_branch = probe.settings.load().main_branch
    except GitMergeHelperError as exc:
        output_error(json_output, str(exc))
        raise typer.Exit(1)

    tracker = build_merge_tracker(feature_branch, main_branch, target_branch)
    with Live(tracker.render(), console=console, refresh_per_second=8) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        with build_service(repo_root, on_progress=progress_to_tracker(tracker)) as service:
            result = service.execute_auto_merge(target_branch).result()

    console.print()
    _finish(result, json_output)


def commit(
    message: Annotated[str, typer.Option("--message", "-m", help="Commit message (max 100 chars)")],
    continue_with_merge: Annotated[
        bool, typer.Option("--merge", help="Run the auto-merge after committing")
    ] = False,
    target: Annotated[
        Optional[str], typer.Option("--target", "-t", help="Target branch for --merge")
    ] = None,
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Stage all changes and commit them, optionally followed by a merge."""
    repo_root = resolve_repo(repo)
    target_branch = target
    if continue_with_merge and target_branch is None:
        target_branch = _choose_target(repo_root, json_output)

    with build_service(repo_root) as service:
        result = service.quick_commit_and_merge(
            message, continue_with_merge, target_branch
        ).result()
    _finish(result, json_output)


def resolve(
    message: Annotated[
        str, typer.Option("--message", "-m", help="Commit message for the resolution")
    ] = "Resolve merge conflicts",
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Commit manually resolved conflicts so the merge can be run again."""
    repo_root = resolve_repo(repo)
    with build_service(repo_root) as service:
        result = service.resolve_conflicts_and_continue(message).result()
    _finish(result, json_output)

"""Terminal presentation helpers: step tree, arrow-key picker, result output."""

from __future__ import annotations

import json
from typing import Callable, Dict

import readchar
import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from ..models import GitOperationStatus, MergeResult

_SYMBOLS = {
    "done": "[green]●[/green]",
    "pending": "[green dim]○[/green dim]",
    "running": "[cyan]○[/cyan]",
    "error": "[red]●[/red]",
}

# Workflow states rendered as tracker steps, in execution order.
MERGE_STEPS: list[tuple[GitOperationStatus, str]] = [
    (GitOperationStatus.CHECKING_ENVIRONMENT, "Check environment"),
    (GitOperationStatus.UPDATING_MAIN_BRANCH, "Update main branch"),
    (GitOperationStatus.MERGING_MAIN_TO_FEATURE, "Merge main into feature"),
    (GitOperationStatus.PUSHING_FEATURE_BRANCH, "Push feature branch"),
    (GitOperationStatus.MERGING_FEATURE_TO_TARGET, "Merge feature into target"),
    (GitOperationStatus.PUSHING_TARGET_BRANCH, "Push target branch"),
    (GitOperationStatus.CLEANING_UP, "Return to feature branch"),
]

_TERMINAL_FAILURES = (GitOperationStatus.FAILED, GitOperationStatus.CONFLICT)


class StepTracker:
    """Track and render workflow steps as a Rich tree."""

    def __init__(self, title: str):
        self.title = title
        self.steps: list[dict[str, str]] = []
        self._refresh_cb: Callable[[], None] | None = None

    def attach_refresh(self, cb: Callable[[], None]) -> None:
        self._refresh_cb = cb

    def add(self, key: str, label: str) -> None:
        if key not in [s["key"] for s in self.steps]:
            self.steps.append({"key": key, "label": label, "status": "pending", "detail": ""})
            self._maybe_refresh()

    def start(self, key: str, detail: str = "") -> None:
        self._update(key, status="running", detail=detail)

    def complete(self, key: str, detail: str = "") -> None:
        self._update(key, status="done", detail=detail)

    def error(self, key: str, detail: str = "") -> None:
        self._update(key, status="error", detail=detail)

    def status_of(self, key: str) -> str | None:
        for step in self.steps:
            if step["key"] == key:
                return step["status"]
        return None

    def running_key(self) -> str | None:
        for step in self.steps:
            if step["status"] == "running":
                return step["key"]
        return None

    def _update(self, key: str, status: str, detail: str) -> None:
        for s in self.steps:
            if s["key"] == key:
                s["status"] = status
                if detail:
                    s["detail"] = detail
                self._maybe_refresh()
                return
        self.steps.append({"key": key, "label": key, "status": status, "detail": detail})
        self._maybe_refresh()

    def _maybe_refresh(self) -> None:
        if self._refresh_cb:
            self._refresh_cb()

    def render(self) -> Tree:
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self.steps:
            label = step["label"]
            detail_text = step["detail"].strip()
            status = step["status"]
            symbol = _SYMBOLS.get(status, " ")

            if status == "pending":
                text = f"{label} ({detail_text})" if detail_text else label
                line = f"{symbol} [bright_black]{text}[/bright_black]"
            elif detail_text:
                line = f"{symbol} [white]{label}[/white] [bright_black]({detail_text})[/bright_black]"
            else:
                line = f"{symbol} [white]{label}[/white]"

            tree.add(line)
        return tree


def build_merge_tracker(feature_branch: str, main_branch: str, target_branch: str) -> StepTracker:
    tracker = StepTracker(f"Auto-merge {feature_branch} → {target_branch}")
    for status, label in MERGE_STEPS:
        tracker.add(status.value, label)
    tracker.steps[1]["detail"] = main_branch
    tracker.steps[4]["detail"] = target_branch
    return tracker


def progress_to_tracker(
    tracker: StepTracker,
) -> Callable[[GitOperationStatus, float], None]:
    """Return an ``on_progress`` callback that advances ``tracker``."""
    known = {status.value for status, _ in MERGE_STEPS}

    def on_progress(status: GitOperationStatus, fraction: float) -> None:
        running = tracker.running_key()
        if status in _TERMINAL_FAILURES:
            if running:
                tracker.error(running, status.value)
            return
        if running and running != status.value:
            tracker.complete(running)
        if status.value in known:
            tracker.start(status.value)

    return on_progress


def get_key() -> str:
    """Get a single keypress in a cross-platform way using readchar."""
    key = readchar.readkey()

    if key in (readchar.key.UP, readchar.key.CTRL_P):
        return "up"
    if key in (readchar.key.DOWN, readchar.key.CTRL_N):
        return "down"
    if key == readchar.key.ENTER:
        return "enter"
    if key in (readchar.key.ESC, "\x1b"):
        return "escape"
    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt
    return key


def select_with_arrows(
    options: Dict[str, str],
    prompt_text: str = "Select an option",
    default_key: str | None = None,
    console: Console | None = None,
) -> str:
    """Pick one key of ``options`` (key -> description) with the arrow keys."""
    console = console or Console()
    option_keys = list(options.keys())
    selected_index = option_keys.index(default_key) if default_key in option_keys else 0

    def create_selection_panel() -> Panel:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="left", width=3)
        table.add_column(style="white", justify="left")

        for i, key in enumerate(option_keys):
            pointer = "▶" if i == selected_index else " "
            table.add_row(pointer, f"[cyan]{key}[/cyan] [dim]({options[key]})[/dim]")

        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/dim]")
        return Panel(
            table,
            title=f"[bold]{prompt_text}[/bold]",
            border_style="cyan",
            padding=(1, 2),
        )

    console.print()
    with Live(create_selection_panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            try:
                key = get_key()
            except KeyboardInterrupt:
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)

            if key == "up":
                selected_index = (selected_index - 1) % len(option_keys)
            elif key == "down":
                selected_index = (selected_index + 1) % len(option_keys)
            elif key == "enter":
                return option_keys[selected_index]
            elif key == "escape":
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)

            live.update(create_selection_panel(), refresh=True)


def print_result(
    console: Console, result: MergeResult, json_output: bool = False
) -> None:
    """Show a workflow result; conflicts get their own list and hint."""
    if json_output:
        print(json.dumps(result.to_dict(), ensure_ascii=False))
        return

    if result.success:
        console.print(f"[green]✓[/green] {result.message}")
        for info in result.merged_branches:
            console.print(f"  [dim]{info.from_branch} → {info.to_branch}[/dim]")
        return

    console.print(f"[red]Error:[/red] {result.message}")
    if result.has_conflicts:
        console.print("\n[yellow]Conflicting files:[/yellow]")
        for path in result.conflict_files:
            console.print(f"  • {path}")
        console.print(
            "\n[dim]Resolve the conflicts, then run "
            "'git-merge-helper resolve' and merge again.[/dim]"
        )


def exit_code_for(result: MergeResult) -> int:
    return 0 if result.success else 1


__all__ = [
    "MERGE_STEPS",
    "StepTracker",
    "build_merge_tracker",
    "exit_code_for",
    "get_key",
    "print_result",
    "progress_to_tracker",
    "select_with_arrows",
]
"""``git-merge-helper config`` commands.

Edits go to the effective store: ``git-merge-helper.yaml`` in the working
copy's git directory when it is enabled, the global file otherwise.
Outside a working copy only the global file is touched.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, NoReturn

import typer
from rich.table import Table
from typing_extensions import Annotated

from ...branch_naming import validate_branch_name
from ...config import MergeConfig
from ...errors import GitMergeHelperError, RepositoryNotFoundError
from ...paths import find_repo_root
from ...settings import (
    ProjectSettingsStore,
    YamlSettingsStore,
    add_feature_pattern,
    remove_feature_pattern,
)
from ..helpers import (
    JsonOption,
    RepoOption,
    console,
    output_error,
    output_json,
    resolve_repo,
    settings_for,
)

logger = logging.getLogger(__name__)

app = typer.Typer(name="config", help="Show and edit the merge configuration", no_args_is_help=True)


class ConfigEditError(GitMergeHelperError):
    """A requested edit does not apply to the current configuration."""


def _repo_or_none(repo: Path | None) -> Path | None:
    try:
        return find_repo_root(repo)
    except RepositoryNotFoundError:
        if repo is not None:
            raise
        logger.info("Not inside a working copy, editing the global configuration")
        return None


def _fail(json_output: bool, message: str) -> NoReturn:
    output_error(json_output, message)
    raise typer.Exit(1)


def _edit(
    repo: Path | None,
    json_output: bool,
    change: Callable[[MergeConfig], str],
) -> None:
    """Load, apply ``change``, save and report its message."""
    try:
        store = settings_for(_repo_or_none(repo))
        config = store.load()
        message = change(config)
        store.save(config)
    except GitMergeHelperError as exc:
        _fail(json_output, str(exc))

    if json_output:
        output_json({"message": message, "config": config.to_dict()})
    else:
        console.print(f"[green]✓[/green] {message}")


def _index_of(items: list[str], value: str, kind: str) -> int:
    try:
        return items.index(value)
    except ValueError:
        raise ConfigEditError(f"No {kind} named '{value}'") from None


def _load(repo: Path | None, json_output: bool) -> MergeConfig:
    try:
        return settings_for(_repo_or_none(repo)).load()
    except GitMergeHelperError as exc:
        _fail(json_output, str(exc))


@app.command("show")
def show_command(repo: RepoOption = None, json_output: JsonOption = False) -> None:
    """Print the effective configuration."""
    config = _load(repo, json_output)
    if json_output:
        output_json(config.to_dict())
        return

    console.print(f"[bold]Main branch:[/bold] {config.main_branch}")
    console.print(f"[bold]Author override:[/bold] {config.custom_git_name or '[dim](git user.name)[/dim]'}")

    targets = Table(title="Target branches")
    targets.add_column("Name", style="cyan")
    targets.add_column("Description")
    for target in config.target_branches:
        targets.add_row(target.name, target.description)
    console.print(targets)

    prefixes = Table(title="Branch prefixes")
    prefixes.add_column("Prefix", style="cyan")
    prefixes.add_column("Description")
    prefixes.add_column("Default", justify="center")
    for prefix in config.branch_prefixes:
        prefixes.add_row(prefix.prefix, prefix.description, "✓" if prefix.is_default else "")
    console.print(prefixes)

    console.print("[bold]Feature branch patterns:[/bold]")
    for pattern in config.feature_branch_patterns:
        console.print(f"  • {pattern}")


@app.command("validate")
def validate_command(repo: RepoOption = None, json_output: JsonOption = False) -> None:
    """Check the configuration and list every problem found."""
    result = _load(repo, json_output).validate()
    if json_output:
        output_json({"is_valid": result.is_valid, "errors": result.errors})
    elif result.is_valid:
        console.print("[green]Configuration valid ✓[/green]")
    else:
        console.print("[red]Configuration invalid ✗[/red]")
        for error in result.errors:
            console.print(f"  • {error}")
    raise typer.Exit(0 if result.is_valid else 1)


@app.command("reset")
def reset_command(
    project: Annotated[
        bool, typer.Option("--project", help="Re-copy the global settings into the project file")
    ] = False,
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Restore the default configuration."""
    try:
        global_store = YamlSettingsStore()
        if project:
            repo_root = resolve_repo(repo)
            ProjectSettingsStore(repo_root).init_from_global(global_store.load())
            message = "Project configuration reset from the global configuration"
        else:
            global_store.reset_to_default()
            message = "Global configuration reset to defaults"
    except GitMergeHelperError as exc:
        _fail(json_output, str(exc))

    if json_output:
        output_json({"message": message})
    else:
        console.print(f"[green]✓[/green] {message}")


@app.command("set-main")
def set_main_command(
    name: Annotated[str, typer.Argument(help="Main branch name")],
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Set the branch pulled and merged into feature branches."""

    def change(config: MergeConfig) -> str:
        if not name.strip() or not validate_branch_name(name):
            raise ConfigEditError(f"Invalid branch name: '{name}'")
        config.main_branch = name
        return f"Main branch set to '{name}'"

    _edit(repo, json_output, change)


@app.command("set-author")
def set_author_command(
    name: Annotated[str, typer.Argument(help="Author tag; empty to use git user.name")] = "",
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Override the author tag used in generated branch names."""

    def change(config: MergeConfig) -> str:
        config.custom_git_name = name.strip()
        if config.custom_git_name:
            return f"Author set to '{config.custom_git_name}'"
        return "Author override cleared"

    _edit(repo, json_output, change)


@app.command("add-target")
def add_target_command(
    name: Annotated[str, typer.Argument(help="Target branch name")],
    description: Annotated[str, typer.Option("--description", "-d")] = "",
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Add a branch the feature branch can be merged into."""

    def change(config: MergeConfig) -> str:
        if not validate_branch_name(name):
            raise ConfigEditError(f"Invalid branch name: '{name}'")
        if any(t.name == name for t in config.target_branches):
            raise ConfigEditError(f"Target branch '{name}' already exists")
        config.add_target_branch(name, description)
        return f"Added target branch '{name}'"

    _edit(repo, json_output, change)


@app.command("remove-target")
def remove_target_command(
    name: Annotated[str, typer.Argument(help="Target branch name")],
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Remove a target branch."""

    def change(config: MergeConfig) -> str:
        index = _index_of([t.name for t in config.target_branches], name, "target branch")
        config.remove_target_branch(index)
        return f"Removed target branch '{name}'"

    _edit(repo, json_output, change)


@app.command("add-pattern")
def add_pattern_command(
    pattern: Annotated[
        str,
        typer.Argument(
            help="Branch pattern: '*' matches any run of characters, everything else is literal"
        ),
    ],
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Add a feature branch pattern.

    Only ``*`` is a wildcard. ``.``, brackets and other regex characters match
    themselves, so ``release.1/*`` does not match ``releaseX1/a``.
    """
    try:
        added = add_feature_pattern(settings_for(_repo_or_none(repo)), pattern)
    except GitMergeHelperError as exc:
        _fail(json_output, str(exc))
    if not added:
        _fail(json_output, f"Pattern '{pattern}' is blank or already configured")

    if json_output:
        output_json({"message": f"Added pattern '{pattern}'"})
    else:
        console.print(f"[green]✓[/green] Added pattern '{pattern}'")


@app.command("remove-pattern")
def remove_pattern_command(
    pattern: Annotated[str, typer.Argument(help="Pattern to remove")],
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Remove a feature branch pattern."""
    try:
        removed = remove_feature_pattern(settings_for(_repo_or_none(repo)), pattern)
    except GitMergeHelperError as exc:
        _fail(json_output, str(exc))
    if not removed:
        _fail(json_output, f"No pattern '{pattern}' configured")

    if json_output:
        output_json({"message": f"Removed pattern '{pattern}'"})
    else:
        console.print(f"[green]✓[/green] Removed pattern '{pattern}'")


@app.command("add-prefix")
def add_prefix_command(
    prefix: Annotated[str, typer.Argument(help="Branch prefix, e.g. feature")],
    description: Annotated[str, typer.Option("--description", "-d")] = "",
    default: Annotated[bool, typer.Option("--default", help="Make it the default prefix")] = False,
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Add a branch prefix offered when creating feature branches."""

    def change(config: MergeConfig) -> str:
        if not prefix.strip() or not validate_branch_name(prefix):
            raise ConfigEditError(f"Invalid prefix: '{prefix}'")
        if config.find_branch_prefix(prefix) is not None:
            raise ConfigEditError(f"Prefix '{prefix}' already exists")
        config.add_branch_prefix(prefix, description, default)
        return f"Added prefix '{prefix}'" + (" (default)" if default else "")

    _edit(repo, json_output, change)


@app.command("remove-prefix")
def remove_prefix_command(
    prefix: Annotated[str, typer.Argument(help="Prefix to remove")],
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Remove a branch prefix."""

    def change(config: MergeConfig) -> str:
        index = _index_of([p.prefix for p in config.branch_prefixes], prefix, "prefix")
        config.remove_branch_prefix(index)
        return f"Removed prefix '{prefix}'"

    _edit(repo, json_output, change)


@app.command("set-default-prefix")
def set_default_prefix_command(
    prefix: Annotated[str, typer.Argument(help="Prefix to make the default")],
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Mark one prefix as the default."""

    def change(config: MergeConfig) -> str:
        index = _index_of([p.prefix for p in config.branch_prefixes], prefix, "prefix")
        config.set_default_prefix(index)
        return f"Default prefix set to '{prefix}'"

    _edit(repo, json_output, change)


@app.command("project-init")
def project_init_command(repo: RepoOption = None, json_output: JsonOption = False) -> None:
    """Enable per-project settings, seeded from the global configuration."""
    repo_root = resolve_repo(repo)
    try:
        store = ProjectSettingsStore(repo_root)
        settings = store.init_from_global(YamlSettingsStore().load())
    except GitMergeHelperError as exc:
        _fail(json_output, str(exc))

    if json_output:
        output_json({"path": str(store.path), "settings": settings.to_dict()})
    else:
        console.print(f"[green]✓[/green] Project configuration enabled in {store.path}")


@app.command("project-clear")
def project_clear_command(repo: RepoOption = None, json_output: JsonOption = False) -> None:
    """Disable per-project settings and fall back to the global file."""
    repo_root = resolve_repo(repo)
    try:
        store = ProjectSettingsStore(repo_root)
        store.clear()
    except GitMergeHelperError as exc:
        _fail(json_output, str(exc))

    if json_output:
        output_json({"path": str(store.path), "use_project_config": False})
    else:
        console.print("[green]✓[/green] Project configuration disabled")

"""``git-merge-helper branch`` commands: create and list branches."""

from __future__ import annotations

from datetime import date
from typing import Optional

import typer
from typing_extensions import Annotated

from ...branch_naming import validate_description
from ...errors import GitMergeHelperError
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
from ..ui import exit_code_for, print_result

app = typer.Typer(name="branch", help="Create and list branches", no_args_is_help=True)

BaseOption = Annotated[
    Optional[str],
    typer.Option("--base", "-b", help="Branch to start from (default: current HEAD)"),
]


@app.command("create")
def create_command(
    description: Annotated[
        str, typer.Option("--description", "-d", help="Short description (letters, digits, _ and -)")
    ],
    prefix: Annotated[
        Optional[str], typer.Option("--prefix", "-p", help="Branch prefix (default: configured default)")
    ] = None,
    base: BaseOption = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt")] = False,
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Create a feature branch named ``prefix/yyyyMMdd/description_author``."""
    repo_root = resolve_repo(repo)

    if not validate_description(description):
        output_error(
            json_output,
            f"Invalid description '{description}': use letters, digits, "
            "CJK characters, '_' or '-' only, without spaces",
        )
        raise typer.Exit(1)

    if prefix is None:
        try:
            default_prefix = settings_for(repo_root).load().get_default_branch_prefix()
        except GitMergeHelperError as exc:
            output_error(json_output, str(exc))
            raise typer.Exit(1)
        if default_prefix is None:
            output_error(json_output, "No branch prefix configured")
            raise typer.Exit(1)
        prefix = default_prefix.prefix

    today = date.today()
    with build_service(repo_root) as service:
        branch_name = service.build_feature_branch_name(prefix, description, today)
        if not json_output and not yes:
            console.print(f"Branch to create: [cyan]{branch_name}[/cyan]")
            if base:
                console.print(f"Based on: [cyan]{base}[/cyan]")
            if not typer.confirm("Create this branch?", default=True):
                console.print("[yellow]Cancelled[/yellow]")
                raise typer.Exit(1)
        result = service.create_feature_branch(prefix, description, base, today=today).result()

    print_result(console, result, json_output)
    raise typer.Exit(exit_code_for(result))


@app.command("new")
def new_command(
    name: Annotated[str, typer.Argument(help="Full branch name")],
    base: BaseOption = None,
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """Create and switch to NAME, optionally starting from --base."""
    repo_root = resolve_repo(repo)
    with build_service(repo_root) as service:
        if base:
            future = service.create_and_checkout_branch_from_base(name, base)
        else:
            future = service.create_and_checkout_branch(name)
        result = future.result()

    print_result(console, result, json_output)
    raise typer.Exit(exit_code_for(result))


@app.command("list")
def list_command(
    repo: RepoOption = None,
    json_output: JsonOption = False,
) -> None:
    """List local and remote-tracking branches."""
    repo_root = resolve_repo(repo)
    with build_service(repo_root) as service:
        current = service.get_current_branch()
        branches = service.get_all_branches()

    if json_output:
        output_json({"current": current, "branches": branches})
        return

    for branch in branches:
        if branch == current:
            console.print(f"[green]* {branch}[/green]")
        else:
            console.print(f"  {branch}")

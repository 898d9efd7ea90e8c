"""Entry point for the ``git-merge-helper`` command."""

from __future__ import annotations

import typer
from typing_extensions import Annotated

from .. import __version__
from .commands import register_commands
from .helpers import configure_logging

app = typer.Typer(
    name="git-merge-helper",
    help="Update main, merge it into your feature branch, push, and merge into a target branch",
    add_completion=False,
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"git-merge-helper {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    verbose: Annotated[
        int, typer.Option("--verbose", "-v", count=True, help="Increase log output (-v, -vv)")
    ] = 0,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version"),
    ] = False,
) -> None:
    configure_logging(verbose)


register_commands(app)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

"""Command modules registered on the ``git-merge-helper`` app."""

from . import branch, config_cmd
from .workflow import commit, merge, resolve, status


def register_commands(app) -> None:
    """Attach every command and sub-app to ``app``."""
    app.command()(status)
    app.command()(merge)
    app.command()(commit)
    app.command()(resolve)
    app.add_typer(branch.app, name="branch")
    app.add_typer(config_cmd.app, name="config")


__all__ = ["register_commands"]

from __future__ import annotations

import os
from pathlib import Path

import typer

from forkctl import __version__
from forkctl.cli.commands.installer import installer_app
from forkctl.cli.commands.release import release_app
from forkctl.cli.commands.sync import sync
from forkctl.core.errors import ErrorCode
from forkctl.core.root import ROOT_ENV_VAR, is_repo_root

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Commands
app.command()(sync)

# Sub-apps
app.add_typer(release_app, name="release", help="Upstream releases.")
app.add_typer(installer_app, name="installer", help="Windows installer builder.")


def _print_version(value: bool) -> None:
    # Eager, so it runs before Click insists on a subcommand.
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_print_version,
        is_eager=True,
    ),
    root: Path | None = typer.Option(
        None,
        "--root",
        help="Fork checkout root (overrides auto detection)",
    ),
) -> None:
    del version
    if root is not None:
        try:
            resolved = root.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --root: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not resolved.is_dir() or not is_repo_root(resolved):
            typer.echo(
                f"error: --root '{resolved}' is not a repository (no forkctl.toml or .git)",
                err=True,
            )
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[ROOT_ENV_VAR] = str(resolved)


def main() -> None:
    app()

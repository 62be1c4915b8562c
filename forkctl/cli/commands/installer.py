from __future__ import annotations

from pathlib import Path

import typer

from forkctl.cli.commands._helpers import exit_with_code
from forkctl.cli.context import build_context
from forkctl.core.result import Err
from forkctl.installer.service import InstallerService
from forkctl.output.errors import installer_error_exit_code, print_installer_error

installer_app = typer.Typer(add_completion=False, no_args_is_help=True)


@installer_app.command("check")
def check_cmd(
    skip_build: bool = typer.Option(False, "--skip-build", help="Do not require cargo"),
) -> None:
    """Verify cargo and the Inno Setup compiler are available."""
    ctx = build_context()
    result = InstallerService(root=ctx.root, config=ctx.config, console=ctx.console).check(
        skip_build=skip_build
    )
    if isinstance(result, Err):
        print_installer_error(result.error, ctx.console)
        exit_with_code(installer_error_exit_code(result.error))
    ctx.console.success("prerequisites ok")


@installer_app.command("version")
def version_cmd() -> None:
    """Print the package version from its Cargo manifest."""
    ctx = build_context()
    result = InstallerService(root=ctx.root, config=ctx.config, console=ctx.console).version()
    if isinstance(result, Err):
        print_installer_error(result.error, ctx.console)
        exit_with_code(installer_error_exit_code(result.error))
    ctx.console.print(result.value)


@installer_app.command("build")
def build_cmd(
    skip_build: bool = typer.Option(
        False, "--skip-build", help="Reuse an existing target/release binary"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print commands without running them"),
    publish: bool = typer.Option(False, "--publish", help="Publish to the dated release"),
) -> None:
    """Build the release binary and its Windows installer."""
    ctx = build_context()
    service = InstallerService(root=ctx.root, config=ctx.config, console=ctx.console)

    result = service.build(skip_build=skip_build, dry_run=dry_run)
    if isinstance(result, Err):
        print_installer_error(result.error, ctx.console)
        exit_with_code(installer_error_exit_code(result.error))

    if publish:
        published = service.publish(installer=result.value.installer_path, dry_run=dry_run)
        if isinstance(published, Err):
            print_installer_error(published.error, ctx.console)
            exit_with_code(installer_error_exit_code(published.error))


@installer_app.command("publish")
def publish_cmd(
    tag: str | None = typer.Option(None, "--tag", help="Release tag (default: daily-YYYY-MM-DD)"),
    installer: Path | None = typer.Option(
        None, "--installer", help="Installer to upload (default: from config)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print commands without running them"),
) -> None:
    """Publish an already built installer."""
    ctx = build_context()
    service = InstallerService(root=ctx.root, config=ctx.config, console=ctx.console)

    asset = (ctx.root / installer) if installer is not None else None
    result = service.publish(installer=asset, tag=tag, dry_run=dry_run)
    if isinstance(result, Err):
        print_installer_error(result.error, ctx.console)
        exit_with_code(installer_error_exit_code(result.error))

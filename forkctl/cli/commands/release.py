from __future__ import annotations

import typer

from forkctl.cli.commands._helpers import exit_with_code
from forkctl.cli.context import build_context, http_client
from forkctl.core.result import Err
from forkctl.output.console import Style
from forkctl.output.errors import print_sync_error, sync_error_exit_code
from forkctl.sync.service import UpstreamSyncService

release_app = typer.Typer(add_completion=False, no_args_is_help=True)


@release_app.command("latest")
def latest_cmd() -> None:
    """Print the upstream's latest release tag (nothing if it has none)."""
    ctx = build_context()
    service = UpstreamSyncService(
        root=ctx.root,
        config=ctx.config,
        console=ctx.console,
        http=http_client(),
    )

    result = service.latest()
    if isinstance(result, Err):
        print_sync_error(result.error, ctx.console)
        exit_with_code(sync_error_exit_code(result.error))

    release = result.value
    if release is None:
        ctx.console.info(f"{ctx.config.upstream.repo} has no release")
        return

    ctx.console.print(release.tag)
    if release.html_url:
        ctx.console.print(release.html_url, Style.DIM)

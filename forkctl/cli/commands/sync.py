from __future__ import annotations

import typer

from forkctl.cli.commands._helpers import exit_with_code
from forkctl.cli.context import build_context, http_client
from forkctl.core.result import Err
from forkctl.output.console import Style
from forkctl.output.errors import print_sync_error, sync_error_exit_code
from forkctl.sync.service import UpstreamSyncService


def sync(
    dry_run: bool = typer.Option(False, "--dry-run", help="Query and print the plan only"),
) -> None:
    """Merge the upstream's default branch into the fork when it has a release."""
    ctx = build_context()
    service = UpstreamSyncService(
        root=ctx.root,
        config=ctx.config,
        console=ctx.console,
        http=http_client(),
    )

    result = service.run(dry_run=dry_run)
    if isinstance(result, Err):
        print_sync_error(result.error, ctx.console)
        exit_with_code(sync_error_exit_code(result.error))

    report = result.value
    for resolution in report.resolved:
        ctx.console.print(f"{resolution.action}: {resolution.path}", Style.DIM)

    match report.status:
        case "merged" if report.release is not None:
            pushed = "pushed" if report.pushed else "not pushed"
            ctx.console.success(f"synced {report.release.tag} ({pushed})")
        case "up_to_date":
            ctx.console.success("fork already contains upstream")
        case "dry_run":
            ctx.console.info("dry run: repository untouched")
        case _:
            pass

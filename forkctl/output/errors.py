"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent CI logs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from forkctl.core.config import ConfigError
from forkctl.core.errors import ErrorCode
from forkctl.core.root import RootError
from forkctl.installer.errors import (
    CompileFailed,
    InstallerError,
    ManifestInvalid,
    OutputMissing,
    PublishFailed,
    ScriptCompileFailed,
    ToolMissing,
    VersionNotFound,
)
from forkctl.output.console import Style
from forkctl.sync.errors import SyncError

if TYPE_CHECKING:
    from forkctl.output.console import ConsoleProtocol

__all__ = [
    "installer_error_exit_code",
    "print_config_error",
    "print_installer_error",
    "print_root_error",
    "print_sync_error",
    "sync_error_exit_code",
]


def _hint(console: ConsoleProtocol, hint: str | None) -> None:
    if not hint:
        return
    lines = hint.splitlines()
    console.print(f"hint: {lines[0]}", Style.DIM)
    for line in lines[1:]:
        console.print(f"      {line}", Style.DIM)


def print_sync_error(error: SyncError, console: ConsoleProtocol) -> None:
    console.error(error.message)
    _hint(console, error.hint)


def sync_error_exit_code(error: SyncError) -> int:
    match error.kind:
        case "not_a_repo":
            return int(ErrorCode.ENV_ERROR)
        case "release_query_failed" | "push_rejected":
            return int(ErrorCode.NETWORK_ERROR)
        case (
            "dirty_worktree"
            | "git_failed"
            | "merge_failed"
            | "merge_conflict"
            | "workflow_drift"
        ):
            return int(ErrorCode.GIT_ERROR)
    return int(ErrorCode.GIT_ERROR)


def print_installer_error(error: InstallerError, console: ConsoleProtocol) -> None:
    """Print installer error to console with appropriate formatting."""
    match error:
        case ToolMissing(tool_id=tool_id, hint=hint):
            console.error(f"{tool_id}: missing")
            _hint(console, hint)
        case ManifestInvalid(path=path, reason=reason):
            console.error(f"invalid manifest: {path} ({reason})")
        case VersionNotFound(path=path, package=package):
            console.error(f"no version for package {package!r} in {path}")
        case CompileFailed(returncode=rc):
            console.error(f"cargo build failed (exit {rc})")
        case ScriptCompileFailed(returncode=rc):
            console.error(f"Inno Setup compilation failed (exit {rc})")
        case OutputMissing(path=path):
            console.error(f"output not found: {path}")
        case PublishFailed(message=message, hint=hint):
            console.error(message)
            _hint(console, hint)


def installer_error_exit_code(error: InstallerError) -> int:
    """Get exit code for an installer error."""
    match error:
        case ToolMissing():
            return int(ErrorCode.ENV_ERROR)
        case CompileFailed() | ScriptCompileFailed():
            return int(ErrorCode.BUILD_ERROR)
        case ManifestInvalid() | VersionNotFound() | OutputMissing():
            return int(ErrorCode.IO_ERROR)
        case PublishFailed():
            return int(ErrorCode.NETWORK_ERROR)
    return int(ErrorCode.BUILD_ERROR)


def print_config_error(error: ConfigError, console: ConsoleProtocol) -> None:
    console.error(error.message)


def print_root_error(error: RootError, console: ConsoleProtocol) -> None:
    console.error(error.message)
    _hint(console, "Run inside the fork's checkout, or pass --root / set FORKCTL_ROOT.")

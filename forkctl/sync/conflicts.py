"""Per-path conflict rules.

Only paths listed in ``[conflicts] prefer_upstream`` are resolved
automatically: upstream's version wins if upstream still has the file,
otherwise the file is removed. This is deliberately not a general strategy;
any other conflicted path is left for the caller to report.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from forkctl.core.result import Err, Ok, Result
from forkctl.git.repository import GitError
from forkctl.output.console import Style
from forkctl.sync.model import Resolution

if TYPE_CHECKING:
    from forkctl.git.repository import Repository
    from forkctl.output.console import ConsoleProtocol


def resolve_prefer_upstream(
    repo: Repository,
    *,
    paths: Sequence[str],
    upstream_ref: str,
    console: ConsoleProtocol,
) -> Result[tuple[Resolution, ...], GitError]:
    """Resolve the configured paths that are currently unmerged.

    Paths that merged cleanly are left alone.
    """
    unmerged = repo.unmerged_paths()
    if isinstance(unmerged, Err):
        return unmerged

    conflicted = set(unmerged.value)
    resolved: list[Resolution] = []
    for path in paths:
        if path not in conflicted:
            continue

        if repo.object_exists(upstream_ref, path):
            console.command(["git", "checkout", "--theirs", "--", path])
            result = repo.checkout_theirs(path)
            action = "took_upstream"
        else:
            console.command(["git", "rm", "--", path])
            result = repo.remove([path])
            action = "removed"

        if isinstance(result, Err):
            return result

        console.print(f"resolved {path} ({action.replace('_', ' ')})", Style.DIM)
        resolved.append(Resolution(path=path, action=action))

    return Ok(tuple(resolved))

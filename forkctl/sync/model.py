from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from forkctl.github.releases import ReleaseInfo

# Commit trailer recording which upstream release a sync commit brought in.
RELEASE_TRAILER = "Upstream-Release"

SyncStatus = Literal["no_release", "already_synced", "up_to_date", "merged", "dry_run"]


@dataclass(frozen=True, slots=True)
class Resolution:
    """How a conflicted path was settled."""

    path: str
    action: Literal["took_upstream", "removed"]


@dataclass(frozen=True, slots=True)
class SyncReport:
    """Outcome of one sync run.

    Attributes:
        status: What the run ended up doing.
        release: The upstream release that triggered the run, if any.
        base_sha: Fork HEAD before the merge.
        commit_sha: Sync commit created by this run, if any.
        pushed: Whether the fork branch was pushed.
        resolved: Conflicts settled by the prefer-upstream rules.
        discarded_workflows: Upstream workflow files kept out of the fork.
    """

    status: SyncStatus
    release: ReleaseInfo | None = None
    base_sha: str | None = None
    commit_sha: str | None = None
    pushed: bool = False
    resolved: tuple[Resolution, ...] = ()
    discarded_workflows: tuple[str, ...] = ()


def release_trailer(tag: str) -> str:
    return f"{RELEASE_TRAILER}: {tag}"


def commit_message(subject: str, tag: str) -> str:
    """Sync commit message: fixed subject plus the release trailer."""
    return f"{subject}\n\n{release_trailer(tag)}\n"

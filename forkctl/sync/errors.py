from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

SyncErrorKind = Literal[
    "not_a_repo",
    "dirty_worktree",
    "release_query_failed",
    "git_failed",
    "merge_failed",
    "merge_conflict",
    "workflow_drift",
    "push_rejected",
]


@dataclass(frozen=True, slots=True)
class SyncError:
    kind: SyncErrorKind
    message: str
    hint: str | None = None

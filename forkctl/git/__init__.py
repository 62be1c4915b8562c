"""Git operations.

Usage:
    from forkctl.git import Repository

    repo = Repository(Path("/path/to/fork"))
    if not repo.is_clean():
        ...
"""

from forkctl.git.repository import (
    GitError,
    GitStatus,
    MergeOutcome,
    Repository,
    StatusEntry,
)

__all__ = [
    "GitError",
    "GitStatus",
    "MergeOutcome",
    "Repository",
    "StatusEntry",
]

"""Keep the fork's workflow definitions out of upstream merges.

The fork runs its own CI; upstream's workflows would either fail without
upstream's secrets or, worse, run with the fork's. A snapshot of the
workflow directory is taken before the merge, the directory is put back
afterwards, and the result is checked against the snapshot.

Two policies:
    unstage_restore: the directory ends byte-identical to the snapshot and
        nothing under it is staged. Upstream-added files are deleted.
    restore: files that existed before are put back; files upstream added
        stay staged and are committed with the merge.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from forkctl.core.config import WorkflowPolicy
from forkctl.core.result import Err, Ok, Result
from forkctl.git.repository import GitError

if TYPE_CHECKING:
    from forkctl.git.repository import Repository
    from forkctl.output.console import ConsoleProtocol

__all__ = [
    "WorkflowSnapshot",
    "preserve_workflows",
    "verify_workflows",
]


@dataclass(frozen=True, slots=True)
class WorkflowSnapshot:
    """Workflow directory contents before a merge.

    Attributes:
        path: Directory relative to the repository root (posix form).
        base: Commit the tracked files are restored from.
        tracked: Files under ``path`` tracked in ``base``.
        files: Every file on disk under ``path`` mapped to its bytes
            (tracked or not, so ignored extras are also accounted for).
    """

    path: str
    base: str
    tracked: tuple[str, ...]
    files: dict[str, bytes]

    @classmethod
    def take(cls, repo: Repository, path: str, base: str) -> Result[WorkflowSnapshot, GitError]:
        tracked = repo.ls_tree(base, path)
        if isinstance(tracked, Err):
            return tracked
        files = _read_tree(repo.path, path)
        return Ok(cls(path=path, base=base, tracked=tracked.value, files=files))


def preserve_workflows(
    repo: Repository,
    snapshot: WorkflowSnapshot,
    *,
    policy: WorkflowPolicy,
    console: ConsoleProtocol,
) -> Result[tuple[str, ...], GitError]:
    """Undo the merge's effect on the workflow directory.

    Returns the upstream workflow files that were kept out of the fork
    (always empty under the ``restore`` policy).
    """
    if policy == "restore":
        if snapshot.tracked:
            console.command(["git", "checkout", snapshot.base, "--", *snapshot.tracked])
            result = repo.restore_from(snapshot.base, snapshot.tracked)
            if isinstance(result, Err):
                return result
        return Ok(())

    console.command(["git", "rm", "-r", "--cached", "--ignore-unmatch", "--", snapshot.path])
    unstaged = repo.remove([snapshot.path], cached=True, recursive=True, ignore_unmatch=True)
    if isinstance(unstaged, Err):
        return unstaged

    if snapshot.tracked:
        console.command(["git", "checkout", snapshot.base, "--", *snapshot.tracked])
        restored = repo.restore_from(snapshot.base, snapshot.tracked)
        if isinstance(restored, Err):
            return restored

    discarded: list[str] = []
    current = _read_tree(repo.path, snapshot.path)
    for rel, content in current.items():
        if rel not in snapshot.files:
            (repo.path / rel).unlink()
            discarded.append(rel)
        elif content != snapshot.files[rel]:
            # Untracked file the merge wrote over (upstream added the same path).
            (repo.path / rel).write_bytes(snapshot.files[rel])
    for rel, content in snapshot.files.items():
        if rel not in current:
            target = repo.path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

    _prune_empty_dirs(repo.path / snapshot.path)
    return Ok(tuple(sorted(discarded)))


def verify_workflows(
    repo: Repository,
    snapshot: WorkflowSnapshot,
    *,
    policy: WorkflowPolicy,
) -> Result[tuple[str, ...], GitError]:
    """Paths under the workflow directory that differ from the snapshot.

    An empty tuple means the post-condition of ``policy`` holds.
    """
    staged = repo.staged_paths(snapshot.path)
    if isinstance(staged, Err):
        return staged

    current = _read_tree(repo.path, snapshot.path)
    drift: set[str] = set()

    if policy == "restore":
        for rel in snapshot.tracked:
            if current.get(rel) != snapshot.files.get(rel):
                drift.add(rel)
        # Only files that did not exist before may be staged.
        drift.update(p for p in staged.value if p in snapshot.tracked)
    else:
        for rel in current.keys() | snapshot.files.keys():
            if current.get(rel) != snapshot.files.get(rel):
                drift.add(rel)
        drift.update(staged.value)

    return Ok(tuple(sorted(drift)))


def _read_tree(root: Path, path: str) -> dict[str, bytes]:
    base = root / path
    if not base.is_dir():
        return {}
    files: dict[str, bytes] = {}
    for entry in sorted(base.rglob("*")):
        if entry.is_file():
            files[entry.relative_to(root).as_posix()] = entry.read_bytes()
    return files


def _prune_empty_dirs(base: Path) -> None:
    if not base.is_dir():
        return
    # Deepest first so parents empty out before they are checked.
    for entry in sorted(base.rglob("*"), key=lambda p: len(p.parts), reverse=True):
        if entry.is_dir() and not any(entry.iterdir()):
            entry.rmdir()

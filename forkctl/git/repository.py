"""Git repository abstraction.

This module provides the Repository class wrapping the git CLI for the
operations the upstream sync needs. Fallible operations return Result
types; predicates (``is_clean``, ``merge_in_progress``...) return plain
booleans and treat a git failure as "no".

Usage:
    repo = Repository(Path("/path/to/fork"))

    match repo.merge("upstream/main", no_commit=True, no_ff=True):
        case Ok(outcome) if outcome.conflicted:
            print(repo.unmerged_paths())
        case Ok(_):
            print("merged cleanly")
        case Err(e):
            print(f"merge failed: {e.message}")
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from forkctl.core.result import Err, Ok, Result
from forkctl.platform.process import ProcessError
from forkctl.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_WORKTREE_TIMEOUT_SECONDS = 5 * 60.0
_GIT_NETWORK_TIMEOUT_SECONDS = 15 * 60.0

_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "clone"})
_WORKTREE_COMMANDS = frozenset({"merge", "checkout", "commit", "rm", "add"})

__all__ = [
    "GitError",
    "GitStatus",
    "MergeOutcome",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed (e.g. "merge upstream/main")
        message: Error message (git's stderr when available)
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry in ``git status --porcelain``.

    Attributes:
        xy: Two-character status code (e.g. "M ", " M", "??", "UU")
        path: File path
    """

    xy: str
    path: str

    @property
    def is_staged(self) -> bool:
        return self.xy != "??" and self.xy[0] != " "

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"

    @property
    def is_unmerged(self) -> bool:
        return "U" in self.xy or self.xy in ("AA", "DD")


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed ``git status --porcelain=v1 -b``."""

    branch: str
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return len(self.entries) == 0

    @property
    def paths(self) -> list[str]:
        return [e.path for e in self.entries]


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    """What a ``git merge`` left behind.

    Attributes:
        conflicted: Merge stopped with unmerged paths.
        up_to_date: Nothing to merge; no merge is in progress.
        output: git's stdout, for display.
    """

    conflicted: bool
    up_to_date: bool
    output: str = ""


class Repository:
    """A git working tree.

    Attributes:
        path: Path to the working tree root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a git working tree (``.git`` dir or file)."""
        return (self.path / ".git").exists()

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def status(self) -> Result[GitStatus, GitError]:
        """Get repository status via ``git status --porcelain=v1 -b``."""
        result = self._git(["status", "--porcelain=v1", "-b"])
        if isinstance(result, Err):
            return result
        return Ok(self._parse_status(result.value))

    def is_clean(self) -> bool:
        """True when no tracked file differs from HEAD. False if status fails.

        Untracked files (build output, tool lockfiles) do not count.
        """
        result = self._run(["status", "--porcelain", "--untracked-files=no"])
        match result:
            case Ok(stdout):
                return stdout.strip() == ""
            case Err(_):
                return False

    def current_branch(self) -> str | None:
        """Get current branch name. None if detached HEAD or error."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def rev_parse(self, ref: str) -> Result[str, GitError]:
        """Resolve ``ref`` to a full commit SHA."""
        result = self._git(["rev-parse", "--verify", f"{ref}^{{commit}}"])
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    def head_sha(self) -> Result[str, GitError]:
        return self.rev_parse("HEAD")

    def ref_exists(self, ref: str) -> bool:
        return isinstance(self._run(["rev-parse", "-q", "--verify", ref]), Ok)

    def merge_in_progress(self) -> bool:
        """True while a merge is stopped (conflicts or ``--no-commit``)."""
        return self.ref_exists("MERGE_HEAD")

    def object_exists(self, ref: str, path: str) -> bool:
        """True if ``path`` exists in the tree of ``ref``."""
        return isinstance(self._run(["cat-file", "-e", f"{ref}:{path}"]), Ok)

    def ls_tree(self, ref: str, path: str) -> Result[tuple[str, ...], GitError]:
        """Files tracked under ``path`` in commit ``ref`` (recursive)."""
        result = self._git(["ls-tree", "-r", "-z", "--name-only", ref, "--", path])
        if isinstance(result, Err):
            return result
        return Ok(_split_z(result.value))

    def ls_files(self, path: str) -> Result[tuple[str, ...], GitError]:
        """Paths present in the index under ``path`` (unmerged paths once)."""
        result = self._git(["ls-files", "-z", "--", path])
        if isinstance(result, Err):
            return result
        return Ok(tuple(dict.fromkeys(_split_z(result.value))))

    def unmerged_paths(self) -> Result[tuple[str, ...], GitError]:
        """Paths with unresolved conflicts."""
        result = self._git(["diff", "--name-only", "--diff-filter=U", "-z"])
        if isinstance(result, Err):
            return result
        return Ok(tuple(dict.fromkeys(_split_z(result.value))))

    def staged_paths(self, path: str) -> Result[tuple[str, ...], GitError]:
        """Paths under ``path`` whose index entry differs from HEAD."""
        result = self._git(["diff", "--cached", "--name-only", "-z", "--", path])
        if isinstance(result, Err):
            return result
        return Ok(tuple(dict.fromkeys(_split_z(result.value))))

    def has_staged_changes(self) -> Result[bool, GitError]:
        """True if the index differs from HEAD."""
        result = self._run(["diff", "--cached", "--quiet"])
        match result:
            case Ok(_):
                return Ok(False)
            case Err(e) if e.returncode == 1:
                return Ok(True)
            case Err(e):
                return Err(_to_git_error("diff --cached", e))

    def ahead_count(self, base: str) -> Result[int, GitError]:
        """Number of commits on HEAD that are not on ``base``."""
        result = self._git(["rev-list", "--count", f"{base}..HEAD"])
        if isinstance(result, Err):
            return result
        try:
            return Ok(int(result.value.strip() or "0"))
        except ValueError:
            return Err(GitError(command="rev-list --count", message=result.value.strip()))

    def log_contains(self, text: str, *, ref: str = "HEAD") -> bool:
        """True if any commit message reachable from ``ref`` contains ``text``."""
        result = self._run(
            ["log", "--fixed-strings", f"--grep={text}", "--format=%H", "-n", "1", ref]
        )
        match result:
            case Ok(stdout):
                return stdout.strip() != ""
            case Err(_):
                return False

    def remote_url(self, name: str) -> str | None:
        result = self._run(["remote", "get-url", name])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def set_identity(self, *, name: str | None, email: str | None) -> Result[None, GitError]:
        """Set the committer identity in this repository's local config."""
        for key, value in (("user.name", name), ("user.email", email)):
            if not value:
                continue
            result = self._git(["config", key, value])
            if isinstance(result, Err):
                return result
        return Ok(None)

    def ensure_remote(self, name: str, url: str) -> Result[None, GitError]:
        """Add remote ``name``, or repoint it if it exists with another URL."""
        current = self.remote_url(name)
        if current == url:
            return Ok(None)
        args = ["remote", "add", name, url] if current is None else ["remote", "set-url", name, url]
        result = self._git(args)
        if isinstance(result, Err):
            return result
        return Ok(None)

    def fetch(self, remote: str | None = None) -> Result[str, GitError]:
        """Fetch from ``remote`` (or the default remote)."""
        args = ["fetch", "--no-tags"]
        if remote:
            args.append(remote)
        result = self._git(args)
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    def checkout(self, ref: str) -> Result[None, GitError]:
        result = self._git(["checkout", ref])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def merge(
        self,
        ref: str,
        *,
        no_commit: bool = False,
        no_ff: bool = False,
        allow_unrelated_histories: bool = False,
    ) -> Result[MergeOutcome, GitError]:
        """Merge ``ref`` into the current branch.

        A merge that stops on conflicts is not an error: the outcome reports
        ``conflicted`` and the caller decides how to resolve or abort. Only a
        merge that fails without entering the merging state is an Err.
        """
        args = ["merge", ref]
        if no_commit:
            args.append("--no-commit")
        if no_ff:
            args.append("--no-ff")
        if allow_unrelated_histories:
            args.append("--allow-unrelated-histories")

        result = self._run(args)
        match result:
            case Ok(stdout):
                return Ok(
                    MergeOutcome(
                        conflicted=False,
                        up_to_date=not self.merge_in_progress(),
                        output=stdout.strip(),
                    )
                )
            case Err(e) if self.merge_in_progress():
                return Ok(MergeOutcome(conflicted=True, up_to_date=False, output=e.stdout.strip()))
            case Err(e):
                return Err(_to_git_error(f"merge {ref}", e))

    def abort_merge(self) -> Result[None, GitError]:
        result = self._git(["merge", "--abort"])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def checkout_theirs(self, path: str) -> Result[None, GitError]:
        """Take the incoming side of a conflicted path and mark it resolved."""
        result = self._git(["checkout", "--theirs", "--", path])
        if isinstance(result, Err):
            return result
        return self.add([path])

    def add(self, paths: Sequence[str]) -> Result[None, GitError]:
        if not paths:
            return Ok(None)
        result = self._git(["add", "--", *paths])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def remove(
        self,
        paths: Sequence[str],
        *,
        cached: bool = False,
        recursive: bool = False,
        ignore_unmatch: bool = False,
    ) -> Result[None, GitError]:
        """``git rm`` the given paths (from the index only if ``cached``)."""
        if not paths:
            return Ok(None)
        args = ["rm", "-q", "-f"]
        if cached:
            args.append("--cached")
        if recursive:
            args.append("-r")
        if ignore_unmatch:
            args.append("--ignore-unmatch")
        result = self._git([*args, "--", *paths])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def restore_from(self, ref: str, paths: Sequence[str]) -> Result[None, GitError]:
        """Write ``paths`` from commit ``ref`` to both index and working tree."""
        if not paths:
            return Ok(None)
        result = self._git(["checkout", ref, "--", *paths])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def commit(self, message: str) -> Result[str, GitError]:
        """Commit the index. Returns the new HEAD SHA."""
        result = self._git(["commit", "-q", "-m", message])
        if isinstance(result, Err):
            return result
        return self.head_sha()

    def push(self, remote: str, branch: str) -> Result[str, GitError]:
        """Push ``branch`` to ``remote`` (never forced)."""
        result = self._git(["push", remote, f"HEAD:refs/heads/{branch}"])
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _git(self, args: list[str]) -> Result[str, GitError]:
        """Run git and convert failures to GitError."""
        result = self._run(args)
        if isinstance(result, Err):
            return Err(_to_git_error(" ".join(args[:2]), result.error))
        return result

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        if command in _NETWORK_COMMANDS:
            timeout = _GIT_NETWORK_TIMEOUT_SECONDS
        elif command in _WORKTREE_COMMANDS:
            timeout = _GIT_WORKTREE_TIMEOUT_SECONDS
        else:
            timeout = _GIT_TIMEOUT_SECONDS
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    def _parse_status(self, output: str) -> GitStatus:
        """Parse git status --porcelain=v1 -b output."""
        lines = [ln for ln in output.splitlines() if ln.strip()]
        if not lines:
            return GitStatus(branch="")

        branch = lines[0]
        if branch.startswith("##"):
            branch = branch[2:].strip()
        # "main...origin/main [ahead 1]" -> "main"
        branch = branch.split(" [", 1)[0].split("...", 1)[0].strip()

        entries: list[StatusEntry] = []
        for line in lines[1:]:
            if len(line) < 4:
                continue
            entries.append(StatusEntry(xy=line[:2], path=line[3:]))

        return GitStatus(branch=branch, entries=tuple(entries))


def _split_z(output: str) -> tuple[str, ...]:
    return tuple(p for p in output.split("\0") if p)


def _to_git_error(command: str, error: ProcessError) -> GitError:
    return GitError(
        command=command,
        message=error.stderr.strip() or error.stdout.strip() or f"git {command} failed",
        returncode=error.returncode,
    )

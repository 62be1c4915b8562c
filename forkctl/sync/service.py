"""Upstream sync: merge the upstream's default branch into the fork.

One run is one sequential pass:

1. query the upstream's latest release (no release means nothing to do)
2. fetch both remotes and merge ``upstream/<branch>`` once, without committing
3. settle configured conflicts in upstream's favor
4. put the fork's workflow directory back and verify it
5. abort on anything left unresolved, otherwise commit and push

Nothing is pushed unless every check passed; every failure after the merge
started aborts it, so the working tree ends where it began.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from forkctl.core.config import Config
from forkctl.core.result import Err, Ok, Result
from forkctl.git.repository import GitError, Repository
from forkctl.github.releases import ReleaseInfo, latest_release
from forkctl.output.console import ConsoleProtocol, Style
from forkctl.sync.conflicts import resolve_prefer_upstream
from forkctl.sync.errors import SyncError
from forkctl.sync.model import SyncReport, commit_message, release_trailer
from forkctl.sync.workflows import WorkflowSnapshot, preserve_workflows, verify_workflows

if TYPE_CHECKING:
    from forkctl.github.http import HttpClient


class UpstreamSyncService:
    def __init__(
        self,
        *,
        root: Path,
        config: Config,
        console: ConsoleProtocol,
        http: HttpClient,
    ) -> None:
        self._root = root
        self._config = config
        self._console = console
        self._http = http

    def latest(self) -> Result[ReleaseInfo | None, SyncError]:
        """The upstream's latest release, or None if it has none."""
        upstream = self._config.upstream
        result = latest_release(self._http, upstream.repo, api_url=upstream.api_url)
        if isinstance(result, Err):
            return Err(
                SyncError(
                    kind="release_query_failed",
                    message=f"failed to query latest release of {upstream.repo}",
                    hint=str(result.error),
                )
            )
        return result

    def run(self, *, dry_run: bool = False) -> Result[SyncReport, SyncError]:
        repo = Repository(self._root)
        if not repo.exists():
            return Err(
                SyncError(
                    kind="not_a_repo",
                    message=f"not a git repository: {self._root}",
                    hint="Run from the fork's checkout or pass --root.",
                )
            )

        if not dry_run and not repo.is_clean():
            return Err(
                SyncError(
                    kind="dirty_worktree",
                    message="working tree has uncommitted changes",
                    hint="Commit or stash them first.",
                )
            )

        self._console.header("Upstream release")
        latest = self.latest()
        if isinstance(latest, Err):
            return latest
        release = latest.value
        if release is None:
            self._console.info(f"{self._config.upstream.repo} has no release; nothing to sync")
            return Ok(SyncReport(status="no_release"))

        self._console.print(f"latest: {release.tag}", Style.BOLD)

        if self._config.git.skip_synced_releases and repo.log_contains(
            release_trailer(release.tag)
        ):
            self._console.info(f"{release.tag} already synced")
            return Ok(SyncReport(status="already_synced", release=release))

        if dry_run:
            self._print_plan()
            return Ok(SyncReport(status="dry_run", release=release))

        self._console.header("Merge")
        prepared = self._prepare(repo)
        if isinstance(prepared, Err):
            return prepared
        base_sha = prepared.value

        workflows = self._config.workflows
        snapshot = WorkflowSnapshot.take(repo, workflows.path, base_sha)
        if isinstance(snapshot, Err):
            return Err(_git_failed(snapshot.error))

        upstream_ref = self._config.upstream.tracking_ref
        self._console.command(_merge_command(upstream_ref))
        merged = repo.merge(
            upstream_ref,
            no_commit=True,
            no_ff=True,
            allow_unrelated_histories=True,
        )
        if isinstance(merged, Err):
            return Err(
                SyncError(
                    kind="merge_failed",
                    message=f"git merge {upstream_ref} failed",
                    hint=merged.error.message,
                )
            )
        outcome = merged.value

        if outcome.up_to_date:
            self._console.info(f"already up to date with {upstream_ref}")
            pushed = self._push_if_ahead(repo)
            if isinstance(pushed, Err):
                return pushed
            return Ok(
                SyncReport(
                    status="up_to_date",
                    release=release,
                    base_sha=base_sha,
                    pushed=pushed.value,
                )
            )

        if outcome.conflicted:
            self._console.warning("merge stopped with conflicts")

        resolved = resolve_prefer_upstream(
            repo,
            paths=self._config.conflicts.prefer_upstream,
            upstream_ref=upstream_ref,
            console=self._console,
        )
        if isinstance(resolved, Err):
            return self._abort(repo, _git_failed(resolved.error))

        self._console.header("Workflows")
        discarded = preserve_workflows(
            repo, snapshot.value, policy=workflows.policy, console=self._console
        )
        if isinstance(discarded, Err):
            return self._abort(repo, _git_failed(discarded.error))
        for path in discarded.value:
            self._console.print(f"kept out: {path}", Style.DIM)

        drift = verify_workflows(repo, snapshot.value, policy=workflows.policy)
        if isinstance(drift, Err):
            return self._abort(repo, _git_failed(drift.error))
        if drift.value:
            return self._abort(
                repo,
                SyncError(
                    kind="workflow_drift",
                    message=f"{workflows.path} differs from the fork after restore",
                    hint="\n".join(drift.value),
                ),
            )
        self._console.success(f"{workflows.path} unchanged ({workflows.policy})")

        unmerged = repo.unmerged_paths()
        if isinstance(unmerged, Err):
            return self._abort(repo, _git_failed(unmerged.error))
        if unmerged.value:
            return self._abort(
                repo,
                SyncError(
                    kind="merge_conflict",
                    message=f"{len(unmerged.value)} path(s) still conflicted",
                    hint="\n".join(unmerged.value),
                ),
            )

        self._console.header("Commit")
        commit_sha: str | None = None
        staged = repo.has_staged_changes()
        if isinstance(staged, Err):
            return self._abort(repo, _git_failed(staged.error))
        if repo.merge_in_progress() or staged.value:
            message = commit_message(self._config.git.commit_message, release.tag)
            self._console.command(["git", "commit", "-m", message.splitlines()[0]])
            committed = repo.commit(message)
            if isinstance(committed, Err):
                return self._abort(repo, _git_failed(committed.error))
            commit_sha = committed.value
            self._console.success(f"committed {commit_sha[:12]}")
        else:
            self._console.info("nothing to commit")

        pushed = self._push_if_ahead(repo)
        if isinstance(pushed, Err):
            return pushed

        return Ok(
            SyncReport(
                status="merged",
                release=release,
                base_sha=base_sha,
                commit_sha=commit_sha,
                pushed=pushed.value,
                resolved=resolved.value,
                discarded_workflows=discarded.value,
            )
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _prepare(self, repo: Repository) -> Result[str, SyncError]:
        """Identity, remotes, fetch, checkout. Returns the pre-merge HEAD."""
        git = self._config.git
        upstream = self._config.upstream

        if git.user_name or git.user_email:
            result = repo.set_identity(name=git.user_name, email=git.user_email)
            if isinstance(result, Err):
                return Err(_git_failed(result.error))

        self._console.command(["git", "remote", "add", upstream.remote, upstream.clone_url])
        added = repo.ensure_remote(upstream.remote, upstream.clone_url)
        if isinstance(added, Err):
            return Err(_git_failed(added.error))

        for remote in (upstream.remote, git.remote):
            self._console.command(["git", "fetch", remote])
            fetched = repo.fetch(remote)
            if isinstance(fetched, Err):
                return Err(_git_failed(fetched.error))

        self._console.command(["git", "checkout", git.branch])
        checked_out = repo.checkout(git.branch)
        if isinstance(checked_out, Err):
            return Err(_git_failed(checked_out.error))

        base = repo.head_sha()
        if isinstance(base, Err):
            return Err(_git_failed(base.error))
        return Ok(base.value)

    def _push_if_ahead(self, repo: Repository) -> Result[bool, SyncError]:
        git = self._config.git
        ahead = repo.ahead_count(f"{git.remote}/{git.branch}")
        # No tracking ref yet (new remote branch) counts as ahead.
        if isinstance(ahead, Ok) and ahead.value == 0:
            self._console.info(f"{git.remote}/{git.branch} is up to date; nothing to push")
            return Ok(False)

        self._console.command(["git", "push", git.remote, git.branch])
        pushed = repo.push(git.remote, git.branch)
        if isinstance(pushed, Err):
            return Err(
                SyncError(
                    kind="push_rejected",
                    message=f"push to {git.remote}/{git.branch} was rejected",
                    hint=pushed.error.message,
                )
            )
        self._console.success(f"pushed to {git.remote}/{git.branch}")
        return Ok(True)

    def _abort(self, repo: Repository, error: SyncError) -> Err[SyncError]:
        """Abort the in-progress merge and return ``error``."""
        if not repo.merge_in_progress():
            return Err(error)
        self._console.command(["git", "merge", "--abort"])
        aborted = repo.abort_merge()
        if isinstance(aborted, Err):
            hint = f"{error.hint}\n" if error.hint else ""
            return Err(
                SyncError(
                    kind=error.kind,
                    message=error.message,
                    hint=f"{hint}merge --abort also failed: {aborted.error.message}",
                )
            )
        return Err(error)

    def _print_plan(self) -> None:
        git = self._config.git
        upstream = self._config.upstream
        self._console.header("Plan (dry run)")
        self._console.command(["git", "remote", "add", upstream.remote, upstream.clone_url])
        self._console.command(["git", "fetch", upstream.remote])
        self._console.command(["git", "fetch", git.remote])
        self._console.command(["git", "checkout", git.branch])
        self._console.command(_merge_command(upstream.tracking_ref))
        self._console.print(
            f"restore {self._config.workflows.path} ({self._config.workflows.policy})",
            Style.DIM,
        )
        self._console.command(["git", "commit", "-m", git.commit_message])
        self._console.command(["git", "push", git.remote, git.branch])


def _merge_command(ref: str) -> list[str]:
    return ["git", "merge", ref, "--no-commit", "--no-ff", "--allow-unrelated-histories"]


def _git_failed(error: GitError) -> SyncError:
    return SyncError(kind="git_failed", message=f"git {error.command} failed", hint=error.message)

"""End-to-end sync runs against real local repositories."""

from __future__ import annotations

from pathlib import Path

import pytest

from forkctl.core.config import (
    Config,
    GitConfig,
    UpstreamConfig,
    WorkflowPolicy,
    WorkflowsConfig,
)
from forkctl.core.result import Err, Ok
from forkctl.github.http import HttpError, MockHttpClient
from forkctl.output.console import MockConsole
from forkctl.sync.service import UpstreamSyncService
from forkctl.test._git import commit_files, git, write
from forkctl.test.sync._fixtures import (
    PROMPT,
    RELEASE_URL,
    WORKFLOWS,
    Triangle,
    make_triangle,
    read_tree,
)

pytestmark = pytest.mark.usefixtures("git_env")


@pytest.fixture
def triangle(tmp_path: Path, git_env: None) -> Triangle:
    del git_env
    return make_triangle(tmp_path)


def _config(
    triangle: Triangle,
    *,
    policy: WorkflowPolicy = "unstage_restore",
    skip_synced_releases: bool = False,
) -> Config:
    return Config(
        upstream=UpstreamConfig(url=str(triangle.upstream)),
        git=GitConfig(
            user_name="GitHub Action",
            user_email="action@github.com",
            skip_synced_releases=skip_synced_releases,
        ),
        workflows=WorkflowsConfig(policy=policy),
    )


def _http(tag: str | None = "v0.180.0") -> MockHttpClient:
    http = MockHttpClient()
    if tag is not None:
        http.set_json(RELEASE_URL, {"tag_name": tag})
    return http


def _service(
    triangle: Triangle,
    console: MockConsole,
    http: MockHttpClient | None = None,
    *,
    policy: WorkflowPolicy = "unstage_restore",
    skip_synced_releases: bool = False,
) -> UpstreamSyncService:
    config = _config(triangle, policy=policy, skip_synced_releases=skip_synced_releases)
    return UpstreamSyncService(
        root=triangle.fork,
        config=config,
        console=console,
        http=http or _http(),
    )


def _merge_commands(console: MockConsole) -> list[str]:
    return [c for c in console.commands if c.startswith("git merge upstream/main")]


class TestNoRelease:
    def test_404_runs_no_git_command(self, triangle: Triangle) -> None:
        console = MockConsole()
        head = triangle.fork_head()

        result = _service(triangle, console, http=_http(None)).run()

        assert isinstance(result, Ok)
        assert result.value.status == "no_release"
        assert console.commands == []
        assert triangle.fork_head() == head
        assert git(triangle.fork, "remote").split() == ["origin"]

    def test_empty_tag_is_no_release(self, triangle: Triangle) -> None:
        console = MockConsole()

        result = _service(triangle, console, http=_http("")).run()

        assert isinstance(result, Ok)
        assert result.value.status == "no_release"
        assert _merge_commands(console) == []

    def test_query_failure_is_an_error(self, triangle: Triangle) -> None:
        http = MockHttpClient()
        http.set_json(RELEASE_URL, HttpError(url=RELEASE_URL, status=502, message="Bad Gateway"))
        console = MockConsole()

        result = _service(triangle, console, http=http).run()

        assert isinstance(result, Err)
        assert result.error.kind == "release_query_failed"
        assert "502" in (result.error.hint or "")
        assert console.commands == []


class TestMerge:
    def test_merges_once_and_pushes(self, triangle: Triangle) -> None:
        console = MockConsole()
        base = triangle.fork_head()

        result = _service(triangle, console).run()

        assert isinstance(result, Ok)
        report = result.value
        assert report.status == "merged"
        assert report.pushed
        assert report.base_sha == base
        assert report.commit_sha == triangle.fork_head() == triangle.origin_head()
        assert len(_merge_commands(console)) == 1
        assert _merge_commands(console)[0].endswith(
            "--no-commit --no-ff --allow-unrelated-histories"
        )
        assert (triangle.fork / "README.md").read_text(encoding="utf-8") == "upstream v2\n"

    def test_commit_message_carries_release_trailer(self, triangle: Triangle) -> None:
        _service(triangle, MockConsole()).run()

        message = git(triangle.fork, "log", "-1", "--format=%B")
        assert message.startswith("Sync with upstream/main\n")
        assert "Upstream-Release: v0.180.0" in message
        parents = git(triangle.fork, "log", "-1", "--format=%P").split()
        assert len(parents) == 2

    def test_workflows_are_byte_identical(self, triangle: Triangle) -> None:
        before = read_tree(triangle.fork, WORKFLOWS)

        result = _service(triangle, MockConsole()).run()

        assert isinstance(result, Ok)
        assert read_tree(triangle.fork, WORKFLOWS) == before
        assert result.value.discarded_workflows == (f"{WORKFLOWS}/release.yml",)
        committed = git(triangle.fork, "ls-tree", "-r", "--name-only", "HEAD", WORKFLOWS).split()
        assert committed == [f"{WORKFLOWS}/build_windows_exe.yml", f"{WORKFLOWS}/ci.yml"]
        assert git(triangle.fork, "status", "--porcelain") == ""

    def test_fast_forwardable_upstream_restores_from_pre_merge_commit(
        self, tmp_path: Path
    ) -> None:
        """Fork has no commits of its own: workflows still come from the fork."""
        upstream = tmp_path / "upstream"
        triangle = make_triangle(tmp_path / "base")
        # Re-point the fork at a fresh upstream that already contains the fork's
        # history, so the merge would fast-forward without --no-ff.
        git(tmp_path, "clone", "-q", str(triangle.origin), str(upstream))
        commit_files(upstream, {f"{WORKFLOWS}/ci.yml": "name: ff upstream\n"}, "ahead")
        ff = Triangle(upstream=upstream, origin=triangle.origin, fork=triangle.fork)
        before = read_tree(ff.fork, WORKFLOWS)

        result = _service(ff, MockConsole()).run()

        assert isinstance(result, Ok)
        assert read_tree(ff.fork, WORKFLOWS) == before

    def test_second_run_is_up_to_date(self, triangle: Triangle) -> None:
        _service(triangle, MockConsole()).run()
        head = triangle.fork_head()
        console = MockConsole()

        result = _service(triangle, console).run()

        assert isinstance(result, Ok)
        assert result.value.status == "up_to_date"
        assert not result.value.pushed
        assert triangle.fork_head() == head
        assert not any(c.startswith("git push") for c in console.commands)

    def test_skip_synced_release(self, triangle: Triangle) -> None:
        _service(triangle, MockConsole()).run()
        console = MockConsole()

        result = _service(triangle, console, skip_synced_releases=True).run()

        assert isinstance(result, Ok)
        assert result.value.status == "already_synced"
        assert _merge_commands(console) == []

    def test_restore_policy_adopts_new_upstream_workflows(self, triangle: Triangle) -> None:
        before = read_tree(triangle.fork, WORKFLOWS)

        result = _service(triangle, MockConsole(), policy="restore").run()

        assert isinstance(result, Ok)
        after = read_tree(triangle.fork, WORKFLOWS)
        assert {k: after[k] for k in before} == before
        assert after[f"{WORKFLOWS}/release.yml"] == b"name: upstream release\n"
        assert result.value.discarded_workflows == ()


class TestConflicts:
    def test_prefer_upstream_path_takes_theirs(self, triangle: Triangle) -> None:
        triangle.fork_commit({PROMPT: "fork prompt\n"})
        triangle.upstream_commit({PROMPT: "prompt v2\n"})

        result = _service(triangle, MockConsole()).run()

        assert isinstance(result, Ok)
        assert [(r.path, r.action) for r in result.value.resolved] == [(PROMPT, "took_upstream")]
        assert (triangle.fork / PROMPT).read_text(encoding="utf-8") == "prompt v2\n"

    def test_prefer_upstream_path_removed_when_upstream_deleted_it(
        self, triangle: Triangle
    ) -> None:
        triangle.fork_commit({PROMPT: "fork prompt\n"})
        git(triangle.upstream, "rm", "-q", PROMPT)
        git(triangle.upstream, "commit", "-q", "-m", "drop prompt")

        result = _service(triangle, MockConsole()).run()

        assert isinstance(result, Ok)
        assert [(r.path, r.action) for r in result.value.resolved] == [(PROMPT, "removed")]
        assert not (triangle.fork / PROMPT).exists()

    def test_unresolved_conflict_aborts_and_pushes_nothing(self, triangle: Triangle) -> None:
        triangle.fork_commit({"README.md": "fork readme\n"})
        head = triangle.fork_head()
        origin = triangle.origin_head()
        console = MockConsole()

        result = _service(triangle, console).run()

        assert isinstance(result, Err)
        assert result.error.kind == "merge_conflict"
        assert "README.md" in (result.error.hint or "")
        assert "git merge --abort" in console.commands
        assert not any(c.startswith("git push") for c in console.commands)
        assert triangle.fork_head() == head
        assert triangle.origin_head() == origin
        assert git(triangle.fork, "status", "--porcelain") == ""
        assert (triangle.fork / "README.md").read_text(encoding="utf-8") == "fork readme\n"


class TestPreconditions:
    def test_dirty_worktree(self, triangle: Triangle) -> None:
        write(triangle.fork, "README.md", "wip\n")
        http = _http()

        result = _service(triangle, MockConsole(), http=http).run()

        assert isinstance(result, Err)
        assert result.error.kind == "dirty_worktree"
        assert http.calls == []

    def test_untracked_files_do_not_block_sync(self, triangle: Triangle) -> None:
        write(triangle.fork, "uv.lock", "version = 1\n")

        result = _service(triangle, MockConsole()).run()

        assert isinstance(result, Ok)
        assert result.value.status == "merged"
        assert result.value.pushed
        assert (triangle.fork / "uv.lock").read_text(encoding="utf-8") == "version = 1\n"
        tracked = git(triangle.fork, "ls-files", "uv.lock")
        assert tracked == ""

    def test_not_a_repo(self, tmp_path: Path) -> None:
        service = UpstreamSyncService(
            root=tmp_path, config=Config(), console=MockConsole(), http=_http()
        )

        result = service.run()

        assert isinstance(result, Err)
        assert result.error.kind == "not_a_repo"

    def test_dry_run_leaves_repository_untouched(self, triangle: Triangle) -> None:
        console = MockConsole()
        head = triangle.fork_head()

        result = _service(triangle, console).run(dry_run=True)

        assert isinstance(result, Ok)
        assert result.value.status == "dry_run"
        assert len(_merge_commands(console)) == 1
        assert triangle.fork_head() == head
        assert git(triangle.fork, "remote").split() == ["origin"]


class TestPush:
    def test_rejected_push_is_an_error(self, triangle: Triangle, tmp_path: Path) -> None:
        other = tmp_path / "other"
        git(tmp_path, "clone", "-q", str(triangle.origin), str(other))
        commit_files(other, {"elsewhere.txt": "x\n"}, "someone else")
        git(other, "push", "-q", "origin", "main")

        result = _service(triangle, MockConsole()).run()

        assert isinstance(result, Err)
        assert result.error.kind == "push_rejected"

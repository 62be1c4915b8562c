"""Tests for forkctl.github.releases module."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from forkctl.core.result import Err, Ok, Result
from forkctl.github import releases as releases_mod
from forkctl.github.http import HttpError, MockHttpClient
from forkctl.github.releases import ReleaseInfo, daily_tag, latest_release, publish_release
from forkctl.output.console import MockConsole
from forkctl.platform.process import ProcessError

URL = "https://api.github.com/repos/zed-industries/zed/releases/latest"


class TestLatestRelease:
    def test_release_found(self) -> None:
        http = MockHttpClient()
        http.set_json(
            URL,
            {
                "tag_name": "v0.180.0",
                "name": "0.180.0",
                "html_url": "https://github.com/zed-industries/zed/releases/tag/v0.180.0",
                "published_at": "2026-10-15T12:00:00Z",
                "prerelease": False,
            },
        )

        result = latest_release(http, "zed-industries/zed")

        assert isinstance(result, Ok)
        assert result.value == ReleaseInfo(
            tag="v0.180.0",
            name="0.180.0",
            html_url="https://github.com/zed-industries/zed/releases/tag/v0.180.0",
            published_at="2026-10-15T12:00:00Z",
            prerelease=False,
        )

    def test_404_means_no_release(self) -> None:
        assert latest_release(MockHttpClient(), "zed-industries/zed") == Ok(None)

    @pytest.mark.parametrize(
        "payload", [{}, {"tag_name": ""}, {"tag_name": "   "}, {"tag_name": 7}]
    )
    def test_empty_tag_means_no_release(self, payload: dict[str, object]) -> None:
        http = MockHttpClient()
        http.set_json(URL, payload)

        assert latest_release(http, "zed-industries/zed") == Ok(None)

    @pytest.mark.parametrize("status", [0, 401, 403, 500, 503])
    def test_query_failure_is_error(self, status: int) -> None:
        http = MockHttpClient()
        http.set_json(URL, HttpError(url=URL, status=status, message="failed"))

        result = latest_release(http, "zed-industries/zed")

        assert isinstance(result, Err)
        assert result.error.status == status

    def test_custom_api_url(self) -> None:
        http = MockHttpClient()

        latest_release(http, "acme/app", api_url="https://ghe.example.com/api/v3/")

        assert http.calls == ["https://ghe.example.com/api/v3/repos/acme/app/releases/latest"]


def test_daily_tag() -> None:
    assert daily_tag("daily-", date(2026, 10, 19)) == "daily-2026-10-19"


class _FakeGh:
    """Records gh invocations and answers ``release view``."""

    def __init__(self, *, exists: bool, fail_publish: bool = False) -> None:
        self.exists = exists
        self.fail_publish = fail_publish
        self.calls: list[list[str]] = []

    def __call__(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        del cwd, timeout
        self.calls.append(cmd)
        if cmd[:3] == ["gh", "release", "view"]:
            if self.exists:
                return Ok('{"tagName": "x"}')
            return Err(ProcessError(tuple(cmd), 1, "", "release not found"))
        if self.fail_publish:
            return Err(ProcessError(tuple(cmd), 1, "", "HTTP 403: Resource not accessible"))
        return Ok("")


class TestPublishRelease:
    @pytest.fixture(autouse=True)
    def _gh_installed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(releases_mod.shutil, "which", lambda _name: "/usr/bin/gh")

    def test_creates_prerelease(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        gh = _FakeGh(exists=False)
        monkeypatch.setattr(releases_mod, "run_process", gh)
        asset = tmp_path / "zed-windows-x86_64.exe"
        console = MockConsole()

        result = publish_release(
            root=tmp_path,
            tag="daily-2026-10-19",
            title="Zed Daily Build 2026-10-19",
            asset=asset,
            console=console,
        )

        assert isinstance(result, Ok)
        assert result.value.created
        create = gh.calls[-1]
        assert create[:4] == ["gh", "release", "create", "daily-2026-10-19"]
        assert "--prerelease" in create
        assert "--draft" not in create
        assert create[create.index("--title") + 1] == "Zed Daily Build 2026-10-19"
        assert len(console.commands) == 1

    def test_existing_release_uploads_with_clobber(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        gh = _FakeGh(exists=True)
        monkeypatch.setattr(releases_mod, "run_process", gh)

        result = publish_release(
            root=tmp_path,
            tag="daily-2026-10-19",
            title="t",
            asset=tmp_path / "a.exe",
            console=MockConsole(),
            repo="me/zed",
        )

        assert isinstance(result, Ok)
        assert not result.value.created
        assert gh.calls[-1] == [
            "gh",
            "release",
            "upload",
            "daily-2026-10-19",
            str(tmp_path / "a.exe"),
            "--clobber",
            "--repo",
            "me/zed",
        ]

    def test_publish_failure_is_error(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setattr(releases_mod, "run_process", _FakeGh(exists=False, fail_publish=True))

        result = publish_release(
            root=tmp_path, tag="t", title="t", asset=tmp_path / "a.exe", console=MockConsole()
        )

        assert isinstance(result, Err)
        assert result.error.kind == "release_failed"
        assert result.error.hint is not None and "403" in result.error.hint

    def test_view_failure_other_than_not_found(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        def fake_run(
            cmd: list[str], *, cwd: Path, timeout: float | None = None
        ) -> Result[str, ProcessError]:
            del cwd, timeout
            return Err(ProcessError(tuple(cmd), 1, "", "error connecting to api.github.com"))

        monkeypatch.setattr(releases_mod, "run_process", fake_run)

        result = publish_release(
            root=tmp_path, tag="t", title="t", asset=tmp_path / "a.exe", console=MockConsole()
        )

        assert isinstance(result, Err)
        assert result.error.message == "failed to query release t"

    def test_dry_run_runs_nothing(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        gh = _FakeGh(exists=False)
        monkeypatch.setattr(releases_mod, "run_process", gh)
        console = MockConsole()

        result = publish_release(
            root=tmp_path,
            tag="t",
            title="t",
            asset=tmp_path / "a.exe",
            console=console,
            dry_run=True,
        )

        assert isinstance(result, Ok)
        assert gh.calls == []
        assert console.commands[0].startswith("gh release create t")

    def test_gh_missing(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setattr(releases_mod.shutil, "which", lambda _name: None)

        result = publish_release(
            root=tmp_path, tag="t", title="t", asset=tmp_path / "a.exe", console=MockConsole()
        )

        assert isinstance(result, Err)
        assert result.error.kind == "gh_missing"

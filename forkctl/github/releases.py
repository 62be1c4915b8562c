"""GitHub releases: reading the upstream's latest, publishing our own.

Reading goes through the REST API (``HttpClient``) so it needs no tooling on
the runner; publishing shells out to the ``gh`` CLI, which handles asset
uploads and authentication from ``GH_TOKEN``/``GITHUB_TOKEN``.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from forkctl.core.config import DEFAULT_GITHUB_API
from forkctl.core.result import Err, Ok, Result
from forkctl.core.structured import get_str
from forkctl.github.http import HttpError
from forkctl.platform.process import run as run_process

if TYPE_CHECKING:
    from forkctl.github.http import HttpClient
    from forkctl.output.console import ConsoleProtocol

__all__ = [
    "PublishedRelease",
    "ReleaseError",
    "ReleaseInfo",
    "daily_tag",
    "latest_release",
    "publish_release",
]

_GH_TIMEOUT_SECONDS = 60.0
_GH_UPLOAD_TIMEOUT_SECONDS = 30 * 60.0


@dataclass(frozen=True, slots=True)
class ReleaseInfo:
    """One published release of a repository."""

    tag: str
    name: str | None = None
    html_url: str | None = None
    published_at: str | None = None
    prerelease: bool = False


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: Literal["gh_missing", "release_failed"]
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class PublishedRelease:
    tag: str
    title: str
    asset: Path
    created: bool


def latest_release(
    http: HttpClient,
    repo: str,
    *,
    api_url: str = DEFAULT_GITHUB_API,
) -> Result[ReleaseInfo | None, HttpError]:
    """Fetch the latest published release of ``repo``.

    Args:
        http: HTTP client to use
        repo: Repository in "owner/name" format
        api_url: API base URL (GitHub Enterprise hosts differ)

    Returns:
        Ok(ReleaseInfo) if the repository has a release,
        Ok(None) if it has none (404, or a release without a tag),
        Err(HttpError) if the query itself failed.
    """
    url = f"{api_url.rstrip('/')}/repos/{repo}/releases/latest"
    result = http.get_json(url)

    if isinstance(result, Err):
        # /releases/latest answers 404 both for "no releases" and "no such
        # repo"; a wrong repo name surfaces later as a fetch failure.
        if result.error.is_not_found:
            return Ok(None)
        return result

    data = result.value
    tag = get_str(data, "tag_name")
    if tag is None:
        return Ok(None)

    return Ok(
        ReleaseInfo(
            tag=tag,
            name=get_str(data, "name"),
            html_url=get_str(data, "html_url"),
            published_at=get_str(data, "published_at"),
            prerelease=data.get("prerelease") is True,
        )
    )


def daily_tag(prefix: str, today: date) -> str:
    """Release tag for a dated build, e.g. ``daily-2026-10-19``."""
    return f"{prefix}{today.isoformat()}"


def publish_release(
    *,
    root: Path,
    tag: str,
    title: str,
    asset: Path,
    console: ConsoleProtocol,
    repo: str | None = None,
    prerelease: bool = True,
    draft: bool = False,
    notes: str = "",
    dry_run: bool = False,
) -> Result[PublishedRelease, ReleaseError]:
    """Attach ``asset`` to release ``tag``, creating the release if needed.

    Re-running for an existing tag replaces the asset (``--clobber``) so a
    second build on the same day updates that day's release.
    """
    if shutil.which("gh") is None and not dry_run:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )

    repo_args = ["--repo", repo] if repo else []

    exists = False
    if not dry_run:
        view = run_process(
            ["gh", "release", "view", tag, "--json", "tagName", *repo_args],
            cwd=root,
            timeout=_GH_TIMEOUT_SECONDS,
        )
        match view:
            case Ok(_):
                exists = True
            case Err(e) if "not found" in e.detail.lower():
                exists = False
            case Err(e):
                return Err(
                    ReleaseError(
                        kind="release_failed",
                        message=f"failed to query release {tag}",
                        hint=e.detail,
                    )
                )

    if exists:
        cmd = ["gh", "release", "upload", tag, str(asset), "--clobber", *repo_args]
    else:
        cmd = ["gh", "release", "create", tag, str(asset), "--title", title, "--notes", notes]
        if prerelease:
            cmd.append("--prerelease")
        if draft:
            cmd.append("--draft")
        cmd.extend(repo_args)

    console.command(cmd)
    if not dry_run:
        result = run_process(cmd, cwd=root, timeout=_GH_UPLOAD_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="release_failed",
                    message=f"failed to publish release {tag}",
                    hint=result.error.detail,
                )
            )

    return Ok(PublishedRelease(tag=tag, title=title, asset=asset, created=not exists))

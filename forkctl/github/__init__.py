"""GitHub API and release helpers."""

from forkctl.github.http import HttpClient, HttpError, MockHttpClient, RealHttpClient
from forkctl.github.releases import (
    PublishedRelease,
    ReleaseError,
    ReleaseInfo,
    daily_tag,
    latest_release,
    publish_release,
)

__all__ = [
    # http
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    # releases
    "PublishedRelease",
    "ReleaseError",
    "ReleaseInfo",
    "daily_tag",
    "latest_release",
    "publish_release",
]

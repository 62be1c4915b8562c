"""HTTP client abstraction for the GitHub REST API.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import os
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Protocol, cast, runtime_checkable

from forkctl import __version__
from forkctl.core.result import Err, Ok, Result
from forkctl.core.structured import as_str_dict

__all__ = [
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    "token_from_env",
]

_TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network and decode errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP GET requests returning JSON objects."""

    def get_json(self, url: str) -> Result[dict[str, Any], HttpError]:
        """Fetch URL and parse the body as a JSON object."""
        ...


def token_from_env() -> str | None:
    """GitHub token from the environment, if any."""
    for name in _TOKEN_ENV_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


class RealHttpClient:
    """Real HTTP client using urllib.

    Sends GitHub's recommended ``Accept`` and API version headers, and a
    bearer token when one is given (raises the anonymous rate limit of 60
    requests/hour, which shared CI runners exhaust quickly).
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        timeout: float = 30.0,
        user_agent: str = f"forkctl/{__version__}",
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._token = token
        self._ssl_context = ssl.create_default_context()

    def _headers(self) -> dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _request(self, url: str) -> Result[bytes, HttpError]:
        try:
            req = urllib.request.Request(url, headers=self._headers())
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                return Ok(response.read())
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

    def get_json(self, url: str) -> Result[dict[str, Any], HttpError]:
        result = self._request(url)
        if isinstance(result, Err):
            return result

        try:
            data_obj: object = json.loads(result.value.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))

        data = as_str_dict(data_obj)
        if data is None:
            return Err(HttpError(url=url, status=0, message="Expected JSON object"))
        return Ok(cast(dict[str, Any], data))


class MockHttpClient:
    """Mock HTTP client for testing.

    Usage:
        client = MockHttpClient()
        client.set_json(url, {"tag_name": "v0.180.0"})
        client.set_json(other_url, HttpError(url=other_url, status=500, message="boom"))
    """

    def __init__(self) -> None:
        self._json_responses: dict[str, dict[str, Any] | HttpError] = {}
        self.calls: list[str] = []

    def set_json(self, url: str, response: dict[str, Any] | HttpError) -> None:
        self._json_responses[url] = response

    def get_json(self, url: str) -> Result[dict[str, Any], HttpError]:
        self.calls.append(url)

        if url not in self._json_responses:
            return Err(HttpError(url=url, status=404, message="Not Found"))

        response = self._json_responses[url]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

"""Tests for forkctl.github.http module."""

from __future__ import annotations

import io
import urllib.error
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from forkctl.core.result import Err, Ok
from forkctl.github.http import (
    HttpClient,
    HttpError,
    MockHttpClient,
    RealHttpClient,
    token_from_env,
)

URL = "https://api.github.com/repos/zed-industries/zed/releases/latest"


class _Response(io.BytesIO):
    def __enter__(self) -> _Response:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class TestHttpError:
    def test_str_with_status(self) -> None:
        assert str(HttpError(url=URL, status=503, message="Service Unavailable")) == (
            f"HTTP 503: Service Unavailable ({URL})"
        )

    def test_str_without_status(self) -> None:
        assert str(HttpError(url=URL, status=0, message="timed out")) == f"timed out ({URL})"

    def test_is_not_found(self) -> None:
        assert HttpError(url=URL, status=404, message="Not Found").is_not_found
        assert not HttpError(url=URL, status=500, message="boom").is_not_found


class TestTokenFromEnv:
    def test_prefers_github_token(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "a")
        monkeypatch.setenv("GH_TOKEN", "b")
        assert token_from_env() == "a"

    def test_falls_back_to_gh_token(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "  ")
        monkeypatch.setenv("GH_TOKEN", "b")
        assert token_from_env() == "b"

    def test_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        monkeypatch.delenv("GH_TOKEN", raising=False)
        assert token_from_env() is None


class TestRealHttpClient:
    @patch("urllib.request.urlopen")
    def test_get_json_sends_github_headers(self, mock_open: MagicMock) -> None:
        mock_open.return_value = _Response(b'{"tag_name": "v0.180.0"}')

        result = RealHttpClient(token="secret").get_json(URL)

        assert result == Ok({"tag_name": "v0.180.0"})
        request = mock_open.call_args[0][0]
        assert request.get_header("Accept") == "application/vnd.github+json"
        assert request.get_header("Authorization") == "Bearer secret"
        assert request.get_header("User-agent").startswith("forkctl/")

    @patch("urllib.request.urlopen")
    def test_no_token_no_authorization(self, mock_open: MagicMock) -> None:
        mock_open.return_value = _Response(b"{}")

        RealHttpClient().get_json(URL)

        assert mock_open.call_args[0][0].get_header("Authorization") is None

    @patch("urllib.request.urlopen")
    def test_http_error_status(self, mock_open: MagicMock) -> None:
        mock_open.side_effect = urllib.error.HTTPError(
            URL, 404, "Not Found", {}, None  # type: ignore[arg-type]
        )

        result = RealHttpClient().get_json(URL)

        assert isinstance(result, Err)
        assert result.error.status == 404

    @patch("urllib.request.urlopen")
    def test_network_error(self, mock_open: MagicMock) -> None:
        mock_open.side_effect = urllib.error.URLError("Name or service not known")

        result = RealHttpClient().get_json(URL)

        assert isinstance(result, Err)
        assert result.error.status == 0
        assert "Name or service not known" in result.error.message

    @patch("urllib.request.urlopen")
    def test_invalid_json(self, mock_open: MagicMock) -> None:
        mock_open.return_value = _Response(b"<html>")

        result = RealHttpClient().get_json(URL)

        assert isinstance(result, Err)
        assert "JSON parse error" in result.error.message

    @patch("urllib.request.urlopen")
    def test_non_object_json(self, mock_open: MagicMock) -> None:
        mock_open.return_value = _Response(b"[1, 2]")

        result = RealHttpClient().get_json(URL)

        assert isinstance(result, Err)
        assert result.error.message == "Expected JSON object"


class TestMockHttpClient:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(MockHttpClient(), HttpClient)

    def test_unset_url_is_404(self) -> None:
        client = MockHttpClient()

        result = client.get_json(URL)

        assert isinstance(result, Err)
        assert result.error.is_not_found
        assert client.calls == [URL]

    def test_configured_responses(self) -> None:
        client = MockHttpClient()
        client.set_json(URL, {"tag_name": "v1"})
        other = URL + "?x"
        client.set_json(other, HttpError(url=other, status=500, message="boom"))

        assert client.get_json(URL) == Ok({"tag_name": "v1"})
        assert isinstance(client.get_json(other), Err)

"""Tests for the yt-dlp backed HTTP fetcher (infra/ytdlp_http.py).

yt-dlp is replaced by fake modules in ``sys.modules`` — no internet
access, no real request handlers.
"""

from __future__ import annotations

import asyncio
import sys
import types
from typing import Any
from unittest.mock import MagicMock

import pytest

from ytd_dash.exceptions import ProbeFailedError
from ytd_dash.infra.ytdlp_http import FetchResponse, YtDlpHttpFetcher

URL = "https://rr1.googlevideo.com/videoplayback?itag=137&rn=0&sq=0"


class _FakeRequestError(Exception):
    pass


class _FakeRequest:
    def __init__(self, url: str, headers: dict[str, str] | None = None, method: str | None = None) -> None:
        self.url = url
        self.headers = headers
        self.method = method


def _install_fake_ytdlp(
    monkeypatch: pytest.MonkeyPatch,
    *,
    body: bytes = b"Segment-Durations-Ms: 5120,\r\n",
    final_url: str = URL,
    error: Exception | None = None,
) -> MagicMock:
    """Install fake ``yt_dlp`` modules and return the YoutubeDL mock."""
    response = MagicMock()
    response.read.return_value = body
    response.url = final_url

    ydl = MagicMock()
    if error is not None:
        ydl.urlopen.side_effect = error
    else:
        ydl.urlopen.return_value = response

    youtube_dl_cls = MagicMock()
    youtube_dl_cls.return_value.__enter__.return_value = ydl
    youtube_dl_cls.return_value.__exit__.return_value = False

    yt_dlp_mod = types.ModuleType("yt_dlp")
    yt_dlp_mod.YoutubeDL = youtube_dl_cls  # type: ignore[attr-defined]
    networking_mod = types.ModuleType("yt_dlp.networking")
    networking_mod.Request = _FakeRequest  # type: ignore[attr-defined]
    exceptions_mod = types.ModuleType("yt_dlp.networking.exceptions")
    exceptions_mod.RequestError = _FakeRequestError  # type: ignore[attr-defined]

    monkeypatch.setitem(sys.modules, "yt_dlp", yt_dlp_mod)
    monkeypatch.setitem(sys.modules, "yt_dlp.networking", networking_mod)
    monkeypatch.setitem(sys.modules, "yt_dlp.networking.exceptions", exceptions_mod)
    return youtube_dl_cls


class TestFetchResponse:
    def test_text(self) -> None:
        assert asyncio.run(FetchResponse(url="u", body="b").text()) == "b"


class TestYtDlpHttpFetcher:
    def test_returns_body_and_final_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _install_fake_ytdlp(
            monkeypatch,
            final_url="https://rr9.googlevideo.com/videoplayback?itag=137&rn=0&sq=0",
        )
        response = asyncio.run(YtDlpHttpFetcher().fetch(URL))
        assert response.url == "https://rr9.googlevideo.com/videoplayback?itag=137&rn=0&sq=0"
        assert asyncio.run(response.text()) == "Segment-Durations-Ms: 5120,\r\n"

    def test_request_carries_method_and_headers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        youtube_dl_cls = _install_fake_ytdlp(monkeypatch)
        asyncio.run(
            YtDlpHttpFetcher().fetch(URL, method="GET", headers={"origin": "https://www.youtube.com"}),
        )
        ydl = youtube_dl_cls.return_value.__enter__.return_value
        request: Any = ydl.urlopen.call_args.args[0]
        assert request.url == URL
        assert request.method == "GET"
        assert request.headers == {"origin": "https://www.youtube.com"}

    def test_response_is_closed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        youtube_dl_cls = _install_fake_ytdlp(monkeypatch)
        asyncio.run(YtDlpHttpFetcher().fetch(URL))
        ydl = youtube_dl_cls.return_value.__enter__.return_value
        ydl.urlopen.return_value.close.assert_called_once()

    def test_quiet_options_and_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        youtube_dl_cls = _install_fake_ytdlp(monkeypatch)
        asyncio.run(YtDlpHttpFetcher(params={"proxy": "socks5://127.0.0.1:9050"}).fetch(URL))
        opts = youtube_dl_cls.call_args.args[0]
        assert opts["quiet"] is True
        assert opts["no_warnings"] is True
        assert opts["proxy"] == "socks5://127.0.0.1:9050"

    def test_invalid_utf8_is_replaced(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _install_fake_ytdlp(monkeypatch, body=b"\xff\xfeSegment-Durations-Ms: 1,\r\n")
        response = asyncio.run(YtDlpHttpFetcher().fetch(URL))
        assert asyncio.run(response.text()).endswith("Segment-Durations-Ms: 1,\r\n")

    def test_request_error_mapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _install_fake_ytdlp(monkeypatch, error=_FakeRequestError("HTTP Error 403: Forbidden"))
        with pytest.raises(ProbeFailedError, match="403") as exc_info:
            asyncio.run(YtDlpHttpFetcher().fetch(URL))
        assert exc_info.value.url == URL
        assert exc_info.value.hint is not None
        assert "pip install --upgrade yt-dlp" in exc_info.value.hint

    def test_unexpected_error_mapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _install_fake_ytdlp(monkeypatch, error=RuntimeError("boom"))
        with pytest.raises(ProbeFailedError, match="Unexpected yt-dlp request error"):
            asyncio.run(YtDlpHttpFetcher().fetch(URL))

    def test_redirects_cannot_be_disabled(self) -> None:
        with pytest.raises(ProbeFailedError):
            asyncio.run(YtDlpHttpFetcher().fetch(URL, follow_redirects=False))

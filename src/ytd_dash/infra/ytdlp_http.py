"""yt-dlp backed implementation of :class:`~ytd_dash.core.protocols.HttpFetcher`.

This module is the **only** place in the codebase that imports ``yt_dlp``.
Requests go through yt-dlp's networking stack (the same request
handlers, proxies and cookies yt-dlp itself would use) on a worker
thread, so the probe does not block the event loop.  All yt-dlp
exceptions are caught here and re-raised as typed
:class:`~ytd_dash.exceptions.YtdDashError` subclasses — nothing raw
escapes the infrastructure boundary.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ytd_dash.exceptions import (
    EnvironmentError,
    ProbeFailedError,
    append_ytdlp_upgrade_suggestion,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FetchResponse:
    """Materialized response satisfying :class:`~ytd_dash.core.protocols.HttpResponse`."""

    url: str
    """Final URL after redirects."""

    body: str

    async def text(self) -> str:
        return self.body


class YtDlpHttpFetcher:
    """Concrete :class:`HttpFetcher` backed by yt-dlp's networking API.

    Usage::

        fetcher = YtDlpHttpFetcher()
        service = ManifestService(http=fetcher)

    This class satisfies the :class:`~ytd_dash.core.protocols.HttpFetcher`
    protocol structurally — no explicit inheritance required.  yt-dlp
    always follows redirects; ``follow_redirects=False`` is rejected.
    """

    def __init__(self, *, params: Mapping[str, Any] | None = None) -> None:
        self._params: dict[str, Any] = dict(params or {})

    def _build_opts(self) -> dict[str, Any]:
        """Return yt-dlp options for plain HTTP requests."""
        opts: dict[str, Any] = {
            "quiet": True,
            "no_warnings": True,
            "no_color": True,
        }
        opts.update(self._params)
        return opts

    # ------------------------------------------------------------------
    # Protocol method
    # ------------------------------------------------------------------

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        follow_redirects: bool = True,
    ) -> FetchResponse:
        """Perform the request on a worker thread.

        Raises
        ------
        EnvironmentError
            If yt-dlp is not installed.
        ProbeFailedError
            For any yt-dlp networking error.
        """
        if not follow_redirects:
            raise ProbeFailedError(
                "yt-dlp cannot disable redirect following.",
                url=url,
            )
        return await asyncio.to_thread(
            self._fetch_blocking, url, method, dict(headers or {}),
        )

    def _fetch_blocking(
        self,
        url: str,
        method: str,
        headers: dict[str, str],
    ) -> FetchResponse:
        try:
            import yt_dlp
            from yt_dlp.networking import Request
            from yt_dlp.networking.exceptions import RequestError
        except ModuleNotFoundError as exc:
            raise EnvironmentError(
                "yt-dlp is not installed. Install with: pip install yt-dlp",
            ) from exc

        logger.debug("%s %s", method, url)
        try:
            with yt_dlp.YoutubeDL(self._build_opts()) as ydl:
                response = ydl.urlopen(Request(url, headers=headers, method=method))
                try:
                    data: bytes = response.read()
                    final_url = str(response.url)
                finally:
                    response.close()
        except RequestError as exc:
            raise ProbeFailedError(
                str(exc),
                url=url,
                hint=append_ytdlp_upgrade_suggestion(
                    "Stream URLs expire; fetch fresh streaming data and retry.",
                ),
            ) from exc
        except Exception as exc:
            raise ProbeFailedError(
                f"Unexpected yt-dlp request error: {exc}",
                url=url,
            ) from exc

        return FetchResponse(
            url=final_url,
            body=data.decode("utf-8", errors="replace"),
        )

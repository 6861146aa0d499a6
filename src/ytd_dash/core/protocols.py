"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols — never on concrete
implementations — preserving the dependency inversion principle.
"""

from __future__ import annotations

from collections.abc import Awaitable, Mapping
from typing import Any, Protocol

from ytd_dash.core.models import Format


class HttpResponse(Protocol):
    """The part of an HTTP response the segment probe needs."""

    @property
    def url(self) -> str:
        """Final URL after any redirects were followed."""
        ...  # pragma: no cover

    async def text(self) -> str:
        """Return the decoded response body."""
        ...  # pragma: no cover


class HttpFetcher(Protocol):
    """Contract for HTTP backends used to probe OTF streams.

    Any object that implements :meth:`fetch` with the correct signature
    satisfies this protocol structurally (no explicit inheritance
    required).  Retry and backoff, if any, are the implementation's
    responsibility; the core never retries.
    """

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        follow_redirects: bool = True,
    ) -> HttpResponse:
        """Perform a request and return the (possibly redirected) response.

        Implementations must map backend-specific exceptions to
        :class:`~ytd_dash.exceptions.ProbeFailedError`.
        """
        ...  # pragma: no cover


class Decipherer(Protocol):
    """Contract for turning a format into a playable URL.

    The signature/``n`` parameter logic is opaque to ytd-dash.  Both
    synchronous and asynchronous implementations are accepted.
    """

    def decipher(self, fmt: Format, player: Any) -> str | Awaitable[str]:
        """Return the playable URL for *fmt* in the context of *player*."""
        ...  # pragma: no cover

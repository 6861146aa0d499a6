"""Segment-duration probing for open-timing (OTF) streams.

OTF formats do not publish index/init byte ranges.  Their segment
durations are only announced in the body of the first segment, which
contains a header-like line such as::

    Segment-Count: 922\\r\\n
    Segment-Durations-Ms: 5120(r=920),3600,\\r\\n

:func:`probe_segment_info` requests that first segment and
:func:`parse_segment_durations` extracts the timeline from it.
"""

from __future__ import annotations

import logging
import re

from ytd_dash.core.models import DynamicSegmentInfo, SegmentDuration
from ytd_dash.core.protocols import HttpFetcher
from ytd_dash.exceptions import ProbeFailedError, ProbeParseError, YtdDashError
from ytd_dash.utils.urls import remove_first

logger = logging.getLogger(__name__)

DURATIONS_MARKER: str = "Segment-Durations-Ms:"
LINE_TERMINATOR: str = "\r\n"

PROBE_PARAMS: tuple[str, ...] = ("&rn=0", "&sq=0")
"""Forced request/sequence numbers appended to the probe request."""

STREAM_HEADERS: dict[str, str] = {
    "accept": "*/*",
    "origin": "https://www.youtube.com",
    "referer": "https://www.youtube.com",
    "DNT": "?1",
}

_ENTRY_RE = re.compile(r"(\d+)(?:\(r=(\d+)\))?")


# ---------------------------------------------------------------------------
# Probe URL handling
# ---------------------------------------------------------------------------

def build_probe_url(url: str) -> str:
    """Append the forced ``rn=0`` and ``sq=0`` parameters to *url*."""
    return url + "".join(PROBE_PARAMS)


def resolve_probe_url(final_url: str) -> str:
    """Strip the forced probe parameters from the final (redirected) URL.

    Segment numbers are later appended to the result, so the one-off
    probe parameters must not be baked into it.
    """
    resolved = final_url
    for param in PROBE_PARAMS:
        resolved = remove_first(resolved, param)
    return resolved


# ---------------------------------------------------------------------------
# Body parsing
# ---------------------------------------------------------------------------

def parse_segment_durations(body: str, url: str) -> list[SegmentDuration]:
    """Parse the ``Segment-Durations-Ms`` line of a probe response.

    Raises
    ------
    ProbeParseError
        If the marker line is missing or an entry is malformed.
    """
    start = body.find(DURATIONS_MARKER)
    end = body.find(LINE_TERMINATOR, start + len(DURATIONS_MARKER)) if start != -1 else -1
    if start == -1 or end == -1:
        raise ProbeParseError(
            "Failed to extract the segment durations from this OTF stream.",
            url=url,
            hint="The stream may not be an OTF stream, or the response was truncated.",
        )

    line = body[start + len(DURATIONS_MARKER):end]
    durations: list[SegmentDuration] = []
    for raw_entry in line.split(","):
        entry = raw_entry.strip()
        if not entry:
            continue
        match = _ENTRY_RE.fullmatch(entry)
        if match is None:
            raise ProbeParseError(
                f"Malformed segment duration entry {entry!r}.",
                url=url,
            )
        repeat = match.group(2)
        durations.append(
            SegmentDuration(
                duration_ms=int(match.group(1)),
                repeat_count=int(repeat) if repeat is not None else None,
            )
        )
    return durations


# ---------------------------------------------------------------------------
# Network probe
# ---------------------------------------------------------------------------

async def probe_segment_info(url: str, http: HttpFetcher) -> DynamicSegmentInfo:
    """Fetch the first segment of an OTF stream and extract its timeline.

    Redirects are followed and the final URL (minus the probe
    parameters) is kept, so players do not have to follow the same
    redirects for every segment.

    Raises
    ------
    ProbeFailedError
        When the request fails.  No retry is attempted here.
    ProbeParseError
        When the response carries no usable duration line.
    """
    probe_url = build_probe_url(url)
    logger.debug("Probing OTF stream: %s", probe_url)

    try:
        response = await http.fetch(
            probe_url,
            method="GET",
            headers=STREAM_HEADERS,
            follow_redirects=True,
        )
        body = await response.text()
        final_url = response.url
    except YtdDashError:
        raise
    except Exception as exc:
        raise ProbeFailedError(
            f"Segment probe request failed: {exc}",
            url=probe_url,
        ) from exc

    durations = parse_segment_durations(body, probe_url)
    resolved_url = resolve_probe_url(final_url)
    logger.debug(
        "Probe resolved to %s with %d duration entries", resolved_url, len(durations),
    )
    return DynamicSegmentInfo(
        resolved_url=resolved_url,
        segment_durations=tuple(durations),
    )

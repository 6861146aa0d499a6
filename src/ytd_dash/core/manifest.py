"""MPEG-DASH manifest assembly.

The manifest is declared as a tree of components (plain functions
called through :func:`~ytd_dash.core.dom.create_element`).  Parts that
need I/O — deciphering a URL, probing an OTF stream — are asynchronous
components; the resolver awaits them concurrently and keeps document
order intact.

Guarantees
----------
* All-or-nothing: any failure aborts the whole assembly.
* No state survives a call; adaptation-set ids come from a counter
  created per :func:`assemble` invocation.
* Set and representation order follow first-seen input order.
"""

from __future__ import annotations

import inspect
import itertools
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from ytd_dash.core.dom import Child, Element, Fragment, create_element as h
from ytd_dash.core.grouping import AdaptationSetPlan, plan_adaptation_sets
from ytd_dash.core.models import (
    DynamicSegmentInfo,
    Format,
    StaticSegmentInfo,
)
from ytd_dash.core.otf import probe_segment_info
from ytd_dash.core.protocols import Decipherer, HttpFetcher
from ytd_dash.core.render import serialize
from ytd_dash.core.tags import format_value
from ytd_dash.exceptions import (
    DecipherFailedError,
    MissingByteRangeError,
    NoDecipherCapabilityError,
    NoProbeCapabilityError,
    NoUsableFormatsError,
    YtdDashError,
)
from ytd_dash.utils.urls import set_query_param

logger = logging.getLogger(__name__)

MPD_NAMESPACE: str = "urn:mpeg:dash:schema:mpd:2011"
XSI_NAMESPACE: str = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION: str = (
    "urn:mpeg:dash:schema:mpd:2011 "
    "http://standards.iso.org/ittf/PubliclyAvailableStandards/MPEG-DASH_schema_files/DASH-MPD.xsd"
)
PROFILE_ISOFF_MAIN: str = "urn:mpeg:dash:profile:isoff-main:2011"
MIN_BUFFER_TIME: str = "PT1.500S"
ROLE_SCHEME: str = "urn:mpeg:dash:role:2011"
AUDIO_CHANNEL_SCHEME: str = "urn:mpeg:dash:23003:3:audio_channel_configuration:2011"
DEFAULT_AUDIO_CHANNELS: int = 2


@dataclass(frozen=True, slots=True)
class ManifestOptions:
    """Per-call assembly options and injected capabilities."""

    reject_format: Callable[[Format], bool] | None = None
    """Predicate returning ``True`` for formats to leave out."""

    transform_url: Callable[[str], str] | None = None
    """Post-processing hook applied to every playback URL."""

    cpn: str = ""
    """Content playback nonce written to the ``cpn`` query parameter."""

    player: Any = None
    """Opaque player context handed to the decipherer."""

    decipherer: Decipherer | None = None
    http: HttpFetcher | None = None


# ---------------------------------------------------------------------------
# Playback URL
# ---------------------------------------------------------------------------

async def playback_url(fmt: Format, options: ManifestOptions) -> str:
    """Decipher *fmt*, stamp the ``cpn`` and apply ``transform_url``.

    Raises
    ------
    NoDecipherCapabilityError
        If the format is ciphered (or has no URL) and no decipherer is set.
    DecipherFailedError
        If the decipherer fails with a non-ytd-dash exception.
    """
    if options.decipherer is not None:
        try:
            produced = options.decipherer.decipher(fmt, options.player)
            url = await produced if inspect.isawaitable(produced) else produced
        except YtdDashError:
            raise
        except Exception as exc:
            raise DecipherFailedError(
                f"Failed to decipher the URL of format {fmt.itag}: {exc}",
                itag=fmt.itag,
            ) from exc
    elif fmt.url is not None and fmt.signature_cipher is None:
        url = fmt.url
    else:
        raise NoDecipherCapabilityError(
            f"Format {fmt.itag} is ciphered and no decipherer was provided.",
            itag=fmt.itag,
            hint="Pass a decipherer, or reject ciphered formats.",
        )

    url = set_query_param(str(url), "cpn", options.cpn)
    if options.transform_url is not None:
        url = options.transform_url(url)
    return url


# ---------------------------------------------------------------------------
# Segment addressing
# ---------------------------------------------------------------------------

def static_segment_info(fmt: Format, url: str) -> StaticSegmentInfo:
    """Return byte-range addressing for *fmt*.

    Raises
    ------
    MissingByteRangeError
        If either the index or the init range is missing.
    """
    if fmt.index_range is None or fmt.init_range is None:
        raise MissingByteRangeError(
            f"Index and init ranges not available for format {fmt.itag}.",
            itag=fmt.itag,
        )
    return StaticSegmentInfo(
        base_url=url,
        index_range=fmt.index_range,
        init_range=fmt.init_range,
    )


def segment_base(*, info: StaticSegmentInfo, children: list[Child] | None = None) -> list[Child]:
    return h(
        Fragment,
        None,
        h("base-url", None, info.base_url),
        h(
            "segment-base",
            {"indexRange": str(info.index_range)},
            h("initialization", {"range": str(info.init_range)}),
        ),
    )


def segment_template(*, info: DynamicSegmentInfo, children: list[Child] | None = None) -> Element:
    return h(
        "segment-template",
        {
            "startNumber": "1",
            "timescale": "1000",
            "initialization": f"{info.resolved_url}&sq=0",
            "media": f"{info.resolved_url}&sq=$Number$",
        },
        h(
            "segment-timeline",
            None,
            [
                h("s", {"d": entry.duration_ms, "r": entry.repeat_count})
                for entry in info.segment_durations
            ],
        ),
    )


async def otf_segment_template(
    *,
    url: str,
    http: HttpFetcher,
    children: list[Child] | None = None,
) -> Element:
    info = await probe_segment_info(url, http)
    return h(segment_template, {"info": info})


def segment_info(
    *,
    fmt: Format,
    url: str,
    http: HttpFetcher | None,
    children: list[Child] | None = None,
) -> Any:
    """Addressing subtree for one representation.

    OTF formats yield a pending ``SegmentTemplate``; static formats a
    ``BaseURL`` followed by ``SegmentBase``.
    """
    if fmt.is_type_otf:
        if http is None:
            raise NoProbeCapabilityError(
                f"Unable to get segment durations for OTF format {fmt.itag} "
                "without an HTTP fetcher.",
                itag=fmt.itag,
            )
        return h(otf_segment_template, {"url": url, "http": http})

    return h(segment_base, {"info": static_segment_info(fmt, url)})


# ---------------------------------------------------------------------------
# Representations
# ---------------------------------------------------------------------------

def representation_id(fmt: Format, track_id: str | None = None) -> str:
    if track_id is None:
        return str(fmt.itag)
    return f"{fmt.itag}-{track_id}"


async def audio_representation(
    *,
    fmt: Format,
    options: ManifestOptions,
    track_id: str | None = None,
    children: list[Child] | None = None,
) -> Element:
    url = await playback_url(fmt, options)
    return h(
        "representation",
        {
            "id": representation_id(fmt, track_id),
            "codecs": fmt.codecs,
            "bandwidth": fmt.bitrate,
            "audioSamplingRate": fmt.audio_sample_rate,
        },
        h(
            "audio-channel-configuration",
            {
                "schemeIdUri": AUDIO_CHANNEL_SCHEME,
                "value": fmt.audio_channels or DEFAULT_AUDIO_CHANNELS,
            },
        ),
        h(segment_info, {"fmt": fmt, "url": url, "http": options.http}),
    )


async def video_representation(
    *,
    fmt: Format,
    options: ManifestOptions,
    children: list[Child] | None = None,
) -> Element:
    url = await playback_url(fmt, options)
    return h(
        "representation",
        {
            "id": representation_id(fmt),
            "codecs": fmt.codecs,
            "bandwidth": fmt.bitrate,
            "width": fmt.width,
            "height": fmt.height,
            "maxPlayoutRate": "1",
            "frameRate": fmt.fps,
        },
        h(segment_info, {"fmt": fmt, "url": url, "http": options.http}),
    )


# ---------------------------------------------------------------------------
# Adaptation sets and document
# ---------------------------------------------------------------------------

def adaptation_set(
    *,
    plan: AdaptationSetPlan,
    options: ManifestOptions,
    children: list[Child] | None = None,
) -> Element:
    attributes: dict[str, Any] = {
        "id": plan.id,
        "mimeType": plan.container,
        "startWithSAP": "1",
        "subsegmentAlignment": "true",
    }

    if plan.track is None:
        return h(
            "adaptation-set",
            attributes,
            [
                h(video_representation, {"fmt": fmt, "options": options})
                if fmt.has_video
                else h(audio_representation, {"fmt": fmt, "options": options})
                for fmt in plan.formats
            ],
        )

    # The lang/label attributes and the Role element belong to the set,
    # so every audio track needs a set of its own.  ``label`` is the
    # non-standard attribute shaka reads instead of the Label element.
    attributes["lang"] = plan.lang
    attributes["label"] = plan.label
    return h(
        "adaptation-set",
        attributes,
        h("role", {"schemeIdUri": ROLE_SCHEME, "value": plan.role}),
        h("label", {"id": plan.id}, plan.label),
        [
            h(
                audio_representation,
                {"fmt": fmt, "options": options, "track_id": plan.track.id},
            )
            for fmt in plan.formats
        ],
    )


def mpd(
    *,
    duration_seconds: float,
    plans: Sequence[AdaptationSetPlan],
    options: ManifestOptions,
    children: list[Child] | None = None,
) -> Element:
    return h(
        "mpd",
        {
            "xmlns": MPD_NAMESPACE,
            "minBufferTime": MIN_BUFFER_TIME,
            "profiles": PROFILE_ISOFF_MAIN,
            "type": "static",
            "mediaPresentationDuration": f"PT{format_value(duration_seconds)}S",
            "xmlns:xsi": XSI_NAMESPACE,
            "xsi:schemaLocation": SCHEMA_LOCATION,
        },
        h(
            "period",
            None,
            [h(adaptation_set, {"plan": plan, "options": options}) for plan in plans],
        ),
    )


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def select_formats(
    formats: Sequence[Format],
    reject_format: Callable[[Format], bool] | None = None,
) -> list[Format]:
    """Apply the rejection predicate, keeping input order."""
    if reject_format is None:
        return list(formats)
    return [fmt for fmt in formats if not reject_format(fmt)]


async def assemble(
    formats: Sequence[Format],
    options: ManifestOptions | None = None,
) -> str:
    """Build the MPD document for *formats*.

    Raises
    ------
    NoUsableFormatsError
        If filtering leaves nothing, or nothing left is addressable.
    NoProbeCapabilityError
        If an OTF format is present and ``options.http`` is ``None``.
    ProbeFailedError, ProbeParseError
        If an OTF probe fails.
    MissingByteRangeError
        If a static format lacks a byte range.
    NoDecipherCapabilityError, DecipherFailedError
        If a playable URL cannot be produced.
    """
    options = options or ManifestOptions()

    usable = select_formats(formats, options.reject_format)
    if not usable:
        raise NoUsableFormatsError(
            "No adaptive formats found.",
            hint="Check the format filter; every format was rejected.",
        )

    duration_seconds = usable[0].approx_duration_ms / 1000
    plans = plan_adaptation_sets(usable, itertools.count())
    if not plans:
        raise NoUsableFormatsError(
            "None of the adaptive formats can be addressed.",
            hint="Formats need either OTF timing or both index and init ranges.",
        )

    logger.debug(
        "Assembling manifest: %d format(s), %d adaptation set(s), %.3fs",
        len(usable),
        len(plans),
        duration_seconds,
    )
    document = h(
        mpd,
        {"duration_seconds": duration_seconds, "plans": plans, "options": options},
    )
    return await serialize(document)

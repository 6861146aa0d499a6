"""Pure partitioning of formats into adaptation sets.

Every function in this module is a **pure** transformation — no I/O,
no side effects, fully deterministic, and trivially unit-testable.

Pipeline order (enforced by :func:`plan_adaptation_sets`):

1. **Bucket** — group addressable formats by full mime type, keeping
   first-seen bucket order and per-bucket input order.
2. **Split** — buckets where every format has an audio track are split
   by track id; each track becomes its own adaptation set.
3. **Number** — set ids are drawn from one counter shared by the whole
   document, in emission order.

No bandwidth or quality sort is applied; input order is preserved.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from ytd_dash.core.models import AudioTrack, Format

logger = logging.getLogger(__name__)

ROLE_MAIN: str = "main"
ROLE_DUB: str = "dub"
ROLE_DESCRIPTION: str = "description"
ROLE_ALTERNATE: str = "alternate"


@dataclass(frozen=True, slots=True)
class AdaptationSetPlan:
    """Everything needed to render one ``AdaptationSet``."""

    id: int
    mime_type: str
    """Full mime type of the bucket, codecs included."""

    formats: tuple[Format, ...]

    track: AudioTrack | None = None
    """Shared audio track when the set is one track of a multi-track bucket."""

    role: str | None = None
    label: str | None = None
    lang: str | None = None

    @property
    def container(self) -> str:
        return self.mime_type.split(";", 1)[0].strip()

    @property
    def is_multi_track(self) -> bool:
        return self.track is not None


# ---------------------------------------------------------------------------
# 1. Bucket
# ---------------------------------------------------------------------------

def bucket_by_mime_type(formats: Sequence[Format]) -> dict[str, list[Format]]:
    """Group addressable formats by mime type.

    Formats that are neither OTF nor carry both byte ranges cannot be
    addressed and are dropped.
    """
    buckets: dict[str, list[Format]] = {}
    for fmt in formats:
        if not fmt.is_addressable:
            logger.debug("Dropping unaddressable format itag=%s", fmt.itag)
            continue
        buckets.setdefault(fmt.mime_type, []).append(fmt)
    return buckets


# ---------------------------------------------------------------------------
# 2. Split
# ---------------------------------------------------------------------------

def is_multi_track(formats: Sequence[Format]) -> bool:
    """Whether every format in *formats* carries audio-track metadata."""
    return bool(formats) and all(fmt.audio_track is not None for fmt in formats)


def split_by_track(
    formats: Sequence[Format],
) -> list[tuple[AudioTrack, list[Format]]]:
    """Group multi-track formats by audio track id, first-seen order.

    Each group is paired with the track descriptor of its first format.
    """
    tracks: dict[str, tuple[AudioTrack, list[Format]]] = {}
    for fmt in formats:
        if fmt.audio_track is None:
            raise ValueError(f"Format itag={fmt.itag} has no audio track.")
        entry = tracks.setdefault(fmt.audio_track.id, (fmt.audio_track, []))
        entry[1].append(fmt)
    return list(tracks.values())


def select_role(track: AudioTrack) -> str:
    """Pick the DASH role of a track: default, dubbed, descriptive, else alternate."""
    if track.is_default:
        return ROLE_MAIN
    if track.is_dubbed:
        return ROLE_DUB
    if track.is_descriptive:
        return ROLE_DESCRIPTION
    return ROLE_ALTERNATE


# ---------------------------------------------------------------------------
# Composite pipeline
# ---------------------------------------------------------------------------

def plan_adaptation_sets(
    formats: Sequence[Format],
    set_ids: Iterator[int],
) -> list[AdaptationSetPlan]:
    """Run the bucket → split → number pipeline.

    Parameters
    ----------
    formats:
        Already filtered formats, in input order.
    set_ids:
        Counter supplying adaptation-set ids (usually
        ``itertools.count()`` created for a single assembly).
    """
    plans: list[AdaptationSetPlan] = []
    for mime_type, bucket in bucket_by_mime_type(formats).items():
        if not is_multi_track(bucket):
            plans.append(
                AdaptationSetPlan(
                    id=next(set_ids),
                    mime_type=mime_type,
                    formats=tuple(bucket),
                )
            )
            continue

        for track, track_formats in split_by_track(bucket):
            plans.append(
                AdaptationSetPlan(
                    id=next(set_ids),
                    mime_type=mime_type,
                    formats=tuple(track_formats),
                    track=track,
                    role=select_role(track),
                    label=track.display_name,
                    lang=track_formats[0].language,
                )
            )

    logger.debug("Planned %d adaptation set(s)", len(plans))
    return plans

"""Domain models for ytd-dash.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access and a few derived read-only properties.
They carry zero I/O and must remain pure across the entire lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ByteRange:
    """An inclusive byte range inside a media file."""

    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True, slots=True)
class AudioTrack:
    """Audio-track descriptor attached to multi-language audio formats."""

    id: str
    """Grouping identifier shared by every format of the track (e.g. ``en.4``)."""

    display_name: str
    """Human-readable track name (e.g. ``English (United States) original``)."""

    is_default: bool = False
    is_dubbed: bool = False
    is_descriptive: bool = False


# ---------------------------------------------------------------------------
# Individual format descriptor
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Format:
    """A single adaptive stream variant (video-only or audio-only).

    Either :attr:`is_type_otf` is set, meaning segment timing must be
    discovered with a probe, or both :attr:`index_range` and
    :attr:`init_range` are present.
    """

    itag: int
    """YouTube format identifier."""

    mime_type: str
    """Full mime type including codecs (e.g. ``video/mp4; codecs="avc1.640028"``)."""

    bitrate: int
    """Peak bitrate in bits per second."""

    url: str | None = None
    """Plain playback URL, or ``None`` when the format is ciphered."""

    signature_cipher: str | None = None
    """Opaque cipher payload; requires a decipherer to become a URL."""

    width: int | None = None
    height: int | None = None
    fps: int | None = None

    audio_sample_rate: int | None = None
    audio_channels: int | None = None
    audio_track: AudioTrack | None = None

    language: str | None = None
    """Language tag of the audio content, or ``None`` if unknown."""

    approx_duration_ms: int = 0
    """Approximate total duration in milliseconds."""

    is_type_otf: bool = False
    """``True`` for open-timing streams whose durations must be probed."""

    index_range: ByteRange | None = None
    init_range: ByteRange | None = None

    @property
    def has_video(self) -> bool:
        return self.mime_type.startswith("video/")

    @property
    def has_audio(self) -> bool:
        return self.mime_type.startswith("audio/")

    @property
    def container(self) -> str:
        """Mime type without parameters (``video/mp4``)."""
        return self.mime_type.split(";", 1)[0].strip()

    @property
    def codecs(self) -> str | None:
        """Value of the ``codecs="..."`` mime parameter, if any."""
        marker = 'codecs="'
        start = self.mime_type.find(marker)
        if start == -1:
            return None
        start += len(marker)
        end = self.mime_type.find('"', start)
        if end == -1:
            return None
        return self.mime_type[start:end]

    @property
    def is_addressable(self) -> bool:
        """Whether segments can be located, either by probing or by ranges."""
        if self.is_type_otf:
            return True
        return self.index_range is not None and self.init_range is not None


# ---------------------------------------------------------------------------
# Typed collection wrapper
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FormatCollection:
    """Immutable, ordered collection of :class:`Format` entries.

    The tuple guarantees immutability.  Convenience dunder methods make
    the collection usable in boolean and length contexts.
    """

    formats: tuple[Format, ...]

    def __len__(self) -> int:
        return len(self.formats)

    def __bool__(self) -> bool:
        return len(self.formats) > 0


# ---------------------------------------------------------------------------
# Segment addressing
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SegmentDuration:
    """One ``Segment-Durations-Ms`` entry."""

    duration_ms: int
    repeat_count: int | None = None
    """Number of *additional* times the duration recurs, if given."""


@dataclass(frozen=True, slots=True)
class StaticSegmentInfo:
    """Segment addressing for formats with known byte ranges."""

    base_url: str
    index_range: ByteRange
    init_range: ByteRange


@dataclass(frozen=True, slots=True)
class DynamicSegmentInfo:
    """Segment addressing discovered by probing an OTF stream."""

    resolved_url: str
    """Final probe URL with the forced ``rn``/``sq`` parameters removed."""

    segment_durations: tuple[SegmentDuration, ...]

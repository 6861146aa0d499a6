"""Core manifest service — maps streaming data and drives assembly.

This is the central service class consumed by the CLI layer.  It
depends on an :class:`~ytd_dash.core.protocols.HttpFetcher` and an
optional :class:`~ytd_dash.core.protocols.Decipherer` injected at
construction time (dependency inversion), keeping the core free of any
external-system imports.

Guarantees
----------
* Pure orchestration — no filesystem access, no ``print()``.
* Only :class:`~ytd_dash.exceptions.YtdDashError` subclasses escape.
* Raw-dict parsing is deterministic and stateless.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from ytd_dash.core.manifest import ManifestOptions, assemble
from ytd_dash.core.models import AudioTrack, ByteRange, Format, FormatCollection
from ytd_dash.core.protocols import Decipherer, HttpFetcher
from ytd_dash.exceptions import (
    ManifestAssemblyError,
    StreamingDataError,
    YtdDashError,
)
from ytd_dash.utils.urls import parse_xtags, query_param

logger = logging.getLogger(__name__)

OTF_STREAM_TYPE: str = "FORMAT_STREAM_TYPE_OTF"
ACONT_DUBBED: str = "dubbed"
ACONT_DESCRIPTIVE: str = "descriptive"


class ManifestService:
    """Stateless service that turns streaming data into DASH manifests.

    Parameters
    ----------
    http:
        Fetcher used to probe OTF formats.  Without one, OTF formats
        make assembly fail.
    decipherer:
        Optional decipherer for ciphered formats.
    """

    def __init__(
        self,
        http: HttpFetcher | None = None,
        decipherer: Decipherer | None = None,
    ) -> None:
        self._http: HttpFetcher | None = http
        self._decipherer: Decipherer | None = decipherer

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse_streaming_data(self, raw: dict[str, Any]) -> FormatCollection:
        """Map a ``streamingData`` payload to a :class:`FormatCollection`.

        A full player response (with a ``streamingData`` key) is accepted
        as well.

        Raises
        ------
        StreamingDataError
            If no ``adaptiveFormats`` list is present.
        """
        streaming_data = raw.get("streamingData", raw)
        if not isinstance(streaming_data, dict):
            raise StreamingDataError("Streaming data not available.")

        raw_formats = streaming_data.get("adaptiveFormats")
        if not isinstance(raw_formats, list):
            raise StreamingDataError(
                "Streaming data has no adaptive formats.",
                hint="The video may be live, or only provide muxed formats.",
            )

        formats: list[Format] = []
        for entry in raw_formats:
            if not isinstance(entry, dict):
                continue
            parsed = self._parse_single_format(entry)
            if parsed is None:
                logger.debug("Skipping malformed adaptive format entry: %r", entry.get("itag"))
                continue
            formats.append(parsed)
        return FormatCollection(formats=tuple(formats))

    async def build(
        self,
        formats: Sequence[Format],
        *,
        reject_format: Callable[[Format], bool] | None = None,
        transform_url: Callable[[str], str] | None = None,
        cpn: str = "",
        player: Any = None,
    ) -> str:
        """Assemble the MPD document for *formats*.

        Raises
        ------
        YtdDashError
            Any assembly failure (see :func:`~ytd_dash.core.manifest.assemble`).
        ManifestAssemblyError
            For unexpected failures, e.g. inside ``transform_url``.
        """
        options = ManifestOptions(
            reject_format=reject_format,
            transform_url=transform_url,
            cpn=cpn,
            player=player,
            decipherer=self._decipherer,
            http=self._http,
        )
        try:
            return await assemble(formats, options)
        except YtdDashError:
            raise
        except Exception as exc:
            raise ManifestAssemblyError(
                f"Unexpected error while assembling the manifest: {exc}",
            ) from exc

    def build_sync(
        self,
        formats: Sequence[Format],
        *,
        reject_format: Callable[[Format], bool] | None = None,
        transform_url: Callable[[str], str] | None = None,
        cpn: str = "",
        player: Any = None,
    ) -> str:
        """Blocking wrapper around :meth:`build` for synchronous callers."""
        return asyncio.run(
            self.build(
                formats,
                reject_format=reject_format,
                transform_url=transform_url,
                cpn=cpn,
                player=player,
            )
        )

    # ------------------------------------------------------------------
    # Raw-dict → domain-model parsers (pure)
    # ------------------------------------------------------------------

    @staticmethod
    def _optional_int(value: object) -> int | None:
        """Coerce InnerTube's string-or-number fields to ``int``."""
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(float(value))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None

    @classmethod
    def _parse_range(cls, raw: object) -> ByteRange | None:
        if not isinstance(raw, dict):
            return None
        start = cls._optional_int(raw.get("start"))
        end = cls._optional_int(raw.get("end"))
        if start is None or end is None:
            return None
        return ByteRange(start=start, end=end)

    @staticmethod
    def _stream_url(raw: dict[str, Any]) -> str | None:
        """Plain URL, or the ``url`` packed inside the signature cipher."""
        url = raw.get("url")
        if isinstance(url, str):
            return url
        cipher = raw.get("signatureCipher") or raw.get("cipher")
        if isinstance(cipher, str):
            return query_param("?" + cipher, "url")
        return None

    @classmethod
    def _audio_content(cls, raw: dict[str, Any], display_name: str) -> str | None:
        """Return the ``acont`` xtag (``original``, ``dubbed``, ...).

        Without xtags the track name is used as a fallback hint.
        """
        url = cls._stream_url(raw)
        xtags = query_param(url, "xtags") if url else None
        if xtags:
            acont = parse_xtags(xtags).get("acont")
            if acont:
                return acont

        name = display_name.lower()
        if "descriptive" in name:
            return ACONT_DESCRIPTIVE
        if "dubbed" in name:
            return ACONT_DUBBED
        return None

    @classmethod
    def _parse_audio_track(cls, raw: dict[str, Any]) -> AudioTrack | None:
        track = raw.get("audioTrack")
        if not isinstance(track, dict) or not track.get("id"):
            return None
        display_name = str(track.get("displayName", ""))
        acont = cls._audio_content(raw, display_name) or ""
        return AudioTrack(
            id=str(track["id"]),
            display_name=display_name,
            is_default=bool(track.get("audioIsDefault", False)),
            # ``dubbed-auto`` marks machine dubs.
            is_dubbed=acont.startswith(ACONT_DUBBED),
            is_descriptive=acont == ACONT_DESCRIPTIVE,
        )

    @classmethod
    def _parse_single_format(cls, raw: dict[str, Any]) -> Format | None:
        """Convert one raw ``adaptiveFormats`` entry, or ``None`` if unusable."""
        itag = cls._optional_int(raw.get("itag"))
        mime_type = raw.get("mimeType")
        if itag is None or not isinstance(mime_type, str):
            return None

        audio_track = cls._parse_audio_track(raw)
        language = raw.get("language")
        if language is None and audio_track is not None:
            # Track ids look like ``en.4`` or ``de-DE.3``.
            language = audio_track.id.split(".", 1)[0]

        cipher = raw.get("signatureCipher") or raw.get("cipher")
        raw_fps = raw.get("fps")

        return Format(
            itag=itag,
            mime_type=mime_type,
            bitrate=cls._optional_int(raw.get("bitrate")) or 0,
            url=raw.get("url") if isinstance(raw.get("url"), str) else None,
            signature_cipher=str(cipher) if cipher else None,
            width=cls._optional_int(raw.get("width")),
            height=cls._optional_int(raw.get("height")),
            fps=round(raw_fps) if isinstance(raw_fps, (int, float)) else None,
            audio_sample_rate=cls._optional_int(raw.get("audioSampleRate")),
            audio_channels=cls._optional_int(raw.get("audioChannels")),
            audio_track=audio_track,
            language=str(language) if language else None,
            approx_duration_ms=cls._optional_int(raw.get("approxDurationMs")) or 0,
            is_type_otf=raw.get("type") == OTF_STREAM_TYPE,
            index_range=cls._parse_range(raw.get("indexRange")),
            init_range=cls._parse_range(raw.get("initRange")),
        )

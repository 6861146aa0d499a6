"""Custom exception hierarchy for ytd-dash.

All exceptions that cross layer boundaries must inherit from
:class:`YtdDashError`.  Raw third-party exceptions (yt-dlp, lxml, JSON
decoding) must NEVER propagate beyond the layer that called the library —
they are caught and re-raised as a typed subclass defined here.

Hierarchy
---------
YtdDashError
├── StreamingDataError
├── NoUsableFormatsError
├── NoProbeCapabilityError
├── ProbeError
│   ├── ProbeFailedError
│   └── ProbeParseError
├── MissingByteRangeError
├── DecipherError
│   ├── NoDecipherCapabilityError
│   └── DecipherFailedError
├── RenderError
├── ManifestAssemblyError
├── FormatSelectionError
└── EnvironmentError
    └── EnvironmentCheckError
"""

from __future__ import annotations


class YtdDashError(Exception):
    """Base exception for all ytd-dash errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Input ----------------------------------------------------------------

class StreamingDataError(YtdDashError):
    """Raised when the streaming data payload cannot be read or mapped."""


class NoUsableFormatsError(YtdDashError):
    """Raised when no adaptive format survives filtering."""


# --- Segment probing (OTF streams) ----------------------------------------

class NoProbeCapabilityError(YtdDashError):
    """Raised when an OTF format must be probed but no fetcher was given."""

    def __init__(self, message: str, *, itag: int, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.itag: int = itag


class ProbeError(YtdDashError):
    """Base class for failures of the segment-duration probe."""

    def __init__(self, message: str, *, url: str, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.url: str = url
        """The probed URL, including the forced ``rn``/``sq`` parameters."""


class ProbeFailedError(ProbeError):
    """Raised when the probe request itself fails (transport, HTTP status)."""


class ProbeParseError(ProbeError):
    """Raised when the probe response lacks a usable duration header."""


# --- Segment addressing ---------------------------------------------------

class MissingByteRangeError(YtdDashError):
    """Raised when a static format lacks its index or init byte range."""

    def __init__(self, message: str, *, itag: int, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.itag: int = itag


# --- URL deciphering ------------------------------------------------------

class DecipherError(YtdDashError):
    """Base class for failures while producing a playable format URL."""

    def __init__(self, message: str, *, itag: int, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.itag: int = itag


class NoDecipherCapabilityError(DecipherError):
    """Raised when a ciphered format is encountered without a decipherer."""


class DecipherFailedError(DecipherError):
    """Raised when the injected decipherer fails unexpectedly."""


# --- Rendering / assembly -------------------------------------------------

class RenderError(YtdDashError):
    """Raised when a resolved tree cannot be rendered to XML."""


class ManifestAssemblyError(YtdDashError):
    """Raised for unexpected failures while assembling a manifest."""


# --- Interactive selection ------------------------------------------------

class FormatSelectionError(YtdDashError):
    """Raised when the interactive format selection yields nothing."""


# --- Environment / tooling ------------------------------------------------

class EnvironmentError(YtdDashError):
    """Raised when a required runtime dependency is not available."""


class EnvironmentCheckError(EnvironmentError):
    """Raised when a required environment precondition is not met."""


def append_ytdlp_upgrade_suggestion(hint: str) -> str:
    """Append yt-dlp upgrade guidance to an existing hint text.

    The suggestion is appended only once and preserves the original
    hint content verbatim.
    """
    marker = "Also try updating yt-dlp:"
    if marker in hint:
        return hint
    return "\n".join(
        (
            hint,
            marker,
            "    pip install --upgrade yt-dlp",
        )
    )

"""Core / service layer — tree building, format grouping, manifest assembly.

Rules
-----
* No ``print()`` calls.
* No filesystem I/O; network access only through injected protocols.
* No imports from ``cli`` or ``infra``.
* All functions must be fully typed; identical inputs give identical
  output.
"""

from ytd_dash.core.manifest import ManifestOptions, assemble
from ytd_dash.core.manifest_service import ManifestService
from ytd_dash.core.models import (
    AudioTrack,
    ByteRange,
    DynamicSegmentInfo,
    Format,
    FormatCollection,
    SegmentDuration,
    StaticSegmentInfo,
)
from ytd_dash.core.protocols import Decipherer, HttpFetcher, HttpResponse

__all__: list[str] = [
    "AudioTrack",
    "ByteRange",
    "Decipherer",
    "DynamicSegmentInfo",
    "Format",
    "FormatCollection",
    "HttpFetcher",
    "HttpResponse",
    "ManifestOptions",
    "ManifestService",
    "SegmentDuration",
    "StaticSegmentInfo",
    "assemble",
]

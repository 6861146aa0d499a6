"""ytd-dash — MPEG-DASH manifests from YouTube adaptive formats.

Built around a small asynchronous tree builder, lxml serialization and
yt-dlp networking, with a strict layered architecture.
"""

from ytd_dash.version import __version__

__all__: list[str] = ["__version__"]

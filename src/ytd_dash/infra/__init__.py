"""Infrastructure layer — external system integration.

This layer wraps all interaction with yt-dlp's networking stack and the
filesystem.  Every raw third-party exception must be caught here and
re-raised as a :class:`~ytd_dash.exceptions.YtdDashError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from ytd_dash.infra.streaming_data_loader import load_streaming_data
from ytd_dash.infra.ytdlp_http import FetchResponse, YtDlpHttpFetcher

__all__: list[str] = [
    "FetchResponse",
    "YtDlpHttpFetcher",
    "load_streaming_data",
]

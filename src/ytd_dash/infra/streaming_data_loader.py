"""Infrastructure: loading streaming data payloads from disk or stdin.

The payload is the JSON ``streamingData`` object of an InnerTube player
response (or the whole player response).  JSON and filesystem errors
are mapped to :class:`~ytd_dash.exceptions.StreamingDataError`.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from ytd_dash.exceptions import StreamingDataError

STDIN_SOURCE: str = "-"


def load_streaming_data(source: str) -> dict[str, Any]:
    """Read and decode the JSON payload at *source* (``-`` for stdin).

    Raises
    ------
    StreamingDataError
        If the file cannot be read, is not JSON, or is not an object.
    """
    try:
        if source == STDIN_SOURCE:
            text = sys.stdin.read()
        else:
            text = Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        raise StreamingDataError(
            f"Cannot read streaming data from {source}: {exc.strerror or exc}",
        ) from exc

    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StreamingDataError(
            f"Streaming data is not valid JSON: {exc.msg} (line {exc.lineno})",
            hint="Pass the streamingData object or the full player response.",
        ) from exc

    if not isinstance(data, dict):
        raise StreamingDataError("Streaming data must be a JSON object.")
    return data

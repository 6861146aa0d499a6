"""Interactive format selection UI for the CLI layer.

This module is responsible for:

* Rendering a Rich table of the adaptive formats found in the input.
* Prompting the user to tick the formats to keep via a questionary
  checkbox.
* Returning the selection keys (itag plus audio track) of the ticked
  formats.

All display-related logic lives here — no manifest assembly, no
streaming-data parsing.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ytd_dash.cli.console import console
from ytd_dash.core.models import Format
from ytd_dash.exceptions import EnvironmentError, FormatSelectionError

SelectionKey = tuple[int, str | None]
"""``(itag, audio track id)`` identifying one format row."""


def _import_questionary() -> Any:
    """Import questionary lazily for interactive selection."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


def _import_rich_table() -> type[Any]:
    """Import rich table lazily for format rendering."""
    try:
        from rich.table import Table
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Table


# ---------------------------------------------------------------------------
# Presentation helpers (pure transforms, no I/O)
# ---------------------------------------------------------------------------

def _format_bitrate(bitrate: int) -> str:
    """Render bits per second as ``"1234 kbps"``."""
    return f"{bitrate // 1000} kbps"


def _format_quality(fmt: Format) -> str:
    """``"1920x1080@30"`` for video, ``"44100 Hz x2"`` for audio."""
    if fmt.has_video:
        if fmt.width is None or fmt.height is None:
            return "Unknown"
        fps = f"@{fmt.fps}" if fmt.fps is not None else ""
        return f"{fmt.width}x{fmt.height}{fps}"
    rate = f"{fmt.audio_sample_rate} Hz" if fmt.audio_sample_rate else "Unknown"
    channels = f" x{fmt.audio_channels}" if fmt.audio_channels else ""
    return rate + channels


def _format_addressing(fmt: Format) -> str:
    if fmt.is_type_otf:
        return "OTF"
    if fmt.is_addressable:
        return "ranges"
    return "—"


def _format_track(fmt: Format) -> str:
    if fmt.audio_track is None:
        return "—"
    return fmt.audio_track.display_name or fmt.audio_track.id


def selection_key(fmt: Format) -> SelectionKey:
    """Identify a format in the prompt.

    Multi-language videos reuse one itag for every audio track, so the
    track id is part of the key.
    """
    track_id = fmt.audio_track.id if fmt.audio_track is not None else None
    return fmt.itag, track_id


def _build_choice_label(fmt: Format) -> str:
    """Build the single-line label shown in the questionary checkbox.

    Format: ``"251   audio/webm   48000 Hz x2    160 kbps   Deutsch"``
    """
    label = (
        f"{fmt.itag:<5} {fmt.container:<11} {_format_quality(fmt):<14} "
        f"{_format_bitrate(fmt.bitrate)}"
    )
    if fmt.audio_track is not None:
        label += f"   {_format_track(fmt)}"
    return label


# ---------------------------------------------------------------------------
# Rich table display
# ---------------------------------------------------------------------------

def _display_format_table(formats: Sequence[Format]) -> None:
    """Print a Rich table summarising the available formats."""
    table_class = _import_rich_table()

    table = table_class(
        title="Adaptive Formats",
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("itag", justify="right", style="dim", width=5)
    table.add_column("Type", justify="left", min_width=10)
    table.add_column("Codecs", justify="left", min_width=12)
    table.add_column("Quality", justify="left", min_width=12)
    table.add_column("Bitrate", justify="right", min_width=10)
    table.add_column("Track", justify="left")
    table.add_column("Segments", justify="center")

    for fmt in formats:
        table.add_row(
            str(fmt.itag),
            fmt.container,
            fmt.codecs or "—",
            _format_quality(fmt),
            _format_bitrate(fmt.bitrate),
            _format_track(fmt),
            _format_addressing(fmt),
        )

    console.print()
    console.print(table)
    console.print()


# ---------------------------------------------------------------------------
# Public prompt function
# ---------------------------------------------------------------------------

def prompt_format_selection(formats: Sequence[Format]) -> set[SelectionKey]:
    """Display formats and let the user tick the ones to keep.

    Returns
    -------
    set[SelectionKey]
        The :func:`selection_key` of every selected format.

    Raises
    ------
    FormatSelectionError
        If the user cancels the prompt or selects nothing.
    """
    questionary = _import_questionary()

    _display_format_table(formats)

    choices = [
        questionary.Choice(
            title=_build_choice_label(fmt),
            value=selection_key(fmt),
            checked=fmt.is_addressable,
        )
        for fmt in formats
    ]

    selected: list[SelectionKey] | None = questionary.checkbox(
        "Select formats to include in the manifest:",
        choices=choices,
    ).ask()  # Returns None on Ctrl+C / Esc

    if not selected:
        raise FormatSelectionError(
            "No format selected.",
            hint="Use space to tick formats, then press Enter.",
        )

    return set(selected)

"""Tests for the interactive format selection UI (cli/format_prompt.py).

``questionary`` and the Rich table are replaced with light fakes — no
terminal interaction.  We test the logical mapping between the user's
ticks and the returned selection keys.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from ytd_dash.cli.format_prompt import (
    _build_choice_label,
    _format_addressing,
    _format_bitrate,
    _format_quality,
    _format_track,
    prompt_format_selection,
    selection_key,
)
from ytd_dash.core.models import AudioTrack, ByteRange, Format
from ytd_dash.exceptions import FormatSelectionError


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def _fmt(**overrides: Any) -> Format:
    defaults: dict[str, Any] = {
        "itag": 137,
        "mime_type": 'video/mp4; codecs="avc1.640028"',
        "bitrate": 4_200_000,
        "url": "https://example.com/137",
        "width": 1920,
        "height": 1080,
        "fps": 30,
        "index_range": ByteRange(741, 1234),
        "init_range": ByteRange(0, 740),
    }
    defaults.update(overrides)
    return Format(**defaults)


def _audio(**overrides: Any) -> Format:
    defaults: dict[str, Any] = {
        "itag": 251,
        "mime_type": 'audio/webm; codecs="opus"',
        "bitrate": 160_000,
        "width": None,
        "height": None,
        "fps": None,
        "audio_sample_rate": 48_000,
        "audio_channels": 2,
    }
    defaults.update(overrides)
    return _fmt(**defaults)


# ---------------------------------------------------------------------------
# Presentation helpers
# ---------------------------------------------------------------------------

class TestFormatBitrate:
    def test_kbps(self) -> None:
        assert _format_bitrate(4_200_000) == "4200 kbps"

    def test_truncates(self) -> None:
        assert _format_bitrate(160_999) == "160 kbps"


class TestFormatQuality:
    def test_video(self) -> None:
        assert _format_quality(_fmt()) == "1920x1080@30"

    def test_video_without_fps(self) -> None:
        assert _format_quality(_fmt(fps=None)) == "1920x1080"

    def test_video_without_size(self) -> None:
        assert _format_quality(_fmt(width=None)) == "Unknown"

    def test_audio(self) -> None:
        assert _format_quality(_audio()) == "48000 Hz x2"

    def test_audio_unknown(self) -> None:
        assert _format_quality(_audio(audio_sample_rate=None, audio_channels=None)) == "Unknown"


class TestFormatAddressing:
    def test_ranges(self) -> None:
        assert _format_addressing(_fmt()) == "ranges"

    def test_otf(self) -> None:
        assert _format_addressing(_fmt(is_type_otf=True)) == "OTF"

    def test_unaddressable(self) -> None:
        assert _format_addressing(_fmt(init_range=None)) == "—"


class TestFormatTrack:
    def test_no_track(self) -> None:
        assert _format_track(_audio()) == "—"

    def test_display_name(self) -> None:
        track = AudioTrack(id="en.4", display_name="English")
        assert _format_track(_audio(audio_track=track)) == "English"

    def test_falls_back_to_id(self) -> None:
        track = AudioTrack(id="en.4", display_name="")
        assert _format_track(_audio(audio_track=track)) == "en.4"


class TestBuildChoiceLabel:
    def test_contains_all_fields(self) -> None:
        label = _build_choice_label(_fmt())
        assert label.startswith("137")
        assert "video/mp4" in label
        assert "1920x1080@30" in label
        assert "4200 kbps" in label

    def test_names_the_audio_track(self) -> None:
        track = AudioTrack(id="de.3", display_name="Deutsch")
        assert _build_choice_label(_audio(audio_track=track)).endswith("Deutsch")

    def test_no_track_column_without_track(self) -> None:
        assert _build_choice_label(_audio()).endswith("160 kbps")


class TestSelectionKey:
    def test_without_track(self) -> None:
        assert selection_key(_fmt()) == (137, None)

    def test_includes_track_id(self) -> None:
        track = AudioTrack(id="en.4", display_name="English")
        assert selection_key(_audio(audio_track=track)) == (251, "en.4")


# ---------------------------------------------------------------------------
# prompt_format_selection — selection mapping
# ---------------------------------------------------------------------------

class TestPromptFormatSelection:
    """``questionary.checkbox().ask()`` is mocked to return known selection keys."""

    def _run(self, formats: list[Format], answer: Any) -> tuple[Any, MagicMock]:
        questionary_mod = MagicMock()
        questionary_mod.Choice = _real_choice_class()
        questionary_mod.checkbox.return_value.ask.return_value = answer

        with patch(
            "ytd_dash.cli.format_prompt._import_questionary",
            return_value=questionary_mod,
        ), patch(
            "ytd_dash.cli.format_prompt._import_rich_table",
            return_value=_real_table_class(),
        ):
            result = prompt_format_selection(formats)
        return result, questionary_mod

    def test_returns_selected_keys(self) -> None:
        result, _ = self._run([_fmt(), _audio()], [(137, None), (251, None)])
        assert result == {(137, None), (251, None)}

    def test_one_choice_per_format(self) -> None:
        formats = [_fmt(), _fmt(itag=136), _audio()]
        _, questionary_mod = self._run(formats, [(136, None)])
        choices = questionary_mod.checkbox.call_args.kwargs["choices"]
        assert [c.value for c in choices] == [(137, None), (136, None), (251, None)]

    def test_addressable_formats_are_prechecked(self) -> None:
        formats = [_fmt(), _fmt(itag=136, index_range=None)]
        _, questionary_mod = self._run(formats, [(137, None)])
        choices = questionary_mod.checkbox.call_args.kwargs["choices"]
        assert [c.checked for c in choices] == [True, False]

    def test_cancel_raises(self) -> None:
        with pytest.raises(FormatSelectionError, match="No format selected"):
            self._run([_fmt()], None)

    def test_empty_selection_raises(self) -> None:
        with pytest.raises(FormatSelectionError):
            self._run([_fmt()], [])

    def test_same_itag_on_two_tracks_selected_separately(self) -> None:
        english = _audio(audio_track=AudioTrack(id="en.4", display_name="English"))
        german = _audio(audio_track=AudioTrack(id="de.3", display_name="Deutsch"))
        result, questionary_mod = self._run([english, german], [(251, "en.4")])
        choices = questionary_mod.checkbox.call_args.kwargs["choices"]
        assert [c.value for c in choices] == [(251, "en.4"), (251, "de.3")]
        assert result == {(251, "en.4")}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _real_choice_class() -> type:
    """Return a minimal Choice-like class for mocking questionary.Choice."""

    class FakeChoice:
        def __init__(self, title: str, value: Any, checked: bool = False) -> None:
            self.title = title
            self.value = value
            self.checked = checked

    return FakeChoice


def _real_table_class() -> type:
    """Return a minimal Table-like class for tests without rich."""

    class FakeTable:
        def __init__(self, *args: object, **kwargs: object) -> None:
            self.args = args
            self.kwargs = kwargs

        def add_column(self, *args: object, **kwargs: object) -> None:
            _ = args, kwargs

        def add_row(self, *args: object, **kwargs: object) -> None:
            _ = args, kwargs

    return FakeTable

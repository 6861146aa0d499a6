"""Exit-code constants used by the CLI layer.

Every exit path of ``ytd-dash`` maps to one of these values; tests
assert against the names, never against bare integers.
"""

from __future__ import annotations

SUCCESS: int = 0
"""The manifest was written (or diagnostics passed)."""

GENERAL_ERROR: int = 1
"""A YtdDashError was caught and its message and hint were shown."""

KEYBOARD_INTERRUPT: int = 130
"""Interrupted with Ctrl+C (128 + SIGINT)."""

UNEXPECTED_ERROR: int = 2
"""An exception outside the YtdDashError hierarchy reached the boundary."""

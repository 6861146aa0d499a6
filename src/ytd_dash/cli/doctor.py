"""``ytd-dash doctor`` — environment diagnostics command.

Gathers system information and renders a Rich table summarising
whether the runtime environment satisfies ytd-dash's requirements.

This module lives in the CLI layer and renders via Rich.  No business
logic resides here; it purely collects and displays diagnostic data.
"""

from __future__ import annotations

import platform
import sys

from ytd_dash.cli import exit_codes
from ytd_dash.cli.console import console
from ytd_dash.version import __version__


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    major, minor = sys.version_info[:2]
    ok = (major, minor) >= (3, 10)
    status = "[green]OK[/green]" if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _lxml_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the lxml row.

    lxml renders every manifest, so its absence is a failure.
    """
    try:
        from lxml import etree
    except ImportError:
        return "lxml", "NOT INSTALLED", "[red]FAIL[/red]"
    version = ".".join(str(part) for part in etree.LXML_VERSION[:3])
    return "lxml", version, "[green]OK[/green]"


def _ytdlp_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the yt-dlp row.

    yt-dlp is only needed to probe OTF streams, so a missing install is
    a warning rather than a failure.
    """
    try:
        from yt_dlp.version import __version__ as ydl_ver

        return "yt-dlp", ydl_ver, "[green]OK[/green]"
    except ImportError:
        pass

    try:
        import yt_dlp  # noqa: F401

        return "yt-dlp", "unknown", "[green]OK[/green]"
    except ImportError:
        return "yt-dlp", "NOT INSTALLED", "[yellow]WARN[/yellow]"


def _os_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the OS row."""
    system_raw = platform.system()
    system_display = {
        "Windows": "Windows",
        "Linux": "Linux",
        "Darwin": "macOS",
    }.get(system_raw, system_raw)
    release = platform.release()
    machine = platform.machine()
    value = f"{system_display} {release} ({machine})"
    return "OS", value, "[green]OK[/green]"


def _ytddash_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the ytd-dash version row."""
    return "ytd-dash", __version__, "[green]OK[/green]"


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    if "FAIL" in status:
        return "FAIL"
    if "WARN" in status:
        return "WARN"
    if "OK" in status:
        return "OK"
    return status


def _print_plain_doctor_table(checks: list[tuple[str, str, str]]) -> None:
    """Render doctor output without Rich."""
    print("\nytd-dash doctor", file=sys.stderr)
    print("=" * 56, file=sys.stderr)
    print(f"{'Component':<12} {'Value':<32} {'Status':<8}", file=sys.stderr)
    print("-" * 56, file=sys.stderr)
    for label, value, status in checks:
        plain_status = _status_plain(status)
        print(f"{label:<12} {value:<32} {plain_status:<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor() -> int:
    """Execute all diagnostic checks and render a summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when all critical checks pass,
        :data:`exit_codes.GENERAL_ERROR` if a critical check fails.
    """
    checks = [
        _ytddash_version_check(),
        _python_version_check(),
        _lxml_version_check(),
        _ytdlp_version_check(),
        _os_check(),
    ]

    has_failure = any("FAIL" in status for _, _, status in checks)
    ytdlp_missing = any(
        label == "yt-dlp" and "WARN" in status for label, _, status in checks
    )

    rich_available = True
    try:
        from rich.table import Table
    except ModuleNotFoundError:
        rich_available = False

    if rich_available:
        table = Table(
            title="ytd-dash doctor",
            show_header=True,
            header_style="bold cyan",
            border_style="dim",
        )
        table.add_column("Component", style="bold", min_width=12)
        table.add_column("Value", min_width=20)
        table.add_column("Status", justify="center", min_width=8)

        for label, value, status in checks:
            table.add_row(label, value, status)

        console.print()
        console.print(table)
        console.print()
    else:
        _print_plain_doctor_table(checks)

    if ytdlp_missing:
        if rich_available:
            console.print("[yellow]yt-dlp is not installed; OTF streams cannot be probed.[/yellow]")
            console.print("Install with:  [bold]pip install yt-dlp[/bold]\n")
        else:
            print("yt-dlp is not installed; OTF streams cannot be probed.", file=sys.stderr)
            print("Install with:  pip install yt-dlp\n", file=sys.stderr)

    if has_failure:
        if rich_available:
            console.print("[bold red]Some checks failed.[/bold red]")
        else:
            print("Some checks failed.", file=sys.stderr)
        return exit_codes.GENERAL_ERROR

    if rich_available:
        console.print("[bold green]All checks passed.[/bold green]")
    else:
        print("All checks passed.", file=sys.stderr)
    return exit_codes.SUCCESS

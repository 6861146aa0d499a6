"""CLI application entry point and command routing for ytd-dash.

This module is the **sole error boundary** for the entire application.
It catches :class:`~ytd_dash.exceptions.YtdDashError`, ``KeyboardInterrupt``,
and any unexpected ``Exception``, rendering user-friendly messages via Rich
and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here — all work is delegated to the core/service
  and infrastructure layers.
* The manifest itself is the program's output and goes to stdout (or
  ``--output``); every other message goes to stderr through the console.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from ytd_dash.cli import exit_codes
from ytd_dash.cli.console import configure_logging, console
from ytd_dash.exceptions import YtdDashError
from ytd_dash.version import __version__

if TYPE_CHECKING:
    from ytd_dash.cli.format_prompt import SelectionKey
    from ytd_dash.core.models import Format


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    The CLI supports:
    * ``ytd-dash <streaming-data.json | ->`` — write a DASH manifest
    * ``ytd-dash doctor``                     — environment diagnostics
    * ``ytd-dash --version``
    """
    parser = argparse.ArgumentParser(
        prog="ytd-dash",
        description="Build an MPEG-DASH manifest from YouTube streaming data.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "target",
        nargs="?",
        default=None,
        help=(
            "Path to a streamingData / player response JSON file ('-' for "
            "stdin), or 'doctor' to run diagnostics."
        ),
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Write the manifest to this file instead of stdout.",
    )
    parser.add_argument(
        "--cpn",
        default="",
        help="Content playback nonce added to every stream URL.",
    )
    kind = parser.add_mutually_exclusive_group()
    kind.add_argument(
        "--audio-only",
        action="store_true",
        help="Only include audio formats.",
    )
    kind.add_argument(
        "--video-only",
        action="store_true",
        help="Only include video formats.",
    )
    parser.add_argument(
        "--no-probe",
        action="store_true",
        help="Skip OTF formats instead of probing them over the network.",
    )
    parser.add_argument(
        "--select",
        action="store_true",
        help="Pick the formats to include interactively.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging on stderr.",
    )
    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _build_reject_predicate(
    args: argparse.Namespace,
    selected: set[SelectionKey] | None,
) -> Callable[[Format], bool] | None:
    """Combine the CLI filters into a single rejection predicate."""
    checks: list[Callable[[Format], bool]] = []
    if args.audio_only:
        checks.append(lambda fmt: not fmt.has_audio)
    if args.video_only:
        checks.append(lambda fmt: not fmt.has_video)
    if args.no_probe:
        checks.append(lambda fmt: fmt.is_type_otf)
    if selected is not None:
        from ytd_dash.cli.format_prompt import selection_key

        checks.append(lambda fmt: selection_key(fmt) not in selected)

    if not checks:
        return None
    return lambda fmt: any(check(fmt) for check in checks)


def _handle_build(args: argparse.Namespace) -> int:
    """Build a manifest from a streaming data payload.

    Flow:
    1. Load the JSON payload (file or stdin).
    2. Map it to formats through :class:`ManifestService`.
    3. Optionally let the user pick formats interactively.
    4. Assemble the manifest, probing OTF formats via yt-dlp.
    5. Write it to stdout or ``--output``.
    """
    from ytd_dash.core.manifest_service import ManifestService
    from ytd_dash.infra.streaming_data_loader import load_streaming_data
    from ytd_dash.infra.ytdlp_http import YtDlpHttpFetcher

    raw = load_streaming_data(args.target)
    service = ManifestService(http=YtDlpHttpFetcher())
    collection = service.parse_streaming_data(raw)

    selected: set[SelectionKey] | None = None
    if args.select:
        from ytd_dash.cli.format_prompt import prompt_format_selection

        selected = prompt_format_selection(collection.formats)

    manifest = service.build_sync(
        collection.formats,
        reject_format=_build_reject_predicate(args, selected),
        cpn=args.cpn,
    )

    if args.output is None:
        sys.stdout.write(manifest)
        sys.stdout.write("\n")
        return exit_codes.SUCCESS

    output = Path(args.output)
    try:
        output.write_text(manifest, encoding="utf-8")
    except OSError as exc:
        raise YtdDashError(
            f"Cannot write manifest to {output}: {exc.strerror or exc}",
        ) from exc
    console.print(f"[bold green]Manifest written:[/bold green] {output}")
    return exit_codes.SUCCESS


def _handle_doctor() -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from ytd_dash.cli.doctor import run_doctor

    return run_doctor()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the ytd-dash CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.target is None:
        parser.print_help()
        return exit_codes.SUCCESS

    configure_logging(args.verbose)

    if args.target.lower() == "doctor":
        return _handle_doctor()

    return _handle_build(args)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except YtdDashError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)

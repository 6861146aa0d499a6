"""Allow ``python -m ytd_dash`` invocation.

Delegates to the CLI error-boundary entry point so that
``python -m ytd_dash`` behaves identically to the ``ytd-dash`` console
script.
"""

from __future__ import annotations

from ytd_dash.cli.app import cli

if __name__ == "__main__":
    cli()

"""Main Typer application — imports and registers all CLI commands.

Entry point: ``buildvault`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from buildvault.cli.commands.fetch import fetch_cmd, integrity_cmd
from buildvault.cli.commands.listing_cmd import listing_fetch_cmd, listing_refresh_cmd
from buildvault.cli.commands.materialize import materialize_cmd
from buildvault.config import VaultConfig

app = typer.Typer(
    name="buildvault",
    help="buildvault: integrity-verified artifact cache and flat dependency materializer.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (defaults to BUILDVAULT_LOG_LEVEL)."
    ),
) -> None:
    """Configure logging for every subcommand."""
    level = (log_level or VaultConfig().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
        force=True,
    )


# Register subcommands
app.command(name="fetch", help="Fetch an artifact and verify its integrity.")(fetch_cmd)
app.command(name="integrity", help="Compute integrity digests for artifacts.")(integrity_cmd)
app.command(name="materialize", help="Copy modules and their dependencies flat.")(materialize_cmd)
app.command(name="listing-refresh", help="Regenerate integrity values in a listing.")(
    listing_refresh_cmd
)
app.command(name="listing-fetch", help="Fetch every artifact in a listing.")(listing_fetch_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

"""``buildvault listing-refresh`` / ``listing-fetch`` — operate on an artifact listing."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from buildvault.config import VaultConfig
from buildvault.core.integrity_cache import IntegrityCache
from buildvault.core.listing import fetch_all, refresh_integrity
from buildvault.errors import BuildVaultError
from buildvault.models.listing import ArtifactListing

console = Console()


def _load(listing_path: Path) -> ArtifactListing:
    if not listing_path.exists():
        console.print(f"[bold red]Listing not found:[/bold red] {listing_path}")
        raise typer.Exit(code=1)
    try:
        return ArtifactListing.load(listing_path)
    except BuildVaultError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)


def listing_refresh_cmd(
    listing_path: Path = typer.Argument(..., help="Path to the listing JSON file."),
) -> None:
    """Regenerate every integrity value in a listing and rewrite it."""
    listing = _load(listing_path)
    cache = IntegrityCache.from_config(VaultConfig(), console=console)
    try:
        updated = refresh_integrity(listing, cache)
    except (BuildVaultError, OSError) as exc:
        console.print(f"[bold red]Refresh failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    updated.save(listing_path)
    console.print(
        f"[bold green]Updated {len(updated.entries)} integrity value(s)[/bold green] in {listing_path}"
    )


def listing_fetch_cmd(
    listing_path: Path = typer.Argument(..., help="Path to the listing JSON file."),
) -> None:
    """Fetch and verify every artifact in a listing."""
    listing = _load(listing_path)
    cache = IntegrityCache.from_config(VaultConfig(), console=console)
    try:
        paths = fetch_all(listing, cache)
    except (BuildVaultError, OSError) as exc:
        console.print(f"[bold red]Fetch failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    table = Table(title="Verified Artifacts")
    table.add_column("Name", style="cyan")
    table.add_column("Path")
    for name, path in paths.items():
        table.add_row(name, str(path))
    console.print(table)

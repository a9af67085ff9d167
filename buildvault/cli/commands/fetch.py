"""``buildvault fetch`` and ``buildvault integrity`` — single-artifact commands."""

from __future__ import annotations

import typer
from rich.console import Console

from buildvault.config import VaultConfig
from buildvault.core.integrity_cache import IntegrityCache
from buildvault.errors import BuildVaultError

console = Console()


def fetch_cmd(
    url: str = typer.Argument(..., help="file:// path or http(s) URL of the artifact."),
    integrity: str = typer.Option(
        "",
        "--integrity",
        "-i",
        help="Expected integrity digest, e.g. sha512-<base64>.",
    ),
) -> None:
    """Fetch an artifact into the cache and verify it.

    Prints the verified local path on success.
    """
    cache = IntegrityCache.from_config(VaultConfig(), console=console)
    try:
        path = cache.fetch_verified(url, integrity)
    except (BuildVaultError, OSError) as exc:
        console.print(f"[bold red]Fetch failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(str(path), highlight=False, soft_wrap=True)


def integrity_cmd(
    urls: list[str] = typer.Argument(..., help="One or more file:// paths or URLs."),
    algorithm: str = typer.Option(
        "sha512", "--algorithm", "-a", help="Hash algorithm for the digest."
    ),
) -> None:
    """Compute the integrity digest of one or more artifacts."""
    cache = IntegrityCache.from_config(VaultConfig(), console=console)
    for url in urls:
        try:
            digest = cache.resolve_digest(url, (algorithm,))
        except (BuildVaultError, OSError) as exc:
            console.print(f"[bold red]Cannot hash {url}:[/bold red] {exc}")
            raise typer.Exit(code=1)
        console.print(f"{digest}  {url}", highlight=False, soft_wrap=True)

"""``buildvault materialize MODULE`` — copy a package and its dependencies flat."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from buildvault.config import VaultConfig
from buildvault.core.integrity_cache import IntegrityCache
from buildvault.core.materializer import DependencyMaterializer, default_search_paths
from buildvault.errors import BuildVaultError
from buildvault.models.listing import ArtifactListing

console = Console()


def materialize_cmd(
    module_ids: list[str] = typer.Argument(..., help="Module ids to materialize."),
    dest: Path = typer.Option(
        ...,
        "--dest",
        "-d",
        help="Destination directory (e.g. build/node_modules).",
    ),
    search_path: list[Path] = typer.Option(
        [],
        "--search-path",
        "-s",
        help="Directory containing package roots. Repeatable; searched in order.",
    ),
    listing: Path | None = typer.Option(
        None,
        "--listing",
        "-l",
        help="Artifact listing consulted for modules missing from every search path.",
    ),
    keep_going: bool = typer.Option(
        False,
        "--keep-going/--fail-fast",
        help="Continue with the next module id after a failure.",
    ),
) -> None:
    """Copy each module and its transitive dependencies into DEST, flattened."""
    config = VaultConfig()
    paths = search_path or config.search_paths or default_search_paths(Path.cwd())
    cache = artifacts = None
    if listing is not None:
        try:
            artifacts = ArtifactListing.load(listing)
        except (BuildVaultError, OSError) as exc:
            console.print(f"[bold red]Cannot read listing:[/bold red] {exc}")
            raise typer.Exit(code=1)
        cache = IntegrityCache.from_config(config, console=console)
    materializer = DependencyMaterializer(
        paths, copy_attempts=config.copy_attempts, cache=cache, artifacts=artifacts
    )

    dest.mkdir(parents=True, exist_ok=True)
    failures = 0
    for module_id in module_ids:
        try:
            copied = materializer.materialize(module_id, dest)
        except (BuildVaultError, OSError) as exc:
            failures += 1
            console.print(f"[bold red]Cannot materialize {module_id}:[/bold red] {exc}")
            if not keep_going:
                raise typer.Exit(code=1)
            continue
        if copied:
            console.print(
                f"[green]{module_id}[/green]: copied {len(copied)} package(s): "
                + ", ".join(copied)
            )
        else:
            console.print(f"[dim]{module_id}: already present[/dim]")

    if failures:
        raise typer.Exit(code=1)

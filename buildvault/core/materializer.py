"""Flat dependency materializer.

Copies a package and all of its transitive dependencies into a single
destination directory. Every package lands at the top level of the
destination, never nested inside the package that depends on it::

    dest/
        a/package.json
        b/package.json      # a depends on b
        c/package.json      # b depends on c

A module whose ``dest/<id>/package.json`` already exists is treated as
fully materialized and is never revisited, including its dependencies.
That presence check is the only cycle guard, so A -> B -> A terminates. It
also means the first copy of a shared dependency wins; if a module's
version changes or a copy was interrupted, clean the destination.

Each module's check-and-copy holds a lock on ``dest/<id>``, both in-process
and through a lock file under ``dest/.buildvault-locks/``, so separate
materializers and separate processes sharing a destination never copy the
same module at once.

A module that is on no search path may still come from an artifact listing:
its archive is fetched through the :class:`IntegrityCache`, verified,
unpacked under the cache root and copied from there.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import tempfile
from collections.abc import Iterable, Sequence
from pathlib import Path

from pydantic import ValidationError

from buildvault.core.archive import extract_archive, find_package_root
from buildvault.core.integrity_cache import IntegrityCache
from buildvault.core.single_flight import KeyedLocks
from buildvault.errors import CopyVerificationError, ManifestError, PackageNotFoundError
from buildvault.models.listing import ArtifactListing, ListingEntry
from buildvault.models.manifest import PackageManifest

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"
DEPENDENCY_DIR_NAME = "node_modules"
LOCK_DIR_NAME = ".buildvault-locks"


def default_search_paths(
    start: Path, dependency_dir_name: str = DEPENDENCY_DIR_NAME
) -> list[Path]:
    """Return ``<dir>/node_modules`` for ``start`` and each ancestor, nearest first.

    Directories already named ``node_modules`` are skipped, matching the
    platform's lookup convention.
    """
    start = Path(start).resolve()
    paths = []
    for directory in (start, *start.parents):
        if directory.name == dependency_dir_name:
            continue
        paths.append(directory / dependency_dir_name)
    return paths


def read_manifest(package_root: Path, manifest_name: str = MANIFEST_NAME) -> PackageManifest:
    """Parse ``package_root``'s manifest.

    Raises
    ------
    FileNotFoundError
        If the manifest is missing.
    ManifestError
        If it is not valid JSON or has the wrong shape.
    """
    path = Path(package_root) / manifest_name
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return PackageManifest.model_validate(raw)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ManifestError(f"Invalid manifest {path}: {exc}") from exc


class DependencyMaterializer:
    """Resolves modules on a search path and copies them flat into a destination.

    Parameters
    ----------
    search_paths:
        Directories that contain package roots (``<path>/<module id>``),
        searched in order. Defaults to :func:`default_search_paths` of the
        current working directory.
    copy_attempts:
        How many times a copy is attempted before giving up when the
        manifest is not found at the destination afterwards.
    dependency_dir_name:
        Name of a package's nested dependency directory. It is excluded from
        copies and offered as an extra search path for that package's
        dependencies.
    manifest_name:
        Manifest file name at each package root.
    cache, artifacts:
        Optional fallback for modules missing from every search path. When
        both are given, a module named in ``artifacts`` is fetched and
        verified through ``cache`` and unpacked before copying.
    """

    def __init__(
        self,
        search_paths: Sequence[Path] | None = None,
        *,
        copy_attempts: int = 3,
        dependency_dir_name: str = DEPENDENCY_DIR_NAME,
        manifest_name: str = MANIFEST_NAME,
        cache: IntegrityCache | None = None,
        artifacts: ArtifactListing | None = None,
    ) -> None:
        if copy_attempts < 1:
            raise ValueError("copy_attempts must be at least 1")
        if (cache is None) != (artifacts is None):
            raise ValueError("cache and artifacts must be given together")
        self._cache = cache
        self._artifacts = artifacts
        self._dependency_dir_name = dependency_dir_name
        self._manifest_name = manifest_name
        if search_paths is None:
            search_paths = default_search_paths(Path.cwd(), dependency_dir_name)
        self._search_paths = [Path(p) for p in search_paths]
        self._copy_attempts = copy_attempts
        self._locks = KeyedLocks()

    @property
    def search_paths(self) -> list[Path]:
        return list(self._search_paths)

    # ------------------------------------------------------------------
    # Materialize
    # ------------------------------------------------------------------

    def materialize(
        self,
        module_id: str,
        destination: Path,
        extra_search_paths: Iterable[Path] = (),
    ) -> list[str]:
        """Copy ``module_id`` and its transitive dependencies into ``destination``.

        Returns the module ids copied by this call, in copy order. Modules
        already present at the destination are skipped and not listed.

        Raises
        ------
        PackageNotFoundError
            If a module is not found on the search path or in the listing.
        IntegrityMismatch, TransferError, ArchiveError
            If a module from the listing cannot be fetched or unpacked.
        CopyVerificationError
            If a copy never produces a manifest at the destination.
        ManifestError
            If a copied manifest cannot be parsed.
        """
        destination = Path(destination)
        copied: list[str] = []
        # Depth-first; dependencies are pushed in reverse to keep manifest order.
        stack: list[tuple[str, list[Path]]] = [(module_id, list(extra_search_paths))]
        while stack:
            current, extra = stack.pop()
            source = self._materialize_one(current, destination, extra)
            if source is None:
                continue
            copied.append(current)
            manifest = read_manifest(destination / current, self._manifest_name)
            nested = [source / self._dependency_dir_name]
            for dependency in reversed(manifest.dependency_ids):
                stack.append((dependency, nested))
        return copied

    def is_materialized(self, module_id: str, destination: Path) -> bool:
        return (Path(destination) / module_id / self._manifest_name).is_file()

    def _materialize_one(
        self, module_id: str, destination: Path, extra: list[Path]
    ) -> Path | None:
        """Copy one module unless already present. Returns its source root if copied."""
        target = destination / module_id
        lock_file = destination / LOCK_DIR_NAME / f"{module_id.replace('/', '+')}.lock"
        with self._locks.hold(str(target.resolve()), lock_file):
            if self.is_materialized(module_id, destination):
                logger.debug("Skipping %s: already present at %s", module_id, target)
                return None
            source = self.resolve(module_id, extra)
            self._copy_package(module_id, source, target)
            return source

    # ------------------------------------------------------------------
    # Resolution and copy
    # ------------------------------------------------------------------

    def resolve(self, module_id: str, extra_search_paths: Iterable[Path] = ()) -> Path:
        """Return the package root for ``module_id``.

        Searches the configured paths first, then ``extra_search_paths``,
        then the artifact listing if one was given. The listing fallback may
        download.

        Raises
        ------
        PackageNotFoundError
            If no path holds the module and the listing does not name it.
        IntegrityMismatch, TransferError, ArchiveError
            If the listed archive cannot be fetched, verified or unpacked.
        """
        candidates = [*self._search_paths, *(Path(p) for p in extra_search_paths)]
        for base in candidates:
            root = base / module_id
            if (root / self._manifest_name).is_file():
                return root
        searched = [str(c) for c in candidates]
        if self._artifacts is not None:
            entry = self._artifacts.entries.get(module_id)
            if entry is not None:
                return self._unpack_artifact(module_id, entry)
            searched.append("<artifact listing>")
        raise PackageNotFoundError(module_id, searched)

    def _unpack_artifact(self, module_id: str, entry: ListingEntry) -> Path:
        logger.info("Resolving %s from artifact listing: %s", module_id, entry.url)
        archive = self._cache.fetch_verified(entry.url, entry.integrity)
        root = self._cache.cache_root.ensure()
        # Keyed by digest so a new release never reuses an old unpacked tree.
        tag = hashlib.sha256(entry.integrity.encode("utf-8")).hexdigest()[:16]
        staging = root / f"{archive.name}.{tag}.unpacked"
        with self._locks.hold(str(staging), Path(f"{staging}.lock")):
            if not staging.is_dir():
                scratch = Path(tempfile.mkdtemp(prefix=f"{archive.name}.", dir=root))
                try:
                    extract_archive(archive, scratch)
                    os.replace(scratch, staging)
                except BaseException:
                    shutil.rmtree(scratch, ignore_errors=True)
                    raise
        return find_package_root(staging, self._manifest_name)

    def _copy_package(self, module_id: str, source: Path, target: Path) -> None:
        nested = source / self._dependency_dir_name

        def _ignore(directory: str, names: list[str]) -> set[str]:
            if Path(directory) == source and self._dependency_dir_name in names:
                return {self._dependency_dir_name}
            return set()

        for attempt in range(1, self._copy_attempts + 1):
            logger.info("Copying %s from %s (attempt %d)", module_id, source, attempt)
            shutil.copytree(
                source,
                target,
                ignore=_ignore if nested.exists() else None,
                copy_function=shutil.copy2,
                dirs_exist_ok=True,
            )
            if (target / self._manifest_name).is_file():
                return
            logger.warning(
                "Manifest missing at %s after copy attempt %d", target, attempt
            )
        raise CopyVerificationError(
            f"Failed to copy {module_id} to {target} after {self._copy_attempts} attempts"
        )

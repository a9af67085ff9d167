"""Integrity-verified artifact cache.

Maps a source locator plus an expected integrity digest to a verified local
file. Local (``file://``) artifacts are checked in place and never copied.
Remote artifacts are kept under the cache root and are re-verified on every
read; an entry is never trusted just because it exists.

The only recovery performed here is discarding a cache entry that fails
verification and downloading it again. A fresh download that still fails
verification is left on disk for inspection and reported as
``IntegrityMismatch``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from rich.console import Console

from buildvault.core.cache_root import CacheRoot
from buildvault.core.hasher import check_algorithms, check_file, integrity_of_file
from buildvault.core.single_flight import KeyedLocks
from buildvault.core.transfer import Downloader
from buildvault.errors import ConfigurationError, IntegrityMismatch
from buildvault.models.integrity import DEFAULT_ALGORITHM, Integrity
from buildvault.models.locator import SourceLocator

logger = logging.getLogger(__name__)


class IntegrityCache:
    """Fetches artifacts and verifies them against expected digests.

    Calls for the same cache entry are single-flight: they serialize on a
    per-entry lock (in-process and on disk), so a second caller finds the
    first caller's verified entry instead of downloading again. Calls for
    different entries run in parallel.

    Parameters
    ----------
    cache_root:
        Where remote artifacts are stored.
    session:
        Optional ``requests.Session``-compatible object for downloads.
    timeout, chunk_size, show_progress, console:
        Passed through to the :class:`Downloader`.
    """

    def __init__(
        self,
        cache_root: CacheRoot,
        session: Any | None = None,
        *,
        timeout: float = 60.0,
        chunk_size: int = 64 * 1024,
        show_progress: bool = True,
        console: Console | None = None,
    ) -> None:
        self._root = cache_root
        self._downloader = Downloader(
            session,
            timeout=timeout,
            chunk_size=chunk_size,
            show_progress=show_progress,
            console=console,
        )
        self._locks = KeyedLocks()

    @classmethod
    def from_config(cls, config: Any, session: Any | None = None, **kwargs: Any) -> IntegrityCache:
        """Build a cache from a :class:`~buildvault.config.VaultConfig`."""
        return cls(
            config.cache_root,
            session,
            timeout=config.download_timeout,
            chunk_size=config.chunk_size,
            show_progress=config.show_progress,
            **kwargs,
        )

    @property
    def cache_root(self) -> CacheRoot:
        return self._root

    @property
    def transfer_count(self) -> int:
        """Number of network transfers started by this cache."""
        return self._downloader.transfers

    # ------------------------------------------------------------------
    # Digest generation
    # ------------------------------------------------------------------

    def resolve_digest(
        self,
        locator: str | SourceLocator,
        algorithms: tuple[str, ...] = (DEFAULT_ALGORITHM,),
    ) -> Integrity:
        """Compute the actual integrity of the artifact at ``locator``.

        A remote artifact is always downloaded fresh into its cache slot,
        replacing whatever was there.

        Raises
        ------
        ConfigurationError
            If an algorithm is unsupported. Checked before any download, so
            the cache slot is left untouched.
        FileNotFoundError
            If a local locator points at a missing file.
        TransferError
            If the remote download fails.
        """
        algorithms = check_algorithms(algorithms)
        loc = SourceLocator.parse(locator)
        if loc.is_local:
            return integrity_of_file(loc.local_path, algorithms)

        with self._hold(loc):
            path = self._root.entry_path(loc)
            path.unlink(missing_ok=True)
            self._download(loc)
            integrity = integrity_of_file(path, algorithms)
        logger.info("Generated integrity for %s", loc)
        return integrity

    # ------------------------------------------------------------------
    # Verified fetch
    # ------------------------------------------------------------------

    def fetch_verified(
        self, locator: str | SourceLocator, expected: str | Integrity | None
    ) -> Path:
        """Return a local path whose content satisfies ``expected``.

        Raises
        ------
        ConfigurationError
            If ``locator`` is remote and ``expected`` is empty. No network
            call is made.
        FileNotFoundError
            If a local locator points at a missing file.
        TransferError
            If a download fails.
        IntegrityMismatch
            If the local file or the freshly downloaded file does not match.
        """
        loc = SourceLocator.parse(locator)
        integrity = Integrity.parse(expected)

        if loc.is_local:
            return self._verify_local(loc, integrity)

        if integrity.is_empty:
            raise ConfigurationError(
                f'No "integrity" value given for {loc}; regenerate the artifact '
                "listing to record integrity hashes."
            )

        with self._hold(loc):
            path = self._root.entry_path(loc)
            if path.exists():
                matched, _ = check_file(path, integrity)
                if matched:
                    logger.debug("Cache hit for %s at %s", loc, path)
                    return path
                logger.warning("Cached copy of %s failed integrity check; re-downloading", loc)
                path.unlink(missing_ok=True)

            self._download(loc)
            matched, actual = check_file(path, integrity)
            if not matched:
                raise IntegrityMismatch(str(path), str(integrity), str(actual))
            return path

    def _verify_local(self, loc: SourceLocator, integrity: Integrity) -> Path:
        path = loc.local_path
        if not path.is_file():
            raise FileNotFoundError(f"File URL does not exist on disk: {loc}")
        matched, actual = check_file(path, integrity)
        if not matched:
            raise IntegrityMismatch(str(path), str(integrity), str(actual))
        return path

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _hold(self, loc: SourceLocator):
        self._root.ensure()
        return self._locks.hold(
            str(self._root.entry_path(loc)), self._root.lock_path(loc)
        )

    def _download(self, loc: SourceLocator) -> Path:
        return self._downloader.download(
            loc.url, self._root.entry_path(loc), self._root.part_path(loc)
        )

"""Cache root value — every cache path is derived from it."""

from __future__ import annotations

from pathlib import Path

from buildvault.models.locator import SourceLocator


class CacheRoot:
    """Root directory of the shared artifact cache.

    Storage layout: {root}/{cache_key}, where the cache key is the trailing
    path segment of the locator. In-flight downloads use ``{cache_key}.part``
    and cross-process locks ``{cache_key}.lock``.

    Lock files are empty and stay behind after release. Deleting one while
    another process waits on it would let a third process lock a fresh inode
    under the same name, so they are never removed here. Wiping the whole
    root while no build is running is safe.

    Parameters
    ----------
    path:
        Root directory. Created on first use, not on construction.
    """

    PART_SUFFIX = ".part"
    LOCK_SUFFIX = ".lock"

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def ensure(self) -> Path:
        """Create the root directory if absent and return it."""
        self._path.mkdir(parents=True, exist_ok=True)
        return self._path

    def entry_path(self, locator: SourceLocator) -> Path:
        return self._path / locator.cache_key

    def part_path(self, locator: SourceLocator) -> Path:
        return self._path / f"{locator.cache_key}{self.PART_SUFFIX}"

    def lock_path(self, locator: SourceLocator) -> Path:
        return self._path / f"{locator.cache_key}{self.LOCK_SUFFIX}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CacheRoot):
            return NotImplemented
        return self._path == other._path

    def __hash__(self) -> int:
        return hash(self._path)

    def __repr__(self) -> str:
        return f"CacheRoot({str(self._path)!r})"

"""Source locator model — where an artifact's bytes come from."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict

from buildvault.errors import ConfigurationError

FILE_SCHEME = "file://"


class SourceLocator(BaseModel):
    """A ``file://`` absolute path or an HTTP(S) URL.

    Anything that does not start with ``file://`` is treated as remote.
    """

    model_config = ConfigDict(frozen=True)

    url: str

    @classmethod
    def parse(cls, value: str | SourceLocator) -> SourceLocator:
        if isinstance(value, SourceLocator):
            return value
        return cls(url=value.strip())

    @classmethod
    def from_path(cls, path: Path) -> SourceLocator:
        """Build a local locator for a filesystem path."""
        return cls(url=f"{FILE_SCHEME}{Path(path).resolve()}")

    @property
    def is_local(self) -> bool:
        return self.url.startswith(FILE_SCHEME)

    @property
    def local_path(self) -> Path:
        """Filesystem path of a local locator."""
        if not self.is_local:
            raise ConfigurationError(f"Not a local locator: {self.url}")
        return Path(self.url[len(FILE_SCHEME):])

    @property
    def cache_key(self) -> str:
        """File name used for the cache entry: text after the last ``/``.

        Query strings and fragments are not part of the key. Distinct
        artifacts sharing a trailing segment collide on the same entry.
        """
        path = urlsplit(self.url).path if not self.is_local else self.url
        key = path.rsplit("/", 1)[-1]
        if not key or key in (".", ".."):
            raise ConfigurationError(f"Cannot derive a cache file name from {self.url}")
        return key

    def __str__(self) -> str:
        return self.url

"""Runtime configuration — env-driven via pydantic-settings.

Reads from a .env file and BUILDVAULT_* environment variables. The legacy
SDK_BUILD_CACHE_DIR variable is honoured for the cache directory.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from buildvault.core.cache_root import CacheRoot

DEFAULT_CACHE_SUBDIR = "timob-build"


class VaultConfig(BaseSettings):
    """buildvault configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export BUILDVAULT_CACHE_DIR=/var/cache/sdk
        export BUILDVAULT_LOG_LEVEL=DEBUG
        export BUILDVAULT_DOWNLOAD_TIMEOUT=120
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BUILDVAULT_",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Cache
    cache_dir: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("BUILDVAULT_CACHE_DIR", "SDK_BUILD_CACHE_DIR"),
    )
    cache_subdir: str = DEFAULT_CACHE_SUBDIR

    # Transfer
    download_timeout: float = 60.0
    chunk_size: int = 64 * 1024
    show_progress: bool = True

    # Materializer
    copy_attempts: int = 3
    search_paths: list[Path] = Field(default_factory=list)

    # Observability
    log_level: str = "INFO"

    @property
    def cache_root(self) -> CacheRoot:
        """The cache root derived from the override or the platform temp dir."""
        base = self.cache_dir or Path(tempfile.gettempdir())
        return CacheRoot(Path(base) / self.cache_subdir)

"""Bulk operations over an artifact listing."""

from __future__ import annotations

import logging
from pathlib import Path

from buildvault.core.integrity_cache import IntegrityCache
from buildvault.models.listing import ArtifactListing

logger = logging.getLogger(__name__)


def refresh_integrity(listing: ArtifactListing, cache: IntegrityCache) -> ArtifactListing:
    """Return a copy of ``listing`` with every integrity recomputed from its url.

    Remote artifacts are downloaded fresh; the first failure aborts.
    """
    updated = listing
    for name, entry in sorted(listing.entries.items()):
        integrity = cache.resolve_digest(entry.url)
        if str(integrity) != entry.integrity:
            logger.info("Integrity for %s changed", name)
        updated = updated.with_integrity(name, str(integrity))
    return updated


def fetch_all(listing: ArtifactListing, cache: IntegrityCache) -> dict[str, Path]:
    """Fetch and verify every artifact in ``listing``.

    Returns name -> verified local path. The first failure aborts.
    """
    return {
        name: cache.fetch_verified(entry.url, entry.integrity)
        for name, entry in sorted(listing.entries.items())
    }

"""buildvault data models — all Pydantic v2, all frozen (immutable)."""

from buildvault.models.integrity import ALGORITHMS, DEFAULT_ALGORITHM, HashEntry, Integrity
from buildvault.models.listing import ArtifactListing, ListingEntry
from buildvault.models.locator import SourceLocator
from buildvault.models.manifest import PackageManifest

__all__ = [
    # integrity
    "ALGORITHMS",
    "DEFAULT_ALGORITHM",
    "HashEntry",
    "Integrity",
    # locators
    "SourceLocator",
    # manifests
    "PackageManifest",
    # listings
    "ArtifactListing",
    "ListingEntry",
]

"""buildvault: integrity-verified artifact cache and flat dependency materializer.

- IntegrityCache: fetch a ``file://`` or HTTP(S) artifact and verify it
  against a Subresource-Integrity digest, reusing a shared on-disk cache.
- DependencyMaterializer: copy a package and its transitive dependencies
  flat into one directory, one sibling per module id.
"""

__version__ = "0.1.0"

from buildvault.core.cache_root import CacheRoot
from buildvault.core.integrity_cache import IntegrityCache
from buildvault.core.materializer import DependencyMaterializer

__all__ = ["CacheRoot", "IntegrityCache", "DependencyMaterializer", "__version__"]

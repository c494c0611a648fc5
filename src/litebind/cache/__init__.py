"""Build-output cache handle and cache key derivation."""

from litebind.cache.keys import CacheInput, cache_key, fingerprint
from litebind.cache.store import BuildCache

__all__ = ["BuildCache", "CacheInput", "cache_key", "fingerprint"]

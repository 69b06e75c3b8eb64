"""Cache subsystem — on-disk picture store keyed by URL hash."""

from mediamanager.cache.directory import CacheDirectory
from mediamanager.cache.keys import cache_file_name, compute_cache_key
from mediamanager.cache.stats import CacheStats
from mediamanager.cache.store import PictureCacheStore

__all__ = [
    "CacheDirectory",
    "CacheStats",
    "PictureCacheStore",
    "cache_file_name",
    "compute_cache_key",
]

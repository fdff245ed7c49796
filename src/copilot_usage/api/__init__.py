"""GitHub billing API access and the local usage cache.

Modules:
    client: Single-attempt usage fetcher
    cache: Single-slot snapshot cache with TTL
"""

from copilot_usage.api.cache import (
    CACHE_FILE,
    CACHE_TTL_MINUTES,
    CacheEntry,
    CacheInfo,
    CacheStore,
    is_fresh,
)
from copilot_usage.api.client import API_URL, DEFAULT_TIMEOUT, UsageFetcher

__all__ = [
    # Client
    "API_URL",
    "DEFAULT_TIMEOUT",
    "UsageFetcher",
    # Cache
    "CACHE_FILE",
    "CACHE_TTL_MINUTES",
    "CacheEntry",
    "CacheInfo",
    "CacheStore",
    "is_fresh",
]

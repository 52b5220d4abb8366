"""Cache implementations."""

from eprel_proxy.infrastructure.cache.ttl_cache import CacheEntry, TTLCache

__all__ = ["CacheEntry", "TTLCache"]

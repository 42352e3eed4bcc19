"""Adaptive caching engine for warmcache.

This package provides :class:`AdaptiveCache`, a bounded in-memory cache
with LRU eviction, per-family TTLs, a durable mirror for allow-listed keys
stored with :mod:`diskcache`, pattern invalidation, and a get-or-fetch
primitive that coalesces concurrent fetches of the same key.

The cache is configured by :class:`~warmcache.models.CacheConfig`, usually
resolved through :func:`~warmcache.config.resolve_config`.
"""

from warmcache.cache.cache import AdaptiveCache
from warmcache.cache.invalidation import (
    INVALIDATION_GROUPS,
    invalidate_analytics_cache,
    invalidate_dashboard_cache,
    invalidate_group,
    invalidate_user_cache,
)
from warmcache.cache.janitor import Janitor
from warmcache.cache.mirror import DiskcacheBackend, DurableBackend, DurableMirror, MemoryBackend
from warmcache.cache.policy import TTLPolicyTable
from warmcache.cache.stats import StatsRecorder
from warmcache.cache.store import EntryStore

__all__ = [
    "AdaptiveCache",
    "DiskcacheBackend",
    "DurableBackend",
    "DurableMirror",
    "EntryStore",
    "INVALIDATION_GROUPS",
    "Janitor",
    "MemoryBackend",
    "StatsRecorder",
    "TTLPolicyTable",
    "invalidate_analytics_cache",
    "invalidate_dashboard_cache",
    "invalidate_group",
    "invalidate_user_cache",
]

"""warmcache -- Adaptive client-side cache for slow or rate-limited data sources.

This package sits between application code and expensive producers (network
calls, computed aggregates). It combines a bounded in-memory LRU store,
per-entry TTL expiry with per-family defaults, a durable mirror for a fixed
allow-list of keys, pattern invalidation, and a get-or-fetch orchestration
primitive with request coalescing.

Typical usage::

    from warmcache import AdaptiveCache

    async with AdaptiveCache() as cache:
        prices = await cache.get_or_fetch("token_prices", fetch_prices)

Modules:
    cache: The cache engine (store, mirror, policy, stats, janitor).
    keys: Canonical key derivation.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes used by the diagnostic CLI.
    output: stdout/stderr formatting system with Rich support.
    app: Typer application for inspecting the durable mirror.
"""

from warmcache.cache import AdaptiveCache
from warmcache.keys import build_key
from warmcache.models import CacheConfig, CacheEntry, CacheStats, FetchOptions

__version__ = "0.1.0"

__all__ = [
    "AdaptiveCache",
    "CacheConfig",
    "CacheEntry",
    "CacheStats",
    "FetchOptions",
    "build_key",
]

"""Named invalidation groups.

Application events such as sign-out or a new transaction invalidate a
whole family of keys at once.  Each group bundles the substring patterns
passed to :meth:`~warmcache.cache.cache.AdaptiveCache.clear_pattern`.
"""

from __future__ import annotations

from warmcache.cache.cache import AdaptiveCache
from warmcache.exceptions import InvalidUsageError

INVALIDATION_GROUPS: dict[str, tuple[str, ...]] = {
    "user": ("user_",),
    "analytics": ("network_analytics", "cost_analysis", "error_analysis"),
    "dashboard": ("dashboard_", "token_", "staking_", "portfolio_"),
}


def invalidate_group(cache: AdaptiveCache, group: str) -> int:
    """Clear every pattern of *group* and return the number of entries removed.

    Raises:
        InvalidUsageError: If *group* is not a known invalidation group.
    """
    try:
        patterns = INVALIDATION_GROUPS[group]
    except KeyError:
        known = ", ".join(sorted(INVALIDATION_GROUPS))
        raise InvalidUsageError(f"Unknown invalidation group '{group}' (known: {known})") from None
    return sum(cache.clear_pattern(pattern) for pattern in patterns)


def invalidate_user_cache(cache: AdaptiveCache) -> int:
    return invalidate_group(cache, "user")


def invalidate_analytics_cache(cache: AdaptiveCache) -> int:
    return invalidate_group(cache, "analytics")


def invalidate_dashboard_cache(cache: AdaptiveCache) -> int:
    return invalidate_group(cache, "dashboard")

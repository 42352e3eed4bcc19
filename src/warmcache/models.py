"""Canonical Pydantic models shared across all warmcache modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`OutputConfig` and :class:`GlobalConfig`.

**Runtime models** -- produced and consumed by the cache engine:
    :class:`CacheEntry` (also the durable record format),
    :class:`FetchOptions` and :class:`CacheStats`.

All models use Pydantic v2.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TTL_SECONDS = 10 * 60
DEFAULT_MAX_SIZE = 50
DEFAULT_JANITOR_INTERVAL_SECONDS = 5 * 60
DEFAULT_DURABLE_NAMESPACE = "cache_"

DEFAULT_TTL_POLICIES: dict[str, float] = {
    # User-specific data
    "user_data": 10 * 60,
    "dashboard_data": 10 * 60,
    "token_balances": 5 * 60,
    # Public/shared data
    "token_prices": 2 * 60,
    "property_data": 15 * 60,
    "network_analytics": 5 * 60,
    # UI state and preferences
    "ui_preferences": 24 * 60 * 60,
    "user_settings": 60 * 60,
}

DEFAULT_DURABLE_KEYS: list[str] = [
    "user_profile",
    "dashboard_overview",
    "token_balances",
    "ui_preferences",
    "user_settings",
]


# --- Runtime models ---


class CacheEntry(BaseModel):
    """A single cached value plus the bookkeeping needed for TTL and LRU.

    The same shape is serialised to JSON as the durable record, so a
    restored entry keeps its original ``written_at`` and ``ttl_seconds``
    and expires exactly when it would have in the previous process.

    Attributes:
        key: Canonical cache key (see :func:`~warmcache.keys.build_key`).
        value: Opaque payload returned by the producer.  Never inspected.
        written_at: Clock reading when the entry was stored.
        last_accessed_at: Clock reading of the most recent successful read.
            Initialised to ``written_at`` and refreshed only on hits.
        ttl_seconds: Expiration window for this entry.
    """

    key: str
    value: Any = None
    written_at: float
    last_accessed_at: float
    ttl_seconds: float = Field(gt=0)

    def age(self, now: float) -> float:
        """Seconds elapsed since the entry was written."""
        return now - self.written_at

    def is_valid(self, now: float) -> bool:
        """Return ``True`` while ``now - written_at < ttl_seconds``."""
        return self.age(now) < self.ttl_seconds


class FetchOptions(BaseModel):
    """Recognised options for :meth:`~warmcache.cache.AdaptiveCache.get_or_fetch`.

    Unknown option names are rejected rather than silently ignored, so a
    misspelt ``force_refesh`` fails loudly instead of falling back to a
    cached value.

    Example::

        FetchOptions(params={"page": 2}, ttl_seconds=60, force_refresh=True)
    """

    model_config = ConfigDict(extra="forbid")

    params: dict[str, Any] = Field(
        default_factory=dict, description="Contributes to key derivation"
    )
    ttl_seconds: Optional[float] = Field(
        default=None, gt=0, description="Overrides the policy expiration window"
    )
    force_refresh: bool = Field(
        default=False, description="Bypass the cache and re-fetch"
    )


class CacheStats(BaseModel):
    """Point-in-time statistics reported by :meth:`~warmcache.cache.AdaptiveCache.get_stats`."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    expirations: int = 0
    hit_rate: str = "0.00%"
    size: int = 0
    max_size: int = DEFAULT_MAX_SIZE
    default_ttl_seconds: float = DEFAULT_TTL_SECONDS
    durable_keys: list[str] = Field(default_factory=list)


# --- Configuration models ---


class CacheConfig(BaseModel):
    """Cache engine settings stored in :class:`GlobalConfig`.

    See Also:
        :func:`~warmcache.config.resolve_config` for how environment
        variables and project config override these values.
    """

    max_size: int = Field(
        default=DEFAULT_MAX_SIZE, ge=1, description="Maximum in-memory entries"
    )
    default_ttl_seconds: float = Field(
        default=DEFAULT_TTL_SECONDS, gt=0, description="Global fallback TTL"
    )
    janitor_interval_seconds: float = Field(
        default=DEFAULT_JANITOR_INTERVAL_SECONDS,
        gt=0,
        description="Interval between expired-entry sweeps",
    )
    ttl_policies: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_TTL_POLICIES),
        description="Key-family prefix to default TTL in seconds",
    )
    durable_enabled: bool = Field(
        default=True, description="Mirror allow-listed keys to durable storage"
    )
    durable_keys: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DURABLE_KEYS),
        description="Canonical keys eligible for durable storage",
    )
    durable_namespace: str = Field(
        default=DEFAULT_DURABLE_NAMESPACE,
        description="Prefix applied to durable record keys",
    )
    durable_dir: Optional[str] = Field(
        default=None, description="Override for the durable store directory"
    )

    @field_validator("ttl_policies")
    @classmethod
    def _positive_policies(cls, value: dict[str, float]) -> dict[str, float]:
        for family, ttl in value.items():
            if ttl <= 0:
                raise ValueError(f"TTL for family '{family}' must be positive")
        return value


class OutputConfig(BaseModel):
    """Default output format preferences for the diagnostic CLI."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/warmcache/config.json``.

    Loaded and saved by :func:`~warmcache.config.load_global_config` and
    :func:`~warmcache.config.save_global_config`.
    """

    output: OutputConfig = Field(default_factory=OutputConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

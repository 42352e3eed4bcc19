"""Hit/miss/write/delete counters for the cache engine."""

from __future__ import annotations

from typing import Iterable

from warmcache.models import CacheStats


class StatsRecorder:
    """Counts entry-store operations.

    Each counter is incremented once per store operation, not once per
    orchestrator call, so a get-or-fetch miss records exactly one miss and
    one set.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Zero every counter."""
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.evictions = 0
        self.expirations = 0

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    def record_set(self) -> None:
        self.sets += 1

    def record_delete(self, count: int = 1) -> None:
        self.deletes += count

    def record_eviction(self) -> None:
        self.evictions += 1

    def record_expiration(self, count: int = 1) -> None:
        self.expirations += count

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> str:
        """Hits as a percentage of lookups, formatted like ``"60.00%"``."""
        if self.lookups == 0:
            return "0.00%"
        return f"{self.hits / self.lookups * 100:.2f}%"

    def snapshot(
        self,
        size: int,
        max_size: int,
        default_ttl_seconds: float,
        durable_keys: Iterable[str] = (),
    ) -> CacheStats:
        return CacheStats(
            hits=self.hits,
            misses=self.misses,
            sets=self.sets,
            deletes=self.deletes,
            evictions=self.evictions,
            expirations=self.expirations,
            hit_rate=self.hit_rate,
            size=size,
            max_size=max_size,
            default_ttl_seconds=default_ttl_seconds,
            durable_keys=list(durable_keys),
        )

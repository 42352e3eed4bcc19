"""Tests for the stats recorder."""

from __future__ import annotations

from warmcache.cache.stats import StatsRecorder


class TestHitRate:
    def test_no_lookups_is_zero(self) -> None:
        assert StatsRecorder().hit_rate == "0.00%"

    def test_rate_formatting(self) -> None:
        stats = StatsRecorder()
        for _ in range(3):
            stats.record_hit()
        for _ in range(2):
            stats.record_miss()
        assert stats.hit_rate == "60.00%"

    def test_rate_rounds_to_two_places(self) -> None:
        stats = StatsRecorder()
        stats.record_hit()
        stats.record_miss()
        stats.record_miss()
        assert stats.hit_rate == "33.33%"


class TestCounters:
    def test_bulk_counts(self) -> None:
        stats = StatsRecorder()
        stats.record_delete(4)
        stats.record_expiration(2)
        stats.record_eviction()
        assert (stats.deletes, stats.expirations, stats.evictions) == (4, 2, 1)

    def test_reset_zeroes_everything(self) -> None:
        stats = StatsRecorder()
        stats.record_hit()
        stats.record_set()
        stats.reset()
        assert stats.lookups == 0
        assert stats.sets == 0

    def test_snapshot(self) -> None:
        stats = StatsRecorder()
        stats.record_hit()
        stats.record_set()
        snap = stats.snapshot(size=1, max_size=50, default_ttl_seconds=600, durable_keys=("a",))
        assert snap.hits == 1
        assert snap.sets == 1
        assert snap.hit_rate == "100.00%"
        assert snap.size == 1
        assert snap.durable_keys == ["a"]

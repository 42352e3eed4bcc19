"""Bounded in-memory entry store with least-recently-used eviction.

Entries live in an :class:`collections.OrderedDict` kept in access order:
a write or a successful read moves the key to the end, so the first key is
always the one with the smallest ``last_accessed_at``.  Lookup, insert,
touch and eviction are all O(1).

The store knows nothing about TTLs or durability; validity checks and
mirror bookkeeping are done by :class:`~warmcache.cache.cache.AdaptiveCache`.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Iterator, Optional

from warmcache.models import CacheEntry


class EntryStore:
    """Mapping from canonical key to :class:`~warmcache.models.CacheEntry`.

    Args:
        max_size: Maximum number of entries.  After any mutating call
            completes, ``len(store) <= max_size``.
    """

    def __init__(self, max_size: int) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self._max_size = max_size
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    @property
    def max_size(self) -> int:
        return self._max_size

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for *key* without touching its access time."""
        return self._entries.get(key)

    def touch(self, key: str, now: float) -> CacheEntry:
        """Record a successful read of *key* and return its entry."""
        entry = self._entries[key]
        entry.last_accessed_at = now
        self._entries.move_to_end(key)
        return entry

    def put(
        self, key: str, value: Any, ttl_seconds: float, now: float
    ) -> tuple[CacheEntry, Optional[CacheEntry]]:
        """Insert or overwrite *key*.

        When *key* is new and the store is full, the least recently
        accessed entry is evicted first.  Overwriting an existing key never
        evicts.

        Returns:
            A ``(stored, evicted)`` tuple; ``evicted`` is ``None`` when no
            eviction was needed.
        """
        evicted: Optional[CacheEntry] = None
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_size:
            _, evicted = self._entries.popitem(last=False)

        entry = CacheEntry(
            key=key,
            value=value,
            written_at=now,
            last_accessed_at=now,
            ttl_seconds=ttl_seconds,
        )
        self._entries[key] = entry
        if len(self._entries) > self._max_size:
            raise RuntimeError(
                f"Entry store holds {len(self._entries)} entries, above max_size {self._max_size}"
            )
        return entry, evicted

    def restore(self, entry: CacheEntry) -> Optional[CacheEntry]:
        """Insert a previously persisted *entry* as-is.

        Timestamps are preserved.  Returns the evicted entry, if any.
        """
        evicted: Optional[CacheEntry] = None
        if entry.key in self._entries:
            del self._entries[entry.key]
        elif len(self._entries) >= self._max_size:
            _, evicted = self._entries.popitem(last=False)
        self._entries[entry.key] = entry
        return evicted

    def remove(self, key: str) -> Optional[CacheEntry]:
        """Remove *key* and return its entry, or ``None`` if absent."""
        return self._entries.pop(key, None)

    def keys(self) -> list[str]:
        """Snapshot of current keys in least-recently-used-first order."""
        return list(self._entries)

    def matching(self, substring: str) -> list[str]:
        """Keys whose canonical form contains *substring*."""
        return [key for key in self._entries if substring in key]

    def expired(self, now: float) -> list[str]:
        """Keys whose entries fail the TTL check at *now*."""
        return [key for key, entry in self._entries.items() if not entry.is_valid(now)]

    def clear(self) -> list[str]:
        """Remove every entry and return the keys that were present."""
        removed = list(self._entries)
        self._entries.clear()
        return removed

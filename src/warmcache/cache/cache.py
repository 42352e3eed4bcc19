"""The adaptive cache: lookup, get-or-fetch orchestration and invalidation.

:class:`AdaptiveCache` composes the building blocks of this package:

* :class:`~warmcache.cache.store.EntryStore` -- bounded LRU storage.
* :class:`~warmcache.cache.policy.TTLPolicyTable` -- per-family TTLs.
* :class:`~warmcache.cache.mirror.DurableMirror` -- allow-listed durability.
* :class:`~warmcache.cache.stats.StatsRecorder` -- hit/miss accounting.
* :class:`~warmcache.cache.janitor.Janitor` -- periodic expiry sweep.

All store mutations are synchronous, so they are atomic with respect to
each other on a single event loop.  The only suspension points are the
producer await inside :meth:`AdaptiveCache.get_or_fetch`,
:meth:`AdaptiveCache.refresh` and background preloads.

Concurrent misses for the same key share one in-flight producer call: the
first miss registers its fetch task under the canonical key and later
misses await that task instead of invoking their own producer.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from warmcache.cache.janitor import Janitor
from warmcache.cache.mirror import DiskcacheBackend, DurableBackend, DurableMirror
from warmcache.cache.policy import TTLPolicyTable
from warmcache.cache.stats import StatsRecorder
from warmcache.cache.store import EntryStore
from warmcache.exceptions import InvalidUsageError
from warmcache.keys import build_key
from warmcache.models import CacheConfig, CacheEntry, CacheStats, FetchOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")
Producer = Callable[[], Awaitable[T]]

_MISS = object()


class AdaptiveCache:
    """Bounded, TTL-aware cache with a durable mirror and get-or-fetch.

    Create one per application (or per test) and pass it to the code that
    needs it.  Use it as an async context manager so the janitor is started
    and stopped deterministically::

        async with AdaptiveCache(config, backend=MemoryBackend()) as cache:
            profile = await cache.get_or_fetch("user_profile", load_profile)

    Args:
        config: Cache settings.  Defaults to :class:`~warmcache.models.CacheConfig`.
        backend: Durable backend for allow-listed keys.  When omitted and
            durability is enabled, a :class:`~warmcache.cache.mirror.DiskcacheBackend`
            is opened in ``config.durable_dir`` or the XDG durable directory.
        clock: Returns the current time in seconds.  Injectable for tests.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        backend: Optional[DurableBackend] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or CacheConfig()
        self._clock = clock
        self._store = EntryStore(self._config.max_size)
        self._policy = TTLPolicyTable(self._config.ttl_policies, self._config.default_ttl_seconds)
        self._stats = StatsRecorder()
        self._pending: dict[str, asyncio.Future[Any]] = {}
        self._background: set[asyncio.Task[None]] = set()
        self._janitor = Janitor(self._sweep, self._config.janitor_interval_seconds)

        self._mirror: Optional[DurableMirror] = None
        if self._config.durable_enabled:
            if backend is None:
                from warmcache.config import get_durable_dir

                backend = DiskcacheBackend(get_durable_dir(self._config))
            self._mirror = DurableMirror(
                backend,
                self._config.durable_keys,
                self._config.durable_namespace,
                clock,
            )
            self._restore()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AdaptiveCache:
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def start(self) -> None:
        """Start the periodic expiry sweep on the running event loop."""
        self._janitor.start()

    async def close(self) -> None:
        """Stop the janitor, wait for in-flight fetches and close the backend."""
        await self._janitor.stop()
        outstanding = [*self._background, *self._pending.values()]
        if outstanding:
            await asyncio.gather(*outstanding, return_exceptions=True)
        if self._mirror is not None:
            self._mirror.close()

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def policy(self) -> TTLPolicyTable:
        return self._policy

    @property
    def mirror(self) -> Optional[DurableMirror]:
        return self._mirror

    @property
    def janitor(self) -> Janitor:
        return self._janitor

    # ------------------------------------------------------------------ #
    # Entry operations
    # ------------------------------------------------------------------ #

    def get(self, key: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Return the cached value for *key*, or ``None`` on a miss.

        A hit refreshes the entry's access time.  An expired entry found
        along the way is removed from memory and from the durable mirror.
        """
        value = self._lookup(build_key(key, params))
        return None if value is _MISS else value

    def set(
        self,
        key: str,
        value: T,
        params: Optional[dict[str, Any]] = None,
        ttl_seconds: Optional[float] = None,
    ) -> T:
        """Store *value* under *key* and return it.

        The TTL is *ttl_seconds* if given, otherwise the default of the
        key's family, otherwise the global default.

        Raises:
            InvalidUsageError: If *ttl_seconds* is not positive.
        """
        ttl = self._policy.resolve(key, ttl_seconds)
        self._write(build_key(key, params), value, ttl)
        return value

    def delete(self, key: str, params: Optional[dict[str, Any]] = None) -> bool:
        """Remove *key* from memory and the durable mirror.

        Returns:
            ``True`` if an in-memory entry was removed.
        """
        cache_key = build_key(key, params)
        removed = self._store.remove(cache_key)
        if self._mirror is not None:
            self._mirror.forget(cache_key)
        if removed is None:
            return False
        self._stats.record_delete()
        logger.debug("Cache DELETE: %s", cache_key)
        return True

    def has(self, key: str, params: Optional[dict[str, Any]] = None) -> bool:
        """Return ``True`` if an entry exists for *key*, valid or not."""
        return build_key(key, params) in self._store

    def keys(self) -> list[str]:
        """Snapshot of the current canonical keys."""
        return self._store.keys()

    def entry(self, key: str, params: Optional[dict[str, Any]] = None) -> Optional[CacheEntry]:
        """Return a copy of the stored entry without counting a lookup."""
        found = self._store.peek(build_key(key, params))
        return found.model_copy() if found is not None else None

    # ------------------------------------------------------------------ #
    # Invalidation
    # ------------------------------------------------------------------ #

    def clear(self) -> None:
        """Remove every entry from memory and every durable record."""
        removed = self._store.clear()
        if self._mirror is not None:
            self._mirror.forget_all()
        self._stats.record_delete(len(removed))
        logger.debug("Cache CLEARED: %d items removed", len(removed))

    def clear_pattern(self, substring: str) -> int:
        """Remove every entry whose canonical key contains *substring*.

        Returns:
            The number of in-memory entries removed (zero is not an error).

        Raises:
            InvalidUsageError: If *substring* is empty.
        """
        if not substring:
            raise InvalidUsageError("Pattern must not be empty; use clear() to remove everything")
        matched = self._store.matching(substring)
        for cache_key in matched:
            self._store.remove(cache_key)
        if self._mirror is not None:
            self._mirror.forget_many(k for k in self._mirror.allow_list if substring in k)
        self._stats.record_delete(len(matched))
        logger.debug("Cache PATTERN CLEAR: %s - %d items removed", substring, len(matched))
        return len(matched)

    def purge_expired(self) -> int:
        """Remove every expired entry now.  Returns the number removed."""
        expired = self._evict_expired()
        if self._mirror is not None:
            self._mirror.forget_many(expired)
        return len(expired)

    # ------------------------------------------------------------------ #
    # Orchestration
    # ------------------------------------------------------------------ #

    async def get_or_fetch(
        self,
        key: str,
        producer: Producer[T],
        options: Optional[FetchOptions] = None,
    ) -> T:
        """Return the cached value for *key*, calling *producer* on a miss.

        1. With ``options.force_refresh`` the cache is bypassed: the
           producer is called and its result overwrites any cached value.
        2. Otherwise a hit is returned without calling the producer.
        3. On a miss the producer is awaited, the result stored and
           returned.  If another fetch for the same key is already in
           flight, its result is awaited instead.

        A producer exception propagates unchanged and nothing is written.
        """
        options = options or FetchOptions()
        cache_key = build_key(key, options.params)
        ttl = self._policy.resolve(key, options.ttl_seconds)

        if options.force_refresh:
            logger.debug("Cache FORCE REFRESH: %s", cache_key)
            return await self._fetch(cache_key, producer, ttl, join=False)

        value = self._lookup(cache_key)
        if value is not _MISS:
            return value
        return await self._fetch(cache_key, producer, ttl, join=True)

    async def refresh(
        self,
        key: str,
        producer: Producer[T],
        params: Optional[dict[str, Any]] = None,
        ttl_seconds: Optional[float] = None,
    ) -> T:
        """Unconditionally call *producer* and overwrite the cached value."""
        ttl = self._policy.resolve(key, ttl_seconds)
        return await self._fetch(build_key(key, params), producer, ttl, join=False)

    def preload(
        self,
        key: str,
        producer: Producer[Any],
        params: Optional[dict[str, Any]] = None,
        ttl_seconds: Optional[float] = None,
    ) -> Optional[asyncio.Task[None]]:
        """Populate *key* in the background if it is absent or expired.

        Producer failures are logged, never raised.  Must be called from a
        running event loop.

        Returns:
            The background task, or ``None`` when a valid entry already
            exists.  Awaiting the task is optional.
        """
        cache_key = build_key(key, params)
        ttl = self._policy.resolve(key, ttl_seconds)
        current = self._store.peek(cache_key)
        if current is not None and current.is_valid(self._clock()):
            return None

        task = asyncio.get_running_loop().create_task(self._preload(cache_key, producer, ttl))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def get_stats(self) -> CacheStats:
        """Return counters, hit rate and the store size versus its bound."""
        return self._stats.snapshot(
            size=len(self._store),
            max_size=self._store.max_size,
            default_ttl_seconds=self._policy.default_ttl_seconds,
            durable_keys=self._mirror.allow_list if self._mirror is not None else (),
        )

    def reset_stats(self) -> None:
        self._stats.reset()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _lookup(self, cache_key: str) -> Any:
        now = self._clock()
        entry = self._store.peek(cache_key)
        if entry is None:
            self._stats.record_miss()
            logger.debug("Cache MISS: %s", cache_key)
            return _MISS
        if not entry.is_valid(now):
            self._store.remove(cache_key)
            if self._mirror is not None:
                self._mirror.forget(cache_key)
            self._stats.record_expiration()
            self._stats.record_miss()
            logger.debug(
                "Cache EXPIRED: %s (age: %.0fs, ttl: %.0fs)",
                cache_key,
                entry.age(now),
                entry.ttl_seconds,
            )
            return _MISS
        self._store.touch(cache_key, now)
        self._stats.record_hit()
        logger.debug("Cache HIT: %s", cache_key)
        return entry.value

    def _write(self, cache_key: str, value: Any, ttl: float) -> CacheEntry:
        entry, evicted = self._store.put(cache_key, value, ttl, self._clock())
        if evicted is not None:
            self._stats.record_eviction()
            if self._mirror is not None:
                self._mirror.forget(evicted.key)
            logger.debug("Cache EVICTED: %s (LRU)", evicted.key)
        self._stats.record_set()
        if self._mirror is not None:
            self._mirror.persist(entry)
        logger.debug("Cache SET: %s (TTL: %.0fs)", cache_key, ttl)
        return entry

    async def _fetch(self, cache_key: str, producer: Producer[T], ttl: float, join: bool) -> T:
        if join:
            in_flight = self._pending.get(cache_key)
            if in_flight is not None:
                logger.debug("Cache JOIN: %s", cache_key)
                return await asyncio.shield(in_flight)

        task = asyncio.ensure_future(self._produce(cache_key, producer, ttl))
        self._pending[cache_key] = task
        task.add_done_callback(functools.partial(self._settle, cache_key))
        # Shielded so a cancelled caller does not cancel the producer.
        return await asyncio.shield(task)

    async def _produce(self, cache_key: str, producer: Producer[T], ttl: float) -> T:
        value = await producer()
        # A fetch superseded by a later refresh returns to its own awaiters
        # but must not overwrite the newer value.
        if self._pending.get(cache_key) is asyncio.current_task():
            self._write(cache_key, value, ttl)
        else:
            logger.debug("Cache STALE FETCH: %s (superseded, not stored)", cache_key)
        return value

    def _settle(self, cache_key: str, task: asyncio.Future[Any]) -> None:
        if self._pending.get(cache_key) is task:
            del self._pending[cache_key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Cache FETCH FAILED: %s: %r", cache_key, task.exception())

    async def _preload(self, cache_key: str, producer: Producer[Any], ttl: float) -> None:
        try:
            await self._fetch(cache_key, producer, ttl, join=True)
        except Exception as exc:
            logger.warning("Failed to preload cache for %s: %s", cache_key, exc)

    def _restore(self) -> None:
        assert self._mirror is not None
        restored = sorted(self._mirror.restore(), key=lambda e: e.last_accessed_at)
        for entry in restored:
            evicted = self._store.restore(entry)
            if evicted is not None:
                self._mirror.forget(evicted.key)
        if restored:
            logger.debug("Restored %d durable cache entries", len(restored))

    def _evict_expired(self) -> list[str]:
        expired = self._store.expired(self._clock())
        for cache_key in expired:
            self._store.remove(cache_key)
        if expired:
            self._stats.record_expiration(len(expired))
            logger.debug("Cache CLEANUP: %d expired items removed", len(expired))
        return expired

    async def _sweep(self) -> int:
        # Durable records go in the same synchronous step as the entries.
        return self.purge_expired()

"""Durable mirror for allow-listed cache keys.

A fixed allow-list of canonical keys is copied to a durable key-value
backend on every write, removed on every delete, and restored when a new
:class:`~warmcache.cache.cache.AdaptiveCache` is constructed so that state
survives a process restart.

Backends implement the small :class:`DurableBackend` protocol.  The
production backend, :class:`DiskcacheBackend`, stores records with
:mod:`diskcache`; :class:`MemoryBackend` is a process-local stand-in used
by tests and by callers that want durability semantics without disk I/O.

Persistence is best-effort: serialisation failures and backend errors are
logged and swallowed, leaving the in-memory entry authoritative.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Callable, Iterable, Optional, Protocol, runtime_checkable

import diskcache
from pydantic import ValidationError

from warmcache.exceptions import StorageError
from warmcache.models import CacheEntry

logger = logging.getLogger(__name__)


@runtime_checkable
class DurableBackend(Protocol):
    """Contract for a durable string key-value store.

    Implementations raise :class:`~warmcache.exceptions.StorageError` when
    the underlying store fails.
    """

    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, data: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def close(self) -> None: ...


class DiskcacheBackend:
    """Durable backend on a :class:`diskcache.Cache` directory.

    Args:
        directory: Directory holding the SQLite-backed cache files.
            Created if it does not exist.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        try:
            self._cache: Optional[diskcache.Cache] = diskcache.Cache(str(self._directory))
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Cannot open durable store at {self._directory}: {exc}") from exc

    @property
    def directory(self) -> Path:
        return self._directory

    def _require(self) -> diskcache.Cache:
        if self._cache is None:
            raise StorageError("Durable store is closed")
        return self._cache

    def read(self, key: str) -> Optional[str]:
        try:
            data = self._require().get(key)
        except (OSError, sqlite3.Error, diskcache.Timeout) as exc:
            raise StorageError(f"Durable read failed for '{key}': {exc}") from exc
        return data if isinstance(data, str) else None

    def write(self, key: str, data: str) -> None:
        try:
            self._require().set(key, data)
        except (OSError, sqlite3.Error, diskcache.Timeout) as exc:
            raise StorageError(f"Durable write failed for '{key}': {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            self._require().delete(key)
        except (OSError, sqlite3.Error, diskcache.Timeout) as exc:
            raise StorageError(f"Durable remove failed for '{key}': {exc}") from exc

    def keys(self) -> list[str]:
        try:
            return [k for k in self._require().iterkeys() if isinstance(k, str)]
        except (OSError, sqlite3.Error, diskcache.Timeout) as exc:
            raise StorageError(f"Durable key listing failed: {exc}") from exc

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`.  Safe to call twice."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None


class MemoryBackend:
    """Dict-backed backend.  Survives cache instances, not processes."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, data: str) -> None:
        self.data[key] = data

    def remove(self, key: str) -> None:
        self.data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self.data)

    def close(self) -> None:
        pass


class DurableMirror:
    """Keep allow-listed entries in a durable backend.

    Durability is decided per fully derived key: ``user_profile`` is
    mirrored when allow-listed, ``user_profile_id:7`` is not.

    Args:
        backend: The durable key-value store.
        allow_list: Canonical keys eligible for durability.
        namespace: Prefix applied to every durable record key.
        clock: Returns the current time in seconds.
    """

    def __init__(
        self,
        backend: DurableBackend,
        allow_list: Iterable[str],
        namespace: str,
        clock: Callable[[], float],
    ) -> None:
        self._backend = backend
        self._allow_list = tuple(dict.fromkeys(allow_list))
        self._namespace = namespace
        self._clock = clock

    @property
    def backend(self) -> DurableBackend:
        return self._backend

    @property
    def allow_list(self) -> tuple[str, ...]:
        return self._allow_list

    def is_durable(self, key: str) -> bool:
        return key in self._allow_list

    def record_key(self, key: str) -> str:
        """Namespaced key under which *key* is stored in the backend."""
        return f"{self._namespace}{key}"

    def restore(self) -> list[CacheEntry]:
        """Load every valid durable record for the allow-list.

        Expired records are removed immediately.  Malformed records (bad
        JSON, schema mismatch, key mismatch) are discarded and removed so
        the key starts cold.  Backend failures on a single key are logged
        and that key is skipped.
        """
        now = self._clock()
        restored: list[CacheEntry] = []
        for key in self._allow_list:
            record_key = self.record_key(key)
            try:
                raw = self._backend.read(record_key)
            except StorageError as exc:
                logger.warning("Failed to read durable record '%s': %s", record_key, exc)
                continue
            if raw is None:
                continue

            try:
                entry = CacheEntry.model_validate_json(raw)
            except ValidationError:
                logger.debug("Discarding malformed durable record '%s'", record_key)
                self._remove_quietly(record_key)
                continue

            if entry.key != key:
                logger.debug("Discarding durable record '%s' stored for '%s'", record_key, entry.key)
                self._remove_quietly(record_key)
                continue

            if not entry.is_valid(now):
                logger.debug("Discarding expired durable record '%s'", record_key)
                self._remove_quietly(record_key)
                continue

            restored.append(entry)
        return restored

    def persist(self, entry: CacheEntry) -> bool:
        """Write *entry* to the backend if its key is allow-listed.

        Returns:
            ``True`` if a record was written.  ``False`` when the key is
            not durable or persistence failed (the failure is logged).
        """
        if not self.is_durable(entry.key):
            return False
        try:
            data = entry.model_dump_json()
        except (ValueError, TypeError) as exc:
            logger.warning("Failed to serialise cache entry '%s': %s", entry.key, exc)
            # A stale record would resurrect an outdated value on restart.
            self._remove_quietly(self.record_key(entry.key))
            return False
        try:
            self._backend.write(self.record_key(entry.key), data)
        except StorageError as exc:
            logger.warning("Failed to persist cache entry '%s': %s", entry.key, exc)
            return False
        return True

    def forget(self, key: str) -> None:
        """Remove the durable record for *key* if it is allow-listed."""
        if self.is_durable(key):
            self._remove_quietly(self.record_key(key))

    def forget_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.forget(key)

    def forget_all(self) -> None:
        """Remove every allow-listed durable record."""
        for key in self._allow_list:
            self._remove_quietly(self.record_key(key))

    def records(self) -> dict[str, Optional[CacheEntry]]:
        """Return the decoded durable record for each allow-listed key.

        Keys with no record are omitted; malformed records map to ``None``.
        Used by diagnostics and does not modify the backend.

        Raises:
            StorageError: If the backend cannot be read.
        """
        found: dict[str, Optional[CacheEntry]] = {}
        for key in self._allow_list:
            raw = self._backend.read(self.record_key(key))
            if raw is None:
                continue
            try:
                found[key] = CacheEntry.model_validate_json(raw)
            except ValidationError:
                found[key] = None
        return found

    def close(self) -> None:
        self._backend.close()

    def _remove_quietly(self, record_key: str) -> None:
        try:
            self._backend.remove(record_key)
        except StorageError as exc:
            logger.warning("Failed to remove durable record '%s': %s", record_key, exc)

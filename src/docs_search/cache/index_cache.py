"""
Bounded Index Cache

In-memory keyed cache for built search indexes, bounded three ways:

- TTL: entries older than ``ttl_minutes`` are treated as absent and
  removed lazily on access and eagerly on every ``set``.
- Count: at most ``max_size`` entries; least-recently-accessed first out.
- Memory: the sum of estimated entry sizes stays under ``max_memory_mb``.

Thread Safety
-------------
All operations run under a single re-entrant lock per instance.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from ..config import CacheOptions

logger = logging.getLogger("docs_search.cache")

T = TypeVar("T")

BYTES_PER_MB = 1024 * 1024

# Size model for built search indexes
ENGINE_INDEX_BASE_BYTES = 1024 * 1024
DOCUMENT_ENTRY_BYTES = 500
METADATA_BYTES = 1024

# Used whenever a value cannot be measured
DEFAULT_ESTIMATE_BYTES = 1024 * 1024

# New entries start this far in the past so that back-to-back inserts
# evict in insertion order.
NEW_ENTRY_AGE_SECONDS = 1.0


@dataclass
class CacheRecord(Generic[T]):
    value: T
    created_at: float
    last_accessed_at: float
    estimated_size_bytes: int


def _field(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


def _looks_like_index(value: Any) -> bool:
    if isinstance(value, Mapping):
        keys = value.keys()
        return "documents" in keys and "metadata" in keys and (
            "engine_index" in keys or "index" in keys
        )
    return all(
        hasattr(value, attr) for attr in ("engine_index", "documents", "metadata")
    )


def estimate_size(value: Any) -> int:
    """
    Estimate the in-memory footprint of ``value`` in bytes.

    Search index entries are sized from their document count; anything
    else falls back to twice the length of its JSON encoding.

    Raises whatever the fallback encoding raises; ``IndexCache`` turns
    that into ``DEFAULT_ESTIMATE_BYTES``.
    """
    if value is not None and _looks_like_index(value):
        size = 0
        engine = _field(value, "engine_index")
        if engine is None and isinstance(value, Mapping):
            engine = value.get("index")
        if engine is not None:
            size += ENGINE_INDEX_BASE_BYTES
        documents = _field(value, "documents")
        if documents is not None:
            size += len(documents) * DOCUMENT_ENTRY_BYTES
        size += METADATA_BYTES
        return size

    return len(json.dumps(value)) * 2


class IndexCache(Generic[T]):
    """
    LRU cache with TTL expiry and aggregate memory bound.
    """

    def __init__(
        self,
        options: Optional[CacheOptions] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Parameters
        ----------
        options : Optional[CacheOptions]
            Size, memory and TTL bounds. Defaults to 50 entries, 500MB
            and 60 minutes.

        clock : Callable[[], float]
            Wall clock in seconds, injectable for tests.
        """
        self._options = options or CacheOptions()
        self._clock = clock
        self._records: Dict[str, CacheRecord[T]] = {}
        self._lock = RLock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0

        logger.debug(
            "IndexCache initialized with max_size=%d, max_memory_mb=%s, ttl_minutes=%s",
            self._options.max_size,
            self._options.max_memory_mb,
            self._options.ttl_minutes,
        )

    @property
    def options(self) -> CacheOptions:
        return self._options

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _is_expired(self, record: CacheRecord[T], now: float) -> bool:
        age_minutes = (now - record.created_at) / 60
        return age_minutes > self._options.ttl_minutes

    def _estimate(self, value: T) -> int:
        try:
            return estimate_size(value)
        except Exception as exc:
            logger.warning(
                "Failed to estimate size for cache value, using default: %s", exc
            )
            return DEFAULT_ESTIMATE_BYTES

    def _memory_bytes(self) -> int:
        return sum(r.estimated_size_bytes for r in self._records.values())

    def _remove_expired(self) -> None:
        now = self._clock()
        expired = [k for k, r in self._records.items() if self._is_expired(r, now)]
        for key in expired:
            del self._records[key]
            logger.debug("Removed expired cache entry: %s", key)

    def _evict_lru(self) -> None:
        oldest_key: Optional[str] = None
        oldest_time = float("inf")

        for key, record in self._records.items():
            if record.last_accessed_at < oldest_time:
                oldest_time = record.last_accessed_at
                oldest_key = key

        if oldest_key is not None:
            del self._records[oldest_key]
            self._evictions += 1
            logger.debug("Evicted LRU cache entry: %s", oldest_key)

    def _enforce_constraints(self) -> None:
        self._remove_expired()

        while len(self._records) > self._options.max_size:
            self._evict_lru()

        max_bytes = self._options.max_memory_mb * BYTES_PER_MB
        while self._records and self._memory_bytes() > max_bytes:
            self._evict_lru()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            record = self._records.get(key)
            if record is None:
                self._misses += 1
                return None

            now = self._clock()
            if self._is_expired(record, now):
                del self._records[key]
                self._misses += 1
                logger.debug(
                    "Cache entry expired for key: %s (age: %.1f minutes)",
                    key,
                    (now - record.created_at) / 60,
                )
                return None

            record.last_accessed_at = now
            self._hits += 1
            logger.debug("Cache hit for key: %s", key)
            return record.value

    def set(self, key: str, value: T) -> None:
        size = self._estimate(value)

        with self._lock:
            now = self._clock()
            existed = self._records.pop(key, None) is not None
            last_accessed = now if existed else now - NEW_ENTRY_AGE_SECONDS

            self._records[key] = CacheRecord(
                value=value,
                created_at=now,
                last_accessed_at=last_accessed,
                estimated_size_bytes=size,
            )
            logger.debug(
                "Cache set for key: %s (size: %.2fMB)", key, size / BYTES_PER_MB
            )

            self._enforce_constraints()

    def has(self, key: str) -> bool:
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return False
            if self._is_expired(record, self._clock()):
                del self._records[key]
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            deleted = self._records.pop(key, None) is not None
            if deleted:
                logger.debug("Cache entry deleted for key: %s", key)
            return deleted

    def clear(self) -> None:
        with self._lock:
            count = len(self._records)
            self._records.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            logger.debug("Cache cleared (removed %d entries)", count)

    def size(self) -> int:
        with self._lock:
            return len(self._records)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._records.keys())

    def get_stats(self) -> Dict[str, Any]:
        """
        Return counters and bounds for diagnostics.
        """
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._records),
                "maxSize": self._options.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "memoryUsageMB": self._memory_bytes() / BYTES_PER_MB,
                "maxMemoryMB": self._options.max_memory_mb,
                "hitRate": self._hits / total if total > 0 else 0,
            }

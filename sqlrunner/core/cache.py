"""Query result caching.

Components:
- CacheKey: Immutable cache key built from query text and parameter values
- CacheStats: Hit/miss/eviction counters
- UnifiedCache: In-memory store with LRU eviction and TTL
- DiskCacheStore: One msgpack file per key, expired by file age
- QueryCache: Policy layer deciding what the executor may read and write
"""

import contextlib
import hashlib
import threading
import time
from collections import OrderedDict
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, Optional, Protocol, Union, runtime_checkable

import msgspec
from mypy_extensions import mypyc_attr

from sqlrunner._serialization import decode_msgpack, encode_msgpack
from sqlrunner.core.result import result_from_payload
from sqlrunner.utils.logging import get_logger
from sqlrunner.utils.serializers import to_json

if TYPE_CHECKING:
    from sqlrunner.config import ExecutionConfig
    from sqlrunner.core.classifier import StatementKind
    from sqlrunner.core.result import StatementResult

__all__ = (
    "CacheKey",
    "CacheStats",
    "CacheStore",
    "DiskCacheStore",
    "QueryCache",
    "UnifiedCache",
    "make_cache_key",
    "parameter_fingerprint",
)

logger = get_logger("core.cache")

DEFAULT_MAX_SIZE: Final = 1000
DEFAULT_TTL_SECONDS: Final = 3600
CACHE_FILE_SUFFIX: Final = ".cache"


@mypyc_attr(allow_interpreted_subclasses=False)
class CacheKey:
    """Immutable cache key.

    Args:
        key_data: Tuple of hashable values that uniquely identify the cached item
    """

    __slots__ = ("_hash", "_key_data")

    def __init__(self, key_data: "tuple[Any, ...]") -> None:
        self._key_data = key_data
        self._hash = hash(key_data)

    @property
    def key_data(self) -> "tuple[Any, ...]":
        return self._key_data

    @property
    def digest(self) -> str:
        """Stable hex digest, usable as a file name."""
        return hashlib.sha256(to_json(list(self._key_data), as_bytes=True)).hexdigest()

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: object) -> bool:
        if type(other) is not CacheKey:
            return False
        if self._hash != other._hash:
            return False
        return self._key_data == other._key_data

    def __repr__(self) -> str:
        return f"CacheKey({self._key_data!r})"


def parameter_fingerprint(parameters: "Optional[Sequence[Any]]") -> str:
    """Serialize parameter values for use in a cache key.

    Different values produce different fingerprints, so one statement text
    bound to different arguments never shares a cache entry.
    """
    if not parameters:
        return ""
    return to_json([[type(value).__name__, value] for value in parameters])


def make_cache_key(sql: str, parameters: "Optional[Sequence[Any]]" = None) -> CacheKey:
    return CacheKey(("query", sql.strip(), parameter_fingerprint(parameters)))


@mypyc_attr(allow_interpreted_subclasses=False)
class CacheStats:
    """Cache statistics tracking."""

    __slots__ = ("evictions", "hits", "misses", "writes")

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.writes = 0

    @property
    def hit_rate(self) -> float:
        """Cache hit rate as percentage."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.writes = 0

    def __repr__(self) -> str:
        return (
            f"CacheStats(hit_rate={self.hit_rate:.1f}%, "
            f"hits={self.hits}, misses={self.misses}, "
            f"evictions={self.evictions}, writes={self.writes})"
        )


@runtime_checkable
class CacheStore(Protocol):
    """Storage backend used by :class:`QueryCache`."""

    def get(self, key: CacheKey) -> "Optional[StatementResult]": ...

    def put(self, key: CacheKey, value: "StatementResult") -> None: ...

    def clear(self) -> None: ...


@mypyc_attr(allow_interpreted_subclasses=False)
class UnifiedCache:
    """In-memory cache with LRU eviction and TTL support.

    Args:
        max_size: Maximum number of items to cache (LRU eviction when exceeded)
        ttl_seconds: Time-to-live in seconds (None for no expiration)
    """

    __slots__ = ("_entries", "_lock", "_max_size", "_stats", "_ttl")

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, ttl_seconds: "Optional[int]" = DEFAULT_TTL_SECONDS) -> None:
        self._entries: OrderedDict[CacheKey, tuple[Any, float]] = OrderedDict()
        self._lock = threading.RLock()
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._stats = CacheStats()

    def _expired(self, stored_at: float) -> bool:
        return self._ttl is not None and (time.monotonic() - stored_at) > self._ttl

    def get(self, key: CacheKey) -> "Optional[Any]":
        """Get value from cache.

        Returns:
            Cached value or None if not found or expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                return None
            value, stored_at = entry
            if self._expired(stored_at):
                del self._entries[key]
                self._stats.misses += 1
                self._stats.evictions += 1
                return None
            self._entries.move_to_end(key)
            self._stats.hits += 1
            return value

    def put(self, key: CacheKey, value: Any) -> None:
        with self._lock:
            self._entries[key] = (value, time.monotonic())
            self._entries.move_to_end(key)
            self._stats.writes += 1
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)
                self._stats.evictions += 1

    def delete(self, key: CacheKey) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._stats.reset()

    def get_stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not self._expired(entry[1])


class DiskCacheStore:
    """File-per-entry result cache.

    Each entry is a msgpack document holding the key and the result payload.
    Entries older than ``ttl_seconds`` (by file modification time) are removed
    on read. Values round-trip through msgpack, so only msgpack-representable
    column values survive unchanged.
    """

    __slots__ = ("_directory", "_stats", "_ttl")

    def __init__(self, directory: "Union[str, Path]", ttl_seconds: "Optional[int]" = DEFAULT_TTL_SECONDS) -> None:
        self._directory = Path(directory)
        self._ttl = ttl_seconds
        self._stats = CacheStats()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: CacheKey) -> Path:
        return self._directory / f"{key.digest}{CACHE_FILE_SUFFIX}"

    @staticmethod
    def _discard(path: Path) -> None:
        with contextlib.suppress(OSError):
            path.unlink(missing_ok=True)

    def get(self, key: CacheKey) -> "Optional[StatementResult]":
        """Read the entry for ``key``.

        Missing, expired, unreadable and corrupt entries all count as a miss;
        the last three are removed from disk.
        """
        path = self._path_for(key)
        try:
            stat = path.stat()
        except FileNotFoundError:
            self._stats.misses += 1
            return None
        except OSError:
            logger.debug("Cannot stat cache entry %s", path, exc_info=True)
            self._stats.misses += 1
            return None
        if self._ttl is not None and (time.time() - stat.st_mtime) > self._ttl:
            self._discard(path)
            self._stats.misses += 1
            self._stats.evictions += 1
            return None
        try:
            document = decode_msgpack(path.read_bytes())
            if tuple(document["key"]) != key.key_data:
                self._stats.misses += 1
                return None
            result = result_from_payload(document["result"])
        except (OSError, msgspec.DecodeError, KeyError, TypeError, ValueError):
            logger.debug("Discarding unreadable cache entry %s", path, exc_info=True)
            self._discard(path)
            self._stats.misses += 1
            return None
        self._stats.hits += 1
        return result

    def put(self, key: CacheKey, value: "StatementResult") -> None:
        """Write the entry for ``key``; a filesystem error skips the write."""
        path = self._path_for(key)
        staging = path.with_suffix(".tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            staging.write_bytes(encode_msgpack({"key": list(key.key_data), "result": value.to_payload()}))
            staging.replace(path)
        except OSError:
            logger.warning("Could not write cache entry %s", path, exc_info=True)
            self._discard(staging)
            return
        self._stats.writes += 1

    def clear(self) -> None:
        if self._directory.is_dir():
            for path in self._directory.glob(f"*{CACHE_FILE_SUFFIX}"):
                self._discard(path)
        self._stats.reset()

    def get_stats(self) -> CacheStats:
        return self._stats


class QueryCache:
    """Decides which results the executor may serve and store.

    Row-returning results are read and written only when ``cache_queries``
    is on. Mutating statements are never served from the cache; their
    results are written only when ``cache_inserts`` is on.
    """

    __slots__ = ("_config", "_store")

    def __init__(self, config: "ExecutionConfig", store: "Optional[CacheStore]" = None) -> None:
        self._config = config
        if store is None:
            if config.use_disk_cache and config.cache_dir:
                store = DiskCacheStore(config.cache_dir, config.cache_timeout)
            else:
                store = UnifiedCache(config.cache_max_size, config.cache_timeout)
        self._store = store

    @property
    def store(self) -> CacheStore:
        return self._store

    def get(
        self, sql: str, parameters: "Optional[Sequence[Any]]", kind: "StatementKind"
    ) -> "Optional[StatementResult]":
        if not self._config.cache_queries or kind.is_mutating:
            return None
        result = self._store.get(make_cache_key(sql, parameters))
        if result is not None:
            logger.debug("Serving cached result for %r", sql)
        return result

    def put(
        self, sql: str, parameters: "Optional[Sequence[Any]]", result: "StatementResult", kind: "StatementKind"
    ) -> bool:
        """Store ``result``; returns whether it was written."""
        allowed = self._config.cache_inserts if kind.is_mutating else self._config.cache_queries
        if not allowed:
            return False
        self._store.put(make_cache_key(sql, parameters), result)
        return True

    def clear(self) -> None:
        self._store.clear()

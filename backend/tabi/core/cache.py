from __future__ import annotations

import pickle
from dataclasses import dataclass
from threading import RLock
from time import monotonic
from typing import Any, Callable, Dict, Tuple

from redis import Redis
from redis.exceptions import RedisError, WatchError

from tabi.core.logging import get_logger
from tabi.core.settings import settings

logger = get_logger(__name__)

Generation = Tuple[Any, ...]


@dataclass
class _CacheEntry:
    value: Any
    expires_at: float


class CacheBackend:
    """In-memory TTL cache with namespace based invalidation.

    Every invalidation bumps a generation counter for the namespace or key.
    ``remember`` snapshots the generation before running its loader and only
    stores the result when no invalidation happened in between, so a value
    read before a concurrent write commits never outlives that write.
    """

    def __init__(self) -> None:
        self._store: Dict[str, Dict[str, _CacheEntry]] = {}
        self._generations: Dict[Tuple[str, str | None], int] = {}
        self._epoch = 0
        self._lock = RLock()
        self.hits = 0
        self.misses = 0

    def get(self, namespace: str, key: str) -> Any | None:
        with self._lock:
            bucket = self._store.get(namespace)
            entry = bucket.get(key) if bucket else None
            if entry is None:
                return None
            if monotonic() >= entry.expires_at:
                bucket.pop(key, None)
                return None
            return entry.value

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int) -> None:
        expires_at = monotonic() + max(ttl_seconds, 1)
        with self._lock:
            bucket = self._store.setdefault(namespace, {})
            bucket[key] = _CacheEntry(value=value, expires_at=expires_at)

    def invalidate(self, namespace: str, key: str | None = None) -> None:
        with self._lock:
            slot = (namespace, key)
            self._generations[slot] = self._generations.get(slot, 0) + 1
            if key is None:
                self._store.pop(namespace, None)
                return
            bucket = self._store.get(namespace)
            if bucket is not None:
                bucket.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._generations.clear()
            self._epoch += 1
            self.hits = 0
            self.misses = 0

    def generation(self, namespace: str, key: str) -> Generation:
        with self._lock:
            return (
                self._epoch,
                self._generations.get((namespace, None), 0),
                self._generations.get((namespace, key), 0),
            )

    def set_if_current(
        self,
        namespace: str,
        key: str,
        value: Any,
        ttl_seconds: int,
        token: Generation,
    ) -> bool:
        with self._lock:
            if self.generation(namespace, key) != token:
                return False
            self.set(namespace, key, value, ttl_seconds)
            return True

    def remember(
        self,
        namespace: str,
        key: str,
        ttl_seconds: int,
        loader: Callable[[], Any],
    ) -> Any:
        cached = self.get(namespace, key)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1
        token = self.generation(namespace, key)
        value = loader()
        if not self.set_if_current(namespace, key, value, ttl_seconds, token):
            logger.debug(
                "cache.store_skipped",
                extra={"namespace": namespace, "key": key},
            )
        return value


def build_cache_key(*parts: Any, **named_parts: Any) -> str:
    """Creates a deterministic cache key from args for convenience."""

    positional = "|".join(str(part) for part in parts)
    keyword = "|".join(f"{key}={value}" for key, value in sorted(named_parts.items()))
    if positional and keyword:
        return f"{positional}::{keyword}"
    return positional or keyword


class RedisCacheBackend(CacheBackend):
    """Redis-backed cache shared by every API worker process.

    Generations live in Redis as ``INCR`` counters under ``<prefix>-gen`` so
    every worker sees the same invalidations. Redis errors degrade to cache
    misses; the database stays the source of truth.
    """

    def __init__(self, url: str, namespace_prefix: str = "tabi") -> None:
        super().__init__()
        self._client = Redis.from_url(url, decode_responses=False)
        self._prefix = namespace_prefix.rstrip(":")
        self._gen_prefix = f"{self._prefix}-gen"

    def _full_key(self, namespace: str, key: str) -> str:
        return f"{self._prefix}:{namespace}:{key}"

    def _generation_keys(self, namespace: str, key: str | None = None) -> list[str]:
        keys = [self._gen_prefix, f"{self._gen_prefix}:{namespace}"]
        if key is not None:
            keys.append(f"{self._gen_prefix}:{namespace}:{key}")
        return keys

    def get(self, namespace: str, key: str) -> Any | None:
        try:
            raw = self._client.get(self._full_key(namespace, key))
        except RedisError as exc:
            logger.warning("cache.get_failed", extra={"error": str(exc)})
            return None
        if raw is None:
            return None
        return pickle.loads(raw)

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int) -> None:
        payload = pickle.dumps(value)
        try:
            self._client.setex(
                self._full_key(namespace, key), max(ttl_seconds, 1), payload
            )
        except RedisError as exc:
            logger.warning("cache.set_failed", extra={"error": str(exc)})

    def invalidate(self, namespace: str, key: str | None = None) -> None:
        try:
            self._client.incr(self._generation_keys(namespace, key)[-1])
            if key is not None:
                self._client.delete(self._full_key(namespace, key))
                return
            for found in self._client.scan_iter(f"{self._prefix}:{namespace}:*"):
                self._client.delete(found)
        except RedisError as exc:
            logger.warning("cache.invalidate_failed", extra={"error": str(exc)})

    def clear(self) -> None:
        try:
            self._client.incr(self._gen_prefix)
            for found in self._client.scan_iter(f"{self._prefix}:*"):
                self._client.delete(found)
        except RedisError as exc:
            logger.warning("cache.invalidate_failed", extra={"error": str(exc)})

    def generation(self, namespace: str, key: str) -> Generation:
        try:
            return tuple(self._client.mget(self._generation_keys(namespace, key)))
        except RedisError as exc:
            logger.warning("cache.get_failed", extra={"error": str(exc)})
            return ()

    def set_if_current(
        self,
        namespace: str,
        key: str,
        value: Any,
        ttl_seconds: int,
        token: Generation,
    ) -> bool:
        if not token:
            return False
        payload = pickle.dumps(value)
        gen_keys = self._generation_keys(namespace, key)
        try:
            with self._client.pipeline() as pipe:
                pipe.watch(*gen_keys)
                if tuple(pipe.mget(gen_keys)) != token:
                    pipe.unwatch()
                    return False
                pipe.multi()
                pipe.setex(self._full_key(namespace, key), max(ttl_seconds, 1), payload)
                pipe.execute()
        except WatchError:
            return False
        except RedisError as exc:
            logger.warning("cache.set_failed", extra={"error": str(exc)})
            return False
        return True


def _init_cache_backend() -> CacheBackend:
    if settings.cache_provider == "redis":
        return RedisCacheBackend(
            settings.redis_url, namespace_prefix=settings.cache_namespace
        )
    return CacheBackend()


cache_backend = _init_cache_backend()

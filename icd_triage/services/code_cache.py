"""
ICD-10 Lookup Cache.

Holds confirmed authority lookups keyed by normalized code, with a fixed
time-to-live. Only valid codes are ever cached: a "not found" answer may be
caused by a transient authority problem.

Two backends share one async contract:
- InMemoryCodeCache: single-process dict guarded by an asyncio lock
- RedisCodeCache: shared cache for multi-process deployments
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError
from redis.asyncio import Redis

from icd_triage.core.config import TriageSettings, get_settings
from icd_triage.core.enums import CacheBackend
from icd_triage.schemas.validation import CacheEntry, CacheStats, utcnow
from icd_triage.services.medical.code_format import normalize_code
from icd_triage.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60  # 7 days


class CodeCache(ABC):
    """Contract shared by the cache backends."""

    backend: CacheBackend

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl_seconds = ttl_seconds
        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "expired": 0,
        }

    @property
    def ttl_seconds(self) -> int:
        """Lifetime of a cached entry."""
        return self._ttl_seconds

    @abstractmethod
    async def get(self, code: str) -> Optional[CacheEntry]:
        """Return the unexpired entry for a code, or None."""

    @abstractmethod
    async def set(self, code: str, description: str, category: str) -> CacheEntry:
        """Insert or overwrite the entry for a code."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove all entries."""

    @abstractmethod
    async def size(self) -> int:
        """Current entry count."""

    async def stats(self) -> CacheStats:
        """Get cache statistics."""
        lookups = self._stats["hits"] + self._stats["misses"]
        return CacheStats(
            backend=self.backend.value,
            size=await self.size(),
            ttl_seconds=self._ttl_seconds,
            hit_rate=(self._stats["hits"] / lookups * 100) if lookups else 0.0,
            **self._stats,
        )

    def _record(self, entry: Optional[CacheEntry], code: str) -> Optional[CacheEntry]:
        if entry is None:
            self._stats["misses"] += 1
            logger.debug(f"Cache miss for {code}")
        else:
            self._stats["hits"] += 1
            logger.debug(f"Cache hit for {code}")
        return entry


class InMemoryCodeCache(CodeCache):
    """
    Process-local code cache.

    Expired entries are purged lazily when a lookup encounters them; there is
    no background sweep and no capacity eviction.
    """

    backend = CacheBackend.MEMORY

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(ttl_seconds)
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get(self, code: str) -> Optional[CacheEntry]:
        key = normalize_code(code)
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats["expired"] += 1
                entry = None
        return self._record(entry, key)

    async def set(self, code: str, description: str, category: str) -> CacheEntry:
        key = normalize_code(code)
        entry = CacheEntry.create(
            code=key,
            description=description,
            category=category,
            ttl_seconds=self._ttl_seconds,
            now=self._clock(),
        )
        async with self._lock:
            self._entries[key] = entry
            self._stats["sets"] += 1
        return entry

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def size(self) -> int:
        return len(self._entries)


class RedisCodeCache(CodeCache):
    """
    Shared code cache backed by Redis.

    Entries are stored as JSON under ``<prefix>:<CODE>`` with SETEX, so Redis
    owns expiry. Suitable when several processes serve validation requests.
    """

    backend = CacheBackend.REDIS

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        key_prefix: str = "icd",
        client: Optional[Redis] = None,
    ):
        super().__init__(ttl_seconds)
        if client is None and not redis_url:
            raise ValueError("RedisCodeCache needs a redis_url or a client")
        self._redis_url = redis_url
        self._redis: Optional[Redis] = client
        self._key_prefix = key_prefix

    async def connect(self) -> None:
        """Connect to Redis."""
        if self._redis is None:
            self._redis = Redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self._redis.ping()
            logger.info("Code cache connected to Redis")

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("Code cache disconnected from Redis")

    @property
    def redis(self) -> Redis:
        """Get Redis client, raising if not connected."""
        if self._redis is None:
            raise RuntimeError("Cache not connected. Call connect() first.")
        return self._redis

    def _build_key(self, code: str) -> str:
        return f"{self._key_prefix}:{code}"

    async def get(self, code: str) -> Optional[CacheEntry]:
        await self.connect()
        normalized = normalize_code(code)
        key = self._build_key(normalized)
        raw = await self.redis.get(key)
        entry = None
        if raw:
            try:
                entry = CacheEntry.model_validate_json(raw)
            except ValidationError:
                logger.warning(f"Discarding unreadable cache entry {key}")
                await self.redis.delete(key)
            else:
                if entry.is_expired():
                    await self.redis.delete(key)
                    self._stats["expired"] += 1
                    entry = None
        return self._record(entry, normalized)

    async def set(self, code: str, description: str, category: str) -> CacheEntry:
        await self.connect()
        normalized = normalize_code(code)
        entry = CacheEntry.create(
            code=normalized,
            description=description,
            category=category,
            ttl_seconds=self._ttl_seconds,
        )
        await self.redis.setex(
            self._build_key(normalized),
            self._ttl_seconds,
            entry.model_dump_json(),
        )
        self._stats["sets"] += 1
        return entry

    async def _keys(self) -> list[str]:
        keys = []
        async for key in self.redis.scan_iter(match=self._build_key("*")):
            keys.append(key)
        return keys

    async def clear(self) -> None:
        await self.connect()
        keys = await self._keys()
        if keys:
            await self.redis.delete(*keys)

    async def size(self) -> int:
        await self.connect()
        return len(await self._keys())


def create_code_cache(settings: Optional[TriageSettings] = None) -> CodeCache:
    """Create the cache backend selected by settings."""
    settings = settings or get_settings()
    if settings.uses_redis:
        return RedisCodeCache(
            redis_url=settings.REDIS_URL,
            ttl_seconds=settings.CACHE_TTL_SECONDS,
            key_prefix=settings.CACHE_KEY_PREFIX,
        )
    return InMemoryCodeCache(ttl_seconds=settings.CACHE_TTL_SECONDS)

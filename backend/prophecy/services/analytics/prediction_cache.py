"""
Prediction Cache

Memoizes full prediction results per (user, clip, model variant) for a fixed
time-to-live. Concurrent misses for the same key may each recompute and
write; the last writer wins. Recomputation is idempotent within the TTL
window so no locking is done.

Key components are percent-encoded, so a key never contains a separator or
a redis glob character that came from a user or clip id.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import redis.asyncio as redis
from redis.exceptions import RedisError

from prophecy.core.config import settings
from prophecy.core.exceptions import UpstreamUnavailableError
from prophecy.schemas.prophecy import ModelVariant, PredictionResult

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_CLIP_KEY = "default"

KEY_SEPARATOR = ":"
_GLOB_CHARS = re.compile(r"([*?\[\]\\])")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def encode_key_part(value: str) -> str:
    return quote(value, safe="")


def escape_glob(value: str) -> str:
    return _GLOB_CHARS.sub(r"\\\1", value)


@dataclass
class CacheEntry:
    """Cached prediction with its creation time"""
    result: PredictionResult
    created_at: datetime

    def is_valid(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.created_at < ttl

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result.model_dump(mode="json"),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            result=PredictionResult.model_validate(data["result"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass
class CacheStats:
    """Cache performance statistics"""
    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0
    writes: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "evictions": self.evictions,
            "writes": self.writes,
            "invalidations": self.invalidations,
            "hit_rate": self.hit_rate,
        }


class PredictionStore(ABC):
    """Key-value storage behind the prediction cache"""

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        ...

    @abstractmethod
    async def set(self, key: str, entry: CacheEntry, ttl_seconds: int) -> int:
        """Store an entry and return how many other entries were evicted"""

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        ...

    async def cleanup_expired(self, now: datetime, ttl: timedelta) -> int:
        """Drop entries older than `ttl`; stores with their own expiry keep the default"""
        return 0


class InMemoryPredictionStore(PredictionStore):
    """Process-local LRU store bounded by `max_size`"""

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size if max_size is not None else settings.PREDICTION_CACHE_MAX_SIZE
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    async def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    async def set(self, key: str, entry: CacheEntry, ttl_seconds: int) -> int:
        evicted = 0
        if key in self._entries:
            self._entries.move_to_end(key)
        else:
            while self._entries and len(self._entries) >= self.max_size:
                # least recently used first
                self._entries.popitem(last=False)
                evicted += 1
        self._entries[key] = entry
        return evicted

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def delete_prefix(self, prefix: str) -> int:
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    async def cleanup_expired(self, now: datetime, ttl: timedelta) -> int:
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now, ttl)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RedisPredictionStore(PredictionStore):
    """Shared store for multi-process deployments"""

    def __init__(self, client: Optional[redis.Redis] = None, prefix: Optional[str] = None):
        self.redis = client or redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
        self.prefix = prefix or settings.PREDICTION_CACHE_PREFIX

    def _get_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[CacheEntry]:
        try:
            value = await self.redis.get(self._get_key(key))
        except RedisError as e:
            logger.error(f"Prediction cache read failed for {key}: {e}")
            raise UpstreamUnavailableError("Prediction cache unavailable", source="prediction_cache") from e

        if value is None:
            return None
        try:
            return CacheEntry.from_dict(json.loads(value))
        except (ValueError, KeyError) as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None

    async def set(self, key: str, entry: CacheEntry, ttl_seconds: int) -> int:
        try:
            # server-side expiry bounds storage; validity is decided by PredictionCache
            await self.redis.set(self._get_key(key), json.dumps(entry.to_dict()), ex=ttl_seconds)
        except RedisError as e:
            logger.error(f"Prediction cache write failed for {key}: {e}")
            raise UpstreamUnavailableError("Prediction cache unavailable", source="prediction_cache") from e
        return 0

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._get_key(key))
        except RedisError as e:
            raise UpstreamUnavailableError("Prediction cache unavailable", source="prediction_cache") from e

    async def delete_prefix(self, prefix: str) -> int:
        pattern = f"{escape_glob(self._get_key(prefix))}*"
        try:
            keys = [key async for key in self.redis.scan_iter(match=pattern)]
            if keys:
                await self.redis.delete(*keys)
            return len(keys)
        except RedisError as e:
            raise UpstreamUnavailableError("Prediction cache unavailable", source="prediction_cache") from e


class PredictionCache:
    """TTL cache of prediction results keyed by user, clip and variant"""

    def __init__(
        self,
        store: Optional[PredictionStore] = None,
        ttl_seconds: Optional[int] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store or InMemoryPredictionStore()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.PREDICTION_CACHE_TTL
        self.ttl = timedelta(seconds=self.ttl_seconds)
        self.clock = clock or utc_now
        self.stats = CacheStats()

    @staticmethod
    def user_prefix(user_id: str) -> str:
        return f"{encode_key_part(user_id)}{KEY_SEPARATOR}"

    @classmethod
    def make_key(cls, user_id: str, clip_id: Optional[str], variant: ModelVariant) -> str:
        clip = encode_key_part(clip_id) if clip_id else DEFAULT_CLIP_KEY
        return f"{cls.user_prefix(user_id)}{clip}{KEY_SEPARATOR}{ModelVariant(variant).value}"

    async def get(
        self,
        user_id: str,
        clip_id: Optional[str],
        variant: ModelVariant,
    ) -> Optional[PredictionResult]:
        """Return the cached result, or None on a miss or an expired entry"""
        key = self.make_key(user_id, clip_id, variant)
        entry = await self.store.get(key)

        if entry is None:
            self.stats.misses += 1
            return None

        if not entry.is_valid(self.clock(), self.ttl):
            await self.store.delete(key)
            self.stats.expirations += 1
            self.stats.misses += 1
            logger.debug(f"Prediction cache entry expired: {key}")
            return None

        self.stats.hits += 1
        logger.debug(f"Prediction cache hit: {key}")
        return entry.result

    async def put(
        self,
        user_id: str,
        clip_id: Optional[str],
        variant: ModelVariant,
        result: PredictionResult,
    ) -> None:
        now = self.clock()
        expired = await self.store.cleanup_expired(now, self.ttl)
        if expired:
            self.stats.expirations += expired
            logger.debug(f"Swept {expired} expired prediction cache entries")

        key = self.make_key(user_id, clip_id, variant)
        evicted = await self.store.set(key, CacheEntry(result=result, created_at=now), self.ttl_seconds)
        self.stats.evictions += evicted
        self.stats.writes += 1

    async def invalidate_user(self, user_id: str) -> int:
        """Drop every cached prediction for a user"""
        removed = await self.store.delete_prefix(self.user_prefix(user_id))
        self.stats.invalidations += removed
        if removed:
            logger.info(f"Invalidated {removed} cached predictions for user {user_id}")
        return removed


def build_prediction_cache(clock: Optional[Clock] = None) -> PredictionCache:
    """Create the cache using the configured backend"""
    if settings.PREDICTION_CACHE_BACKEND == "redis":
        store: PredictionStore = RedisPredictionStore()
    else:
        store = InMemoryPredictionStore()
    return PredictionCache(store=store, clock=clock)

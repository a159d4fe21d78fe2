"""Redis-based caching layer for validation reports.

Cache key format: "validation:{rule_signature}:{checksum}"

``checksum`` is the content hash of the validated graph and
``rule_signature`` identifies the rule set that produced the report, so a
validator with different rules, thresholds or registry contents never
reads another's entries.
When no Redis URL is configured an in-process TTL dict is used instead.
It drops expired entries on every write and holds at most
``max_entries`` reports, evicting the oldest first.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError
from redis import ConnectionPool, Redis
from redis.exceptions import RedisError

from pipeline_graph.core.config import settings
from pipeline_graph.schemas.validation import ValidationReport

logger = logging.getLogger(__name__)

# Cache key prefix
VALIDATION_CACHE_PREFIX = "validation"


class ValidationCache:
    """Cache for pipeline validation reports.

    Features:
    - Cache key: rule signature + graph checksum
    - TTL: settings.VALIDATION_CACHE_TTL (5 minutes by default)
    - Graceful degradation: Redis errors are logged and treated as misses
    - In-memory fallback when Redis is not configured, bounded by
      settings.VALIDATION_CACHE_MAX_ENTRIES
    """

    def __init__(
        self,
        redis_url: str | None = None,
        ttl: int | None = None,
        client: Redis | None = None,
        max_entries: int | None = None,
    ) -> None:
        """Initialize the validation cache.

        Args:
            redis_url: Redis connection URL. Ignored when ``client`` is given.
            ttl: Cache TTL in seconds. Defaults to settings.VALIDATION_CACHE_TTL
            client: Pre-built Redis client.
            max_entries: Size cap of the in-memory fallback. Defaults to
                settings.VALIDATION_CACHE_MAX_ENTRIES
        """
        self.ttl = settings.VALIDATION_CACHE_TTL if ttl is None else ttl
        self.max_entries = (
            settings.VALIDATION_CACHE_MAX_ENTRIES if max_entries is None else max_entries
        )
        self._pool: ConnectionPool | None = None
        self._redis: Redis | None = client
        self._in_memory_cache: OrderedDict[str, tuple[str, datetime]] = OrderedDict()

        if self._redis is None and redis_url:
            self._initialize_redis(redis_url)

        if self._redis is None:
            logger.info("Using in-memory cache for validation reports")

    @classmethod
    def from_settings(cls) -> ValidationCache:
        """Build a cache from REDIS_URL and VALIDATION_CACHE_TTL."""
        redis_url = str(settings.REDIS_URL) if settings.REDIS_URL else None
        return cls(redis_url=redis_url, ttl=settings.VALIDATION_CACHE_TTL)

    def _initialize_redis(self, redis_url: str) -> None:
        try:
            self._pool = ConnectionPool.from_url(redis_url, decode_responses=True)
            self._redis = Redis(connection_pool=self._pool)
            logger.info("Validation cache initialized with Redis")
        except (RedisError, ValueError) as e:
            logger.warning(f"Failed to initialize Redis cache: {e}")
            self._pool = None
            self._redis = None

    @property
    def uses_redis(self) -> bool:
        return self._redis is not None

    @staticmethod
    def make_key(rule_signature: str, checksum: str) -> str:
        """Cache key format: validation:{rule_signature}:{checksum}"""
        return f"{VALIDATION_CACHE_PREFIX}:{rule_signature}:{checksum}"

    def get(self, rule_signature: str, checksum: str) -> ValidationReport | None:
        """Get a cached report.

        Returns:
            The cached report, or None if not found, expired or unreadable.
        """
        cache_key = self.make_key(rule_signature, checksum)

        if self._redis is None:
            entry = self._in_memory_cache.get(cache_key)
            if entry is None:
                logger.debug(f"In-memory cache MISS: {cache_key}")
                return None
            payload, expiry_time = entry
            if datetime.now(UTC) >= expiry_time:
                del self._in_memory_cache[cache_key]
                logger.debug(f"In-memory cache expired: {cache_key}")
                return None
            logger.debug(f"In-memory cache HIT: {cache_key}")
            return ValidationReport.model_validate_json(payload)

        try:
            payload = self._redis.get(cache_key)
        except RedisError as e:
            logger.warning(f"Redis get failed: {e}")
            return None

        if not payload:
            logger.debug(f"Redis cache MISS: {cache_key}")
            return None

        try:
            report = ValidationReport.model_validate_json(payload)
        except ValidationError as e:
            logger.warning(f"Cache deserialization failed: {e}")
            return None

        logger.debug(f"Redis cache HIT: {cache_key}")
        return report

    def set(self, rule_signature: str, report: ValidationReport) -> bool:
        """Cache a report under its own checksum with TTL.

        Returns:
            True if successfully cached, False otherwise.
        """
        cache_key = self.make_key(rule_signature, report.checksum)
        payload = report.model_dump_json()

        if self._redis is None:
            now = datetime.now(UTC)
            self._evict_expired(now)
            self._in_memory_cache[cache_key] = (payload, now + timedelta(seconds=self.ttl))
            self._in_memory_cache.move_to_end(cache_key)
            while len(self._in_memory_cache) > self.max_entries:
                evicted, _ = self._in_memory_cache.popitem(last=False)
                logger.debug(f"In-memory cache evicted: {evicted}")
            logger.debug(f"In-memory cached: {cache_key} (TTL: {self.ttl}s)")
            return True

        try:
            self._redis.setex(cache_key, self.ttl, payload)
        except RedisError as e:
            logger.warning(f"Redis set failed: {e}")
            return False

        logger.debug(f"Redis cached: {cache_key} (TTL: {self.ttl}s)")
        return True

    def invalidate(self, checksum: str | None = None) -> int:
        """Drop cached reports for one graph checksum, or all reports.

        Returns:
            Number of entries removed (0 on Redis failure).
        """
        suffix = f":{checksum}" if checksum else ""

        if self._redis is None:
            keys = [
                key
                for key in self._in_memory_cache
                if key.startswith(f"{VALIDATION_CACHE_PREFIX}:") and key.endswith(suffix)
            ]
            for key in keys:
                del self._in_memory_cache[key]
            logger.debug(f"In-memory cache invalidated {len(keys)} entries")
            return len(keys)

        pattern = f"{VALIDATION_CACHE_PREFIX}:*{suffix}"
        try:
            keys = list(self._redis.scan_iter(match=pattern))
            if keys:
                self._redis.delete(*keys)
        except RedisError as e:
            logger.warning(f"Redis delete failed: {e}")
            return 0

        logger.debug(f"Invalidated {len(keys)} cache entries matching {pattern}")
        return len(keys)

    def close(self) -> None:
        """Close the Redis connection pool, if one was created."""
        if self._pool is not None:
            self._pool.disconnect()
            logger.info("Validation cache connection closed")
        self._in_memory_cache.clear()

    def _evict_expired(self, now: datetime) -> None:
        expired = [
            key for key, (_, expiry_time) in self._in_memory_cache.items() if now >= expiry_time
        ]
        for key in expired:
            del self._in_memory_cache[key]
        if expired:
            logger.debug(f"In-memory cache dropped {len(expired)} expired entries")


__all__ = ["VALIDATION_CACHE_PREFIX", "ValidationCache"]

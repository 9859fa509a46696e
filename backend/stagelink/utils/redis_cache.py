import logging
import os
import random
from typing import Iterable, Optional

import redis

from stagelink.core.config import settings
from .json import dumps, loads

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


class _NullRedis:
    """No-op Redis client used when Redis is disabled.

    Methods mirror the minimal surface used in this codebase so callers can
    proceed without needing try/except around get_redis_client().
    """

    def get(self, key: str):
        return None

    def setex(self, key: str, expire: int, value: str):
        return None

    def scan_iter(self, pattern: str):
        return iter(())

    def delete(self, key: str):
        return 0

    def close(self):
        return None


def _disabled(url: str) -> bool:
    return not url or url.lower() in {"none", "disabled", "false", "0"}


def get_redis_client() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        url = (os.getenv("REDIS_URL") or settings.REDIS_URL or "").strip()
        if _disabled(url):
            _redis_client = _NullRedis()  # type: ignore[assignment]
            return _redis_client
        # Conservative socket timeouts so a slow Redis never stalls availability reads
        _redis_client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=float(os.getenv("REDIS_CONNECT_TIMEOUT", "0.5")),
            socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", "0.5")),
        )
    return _redis_client


AVAILABILITY_KEY_PREFIX = "availability"


def _apply_jitter(expire: int) -> int:
    """Return a TTL with a small random jitter to prevent cache stampedes."""
    return expire + random.randint(0, max(1, expire // 10))


def _availability_key(
    artist_profile_id: Optional[int],
    venue_profile_id: Optional[int],
    year: int,
    month: int,
) -> str:
    a = artist_profile_id if artist_profile_id is not None else "-"
    v = venue_profile_id if venue_profile_id is not None else "-"
    return f"{AVAILABILITY_KEY_PREFIX}:{a}:{v}:{year:04d}-{month:02d}"


def get_cached_availability(
    artist_profile_id: Optional[int],
    venue_profile_id: Optional[int],
    year: int,
    month: int,
) -> dict | None:
    client = get_redis_client()
    key = _availability_key(artist_profile_id, venue_profile_id, year, month)
    try:
        data = client.get(key)
    except redis.exceptions.RedisError as exc:
        logger.warning("Redis unavailable: %s", exc)
        return None
    if not data:
        return None
    try:
        return loads(data)
    except ValueError as exc:
        # Corrupted entries are treated as a miss so availability never 500s
        logger.warning("Could not decode availability cache for key %s: %s", key, exc)
        return None


def cache_availability(
    data: dict,
    artist_profile_id: Optional[int],
    venue_profile_id: Optional[int],
    year: int,
    month: int,
    expire: Optional[int] = None,
) -> None:
    client = get_redis_client()
    key = _availability_key(artist_profile_id, venue_profile_id, year, month)
    ttl = _apply_jitter(expire if expire is not None else settings.AVAILABILITY_CACHE_TTL)
    try:
        client.setex(key, ttl, dumps(data))
    except redis.exceptions.RedisError as exc:
        logger.warning("Could not cache availability: %s", exc)
    return None


def invalidate_availability_cache(profile_ids: Iterable[Optional[int]]) -> int:
    """Drop every cached month that involves any of ``profile_ids``.

    Returns the number of keys deleted (0 when Redis is unavailable).
    """
    client = get_redis_client()
    deleted = 0
    try:
        for pid in {p for p in profile_ids if p is not None}:
            for pattern in (
                f"{AVAILABILITY_KEY_PREFIX}:{pid}:*",
                f"{AVAILABILITY_KEY_PREFIX}:*:{pid}:*",
            ):
                for key in client.scan_iter(pattern):
                    deleted += int(client.delete(key) or 0)
    except redis.exceptions.RedisError as exc:
        logger.warning("Could not clear availability cache: %s", exc)
    return deleted


def close_redis_client() -> None:
    """Close the global Redis client if it exists."""
    global _redis_client
    if _redis_client is not None:
        try:
            _redis_client.close()
        except redis.exceptions.RedisError as exc:  # pragma: no cover - best effort
            logger.warning("Error closing Redis client: %s", exc)
        finally:
            _redis_client = None

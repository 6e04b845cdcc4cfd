from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis
from redis import Redis

from civicfix.core.config import settings

logger = logging.getLogger("civicfix.redis")

_client: Optional[Redis] = None


def get_redis() -> Optional[Redis]:
    """Return a singleton Redis client (or None if disabled/not reachable)."""
    global _client
    if _client is not None:
        return _client
    if not (settings.REDIS_URL or "").strip():
        return None
    try:
        client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
        client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis unavailable: %s", exc)
        return None
    _client = client
    return _client


# Cache helpers. A failing Redis never fails the request; callers fall back
# to the database.


def cache_get_json(key: str) -> Any | None:
    r = get_redis()
    if r is None:
        return None
    try:
        raw = r.get(key)
    except redis.RedisError as exc:
        logger.warning("cache read failed for %s: %s", key, exc)
        return None
    return json.loads(raw) if raw is not None else None


def cache_set_json(key: str, value: Any, ttl_seconds: int) -> None:
    r = get_redis()
    if r is None:
        return
    try:
        r.setex(key, ttl_seconds, json.dumps(value, ensure_ascii=False))
    except redis.RedisError as exc:
        logger.warning("cache write failed for %s: %s", key, exc)


def cache_delete(*keys: str) -> None:
    r = get_redis()
    if r is None or not keys:
        return
    try:
        r.delete(*keys)
    except redis.RedisError as exc:
        logger.warning("cache invalidation failed for %s: %s", ",".join(keys), exc)

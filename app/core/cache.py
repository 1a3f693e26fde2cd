import json
import logging
from typing import Any, Callable, Optional

import redis
from redis.exceptions import RedisError

from app.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    global _client
    if _client is None:
        _client = redis.from_url(settings.redis_url, decode_responses=True)
    return _client


def _namespaced(key: str) -> str:
    return f"{settings.app_name}:{key}"


def cached_json(key: str, ttl_seconds: int, loader: Callable[[], Any]) -> Any:
    """Return the JSON value stored under ``key`` or load and store it.

    Redis is optional: any RedisError falls through to ``loader``.
    """
    full_key = _namespaced(key)
    client = get_redis()
    try:
        raw = client.get(full_key)
    except RedisError as exc:
        logger.debug("Cache read failed for %s: %s", full_key, exc)
        raw = None
    if raw is not None:
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Dropping undecodable cache entry %s", full_key)

    data = loader()
    if data is None:
        return None
    try:
        client.setex(full_key, ttl_seconds, json.dumps(data, default=str))
    except RedisError as exc:
        logger.debug("Cache write failed for %s: %s", full_key, exc)
    return data


def invalidate(*keys: str) -> None:
    if not keys:
        return
    try:
        get_redis().delete(*(_namespaced(key) for key in keys))
    except RedisError as exc:
        logger.warning("Cache invalidation failed for %s: %s", ", ".join(keys), exc)

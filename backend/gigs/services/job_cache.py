from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import redis

from gigs.config import Settings

logger = logging.getLogger(__name__)

JOBS_NAMESPACE = "jobs"
RELATED_JOBS_NAMESPACE = "related-jobs"
JOB_NAMESPACES = (JOBS_NAMESPACE, RELATED_JOBS_NAMESPACE)
KEY_DELIMITER = "|"

CACHE_ERRORS = (redis.RedisError, TypeError, ValueError)


def _format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


def build_cache_key(namespace: str, params: Mapping[str, Any]) -> str:
    """``jobs`` + ``{"page": "2", "city": "Berlin"}`` -> ``jobs:city:Berlin|page:2``."""
    pairs = KEY_DELIMITER.join(f"{key}:{_format_value(params[key])}" for key in sorted(params))
    return f"{namespace}:{pairs}"


def build_redis_client(config: Settings) -> redis.Redis | None:
    if not config.enable_redis_cache:
        return None
    return redis.Redis.from_url(
        config.redis_url,
        decode_responses=True,
        socket_timeout=2,
        socket_connect_timeout=2,
    )


class InvalidationIndex:
    """Set of every cache key currently stored for one namespace."""

    def __init__(self, client: redis.Redis, namespace: str) -> None:
        self.client = client
        self.namespace = namespace
        self.index_key = f"{namespace}:keys"

    def track(self, key: str) -> None:
        self.client.sadd(self.index_key, key)

    def invalidate_all(self) -> int:
        keys = list(self.client.smembers(self.index_key))
        if keys:
            self.client.delete(*keys)
        self.client.delete(self.index_key)
        return len(keys)


class JobCache:
    """Best-effort read-through cache; a ``None`` client turns every call into a miss."""

    def __init__(self, client: redis.Redis | None) -> None:
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def index(self, namespace: str) -> InvalidationIndex:
        return InvalidationIndex(self.client, namespace)

    def get(self, key: str) -> Any | None:
        if self.client is None:
            return None
        try:
            cached = self.client.get(key)
            if cached is None:
                return None
            payload = json.loads(cached)
        except CACHE_ERRORS as exc:
            logger.warning("Cache get failed for %s: %s", key, exc)
            return None
        logger.debug("Cache hit: %s", key)
        return payload

    def set(self, key: str, payload: Any, ttl_seconds: int, namespace: str) -> None:
        if self.client is None:
            return
        try:
            self.client.set(key, json.dumps(payload), ex=ttl_seconds)
            self.index(namespace).track(key)
        except CACHE_ERRORS as exc:
            logger.warning("Cache set failed for %s: %s", key, exc)
            return
        logger.debug("Cache set: %s (ttl %ss)", key, ttl_seconds)

    def invalidate(self, *namespaces: str) -> int:
        if self.client is None:
            return 0
        removed = 0
        for namespace in namespaces or JOB_NAMESPACES:
            try:
                removed += self.index(namespace).invalidate_all()
            except redis.RedisError as exc:
                logger.warning("Cache invalidation failed for %s: %s", namespace, exc)
        if removed:
            logger.debug("Cache invalidated %s keys in %s", removed, ", ".join(namespaces or JOB_NAMESPACES))
        return removed

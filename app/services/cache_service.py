"""
Redis read-through cache for stored shop configurations.

One entry per shop holds the serialized GET document. Every committed write
deletes that entry by its exact key. When Redis is unreachable the cache
reports itself unavailable and reads fall through to the database.
"""

import json
import logging
from typing import Any, Callable, Optional

import redis
from redis.exceptions import RedisError
from flask import Flask, current_app

logger = logging.getLogger(__name__)


class ConfigCache:
    """Per-shop configuration document cache. Key: {prefix}:config:{shop_id}"""

    def __init__(self, app: Optional[Flask] = None):
        self.client: Optional[redis.Redis] = None
        self._enabled = False
        self._prefix = ''
        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self._enabled = app.config.get('CACHE_ENABLED', True)
        self._prefix = app.config.get('CACHE_KEY_PREFIX', 'group-discount')
        if not self._enabled:
            logger.info("[CACHE] Configuration cache disabled")
            return

        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')
        try:
            self.client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.client.ping()
            logger.info(f"[CACHE] Redis connected: {redis_url}")
        except RedisError as e:
            logger.warning(f"[CACHE] Redis unreachable ({e}), serving from database only")
            self._enabled = False
            self.client = None

    def is_available(self) -> bool:
        if not self._enabled or self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except RedisError:
            return False

    def key_for(self, shop_id: str) -> str:
        # Exact key, never used as a SCAN pattern: shop ids are opaque strings
        return f"{self._prefix}:config:{shop_id}"

    def get(self, shop_id: str) -> Optional[Any]:
        if not self.is_available():
            return None
        try:
            raw = self.client.get(self.key_for(shop_id))
            return json.loads(raw) if raw is not None else None
        except (RedisError, ValueError) as e:
            logger.warning(f"[CACHE] Read failed for {shop_id}: {e}")
            return None

    def set(self, shop_id: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.is_available():
            return False
        if ttl is None:
            ttl = current_app.config.get('CACHE_CONFIG_TTL', 60)
        try:
            self.client.set(self.key_for(shop_id), json.dumps(value), ex=ttl)
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] Write failed for {shop_id}: {e}")
            return False

    def invalidate(self, shop_id: str) -> bool:
        """Drop the shop's cached document. Returns True when an entry existed."""
        if not self.is_available():
            return False
        try:
            deleted = self.client.delete(self.key_for(shop_id))
        except RedisError as e:
            logger.warning(f"[CACHE] Invalidate failed for {shop_id}: {e}")
            return False
        if deleted:
            logger.info(f"[CACHE] INVALIDATE {shop_id}")
        return bool(deleted)

    def fetch(self, shop_id: str, loader: Callable[[], Any]) -> Any:
        """Return the cached document, loading and storing it on a miss."""
        cached = self.get(shop_id)
        if cached is not None:
            return cached
        value = loader()
        self.set(shop_id, value)
        return value


_cache: Optional[ConfigCache] = None


def init_cache(app: Flask) -> None:
    global _cache
    _cache = ConfigCache(app)
    app.extensions['cache'] = _cache


def get_cache() -> ConfigCache:
    if _cache is None:
        raise RuntimeError("Cache not initialized.")
    return _cache

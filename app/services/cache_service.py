"""
Redis read-through cache for reports.

Keys look like ``{prefix}:{module}:{key}``. Any Redis failure degrades to a
cache miss so reports are always served from the database as a fallback.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional

import redis
from flask import Flask, current_app
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_DECIMAL_TAG = '__decimal__'


class _ReportEncoder(json.JSONEncoder):
    """JSON encoder that keeps Decimal amounts exact."""

    def default(self, obj):
        if isinstance(obj, Decimal):
            return {_DECIMAL_TAG: str(obj)}
        if isinstance(obj, (date, datetime)):
            return obj.isoformat()
        return super().default(obj)


def _revive_decimal(obj: dict) -> Any:
    if _DECIMAL_TAG in obj:
        return Decimal(obj[_DECIMAL_TAG])
    return obj


def dumps(value: Any) -> str:
    return json.dumps(value, cls=_ReportEncoder)


def loads(raw: str) -> Any:
    return json.loads(raw, object_hook=_revive_decimal)


class CacheService:
    """Thin wrapper over a Redis client, disabled when unconfigured or unreachable."""

    def __init__(self, app: Optional[Flask] = None):
        self.client: Optional[redis.Redis] = None
        self._enabled = False
        self._prefix = 'orders'
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self._prefix = app.config.get('CACHE_KEY_PREFIX', self._prefix)
        if not app.config.get('CACHE_ENABLED', True):
            logger.info("[CACHE] disabled by configuration")
            return
        self.client = self._connect(app.config.get('REDIS_URL', 'redis://localhost:6379/0'))
        self._enabled = self.client is not None

    @staticmethod
    def _connect(url: str) -> Optional[redis.Redis]:
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            health_check_interval=30,
        )
        try:
            client.ping()
        except RedisError as e:
            logger.warning(f"[CACHE] {url} unreachable, running without cache: {e}")
            return None
        logger.info(f"[CACHE] connected to {url}")
        return client

    def is_available(self) -> bool:
        if not (self._enabled and self.client):
            return False
        try:
            return bool(self.client.ping())
        except RedisError:
            return False

    def key(self, module: str, key: str) -> str:
        return ':'.join((self._prefix, module, key))

    def get(self, module: str, key: str) -> Optional[Any]:
        if not self.is_available():
            return None
        try:
            raw = self.client.get(self.key(module, key))
            return None if raw is None else loads(raw)
        except (RedisError, ValueError) as e:
            logger.warning(f"[CACHE] read of {module}:{key} failed: {e}")
            return None

    def set(self, module: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.is_available():
            return False
        expires = ttl if ttl is not None else current_app.config.get('CACHE_DEFAULT_TTL', 60)
        try:
            self.client.setex(self.key(module, key), expires, dumps(value))
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] write of {module}:{key} failed: {e}")
            return False
        return True

    def invalidate_module(self, module: str) -> int:
        """Remove all keys under ``module`` and return how many were dropped."""
        if not self.is_available():
            return 0
        pattern = self.key(module, '*')
        try:
            stale = list(self.client.scan_iter(match=pattern, count=200))
            dropped = self.client.delete(*stale) if stale else 0
        except RedisError as e:
            logger.warning(f"[CACHE] invalidation of {pattern} failed: {e}")
            return 0
        if dropped:
            logger.info(f"[CACHE] dropped {dropped} key(s) under {pattern}")
        return dropped

    def memoize(self, module: str, key: str, loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        hit = self.get(module, key)
        if hit is not None:
            return hit
        value = loader()
        self.set(module, key, value, ttl)
        return value


def init_cache(app: Flask) -> CacheService:
    cache = CacheService(app)
    app.extensions['cache'] = cache
    return cache


def get_cache() -> Optional[CacheService]:
    """Cache bound to the current app, or None outside an app context."""
    try:
        return current_app.extensions.get('cache')
    except RuntimeError:
        return None


def invalidate_reports() -> None:
    cache = get_cache()
    if cache is not None:
        cache.invalidate_module('reports')

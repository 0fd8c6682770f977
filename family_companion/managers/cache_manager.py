# family_companion/managers/cache_manager.py
import redis.asyncio as redis
import json
import asyncio
import logging
from typing import Optional, Dict, Any, Tuple
from datetime import datetime, timedelta
from family_companion.config import settings

logger = logging.getLogger(__name__)


class InMemoryCache:
    """Process-local stand-in for the few Redis calls the cache makes"""

    def __init__(self):
        # key -> (value, expires_at or None)
        self._entries: Dict[str, Tuple[str, Optional[datetime]]] = {}

    async def set(self, key: str, value: str, ex: int = None):
        expires_at = datetime.utcnow() + timedelta(seconds=ex) if ex else None
        self._entries[key] = (value, expires_at)

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at and datetime.utcnow() > expires_at:
            del self._entries[key]
            return None
        return value

    async def delete(self, *keys: str):
        for key in keys:
            self._entries.pop(key, None)

    async def ping(self) -> bool:
        return True

    async def aclose(self):
        self._entries.clear()


class CacheManager:
    """Caches derived per-user views (insights, contact suggestions)"""

    def __init__(self, host: str = None, port: int = None, db: int = None, use_fallback: bool = None):
        self.redis: Optional[redis.Redis] = None
        self.fallback_cache = InMemoryCache()
        self.using_fallback = False
        self.connection_tested = False
        self.force_fallback = settings.mock_redis if use_fallback is None else use_fallback

        self.host = host or settings.redis_host
        self.port = port or settings.redis_port
        self.db = db if db is not None else settings.redis_db

    async def _connect(self, host: str) -> Optional[redis.Redis]:
        client = redis.Redis(
            host=host,
            port=self.port,
            db=self.db,
            password=settings.redis_password,
            ssl=settings.redis_ssl,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout,
            socket_connect_timeout=settings.redis_connection_timeout,
        )
        try:
            await asyncio.wait_for(client.ping(), timeout=settings.redis_connection_timeout)
        except Exception as e:
            logger.debug(f"Redis not reachable at {host}:{self.port} - {e}")
            await client.aclose()
            return None

        logger.info(f"Redis connected: {host}:{self.port}")
        return client

    async def _backend(self):
        """Redis once a host answers, otherwise the in-memory cache"""
        if not self.connection_tested:
            self.connection_tested = True
            if self.force_fallback:
                logger.info("Using in-memory cache (mock_redis=True)")
            else:
                for host in settings.get_redis_hosts_to_try():
                    self.redis = await self._connect(host)
                    if self.redis:
                        break
                else:
                    logger.warning("No Redis host reachable, using in-memory cache")
            self.using_fallback = self.redis is None

        return self.fallback_cache if self.using_fallback else self.redis

    def _fail_over(self, action: str, key, error: Exception):
        logger.error(f"Redis {action} failed for {key}: {error}")
        if not self.using_fallback:
            logger.warning("Switching to in-memory cache after Redis error")
            self.using_fallback = True

    async def set_json(self, key: str, value: Dict[str, Any], ex: int = None):
        data = json.dumps(value, default=str)
        backend = await self._backend()
        try:
            await backend.set(key, data, ex=ex)
        except redis.RedisError as e:
            self._fail_over("set", key, e)
            await self.fallback_cache.set(key, data, ex=ex)

    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        backend = await self._backend()
        try:
            data = await backend.get(key)
        except redis.RedisError as e:
            self._fail_over("get", key, e)
            data = await self.fallback_cache.get(key)
        return json.loads(data) if data else None

    async def delete(self, *keys: str):
        backend = await self._backend()
        try:
            await backend.delete(*keys)
        except redis.RedisError as e:
            self._fail_over("delete", keys, e)
        await self.fallback_cache.delete(*keys)

    @staticmethod
    def insights_key(user_id: int) -> str:
        return f"insights:{user_id}"

    @staticmethod
    def contact_time_key(user_id: int) -> str:
        return f"contact_time:{user_id}"

    async def invalidate_user(self, user_id: int):
        """Drop cached views that depend on the user's conversations"""
        await self.delete(self.insights_key(user_id), self.contact_time_key(user_id))

    async def get_connection_status(self) -> Dict[str, Any]:
        backend = await self._backend()
        status = {"type": "fallback" if self.using_fallback else "redis", "connected": True}

        if not self.using_fallback:
            status.update(host=self.host, port=self.port)
            try:
                await backend.ping()
            except redis.RedisError as e:
                status["connected"] = False
                status["error"] = str(e)
        return status

    async def close(self):
        if self.redis:
            try:
                await self.redis.aclose()
                logger.info("Redis connection closed")
            except redis.RedisError as e:
                logger.error(f"Error closing Redis connection: {e}")
        await self.fallback_cache.aclose()

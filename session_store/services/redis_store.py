# session_store/services/redis_store.py
"""
Redis session store.

Async adapter mapping the store operations onto Redis commands:
- get    -> GET
- set    -> SET ... PX
- touch  -> PEXPIRE
- remove -> DEL

Values are JSON encoded, or encoded through a pydantic model when one is
given. Keys can be namespaced with a prefix and/or postfix so one Redis
database can hold several logical session stores. The adapter keeps a
single long-lived client; the client's pool hands out a connection per
command.
"""
import os
import json
import logging
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union

import redis.asyncio as redis
from pydantic import BaseModel

from session_store.core.backend import StoreBackend
from session_store.core.store import ttl_seconds
from session_store.core.logging_config import short_token
from session_store.core.exceptions import (
    StoreUnavailable,
    SessionDataCorrupted,
    SessionSerializationError,
    config_error,
    store_unavailable
)

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Checked in order when no URL is configured explicitly
URL_ENV_VARS = ("SESSION_REDIS_URL", "REDIS_URL")


@dataclass
class RedisStoreConfig:
    """Configuration for RedisStore"""
    url: Optional[str] = None
    prefix: Optional[str] = None
    postfix: Optional[str] = None
    decode_responses: bool = True
    socket_timeout: float = 5.0
    max_connections: int = 10
    retry_on_timeout: bool = True
    health_check_interval: int = 30


class RedisStore(StoreBackend[RedisStoreConfig], Generic[T]):
    """
    Store backed by Redis.

    Every backend failure, including a payload that no longer decodes, is
    raised as StoreUnavailable.
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        config: Optional[RedisStoreConfig] = None,
        model: Optional[Type[BaseModel]] = None
    ):
        """
        Initialize the Redis store.

        Args:
            client: Ready-made async Redis client. If omitted, one is built
                from ``config.url`` or the environment on first use.
            config: Store configuration, left unchanged
            model: Optional pydantic model used to encode and decode values
        """
        config = config or RedisStoreConfig()
        self._url_source = None
        if client is None and config.url is None:
            config = replace(config, url=self._get_redis_url())

        super().__init__(config)
        self._provided_client = client
        self._model = model

    @classmethod
    def from_url(
        cls,
        url: str,
        prefix: Optional[str] = None,
        postfix: Optional[str] = None,
        model: Optional[Type[BaseModel]] = None,
        **kwargs
    ) -> 'RedisStore':
        """Create a store for ``url`` with optional key namespacing"""
        config = RedisStoreConfig(url=url, prefix=prefix, postfix=postfix, **kwargs)
        return cls(config=config, model=model)

    def _get_redis_url(self) -> Optional[str]:
        for var in URL_ENV_VARS:
            if url := os.environ.get(var):
                self._url_source = var
                logger.info(f"Using Redis URL from {var}")
                return url
        return None

    async def _open(self) -> redis.Redis:
        if self._provided_client is not None:
            return self._provided_client

        if not self.config.url:
            raise config_error(
                "No Redis URL configured. Set one of: " + ", ".join(URL_ENV_VARS),
                component=self.backend_name
            )

        return redis.from_url(
            self.config.url,
            decode_responses=self.config.decode_responses,
            socket_timeout=self.config.socket_timeout,
            max_connections=self.config.max_connections,
            retry_on_timeout=self.config.retry_on_timeout,
            health_check_interval=self.config.health_check_interval
        )

    @property
    def namespace(self) -> Optional[str]:
        if not (self.config.prefix or self.config.postfix):
            return None
        return self.to_key("{token}")

    def to_key(self, token: str) -> str:
        """
        Build the Redis key for a session token.

        With prefix "user:" the token "1234" is stored under "user:1234";
        with postfix ":id" it is stored under "1234:id".
        """
        return f"{self.config.prefix or ''}{token}{self.config.postfix or ''}"

    def _encode(self, value: T) -> str:
        try:
            if self._model is not None:
                return self._model.model_validate(value).model_dump_json()
            return json.dumps(value)
        except (TypeError, ValueError) as e:
            raise SessionSerializationError(
                f"Session value cannot be serialized: {e}",
                value_type=type(value).__name__
            ) from e

    def _decode(self, raw: Union[str, bytes], key: str) -> T:
        try:
            if self._model is not None:
                return self._model.model_validate_json(raw)
            return json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            logger.error(f"Corrupted session payload under {short_token(key)}: {e}")
            raise SessionDataCorrupted(
                "stored session payload could not be decoded",
                backend=self.backend_name,
                operation="get",
                key=key
            ) from e

    def _unavailable(self, operation: str, key: str, error: Exception) -> StoreUnavailable:
        logger.error(f"Redis {operation} failed for key {short_token(key)}: {error}")
        return store_unavailable(self.backend_name, operation, key=key, error=error)

    async def get(self, key: str) -> Optional[T]:
        redis_key = self.to_key(key)
        await self.ensure_initialized()
        try:
            raw = await self._client.get(redis_key)
        except Exception as e:
            raise self._unavailable("get", redis_key, e) from e

        if raw is None:
            return None
        return self._decode(raw, redis_key)

    async def set(self, key: str, value: T, ttl: Union[timedelta, float]) -> None:
        redis_key = self.to_key(key)
        payload = self._encode(value)
        millis = _to_millis(ttl)
        await self.ensure_initialized()
        try:
            if millis > 0:
                await self._client.set(redis_key, payload, px=millis)
            else:
                # Already expired: no stale entry may stay readable
                await self._client.delete(redis_key)
        except Exception as e:
            raise self._unavailable("set", redis_key, e) from e

    async def touch(self, key: str, ttl: Union[timedelta, float]) -> None:
        redis_key = self.to_key(key)
        await self.ensure_initialized()
        try:
            # PEXPIRE on a missing key is a no-op returning 0
            await self._client.pexpire(redis_key, _to_millis(ttl))
        except Exception as e:
            raise self._unavailable("touch", redis_key, e) from e

    async def remove(self, key: str) -> None:
        redis_key = self.to_key(key)
        await self.ensure_initialized()
        try:
            await self._client.delete(redis_key)
        except Exception as e:
            raise self._unavailable("remove", redis_key, e) from e

    async def _probe(self) -> Dict[str, Any]:
        await self._client.ping()
        info = await self._client.info()

        return {
            "url_source": self._url_source,
            "redis_version": info.get("redis_version", "unknown"),
            "connected_clients": info.get("connected_clients", 0),
            "used_memory_human": info.get("used_memory_human", "unknown")
        }

    async def _close(self) -> None:
        # A client handed in by the caller is owned by the caller
        if self._provided_client is None:
            await self._client.aclose()


def _to_millis(ttl: Union[timedelta, float]) -> int:
    return int(ttl_seconds(ttl) * 1000)

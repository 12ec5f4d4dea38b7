# tests/services/test_redis_store.py
"""
Unit tests for the Redis session store.

Uses mock-first approach: a dict-backed fake client for behaviour and
AsyncMock clients for failure paths and exact command arguments.
"""
import json
import pytest
from datetime import timedelta
from typing import List, Optional
from unittest.mock import AsyncMock, patch

from pydantic import BaseModel

from session_store.core.exceptions import (
    SessionConfigurationError,
    SessionDataCorrupted,
    SessionSerializationError,
    StoreUnavailable
)
from session_store.core.store import Store
from session_store.services.redis_store import RedisStore, RedisStoreConfig


class UserSession(BaseModel):
    user_id: int
    roles: List[str] = []
    display_name: Optional[str] = None


@pytest.fixture
def mock_redis_client():
    """Create a mock Redis client"""
    client = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.pexpire = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.info = AsyncMock(return_value={
        "redis_version": "7.0.0",
        "connected_clients": 5,
        "used_memory_human": "1.5M"
    })
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def store(fake_redis):
    return RedisStore(client=fake_redis)


class TestRedisStoreKeys:
    """Key namespacing"""

    def test_plain_key(self, fake_redis):
        assert RedisStore(client=fake_redis).to_key("1234") == "1234"

    def test_prefix(self, fake_redis):
        store = RedisStore(client=fake_redis, config=RedisStoreConfig(prefix="user:"))
        assert store.to_key("1234") == "user:1234"

    def test_postfix(self, fake_redis):
        store = RedisStore(client=fake_redis, config=RedisStoreConfig(postfix=":id"))
        assert store.to_key("1234") == "1234:id"

    def test_prefix_and_postfix(self, fake_redis):
        store = RedisStore(client=fake_redis, config=RedisStoreConfig(prefix="app:", postfix=":s"))
        assert store.to_key("1234") == "app:1234:s"

    async def test_namespaced_stores_do_not_collide(self, fake_redis):
        a = RedisStore(client=fake_redis, config=RedisStoreConfig(prefix="a:"))
        b = RedisStore(client=fake_redis, config=RedisStoreConfig(prefix="b:"))

        await a.set("tok", "from-a", timedelta(seconds=10))
        await b.set("tok", "from-b", timedelta(seconds=10))

        assert await a.get("tok") == "from-a"
        assert await b.get("tok") == "from-b"
        assert set(fake_redis.data) == {"a:tok", "b:tok"}


class TestRedisStoreOperations:
    """Store semantics against the fake client"""

    async def test_satisfies_store_protocol(self, store):
        assert isinstance(store, Store)

    @pytest.mark.parametrize("value", [
        "TestingName",
        42,
        3.5,
        True,
        [1, "two", {"three": 3}],
        {"user_id": 7, "roles": ["admin"], "nested": {"ok": True}},
    ])
    async def test_round_trip(self, store, value):
        await store.set("tok", value, timedelta(seconds=10))

        assert await store.get("tok") == value

    async def test_get_missing(self, store):
        assert await store.get("missing") is None

    async def test_expiry(self, store, clock):
        await store.set("tok", "v", timedelta(seconds=1))
        clock.advance(1.5)

        assert await store.get("tok") is None

    async def test_touch_extends_deadline(self, store, clock):
        await store.set("tok", "v", timedelta(seconds=1))
        clock.advance(0.5)
        await store.touch("tok", timedelta(seconds=2))
        clock.advance(1.5)

        assert await store.get("tok") == "v"

    async def test_touch_missing_is_noop(self, store, fake_redis):
        await store.touch("missing", timedelta(seconds=10))

        assert fake_redis.data == {}

    async def test_remove(self, store):
        await store.set("tok", "v", timedelta(seconds=10))
        await store.remove("tok")

        assert await store.get("tok") is None

    async def test_remove_missing_is_noop(self, store):
        await store.remove("missing")

    async def test_non_positive_ttl_deletes(self, store, fake_redis):
        await store.set("tok", "v", timedelta(seconds=10))
        await store.set("tok", "v2", timedelta(0))

        assert await store.get("tok") is None
        assert fake_redis.data == {}


class TestRedisStoreCommands:
    """Exact commands sent to Redis"""

    async def test_set_uses_px(self, mock_redis_client):
        store = RedisStore(client=mock_redis_client, config=RedisStoreConfig(prefix="user:"))

        await store.set("tok", {"a": 1}, timedelta(seconds=3600))

        mock_redis_client.set.assert_called_once_with("user:tok", json.dumps({"a": 1}), px=3600000)

    async def test_touch_uses_pexpire(self, mock_redis_client):
        store = RedisStore(client=mock_redis_client)

        await store.touch("tok", timedelta(seconds=2))

        mock_redis_client.pexpire.assert_called_once_with("tok", 2000)

    async def test_remove_uses_delete(self, mock_redis_client):
        store = RedisStore(client=mock_redis_client, config=RedisStoreConfig(postfix=":s"))

        await store.remove("tok")

        mock_redis_client.delete.assert_called_once_with("tok:s")

    async def test_get_accepts_bytes(self, mock_redis_client):
        mock_redis_client.get.return_value = b'{"name": "test"}'
        store = RedisStore(client=mock_redis_client)

        assert await store.get("tok") == {"name": "test"}


class TestRedisStoreModel:
    """Pydantic model encoding"""

    async def test_model_round_trip(self, fake_redis):
        store = RedisStore(client=fake_redis, model=UserSession)
        value = UserSession(user_id=1, roles=["admin"], display_name="Ada")

        await store.set("tok", value, timedelta(seconds=10))
        result = await store.get("tok")

        assert isinstance(result, UserSession)
        assert result == value

    async def test_model_accepts_dict(self, fake_redis):
        store = RedisStore(client=fake_redis, model=UserSession)

        await store.set("tok", {"user_id": 2}, timedelta(seconds=10))

        assert await store.get("tok") == UserSession(user_id=2)

    async def test_model_rejects_invalid_value(self, fake_redis):
        store = RedisStore(client=fake_redis, model=UserSession)

        with pytest.raises(SessionSerializationError):
            await store.set("tok", {"user_id": "not-a-number"}, timedelta(seconds=10))

    async def test_model_mismatch_is_corruption(self, fake_redis):
        store = RedisStore(client=fake_redis, model=UserSession)
        fake_redis.data["tok"] = ('{"unexpected": true}', float("inf"))

        with pytest.raises(SessionDataCorrupted):
            await store.get("tok")


class TestRedisStoreErrors:
    """Backend failures surface as StoreUnavailable"""

    @pytest.mark.parametrize("operation", ["get", "set", "pexpire", "delete"])
    async def test_backend_failure(self, mock_redis_client, operation):
        getattr(mock_redis_client, operation).side_effect = ConnectionError("Connection refused")
        store = RedisStore(client=mock_redis_client)

        with pytest.raises(StoreUnavailable) as exc_info:
            if operation == "get":
                await store.get("tok")
            elif operation == "set":
                await store.set("tok", "v", timedelta(seconds=1))
            elif operation == "pexpire":
                await store.touch("tok", timedelta(seconds=1))
            else:
                await store.remove("tok")

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert exc_info.value.details["backend"] == "RedisStore"
        assert exc_info.value.details["error_type"] == "ConnectionError"

    async def test_corrupted_payload(self, mock_redis_client):
        mock_redis_client.get.return_value = "{not json"
        store = RedisStore(client=mock_redis_client)

        with pytest.raises(SessionDataCorrupted) as exc_info:
            await store.get("tok")

        # Corruption is a store failure, not an application error
        assert isinstance(exc_info.value, StoreUnavailable)

    async def test_unserializable_value(self, store):
        with pytest.raises(SessionSerializationError):
            await store.set("tok", object(), timedelta(seconds=1))

    async def test_error_details_do_not_leak_full_key(self, mock_redis_client):
        mock_redis_client.get.side_effect = ConnectionError("down")
        store = RedisStore(client=mock_redis_client)

        with pytest.raises(StoreUnavailable) as exc_info:
            await store.get("abcdefghijklmnopqrstuvwx")

        assert "abcdefghijklmnopqrstuvwx" not in str(exc_info.value)


class TestRedisStoreLifecycle:
    """Client creation, health and shutdown"""

    async def test_from_url(self, mock_redis_client):
        store = RedisStore.from_url("redis://localhost:6379/0", prefix="user:")

        with patch('session_store.services.redis_store.redis.from_url', return_value=mock_redis_client) as from_url:
            await store.initialize()

        assert store.is_initialized
        assert store.to_key("x") == "user:x"
        assert from_url.call_args.args[0] == "redis://localhost:6379/0"

    async def test_url_from_env(self):
        with patch.dict('os.environ', {
            'SESSION_REDIS_URL': 'redis://sessions:6379',
            'REDIS_URL': 'redis://standard:6379'
        }):
            store = RedisStore()

        assert store.config.url == 'redis://sessions:6379'
        assert store._url_source == 'SESSION_REDIS_URL'

    async def test_env_url_does_not_change_caller_config(self):
        config = RedisStoreConfig(prefix="session:")

        with patch.dict('os.environ', {'REDIS_URL': 'redis://standard:6379'}, clear=True):
            store = RedisStore(config=config)

        assert store.config.url == 'redis://standard:6379'
        assert store.config.prefix == "session:"
        assert config.url is None

    async def test_unusable_url_is_store_unavailable(self):
        store = RedisStore.from_url("not-a-redis-url")

        with patch('session_store.services.redis_store.redis.from_url', side_effect=ValueError("bad scheme")):
            with pytest.raises(StoreUnavailable) as exc_info:
                await store.initialize()

        assert exc_info.value.operation == "initialize"
        assert exc_info.value.details["error_type"] == "ValueError"
        assert not store.is_initialized

    async def test_missing_url(self):
        with patch.dict('os.environ', {}, clear=True):
            store = RedisStore()

            with pytest.raises(SessionConfigurationError):
                await store.initialize()

    async def test_lazy_initialization(self, mock_redis_client):
        store = RedisStore.from_url("redis://localhost:6379/0")

        with patch('session_store.services.redis_store.redis.from_url', return_value=mock_redis_client):
            assert await store.get("tok") is None

        assert store.is_initialized

    async def test_health_check(self, mock_redis_client):
        store = RedisStore(client=mock_redis_client)

        health = await store.health_check()

        assert health["healthy"] is True
        assert health["details"]["redis_version"] == "7.0.0"
        assert health["backend"] == "RedisStore"
        assert health["namespace"] is None

    async def test_health_check_reports_namespace(self, fake_redis):
        store = RedisStore(client=fake_redis, config=RedisStoreConfig(prefix="session:", postfix=":v1"))

        health = await store.health_check()

        assert health["namespace"] == "session:{token}:v1"

    async def test_health_check_failure(self, mock_redis_client):
        mock_redis_client.ping.side_effect = ConnectionError("down")
        store = RedisStore(client=mock_redis_client)

        health = await store.health_check()

        assert health["healthy"] is False
        assert await store.is_ready() is False

    async def test_shutdown_keeps_caller_client_open(self, mock_redis_client):
        store = RedisStore(client=mock_redis_client)
        await store.initialize()

        await store.shutdown()

        mock_redis_client.aclose.assert_not_called()

    async def test_shutdown_closes_own_client(self, mock_redis_client):
        store = RedisStore.from_url("redis://localhost:6379/0")
        with patch('session_store.services.redis_store.redis.from_url', return_value=mock_redis_client):
            await store.initialize()

        await store.shutdown()

        mock_redis_client.aclose.assert_called_once()

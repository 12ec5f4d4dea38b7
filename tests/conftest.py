# tests/conftest.py
"""
Shared fixtures for session store tests.

Provides a controllable clock, stores built on it and a dict-backed
stand-in for the async Redis client.
"""

import asyncio
import pytest
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple

from session_store.core.config import CookiePolicy
from session_store.core.exceptions import StoreUnavailable
from session_store.core.security import SessionManager
from session_store.services.memory_store import MemoryStore


class FakeClock:
    """Monotonic clock that only moves when told to"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """
    Minimal async Redis client: GET, SET PX, PEXPIRE, DEL, PING, INFO.

    Expiry follows the given FakeClock, so tests never sleep.
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.data: Dict[str, Tuple[Any, float]] = {}
        self.closed = False

    def _live(self, key: str) -> Optional[Tuple[Any, float]]:
        entry = self.data.get(key)
        if entry is None:
            return None
        if entry[1] <= self.clock():
            del self.data[key]
            return None
        return entry

    async def get(self, key: str):
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value, px: int):
        self.data[key] = (value, self.clock() + px / 1000)
        return True

    async def pexpire(self, key: str, millis: int):
        entry = self._live(key)
        if entry is None:
            return False
        self.data[key] = (entry[0], self.clock() + millis / 1000)
        return True

    async def delete(self, *keys: str):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def ping(self):
        return True

    async def info(self):
        return {"redis_version": "7.2.0", "connected_clients": 1, "used_memory_human": "1M"}

    async def aclose(self):
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock)


@pytest.fixture
def cookie_policy():
    # Plain HTTP test server: secure cookies would never be sent back
    return CookiePolicy(secure=False)


@pytest.fixture
def manager(memory_store, cookie_policy):
    return SessionManager(
        store=memory_store,
        cookie_name="token",
        duration=timedelta(hours=1),
        cookie_policy=cookie_policy
    )


class FlakyStore:
    """Wraps a store and fails chosen operations with StoreUnavailable"""

    def __init__(self, inner):
        self.inner = inner
        self.fail_on = set()
        self.calls = []

    def _check(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        if operation in self.fail_on:
            raise StoreUnavailable(backend="FlakyStore", operation=operation, key=key)

    async def get(self, key):
        self._check("get", key)
        return await self.inner.get(key)

    async def set(self, key, value, ttl):
        self._check("set", key)
        await self.inner.set(key, value, ttl)

    async def touch(self, key, ttl):
        self._check("touch", key)
        await self.inner.touch(key, ttl)

    async def remove(self, key):
        self._check("remove", key)
        await self.inner.remove(key)


@pytest.fixture
def flaky_store(memory_store):
    return FlakyStore(memory_store)


class YieldingStore:
    """Wraps a store and hands control back to the event loop before each call"""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    async def _yield(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        await asyncio.sleep(0)

    async def get(self, key):
        await self._yield("get", key)
        return await self.inner.get(key)

    async def set(self, key, value, ttl):
        await self._yield("set", key)
        await self.inner.set(key, value, ttl)

    async def touch(self, key, ttl):
        await self._yield("touch", key)
        await self.inner.touch(key, ttl)

    async def remove(self, key):
        await self._yield("remove", key)
        await self.inner.remove(key)


@pytest.fixture
def yielding_store(memory_store):
    return YieldingStore(memory_store)

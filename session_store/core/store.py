# session_store/core/store.py
"""
Store capability interface.

Every backend (in-memory, Redis) satisfies this protocol structurally;
there is no shared base class. All operations may block on I/O and raise
:class:`~session_store.core.exceptions.StoreUnavailable` on backend errors.
"""
from datetime import timedelta
from typing import Optional, Protocol, TypeVar, runtime_checkable

T = TypeVar('T')


@runtime_checkable
class Store(Protocol[T]):
    """Get/set/touch/remove a session value by key with a caller-supplied TTL"""

    async def get(self, key: str) -> Optional[T]:
        """Return the value if present and unexpired, otherwise None"""
        ...

    async def set(self, key: str, value: T, ttl: timedelta) -> None:
        """Insert or replace the entry, expiring ``ttl`` from now"""
        ...

    async def touch(self, key: str, ttl: timedelta) -> None:
        """Reset the expiry of an existing entry; no-op if absent"""
        ...

    async def remove(self, key: str) -> None:
        """Delete the entry; no-op if absent"""
        ...


def ttl_seconds(ttl) -> float:
    """Normalize a TTL given as timedelta or plain seconds"""
    if isinstance(ttl, timedelta):
        return ttl.total_seconds()
    return float(ttl)

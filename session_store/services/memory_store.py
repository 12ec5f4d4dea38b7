# session_store/services/memory_store.py
"""
In-memory session store.

Reference and test backend shared by every request for the lifetime of the
process. Locking happens on two levels:

- the key map is only mutated under ``_map_lock``; lookups read the map
  without taking it, so reads of any keys never wait on each other
- each entry carries its own lock that serializes reads and writes of its
  value and expiry

Expiry is lazy: an entry whose deadline has passed is reported as absent
when read, but stays resident until it is removed, replaced or swept by
``purge_expired``. Without a ``cleanup_interval`` nothing sweeps, so keys
that are written and never read again keep their memory until the process
restarts.
"""
import copy
import time
import threading
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, Generic, Optional, TypeVar, Union

from session_store.core.backend import StoreBackend
from session_store.core.store import ttl_seconds

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class MemoryStoreConfig:
    """Configuration for MemoryStore"""
    # Seconds between opportunistic sweeps run from set(); None disables sweeping
    cleanup_interval: Optional[float] = None


@dataclass
class _Entry(Generic[T]):
    value: T
    expiry: float
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class MemoryStore(StoreBackend[MemoryStoreConfig], Generic[T]):
    """
    Store backed by a process-local dict.

    Values are deep-copied on the way in and out, so callers never share
    mutable state with the stored entry.
    """

    def __init__(
        self,
        config: Optional[MemoryStoreConfig] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        super().__init__(config or MemoryStoreConfig())
        self._entries: Dict[str, _Entry[T]] = {}
        self._map_lock = threading.Lock()
        self._clock = clock
        self._last_cleanup = clock()
        self._purged_count = 0

    async def _open(self) -> Dict[str, Any]:
        return self._entries

    async def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        with entry.lock:
            if entry.expiry <= self._clock():
                return None
            return copy.deepcopy(entry.value)

    async def set(self, key: str, value: T, ttl: Union[timedelta, float]) -> None:
        entry = _Entry(
            value=copy.deepcopy(value),
            expiry=self._clock() + ttl_seconds(ttl)
        )
        with self._map_lock:
            self._entries[key] = entry
        self._maybe_cleanup()

    async def touch(self, key: str, ttl: Union[timedelta, float]) -> None:
        entry = self._entries.get(key)
        if entry is None:
            return
        with entry.lock:
            now = self._clock()
            # An elapsed entry is absent; touching must not revive it
            if entry.expiry <= now:
                return
            entry.expiry = now + ttl_seconds(ttl)

    async def remove(self, key: str) -> None:
        with self._map_lock:
            self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """
        Drop every entry whose deadline has passed.

        Returns:
            Number of entries removed
        """
        removed = 0
        with self._map_lock:
            now = self._clock()
            for key, entry in list(self._entries.items()):
                with entry.lock:
                    expired = entry.expiry <= now
                if expired:
                    del self._entries[key]
                    removed += 1
            self._last_cleanup = now

        self._purged_count += removed
        if removed:
            logger.info(f"Purged {removed} expired sessions from memory")
        return removed

    def _maybe_cleanup(self) -> None:
        interval = self.config.cleanup_interval
        if interval is None:
            return
        if self._clock() - self._last_cleanup < interval:
            return
        self.purge_expired()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def purged_count(self) -> int:
        """Expired entries dropped by sweeps since the store was created"""
        return self._purged_count

    async def _probe(self) -> Dict[str, Any]:
        return {
            "entries": len(self._entries),
            "purged_entries": self._purged_count,
            "cleanup_interval": self.config.cleanup_interval
        }

    async def _close(self) -> None:
        with self._map_lock:
            self._entries.clear()

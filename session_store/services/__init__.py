from .memory_store import MemoryStore, MemoryStoreConfig
from .redis_store import RedisStore, RedisStoreConfig

__all__ = [
    'MemoryStore',
    'MemoryStoreConfig',
    'RedisStore',
    'RedisStoreConfig'
]

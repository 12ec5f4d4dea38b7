"""
Server-side sessions for FastAPI: a random token in a cookie, a pluggable
store behind it, and token rotation against session fixation.
"""

from session_store.core.config import CookiePolicy, SessionSettings
from session_store.core.exceptions import (
    SessionConfigurationError,
    SessionDataCorrupted,
    SessionSerializationError,
    StoreUnavailable
)
from session_store.core.security import Session, SessionContext, SessionManager
from session_store.core.store import Store
from session_store.core.tokens import generate_token
from session_store.middleware import SessionMiddleware, get_session, setup_sessions
from session_store.services import MemoryStore, RedisStore

__version__ = "0.1.0"

__all__ = [
    'CookiePolicy',
    'MemoryStore',
    'RedisStore',
    'Session',
    'SessionConfigurationError',
    'SessionContext',
    'SessionDataCorrupted',
    'SessionManager',
    'SessionMiddleware',
    'SessionSerializationError',
    'SessionSettings',
    'Store',
    'StoreUnavailable',
    'generate_token',
    'get_session',
    'setup_sessions'
]

"""
Security layer of the session core.

- SessionManager: shared store, cookie name, TTL and cookie policy
- SessionContext: per-request token resolution
- Session: per-request handle with token regeneration
"""

from .session_security import (
    Session,
    SessionContext,
    SessionManager
)

__all__ = [
    'Session',
    'SessionContext',
    'SessionManager'
]

from .session_middleware import (
    SessionMiddleware,
    commit_session_cookie,
    get_session,
    get_session_context,
    setup_sessions
)

__all__ = [
    'SessionMiddleware',
    'commit_session_cookie',
    'get_session',
    'get_session_context',
    'setup_sessions'
]

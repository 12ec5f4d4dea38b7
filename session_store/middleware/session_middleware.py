"""
Session middleware for FastAPI / Starlette applications.

Gives every request its own SessionContext before the handler runs and
commits the session cookie after the handler has produced a response.
"""

import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from session_store.core.exceptions import StoreUnavailable, config_error
from session_store.core.logging_config import short_token
from session_store.core.security.session_security import Session, SessionContext, SessionManager

logger = logging.getLogger(__name__)

STATE_ATTR = "session_context"


class SessionMiddleware:
    """Per-request session context plus the response-side cookie commit"""

    def __init__(self, manager: SessionManager):
        self.manager = manager

    async def __call__(self, request: Request, call_next: Callable) -> Response:
        cookie_value = request.cookies.get(self.manager.cookie_name)
        context = self.manager.context(cookie_value)
        setattr(request.state, STATE_ATTR, context)

        response = await call_next(request)

        commit_session_cookie(context, response)
        return response


def commit_session_cookie(context: SessionContext, response: Response) -> bool:
    """
    Write the session cookie if this request minted or regenerated a token.

    Runs once per request; later calls for the same context do nothing.
    A request whose token came from an unchanged cookie gets no cookie.

    Returns:
        True if a cookie was added to the response
    """
    if context.committed:
        return False
    context.committed = True

    state = context.state
    if state is None or not state.needs_cookie:
        return False

    manager = context.manager
    policy = manager.cookie_policy
    response.set_cookie(
        key=manager.cookie_name,
        value=state.new_token,
        max_age=manager.max_age if policy.persistent else None,
        path=policy.path,
        domain=policy.domain,
        secure=policy.secure,
        httponly=policy.http_only,
        samesite=policy.same_site.lower()
    )
    logger.debug(f"Set session cookie {manager.cookie_name}={short_token(state.new_token)}")
    return True


def get_session_context(request: Request) -> SessionContext:
    context: Optional[SessionContext] = getattr(request.state, STATE_ATTR, None)
    if context is None:
        raise config_error(
            "No session context on request - is SessionMiddleware installed?",
            "SessionMiddleware"
        )
    return context


async def get_session(request: Request) -> Session:
    """FastAPI dependency returning the request's session handle"""
    return get_session_context(request).session()


async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    """Map store failures to a plain 500 without backend details"""
    logger.error(f"Session store unavailable on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"}
    )


def setup_sessions(app: FastAPI, manager: SessionManager) -> None:
    """Install the session middleware and store error handler on ``app``"""
    app.state.session_manager = manager
    app.middleware("http")(SessionMiddleware(manager))
    app.add_exception_handler(StoreUnavailable, store_unavailable_handler)
    logger.info(f"Sessions enabled with cookie '{manager.cookie_name}' and {manager.max_age}s TTL")

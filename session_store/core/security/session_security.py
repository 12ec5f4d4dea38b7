"""
Session security module.

Binds a per-request token to a shared store:

- SessionManager: the configured store, cookie name, TTL and cookie policy,
  shared by every request of an application
- SessionContext: resolves the token of one request and remembers it for
  the rest of that request
- Session: the handle application code uses to read, write and regenerate
  the session

Part of the security layer: token rotation via ``regenerate_token`` is the
defense against session fixation.
"""

import logging
import math
from datetime import timedelta
from typing import Generic, Optional, TypeVar, Union

from session_store.core.config import CookiePolicy, SAME_SITE_VALUES, SessionSettings
from session_store.core.exceptions import config_error
from session_store.core.logging_config import short_token
from session_store.core.store import Store, ttl_seconds
from session_store.core.tokens import TOKEN_LENGTH, generate_token
from session_store.models.request_state import RequestTokenState

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_COOKIE_NAME = "session"
DEFAULT_DURATION = timedelta(days=1)

# Characters a cookie name may not contain (RFC 6265 separators and whitespace)
_COOKIE_NAME_FORBIDDEN = set('()<>@,;:\\"/[]?={} \t\r\n')


class SessionManager(Generic[T]):
    """
    Application-wide session configuration.

    Holds the store every request shares, the cookie name, the session TTL
    applied to every set/touch/regeneration, and the cookie policy copied
    onto emitted cookies.
    """

    def __init__(
        self,
        store: Store[T],
        cookie_name: str = DEFAULT_COOKIE_NAME,
        duration: Union[timedelta, float] = DEFAULT_DURATION,
        cookie_policy: Optional[CookiePolicy] = None,
        token_length: int = TOKEN_LENGTH
    ):
        if not isinstance(duration, timedelta):
            duration = timedelta(seconds=duration)

        self.store = store
        self.cookie_name = cookie_name
        self.duration = duration
        self.cookie_policy = cookie_policy or CookiePolicy()
        self.token_length = token_length

        self._validate()

    @classmethod
    def from_settings(cls, store: Store[T], settings: SessionSettings) -> 'SessionManager[T]':
        """Build a manager from SESSION_* settings"""
        return cls(
            store=store,
            cookie_name=settings.SESSION_COOKIE_NAME,
            duration=settings.duration,
            cookie_policy=settings.cookie_policy()
        )

    def _validate(self) -> None:
        if not self.cookie_name or any(c in _COOKIE_NAME_FORBIDDEN for c in self.cookie_name):
            raise config_error(f"Invalid session cookie name: {self.cookie_name!r}", "SessionManager")

        if ttl_seconds(self.duration) <= 0:
            raise config_error("Session duration must be positive", "SessionManager")

        if self.cookie_policy.same_site.lower() not in SAME_SITE_VALUES:
            raise config_error(
                f"same_site must be one of {', '.join(SAME_SITE_VALUES)}",
                "CookiePolicy"
            )

        if self.token_length < 16:
            raise config_error("Token length below 16 characters is guessable", "SessionManager")

        if self.cookie_policy.same_site.lower() == "none" and not self.cookie_policy.secure:
            logger.warning("same_site='none' without secure - browsers will drop the session cookie")

    @property
    def max_age(self) -> int:
        """Cookie lifetime in whole seconds, rounded up so it never ends before the session"""
        return math.ceil(ttl_seconds(self.duration))

    def new_token(self) -> str:
        return generate_token(self.token_length)

    def context(self, cookie_value: Optional[str] = None) -> 'SessionContext[T]':
        """Create the per-request context for a request carrying ``cookie_value``"""
        return SessionContext(self, cookie_value)


class SessionContext(Generic[T]):
    """
    Per-request token resolver.

    The token is resolved at most once: from the session cookie when the
    request carries one, otherwise freshly minted. A minted token is also
    placed in the pending slot so the response writes it as a cookie.
    """

    def __init__(self, manager: SessionManager[T], cookie_value: Optional[str] = None):
        self.manager = manager
        self._cookie_value = cookie_value
        self._state: Optional[RequestTokenState] = None
        # Set once the response side has made its cookie decision
        self.committed = False

    def resolve(self) -> RequestTokenState:
        if self._state is not None:
            return self._state

        if self._cookie_value:
            self._state = RequestTokenState(token=self._cookie_value)
        else:
            token = self.manager.new_token()
            self._state = RequestTokenState(token=token, new_token=token)
            logger.debug(f"Minted session token {short_token(token)}")

        return self._state

    @property
    def is_resolved(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> Optional[RequestTokenState]:
        """The resolved state, or None if nothing asked for the session yet"""
        return self._state

    def session(self) -> 'Session[T]':
        self.resolve()
        return Session(self)


class Session(Generic[T]):
    """
    Session handle for one request.

    All reads and writes go to the store under the request's current token;
    set and touch always use the configured session TTL. Every operation
    propagates StoreUnavailable unchanged.
    """

    def __init__(self, context: SessionContext[T]):
        self._context = context

    @property
    def token(self) -> str:
        return self._context.resolve().token

    @property
    def _store(self) -> Store[T]:
        return self._context.manager.store

    @property
    def _duration(self) -> timedelta:
        return self._context.manager.duration

    async def get(self) -> Optional[T]:
        """Return the session value, or None if unset or expired"""
        return await self._store.get(self.token)

    async def set(self, value: T) -> None:
        """Store the session value; refreshes the expiration timer"""
        await self._store.set(self.token, value, self._duration)

    async def touch(self) -> None:
        """Refresh the expiration timer of the session"""
        await self._store.touch(self.token, self._duration)

    async def remove(self) -> None:
        """Remove the session from the store"""
        await self._store.remove(self.token)

    async def regenerate_token(self) -> None:
        """
        Move the session to a new token and retire the old one.

        Call this right after authenticating a user and before writing any
        value tied to the new identity, so that a failure here surfaces
        while the old token still carries nothing sensitive. The response
        then carries a cookie with the new token.

        Only the first call in a request rotates; later calls return
        immediately. A token minted during this request is not rotated
        either, since no earlier response ever exposed it.

        Order: read the value, remove the old entry, make the new token
        current and pending, then write the value under it. If the final
        write fails the old token is already gone, the response still
        carries the new cookie, and the error propagates.

        The steps are separate store calls. Two requests regenerating the
        same token concurrently may each carry a copy of the value to their
        own new token; the old token is dead either way.

        Raises:
            StoreUnavailable: If any store call fails
        """
        state = self._context.resolve()
        async with state.lock:
            # Already rotated, or minted during this request and unknown to anyone else
            if state.new_token is not None:
                return

            old_token = state.token
            value = await self._store.get(old_token)
            await self._store.remove(old_token)

            new_token = self._context.manager.new_token()
            state.token = new_token
            state.new_token = new_token
            logger.info(f"Regenerated session token {short_token(old_token)} -> {short_token(new_token)}")

            if value is not None:
                await self._store.set(new_token, value, self._duration)

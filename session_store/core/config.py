# session_store/core/config.py
from datetime import timedelta
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings
import logging

logger = logging.getLogger(__name__)

SAME_SITE_VALUES = ("lax", "strict", "none")


class CookiePolicy(BaseModel):
    """
    Attributes copied onto every emitted session cookie.

    The name and value are always computed by the session core; everything
    here is passed through untouched.
    """
    path: str = "/"
    domain: Optional[str] = None
    same_site: str = "lax"
    secure: bool = True
    http_only: bool = True
    # Emit Max-Age matching the session TTL; False gives a browser-session cookie
    persistent: bool = True


class SessionSettings(BaseSettings):
    """Session core settings, read from the environment or a .env file"""
    APP_NAME: str = "session-store"
    DEBUG: bool = False

    # Cookie
    SESSION_COOKIE_NAME: str = "session"
    SESSION_COOKIE_PATH: str = "/"
    SESSION_COOKIE_DOMAIN: Optional[str] = None
    SESSION_COOKIE_SAME_SITE: str = "lax"
    SESSION_COOKIE_SECURE: bool = True
    SESSION_COOKIE_HTTP_ONLY: bool = True
    SESSION_COOKIE_PERSISTENT: bool = True

    # Lifetime in seconds, applied to every set/touch/regeneration
    SESSION_DURATION: int = 24 * 60 * 60

    # External store
    REDIS_URL: Optional[str] = Field(default=None)
    SESSION_KEY_PREFIX: Optional[str] = None
    SESSION_KEY_POSTFIX: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    # Level for the session_store loggers only, defaults to LOG_LEVEL
    SESSION_LOG_LEVEL: Optional[str] = None

    # In-memory store sweep interval in seconds, unset disables sweeping
    MEMORY_CLEANUP_INTERVAL: Optional[int] = None

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    @property
    def duration(self) -> timedelta:
        return timedelta(seconds=self.SESSION_DURATION)

    def cookie_policy(self) -> CookiePolicy:
        """Build the cookie policy from the SESSION_COOKIE_* settings"""
        return CookiePolicy(
            path=self.SESSION_COOKIE_PATH,
            domain=self.SESSION_COOKIE_DOMAIN,
            same_site=self.SESSION_COOKIE_SAME_SITE.lower(),
            secure=self.SESSION_COOKIE_SECURE,
            http_only=self.SESSION_COOKIE_HTTP_ONLY,
            persistent=self.SESSION_COOKIE_PERSISTENT
        )


settings = SessionSettings()


def get_settings() -> SessionSettings:
    """Return the process-wide settings instance"""
    return settings


def validate_required_settings(current: Optional[SessionSettings] = None) -> bool:
    """Warn about settings that are legal but unsafe for production"""
    current = current or settings
    ok = True

    if not current.SESSION_COOKIE_SECURE:
        logger.warning("SESSION_COOKIE_SECURE is disabled - session cookies will be sent over plain HTTP")
        ok = False

    if not current.REDIS_URL:
        logger.warning("REDIS_URL not set - sessions are kept in process memory only")
        ok = False

    return ok

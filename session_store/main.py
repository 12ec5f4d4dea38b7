# session_store/main.py
"""
Reference FastAPI application for the session store.

Stores a single name per client session and shows the full cookie
lifecycle: lazy token creation, reads without cookie churn, refresh,
removal and token regeneration at login.
"""

from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from session_store.core.config import SessionSettings, get_settings, validate_required_settings
from session_store.core.logging_config import setup_logging
from session_store.core.security import Session, SessionManager
from session_store.core.backend import StoreBackend
from session_store.middleware import get_session, setup_sessions
from session_store.services.memory_store import MemoryStore, MemoryStoreConfig
from session_store.services.redis_store import RedisStore

logger = logging.getLogger(__name__)


def build_store(settings: SessionSettings) -> StoreBackend:
    """Redis when a URL is configured, process memory otherwise"""
    if settings.REDIS_URL:
        logger.info("Using Redis session store")
        return RedisStore.from_url(
            settings.REDIS_URL,
            prefix=settings.SESSION_KEY_PREFIX,
            postfix=settings.SESSION_KEY_POSTFIX
        )

    logger.info("Using in-memory session store")
    return MemoryStore(MemoryStoreConfig(cleanup_interval=settings.MEMORY_CLEANUP_INTERVAL))


def create_app(
    settings: Optional[SessionSettings] = None,
    store: Optional[StoreBackend] = None
) -> FastAPI:
    """Build the application around ``store`` (or one chosen from settings)"""
    settings = settings or get_settings()
    if store is None:
        store = build_store(settings)
    manager = SessionManager.from_settings(store, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{settings.APP_NAME} starting...")
        validate_required_settings(settings)

        await store.initialize()
        health = await store.health_check()
        if not health.get("healthy"):
            logger.warning(f"Session store unhealthy at startup: {health.get('details')}")

        yield

        logger.info(f"{settings.APP_NAME} shutting down...")
        await store.shutdown()

    app = FastAPI(
        title=settings.APP_NAME,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None
    )
    setup_sessions(app, manager)

    @app.get("/health", status_code=200)
    async def health():
        return {"status": "ok", "store": await store.health_check()}

    @app.get("/ready", status_code=200)
    async def ready():
        if not await store.is_ready():
            raise HTTPException(status_code=503, detail="Session store not ready")
        return {"status": "ready"}

    @app.post("/set_name/{name}")
    async def set_name(name: str, session: Session = Depends(get_session)):
        await session.set(name)
        return {"status": "ok"}

    @app.get("/get_name", response_class=PlainTextResponse)
    async def get_name(session: Session = Depends(get_session)):
        name = await session.get()
        if name is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return name

    @app.post("/remove_name")
    async def remove_name(session: Session = Depends(get_session)):
        await session.remove()
        return {"status": "ok"}

    @app.post("/refresh")
    async def refresh(session: Session = Depends(get_session)):
        await session.touch()
        return {"status": "ok"}

    @app.post("/login/{name}")
    async def login(name: str, session: Session = Depends(get_session)):
        # Rotate before attaching the identity, so a failed rotation never
        # leaves the authenticated name on the old token
        await session.regenerate_token()
        await session.set(name)
        return {"status": "ok"}

    return app


settings = get_settings()
setup_logging(settings.LOG_LEVEL, settings.LOG_DIR, settings.SESSION_LOG_LEVEL)
app = create_app(settings)

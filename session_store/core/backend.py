# session_store/core/backend.py
"""
Lifecycle shared by the session store backends.

A backend opens its client on first use and releases it on shutdown.
Health reports name the backend and the key namespace it writes to, so two
stores sharing one Redis database can be told apart on /health. A client
that cannot be opened surfaces as StoreUnavailable for the "initialize"
operation, the same error the request path turns into a 500.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, TypeVar

from session_store.core.exceptions import (
    SessionConfigurationError,
    StoreUnavailable,
    store_unavailable
)

logger = logging.getLogger(__name__)

ConfigType = TypeVar('ConfigType')


class StoreBackend(ABC, Generic[ConfigType]):
    """Base for stores that hold one client for the lifetime of the process"""

    def __init__(self, config: ConfigType):
        self.config = config
        self.backend_name = self.__class__.__name__
        self._client: Any = None
        self._initialized = False

    @abstractmethod
    async def _open(self) -> Any:
        """
        Create the backend client.

        Raises:
            SessionConfigurationError: If the store cannot be configured
        """

    @abstractmethod
    async def _probe(self) -> Dict[str, Any]:
        """Ask the backend about itself; raising marks the store unhealthy"""

    async def _close(self) -> None:
        pass

    @property
    def namespace(self) -> Optional[str]:
        """Key layout of this store, None when keys are the bare tokens"""
        return None

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Open the client. Safe to call more than once."""
        if self._initialized:
            return

        try:
            self._client = await self._open()
        except (SessionConfigurationError, StoreUnavailable):
            raise
        except Exception as e:
            logger.error(f"Could not open {self.backend_name}: {e}", exc_info=True)
            raise store_unavailable(self.backend_name, "initialize", error=e) from e

        self._initialized = True
        logger.info(f"{self.backend_name} ready, keys: {self.namespace or 'bare tokens'}")

    async def ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    async def health_check(self) -> Dict[str, Any]:
        """
        Probe the backend.

        Returns:
            Dict with ``healthy``, ``status``, ``backend``, ``namespace``
            and the backend's own ``details``
        """
        report: Dict[str, Any] = {
            "backend": self.backend_name,
            "namespace": self.namespace
        }
        try:
            await self.ensure_initialized()
            details = await self._probe()
        except Exception as e:
            logger.warning(f"{self.backend_name} health check failed: {e}")
            report.update(healthy=False, status="error", details={"error": str(e)})
            return report

        report.update(healthy=True, status="ok", details=details)
        return report

    async def is_ready(self) -> bool:
        return (await self.health_check())["healthy"]

    async def shutdown(self) -> None:
        """Release the client; errors while closing are logged, not raised"""
        if not self._initialized:
            return

        try:
            await self._close()
        except Exception as e:
            logger.warning(f"Error closing {self.backend_name}: {e}")
        finally:
            self._client = None
            self._initialized = False
        logger.info(f"{self.backend_name} shut down")

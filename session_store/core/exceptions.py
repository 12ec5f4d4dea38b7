# session_store/core/exceptions.py
"""
Session Store Exceptions - standardized error handling for the session core.

This module defines all custom exceptions raised by stores, the session
handle and the FastAPI integration, providing consistent error handling
and debugging information.
"""

from typing import Optional, Dict, Any


class SessionBaseException(Exception):
    """Base exception for all session store errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class StoreUnavailable(SessionBaseException):
    """The session store could not be accessed (backend I/O failure)"""

    def __init__(
        self,
        message: str = "could not access the session store",
        backend: Optional[str] = None,
        operation: Optional[str] = None,
        key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize store error.

        Args:
            message: Error description
            backend: Name of the failing backend
            operation: Store operation that failed (get/set/touch/remove)
            key: Session key involved, truncated before it is recorded
            details: Additional backend context
        """
        super().__init__(message, details)
        self.backend = backend
        self.operation = operation
        self.key = key

        if backend:
            self.details['backend'] = backend
        if operation:
            self.details['operation'] = operation
        if key:
            self.details['key'] = f"{key[:8]}..."


class SessionDataCorrupted(StoreUnavailable):
    """A stored session payload could not be decoded"""


class SessionSerializationError(SessionBaseException):
    """A session value could not be encoded for an out-of-process store"""

    def __init__(
        self,
        message: str,
        value_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.value_type = value_type

        if value_type:
            self.details['value_type'] = value_type


class SessionConfigurationError(SessionBaseException):
    """Errors in session configuration and application wiring"""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize configuration error.

        Args:
            message: Error description
            component: Component with configuration issue
            details: Additional configuration context
        """
        super().__init__(message, details)
        self.component = component

        if component:
            self.details['component'] = component


# Convenience functions for creating common errors

def store_unavailable(
    backend: str,
    operation: str,
    key: Optional[str] = None,
    error: Optional[BaseException] = None
) -> StoreUnavailable:
    """Create a store error with backend and operation context, plus the cause if known."""
    details: Dict[str, Any] = {}
    if error is not None:
        details = {'original_error': str(error), 'error_type': type(error).__name__}
    return StoreUnavailable(backend=backend, operation=operation, key=key, details=details)


def config_error(message: str, component: str) -> SessionConfigurationError:
    """Create a configuration error with component context."""
    return SessionConfigurationError(message, component=component)


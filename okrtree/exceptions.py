"""
Custom exceptions for the okrtree application.
"""

from typing import Optional


class OkrError(Exception):
    """Base exception for all okrtree errors."""
    pass


class ValidationError(OkrError):
    """Raised when dialog input fails validation before reaching the store."""

    def __init__(self, message: str, errors: Optional[dict] = None) -> None:
        super().__init__(message)
        self.errors = errors or {}


class TransportError(OkrError):
    """Raised when a request to the remote store could not complete."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(TransportError):
    """Raised when the remote store rejects the credential (401/403)."""
    pass


class NotFoundError(OkrError):
    """Raised when a referenced objective, task or user no longer exists."""
    pass


class StaleResponseDiscarded(OkrError):
    """Raised internally when a superseded fetch resolves after a newer one."""
    pass


class TreeIntegrityError(OkrError):
    """Raised when an objective tree contains a cycle or is too deep."""
    pass


class InvalidOperationError(OkrError):
    """Raised when an operation is not allowed in the current state."""
    pass


class ConfigurationError(OkrError):
    """Raised when there's a configuration or setup issue."""
    pass


class StorageError(OkrError):
    """Raised when local state files cannot be read or written."""
    pass


def describe_failure(exc: Exception, default: str) -> str:
    """
    Pick the message shown to the user for a failed store call.

    Client errors carry the store's own explanation; everything else gets
    the generic `default`.
    """
    status = getattr(exc, "status_code", None)
    if isinstance(exc, TransportError) and status is not None and 400 <= status < 500:
        return str(exc)
    return default

"""Typed exception hierarchy for backend-integration errors.

This module defines the exceptions shared by the request builder, cursors,
connectors and the configuration loader. All exceptions inherit from the
CmsError base class for easy catching and carry enough context (backend
name, HTTP status, offending action) for callers to render a specific
message.
"""

from typing import Iterable, Optional


class CmsError(Exception):
    """Base exception for all cms-backend errors.

    Use this to catch any application-level error from the library.
    """
    pass


class TransportError(CmsError):
    """Raised when a request never produced a response (DNS, connection, timeout)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Request to {url} failed: {reason}")
        self.url = url
        self.reason = reason


class APIError(CmsError):
    """Raised when a provider answers with a non-2xx status or a malformed payload.

    Attributes:
        status: HTTP status code, or None when the payload itself was unusable
        backend: Name of the backend that produced the error
    """

    def __init__(self, message: str, status: Optional[int], backend: str):
        super().__init__(message)
        self.message = message
        self.status = status
        self.backend = backend

    def __str__(self) -> str:
        if self.status is None:
            return f"{self.backend} API error: {self.message}"
        return f"{self.backend} API error ({self.status}): {self.message}"


class EditorialWorkflowError(CmsError):
    """Raised when a workflow operation is invoked outside its applicable state.

    ``not_under_editorial_workflow`` is True when the entry has no workflow
    record at all, which callers treat as "not applicable" rather than as a
    failed operation.
    """

    def __init__(self, message: str, not_under_editorial_workflow: bool):
        super().__init__(message)
        self.message = message
        self.not_under_editorial_workflow = not_under_editorial_workflow


class CursorActionError(CmsError):
    """Raised when navigating a cursor with a verb it does not advertise."""

    def __init__(self, action: str, available: Iterable[str]):
        self.action = action
        self.available = sorted(available)
        listed = ", ".join(self.available) or "none"
        super().__init__(
            f"Cursor action '{action}' is not available (available: {listed})"
        )


class UnsupportedCapabilityError(CmsError):
    """Raised when an optional operation is called on a backend that lacks it."""

    def __init__(self, backend: str, operation: str):
        super().__init__(f"Backend '{backend}' does not support {operation}")
        self.backend = backend
        self.operation = operation


class BackendNotFoundError(CmsError):
    """Raised when the configured backend name has no registered connector."""

    def __init__(self, name: str):
        super().__init__(f"Backend not found: {name}")
        self.name = name


class InvalidCredentialsError(CmsError):
    """Raised when credentials are missing or rejected by the provider."""

    def __init__(self, backend: str, reason: str):
        super().__init__(f"Invalid credentials for {backend}: {reason}")
        self.backend = backend
        self.reason = reason

"""Provider-independent building blocks for backend connectors.

This package provides the immutable request builder, pagination cursors,
the FIFO async lock and the shared error taxonomy used by every connector
and by the configuration loader.
"""

from .async_lock import AsyncLock
from .cursor import Cursor, parse_link_header
from .errors import (
    CmsError,
    TransportError,
    APIError,
    EditorialWorkflowError,
    CursorActionError,
    UnsupportedCapabilityError,
    BackendNotFoundError,
    InvalidCredentialsError,
)
from .request_builder import RequestDescription, perform_request

__all__ = [
    "AsyncLock",
    "Cursor",
    "parse_link_header",
    "RequestDescription",
    "perform_request",
    "CmsError",
    "TransportError",
    "APIError",
    "EditorialWorkflowError",
    "CursorActionError",
    "UnsupportedCapabilityError",
    "BackendNotFoundError",
    "InvalidCredentialsError",
]

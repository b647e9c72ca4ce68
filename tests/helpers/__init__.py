"""Test helper modules.

This package provides utilities for unit tests:
- http_helpers: Fake requests.Response objects
"""

from .http_helpers import make_response

__all__ = [
    'make_response',
]

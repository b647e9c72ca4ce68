"""Command-line interface for the content backend.

This package provides the `cms-backend` CLI tool used to validate a
configuration and to list collection entries through the configured backend.
"""

from .models import ExitCode

__all__ = [
    'ExitCode',
]

"""Typed exception hierarchy for configuration errors.

All exceptions inherit from ConfigError, itself a CmsError, so callers can
catch configuration failures separately from backend failures.
"""

from typing import Optional

from src.backend_client.errors import CmsError


class ConfigError(CmsError):
    """Base exception for all configuration errors."""
    pass


class ConfigValidationError(ConfigError):
    """Raised when the merged configuration fails schema checks."""

    def __init__(self, message: str, config_path: Optional[str] = None):
        if config_path:
            full_message = f"Configuration error in field '{config_path}': {message}"
        else:
            full_message = f"Configuration error: {message}"
        super().__init__(full_message)
        self.config_path = config_path
        self.original_message = message


class ConfigLoadError(ConfigError):
    """Raised when the configuration file could not be fetched or parsed."""

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status

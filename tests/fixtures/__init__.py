"""Test fixtures for configuration and connector tests.

This module provides test fixtures for:
- Sample configuration documents (parsed and as YAML text)
- A host HTML page declaring a custom configuration URL
"""

from .sample_configs import (
    SAMPLE_ADMIN_HTML,
    SAMPLE_CONFIG,
    SAMPLE_CONFIG_YAML,
    get_gitlab_config,
    get_sample_config,
)

__all__ = [
    "SAMPLE_ADMIN_HTML",
    "SAMPLE_CONFIG",
    "SAMPLE_CONFIG_YAML",
    "get_gitlab_config",
    "get_sample_config",
]

"""Configuration pipeline for the content backend.

Fetches the YAML configuration, merges it over any preloaded configuration,
validates it and fills defaults before publishing a snapshot.
"""

from .config_loader import ConfigLoader, ConfigState, get_config_url, parse_config
from .defaults import add_language_fields, apply_defaults, select_identifier
from .errors import ConfigError, ConfigLoadError, ConfigValidationError
from .schema import validate_config
from .tree import deep_merge, get_in, set_in

__all__ = [
    "ConfigLoader",
    "ConfigState",
    "get_config_url",
    "parse_config",
    "add_language_fields",
    "apply_defaults",
    "select_identifier",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "validate_config",
    "deep_merge",
    "get_in",
    "set_in",
]

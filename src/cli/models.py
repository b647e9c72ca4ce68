"""Data models for CLI operations."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for CLI operations.

    - SUCCESS (0): Operation completed successfully
    - GENERAL_ERROR (1): General error (bad arguments, unknown collection)
    - CONFIG_ERROR (2): Configuration could not be loaded or is invalid
    - BACKEND_ERROR (3): Backend, authentication or network failure

    Example:
        >>> raise typer.Exit(ExitCode.CONFIG_ERROR)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    CONFIG_ERROR = 2
    BACKEND_ERROR = 3

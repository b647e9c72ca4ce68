"""Authentication helpers for loading backend credentials.

This module loads connector credentials and the configuration overlay
environment name from environment variables using python-dotenv. Tokens are
never cached or logged; sanitize_credentials() masks them in any text that is
about to be logged.
"""

import os
import re
from typing import NamedTuple, Optional

from dotenv import load_dotenv

from .errors import InvalidCredentialsError


class Credentials(NamedTuple):
    """Backend API credentials."""
    token: str
    api_root: Optional[str] = None


class Authenticator:
    """Loads and validates backend credentials from environment variables.

    Required environment variables:
        CMS_BACKEND_TOKEN: Personal access token for the configured backend

    Optional environment variables:
        CMS_API_ROOT: API root overriding the backend's default
        CMS_ENV: Name of the configuration overlay key to apply

    Example:
        >>> auth = Authenticator()
        >>> creds = auth.get_credentials()
    """

    TOKEN_VAR = 'CMS_BACKEND_TOKEN'
    API_ROOT_VAR = 'CMS_API_ROOT'
    ENVIRONMENT_VAR = 'CMS_ENV'

    def __init__(self, backend_name: str = "backend"):
        """Initialize the authenticator by loading environment variables from .env file."""
        load_dotenv()
        self.backend_name = backend_name

    def get_credentials(self) -> Credentials:
        """Get backend credentials from environment variables.

        Returns:
            Credentials: A named tuple containing token and optional api_root

        Raises:
            InvalidCredentialsError: If the token is missing
        """
        token = os.getenv(self.TOKEN_VAR)
        if not token or not token.strip():
            raise InvalidCredentialsError(
                self.backend_name,
                f"{self.TOKEN_VAR} is not set"
            )
        api_root = os.getenv(self.API_ROOT_VAR) or None
        return Credentials(token=token.strip(), api_root=api_root)

    def get_environment(self) -> Optional[str]:
        """Name of the configuration overlay environment, if any."""
        value = os.getenv(self.ENVIRONMENT_VAR)
        return value.strip() if value and value.strip() else None


def sanitize_credentials(text: str) -> str:
    """Mask credentials in error messages before they are logged.

    Example:
        >>> sanitize_credentials("Authorization: Bearer glpat-abc123xyz")
        'Authorization: ***REDACTED***'
    """
    if not text:
        return text

    sanitized = text

    # Passwords in URLs (user:pass@host)
    sanitized = re.sub(r'://([\w.-]+):([\w.-]+)@', r'://***:***@', sanitized)

    sanitized = re.sub(
        r'Authorization:\s*[^\n\r]+',
        'Authorization: ***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )
    sanitized = re.sub(
        r'Bearer\s+[^\s\n\r]+',
        'Bearer ***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )
    sanitized = re.sub(
        r'(private_token|access_token|token)["\']?\s*[:=]\s*["\']?([^"\'\s&]+)',
        r'\1=***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )

    # Prefixed tokens such as glpat-*, ghp_*
    sanitized = re.sub(
        r'\b[a-zA-Z]{2,5}[-_][a-zA-Z0-9_-]{8,}\b',
        '***REDACTED***',
        sanitized
    )

    return sanitized

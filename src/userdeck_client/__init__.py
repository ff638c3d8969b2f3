"""UserDeck API client.

This package provides an OAuth2 client for the UserDeck API: authenticated
GET/POST/PUT/DELETE requests, password, authorization code and client
credential logins, token persistence through pluggable session stores, and
automatic token refresh when a request is rejected with 401.
"""

from userdeck_client.core.config import __version__
from userdeck_client.core.client import UserDeckClient
from userdeck_client.core.config import Config
from userdeck_client.core.exceptions import (
    UserDeckError,
    ConfigurationError,
    SessionError,
    APIError,
    AuthenticationError,
    ResourceNotFoundError,
    RateLimitError,
    ServerError,
    TransportError,
)
from userdeck_client.core.logging import setup_logging
from userdeck_client.core.session import (
    SessionStore,
    MemorySession,
    FileSession,
    CookieSession,
)

__all__ = [
    "UserDeckClient",
    "Config",
    "UserDeckError",
    "ConfigurationError",
    "SessionError",
    "APIError",
    "AuthenticationError",
    "ResourceNotFoundError",
    "RateLimitError",
    "ServerError",
    "TransportError",
    "SessionStore",
    "MemorySession",
    "FileSession",
    "CookieSession",
    "setup_logging",
    "__version__",
]

"""Core functionality for the UserDeck API client."""

from .auth import TokenManager
from .client import UserDeckClient
from .config import Config
from .dispatcher import RequestDispatcher
from .exceptions import (
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
from .session import (
    SessionStore,
    MemorySession,
    FileSession,
    CookieSession,
    create_session_store,
)

__all__ = [
    "UserDeckClient",
    "TokenManager",
    "RequestDispatcher",
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
    "create_session_store",
]

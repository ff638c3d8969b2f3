"""Exception classes for the UserDeck API client."""

from typing import Optional, Dict, Any

# Code carried by errors raised before any HTTP response was received
TRANSPORT_ERROR_CODE = 0

DEFAULT_ERROR_MESSAGE = "UserDeck API error."

# Fields of an error payload joined into the message, in this order
ERROR_MESSAGE_FIELDS = ('error', 'error_description', 'message')


class UserDeckError(Exception):
    """Base exception for all UserDeck client errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """Initialize exception with message and optional details.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(UserDeckError):
    """Raised when configuration is invalid or missing."""
    pass


class SessionError(UserDeckError):
    """Raised when a session store cannot read or write its medium."""

    def __init__(self, message: str, key: Optional[str] = None):
        details = {}
        if key:
            details['key'] = key
        super().__init__(message, details)
        self.key = key


class APIError(UserDeckError):
    """Raised when an API request fails.

    Transport failures and HTTP error statuses both surface as this type.
    They are told apart by ``code``: an HTTP status for the latter,
    ``TRANSPORT_ERROR_CODE`` for the former.
    """

    def __init__(
        self,
        message: str,
        code: int = TRANSPORT_ERROR_CODE,
        response: Any = None,
        response_info: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize API error with response details.

        Args:
            message: Error message
            code: HTTP status code, or TRANSPORT_ERROR_CODE
            response: Decoded response body (None if nothing was decoded)
            response_info: Transport metadata (status, timing, header size)
            details: Additional error details
        """
        super().__init__(message, details)
        self.code = code
        self.response = response
        self.response_info = response_info or {}

        self.details['code'] = code
        if response is not None:
            self.details['response'] = response

    @property
    def status_code(self) -> Optional[int]:
        """HTTP status of the failed response, None for transport failures."""
        return self.code if self.code >= 100 else None

    @property
    def is_transport_error(self) -> bool:
        return self.code == TRANSPORT_ERROR_CODE

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, code={self.code})"


class AuthenticationError(APIError):
    """Raised for 401 and 403 responses."""
    pass


class ResourceNotFoundError(APIError):
    """Raised for 404 responses."""
    pass


class RateLimitError(APIError):
    """Raised for 429 responses."""

    def __init__(self, message: str, code: int = 429, response: Any = None,
                 response_info: Optional[Dict[str, Any]] = None,
                 retry_after: Optional[int] = None):
        """Initialize rate limit error.

        Args:
            retry_after: Seconds to wait before retrying (if provided by server)
        """
        super().__init__(message, code, response, response_info,
                         details={'retry_after': retry_after})
        self.retry_after = retry_after


class ServerError(APIError):
    """Raised for 5xx responses."""
    pass


class TransportError(APIError):
    """Raised when no HTTP response could be obtained."""

    def __init__(self, message: str, response_info: Optional[Dict[str, Any]] = None):
        super().__init__(message, TRANSPORT_ERROR_CODE, None, response_info)


class TimeoutError(TransportError):
    """Raised when a request times out."""

    def __init__(self, operation: str, timeout: float,
                 response_info: Optional[Dict[str, Any]] = None):
        """Initialize timeout error.

        Args:
            operation: Operation that timed out
            timeout: Timeout value in seconds
        """
        message = f"Operation '{operation}' timed out after {timeout} seconds"
        super().__init__(message, response_info)
        self.details.update({'operation': operation, 'timeout': timeout})


class ConnectionError(TransportError):
    """Raised when connection to the server fails."""

    def __init__(self, url: str, reason: Optional[str] = None,
                 response_info: Optional[Dict[str, Any]] = None):
        """Initialize connection error.

        Args:
            url: URL that failed to connect
            reason: Optional reason for connection failure
        """
        message = f"Failed to connect to {url}"
        if reason:
            message += f": {reason}"
        super().__init__(message, response_info)
        self.details.update({'url': url, 'reason': reason})


def build_error_message(body: Any) -> str:
    """Build an error message from a decoded error payload.

    Joins the string values of ``error``, ``error_description`` and
    ``message`` (whichever are present and non-empty) with ``": "``.

    Args:
        body: Decoded response body (any JSON value, or None)

    Returns:
        The joined message, or DEFAULT_ERROR_MESSAGE if no field applies
    """
    parts = []
    if isinstance(body, dict):
        for name in ERROR_MESSAGE_FIELDS:
            value = body.get(name)
            if value and isinstance(value, str):
                parts.append(value)

    if not parts:
        return DEFAULT_ERROR_MESSAGE
    return ': '.join(parts)


def error_for_status(
    status: int,
    body: Any,
    response_info: Optional[Dict[str, Any]] = None,
    retry_after: Optional[str] = None,
) -> APIError:
    """Create the APIError matching an HTTP error status.

    Args:
        status: HTTP status code (>= 400)
        body: Decoded response body
        response_info: Transport metadata of the response
        retry_after: Raw Retry-After header value, if any

    Returns:
        An APIError (or status-specific subclass) ready to raise
    """
    message = build_error_message(body)

    if status in (401, 403):
        return AuthenticationError(message, status, body, response_info)
    elif status == 404:
        return ResourceNotFoundError(message, status, body, response_info)
    elif status == 429:
        seconds = int(retry_after) if retry_after and retry_after.isdigit() else None
        return RateLimitError(message, status, body, response_info, retry_after=seconds)
    elif status >= 500:
        return ServerError(message, status, body, response_info)
    else:
        return APIError(message, status, body, response_info)

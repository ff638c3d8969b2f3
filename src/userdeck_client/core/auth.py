"""OAuth token acquisition, refresh and persistence."""

from typing import Optional, Dict, Any

from .dispatcher import RequestDispatcher, Params, merge_params
from .exceptions import APIError
from .logging import get_logger, mask_secret
from .session import SessionStore

# Get logger for this module
logger = get_logger('auth')

TOKEN_RESOURCE = 'oauth/access_token'
TOKEN_SESSION_KEY = 'token'


class TokenManager:
    """Manages the OAuth token record of one client.

    The token record returned by the provider is stored verbatim in the
    session store. Only its ``access_token`` is cached in memory; the cache
    is dropped whenever the stored record changes.
    """

    def __init__(self, dispatcher: RequestDispatcher, session: SessionStore):
        """Initialize token manager.

        Args:
            dispatcher: Dispatcher used for token exchanges
            session: Store holding the token record
        """
        self.dispatcher = dispatcher
        self.session = session
        self._access_token: Optional[str] = None

    @property
    def config(self):
        return self.dispatcher.config

    @property
    def access_token(self) -> Optional[str]:
        """Current access token, read from the session store when not cached."""
        if self._access_token is None:
            token = self.session.get(TOKEN_SESSION_KEY)
            if isinstance(token, dict) and token.get('access_token'):
                self._access_token = token['access_token']
                logger.trace(f"Access token loaded from session ({mask_secret(self._access_token)})")
        return self._access_token

    @access_token.setter
    def access_token(self, value: Optional[str]):
        self._access_token = value

    @property
    def token_info(self) -> Optional[Dict[str, Any]]:
        """The stored token record, if any."""
        return self.session.get(TOKEN_SESSION_KEY)

    def has_token(self) -> bool:
        return self.session.has(TOKEN_SESSION_KEY)

    def _exchange(self, params: Params, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """POST a grant to the token endpoint with client credentials.

        Raises:
            APIError: If the exchange fails or returns no access_token
        """
        options = dict(options or {})
        options['no_access_token'] = True

        token = self.dispatcher.dispatch(TOKEN_RESOURCE, 'POST', params, options)

        if not isinstance(token, dict) or not token.get('access_token'):
            info = self.dispatcher.last_response_info or {}
            raise APIError(
                "Token response did not include an access_token",
                info.get('status_code', 0),
                token,
                info,
            )
        return token

    def password_grant(
        self,
        email: str,
        password: str,
        params: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Exchange user credentials for a token record.

        Only clients with the password grant enabled may use this; others
        get the provider's 4xx response as an APIError.

        Args:
            email: User email address
            password: User password
            params: Extra request parameters (win over the grant fields)
            options: Request options

        Returns:
            The token record
        """
        grant = {
            'grant_type': 'password',
            'username': email,
            'password': password,
        }
        return self._exchange(merge_params(grant, params or {}), options)

    def authorization_code_grant(
        self,
        code: str,
        redirect_uri: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Exchange an authorization code for a token record."""
        return self._exchange({
            'grant_type': 'authorization_code',
            'code': code,
            'redirect_uri': redirect_uri,
        }, options)

    def request_client_token(
        self,
        params: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Exchange the client's own credentials for a token record.

        The record is returned without being stored.

        Args:
            params: Request parameters (win over the configured credentials)
            options: Request options
        """
        credentials = {
            'client_id': self.config.client_id,
            'client_secret': self.config.client_secret,
        }
        return self._exchange(merge_params(credentials, params or {}), options)

    def store(self, token: Dict[str, Any]):
        """Replace the stored token record."""
        self.session.put(TOKEN_SESSION_KEY, token)
        self._access_token = None

    def clear(self):
        """Forget the stored token record and the cached access token."""
        self.session.forget(TOKEN_SESSION_KEY)
        self._access_token = None

    def login(self, email: str, password: str, params: Optional[Dict[str, Any]] = None,
              options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.clear()
        token = self.password_grant(email, password, params, options)
        self.store(token)
        logger.info("Logged in with password grant")
        return token

    def login_with_code(self, code: str, redirect_uri: str,
                        options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.clear()
        token = self.authorization_code_grant(code, redirect_uri, options)
        self.store(token)
        logger.info("Logged in with authorization code")
        return token

    def login_with_client_credentials(self, params: Optional[Dict[str, Any]] = None,
                                      options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.clear()
        token = self.request_client_token(params, options)
        self.store(token)
        logger.info("Obtained client token")
        return token

    def refresh(self, options: Optional[Dict[str, Any]] = None) -> bool:
        """Refresh the stored token record using its refresh token.

        No request is made when no record or no refresh token is stored.
        A refresh token missing from the provider's response is carried
        over from the old record.

        Args:
            options: Request options for the exchange

        Returns:
            True if refresh successful, False otherwise
        """
        token = self.session.get(TOKEN_SESSION_KEY)
        if not token:
            logger.debug("No stored token to refresh")
            return False

        refresh_token = token.get('refresh_token') if isinstance(token, dict) else None
        if not refresh_token:
            logger.info("No refresh token available for token refresh")
            return False

        logger.trace(f"Refreshing token with refresh_token {mask_secret(refresh_token)}")

        try:
            new_token = self._exchange({
                'grant_type': 'refresh_token',
                'refresh_token': refresh_token,
            }, options)
        except APIError as e:
            logger.error(f"Token refresh failed ({e.code}): {e.message}")
            return False

        if new_token.get('refresh_token') is None:
            new_token['refresh_token'] = refresh_token

        self.store(new_token)
        logger.info("Token refreshed successfully")
        return True

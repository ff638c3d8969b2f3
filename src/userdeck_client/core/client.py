"""HTTP client for UserDeck API interactions."""

from dataclasses import replace
from typing import Optional, Dict, Any
from urllib.parse import quote_plus, urlencode
import httpx

from .auth import TokenManager
from .config import Config
from .dispatcher import RequestDispatcher, Params
from .exceptions import APIError
from .logging import get_logger
from .session import SessionStore, create_session_store

logger = get_logger('client')

# Authorization URL parameters that are encoded before the query is built
DOUBLE_ENCODED_PARAMS = ('redirect_uri', 'scope', 'state')


class UserDeckClient:
    """Client for the UserDeck API.

    This client provides get/post/put/delete over a single request entry
    point, OAuth login flows with the token persisted in a session store,
    and a transparent refresh-and-retry when a request comes back 401.
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        config: Optional[Config] = None,
        session: Optional[SessionStore] = None,
        http_client: Optional[httpx.Client] = None,
        api_url: Optional[str] = None,
        authorize_url: Optional[str] = None,
    ):
        """Initialize the UserDeck client.

        Args:
            client_id: OAuth client id (overrides config)
            client_secret: OAuth client secret (overrides config)
            config: Configuration object (creates default if not provided)
            session: Token store (built from config if not provided)
            http_client: httpx client to send requests with
            api_url: API base URL (overrides config)
            authorize_url: OAuth authorize endpoint (overrides config)
        """
        # Copy so overrides never leak into a shared Config
        self.config = replace(config) if config else Config.from_env()
        if client_id is not None:
            self.config.client_id = client_id
        if client_secret is not None:
            self.config.client_secret = client_secret
        if api_url:
            self.config.api_url = api_url
        if authorize_url:
            self.config.authorize_url = authorize_url

        for warning in self.config.validate():
            logger.warning(warning)

        self.dispatcher = RequestDispatcher(self.config, http_client)
        self.tokens = TokenManager(
            self.dispatcher,
            session if session is not None else create_session_store(self.config),
        )
        self._account_id: Any = None

    def __enter__(self):
        """Sync context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Sync context manager exit."""
        self.close()

    def close(self):
        """Close the HTTP client."""
        self.dispatcher.close()

    # Session and token state

    @property
    def session(self) -> SessionStore:
        return self.tokens.session

    @session.setter
    def session(self, driver: SessionStore):
        self.tokens.session = driver
        self.tokens.access_token = None

    @property
    def access_token(self) -> Optional[str]:
        """OAuth access token for requests, loaded from the session if not set."""
        return self.tokens.access_token

    @access_token.setter
    def access_token(self, value: Optional[str]):
        self.tokens.access_token = value

    @property
    def token_info(self) -> Optional[Dict[str, Any]]:
        """The stored OAuth token record."""
        return self.tokens.token_info

    @property
    def account_id(self) -> Any:
        """Active account sent with every request, if set."""
        return self._account_id

    @account_id.setter
    def account_id(self, value: Any):
        self._account_id = value

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        """Headers captured from the last request, if it asked for them."""
        return self.dispatcher.last_headers

    @property
    def response_info(self) -> Optional[Dict[str, Any]]:
        """Transport metadata of the last request."""
        return self.dispatcher.last_response_info

    # Authentication

    def login(self, email: str, password: str, params: Optional[Dict[str, Any]] = None,
              options: Optional[Dict[str, Any]] = None) -> 'UserDeckClient':
        """Log a user in with the password grant.

        Only available to clients with the 'password' grant type enabled.

        Args:
            email: User email address
            password: User password
            params: Extra parameters for the token request
            options: Request options

        Returns:
            The client, for chaining

        Raises:
            APIError: If the token request fails
        """
        self.tokens.login(email, password, params, options)
        return self

    def login_with_code(self, code: str, redirect_uri: str,
                        options: Optional[Dict[str, Any]] = None) -> 'UserDeckClient':
        """Log a user in with an authorization code.

        Args:
            code: The authorization code
            redirect_uri: The redirect URI registered for the client
            options: Request options

        Returns:
            The client, for chaining

        Raises:
            APIError: If the token request fails
        """
        self.tokens.login_with_code(code, redirect_uri, options)
        return self

    def login_with_client_credentials(self, params: Optional[Dict[str, Any]] = None,
                                      options: Optional[Dict[str, Any]] = None) -> 'UserDeckClient':
        """Authenticate as the client itself and store the resulting token."""
        self.tokens.login_with_client_credentials(params, options)
        return self

    def refresh_login_token(self, options: Optional[Dict[str, Any]] = None) -> bool:
        """Attempt to refresh the current login's access token.

        Returns:
            True if a new token was stored
        """
        return self.tokens.refresh(options)

    def logout(self):
        """Log the current user out and forget the active account."""
        self.tokens.clear()
        self._account_id = None
        logger.info("Logged out")

    def get_authorization_url(self, params: Optional[Dict[str, Any]] = None) -> str:
        """Build the URL that starts an authorization code login.

        Args:
            params: Optional parameters such as redirect_uri, scope, state

        Returns:
            Authorize endpoint URL with the query string appended
        """
        query = dict(params or {})
        query['response_type'] = 'code'
        query['client_id'] = self.config.client_id

        for name in DOUBLE_ENCODED_PARAMS:
            if query.get(name):
                query[name] = quote_plus(str(query[name]))

        query = {key: value for key, value in query.items() if value is not None}
        return f"{self.config.authorize_url}?{urlencode(query)}"

    # Requests

    def request(
        self,
        resource: str = '',
        method: str = 'GET',
        params: Params = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Perform an API request to the given resource.

        A 401 response while a token is stored triggers one token refresh;
        if it succeeds the request is sent once more.

        Args:
            resource: The API resource endpoint to call
            method: HTTP method
            params: Parameters to send with the request
            options: Request options (see RequestDispatcher.dispatch)

        Returns:
            Decoded JSON response

        Raises:
            APIError: If the request fails
        """
        try:
            return self._dispatch(resource, method, params, options)
        except APIError as e:
            if e.code != 401 or not self.tokens.has_token():
                raise
            logger.info(f"{method.upper()} {resource} returned 401, refreshing token")
            if not self.tokens.refresh():
                raise
            return self._dispatch(resource, method, params, options)

    def _dispatch(self, resource: str, method: str, params: Params,
                  options: Optional[Dict[str, Any]]) -> Any:
        return self.dispatcher.dispatch(
            resource,
            method,
            params,
            options,
            access_token=self.access_token,
            account_id=self._account_id,
        )

    def get(self, resource: str = '', params: Params = None,
            options: Optional[Dict[str, Any]] = None) -> Any:
        """Perform a GET request to the given resource."""
        return self.request(resource, 'GET', params, options)

    def post(self, resource: str = '', params: Params = None,
             options: Optional[Dict[str, Any]] = None) -> Any:
        """Perform a POST request to the given resource."""
        return self.request(resource, 'POST', params, options)

    def put(self, resource: str = '', params: Params = None,
            options: Optional[Dict[str, Any]] = None) -> Any:
        """Perform a PUT request to the given resource."""
        return self.request(resource, 'PUT', params, options)

    def delete(self, resource: str = '', params: Params = None,
               options: Optional[Dict[str, Any]] = None) -> Any:
        """Perform a DELETE request to the given resource."""
        return self.request(resource, 'DELETE', params, options)

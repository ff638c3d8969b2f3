"""Request dispatch for the UserDeck API.

Builds one HTTP call from a resource path, verb, parameters and options,
executes it over httpx, decodes the JSON body and turns HTTP error
statuses and transport failures into APIError.
"""

import json
from typing import Optional, Dict, Any, List, Mapping, Tuple, Union
from urllib.parse import parse_qsl, urlencode
import httpx

from .config import Config
from .exceptions import (
    ConnectionError,
    TimeoutError,
    TransportError,
    error_for_status,
)
from .logging import get_logger

logger = get_logger('dispatcher')

Params = Union[Mapping[str, Any], List[Tuple[str, Any]], str, None]

# Verbs sent with an X-HTTP-Method-Override header
OVERRIDE_METHODS = ('PUT', 'DELETE')


def _flatten(prefix: str, value: Any, out: List[Tuple[str, str]]) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            _flatten(f"{prefix}[{key}]", item, out)
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _flatten(f"{prefix}[{index}]", item, out)
    elif isinstance(value, bool):
        out.append((prefix, '1' if value else '0'))
    else:
        out.append((prefix, str(value)))


def encode_params(params: Params) -> str:
    """Form-encode request parameters.

    Nested mappings and sequences become ``key[sub]=value`` pairs, booleans
    become 1/0 and None values are dropped. Strings are taken as already
    encoded.

    Args:
        params: Mapping, list of (key, value) pairs, or pre-encoded string

    Returns:
        The ``application/x-www-form-urlencoded`` string ('' for no params)
    """
    if not params:
        return ''
    if isinstance(params, str):
        return params

    items = params.items() if isinstance(params, Mapping) else params
    pairs: List[Tuple[str, str]] = []
    for key, value in items:
        _flatten(str(key), value, pairs)
    return urlencode(pairs)


def merge_params(params: Params, extra: Dict[str, Any], replace: bool = True) -> Params:
    """Return a copy of ``params`` with the ``extra`` entries added.

    Args:
        params: Parameters in any form accepted by encode_params
        extra: Entries to add
        replace: If False, keys already present in ``params`` keep their value
    """
    if isinstance(params, str):
        if not replace:
            present = {key for key, _ in parse_qsl(params, keep_blank_values=True)}
            extra = {key: value for key, value in extra.items() if key not in present}
        encoded = encode_params(extra)
        if not params:
            return encoded
        return f"{params}&{encoded}" if encoded else params

    if params is None or isinstance(params, Mapping):
        merged = dict(params or {})
        for key, value in extra.items():
            if replace or key not in merged:
                merged[key] = value
        return merged

    pairs = list(params)
    present = {key for key, _ in pairs}
    if replace:
        pairs = [(key, value) for key, value in pairs if key not in extra]
        pairs.extend(extra.items())
    else:
        pairs.extend((key, value) for key, value in extra.items() if key not in present)
    return pairs


def decode_body(text: str) -> Any:
    """Decode a JSON response body; empty or invalid JSON gives None."""
    text = text.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        logger.debug("Response body is not valid JSON")
        return None


def parse_headers(response: httpx.Response) -> Dict[str, str]:
    """Map response header names to values, trimming both.

    A header repeated in the response keeps its last value.
    """
    headers = {}
    for raw_name, raw_value in response.headers.raw:
        name = raw_name.decode('latin-1').strip()
        if not name:
            continue
        headers[name] = raw_value.decode('latin-1').strip()
    return headers


def _header_size(response: httpx.Response) -> int:
    """Size in bytes of the status line and header block."""
    size = len(f"{response.http_version} {response.status_code} {response.reason_phrase}\r\n")
    for raw_name, raw_value in response.headers.raw:
        size += len(raw_name) + len(raw_value) + 4
    return size + 2


def _elapsed(response: httpx.Response) -> Optional[float]:
    try:
        return response.elapsed.total_seconds()
    except RuntimeError:
        return None


class RequestDispatcher:
    """Executes single API calls and classifies their failures.

    The dispatcher keeps no authentication state of its own: the caller
    passes the access token and account selector for each call. It does
    remember the transport metadata and captured headers of the last call.
    """

    def __init__(self, config: Config, http_client: Optional[httpx.Client] = None):
        """Initialize the dispatcher.

        Args:
            config: Client configuration (URLs, credentials, timeouts)
            http_client: Optional httpx client to use; one is created on
                demand otherwise and closed by close()
        """
        self.config = config
        self._client = http_client
        self._owns_client = http_client is None
        self.last_headers: Optional[Dict[str, str]] = None
        self.last_response_info: Optional[Dict[str, Any]] = None

    @property
    def client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.config.request_timeout,
                follow_redirects=self.config.follow_redirects,
                verify=True,
            )
        return self._client

    def close(self):
        """Close the HTTP client if this dispatcher created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def build_url(self, resource: str) -> str:
        return f"{self.config.api_url.rstrip('/')}/{resource.strip('/')}"

    def dispatch(
        self,
        resource: str = '',
        method: str = 'GET',
        params: Params = None,
        options: Optional[Dict[str, Any]] = None,
        access_token: Optional[str] = None,
        account_id: Any = None,
    ) -> Any:
        """Perform one API request.

        Args:
            resource: API resource path, relative to the API URL
            method: HTTP verb (case-insensitive)
            params: Query parameters for GET, form body for other verbs
            options: Per-call options:
                - no_access_token: authenticate with client credentials
                  instead of the bearer token
                - timeout: seconds (default from config)
                - capture_headers: record response headers in last_headers
                - follow_redirects: override the config setting
                - headers: extra request headers
                - extensions: httpx request extensions
            access_token: Bearer token to send, if any
            account_id: Active account selector, sent as the Account header

        Returns:
            Decoded JSON body (None for an empty or non-JSON body)

        Raises:
            APIError: For HTTP statuses >= 400 and transport failures
        """
        options = options or {}
        method = method.upper()
        url = self.build_url(resource)

        headers = self.config.get_headers()

        if access_token and not options.get('no_access_token'):
            headers['Authorization'] = f'Bearer {access_token}'
        elif self.config.client_id and self.config.client_secret:
            params = merge_params(params, {
                'client_id': self.config.client_id,
                'client_secret': self.config.client_secret,
            }, replace=False)

        if account_id is not None and account_id != '':
            headers['Account'] = str(account_id)

        if method in OVERRIDE_METHODS:
            headers['X-HTTP-Method-Override'] = method

        if options.get('headers'):
            headers.update(options['headers'])

        content = None
        encoded = encode_params(params)
        if encoded:
            if method == 'GET':
                url += ('&' if '?' in url else '?') + encoded
            else:
                content = encoded
                headers['Content-Type'] = 'application/x-www-form-urlencoded'

        timeout = options.get('timeout', self.config.request_timeout)
        follow_redirects = options.get('follow_redirects', self.config.follow_redirects)

        self.last_headers = None
        self.last_response_info = None
        logger.trace(f"{method} {url}")

        try:
            response = self.client.request(
                method,
                url,
                content=content,
                headers=headers,
                timeout=timeout,
                follow_redirects=follow_redirects,
                extensions=options.get('extensions'),
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {url} timed out after {timeout}s")
            raise TimeoutError(f"{method} {resource}", timeout, self._failure_info(method, url, e))
        except httpx.ConnectError as e:
            logger.warning(f"Cannot connect to {url}: {e}")
            raise ConnectionError(url, str(e), self._failure_info(method, url, e))
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {type(e).__name__}: {e}")
            raise TransportError(f"HTTP error: {e}", self._failure_info(method, url, e))

        info = self._response_info(method, response)
        self.last_response_info = info
        logger.debug(f"{method} {url} -> HTTP {response.status_code} ({info['elapsed']}s)")

        if options.get('capture_headers'):
            self.last_headers = parse_headers(response)

        body = decode_body(response.text)

        if response.status_code >= 400:
            raise error_for_status(
                response.status_code,
                body,
                info,
                retry_after=response.headers.get('Retry-After'),
            )

        return body

    def _response_info(self, method: str, response: httpx.Response) -> Dict[str, Any]:
        return {
            'method': method,
            'url': str(response.url),
            'status_code': response.status_code,
            'reason_phrase': response.reason_phrase,
            'http_version': response.http_version,
            'elapsed': _elapsed(response),
            'header_size': _header_size(response),
        }

    def _failure_info(self, method: str, url: str, error: Exception) -> Dict[str, Any]:
        info = {
            'method': method,
            'url': url,
            'status_code': 0,
            'error_type': type(error).__name__,
            'error': str(error),
        }
        self.last_response_info = info
        return info

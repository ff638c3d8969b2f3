"""Shared fixtures for userdeck-client tests.

HTTP traffic is mocked with RESPX; no test touches the network.
"""

import pytest
import respx

from userdeck_client.core.client import UserDeckClient
from userdeck_client.core.config import Config
from userdeck_client.core.session import MemorySession

API_URL = "https://api.userdeck.test"
AUTHORIZE_URL = "https://app.userdeck.test/oauth/authorize"
TOKEN_URL = f"{API_URL}/oauth/access_token"


@pytest.fixture
def config():
    """Config with explicit values so the environment cannot leak in."""
    return Config(
        api_url=API_URL,
        authorize_url=AUTHORIZE_URL,
        client_id="test_client_id",
        client_secret="test_client_secret",
        request_timeout=30,
        follow_redirects=True,
        session_prefix="ud_",
        session_file=None,
        log_level="INFO",
    )


@pytest.fixture
def session():
    return MemorySession(prefix="ud_")


@pytest.fixture
def mock_api():
    """RESPX router for the test API.

    Example:
        def test_tickets(mock_api, client):
            mock_api.get(f"{API_URL}/tickets").respond(json=[])
    """
    with respx.mock(assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def client(config, session, mock_api):
    with UserDeckClient(config=config, session=session) as client:
        yield client


@pytest.fixture
def logged_in_session(session):
    """Session already holding a token record."""
    session.put("token", {
        "access_token": "old_access_token",
        "refresh_token": "old_refresh_token",
        "expires_in": 3600,
    })
    return session

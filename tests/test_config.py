"""Tests for configuration loading."""

from pathlib import Path

import pytest

from userdeck_client.core.config import (
    Config,
    DEFAULT_API_URL,
    DEFAULT_AUTHORIZE_URL,
    DEFAULT_SESSION_PREFIX,
)
from userdeck_client.core.exceptions import ConfigurationError

ENV_VARS = (
    "USERDECK_API_URL",
    "USERDECK_AUTHORIZE_URL",
    "USERDECK_CLIENT_ID",
    "USERDECK_CLIENT_SECRET",
    "USERDECK_REQUEST_TIMEOUT",
    "USERDECK_FOLLOW_REDIRECTS",
    "USERDECK_SESSION_PREFIX",
    "USERDECK_SESSION_FILE",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestConfigDefaults:
    """Tests for defaults and environment loading."""

    def test_defaults(self):
        config = Config()

        assert config.api_url == DEFAULT_API_URL
        assert config.authorize_url == DEFAULT_AUTHORIZE_URL
        assert config.client_id is None
        assert config.client_secret is None
        assert config.request_timeout == 30
        assert config.follow_redirects is True
        assert config.session_prefix == DEFAULT_SESSION_PREFIX
        assert config.session_file is None

    def test_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("USERDECK_API_URL", "https://api.example.test")
        monkeypatch.setenv("USERDECK_CLIENT_ID", "env_id")
        monkeypatch.setenv("USERDECK_CLIENT_SECRET", "env_secret")
        monkeypatch.setenv("USERDECK_REQUEST_TIMEOUT", "12.5")
        monkeypatch.setenv("USERDECK_FOLLOW_REDIRECTS", "off")
        monkeypatch.setenv("USERDECK_SESSION_FILE", str(tmp_path / "s.json"))

        config = Config()

        assert config.api_url == "https://api.example.test"
        assert config.client_id == "env_id"
        assert config.client_secret == "env_secret"
        assert config.request_timeout == 12.5
        assert config.follow_redirects is False
        assert config.session_file == tmp_path / "s.json"

    def test_invalid_timeout_in_environment(self, monkeypatch):
        monkeypatch.setenv("USERDECK_REQUEST_TIMEOUT", "soon")

        with pytest.raises(ConfigurationError):
            Config()

    def test_session_file_string_becomes_path(self):
        config = Config(session_file="~/session.json")
        assert isinstance(config.session_file, Path)
        assert "~" not in str(config.session_file)

    def test_from_env_reads_dotenv(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("USERDECK_CLIENT_ID=dotenv_id\n")
        # Registers the variable with monkeypatch so the value load_dotenv sets is undone
        monkeypatch.setenv("USERDECK_CLIENT_ID", "")
        monkeypatch.delenv("USERDECK_CLIENT_ID")

        config = Config.from_env(env_file)

        assert config.client_id == "dotenv_id"


class TestConfigFile:
    """Tests for YAML profile files."""

    def write(self, tmp_path, text):
        path = tmp_path / "userdeck.yml"
        path.write_text(text)
        return path

    def test_profile_overrides_defaults(self, tmp_path):
        path = self.write(tmp_path, (
            "defaults:\n"
            "  api_url: https://api.default.test\n"
            "  request_timeout: 10\n"
            "profiles:\n"
            "  staging:\n"
            "    api_url: https://api.staging.test\n"
            "    client_id: staging_id\n"
            "    follow_redirects: 'no'\n"
        ))

        config = Config.from_file(path, profile="staging")

        assert config.api_url == "https://api.staging.test"
        assert config.client_id == "staging_id"
        assert config.request_timeout == 10.0
        assert config.follow_redirects is False
        assert config.profile == "staging"
        assert config.config_file == path

    def test_environment_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("USERDECK_CLIENT_ID", "env_id")
        path = self.write(tmp_path, "defaults:\n  client_id: file_id\n")

        assert Config.from_file(path).client_id == "env_id"

    def test_expands_variables(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SECRET_FROM_VAULT", "s3cret")
        path = self.write(tmp_path, "defaults:\n  client_secret: ${SECRET_FROM_VAULT}\n")

        assert Config.from_file(path).client_secret == "s3cret"

    def test_unknown_keys_ignored(self, tmp_path):
        path = self.write(tmp_path, "defaults:\n  colour: blue\n")
        assert not hasattr(Config.from_file(path), "colour")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            Config.from_file(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path):
        path = self.write(tmp_path, "defaults: [unclosed\n")
        with pytest.raises(ConfigurationError):
            Config.from_file(path)

    def test_invalid_value(self, tmp_path):
        path = self.write(tmp_path, "defaults:\n  request_timeout: soon\n")
        with pytest.raises(ConfigurationError):
            Config.from_file(path)


class TestConfigHelpers:
    """Tests for validate, to_dict and get_headers."""

    def test_valid_config_has_no_warnings(self):
        assert Config(client_id="id", client_secret="secret").validate() == []

    def test_warnings(self):
        config = Config(api_url="ftp://x", client_id="id", client_secret=None, request_timeout=0)

        warnings = config.validate()

        assert any("Invalid API URL" in w for w in warnings)
        assert any("incomplete" in w for w in warnings)
        assert any("timeout" in w for w in warnings)

    def test_to_dict_masks_secret(self):
        data = Config(client_id="id", client_secret="secret").to_dict()

        assert data["client_id"] == "id"
        assert data["client_secret"] == "***"

    def test_headers(self):
        headers = Config().get_headers()

        assert headers["Accept"] == "application/json"
        assert headers["User-Agent"].startswith("userdeck-client/")
        assert "Authorization" not in headers

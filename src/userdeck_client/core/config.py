"""Configuration management for the UserDeck API client.

Values come from, in priority order:
1. Explicit arguments given to UserDeckClient
2. Environment variables
3. .env file
4. Configuration file profile
5. Default values
"""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field, fields
from dotenv import load_dotenv

from .exceptions import ConfigurationError

__version__ = "0.1.0"

DEFAULT_API_URL = 'https://api.userdeck.com'
DEFAULT_AUTHORIZE_URL = 'https://app.userdeck.com/oauth/authorize'
DEFAULT_TIMEOUT = 30
DEFAULT_SESSION_PREFIX = 'ud_'


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in ('0', 'false', 'no', 'off')


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}")


@dataclass
class Config:
    """Configuration for the UserDeck API client."""

    # API endpoints
    api_url: str = field(default_factory=lambda: os.getenv('USERDECK_API_URL', DEFAULT_API_URL))
    authorize_url: str = field(
        default_factory=lambda: os.getenv('USERDECK_AUTHORIZE_URL', DEFAULT_AUTHORIZE_URL)
    )

    # Client identity
    client_id: Optional[str] = field(default_factory=lambda: os.getenv('USERDECK_CLIENT_ID'))
    client_secret: Optional[str] = field(default_factory=lambda: os.getenv('USERDECK_CLIENT_SECRET'))

    # Transport
    request_timeout: float = field(
        default_factory=lambda: _env_float('USERDECK_REQUEST_TIMEOUT', DEFAULT_TIMEOUT)
    )
    follow_redirects: bool = field(default_factory=lambda: _env_flag('USERDECK_FOLLOW_REDIRECTS', True))
    user_agent: str = field(default=f'userdeck-client/{__version__}')

    # Session persistence
    session_prefix: str = field(
        default_factory=lambda: os.getenv('USERDECK_SESSION_PREFIX', DEFAULT_SESSION_PREFIX)
    )
    session_file: Optional[Path] = field(
        default_factory=lambda: Path(os.environ['USERDECK_SESSION_FILE']).expanduser()
        if os.getenv('USERDECK_SESSION_FILE') else None
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO'))

    # Profile management
    profile: str = field(default='default')
    config_file: Optional[Path] = field(default=None)

    def __post_init__(self):
        if isinstance(self.session_file, str):
            self.session_file = Path(self.session_file).expanduser()

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> 'Config':
        """Create config from environment variables and optional .env file.

        Args:
            env_file: Path to .env file (default: looks for .env in current dir)

        Returns:
            Config instance with loaded values
        """
        if env_file:
            if env_file.exists():
                load_dotenv(env_file)
        elif Path('.env').exists():
            load_dotenv()

        return cls()

    @classmethod
    def from_file(cls, config_file: Path, profile: str = 'default') -> 'Config':
        """Load configuration from YAML file.

        Args:
            config_file: Path to YAML configuration file
            profile: Profile name to load

        Returns:
            Config instance with loaded values

        Raises:
            ConfigurationError: If file doesn't exist or is invalid
        """
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_file}")

        try:
            with open(config_file, 'r') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {config_file}")

        # Merge defaults with profile config
        profiles = data.get('profiles') or {}
        config_data = {**(data.get('defaults') or {}), **(profiles.get(profile) or {})}

        config = cls()

        for key, value in config_data.items():
            if key not in _FIELD_NAMES:
                continue
            # Environment wins over file values
            env_name = _ENV_NAMES.get(key)
            if env_name and os.getenv(env_name):
                continue
            if isinstance(value, str) and '${' in value:
                value = os.path.expandvars(value)
            try:
                setattr(config, key, _coerce(key, value))
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid value for {key} in {config_file}: {e}")

        config.profile = profile
        config.config_file = config_file

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of warnings.

        Returns:
            List of warning messages (empty if all valid)
        """
        warnings = []

        if not self.api_url:
            warnings.append("No API URL configured (set USERDECK_API_URL)")
        elif not self.api_url.startswith(('http://', 'https://')):
            warnings.append(f"Invalid API URL format: {self.api_url}")

        if self.authorize_url and not self.authorize_url.startswith(('http://', 'https://')):
            warnings.append(f"Invalid authorize URL format: {self.authorize_url}")

        if bool(self.client_id) != bool(self.client_secret):
            warnings.append("Client credentials are incomplete (set both USERDECK_CLIENT_ID and USERDECK_CLIENT_SECRET)")

        if self.request_timeout <= 0:
            warnings.append(f"Request timeout must be positive: {self.request_timeout}")

        return warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration
        """
        return {
            'api_url': self.api_url,
            'authorize_url': self.authorize_url,
            'client_id': self.client_id,
            'client_secret': '***' if self.client_secret else None,  # Mask secret
            'request_timeout': self.request_timeout,
            'follow_redirects': self.follow_redirects,
            'session_prefix': self.session_prefix,
            'session_file': str(self.session_file) if self.session_file else None,
            'log_level': self.log_level,
            'profile': self.profile,
        }

    def get_headers(self) -> Dict[str, str]:
        """Get default headers for API requests.

        Returns:
            Dictionary of headers sent with every request
        """
        return {
            'User-Agent': self.user_agent,
            'Accept': 'application/json',
        }

    def __repr__(self) -> str:
        """String representation of config."""
        return f"Config(profile={self.profile}, api_url={self.api_url})"


_FIELD_NAMES = {f.name for f in fields(Config)}

_ENV_NAMES = {
    'api_url': 'USERDECK_API_URL',
    'authorize_url': 'USERDECK_AUTHORIZE_URL',
    'client_id': 'USERDECK_CLIENT_ID',
    'client_secret': 'USERDECK_CLIENT_SECRET',
    'request_timeout': 'USERDECK_REQUEST_TIMEOUT',
    'follow_redirects': 'USERDECK_FOLLOW_REDIRECTS',
    'session_prefix': 'USERDECK_SESSION_PREFIX',
    'session_file': 'USERDECK_SESSION_FILE',
    'log_level': 'LOG_LEVEL',
}


def _coerce(key: str, value: Any) -> Any:
    """Convert a config file value to the field's type."""
    if value is None:
        return None
    if key == 'request_timeout':
        return float(value)
    if key == 'follow_redirects' and isinstance(value, str):
        return value.strip().lower() not in ('0', 'false', 'no', 'off')
    if key == 'session_file':
        return Path(str(value)).expanduser()
    return value

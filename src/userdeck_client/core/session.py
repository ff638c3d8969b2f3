"""Session stores for persisting the OAuth token between invocations.

A store keeps JSON-serializable values under string names. Every name is
namespaced with the store's prefix before it reaches the underlying medium,
and values read or written during the life of the store are cached in
process so the medium is only consulted once per key.

Backends:
- MemorySession: process-local, the default
- FileSession: a JSON document on disk
- CookieSession: browser cookies, given the request's cookies and the
  response's cookie setter explicitly
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from .exceptions import SessionError
from .logging import get_logger

logger = get_logger('session')

# Cookies written by CookieSession live for five years
COOKIE_MAX_AGE = 157680000

FILE_PERMISSIONS = 0o600


class SessionStore(ABC):
    """Key/value persistence contract used by the client.

    Subclasses implement the three raw operations on prefixed keys;
    JSON encoding, prefixing and caching are handled here.
    """

    def __init__(self, prefix: str = ''):
        self._prefix = prefix or ''
        self._cache: Dict[str, str] = {}

    @property
    def prefix(self) -> str:
        return self._prefix

    @prefix.setter
    def prefix(self, value: str):
        self._prefix = value or ''

    def set_prefix(self, prefix: str) -> 'SessionStore':
        """Set the key prefix for this store."""
        self.prefix = prefix
        return self

    def get_prefix(self) -> str:
        return self._prefix

    def key(self, name: str) -> str:
        """Return the namespaced key used on the medium for ``name``."""
        return f"{self._prefix}{name}"

    def put(self, name: str, value: Any) -> 'SessionStore':
        """Save a value. Last write wins.

        Args:
            name: Key name (without prefix)
            value: JSON-serializable value

        Returns:
            The store, for chaining
        """
        key = self.key(name)
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise SessionError(f"Value for '{name}' is not JSON serializable: {e}", key)

        self._write(key, raw)
        self._cache[key] = raw
        return self

    def get(self, name: str) -> Any:
        """Get a stored value, or None if nothing is stored.

        Every call decodes a fresh copy, so changing the returned value
        never changes what is stored.
        """
        key = self.key(name)
        raw = self._cache.get(key)
        if raw is None:
            raw = self._read(key)
            if raw is None:
                return None

        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring undecodable session value for {key}")
            return None

        self._cache[key] = raw
        return value

    def has(self, name: str) -> bool:
        key = self.key(name)
        return key in self._cache or self._read(key) is not None

    def forget(self, name: str) -> 'SessionStore':
        """Remove a value. Does nothing if the value is not stored."""
        if not self.has(name):
            return self

        key = self.key(name)
        self._delete(key)
        self._cache.pop(key, None)
        return self

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        """Return the raw JSON stored under ``key`` or None."""

    @abstractmethod
    def _write(self, key: str, raw: str) -> None:
        """Store raw JSON under ``key``."""

    @abstractmethod
    def _delete(self, key: str) -> None:
        """Remove ``key`` from the medium."""


class MemorySession(SessionStore):
    """In-memory session store.

    Data lives as long as the store instance. Useful for scripts that
    authenticate once per run, and for tests.
    """

    def __init__(self, prefix: str = ''):
        super().__init__(prefix)
        self._data: Dict[str, str] = {}

    def _read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _write(self, key: str, raw: str) -> None:
        self._data[key] = raw

    def _delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __repr__(self) -> str:
        return f"MemorySession(prefix={self._prefix!r}, keys={sorted(self._data)})"


class FileSession(SessionStore):
    """Session store backed by a JSON file.

    All keys share one document. The file is replaced atomically on every
    write and created with owner-only permissions.
    """

    def __init__(self, path, prefix: str = ''):
        """Initialize file-based store.

        Args:
            path: Location of the JSON document (created on first write)
            prefix: Key prefix
        """
        super().__init__(prefix)
        self.path = Path(path).expanduser()

    def _load(self) -> Dict[str, str]:
        try:
            with open(self.path, encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Cannot read session file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Session file {self.path} does not contain an object, ignoring it")
            return {}
        return data

    def _save(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix='.session-', suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    if hasattr(os, 'fchmod'):
                        os.fchmod(f.fileno(), FILE_PERMISSIONS)
                    json.dump(data, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error(f"Failed to write session file {self.path}: {e}")
            raise SessionError(f"Cannot write session file: {e}") from e

    def _read(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def _write(self, key: str, raw: str) -> None:
        data = self._load()
        data[key] = raw
        self._save(data)

    def _delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)

    def __repr__(self) -> str:
        return f"FileSession(path={str(self.path)!r}, prefix={self._prefix!r})"


class CookieSession(SessionStore):
    """Session store backed by browser cookies.

    The store works on a copy of the incoming request's cookies, so values
    written or forgotten during a request are visible immediately, and
    reports every change to the outgoing response through ``set_cookie``.
    """

    def __init__(
        self,
        cookies: Optional[Mapping[str, str]] = None,
        set_cookie: Optional[Callable[..., Any]] = None,
        prefix: str = '',
        path: str = '/',
    ):
        """Initialize cookie store.

        Args:
            cookies: Cookies sent with the current request
            set_cookie: Called as set_cookie(name, value, max_age=..., path=...)
                for every cookie the response must set or expire
            prefix: Key prefix
            path: Cookie path
        """
        super().__init__(prefix)
        self._cookies: Dict[str, str] = dict(cookies or {})
        self._set_cookie = set_cookie
        self.cookie_path = path

    def _emit(self, key: str, value: str, max_age: int) -> None:
        if self._set_cookie is None:
            logger.debug(f"No cookie setter configured, {key} kept for this request only")
            return
        self._set_cookie(key, value, max_age=max_age, path=self.cookie_path)

    def _read(self, key: str) -> Optional[str]:
        return self._cookies.get(key)

    def _write(self, key: str, raw: str) -> None:
        self._cookies[key] = raw
        self._emit(key, raw, COOKIE_MAX_AGE)

    def _delete(self, key: str) -> None:
        self._cookies.pop(key, None)
        self._emit(key, '', 0)


def create_session_store(config) -> SessionStore:
    """Build the session store described by a Config.

    Args:
        config: Config with session_file and session_prefix

    Returns:
        FileSession when a session file is configured, else MemorySession
    """
    if config.session_file:
        logger.debug(f"Using file session store at {config.session_file}")
        return FileSession(config.session_file, prefix=config.session_prefix)
    return MemorySession(prefix=config.session_prefix)

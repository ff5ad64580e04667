"""
simpledb - Configuration
~~~~~~~~~~~~~~~~~~~~~~~~

Loads the connection settings once per process and resolves dotted keys.

:copyright: (c) 2024-present simpledb authors
"""

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import dotenv_values

from .base import ConfigurationError
from .logging_config import get_logger


logger = get_logger(__name__)

CONFIG_ENV_VAR = 'SIMPLEDB_CONFIG'
DEFAULT_CONFIG_PATH = os.path.join('config', 'simple-db.json')

# environment variable -> setting name
ENV_SETTINGS = {
    'DB_HOST': 'hostname',
    'DB_PORT': 'hostport',
    'DB_DATABASE': 'database',
    'DB_USER': 'username',
    'DB_PASS': 'password',
    'DB_CHARSET': 'charset',
    'DB_PREFIX': 'prefix',
}


class Config:
    """
    Read-only view over a nested settings mapping.

    Example:
        config = Config({'app': {'debug': True}, 'hostname': 'localhost'})

        config.get('app.debug')       # True
        config.get('app.')            # {'debug': True}
        config.get('app.missing', 0)  # 0
    """

    def __init__(self, data: Mapping[str, Any], source: Optional[str] = None):
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"Configuration must be a mapping, got {type(data).__name__}"
                + (f": {source}" if source else '')
            )
        self._data = dict(data)
        self.source = source

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> 'Config':
        """
        Load configuration from a JSON or dotenv file.

        Args:
            path: File to read. Falls back to $SIMPLEDB_CONFIG, then
                config/simple-db.json.

        Raises:
            ConfigurationError: The file is missing, unreadable or not a mapping.
        """
        path = Path(path or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found: {path}")

        try:
            if path.suffix.lower() == '.json':
                with open(path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            else:
                data = dotenv_values(path)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Failed to read configuration file {path}: {e}") from e

        logger.info(f"Loaded configuration from {path}")
        return cls(data, source=str(path))

    @classmethod
    def from_env(cls) -> 'Config':
        """Build a flat configuration from the DB_* environment variables."""
        data = {
            setting: os.getenv(var)
            for var, setting in ENV_SETTINGS.items()
            if os.getenv(var) is not None
        }
        return cls(data, source='environment')

    def get(self, name: str = '', default: Any = None) -> Any:
        """
        Resolve a setting by name.

        The first segment of a dotted name is lower-cased, the rest walk the
        nested mappings as given. A trailing dot returns the whole section.
        Anything not found yields ``default``, or an empty dict when no
        default was given.
        """
        if not name:
            return self._data

        fallback = {} if default is None else default
        first, *rest = name.split('.')
        if first.lower() not in self._data:
            return fallback
        node = self._data[first.lower()]
        for key in rest:
            if not key:
                break
            if not isinstance(node, Mapping) or key not in node:
                return fallback
            node = node[key]
        return node

    def section(self, name: str = '') -> Dict[str, Any]:
        """Database settings, either at the top level or under a named section."""
        settings = self.get(f'{name}.') if name else self._data
        if not isinstance(settings, Mapping) or not settings:
            raise ConfigurationError(
                f"No database settings in section {name or '<top level>'!r} of {self.source or 'configuration'}"
            )
        return dict(settings)

    def __contains__(self, name: str) -> bool:
        sentinel = object()
        return self.get(name, sentinel) is not sentinel


_config: Optional[Config] = None
_config_loaded = False
_config_lock = threading.Lock()


def get_config(path: Optional[Union[str, Path]] = None) -> Config:
    """Process-wide configuration, loaded on first access only."""
    global _config, _config_loaded
    with _config_lock:
        if not _config_loaded:
            _config = Config.load(path)
            _config_loaded = True
        return _config


def reset_config() -> None:
    """Forget the cached configuration so the next access reloads it."""
    global _config, _config_loaded
    with _config_lock:
        _config = None
        _config_loaded = False

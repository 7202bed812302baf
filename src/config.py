"""Service configuration.

Settings come from an optional doorctl.yaml in the config directory:

    devices_file: devices.json
    users_file: users.json
    log_dir: ../logs
    html_file: ../index.html
    port: 3000
    bind: 0.0.0.0
    poll_interval: 15
    request_timeout: 10

Relative paths resolve against the config directory. The config
directory is $DOORCTL_ETC, falling back to ./config. $PORT overrides the
listen port.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

CONFIG_FILE_NAME = 'doorctl.yaml'
DEFAULT_PORT = 3000
DEFAULT_BIND = '0.0.0.0'
DEFAULT_POLL_INTERVAL = 15.0
DEFAULT_REQUEST_TIMEOUT = 10.0


class ConfigError(Exception):
    """Configuration error."""


@dataclass
class Settings:
    """Resolved service settings."""
    config_dir: Path
    devices_file: Path
    users_file: Path
    log_dir: Path
    html_file: Path
    port: int = DEFAULT_PORT
    bind: str = DEFAULT_BIND
    poll_interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def defaults(cls, config_dir: Path) -> "Settings":
        """Default layout: registries in config_dir, logs and index.html beside it."""
        return cls(
            config_dir=config_dir,
            devices_file=config_dir / 'devices.json',
            users_file=config_dir / 'users.json',
            log_dir=config_dir.parent / 'logs',
            html_file=config_dir.parent / 'index.html',
        )


def get_config_dir() -> Path:
    """Discover the config directory.

    Resolution order:
    1. $DOORCTL_ETC environment variable
    2. ./config relative to the working directory
    """
    if env_path := os.environ.get('DOORCTL_ETC'):
        return Path(env_path)
    return Path.cwd() / 'config'


def _parse_yaml(path: Path) -> dict:
    """Parse a YAML file and return contents."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def _resolve_path(config_dir: Path, value) -> Path:
    path = Path(str(value)).expanduser()
    return path if path.is_absolute() else config_dir / path


def _as_number(data: dict, key: str, kind, default):
    if key not in data:
        return default
    try:
        value = kind(data[key])
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {data[key]!r}") from None
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value


def load_settings(config_dir: Optional[Path] = None) -> Settings:
    """Load settings from doorctl.yaml and the environment.

    Args:
        config_dir: Override config directory (default: auto-discovered)

    Returns:
        Settings (defaults if doorctl.yaml does not exist)

    Raises:
        ConfigError: On invalid YAML or values
    """
    config_dir = Path(config_dir) if config_dir else get_config_dir()
    settings = Settings.defaults(config_dir)

    config_file = config_dir / CONFIG_FILE_NAME
    data = _parse_yaml(config_file) if config_file.exists() else {}

    for key in ('devices_file', 'users_file', 'log_dir', 'html_file'):
        if data.get(key):
            setattr(settings, key, _resolve_path(config_dir, data[key]))

    if bind := data.get('bind'):
        settings.bind = str(bind)

    settings.port = _as_number(data, 'port', int, settings.port)
    settings.poll_interval = _as_number(data, 'poll_interval', float, settings.poll_interval)
    settings.request_timeout = _as_number(
        data, 'request_timeout', float, settings.request_timeout
    )

    if env_port := os.environ.get('PORT'):
        settings.port = _as_number({'PORT': env_port}, 'PORT', int, settings.port)

    return settings

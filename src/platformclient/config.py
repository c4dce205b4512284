"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for platformclient:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.platformclient/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **User config** -- a single JSON file holding connector options
  (``accounts``, ``client_id``, ``verify`` ...).
* **Precedence resolution** -- :func:`load_connector_config` merges
  explicit overrides, environment variables and the user config file over
  the :class:`~platformclient.models.ConnectorConfig` defaults.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from platformclient.exceptions import ConfigError
from platformclient.models import ConnectorConfig

_APP_NAME = "platformclient"
_CONFIG_FILENAME = "config.json"
_ENV_PREFIX = "PLATFORMCLIENT_"

# Environment variable suffix -> config key.
_ENV_KEYS = {
    "ACCOUNTS": "accounts",
    "CLIENT_ID": "client_id",
    "CLIENT_SECRET": "client_secret",
    "TOKEN_URL": "token_url",
    "API_TOKEN": "api_token",
    "USER_AGENT": "user_agent",
    "VERIFY": "verify",
    "DEBUG": "debug",
}
_BOOL_KEYS = {"verify", "debug"}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/platformclient/`` (default
    ``~/.config/platformclient/``).  On macOS/Windows: ``~/.platformclient/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (sessions, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/platformclient/``.
    On macOS/Windows: ``~/.platformclient/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  When *mode* is
    given, permissions are applied before any content is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- User config ---


def user_config_path() -> Path:
    """Path to the user config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_user_config() -> dict[str, Any]:
    """Load the raw user configuration mapping.

    Returns:
        The parsed JSON object, or an empty dict when the file is absent.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = user_config_path()
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def save_user_config(data: Mapping[str, Any]) -> None:
    """Validate and persist *data* as the user configuration.

    ``api_token`` is never written to the config file.

    Raises:
        ConfigError: If *data* is not a valid connector configuration.
    """
    config = build_config(data)
    payload = config.model_dump(mode="json", exclude_defaults=True, exclude={"api_token"})
    atomic_write(user_config_path(), json.dumps(payload, indent=2) + "\n")


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"Environment variable {name} must be a boolean, got '{value}'")


def _env_config() -> dict[str, Any]:
    """Collect connector options from ``PLATFORMCLIENT_*`` environment variables."""
    values: dict[str, Any] = {}
    for suffix, key in _ENV_KEYS.items():
        name = _ENV_PREFIX + suffix
        raw = os.environ.get(name)
        if raw is None:
            continue
        values[key] = _parse_bool(name, raw) if key in _BOOL_KEYS else raw
    return values


def build_config(data: Optional[Mapping[str, Any]] = None) -> ConnectorConfig:
    """Validate a configuration mapping into a :class:`ConnectorConfig`.

    Raises:
        ConfigError: On unknown keys or invalid values.
    """
    try:
        return ConnectorConfig.model_validate(dict(data or {}))
    except ValidationError as exc:
        raise ConfigError(f"Invalid connector configuration: {exc}") from exc


def load_connector_config(
    overrides: Optional[Mapping[str, Any]] = None,
) -> ConnectorConfig:
    """Resolve the effective connector configuration.

    Precedence (high to low):
        1. *overrides* (``None`` values are ignored)
        2. Environment variables (``PLATFORMCLIENT_ACCOUNTS`` ...)
        3. User config file (``~/.config/platformclient/config.json``)
        4. :class:`ConnectorConfig` defaults

    Raises:
        ConfigError: If any layer is invalid.
    """
    merged: dict[str, Any] = load_user_config()
    merged.update(_env_config())
    if overrides:
        merged.update({k: v for k, v in overrides.items() if v is not None})
    return build_config(merged)

"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for waystation:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.waystation/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **OAuth settings** -- A single :class:`~waystation.models.OAuthSettings`
  JSON file (``config.json``) overriding the production defaults.
* **Precedence resolution** -- :func:`load_settings` merges environment
  variables over the config file over the defaults.
* **Storage paths** -- :func:`credentials_path` and :func:`token_file_path`
  locate the credential record and the shared bearer-token file.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from waystation.exceptions import ConfigurationError
from waystation.models import OAuthSettings

_APP_NAME = "waystation"
_CONFIG_FILENAME = "config.json"
_CREDENTIALS_FILENAME = "credentials.json"

# Environment variable -> OAuthSettings field.
_ENV_OVERRIDES = {
    "WAYSTATION_AUTHORIZATION_URL": "authorization_url",
    "WAYSTATION_TOKEN_URL": "token_url",
    "WAYSTATION_USERINFO_URL": "userinfo_url",
    "WAYSTATION_CLIENT_ID": "client_id",
    "WAYSTATION_REDIRECT_URI": "redirect_uri",
    "WAYSTATION_SCOPES": "scopes",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses the XDG Base Directory layout (Linux/FreeBSD)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/waystation/`` (default ``~/.config/waystation/``).
    On macOS/Windows: ``~/.waystation/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (credentials, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/waystation/`` (default ``~/.local/share/waystation/``).
    On macOS/Windows: ``~/.waystation/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_file_path() -> Path:
    """Path to the settings file (``<config_dir>/config.json``)."""
    return get_config_dir() / _CONFIG_FILENAME


def credentials_path() -> Path:
    """Path to the persisted credential record.

    ``WAYSTATION_CREDENTIALS_FILE`` overrides the default
    ``<data_dir>/credentials.json``.
    """
    override = os.environ.get("WAYSTATION_CREDENTIALS_FILE", "")
    if override:
        return Path(override).expanduser()
    return get_data_dir() / _CREDENTIALS_FILENAME


def token_file_path() -> Path:
    """Path to the shared bearer-token file read by other WayStation integrations.

    ``WAYSTATION_TOKEN_FILE`` overrides the default ``~/.waystation/token``.
    The location is the same on every platform because the consumers
    hard-code it.
    """
    override = os.environ.get("WAYSTATION_TOKEN_FILE", "")
    if override:
        return Path(override).expanduser()
    return Path.home() / f".{_APP_NAME}" / "token"


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.

    Args:
        path: Destination file. Missing parent directories are created.
        data: Full file content.
        mode: Optional permission bits applied before any content is written.
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
        fd = None  # prevent double-close in the error path
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Settings ---


def load_settings_file(path: Optional[Path] = None) -> dict[str, Any]:
    """Load raw overrides from the settings file.

    Args:
        path: Settings file to read. Defaults to :func:`config_file_path`.

    Returns:
        The parsed JSON object, or an empty dict if the file does not exist.

    Raises:
        ConfigurationError: If the file is unreadable, not JSON, or not a
            JSON object.
    """
    path = path or config_file_path()
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid config at {path}: expected a JSON object")
    return data


def _env_overrides() -> dict[str, Any]:
    """Collect ``WAYSTATION_*`` overrides that are set and non-empty."""
    overrides: dict[str, Any] = {}
    for var, field in _ENV_OVERRIDES.items():
        value = os.environ.get(var, "")
        if not value:
            continue
        overrides[field] = value.split() if field == "scopes" else value
    return overrides


def load_settings(path: Optional[Path] = None) -> OAuthSettings:
    """Resolve the effective OAuth settings.

    Precedence (high to low):
        1. Environment variables (``WAYSTATION_CLIENT_ID``, ``WAYSTATION_SCOPES``, ...)
        2. Settings file (``~/.config/waystation/config.json``)
        3. Production defaults on :class:`~waystation.models.OAuthSettings`

    Args:
        path: Settings file to read. Defaults to :func:`config_file_path`.

    Returns:
        The validated :class:`~waystation.models.OAuthSettings`.

    Raises:
        ConfigurationError: If the file is invalid or the merged values fail
            validation.
    """
    data = load_settings_file(path)
    data.update(_env_overrides())
    try:
        return OAuthSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid OAuth settings: {exc}") from exc


def save_settings(settings: OAuthSettings, path: Optional[Path] = None) -> None:
    """Persist settings atomically to the settings file.

    Args:
        settings: The settings to save.
        path: Destination. Defaults to :func:`config_file_path`.
    """
    data = settings.model_dump(mode="json")
    atomic_write(path or config_file_path(), json.dumps(data, indent=2) + "\n")

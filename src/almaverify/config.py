"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module is the single place where a :class:`~almaverify.models.BackendConfig`
is assembled. Nothing else in the package reads the environment: hosts
call :func:`load_backend_config` once at start-up and pass the result to a
verifier.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.almaverify/`` on macOS and Windows. See :func:`get_config_dir`
  and :func:`get_data_dir`.
* **Stored config** -- a single :class:`~almaverify.models.StoredConfig`
  JSON file holding the API root, the API key *source* and request
  settings. Written atomically by :func:`save_stored_config`.
* **Precedence resolution** -- :func:`load_backend_config` merges explicit
  arguments, ``ALMA_*`` environment variables, the stored config and the
  defaults.
* **Secret resolution** -- :func:`resolve_secret` reads the API key or a
  password from an env var, a file, or an interactive prompt.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from almaverify.exceptions import ConfigError
from almaverify.models import BackendConfig, StoredConfig

_APP_NAME = "almaverify"
_CONFIG_FILENAME = "config.json"

ENV_API_ROOT = "ALMA_API_ROOT"
ENV_API_KEY = "ALMA_APIKEY"
ENV_TIMEOUT = "ALMA_TIMEOUT"

_SETTABLE_KEYS = ("api_root", "api_key_source", "timeout", "verify_ssl")


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/almaverify/`` (default ``~/.config/almaverify/``).
    On macOS/Windows: ``~/.almaverify/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/almaverify/`` (default ``~/.local/share/almaverify/``).
    On macOS/Windows: ``~/.almaverify/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure
    the temp file is removed.
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


# --- Stored config ---


def config_path() -> Path:
    """Path to the stored config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_stored_config() -> StoredConfig:
    """Load the stored configuration.

    Returns:
        The deserialised :class:`~almaverify.models.StoredConfig`, or an
        empty instance if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            validation.
    """
    path = config_path()
    if not path.is_file():
        return StoredConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return StoredConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_stored_config(config: StoredConfig) -> None:
    """Persist the stored configuration atomically, omitting unset fields."""
    data = config.model_dump(mode="json", exclude_none=True)
    _atomic_write(config_path(), json.dumps(data, indent=2) + "\n")


def set_config_value(key: str, value: str) -> StoredConfig:
    """Validate and persist a single stored setting.

    Args:
        key: One of ``api_root``, ``api_key_source``, ``timeout``, ``verify_ssl``.
        value: The raw string value, converted according to the field type.

    Returns:
        The updated stored config.

    Raises:
        ConfigError: For unknown keys or values that fail validation.
    """
    if key not in _SETTABLE_KEYS:
        raise ConfigError(
            f"Unknown config key '{key}'. Valid keys: {', '.join(_SETTABLE_KEYS)}"
        )
    if key == "api_key_source":
        _check_source_format(value)

    current = load_stored_config().model_dump()
    current[key] = value
    try:
        updated = StoredConfig.model_validate(current)
    except ValidationError as exc:
        raise ConfigError(f"Invalid value for '{key}': {value!r}") from exc
    save_stored_config(updated)
    return updated


# --- Precedence resolution ---


def load_backend_config(
    api_root: Optional[str] = None,
    api_key: Optional[str] = None,
    api_key_source: Optional[str] = None,
    timeout: Optional[float] = None,
    verify_ssl: Optional[bool] = None,
) -> BackendConfig:
    """Resolve the backend configuration with the full precedence chain.

    Precedence (high to low):
        1. Explicit arguments (``api_key`` beats ``api_key_source``)
        2. Environment variables (``ALMA_API_ROOT``, ``ALMA_APIKEY``, ``ALMA_TIMEOUT``)
        3. Stored config (``~/.config/almaverify/config.json``)
        4. Defaults

    Returns:
        An immutable :class:`~almaverify.models.BackendConfig`.

    Raises:
        ConfigError: If the API root or key cannot be resolved, or any value
            is invalid.
    """
    stored = load_stored_config()

    resolved_root = api_root or os.environ.get(ENV_API_ROOT) or stored.api_root
    if not resolved_root:
        raise ConfigError(
            f"No API root configured. Pass --api-root, set {ENV_API_ROOT}, "
            "or run 'almaverify config set api_root <url>'"
        )

    resolved_key = api_key
    if resolved_key is None and api_key_source is not None:
        resolved_key = resolve_secret(api_key_source)
    if resolved_key is None:
        resolved_key = os.environ.get(ENV_API_KEY)
    if resolved_key is None and stored.api_key_source is not None:
        resolved_key = resolve_secret(stored.api_key_source)
    if not resolved_key:
        raise ConfigError(
            f"No API key configured. Set {ENV_API_KEY} or "
            "run 'almaverify config set api_key_source env:VAR'"
        )

    settings: dict[str, Any] = {"api_root": resolved_root, "api_key": resolved_key}

    resolved_timeout: Any = timeout
    if resolved_timeout is None:
        resolved_timeout = os.environ.get(ENV_TIMEOUT) or stored.timeout
    if resolved_timeout is not None:
        settings["timeout"] = resolved_timeout

    resolved_verify = verify_ssl if verify_ssl is not None else stored.verify_ssl
    if resolved_verify is not None:
        settings["verify_ssl"] = resolved_verify

    try:
        return BackendConfig.model_validate(settings)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise ConfigError(f"Invalid backend configuration: {fields}") from None


# --- Secret source resolution ---


def _check_source_format(source: str) -> None:
    if source == "prompt" or source.startswith(("env:", "file:")):
        return
    raise ConfigError(f"Unknown secret source format: {source}")


def resolve_secret(source: str, prompt: str = "Enter API key: ") -> str:
    """Resolve a secret from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts interactively without echo (requires a TTY)

    Args:
        source: The source descriptor string.
        prompt: Text shown when *source* is ``"prompt"``.

    Returns:
        The resolved secret.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    _check_source_format(source)

    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Secret file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read secret file {path}: {exc}") from exc

    if not sys.stdin.isatty():
        raise ConfigError("Cannot prompt for a secret: stdin is not a TTY (source: prompt)")
    return getpass.getpass(prompt)

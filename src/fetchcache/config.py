"""Configuration management with XDG paths, atomic writes, and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.fetchcache/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~fetchcache.models.GlobalConfig`
  JSON file storing the cache backend, default TTL, and request settings.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, and the config file into the effective
  configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so that a crash never leaves a truncated config.
"""

from __future__ import annotations

import json
import math
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from fetchcache.exceptions import ConfigError
from fetchcache.models import GlobalConfig

_APP_NAME = "fetchcache"
_CONFIG_FILENAME = "config.json"

ENV_CACHE_DIR = "FETCHCACHE_CACHE_DIR"
ENV_BACKEND = "FETCHCACHE_BACKEND"
ENV_TTL = "FETCHCACHE_TTL"
ENV_TIMEOUT = "FETCHCACHE_TIMEOUT"


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/fetchcache/`` (default ``~/.config/fetchcache/``).
    On macOS/Windows: ``~/.fetchcache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the response cache. Its contents can be deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/fetchcache/`` (default ``~/.cache/fetchcache/``).
    On macOS/Windows: ``~/.fetchcache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/fetchcache/`` (default ``~/.local/share/fetchcache/``).
    On macOS/Windows: ``~/.fetchcache/logs/``.
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
    ``os.replace`` is an atomic rename on POSIX systems.  On any failure
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


# --- Global config ---


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration.

    Returns:
        The deserialised :class:`~fetchcache.models.GlobalConfig`, or a
        default instance if the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def _env_number(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        raise ConfigError(f"Environment variable {name} must be a finite number, got {raw!r}")
    return value


def resolve_config(
    cli_ttl: Optional[int] = None,
    cli_cache_dir: Optional[str] = None,
    cli_backend: Optional[str] = None,
) -> GlobalConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``cli_ttl``, ``cli_cache_dir``, ``cli_backend``)
        2. Environment variables (``FETCHCACHE_TTL``, ``FETCHCACHE_CACHE_DIR``,
           ``FETCHCACHE_BACKEND``, ``FETCHCACHE_TIMEOUT``)
        3. User config (``~/.config/fetchcache/config.json``)
        4. Defaults

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    config = load_global_config()
    data = config.model_dump(mode="json")
    cache = data["cache"]
    request = data["request"]

    # 2. Environment
    env_dir = os.environ.get(ENV_CACHE_DIR)
    if env_dir:
        cache["directory"] = env_dir
    env_backend = os.environ.get(ENV_BACKEND)
    if env_backend:
        cache["backend"] = env_backend
    env_ttl = _env_number(ENV_TTL)
    if env_ttl is not None:
        cache["default_ttl_seconds"] = int(env_ttl)
    env_timeout = _env_number(ENV_TIMEOUT)
    if env_timeout is not None:
        request["timeout"] = env_timeout

    # 1. CLI flags
    if cli_cache_dir is not None:
        cache["directory"] = cli_cache_dir
    if cli_backend is not None:
        cache["backend"] = cli_backend
    if cli_ttl is not None:
        cache["default_ttl_seconds"] = cli_ttl

    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def resolve_cache_dir(config: GlobalConfig) -> Path:
    """Return the directory the disk cache lives in for *config*."""
    if config.cache.directory:
        path = Path(config.cache.directory).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path
    return get_cache_dir()


"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for warmcache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.warmcache/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`, :func:`get_durable_dir`.
* **Global config** -- A single :class:`~warmcache.models.GlobalConfig`
  JSON file storing cache and output defaults.
* **Precedence resolution** -- :func:`resolve_config` merges CLI
  overrides, environment variables, project-local config, and global
  config into the effective :class:`~warmcache.models.CacheConfig`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from warmcache.exceptions import ConfigError
from warmcache.models import CacheConfig, GlobalConfig

_APP_NAME = "warmcache"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "warmcache.json"

ENV_MAX_SIZE = "WARMCACHE_MAX_SIZE"
ENV_DEFAULT_TTL = "WARMCACHE_DEFAULT_TTL"
ENV_DURABLE_DIR = "WARMCACHE_DURABLE_DIR"
ENV_DISABLE_DURABLE = "WARMCACHE_DISABLE_DURABLE"


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/warmcache/`` (default ``~/.config/warmcache/``).
    On macOS/Windows: ``~/.warmcache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CACHE_HOME/warmcache/`` (default ``~/.cache/warmcache/``).
    On macOS/Windows: ``~/.warmcache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/warmcache/`` (default ``~/.local/share/warmcache/``).
    On macOS/Windows: ``~/.warmcache/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_durable_dir(config: Optional[CacheConfig] = None) -> Path:
    """Return the directory backing the durable mirror, creating it if necessary.

    ``config.durable_dir`` wins when set; otherwise ``<cache_dir>/durable``.
    """
    if config is not None and config.durable_dir:
        path = Path(config.durable_dir).expanduser()
    else:
        path = get_cache_dir() / "durable"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On any failure the temp file is cleaned up.
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
        fd = None  # prevent double-close in finally
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


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~warmcache.models.GlobalConfig`, or a
        default instance if the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./warmcache.json``.

    The file may contain a ``cache`` object whose keys override the user's
    cache settings.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Project config at {path} must be a JSON object")
    return data


# --- Precedence resolution ---


def _env_overrides() -> dict[str, Any]:
    """Collect cache overrides from ``WARMCACHE_*`` environment variables."""
    overrides: dict[str, Any] = {}

    max_size = os.environ.get(ENV_MAX_SIZE)
    if max_size:
        try:
            overrides["max_size"] = int(max_size)
        except ValueError:
            raise ConfigError(f"{ENV_MAX_SIZE} must be an integer, got: {max_size}") from None

    default_ttl = os.environ.get(ENV_DEFAULT_TTL)
    if default_ttl:
        try:
            overrides["default_ttl_seconds"] = float(default_ttl)
        except ValueError:
            raise ConfigError(f"{ENV_DEFAULT_TTL} must be a number, got: {default_ttl}") from None

    durable_dir = os.environ.get(ENV_DURABLE_DIR)
    if durable_dir:
        overrides["durable_dir"] = durable_dir

    if os.environ.get(ENV_DISABLE_DURABLE, "").lower() in ("1", "true", "yes"):
        overrides["durable_enabled"] = False

    return overrides


def resolve_config(
    cli_max_size: Optional[int] = None,
    cli_default_ttl: Optional[float] = None,
    cli_durable_dir: Optional[str] = None,
) -> tuple[GlobalConfig, CacheConfig]:
    """Resolve the effective cache configuration.

    Precedence (high to low):
        1. CLI overrides (``cli_max_size``, ``cli_default_ttl``, ``cli_durable_dir``)
        2. Environment variables (``WARMCACHE_MAX_SIZE``, ``WARMCACHE_DEFAULT_TTL``,
           ``WARMCACHE_DURABLE_DIR``, ``WARMCACHE_DISABLE_DURABLE``)
        3. Project config (``./warmcache.json``, ``cache`` section)
        4. User config (``~/.config/warmcache/config.json``)
        5. Defaults

    Returns:
        A tuple of ``(global_config, effective_cache_config)``.

    Raises:
        ConfigError: If any layer is malformed or the merged result fails
            validation.
    """
    # 5 + 4. Load base global config (fills in defaults automatically)
    global_cfg = load_global_config()
    merged = global_cfg.cache.model_dump()

    # 3. Project-local cache section
    project = load_project_config()
    if project is not None:
        section = project.get("cache", {})
        if not isinstance(section, dict):
            raise ConfigError("Project config 'cache' section must be a JSON object")
        merged.update(section)

    # 2. Environment variables
    merged.update(_env_overrides())

    # 1. CLI flags (highest precedence)
    if cli_max_size is not None:
        merged["max_size"] = cli_max_size
    if cli_default_ttl is not None:
        merged["default_ttl_seconds"] = cli_default_ttl
    if cli_durable_dir is not None:
        merged["durable_dir"] = cli_durable_dir

    try:
        cache_cfg = CacheConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid cache configuration: {exc}") from exc
    return global_cfg, cache_cfg

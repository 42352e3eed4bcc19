"""Tests for warmcache.config: XDG paths, atomic writes, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from warmcache.config import (
    _atomic_write,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    get_durable_dir,
    load_global_config,
    load_project_config,
    resolve_config,
    save_global_config,
)
from warmcache.exceptions import ConfigError
from warmcache.models import CacheConfig, GlobalConfig, OutputConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("warmcache.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "warmcache"
        assert result.is_dir()

    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_config"
        monkeypatch.setattr("warmcache.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(custom))

        result = get_config_dir()
        assert result == custom / "warmcache"
        assert result.is_dir()

    def test_cache_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_cache"
        monkeypatch.setattr("warmcache.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(custom))

        result = get_cache_dir()
        assert result == custom / "warmcache"
        assert result.is_dir()

    def test_data_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("warmcache.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_data_dir()
        assert result == tmp_path / ".local" / "share" / "warmcache"
        assert result.is_dir()


class TestXDGPathsFallback:
    """Fallback paths on non-XDG platforms (macOS, Windows)."""

    def test_config_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("warmcache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".warmcache"
        assert result.is_dir()

    def test_cache_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("warmcache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_cache_dir()
        assert result == tmp_path / ".warmcache" / "cache"
        assert result.is_dir()


class TestDurableDir:
    def test_default_is_inside_cache_dir(self, isolated_config: Path) -> None:
        result = get_durable_dir()
        assert result == isolated_config / "cache" / "warmcache" / "durable"
        assert result.is_dir()

    def test_config_override(self, isolated_config: Path) -> None:
        target = isolated_config / "elsewhere"
        result = get_durable_dir(CacheConfig(durable_dir=str(target)))
        assert result == target
        assert result.is_dir()


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        _atomic_write(target, "hello world")
        assert target.read_text(encoding="utf-8") == "hello world"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "test.txt"
        _atomic_write(target, "deep write")
        assert target.read_text(encoding="utf-8") == "deep write"

    def test_no_temp_files_left_on_success(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        _atomic_write(target, "content")
        assert list(tmp_path.iterdir()) == [target]

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        with patch("warmcache.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                _atomic_write(target, "will fail")
        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_load_returns_defaults_when_missing(self, isolated_config: Path) -> None:
        cfg = load_global_config()
        assert cfg == GlobalConfig()
        assert cfg.cache.max_size == 50
        assert cfg.cache.default_ttl_seconds == 600
        assert cfg.output.format == "auto"

    def test_save_and_load_roundtrip(self, isolated_config: Path) -> None:
        original = GlobalConfig(
            output=OutputConfig(format="json"),
            cache=CacheConfig(max_size=10, ttl_policies={"token_prices": 30}),
        )
        save_global_config(original)
        assert load_global_config() == original

    def test_load_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        path = isolated_config / "config" / "warmcache" / "config.json"
        path.parent.mkdir(parents=True)
        path.write_text("{invalid json!!!", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()

    def test_load_invalid_schema_raises_config_error(self, isolated_config: Path) -> None:
        _write_json(
            isolated_config / "config" / "warmcache" / "config.json",
            {"cache": {"max_size": 0}},
        )
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()

    def test_non_positive_policy_rejected(self, isolated_config: Path) -> None:
        _write_json(
            isolated_config / "config" / "warmcache" / "config.json",
            {"cache": {"ttl_policies": {"token_prices": -5}}},
        )
        with pytest.raises(ConfigError):
            load_global_config()


# ---------------------------------------------------------------------------
# Project config
# ---------------------------------------------------------------------------


class TestProjectConfig:
    def test_load_returns_none_when_missing(self, isolated_config: Path) -> None:
        assert load_project_config() is None

    def test_load_valid_project_config(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "warmcache.json", {"cache": {"max_size": 20}})
        assert load_project_config() == {"cache": {"max_size": 20}}

    def test_load_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        (isolated_config / "warmcache.json").write_text("broken{", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config()

    def test_non_object_raises_config_error(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "warmcache.json", [1, 2, 3])
        with pytest.raises(ConfigError, match="must be a JSON object"):
            load_project_config()


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveConfig:
    """Test the full precedence chain: CLI > env > project > global > defaults."""

    def test_defaults(self, isolated_config: Path) -> None:
        _, cache = resolve_config()
        assert cache == CacheConfig()

    def test_global_applies(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(cache=CacheConfig(max_size=10)))
        _, cache = resolve_config()
        assert cache.max_size == 10

    def test_project_overrides_global(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(cache=CacheConfig(max_size=10)))
        _write_json(isolated_config / "warmcache.json", {"cache": {"max_size": 20}})
        _, cache = resolve_config()
        assert cache.max_size == 20

    def test_env_overrides_project(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_json(isolated_config / "warmcache.json", {"cache": {"max_size": 20}})
        monkeypatch.setenv("WARMCACHE_MAX_SIZE", "30")
        monkeypatch.setenv("WARMCACHE_DEFAULT_TTL", "90.5")
        _, cache = resolve_config()
        assert cache.max_size == 30
        assert cache.default_ttl_seconds == 90.5

    def test_cli_overrides_env(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("WARMCACHE_MAX_SIZE", "30")
        monkeypatch.setenv("WARMCACHE_DURABLE_DIR", "/from/env")
        _, cache = resolve_config(cli_max_size=40, cli_durable_dir="/from/cli")
        assert cache.max_size == 40
        assert cache.durable_dir == "/from/cli"

    def test_disable_durable_env(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("WARMCACHE_DISABLE_DURABLE", "true")
        _, cache = resolve_config()
        assert cache.durable_enabled is False

    def test_bad_env_value_raises_config_error(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("WARMCACHE_MAX_SIZE", "lots")
        with pytest.raises(ConfigError, match="WARMCACHE_MAX_SIZE"):
            resolve_config()

    def test_invalid_merged_value_raises_config_error(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid cache configuration"):
            resolve_config(cli_default_ttl=-1)

    def test_project_cache_section_must_be_object(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "warmcache.json", {"cache": "big"})
        with pytest.raises(ConfigError, match="'cache' section"):
            resolve_config()

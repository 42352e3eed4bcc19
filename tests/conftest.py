"""Shared test fixtures for warmcache.

Provides a controllable clock, isolated config environments, in-memory
durable backends, output state management, and a CLI runner.  These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from warmcache.cache import AdaptiveCache, MemoryBackend
from warmcache.models import CacheConfig
from warmcache.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test the cached references become stale, so a fresh manager is
    forced on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def backend() -> MemoryBackend:
    """A durable backend shared by every cache built in one test."""
    return MemoryBackend()


@pytest.fixture
def cache_config() -> CacheConfig:
    """Default cache settings with the stock TTL families and allow-list."""
    return CacheConfig()


@pytest.fixture
def make_cache(backend: MemoryBackend, clock: FakeClock, cache_config: CacheConfig):
    """Factory building caches that share the same backend and clock.

    Calling it twice simulates a process restart against the same durable
    store.
    """

    def _make(config: CacheConfig | None = None) -> AdaptiveCache:
        return AdaptiveCache(config or cache_config, backend=backend, clock=clock)

    return _make


@pytest.fixture
def cache(make_cache) -> AdaptiveCache:
    return make_cache()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config, forces the XDG layout, clears all WARMCACHE_* environment
    variables, and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("warmcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "WARMCACHE_MAX_SIZE",
        "WARMCACHE_DEFAULT_TTL",
        "WARMCACHE_DURABLE_DIR",
        "WARMCACHE_DISABLE_DURABLE",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()

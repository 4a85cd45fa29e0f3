"""Shared test fixtures for repofetch.

Provides a controllable clock for cache expiry, isolated config
directories, output-state management and a CLI runner.  These fixtures
are discovered by pytest and available to every test module.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from repofetch.cache import api_cache
from repofetch.output import OutputFormat, OutputManager, reset_output, set_output


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager holds references to sys.stdout/sys.stderr taken when it
    was built; once CliRunner restores the real streams those references
    are stale.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _clear_api_cache() -> None:
    """Start every test with an empty process-wide cache."""
    api_cache.clear()
    yield
    api_cache.clear()


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Forces the XDG code path, points ``XDG_CONFIG_HOME`` below *tmp_path*
    and clears ``REPOFETCH_TOKEN`` so the developer's environment never
    leaks into a test.

    Returns:
        The config root (``$XDG_CONFIG_HOME``).
    """
    config_home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setattr("repofetch.config._is_xdg_platform", lambda: True)
    monkeypatch.delenv("REPOFETCH_TOKEN", raising=False)
    monkeypatch.chdir(tmp_path)
    return config_home


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, plain-text OutputManager for the duration of a test."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()

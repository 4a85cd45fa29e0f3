"""Configuration management with XDG paths, atomic writes, and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD
  (``$XDG_CONFIG_HOME/repofetch/``), ``~/.repofetch/`` on macOS and Windows.
* **Global config** -- a single :class:`~repofetch.models.GlobalConfig`
  JSON file holding cache and request settings plus configured providers.
* **Precedence resolution** -- :func:`resolve_provider` merges CLI flags,
  the ``REPOFETCH_TOKEN`` environment variable and configured providers
  into the :class:`~repofetch.models.ProviderInstance` used for an import.

Writes go through :func:`_atomic_write` (temp file, then rename) so a crash
never leaves a half-written config behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from repofetch.exceptions import ConfigError
from repofetch.models import GlobalConfig, ProviderInstance, ProviderType

_APP_NAME = "repofetch"
_CONFIG_FILENAME = "config.json"

TOKEN_ENV_VAR = "REPOFETCH_TOKEN"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses the XDG Base Directory layout (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/repofetch/`` (default ``~/.config/repofetch/``).
    On macOS/Windows: ``~/.repofetch/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically using a sibling temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
        encoding="utf-8",
    )
    try:
        with fd:
            fd.write(data)
            fd.flush()
            os.fsync(fd.fileno())
        os.replace(fd.name, path)
    except BaseException:
        Path(fd.name).unlink(missing_ok=True)
        raise


# --- Global config ---


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration.

    Returns:
        The deserialised :class:`~repofetch.models.GlobalConfig`, or a
        default instance when no file exists yet.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist *config* atomically."""
    data = config.model_dump(mode="json")
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


def reset_global_config() -> GlobalConfig:
    """Overwrite the config file with defaults and return them."""
    config = GlobalConfig()
    save_global_config(config)
    return config


# --- Precedence resolution ---


def resolve_token(
    cli_token: Optional[str] = None, configured: Optional[str] = None
) -> Optional[str]:
    """Pick the token from the CLI flag, then ``$REPOFETCH_TOKEN``, then *configured*."""
    return cli_token or os.environ.get(TOKEN_ENV_VAR) or configured


def resolve_provider(
    config: GlobalConfig,
    provider_type: ProviderType = ProviderType.GITHUB,
    cli_base_url: Optional[str] = None,
    cli_token: Optional[str] = None,
) -> Optional[ProviderInstance]:
    """Build the provider instance an import should use.

    Precedence for the token (high to low):
        1. ``cli_token``
        2. ``$REPOFETCH_TOKEN``
        3. The token of the configured provider matching the base URL

    Plain URL sources never carry credentials, so ``None`` is returned for
    :attr:`ProviderType.URL`.
    """
    if provider_type == ProviderType.URL:
        return None

    base_url = cli_base_url or "github.com"
    configured = config.find_provider(base_url)

    token = resolve_token(cli_token, configured.token if configured else None)

    if configured is not None:
        return configured.model_copy(update={"token": token})
    return ProviderInstance(name=base_url, type=provider_type, base_url=base_url, token=token)

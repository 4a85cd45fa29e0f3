"""Config commands -- view and modify the global configuration.

Provides the ``repofetch config`` sub-command group for reading, updating
and resetting the user's :class:`~repofetch.models.GlobalConfig`.  Settings
control the response cache size and TTLs, outbound request options and the
configured GitHub providers.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from repofetch.exit_codes import EXIT_INVALID_USAGE
from repofetch.output import error, format_response, info, success

config_app = typer.Typer(no_args_is_help=True)

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def _mask_tokens(data: dict[str, Any]) -> dict[str, Any]:
    for provider in data.get("providers", []):
        if provider.get("token"):
            provider["token"] = "****"
    return data


def _coerce(key: str, current: Any, value: str) -> Any:
    """Convert *value* to the type of the field it replaces."""
    if isinstance(current, bool):
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"Expected a boolean for {key}, got: {value}")
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Expected an integer for {key}, got: {value}") from None
    if isinstance(current, float):
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"Expected a number for {key}, got: {value}") from None
    return value


@config_app.command("show")
def config_show() -> None:
    """Show the current configuration.

    Provider tokens are masked.

    Example::

        repofetch config show
        repofetch --json config show
    """
    from repofetch.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(_mask_tokens(config.model_dump(mode="json")))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (dot notation, e.g. 'cache.max_entries')."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the type of the existing field and the whole
    config is re-validated before it is saved.

    Raises:
        typer.Exit: With code 2 if the key is unknown, the value cannot be
            coerced or validation fails.

    Example::

        repofetch config set cache.max_entries 250
        repofetch config set cache.api_ttl_seconds 60
        repofetch config set request.verify_ssl false
    """
    from repofetch.config import load_global_config, save_global_config
    from repofetch.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if not isinstance(target.get(k), dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], (dict, list)):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    try:
        coerced = _coerce(key, target[final_key], value)
    except ValueError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Reset the configuration to defaults.

    Example::

        repofetch config reset
        repofetch config reset --yes
    """
    from repofetch.config import reset_global_config

    if not yes and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    reset_global_config()
    success("Configuration reset to defaults.")

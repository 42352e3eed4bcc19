"""Config commands -- view and modify global configuration.

Provides the ``warmcache config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~warmcache.models.GlobalConfig`).
"""

from __future__ import annotations

from typing import Any

import typer

from warmcache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


def _coerce(current: Any, value: str) -> Any:
    """Coerce *value* to the type of the field's current value.

    Raises:
        ValueError: If *value* cannot be parsed as the required type.
    """
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, list):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the stored configuration and the effective cache settings.

    Example::

        warmcache config show
        warmcache --json config show
    """
    from warmcache.commands import resolve_for_context
    from warmcache.config import get_config_dir

    global_cfg, effective = resolve_for_context(ctx)
    info(f"Config directory: {get_config_dir()}")
    format_response(
        {
            "stored": global_cfg.model_dump(mode="json"),
            "effective_cache": effective.model_dump(mode="json"),
        }
    )


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'cache.max_size')."
    ),
    value: str = typer.Argument(help="Value to set. Lists are comma-separated."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys.  The value is coerced to match the
    existing field's type and the updated config is validated before it
    is saved.  New entries may be added under ``cache.ttl_policies``.

    Example::

        warmcache config set cache.max_size 100
        warmcache config set cache.ttl_policies.token_prices 90
        warmcache config set cache.durable_keys user_profile,ui_preferences
    """
    from warmcache.config import load_global_config, save_global_config
    from warmcache.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    is_policy = keys[:-1] == ["cache", "ttl_policies"]
    if final_key not in target and not is_policy:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target.get(final_key, 0.0)
    try:
        coerced = _coerce(current, value)
    except ValueError:
        error(f"Expected {type(current).__name__} for {key}, got: {value}")
        raise typer.Exit(code=2) from None

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except Exception as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    ctx: typer.Context,
) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        warmcache config reset
        warmcache --force config reset
    """
    from warmcache.config import save_global_config
    from warmcache.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")

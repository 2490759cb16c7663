"""Config commands -- view and modify global configuration.

Provides the ``fetchcache config`` sub-command group for reading,
updating, and resetting the user's global configuration file
(:class:`~fetchcache.models.GlobalConfig`). Settings persisted here are
the lowest-precedence layer: environment variables and root CLI flags
override them for a single invocation.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from fetchcache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Example::

        fetchcache config show
        fetchcache --json config show
    """
    from fetchcache.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


def _coerce(key: str, current: Any, value: str) -> Any:
    """Convert *value* to the type of the field it replaces."""
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    if isinstance(current, float):
        try:
            return float(value)
        except ValueError:
            error(f"Expected number for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    if current is None and value.lower() in ("none", "null", ""):
        return None
    return value


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'cache.default_ttl_seconds')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to match the
    existing field's type and the result is validated before saving.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or validation fails.

    Example::

        fetchcache config set cache.default_ttl_seconds 600
        fetchcache config set cache.backend memory
        fetchcache config set request.timeout 2.5
    """
    from fetchcache.config import load_global_config, save_global_config
    from fetchcache.models import GlobalConfig

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
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    coerced = _coerce(key, target[final_key], value)
    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        fetchcache config reset
        fetchcache --force config reset
    """
    from fetchcache.config import save_global_config
    from fetchcache.models import GlobalConfig

    root = ctx.find_root()
    force = root.obj.get("force", False) if root.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")

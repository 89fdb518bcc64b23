"""Config commands -- view and modify the OAuth client settings.

Provides the ``waystation config`` sub-command group for reading,
updating, and resetting ``config.json`` (:class:`~waystation.models.OAuthSettings`).
Environment variables (``WAYSTATION_CLIENT_ID`` etc.) still take
precedence over anything saved here.
"""

from __future__ import annotations

import json

import typer

from waystation.exceptions import WaystationError
from waystation.output import error, info, print_settings, print_value, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the effective settings and the files in use.

    Example::

        waystation config show
        waystation --json config show
    """
    from waystation.config import (
        config_file_path,
        credentials_path,
        load_settings,
        token_file_path,
    )

    try:
        settings = load_settings()
    except WaystationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config file: {config_file_path()}")
    data = settings.model_dump(mode="json")
    data["credentials_file"] = str(credentials_path())
    data["token_file"] = str(token_file_path())
    print_settings(data)


@config_app.command("path")
def config_path() -> None:
    """Print the path of the settings file."""
    from waystation.config import config_file_path

    print_value(str(config_file_path()))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Setting name, e.g. 'client_id' or 'scopes'."),
    value: str = typer.Argument(help="Value to set. Scopes are space separated."),
) -> None:
    """Set a value in the settings file.

    The value is coerced to the field's type (list for ``scopes``, number
    for ``timeout`` and ``refresh_margin``) and validated before saving.

    Raises:
        typer.Exit: With code 2 if the key is unknown or validation fails.

    Example::

        waystation config set client_id my-dev-client
        waystation config set scopes "profile email offline_access"
    """
    from pydantic import ValidationError

    from waystation.config import load_settings_file, save_settings
    from waystation.models import OAuthSettings

    if key not in OAuthSettings.model_fields:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    try:
        data = load_settings_file()
    except WaystationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    try:
        if key == "scopes":
            stripped = value.strip()
            data[key] = json.loads(stripped) if stripped.startswith("[") else stripped.split()
        else:
            data[key] = value
        settings = OAuthSettings.model_validate(data)
    except (ValidationError, ValueError) as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_settings(settings)
    success(f"Set {key} = {getattr(settings, key)}")


@config_app.command("reset")
def config_reset(
    ctx: typer.Context,
) -> None:
    """Reset the settings file to the production defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        waystation config reset
        waystation --force config reset
    """
    from waystation.config import save_settings
    from waystation.models import OAuthSettings

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all settings to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_settings(OAuthSettings())
    success("Settings reset to defaults.")

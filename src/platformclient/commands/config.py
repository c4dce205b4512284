"""Config commands -- view and modify the user configuration.

Provides the ``platformclient config`` sub-command group for reading,
updating, and resetting the connector options stored in the user config
file.  Values from ``PLATFORMCLIENT_*`` environment variables still take
precedence at run time.
"""

from __future__ import annotations

import typer

from platformclient.output import error, format_response, info, success

config_app = typer.Typer(no_args_is_help=True)

# Keys that may be set from the command line, with their value types.
_SETTABLE = {
    "accounts": str,
    "client_id": str,
    "client_secret": str,
    "token_url": str,
    "user_agent": str,
    "verify": bool,
    "debug": bool,
    "cache": bool,
}


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration.

    Secrets are masked.

    Example::

        platformclient config show --json
    """
    from platformclient.commands.common import cli_errors
    from platformclient.config import get_config_dir, load_connector_config

    with cli_errors():
        config = load_connector_config()
    data = config.model_dump(mode="json", exclude={"api_token"})
    if data.get("client_secret"):
        data["client_secret"] = "********"
    info(f"Config directory: {get_config_dir()}")
    format_response(data)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key, e.g. 'accounts' or 'verify'."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a value in the user configuration file.

    Example::

        platformclient config set accounts https://accounts.example.com/api/
        platformclient config set verify false
    """
    from platformclient.config import load_user_config, save_user_config
    from platformclient.exceptions import ConfigError

    if key not in _SETTABLE:
        error(f"Unknown config key: {key}. Valid keys: {', '.join(sorted(_SETTABLE))}")
        raise typer.Exit(code=2)

    coerced: object = value
    if _SETTABLE[key] is bool:
        lowered = value.lower()
        if lowered not in ("true", "false", "1", "0", "yes", "no"):
            error(f"Expected a boolean for {key}, got: {value}")
            raise typer.Exit(code=2)
        coerced = lowered in ("true", "1", "yes")

    try:
        data = load_user_config()
        data[key] = coerced
        save_user_config(data)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset the user configuration to defaults."""
    from platformclient.config import save_user_config

    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()
    save_user_config({})
    success("Configuration reset to defaults.")

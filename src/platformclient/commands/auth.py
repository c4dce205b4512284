"""Auth commands -- log in, log out and inspect the stored session.

Provides the ``platformclient auth`` sub-command group.  Every command runs
inside ``with open_connector(ctx)`` so that the session is persisted on
every exit path, including a token refreshed during the command.

Typical workflow::

    platformclient auth login -u alice@example.com   # prompts for password
    platformclient auth status
    platformclient auth token                        # print the access token
    platformclient auth logout
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import typer

from platformclient.commands.common import cli_errors, open_connector
from platformclient.exceptions import NotLoggedInError
from platformclient.output import info, print_data, print_record, success, suggest

auth_app = typer.Typer(no_args_is_help=True)


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    username: Optional[str] = typer.Option(
        None, "--username", "-u", help="Account username or email."
    ),
    password: Optional[str] = typer.Option(
        None, "--password", "-p", help="Account password (prompted when omitted)."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Log in again even if already logged in."
    ),
) -> None:
    """Log in with a username and password.

    Missing values are prompted for; the password prompt is hidden.  The
    resulting tokens are stored in the session file.

    Example::

        platformclient auth login -u alice@example.com
    """
    if username is None:
        username = typer.prompt("Username")
    if password is None:
        password = typer.prompt("Password", hide_input=True)

    with cli_errors(), open_connector(ctx) as connector:
        connector.log_in(username, password, force=force)
    success(f"Logged in as {username}.")


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Log out and delete the stored session."""
    with cli_errors(), open_connector(ctx) as connector:
        was_logged_in = connector.is_logged_in()
        connector.log_out()
    if was_logged_in:
        success("Logged out.")
    else:
        info("Not logged in.")


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show whether a session token is stored and when it expires."""
    with cli_errors(), open_connector(ctx) as connector:
        session = connector.get_session()
        expires = session.get("expires")
        record = {
            "logged_in": connector.is_logged_in(),
            "username": session.get("username"),
            "token_type": session.get("tokenType"),
            "expires": _format_expiry(expires),
            "refresh_token": session.has("refreshToken"),
            "accounts": connector.get_accounts_endpoint(),
        }
    print_record(record, title="Session")
    if not record["logged_in"]:
        suggest("Log in: platformclient auth login")


@auth_app.command("token")
def auth_token(
    ctx: typer.Context,
    refresh: bool = typer.Option(
        False, "--refresh", help="Force a refresh before printing."
    ),
) -> None:
    """Print the current access token.

    The token is refreshed first when it has expired (or ``--refresh`` is
    given) and a refresh token is stored.
    """
    with cli_errors(), open_connector(ctx) as connector:
        provider = connector.get_token_provider()
        token = provider.access_token
        if provider.can_refresh and (refresh or token is None or token.is_expired()):
            token = provider.refresh()
        if token is None:
            raise NotLoggedInError("No access token available")
        print_data(token.token)


@auth_app.command("set-token")
def auth_set_token(
    ctx: typer.Context,
    token: str = typer.Argument(help="Pre-shared API token."),
) -> None:
    """Store a pre-shared API token as the access token."""
    with cli_errors(), open_connector(ctx) as connector:
        connector.set_api_token(token)
    success("API token stored.")


def _format_expiry(expires: Optional[float]) -> Optional[str]:
    if not expires:
        return None
    return datetime.fromtimestamp(float(expires), tz=timezone.utc).isoformat()

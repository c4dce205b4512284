"""Helpers shared by the CLI sub-commands.

* :func:`open_connector` -- build a :class:`~platformclient.connector.Connector`
  from the resolved configuration and the ``--session`` file session.
* :func:`cli_errors` -- map library and transport errors to messages and
  exit codes.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import httpx
import typer

from platformclient.config import load_connector_config
from platformclient.connector import Connector
from platformclient.exceptions import PlatformClientError
from platformclient.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)
from platformclient.output import error, suggest
from platformclient.session import FileSession


def exit_code_for_status(status_code: int) -> int:
    """Map an HTTP error status to a process exit code."""
    if status_code in (401, 403):
        return EXIT_AUTH_FAILURE
    if status_code == 404:
        return EXIT_NOT_FOUND
    return EXIT_SERVER_ERROR


def open_connector(ctx: typer.Context) -> Connector:
    """Create a connector for the current invocation.

    Reads the session id and the ``--debug`` flag from ``ctx.obj``.
    The caller is responsible for closing the connector, normally with a
    ``with`` block.
    """
    obj: dict[str, Any] = ctx.obj or {}
    overrides: dict[str, Any] = {}
    if obj.get("debug"):
        overrides["debug"] = True
    config = load_connector_config(overrides)
    session = FileSession(obj.get("session_id") or "default")
    return Connector(config, session)


@contextmanager
def cli_errors() -> Iterator[None]:
    """Report expected failures and exit with the matching code."""
    try:
        yield
    except PlatformClientError as exc:
        error(str(exc))
        if exc.exit_code == EXIT_AUTH_FAILURE:
            suggest("Log in: platformclient auth login")
        raise typer.Exit(code=exc.exit_code) from None
    except httpx.HTTPStatusError as exc:
        response = exc.response
        error(f"HTTP {response.status_code} {response.reason_phrase} for {exc.request.url}")
        raise typer.Exit(code=exit_code_for_status(response.status_code)) from None
    except httpx.HTTPError as exc:
        error(f"Connection failed: {exc}")
        raise typer.Exit(code=EXIT_CONNECTION_ERROR) from None

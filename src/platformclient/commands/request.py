"""The ``platformclient request`` command -- send one authenticated request.

Useful for scripting against endpoints that have no dedicated command::

    platformclient request GET https://api.example.com/me
    platformclient request POST https://api.example.com/projects --data '{"title": "x"}'
"""

from __future__ import annotations

import json
from typing import Any, Optional

import typer

from platformclient.client.response import extract_response_data
from platformclient.commands.common import cli_errors, open_connector
from platformclient.output import error, format_response, info


def request_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method (GET, POST, PUT, PATCH, DELETE)."),
    url: str = typer.Argument(help="Absolute request URL."),
    data: Optional[str] = typer.Option(
        None, "--data", "-d", help="Request body; sent as JSON when it parses as JSON."
    ),
) -> None:
    """Send an authenticated request and print the response body."""
    json_body: Any = None
    body: Optional[str] = None
    if data is not None:
        try:
            json_body = json.loads(data)
        except json.JSONDecodeError:
            body = data

    method = method.upper()
    if method not in ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"):
        error(f"Unsupported HTTP method: {method}")
        raise typer.Exit(code=2)

    with cli_errors(), open_connector(ctx) as connector:
        response = connector.get_client().request(
            method, url, json_body=json_body, body=body
        )
    info(f"HTTP {response.status_code} {response.reason_phrase or ''}")
    payload = extract_response_data(response)
    if payload is not None:
        format_response(payload, response.headers.get("content-type", "application/json"))

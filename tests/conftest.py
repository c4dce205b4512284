"""Shared test fixtures for platformclient.

Provides a fake accounts/API server served through :class:`httpx.MockTransport`,
isolated XDG directories, and output-state resets.  These fixtures are
discovered by pytest and available to all test modules without imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional
from urllib.parse import parse_qsl

import httpx
import pytest

from platformclient.models import ConnectorConfig
from platformclient.output import OutputManager, reset_output, set_output

ACCOUNTS_URL = "https://accounts.example.com/api/platform/"
API_URL = "https://api.example.com"


# ---------------------------------------------------------------------------
# Fake platform
# ---------------------------------------------------------------------------


class FakePlatform:
    """In-process stand-in for the token endpoint and the REST API.

    * ``POST .../oauth2/token`` implements the password and refresh-token
      grants.  Unknown users get 401; unknown refresh tokens get 400.
    * Any other URL is an API endpoint that answers 200 for a known access
      token and 401 otherwise.

    Every issued access token is ``access-<n>`` and every refresh token
    ``refresh-<n>``, with ``n`` counting issued tokens.
    """

    def __init__(self) -> None:
        self.users: dict[str, str] = {"alice": "secret"}
        self.valid_tokens: set[str] = set()
        self.refresh_tokens: set[str] = set()
        self.token_requests: list[dict[str, str]] = []
        self.token_request_headers: list[httpx.Headers] = []
        self.api_requests: list[httpx.Request] = []
        self.issue_refresh_token = True
        self.expires_in: Optional[int] = 3600
        self.token_status: Optional[int] = None
        self._counter = 0

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/oauth2/token"):
            return self._token(request)
        return self._api(request)

    def issue(self) -> dict[str, Any]:
        self._counter += 1
        access = f"access-{self._counter}"
        self.valid_tokens.add(access)
        body: dict[str, Any] = {"access_token": access, "token_type": "bearer"}
        if self.expires_in is not None:
            body["expires_in"] = self.expires_in
        if self.issue_refresh_token:
            refresh = f"refresh-{self._counter}"
            self.refresh_tokens.add(refresh)
            body["refresh_token"] = refresh
        return body

    def add_refresh_token(self, token: str) -> None:
        self.refresh_tokens.add(token)

    def revoke(self, token: str) -> None:
        self.valid_tokens.discard(token)

    @property
    def refresh_calls(self) -> int:
        return sum(1 for r in self.token_requests if r.get("grant_type") == "refresh_token")

    @property
    def password_calls(self) -> int:
        return sum(1 for r in self.token_requests if r.get("grant_type") == "password")

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = dict(parse_qsl(request.read().decode()))
        self.token_requests.append(form)
        self.token_request_headers.append(request.headers)
        if self.token_status is not None:
            return httpx.Response(self.token_status, json={"error": "server_error"})

        grant = form.get("grant_type")
        if grant == "password":
            if self.users.get(form.get("username", "")) != form.get("password"):
                return httpx.Response(401, json={"error": "invalid_grant"})
        elif grant == "refresh_token":
            if form.get("refresh_token") not in self.refresh_tokens:
                return httpx.Response(400, json={"error": "invalid_grant"})
        else:
            return httpx.Response(400, json={"error": "unsupported_grant_type"})
        return httpx.Response(200, json=self.issue())

    def _api(self, request: httpx.Request) -> httpx.Response:
        self.api_requests.append(request)
        _, _, token = request.headers.get("Authorization", "").partition(" ")
        if token not in self.valid_tokens:
            return httpx.Response(401, json={"error": "invalid_token"})
        return httpx.Response(200, json={"path": request.url.path, "token": token})


@pytest.fixture
def platform() -> FakePlatform:
    """A fresh fake platform for each test."""
    return FakePlatform()


@pytest.fixture
def config() -> ConnectorConfig:
    """Connector configuration pointing at the fake accounts endpoint."""
    return ConnectorConfig(accounts=ACCOUNTS_URL, client_id="test-client")


# ---------------------------------------------------------------------------
# Directory isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate config and data directories to ``tmp_path``.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME, forces the XDG
    layout, and clears all PLATFORMCLIENT_* environment variables.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("platformclient.config._is_xdg_platform", lambda: True)

    for var in [
        "PLATFORMCLIENT_ACCOUNTS",
        "PLATFORMCLIENT_CLIENT_ID",
        "PLATFORMCLIENT_CLIENT_SECRET",
        "PLATFORMCLIENT_TOKEN_URL",
        "PLATFORMCLIENT_API_TOKEN",
        "PLATFORMCLIENT_USER_AGENT",
        "PLATFORMCLIENT_VERIFY",
        "PLATFORMCLIENT_DEBUG",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; stale references break later tests that redirect them.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless output manager."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()

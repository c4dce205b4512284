"""platformclient -- authenticated HTTP client for the platform REST API.

This package handles everything between "I have credentials" and "I have an
HTTP client that can talk to the API": OAuth2 password and refresh-token
grants, pre-shared API tokens, session persistence across process runs, and
lazy construction of an authenticated, optionally caching, HTTP client.

Typical usage::

    from platformclient import Connector, FileSession

    with Connector(session=FileSession()) as connector:
        connector.log_in("user@example.com", "secret")
        response = connector.get_client().get("https://api.example.com/me")

Modules:
    connector: The :class:`Connector` orchestrating login, logout and teardown.
    session: Key-value session stores (in-memory and file-backed).
    auth: OAuth2 grant strategies and the refreshing ``httpx`` auth provider.
    client: The authenticated :class:`ApiClient` handed to resource code.
    cache: Disk-based response cache for GET requests.
    models: Pydantic models for configuration and access tokens.
    config: XDG-aware directories and configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting used by the CLI.
    app: Typer application and console-script entry point.
"""

__version__ = "0.3.0"

from platformclient.connector import Connector, ConnectorState  # noqa: E402
from platformclient.session import FileSession, Session  # noqa: E402

__all__ = ["Connector", "ConnectorState", "FileSession", "Session", "__version__"]

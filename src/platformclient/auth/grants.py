"""OAuth2 grant strategies for the platform token endpoint.

Two grants are supported:

- :class:`PasswordCredentialsGrant` -- exchanges a username and password
  for tokens (:rfc:`6749` section 4.3).  Used by
  :meth:`~platformclient.connector.Connector.log_in`.
- :class:`RefreshTokenGrant` -- exchanges a refresh token for a new access
  token (:rfc:`6749` section 6).  Used by
  :class:`~platformclient.auth.provider.OAuth2TokenProvider` to refresh
  silently.

Each grant POSTs form data to ``token_url`` through an :class:`httpx.Client`
supplied by the caller, normally one whose ``base_url`` is the accounts
endpoint so that a relative ``token_url`` resolves against it.

Transport failures are not wrapped: ``httpx.HTTPStatusError`` and other
``httpx.HTTPError`` subclasses propagate unchanged.  The single exception is
a 401 on the password grant, which becomes
:class:`~platformclient.exceptions.InvalidCredentialsError`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from platformclient.exceptions import AuthError, InvalidCredentialsError
from platformclient.models import AccessToken

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = (
    "Invalid credentials. Please check your username/password combination"
)


class GrantType(ABC):
    """Base class for grants that obtain an :class:`AccessToken`.

    Args:
        client: HTTP client used for the token request.
        client_id: OAuth2 client identifier, always sent in the form body.
        client_secret: Optional client secret.  When set, the client
            credentials are also sent as HTTP Basic auth.
        token_url: Token endpoint, absolute or relative to the client's
            ``base_url``.
    """

    grant_type: str = ""

    def __init__(
        self,
        client: httpx.Client,
        client_id: str,
        client_secret: Optional[str] = None,
        token_url: str = "/oauth2/token",
    ) -> None:
        self._client = client
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url

    @abstractmethod
    def get_token(self) -> AccessToken:
        """Request a new access token from the token endpoint."""
        ...

    def _grant_data(self) -> dict[str, str]:
        return {"grant_type": self.grant_type, "client_id": self.client_id}

    def _request_token(self, data: dict[str, str]) -> AccessToken:
        """POST *data* to the token endpoint and parse the token response.

        Raises:
            httpx.HTTPStatusError: On any non-2xx response.
            httpx.HTTPError: On network failures.
            AuthError: If the response body is not a usable token response.
        """
        auth: Optional[httpx.BasicAuth] = None
        if self.client_secret:
            auth = httpx.BasicAuth(self.client_id, self.client_secret)

        logger.debug("Requesting token with %s grant", self.grant_type)
        response = self._client.post(
            self.token_url,
            data=data,
            headers={"Accept": "application/json"},
            auth=auth,
        )
        response.raise_for_status()

        try:
            body: Any = response.json()
        except ValueError as exc:
            raise AuthError("Token endpoint returned a non-JSON response") from exc
        if not isinstance(body, dict):
            raise AuthError("Token endpoint returned an unexpected response")
        try:
            return AccessToken.from_token_response(body)
        except ValueError as exc:
            raise AuthError(str(exc)) from exc


class PasswordCredentialsGrant(GrantType):
    """Resource Owner Password Credentials grant.

    Raises :class:`~platformclient.exceptions.InvalidCredentialsError` when
    the token endpoint answers 401.
    """

    grant_type = "password"

    def __init__(
        self,
        client: httpx.Client,
        client_id: str,
        client_secret: Optional[str],
        username: str,
        password: str,
        token_url: str = "/oauth2/token",
    ) -> None:
        super().__init__(client, client_id, client_secret, token_url)
        self.username = username
        self._password = password

    def get_token(self) -> AccessToken:
        data = self._grant_data()
        data["username"] = self.username
        data["password"] = self._password
        try:
            return self._request_token(data)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 401:
                raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE) from None
            raise


class RefreshTokenGrant(GrantType):
    """Refresh Token grant.

    If the token endpoint rotates the refresh token, the grant keeps the
    new one for the next refresh.
    """

    grant_type = "refresh_token"

    def __init__(
        self,
        client: httpx.Client,
        client_id: str,
        client_secret: Optional[str],
        refresh_token: str,
        token_url: str = "/oauth2/token",
    ) -> None:
        super().__init__(client, client_id, client_secret, token_url)
        self.refresh_token = refresh_token

    def get_token(self) -> AccessToken:
        data = self._grant_data()
        data["refresh_token"] = self.refresh_token
        token = self._request_token(data)
        if token.refresh_token:
            self.refresh_token = token.refresh_token
        return token

"""Refreshing OAuth2 auth provider for :mod:`httpx`.

:class:`OAuth2TokenProvider` is an :class:`httpx.Auth` implementation
installed on the API client.  For every outgoing request it:

1. Refreshes the access token first when there is none, or it has
   expired, and a :class:`~platformclient.auth.grants.RefreshTokenGrant`
   is available.
2. Attaches ``Authorization: <type> <token>``.
3. On a 401 response, refreshes once and retries the request once.  A
   second 401 is handed back to the caller unchanged.

Without a refresh grant the provider only ever sends the token it was
given; there is no silent refresh.

See Also:
    :meth:`platformclient.connector.Connector.get_token_provider` -- builds
    the provider from the session.
"""

from __future__ import annotations

import logging
from typing import Generator, Optional

import httpx

from platformclient.auth.grants import RefreshTokenGrant
from platformclient.exceptions import NotLoggedInError
from platformclient.models import AccessToken

logger = logging.getLogger(__name__)


class OAuth2TokenProvider(httpx.Auth):
    """Inject and transparently refresh an OAuth2 access token.

    Args:
        refresh_grant: Grant used to obtain new access tokens.  ``None``
            disables refreshing.

    Example::

        provider = OAuth2TokenProvider()
        provider.set_access_token("tok123", "Bearer")
        client = httpx.Client(auth=provider)
    """

    # Bodies must be buffered so a request can be replayed after a refresh.
    requires_request_body = True

    def __init__(self, refresh_grant: Optional[RefreshTokenGrant] = None) -> None:
        self._refresh_grant = refresh_grant
        self._access_token: Optional[AccessToken] = None

    @property
    def access_token(self) -> Optional[AccessToken]:
        """The current access token, or ``None`` if none has been obtained."""
        return self._access_token

    @property
    def refresh_grant(self) -> Optional[RefreshTokenGrant]:
        return self._refresh_grant

    def set_refresh_grant(self, refresh_grant: Optional[RefreshTokenGrant]) -> None:
        """Replace the refresh grant, e.g. after a new login."""
        self._refresh_grant = refresh_grant

    @property
    def can_refresh(self) -> bool:
        return self._refresh_grant is not None

    def set_access_token(
        self,
        token: str,
        token_type: Optional[str] = None,
        expires: Optional[float] = None,
    ) -> None:
        """Install an existing access token.

        Args:
            token: The access token value.
            token_type: ``Authorization`` scheme; defaults to ``Bearer``.
            expires: Expiry as epoch seconds.  ``None`` or ``0`` means the
                token never expires.
        """
        self._access_token = AccessToken.from_timestamp(token, token_type, expires)

    def refresh(self) -> AccessToken:
        """Obtain a new access token with the refresh grant.

        Raises:
            NotLoggedInError: If no refresh grant is available.
            httpx.HTTPError: If the token request fails.
        """
        if self._refresh_grant is None:
            raise NotLoggedInError("No refresh token available")
        logger.debug("Refreshing access token")
        self._access_token = self._refresh_grant.get_token()
        return self._access_token

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        refreshed = False
        if self.can_refresh and (
            self._access_token is None or self._access_token.is_expired()
        ):
            self.refresh()
            refreshed = True

        self._apply(request)
        response = yield request

        if response.status_code == 401 and self.can_refresh and not refreshed:
            logger.debug("Got 401 for %s %s, retrying after refresh", request.method, request.url)
            self.refresh()
            self._apply(request)
            yield request

    def _apply(self, request: httpx.Request) -> None:
        if self._access_token is not None:
            request.headers["Authorization"] = self._access_token.authorization

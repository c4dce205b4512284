"""Connector -- login, logout, token injection and teardown persistence.

The :class:`Connector` is the entry point of platformclient.  It owns the
configuration, holds a reference to a :class:`~platformclient.session.Session`,
and lazily builds the pieces needed to talk to the API:

1. an accounts sub-client (``httpx.Client`` based at the accounts endpoint)
   used by the OAuth2 grants,
2. an :class:`~platformclient.auth.provider.OAuth2TokenProvider` seeded
   from the session,
3. an :class:`~platformclient.client.ApiClient` with that provider
   installed, plus a response cache when caching is enabled.

Each of these is a :func:`functools.cached_property`: built on first use,
never rebuilt.

Teardown happens in :meth:`Connector.close`, which also runs on ``with``
exit.  It writes the provider's *current* access token (which may have been
refreshed mid-session) back into the session and saves it, or wipes the
session after :meth:`Connector.log_out`.  It runs once, whatever the exit
path.

State machine::

    Unauthenticated --log_in / set_api_token / restored token--> Authenticated
    Authenticated   --401 or expiry, refresh grant-------------> Authenticated
    Authenticated   --log_out----------------------------------> LoggedOut
    LoggedOut       --log_in-----------------------------------> Authenticated

Example::

    from platformclient import Connector, FileSession

    with Connector({"client_id": "my-app"}, FileSession()) as connector:
        if not connector.is_logged_in():
            connector.log_in("alice@example.com", "secret")
        me = connector.get_client().get("https://api.example.com/me").json()
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import cached_property
from typing import Any, Mapping, Optional, Union

import httpx

from platformclient.auth.grants import PasswordCredentialsGrant, RefreshTokenGrant
from platformclient.auth.provider import OAuth2TokenProvider
from platformclient.cache import ResponseCache
from platformclient.client import ApiClient
from platformclient.client.api_client import debug_event_hooks
from platformclient.config import build_config
from platformclient.exceptions import NotLoggedInError
from platformclient.models import AccessToken, ConnectorConfig
from platformclient.session import Session

logger = logging.getLogger(__name__)


class ConnectorState(str, Enum):
    """Teardown mode of a :class:`Connector`.

    ``ACTIVE`` persists the current token on close; ``LOGGED_OUT`` wipes the
    session on close.
    """

    ACTIVE = "active"
    LOGGED_OUT = "logged_out"


class Connector:
    """Authenticate against the accounts API and hand out an API client.

    The session is shared by reference: when a session is injected, the
    caller keeps reading and writing the same object.  Use
    ``get_session(copy=True)`` for an isolated snapshot.

    Args:
        config: A :class:`~platformclient.models.ConnectorConfig`, or a
            mapping of its fields.  Unknown keys raise
            :class:`~platformclient.exceptions.ConfigError`.  An
            ``api_token`` is moved into the session and removed from the
            live configuration.
        session: Session to use.  A new in-memory
            :class:`~platformclient.session.Session` when omitted.
        transport: Optional ``httpx`` transport for every client the
            connector builds.
    """

    def __init__(
        self,
        config: Union[ConnectorConfig, Mapping[str, Any], None] = None,
        session: Optional[Session] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not isinstance(config, ConnectorConfig):
            config = build_config(config)
        api_token = config.api_token
        self._config = config.model_copy(update={"api_token": None})
        self._session = session if session is not None else Session()
        self._transport = transport
        self._api_token: Optional[str] = None
        self._state = ConnectorState.ACTIVE
        self._closed = False

        if api_token:
            self.set_api_token(api_token)

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Connector:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Accessors
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> ConnectorConfig:
        """The live configuration.  ``api_token`` is always ``None`` here."""
        return self._config

    @property
    def state(self) -> ConnectorState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._closed

    def get_accounts_endpoint(self) -> str:
        """Return the configured accounts endpoint URL."""
        return self._config.accounts

    def get_session(self, copy: bool = False) -> Session:
        """Return the session.

        Args:
            copy: Return a detached in-memory snapshot instead of the shared
                session object.
        """
        if copy:
            return self._session.copy()
        return self._session

    def is_logged_in(self) -> bool:
        """Return ``True`` if the session holds an access or refresh token."""
        return bool(self._session.get("accessToken") or self._session.get("refreshToken"))

    # ------------------------------------------------------------------ #
    # Authentication
    # ------------------------------------------------------------------ #

    def set_api_token(self, token: str) -> None:
        """Use a pre-shared API token as the access token.

        No grant is performed, and the refresh token and expiry stored in the
        session are left as they are.  The provider treats the token as
        non-expiring, so a stale stored expiry never triggers a refresh that
        would replace it.
        """
        self._api_token = token
        self._session.set("accessToken", token)
        if self._built("_token_provider"):
            self._token_provider.set_access_token(token, self._session.get("tokenType"), None)

    def log_in(self, username: str, password: str, force: bool = False) -> None:
        """Log in with the password grant and save the session.

        Does nothing when already logged in as *username*, unless *force*
        is set.

        Raises:
            InvalidCredentialsError: If the token endpoint answers 401.
            httpx.HTTPError: On any other transport failure, unchanged.
        """
        if not force and self.is_logged_in() and self._session.get("username") == username:
            logger.debug("Already logged in as %s", username)
            return

        with self._new_accounts_client() as client:
            grant = PasswordCredentialsGrant(
                client,
                self._config.client_id,
                self._config.client_secret,
                username,
                password,
                self._config.token_url,
            )
            token = grant.get_token()

        self._session.add(
            {
                "username": username,
                "accessToken": token.token,
                "tokenType": token.type,
                "expires": token.expires_timestamp,
                "refreshToken": token.refresh_token,
            }
        )
        self._state = ConnectorState.ACTIVE
        self._api_token = None
        if self._built("_token_provider"):
            self._reseed_provider(token)
        self._clear_response_cache()
        logger.debug("Logged in as %s", username)
        self._session.save()

    def log_out(self) -> None:
        """Clear and save the session; the session stays empty on close."""
        self._state = ConnectorState.LOGGED_OUT
        self._api_token = None
        self._session.clear()
        self._session.save()
        self._clear_response_cache()
        logger.debug("Logged out")

    # ------------------------------------------------------------------ #
    # Lazily built collaborators
    # ------------------------------------------------------------------ #

    def get_token_provider(self) -> OAuth2TokenProvider:
        """Return the token provider, building it on first call.

        Raises:
            NotLoggedInError: If the session has no access or refresh token.
        """
        return self._token_provider

    def get_client(self) -> ApiClient:
        """Return the authenticated API client, building it on first call.

        Raises:
            NotLoggedInError: If the session has no access or refresh token.
            RuntimeError: If the connector has been closed.
        """
        if self._closed:
            raise RuntimeError("Connector is closed")
        return self._client

    @cached_property
    def _accounts_client(self) -> httpx.Client:
        return self._new_accounts_client()

    @cached_property
    def _token_provider(self) -> OAuth2TokenProvider:
        if not self.is_logged_in():
            raise NotLoggedInError("Not logged in")

        refresh_grant = None
        refresh_token = self._session.get("refreshToken")
        if refresh_token:
            refresh_grant = self._new_refresh_grant(refresh_token)
        provider = OAuth2TokenProvider(refresh_grant)

        access_token = self._session.get("accessToken")
        if access_token:
            expires = self._session.get("expires") or None
            if access_token == self._api_token:
                expires = None
            provider.set_access_token(access_token, self._session.get("tokenType"), expires)
        logger.debug("Built token provider (refresh: %s)", refresh_grant is not None)
        return provider

    @cached_property
    def _client(self) -> ApiClient:
        cache = None
        cache_config = self._config.cache_config
        if cache_config is not None:
            cache = ResponseCache(cache_config)
        return ApiClient(
            auth=self._token_provider,
            user_agent=self._config.user_agent,
            verify=self._config.verify,
            debug=self._config.debug,
            cache=cache,
            transport=self._transport,
        )

    # ------------------------------------------------------------------ #
    # Teardown
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Persist the session and release HTTP resources.

        After :meth:`log_out` the session is cleared and saved.  Otherwise,
        if a token provider was built, its current access token (and expiry,
        refresh token) is written to the session before saving.  Subsequent
        calls do nothing.
        """
        if self._closed:
            return
        self._closed = True
        try:
            if self._state is ConnectorState.LOGGED_OUT:
                self._session.clear()
            elif self._built("_token_provider"):
                self._store_provider_token()
            self._session.save()
        finally:
            if self._built("_client"):
                self._client.close()
            if self._built("_accounts_client"):
                self._accounts_client.close()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _built(self, name: str) -> bool:
        return name in self.__dict__

    def _new_accounts_client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self._config.accounts,
            headers={"User-Agent": self._config.user_agent},
            verify=self._config.verify,
            event_hooks=debug_event_hooks() if self._config.debug else {},
            transport=self._transport,
        )

    def _new_refresh_grant(self, refresh_token: str) -> RefreshTokenGrant:
        return RefreshTokenGrant(
            self._accounts_client,
            self._config.client_id,
            self._config.client_secret,
            refresh_token,
            self._config.token_url,
        )

    def _clear_response_cache(self) -> None:
        if self._built("_client"):
            self._client.clear_cache()

    def _reseed_provider(self, token: AccessToken) -> None:
        provider = self._token_provider
        provider.set_access_token(token.token, token.type, token.expires_timestamp)
        if token.refresh_token:
            provider.set_refresh_grant(self._new_refresh_grant(token.refresh_token))
        else:
            provider.set_refresh_grant(None)

    def _store_provider_token(self) -> None:
        provider = self._token_provider
        token = provider.access_token
        if token is None:
            return
        self._session.set("accessToken", token.token)
        if token.expires_timestamp is not None:
            self._session.set("expires", token.expires_timestamp)
        if provider.refresh_grant is not None:
            self._session.set("refreshToken", provider.refresh_grant.refresh_token)

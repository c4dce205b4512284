"""OAuth2 authentication for platformclient.

This package turns credentials into an authenticated transport:

- :class:`PasswordCredentialsGrant` and :class:`RefreshTokenGrant` --
  token endpoint exchanges built on :class:`GrantType`.
- :class:`OAuth2TokenProvider` -- an :class:`httpx.Auth` that attaches the
  access token to requests and refreshes it on expiry or 401.

Typical usage::

    from platformclient.auth import OAuth2TokenProvider, RefreshTokenGrant

    grant = RefreshTokenGrant(accounts_client, "client-id", None, "refresh-tok")
    provider = OAuth2TokenProvider(grant)
    client = httpx.Client(auth=provider)
"""

from platformclient.auth.grants import (
    GrantType,
    PasswordCredentialsGrant,
    RefreshTokenGrant,
)
from platformclient.auth.provider import OAuth2TokenProvider

__all__ = [
    "GrantType",
    "OAuth2TokenProvider",
    "PasswordCredentialsGrant",
    "RefreshTokenGrant",
]

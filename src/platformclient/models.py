"""Pydantic models shared across platformclient.

This module defines the typed configuration consumed by
:class:`~platformclient.connector.Connector` and the access-token value
object produced by the OAuth2 grants:

* :class:`CacheConfig` -- response cache options.
* :class:`ConnectorConfig` -- every recognised connector option with its
  default value.  Unknown keys are rejected.
* :class:`AccessToken` -- an access token with type, expiry and optional
  refresh token.

All models use Pydantic v2.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from platformclient import __version__

DEFAULT_ACCOUNTS_URL = "https://accounts.platform.sh/api/platform/"
DEFAULT_CLIENT_ID = "platformclient-python"
PROJECT_URL = "https://github.com/platformsh/platformclient-python"


class CacheConfig(BaseModel):
    """Response cache settings.

    When ``directory`` is ``None`` the cache lives in a private temporary
    directory for the lifetime of the client.  Otherwise it persists in
    ``directory`` across runs.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    directory: Optional[str] = Field(
        default=None, description="Cache directory (None = temporary)"
    )
    ttl_seconds: int = Field(default=300, ge=0, description="Cache TTL in seconds")


class ConnectorConfig(BaseModel):
    """Configuration for a :class:`~platformclient.connector.Connector`.

    Every field has a documented default, so ``ConnectorConfig()`` is a
    working configuration for the public accounts endpoint.  Keys that are
    not listed here raise a validation error instead of being ignored.

    Attributes:
        accounts: Base URL of the accounts API (token endpoint host).
        client_id: OAuth2 client identifier.
        client_secret: OAuth2 client secret, if the client is confidential.
        debug: Print every request and response line on stderr.
        verify: Verify TLS certificates.
        user_agent: ``User-Agent`` header sent with every request.
        cache: ``False`` disables caching, ``True`` enables a temporary
            cache, a :class:`CacheConfig` selects cache options.
        token_url: OAuth2 token endpoint, absolute or relative to
            ``accounts``.
        api_token: Pre-shared API token.  Consumed once by the connector.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    accounts: str = Field(default=DEFAULT_ACCOUNTS_URL)
    client_id: str = Field(default=DEFAULT_CLIENT_ID)
    client_secret: Optional[str] = Field(default=None)
    debug: bool = Field(default=False)
    verify: bool = Field(default=True)
    user_agent: str = Field(
        default=f"platformclient-python/{__version__} (+{PROJECT_URL})"
    )
    cache: Union[bool, CacheConfig] = Field(default=False)
    token_url: str = Field(default="/oauth2/token")
    api_token: Optional[str] = Field(default=None, repr=False)

    @property
    def cache_config(self) -> Optional[CacheConfig]:
        """The effective cache options, or ``None`` when caching is disabled."""
        if self.cache is False:
            return None
        if self.cache is True:
            return CacheConfig()
        return self.cache


class AccessToken(BaseModel):
    """An OAuth2 access token.

    Attributes:
        token: The bearer credential sent on each request.
        type: Token type used as the ``Authorization`` scheme.
        expires_at: UTC expiry time.  ``None`` means the token never expires.
        refresh_token: Refresh token issued alongside the access token, if any.
    """

    model_config = ConfigDict(frozen=True)

    token: str
    type: str = "Bearer"
    expires_at: Optional[datetime] = None
    refresh_token: Optional[str] = Field(default=None, repr=False)

    @classmethod
    def from_token_response(cls, data: dict[str, Any]) -> AccessToken:
        """Build a token from an RFC 6749 token endpoint JSON body.

        Raises:
            ValueError: If ``access_token`` is missing from *data*.
        """
        if not data.get("access_token"):
            raise ValueError("Token response missing 'access_token' field")
        expires_at = None
        expires_in = data.get("expires_in")
        if expires_in:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=float(expires_in))
        return cls(
            token=data["access_token"],
            type=data.get("token_type") or "Bearer",
            expires_at=expires_at,
            refresh_token=data.get("refresh_token"),
        )

    @classmethod
    def from_timestamp(
        cls,
        token: str,
        token_type: Optional[str] = None,
        expires: Optional[float] = None,
    ) -> AccessToken:
        """Build a token from session values.

        A falsy *expires* (``None`` or ``0``) means the token never expires.
        """
        expires_at = None
        if expires:
            expires_at = datetime.fromtimestamp(float(expires), tz=timezone.utc)
        return cls(token=token, type=token_type or "Bearer", expires_at=expires_at)

    @property
    def expires_timestamp(self) -> Optional[int]:
        """Expiry as integer epoch seconds, or ``None`` for non-expiring tokens."""
        if self.expires_at is None:
            return None
        return int(self.expires_at.timestamp())

    def is_expired(self, leeway: float = 0.0) -> bool:
        """Return ``True`` if the token expires within *leeway* seconds."""
        if self.expires_at is None:
            return False
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) + timedelta(seconds=leeway) >= expires

    @property
    def authorization(self) -> str:
        """Value for the ``Authorization`` header."""
        return f"{self.type} {self.token}"

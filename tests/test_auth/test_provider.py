"""Tests for the refreshing OAuth2 token provider."""

from __future__ import annotations

import time

import httpx
import pytest

from platformclient.auth.grants import RefreshTokenGrant
from platformclient.auth.provider import OAuth2TokenProvider
from platformclient.exceptions import NotLoggedInError

ACCOUNTS_URL = "https://accounts.example.com/api/platform/"
API = "https://api.example.com/me"


@pytest.fixture
def accounts_client(platform):
    client = httpx.Client(base_url=ACCOUNTS_URL, transport=platform.transport)
    yield client
    client.close()


@pytest.fixture
def refresh_grant(platform, accounts_client) -> RefreshTokenGrant:
    platform.add_refresh_token("refresh-old")
    return RefreshTokenGrant(accounts_client, "test-client", None, "refresh-old")


def _api_client(platform, provider: OAuth2TokenProvider) -> httpx.Client:
    return httpx.Client(auth=provider, transport=platform.transport)


class TestTokenInjection:
    def test_sets_authorization_header(self, platform) -> None:
        platform.valid_tokens.add("tok")
        provider = OAuth2TokenProvider()
        provider.set_access_token("tok", "bearer")

        with _api_client(platform, provider) as client:
            response = client.get(API)

        assert response.status_code == 200
        assert platform.api_requests[0].headers["Authorization"] == "bearer tok"

    def test_default_token_type_is_bearer(self, platform) -> None:
        platform.valid_tokens.add("tok")
        provider = OAuth2TokenProvider()
        provider.set_access_token("tok")

        with _api_client(platform, provider) as client:
            client.get(API)
        assert platform.api_requests[0].headers["Authorization"] == "Bearer tok"

    def test_no_token_no_header(self, platform) -> None:
        provider = OAuth2TokenProvider()
        with _api_client(platform, provider) as client:
            response = client.get(API)
        assert response.status_code == 401
        assert "Authorization" not in platform.api_requests[0].headers

    def test_zero_expiry_means_never_expires(self) -> None:
        provider = OAuth2TokenProvider()
        provider.set_access_token("tok", "bearer", 0)
        assert provider.access_token is not None
        assert provider.access_token.expires_at is None


class TestRefresh:
    def test_refreshes_first_when_no_access_token(self, platform, refresh_grant) -> None:
        provider = OAuth2TokenProvider(refresh_grant)

        with _api_client(platform, provider) as client:
            response = client.get(API)

        assert response.status_code == 200
        assert platform.refresh_calls == 1
        assert len(platform.api_requests) == 1
        assert provider.access_token.token == "access-1"

    def test_refreshes_expired_token_before_request(self, platform, refresh_grant) -> None:
        platform.valid_tokens.add("stale")
        provider = OAuth2TokenProvider(refresh_grant)
        provider.set_access_token("stale", "bearer", time.time() - 60)

        with _api_client(platform, provider) as client:
            client.get(API)

        assert platform.refresh_calls == 1
        assert platform.api_requests[0].headers["Authorization"] == "bearer access-1"

    def test_401_triggers_one_refresh_and_retry(self, platform, refresh_grant) -> None:
        provider = OAuth2TokenProvider(refresh_grant)
        provider.set_access_token("revoked", "bearer")

        with _api_client(platform, provider) as client:
            response = client.get(API)

        assert response.status_code == 200
        assert platform.refresh_calls == 1
        assert [r.headers["Authorization"] for r in platform.api_requests] == [
            "bearer revoked",
            "bearer access-1",
        ]

    def test_second_401_is_returned_without_looping(self, platform, refresh_grant) -> None:
        provider = OAuth2TokenProvider(refresh_grant)
        provider.set_access_token("revoked", "bearer")
        # Tokens issued by the refresh are rejected by the API too.
        original_issue = platform.issue

        def issue_unusable():
            body = original_issue()
            platform.revoke(body["access_token"])
            return body

        platform.issue = issue_unusable

        with _api_client(platform, provider) as client:
            response = client.get(API)

        assert response.status_code == 401
        assert platform.refresh_calls == 1
        assert len(platform.api_requests) == 2

    def test_401_without_refresh_grant_is_returned(self, platform) -> None:
        provider = OAuth2TokenProvider()
        provider.set_access_token("revoked")

        with _api_client(platform, provider) as client:
            response = client.get(API)

        assert response.status_code == 401
        assert platform.token_requests == []

    def test_retry_replays_request_body(self, platform, refresh_grant) -> None:
        provider = OAuth2TokenProvider(refresh_grant)
        provider.set_access_token("revoked")

        with _api_client(platform, provider) as client:
            client.post(API, json={"title": "x"})

        first, second = platform.api_requests
        assert first.content
        assert second.content == first.content

    def test_failed_refresh_propagates(self, platform, accounts_client) -> None:
        grant = RefreshTokenGrant(accounts_client, "test-client", None, "unknown")
        provider = OAuth2TokenProvider(grant)

        with _api_client(platform, provider) as client:
            with pytest.raises(httpx.HTTPStatusError):
                client.get(API)
        assert platform.api_requests == []

    def test_explicit_refresh(self, refresh_grant) -> None:
        provider = OAuth2TokenProvider(refresh_grant)
        token = provider.refresh()
        assert token.token == "access-1"
        assert provider.access_token is token

    def test_explicit_refresh_without_grant(self) -> None:
        provider = OAuth2TokenProvider()
        assert provider.can_refresh is False
        with pytest.raises(NotLoggedInError):
            provider.refresh()

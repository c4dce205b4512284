"""Authenticated HTTP client handed to resource code.

This module provides :class:`ApiClient`, the blocking client returned by
:meth:`~platformclient.connector.Connector.get_client`.  It wraps
:class:`httpx.Client` and layers on:

- **Auth** -- an :class:`~platformclient.auth.provider.OAuth2TokenProvider`
  installed as the ``httpx`` auth, so every request carries the access
  token and is retried once after a refresh on 401.
- **User-Agent and TLS policy** -- from the connector configuration.
- **Debug output** -- request and response lines on stderr.
- **Response caching** -- optional disk-based cache for GET requests via
  :class:`~platformclient.cache.ResponseCache`.

Non-2xx responses raise :class:`httpx.HTTPStatusError` unchanged, with the
request and response attached for inspection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import httpx

from platformclient.output import get_output

if TYPE_CHECKING:
    from platformclient.auth.provider import OAuth2TokenProvider
    from platformclient.cache import ResponseCache

# Headers describing the wire encoding of a body that is stored decoded.
_UNCACHED_HEADERS = ("content-encoding", "content-length", "transfer-encoding")


class ApiClient:
    """Synchronous HTTP client for authenticated API calls.

    Args:
        auth: Token provider installed as the ``httpx`` auth.
        user_agent: ``User-Agent`` header value.
        verify: Verify TLS certificates.
        debug: Print each request and response line on stderr.
        cache: Optional response cache.  Only GET requests with 2xx
            status codes are cached, keyed by the credential they were
            sent with.
        base_url: Optional base URL for relative request paths.
        transport: Optional ``httpx`` transport (used by tests and
            custom network stacks).

    Example::

        client = connector.get_client()
        projects = client.get("https://api.example.com/projects").json()
    """

    def __init__(
        self,
        auth: OAuth2TokenProvider,
        user_agent: str,
        verify: bool = True,
        debug: bool = False,
        cache: Optional[ResponseCache] = None,
        base_url: str = "",
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._auth = auth
        self._cache = cache
        event_hooks = debug_event_hooks() if debug else {}
        self._client: Optional[httpx.Client] = httpx.Client(
            base_url=base_url,
            headers={"User-Agent": user_agent},
            verify=verify,
            auth=auth,
            follow_redirects=True,
            event_hooks=event_hooks,
            transport=transport,
        )

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying transport and the response cache."""
        if self._client is not None:
            self._client.close()
            self._client = None
        if self._cache is not None:
            self._cache.close()

    @property
    def auth(self) -> OAuth2TokenProvider:
        """The token provider shared by every request of this client."""
        return self._auth

    @property
    def is_closed(self) -> bool:
        return self._client is None

    def clear_cache(self) -> None:
        """Drop every cached response, e.g. when the logged-in user changes."""
        if self._cache is not None:
            self._cache.clear()

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        body: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make an authenticated HTTP request.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE).
            url: Absolute URL, or a path relative to ``base_url``.
            params: Query parameters.
            headers: Extra request headers.
            json_body: JSON-serialisable body.
            body: Raw string body.
            data: Form-encoded body.

        Returns:
            The :class:`httpx.Response` from the server or the cache.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response (including a 401
                that survived one refresh-and-retry).
            httpx.HTTPError: On network failures, including a failed
                token refresh.
            RuntimeError: If the client has been closed.
        """
        if self._client is None:
            raise RuntimeError("ApiClient is closed")

        merged_headers: dict[str, str] = {"Accept": "application/json"}
        merged_headers.update(headers or {})
        method = method.upper()
        full_url = str(self._client.build_request(method, url, params=params).url)

        cached = self._cache_get(method, full_url)
        if cached is not None:
            get_output().debug(f"Cache hit: {method} {full_url}")
            return httpx.Response(
                status_code=cached["status_code"],
                headers=cached.get("headers", {}),
                content=cached.get("body", b""),
                request=httpx.Request(method, full_url),
            )

        kwargs: dict[str, Any] = {"params": params, "headers": merged_headers}
        if data is not None:
            kwargs["data"] = data
        elif json_body is not None:
            kwargs["json"] = json_body
        elif body is not None:
            kwargs["content"] = body

        response = self._client.request(method, url, **kwargs)
        response.raise_for_status()
        self._cache_set(method, full_url, response)
        return response

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a GET request.  See :meth:`request`."""
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a POST request.  See :meth:`request`."""
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a PUT request.  See :meth:`request`."""
        return self.request("PUT", url, **kwargs)

    def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a PATCH request.  See :meth:`request`."""
        return self.request("PATCH", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a DELETE request.  See :meth:`request`."""
        return self.request("DELETE", url, **kwargs)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _cache_get(self, method: str, url: str) -> dict | None:
        if self._cache is None:
            return None
        token = self._auth.access_token
        if token is None or token.is_expired():
            return None
        return self._cache.get(method, url, identity=token.authorization)

    def _cache_set(self, method: str, url: str, response: httpx.Response) -> None:
        if self._cache is None:
            return
        identity = response.request.headers.get("Authorization")
        if identity is None:
            return
        headers = {
            k: v for k, v in response.headers.items() if k.lower() not in _UNCACHED_HEADERS
        }
        self._cache.set(
            method,
            url,
            None,
            {"status_code": response.status_code, "headers": headers, "body": response.content},
            identity=identity,
        )


def debug_event_hooks() -> dict[str, list[Any]]:
    """Return ``httpx`` event hooks that trace requests and responses on stderr."""
    return {"request": [_log_request], "response": [_log_response]}


def _log_request(request: httpx.Request) -> None:
    get_output().info(f"> {request.method} {request.url}")


def _log_response(response: httpx.Response) -> None:
    request = response.request
    get_output().info(
        f"< {response.status_code} {response.reason_phrase} ({request.method} {request.url})"
    )

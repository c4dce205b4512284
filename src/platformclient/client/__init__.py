"""HTTP client module for platformclient.

Provides :class:`ApiClient`, a blocking client backed by
:class:`httpx.Client` with OAuth2 auth, User-Agent and TLS policy, debug
output, and optional response caching.  Instances are built and memoized by
:meth:`~platformclient.connector.Connector.get_client`.
"""

from platformclient.client.api_client import ApiClient

__all__ = ["ApiClient"]

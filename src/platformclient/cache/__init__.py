"""Disk-based response caching for platformclient.

This package provides :class:`ResponseCache`, a caching layer that stores
successful HTTP GET responses using :mod:`diskcache`.  Entries are keyed by
HTTP method, URL and query parameters with a configurable TTL.

The cache is consumed by :class:`~platformclient.client.ApiClient` when the
connector's ``cache`` option is enabled.
"""

from platformclient.cache.cache import ResponseCache

__all__ = ["ResponseCache"]

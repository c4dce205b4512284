"""Disk-based response caching for GET requests.

Uses :mod:`diskcache` to store HTTP GET responses with a configurable
time-to-live (TTL).  Only successful (2xx) GET responses are cached; all
other methods and error responses are passed through.

Cache keys are SHA-256 hashes of ``METHOD|URL|sorted_params|identity`` so
that identical requests always resolve to the same entry regardless of
parameter ordering.  The identity is the credential the request was sent
with, so one user never sees another user's cached responses.  Responses
marked ``Cache-Control: no-store`` or ``private`` are never stored.

When :attr:`~platformclient.models.CacheConfig.directory` is ``None`` the
cache lives in a temporary directory that is removed on :meth:`close`.

See Also:
    :class:`~platformclient.models.CacheConfig` -- directory and TTL.
"""

from __future__ import annotations

import hashlib
import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Optional

import diskcache

from platformclient.models import CacheConfig


class ResponseCache:
    """Disk-backed cache for HTTP GET responses.

    Stores serialised response dicts (``status_code``, ``headers``,
    ``body``) in a :class:`diskcache.Cache` directory.

    Args:
        config: Cache directory and TTL.

    Example::

        cache = ResponseCache(CacheConfig(directory="/tmp/api-cache", ttl_seconds=60))
        cache.set("GET", "https://api.example.com/projects", None, {
            "status_code": 200, "headers": {}, "body": b"[]"
        })
        hit = cache.get("GET", "https://api.example.com/projects")
    """

    def __init__(self, config: CacheConfig) -> None:
        self._config = config
        self._temporary = config.directory is None
        if self._temporary:
            self._cache_dir = Path(tempfile.mkdtemp(prefix="platformclient-cache-"))
        else:
            self._cache_dir = Path(config.directory)
        self._cache: Optional[diskcache.Cache] = diskcache.Cache(
            str(self._cache_dir / "responses")
        )

    @property
    def directory(self) -> Path:
        return self._cache_dir / "responses"

    def get(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        identity: Optional[str] = None,
    ) -> Optional[dict]:
        """Look up a cached response.

        Returns:
            A ``dict`` with ``status_code``, ``headers`` and ``body`` keys on
            a hit, or ``None`` on a miss, for non-GET methods, or after
            :meth:`close`.
        """
        if self._cache is None or method.upper() != "GET":
            return None
        return self._cache.get(self._make_key(method, url, params, identity))

    def set(
        self,
        method: str,
        url: str,
        params: Optional[dict],
        response_data: dict,
        identity: Optional[str] = None,
    ) -> None:
        """Store a response.

        Non-GET methods, non-2xx responses and responses whose
        ``Cache-Control`` forbids shared storage are ignored.
        """
        if self._cache is None or method.upper() != "GET":
            return
        status = response_data.get("status_code", 0)
        if not (200 <= status < 300) or not _storable(response_data.get("headers") or {}):
            return
        key = self._make_key(method, url, params, identity)
        self._cache.set(key, response_data, expire=self._config.ttl_seconds or None)

    def invalidate(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        identity: Optional[str] = None,
    ) -> None:
        """Remove a specific cache entry by its key components."""
        if self._cache is None:
            return
        self._cache.delete(self._make_key(method, url, params, identity))

    def clear(self) -> None:
        """Remove all entries from the cache."""
        if self._cache is not None:
            self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return cache statistics (``size``, ``directory``, ``ttl_seconds``, ``temporary``)."""
        if self._cache is None:
            return {"open": False}
        return {
            "open": True,
            "size": len(self._cache),
            "directory": str(self.directory),
            "ttl_seconds": self._config.ttl_seconds,
            "temporary": self._temporary,
        }

    def close(self) -> None:
        """Close the underlying cache; a temporary cache directory is deleted."""
        if self._cache is None:
            return
        self._cache.close()
        self._cache = None
        if self._temporary:
            shutil.rmtree(self._cache_dir, ignore_errors=True)

    def _make_key(
        self,
        method: str,
        url: str,
        params: Optional[dict],
        identity: Optional[str] = None,
    ) -> str:
        """Generate a cache key from method, URL, sorted params and identity."""
        parts = [method.upper(), url]
        if params:
            parts.append(json.dumps(params, sort_keys=True, default=str))
        if identity:
            parts.append(hashlib.sha256(identity.encode()).hexdigest())
        raw = "|".join(parts)
        return hashlib.sha256(raw.encode()).hexdigest()


def _storable(headers: dict) -> bool:
    """Return ``False`` when ``Cache-Control`` forbids storing the response."""
    value = ""
    for key, header in headers.items():
        if key.lower() == "cache-control":
            value = header
            break
    directives = {part.strip().split("=", 1)[0].lower() for part in value.split(",")}
    return not directives & {"no-store", "private"}

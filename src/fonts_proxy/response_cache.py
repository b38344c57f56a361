"""File-based response caching.

Stores proxied responses keyed by request URL with TTL-based expiration.
Directory structure: cache_dir/{sha[:2]}/{sha}.body (+ .meta)
"""

import asyncio
import hashlib
import json
import re
import time
from pathlib import Path
from typing import NamedTuple

from fastapi import Request

MAX_AGE_RE = re.compile(r"max-age=(\d+)")


class CachedResponse(NamedTuple):
    """Cached response data."""

    status_code: int
    headers: dict[str, str]
    content: bytes


def cache_key_for(request: Request) -> str:
    """Cache key for an inbound request, used for both lookup and store."""
    return str(request.url)


def ttl_from_headers(headers: dict[str, str], default: int) -> int:
    """Read the TTL from a Cache-Control max-age directive."""
    for name, value in headers.items():
        if name.lower() == "cache-control":
            match = MAX_AGE_RE.search(value)
            if match:
                return int(match.group(1))
    return default


class ResponseCache:
    """File-based response cache with directory structure: sha[:2]/sha.body"""

    def __init__(self, cache_dir: Path, default_ttl: int = 86400):
        """Initialize response cache.

        Args:
            cache_dir: Root directory for cache files
            default_ttl: TTL in seconds when a response carries no max-age
        """
        self.cache_dir = cache_dir
        self.default_ttl = default_ttl

    def _get_cache_path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_dir / digest[:2] / f"{digest}.body"

    def _get_meta_path(self, cache_path: Path) -> Path:
        return cache_path.with_suffix(".meta")

    def _read(self, key: str) -> CachedResponse | None:
        cache_path = self._get_cache_path(key)
        meta_path = self._get_meta_path(cache_path)

        if not cache_path.exists() or not meta_path.exists():
            return None

        try:
            meta = json.loads(meta_path.read_text())
        except (json.JSONDecodeError, OSError):
            return None  # Treat corrupted metadata as a miss

        age = time.time() - meta.get("cached_at", 0)
        if age > meta.get("ttl", self.default_ttl):
            return None  # Expired

        try:
            content = cache_path.read_bytes()
        except OSError:
            return None

        return CachedResponse(
            status_code=meta.get("status_code", 200),
            headers=meta.get("headers", {}),
            content=content,
        )

    def _write(self, key: str, response: CachedResponse) -> None:
        cache_path = self._get_cache_path(key)
        meta_path = self._get_meta_path(cache_path)

        cache_path.parent.mkdir(parents=True, exist_ok=True)
        cache_path.write_bytes(response.content)

        meta = {
            "key": key,
            "status_code": response.status_code,
            "headers": response.headers,
            "ttl": ttl_from_headers(response.headers, self.default_ttl),
            "cached_at": time.time(),
        }
        meta_path.write_text(json.dumps(meta))

    def _remove(self, key: str) -> bool:
        cache_path = self._get_cache_path(key)
        meta_path = self._get_meta_path(cache_path)

        existed = cache_path.exists()
        cache_path.unlink(missing_ok=True)
        meta_path.unlink(missing_ok=True)
        return existed

    def _remove_all(self) -> int:
        if not self.cache_dir.exists():
            return 0

        count = 0
        for cache_path in list(self.cache_dir.rglob("*.body")):
            cache_path.unlink(missing_ok=True)
            self._get_meta_path(cache_path).unlink(missing_ok=True)
            count += 1
        return count

    async def match(self, key: str) -> CachedResponse | None:
        """Get a response from cache if it exists and has not expired.

        Args:
            key: Cache key (the request URL)

        Returns:
            CachedResponse or None if not found/expired
        """
        return await asyncio.to_thread(self._read, key)

    async def put(self, key: str, response: CachedResponse) -> None:
        """Store a response in cache.

        The TTL is taken from the response's Cache-Control max-age,
        falling back to the default TTL.
        """
        await asyncio.to_thread(self._write, key, response)

    async def delete(self, key: str) -> bool:
        """Delete a single entry. Returns True if it existed."""
        return await asyncio.to_thread(self._remove, key)

    async def clear(self) -> int:
        """Delete every entry. Returns the number of entries removed."""
        return await asyncio.to_thread(self._remove_all)

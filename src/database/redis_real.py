"""
Real Redis-backed cache for production when REDIS_URL is set. Implements the
same interface as src.database.redis (in-memory stub), so workers on several
hosts share one token slot and one pending-submission gate.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import redis


class RedisCache:
    """
    Redis-backed key/value cache with TTL. Values are stored as JSON.
    """

    def __init__(self, url: Optional[str] = None, prefix: str = "relay", client=None) -> None:
        self._client = client or redis.from_url(url, decode_responses=True)
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def get(self, key: str) -> Optional[Any]:
        raw = self._client.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        payload = json.dumps(value, default=str)
        if ttl:
            self._client.setex(self._key(key), int(ttl), payload)
        else:
            self._client.set(self._key(key), payload)

    def add(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """SET NX: write `key` only if it does not exist. True when written."""
        payload = json.dumps(value, default=str)
        written = self._client.set(self._key(key), payload, nx=True, ex=int(ttl) if ttl else None)
        return bool(written)

    def delete(self, key: str) -> None:
        self._client.delete(self._key(key))

    def ping(self) -> bool:
        try:
            return self._client.ping()
        except redis.RedisError:
            return False

"""
Lightweight in-memory RedisCache replacement for local development and tests.

Implements the small key/value-with-TTL interface the relay needs (token
cache, pending-submission gate), so it can run without a real Redis
instance. Entries are process-local.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional, Tuple


class RedisCache:
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        # key -> (value, expires_at or None)
        self._store: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._clock = clock

    def _expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and expires_at <= self._clock()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        stale = [key for key, (_, expires_at) in self._store.items() if self._expired(expires_at)]
        for key in stale:
            del self._store[key]
        return len(stale)

    def get(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._expired(expires_at):
            self._store.pop(key, None)
            return None
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        self._store[key] = (value, expires_at)

    def add(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set `key` only if it is absent (SET NX). True when the key was written."""
        self.purge_expired()
        if key in self._store:
            return False
        self.set(key, value, ttl=ttl)
        return True

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def __len__(self) -> int:
        return len(self._store)

    def ping(self) -> bool:
        """
        Health check calls this; always return True so the API reports the
        cache as "connected" in local/dev mode.
        """
        return True

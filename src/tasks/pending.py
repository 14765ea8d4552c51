"""
Pending-submission gate.

A relay task is identified by the signature of its hook and serialized
arguments. The intake hook acquires the signature before enqueueing (SET NX,
so two API replicas cannot both schedule the same submission) and the task
releases it once it has finished, successfully or for good. The TTL bounds
how long a lost task can block an identical resubmission.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)

PENDING_KEY_PREFIX = "pending"
DEFAULT_PENDING_TTL_SECONDS = 24 * 60 * 60


def task_signature(hook: str, args: Dict[str, Any]) -> str:
    """Stable fingerprint of a hook + its serialized arguments."""
    serialized = json.dumps({"hook": hook, "args": args}, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


class PendingSubmissions:
    def __init__(self, cache, ttl_seconds: int = DEFAULT_PENDING_TTL_SECONDS) -> None:
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    def _key(self, signature: str) -> str:
        return f"{PENDING_KEY_PREFIX}:{signature}"

    def acquire(self, signature: str) -> bool:
        """Mark `signature` as pending. False if an identical task is already pending."""
        return self.cache.add(self._key(signature), 1, ttl=self.ttl_seconds)

    def release(self, signature: str) -> None:
        self.cache.delete(self._key(signature))

    def is_pending(self, signature: str) -> bool:
        return self.cache.get(self._key(signature)) is not None

"""
API key guard for the relay API.

Every route except health checks and the OpenAPI docs requires an
`X-API-KEY` header matching one of the comma separated keys in API_KEYS.
The form framework's webhook is configured with one of these keys.
"""

import hmac
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Header, HTTPException, Request, status

load_dotenv()

logger = logging.getLogger(__name__)

PUBLIC_PATHS = frozenset(
    {
        "/",
        "/health",
        "/docs",
        "/docs/oauth2-redirect",
        "/openapi.json",
        "/redoc",
    }
)


def get_api_keys() -> List[str]:
    return [k.strip() for k in os.getenv("API_KEYS", "").split(",") if k.strip()]


def is_valid_api_key(candidate: Optional[str], valid_keys: List[str]) -> bool:
    candidate = (candidate or "").strip()
    if not candidate:
        return False
    matches = [hmac.compare_digest(candidate, key) for key in valid_keys]
    return any(matches)


async def api_key_protection(
    request: Request = None,  # FastAPI injects it; None for direct calls in tests
    x_api_key: Optional[str] = Header(default=None, alias="X-API-KEY"),
):
    path = request.url.path if request is not None else None
    if path in PUBLIC_PATHS:
        return

    valid_keys = get_api_keys()
    if not valid_keys:
        logger.error("API_KEYS is not configured; rejecting request to %s", path)

    if not is_valid_api_key(x_api_key, valid_keys):
        logger.warning("Rejected request to %s (api key present=%s)", path, bool(x_api_key))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key",
        )

"""
Bearer token lifecycle for the remote Loan API.

The token and its absolute expiry are kept in an injected cache (in-memory or
Redis) so every worker process shares one slot. Concurrent workers may both
find the slot empty and both log in; the last write wins, which is harmless.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from src.error_handler import TransportError
from src.integrations.clients.real_http.loan_api import LoanApiClient, parse_json_body
from src.integrations.contracts.relay import ApiToken

logger = logging.getLogger(__name__)

TOKEN_KEY = "_relay_api_token"
TOKEN_EXPIRY_KEY = "_relay_api_token_expiry"

EXPIRY_BUFFER_SECONDS = 60
MIN_LIFETIME_SECONDS = 60
MAX_LIFETIME_SECONDS = 3 * 24 * 60 * 60


def clamp_lifetime(expires_in: int) -> int:
    return max(MIN_LIFETIME_SECONDS, min(expires_in, MAX_LIFETIME_SECONDS))


class TokenManager:
    def __init__(
        self,
        client: LoanApiClient,
        cache,
        username: str,
        password: str,
        login_endpoint: str,
        *,
        login_timeout_seconds: float = 20.0,
        status_endpoint: Optional[str] = None,
        verify_cached_token: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.cache = cache
        self.username = username
        self.password = password
        self.login_endpoint = login_endpoint
        self.login_timeout_seconds = login_timeout_seconds
        self.status_endpoint = status_endpoint
        self.verify_cached_token = verify_cached_token
        self._clock = clock

    def cached(self) -> Optional[ApiToken]:
        token = self.cache.get(TOKEN_KEY)
        expires_at = self.cache.get(TOKEN_EXPIRY_KEY)
        if not token or not expires_at:
            return None
        return ApiToken(value=token, expires_at=float(expires_at))

    async def get_token(self) -> Optional[str]:
        """Return a usable bearer token, logging in when needed. None on failure."""
        cached = self.cached()
        if cached and cached.expires_at > self._clock() + EXPIRY_BUFFER_SECONDS:
            if not self.verify_cached_token or await self.verify_token(cached.value):
                logger.debug("Using existing valid API token from cache.")
                return cached.value
            logger.info("Cached API token failed status verification. Fetching a new token.")

        logger.info("No valid token found or token expired. Attempting API login.")
        return await self.login()

    async def login(self) -> Optional[str]:
        """
        Log in and cache the returned token.

        Never raises: any failure clears the cache and returns None.
        """
        if not self.username or not self.password:
            logger.error("API username or password not configured.")
            self.invalidate()
            return None

        try:
            response = await self.client.request(
                "POST",
                self.login_endpoint,
                body={"email": self.username, "password": self.password},
                timeout=self.login_timeout_seconds,
            )
        except TransportError as e:
            logger.error("Transport error during login API call: %s", e)
            self.invalidate()
            return None

        data = parse_json_body(response)
        if (
            response.status_code == 200
            and isinstance(data, dict)
            and data.get("token")
            and data.get("expires_in") is not None
        ):
            try:
                expires_in = clamp_lifetime(int(data["expires_in"]))
            except (TypeError, ValueError):
                logger.error("Login response has a non-numeric expires_in: %r", data["expires_in"])
                self.invalidate()
                return None

            token = str(data["token"])
            expires_at = self._clock() + expires_in
            self.cache.set(TOKEN_KEY, token, ttl=expires_in)
            self.cache.set(TOKEN_EXPIRY_KEY, expires_at, ttl=expires_in)
            logger.info("Login successful. New token stored. Expires in: %s seconds.", expires_in)
            return token

        logger.error("Login failed. Code: %s", response.status_code)
        self.invalidate()
        return None

    def invalidate(self) -> None:
        self.cache.delete(TOKEN_KEY)
        self.cache.delete(TOKEN_EXPIRY_KEY)

    async def verify_token(self, token: str) -> bool:
        """Check a token against the status endpoint; True when none is configured."""
        if not self.status_endpoint:
            return True
        try:
            response = await self.client.request("GET", self.status_endpoint, token=token, timeout=15)
        except TransportError as e:
            logger.warning("Transport error during token status check: %s", e)
            return False
        logger.info("Token status check response code: %s", response.status_code)
        return 200 <= response.status_code < 300

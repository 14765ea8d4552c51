"""
Real Loan API HTTP Client.

Purpose:
- Sends mapped customer / loan-application payloads to the remote REST API
- Classifies every answer into Success, TerminalFailure or RetryableFailure

Implementation notes:
- Use httpx for async requests (one short-lived AsyncClient per call)
- A transport can be injected; tests and INTEGRATIONS_MODE=mock pass the
  MockTransport from clients/mocks/loan_api.py
- Never log the bearer token or credentials

Important:
- Keep this module as the ONLY place where relay HTTP calls are made.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx

from src.error_handler import AuthError, RemoteRejection, TransportError
from src.integrations.contracts.relay import Outcome, RetryableFailure, Success, TerminalFailure

if TYPE_CHECKING:
    from src.integrations.clients.real_http.token_manager import TokenManager

logger = logging.getLogger(__name__)


def join_url(base_url: str, path: str) -> str:
    return base_url.rstrip("/") + "/" + path.lstrip("/")


def parse_json_body(response: httpx.Response) -> Optional[Any]:
    """Decoded JSON body, {} for an empty body, None when the body is not JSON."""
    if not response.content:
        return {}
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError):
        return None


class LoanApiClient:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def url_for(self, path: str) -> str:
        return join_url(self.base_url, path)

    async def request(
        self,
        method: str,
        path: str,
        *,
        body: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """
        Issue one request and return the raw response, whatever its status.

        Raises:
            TransportError: DNS failure, refused connection, timeout.
        """
        headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = self.url_for(path)
        try:
            async with httpx.AsyncClient(
                timeout=timeout or self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.request(method, url, json=body, headers=headers)
        except httpx.RequestError as e:
            logger.error("Transport error during %s %s: %s", method, url, e)
            raise TransportError(f"Transport error during {method} {url}: {e}") from e

        logger.info("%s %s -> %s", method, url, response.status_code)
        return response


class DeliveryEngine:
    """Sends a mapped payload and turns the HTTP answer into an outcome."""

    def __init__(self, client: LoanApiClient, token_manager: "TokenManager") -> None:
        self.client = client
        self.token_manager = token_manager

    async def send(
        self,
        method: str,
        path: str,
        token: str,
        body: Dict[str, Any],
        *,
        is_update: bool = False,
    ) -> Outcome:
        logger.debug("Payload for %s %s: %s", method, path, json.dumps(body, ensure_ascii=False, indent=2))

        try:
            response = await self.client.request(method, path, body=body, token=token)
        except TransportError as e:
            return RetryableFailure(reason=str(e), error=e)

        code = response.status_code
        if 200 <= code < 300:
            data = parse_json_body(response)
            logger.info("Success: %s %s accepted by remote API (HTTP %s)", method, path, code)
            return Success(status_code=code, data=data if isinstance(data, dict) else {})

        if code == 401:
            logger.warning("API returned 401 Unauthorized for %s %s. Invalidating token.", method, path)
            self.token_manager.invalidate()
            error = AuthError("API returned 401 Unauthorized", status_code=code)
            return RetryableFailure(reason=str(error), error=error)

        if code == 404 and is_update:
            logger.error("Update target not found (HTTP 404) for %s %s. Body: %s", method, path, response.text)
            return TerminalFailure(reason="Update target not found", status_code=code)

        if code == 422:
            logger.error("API returned 422 Unprocessable Entity (validation error). Details: %s", response.text)
            return TerminalFailure(reason="Remote validation failed", status_code=code)

        logger.error("API returned HTTP status %s for %s %s. Body: %s", code, method, path, response.text)
        error = RemoteRejection(f"API call failed with HTTP status {code}", status_code=code)
        return RetryableFailure(reason=str(error), error=error)

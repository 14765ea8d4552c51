"""Existence check: does the remote API already know this national ID?"""

from __future__ import annotations

import logging

from src.error_handler import AuthError, IntegrityError, RemoteRejection
from src.integrations.clients.real_http.loan_api import LoanApiClient, parse_json_body
from src.integrations.clients.real_http.token_manager import TokenManager
from src.integrations.contracts.relay import ExistenceResult

logger = logging.getLogger(__name__)


class ExistenceResolver:
    def __init__(self, client: LoanApiClient, token_manager: TokenManager, check_endpoint: str) -> None:
        self.client = client
        self.token_manager = token_manager
        self.check_endpoint = check_endpoint

    async def check_exists(self, nid: str, token: str) -> ExistenceResult:
        """
        POST the cleaned NID to the check endpoint.

        Raises:
            AuthError: 401; the cached token is invalidated first.
            RemoteRejection: any other non-2xx, or a body that is not JSON.
            IntegrityError: the API says the customer exists but sends no id.
            TransportError: propagated from the client.
        """
        response = await self.client.request("POST", self.check_endpoint, body={"NID": nid}, token=token)
        code = response.status_code

        if code == 401:
            logger.warning("Existence check returned 401 Unauthorized. Invalidating token.")
            self.token_manager.invalidate()
            raise AuthError("Existence check rejected the API token", status_code=code)

        if not 200 <= code < 300:
            raise RemoteRejection(f"Existence check failed with HTTP status {code}", status_code=code)

        data = parse_json_body(response)
        if data is None:
            raise RemoteRejection("Existence check returned malformed JSON", status_code=code)

        if isinstance(data, dict) and data.get("exists") is True:
            customer = data.get("customer")
            remote_id = customer.get("id") if isinstance(customer, dict) else None
            if remote_id is None:
                raise IntegrityError(
                    "Existence check reported an existing customer without an id",
                    status_code=code,
                    payload=data,
                )
            try:
                remote_id = int(remote_id)
            except (TypeError, ValueError) as e:
                raise IntegrityError(
                    f"Existence check returned a non-numeric customer id: {remote_id!r}",
                    status_code=code,
                    payload=data,
                ) from e
            logger.info("Customer already exists remotely (id=%s).", remote_id)
            return ExistenceResult(exists=True, remote_id=remote_id)

        logger.info("Customer does not exist remotely.")
        return ExistenceResult(exists=False)

"""
Relay Service for the remote Loan API

This module runs the per-form-type delivery pipelines:
- full customer: map -> token -> existence check -> create or update
- simple loan: validate -> token -> ensure customer exists -> loan application

Every pipeline returns an Outcome. Relay errors raised along the way are
classified by ErrorHandler; anything unexpected propagates to the caller.
"""

import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from src.error_handler import AuthError, ErrorHandler, IntegrityError, RelayError, SubmissionValidationError
from src.integrations.clients.real_http.existence import ExistenceResolver
from src.integrations.clients.real_http.loan_api import DeliveryEngine, LoanApiClient
from src.integrations.clients.real_http.token_manager import TokenManager
from src.integrations.contracts.relay import FormType, Outcome, Success
from src.integrations.policy.payload_mapper import (
    build_customer_payload,
    build_loan_application_payload,
    build_simple_customer_payload,
)
from src.utils.relay_config_loader import RelayConfig

logger = logging.getLogger(__name__)

_BASE_REQUIREMENTS = ("base_url", "login_endpoint", "check_endpoint", "username", "password")


class RelayService:
    def __init__(
        self,
        config: RelayConfig,
        cache,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
        error_handler: Optional[ErrorHandler] = None,
    ):
        api = config.api
        self.config = config
        self.client = LoanApiClient(api.base_url or "", timeout_seconds=api.timeout_seconds, transport=transport)
        self.token_manager = TokenManager(
            self.client,
            cache,
            username=api.username or "",
            password=api.password or "",
            login_endpoint=api.login_endpoint or "",
            login_timeout_seconds=api.login_timeout_seconds,
            status_endpoint=api.status_endpoint,
            verify_cached_token=api.verify_cached_token,
            clock=clock,
        )
        self.resolver = ExistenceResolver(self.client, self.token_manager, api.check_endpoint or "")
        self.delivery = DeliveryEngine(self.client, self.token_manager)
        self.error_handler = error_handler or ErrorHandler()

    async def relay(self, form_type: FormType, data: Mapping[str, Any]) -> Outcome:
        if form_type is FormType.FULL_CUSTOMER:
            return await self.relay_full_customer(data)
        return await self.relay_simple_loan(data)

    async def _token(self) -> str:
        token = await self.token_manager.get_token()
        if not token:
            raise AuthError("Failed to obtain API token")
        return token

    # ------------------------------------------------------------------
    # Full customer
    # ------------------------------------------------------------------

    async def relay_full_customer(self, data: Mapping[str, Any]) -> Outcome:
        context = {"form_type": FormType.FULL_CUSTOMER.value}
        try:
            self.config.require(*_BASE_REQUIREMENTS, "create_endpoint", "update_endpoint")

            payload = build_customer_payload(data)
            nid = payload.get("customer", {}).get("NID")
            if not nid:
                logger.error("Original NID present in submission: %s", bool(data.get("cedula")))
                raise SubmissionValidationError("Customer NID (cedula) is missing, empty or invalid")

            token = await self._token()
            existence = await self.resolver.check_exists(nid, token)
        except RelayError as e:
            return self.error_handler.to_outcome(e, context)

        if existence.exists:
            path = f"{self.config.api.update_endpoint.rstrip('/')}/{existence.remote_id}"
            logger.info("Customer exists (id=%s). Sending update.", existence.remote_id)
            return await self.delivery.send("PUT", path, token, payload, is_update=True)

        logger.info("Customer not found remotely. Sending create.")
        return await self.delivery.send("POST", self.config.api.create_endpoint, token, payload)

    # ------------------------------------------------------------------
    # Simple loan
    # ------------------------------------------------------------------

    async def relay_simple_loan(self, data: Mapping[str, Any]) -> Outcome:
        context = {"form_type": FormType.SIMPLE_LOAN.value}
        try:
            self.config.require(*_BASE_REQUIREMENTS, "simple_create_endpoint", "loan_create_endpoint")

            customer_payload = build_simple_customer_payload(data)
            nid = customer_payload.get("NID")
            if not nid:
                raise SubmissionValidationError("Applicant NID (cedula) is missing, empty or invalid")

            loan_payload = build_loan_application_payload(data, customer_id=None)
            details = loan_payload.get("details", {})
            for field_name in ("amount", "term"):
                if not details.get(field_name):
                    raise SubmissionValidationError(f"Loan {field_name} is missing or zero")

            token = await self._token()
            existence = await self.resolver.check_exists(nid, token)
            if existence.exists:
                customer_id = existence.remote_id
            else:
                outcome = await self.delivery.send(
                    "POST", self.config.api.simple_create_endpoint, token, customer_payload
                )
                if not isinstance(outcome, Success):
                    return outcome
                customer_id = _created_customer_id(outcome.data)
        except RelayError as e:
            return self.error_handler.to_outcome(e, context)

        loan_payload["customer_id"] = customer_id
        logger.info("Sending loan application for customer %s.", customer_id)
        return await self.delivery.send("POST", self.config.api.loan_create_endpoint, token, loan_payload)


def _created_customer_id(data: Dict[str, Any]) -> int:
    for container in (data.get("customer"), data.get("data"), data):
        if isinstance(container, dict) and container.get("id") is not None:
            try:
                return int(container["id"])
            except (TypeError, ValueError):
                break
    raise IntegrityError("Customer create response did not include a usable id", payload=data)

"""
Mock Loan API.

Purpose:
- Provides a fake remote Loan API for development/testing
- Does NOT make any network calls: it is an httpx MockTransport handler
- Keeps customers and loan applications in memory and records every request

Usage:
- Wired in src/api/main.py and scripts/run_worker.py when INTEGRATIONS_MODE=mock
- Used by the test-suite to drive end-to-end relay scenarios

Behavior guidelines:
- /login returns a token and expires_in for any non-empty credentials
- /customers/check-nid answers from the in-memory customer table
- queue_response(...) forces the next answer for a method/path, e.g. a 401 or 503

Swap:
Pass no transport to LoanApiClient to talk to the real API.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

import httpx

logger = logging.getLogger(__name__)

_CUSTOMER_PATH_RE = re.compile(r"/customers/(\d+)$")


@dataclass
class RecordedRequest:
    method: str
    path: str
    body: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)


class MockLoanApi:
    def __init__(self, expires_in: int = 3600, customers: Optional[Dict[str, int]] = None) -> None:
        self.expires_in = expires_in
        self.customers: Dict[str, int] = dict(customers or {})   # NID -> remote id
        self.loan_applications: List[Dict[str, Any]] = []
        self.requests: List[RecordedRequest] = []
        self.valid_tokens: set = set()
        self._next_id = 1000
        self._forced: Dict[Tuple[str, str], List[httpx.Response]] = {}

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def queue_response(self, method: str, path_suffix: str, status_code: int, body: Any = None) -> None:
        """Force the next `method` request whose path ends with `path_suffix`."""
        content = b"" if body is None else (body if isinstance(body, bytes) else json.dumps(body).encode())
        response = httpx.Response(status_code, content=content, headers={"Content-Type": "application/json"})
        self._forced.setdefault((method.upper(), path_suffix), []).append(response)

    def calls(self, method: Optional[str] = None, path_suffix: Optional[str] = None) -> List[RecordedRequest]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method.upper())
            and (path_suffix is None or r.path.endswith(path_suffix))
        ]

    # ------------------------------------------------------------------
    # Transport handler
    # ------------------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body: Dict[str, Any] = {}
        if request.content:
            try:
                body = json.loads(request.content)
            except json.JSONDecodeError:
                body = {}
        self.requests.append(
            RecordedRequest(method=request.method, path=path, body=body, headers=dict(request.headers))
        )

        forced = self._pop_forced(request.method, path)
        if forced is not None:
            return forced

        if path.endswith("/login"):
            return self._login(body)

        if not self._authorized(request):
            return httpx.Response(401, json={"message": "Unauthenticated."})

        if path.endswith("/customers/check-nid"):
            return self._check_nid(body)
        if request.method == "POST" and path.endswith("/simple-customers"):
            return self._create_customer(body.get("NID"), body)
        if request.method == "POST" and path.endswith("/customers"):
            customer = body.get("customer") or {}
            return self._create_customer(customer.get("NID"), body)
        if request.method == "PUT":
            match = _CUSTOMER_PATH_RE.search(path)
            if match and int(match.group(1)) in self.customers.values():
                return httpx.Response(200, json={"customer": {"id": int(match.group(1))}})
            return httpx.Response(404, json={"message": "Customer not found."})
        if request.method == "POST" and path.endswith("/loan-applications"):
            return self._create_loan_application(body)

        return httpx.Response(404, json={"message": "Not found."})

    def _pop_forced(self, method: str, path: str) -> Optional[httpx.Response]:
        for (forced_method, suffix), responses in self._forced.items():
            if forced_method == method and path.endswith(suffix) and responses:
                return responses.pop(0)
        return None

    def _authorized(self, request: httpx.Request) -> bool:
        header = request.headers.get("Authorization", "")
        return header.startswith("Bearer ") and header[len("Bearer "):] in self.valid_tokens

    def _login(self, body: Dict[str, Any]) -> httpx.Response:
        if not body.get("email") or not body.get("password"):
            return httpx.Response(422, json={"message": "The email field is required."})
        token = f"mock-token-{uuid4().hex[:12]}"
        self.valid_tokens.add(token)
        return httpx.Response(200, json={"token": token, "expires_in": self.expires_in})

    def _check_nid(self, body: Dict[str, Any]) -> httpx.Response:
        nid = str(body.get("NID") or "")
        if nid in self.customers:
            return httpx.Response(200, json={"exists": True, "customer": {"id": self.customers[nid]}})
        return httpx.Response(200, json={"exists": False})

    def _create_customer(self, nid: Optional[str], body: Dict[str, Any]) -> httpx.Response:
        if not nid:
            return httpx.Response(422, json={"errors": {"NID": ["The NID field is required."]}})
        if nid in self.customers:
            return httpx.Response(422, json={"errors": {"NID": ["The NID has already been taken."]}})
        self._next_id += 1
        self.customers[str(nid)] = self._next_id
        logger.info("Mock Loan API created customer %s", self._next_id)
        return httpx.Response(201, json={"customer": {"id": self._next_id}})

    def _create_loan_application(self, body: Dict[str, Any]) -> httpx.Response:
        details = body.get("details") or {}
        if not body.get("customer_id") or not details.get("amount") or not details.get("term"):
            return httpx.Response(422, json={"message": "customer_id, amount and term are required."})
        self._next_id += 1
        application = dict(body, id=self._next_id)
        self.loan_applications.append(application)
        return httpx.Response(201, json={"loan_application": {"id": self._next_id}})

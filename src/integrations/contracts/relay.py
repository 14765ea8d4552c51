"""
Relay contracts.

Shared types passed between the intake hook, the task queue, the submission
router and the delivery pipelines:
- FormType / RelayTask: what gets serialized into the queue
- ApiToken / ExistenceResult: transient values produced by the remote API
- Success / TerminalFailure / RetryableFailure: the outcome of one delivery

Only a RetryableFailure is ever turned back into an exception (by the
submission router) so that Celery applies its retry policy.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


RELAY_TASK_HOOK = "relay.process_submission"


class FormType(str, Enum):
    FULL_CUSTOMER = "full_customer"
    SIMPLE_LOAN = "simple_loan"


class EnvelopeError(ValueError):
    """Raised when a queued task envelope cannot be decoded."""


@dataclass
class RelayTask:
    form_type: FormType
    raw_submission: Dict[str, Any] = field(default_factory=dict)

    def to_args(self) -> Dict[str, Any]:
        """Serialize into the canonical queue envelope."""
        return {
            "form_type": self.form_type.value,
            "form_submission_data": dict(self.raw_submission),
        }

    @classmethod
    def from_args(cls, args: Any) -> "RelayTask":
        """
        Decode a queue envelope (dict or JSON string).

        Raises:
            EnvelopeError: if the envelope is malformed, misses a required
                field, or names an unknown form type.
        """
        if isinstance(args, (str, bytes)):
            try:
                args = json.loads(args)
            except json.JSONDecodeError as e:
                raise EnvelopeError(f"Envelope is not valid JSON: {e}") from e

        if not isinstance(args, dict):
            raise EnvelopeError(f"Envelope must be an object, got {type(args).__name__}")

        raw_type = args.get("form_type")
        data = args.get("form_submission_data")
        if not raw_type:
            raise EnvelopeError("Envelope is missing 'form_type'")
        if not isinstance(data, dict) or not data:
            raise EnvelopeError("Envelope is missing 'form_submission_data' or it is empty")

        try:
            form_type = FormType(str(raw_type))
        except ValueError as e:
            raise EnvelopeError(f"Unknown form type '{raw_type}'") from e

        return cls(form_type=form_type, raw_submission=data)


@dataclass
class ApiToken:
    value: str
    expires_at: float                    # unix timestamp


@dataclass
class ExistenceResult:
    exists: bool
    remote_id: Optional[int] = None


# ---------------------------------------------------------------------------
# Delivery outcomes
# ---------------------------------------------------------------------------

@dataclass
class Success:
    status_code: int
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TerminalFailure:
    reason: str
    status_code: Optional[int] = None
    error: Optional[Exception] = None


@dataclass
class RetryableFailure:
    reason: str
    error: Exception


Outcome = Union[Success, TerminalFailure, RetryableFailure]

"""
Integrations layer.
This package contains all code used to communicate with the remote Loan API:
- authentication (bearer token acquisition and caching)
- customer existence lookups by national id
- customer create/update and loan application delivery

Key rule:
- Task handlers MUST NOT call the Loan API directly.
- Pipelines (src/integrations/policy) call integration clients (under src/integrations/clients).
- We use the MOCK Loan API during development and tests and the REAL_HTTP client otherwise.

Switching implementations:
- The selection of mock vs real clients should happen in ONE place (src/tasks/runtime.py).
"""

from .contracts.relay import (
    RELAY_TASK_HOOK,
    ApiToken,
    EnvelopeError,
    ExistenceResult,
    FormType,
    Outcome,
    RelayTask,
    RetryableFailure,
    Success,
    TerminalFailure,
)

__all__ = [
    "RELAY_TASK_HOOK", "ApiToken", "EnvelopeError", "ExistenceResult",
    "FormType", "Outcome", "RelayTask",
    # outcomes
    "RetryableFailure", "Success", "TerminalFailure",
]

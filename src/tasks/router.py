"""
Submission router: the body of the Celery relay task.

Decodes the task envelope, dispatches to the pipeline registered for its form
type and translates the pipeline outcome for Celery:
- Success / TerminalFailure: return normally (the task is done)
- RetryableFailure: re-raise the original error so Celery retries

Malformed envelopes and unknown form types are terminal: they will never
succeed, so they are logged and not retried.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping

from src.integrations.contracts.relay import (
    EnvelopeError,
    FormType,
    Outcome,
    RelayTask,
    RetryableFailure,
    Success,
    TerminalFailure,
)

logger = logging.getLogger(__name__)

Pipeline = Callable[[Mapping[str, Any]], Awaitable[Outcome]]


class SubmissionRouter:
    def __init__(self, pipelines: Dict[FormType, Pipeline]):
        self.pipelines = dict(pipelines)

    @classmethod
    def from_service(cls, relay_service) -> "SubmissionRouter":
        return cls(
            {
                FormType.FULL_CUSTOMER: relay_service.relay_full_customer,
                FormType.SIMPLE_LOAN: relay_service.relay_simple_loan,
            }
        )

    async def handle(self, args: Any) -> Outcome:
        logger.info("Processing relay task...")
        try:
            task = RelayTask.from_args(args)
        except EnvelopeError as e:
            logger.error("Invalid relay task envelope (not retried): %s", e)
            return TerminalFailure(reason=str(e))

        pipeline = self.pipelines.get(task.form_type)
        if pipeline is None:
            logger.error("No pipeline registered for form type '%s' (not retried)", task.form_type.value)
            return TerminalFailure(reason=f"No pipeline for form type '{task.form_type.value}'")

        outcome = await pipeline(task.raw_submission)

        if isinstance(outcome, RetryableFailure):
            logger.warning("Relay of %s submission will be retried: %s", task.form_type.value, outcome.reason)
            raise outcome.error
        if isinstance(outcome, TerminalFailure):
            logger.error("Relay of %s submission failed terminally: %s", task.form_type.value, outcome.reason)
        elif isinstance(outcome, Success):
            logger.info("Relay of %s submission succeeded (HTTP %s)", task.form_type.value, outcome.status_code)
        return outcome

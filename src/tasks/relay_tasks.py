"""
Celery task that delivers one form submission to the Loan API.

The router raises only for retryable failures; Celery then retries with
exponential backoff (60 s, 120 s, ... capped at 3600 s) until the configured
number of attempts is used up. The pending gate taken by the intake hook is
released once the task is finished for good.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from src.integrations.contracts.relay import RELAY_TASK_HOOK, Success
from src.tasks.celery_app import celery_app
from src.tasks.pending import PendingSubmissions
from src.tasks.router import SubmissionRouter

logger = logging.getLogger(__name__)

RETRY_BACKOFF_SECONDS = 60
RETRY_BACKOFF_MAX_SECONDS = 3600

# Set by bind_runtime(); a worker process without a bound runtime builds one
# from the relay config on first use.
_router: Optional[SubmissionRouter] = None
_pending: Optional[PendingSubmissions] = None


def bind_runtime(runtime) -> None:
    global _router, _pending
    _router = runtime.router
    _pending = runtime.pending
    process_submission.max_retries = max(runtime.config.queue.max_attempts - 1, 0)


def _bound_router() -> SubmissionRouter:
    if _router is None:
        from src.tasks.runtime import build_runtime
        from src.utils.relay_config_loader import load_relay_config

        logger.info("No relay runtime bound to this process; building one from config")
        build_runtime(load_relay_config())
    return _router


def _release(signature: Optional[str]) -> None:
    if signature and _pending is not None:
        _pending.release(signature)


@celery_app.task(
    bind=True,
    name=RELAY_TASK_HOOK,
    max_retries=4,
    default_retry_delay=RETRY_BACKOFF_SECONDS,
    autoretry_for=(Exception,),
    retry_backoff=RETRY_BACKOFF_SECONDS,
    retry_backoff_max=RETRY_BACKOFF_MAX_SECONDS,
    retry_jitter=False,
)
def process_submission(self, args: Dict[str, Any], signature: Optional[str] = None) -> Dict[str, Any]:
    router = _bound_router()
    attempt = self.request.retries + 1
    logger.info("Running relay task %s, attempt %d", self.request.id, attempt)

    try:
        outcome = asyncio.run(router.handle(args))
    except Exception as e:
        if self.request.retries >= self.max_retries:
            logger.error("Relay task %s failed permanently after %d attempts: %s", self.request.id, attempt, e)
            _release(signature)
        else:
            logger.warning("Relay task %s attempt %d failed, will retry: %s", self.request.id, attempt, e)
        raise

    _release(signature)
    if isinstance(outcome, Success):
        return {"outcome": "success", "status_code": outcome.status_code}
    return {"outcome": "terminal_failure", "reason": outcome.reason}

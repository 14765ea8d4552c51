"""
Runtime wiring for the relay.

The selection of in-memory vs Redis storage, broker vs eager Celery and mock
vs real Loan API happens here only; both the FastAPI app and
scripts/run_worker.py build their components through these helpers.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import httpx

from src.integrations.policy.relay_service import RelayService
from src.tasks.celery_app import configure_celery, select_broker_url
from src.tasks.intake import Dispatcher, IntakeHook
from src.tasks.pending import PendingSubmissions
from src.tasks.router import SubmissionRouter
from src.utils.relay_config_loader import RelayConfig

logger = logging.getLogger(__name__)


def should_use_mock_api() -> bool:
    mode = os.getenv("INTEGRATIONS_MODE", "").strip().lower()
    return mode in {"mock", "test"}


def select_cache():
    if os.getenv("REDIS_URL"):
        from src.database.redis_real import RedisCache

        return RedisCache(url=os.environ["REDIS_URL"])

    from src.database.redis import RedisCache

    return RedisCache()


def select_transport() -> Optional[httpx.AsyncBaseTransport]:
    if not should_use_mock_api():
        return None

    from src.integrations.clients.mocks.loan_api import MockLoanApi

    logger.warning("INTEGRATIONS_MODE=mock: relay deliveries go to the in-memory mock Loan API")
    return MockLoanApi().transport()


@dataclass
class RelayRuntime:
    config: RelayConfig
    cache: object
    pending: PendingSubmissions
    service: RelayService
    router: SubmissionRouter
    intake: IntakeHook
    uses_broker: bool


def build_runtime(
    config: RelayConfig,
    cache=None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    dispatch: Optional[Dispatcher] = None,
) -> RelayRuntime:
    from src.tasks.relay_tasks import bind_runtime

    cache = cache if cache is not None else select_cache()
    transport = transport if transport is not None else select_transport()

    uses_broker = configure_celery(select_broker_url())
    if not uses_broker:
        logger.warning("No CELERY_BROKER_URL or REDIS_URL set: relay tasks run eagerly in the calling process")

    pending = PendingSubmissions(cache, ttl_seconds=config.queue.pending_ttl_seconds)
    service = RelayService(config, cache, transport=transport)
    router = SubmissionRouter.from_service(service)
    intake = IntakeHook.from_config(pending, config, dispatch=dispatch)
    runtime = RelayRuntime(
        config=config,
        cache=cache,
        pending=pending,
        service=service,
        router=router,
        intake=intake,
        uses_broker=uses_broker,
    )
    bind_runtime(runtime)
    return runtime

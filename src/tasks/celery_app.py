"""
Celery application for the relay.

The broker is Redis (CELERY_BROKER_URL, falling back to REDIS_URL). Without a
broker, tasks run eagerly in the calling thread, which is only meant for
local development and mock mode: retries then happen immediately.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from celery import Celery

logger = logging.getLogger(__name__)

# Must stay above the longest retry countdown, or Redis redelivers scheduled
# retries early.
VISIBILITY_TIMEOUT_SECONDS = 2 * 60 * 60

celery_app = Celery("form_relay", include=["src.tasks.relay_tasks"])
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_ignore_result=True,
    # a task whose worker dies mid-run goes back to the queue
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    broker_transport_options={"visibility_timeout": VISIBILITY_TIMEOUT_SECONDS},
    broker_connection_retry_on_startup=True,
    timezone="UTC",
)


def select_broker_url() -> Optional[str]:
    return os.getenv("CELERY_BROKER_URL") or os.getenv("REDIS_URL") or None


def configure_celery(broker_url: Optional[str] = None) -> bool:
    """
    Point the app at `broker_url`, or switch to eager execution without one.

    Returns True when tasks go through a broker.
    """
    if broker_url:
        celery_app.conf.update(broker_url=broker_url, task_always_eager=False)
        return True

    celery_app.conf.update(
        broker_url="memory://",
        task_always_eager=True,
        task_eager_propagates=False,
    )
    return False


configure_celery(select_broker_url())

import httpx
import pytest

from src.database.redis import RedisCache as InMemoryCache
from src.integrations.contracts.relay import RELAY_TASK_HOOK
from src.tasks import relay_tasks, runtime
from src.tasks.pending import task_signature
from src.tasks.relay_tasks import process_submission


@pytest.fixture(autouse=True)
def _restore_task_binding(monkeypatch):
    monkeypatch.setattr(relay_tasks, "_router", None)
    monkeypatch.setattr(relay_tasks, "_pending", None)
    monkeypatch.setattr(process_submission, "max_retries", process_submission.max_retries)


def test_in_memory_cache_without_redis_url():
    assert isinstance(runtime.select_cache(), InMemoryCache)


@pytest.mark.parametrize("mode,expected", [("mock", True), ("TEST", True), ("real", False), ("", False)])
def test_mock_api_selection(monkeypatch, mode, expected):
    monkeypatch.setenv("INTEGRATIONS_MODE", mode)

    assert runtime.should_use_mock_api() is expected
    assert isinstance(runtime.select_transport(), httpx.MockTransport) is expected


def test_build_runtime_binds_the_relay_task(relay_config, cache, mock_api):
    rt = runtime.build_runtime(relay_config, cache=cache, transport=mock_api.transport())

    assert rt.uses_broker is False
    assert rt.pending.ttl_seconds == 600
    assert relay_tasks._router is rt.router
    assert relay_tasks._pending is rt.pending


def test_built_runtime_relays_a_submission_eagerly(relay_config, cache, mock_api, full_customer_submission):
    rt = runtime.build_runtime(relay_config, cache=cache, transport=mock_api.transport())

    task_id = rt.intake.on_submit(646, full_customer_submission)

    assert task_id is not None
    assert mock_api.customers == {"00112345678": 1001}
    envelope = {"form_type": "full_customer", "form_submission_data": full_customer_submission}
    assert not rt.pending.is_pending(task_signature(RELAY_TASK_HOOK, envelope))

    # The same submission again is an update of the now existing customer.
    assert rt.intake.on_submit(646, full_customer_submission) is not None
    assert mock_api.calls("PUT", "/customers/1001")


def test_custom_dispatcher_is_used(relay_config, cache, mock_api):
    sent = []
    rt = runtime.build_runtime(
        relay_config,
        cache=cache,
        transport=mock_api.transport(),
        dispatch=lambda args, signature: sent.append(args) or "task-1",
    )

    assert rt.intake.on_submit(700, {"cedula": "1"}) == "task-1"
    assert sent[0]["form_type"] == "simple_loan"
    assert mock_api.requests == []

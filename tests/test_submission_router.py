import pytest

from src.error_handler import AuthError, RemoteRejection
from src.integrations.contracts.relay import (
    FormType,
    RelayTask,
    RetryableFailure,
    Success,
    TerminalFailure,
)
from src.tasks.router import SubmissionRouter


class FakePipeline:
    def __init__(self, outcome):
        self.outcome = outcome
        self.received = []

    async def __call__(self, data):
        self.received.append(data)
        return self.outcome


def _envelope(form_type="full_customer", data=None):
    return {"form_type": form_type, "form_submission_data": data if data is not None else {"cedula": "1"}}


@pytest.mark.asyncio
async def test_success_is_returned():
    pipeline = FakePipeline(Success(status_code=201))
    router = SubmissionRouter({FormType.FULL_CUSTOMER: pipeline})

    outcome = await router.handle(_envelope())

    assert isinstance(outcome, Success)
    assert pipeline.received == [{"cedula": "1"}]


@pytest.mark.asyncio
async def test_terminal_failure_is_returned_not_raised():
    router = SubmissionRouter({FormType.FULL_CUSTOMER: FakePipeline(TerminalFailure(reason="422", status_code=422))})

    outcome = await router.handle(_envelope())

    assert isinstance(outcome, TerminalFailure)


@pytest.mark.asyncio
async def test_retryable_failure_reraises_original_error():
    error = RemoteRejection("HTTP 503", status_code=503)
    router = SubmissionRouter({FormType.FULL_CUSTOMER: FakePipeline(RetryableFailure(reason="503", error=error))})

    with pytest.raises(RemoteRejection) as excinfo:
        await router.handle(_envelope())
    assert excinfo.value is error


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "args",
    [
        None,
        "not json",
        ["full_customer"],
        {"form_submission_data": {"cedula": "1"}},
        {"form_type": "full_customer"},
        {"form_type": "full_customer", "form_submission_data": {}},
        {"form_type": "mortgage", "form_submission_data": {"cedula": "1"}},
    ],
)
async def test_malformed_envelopes_are_terminal(args):
    pipeline = FakePipeline(Success(status_code=200))
    router = SubmissionRouter({FormType.FULL_CUSTOMER: pipeline})

    outcome = await router.handle(args)

    assert isinstance(outcome, TerminalFailure)
    assert pipeline.received == []


@pytest.mark.asyncio
async def test_json_string_envelope_is_accepted():
    pipeline = FakePipeline(Success(status_code=200))
    router = SubmissionRouter({FormType.SIMPLE_LOAN: pipeline})

    await router.handle('{"form_type": "simple_loan", "form_submission_data": {"cedula": "1"}}')

    assert pipeline.received == [{"cedula": "1"}]


@pytest.mark.asyncio
async def test_unregistered_form_type_is_terminal():
    router = SubmissionRouter({FormType.FULL_CUSTOMER: FakePipeline(Success(status_code=200))})

    outcome = await router.handle(_envelope("simple_loan"))

    assert isinstance(outcome, TerminalFailure)


def test_envelope_round_trip():
    task = RelayTask(form_type=FormType.SIMPLE_LOAN, raw_submission={"cedula": "1"})
    assert task.to_args() == {"form_type": "simple_loan", "form_submission_data": {"cedula": "1"}}
    assert RelayTask.from_args(task.to_args()) == task


@pytest.mark.asyncio
async def test_router_with_real_service(service, mock_api, cache):
    router = SubmissionRouter.from_service(service)
    mock_api.queue_response("POST", "/customers/check-nid", 401, {"message": "Unauthenticated."})

    with pytest.raises(AuthError):
        await router.handle(_envelope(data={"cedula": "001-1234567-8"}))

    # The next attempt logs in again and goes through.
    outcome = await router.handle(_envelope(data={"cedula": "001-1234567-8"}))
    assert isinstance(outcome, Success)
    assert len(mock_api.calls("POST", "/login")) == 2


@pytest.mark.asyncio
async def test_unauthorized_create_relogs_in_before_retrying(service, mock_api, cache):
    from src.integrations.clients.real_http.token_manager import TOKEN_KEY

    router = SubmissionRouter.from_service(service)
    envelope = _envelope(data={"cedula": "001-1234567-8"})
    mock_api.queue_response("POST", "/api/v1/customers", 401, {"message": "Unauthenticated."})

    with pytest.raises(AuthError):
        await router.handle(envelope)
    assert cache.get(TOKEN_KEY) is None
    assert mock_api.customers == {}

    first_attempt = len(mock_api.requests)
    outcome = await router.handle(envelope)

    assert isinstance(outcome, Success)
    assert [(c.method, c.path) for c in mock_api.requests[first_attempt:]] == [
        ("POST", "/api/v1/login"),
        ("POST", "/api/v1/customers/check-nid"),
        ("POST", "/api/v1/customers"),
    ]
    assert mock_api.customers == {"00112345678": 1001}

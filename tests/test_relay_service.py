import httpx
import pytest

from src.error_handler import AuthError, ConfigError, IntegrityError, RemoteRejection, SubmissionValidationError
from src.integrations.contracts.relay import FormType, RetryableFailure, Success, TerminalFailure
from src.integrations.clients.mocks.loan_api import MockLoanApi
from src.integrations.policy.relay_service import RelayService
from src.integrations.clients.real_http.token_manager import TOKEN_KEY


# ---------------------------------------------------------------------------
# Full customer
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_new_customer_is_created(service, mock_api, full_customer_submission):
    outcome = await service.relay_full_customer(full_customer_submission)

    assert isinstance(outcome, Success)
    assert outcome.status_code == 201
    assert mock_api.customers == {"00112345678": 1001}

    paths = [(c.method, c.path) for c in mock_api.requests]
    assert paths == [
        ("POST", "/api/v1/login"),
        ("POST", "/api/v1/customers/check-nid"),
        ("POST", "/api/v1/customers"),
    ]
    sent = mock_api.calls("POST", "/api/v1/customers")[0].body
    assert sent["customer"]["NID"] == "00112345678"
    assert sent["terms"] is True


@pytest.mark.asyncio
async def test_existing_customer_is_updated(relay_config, cache, clock, full_customer_submission):
    api = MockLoanApi(customers={"00112345678": 77})
    service = RelayService(relay_config, cache, transport=api.transport(), clock=clock)

    outcome = await service.relay_full_customer(full_customer_submission)

    assert isinstance(outcome, Success)
    assert outcome.status_code == 200
    update_calls = api.calls("PUT")
    assert len(update_calls) == 1
    assert update_calls[0].path == "/api/v1/customers/77"
    assert api.calls("POST", "/api/v1/customers") == []


@pytest.mark.asyncio
async def test_update_target_gone_is_terminal(relay_config, cache, clock, full_customer_submission):
    api = MockLoanApi(customers={"00112345678": 77})
    api.queue_response("PUT", "/customers/77", 404, {"message": "Customer not found."})
    service = RelayService(relay_config, cache, transport=api.transport(), clock=clock)

    outcome = await service.relay_full_customer(full_customer_submission)

    assert isinstance(outcome, TerminalFailure)
    assert outcome.status_code == 404


@pytest.mark.asyncio
async def test_missing_nid_is_terminal_without_http_calls(service, mock_api):
    outcome = await service.relay_full_customer({"mf-listing-fname": "Ana", "cedula": "n/a"})

    assert isinstance(outcome, TerminalFailure)
    assert isinstance(outcome.error, SubmissionValidationError)
    assert mock_api.requests == []


@pytest.mark.asyncio
async def test_missing_configuration_is_terminal(cache, clock, relay_config, mock_api, full_customer_submission):
    config = relay_config.model_copy(update={"api": relay_config.api.model_copy(update={"update_endpoint": None})})
    service = RelayService(config, cache, transport=mock_api.transport(), clock=clock)

    outcome = await service.relay_full_customer(full_customer_submission)

    assert isinstance(outcome, TerminalFailure)
    assert isinstance(outcome.error, ConfigError)
    assert "update_endpoint" in outcome.reason
    assert mock_api.requests == []


@pytest.mark.asyncio
async def test_login_failure_is_retryable(service, mock_api, full_customer_submission):
    mock_api.queue_response("POST", "/login", 503, {"message": "down"})

    outcome = await service.relay_full_customer(full_customer_submission)

    assert isinstance(outcome, RetryableFailure)
    assert isinstance(outcome.error, AuthError)


@pytest.mark.asyncio
async def test_unauthorized_existence_check_is_retryable(service, mock_api, cache, full_customer_submission):
    mock_api.queue_response("POST", "/customers/check-nid", 401, {"message": "Unauthenticated."})

    outcome = await service.relay_full_customer(full_customer_submission)

    assert isinstance(outcome, RetryableFailure)
    assert isinstance(outcome.error, AuthError)
    assert cache.get(TOKEN_KEY) is None


@pytest.mark.asyncio
async def test_existence_without_id_is_terminal(service, mock_api, full_customer_submission):
    mock_api.queue_response("POST", "/customers/check-nid", 200, {"exists": True})

    outcome = await service.relay_full_customer(full_customer_submission)

    assert isinstance(outcome, TerminalFailure)
    assert isinstance(outcome.error, IntegrityError)
    assert mock_api.calls("PUT") == []


@pytest.mark.asyncio
async def test_remote_validation_error_is_terminal(service, mock_api, full_customer_submission):
    mock_api.queue_response("POST", "/api/v1/customers", 422, {"errors": {"email": ["invalid"]}})

    outcome = await service.relay_full_customer(full_customer_submission)

    assert isinstance(outcome, TerminalFailure)
    assert outcome.status_code == 422


@pytest.mark.asyncio
async def test_token_is_reused_across_submissions(service, mock_api, full_customer_submission):
    await service.relay_full_customer(full_customer_submission)
    await service.relay_full_customer(dict(full_customer_submission, cedula="999"))

    assert len(mock_api.calls("POST", "/login")) == 1
    assert len(mock_api.customers) == 2


@pytest.mark.asyncio
async def test_network_failure_is_retryable(relay_config, cache, clock, full_customer_submission):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = RelayService(relay_config, cache, transport=httpx.MockTransport(refuse), clock=clock)

    outcome = await service.relay_full_customer(full_customer_submission)

    # Login swallows the transport error, so the pipeline reports an auth failure.
    assert isinstance(outcome, RetryableFailure)
    assert isinstance(outcome.error, AuthError)


# ---------------------------------------------------------------------------
# Simple loan
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_simple_loan_creates_customer_then_application(service, mock_api, simple_loan_submission):
    outcome = await service.relay_simple_loan(simple_loan_submission)

    assert isinstance(outcome, Success)
    assert [c.path for c in mock_api.requests] == [
        "/api/v1/login",
        "/api/v1/customers/check-nid",
        "/api/v1/simple-customers",
        "/api/v1/loan-applications",
    ]
    application = mock_api.loan_applications[0]
    assert application["customer_id"] == 1001
    assert application["details"] == {"amount": 25000, "term": 6, "frequency": "biweekly"}
    assert application["terms"] is True


@pytest.mark.asyncio
async def test_simple_loan_reuses_existing_customer(relay_config, cache, clock, simple_loan_submission):
    api = MockLoanApi(customers={"40276543210": 12})
    service = RelayService(relay_config, cache, transport=api.transport(), clock=clock)

    outcome = await service.relay_simple_loan(simple_loan_submission)

    assert isinstance(outcome, Success)
    assert api.calls("POST", "/simple-customers") == []
    assert api.loan_applications[0]["customer_id"] == 12


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["monto-prestamo", "plazo-prestamo"])
async def test_simple_loan_requires_amount_and_term(service, mock_api, simple_loan_submission, missing):
    data = dict(simple_loan_submission)
    data[missing] = "0"

    outcome = await service.relay_simple_loan(data)

    assert isinstance(outcome, TerminalFailure)
    assert isinstance(outcome.error, SubmissionValidationError)
    assert mock_api.requests == []


@pytest.mark.asyncio
async def test_simple_loan_customer_create_failure_stops_pipeline(service, mock_api, simple_loan_submission):
    mock_api.queue_response("POST", "/simple-customers", 500, {"message": "boom"})

    outcome = await service.relay_simple_loan(simple_loan_submission)

    assert isinstance(outcome, RetryableFailure)
    assert isinstance(outcome.error, RemoteRejection)
    assert mock_api.loan_applications == []


@pytest.mark.asyncio
async def test_simple_loan_created_customer_without_id_is_terminal(service, mock_api, simple_loan_submission):
    mock_api.queue_response("POST", "/simple-customers", 201, {"message": "created"})

    outcome = await service.relay_simple_loan(simple_loan_submission)

    assert isinstance(outcome, TerminalFailure)
    assert isinstance(outcome.error, IntegrityError)
    assert mock_api.calls("POST", "/loan-applications") == []


@pytest.mark.asyncio
async def test_relay_dispatches_on_form_type(service, mock_api, simple_loan_submission):
    outcome = await service.relay(FormType.SIMPLE_LOAN, simple_loan_submission)

    assert isinstance(outcome, Success)
    assert len(mock_api.loan_applications) == 1


@pytest.mark.asyncio
async def test_overflowing_boolean_input_does_not_break_the_pipeline(service, mock_api):
    outcome = await service.relay_full_customer({"cedula": "001", "mf-switch": "1e400"})

    assert isinstance(outcome, Success)
    sent = mock_api.calls("POST", "/api/v1/customers")[0].body
    assert sent["customer"]["jobInfo"] == {"is_self_employed": False}


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["monto-prestamo", "plazo-prestamo"])
async def test_simple_loan_with_absent_amount_or_term_is_terminal(service, mock_api, simple_loan_submission, missing):
    data = dict(simple_loan_submission)
    del data[missing]

    outcome = await service.relay_simple_loan(data)

    assert isinstance(outcome, TerminalFailure)
    assert isinstance(outcome.error, SubmissionValidationError)
    assert mock_api.requests == []

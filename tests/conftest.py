"""Pytest fixtures for relay tests."""

import pytest

from src.database.redis import RedisCache
from src.integrations.clients.mocks.loan_api import MockLoanApi
from src.integrations.policy.relay_service import RelayService
from src.utils.relay_config_loader import _ENV_OVERRIDES, RelayConfig

BASE_URL = "http://loan-api.test/api/v1/"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _clean_relay_env(monkeypatch):
    """Keep developer RELAY_* and broker settings out of the tests."""
    for env_name in _ENV_OVERRIDES.values():
        monkeypatch.delenv(env_name, raising=False)
    for env_name in ("REDIS_URL", "CELERY_BROKER_URL", "INTEGRATIONS_MODE"):
        monkeypatch.delenv(env_name, raising=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """In-memory RedisCache stub driven by the fake clock."""
    return RedisCache(clock=clock)


@pytest.fixture
def relay_config():
    return RelayConfig(
        api={
            "base_url": BASE_URL,
            "login_endpoint": "/login",
            "check_endpoint": "/customers/check-nid",
            "create_endpoint": "/customers",
            "update_endpoint": "/customers/",
            "simple_create_endpoint": "/simple-customers",
            "loan_create_endpoint": "/loan-applications",
            "username": "relay@example.com",
            "password": "secret",
        },
        targets={"full_customer": ["646"], "simple_loan": ["700"]},
        queue={"max_attempts": 3, "pending_ttl_seconds": 600},
    )


@pytest.fixture
def mock_api():
    return MockLoanApi()


@pytest.fixture
def service(relay_config, cache, mock_api, clock):
    return RelayService(relay_config, cache, transport=mock_api.transport(), clock=clock)


@pytest.fixture
def full_customer_submission():
    return {
        "cedula": "001-1234567-8",
        "mf-listing-fname": "  Ana <b>María</b> ",
        "apellido": "Pérez",
        "fecha-nacimiento": "15-04-1990",
        "mf-email": "ana.perez@example.com",
        "estado-civil": "Casada",
        "nacionalidad": "Dominicana",
        "tipo-vivienda": "Alquilada",
        "celular": "(809) 555-1234",
        "direccion": "Calle 1 #23",
        "mf-switch": "Sí",
        "ocupacion": "Contadora",
        "sueldo-mensual": "RD$ 45,000.00",
        "aceptacion-de-condiciones": "Accepted",
        "monto-prestamo": "100,000",
        "plazo-prestamo": "12",
    }


@pytest.fixture
def simple_loan_submission():
    return {
        "cedula": "402-7654321-0",
        "mf-listing-fname": "Luis",
        "apellido": "Gómez",
        "celular": "829-555-0000",
        "nombre-garante": "Pedro Gómez",
        "celular-garante": "809-555-9999",
        "monto-prestamo": "25000",
        "plazo-prestamo": "6",
        "frecuencia-pago": "Quincenal",
        "aceptacion-de-condiciones": "1",
    }

"""
Relay configuration loader (remote API endpoints, credentials, target forms, queue).

Values come from config/relay_config.yml when present and are overridden by
environment variables, so secrets never have to live in the YAML file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.error_handler import ConfigError
from src.integrations.contracts.relay import FormType

logger = logging.getLogger(__name__)


class ApiConfig(BaseModel):
    base_url: Optional[str] = None
    login_endpoint: Optional[str] = None
    check_endpoint: Optional[str] = None
    create_endpoint: Optional[str] = None
    update_endpoint: Optional[str] = None
    simple_create_endpoint: Optional[str] = None
    loan_create_endpoint: Optional[str] = None
    status_endpoint: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=120.0)
    login_timeout_seconds: float = Field(default=20.0, ge=1.0, le=120.0)
    verify_cached_token: bool = False


class TargetsConfig(BaseModel):
    full_customer: List[str] = Field(default_factory=list)
    simple_loan: List[str] = Field(default_factory=list)

    @field_validator("full_customer", "simple_loan", mode="before")
    @classmethod
    def _canonicalize(cls, value):
        # Form ids may be configured as ints, strings or a comma separated string.
        if value is None:
            return []
        if isinstance(value, (str, int)):
            value = str(value).split(",")
        return [str(v).strip() for v in value if str(v).strip()]


class QueueConfig(BaseModel):
    # delivery attempts per submission, first run included
    max_attempts: int = Field(default=5, ge=1, le=50)
    # how long an unfinished submission blocks an identical one
    pending_ttl_seconds: int = Field(default=86400, ge=60)


class RelayConfig(BaseModel):
    api: ApiConfig = Field(default_factory=ApiConfig)
    targets: TargetsConfig = Field(default_factory=TargetsConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)

    def require(self, *names: str) -> None:
        """
        Raise ConfigError naming every listed `api` setting that is empty.

        Called at the start of each pipeline so a missing endpoint aborts that
        task path only.
        """
        missing = [name for name in names if not getattr(self.api, name, None)]
        if missing:
            raise ConfigError(f"Missing relay configuration: {', '.join(missing)}")

    def target_map(self) -> Dict[str, FormType]:
        """Canonical form identifier -> form type."""
        mapping: Dict[str, FormType] = {}
        for form_id in self.targets.full_customer:
            mapping[form_id] = FormType.FULL_CUSTOMER
        for form_id in self.targets.simple_loan:
            mapping[form_id] = FormType.SIMPLE_LOAN
        return mapping


_ENV_OVERRIDES = {
    ("api", "base_url"): "RELAY_API_BASE_URL",
    ("api", "login_endpoint"): "RELAY_API_LOGIN_ENDPOINT",
    ("api", "check_endpoint"): "RELAY_API_CHECK_ENDPOINT",
    ("api", "create_endpoint"): "RELAY_API_CREATE_ENDPOINT",
    ("api", "update_endpoint"): "RELAY_API_UPDATE_ENDPOINT",
    ("api", "simple_create_endpoint"): "RELAY_API_SIMPLE_CREATE_ENDPOINT",
    ("api", "loan_create_endpoint"): "RELAY_API_LOAN_CREATE_ENDPOINT",
    ("api", "status_endpoint"): "RELAY_API_STATUS_ENDPOINT",
    ("api", "username"): "RELAY_API_USERNAME",
    ("api", "password"): "RELAY_API_PASSWORD",
    ("api", "timeout_seconds"): "RELAY_HTTP_TIMEOUT",
    ("targets", "full_customer"): "RELAY_TARGET_FULL_CUSTOMER_FORM_IDS",
    ("targets", "simple_loan"): "RELAY_TARGET_SIMPLE_LOAN_FORM_IDS",
    ("queue", "max_attempts"): "RELAY_QUEUE_MAX_ATTEMPTS",
    ("queue", "pending_ttl_seconds"): "RELAY_QUEUE_PENDING_TTL_SECONDS",
}


def _apply_env_overrides(data: Dict) -> Dict:
    for (section, key), env_name in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None or value.strip() == "":
            continue
        if not isinstance(data.get(section), dict):
            data[section] = {}
        data[section][key] = value.strip()
    return data


def load_relay_config(config_path: Optional[Path] = None) -> RelayConfig:
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "config" / "relay_config.yml"

    data: Dict = {}
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        logger.info("Relay config file not found at %s; using environment only", config_path)

    data = _apply_env_overrides(data)

    try:
        cfg = RelayConfig(**data)
        logger.info("Successfully loaded relay config (targets=%d)", len(cfg.target_map()))
        return cfg
    except ValidationError as e:
        logger.error("Relay config validation failed: %s", e)
        raise

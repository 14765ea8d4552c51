"""Error taxonomy and outcome classification for the submission relay."""
from typing import Any, Dict, Optional
import logging

from src.integrations.contracts.relay import Outcome, RetryableFailure, TerminalFailure

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """Base class for relay failures. `retryable` tells the router whether Celery should retry."""

    retryable = False

    def __init__(self, message: str, *, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


class ConfigError(RelayError):
    """A required endpoint, credential or target id is not configured."""


class SubmissionValidationError(RelayError):
    """A required submission field (national ID, loan amount, ...) is missing or malformed."""


class IntegrityError(RelayError):
    """The remote API answered in an internally inconsistent way."""


class AuthError(RelayError):
    """Login failed or the bearer token was rejected."""

    retryable = True


class TransportError(RelayError):
    """Network failure: DNS, connection refused, timeout."""

    retryable = True


class RemoteRejection(RelayError):
    """Non-2xx answer that is not 401/404/422; assumed to be transient."""

    retryable = True


class ErrorHandler:
    def to_outcome(self, exc: Exception, context: Dict[str, Any] = None) -> Outcome:
        """Log `exc` and classify it as a terminal or retryable outcome."""
        context = context or {}
        if isinstance(exc, IntegrityError):
            logger.error("Remote API contract violation (not retried): %s | context=%s", exc, context)
            return TerminalFailure(reason=str(exc), status_code=exc.status_code, error=exc)
        if isinstance(exc, RelayError) and not exc.retryable:
            logger.error("Terminal relay failure (not retried): %s | context=%s", exc, context)
            return TerminalFailure(reason=str(exc), status_code=exc.status_code, error=exc)
        if isinstance(exc, RelayError):
            logger.warning("Retryable relay failure: %s | context=%s", exc, context)
            return RetryableFailure(reason=str(exc), error=exc)

        logger.error("Unhandled exception in relay pipeline: %s", exc, exc_info=True)
        return RetryableFailure(reason=f"Unexpected error: {exc}", error=exc)

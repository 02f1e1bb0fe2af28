"""
Exception hierarchy for the capture engine.

Separates transient backend failures (retried implicitly by the next poll or
the next edit) from terminal ones, so each caller can resolve to a
well-defined state instead of leaving timers or flags behind.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class WebTestError(Exception):
    """Base exception for all capture engine errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class RetryableError(WebTestError):
    """Base class for errors that go away on a later attempt."""
    pass


class NonRetryableError(WebTestError):
    """Base class for errors that should not be retried."""
    pass


class GatewayError(RetryableError):
    """A call to the automation backend failed."""

    def __init__(
        self,
        message: str,
        operation: str,
        status_code: Optional[int] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.status_code = status_code
        self.details.update({
            "operation": operation,
            "status_code": status_code
        })


class GatewayUnavailableError(GatewayError):
    """The automation backend could not be reached or timed out."""

    def __init__(self, message: str, operation: str, base_url: str, **kwargs):
        super().__init__(message, operation=operation, **kwargs)
        self.base_url = base_url
        self.details["base_url"] = base_url


class SessionNotFoundError(NonRetryableError):
    """The backend no longer knows the recording session."""

    def __init__(self, message: str, session_id: str, **kwargs):
        super().__init__(message, **kwargs)
        self.session_id = session_id
        self.details["session_id"] = session_id


class ValidationError(NonRetryableError):
    """A payload failed validation before reaching the backend."""

    def __init__(
        self,
        message: str,
        validation_type: str,
        failed_rules: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.validation_type = validation_type
        self.failed_rules = failed_rules or []
        self.details.update({
            "validation_type": validation_type,
            "failed_rules": self.failed_rules
        })


class RecordingStateError(NonRetryableError):
    """An illegal recording-session transition was requested."""

    def __init__(self, message: str, current_state: str, requested_state: str, **kwargs):
        super().__init__(message, **kwargs)
        self.current_state = current_state
        self.requested_state = requested_state
        self.details.update({
            "current_state": current_state,
            "requested_state": requested_state
        })

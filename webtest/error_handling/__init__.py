"""
Error handling for the capture engine.
"""

from .exceptions import (
    GatewayError,
    GatewayUnavailableError,
    NonRetryableError,
    RecordingStateError,
    RetryableError,
    SessionNotFoundError,
    ValidationError,
    WebTestError,
)

__all__ = [
    "WebTestError",
    "RetryableError",
    "NonRetryableError",
    "GatewayError",
    "GatewayUnavailableError",
    "SessionNotFoundError",
    "ValidationError",
    "RecordingStateError",
]

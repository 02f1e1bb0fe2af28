"""
Monitoring module exports.
"""

from webtest.monitoring.logger import (
    ContextLogAdapter,
    JSONFormatter,
    SanitizingHandler,
    get_logger,
    log_engine_event,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_engine_event",
    "JSONFormatter",
    "SanitizingHandler",
    "ContextLogAdapter",
]

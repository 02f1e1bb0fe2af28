"""
Client side of the automation backend.
"""

from webtest.gateway.client import ExecutionGateway, validate_execution_steps

__all__ = [
    "ExecutionGateway",
    "validate_execution_steps",
]

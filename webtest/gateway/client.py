"""
Execution Gateway

HTTP client for the browser-automation backend. Covers loading the target
site, element detection, recording sessions and direct (ad hoc) execution.
"""

from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from webtest.config.settings import Settings, get_settings
from webtest.core.types import (
    ActionKind,
    DetectedElement,
    DetectElementsResponse,
    ExecuteTestRequest,
    ExecuteTestResponse,
    LoadWebsiteResponse,
    RecordedActionsResponse,
    StartRecordingResponse,
    StopRecordingResponse,
    TestStep,
)
from webtest.error_handling.exceptions import (
    GatewayError,
    GatewayUnavailableError,
    SessionNotFoundError,
    ValidationError,
)
from webtest.monitoring.logger import get_logger

logger = get_logger(__name__)

ResponseModel = TypeVar("ResponseModel", bound=BaseModel)

# Mirrors the backend's ad hoc step schema
_TARGET_REQUIRED = {
    ActionKind.CLICK.value,
    ActionKind.INPUT.value,
    ActionKind.HOVER.value,
    ActionKind.SELECT.value,
    ActionKind.ASSERT.value,
    ActionKind.ASSERT_TEXT_CONTAINS.value,
    ActionKind.ASSERT_ELEMENT_COUNT.value,
}
_VALUE_REQUIRED = {
    ActionKind.INPUT.value,
    ActionKind.WAIT.value,
    ActionKind.SELECT.value,
    ActionKind.ASSERT_TEXT_CONTAINS.value,
    ActionKind.ASSERT_ELEMENT_COUNT.value,
}


def validate_execution_steps(sequence: Sequence[TestStep]) -> None:
    """
    Check steps against the backend's ad hoc execution rules.

    Raises:
        ValidationError: listing every violated rule
    """
    failed: List[str] = []
    for index, step in enumerate(sequence):
        kind = step.action_kind.id
        label = f"step {index + 1} ({kind})"
        if kind not in {k.value for k in ActionKind}:
            failed.append(f"{label}: unknown action kind")
            continue
        if kind in _TARGET_REQUIRED and step.target_element is None:
            failed.append(f"{label}: target element is required")
        value = (step.value or "").strip()
        if kind in _VALUE_REQUIRED and not value:
            failed.append(f"{label}: a non-empty value is required")
        elif kind == ActionKind.WAIT.value:
            try:
                float(value)
            except ValueError:
                failed.append(f"{label}: wait value must be a number of milliseconds")

    if failed:
        raise ValidationError(
            f"Invalid test sequence: {failed[0]}",
            validation_type="execute_test_direct",
            failed_rules=failed,
        )


class ExecutionGateway:
    """
    Client for the automation backend.

    Transport failures raise GatewayUnavailableError, non-2xx statuses raise
    GatewayError, and a 404 on a recording operation raises
    SessionNotFoundError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.base_url = (base_url or self.settings.backend_base_url).rstrip("/")
        self.timeout = httpx.Timeout(
            self.settings.backend_timeout_seconds,
            connect=self.settings.backend_connect_timeout_seconds,
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client"""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "ExecutionGateway":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ==========================================
    # Target site
    # ==========================================

    async def load_website(self, url: str) -> LoadWebsiteResponse:
        """Load ``url`` in the backend browser and return its screenshot."""
        return await self._request(
            "POST", "/api/load-website", "load-website", LoadWebsiteResponse,
            json={"url": url},
        )

    async def detect_elements(self, url: str) -> List[DetectedElement]:
        """Detect interactive elements on ``url``."""
        response = await self._request(
            "POST", "/api/detect-elements", "detect-elements", DetectElementsResponse,
            json={"url": url},
        )
        return response.elements

    # ==========================================
    # Recording sessions
    # ==========================================

    async def start_recording(self, url: str) -> StartRecordingResponse:
        """Open a recording session on ``url``."""
        return await self._request(
            "POST", "/api/start-recording", "start-recording", StartRecordingResponse,
            json={"url": url},
        )

    async def get_recorded_actions(self, session_id: str) -> RecordedActionsResponse:
        """Fetch every action recorded so far in ``session_id``."""
        return await self._request(
            "GET", "/api/get-recorded-actions", "get-recorded-actions", RecordedActionsResponse,
            params={"sessionId": session_id},
            session_id=session_id,
        )

    async def stop_recording(self, session_id: str) -> StopRecordingResponse:
        """Close ``session_id`` and return its final action list."""
        return await self._request(
            "POST", "/api/stop-recording", "stop-recording", StopRecordingResponse,
            json={"sessionId": session_id},
            session_id=session_id,
        )

    # ==========================================
    # Direct execution
    # ==========================================

    async def execute_test_direct(
        self,
        url: str,
        sequence: Sequence[TestStep],
        elements: Sequence[DetectedElement] = (),
        name: Optional[str] = None,
    ) -> ExecuteTestResponse:
        """
        Execute a step sequence against ``url`` without saving it.

        Raises:
            ValidationError: if a step breaks the backend's execution rules
            GatewayError: on transport failure or any non-2xx status
        """
        validate_execution_steps(sequence)

        payload = ExecuteTestRequest(
            url=url,
            sequence=list(sequence),
            elements=list(elements),
            name=name,
        )
        logger.info(
            "Executing test sequence",
            extra={"url": url, "steps": len(sequence), "test_name": name},
        )
        return await self._request(
            "POST", "/api/execute-test-direct", "execute-test-direct", ExecuteTestResponse,
            json=payload.to_wire(),
        )

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        model: Type[ResponseModel],
        session_id: Optional[str] = None,
        **kwargs: Any,
    ) -> ResponseModel:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if session_id is not None and status == 404:
                raise SessionNotFoundError(
                    f"Recording session {session_id} not found",
                    session_id=session_id,
                    cause=e,
                )
            logger.warning(
                f"{operation} failed with HTTP {status}",
                extra={"operation": operation, "status_code": status},
            )
            raise GatewayError(
                f"{operation} failed with HTTP {status}",
                operation=operation,
                status_code=status,
                details={"body": e.response.text[:500]},
                cause=e,
            )
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise GatewayUnavailableError(
                f"Cannot reach automation backend at {self.base_url}",
                operation=operation,
                base_url=self.base_url,
                cause=e,
            )
        except httpx.HTTPError as e:
            raise GatewayError(
                f"{operation} failed: {e}",
                operation=operation,
                cause=e,
            )

        try:
            data: Dict[str, Any] = response.json()
        except ValueError as e:
            raise GatewayError(
                f"{operation} returned a non-JSON body",
                operation=operation,
                status_code=response.status_code,
                cause=e,
            )

        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise GatewayError(
                f"{operation} returned an unexpected payload",
                operation=operation,
                status_code=response.status_code,
                details={"errors": e.error_count()},
                cause=e,
            )

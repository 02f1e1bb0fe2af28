"""
Maps backend-recorded actions onto structured test steps.
"""

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from webtest.core.catalog import AVAILABLE_ACTIONS
from webtest.core.types import AvailableActionKind, DetectedElement, RecordedAction, TestStep
from webtest.monitoring.logger import get_logger

logger = get_logger(__name__)

RawRecordedAction = Union[RecordedAction, Mapping[str, Any]]


class ActionMapper:
    """
    Converts recorded actions into test steps against a fixed catalog.

    Actions whose kind has no catalog entry are rejected (None) and are
    dropped from mapped lists; they are never retried.
    """

    def __init__(self, catalog: Optional[Sequence[AvailableActionKind]] = None):
        """
        Initialize the mapper.

        Args:
            catalog: Action kinds to map against (defaults to AVAILABLE_ACTIONS)
        """
        self.catalog = tuple(catalog if catalog is not None else AVAILABLE_ACTIONS)
        self._by_id = {kind.id: kind for kind in self.catalog}

    def map_action(self, action: RecordedAction) -> Optional[TestStep]:
        """
        Map one recorded action.

        Args:
            action: Action reported by the backend

        Returns:
            TestStep, or None when the action kind is unknown
        """
        action_kind = self._by_id.get(action.kind)
        if action_kind is None:
            logger.debug("Dropping recorded action of unknown kind", extra={"kind": action.kind})
            return None

        return TestStep(
            id=f"step-rec-{uuid4().hex[:12]}",
            action_kind=action_kind,
            target_element=self._placeholder_element(action),
            value=action.value,
        )

    def map_actions(self, actions: Iterable[RawRecordedAction]) -> List[TestStep]:
        """
        Map a list of recorded actions, preserving order.

        Raw dicts that fail validation are dropped like unknown kinds.
        """
        steps: List[TestStep] = []
        for raw in actions:
            action = self._coerce(raw)
            if action is None:
                continue
            step = self.map_action(action)
            if step is not None:
                steps.append(step)
        return steps

    @staticmethod
    def _coerce(raw: RawRecordedAction) -> Optional[RecordedAction]:
        if isinstance(raw, RecordedAction):
            return raw
        if not isinstance(raw, Mapping):
            logger.debug(
                "Dropping non-object recorded action",
                extra={"item_type": type(raw).__name__},
            )
            return None
        try:
            return RecordedAction.model_validate(raw)
        except PydanticValidationError as exc:
            logger.debug(
                "Dropping malformed recorded action",
                extra={"errors": exc.error_count()},
            )
            return None

    @staticmethod
    def _placeholder_element(action: RecordedAction) -> Optional[DetectedElement]:
        """Synthesize a target element from the recorded selector, if any."""
        if not action.selector:
            return None

        return DetectedElement(
            id=f"elem-rec-{uuid4().hex[:12]}",
            selector=action.selector,
            tag=action.target_tag or "unknown",
            text=action.target_text or action.selector,
        )


_default_mapper = ActionMapper()


def map_recorded_action(
    action: RecordedAction,
    catalog: Optional[Sequence[AvailableActionKind]] = None,
) -> Optional[TestStep]:
    """Map one recorded action using the default catalog or ``catalog``."""
    mapper = _default_mapper if catalog is None else ActionMapper(catalog)
    return mapper.map_action(action)


def map_recorded_actions(
    actions: Iterable[RawRecordedAction],
    catalog: Optional[Sequence[AvailableActionKind]] = None,
) -> List[TestStep]:
    """Map recorded actions in backend order, dropping rejects."""
    mapper = _default_mapper if catalog is None else ActionMapper(catalog)
    return mapper.map_actions(actions)

"""
Step completeness rules.

A step is complete when it carries enough information to be executed.
Kinds missing from the rule table are incomplete; a new action kind must be
added here before it can be previewed.
"""

from typing import Callable, Dict, List, Optional, Sequence

from webtest.core.types import ActionKind, TestStep


def _has_value(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def _needs_target_and_value(step: TestStep) -> bool:
    return step.target_element is not None and _has_value(step.value)


def _needs_target(step: TestStep) -> bool:
    return step.target_element is not None


def _needs_value(step: TestStep) -> bool:
    # Numeric validity of wait durations is checked by the gateway
    return _has_value(step.value)


def _always(step: TestStep) -> bool:
    # Without a target the whole window scrolls
    return True


COMPLETENESS_RULES: Dict[str, Callable[[TestStep], bool]] = {
    ActionKind.INPUT.value: _needs_target_and_value,
    ActionKind.SELECT.value: _needs_target_and_value,
    ActionKind.CLICK.value: _needs_target,
    ActionKind.HOVER.value: _needs_target,
    ActionKind.ASSERT.value: _needs_target,
    ActionKind.ASSERT_TEXT_CONTAINS.value: _needs_target,
    ActionKind.ASSERT_ELEMENT_COUNT.value: _needs_target,
    ActionKind.WAIT.value: _needs_value,
    ActionKind.SCROLL.value: _always,
}


def is_step_complete(step: TestStep) -> bool:
    """Return True when ``step`` can be executed as-is."""
    rule = COMPLETENESS_RULES.get(step.action_kind.id)
    if rule is None:
        return False
    return rule(step)


def is_sequence_complete(steps: Sequence[TestStep]) -> bool:
    """Every step is complete. Vacuously true for an empty sequence."""
    return all(is_step_complete(step) for step in steps)


def incomplete_steps(steps: Sequence[TestStep]) -> List[str]:
    """Ids of the steps that are not complete, in sequence order."""
    return [step.id for step in steps if not is_step_complete(step)]

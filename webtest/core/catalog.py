"""
The fixed catalog of action kinds a test step can use.
"""

from typing import Dict, Optional, Tuple

from webtest.core.types import ActionKind, AvailableActionKind


def _entry(kind: ActionKind, name: str, icon: str, description: str) -> AvailableActionKind:
    return AvailableActionKind(
        id=kind.value,
        type=kind.value,
        name=name,
        icon=icon,
        description=description,
    )


AVAILABLE_ACTIONS: Tuple[AvailableActionKind, ...] = (
    _entry(ActionKind.CLICK, "Click Element", "mouse-pointer", "Simulate a mouse click"),
    _entry(ActionKind.INPUT, "Input Text", "keyboard", "Type text into field"),
    _entry(ActionKind.WAIT, "Wait", "clock", "Pause execution"),
    _entry(ActionKind.SCROLL, "Scroll", "scroll", "Scroll page or element"),
    _entry(ActionKind.ASSERT, "Assert", "check-circle", "Verify element or text"),
    _entry(ActionKind.HOVER, "Hover", "hand", "Hover over element"),
    _entry(ActionKind.SELECT, "Select Option", "chevron-down", "Choose dropdown option"),
    _entry(
        ActionKind.ASSERT_TEXT_CONTAINS,
        "Assert Text Contains",
        "check-circle",
        "Verify an element's text contains a value",
    ),
    _entry(
        ActionKind.ASSERT_ELEMENT_COUNT,
        "Assert Element Count",
        "check-circle",
        "Verify how many elements match a selector",
    ),
)

_BY_ID: Dict[str, AvailableActionKind] = {action.id: action for action in AVAILABLE_ACTIONS}


def get_action_kind(action_id: str) -> Optional[AvailableActionKind]:
    """Return the catalog entry for ``action_id``, or None if unknown."""
    return _BY_ID.get(action_id)

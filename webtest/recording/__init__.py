"""
Recording support: turning captured browser actions into test steps.
"""

from webtest.recording.action_mapper import (
    ActionMapper,
    map_recorded_action,
    map_recorded_actions,
)

__all__ = [
    "ActionMapper",
    "map_recorded_action",
    "map_recorded_actions",
]

"""
Evaluation of authored test steps.
"""

from webtest.evaluation.completeness import (
    COMPLETENESS_RULES,
    incomplete_steps,
    is_sequence_complete,
    is_step_complete,
)

__all__ = [
    "COMPLETENESS_RULES",
    "is_step_complete",
    "is_sequence_complete",
    "incomplete_steps",
]

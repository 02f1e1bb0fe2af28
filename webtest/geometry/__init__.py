"""
Screenshot geometry helpers.
"""

from webtest.geometry.scaler import (
    letterbox_offset,
    natural_size_from_screenshot,
    scale_bounding_box,
)

__all__ = [
    "scale_bounding_box",
    "letterbox_offset",
    "natural_size_from_screenshot",
]

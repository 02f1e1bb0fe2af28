"""
Maps element boxes from natural screenshot pixels onto the rendered preview.
"""

import base64
import binascii
import io
import math
from typing import Optional, Tuple, Union

from PIL import Image

from webtest.core.types import BoundingBox, RenderGeometry, ScaledBox
from webtest.monitoring.logger import get_logger

logger = get_logger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _visible_size(geometry: RenderGeometry) -> Tuple[float, float]:
    """Size of the image inside its container once aspect ratio is kept."""
    img_aspect = geometry.natural_width / geometry.natural_height
    container_aspect = geometry.rendered_width / geometry.rendered_height

    if img_aspect > container_aspect:
        # Letterboxed: full width, bands above and below
        visible_width = geometry.rendered_width
        visible_height = geometry.rendered_width / img_aspect
    else:
        # Pillarboxed: full height, bands left and right
        visible_height = geometry.rendered_height
        visible_width = geometry.rendered_height * img_aspect

    return visible_width, visible_height


def _has_dimensions(geometry: RenderGeometry) -> bool:
    return all(
        dimension > 0
        for dimension in (
            geometry.rendered_width,
            geometry.rendered_height,
            geometry.natural_width,
            geometry.natural_height,
        )
    )


def scale_bounding_box(
    geometry: Optional[RenderGeometry],
    box: Optional[BoundingBox],
) -> Optional[ScaledBox]:
    """
    Scale a natural-resolution box into rendered container pixels.

    The letterbox/pillarbox centering offset is not added, so the box is
    scale-correct but anchored at the container origin.

    Args:
        geometry: Current render geometry
        box: Element box in natural screenshot pixels

    Returns:
        Scaled box, or None when a dimension is zero or there is no box
    """
    if geometry is None or box is None or not _has_dimensions(geometry):
        return None

    visible_width, _ = _visible_size(geometry)
    scale = visible_width / geometry.natural_width

    return ScaledBox(
        top=_round_half_up(box.y * scale),
        left=_round_half_up(box.x * scale),
        width=_round_half_up(box.width * scale),
        height=_round_half_up(box.height * scale),
    )


def letterbox_offset(geometry: Optional[RenderGeometry]) -> Optional[Tuple[float, float]]:
    """
    Centering offset (x, y) of the visible image inside its container.

    Not applied by scale_bounding_box; exposed for diagnostics.
    """
    if geometry is None or not _has_dimensions(geometry):
        return None

    visible_width, visible_height = _visible_size(geometry)
    return (
        (geometry.rendered_width - visible_width) / 2,
        (geometry.rendered_height - visible_height) / 2,
    )


def natural_size_from_screenshot(data: Union[str, bytes, None]) -> Optional[Tuple[int, int]]:
    """
    Read the natural pixel size of a screenshot.

    Args:
        data: ``data:`` URL, raw base64 text, or image bytes

    Returns:
        (width, height), or None if the image cannot be decoded
    """
    if not data:
        return None

    try:
        if isinstance(data, str):
            payload = data.split(",", 1)[1] if data.startswith("data:") else data
            raw = base64.b64decode(payload, validate=True)
        else:
            raw = data

        with Image.open(io.BytesIO(raw)) as image:
            return image.size
    except (binascii.Error, ValueError, OSError, IndexError) as exc:
        logger.debug("Could not read screenshot size", extra={"error": str(exc)})
        return None

"""Conversion between pointer coordinates and stored marker positions."""

import math

from .schemas import PERCENT_MAX, PERCENT_MIN, BoundingBox, MarkerPosition, Point


def clamp(value: float) -> float:
    """Project any value into [0, 100].

    Infinities clamp to the nearest edge; NaN maps to 0.

    Example:
        ```python
        clamp(150)  # 100.0
        clamp(-10)  # 0.0
        ```
    """
    value = float(value)
    if math.isnan(value):
        return PERCENT_MIN
    return max(PERCENT_MIN, min(PERCENT_MAX, value))


def _axis_percent(offset: float, extent: float) -> float:
    if extent <= 0:
        return PERCENT_MIN
    return clamp(offset / extent * 100)


def to_percent(pointer: Point, box: BoundingBox) -> MarkerPosition:
    """Map a pointer position to percentages of the image element.

    The element's rendered box already includes any zoom or pan transform, so the
    result is expressed in the image's own coordinate space. Pointers outside
    the box are clamped, never rejected.

    Args:
        pointer: Pointer position in client coordinates
        box: Rendered bounding box of the image element

    Returns:
        Clamped marker position
    """
    return MarkerPosition(
        x_percent=_axis_percent(pointer.x - box.left, box.width),
        y_percent=_axis_percent(pointer.y - box.top, box.height),
    )


def is_within_bounds(pointer: Point, box: BoundingBox) -> bool:
    """Whether the pointer lies on the image element (edges included).

    Placement is only offered for clicks inside the image; drags clamp instead.
    """
    return box.left <= pointer.x <= box.left + box.width and box.top <= pointer.y <= box.top + box.height

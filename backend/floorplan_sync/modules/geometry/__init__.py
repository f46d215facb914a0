from .schemas import BoundingBox, MarkerPosition, Point
from .services import clamp, is_within_bounds, to_percent

__all__ = ["BoundingBox", "MarkerPosition", "Point", "clamp", "is_within_bounds", "to_percent"]

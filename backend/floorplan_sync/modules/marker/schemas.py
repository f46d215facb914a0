"""Pydantic schemas for floor plan markers."""

from datetime import datetime
from typing import Annotated, Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ..common.schemas import FrozenRecord
from ..geometry.schemas import BoundingBox, Point
from ..geometry.services import clamp, to_percent
from ..item.schemas import ItemType

MarkerId = Union[int, str]


def _item_id_to_str(v: Any) -> Any:
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class MarkerCreate(BaseModel):
    """Schema for placing a new marker.

    Coordinates outside [0, 100] are clamped rather than rejected.
    """

    floor_plan_id: int = Field(description="Floor plan the marker belongs to")
    page_number: Annotated[int, Field(ge=1, description="1-based page the marker sits on")] = 1
    item_type: ItemType = Field(description="Kind of item the marker points at")
    item_id: Annotated[str, Field(min_length=1, max_length=64, description="Id of the referenced item")]
    x_percent: float = Field(description="Horizontal position, percent of image width")
    y_percent: float = Field(description="Vertical position, percent of image height")

    @field_validator("item_id", mode="before")
    @classmethod
    def validate_item_id(cls, v: Any) -> Any:
        return _item_id_to_str(v)

    @field_validator("x_percent", "y_percent")
    @classmethod
    def clamp_percent(cls, v: float) -> float:
        return clamp(v)

    @classmethod
    def from_pointer(
        cls,
        floor_plan_id: int,
        page_number: int,
        item_type: ItemType,
        item_id: str,
        pointer: Point,
        box: BoundingBox,
    ) -> "MarkerCreate":
        """Build a create payload from a click on the rendered image."""
        position = to_percent(pointer, box)
        return cls(
            floor_plan_id=floor_plan_id,
            page_number=page_number,
            item_type=item_type,
            item_id=item_id,
            x_percent=position.x_percent,
            y_percent=position.y_percent,
        )


class MarkerReposition(BaseModel):
    """Schema for moving an existing marker."""

    x_percent: float = Field(description="New horizontal position, clamped into [0, 100]")
    y_percent: float = Field(description="New vertical position, clamped into [0, 100]")

    @field_validator("x_percent", "y_percent")
    @classmethod
    def clamp_percent(cls, v: float) -> float:
        return clamp(v)


class MarkerRead(FrozenRecord):
    """A marker as held in the local mirror.

    ``id`` is a string temporary id until the create is confirmed, then the
    integer id assigned by the store.
    """

    id: MarkerId
    floor_plan_id: int
    page_number: int
    item_type: ItemType
    item_id: str
    x_percent: float
    y_percent: float
    created_at: Optional[datetime] = None

    @field_validator("item_id", mode="before")
    @classmethod
    def validate_item_id(cls, v: Any) -> Any:
        return _item_id_to_str(v)


class MarkerLocation(MarkerRead):
    """A marker together with the floor plan it sits on."""

    project_id: int
    floor_plan_name: str


class MarkerLocationList(BaseModel):
    """Schema for the markers placed for one item."""

    item_type: ItemType
    item_id: str
    markers: List[MarkerLocation]

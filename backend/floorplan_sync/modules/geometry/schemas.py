"""Pydantic schemas for marker geometry."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

PERCENT_MIN = 0.0
PERCENT_MAX = 100.0

Percent = Annotated[float, Field(ge=PERCENT_MIN, le=PERCENT_MAX, description="Percentage of the image extent")]


class Point(BaseModel):
    """A pointer position in client (viewport) coordinates."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class BoundingBox(BaseModel):
    """The rendered box of the image element, in the same coordinates as ``Point``.

    Reflects whatever zoom or pan is applied for display; percentages computed
    against it do not.
    """

    model_config = ConfigDict(frozen=True)

    left: float = 0.0
    top: float = 0.0
    width: Annotated[float, Field(ge=0)]
    height: Annotated[float, Field(ge=0)]


class MarkerPosition(BaseModel):
    """Viewport-independent marker position."""

    model_config = ConfigDict(frozen=True)

    x_percent: Percent
    y_percent: Percent

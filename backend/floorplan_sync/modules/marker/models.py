"""SQLAlchemy model for floor plan markers."""

from sqlalchemy import Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class FloorPlanMarker(Base, TimestampMixin):
    """A positioned pointer from a floor plan page to an external work item.

    Holds no item data; the item is joined in at read time.
    """

    __tablename__ = "floor_plan_markers"
    __table_args__ = (Index("ix_floor_plan_markers_item", "item_type", "item_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    floor_plan_id: Mapped[int] = mapped_column(Integer, ForeignKey("floor_plans.id"), index=True)
    page_number: Mapped[int] = mapped_column(Integer)
    item_type: Mapped[str] = mapped_column(String(32))
    item_id: Mapped[str] = mapped_column(String(64))
    x_percent: Mapped[float] = mapped_column(Float)
    y_percent: Mapped[float] = mapped_column(Float)

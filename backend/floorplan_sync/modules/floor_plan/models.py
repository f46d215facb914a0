"""SQLAlchemy models for floor plans and their named pages."""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import ActiveFlagMixin, TimestampMixin
from ...infrastructure.database.session import Base


class FloorPlan(Base, ActiveFlagMixin, TimestampMixin):
    """An uploaded drawing (image or multi-page PDF) belonging to a project.

    The file itself lives in external storage; only its path is kept here.
    Floor plans are soft-deleted through ``is_active`` and listed by
    ``sort_order``.
    """

    __tablename__ = "floor_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    project_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(255))
    file_path: Mapped[str] = mapped_column(String(1024))
    file_type: Mapped[str] = mapped_column(String(16), default="image")
    page_count: Mapped[int] = mapped_column(Integer, default=1)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    uploaded_by: Mapped[Optional[str]] = mapped_column(String(255), default=None)


class FloorPlanPage(Base, TimestampMixin):
    """A user-assigned name for one page of a floor plan.

    Rows exist only for pages someone has named.
    """

    __tablename__ = "floor_plan_pages"
    __table_args__ = (UniqueConstraint("floor_plan_id", "page_number", name="uq_floor_plan_page_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    floor_plan_id: Mapped[int] = mapped_column(Integer, ForeignKey("floor_plans.id"), index=True)
    page_number: Mapped[int] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(String(255))

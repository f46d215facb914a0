from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime
from sqlalchemy.orm import Mapped, MappedAsDataclass, mapped_column


class TimestampMixin(MappedAsDataclass):
    """Mixin for adding created_at and updated_at timestamp columns.

    Both timestamps are timezone-aware UTC values and are excluded from
    dataclass initialization (``init=False``) so callers cannot forge them.
    ``updated_at`` is refreshed by the SQL gateway on every update.

    Example:
        ```python
        class FloorPlanMarker(Base, TimestampMixin):
            __tablename__ = "floor_plan_markers"
            ...

        marker = FloorPlanMarker(floor_plan_id=1, page_number=1, ...)
        # marker.created_at and marker.updated_at are set on construction
        ```
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        init=False,
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default_factory=lambda: datetime.now(UTC),
        nullable=True,
        init=False,
    )


class ActiveFlagMixin(MappedAsDataclass):
    """Mixin for rows that are retired with a flag instead of being deleted.

    Floor plans stay in the table while markers or uploads may still reference
    them; readers filter on ``is_active``.
    """

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
        init=False,
    )

"""``RemoteGateway`` backed by the SQL database."""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import AsyncIterator, Dict, List, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import DataError, DisconnectionError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...modules.common.exceptions import ConstraintError, GatewayError, NetworkError, NotFoundError
from ...modules.floor_plan.models import FloorPlan, FloorPlanPage
from ...modules.floor_plan.schemas import FloorPlanCreate, FloorPlanRead, FloorPlanUpdate, PageRead
from ...modules.item.schemas import ItemType
from ...modules.marker.models import FloorPlanMarker
from ...modules.marker.schemas import MarkerCreate, MarkerLocation, MarkerRead, MarkerReposition
from ..logging import get_logger
from .base import RemoteGateway

logger = get_logger(__name__)


def _floor_plan_read(row: FloorPlan, pages: Sequence[PageRead] = (), markers: Sequence[MarkerRead] = ()) -> FloorPlanRead:
    return FloorPlanRead(
        id=row.id,
        project_id=row.project_id,
        name=row.name,
        file_path=row.file_path,
        file_type=row.file_type,
        page_count=row.page_count,
        sort_order=row.sort_order,
        is_active=row.is_active,
        uploaded_by=row.uploaded_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
        pages=tuple(pages),
        markers=tuple(markers),
    )


class SqlAlchemyGateway(RemoteGateway):
    """Persists floor plans, pages and markers through async SQLAlchemy sessions.

    Each call runs in its own session and transaction. Driver and pool errors
    are translated into the gateway error taxonomy:

    - ``IntegrityError``/``DataError`` -> ``ConstraintError``
    - ``OperationalError``/``InterfaceError``/``DisconnectionError``/pool
      timeouts -> ``NetworkError``
    - missing rows -> ``NotFoundError``

    Args:
        session_factory: Session factory bound to the database engine
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    yield db
        except GatewayError:
            raise
        except (IntegrityError, DataError) as e:
            logger.warning(f"{operation} rejected by the database: {e.orig}")
            raise ConstraintError(f"{operation} rejected: {e.orig}") from e
        except (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError) as e:
            logger.warning(f"{operation} failed to reach the database: {e}")
            raise NetworkError(f"{operation} failed: database unavailable") from e

    async def list_with_joins(self, project_id: int) -> List[FloorPlanRead]:
        async with self._session("List floor plans") as db:
            result = await db.execute(
                select(FloorPlan)
                .where(FloorPlan.project_id == project_id, FloorPlan.is_active.is_(True))
                .order_by(FloorPlan.sort_order, FloorPlan.id)
            )
            floor_plans = list(result.scalars().all())
            ids = [floor_plan.id for floor_plan in floor_plans]
            if not ids:
                return []

            pages: Dict[int, List[PageRead]] = {floor_plan_id: [] for floor_plan_id in ids}
            page_rows = await db.execute(
                select(FloorPlanPage)
                .where(FloorPlanPage.floor_plan_id.in_(ids))
                .order_by(FloorPlanPage.page_number)
            )
            for page in page_rows.scalars():
                pages[page.floor_plan_id].append(PageRead.model_validate(page))

            markers: Dict[int, List[MarkerRead]] = {floor_plan_id: [] for floor_plan_id in ids}
            marker_rows = await db.execute(
                select(FloorPlanMarker)
                .where(FloorPlanMarker.floor_plan_id.in_(ids))
                .order_by(FloorPlanMarker.created_at, FloorPlanMarker.id)
            )
            for marker in marker_rows.scalars():
                markers[marker.floor_plan_id].append(MarkerRead.model_validate(marker))

            return [_floor_plan_read(row, pages[row.id], markers[row.id]) for row in floor_plans]

    async def create_floor_plan(self, project_id: int, data: FloorPlanCreate) -> FloorPlanRead:
        async with self._session("Create floor plan") as db:
            last = await db.execute(
                select(FloorPlan.sort_order)
                .where(FloorPlan.project_id == project_id, FloorPlan.is_active.is_(True))
                .order_by(FloorPlan.sort_order.desc())
                .limit(1)
            )
            last_sort_order = last.scalar_one_or_none()
            row = FloorPlan(
                project_id=project_id,
                name=data.name,
                file_path=data.file_path,
                file_type=data.file_type.value,
                page_count=data.page_count,
                sort_order=0 if last_sort_order is None else last_sort_order + 1,
                uploaded_by=data.uploaded_by,
            )
            db.add(row)
            await db.flush()
            return _floor_plan_read(row)

    async def update_floor_plan(self, floor_plan_id: int, data: FloorPlanUpdate) -> FloorPlanRead:
        async with self._session("Update floor plan") as db:
            row = await self._get_active_floor_plan(db, floor_plan_id)
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(row, field, value)
            row.updated_at = datetime.now(UTC)
            await db.flush()
            return _floor_plan_read(row)

    async def delete_floor_plan(self, floor_plan_id: int) -> None:
        async with self._session("Delete floor plan") as db:
            row = await self._get_active_floor_plan(db, floor_plan_id)
            row.is_active = False
            row.updated_at = datetime.now(UTC)

    async def reorder_floor_plans(self, project_id: int, floor_plan_ids: Sequence[int]) -> None:
        async with self._session("Reorder floor plans") as db:
            for index, floor_plan_id in enumerate(floor_plan_ids):
                result = await db.execute(
                    update(FloorPlan)
                    .where(FloorPlan.id == floor_plan_id, FloorPlan.project_id == project_id)
                    .values(sort_order=index)
                )
                if result.rowcount == 0:
                    raise NotFoundError(f"Floor plan {floor_plan_id} not found in project {project_id}")

    async def upsert_page(self, floor_plan_id: int, page_number: int, name: str) -> PageRead:
        async with self._session("Rename page") as db:
            await self._get_active_floor_plan(db, floor_plan_id)
            result = await db.execute(
                select(FloorPlanPage).where(
                    FloorPlanPage.floor_plan_id == floor_plan_id, FloorPlanPage.page_number == page_number
                )
            )
            page = result.scalar_one_or_none()
            if page is None:
                page = FloorPlanPage(floor_plan_id=floor_plan_id, page_number=page_number, name=name)
                db.add(page)
            else:
                page.name = name
                page.updated_at = datetime.now(UTC)
            await db.flush()
            return PageRead.model_validate(page)

    async def list_pages(self, floor_plan_id: int) -> List[PageRead]:
        async with self._session("List pages") as db:
            result = await db.execute(
                select(FloorPlanPage)
                .where(FloorPlanPage.floor_plan_id == floor_plan_id)
                .order_by(FloorPlanPage.page_number)
            )
            return [PageRead.model_validate(page) for page in result.scalars()]

    async def create_marker(self, data: MarkerCreate) -> MarkerRead:
        async with self._session("Create marker") as db:
            floor_plan = await self._get_active_floor_plan(db, data.floor_plan_id)
            if data.page_number > floor_plan.page_count:
                raise ConstraintError(
                    f"Page {data.page_number} exceeds page count {floor_plan.page_count} of floor plan {floor_plan.id}"
                )
            row = FloorPlanMarker(
                floor_plan_id=data.floor_plan_id,
                page_number=data.page_number,
                item_type=data.item_type.value,
                item_id=data.item_id,
                x_percent=data.x_percent,
                y_percent=data.y_percent,
            )
            db.add(row)
            await db.flush()
            return MarkerRead.model_validate(row)

    async def update_marker(self, marker_id: int, data: MarkerReposition) -> MarkerRead:
        async with self._session("Move marker") as db:
            row = await self._get_marker(db, marker_id)
            row.x_percent = data.x_percent
            row.y_percent = data.y_percent
            row.updated_at = datetime.now(UTC)
            await db.flush()
            return MarkerRead.model_validate(row)

    async def delete_marker(self, marker_id: int) -> None:
        async with self._session("Delete marker") as db:
            row = await self._get_marker(db, marker_id)
            await db.delete(row)

    async def list_markers(self, floor_plan_id: int) -> List[MarkerRead]:
        async with self._session("List markers") as db:
            result = await db.execute(
                select(FloorPlanMarker)
                .where(FloorPlanMarker.floor_plan_id == floor_plan_id)
                .order_by(FloorPlanMarker.created_at, FloorPlanMarker.id)
            )
            return [MarkerRead.model_validate(row) for row in result.scalars()]

    async def list_markers_for_item(self, item_type: ItemType, item_id: str) -> List[MarkerLocation]:
        async with self._session("List markers for item") as db:
            result = await db.execute(
                select(FloorPlanMarker, FloorPlan.project_id, FloorPlan.name)
                .join(FloorPlan, FloorPlanMarker.floor_plan_id == FloorPlan.id)
                .where(
                    FloorPlanMarker.item_type == item_type.value,
                    FloorPlanMarker.item_id == str(item_id),
                    FloorPlan.is_active.is_(True),
                )
                .order_by(FloorPlan.sort_order, FloorPlanMarker.id)
            )
            return [
                MarkerLocation(
                    **MarkerRead.model_validate(marker).model_dump(),
                    project_id=project_id,
                    floor_plan_name=floor_plan_name,
                )
                for marker, project_id, floor_plan_name in result.all()
            ]

    async def _get_active_floor_plan(self, db: AsyncSession, floor_plan_id: int) -> FloorPlan:
        row = await db.get(FloorPlan, floor_plan_id)
        if row is None or not row.is_active:
            raise NotFoundError(f"Floor plan {floor_plan_id} not found")
        return row

    async def _get_marker(self, db: AsyncSession, marker_id: int) -> FloorPlanMarker:
        if not isinstance(marker_id, int):
            raise NotFoundError(f"Marker {marker_id} not found")
        row = await db.get(FloorPlanMarker, marker_id)
        if row is None:
            raise NotFoundError(f"Marker {marker_id} not found")
        return row

"""Test configuration and fixtures for the floor plan marker sync service."""

import os

# Must be set before the application modules build their engine
os.environ["SQLITE_URI"] = ":memory:"
os.environ["SQLITE_ASYNC_PREFIX"] = "sqlite+aiosqlite:///"

import asyncio
from collections import defaultdict, deque
from datetime import UTC, datetime
from itertools import count
from typing import Deque, Dict, List, Optional, Sequence, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from floorplan_sync.infrastructure.config.settings import MarkerUniquenessPolicy, get_settings
from floorplan_sync.infrastructure.database.session import build_engine, create_tables
from floorplan_sync.infrastructure.logging import get_mutation_id
from floorplan_sync.infrastructure.logging.config import configure_testing_logging
from floorplan_sync.infrastructure.sync.base import RemoteGateway
from floorplan_sync.infrastructure.sync.engine import MutationEngine
from floorplan_sync.infrastructure.sync.manager import SyncManager
from floorplan_sync.infrastructure.sync.sql_gateway import SqlAlchemyGateway
from floorplan_sync.interfaces.api.dependencies import get_sync_manager
from floorplan_sync.interfaces.main import app
from floorplan_sync.modules.common.exceptions import ConstraintError, NotFoundError
from floorplan_sync.modules.floor_plan.models import FloorPlan  # noqa: F401
from floorplan_sync.modules.floor_plan.schemas import (
    FileType,
    FloorPlanCreate,
    FloorPlanRead,
    FloorPlanUpdate,
    PageRead,
)
from floorplan_sync.modules.item.schemas import ItemType
from floorplan_sync.modules.marker.models import FloorPlanMarker  # noqa: F401
from floorplan_sync.modules.marker.schemas import MarkerCreate, MarkerLocation, MarkerRead, MarkerReposition

configure_testing_logging()


class FakeGateway(RemoteGateway):
    """In-memory gateway with per-operation failure injection and hold gates.

    ``fail(operation, error)`` makes the next call of ``operation`` raise
    ``error``; ``hold(operation)`` makes the next call wait on the returned
    event before doing anything. Both are consumed when the call starts, so a
    held call fails with the error that was queued when it began.
    ``hold_reply(operation)`` lets the next marker write commit, then waits on
    the returned event before answering.
    """

    def __init__(self):
        self.floor_plans: Dict[int, FloorPlanRead] = {}
        self.pages: Dict[Tuple[int, int], PageRead] = {}
        self.markers: Dict[int, MarkerRead] = {}
        self.calls: List[str] = []
        self.mutation_ids: List[Optional[str]] = []
        self._failures: Dict[str, Deque[Exception]] = defaultdict(deque)
        self._gates: Dict[str, Deque[asyncio.Event]] = defaultdict(deque)
        self._reply_gates: Dict[str, Deque[asyncio.Event]] = defaultdict(deque)
        self._floor_plan_ids = count(1)
        self._page_ids = count(1)
        self._marker_ids = count(1)

    def fail(self, operation: str, error: Exception) -> None:
        self._failures[operation].append(error)

    def hold(self, operation: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[operation].append(gate)
        return gate

    def hold_reply(self, operation: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._reply_gates[operation].append(gate)
        return gate

    def call_count(self, operation: str) -> int:
        return self.calls.count(operation)

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        self.mutation_ids.append(get_mutation_id())
        error = self._failures[operation].popleft() if self._failures[operation] else None
        gate = self._gates[operation].popleft() if self._gates[operation] else None
        if gate is not None:
            await gate.wait()
        if error is not None:
            raise error

    async def _leave(self, operation: str) -> None:
        if self._reply_gates[operation]:
            await self._reply_gates[operation].popleft().wait()

    def seed_floor_plan(
        self,
        project_id: int,
        name: str,
        page_count: int = 1,
        file_type: FileType = FileType.IMAGE,
        sort_order: Optional[int] = None,
    ) -> FloorPlanRead:
        floor_plan_id = next(self._floor_plan_ids)
        if sort_order is None:
            sort_order = len([fp for fp in self.floor_plans.values() if fp.project_id == project_id])
        floor_plan = FloorPlanRead(
            id=floor_plan_id,
            project_id=project_id,
            name=name,
            file_path=f"projects/{project_id}/floor-plans/{floor_plan_id}.png",
            file_type=file_type,
            page_count=page_count,
            sort_order=sort_order,
            created_at=datetime.now(UTC),
        )
        self.floor_plans[floor_plan_id] = floor_plan
        return floor_plan

    def seed_marker(
        self,
        floor_plan_id: int,
        item_type: ItemType,
        item_id: str,
        x_percent: float,
        y_percent: float,
        page_number: int = 1,
    ) -> MarkerRead:
        marker = MarkerRead(
            id=next(self._marker_ids),
            floor_plan_id=floor_plan_id,
            page_number=page_number,
            item_type=item_type,
            item_id=item_id,
            x_percent=x_percent,
            y_percent=y_percent,
            created_at=datetime.now(UTC),
        )
        self.markers[marker.id] = marker
        return marker

    def seed_page(self, floor_plan_id: int, page_number: int, name: str) -> PageRead:
        page = PageRead(id=next(self._page_ids), floor_plan_id=floor_plan_id, page_number=page_number, name=name)
        self.pages[(floor_plan_id, page_number)] = page
        return page

    def _active(self, floor_plan_id: int) -> FloorPlanRead:
        floor_plan = self.floor_plans.get(floor_plan_id)
        if floor_plan is None or not floor_plan.is_active:
            raise NotFoundError(f"Floor plan {floor_plan_id} not found")
        return floor_plan

    def _compose(self, floor_plan: FloorPlanRead) -> FloorPlanRead:
        pages = sorted(
            (page for (fp_id, _), page in self.pages.items() if fp_id == floor_plan.id), key=lambda p: p.page_number
        )
        markers = sorted((m for m in self.markers.values() if m.floor_plan_id == floor_plan.id), key=lambda m: m.id)
        return floor_plan.model_copy(update={"pages": tuple(pages), "markers": tuple(markers)})

    async def list_with_joins(self, project_id: int) -> List[FloorPlanRead]:
        await self._enter("list_with_joins")
        active = [fp for fp in self.floor_plans.values() if fp.project_id == project_id and fp.is_active]
        return [self._compose(fp) for fp in sorted(active, key=lambda fp: (fp.sort_order, fp.id))]

    async def create_floor_plan(self, project_id: int, data: FloorPlanCreate) -> FloorPlanRead:
        await self._enter("create_floor_plan")
        orders = [fp.sort_order for fp in self.floor_plans.values() if fp.project_id == project_id and fp.is_active]
        floor_plan = FloorPlanRead(
            id=next(self._floor_plan_ids),
            project_id=project_id,
            name=data.name,
            file_path=data.file_path,
            file_type=data.file_type,
            page_count=data.page_count,
            sort_order=max(orders) + 1 if orders else 0,
            uploaded_by=data.uploaded_by,
            created_at=datetime.now(UTC),
        )
        self.floor_plans[floor_plan.id] = floor_plan
        return floor_plan

    async def update_floor_plan(self, floor_plan_id: int, data: FloorPlanUpdate) -> FloorPlanRead:
        await self._enter("update_floor_plan")
        floor_plan = self._active(floor_plan_id).model_copy(update={"name": data.name, "updated_at": datetime.now(UTC)})
        self.floor_plans[floor_plan_id] = floor_plan
        return floor_plan

    async def delete_floor_plan(self, floor_plan_id: int) -> None:
        await self._enter("delete_floor_plan")
        self.floor_plans[floor_plan_id] = self._active(floor_plan_id).model_copy(update={"is_active": False})

    async def reorder_floor_plans(self, project_id: int, floor_plan_ids: Sequence[int]) -> None:
        await self._enter("reorder_floor_plans")
        for floor_plan_id in floor_plan_ids:
            floor_plan = self.floor_plans.get(floor_plan_id)
            if floor_plan is None or floor_plan.project_id != project_id:
                raise NotFoundError(f"Floor plan {floor_plan_id} not found in project {project_id}")
        for index, floor_plan_id in enumerate(floor_plan_ids):
            self.floor_plans[floor_plan_id] = self.floor_plans[floor_plan_id].model_copy(update={"sort_order": index})

    async def upsert_page(self, floor_plan_id: int, page_number: int, name: str) -> PageRead:
        await self._enter("upsert_page")
        self._active(floor_plan_id)
        existing = self.pages.get((floor_plan_id, page_number))
        page = PageRead(
            id=existing.id if existing else next(self._page_ids),
            floor_plan_id=floor_plan_id,
            page_number=page_number,
            name=name,
        )
        self.pages[(floor_plan_id, page_number)] = page
        return page

    async def list_pages(self, floor_plan_id: int) -> List[PageRead]:
        await self._enter("list_pages")
        return sorted(
            (page for (fp_id, _), page in self.pages.items() if fp_id == floor_plan_id), key=lambda p: p.page_number
        )

    async def create_marker(self, data: MarkerCreate) -> MarkerRead:
        await self._enter("create_marker")
        floor_plan = self._active(data.floor_plan_id)
        if data.page_number > floor_plan.page_count:
            raise ConstraintError(f"Page {data.page_number} exceeds page count {floor_plan.page_count}")
        marker = MarkerRead(id=next(self._marker_ids), created_at=datetime.now(UTC), **data.model_dump())
        self.markers[marker.id] = marker
        await self._leave("create_marker")
        return marker

    async def update_marker(self, marker_id: int, data: MarkerReposition) -> MarkerRead:
        await self._enter("update_marker")
        if marker_id not in self.markers:
            raise NotFoundError(f"Marker {marker_id} not found")
        marker = self.markers[marker_id].model_copy(update=data.model_dump())
        self.markers[marker_id] = marker
        await self._leave("update_marker")
        return marker

    async def delete_marker(self, marker_id: int) -> None:
        await self._enter("delete_marker")
        if marker_id not in self.markers:
            raise NotFoundError(f"Marker {marker_id} not found")
        del self.markers[marker_id]
        await self._leave("delete_marker")

    async def list_markers(self, floor_plan_id: int) -> List[MarkerRead]:
        await self._enter("list_markers")
        return sorted((m for m in self.markers.values() if m.floor_plan_id == floor_plan_id), key=lambda m: m.id)

    async def list_markers_for_item(self, item_type: ItemType, item_id: str) -> List[MarkerLocation]:
        await self._enter("list_markers_for_item")
        locations = []
        for marker in sorted(self.markers.values(), key=lambda m: m.id):
            floor_plan = self.floor_plans[marker.floor_plan_id]
            if marker.item_type == item_type and marker.item_id == str(item_id) and floor_plan.is_active:
                locations.append(
                    MarkerLocation(
                        **marker.model_dump(), project_id=floor_plan.project_id, floor_plan_name=floor_plan.name
                    )
                )
        return locations


async def run_until_blocked() -> None:
    """Let freshly created tasks run up to their first real suspension point."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def gateway() -> FakeGateway:
    """Gateway seeded with two floor plans in project 1 and one in project 2.

    ids: Level 1 = 1 (one page, markers 1 and 2), Level 2 = 2 (three pages,
    marker 3 on page 2), Annex = 3 (project 2, marker 4).
    """
    fake = FakeGateway()
    level_1 = fake.seed_floor_plan(project_id=1, name="Level 1")
    level_2 = fake.seed_floor_plan(project_id=1, name="Level 2", page_count=3, file_type=FileType.PDF)
    annex = fake.seed_floor_plan(project_id=2, name="Annex")
    fake.seed_marker(level_1.id, ItemType.RFI, "1", 10.0, 20.0)
    fake.seed_marker(level_1.id, ItemType.TASK, "7", 30.0, 40.0)
    fake.seed_marker(level_2.id, ItemType.SUBMITTAL, "5", 50.0, 50.0, page_number=2)
    fake.seed_marker(annex.id, ItemType.RFI, "1", 5.0, 5.0)
    fake.seed_page(level_2.id, 1, "Ground")
    return fake


@pytest_asyncio.fixture
async def engine(gateway: FakeGateway) -> MutationEngine:
    """Loaded mutation engine for project 1."""
    mutation_engine = MutationEngine(
        1,
        gateway,
        temp_id_prefix="tmp-",
        uniqueness=MarkerUniquenessPolicy.FLOOR_PLAN,
        refresh_on_not_found=True,
    )
    await mutation_engine.load()
    return mutation_engine


@pytest.fixture
def sync_manager(gateway: FakeGateway) -> SyncManager:
    return SyncManager(gateway)


@pytest_asyncio.fixture
async def sql_engine():
    """Fresh in-memory SQLite database with all tables."""
    database = build_engine(get_settings())
    await create_tables(database)
    yield database
    await database.dispose()


@pytest.fixture
def session_factory(sql_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(sql_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def sql_gateway(session_factory) -> SqlAlchemyGateway:
    return SqlAlchemyGateway(session_factory)


@pytest_asyncio.fixture
async def client(sync_manager: SyncManager):
    """HTTP client whose requests are served by a sync manager over the fake gateway."""
    app.dependency_overrides = {}
    app.dependency_overrides[get_sync_manager] = lambda: sync_manager

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}
    sync_manager.close_all()

"""Abstract interface to the persistent store behind the local mirror."""

from abc import ABC, abstractmethod
from typing import List, Sequence

from ...modules.floor_plan.schemas import FloorPlanCreate, FloorPlanRead, FloorPlanUpdate, PageRead
from ...modules.item.schemas import ItemType
from ...modules.marker.schemas import MarkerCreate, MarkerLocation, MarkerRead, MarkerReposition


class RemoteGateway(ABC):
    """Entity-scoped operations against the persistent store.

    Every call either returns the committed record(s) or raises a
    ``GatewayError`` subclass:

    - ``NetworkError``: the store could not be reached; safe to retry.
    - ``ConstraintError``: the store rejected the payload.
    - ``NotFoundError``: the targeted entity no longer exists.

    Anything else raised is treated as an unclassified failure. A call never
    succeeds partially.
    """

    @abstractmethod
    async def list_with_joins(self, project_id: int) -> List[FloorPlanRead]:
        """Active floor plans of a project with their pages and markers, by sort order."""
        pass

    @abstractmethod
    async def create_floor_plan(self, project_id: int, data: FloorPlanCreate) -> FloorPlanRead:
        """Register an uploaded floor plan at the end of the project's order."""
        pass

    @abstractmethod
    async def update_floor_plan(self, floor_plan_id: int, data: FloorPlanUpdate) -> FloorPlanRead:
        """Update floor plan fields. The returned record carries no pages or markers."""
        pass

    @abstractmethod
    async def delete_floor_plan(self, floor_plan_id: int) -> None:
        """Soft-delete a floor plan."""
        pass

    @abstractmethod
    async def reorder_floor_plans(self, project_id: int, floor_plan_ids: Sequence[int]) -> None:
        """Set ``sort_order`` of each listed floor plan to its index."""
        pass

    @abstractmethod
    async def upsert_page(self, floor_plan_id: int, page_number: int, name: str) -> PageRead:
        """Name a page, creating its row when none exists."""
        pass

    @abstractmethod
    async def list_pages(self, floor_plan_id: int) -> List[PageRead]:
        pass

    @abstractmethod
    async def create_marker(self, data: MarkerCreate) -> MarkerRead:
        pass

    @abstractmethod
    async def update_marker(self, marker_id: int, data: MarkerReposition) -> MarkerRead:
        pass

    @abstractmethod
    async def delete_marker(self, marker_id: int) -> None:
        pass

    @abstractmethod
    async def list_markers(self, floor_plan_id: int) -> List[MarkerRead]:
        """Markers of one floor plan, oldest first."""
        pass

    @abstractmethod
    async def list_markers_for_item(self, item_type: ItemType, item_id: str) -> List[MarkerLocation]:
        """Every marker pointing at an item, with the floor plan it sits on."""
        pass

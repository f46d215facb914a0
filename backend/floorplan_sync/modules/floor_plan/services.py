"""Floor plan and page operations offered to API callers."""

from typing import List, Optional

from ...infrastructure.sync.engine import MutationEngine
from ..common.exceptions import ResourceNotFoundError
from ..common.notifications import LoggingNotifier, Notifier, notify_outcome
from .schemas import FloorPlanCreate, FloorPlanRead, PageRead


def step_page(current_page: int, delta: int, page_count: int) -> int:
    """Move ``delta`` pages from ``current_page``, staying within [1, page_count]."""
    return max(1, min(page_count, current_page + delta))


class FloorPlanService:
    """Service for managing a project's floor plans and page names.

    Args:
        notifier: Sink for user-facing success and failure messages
    """

    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier: Notifier = notifier or LoggingNotifier()

    async def list_floor_plans(self, engine: MutationEngine, refresh: bool = False) -> List[FloorPlanRead]:
        """Active floor plans of the engine's project, in display order.

        Args:
            engine: Mutation engine of the project
            refresh: Reload the mirror from the database first

        Returns:
            Floor plans with their pages and markers
        """
        if refresh:
            return await engine.refresh()
        return engine.floor_plans

    def get_floor_plan(self, floor_plan_id: int, engine: MutationEngine) -> FloorPlanRead:
        floor_plan = engine.store.get(floor_plan_id)
        if floor_plan is None:
            raise ResourceNotFoundError(f"Floor plan {floor_plan_id} not found in project {engine.project_id}")
        return floor_plan

    async def create_floor_plan(self, data: FloorPlanCreate, engine: MutationEngine) -> FloorPlanRead:
        """Register an uploaded floor plan at the end of the project's list."""
        with notify_outcome(self.notifier, "Floor plan uploaded", "Error uploading floor plan"):
            return await engine.create_floor_plan(data)

    async def rename_floor_plan(self, floor_plan_id: int, name: str, engine: MutationEngine) -> FloorPlanRead:
        with notify_outcome(self.notifier, "Floor plan renamed", "Error renaming floor plan"):
            return await engine.rename_floor_plan(floor_plan_id, name)

    async def delete_floor_plan(self, floor_plan_id: int, engine: MutationEngine) -> bool:
        """Soft-delete a floor plan. Its markers stay in the database."""
        with notify_outcome(self.notifier, "Floor plan deleted", "Error deleting floor plan"):
            await engine.delete_floor_plan(floor_plan_id)
        return True

    async def reorder_floor_plans(self, floor_plan_ids: List[int], engine: MutationEngine) -> List[FloorPlanRead]:
        with notify_outcome(self.notifier, "Floor plans reordered", "Error reordering floor plans"):
            return await engine.reorder_floor_plans(floor_plan_ids)

    async def rename_page(
        self,
        floor_plan_id: int,
        page_number: int,
        name: str,
        engine: MutationEngine,
    ) -> PageRead:
        """Name one page of a floor plan.

        Args:
            floor_plan_id: Floor plan owning the page
            page_number: 1-based page number
            name: New page name
            engine: Mutation engine of the project

        Returns:
            The committed page
        """
        with notify_outcome(self.notifier, "Page renamed", "Error renaming page"):
            return await engine.rename_page(floor_plan_id, page_number, name)

"""Marker projection API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from ....modules.common.utils.error_handler import handle_exception
from ....modules.floor_plan.services import FloorPlanService
from ....modules.projection.schemas import (
    ProjectionFilters,
    ProjectionRequest,
    ProjectionResponse,
    SelectableItemsRequest,
    SelectableItemsResponse,
)
from ....modules.projection.services import EnrichmentProjector
from ..dependencies import PrivilegedUser, ProjectEngine, get_floor_plan_service, get_projector

router = APIRouter(prefix="/projects/{project_id}/floor-plans/{floor_plan_id}", tags=["Projection"])


@router.post(
    "/projection",
    summary="Project Page Markers",
    description="""
    Joins the markers of one floor plan page with the items supplied by the
    caller and applies the viewer's filters.

    Markers whose item is missing from the supplied collections are left out.
    Each remaining marker carries its item, an overdue flag and its display
    color (overdue markers are red).

    - **page**: Page shown in the viewer
    - **item_type**: `rfi`, `submittal`, `task` or `all`
    - **status**: `open`, `closed` or `all`
    - **items**: RFIs, submittals and tasks to join against
    """,
    responses={
        200: {"description": "Enriched markers of the page"},
        404: {"description": "Floor plan not found"},
    },
)
async def project_markers(
    floor_plan_id: int,
    projection_request: ProjectionRequest,
    engine: ProjectEngine,
    can_edit: PrivilegedUser,
    projector: EnrichmentProjector = Depends(get_projector),
    floor_plan_service: FloorPlanService = Depends(get_floor_plan_service),
) -> ProjectionResponse:
    """Project the markers of a floor plan page."""
    try:
        floor_plan = floor_plan_service.get_floor_plan(floor_plan_id, engine)
        filters = ProjectionFilters(
            page=projection_request.page,
            item_type=projection_request.item_type,
            status=projection_request.status,
        )
        return projector.project(floor_plan, filters, projection_request.items, can_edit=can_edit)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.post(
    "/selectable-items",
    summary="List Selectable Items",
    description="""
    Lists the items of one type that can be linked from the add-marker dialog,
    optionally narrowed by a search term.

    RFIs match on number, subject and recipient; submittals on number, title,
    recipient and type; tasks on title and assignee. Items that already have a
    marker within the configured uniqueness scope are flagged `already_placed`.
    """,
    responses={
        200: {"description": "Items offered for placement"},
        404: {"description": "Floor plan not found"},
    },
)
async def list_selectable_items(
    floor_plan_id: int,
    selectable_request: SelectableItemsRequest,
    engine: ProjectEngine,
    projector: EnrichmentProjector = Depends(get_projector),
    floor_plan_service: FloorPlanService = Depends(get_floor_plan_service),
) -> SelectableItemsResponse:
    """List items selectable for a new marker."""
    try:
        floor_plan_service.get_floor_plan(floor_plan_id, engine)
        return projector.selectable_items(
            engine.floor_plans,
            floor_plan_id,
            selectable_request.page,
            selectable_request.item_type,
            selectable_request.items,
            search=selectable_request.search,
            policy=engine.uniqueness,
        )
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")

"""Floor plan API endpoints."""

from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from ....modules.common.utils.error_handler import handle_exception
from ....modules.floor_plan.schemas import (
    FloorPlanCreate,
    FloorPlanListResponse,
    FloorPlanRead,
    FloorPlanUpdate,
    PageRead,
    PageRename,
    ReorderRequest,
)
from ....modules.floor_plan.services import FloorPlanService
from ....modules.marker.schemas import MarkerRead
from ....modules.marker.services import MarkerService
from ..dependencies import PrivilegedUser, ProjectEngine, get_floor_plan_service, get_marker_service

router = APIRouter(prefix="/projects/{project_id}/floor-plans", tags=["Floor Plans"])


@router.get(
    "",
    summary="List Floor Plans",
    description="""
    Returns the active floor plans of a project in display order, each with its
    named pages and markers.

    The first request for a project loads the project's mirror from the
    database; later requests are served from the mirror, which already
    reflects optimistic changes still being saved.

    - **refresh**: Reload the mirror from the database first
    """,
    responses={
        200: {"description": "Floor plans of the project"},
        503: {"description": "Database unavailable"},
    },
)
async def list_floor_plans(
    project_id: int,
    engine: ProjectEngine,
    can_edit: PrivilegedUser,
    refresh: Annotated[bool, Query(description="Reload from the database")] = False,
    floor_plan_service: FloorPlanService = Depends(get_floor_plan_service),
) -> FloorPlanListResponse:
    """List the floor plans of a project."""
    try:
        floor_plans = await floor_plan_service.list_floor_plans(engine, refresh=refresh)
        return FloorPlanListResponse(project_id=project_id, floor_plans=floor_plans, can_edit=can_edit)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Register Floor Plan",
    description="""
    Registers a floor plan whose file has already been uploaded to storage.

    The floor plan is appended to the end of the project's order.

    - **name**: Display name
    - **file_path**: Storage path of the uploaded file
    - **file_type**: `image` or `pdf`
    - **page_count**: Number of pages (1 for images)
    """,
    responses={
        201: {"description": "Floor plan registered"},
        409: {"description": "Floor plan rejected by the database"},
        503: {"description": "Database unavailable"},
    },
    response_description="The registered floor plan",
)
async def create_floor_plan(
    floor_plan_data: FloorPlanCreate,
    engine: ProjectEngine,
    floor_plan_service: FloorPlanService = Depends(get_floor_plan_service),
) -> FloorPlanRead:
    """Register an uploaded floor plan."""
    try:
        return await floor_plan_service.create_floor_plan(floor_plan_data, engine)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.put(
    "/order",
    summary="Reorder Floor Plans",
    description="""
    Sets the display order of the project's floor plans.

    Each listed floor plan's sort order becomes its index in the list. The new
    order is visible immediately and reverted if the database rejects it.
    """,
    responses={
        200: {"description": "Floor plans in their new order"},
        422: {"description": "Duplicate or unknown floor plan ids"},
        503: {"description": "Database unavailable, order reverted"},
    },
)
async def reorder_floor_plans(
    reorder_data: ReorderRequest,
    engine: ProjectEngine,
    floor_plan_service: FloorPlanService = Depends(get_floor_plan_service),
) -> List[FloorPlanRead]:
    """Reorder the floor plans of a project."""
    try:
        return await floor_plan_service.reorder_floor_plans(reorder_data.floor_plan_ids, engine)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.get(
    "/{floor_plan_id}",
    summary="Get Floor Plan",
    description="Returns one floor plan of the project, with its pages and markers, from the mirror.",
    responses={
        200: {"description": "Floor plan details"},
        404: {"description": "Floor plan not found"},
    },
)
async def get_floor_plan(
    floor_plan_id: int,
    engine: ProjectEngine,
    floor_plan_service: FloorPlanService = Depends(get_floor_plan_service),
) -> FloorPlanRead:
    """Get a floor plan by ID."""
    try:
        return floor_plan_service.get_floor_plan(floor_plan_id, engine)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.patch(
    "/{floor_plan_id}",
    summary="Rename Floor Plan",
    description="""
    Renames a floor plan. The new name is visible immediately and reverted if
    the database rejects it.
    """,
    responses={
        200: {"description": "Renamed floor plan"},
        404: {"description": "Floor plan not found"},
        503: {"description": "Database unavailable, name reverted"},
    },
)
async def rename_floor_plan(
    floor_plan_id: int,
    update_data: FloorPlanUpdate,
    engine: ProjectEngine,
    floor_plan_service: FloorPlanService = Depends(get_floor_plan_service),
) -> FloorPlanRead:
    """Rename a floor plan."""
    try:
        return await floor_plan_service.rename_floor_plan(floor_plan_id, update_data.name, engine)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.delete(
    "/{floor_plan_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Floor Plan",
    description="""Soft-delete a floor plan.

    The floor plan is hidden from the project but kept in the database along
    with its markers. It disappears from the mirror immediately and comes back
    at its former position if the database rejects the deletion.

    - **floor_plan_id**: ID of the floor plan to delete
    """,
    responses={
        204: {"description": "Floor plan deleted"},
        404: {"description": "Floor plan not found"},
        503: {"description": "Database unavailable, floor plan restored"},
    },
)
async def delete_floor_plan(
    floor_plan_id: int,
    engine: ProjectEngine,
    floor_plan_service: FloorPlanService = Depends(get_floor_plan_service),
):
    """Soft-delete a floor plan."""
    try:
        await floor_plan_service.delete_floor_plan(floor_plan_id, engine)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.put(
    "/{floor_plan_id}/pages/{page_number}",
    summary="Rename Page",
    description="""
    Names one page of a floor plan. Pages without a name display as
    `Page {n}`; the page record is created the first time a page is named.
    """,
    responses={
        200: {"description": "Renamed page"},
        404: {"description": "Floor plan not found"},
        422: {"description": "Page number outside the floor plan"},
        503: {"description": "Database unavailable, name reverted"},
    },
)
async def rename_page(
    floor_plan_id: int,
    page_number: Annotated[int, Path(ge=1, description="1-based page number")],
    page_data: PageRename,
    engine: ProjectEngine,
    floor_plan_service: FloorPlanService = Depends(get_floor_plan_service),
) -> PageRead:
    """Rename a page of a floor plan."""
    try:
        return await floor_plan_service.rename_page(floor_plan_id, page_number, page_data.name, engine)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.get(
    "/{floor_plan_id}/markers",
    summary="Fetch Floor Plan Markers",
    description="""
    Reloads the markers of one floor plan from the database into the mirror and
    returns them. Markers still being saved are kept.
    """,
    responses={
        200: {"description": "Markers of the floor plan"},
        404: {"description": "Floor plan not found"},
        503: {"description": "Database unavailable"},
    },
)
async def fetch_markers(
    floor_plan_id: int,
    engine: ProjectEngine,
    marker_service: MarkerService = Depends(get_marker_service),
) -> List[MarkerRead]:
    """Fetch the markers of a floor plan."""
    try:
        return await marker_service.fetch_markers(floor_plan_id, engine)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")

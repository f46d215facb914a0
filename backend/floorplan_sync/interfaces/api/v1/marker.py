"""Marker API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from ....infrastructure.sync.base import RemoteGateway
from ....modules.common.utils.error_handler import handle_exception
from ....modules.item.schemas import ItemType
from ....modules.marker.schemas import MarkerCreate, MarkerLocationList, MarkerRead, MarkerReposition
from ....modules.marker.services import MarkerService
from ..dependencies import ProjectEngine, get_gateway, get_marker_service

router = APIRouter(tags=["Markers"])


@router.post(
    "/projects/{project_id}/markers",
    status_code=status.HTTP_201_CREATED,
    summary="Place Marker",
    description="""
    Places a marker on a floor plan page, pointing at an RFI, submittal or task.

    The marker shows up in the project's mirror right away under a temporary
    id, and is swapped for the saved marker once the database confirms it. If
    the database refuses, the marker is removed again.

    - **floor_plan_id**: Floor plan of the project
    - **page_number**: 1-based page, at most the floor plan's page count
    - **item_type**: `rfi`, `submittal` or `task`
    - **item_id**: Id of the item
    - **x_percent**, **y_percent**: Position in percent of the image, clamped into [0, 100]
    """,
    responses={
        201: {"description": "Marker placed"},
        404: {"description": "Floor plan not found"},
        409: {"description": "Marker rejected by the database"},
        422: {"description": "Page out of range or item already placed"},
        503: {"description": "Database unavailable, marker removed"},
    },
    response_description="The saved marker",
)
async def create_marker(
    marker_data: MarkerCreate,
    engine: ProjectEngine,
    marker_service: MarkerService = Depends(get_marker_service),
) -> MarkerRead:
    """Place a marker."""
    try:
        return await marker_service.create_marker(marker_data, engine)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.patch(
    "/projects/{project_id}/markers/{marker_id}",
    summary="Move Marker",
    description="""
    Moves a marker. Coordinates outside [0, 100] are clamped to the image edge.
    The marker returns to its previous position if the database refuses.
    """,
    responses={
        200: {"description": "Marker moved"},
        404: {"description": "Marker not found"},
        503: {"description": "Database unavailable, marker moved back"},
    },
)
async def reposition_marker(
    marker_id: int,
    position: MarkerReposition,
    engine: ProjectEngine,
    marker_service: MarkerService = Depends(get_marker_service),
) -> MarkerRead:
    """Move a marker."""
    try:
        return await marker_service.reposition_marker(marker_id, position, engine)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.delete(
    "/projects/{project_id}/markers/{marker_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove Marker",
    description="""Remove a marker from its floor plan.

    The marker disappears immediately and is put back at its former position if
    the database refuses the deletion.

    - **marker_id**: ID of the marker to remove
    """,
    responses={
        204: {"description": "Marker removed"},
        404: {"description": "Marker not found"},
        409: {"description": "Deletion rejected by the database, marker restored"},
        503: {"description": "Database unavailable, marker restored"},
    },
)
async def delete_marker(
    marker_id: int,
    engine: ProjectEngine,
    marker_service: MarkerService = Depends(get_marker_service),
):
    """Remove a marker."""
    try:
        await marker_service.delete_marker(marker_id, engine)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.get(
    "/markers/by-item/{item_type}/{item_id}",
    summary="Find Item Markers",
    description="""
    Lists every marker pointing at an item, with the floor plan it sits on.
    Read straight from the database; markers on deleted floor plans are left out.
    """,
    responses={
        200: {"description": "Markers of the item"},
        503: {"description": "Database unavailable"},
    },
)
async def get_markers_for_item(
    item_type: ItemType,
    item_id: str,
    gateway: RemoteGateway = Depends(get_gateway),
    marker_service: MarkerService = Depends(get_marker_service),
) -> MarkerLocationList:
    """Find where an item is placed."""
    try:
        return await marker_service.get_markers_for_item(item_type, item_id, gateway)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")

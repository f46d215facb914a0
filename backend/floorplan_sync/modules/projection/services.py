"""Marker enrichment and filtering for the floor plan viewer."""

from datetime import date
from typing import List, Optional

from ...infrastructure.config.settings import MarkerUniquenessPolicy, get_settings
from ..floor_plan.schemas import FloorPlanRead
from ..floor_plan.services import step_page
from ..item.registry import ItemRegistry
from ..item.schemas import ItemCollections, ItemType
from ..item.status import classify_status, is_overdue, marker_color
from ..marker.policy import placed_item_keys
from .schemas import (
    ALL,
    EnrichedMarker,
    ProjectionFilters,
    ProjectionResponse,
    SelectableItem,
    SelectableItemsResponse,
    StatusFilter,
    TypeFilter,
)


def project_markers(
    floor_plan: FloorPlanRead,
    current_page: int,
    filter_type: TypeFilter,
    filter_status: StatusFilter,
    registry: ItemRegistry,
    today: Optional[date] = None,
) -> List[EnrichedMarker]:
    """Enriched markers of one page, in the floor plan's marker order.

    Steps, in order: keep the current page; apply the type filter; resolve each
    item; apply the status filter; drop markers whose item is gone; attach the
    item with its overdue flag and color.

    Pure: inputs are never modified and equal inputs give equal output.

    Args:
        floor_plan: Floor plan with its markers
        current_page: Page shown in the viewer
        filter_type: Item type to keep, or ``"all"``
        filter_status: ``open``/``closed``, or ``"all"``
        registry: Item lookup
        today: Reference date for the overdue check (defaults to today)

    Returns:
        Markers that survive every filter, each carrying its item
    """
    today = today or date.today()
    enriched = []

    for marker in floor_plan.markers:
        if marker.page_number != current_page:
            continue
        if filter_type != ALL and marker.item_type != filter_type:
            continue

        item = registry.resolve(marker.item_type, marker.item_id)

        if filter_status != ALL and (
            item is None or classify_status(marker.item_type, item.status) != filter_status
        ):
            continue
        if item is None:
            continue

        enriched.append(
            EnrichedMarker(
                **marker.model_dump(),
                item=item,
                is_overdue=is_overdue(marker.item_type, item, today),
                color=marker_color(marker.item_type, item, today),
            )
        )

    return enriched


class EnrichmentProjector:
    """Builds viewer projections from mirrored floor plans and host-supplied items."""

    def project(
        self,
        floor_plan: FloorPlanRead,
        filters: ProjectionFilters,
        items: ItemCollections,
        can_edit: bool = False,
        today: Optional[date] = None,
    ) -> ProjectionResponse:
        """Project one page of a floor plan.

        Args:
            floor_plan: Mirrored floor plan
            filters: Page and filter selection
            items: Item collections to join against
            can_edit: Permission flag passed through for the caller
            today: Reference date for the overdue check

        Returns:
            Page details and its enriched markers
        """
        markers = project_markers(
            floor_plan,
            filters.page,
            filters.item_type,
            filters.status,
            ItemRegistry.from_collections(items),
            today,
        )
        return ProjectionResponse(
            floor_plan_id=floor_plan.id,
            page=filters.page,
            page_name=floor_plan.page_name(filters.page),
            page_count=floor_plan.page_count,
            previous_page=step_page(filters.page, -1, floor_plan.page_count),
            next_page=step_page(filters.page, 1, floor_plan.page_count),
            markers=markers,
            can_edit=can_edit,
        )

    def selectable_items(
        self,
        floor_plans: List[FloorPlanRead],
        floor_plan_id: int,
        page_number: int,
        item_type: ItemType,
        items: ItemCollections,
        search: Optional[str] = None,
        policy: Optional[MarkerUniquenessPolicy] = None,
        today: Optional[date] = None,
    ) -> SelectableItemsResponse:
        """Items of one type for the add-marker dialog.

        Items already placed within the uniqueness scope are listed but
        flagged, so the dialog can disable them.
        """
        policy = policy or get_settings().SYNC_MARKER_UNIQUENESS
        today = today or date.today()
        placed = placed_item_keys(floor_plans, floor_plan_id, page_number, policy)
        provider = ItemRegistry.from_collections(items).provider(item_type)

        selectable = [
            SelectableItem(
                item_type=item_type,
                item=item,
                already_placed=(item_type, item.id) in placed,
                is_overdue=is_overdue(item_type, item, today),
                color=marker_color(item_type, item, today),
            )
            for item in provider.search(search or "")
        ]
        return SelectableItemsResponse(items=selectable, total=len(selectable))

"""Scope rules for how often one item may be placed."""

from typing import Iterable, Set, Tuple

from ...infrastructure.config.settings import MarkerUniquenessPolicy
from ..floor_plan.schemas import FloorPlanRead
from ..item.schemas import ItemType

ItemKey = Tuple[ItemType, str]


def placed_item_keys(
    floor_plans: Iterable[FloorPlanRead],
    floor_plan_id: int,
    page_number: int,
    policy: MarkerUniquenessPolicy,
) -> Set[ItemKey]:
    """Items that already have a marker within the policy's scope.

    Args:
        floor_plans: Floor plans of the project, as mirrored locally
        floor_plan_id: Floor plan a new marker would go on
        page_number: Page a new marker would go on
        policy: Uniqueness scope

    Returns:
        ``(item_type, item_id)`` pairs that may not be placed again
    """
    if policy == MarkerUniquenessPolicy.NONE:
        return set()

    keys: Set[ItemKey] = set()
    for floor_plan in floor_plans:
        if policy != MarkerUniquenessPolicy.PROJECT and floor_plan.id != floor_plan_id:
            continue
        for marker in floor_plan.markers:
            if policy == MarkerUniquenessPolicy.PAGE and marker.page_number != page_number:
                continue
            keys.add((marker.item_type, marker.item_id))
    return keys

"""In-memory mirror of one project's floor plans."""

from itertools import count
from typing import Callable, Dict, Hashable, Iterable, Iterator, List, Optional, Sequence, Tuple

from ...modules.common.exceptions import ResourceNotFoundError
from ...modules.floor_plan.schemas import FloorPlanRead
from ...modules.marker.schemas import MarkerId, MarkerRead

FloorPlanUpdater = Callable[[FloorPlanRead], FloorPlanRead]
MarkerLookup = Tuple[FloorPlanRead, int, MarkerRead]


class LocalStore:
    """Order-preserving mirror ``floor_plan_id -> FloorPlanRead`` for a project.

    Records are frozen; every change swaps a whole floor plan, so readers always
    see a consistent snapshot.

    The store also hands out mutation sequence numbers. Each entity key maps to
    the sequence number of the last mutation that wrote it optimistically; the
    mutation engine only settles a mutation while its number is still current.
    ``load`` forgets every version so mutations started before a reload settle
    as no-ops.
    """

    def __init__(self, project_id: int):
        self.project_id = project_id
        self._floor_plans: Dict[int, FloorPlanRead] = {}
        self._versions: Dict[Hashable, int] = {}
        self._sequence = count(1)
        self.loaded = False

    def load(self, floor_plans: Iterable[FloorPlanRead]) -> None:
        """Replace the entire mirror."""
        self._floor_plans = {floor_plan.id: floor_plan for floor_plan in floor_plans}
        self._versions.clear()
        self.loaded = True

    def get(self, floor_plan_id: int) -> Optional[FloorPlanRead]:
        return self._floor_plans.get(floor_plan_id)

    def require(self, floor_plan_id: int) -> FloorPlanRead:
        floor_plan = self._floor_plans.get(floor_plan_id)
        if floor_plan is None:
            raise ResourceNotFoundError(f"Floor plan {floor_plan_id} not found in project {self.project_id}")
        return floor_plan

    def list(self) -> List[FloorPlanRead]:
        return list(self._floor_plans.values())

    def __iter__(self) -> Iterator[FloorPlanRead]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._floor_plans)

    def __contains__(self, floor_plan_id: object) -> bool:
        return floor_plan_id in self._floor_plans

    def snapshot(self) -> Tuple[FloorPlanRead, ...]:
        """Immutable view of the whole mirror."""
        return tuple(self._floor_plans.values())

    def patch(self, floor_plan_id: int, updater: FloorPlanUpdater) -> FloorPlanRead:
        """Apply a pure function to one floor plan and swap the result in.

        Raises:
            ResourceNotFoundError: If the floor plan is not mirrored
        """
        updated = updater(self.require(floor_plan_id))
        self._floor_plans[floor_plan_id] = updated
        return updated

    def insert(self, floor_plan: FloorPlanRead, index: Optional[int] = None) -> None:
        """Insert (or move) a floor plan at ``index``; appends when omitted."""
        items = [(key, value) for key, value in self._floor_plans.items() if key != floor_plan.id]
        position = len(items) if index is None else max(0, min(index, len(items)))
        items.insert(position, (floor_plan.id, floor_plan))
        self._floor_plans = dict(items)

    def remove(self, floor_plan_id: int) -> Tuple[int, FloorPlanRead]:
        """Remove a floor plan, returning its former index and record."""
        floor_plan = self.require(floor_plan_id)
        index = list(self._floor_plans).index(floor_plan_id)
        del self._floor_plans[floor_plan_id]
        return index, floor_plan

    def reorder(self, floor_plan_ids: Sequence[int]) -> None:
        """Put the listed floor plans first, in order, with ``sort_order`` = index.

        Unknown ids are ignored; unlisted floor plans keep their relative order
        after the listed ones.
        """
        ordered: Dict[int, FloorPlanRead] = {}
        for index, floor_plan_id in enumerate(floor_plan_ids):
            floor_plan = self._floor_plans.get(floor_plan_id)
            if floor_plan is not None:
                ordered[floor_plan_id] = floor_plan.model_copy(update={"sort_order": index})
        for floor_plan_id, floor_plan in self._floor_plans.items():
            if floor_plan_id not in ordered:
                ordered[floor_plan_id] = floor_plan
        self._floor_plans = ordered

    def restore_order(self, snapshot: Sequence[Tuple[int, int]]) -> None:
        """Restore ``(floor_plan_id, sort_order)`` pairs captured before a reorder."""
        ordered: Dict[int, FloorPlanRead] = {}
        for floor_plan_id, sort_order in snapshot:
            floor_plan = self._floor_plans.get(floor_plan_id)
            if floor_plan is not None:
                ordered[floor_plan_id] = floor_plan.model_copy(update={"sort_order": sort_order})
        for floor_plan_id, floor_plan in self._floor_plans.items():
            if floor_plan_id not in ordered:
                ordered[floor_plan_id] = floor_plan
        self._floor_plans = ordered

    def order_snapshot(self) -> Tuple[Tuple[int, int], ...]:
        return tuple((floor_plan.id, floor_plan.sort_order) for floor_plan in self._floor_plans.values())

    def find_marker(self, marker_id: MarkerId) -> Optional[MarkerLookup]:
        """Locate a marker across all floor plans.

        Returns:
            ``(floor_plan, index, marker)`` or None
        """
        for floor_plan in self._floor_plans.values():
            index = floor_plan.marker_index(marker_id)
            if index is not None:
                return floor_plan, index, floor_plan.markers[index]
        return None

    def next_version(self, entity: Hashable) -> int:
        """Claim a new sequence number for ``entity``."""
        sequence = next(self._sequence)
        self._versions[entity] = sequence
        return sequence

    def version(self, entity: Hashable) -> Optional[int]:
        return self._versions.get(entity)

    def is_current(self, entity: Hashable, sequence: int) -> bool:
        return self._versions.get(entity) == sequence

    def forget(self, entity: Hashable) -> None:
        self._versions.pop(entity, None)

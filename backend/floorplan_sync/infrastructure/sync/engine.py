"""Optimistic mutation engine for one project's floor plans and markers.

Every mutation follows the same protocol:

1. snapshot the slice of the mirror it touches;
2. write its expected effect to the mirror before the first ``await``;
3. call the gateway with the real payload;
4. on success, replace provisional state with the committed record;
5. on any failure, restore the snapshot and re-raise.

Each optimistic write claims a sequence number for the entity it touches.
Steps 4 and 5 only run while that number is still the entity's current one,
so a mutation that settles after a newer mutation of the same entity (or after
a reload) leaves the mirror alone.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, Hashable, List, Optional, Sequence, TypeVar
from uuid import uuid4

from ...modules.common.exceptions import MarkerPlacementError, NotFoundError, ResourceNotFoundError, ValidationError
from ...modules.floor_plan.schemas import FloorPlanCreate, FloorPlanRead, FloorPlanUpdate, PageRead
from ...modules.marker.policy import placed_item_keys
from ...modules.marker.schemas import MarkerCreate, MarkerId, MarkerRead, MarkerReposition
from ..config.settings import MarkerUniquenessPolicy, get_settings
from ..logging import get_project_logger, reset_mutation_id, set_mutation_id
from .base import RemoteGateway
from .store import LocalStore, MarkerLookup

T = TypeVar("T")


class MutationKind(str, Enum):
    """Mutations the engine applies optimistically."""

    CREATE_MARKER = "create_marker"
    REPOSITION_MARKER = "reposition_marker"
    DELETE_MARKER = "delete_marker"
    RENAME_FLOOR_PLAN = "rename_floor_plan"
    DELETE_FLOOR_PLAN = "delete_floor_plan"
    REORDER_FLOOR_PLANS = "reorder_floor_plans"
    RENAME_PAGE = "rename_page"


@dataclass
class PendingMutation(Generic[T]):
    """One mutation's optimistic write, remote call and settle callbacks.

    ``apply``, ``reconcile`` and ``rollback`` are synchronous and only touch the
    local store.
    """

    kind: MutationKind
    entity: Hashable
    apply: Callable[[], None]
    remote: Callable[[], Awaitable[T]]
    rollback: Callable[[], None]
    reconcile: Optional[Callable[[T], None]] = None
    refresh_on_not_found: bool = False


def marker_key(marker_id: MarkerId) -> Hashable:
    return ("marker", marker_id)


def floor_plan_key(floor_plan_id: int) -> Hashable:
    return ("floor_plan", floor_plan_id)


def page_key(floor_plan_id: int, page_number: int) -> Hashable:
    return ("page", floor_plan_id, page_number)


def _replace_marker(floor_plan: FloorPlanRead, index: int, marker: MarkerRead) -> FloorPlanRead:
    markers = list(floor_plan.markers)
    markers[index] = marker
    return floor_plan.model_copy(update={"markers": tuple(markers)})


def _reinsert_marker(
    floor_plan: FloorPlanRead,
    marker: MarkerRead,
    previous_id: Optional[MarkerId],
    next_id: Optional[MarkerId],
    index: int,
) -> FloorPlanRead:
    """Put a removed marker back beside the neighbours it had, or at its old index."""
    markers = list(floor_plan.markers)
    ids = [m.id for m in markers]
    if previous_id is not None and previous_id in ids:
        position = ids.index(previous_id) + 1
    elif next_id is not None and next_id in ids:
        position = ids.index(next_id)
    elif previous_id is None:
        position = 0
    else:
        position = min(index, len(markers))
    markers.insert(position, marker)
    return floor_plan.model_copy(update={"markers": tuple(markers)})


def _remove_marker(floor_plan: FloorPlanRead, marker_id: MarkerId) -> FloorPlanRead:
    return floor_plan.model_copy(update={"markers": tuple(m for m in floor_plan.markers if m.id != marker_id)})


def _put_page(floor_plan: FloorPlanRead, page: PageRead) -> FloorPlanRead:
    pages = [p for p in floor_plan.pages if p.page_number != page.page_number]
    pages.append(page)
    pages.sort(key=lambda p: p.page_number)
    return floor_plan.model_copy(update={"pages": tuple(pages)})


def _drop_page(floor_plan: FloorPlanRead, page_number: int) -> FloorPlanRead:
    return floor_plan.model_copy(update={"pages": tuple(p for p in floor_plan.pages if p.page_number != page_number)})


class MutationEngine:
    """Owns the local mirror of one project and applies mutations to it optimistically.

    Args:
        project_id: Project whose floor plans are mirrored
        gateway: Persistent store behind the mirror
        temp_id_prefix: Prefix of provisional marker ids
        uniqueness: Scope within which an item may only be placed once
        refresh_on_not_found: Reload the mirror when a mutation's target has vanished

    Example:
        ```python
        engine = MutationEngine(project_id=7, gateway=gateway)
        await engine.load()
        marker = await engine.create_marker(payload)
        ```
    """

    def __init__(
        self,
        project_id: int,
        gateway: RemoteGateway,
        temp_id_prefix: Optional[str] = None,
        uniqueness: Optional[MarkerUniquenessPolicy] = None,
        refresh_on_not_found: Optional[bool] = None,
    ):
        settings = get_settings()
        self.project_id = project_id
        self.gateway = gateway
        self.store = LocalStore(project_id)
        self.temp_id_prefix = settings.SYNC_TEMP_ID_PREFIX if temp_id_prefix is None else temp_id_prefix
        self.uniqueness = settings.SYNC_MARKER_UNIQUENESS if uniqueness is None else uniqueness
        self.refresh_on_not_found = (
            settings.SYNC_REFRESH_ON_NOT_FOUND if refresh_on_not_found is None else refresh_on_not_found
        )
        self.logger = get_project_logger(project_id, __name__)
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def floor_plans(self) -> List[FloorPlanRead]:
        return self.store.list()

    def dispose(self) -> None:
        """Stop writing to the mirror. Mutations still in flight settle without effect."""
        self._disposed = True
        self.logger.debug("Engine disposed")

    def new_temp_id(self) -> str:
        return f"{self.temp_id_prefix}{uuid4()}"

    def is_temp_id(self, marker_id: MarkerId) -> bool:
        return isinstance(marker_id, str) and marker_id.startswith(self.temp_id_prefix)

    async def load(self) -> List[FloorPlanRead]:
        """Replace the mirror with the store's current state."""
        self._ensure_open()
        floor_plans = await self.gateway.list_with_joins(self.project_id)
        if self._disposed:
            return floor_plans
        self.store.load(floor_plans)
        self.logger.info("Mirror loaded", extra={"floor_plans": len(floor_plans)})
        return self.store.list()

    refresh = load

    async def fetch_markers(self, floor_plan_id: int) -> List[MarkerRead]:
        """Reload one floor plan's markers, re-applying writes still in flight.

        Stored rows replace the mirrored ones, except that a marker being moved
        keeps its optimistic position, a marker being deleted stays out and
        provisional markers stay at the end.
        """
        self._ensure_open()
        self.store.require(floor_plan_id)
        markers = await self.gateway.list_markers(floor_plan_id)
        if self._disposed or floor_plan_id not in self.store:
            return markers

        def in_flight(marker_id: MarkerId) -> bool:
            return self.store.version(marker_key(marker_id)) is not None

        def replace(floor_plan: FloorPlanRead) -> FloorPlanRead:
            mirrored = {m.id: m for m in floor_plan.markers}
            merged = [
                mirrored.get(m.id) if in_flight(m.id) else m
                for m in markers
                if not in_flight(m.id) or m.id in mirrored
            ]
            merged.extend(m for m in floor_plan.markers if self.is_temp_id(m.id) and in_flight(m.id))
            return floor_plan.model_copy(update={"markers": tuple(merged)})

        return list(self.store.patch(floor_plan_id, replace).markers)

    async def create_floor_plan(self, data: FloorPlanCreate) -> FloorPlanRead:
        """Register an uploaded floor plan.

        Not optimistic: the floor plan enters the mirror once the store has
        assigned its id.
        """
        self._ensure_open()
        floor_plan = await self.gateway.create_floor_plan(self.project_id, data)
        if not self._disposed:
            self.store.insert(floor_plan)
        self.logger.info("Floor plan registered", extra={"floor_plan_id": floor_plan.id})
        return floor_plan

    async def create_marker(self, data: MarkerCreate) -> MarkerRead:
        """Place a marker, showing it under a temporary id until the store confirms it.

        Raises:
            ResourceNotFoundError: If the floor plan is not mirrored
            MarkerPlacementError: If the page is out of range or the item is
                already placed within the uniqueness scope
        """
        self._ensure_open()
        floor_plan = self.store.require(data.floor_plan_id)
        if not floor_plan.has_page(data.page_number):
            raise MarkerPlacementError(
                f"Page {data.page_number} is outside floor plan {floor_plan.id} (1-{floor_plan.page_count})"
            )
        placed = placed_item_keys(self.store, data.floor_plan_id, data.page_number, self.uniqueness)
        if (data.item_type, data.item_id) in placed:
            raise MarkerPlacementError(
                f"{data.item_type.value} {data.item_id} already has a marker ({self.uniqueness.value} scope)"
            )

        temp_id = self.new_temp_id()
        provisional = MarkerRead(id=temp_id, **data.model_dump())

        def apply() -> None:
            self.store.patch(data.floor_plan_id, lambda fp: fp.model_copy(update={"markers": fp.markers + (provisional,)}))

        def swap_in(floor_plan: FloorPlanRead, committed: MarkerRead) -> FloorPlanRead:
            # a fetch that ran after the commit may already hold the committed row
            deduplicated = _remove_marker(floor_plan, committed.id)
            index = deduplicated.marker_index(temp_id)
            if index is None:
                return floor_plan
            return _replace_marker(deduplicated, index, committed)

        def reconcile(committed: MarkerRead) -> None:
            if data.floor_plan_id in self.store:
                self.store.patch(data.floor_plan_id, lambda fp: swap_in(fp, committed))

        def rollback() -> None:
            if data.floor_plan_id in self.store:
                self.store.patch(data.floor_plan_id, lambda fp: _remove_marker(fp, temp_id))

        return await self._execute(
            PendingMutation(
                kind=MutationKind.CREATE_MARKER,
                entity=marker_key(temp_id),
                apply=apply,
                remote=lambda: self.gateway.create_marker(data),
                reconcile=reconcile,
                rollback=rollback,
            )
        )

    async def reposition_marker(self, marker_id: MarkerId, x_percent: float, y_percent: float) -> MarkerRead:
        """Move a marker; coordinates are clamped into [0, 100]."""
        self._ensure_open()
        floor_plan, _, original = self._require_saved_marker(marker_id)
        position = MarkerReposition(x_percent=x_percent, y_percent=y_percent)
        floor_plan_id = floor_plan.id

        def set_marker(marker: MarkerRead) -> None:
            if floor_plan_id not in self.store:
                return
            index = self.store.require(floor_plan_id).marker_index(marker_id)
            if index is not None:
                self.store.patch(floor_plan_id, lambda fp: _replace_marker(fp, index, marker))

        def apply() -> None:
            set_marker(original.model_copy(update=position.model_dump()))

        return await self._execute(
            PendingMutation(
                kind=MutationKind.REPOSITION_MARKER,
                entity=marker_key(marker_id),
                apply=apply,
                remote=lambda: self.gateway.update_marker(marker_id, position),
                reconcile=set_marker,
                rollback=lambda: set_marker(original),
                refresh_on_not_found=True,
            )
        )

    async def delete_marker(self, marker_id: MarkerId) -> None:
        """Remove a marker; it reappears beside its former neighbours if the store refuses."""
        self._ensure_open()
        floor_plan, index, original = self._require_saved_marker(marker_id)
        floor_plan_id = floor_plan.id
        previous_id = floor_plan.markers[index - 1].id if index > 0 else None
        next_id = floor_plan.markers[index + 1].id if index + 1 < len(floor_plan.markers) else None

        def remove() -> None:
            if floor_plan_id in self.store:
                self.store.patch(floor_plan_id, lambda fp: _remove_marker(fp, marker_id))

        def rollback() -> None:
            if floor_plan_id in self.store and self.store.require(floor_plan_id).marker_index(marker_id) is None:
                self.store.patch(
                    floor_plan_id, lambda fp: _reinsert_marker(fp, original, previous_id, next_id, index)
                )

        await self._execute(
            PendingMutation(
                kind=MutationKind.DELETE_MARKER,
                entity=marker_key(marker_id),
                apply=remove,
                remote=lambda: self.gateway.delete_marker(marker_id),
                reconcile=lambda _: remove(),
                rollback=rollback,
                refresh_on_not_found=True,
            )
        )

    async def rename_floor_plan(self, floor_plan_id: int, name: str) -> FloorPlanRead:
        self._ensure_open()
        update = FloorPlanUpdate(name=name)
        original_name = self.store.require(floor_plan_id).name

        def set_fields(**fields) -> None:
            if floor_plan_id in self.store:
                self.store.patch(floor_plan_id, lambda fp: fp.model_copy(update=fields))

        def reconcile(committed: FloorPlanRead) -> None:
            set_fields(name=committed.name, updated_at=committed.updated_at)

        committed = await self._execute(
            PendingMutation(
                kind=MutationKind.RENAME_FLOOR_PLAN,
                entity=floor_plan_key(floor_plan_id),
                apply=lambda: set_fields(name=update.name),
                remote=lambda: self.gateway.update_floor_plan(floor_plan_id, update),
                reconcile=reconcile,
                rollback=lambda: set_fields(name=original_name),
                refresh_on_not_found=True,
            )
        )
        return self.store.get(floor_plan_id) or committed

    async def delete_floor_plan(self, floor_plan_id: int) -> None:
        """Soft-delete a floor plan; it leaves the mirror immediately."""
        self._ensure_open()
        self.store.require(floor_plan_id)
        removed: List[tuple] = []

        def apply() -> None:
            removed.append(self.store.remove(floor_plan_id))

        def rollback() -> None:
            if removed and floor_plan_id not in self.store:
                index, floor_plan = removed[0]
                self.store.insert(floor_plan, index)

        await self._execute(
            PendingMutation(
                kind=MutationKind.DELETE_FLOOR_PLAN,
                entity=floor_plan_key(floor_plan_id),
                apply=apply,
                remote=lambda: self.gateway.delete_floor_plan(floor_plan_id),
                rollback=rollback,
                refresh_on_not_found=True,
            )
        )

    async def reorder_floor_plans(self, floor_plan_ids: Sequence[int]) -> List[FloorPlanRead]:
        """Reorder floor plans; each listed plan's sort order becomes its index."""
        self._ensure_open()
        ids = list(floor_plan_ids)
        if len(set(ids)) != len(ids):
            raise ValidationError("Floor plan order contains duplicate ids")
        unknown = [floor_plan_id for floor_plan_id in ids if floor_plan_id not in self.store]
        if unknown:
            raise ValidationError(f"Unknown floor plans in order: {unknown}")
        original = self.store.order_snapshot()

        await self._execute(
            PendingMutation(
                kind=MutationKind.REORDER_FLOOR_PLANS,
                entity=("order", self.project_id),
                apply=lambda: self.store.reorder(ids),
                remote=lambda: self.gateway.reorder_floor_plans(self.project_id, ids),
                rollback=lambda: self.store.restore_order(original),
            )
        )
        return self.store.list()

    async def rename_page(self, floor_plan_id: int, page_number: int, name: str) -> PageRead:
        """Name a page; the page row is created on first rename."""
        self._ensure_open()
        floor_plan = self.store.require(floor_plan_id)
        if not floor_plan.has_page(page_number):
            raise ValidationError(f"Page {page_number} is outside floor plan {floor_plan_id} (1-{floor_plan.page_count})")
        original = floor_plan.get_page(page_number)
        provisional = PageRead(
            id=original.id if original else None, floor_plan_id=floor_plan_id, page_number=page_number, name=name
        )

        def put(page: PageRead) -> None:
            if floor_plan_id in self.store:
                self.store.patch(floor_plan_id, lambda fp: _put_page(fp, page))

        def rollback() -> None:
            if floor_plan_id not in self.store:
                return
            if original is None:
                self.store.patch(floor_plan_id, lambda fp: _drop_page(fp, page_number))
            else:
                put(original)

        return await self._execute(
            PendingMutation(
                kind=MutationKind.RENAME_PAGE,
                entity=page_key(floor_plan_id, page_number),
                apply=lambda: put(provisional),
                remote=lambda: self.gateway.upsert_page(floor_plan_id, page_number, name),
                reconcile=put,
                rollback=rollback,
                refresh_on_not_found=True,
            )
        )

    async def _execute(self, mutation: PendingMutation[T]) -> T:
        """Run the optimistic protocol for one mutation."""
        sequence = self.store.next_version(mutation.entity)
        token = set_mutation_id(f"{mutation.kind.value}:{_entity_label(mutation.entity)}#{sequence}")
        try:
            mutation.apply()
            self.logger.debug("Applied optimistically")

            try:
                result = await mutation.remote()
            except Exception as error:
                self._settle(mutation, sequence, mutation.rollback, "Rolled back")
                self.logger.warning(
                    f"Mutation failed: {error}",
                    extra={"error_type": type(error).__name__, "retryable": getattr(error, "retryable", False)},
                )
                if isinstance(error, NotFoundError) and mutation.refresh_on_not_found:
                    await self._refresh_after_not_found()
                raise

            reconcile = mutation.reconcile
            if reconcile is not None:
                self._settle(mutation, sequence, lambda: reconcile(result), "Reconciled")
            else:
                self._settle(mutation, sequence, None, "Confirmed")
            return result
        finally:
            reset_mutation_id(token)

    def _settle(
        self,
        mutation: PendingMutation,
        sequence: int,
        action: Optional[Callable[[], None]],
        outcome: str,
    ) -> None:
        if self._disposed:
            self.logger.debug(f"{outcome} skipped, engine disposed")
            return
        if not self.store.is_current(mutation.entity, sequence):
            self.logger.info(f"{outcome} skipped, superseded by a newer write")
            return
        if action is not None:
            action()
        self.store.forget(mutation.entity)
        self.logger.debug(outcome)

    async def _refresh_after_not_found(self) -> None:
        if not self.refresh_on_not_found or self._disposed:
            return
        self.logger.info("Target vanished from the store, reloading mirror")
        try:
            await self.load()
        except Exception:
            self.logger.warning("Reload after missing target failed", exc_info=True)

    def _require_saved_marker(self, marker_id: MarkerId) -> MarkerLookup:
        found = self.store.find_marker(marker_id)
        if found is None:
            raise ResourceNotFoundError(f"Marker {marker_id} not found in project {self.project_id}")
        if self.is_temp_id(marker_id):
            raise ValidationError(f"Marker {marker_id} is still being saved")
        return found

    def _ensure_open(self) -> None:
        if self._disposed:
            raise RuntimeError(f"Mutation engine for project {self.project_id} has been disposed")


def _entity_label(entity: Hashable) -> str:
    if isinstance(entity, tuple):
        return ":".join(str(part) for part in entity)
    return str(entity)

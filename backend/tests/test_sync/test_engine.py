"""Tests for the optimistic mutation engine."""

import asyncio

import pytest

from conftest import FakeGateway, run_until_blocked
from floorplan_sync.infrastructure.config.settings import MarkerUniquenessPolicy
from floorplan_sync.infrastructure.sync.engine import MutationEngine
from floorplan_sync.modules.common.exceptions import (
    ConstraintError,
    MarkerPlacementError,
    NetworkError,
    NotFoundError,
    ResourceNotFoundError,
    ValidationError,
)
from floorplan_sync.modules.floor_plan.schemas import FloorPlanCreate
from floorplan_sync.modules.item.schemas import ItemType
from floorplan_sync.modules.marker.schemas import MarkerCreate


def marker_payload(floor_plan_id: int = 1, item_id: str = "2", page_number: int = 1, **overrides) -> MarkerCreate:
    data = {
        "floor_plan_id": floor_plan_id,
        "page_number": page_number,
        "item_type": ItemType.RFI,
        "item_id": item_id,
        "x_percent": 25.0,
        "y_percent": 75.0,
    }
    data.update(overrides)
    return MarkerCreate(**data)


def marker_ids(engine: MutationEngine, floor_plan_id: int = 1):
    return [marker.id for marker in engine.store.require(floor_plan_id).markers]


class TestLoad:
    @pytest.mark.asyncio
    async def test_load_mirrors_project_floor_plans(self, engine: MutationEngine):
        assert [fp.name for fp in engine.floor_plans] == ["Level 1", "Level 2"]
        assert marker_ids(engine, 1) == [1, 2]
        assert engine.store.require(2).page_name(1) == "Ground"
        assert engine.store.require(2).page_name(3) == "Page 3"

    @pytest.mark.asyncio
    async def test_refresh_replaces_mirror(self, engine: MutationEngine, gateway: FakeGateway):
        gateway.seed_floor_plan(project_id=1, name="Roof")

        floor_plans = await engine.refresh()

        assert [fp.name for fp in floor_plans] == ["Level 1", "Level 2", "Roof"]
        assert gateway.call_count("list_with_joins") == 2


class TestCreateMarker:
    @pytest.mark.asyncio
    async def test_provisional_marker_replaced_in_place(self, engine: MutationEngine, gateway: FakeGateway):
        gate = gateway.hold("create_marker")
        task = asyncio.create_task(engine.create_marker(marker_payload()))
        await run_until_blocked()

        provisional = engine.store.require(1).markers[2]
        assert engine.is_temp_id(provisional.id)
        assert provisional.x_percent == 25.0
        assert provisional.item_id == "2"

        gate.set()
        committed = await task

        assert isinstance(committed.id, int)
        assert marker_ids(engine) == [1, 2, committed.id]
        assert not any(engine.is_temp_id(marker_id) for marker_id in marker_ids(engine))
        assert engine.store.require(1).markers[2] == committed

    @pytest.mark.asyncio
    async def test_network_failure_restores_mirror(self, engine: MutationEngine, gateway: FakeGateway):
        before = engine.store.snapshot()
        gateway.fail("create_marker", NetworkError("timed out"))

        with pytest.raises(NetworkError):
            await engine.create_marker(marker_payload())

        assert engine.store.snapshot() == before

    @pytest.mark.asyncio
    async def test_unclassified_failure_restores_mirror(self, engine: MutationEngine, gateway: FakeGateway):
        before = engine.store.snapshot()
        gateway.fail("create_marker", RuntimeError("boom"))

        with pytest.raises(RuntimeError, match="boom"):
            await engine.create_marker(marker_payload())

        assert engine.store.snapshot() == before

    @pytest.mark.asyncio
    async def test_duplicate_item_rejected_before_write(self, engine: MutationEngine, gateway: FakeGateway):
        before = engine.store.snapshot()

        with pytest.raises(MarkerPlacementError):
            await engine.create_marker(marker_payload(item_id="1"))

        assert engine.store.snapshot() == before
        assert gateway.call_count("create_marker") == 0

    @pytest.mark.asyncio
    async def test_same_item_allowed_on_other_floor_plan(self, engine: MutationEngine):
        committed = await engine.create_marker(marker_payload(floor_plan_id=2, item_id="1"))

        assert committed.floor_plan_id == 2
        assert committed.id in marker_ids(engine, 2)

    @pytest.mark.asyncio
    async def test_project_scope_rejects_item_placed_elsewhere(self, gateway: FakeGateway):
        engine = MutationEngine(1, gateway, uniqueness=MarkerUniquenessPolicy.PROJECT)
        await engine.load()

        with pytest.raises(MarkerPlacementError):
            await engine.create_marker(marker_payload(floor_plan_id=2, item_id="1"))

    @pytest.mark.asyncio
    async def test_page_scope_allows_item_on_other_page(self, gateway: FakeGateway):
        engine = MutationEngine(1, gateway, uniqueness=MarkerUniquenessPolicy.PAGE)
        await engine.load()
        payload = marker_payload(floor_plan_id=2, item_type=ItemType.SUBMITTAL, item_id="5", page_number=3)

        committed = await engine.create_marker(payload)
        assert committed.page_number == 3

        with pytest.raises(MarkerPlacementError):
            await engine.create_marker(payload)

    @pytest.mark.asyncio
    async def test_no_scope_allows_duplicates(self, gateway: FakeGateway):
        engine = MutationEngine(1, gateway, uniqueness=MarkerUniquenessPolicy.NONE)
        await engine.load()

        await engine.create_marker(marker_payload(item_id="1"))

        assert [m.item_id for m in engine.store.require(1).markers].count("1") == 2

    @pytest.mark.asyncio
    async def test_page_outside_floor_plan_rejected(self, engine: MutationEngine, gateway: FakeGateway):
        with pytest.raises(MarkerPlacementError):
            await engine.create_marker(marker_payload(page_number=2))

        assert gateway.call_count("create_marker") == 0

    @pytest.mark.asyncio
    async def test_unknown_floor_plan_rejected(self, engine: MutationEngine):
        with pytest.raises(ResourceNotFoundError):
            await engine.create_marker(marker_payload(floor_plan_id=99))

    @pytest.mark.asyncio
    async def test_temp_ids_use_prefix(self, gateway: FakeGateway):
        engine = MutationEngine(1, gateway, temp_id_prefix="pending:")

        temp_id = engine.new_temp_id()

        assert temp_id.startswith("pending:")
        assert engine.is_temp_id(temp_id)
        assert not engine.is_temp_id(12)
        assert engine.new_temp_id() != temp_id


class TestRepositionMarker:
    @pytest.mark.asyncio
    async def test_coordinates_are_clamped(self, engine: MutationEngine, gateway: FakeGateway):
        committed = await engine.reposition_marker(1, 150, -10)

        assert (committed.x_percent, committed.y_percent) == (100.0, 0.0)
        marker = engine.store.require(1).markers[0]
        assert (marker.x_percent, marker.y_percent) == (100.0, 0.0)
        assert (gateway.markers[1].x_percent, gateway.markers[1].y_percent) == (100.0, 0.0)

    @pytest.mark.asyncio
    async def test_optimistic_position_visible_while_in_flight(self, engine: MutationEngine, gateway: FakeGateway):
        gate = gateway.hold("update_marker")
        task = asyncio.create_task(engine.reposition_marker(1, 60, 65))
        await run_until_blocked()

        marker = engine.store.require(1).markers[0]
        assert (marker.x_percent, marker.y_percent) == (60.0, 65.0)

        gate.set()
        await task

    @pytest.mark.asyncio
    async def test_constraint_failure_restores_position(self, engine: MutationEngine, gateway: FakeGateway):
        before = engine.store.snapshot()
        gateway.fail("update_marker", ConstraintError("rejected"))

        with pytest.raises(ConstraintError):
            await engine.reposition_marker(1, 60, 65)

        assert engine.store.snapshot() == before

    @pytest.mark.asyncio
    async def test_stale_rollback_leaves_newer_position(self, engine: MutationEngine, gateway: FakeGateway):
        gateway.fail("update_marker", NetworkError("timed out"))
        gate = gateway.hold("update_marker")
        first = asyncio.create_task(engine.reposition_marker(1, 60, 60))
        await run_until_blocked()

        await engine.reposition_marker(1, 70, 70)
        gate.set()
        with pytest.raises(NetworkError):
            await first

        marker = engine.store.require(1).markers[0]
        assert (marker.x_percent, marker.y_percent) == (70.0, 70.0)

    @pytest.mark.asyncio
    async def test_late_success_does_not_overwrite_newer_write(self, engine: MutationEngine, gateway: FakeGateway):
        first_gate = gateway.hold("update_marker")
        second_gate = gateway.hold("update_marker")
        first = asyncio.create_task(engine.reposition_marker(1, 60, 60))
        await run_until_blocked()
        second = asyncio.create_task(engine.reposition_marker(1, 70, 70))
        await run_until_blocked()

        first_gate.set()
        await first
        marker = engine.store.require(1).markers[0]
        assert (marker.x_percent, marker.y_percent) == (70.0, 70.0)

        second_gate.set()
        await second
        marker = engine.store.require(1).markers[0]
        assert (marker.x_percent, marker.y_percent) == (70.0, 70.0)

    @pytest.mark.asyncio
    async def test_vanished_marker_triggers_refresh(self, engine: MutationEngine, gateway: FakeGateway):
        del gateway.markers[2]

        with pytest.raises(NotFoundError):
            await engine.reposition_marker(2, 5, 5)

        assert marker_ids(engine) == [1]
        assert gateway.call_count("list_with_joins") == 2

    @pytest.mark.asyncio
    async def test_vanished_marker_without_refresh(self, gateway: FakeGateway):
        engine = MutationEngine(1, gateway, refresh_on_not_found=False)
        await engine.load()
        del gateway.markers[2]

        with pytest.raises(NotFoundError):
            await engine.reposition_marker(2, 5, 5)

        assert marker_ids(engine) == [1, 2]
        assert gateway.call_count("list_with_joins") == 1

    @pytest.mark.asyncio
    async def test_failed_refresh_still_raises_original_error(self, engine: MutationEngine, gateway: FakeGateway):
        del gateway.markers[2]
        gateway.fail("list_with_joins", NetworkError("offline"))

        with pytest.raises(NotFoundError):
            await engine.reposition_marker(2, 5, 5)

        assert marker_ids(engine) == [1, 2]

    @pytest.mark.asyncio
    async def test_unknown_marker_rejected(self, engine: MutationEngine, gateway: FakeGateway):
        with pytest.raises(ResourceNotFoundError):
            await engine.reposition_marker(42, 5, 5)

        assert gateway.call_count("update_marker") == 0


class TestDeleteMarker:
    @pytest.mark.asyncio
    async def test_delete_removes_marker(self, engine: MutationEngine, gateway: FakeGateway):
        await engine.delete_marker(1)

        assert marker_ids(engine) == [2]
        assert 1 not in gateway.markers

    @pytest.mark.asyncio
    async def test_constraint_failure_restores_marker_at_index(self, engine: MutationEngine, gateway: FakeGateway):
        before = engine.store.snapshot()
        gateway.fail("delete_marker", ConstraintError("referenced"))
        gate = gateway.hold("delete_marker")
        task = asyncio.create_task(engine.delete_marker(1))
        await run_until_blocked()

        assert marker_ids(engine) == [2]

        gate.set()
        with pytest.raises(ConstraintError):
            await task

        assert marker_ids(engine) == [1, 2]
        assert engine.store.snapshot() == before

    @pytest.mark.asyncio
    async def test_failed_delete_returns_between_neighbours(self, engine: MutationEngine, gateway: FakeGateway):
        third = gateway.seed_marker(1, ItemType.RFI, "3", 1.0, 1.0)
        fourth = gateway.seed_marker(1, ItemType.RFI, "4", 2.0, 2.0)
        await engine.fetch_markers(1)
        gateway.fail("delete_marker", ConstraintError("referenced"))
        gate = gateway.hold("delete_marker")
        task = asyncio.create_task(engine.delete_marker(third.id))
        await run_until_blocked()

        await engine.delete_marker(1)
        gate.set()
        with pytest.raises(ConstraintError):
            await task

        assert marker_ids(engine) == [2, third.id, fourth.id]

    @pytest.mark.asyncio
    async def test_vanished_marker_triggers_refresh(self, engine: MutationEngine, gateway: FakeGateway):
        del gateway.markers[1]

        with pytest.raises(NotFoundError):
            await engine.delete_marker(1)

        assert gateway.call_count("list_with_joins") == 2
        assert marker_ids(engine) == [2]
        assert engine.store.snapshot() == tuple(await gateway.list_with_joins(1))


class TestTemporaryMarkers:
    @pytest.mark.asyncio
    async def test_unsaved_marker_cannot_be_moved_or_deleted(self, engine: MutationEngine, gateway: FakeGateway):
        gate = gateway.hold("create_marker")
        task = asyncio.create_task(engine.create_marker(marker_payload()))
        await run_until_blocked()
        temp_id = marker_ids(engine)[-1]

        with pytest.raises(ValidationError):
            await engine.reposition_marker(temp_id, 1, 1)
        with pytest.raises(ValidationError):
            await engine.delete_marker(temp_id)
        assert gateway.call_count("update_marker") == 0
        assert gateway.call_count("delete_marker") == 0

        gate.set()
        await task

    @pytest.mark.asyncio
    async def test_fetch_markers_keeps_markers_in_flight(self, engine: MutationEngine, gateway: FakeGateway):
        gate = gateway.hold("create_marker")
        task = asyncio.create_task(engine.create_marker(marker_payload()))
        await run_until_blocked()
        temp_id = marker_ids(engine)[-1]
        added = gateway.seed_marker(1, ItemType.TASK, "8", 1.0, 1.0)

        markers = await engine.fetch_markers(1)

        assert [m.id for m in markers] == [1, 2, added.id, temp_id]

        gate.set()
        committed = await task
        assert marker_ids(engine) == [1, 2, added.id, committed.id]

    @pytest.mark.asyncio
    async def test_fetch_after_commit_keeps_single_copy(self, engine: MutationEngine, gateway: FakeGateway):
        reply = gateway.hold_reply("create_marker")
        task = asyncio.create_task(engine.create_marker(marker_payload()))
        await run_until_blocked()
        stored_id = max(gateway.markers)
        temp_id = marker_ids(engine)[-1]

        markers = await engine.fetch_markers(1)
        assert [m.id for m in markers] == [1, 2, stored_id, temp_id]

        reply.set()
        committed = await task

        assert committed.id == stored_id
        assert marker_ids(engine) == [1, 2, stored_id]

    @pytest.mark.asyncio
    async def test_fetch_during_delete_keeps_marker_out(self, engine: MutationEngine, gateway: FakeGateway):
        gate = gateway.hold("delete_marker")
        task = asyncio.create_task(engine.delete_marker(1))
        await run_until_blocked()

        markers = await engine.fetch_markers(1)
        assert [m.id for m in markers] == [2]

        gate.set()
        await task

        assert marker_ids(engine) == [2]
        assert 1 not in gateway.markers

    @pytest.mark.asyncio
    async def test_fetch_during_failed_delete_restores_marker(self, engine: MutationEngine, gateway: FakeGateway):
        gateway.fail("delete_marker", ConstraintError("referenced"))
        gate = gateway.hold("delete_marker")
        task = asyncio.create_task(engine.delete_marker(1))
        await run_until_blocked()

        await engine.fetch_markers(1)
        gate.set()
        with pytest.raises(ConstraintError):
            await task

        assert marker_ids(engine) == [1, 2]

    @pytest.mark.asyncio
    async def test_fetch_during_move_keeps_new_position(self, engine: MutationEngine, gateway: FakeGateway):
        gate = gateway.hold("update_marker")
        task = asyncio.create_task(engine.reposition_marker(2, 90, 90))
        await run_until_blocked()

        await engine.fetch_markers(1)
        moved = engine.store.require(1).markers[1]
        assert (moved.x_percent, moved.y_percent) == (90.0, 90.0)

        gate.set()
        await task
        assert gateway.markers[2].x_percent == 90.0

    @pytest.mark.asyncio
    async def test_fetch_markers_drops_vanished_markers(self, engine: MutationEngine, gateway: FakeGateway):
        del gateway.markers[1]

        markers = await engine.fetch_markers(1)

        assert [m.id for m in markers] == [2]
        assert marker_ids(engine) == [2]


class TestDispose:
    @pytest.mark.asyncio
    async def test_settle_after_dispose_is_ignored(self, engine: MutationEngine, gateway: FakeGateway):
        gateway.fail("update_marker", NetworkError("timed out"))
        gate = gateway.hold("update_marker")
        task = asyncio.create_task(engine.reposition_marker(1, 60, 60))
        await run_until_blocked()

        engine.dispose()
        gate.set()
        with pytest.raises(NetworkError):
            await task

        marker = engine.store.require(1).markers[0]
        assert (marker.x_percent, marker.y_percent) == (60.0, 60.0)

    @pytest.mark.asyncio
    async def test_disposed_engine_refuses_mutations(self, engine: MutationEngine):
        engine.dispose()

        assert engine.disposed
        with pytest.raises(RuntimeError):
            await engine.reposition_marker(1, 5, 5)
        with pytest.raises(RuntimeError):
            await engine.load()


class TestFloorPlans:
    @pytest.mark.asyncio
    async def test_create_floor_plan_waits_for_store(self, engine: MutationEngine, gateway: FakeGateway):
        gate = gateway.hold("create_floor_plan")
        data = FloorPlanCreate(name="Roof", file_path="projects/1/roof.png")
        task = asyncio.create_task(engine.create_floor_plan(data))
        await run_until_blocked()

        assert len(engine.floor_plans) == 2

        gate.set()
        created = await task
        assert [fp.id for fp in engine.floor_plans] == [1, 2, created.id]
        assert created.sort_order == 2

    @pytest.mark.asyncio
    async def test_rename(self, engine: MutationEngine, gateway: FakeGateway):
        renamed = await engine.rename_floor_plan(1, "Ground Floor")

        assert renamed.name == "Ground Floor"
        assert renamed.markers == engine.store.require(1).markers
        assert gateway.floor_plans[1].name == "Ground Floor"

    @pytest.mark.asyncio
    async def test_rename_failure_restores_name(self, engine: MutationEngine, gateway: FakeGateway):
        gateway.fail("update_floor_plan", NetworkError("timed out"))

        with pytest.raises(NetworkError):
            await engine.rename_floor_plan(1, "Ground Floor")

        assert engine.store.require(1).name == "Level 1"

    @pytest.mark.asyncio
    async def test_delete(self, engine: MutationEngine, gateway: FakeGateway):
        await engine.delete_floor_plan(1)

        assert [fp.id for fp in engine.floor_plans] == [2]
        assert not gateway.floor_plans[1].is_active

    @pytest.mark.asyncio
    async def test_delete_failure_restores_position(self, engine: MutationEngine, gateway: FakeGateway):
        before = engine.store.snapshot()
        gateway.fail("delete_floor_plan", ConstraintError("in use"))

        with pytest.raises(ConstraintError):
            await engine.delete_floor_plan(1)

        assert engine.store.snapshot() == before

    @pytest.mark.asyncio
    async def test_reorder(self, engine: MutationEngine, gateway: FakeGateway):
        floor_plans = await engine.reorder_floor_plans([2, 1])

        assert [(fp.id, fp.sort_order) for fp in floor_plans] == [(2, 0), (1, 1)]
        assert (gateway.floor_plans[2].sort_order, gateway.floor_plans[1].sort_order) == (0, 1)

    @pytest.mark.asyncio
    async def test_reorder_failure_restores_order(self, engine: MutationEngine, gateway: FakeGateway):
        gateway.fail("reorder_floor_plans", NetworkError("timed out"))

        with pytest.raises(NetworkError):
            await engine.reorder_floor_plans([2, 1])

        assert [(fp.id, fp.sort_order) for fp in engine.floor_plans] == [(1, 0), (2, 1)]

    @pytest.mark.asyncio
    async def test_reorder_rejects_bad_ids(self, engine: MutationEngine, gateway: FakeGateway):
        with pytest.raises(ValidationError):
            await engine.reorder_floor_plans([1, 1])
        with pytest.raises(ValidationError):
            await engine.reorder_floor_plans([2, 3])

        assert gateway.call_count("reorder_floor_plans") == 0


class TestPages:
    @pytest.mark.asyncio
    async def test_rename_creates_page(self, engine: MutationEngine):
        page = await engine.rename_page(2, 2, "Mezzanine")

        assert page.id is not None
        assert engine.store.require(2).page_name(2) == "Mezzanine"
        assert engine.store.require(2).get_page(2) == page

    @pytest.mark.asyncio
    async def test_failed_first_rename_drops_page(self, engine: MutationEngine, gateway: FakeGateway):
        gateway.fail("upsert_page", NetworkError("timed out"))

        with pytest.raises(NetworkError):
            await engine.rename_page(2, 2, "Mezzanine")

        assert engine.store.require(2).get_page(2) is None
        assert engine.store.require(2).page_name(2) == "Page 2"

    @pytest.mark.asyncio
    async def test_failed_rename_restores_previous_name(self, engine: MutationEngine, gateway: FakeGateway):
        gateway.fail("upsert_page", ConstraintError("too long"))

        with pytest.raises(ConstraintError):
            await engine.rename_page(2, 1, "Basement")

        assert engine.store.require(2).page_name(1) == "Ground"

    @pytest.mark.asyncio
    async def test_page_outside_floor_plan_rejected(self, engine: MutationEngine, gateway: FakeGateway):
        with pytest.raises(ValidationError):
            await engine.rename_page(2, 4, "Attic")

        assert gateway.call_count("upsert_page") == 0


class TestMutationContext:
    @pytest.mark.asyncio
    async def test_gateway_calls_carry_mutation_id(self, engine: MutationEngine, gateway: FakeGateway):
        await engine.reposition_marker(1, 5, 5)
        await engine.delete_floor_plan(2)

        assert gateway.mutation_ids[0] is None
        assert gateway.mutation_ids[1].startswith("reposition_marker:marker:1#")
        assert gateway.mutation_ids[2].startswith("delete_floor_plan:floor_plan:2#")

"""Marker operations offered to API callers."""

from typing import List, Optional

from ...infrastructure.sync.base import RemoteGateway
from ...infrastructure.sync.engine import MutationEngine
from ..common.notifications import LoggingNotifier, Notifier, notify_outcome
from ..item.schemas import ItemType
from .schemas import MarkerCreate, MarkerId, MarkerLocationList, MarkerRead, MarkerReposition


class MarkerService:
    """Service for placing, moving and removing markers.

    Mutations go through the project's mutation engine, so the mirror reflects
    them before the database confirms. Every mutation reports its outcome to
    the notifier with the messages shown to users.

    Args:
        notifier: Sink for user-facing success and failure messages
    """

    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier: Notifier = notifier or LoggingNotifier()

    async def create_marker(self, payload: MarkerCreate, engine: MutationEngine) -> MarkerRead:
        """Place a marker.

        Args:
            payload: Marker placement
            engine: Mutation engine of the marker's project

        Returns:
            The committed marker
        """
        with notify_outcome(self.notifier, "Marker added", "Error adding marker"):
            return await engine.create_marker(payload)

    async def reposition_marker(
        self,
        marker_id: MarkerId,
        position: MarkerReposition,
        engine: MutationEngine,
    ) -> MarkerRead:
        """Move a marker.

        Args:
            marker_id: Marker to move
            position: New, already clamped, position
            engine: Mutation engine of the marker's project

        Returns:
            The committed marker
        """
        with notify_outcome(self.notifier, "Marker moved", "Error moving marker"):
            return await engine.reposition_marker(marker_id, position.x_percent, position.y_percent)

    async def delete_marker(self, marker_id: MarkerId, engine: MutationEngine) -> bool:
        """Remove a marker.

        Returns:
            True once the deletion is committed
        """
        with notify_outcome(self.notifier, "Marker removed", "Error removing marker"):
            await engine.delete_marker(marker_id)
        return True

    async def fetch_markers(self, floor_plan_id: int, engine: MutationEngine) -> List[MarkerRead]:
        """Reload a floor plan's markers from the database."""
        return await engine.fetch_markers(floor_plan_id)

    async def get_markers_for_item(
        self,
        item_type: ItemType,
        item_id: str,
        gateway: RemoteGateway,
    ) -> MarkerLocationList:
        """Find every floor plan location of an item, across projects.

        Args:
            item_type: Item type
            item_id: Item id
            gateway: Persistent store

        Returns:
            The item's markers with their floor plans
        """
        markers = await gateway.list_markers_for_item(item_type, item_id)
        return MarkerLocationList(item_type=item_type, item_id=item_id, markers=markers)

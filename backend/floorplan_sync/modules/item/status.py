"""Status taxonomy, urgency and marker coloring per item type."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, FrozenSet, Optional

from .schemas import ItemRecord, ItemType

OVERDUE_COLOR = "#ef4444"
DEFAULT_COLOR = "#64748b"


class StatusGroup(str, Enum):
    """Coarse status classification used by the status filter."""

    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class StatusTaxonomy:
    """Open/closed status sets and display colors for one item type."""

    open: FrozenSet[str]
    closed: FrozenSet[str]
    colors: Dict[str, str] = field(default_factory=dict)

    def classify(self, status: Optional[str]) -> Optional[StatusGroup]:
        if status in self.open:
            return StatusGroup.OPEN
        if status in self.closed:
            return StatusGroup.CLOSED
        return None


TAXONOMY: Dict[ItemType, StatusTaxonomy] = {
    ItemType.RFI: StatusTaxonomy(
        open=frozenset({"Open", "Pending"}),
        closed=frozenset({"Answered", "Closed"}),
        colors={
            "Open": "#3b82f6",
            "Pending": "#f59e0b",
            "Answered": "#22c55e",
            "Closed": "#64748b",
        },
    ),
    ItemType.SUBMITTAL: StatusTaxonomy(
        open=frozenset({"Pending", "Submitted", "Under Review"}),
        closed=frozenset({"Approved", "Approved as Noted", "Rejected", "Revise & Resubmit"}),
        colors={
            "Pending": "#f59e0b",
            "Submitted": "#3b82f6",
            "Under Review": "#8b5cf6",
            "Approved": "#22c55e",
            "Approved as Noted": "#22c55e",
            "Revise & Resubmit": "#ef4444",
            "Rejected": "#ef4444",
        },
    ),
    ItemType.TASK: StatusTaxonomy(
        open=frozenset({"Not Started", "In Progress", "Awaiting Response"}),
        closed=frozenset({"Completed", "Cancelled"}),
        colors={
            "Not Started": "#64748b",
            "In Progress": "#3b82f6",
            "Awaiting Response": "#f59e0b",
            "Completed": "#22c55e",
            "Cancelled": "#94a3b8",
        },
    ),
}


def classify_status(item_type: ItemType, status: Optional[str]) -> Optional[StatusGroup]:
    """Classify a status as open or closed for the given item type.

    Statuses outside the taxonomy classify as neither and so never match a
    status filter.
    """
    return TAXONOMY[item_type].classify(status)


def is_overdue(item_type: ItemType, item: ItemRecord, today: Optional[date] = None) -> bool:
    """Whether the item's due date has passed while it is still not closed."""
    if item.due_date is None:
        return False
    today = today or date.today()
    return item.due_date < today and item.status not in TAXONOMY[item_type].closed


def marker_color(item_type: ItemType, item: ItemRecord, today: Optional[date] = None) -> str:
    """Display color for a marker; overdue overrides the status color."""
    if is_overdue(item_type, item, today):
        return OVERDUE_COLOR
    return TAXONOMY[item_type].colors.get(item.status or "", DEFAULT_COLOR)

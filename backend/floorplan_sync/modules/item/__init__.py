from .registry import ItemProvider, ItemRegistry
from .schemas import ItemCollections, ItemRecord, ItemType, RFIItem, SubmittalItem, TaskItem
from .status import StatusGroup, classify_status, is_overdue, marker_color

__all__ = [
    "ItemProvider",
    "ItemRegistry",
    "ItemCollections",
    "ItemRecord",
    "ItemType",
    "RFIItem",
    "SubmittalItem",
    "TaskItem",
    "StatusGroup",
    "classify_status",
    "is_overdue",
    "marker_color",
]

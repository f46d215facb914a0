"""Item lookup by ``(item_type, item_id)`` through one provider per item type."""

from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Type

from .schemas import ItemCollections, ItemRecord, ItemType, RFIItem, SubmittalItem, TaskItem


class ItemProvider:
    """Id-indexed collection of one item type.

    Args:
        item_type: The item type this provider serves
        record_type: Pydantic model the items are validated into
        search_fields: Text fields matched by ``search``
        items: Initial items (records or plain dicts)
    """

    def __init__(
        self,
        item_type: ItemType,
        record_type: Type[ItemRecord],
        search_fields: Sequence[str],
        items: Iterable[object] = (),
    ):
        self.item_type = item_type
        self.record_type = record_type
        self.search_fields: Tuple[str, ...] = tuple(search_fields)
        self._items: Dict[str, ItemRecord] = {}
        for item in items:
            record = item if isinstance(item, record_type) else record_type.model_validate(item)
            self._items[record.id] = record

    def get(self, item_id: object) -> Optional[ItemRecord]:
        return self._items.get(str(item_id))

    def __iter__(self) -> Iterator[ItemRecord]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def matches(self, item: ItemRecord, term: str) -> bool:
        """Case-insensitive substring match across the search fields."""
        term = term.strip().lower()
        if not term:
            return True
        for field_name in self.search_fields:
            value = getattr(item, field_name, None)
            if value is not None and term in str(value).lower():
                return True
        return False

    def search(self, term: str = "") -> List[ItemRecord]:
        return [item for item in self if self.matches(item, term)]


SEARCH_FIELDS: Dict[ItemType, Tuple[str, ...]] = {
    ItemType.RFI: ("rfi_number", "subject", "sent_to"),
    ItemType.SUBMITTAL: ("submittal_number", "title", "sent_to", "submittal_type"),
    ItemType.TASK: ("title", "assignee"),
}

RECORD_TYPES: Dict[ItemType, Type[ItemRecord]] = {
    ItemType.RFI: RFIItem,
    ItemType.SUBMITTAL: SubmittalItem,
    ItemType.TASK: TaskItem,
}


class ItemRegistry:
    """Resolves marker references against the supplied item collections.

    Example:
        ```python
        registry = ItemRegistry.from_collections(collections)
        item = registry.resolve(ItemType.RFI, "42")
        ```
    """

    def __init__(self, providers: Iterable[ItemProvider] = ()):
        self._providers: Dict[ItemType, ItemProvider] = {
            item_type: ItemProvider(item_type, RECORD_TYPES[item_type], SEARCH_FIELDS[item_type])
            for item_type in ItemType
        }
        for provider in providers:
            self._providers[provider.item_type] = provider

    @classmethod
    def from_collections(cls, collections: ItemCollections) -> "ItemRegistry":
        sources = {
            ItemType.RFI: collections.rfis,
            ItemType.SUBMITTAL: collections.submittals,
            ItemType.TASK: collections.tasks,
        }
        return cls(
            ItemProvider(item_type, RECORD_TYPES[item_type], SEARCH_FIELDS[item_type], items)
            for item_type, items in sources.items()
        )

    def provider(self, item_type: ItemType) -> ItemProvider:
        return self._providers[item_type]

    def resolve(self, item_type: ItemType, item_id: object) -> Optional[ItemRecord]:
        """Return the item a marker points at, or None when it is gone."""
        return self._providers[item_type].get(item_id)

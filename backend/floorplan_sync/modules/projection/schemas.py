"""Pydantic schemas for the enriched marker projection."""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny

from ..item.schemas import ItemCollections, ItemRecord, ItemType
from ..item.status import StatusGroup
from ..marker.schemas import MarkerRead

ALL = "all"

TypeFilter = Union[ItemType, Literal["all"]]
StatusFilter = Union[StatusGroup, Literal["all"]]


class EnrichedMarker(MarkerRead):
    """A marker joined with the item it points at. Derived, never stored."""

    model_config = ConfigDict(frozen=True)

    item: SerializeAsAny[ItemRecord]
    is_overdue: bool = False
    color: str


class ProjectionFilters(BaseModel):
    """Page and filter selection of the viewer."""

    page: Annotated[int, Field(ge=1, description="Page currently shown")] = 1
    item_type: TypeFilter = Field(default=ALL, description="Only markers of this item type")
    status: StatusFilter = Field(default=ALL, description="Only markers whose item is open or closed")


class ProjectionRequest(ProjectionFilters):
    """Schema for requesting the enriched markers of one floor plan page."""

    items: ItemCollections = Field(default_factory=ItemCollections, description="Item collections to join against")


class ProjectionResponse(BaseModel):
    """Schema for the enriched markers of one floor plan page."""

    floor_plan_id: int
    page: int
    page_name: str
    page_count: int
    previous_page: int = Field(description="Page reached by stepping back, clamped to the first page")
    next_page: int = Field(description="Page reached by stepping forward, clamped to the last page")
    markers: List[EnrichedMarker]
    can_edit: bool = Field(default=False, description="Whether the caller is offered mutations")


class SelectableItemsRequest(BaseModel):
    """Schema for listing items that can still be placed on a page."""

    item_type: ItemType = ItemType.RFI
    page: Annotated[int, Field(ge=1)] = 1
    search: Optional[str] = Field(default=None, max_length=255, description="Case-insensitive search term")
    items: ItemCollections = Field(default_factory=ItemCollections)


class SelectableItem(BaseModel):
    """An item offered in the add-marker dialog."""

    item_type: ItemType
    item: SerializeAsAny[ItemRecord]
    already_placed: bool = False
    is_overdue: bool = False
    color: str


class SelectableItemsResponse(BaseModel):
    items: List[SelectableItem]
    total: int

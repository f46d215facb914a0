"""Pydantic schemas for floor plans and pages."""

from enum import Enum
from typing import Annotated, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..common.schemas import FrozenRecord, TimestampSchema
from ..marker.schemas import MarkerId, MarkerRead


class FileType(str, Enum):
    """Kind of uploaded drawing."""

    IMAGE = "image"
    PDF = "pdf"


def default_page_name(page_number: int) -> str:
    return f"Page {page_number}"


class FloorPlanBase(BaseModel):
    """Base schema for floor plan data."""

    name: Annotated[str, Field(min_length=1, max_length=255, description="Floor plan name")]
    file_path: Annotated[str, Field(min_length=1, max_length=1024, description="Storage path of the uploaded file")]
    file_type: FileType = Field(default=FileType.IMAGE, description="Image or paginated document")
    page_count: Annotated[int, Field(ge=1, description="Number of pages in the file")] = 1


class FloorPlanCreate(FloorPlanBase):
    """Schema for registering an uploaded floor plan."""

    uploaded_by: Optional[str] = Field(default=None, max_length=255, description="User who uploaded the file")


class FloorPlanUpdate(BaseModel):
    """Schema for renaming a floor plan."""

    name: Annotated[str, Field(min_length=1, max_length=255, description="New floor plan name")]


class PageRename(BaseModel):
    """Schema for naming a page."""

    name: Annotated[str, Field(min_length=1, max_length=255, description="New page name")]


class ReorderRequest(BaseModel):
    """Schema for reordering floor plans; sort order becomes the list index."""

    floor_plan_ids: List[int] = Field(description="Floor plan ids in their new display order")


class PageRead(FrozenRecord):
    """A named page. ``id`` is None while the rename is unconfirmed."""

    id: Optional[int] = None
    floor_plan_id: int
    page_number: Annotated[int, Field(ge=1)]
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or default_page_name(self.page_number)


class FloorPlanRead(TimestampSchema, FrozenRecord):
    """A floor plan as held in the local mirror, with its pages and markers."""

    id: int
    project_id: int
    name: str
    file_path: str
    file_type: FileType = FileType.IMAGE
    page_count: int = 1
    sort_order: int = 0
    is_active: bool = True
    uploaded_by: Optional[str] = None
    pages: Tuple[PageRead, ...] = ()
    markers: Tuple[MarkerRead, ...] = ()

    def get_page(self, page_number: int) -> Optional[PageRead]:
        for page in self.pages:
            if page.page_number == page_number:
                return page
        return None

    def page_name(self, page_number: int) -> str:
        """Display name of a page, falling back to ``"Page {n}"``."""
        page = self.get_page(page_number)
        return page.display_name if page else default_page_name(page_number)

    def marker_index(self, marker_id: MarkerId) -> Optional[int]:
        for index, marker in enumerate(self.markers):
            if marker.id == marker_id:
                return index
        return None

    def has_page(self, page_number: int) -> bool:
        return 1 <= page_number <= self.page_count


class FloorPlanListResponse(BaseModel):
    """Schema for the floor plans of a project."""

    project_id: int
    floor_plans: List[FloorPlanRead]
    can_edit: bool = Field(default=False, description="Whether the caller is offered mutations")

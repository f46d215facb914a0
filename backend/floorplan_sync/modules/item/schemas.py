"""Pydantic schemas for externally owned work items."""

from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ItemType(str, Enum):
    """Kinds of work item a marker can point at."""

    RFI = "rfi"
    SUBMITTAL = "submittal"
    TASK = "task"


class ItemRecord(BaseModel):
    """An item as supplied by the host application.

    Only ``id``, ``status`` and ``due_date`` are interpreted; everything else is
    carried through to the enriched marker untouched.
    """

    model_config = ConfigDict(extra="allow", frozen=True, coerce_numbers_to_str=True)

    id: str
    status: Optional[str] = None
    due_date: Optional[date] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def truncate_due_date(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and len(v) > 10:
            return datetime.fromisoformat(v).date()
        return v


class RFIItem(ItemRecord):
    """Request for information."""

    rfi_number: Optional[str] = None
    subject: Optional[str] = None
    sent_to: Optional[str] = None


class SubmittalItem(ItemRecord):
    """Submittal package."""

    submittal_number: Optional[str] = None
    title: Optional[str] = None
    sent_to: Optional[str] = None
    submittal_type: Optional[str] = None


class TaskItem(ItemRecord):
    """Project task."""

    title: Optional[str] = None
    assignee: Optional[str] = None


class ItemCollections(BaseModel):
    """Item lists supplied by the host, one per item type."""

    rfis: List[RFIItem] = Field(default_factory=list, description="RFIs visible to the caller")
    submittals: List[SubmittalItem] = Field(default_factory=list, description="Submittals visible to the caller")
    tasks: List[TaskItem] = Field(default_factory=list, description="Tasks visible to the caller")

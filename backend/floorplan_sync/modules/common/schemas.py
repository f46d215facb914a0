"""Shared pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TimestampSchema(BaseModel):
    """Timestamps carried by every persisted record."""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FrozenRecord(BaseModel):
    """Base for records held in the local mirror.

    Mirror records are immutable; changes are made with ``model_copy(update=...)``
    and swapped in whole.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

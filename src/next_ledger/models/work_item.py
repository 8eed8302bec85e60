from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

HASH_PATTERN = r"^[0-9a-f]{64}$"


class UpsertOutcome(str, Enum):
    """What an enqueue did to the row for one (location, treatment) pair."""

    INSERTED = "inserted"
    UNCHANGED = "unchanged"
    REQUEUED = "requeued"


class WorkItem(BaseModel):
    """One unit of work for one treatment, keyed by its location hash."""

    location: str
    location_hash: str = Field(pattern=HASH_PATTERN)
    content_hash: str = Field(pattern=HASH_PATTERN)
    treatment: str
    completed_at: Optional[datetime] = None
    result: Optional[str] = None
    next_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> WorkItem:
        return cls.model_validate(dict(row))

    @property
    def is_pending(self) -> bool:
        return self.completed_at is None

    def is_due(self, now: datetime) -> bool:
        """True for a completed item whose revisit time has passed."""
        return (
            self.completed_at is not None
            and self.next_at is not None
            and self.next_at <= now
        )

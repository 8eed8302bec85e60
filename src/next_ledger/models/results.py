from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class EnqueueSummary(BaseModel):
    """Per-batch counts reported by the enqueue reconciler."""

    treatment: str
    inserted: int = 0
    unchanged: int = 0
    requeued: int = 0
    skipped: int = 0

    @property
    def reconciled(self) -> int:
        return self.inserted + self.unchanged + self.requeued


class CompletionResult(BaseModel):
    location: str
    location_hash: str
    treatment: str
    updated: bool
    completed_at: datetime
    next_at: Optional[datetime] = None

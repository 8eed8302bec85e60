from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

TOTAL_LABEL = "TOTAL"


class StatusRow(BaseModel):
    treatment: str
    pending: int = 0
    done: int = 0
    due: int = 0


class StatusReport(BaseModel):
    rows: list[StatusRow] = Field(default_factory=list)

    @property
    def total(self) -> Optional[StatusRow]:
        if not self.rows:
            return None
        return StatusRow(
            treatment=TOTAL_LABEL,
            pending=sum(r.pending for r in self.rows),
            done=sum(r.done for r in self.rows),
            due=sum(r.due for r in self.rows),
        )

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from next_ledger.models.work_item import WorkItem


class ClaimRequest(BaseModel):
    """Parameters of one claim call.

    ``cursor`` is the hash after which to resume (empty means from the start).
    ``shard`` and ``total_shards`` are either both set or both unset.
    """

    treatment: str
    cursor: str = ""
    n: int = 1
    shard: Optional[int] = None
    total_shards: Optional[int] = None

    @property
    def sharded(self) -> bool:
        return self.shard is not None or self.total_shards is not None


class ClaimBatch(BaseModel):
    items: list[WorkItem] = Field(default_factory=list)
    # Rows that matched but could not be decoded; the batch is short by this many.
    skipped: int = 0

    @property
    def next_cursor(self) -> Optional[str]:
        if not self.items:
            return None
        return self.items[-1].location_hash

from __future__ import annotations

import heapq
import logging
import re
from typing import Any

from pydantic import ValidationError as ModelValidationError

from next_ledger.db.database import Database
from next_ledger.errors import ValidationError
from next_ledger.models.claim import ClaimBatch, ClaimRequest
from next_ledger.models.work_item import WorkItem
from next_ledger.services.hashing import HASH_HEX_WIDTH
from next_ledger.services.sharding import ShardRange, shard_range
from next_ledger.utils.clock import format_instant, utc_now

logger = logging.getLogger(__name__)

_CURSOR_PATTERN = re.compile(rf"^[0-9a-f]{{0,{HASH_HEX_WIDTH}}}$")


def normalize_cursor(cursor: str | None) -> str:
    """Lower-case and validate a cursor; hashes compare as fixed-width text."""
    value = (cursor or "").strip().lower()
    if not _CURSOR_PATTERN.match(value):
        raise ValidationError("cursor must be a hex location hash", cursor=cursor)
    return value


class ClaimEngine:
    """Selects the next batch of work for one claimant.

    Nothing is locked: a claim is a read of the pending set in hash order,
    bounded by a cursor and optionally by a shard of the hash space. Items
    whose revisit time has passed are selected alongside pending ones.
    """

    def __init__(self, db: Database):
        self.db = db

    def _resolve_shard(self, request: ClaimRequest) -> ShardRange | None:
        if not request.sharded:
            return None
        if request.shard is None or request.total_shards is None:
            raise ValidationError(
                "--shard and --total-shards must be supplied together",
                shard=request.shard,
                total_shards=request.total_shards,
            )
        return shard_range(request.shard, request.total_shards)

    async def claim(self, request: ClaimRequest) -> ClaimBatch:
        if not request.treatment.strip():
            raise ValidationError("treatment is required")
        if request.n < 1:
            raise ValidationError("batch size must be at least 1", n=request.n)

        cursor = normalize_cursor(request.cursor)
        shard = self._resolve_shard(request)
        bounds: dict[str, Any] = {"after": cursor, "limit": request.n}
        if shard is not None:
            bounds.update(start=shard.start, end=shard.end, end_inclusive=shard.end_inclusive)

        pending = await self.db.range_query(request.treatment, **bounds)
        due = await self.db.due_query(
            request.treatment, format_instant(utc_now()), **bounds
        )

        batch = ClaimBatch()
        merged = heapq.merge(pending, due, key=lambda row: row["location_hash"])
        for row in merged:
            if len(batch.items) >= request.n:
                break
            try:
                batch.items.append(WorkItem.from_row(row))
            except ModelValidationError as exc:
                batch.skipped += 1
                logger.warning(
                    "Skipping undecodable row for %s (location=%r): %s",
                    request.treatment,
                    row.get("location"),
                    exc.errors()[0]["msg"] if exc.errors() else exc,
                )

        if batch.skipped:
            logger.warning(
                "Claim for %s returned %d items; %d matching rows were undecodable",
                request.treatment,
                len(batch.items),
                batch.skipped,
            )
        logger.debug(
            "Claimed %d items for %s (cursor=%r shard=%s)",
            len(batch.items),
            request.treatment,
            cursor,
            f"{shard.index}/{shard.total}" if shard else "-",
        )
        return batch

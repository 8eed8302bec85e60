from __future__ import annotations

import logging
from typing import Iterable

from next_ledger.db.database import Database
from next_ledger.errors import ResourceError, ValidationError
from next_ledger.models.results import EnqueueSummary
from next_ledger.models.work_item import UpsertOutcome, WorkItem
from next_ledger.services.hashing import content_hash, location_hash, normalize_location

logger = logging.getLogger(__name__)


class EnqueueReconciler:
    """Adds locations to the ledger and re-queues those whose content changed.

    A location that cannot be hashed is skipped with a warning. A failed
    store write raises and ends the batch: rows written before it stay
    committed, but no success count is reported for a batch that failed.
    """

    def __init__(self, db: Database):
        self.db = db

    async def reconcile(self, location: str, treatment: str) -> UpsertOutcome:
        """Hash one location and upsert it. Raises ResourceError if unreadable."""
        path = normalize_location(location)
        item = WorkItem(
            location=path,
            location_hash=location_hash(path),
            content_hash=content_hash(path),
            treatment=treatment,
        )
        outcome = await self.db.upsert(item)
        if outcome is UpsertOutcome.REQUEUED:
            logger.info("Content changed, re-queued %s for %s", path, treatment)
        return outcome

    async def enqueue(self, locations: Iterable[str], treatment: str) -> EnqueueSummary:
        if not treatment.strip():
            raise ValidationError("treatment is required")

        summary = EnqueueSummary(treatment=treatment)
        for raw in locations:
            if not raw.strip():
                continue
            try:
                outcome = await self.reconcile(raw, treatment)
            except ResourceError as exc:
                logger.warning("Skipping location that cannot be hashed: %s", exc)
                summary.skipped += 1
                continue

            if outcome is UpsertOutcome.INSERTED:
                summary.inserted += 1
            elif outcome is UpsertOutcome.REQUEUED:
                summary.requeued += 1
            else:
                summary.unchanged += 1

        logger.info(
            "Enqueued %d paths for %s (new=%d requeued=%d unchanged=%d skipped=%d)",
            summary.reconciled,
            treatment,
            summary.inserted,
            summary.requeued,
            summary.unchanged,
            summary.skipped,
        )
        return summary

from __future__ import annotations

import logging
from datetime import timedelta

from next_ledger.db.database import Database
from next_ledger.errors import ValidationError
from next_ledger.models.results import CompletionResult
from next_ledger.services.hashing import location_hash, normalize_location
from next_ledger.utils.clock import format_instant, parse_duration, utc_now

logger = logging.getLogger(__name__)


class CompletionHandler:
    """Marks work items done and schedules an optional revisit."""

    def __init__(self, db: Database):
        self.db = db

    async def complete(
        self,
        location: str,
        treatment: str,
        result: str = "",
        revisit: timedelta | str | None = None,
    ) -> CompletionResult:
        """Complete the item for ``(location, treatment)``.

        ``revisit`` sets ``next_at = completed_at + revisit``; after that
        instant the claim engine hands the item out again. Completing an
        item that is not in the ledger is not an error: the returned
        ``updated`` flag is False.
        """
        if not treatment.strip():
            raise ValidationError("treatment is required")
        path = normalize_location(location)

        if isinstance(revisit, str):
            delay = parse_duration(revisit) if revisit.strip() else None
        else:
            delay = revisit
        if delay is not None and delay <= timedelta(0):
            raise ValidationError("revisit duration must be positive", revisit=revisit)

        completed_at = utc_now()
        try:
            next_at = completed_at + delay if delay is not None else None
        except OverflowError as exc:
            raise ValidationError("revisit duration too large", revisit=revisit) from exc
        digest = location_hash(path)

        updated = await self.db.mark_complete(
            digest,
            treatment,
            format_instant(completed_at),
            result,
            format_instant(next_at) if next_at else None,
        )
        if updated:
            logger.info("Completed %s for %s", path, treatment)
        else:
            logger.warning("No queued item for %s under treatment %s", path, treatment)

        return CompletionResult(
            location=path,
            location_hash=digest,
            treatment=treatment,
            updated=updated,
            completed_at=completed_at,
            next_at=next_at,
        )

from __future__ import annotations

from next_ledger.db.database import Database
from next_ledger.models.status import StatusReport, StatusRow
from next_ledger.utils.clock import format_instant, utc_now


class StatusAggregator:
    """Read-only pending/done/due counts per treatment."""

    def __init__(self, db: Database):
        self.db = db

    async def status(self, treatment: str | None = None) -> StatusReport:
        rows = await self.db.aggregate(format_instant(utc_now()), treatment or None)
        return StatusReport(rows=[StatusRow(**row) for row in rows])

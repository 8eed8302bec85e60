from __future__ import annotations

import logging
from contextlib import contextmanager
from importlib import resources
from pathlib import Path
from typing import Any, Iterator

import aiosqlite

from next_ledger.errors import InternalError, LedgerError, ResourceError
from next_ledger.models.work_item import UpsertOutcome, WorkItem

logger = logging.getLogger(__name__)

_DEFAULT_DB_PATH = Path(".quality/ledger.db")

_COLUMNS = "location, location_hash, content_hash, treatment, completed_at, result, next_at"


@contextmanager
def _storage_errors(message: str, **details: Any) -> Iterator[None]:
    """Re-raise SQLite failures inside the block as InternalError."""
    try:
        yield
    except aiosqlite.Error as exc:
        raise InternalError(message, **details) from exc


def _range_clauses(
    after: str,
    start: str | None,
    end: str | None,
    end_inclusive: bool,
) -> tuple[list[str], list[Any]]:
    clauses = ["location_hash > ?"]
    params: list[Any] = [after]
    if start is not None:
        clauses.append("location_hash >= ?")
        params.append(start)
    if end is not None:
        clauses.append("location_hash <= ?" if end_inclusive else "location_hash < ?")
        params.append(end)
    return clauses, params


class Database:
    """Async SQLite layer for the work ledger.

    Holds a single persistent connection with WAL mode so readers never block
    the writer. The busy timeout makes a writer that collides with another
    process wait for the lock instead of failing with ``database is locked``.
    """

    def __init__(self, db_path: str | Path | None = None, busy_timeout_ms: int = 5000):
        self.db_path = Path(db_path) if db_path else _DEFAULT_DB_PATH
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the database file, apply the schema, and open the persistent connection."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ResourceError(
                "unable to create database directory", path=self.db_path
            ) from exc

        schema_sql = (
            resources.files("next_ledger.db").joinpath("schema.sql").read_text()
        )

        try:
            self._conn = await aiosqlite.connect(
                self.db_path, timeout=self.busy_timeout_ms / 1000
            )
        except aiosqlite.Error as exc:
            raise ResourceError("unable to open database", path=self.db_path) from exc
        self._conn.row_factory = aiosqlite.Row

        try:
            with _storage_errors("failed to configure database", path=self.db_path):
                await self._conn.execute("PRAGMA journal_mode=WAL")
                await self._conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
            with _storage_errors("failed to apply schema", path=self.db_path):
                await self._conn.executescript(schema_sql)
                await self._conn.commit()
        except LedgerError:
            await self.close()
            raise

        logger.debug("Database initialized at %s", self.db_path)

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        assert self._conn is not None, "Database not initialized; call initialize() first"
        return self._conn

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert(self, item: WorkItem) -> UpsertOutcome:
        """Insert ``item`` as pending, or reconcile the existing row.

        An existing row is reset to pending only when its stored content hash
        differs; otherwise completion, result and revisit time are preserved.
        """
        with _storage_errors(
            "failed to enqueue path", location=item.location, treatment=item.treatment
        ):
            cursor = await self.conn.execute(
                "SELECT content_hash FROM queue WHERE location_hash = ? AND treatment = ?",
                (item.location_hash, item.treatment),
            )
            previous = await cursor.fetchone()

            await self.conn.execute(
                """
                INSERT INTO queue
                    (location, location_hash, content_hash, treatment, completed_at, result, next_at)
                VALUES (?, ?, ?, ?, NULL, NULL, NULL)
                ON CONFLICT(location_hash, treatment) DO UPDATE SET
                    content_hash = excluded.content_hash,
                    completed_at = NULL,
                    result = NULL,
                    next_at = NULL
                WHERE queue.content_hash <> excluded.content_hash
                """,
                (item.location, item.location_hash, item.content_hash, item.treatment),
            )
            await self.conn.commit()

        if previous is None:
            return UpsertOutcome.INSERTED
        if previous["content_hash"] == item.content_hash:
            return UpsertOutcome.UNCHANGED
        return UpsertOutcome.REQUEUED

    async def mark_complete(
        self,
        location_hash: str,
        treatment: str,
        completed_at: str,
        result: str,
        next_at: str | None,
    ) -> bool:
        """Record completion; returns False when no row matched."""
        with _storage_errors(
            "failed to mark path complete", location_hash=location_hash, treatment=treatment
        ):
            cursor = await self.conn.execute(
                """
                UPDATE queue
                SET completed_at = ?, result = ?, next_at = ?
                WHERE location_hash = ? AND treatment = ?
                """,
                (completed_at, result, next_at, location_hash, treatment),
            )
            await self.conn.commit()
        return cursor.rowcount > 0

    async def delete_by_treatment(self, treatment: str) -> int:
        with _storage_errors("failed to reset treatment", treatment=treatment):
            cursor = await self.conn.execute(
                "DELETE FROM queue WHERE treatment = ?", (treatment,)
            )
            await self.conn.commit()
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, location_hash: str, treatment: str) -> dict[str, Any] | None:
        with _storage_errors(
            "failed to read queue entry", location_hash=location_hash, treatment=treatment
        ):
            cursor = await self.conn.execute(
                f"SELECT {_COLUMNS} FROM queue WHERE location_hash = ? AND treatment = ?",
                (location_hash, treatment),
            )
            row = await cursor.fetchone()
        return dict(row) if row else None

    async def range_query(
        self,
        treatment: str,
        *,
        after: str = "",
        start: str | None = None,
        end: str | None = None,
        end_inclusive: bool = False,
        limit: int,
    ) -> list[dict[str, Any]]:
        """Pending rows of ``treatment`` with ``location_hash > after``, in hash order.

        ``start``/``end`` further bound the hash (``start`` inclusive, ``end``
        exclusive unless ``end_inclusive``). Served by ``idx_queue_pending``.
        """
        clauses, params = _range_clauses(after, start, end, end_inclusive)
        with _storage_errors("failed to query queue", treatment=treatment):
            cursor = await self.conn.execute(
                f"""
                SELECT {_COLUMNS} FROM queue
                WHERE treatment = ? AND completed_at IS NULL AND {" AND ".join(clauses)}
                ORDER BY location_hash
                LIMIT ?
                """,
                (treatment, *params, limit),
            )
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def due_query(
        self,
        treatment: str,
        now: str,
        *,
        after: str = "",
        start: str | None = None,
        end: str | None = None,
        end_inclusive: bool = False,
        limit: int,
    ) -> list[dict[str, Any]]:
        """Completed rows whose ``next_at`` is at or before ``now``, in hash order."""
        clauses, params = _range_clauses(after, start, end, end_inclusive)
        with _storage_errors("failed to query revisits", treatment=treatment):
            cursor = await self.conn.execute(
                f"""
                SELECT {_COLUMNS} FROM queue
                WHERE treatment = ?
                  AND completed_at IS NOT NULL
                  AND next_at IS NOT NULL
                  AND next_at <= ?
                  AND {" AND ".join(clauses)}
                ORDER BY location_hash
                LIMIT ?
                """,
                (treatment, now, *params, limit),
            )
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def aggregate(
        self, now: str, treatment: str | None = None
    ) -> list[dict[str, Any]]:
        """Per-treatment pending/done/due counts, ordered by treatment."""
        query = """
            SELECT treatment,
                   SUM(CASE WHEN completed_at IS NULL THEN 1 ELSE 0 END) AS pending,
                   SUM(CASE WHEN completed_at IS NOT NULL THEN 1 ELSE 0 END) AS done,
                   SUM(CASE WHEN completed_at IS NOT NULL
                             AND next_at IS NOT NULL
                             AND next_at <= ? THEN 1 ELSE 0 END) AS due
            FROM queue
        """
        params: list[Any] = [now]
        if treatment:
            query += " WHERE treatment = ?"
            params.append(treatment)
        query += " GROUP BY treatment ORDER BY treatment"

        with _storage_errors("failed to query queue status", treatment=treatment or "*"):
            cursor = await self.conn.execute(query, params)
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

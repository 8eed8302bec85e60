"""Integration tests that exercise the ledger the way independent workers do.

These tests simulate the full flow a worker fleet would follow:
enqueue → claim (per shard) → done → content change → re-enqueue.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from next_ledger.db.database import Database
from next_ledger.models.claim import ClaimRequest
from next_ledger.services.claim_engine import ClaimEngine
from next_ledger.services.completion import CompletionHandler
from next_ledger.services.reconciler import EnqueueReconciler
from next_ledger.services.status import StatusAggregator


@pytest.fixture
async def ledger_path(tmp_path: Path) -> Path:
    path = tmp_path / "integration.db"
    db = Database(path)
    await db.initialize()
    await db.close()
    return path


@pytest.fixture
def work_files(tmp_path: Path) -> list[str]:
    paths = []
    for i in range(24):
        p = tmp_path / "src" / f"module_{i:02d}.py"
        p.parent.mkdir(exist_ok=True)
        p.write_text(f"print({i})\n")
        paths.append(str(p.resolve()))
    return paths


async def _worker(path: Path, shard: int, total: int, batch: int) -> list[str]:
    """Drain one shard: claim a batch, complete it, repeat until empty."""
    db = Database(path)
    await db.initialize()
    try:
        engine = ClaimEngine(db)
        completion = CompletionHandler(db)
        handled: list[str] = []
        while True:
            claimed = await engine.claim(
                ClaimRequest(treatment="lint", n=batch, shard=shard, total_shards=total)
            )
            if not claimed.items:
                return handled
            for item in claimed.items:
                await completion.complete(item.location, "lint", f"worker-{shard}")
                handled.append(item.location)
    finally:
        await db.close()


@pytest.mark.asyncio
class TestWorkerFlow:
    async def test_sharded_workers_drain_ledger_without_overlap(
        self, ledger_path: Path, work_files: list[str]
    ) -> None:
        db = Database(ledger_path)
        await db.initialize()
        summary = await EnqueueReconciler(db).enqueue(work_files, "lint")
        assert summary.inserted == len(work_files)

        results = await asyncio.gather(
            *(_worker(ledger_path, shard, 3, batch=2) for shard in range(3))
        )

        handled = [loc for worker in results for loc in worker]
        assert sorted(handled) == sorted(work_files)
        assert len(handled) == len(set(handled))

        report = await StatusAggregator(db).status("lint")
        assert (report.rows[0].pending, report.rows[0].done) == (0, len(work_files))
        await db.close()

    async def test_content_change_brings_item_back(
        self, ledger_path: Path, work_files: list[str]
    ) -> None:
        db = Database(ledger_path)
        await db.initialize()
        reconciler = EnqueueReconciler(db)
        engine = ClaimEngine(db)
        completion = CompletionHandler(db)

        await reconciler.enqueue(work_files, "lint")
        for loc in work_files:
            await completion.complete(loc, "lint", "clean")
        assert (await engine.claim(ClaimRequest(treatment="lint", n=100))).items == []

        changed = work_files[5]
        Path(changed).write_text("print('edited')\n")
        summary = await reconciler.enqueue(work_files, "lint")
        assert summary.requeued == 1
        assert summary.unchanged == len(work_files) - 1

        batch = await engine.claim(ClaimRequest(treatment="lint", n=100))
        assert [i.location for i in batch.items] == [changed]
        await db.close()

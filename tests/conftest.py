from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from next_ledger.db.database import Database
from next_ledger.services.claim_engine import ClaimEngine
from next_ledger.services.completion import CompletionHandler
from next_ledger.services.reconciler import EnqueueReconciler
from next_ledger.services.status import StatusAggregator
from next_ledger.utils.config import Config


@pytest.fixture
async def db(tmp_path: Path) -> Database:
    database = Database(tmp_path / "test.db")
    await database.initialize()
    yield database  # type: ignore[misc]
    await database.close()


@pytest.fixture
def reconciler(db: Database) -> EnqueueReconciler:
    return EnqueueReconciler(db)


@pytest.fixture
def claim_engine(db: Database) -> ClaimEngine:
    return ClaimEngine(db)


@pytest.fixture
def completion(db: Database) -> CompletionHandler:
    return CompletionHandler(db)


@pytest.fixture
def status_aggregator(db: Database) -> StatusAggregator:
    return StatusAggregator(db)


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[[str, str], str]:
    """Write ``content`` to ``tmp_path/name`` and return its absolute path."""

    def _make(name: str, content: str = "data") -> str:
        path = tmp_path / "work" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return str(path.resolve())

    return _make

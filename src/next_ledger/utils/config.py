from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Config:
    """Central configuration loaded from environment variables."""

    # Ledger store
    db_path: Path = field(
        default_factory=lambda: Path(
            os.environ.get("NEXT_DB_PATH", ".quality/ledger.db")
        )
    )
    busy_timeout_ms: int = field(
        default_factory=lambda: int(os.environ.get("NEXT_BUSY_TIMEOUT_MS", "5000"))
    )

    # Claim defaults
    default_batch: int = field(
        default_factory=lambda: int(os.environ.get("NEXT_DEFAULT_BATCH", "1"))
    )

    # Logging
    log_level: str = field(
        default_factory=lambda: os.environ.get("NEXT_LOG_LEVEL", "INFO")
    )


def get_config() -> Config:
    """Return a Config instance (singleton-friendly via module caching)."""
    return Config()

from __future__ import annotations

import logging
import sys

_HANDLER_NAME = "next_ledger.stderr"


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the ledger CLI.

    Safe to call once per command invocation: the stderr handler is replaced,
    not stacked, so repeated calls in one process log each record once.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root = logging.getLogger("next_ledger")
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.setLevel(numeric_level)
    root.addHandler(handler)

    # Suppress noisy third-party loggers
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

"""next-ledger: a coordination-free, hash-sharded work ledger."""

__version__ = "0.1.0"

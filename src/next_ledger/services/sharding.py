"""Deterministic partitioning of the location-hash space.

The leading 64 bits of a location hash are read as an unsigned integer and
the range ``[0, 2**64)`` is cut into ``total`` contiguous slices. Bounds are
rendered back to full-width hex (16 significant digits, 48 zero digits) so
that the store can compare them against ``location_hash`` as plain text.
"""

from __future__ import annotations

from dataclasses import dataclass

from next_ledger.errors import ValidationError
from next_ledger.services.hashing import HASH_HEX_WIDTH

PREFIX_BITS = 64
PREFIX_HEX_WIDTH = PREFIX_BITS // 4
HASH_SPACE = 1 << PREFIX_BITS

MIN_HASH = "0" * HASH_HEX_WIDTH
MAX_HASH = "f" * HASH_HEX_WIDTH


@dataclass(frozen=True)
class ShardRange:
    """Half-open ``[start, end)`` slice; the last shard's end is inclusive."""

    index: int
    total: int
    start: str
    end: str
    end_inclusive: bool = False

    def contains(self, hash_hex: str) -> bool:
        if hash_hex < self.start:
            return False
        if self.end_inclusive:
            return hash_hex <= self.end
        return hash_hex < self.end


def _render_bound(value: int) -> str:
    return format(value, f"0{PREFIX_HEX_WIDTH}x").ljust(HASH_HEX_WIDTH, "0")


def _boundary(index: int, total: int) -> int:
    return index * HASH_SPACE // total


def validate_shard(index: int, total: int) -> None:
    if total < 1:
        raise ValidationError("total shards must be at least 1", total_shards=total)
    if not 0 <= index < total:
        raise ValidationError(
            "shard must satisfy 0 <= shard < total-shards",
            shard=index,
            total_shards=total,
        )


def shard_range(index: int, total: int) -> ShardRange:
    validate_shard(index, total)
    start = _render_bound(_boundary(index, total))
    if index == total - 1:
        return ShardRange(index, total, start, MAX_HASH, end_inclusive=True)
    end = _render_bound(_boundary(index + 1, total))
    return ShardRange(index, total, start, end)


def all_shards(total: int) -> list[ShardRange]:
    return [shard_range(i, total) for i in range(total)]


def hash_prefix(hash_hex: str) -> int:
    return int(hash_hex[:PREFIX_HEX_WIDTH], 16)


def shard_for_hash(hash_hex: str, total: int) -> int:
    """Index of the single shard of ``total`` whose range holds ``hash_hex``."""
    validate_shard(0, total)
    prefix = hash_prefix(hash_hex)
    # Boundaries are floored, so the estimate can land one slice low.
    index = prefix * total // HASH_SPACE
    while index + 1 < total and prefix >= _boundary(index + 1, total):
        index += 1
    return index

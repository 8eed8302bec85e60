from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from next_ledger.errors import ValidationError

# Fixed width so that text comparison in SQL is chronological comparison.
INSTANT_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_UNIT_SECONDS = {
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "w": 604800,
    "week": 604800,
    "weeks": 604800,
}

_DURATION_PART = re.compile(r"(\d+)\s*([a-z]+)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_instant(value: datetime) -> str:
    """Render ``value`` as canonical UTC text; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(INSTANT_FORMAT)


def parse_duration(text: str) -> timedelta:
    """Parse durations such as ``"14 days"``, ``"2h"`` or ``"1 week 3 days"``.

    Raises:
        ValidationError: if the text is empty, has unknown units or leftover
            characters, adds up to zero, or is too large for a timedelta.
    """
    cleaned = text.strip().lower()
    if not cleaned:
        raise ValidationError("revisit duration is empty")

    seconds = 0
    pos = 0
    for match in _DURATION_PART.finditer(cleaned):
        if cleaned[pos:match.start()].strip(" ,"):
            raise ValidationError("invalid revisit duration", revisit=text)
        amount, unit = match.groups()
        if unit not in _UNIT_SECONDS:
            raise ValidationError("unknown duration unit", revisit=text, unit=unit)
        seconds += int(amount) * _UNIT_SECONDS[unit]
        pos = match.end()

    if pos == 0 or cleaned[pos:].strip(" ,"):
        raise ValidationError("invalid revisit duration", revisit=text)
    if seconds <= 0:
        raise ValidationError("revisit duration must be positive", revisit=text)
    try:
        return timedelta(seconds=seconds)
    except OverflowError as exc:
        raise ValidationError("revisit duration too large", revisit=text) from exc

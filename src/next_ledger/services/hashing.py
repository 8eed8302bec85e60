from __future__ import annotations

import hashlib
import os

from next_ledger.errors import ResourceError, ValidationError

HASH_HEX_WIDTH = 64
_CHUNK_SIZE = 1 << 16


def normalize_location(location: str) -> str:
    """Return the absolute, normalized form of ``location``."""
    stripped = location.strip()
    if not stripped:
        raise ValidationError("location is empty")
    return os.path.abspath(stripped)


def printable_location(location: str) -> str:
    """``location`` with undecodable bytes rendered as backslash escapes."""
    return location.encode("utf-8", "backslashreplace").decode("utf-8")


def location_hash(location: str) -> str:
    """SHA-256 of the location text as 64 lower-case hex characters.

    Raises:
        ResourceError: the location is not valid UTF-8 (a file name read
            with ``os.fsdecode`` that carries undecodable bytes).
    """
    try:
        encoded = location.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ResourceError(
            "location is not valid UTF-8", location=printable_location(location)
        ) from exc
    return hashlib.sha256(encoded).hexdigest()


def content_hash(location: str) -> str:
    """SHA-256 of the file contents at ``location``.

    Raises:
        ResourceError: the file cannot be opened or read (missing, directory,
            permission denied, vanished mid-read, or a name with a NUL byte).
    """
    digest = hashlib.sha256()
    try:
        with open(location, "rb") as fh:
            for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except (OSError, ValueError) as exc:
        raise ResourceError(
            "unable to read file", location=printable_location(location)
        ) from exc
    return digest.hexdigest()

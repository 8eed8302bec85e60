from __future__ import annotations

from typing import Any

CODE_VALIDATION = "validation"
CODE_RESOURCE = "resource"
CODE_INTERNAL = "internal"


class LedgerError(Exception):
    """Base error for ledger operations.

    Carries a short human message, a machine-readable ``code`` and a dict of
    details (offending location, treatment, db path ...) that is rendered
    into ``str(err)`` so a failure can be diagnosed from the message alone.
    """

    code = CODE_INTERNAL

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details

    def __str__(self) -> str:
        if not self.details:
            return self.message
        rendered = " ".join(f"{k}={v}" for k, v in self.details.items())
        if self.__cause__ is not None:
            return f"{self.message} ({rendered}): {self.__cause__}"
        return f"{self.message} ({rendered})"


class ValidationError(LedgerError):
    """Bad or missing arguments, malformed shard parameters or cursors."""

    code = CODE_VALIDATION


class ResourceError(LedgerError):
    """Unreadable file or unavailable store path."""

    code = CODE_RESOURCE


class InternalError(LedgerError):
    """Storage engine failure: schema application, query or write."""

    code = CODE_INTERNAL

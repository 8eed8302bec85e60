from next_ledger.models.claim import ClaimBatch, ClaimRequest
from next_ledger.models.results import CompletionResult, EnqueueSummary
from next_ledger.models.status import StatusReport, StatusRow
from next_ledger.models.work_item import UpsertOutcome, WorkItem

__all__ = [
    "ClaimBatch",
    "ClaimRequest",
    "CompletionResult",
    "EnqueueSummary",
    "StatusReport",
    "StatusRow",
    "UpsertOutcome",
    "WorkItem",
]

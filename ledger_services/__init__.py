"""
ledger_services -- caller-facing layer over the ledger kernel.

Responsibility:
    Owns transactions, maps kernel exceptions to ``OperationResult`` /
    ``ErrorInfo`` values, and identifies the acting profile of a request.

Architecture position:
    ledger_services/ -> ledger_kernel/  (allowed)
    ledger_services/ -> ledger_config/  (allowed)
    ledger_kernel/   -> ledger_services/ (FORBIDDEN)
"""

from ledger_services.operations import ErrorInfo, LedgerOperations, OperationResult
from ledger_services.profile_resolver import HeaderProfileResolver, ProfileResolver

__all__ = [
    "ErrorInfo",
    "HeaderProfileResolver",
    "LedgerOperations",
    "OperationResult",
    "ProfileResolver",
]

"""Domain models for the ledger kernel."""

from ledger_kernel.models.contract import Contract, ContractStatus
from ledger_kernel.models.job import Job
from ledger_kernel.models.profile import Profile, ProfileKind
from ledger_kernel.models.transfer import LedgerTransfer, TransferKind

__all__ = [
    "Contract",
    "ContractStatus",
    "Job",
    "LedgerTransfer",
    "Profile",
    "ProfileKind",
    "TransferKind",
]

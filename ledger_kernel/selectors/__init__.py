"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.contract_selector import ContractSelector
from ledger_kernel.selectors.earnings_selector import EarningsSelector
from ledger_kernel.selectors.job_selector import JobSelector
from ledger_kernel.selectors.outstanding_debt_selector import OutstandingDebtSelector

__all__ = [
    "ContractSelector",
    "EarningsSelector",
    "JobSelector",
    "OutstandingDebtSelector",
]

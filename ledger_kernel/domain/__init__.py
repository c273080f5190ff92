"""
Pure domain layer.

Immutable DTOs, the report window, and the clock abstraction.  Nothing here
touches the database.
"""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    ClientPayment,
    ContractInfo,
    DepositReceipt,
    JobInfo,
    PaymentReceipt,
    ProfessionEarnings,
    ProfileInfo,
)
from ledger_kernel.domain.report_window import ReportWindow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ClientPayment",
    "ContractInfo",
    "DepositReceipt",
    "JobInfo",
    "PaymentReceipt",
    "ProfessionEarnings",
    "ProfileInfo",
    "ReportWindow",
]

"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.balance_transfer_service import BalanceTransferService

__all__ = [
    "BalanceTransferService",
]

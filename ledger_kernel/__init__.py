"""
Ledger Kernel - marketplace balances and earnings reporting.

Clients fund balances, pay contractors for jobs under contracts, and the
kernel reports earnings by profession and by client, with:
- Capped deposits (share of outstanding job debt)
- Atomic, row-locked job payments
- Typed errors with machine-readable codes
- Structured JSON logging
"""

__version__ = "0.1.0"

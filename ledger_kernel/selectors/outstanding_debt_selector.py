"""
Module: ledger_kernel.selectors.outstanding_debt_selector
Responsibility: Computes a client's outstanding job debt -- the sum of the
    prices of every unpaid job across all of the client's contracts.  The
    deposit path uses this figure to cap deposits.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - "Unpaid" means paid = false OR paid IS NULL.
    - Contract status is ignored: a terminated contract's unpaid jobs still
      count as debt.
    - A client without unpaid jobs has outstanding 0.00, never an error.

Failure modes:
    - None beyond database errors.  An unknown client id also yields 0.00;
      existence is checked by the caller.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.db.types import round_money
from ledger_kernel.models.contract import Contract
from ledger_kernel.models.job import Job
from ledger_kernel.selectors.base import BaseSelector


class OutstandingDebtSelector(BaseSelector[Job]):
    """Read-only outstanding-debt computation."""

    def compute_outstanding(self, client_id: UUID) -> Decimal:
        """
        Sum the prices of the client's unpaid jobs.

        Runs in the caller's session; when called from a deposit that holds
        the client row lock, the figure cannot be invalidated by a payment
        for the same client until the deposit commits.

        Args:
            client_id: Profile id of the client.

        Returns:
            Outstanding amount, two decimal places.
        """
        stmt = (
            select(func.coalesce(func.sum(Job.price), 0))
            .select_from(Job)
            .join(Contract, Job.contract_id == Contract.id)
            .where(Contract.client_id == client_id)
            .where(Job.unpaid_clause())
        )
        total = self.session.execute(stmt).scalar_one()
        return round_money(Decimal(str(total)))

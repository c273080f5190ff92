"""
BalanceTransferService -- the only writer of profile balances.

Responsibility:
    Deposits into client accounts (capped at a share of the client's
    outstanding job debt) and job payments from client to contractor.
    Every successful mutation writes one ``LedgerTransfer`` row in the same
    transaction.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes within the caller's
    transaction; LedgerOperations owns commit/rollback.

Invariants enforced:
    - Balances never go negative: the debit check runs while the client
      row is locked, and ck_profile_balance_non_negative backs it up.
    - A job is paid at most once: the paid flag is re-read after the job
      row lock is held, and uq_transfer_job_payment backs it up.
    - Conservation: a payment debits the client and credits the contractor
      by exactly the job price.
    - A deposit never exceeds deposit_cap_ratio * outstanding measured
      under the client row lock.
    - Lock order is client -> contractor -> job for payments; deposits lock
      only the client.  Overlapping operations therefore cannot deadlock.

Failure modes:
    - InvalidAmountError, ClientNotFoundError, DepositLimitExceededError
      from deposit().
    - JobNotFoundError, JobAlreadyPaidError, InsufficientFundsError and
      LedgerConsistencyError from pay_job().
    - Every precondition is checked before the first mutation, so a raised
      error leaves the session without pending balance changes.
"""

from datetime import timezone
from decimal import ROUND_DOWN, Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import parse_money, round_money
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import DepositReceipt, PaymentReceipt
from ledger_kernel.domain.identifiers import parse_identifier
from ledger_kernel.exceptions import (
    ClientNotFoundError,
    DepositLimitExceededError,
    InsufficientFundsError,
    InvalidAmountError,
    JobAlreadyPaidError,
    JobNotFoundError,
    LedgerConsistencyError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.contract import Contract
from ledger_kernel.models.job import Job
from ledger_kernel.models.profile import Profile, ProfileKind
from ledger_kernel.models.transfer import LedgerTransfer, TransferKind
from ledger_kernel.selectors.outstanding_debt_selector import OutstandingDebtSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.balance_transfer")

DEFAULT_DEPOSIT_CAP_RATIO = Decimal("0.25")


class BalanceTransferService(BaseService[Profile]):
    """
    Atomic balance mutations.

    Contract:
        deposit() and pay_job() either apply all of their effects (balance
        changes, job flag, transfer row) to the session and flush, or raise
        before touching anything.

    Non-goals:
        - Withdrawals, refunds and un-paying a job.
        - Currency handling; every amount shares one currency.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        deposit_cap_ratio: Decimal = DEFAULT_DEPOSIT_CAP_RATIO,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._deposit_cap_ratio = Decimal(deposit_cap_ratio)
        self._outstanding = OutstandingDebtSelector(session)

    # =========================================================================
    # Deposits
    # =========================================================================

    def deposit(self, client_id: UUID | str, amount: object) -> DepositReceipt:
        """
        Credit a client's balance.

        The cap applies to each deposit on its own, measured against the
        outstanding debt at the time of that deposit.  Earlier deposits do
        not count towards it, so several deposits that are each within the
        cap all succeed even when together they exceed it.

        Preconditions:
            - amount parses to a positive Decimal with at most two places.
            - client_id names a profile of kind client.

        Postconditions:
            - balance += amount and one deposit transfer row, flushed.

        Raises:
            InvalidAmountError: Malformed or non-positive amount.
            ClientNotFoundError: No client profile with this id.
            DepositLimitExceededError: amount > cap ratio * outstanding.
        """
        value = parse_money(amount)
        if value <= 0:
            raise InvalidAmountError(str(amount), "amount must be positive")
        client_uuid = parse_identifier(client_id, "client")

        client = self._lock_profile(client_uuid)
        if client is None or client.kind != ProfileKind.CLIENT:
            raise ClientNotFoundError(str(client_uuid))

        # Computed under the client lock: a concurrent payment for this
        # client is either fully visible or not started.
        outstanding = self._outstanding.compute_outstanding(client.id)
        max_deposit = outstanding * self._deposit_cap_ratio

        if value > max_deposit:
            logger.warning(
                "deposit_rejected",
                extra={
                    "client_id": str(client.id),
                    "amount": str(value),
                    "max_deposit": str(max_deposit),
                    "outstanding": str(outstanding),
                },
            )
            raise DepositLimitExceededError(
                str(client.id),
                str(value),
                str(round_money(max_deposit, rounding=ROUND_DOWN)),
                str(outstanding),
            )

        deposited_at = self._now()
        client.balance = round_money(client.balance + value)
        transfer = LedgerTransfer(
            kind=TransferKind.DEPOSIT.value,
            amount=value,
            payer_id=None,
            payee_id=client.id,
            job_id=None,
            occurred_at=deposited_at,
        )
        self.session.add(transfer)
        self.session.flush()

        logger.info(
            "deposit_completed",
            extra={
                "client_id": str(client.id),
                "amount": str(value),
                "new_balance": str(client.balance),
                "transfer_id": str(transfer.id),
            },
        )

        return DepositReceipt(
            transfer_id=transfer.id,
            client_id=client.id,
            amount=value,
            new_balance=client.balance,
            deposited_at=deposited_at,
        )

    # =========================================================================
    # Job payments
    # =========================================================================

    def pay_job(self, job_id: UUID | str) -> PaymentReceipt:
        """
        Move the job price from the contract's client to its contractor.

        Postconditions:
            - client.balance -= price, contractor.balance += price,
              job.paid = True, job.payment_date = clock.now(), one
              job_payment transfer row; all flushed together.

        Raises:
            JobNotFoundError: No job with this id.
            JobAlreadyPaidError: Job was paid before the lock was taken or
                by a payment that committed while this one waited.
            InsufficientFundsError: Client balance below the job price.
            LedgerConsistencyError: Contract parties are missing or of the
                wrong kind.
        """
        job_uuid = parse_identifier(job_id, "job")

        job = self.session.get(Job, job_uuid)
        if job is None:
            raise JobNotFoundError(str(job_uuid))
        if job.is_paid:
            self._log_payment_rejected(job, "already_paid")
            raise JobAlreadyPaidError(str(job.id))

        contract = self.session.get(Contract, job.contract_id)
        if contract is None:
            raise LedgerConsistencyError(
                "Job", str(job.id), "contract does not exist"
            )

        client = self._lock_profile(contract.client_id)
        contractor = self._lock_profile(contract.contractor_id)
        self._check_party(contract, client, ProfileKind.CLIENT)
        self._check_party(contract, contractor, ProfileKind.CONTRACTOR)

        job = self.session.execute(
            select(Job)
            .where(Job.id == job_uuid)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()
        if job.is_paid:
            self._log_payment_rejected(job, "already_paid")
            raise JobAlreadyPaidError(str(job.id))

        price = job.price
        if client.balance < price:
            self._log_payment_rejected(job, "insufficient_funds")
            raise InsufficientFundsError(
                str(client.id), str(client.balance), str(price)
            )

        paid_at = self._now()
        client.balance = round_money(client.balance - price)
        contractor.balance = round_money(contractor.balance + price)
        job.paid = True
        job.payment_date = paid_at

        transfer = LedgerTransfer(
            kind=TransferKind.JOB_PAYMENT.value,
            amount=price,
            payer_id=client.id,
            payee_id=contractor.id,
            job_id=job.id,
            occurred_at=paid_at,
        )
        self.session.add(transfer)
        self.session.flush()

        logger.info(
            "job_payment_completed",
            extra={
                "job_id": str(job.id),
                "amount": str(price),
                "payer_id": str(client.id),
                "payee_id": str(contractor.id),
                "transfer_id": str(transfer.id),
            },
        )

        return PaymentReceipt(
            transfer_id=transfer.id,
            job_id=job.id,
            amount=price,
            payer_id=client.id,
            payee_id=contractor.id,
            paid_at=paid_at,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _lock_profile(self, profile_id: UUID) -> Profile | None:
        """SELECT ... FOR UPDATE on one profile row, refreshing the instance."""
        return self.session.execute(
            select(Profile)
            .where(Profile.id == profile_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _check_party(
        self,
        contract: Contract,
        profile: Profile | None,
        expected: ProfileKind,
    ) -> None:
        if profile is None:
            raise LedgerConsistencyError(
                "Contract", str(contract.id), f"{expected.value} profile does not exist"
            )
        if profile.kind != expected:
            raise LedgerConsistencyError(
                "Contract",
                str(contract.id),
                f"profile {profile.id} is not of kind {expected.value}",
            )

    def _log_payment_rejected(self, job: Job, reason: str) -> None:
        logger.warning(
            "job_payment_rejected",
            extra={"job_id": str(job.id), "reason": reason},
        )

    def _now(self):
        return self._clock.now().astimezone(timezone.utc)

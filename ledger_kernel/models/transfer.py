"""
Module: ledger_kernel.models.transfer
Responsibility: Append-only record of every successful balance mutation
    (deposits and job payments).  Receipts returned by the
    BalanceTransferService carry the id of the row written here.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - amount > 0 (ck_transfer_amount_positive).
    - A job_payment row names payer, payee and job; a deposit row names the
      payee only (ck_transfer_shape).
    - At most one job_payment row per job (uq_transfer_job_payment); a
      second payment of the same job fails at flush even if a caller
      bypassed the service checks.
    - Rows are written in the same transaction as the balance change they
      describe and are never updated.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString


class TransferKind(str, Enum):
    """What caused the balance mutation."""

    DEPOSIT = "deposit"
    JOB_PAYMENT = "job_payment"


class LedgerTransfer(TrackedBase):
    """
    One deposit or one job payment.

    Guarantees:
        - occurred_at comes from the injected Clock of the writing service.
        - payer_id is NULL for deposits (funds enter from outside).
    """

    __tablename__ = "ledger_transfers"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transfer_amount_positive"),
        CheckConstraint(
            "(kind = 'deposit' AND payer_id IS NULL AND job_id IS NULL) "
            "OR (kind = 'job_payment' AND payer_id IS NOT NULL AND job_id IS NOT NULL)",
            name="ck_transfer_shape",
        ),
        UniqueConstraint("job_id", name="uq_transfer_job_payment"),
        Index("idx_transfer_payee", "payee_id"),
        Index("idx_transfer_payer", "payer_id"),
        Index("idx_transfer_occurred_at", "occurred_at"),
    )

    kind: Mapped[TransferKind] = mapped_column(
        String(20),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    payer_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("profiles.id"),
        nullable=True,
    )

    payee_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("profiles.id"),
        nullable=False,
    )

    job_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("jobs.id"),
        nullable=True,
    )

    occurred_at: Mapped[datetime] = mapped_column(
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<LedgerTransfer {self.id}: {self.kind} {self.amount}>"

"""
Module: ledger_kernel.models.job
Responsibility: ORM persistence for billable units of work under a contract.
Architecture position: Kernel > Models.  May import from db/base.py and
    sibling models for relationship typing only.

Invariants enforced:
    - price > 0 (ck_job_price_positive) and is never mutated by the kernel.
    - paid is tri-state: NULL and False both mean unpaid.
    - payment_date is set iff paid is true (ck_job_payment_date_iff_paid).
    - A job transitions unpaid -> paid exactly once; there is no un-pay.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.contract import Contract


class Job(TrackedBase):
    """
    Billable unit of work under exactly one contract.

    Guarantees:
        - is_paid is False for both NULL and False stored values.
        - payment_date is written in the same flush that sets paid=True.
    """

    __tablename__ = "jobs"

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_job_price_positive"),
        CheckConstraint(
            "(paid IS TRUE AND payment_date IS NOT NULL) "
            "OR (paid IS NOT TRUE AND payment_date IS NULL)",
            name="ck_job_payment_date_iff_paid",
        ),
        Index("idx_job_contract", "contract_id"),
        Index("idx_job_paid_payment_date", "paid", "payment_date"),
    )

    description: Mapped[str] = mapped_column(
        String(4000),
        nullable=False,
        default="",
    )

    price: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    paid: Mapped[bool | None] = mapped_column(
        Boolean,
        nullable=True,
        default=None,
    )

    payment_date: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=False,
    )

    contract: Mapped["Contract"] = relationship(
        "Contract",
        back_populates="jobs",
    )

    @property
    def is_paid(self) -> bool:
        return self.paid is True

    @classmethod
    def unpaid_clause(cls):
        """SQL predicate matching paid = false OR paid IS NULL."""
        return cls.paid.is_not(True)

    @classmethod
    def paid_clause(cls):
        """SQL predicate matching paid = true."""
        return cls.paid.is_(True)

    def __repr__(self) -> str:
        state = "paid" if self.is_paid else "unpaid"
        return f"<Job {self.id}: {self.price} ({state})>"

"""
Module: ledger_kernel.models.profile
Responsibility: ORM persistence for marketplace identities -- clients who
    fund work and contractors who perform it.  Each profile holds a monetary
    balance that only the BalanceTransferService mutates.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - balance >= 0 at rest (ck_profile_balance_non_negative).  Services check
      the same condition before every debit so the constraint is a backstop,
      not the primary guard.
    - kind is one of ProfileKind (ck_profile_kind).

Failure modes:
    - IntegrityError if a flush would leave a negative balance.
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class ProfileKind(str, Enum):
    """Marketplace role of a profile."""

    CLIENT = "client"
    CONTRACTOR = "contractor"


class Profile(TrackedBase):
    """
    Client or contractor identity with a monetary balance.

    Guarantees:
        - kind is set at creation and classifies the profile permanently.
        - balance carries two decimal places and is never negative.

    Non-goals:
        - Provisioning and deletion of profiles happen outside the kernel.
    """

    __tablename__ = "profiles"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_profile_balance_non_negative"),
        CheckConstraint(
            "kind IN ('client', 'contractor')", name="ck_profile_kind"
        ),
        Index("idx_profile_kind", "kind"),
        Index("idx_profile_profession", "profession"),
    )

    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    profession: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    kind: Mapped[ProfileKind] = mapped_column(
        String(20),
        nullable=False,
    )

    balance: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0.00"),
    )

    @property
    def full_name(self) -> str:
        """Display name, "first last"."""
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Profile {self.id}: {self.full_name} ({self.kind})>"

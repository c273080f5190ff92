"""
Module: ledger_kernel.models.contract
Responsibility: ORM persistence for agreements between one client profile
    and one contractor profile.  Contracts own the jobs billed under them.
Architecture position: Kernel > Models.  May import from db/base.py and
    sibling models for relationship typing only.

Invariants enforced:
    - client_id and contractor_id reference existing profiles (FKs).  That
      they resolve to kind client / contractor respectively is checked by
      the services that read them (a mismatch is a LedgerConsistencyError).
    - status is one of ContractStatus (ck_contract_status).
    - Terminated contracts are kept for history; "active" views exclude them.
"""

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.job import Job
    from ledger_kernel.models.profile import Profile


class ContractStatus(str, Enum):
    """Contract lifecycle status.

    Transitions follow NEW -> IN_PROGRESS -> TERMINATED.
    """

    NEW = "new"
    IN_PROGRESS = "in_progress"
    TERMINATED = "terminated"


class Contract(TrackedBase):
    """
    Agreement binding exactly one client to exactly one contractor.

    Guarantees:
        - Both parties are set at creation and never change.
        - status drives inclusion in active views only; it does not affect
          outstanding-debt computation.
    """

    __tablename__ = "contracts"

    __table_args__ = (
        CheckConstraint(
            "status IN ('new', 'in_progress', 'terminated')",
            name="ck_contract_status",
        ),
        Index("idx_contract_client", "client_id"),
        Index("idx_contract_contractor", "contractor_id"),
        Index("idx_contract_status", "status"),
    )

    terms: Mapped[str] = mapped_column(
        String(4000),
        nullable=False,
        default="",
    )

    status: Mapped[ContractStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ContractStatus.NEW.value,
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("profiles.id"),
        nullable=False,
    )

    contractor_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("profiles.id"),
        nullable=False,
    )

    client: Mapped["Profile"] = relationship(
        "Profile",
        foreign_keys=[client_id],
    )

    contractor: Mapped["Profile"] = relationship(
        "Profile",
        foreign_keys=[contractor_id],
    )

    jobs: Mapped[list["Job"]] = relationship(
        "Job",
        back_populates="contract",
    )

    def involves(self, profile_id: UUID) -> bool:
        """True if the profile is the client or the contractor."""
        return profile_id in (self.client_id, self.contractor_id)

    def __repr__(self) -> str:
        return f"<Contract {self.id}: {self.status}>"

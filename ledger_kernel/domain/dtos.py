"""
DTOs -- immutable data transfer objects returned by services and selectors.

Responsibility:
    Defines the frozen structures that cross the kernel boundary: profile,
    contract and job snapshots, transfer receipts, and report rows.

Architecture position:
    Kernel > Domain -- free of ORM dependencies.  ``from_model()`` class
    methods are boundary converters invoked only from services/selectors.

Invariants enforced:
    - Services and selectors return DTOs, never ORM entities, so callers
      cannot mutate persisted state outside a service.
    - All monetary fields are Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from ledger_kernel.models.contract import Contract as ContractModel
    from ledger_kernel.models.job import Job as JobModel
    from ledger_kernel.models.profile import Profile as ProfileModel


def _code(value: object) -> str:
    """Stored enum columns load back as plain strings; normalize both."""
    return value.value if isinstance(value, Enum) else str(value)


# =============================================================================
# Entity snapshots
# =============================================================================


@dataclass(frozen=True)
class ProfileInfo:
    """Immutable snapshot of a profile."""

    id: UUID
    kind: str
    first_name: str
    last_name: str
    profession: str
    balance: Decimal

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_model(cls, profile: ProfileModel) -> ProfileInfo:
        return cls(
            id=profile.id,
            kind=_code(profile.kind),
            first_name=profile.first_name,
            last_name=profile.last_name,
            profession=profile.profession,
            balance=profile.balance,
        )


@dataclass(frozen=True)
class ContractInfo:
    """Immutable snapshot of a contract."""

    id: UUID
    terms: str
    status: str
    client_id: UUID
    contractor_id: UUID

    @classmethod
    def from_model(cls, contract: ContractModel) -> ContractInfo:
        return cls(
            id=contract.id,
            terms=contract.terms,
            status=_code(contract.status),
            client_id=contract.client_id,
            contractor_id=contract.contractor_id,
        )


@dataclass(frozen=True)
class JobInfo:
    """Immutable snapshot of a job."""

    id: UUID
    contract_id: UUID
    description: str
    price: Decimal
    paid: bool
    payment_date: datetime | None

    @classmethod
    def from_model(cls, job: JobModel) -> JobInfo:
        return cls(
            id=job.id,
            contract_id=job.contract_id,
            description=job.description,
            price=job.price,
            paid=job.is_paid,
            payment_date=job.payment_date,
        )


# =============================================================================
# Receipts
# =============================================================================


@dataclass(frozen=True)
class DepositReceipt:
    """Result of a successful deposit."""

    transfer_id: UUID
    client_id: UUID
    amount: Decimal
    new_balance: Decimal
    deposited_at: datetime


@dataclass(frozen=True)
class PaymentReceipt:
    """Result of a successful job payment."""

    transfer_id: UUID
    job_id: UUID
    amount: Decimal
    payer_id: UUID
    payee_id: UUID
    paid_at: datetime


# =============================================================================
# Report rows
# =============================================================================


@dataclass(frozen=True)
class ProfessionEarnings:
    """Top-earning profession inside a report window."""

    profession: str
    total_earnings: Decimal
    job_count: int


@dataclass(frozen=True)
class ClientPayment:
    """Total paid by one client inside a report window."""

    client_id: UUID
    full_name: str
    total_paid: Decimal

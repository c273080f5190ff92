"""
Module: ledger_kernel.selectors.job_selector
Responsibility: Profile-scoped job listings.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Unpaid listings include jobs whose paid flag is false or NULL.
    - Only jobs of the profile's active (non-terminated) contracts are
      listed.  Outstanding debt, by contrast, ignores contract status.
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dtos import JobInfo
from ledger_kernel.models.contract import Contract, ContractStatus
from ledger_kernel.models.job import Job
from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.contract_selector import party_to


class JobSelector(BaseSelector[Job]):
    """Read-only job listings for an acting profile."""

    def list_unpaid_for_profile(self, profile_id: UUID) -> list[JobInfo]:
        """
        Unpaid jobs on the profile's active contracts.

        Args:
            profile_id: Acting profile (client or contractor).

        Returns:
            JobInfo rows, oldest first.
        """
        stmt = (
            select(Job)
            .join(Contract, Job.contract_id == Contract.id)
            .where(party_to(profile_id))
            .where(Contract.status != ContractStatus.TERMINATED.value)
            .where(Job.unpaid_clause())
            .order_by(Job.created_at, Job.id)
        )
        return [JobInfo.from_model(job) for job in self.session.execute(stmt).scalars()]

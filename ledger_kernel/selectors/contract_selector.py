"""
Module: ledger_kernel.selectors.contract_selector
Responsibility: Profile-scoped contract lookups -- a single contract the
    profile is party to, and the profile's active contracts.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - A profile only sees contracts where it is the client or the contractor.
    - Active means status != terminated.

Failure modes:
    - ContractNotFoundError if the contract does not exist.
    - ContractAccessDeniedError if the profile is not a party to it.
"""

from uuid import UUID

from sqlalchemy import or_, select

from ledger_kernel.domain.dtos import ContractInfo
from ledger_kernel.exceptions import ContractAccessDeniedError, ContractNotFoundError
from ledger_kernel.models.contract import Contract, ContractStatus
from ledger_kernel.selectors.base import BaseSelector


def party_to(profile_id: UUID):
    """SQL predicate: the profile is client or contractor on the contract."""
    return or_(Contract.client_id == profile_id, Contract.contractor_id == profile_id)


class ContractSelector(BaseSelector[Contract]):
    """Read-only contract access for an acting profile."""

    def get_for_profile(self, contract_id: UUID, profile_id: UUID) -> ContractInfo:
        """
        Fetch one contract on behalf of a profile.

        Raises:
            ContractNotFoundError: If no contract has this id.
            ContractAccessDeniedError: If the profile is not a party to it.
        """
        contract = self.session.get(Contract, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        if not contract.involves(profile_id):
            raise ContractAccessDeniedError(str(contract_id), str(profile_id))
        return ContractInfo.from_model(contract)

    def list_active_for_profile(self, profile_id: UUID) -> list[ContractInfo]:
        """Non-terminated contracts of the profile, oldest first."""
        stmt = (
            select(Contract)
            .where(party_to(profile_id))
            .where(Contract.status != ContractStatus.TERMINATED.value)
            .order_by(Contract.created_at, Contract.id)
        )
        return [
            ContractInfo.from_model(contract)
            for contract in self.session.execute(stmt).scalars()
        ]

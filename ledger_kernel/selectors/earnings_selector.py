"""
Module: ledger_kernel.selectors.earnings_selector
Responsibility: Earnings reports over paid jobs inside a time window --
    the best-earning profession and the clients who paid the most.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.

Invariants enforced:
    - Only jobs with paid = true and payment_date inside the closed window
      are counted.
    - best_profession breaks ties on the lexicographically smallest
      profession name, so equal totals always give the same answer.
    - best_clients groups on the resolved client id, not on the contract, so
      a client with several contracts appears once with a merged total.
      Ties are ordered by client id.

Failure modes:
    - NoPaidJobsInRangeError from best_profession when nothing matches.
    - InvalidLimitError for a non-positive or oversize limit.
    - LedgerConsistencyError when a grouped client id has no client profile.

Reports tolerate in-flight payments: a payment that has not committed is
simply absent.  No locks are taken.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import round_money
from ledger_kernel.domain.dtos import ClientPayment, ProfessionEarnings
from ledger_kernel.domain.report_window import ReportWindow
from ledger_kernel.exceptions import (
    InvalidLimitError,
    LedgerConsistencyError,
    NoPaidJobsInRangeError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.contract import Contract
from ledger_kernel.models.job import Job
from ledger_kernel.models.profile import Profile, ProfileKind
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.earnings")

DEFAULT_CLIENT_LIMIT = 2


class EarningsSelector(BaseSelector[Job]):
    """
    Selector for earnings reports.

    Contract:
        Both reports take a normalized ``ReportWindow``.  Results are
        DTOs with Decimal totals rounded to two places.

    Non-goals:
        - No currency conversion; all prices share one currency.
    """

    def __init__(self, session: Session, max_client_limit: int | None = None):
        super().__init__(session)
        self._max_client_limit = max_client_limit

    def _paid_in_window(self, stmt, window: ReportWindow):
        return stmt.where(Job.paid_clause()).where(
            Job.payment_date.between(window.start, window.end)
        )

    def best_profession(self, window: ReportWindow) -> ProfessionEarnings:
        """
        Profession whose contractors earned the most inside the window.

        Args:
            window: Inclusive payment-date window.

        Returns:
            ProfessionEarnings for the winning profession.

        Raises:
            NoPaidJobsInRangeError: If no paid job falls inside the window.
        """
        stmt = (
            select(
                Profile.profession,
                func.sum(Job.price).label("total_earnings"),
                func.count(Job.id).label("job_count"),
            )
            .select_from(Job)
            .join(Contract, Job.contract_id == Contract.id)
            .join(Profile, Contract.contractor_id == Profile.id)
            .group_by(Profile.profession)
        )
        rows = self.session.execute(self._paid_in_window(stmt, window)).all()

        if not rows:
            start, end = window.describe()
            raise NoPaidJobsInRangeError(start, end)

        totals = [
            ProfessionEarnings(
                profession=profession,
                total_earnings=round_money(Decimal(str(total))),
                job_count=int(count),
            )
            for profession, total, count in rows
        ]
        best = min(totals, key=lambda row: (-row.total_earnings, row.profession))

        logger.debug(
            "best_profession_computed",
            extra={
                "profession": best.profession,
                "total_earnings": str(best.total_earnings),
                "professions_considered": len(totals),
            },
        )
        return best

    def best_clients(
        self,
        window: ReportWindow,
        limit: object = DEFAULT_CLIENT_LIMIT,
    ) -> list[ClientPayment]:
        """
        Clients who paid the most inside the window, highest first.

        Grouping happens on ``contracts.client_id``; each group is then
        resolved to its profile for the display name.

        Args:
            window: Inclusive payment-date window.
            limit: Maximum rows; positive integer (digit strings accepted).

        Returns:
            Up to ``limit`` ClientPayment rows, possibly empty.

        Raises:
            InvalidLimitError: If limit is not a positive integer in bounds.
            LedgerConsistencyError: If a grouped client has no client profile.
        """
        row_limit = self._validate_limit(limit)

        total_paid = func.sum(Job.price).label("total_paid")
        stmt = (
            select(Contract.client_id, total_paid)
            .select_from(Job)
            .join(Contract, Job.contract_id == Contract.id)
            .group_by(Contract.client_id)
            .order_by(total_paid.desc(), Contract.client_id)
            .limit(row_limit)
        )
        groups = self.session.execute(self._paid_in_window(stmt, window)).all()
        if not groups:
            return []

        client_ids = [client_id for client_id, _ in groups]
        profiles = {
            profile.id: profile
            for profile in self.session.execute(
                select(Profile).where(Profile.id.in_(client_ids))
            ).scalars()
        }

        results = []
        for client_id, total in groups:
            profile = profiles.get(client_id)
            if profile is None:
                raise LedgerConsistencyError(
                    "Contract", str(client_id), "client profile does not exist"
                )
            if profile.kind != ProfileKind.CLIENT:
                raise LedgerConsistencyError(
                    "Profile", str(client_id), "contract client is not of kind client"
                )
            results.append(
                ClientPayment(
                    client_id=client_id,
                    full_name=profile.full_name,
                    total_paid=round_money(Decimal(str(total))),
                )
            )
        return results

    def _validate_limit(self, limit: object) -> int:
        if isinstance(limit, bool) or limit is None:
            raise InvalidLimitError(str(limit), "limit must be a positive integer")
        if isinstance(limit, str):
            if not limit.strip().isdigit():
                raise InvalidLimitError(limit, "limit must be a positive integer")
            limit = int(limit.strip())
        if not isinstance(limit, int):
            raise InvalidLimitError(str(limit), "limit must be a positive integer")
        if limit < 1:
            raise InvalidLimitError(str(limit), "limit must be at least 1")
        if self._max_client_limit is not None and limit > self._max_client_limit:
            raise InvalidLimitError(
                str(limit), f"limit must not exceed {self._max_client_limit}"
            )
        return limit

#!/usr/bin/env python3
"""
Seed the database with a small marketplace.

Creates clients, contractors, contracts and jobs, funds the clients, then
settles a handful of jobs through BalanceTransferService so that the
ledger_transfers table and the earnings reports have data to show.

Usage:
    python3 scripts/seed_data.py
    python3 scripts/seed_data.py --database-url sqlite:///ledger.db --reset
"""

import argparse
import sys
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from sqlalchemy.exc import SQLAlchemyError  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from ledger_kernel.domain.clock import Clock, DeterministicClock  # noqa: E402
from ledger_kernel.models import (  # noqa: E402
    Contract,
    ContractStatus,
    Job,
    Profile,
    ProfileKind,
)
from ledger_kernel.services.balance_transfer_service import (  # noqa: E402
    BalanceTransferService,
)

SEED_START = datetime(2024, 3, 1, 9, 0, 0, tzinfo=UTC)

# (first_name, last_name, profession, starting balance)
CLIENTS = [
    ("Mara", "Quill", "Bookseller", Decimal("1500.00")),
    ("Tobias", "Reyes", "Restaurateur", Decimal("420.50")),
    ("Ines", "Kowal", "Architect", Decimal("980.00")),
]

CONTRACTORS = [
    ("Leo", "Hart", "Programmer", Decimal("64.00")),
    ("Nadia", "Osei", "Designer", Decimal("120.00")),
    ("Felix", "Brandt", "Plumber", Decimal("0.00")),
]

# (client index, contractor index, status, terms,
#  [(description, price, pay during seeding)])
CONTRACTS = [
    (0, 0, ContractStatus.IN_PROGRESS, "Online catalogue rebuild", [
        ("Catalogue search backend", Decimal("400.00"), True),
        ("Checkout integration", Decimal("250.00"), False),
    ]),
    (0, 1, ContractStatus.IN_PROGRESS, "Store branding", [
        ("Logo refresh", Decimal("180.00"), True),
        ("Shelf signage", Decimal("90.00"), False),
    ]),
    (1, 2, ContractStatus.NEW, "Kitchen plumbing", [
        ("Replace grease trap", Decimal("310.00"), False),
    ]),
    (1, 0, ContractStatus.TERMINATED, "Reservation app", [
        ("Prototype", Decimal("200.00"), True),
    ]),
    (2, 1, ContractStatus.IN_PROGRESS, "Studio website", [
        ("Portfolio layout", Decimal("350.00"), True),
        ("Photography retouching", Decimal("75.25"), False),
    ]),
]


@dataclass(frozen=True)
class SeedSummary:
    """Counts of what seed() created."""

    profiles: int
    contracts: int
    jobs: int
    paid_jobs: int


def _profile(first, last, profession, balance, kind):
    return Profile(
        first_name=first,
        last_name=last,
        profession=profession,
        balance=balance,
        kind=kind.value,
    )


def seed(session: Session, clock: Clock | None = None) -> SeedSummary:
    """
    Populate an empty schema.

    Jobs marked for payment are settled through BalanceTransferService,
    one clock hour apart.  The caller commits.
    """
    clock = clock or DeterministicClock(SEED_START)

    clients = [_profile(*row, ProfileKind.CLIENT) for row in CLIENTS]
    contractors = [_profile(*row, ProfileKind.CONTRACTOR) for row in CONTRACTORS]
    session.add_all(clients + contractors)
    session.flush()

    to_pay: list[Job] = []
    job_count = 0
    for client_idx, contractor_idx, status, terms, jobs in CONTRACTS:
        contract = Contract(
            terms=terms,
            status=status.value,
            client_id=clients[client_idx].id,
            contractor_id=contractors[contractor_idx].id,
        )
        session.add(contract)
        session.flush()
        for description, price, pay in jobs:
            job = Job(description=description, price=price, contract_id=contract.id)
            session.add(job)
            job_count += 1
            if pay:
                to_pay.append(job)
    session.flush()

    service = BalanceTransferService(session, clock=clock)
    for job in to_pay:
        service.pay_job(job.id)
        if isinstance(clock, DeterministicClock):
            clock.advance(3600)

    return SeedSummary(
        profiles=len(clients) + len(contractors),
        contracts=len(CONTRACTS),
        jobs=job_count,
        paid_jobs=len(to_pay),
    )


def main(argv: list[str] | None = None) -> int:
    from ledger_config import get_active_config
    from ledger_kernel.db.engine import (
        create_tables,
        drop_tables,
        get_session_factory,
        init_engine_from_config,
        reset_engine,
        session_scope,
    )
    from ledger_kernel.logging_config import configure_logging

    parser = argparse.ArgumentParser(description="Seed the ledger database.")
    parser.add_argument("--config", help="YAML file overriding the packaged defaults")
    parser.add_argument("--database-url", help="Overrides database.url from config")
    parser.add_argument(
        "--reset", action="store_true", help="Drop and recreate all tables first"
    )
    args = parser.parse_args(argv)

    config = get_active_config(args.config)
    configure_logging(level=config.logging.level)
    database = config.database
    if args.database_url:
        database = replace(database, url=args.database_url)

    print()
    print("  [1/3] Connecting...")
    try:
        init_engine_from_config(database)
        if args.reset:
            print("        Dropping old tables...")
            drop_tables()
        print("  [2/3] Creating schema...")
        create_tables()

        print("  [3/3] Seeding marketplace...")
        with session_scope(get_session_factory()) as session:
            summary = seed(session)
    except SQLAlchemyError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        reset_engine()

    print()
    print(
        f"  Done. {summary.profiles} profiles, {summary.contracts} contracts, "
        f"{summary.jobs} jobs ({summary.paid_jobs} paid)."
    )
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())

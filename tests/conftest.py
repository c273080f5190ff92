"""
Pytest fixtures for the ledger test suite.

Provides:
- A database engine and per-test sessions
- Profile / contract / job factory fixtures
- The standard "client A owes one job" scenario
- Captured structured logs

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of the test database.  Defaults to an
  in-memory SQLite database.  Tests marked ``postgres`` (row locks, real
  threads) are skipped unless this points at PostgreSQL.
"""

import json
import logging
import os
import threading
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from types import SimpleNamespace
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session

from ledger_config import get_active_config
from ledger_kernel.db.base import Base
from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_config,
    reset_engine,
)
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.models import Contract, ContractStatus, Job, Profile, ProfileKind
from ledger_kernel.services.balance_transfer_service import BalanceTransferService
from ledger_services.operations import LedgerOperations

DEFAULT_TEST_DATABASE_URL = "sqlite://"

CLOCK_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_TEST_DATABASE_URL)


def using_postgres() -> bool:
    return make_url(get_database_url()).get_backend_name() == "postgresql"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


def pytest_collection_modifyitems(config, items):
    if using_postgres():
        return
    skip = pytest.mark.skip(reason="needs DATABASE_URL pointing at PostgreSQL")
    for item in items:
        if item.get_closest_marker("postgres") is not None:
            item.add_marker(skip)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, transfer_service):
            transfer_service.deposit(...)
            logs = captured_logs()
            assert any(r["message"] == "deposit_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database infrastructure (engine + tables once per suite)
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    database = replace(
        get_active_config().database,
        url=get_database_url(),
        echo=False,
        pool_size=30,
        max_overflow=20,
        pool_timeout=10,
    )
    eng = init_engine_from_config(database)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    drop_tables(db_engine)
    create_tables(db_engine)
    yield
    drop_tables(db_engine)


def _clear_all_tables(engine):
    """Delete every row, children first.  Tests commit real transactions."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session performs real commits where a test asks for them (the
    operations facade opens its own sessions and must see committed
    data).  Isolation comes from deleting all rows at teardown.
    """
    sess = get_session_factory()()
    yield sess
    try:
        sess.rollback()
    finally:
        sess.close()
        _clear_all_tables(db_engine)


@pytest.fixture(scope="function")
def session_factory(db_tables, db_engine):
    """Provide a tracked session factory for the facade and for threads.

    On teardown every session created through it is rolled back and
    closed, then all rows are deleted.
    """
    factory = get_session_factory()
    created_sessions = []
    lock = threading.Lock()

    def tracked_factory():
        with lock:
            s = factory()
            created_sessions.append(s)
            return s

    yield tracked_factory

    for s in created_sessions:
        if s.is_active:
            s.rollback()
        s.close()
    _clear_all_tables(db_engine)


# =============================================================================
# Services and clocks
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock(CLOCK_START)


@pytest.fixture
def transfer_service(session: Session, deterministic_clock) -> BalanceTransferService:
    return BalanceTransferService(session, clock=deterministic_clock)


@pytest.fixture
def operations(session_factory, deterministic_clock) -> LedgerOperations:
    return LedgerOperations(session_factory, clock=deterministic_clock)


# =============================================================================
# Factory fixtures
# =============================================================================


@pytest.fixture
def create_profile(session: Session):
    """Factory fixture to create test profiles."""
    counter = iter(range(1, 10_000))

    def _create_profile(
        kind: ProfileKind = ProfileKind.CLIENT,
        balance: Decimal | str = Decimal("0.00"),
        profession: str = "Tester",
        first_name: str | None = None,
        last_name: str = "Example",
        profile_id: UUID | None = None,
    ) -> Profile:
        profile = Profile(
            id=profile_id or uuid4(),
            kind=kind.value,
            balance=Decimal(balance),
            profession=profession,
            first_name=first_name or f"{kind.value.title()}{next(counter)}",
            last_name=last_name,
        )
        session.add(profile)
        session.flush()
        return profile

    return _create_profile


@pytest.fixture
def create_contract(session: Session):
    """Factory fixture to create contracts between two profiles."""

    def _create_contract(
        client: Profile,
        contractor: Profile,
        status: ContractStatus = ContractStatus.IN_PROGRESS,
        terms: str = "Standard terms",
    ) -> Contract:
        contract = Contract(
            terms=terms,
            status=status.value,
            client_id=client.id,
            contractor_id=contractor.id,
        )
        session.add(contract)
        session.flush()
        return contract

    return _create_contract


@pytest.fixture
def create_job(session: Session, deterministic_clock):
    """Factory fixture to create jobs.

    ``paid=True`` without a payment_date stamps the deterministic clock's
    current time.
    """

    def _create_job(
        contract: Contract,
        price: Decimal | str,
        paid: bool | None = None,
        payment_date: datetime | None = None,
        description: str = "Work item",
    ) -> Job:
        if paid is True and payment_date is None:
            payment_date = deterministic_clock.now()
        job = Job(
            contract_id=contract.id,
            price=Decimal(price),
            paid=paid,
            payment_date=payment_date,
            description=description,
        )
        session.add(job)
        session.flush()
        return job

    return _create_job


@pytest.fixture
def scenario_a(create_profile, create_contract, create_job):
    """Client A (balance 100) owes contractor B one unpaid job priced 100."""
    client = create_profile(
        ProfileKind.CLIENT, Decimal("100.00"), first_name="Alice", last_name="Client"
    )
    contractor = create_profile(
        ProfileKind.CONTRACTOR,
        Decimal("0.00"),
        profession="Programmer",
        first_name="Bob",
        last_name="Builder",
    )
    contract = create_contract(client, contractor)
    job = create_job(contract, Decimal("100.00"))
    return SimpleNamespace(client=client, contractor=contractor, contract=contract, job=job)

"""Tests for scripts/seed_data.py."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

import ledger_kernel.db.engine as engine_module
from ledger_kernel.domain.report_window import ReportWindow
from ledger_kernel.models import LedgerTransfer, Profile, ProfileKind
from ledger_kernel.selectors.earnings_selector import EarningsSelector
from scripts.seed_data import SeedSummary, seed

MARCH = ReportWindow.from_bounds(date(2024, 3, 1), date(2024, 3, 31))


class TestSeed:

    def test_summary_counts(self, session):
        summary = seed(session)

        assert summary == SeedSummary(profiles=6, contracts=5, jobs=8, paid_jobs=4)
        assert session.scalar(select(func.count()).select_from(LedgerTransfer)) == 4

    def test_contractor_balances_after_payments(self, session):
        seed(session)

        stmt = select(Profile.first_name, Profile.balance).where(
            Profile.kind == ProfileKind.CONTRACTOR.value
        )
        balances = dict(session.execute(stmt).all())
        assert balances == {
            "Leo": Decimal("664.00"),
            "Nadia": Decimal("650.00"),
            "Felix": Decimal("0.00"),
        }

    def test_reports_have_data(self, session):
        seed(session)
        selector = EarningsSelector(session)

        best = selector.best_profession(MARCH)
        clients = selector.best_clients(MARCH)

        assert best.profession == "Programmer"
        assert best.total_earnings == Decimal("600.00")
        assert [(c.full_name, c.total_paid) for c in clients] == [
            ("Mara Quill", Decimal("580.00")),
            ("Ines Kowal", Decimal("350.00")),
        ]


class TestMain:

    @pytest.fixture
    def isolated_engine_state(self, monkeypatch):
        """main() replaces and then disposes the module-level engine."""
        monkeypatch.setattr(engine_module, "_engine", engine_module._engine)
        monkeypatch.setattr(engine_module, "_SessionFactory", engine_module._SessionFactory)

    def test_seeds_in_memory_database(self, isolated_engine_state, capsys):
        from scripts.seed_data import main

        assert main(["--database-url", "sqlite://", "--reset"]) == 0

        out = capsys.readouterr().out
        assert "6 profiles, 5 contracts, 8 jobs (4 paid)" in out

    def test_engine_uses_configured_database_section(self, isolated_engine_state, monkeypatch):
        from scripts.seed_data import main

        real_build_engine = engine_module.build_engine
        seen = {}

        def _build(url, **options):
            seen.update(options, url=url)
            return real_build_engine(url, **options)

        monkeypatch.setattr(engine_module, "build_engine", _build)

        assert main(["--database-url", "sqlite://"]) == 0

        assert seen["url"] == "sqlite://"
        assert seen["statement_timeout_ms"] == 30000
        assert seen["lock_timeout_ms"] == 10000
        assert seen["pool_size"] == 20

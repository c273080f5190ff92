"""
Tests for LedgerOperations, the transaction-owning facade.

Fixtures build data through the test ``session`` and commit it; the facade
opens its own sessions through ``session_factory``.  Assertions re-read
rows with ``session.refresh``.
"""

from dataclasses import replace
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from ledger_config import get_active_config
from ledger_config.schema import RetryConfig
from ledger_kernel.exceptions import ErrorKind
from ledger_kernel.models import ContractStatus, ProfileKind
from ledger_kernel.selectors.earnings_selector import EarningsSelector
from ledger_kernel.services.balance_transfer_service import BalanceTransferService
from ledger_services.operations import INTERNAL_ERROR_MESSAGE, LedgerOperations


def _db_down(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))


def _headers(profile) -> SimpleNamespace:
    return SimpleNamespace(headers={"profile_id": str(profile.id)})


@pytest.fixture
def committed_a(session, scenario_a):
    session.commit()
    return scenario_a


class TestDeposit:

    def test_success_is_committed(self, session, operations, committed_a):
        result = operations.deposit(committed_a.client.id, "25.00")

        assert result.is_success
        assert result.error is None
        assert result.value.new_balance == Decimal("125.00")
        session.refresh(committed_a.client)
        assert committed_a.client.balance == Decimal("125.00")

    def test_limit_exceeded(self, session, operations, committed_a):
        result = operations.deposit(str(committed_a.client.id), "26.00")

        assert not result.is_success
        assert result.value is None
        assert result.error.kind == ErrorKind.LIMIT_EXCEEDED
        assert result.error.code == "DEPOSIT_LIMIT_EXCEEDED"
        assert "25.00" in result.error.message
        session.refresh(committed_a.client)
        assert committed_a.client.balance == Decimal("100.00")

    def test_invalid_amount(self, operations, committed_a):
        result = operations.deposit(committed_a.client.id, "ten")

        assert result.error.kind == ErrorKind.INVALID_ARGUMENT
        assert result.error.code == "INVALID_AMOUNT"

    def test_unknown_client(self, operations, committed_a):
        result = operations.deposit(uuid4(), "1.00")

        assert result.error.kind == ErrorKind.NOT_FOUND
        assert result.error.code == "CLIENT_NOT_FOUND"

    def test_oversized_amount_is_invalid_argument(self, session, operations, committed_a):
        result = operations.deposit(committed_a.client.id, "100000000000000000000000000")

        assert result.error.kind == ErrorKind.INVALID_ARGUMENT
        assert result.error.code == "INVALID_AMOUNT"
        session.refresh(committed_a.client)
        assert committed_a.client.balance == Decimal("100.00")

    def test_malformed_client_id(self, operations, committed_a):
        result = operations.deposit("client-7", "1.00")

        assert result.error.kind == ErrorKind.INVALID_ARGUMENT
        assert result.error.code == "INVALID_IDENTIFIER"

    def test_config_ratio_applied(self, session, session_factory, deterministic_clock, committed_a):
        config = get_active_config()
        config = replace(config, transfers=replace(config.transfers, deposit_cap_ratio=Decimal("0.1")))
        ops = LedgerOperations(session_factory, config=config, clock=deterministic_clock)

        assert ops.deposit(committed_a.client.id, "10.01").error.kind == ErrorKind.LIMIT_EXCEEDED
        assert ops.deposit(committed_a.client.id, "10.00").is_success


class TestPayJob:

    def test_success_is_committed(self, session, operations, committed_a, deterministic_clock):
        result = operations.pay_job(committed_a.job.id)

        assert result.is_success
        assert result.value.amount == Decimal("100.00")
        assert result.value.paid_at == deterministic_clock.now()
        session.refresh(committed_a.client)
        session.refresh(committed_a.contractor)
        session.refresh(committed_a.job)
        assert committed_a.client.balance == Decimal("0.00")
        assert committed_a.contractor.balance == Decimal("100.00")
        assert committed_a.job.paid is True
        assert committed_a.job.payment_date is not None

    def test_already_paid(self, operations, committed_a):
        assert operations.pay_job(committed_a.job.id).is_success

        result = operations.pay_job(committed_a.job.id)

        assert result.error.kind == ErrorKind.ALREADY_PAID
        assert result.error.code == "JOB_ALREADY_PAID"

    def test_unknown_job(self, operations, committed_a):
        result = operations.pay_job(uuid4())

        assert result.error.kind == ErrorKind.NOT_FOUND
        assert result.error.code == "JOB_NOT_FOUND"

    def test_insufficient_funds(self, session, operations, committed_a):
        committed_a.client.balance = Decimal("50.00")
        session.commit()

        result = operations.pay_job(committed_a.job.id)

        assert result.error.kind == ErrorKind.INSUFFICIENT_FUNDS
        session.refresh(committed_a.contractor)
        session.refresh(committed_a.job)
        assert committed_a.contractor.balance == Decimal("0.00")
        assert committed_a.job.is_paid is False

    def test_failed_commit_leaves_no_partial_state(self, session, session_factory, deterministic_clock, committed_a):
        def broken_factory():
            s = session_factory()
            s.commit = _db_down
            return s

        ops = LedgerOperations(broken_factory, clock=deterministic_clock)

        result = ops.pay_job(committed_a.job.id)

        assert result.error.kind == ErrorKind.INTERNAL
        assert result.error.code == "STORE_UNAVAILABLE"
        assert result.error.message == INTERNAL_ERROR_MESSAGE
        session.refresh(committed_a.client)
        session.refresh(committed_a.contractor)
        session.refresh(committed_a.job)
        assert committed_a.client.balance == Decimal("100.00")
        assert committed_a.contractor.balance == Decimal("0.00")
        assert committed_a.job.is_paid is False

    def test_mutations_are_not_retried(self, monkeypatch, operations, committed_a):
        calls = []

        def failing_pay(self, job_id):
            calls.append(job_id)
            _db_down()

        monkeypatch.setattr(BalanceTransferService, "pay_job", failing_pay)

        result = operations.pay_job(committed_a.job.id)

        assert result.error.code == "STORE_UNAVAILABLE"
        assert len(calls) == 1

    def test_unexpected_exception_propagates(self, monkeypatch, operations, committed_a):
        def broken(self, job_id):
            raise RuntimeError("bug")

        monkeypatch.setattr(BalanceTransferService, "pay_job", broken)

        with pytest.raises(RuntimeError):
            operations.pay_job(committed_a.job.id)


class TestReports:

    def test_best_profession_after_payment(self, operations, committed_a):
        operations.pay_job(committed_a.job.id)

        result = operations.best_profession("2024-01-01", "2024-01-01")

        assert result.value.profession == "Programmer"
        assert result.value.total_earnings == Decimal("100.00")

    def test_best_profession_empty(self, operations, committed_a):
        result = operations.best_profession("2024-01-01", "2024-12-31")

        assert result.error.kind == ErrorKind.NOT_FOUND
        assert result.error.code == "NO_PAID_JOBS_IN_RANGE"

    def test_best_profession_bad_range(self, operations, committed_a):
        result = operations.best_profession("2024-12-31", "2024-01-01")

        assert result.error.kind == ErrorKind.INVALID_ARGUMENT
        assert result.error.code == "INVALID_DATE_RANGE"

    def test_best_clients_default_limit(
        self, session, operations, create_profile, create_contract, create_job
    ):
        contractor = create_profile(ProfileKind.CONTRACTOR)
        for price in ("10.00", "20.00", "30.00"):
            client = create_profile(ProfileKind.CLIENT, "100.00")
            create_job(create_contract(client, contractor), price)
        session.commit()
        for job_id in _unpaid_job_ids(operations, contractor):
            assert operations.pay_job(job_id).is_success

        result = operations.best_clients("2024-01-01", "2024-01-31")

        assert [row.total_paid for row in result.value] == [Decimal("30.00"), Decimal("20.00")]

    def test_best_clients_limit_above_maximum(self, operations, committed_a):
        result = operations.best_clients("2024-01-01", "2024-01-31", limit=101)

        assert result.error.code == "INVALID_LIMIT"

    def test_internal_error_message_is_generic(
        self, session, operations, create_profile, create_contract, create_job
    ):
        a = create_profile(ProfileKind.CONTRACTOR)
        b = create_profile(ProfileKind.CONTRACTOR)
        create_job(create_contract(a, b), "10.00", paid=True)
        session.commit()

        result = operations.best_clients("2024-01-01", "2024-01-01")

        assert result.error.kind == ErrorKind.INTERNAL
        assert result.error.code == "LEDGER_CONSISTENCY"
        assert result.error.message == INTERNAL_ERROR_MESSAGE

    def test_read_retried_once_by_default(self, monkeypatch, operations, committed_a):
        real = EarningsSelector.best_clients
        calls = []

        def flaky(self, window, limit=2):
            calls.append(limit)
            if len(calls) == 1:
                _db_down()
            return real(self, window, limit)

        monkeypatch.setattr(EarningsSelector, "best_clients", flaky)

        result = operations.best_clients("2024-01-01", "2024-01-31")

        assert result.is_success
        assert result.value == []
        assert len(calls) == 2

    def test_read_retry_budget_exhausted(
        self, monkeypatch, session_factory, deterministic_clock, committed_a
    ):
        config = replace(get_active_config(), retry=RetryConfig(read_attempts=0))
        ops = LedgerOperations(session_factory, config=config, clock=deterministic_clock)
        monkeypatch.setattr(EarningsSelector, "best_profession", _db_down)

        result = ops.best_profession("2024-01-01", "2024-01-31")

        assert result.error.kind == ErrorKind.INTERNAL
        assert result.error.code == "STORE_UNAVAILABLE"
        assert result.error.message == INTERNAL_ERROR_MESSAGE


def _unpaid_job_ids(operations, contractor):
    result = operations.list_unpaid_jobs(_headers(contractor))
    return [job.id for job in result.value]


class TestProfileScopedReads:

    def test_get_contract_as_party(self, operations, committed_a):
        result = operations.get_contract(_headers(committed_a.client), committed_a.contract.id)

        assert result.value.id == committed_a.contract.id

    def test_get_contract_as_stranger(self, session, operations, committed_a, create_profile):
        stranger = create_profile(ProfileKind.CLIENT)
        session.commit()

        result = operations.get_contract(_headers(stranger), committed_a.contract.id)

        assert result.error.kind == ErrorKind.FORBIDDEN

    def test_get_contract_unknown(self, operations, committed_a):
        result = operations.get_contract(_headers(committed_a.client), uuid4())

        assert result.error.kind == ErrorKind.NOT_FOUND

    def test_get_contract_malformed_id(self, operations, committed_a):
        result = operations.get_contract(_headers(committed_a.client), "7")

        assert result.error.code == "INVALID_IDENTIFIER"

    def test_unauthenticated(self, operations, committed_a):
        result = operations.list_contracts(SimpleNamespace(headers={}))

        assert result.error.kind == ErrorKind.UNAUTHENTICATED

    def test_list_contracts_excludes_terminated(
        self, session, operations, committed_a, create_contract
    ):
        create_contract(committed_a.client, committed_a.contractor, status=ContractStatus.TERMINATED)
        session.commit()

        result = operations.list_contracts(_headers(committed_a.client))

        assert [c.id for c in result.value] == [committed_a.contract.id]

    def test_list_unpaid_jobs(self, operations, committed_a):
        before = operations.list_unpaid_jobs(_headers(committed_a.contractor))
        operations.pay_job(committed_a.job.id)
        after = operations.list_unpaid_jobs(_headers(committed_a.contractor))

        assert [j.id for j in before.value] == [committed_a.job.id]
        assert after.value == []


class TestOperationLogging:

    def test_completed_carries_context(self, operations, committed_a, captured_logs):
        operations.deposit(committed_a.client.id, "5.00")

        records = [r for r in captured_logs() if r["message"] == "operation_completed"]
        assert records[-1]["operation"] == "deposit"
        assert records[-1]["profile_id"] == str(committed_a.client.id)
        assert "correlation_id" in records[-1]
        assert "duration_ms" in records[-1]

    def test_rejection_logged_with_code(self, operations, committed_a, captured_logs):
        operations.pay_job(uuid4())

        records = [r for r in captured_logs() if r["message"] == "operation_rejected"]
        assert records[-1]["error_code"] == "JOB_NOT_FOUND"
        assert records[-1]["operation"] == "pay_job"

    def test_service_logs_share_correlation_id(self, operations, committed_a, captured_logs):
        operations.pay_job(committed_a.job.id)

        records = captured_logs()
        payment = next(r for r in records if r["message"] == "job_payment_completed")
        completed = next(r for r in records if r["message"] == "operation_completed")
        assert payment["correlation_id"] == completed["correlation_id"]

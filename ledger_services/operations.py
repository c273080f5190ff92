"""
ledger_services.operations -- transaction-owning entry points for callers.

Responsibility:
    ``LedgerOperations`` is what an HTTP layer, CLI or job runner calls.
    Each method opens its own session, runs one kernel service or
    selector, and returns an ``OperationResult`` carrying either the value
    or an ``ErrorInfo``.  Kernel exceptions never escape as exceptions.

Architecture position:
    Services layer.  Owns commit/rollback for the kernel services, which
    only flush.  Reads configuration values from ``ledger_config`` and
    passes them into kernel constructors.

Invariants enforced:
    - Mutations (deposit, pay_job) run in exactly one transaction: commit
      on success, rollback on any failure, session closed in every case.
      A request abandoned mid-flight therefore leaves no partial state.
    - Mutations are never retried.  Reads are retried
      ``retry.read_attempts`` extra times after a transient
      ``OperationalError``.
    - INTERNAL errors carry a generic message; details go to the log only.

Failure modes:
    - Unexpected non-database exceptions are rolled back, logged and
      re-raised.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Generic, TypeVar
from uuid import uuid4

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ledger_config.schema import LedgerConfig, ReportingConfig, RetryConfig, TransferPolicy
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    ClientPayment,
    ContractInfo,
    DepositReceipt,
    JobInfo,
    PaymentReceipt,
    ProfessionEarnings,
)
from ledger_kernel.domain.identifiers import parse_identifier
from ledger_kernel.domain.report_window import ReportWindow
from ledger_kernel.exceptions import ErrorKind, LedgerError, StoreUnavailableError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.contract_selector import ContractSelector
from ledger_kernel.selectors.earnings_selector import EarningsSelector
from ledger_kernel.selectors.job_selector import JobSelector
from ledger_kernel.services.balance_transfer_service import BalanceTransferService
from ledger_services.profile_resolver import HeaderProfileResolver, ProfileResolver

logger = get_logger("services.operations")

T = TypeVar("T")

INTERNAL_ERROR_MESSAGE = "An internal error occurred"


@dataclass(frozen=True)
class ErrorInfo:
    """Caller-facing description of a failed operation."""

    kind: ErrorKind
    code: str
    message: str

    @classmethod
    def from_exception(cls, exc: LedgerError) -> ErrorInfo:
        message = INTERNAL_ERROR_MESSAGE if exc.kind == ErrorKind.INTERNAL else str(exc)
        return cls(kind=exc.kind, code=exc.code, message=message)


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Either ``value`` (success) or ``error`` (failure), never both."""

    value: T | None = None
    error: ErrorInfo | None = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: T) -> OperationResult[T]:
        return cls(value=value)

    @classmethod
    def failed(cls, exc: LedgerError) -> OperationResult[T]:
        return cls(error=ErrorInfo.from_exception(exc))


class LedgerOperations:
    """
    Facade over the ledger kernel.

    Contract:
        Every public method returns an OperationResult.  Only programming
        errors (exceptions outside LedgerError and SQLAlchemyError) are
        raised, after rollback.

    Args:
        session_factory: Creates one Session per operation.
        config: Runtime configuration; schema defaults when omitted.
        clock: Time source for payment and deposit timestamps.
        profile_resolver: Maps requests to the acting profile.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | Callable[[], Session],
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
        profile_resolver: ProfileResolver | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._resolver = profile_resolver or HeaderProfileResolver()
        self._transfers = config.transfers if config else TransferPolicy()
        self._reporting = config.reporting if config else ReportingConfig()
        self._retry = config.retry if config else RetryConfig()

    # =========================================================================
    # Mutations
    # =========================================================================

    def deposit(self, client_id: Any, amount: Any) -> OperationResult[DepositReceipt]:
        """Credit a client's balance, capped by outstanding job debt."""

        def run(session: Session) -> DepositReceipt:
            return self._transfer_service(session).deposit(client_id, amount)

        return self._run_mutation("deposit", run, profile_id=_as_text(client_id))

    def pay_job(self, job_id: Any) -> OperationResult[PaymentReceipt]:
        """Pay a job from its client to its contractor."""

        def run(session: Session) -> PaymentReceipt:
            return self._transfer_service(session).pay_job(job_id)

        return self._run_mutation("pay_job", run, job_id=_as_text(job_id))

    # =========================================================================
    # Reports
    # =========================================================================

    def best_profession(self, start: Any, end: Any) -> OperationResult[ProfessionEarnings]:
        """Top-earning profession for jobs paid in [start, end]."""

        def run(session: Session) -> ProfessionEarnings:
            window = ReportWindow.from_bounds(start, end)
            return EarningsSelector(session).best_profession(window)

        return self._run_read("best_profession", run)

    def best_clients(
        self,
        start: Any,
        end: Any,
        limit: Any = None,
    ) -> OperationResult[list[ClientPayment]]:
        """Clients who paid the most for jobs paid in [start, end]."""
        row_limit = self._reporting.default_client_limit if limit is None else limit

        def run(session: Session) -> list[ClientPayment]:
            window = ReportWindow.from_bounds(start, end)
            selector = EarningsSelector(
                session, max_client_limit=self._reporting.max_client_limit
            )
            return selector.best_clients(window, row_limit)

        return self._run_read("best_clients", run)

    # =========================================================================
    # Profile-scoped reads
    # =========================================================================

    def get_contract(self, request: Any, contract_id: Any) -> OperationResult[ContractInfo]:
        """One contract the requesting profile is party to."""

        def run(session: Session) -> ContractInfo:
            profile = self._resolver.resolve(session, request)
            contract_uuid = parse_identifier(contract_id, "contract")
            with LogContext.bind(profile_id=str(profile.id)):
                return ContractSelector(session).get_for_profile(
                    contract_uuid, profile.id
                )

        return self._run_read("get_contract", run)

    def list_contracts(self, request: Any) -> OperationResult[list[ContractInfo]]:
        """Active contracts of the requesting profile."""

        def run(session: Session) -> list[ContractInfo]:
            profile = self._resolver.resolve(session, request)
            with LogContext.bind(profile_id=str(profile.id)):
                return ContractSelector(session).list_active_for_profile(profile.id)

        return self._run_read("list_contracts", run)

    def list_unpaid_jobs(self, request: Any) -> OperationResult[list[JobInfo]]:
        """Unpaid jobs on the requesting profile's active contracts."""

        def run(session: Session) -> list[JobInfo]:
            profile = self._resolver.resolve(session, request)
            with LogContext.bind(profile_id=str(profile.id)):
                return JobSelector(session).list_unpaid_for_profile(profile.id)

        return self._run_read("list_unpaid_jobs", run)

    # =========================================================================
    # Transaction runners
    # =========================================================================

    def _transfer_service(self, session: Session) -> BalanceTransferService:
        return BalanceTransferService(
            session,
            clock=self._clock,
            deposit_cap_ratio=Decimal(self._transfers.deposit_cap_ratio),
        )

    def _run_mutation(
        self,
        operation: str,
        work: Callable[[Session], T],
        **context: str | None,
    ) -> OperationResult[T]:
        with LogContext.bind(
            correlation_id=str(uuid4()), operation=operation, **context
        ):
            t0 = time.monotonic()
            session = self._session_factory()
            try:
                value = work(session)
                session.commit()
            except LedgerError as exc:
                session.rollback()
                self._log_failure(operation, exc, t0)
                return OperationResult.failed(exc)
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error(
                    "operation_failed",
                    extra={"duration_ms": _elapsed_ms(t0)},
                    exc_info=True,
                )
                return OperationResult.failed(
                    StoreUnavailableError(operation, type(exc).__name__)
                )
            except Exception:
                session.rollback()
                logger.error(
                    "operation_failed",
                    extra={"duration_ms": _elapsed_ms(t0)},
                    exc_info=True,
                )
                raise
            finally:
                session.close()

            logger.info("operation_completed", extra={"duration_ms": _elapsed_ms(t0)})
            return OperationResult.ok(value)

    def _run_read(
        self,
        operation: str,
        work: Callable[[Session], T],
    ) -> OperationResult[T]:
        attempts = 1 + self._retry.read_attempts
        with LogContext.bind(correlation_id=str(uuid4()), operation=operation):
            t0 = time.monotonic()
            for attempt in range(1, attempts + 1):
                session = self._session_factory()
                try:
                    value = work(session)
                except LedgerError as exc:
                    self._log_failure(operation, exc, t0)
                    return OperationResult.failed(exc)
                except OperationalError as exc:
                    if attempt < attempts:
                        logger.warning(
                            "read_retry",
                            extra={"attempt": attempt, "error_type": type(exc).__name__},
                        )
                        continue
                    logger.error(
                        "operation_failed",
                        extra={"duration_ms": _elapsed_ms(t0), "attempts": attempt},
                        exc_info=True,
                    )
                    return OperationResult.failed(
                        StoreUnavailableError(operation, type(exc).__name__)
                    )
                except SQLAlchemyError as exc:
                    logger.error(
                        "operation_failed",
                        extra={"duration_ms": _elapsed_ms(t0)},
                        exc_info=True,
                    )
                    return OperationResult.failed(
                        StoreUnavailableError(operation, type(exc).__name__)
                    )
                finally:
                    session.close()

                logger.info(
                    "operation_completed",
                    extra={"duration_ms": _elapsed_ms(t0), "attempts": attempt},
                )
                return OperationResult.ok(value)

        raise AssertionError("unreachable: read loop exited without a result")

    def _log_failure(self, operation: str, exc: LedgerError, t0: float) -> None:
        if exc.kind == ErrorKind.INTERNAL:
            logger.error(
                "operation_failed",
                extra={"error_code": exc.code, "duration_ms": _elapsed_ms(t0)},
                exc_info=True,
            )
        else:
            logger.info(
                "operation_rejected",
                extra={
                    "error_code": exc.code,
                    "error_kind": exc.kind.value,
                    "duration_ms": _elapsed_ms(t0),
                },
            )


def _elapsed_ms(t0: float) -> float:
    return round((time.monotonic() - t0) * 1000, 2)


def _as_text(value: Any) -> str | None:
    return None if value is None else str(value)

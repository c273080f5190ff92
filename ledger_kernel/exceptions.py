"""
Typed Exception Hierarchy for the Ledger Kernel.

Every error the kernel raises is a subclass of ``LedgerError`` and carries:

  1. A ``code`` class attribute -- machine-readable, stable, API-safe.
  2. A ``kind`` class attribute -- the coarse ``ErrorKind`` callers
     discriminate on (NOT_FOUND, LIMIT_EXCEEDED, ...).
  3. Structured context stored as instance attributes (never parsed back
     out of the message string).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- NotFoundError                      kind=NOT_FOUND
    |   +-- ClientNotFoundError
    |   +-- ContractNotFoundError
    |   +-- JobNotFoundError
    |   +-- NoPaidJobsInRangeError
    |
    +-- TransferRejectedError
    |   +-- DepositLimitExceededError      kind=LIMIT_EXCEEDED
    |   +-- InsufficientFundsError         kind=INSUFFICIENT_FUNDS
    |   +-- JobAlreadyPaidError            kind=ALREADY_PAID
    |
    +-- InvalidArgumentError               kind=INVALID_ARGUMENT
    |   +-- InvalidAmountError
    |   +-- InvalidDateRangeError
    |   +-- InvalidLimitError
    |   +-- InvalidIdentifierError
    |
    +-- AccessError
    |   +-- ContractAccessDeniedError      kind=FORBIDDEN
    |   +-- UnauthenticatedError           kind=UNAUTHENTICATED
    |
    +-- InternalLedgerError                kind=INTERNAL
        +-- LedgerConsistencyError
        +-- StoreUnavailableError

===============================================================================
HANDLING PATTERNS
===============================================================================

1. CATCH BY TYPE, NOT MESSAGE:

    try:
        service.deposit(client_id, amount)
    except DepositLimitExceededError as e:
        notify(f"At most {e.max_deposit} may be deposited")

2. ALREADY_PAID IS A NO-OP FROM THE CALLER'S VIEW:

    try:
        receipt = service.pay_job(job_id)
    except JobAlreadyPaidError:
        receipt = None  # nothing was charged

3. INTERNAL ERRORS NEVER LEAK DETAILS TO CALLERS:

    The operations facade replaces the message of every InternalLedgerError
    with a generic one before returning it.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Coarse error discriminator exposed to callers."""

    NOT_FOUND = "not_found"
    LIMIT_EXCEEDED = "limit_exceeded"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    ALREADY_PAID = "already_paid"
    INVALID_ARGUMENT = "invalid_argument"
    FORBIDDEN = "forbidden"
    UNAUTHENTICATED = "unauthenticated"
    INTERNAL = "internal"


class LedgerError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must define ``code`` and ``kind`` class attributes.
    """

    code: str = "LEDGER_ERROR"
    kind: ErrorKind = ErrorKind.INTERNAL


# Not-found exceptions


class NotFoundError(LedgerError):
    """Base exception for missing records or empty report filters."""

    code: str = "NOT_FOUND"
    kind: ErrorKind = ErrorKind.NOT_FOUND


class ClientNotFoundError(NotFoundError):
    """No profile of kind 'client' with the given ID exists."""

    code: str = "CLIENT_NOT_FOUND"

    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Client not found: {profile_id}")


class ContractNotFoundError(NotFoundError):
    """Contract with given ID was not found."""

    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__(f"Contract not found: {contract_id}")


class JobNotFoundError(NotFoundError):
    """Job with given ID was not found."""

    code: str = "JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class NoPaidJobsInRangeError(NotFoundError):
    """No paid job falls inside the requested reporting window."""

    code: str = "NO_PAID_JOBS_IN_RANGE"

    def __init__(self, start: str, end: str):
        self.start = start
        self.end = end
        super().__init__(f"No paid jobs found between {start} and {end}")


# Transfer rejections


class TransferRejectedError(LedgerError):
    """Base exception for balance mutations refused by policy."""

    code: str = "TRANSFER_REJECTED"


class DepositLimitExceededError(TransferRejectedError):
    """Deposit is larger than the permitted share of outstanding debt."""

    code: str = "DEPOSIT_LIMIT_EXCEEDED"
    kind: ErrorKind = ErrorKind.LIMIT_EXCEEDED

    def __init__(self, client_id: str, amount: str, max_deposit: str, outstanding: str):
        self.client_id = client_id
        self.amount = amount
        self.max_deposit = max_deposit
        self.outstanding = outstanding
        super().__init__(
            f"Deposit of {amount} exceeds the maximum allowed {max_deposit} "
            f"(outstanding jobs total {outstanding})"
        )


class InsufficientFundsError(TransferRejectedError):
    """Client balance does not cover the job price."""

    code: str = "INSUFFICIENT_FUNDS"
    kind: ErrorKind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, client_id: str, balance: str, required: str):
        self.client_id = client_id
        self.balance = balance
        self.required = required
        super().__init__(
            f"Insufficient balance: {balance} available, {required} required"
        )


class JobAlreadyPaidError(TransferRejectedError):
    """Job has already been settled; nothing is charged again."""

    code: str = "JOB_ALREADY_PAID"
    kind: ErrorKind = ErrorKind.ALREADY_PAID

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} is already paid")


# Argument validation


class InvalidArgumentError(LedgerError):
    """Base exception for malformed caller input."""

    code: str = "INVALID_ARGUMENT"
    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT


class InvalidAmountError(InvalidArgumentError):
    """Monetary amount is missing, non-numeric, non-positive or too precise."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str, reason: str):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount '{amount}': {reason}")


class InvalidDateRangeError(InvalidArgumentError):
    """Reporting window bounds are missing, unparseable or reversed."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, start: str, end: str, reason: str):
        self.start = start
        self.end = end
        self.reason = reason
        super().__init__(f"Invalid date range [{start}, {end}]: {reason}")


class InvalidLimitError(InvalidArgumentError):
    """Report row limit is not a positive integer within bounds."""

    code: str = "INVALID_LIMIT"

    def __init__(self, limit: str, reason: str):
        self.limit = limit
        self.reason = reason
        super().__init__(f"Invalid limit '{limit}': {reason}")


class InvalidIdentifierError(InvalidArgumentError):
    """Identifier cannot be parsed as a UUID."""

    code: str = "INVALID_IDENTIFIER"

    def __init__(self, value: str, entity_type: str):
        self.value = value
        self.entity_type = entity_type
        super().__init__(f"Invalid {entity_type} id: '{value}'")


# Access control


class AccessError(LedgerError):
    """Base exception for identity and permission failures."""

    code: str = "ACCESS_ERROR"


class ContractAccessDeniedError(AccessError):
    """Profile is not a party to the requested contract."""

    code: str = "CONTRACT_ACCESS_DENIED"
    kind: ErrorKind = ErrorKind.FORBIDDEN

    def __init__(self, contract_id: str, profile_id: str):
        self.contract_id = contract_id
        self.profile_id = profile_id
        super().__init__(
            f"Profile {profile_id} is not a party to contract {contract_id}"
        )


class UnauthenticatedError(AccessError):
    """Request does not identify a known profile."""

    code: str = "UNAUTHENTICATED"
    kind: ErrorKind = ErrorKind.UNAUTHENTICATED

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Unauthenticated: {reason}")


# Internal failures


class InternalLedgerError(LedgerError):
    """Base exception for failures that are not the caller's fault."""

    code: str = "INTERNAL"
    kind: ErrorKind = ErrorKind.INTERNAL


class LedgerConsistencyError(InternalLedgerError):
    """Stored data violates a cross-row invariant (e.g. dangling reference)."""

    code: str = "LEDGER_CONSISTENCY"

    def __init__(self, entity_type: str, entity_id: str, detail: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.detail = detail
        super().__init__(
            f"Ledger consistency violation on {entity_type} {entity_id}: {detail}"
        )


class StoreUnavailableError(InternalLedgerError):
    """Database or transaction layer failed (deadlock, connectivity, timeout)."""

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, cause: str):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Store failure during {operation}: {cause}")

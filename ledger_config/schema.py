"""
Ledger configuration schema.

Frozen dataclasses produced by ``ledger_config.loader`` from YAML.  The
kernel never imports this module; ``ledger_services`` passes the relevant
values into kernel constructors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class DatabaseConfig:
    """Engine and pool settings."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    statement_timeout_ms: int = 30000
    lock_timeout_ms: int = 10000


@dataclass(frozen=True)
class TransferPolicy:
    """Money movement policy."""

    deposit_cap_ratio: Decimal = Decimal("0.25")


@dataclass(frozen=True)
class ReportingConfig:
    """Earnings report bounds."""

    default_client_limit: int = 2
    max_client_limit: int = 100


@dataclass(frozen=True)
class RetryConfig:
    """Retry budget for read operations; mutations are never retried."""

    read_attempts: int = 1


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerConfig:
    """
    Complete runtime configuration.

    ``checksum`` is the SHA-256 of the canonical merged YAML content and
    identifies the configuration in LEDGER_CONFIG_TRACE log entries.
    """

    config_id: str
    version: int
    database: DatabaseConfig
    transfers: TransferPolicy = field(default_factory=TransferPolicy)
    reporting: ReportingConfig = field(default_factory=ReportingConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""

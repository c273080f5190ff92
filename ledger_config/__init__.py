"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    ``get_active_config()`` loads the packaged ``defaults.yaml``, overlays
    an optional override file, validates the result into frozen
    dataclasses and returns a ``LedgerConfig``.

Architecture position:
    Configuration sits beside ``ledger_kernel``.  The kernel MUST NEVER
    import from ``ledger_config``; ``ledger_services`` hands the relevant
    values to kernel constructors.

Failure modes:
    - ``FileNotFoundError`` -- the override file does not exist.
    - ``ValueError`` -- a value fails validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import load_yaml_file, merge_sections, parse_config
from ledger_config.schema import (
    DatabaseConfig,
    LedgerConfig,
    LoggingConfig,
    ReportingConfig,
    RetryConfig,
    TransferPolicy,
)

_logger = logging.getLogger("ledger_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Optional YAML file overriding the packaged defaults.

    Returns:
        Validated, frozen LedgerConfig.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ValueError: If configuration validation fails.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    if config_path is not None:
        data = merge_sections(data, load_yaml_file(Path(config_path)))

    config = parse_config(data)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(config_path) if config_path is not None else "defaults",
        },
    )
    return config


__all__ = [
    "DatabaseConfig",
    "LedgerConfig",
    "LoggingConfig",
    "ReportingConfig",
    "RetryConfig",
    "TransferPolicy",
    "get_active_config",
]

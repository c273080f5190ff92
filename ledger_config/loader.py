"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into the frozen dataclasses of
``ledger_config.schema``.  Runtime callers go through
``ledger_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Every parse error raises ``ValueError`` naming the offending key.
* An override file is merged section by section over the packaged
  defaults, so it only needs the keys it changes.
* ``compute_checksum`` is deterministic for identical content.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    DatabaseConfig,
    LedgerConfig,
    LoggingConfig,
    ReportingConfig,
    RetryConfig,
    TransferPolicy,
)

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def merge_sections(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Overlay ``override`` on ``base``; nested mappings merge one level deep."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' must be a mapping")
    return section


def _int(section: dict[str, Any], key: str, default: int, minimum: int = 0) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"'{key}' must be >= {minimum}, got {value}")
    return value


def parse_database(section: dict[str, Any]) -> DatabaseConfig:
    url = section.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ValueError("'database.url' is required")
    echo = section.get("echo", False)
    if not isinstance(echo, bool):
        raise ValueError(f"'echo' must be a boolean, got {echo!r}")
    return DatabaseConfig(
        url=url.strip(),
        echo=echo,
        pool_size=_int(section, "pool_size", 20, minimum=1),
        max_overflow=_int(section, "max_overflow", 10),
        pool_timeout=_int(section, "pool_timeout", 30),
        pool_recycle=_int(section, "pool_recycle", 1800),
        statement_timeout_ms=_int(section, "statement_timeout_ms", 30000),
        lock_timeout_ms=_int(section, "lock_timeout_ms", 10000),
    )


def parse_transfers(section: dict[str, Any]) -> TransferPolicy:
    raw = section.get("deposit_cap_ratio", "0.25")
    if isinstance(raw, bool):
        raise ValueError(f"'deposit_cap_ratio' must be a number, got {raw!r}")
    try:
        ratio = Decimal(str(raw))
    except InvalidOperation:
        raise ValueError(f"'deposit_cap_ratio' must be a number, got {raw!r}") from None
    if not ratio.is_finite() or ratio <= 0 or ratio > 1:
        raise ValueError(f"'deposit_cap_ratio' must be in (0, 1], got {raw!r}")
    return TransferPolicy(deposit_cap_ratio=ratio)


def parse_reporting(section: dict[str, Any]) -> ReportingConfig:
    default_limit = _int(section, "default_client_limit", 2, minimum=1)
    max_limit = _int(section, "max_client_limit", 100, minimum=1)
    if default_limit > max_limit:
        raise ValueError(
            f"'default_client_limit' ({default_limit}) exceeds "
            f"'max_client_limit' ({max_limit})"
        )
    return ReportingConfig(
        default_client_limit=default_limit,
        max_client_limit=max_limit,
    )


def parse_retry(section: dict[str, Any]) -> RetryConfig:
    return RetryConfig(read_attempts=_int(section, "read_attempts", 1))


def parse_logging(section: dict[str, Any]) -> LoggingConfig:
    level = str(section.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"'logging.level' must be one of {sorted(_LOG_LEVELS)}")
    return LoggingConfig(level=level)


def parse_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Parse a merged configuration mapping.

    Postconditions:
        - Returns a LedgerConfig whose checksum covers ``data``.
    Raises:
        ValueError: on any missing or invalid value.
    """
    config_id = data.get("config_id")
    if not isinstance(config_id, str) or not config_id:
        raise ValueError("'config_id' is required")

    version = data.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise ValueError(f"'version' must be a positive integer, got {version!r}")

    return LedgerConfig(
        config_id=config_id,
        version=version,
        database=parse_database(_section(data, "database")),
        transfers=parse_transfers(_section(data, "transfers")),
        reporting=parse_reporting(_section(data, "reporting")),
        retry=parse_retry(_section(data, "retry")),
        logging=parse_logging(_section(data, "logging")),
        checksum=compute_checksum(data),
    )

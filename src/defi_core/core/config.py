"""
defi_core Configuration

Protocol defaults for reserve pools and the price oracle. Every value can
be overridden with a DEFI_* environment variable; values are read once at
import time.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_int(env_var: str, default: int, minimum: int = 0, maximum: int | None = None) -> int:
    """Read an integer setting from the environment and enforce its bounds."""
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from exc
    if value < minimum or (maximum is not None and value > maximum):
        raise ConfigurationError(
            f"{env_var}={value} outside allowed range [{minimum}, {maximum}]"
        )
    if value != default:
        logger.info(
            "Configuration override: %s=%s",
            env_var,
            value,
            extra={"event": "config.override", "env_var": env_var},
        )
    return value


ENVIRONMENT = os.getenv("DEFI_ENVIRONMENT", "production")
LOG_LEVEL = os.getenv("DEFI_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("DEFI_LOG_FILE", "").strip() or None

# Oracle aggregation
ORACLE_MIN_SOURCES = _get_int("DEFI_ORACLE_MIN_SOURCES", 3, minimum=1)
ORACLE_STALE_THRESHOLD_SECONDS = _get_int("DEFI_ORACLE_STALE_THRESHOLD_SECONDS", 300, minimum=1)
ORACLE_CONFIDENCE_THRESHOLD = _get_int("DEFI_ORACLE_CONFIDENCE_THRESHOLD", 80, maximum=100)
ORACLE_ACCURACY_THRESHOLD_BPS = _get_int("DEFI_ORACLE_ACCURACY_THRESHOLD_BPS", 500, maximum=10_000)

# Circuit breaker
BREAKER_TRIP_THRESHOLD_BPS = _get_int("DEFI_BREAKER_TRIP_THRESHOLD_BPS", 2000, minimum=1, maximum=10_000)
BREAKER_RESET_THRESHOLD_BPS = _get_int("DEFI_BREAKER_RESET_THRESHOLD_BPS", 1000, minimum=1, maximum=10_000)

# History ledger: 24 hourly buckets x 30 days
HISTORY_CAPACITY = _get_int("DEFI_HISTORY_CAPACITY", 24 * 30, minimum=1)
TWAP_WINDOW_BUCKETS = _get_int("DEFI_TWAP_WINDOW_BUCKETS", 24, minimum=1)

# Reserve pools
POOL_DEFAULT_FEE_BPS = _get_int("DEFI_POOL_DEFAULT_FEE_BPS", 30, maximum=10_000)
FLASH_LOAN_FEE_BPS = _get_int("DEFI_FLASH_LOAN_FEE_BPS", 9, maximum=10_000)
FLASH_LOAN_MAX_BPS = _get_int("DEFI_FLASH_LOAN_MAX_BPS", 1000, minimum=1, maximum=10_000)


class OracleConfig:
    """Oracle defaults consumed by OracleSettings."""

    MIN_SOURCES = ORACLE_MIN_SOURCES
    STALE_THRESHOLD_SECONDS = ORACLE_STALE_THRESHOLD_SECONDS
    CONFIDENCE_THRESHOLD = ORACLE_CONFIDENCE_THRESHOLD
    ACCURACY_THRESHOLD_BPS = ORACLE_ACCURACY_THRESHOLD_BPS
    TRIP_THRESHOLD_BPS = BREAKER_TRIP_THRESHOLD_BPS
    RESET_THRESHOLD_BPS = BREAKER_RESET_THRESHOLD_BPS
    HISTORY_CAPACITY = HISTORY_CAPACITY
    TWAP_WINDOW_BUCKETS = TWAP_WINDOW_BUCKETS
    INITIAL_REPUTATION = 100
    DEFAULT_REWARD_MULTIPLIER = 100


class PoolConfig:
    """Reserve pool defaults."""

    DEFAULT_FEE_BPS = POOL_DEFAULT_FEE_BPS
    FLASH_LOAN_FEE_BPS = FLASH_LOAN_FEE_BPS
    FLASH_LOAN_MAX_BPS = FLASH_LOAN_MAX_BPS

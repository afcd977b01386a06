"""
Exception hierarchy for the defi_core pricing and settlement engine.

Provides typed exceptions for pool and oracle operations so callers can
distinguish malformed input, state that precludes an operation, and results
that violate a caller-supplied bound.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class DeFiError(Exception):
    """Base exception for all pool and oracle errors.

    Every failure aborts the whole operation with no partial mutation, so
    callers may retry the entire call.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried
    """

    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Authorization ====================


class UnauthorizedError(DeFiError):
    """Raised when the caller lacks the role required for an operation."""
    pass


# ==================== Validation Errors ====================


class ValidationError(DeFiError):
    """Raised when caller-supplied input is malformed."""
    pass


class InvalidAmountError(ValidationError):
    """Raised for zero, negative, or out-of-range amounts and rates."""
    pass


class InvalidConfidenceError(ValidationError):
    """Raised when a reporter confidence lies outside [0, 100]."""
    pass


class InvalidStakeError(ValidationError):
    """Raised when a reporter registers with no stake or registers twice."""
    pass


class InvalidConfigurationError(ValidationError):
    """Raised when administrative settings fail validation."""
    pass


# ==================== State Errors ====================


class StateError(DeFiError):
    """Raised when current state precludes the requested operation."""
    pass


class InsufficientLiquidityError(StateError):
    """Raised when pool reserves cannot satisfy a swap or withdrawal."""
    pass


class InsufficientDataSourcesError(StateError):
    """Raised when too few fresh submissions remain to aggregate a price."""

    def __init__(
        self,
        message: str,
        available: int = 0,
        required: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.available = available
        self.required = required


class InsufficientRepaymentError(StateError):
    """Raised when a flash loan repayment does not cover principal plus fee."""

    def __init__(
        self,
        message: str,
        required: int = 0,
        provided: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.required = required
        self.provided = provided


class NotFoundError(StateError):
    """Raised when a pool, pair, or reporter does not exist."""
    pass


class AlreadyExistsError(StateError):
    """Raised when creating a pool or pair that already exists."""
    pass


class PoolLockedError(StateError):
    """Raised when a pool is locked by an outstanding flash loan."""
    recoverable = True


class ProtocolPausedError(StateError):
    """Raised when price submissions are halted by the admin."""
    recoverable = True


# ==================== Bound Violations ====================


class SlippageExceededError(DeFiError):
    """Raised when a result violates the caller's minimum bound."""

    def __init__(
        self,
        message: str,
        expected: int = 0,
        actual: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual


# ==================== Oracle Trust ====================


class CircuitBreakerActiveError(DeFiError):
    """Raised when a consumer requires a price while the pair's breaker is tripped."""
    recoverable = True


class StalePriceError(DeFiError):
    """Raised when a consumer requires a price that is stale or under-confident."""
    recoverable = True

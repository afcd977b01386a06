"""
Fixed-point helpers shared by the pool and oracle engines.

All amounts are unsigned integers scaled by 10**DECIMALS. Percentages are
basis points (10000 = 100%). Every division truncates toward zero, and
that truncation is part of the observable behaviour of both engines.
"""

from __future__ import annotations

import math

from ..exceptions import InvalidAmountError

# Token amounts carry 9 decimal places
DECIMALS = 9
SCALE = 10**DECIMALS

# 10000 bps = 100%
BPS_DENOMINATOR = 10_000

# Spot prices are quoted as reserve_out * PRICE_PRECISION // reserve_in
PRICE_PRECISION = 1_000_000

# Upper bound for any single amount (u64 on the settlement layer)
MAX_U64 = 2**64 - 1


class SafeMath:
    """
    Checked integer arithmetic for reserve and price calculations.

    Raises InvalidAmountError instead of silently wrapping or producing
    negative balances.
    """

    @staticmethod
    def require_amount(value: int, name: str = "amount", allow_zero: bool = False) -> int:
        """Validate an unsigned amount and return it unchanged."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidAmountError(f"{name} must be an integer", details={name: value})
        if value < 0 or (value == 0 and not allow_zero):
            raise InvalidAmountError(f"{name} must be positive", details={name: value})
        if value > MAX_U64:
            raise InvalidAmountError(f"{name} exceeds u64 range", details={name: value})
        return value

    @staticmethod
    def require_bps(value: int, name: str = "bps") -> int:
        """Validate a basis-point value in [0, 10000]."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidAmountError(f"{name} must be an integer", details={name: value})
        if not 0 <= value <= BPS_DENOMINATOR:
            raise InvalidAmountError(
                f"{name} must be in [0, {BPS_DENOMINATOR}]", details={name: value}
            )
        return value

    @staticmethod
    def safe_sub(a: int, b: int, name: str = "value") -> int:
        if b > a:
            raise InvalidAmountError(f"{name} underflow: {a} - {b}")
        return a - b


def isqrt(value: int) -> int:
    """Integer square root, truncated. Used to seed LP supply."""
    if value < 0:
        raise InvalidAmountError(f"Cannot take square root of negative value: {value}")
    return math.isqrt(value)


def mul_div(a: int, b: int, denominator: int, round_up: bool = False) -> int:
    """
    Calculate (a * b) / denominator without intermediate truncation.

    Args:
        a: First multiplicand
        b: Second multiplicand
        denominator: Divisor
        round_up: Round up instead of truncating

    Raises:
        ValueError: If denominator is zero
    """
    if denominator == 0:
        raise ValueError("Division by zero")

    product = a * b
    if round_up:
        return (product + denominator - 1) // denominator
    return product // denominator


def apply_bps(amount: int, bps: int) -> int:
    """Return floor(amount * bps / 10000)."""
    return amount * bps // BPS_DENOMINATOR


def deviation_bps(new_value: int, reference: int) -> int:
    """
    Absolute deviation of new_value from reference in basis points.

    Returns 0 when there is no reference value yet.
    """
    if reference == 0:
        return 0
    return abs(new_value - reference) * BPS_DENOMINATOR // reference


def spot_price(reserve_in: int, reserve_out: int) -> int:
    """Price of the input asset in output units, scaled by PRICE_PRECISION."""
    if reserve_in == 0:
        return 0
    return reserve_out * PRICE_PRECISION // reserve_in

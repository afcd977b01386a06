"""
Swap pricing curves for reserve pools.

Pure functions with deterministic integer rounding. Nothing in this module
touches pool state; ReservePool consumes the results.

Curves:
- Constant product: x * y = k with the fee taken from the input
- Stable (simplified): constant product with a fixed 0.3% input haircut

Invariant: after every swap priced here,
new_reserve_in * new_reserve_out >= reserve_in * reserve_out.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import InvalidAmountError
from .safe_math import BPS_DENOMINATOR, SafeMath, apply_bps, spot_price

# Stable curve keeps 997/1000 of the input
STABLE_NUMERATOR = 997
STABLE_DENOMINATOR = 1000
STABLE_FEE_BPS = 30


@dataclass(frozen=True)
class SwapQuote:
    """Result of pricing a swap against a pair of reserves."""

    amount_in: int
    amount_out: int
    fee_amount: int
    price_before: int
    price_after: int
    price_impact_bps: int
    new_reserve_in: int
    new_reserve_out: int

    @property
    def effective_rate(self) -> int:
        """Output per unit of input, scaled by PRICE_PRECISION."""
        return spot_price(self.amount_in, self.amount_out)


def get_amount_out_constant_product(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int,
) -> int:
    """
    Output amount for an exact-input constant product swap.

        amount_out = floor(amount_in * (10000 - fee) * reserve_out /
                           (reserve_in * 10000 + amount_in * (10000 - fee)))
    """
    SafeMath.require_amount(amount_in, "amount_in")
    SafeMath.require_bps(fee_bps, "fee_bps")
    if reserve_in <= 0 or reserve_out <= 0:
        return 0

    amount_in_with_fee = amount_in * (BPS_DENOMINATOR - fee_bps)
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * BPS_DENOMINATOR + amount_in_with_fee
    return numerator // denominator


def get_amount_out_stable(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    amplification: int = 0,
) -> int:
    """
    Output amount for the simplified stable curve.

        amount_out = floor(amount_in * 0.997 * reserve_out /
                           (reserve_in + amount_in * 0.997))

    amplification is accepted for interface parity with the pool record
    and does not change the result.
    """
    SafeMath.require_amount(amount_in, "amount_in")
    if reserve_in <= 0 or reserve_out <= 0:
        return 0

    amount_in_adjusted = amount_in * STABLE_NUMERATOR
    numerator = amount_in_adjusted * reserve_out
    denominator = reserve_in * STABLE_DENOMINATOR + amount_in_adjusted
    return numerator // denominator


def get_fee_amount(amount_in: int, fee_bps: int, is_stable: bool = False) -> int:
    """Portion of the input retained by the pool as a fee."""
    if is_stable:
        return apply_bps(amount_in, STABLE_FEE_BPS)
    return apply_bps(amount_in, fee_bps)


def price_impact_bps(price_before: int, price_after: int) -> int:
    """(before - after) / before in basis points, floored at zero."""
    if price_before == 0 or price_after >= price_before:
        return 0
    return (price_before - price_after) * BPS_DENOMINATOR // price_before


def quote_optimal_amount(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Amount of B that matches amount_a at the current reserve ratio."""
    if reserve_a <= 0:
        raise InvalidAmountError("Cannot quote against an empty reserve")
    return amount_a * reserve_b // reserve_a


def quote_swap(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int,
    is_stable: bool = False,
    amplification: int = 0,
) -> SwapQuote:
    """
    Price an exact-input swap and report the post-trade reserves.

    Args:
        amount_in: Exact input amount
        reserve_in: Current reserve of the input asset
        reserve_out: Current reserve of the output asset
        fee_bps: Pool fee in basis points (ignored by the stable curve)
        is_stable: Use the stable curve
        amplification: Stable curve parameter (inert)

    Returns:
        SwapQuote; amount_out may be 0 for dust inputs
    """
    if is_stable:
        amount_out = get_amount_out_stable(amount_in, reserve_in, reserve_out, amplification)
    else:
        amount_out = get_amount_out_constant_product(amount_in, reserve_in, reserve_out, fee_bps)

    new_reserve_in = reserve_in + amount_in
    new_reserve_out = reserve_out - amount_out
    price_before = spot_price(reserve_in, reserve_out)
    price_after = spot_price(new_reserve_in, new_reserve_out)

    return SwapQuote(
        amount_in=amount_in,
        amount_out=amount_out,
        fee_amount=get_fee_amount(amount_in, fee_bps, is_stable),
        price_before=price_before,
        price_after=price_after,
        price_impact_bps=price_impact_bps(price_before, price_after),
        new_reserve_in=new_reserve_in,
        new_reserve_out=new_reserve_out,
    )

"""
Unit tests for fixed-point helpers.

Coverage targets:
- Amount and basis-point validation
- Truncating integer arithmetic
"""

import pytest

from defi_core.core.defi.safe_math import (
    DECIMALS,
    MAX_U64,
    SCALE,
    SafeMath,
    apply_bps,
    deviation_bps,
    isqrt,
    mul_div,
    spot_price,
)
from defi_core.core.exceptions import InvalidAmountError


@pytest.mark.parametrize("value", [0, -1, MAX_U64 + 1, True, 1.5, "10"])
def test_require_amount_rejects_invalid(value):
    with pytest.raises(InvalidAmountError):
        SafeMath.require_amount(value, "amount")


def test_require_amount_allows_zero_when_requested():
    assert SafeMath.require_amount(0, "min_out", allow_zero=True) == 0
    assert SafeMath.require_amount(MAX_U64) == MAX_U64


def test_require_bps_bounds():
    assert SafeMath.require_bps(0) == 0
    assert SafeMath.require_bps(10_000) == 10_000
    with pytest.raises(InvalidAmountError):
        SafeMath.require_bps(10_001)
    with pytest.raises(InvalidAmountError):
        SafeMath.require_bps(-1)


def test_safe_sub_underflow():
    assert SafeMath.safe_sub(10, 3) == 7
    with pytest.raises(InvalidAmountError):
        SafeMath.safe_sub(3, 10)


def test_isqrt_truncates():
    assert isqrt(10**12) == 10**6
    assert isqrt(99) == 9
    with pytest.raises(InvalidAmountError):
        isqrt(-1)


def test_mul_div_rounding():
    assert mul_div(7, 3, 2) == 10
    assert mul_div(7, 3, 2, round_up=True) == 11
    assert mul_div(6, 2, 3, round_up=True) == 4
    with pytest.raises(ValueError):
        mul_div(1, 1, 0)


def test_apply_bps_floors():
    # 9 bps of 100,000 is exactly 90; of 99,999 it floors to 89
    assert apply_bps(100_000, 9) == 90
    assert apply_bps(99_999, 9) == 89


def test_deviation_bps():
    assert deviation_bps(125, 100) == 2500
    assert deviation_bps(75, 100) == 2500
    assert deviation_bps(104, 100) == 400
    assert deviation_bps(500, 0) == 0


def test_fixed_point_scale():
    assert DECIMALS == 9
    assert SCALE == 1_000_000_000


def test_spot_price_scaled():
    assert spot_price(1_000_000, 2_000_000) == 2_000_000
    assert spot_price(0, 5) == 0

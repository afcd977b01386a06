"""
Unit tests for HistoryLedger.

Coverage targets:
- Bucket construction from consecutive publications
- Capacity eviction
- Truncated TWAP over a bucket window
"""

import pytest

from defi_core.core.defi import (
    access_control,
    circuit_breaker,
    events,
    liquidity_pools,
    oracle,
    safe_math,
    swap_math,
    twap_oracle,
)
from defi_core.core.defi.twap_oracle import HistoryLedger


def test_buckets_open_at_previous_price():
    ledger = HistoryLedger(capacity=10, twap_window=3)
    first = ledger.record_price(100, timestamp=1)
    second = ledger.record_price(104, timestamp=2, previous_price=100, volume=3)

    assert (first.open, first.close) == (100, 100)
    assert (second.open, second.high, second.low, second.close) == (100, 104, 100, 104)
    assert second.volume == 3
    assert ledger.latest() == second


def test_twap_window_and_truncation():
    ledger = HistoryLedger(capacity=10, twap_window=3)
    assert ledger.get_twap() == 0

    for ts, price in enumerate([100, 200, 300, 401], start=1):
        ledger.record_price(price, timestamp=ts)

    # Last three: (200 + 300 + 401) // 3
    assert ledger.get_twap() == 300
    assert ledger.get_twap(window=2) == 350
    assert ledger.get_twap(window=100) == 250


def test_capacity_evicts_oldest():
    ledger = HistoryLedger(capacity=3, twap_window=3)
    for ts, price in enumerate([10, 20, 30, 40], start=1):
        ledger.record_price(price, timestamp=ts)

    assert len(ledger) == 3
    assert [b.close for b in ledger.recent(10)] == [20, 30, 40]
    assert ledger.recent(0) == []


def test_weighted_price_override():
    ledger = HistoryLedger()
    bucket = ledger.record_price(100, timestamp=1, weighted_price=98)
    assert bucket.weighted_price == 98
    assert ledger.get_twap() == 98
    assert bucket.to_dict()["close"] == 100


def test_invalid_inputs():
    with pytest.raises(ValueError):
        HistoryLedger(capacity=0)
    with pytest.raises(ValueError):
        HistoryLedger(twap_window=0)
    ledger = HistoryLedger()
    with pytest.raises(ValueError):
        ledger.record_price(0, timestamp=1)
    with pytest.raises(ValueError):
        ledger.record_price(10, timestamp=-1)


@pytest.mark.parametrize(
    "module",
    [access_control, circuit_breaker, events, liquidity_pools, oracle, safe_math, swap_math, twap_oracle],
    ids=lambda m: m.__name__.rsplit(".", 1)[-1],
)
def test_engine_modules_are_documented(module):
    assert module.__doc__ and module.__doc__.strip()

"""
Unit tests for reserve pool flash loans.

Coverage targets:
- Loan cap and fee rounding
- Short repayment keeps the loan open
- Receipts are single use
- Callback form restores reserves on failure
- Receipt blocks unwind unpaid loans on exit
"""

import pytest

from defi_core.core.defi.events import FlashLoanRepaid
from defi_core.core.exceptions import (
    InsufficientRepaymentError,
    InvalidAmountError,
    PoolLockedError,
    StateError,
)


def test_borrow_and_repay_exact(pool, event_bus):
    receipt = pool.flash_borrow(100_000)

    assert receipt.fee == 90
    assert receipt.repayment_due == 100_090
    assert pool.reserve_a == 900_000

    fee = pool.flash_repay(receipt, 100_090)

    assert fee == 90
    assert pool.reserve_a == 1_000_090
    assert receipt.consumed
    assert pool.flash_loan_count == 1
    repaid = event_bus.events_of(FlashLoanRepaid)
    assert len(repaid) == 1
    assert repaid[0].fee == 90


def test_short_repayment_keeps_loan_open(pool):
    receipt = pool.flash_borrow(100_000)

    with pytest.raises(InsufficientRepaymentError) as exc_info:
        pool.flash_repay(receipt, 100_089)

    assert exc_info.value.required == 100_090
    assert exc_info.value.provided == 100_089
    assert not receipt.consumed
    assert pool.reserve_a == 900_000
    with pytest.raises(PoolLockedError):
        pool.swap_exact_input(1_000)

    pool.flash_repay(receipt, 100_090)
    pool.swap_exact_input(1_000)


def test_loan_cap_is_ten_percent(pool):
    with pytest.raises(InvalidAmountError):
        pool.flash_borrow(100_001)
    with pytest.raises(InvalidAmountError):
        pool.flash_borrow(0)
    assert pool.reserve_a == 1_000_000


def test_fee_floors_for_small_loans(pool):
    receipt = pool.flash_borrow(1_000, borrow_a=False)
    assert receipt.fee == 0
    assert pool.flash_repay(receipt, 1_000) == 0
    assert pool.reserve_b == 1_000_000


def test_overpayment_stays_in_pool(pool):
    receipt = pool.flash_borrow(50_000)
    assert pool.flash_repay(receipt, 50_100) == 100
    assert pool.reserve_a == 1_000_100


def test_receipt_is_single_use(pool):
    receipt = pool.flash_borrow(10_000)
    pool.flash_repay(receipt, 10_009)

    with pytest.raises(StateError):
        pool.flash_repay(receipt, 10_009)
    assert pool.reserve_a == 1_000_009


def test_one_loan_at_a_time(pool):
    receipt = pool.flash_borrow(10_000)
    with pytest.raises(PoolLockedError):
        pool.flash_borrow(10_000)
    with pytest.raises(PoolLockedError):
        pool.add_liquidity("bob", 1_000, 1_000)
    pool.flash_repay(receipt, 10_009)


def test_callback_loan(pool):
    seen = {}

    def borrower(amount, fee):
        seen["amount"], seen["fee"] = amount, fee
        return amount + fee

    assert pool.flash_loan(100_000, borrower) == 90
    assert seen == {"amount": 100_000, "fee": 90}
    assert pool.reserve_a == 1_000_090
    assert pool.get_pool_info()["flash_loan_active"] is False


def test_callback_failure_restores_reserves(pool):
    def borrower(amount, fee):
        raise ValueError("arbitrage failed")

    with pytest.raises(ValueError):
        pool.flash_loan(100_000, borrower)

    assert pool.reserve_a == 1_000_000
    assert pool.flash_loan_count == 0
    pool.swap_exact_input(1_000)


def test_callback_short_repayment_restores_reserves(pool):
    with pytest.raises(InsufficientRepaymentError):
        pool.flash_loan(100_000, lambda amount, fee: amount + fee - 1)

    assert pool.reserve_a == 1_000_000
    assert pool.get_pool_info()["flash_loan_active"] is False


def test_receipt_block_unwinds_unpaid_loan(pool):
    with pool.flash_borrow(50_000) as receipt:
        assert pool.reserve_a == 950_000

    assert receipt.consumed
    assert pool.reserve_a == 1_000_000
    assert pool.flash_loan_count == 0
    assert pool.get_pool_info()["flash_loan_active"] is False
    pool.swap_exact_input(10_000)


def test_receipt_block_unwinds_on_error(pool):
    with pytest.raises(RuntimeError):
        with pool.flash_borrow(50_000, borrow_a=False):
            raise RuntimeError("arbitrage failed")

    assert pool.reserve_b == 1_000_000
    pool.add_liquidity("bob", 1_000, 1_000)


def test_receipt_block_keeps_repaid_loan(pool):
    with pool.flash_borrow(100_000) as receipt:
        pool.flash_repay(receipt, receipt.repayment_due)

    assert pool.reserve_a == 1_000_090
    assert pool.flash_loan_count == 1
    assert pool.release_loan(receipt) is False


def test_quotes_refused_while_loan_open(pool):
    receipt = pool.flash_borrow(100_000)

    with pytest.raises(PoolLockedError):
        pool.get_quote(10_000)

    pool.flash_repay(receipt, receipt.repayment_due)
    assert pool.get_quote(10_000).amount_out > 0


def test_best_quote_skips_pool_with_open_loan(repository):
    locked = repository.initialize_pool("IOTA/USD", 30, False, 0, 1_000_000, 1_000_000, provider="alice")
    receipt = locked.flash_borrow(10_000)

    assert repository.find_best_quote("IOTA", "USD", 1_000) == (None, None)

    locked.flash_repay(receipt, receipt.repayment_due)
    pool_id, quote = repository.find_best_quote("IOTA", "USD", 1_000)
    assert pool_id == "IOTA/USD"
    assert quote.amount_out > 0

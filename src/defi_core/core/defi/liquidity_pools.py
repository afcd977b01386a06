"""
Reserve Pools

AMM pools holding two reserves for a token pair. Swaps are priced by
swap_math (constant product or the simplified stable curve); liquidity is
tracked with LP shares seeded from the geometric mean of the first deposit.

Security features:
- Invariant check on every swap (reserve_a * reserve_b never decreases)
- Slippage bounds on swaps, deposits and withdrawals
- One-use flash loan receipts; the pool is locked while a loan is open
- Every failure aborts before any state is mutated
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable

from pydantic import ValidationError as SchemaValidationError

from ..api.dex_metrics import get_dex_metrics, track_liquidity_change, track_pool_state, track_swap
from ..config import PoolConfig
from ..exceptions import (
    AlreadyExistsError,
    InsufficientLiquidityError,
    InsufficientRepaymentError,
    InvalidAmountError,
    NotFoundError,
    PoolLockedError,
    SlippageExceededError,
    StateError,
)
from ..input_validation_schemas import PoolInitInput
from .events import EventBus, FlashLoanRepaid, LiquidityAdded, LiquidityRemoved, SwapExecuted
from .safe_math import BPS_DENOMINATOR, SafeMath, apply_bps, isqrt, mul_div, spot_price
from .swap_math import SwapQuote, quote_optimal_amount, quote_swap

logger = logging.getLogger(__name__)

_receipt_ids = itertools.count(1)


@dataclass(frozen=True)
class LiquidityResult:
    """Outcome of a deposit: shares minted, amounts used, input returned."""

    lp_minted: int
    amount_a: int
    amount_b: int
    refund_a: int
    refund_b: int


@dataclass(frozen=True)
class RemovalResult:
    amount_a: int
    amount_b: int
    lp_burned: int


@dataclass(frozen=True)
class LiquidityPosition:
    """A provider's claim on one pool, valued at current reserves."""

    pool_id: str
    shares: int
    amount_a: int
    amount_b: int
    share_of_pool_bps: int


class FlashLoanReceipt:
    """
    One-use capability returned by flash_borrow.

    Only the issuing pool's flash_repay can consume it. Used as a context
    manager, a receipt still outstanding when the block exits is unwound:
    the principal goes back into reserves and the pool unlocks.

        with pool.flash_borrow(amount) as receipt:
            ...
            pool.flash_repay(receipt, receipt.repayment_due)
    """

    __slots__ = ("receipt_id", "pool_id", "amount", "fee", "borrow_a", "_consumed", "_pool")

    def __init__(self, pool_id: str, amount: int, fee: int, borrow_a: bool, pool: ReservePool | None = None):
        self.receipt_id = next(_receipt_ids)
        self.pool_id = pool_id
        self.amount = amount
        self.fee = fee
        self.borrow_a = borrow_a
        self._consumed = False
        self._pool = pool

    def __enter__(self) -> FlashLoanReceipt:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._pool is not None:
            self._pool.release_loan(self)
        return False

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def repayment_due(self) -> int:
        return self.amount + self.fee

    def __repr__(self) -> str:
        return (
            f"FlashLoanReceipt(id={self.receipt_id}, pool={self.pool_id!r}, "
            f"amount={self.amount}, fee={self.fee}, consumed={self._consumed})"
        )


class ReservePool:
    """
    Two-reserve AMM pool for one token pair.

    reserve_a/reserve_b are unsigned fixed-point integers. Spot price is
    reserve_b per reserve_a scaled by PRICE_PRECISION.
    """

    def __init__(
        self,
        pool_id: str,
        token_a: str = "A",
        token_b: str = "B",
        fee_rate_bps: int = PoolConfig.DEFAULT_FEE_BPS,
        is_stable: bool = False,
        amplification: int = 0,
        event_bus: EventBus | None = None,
        flash_loan_fee_bps: int = PoolConfig.FLASH_LOAN_FEE_BPS,
        flash_loan_max_bps: int = PoolConfig.FLASH_LOAN_MAX_BPS,
    ):
        self.pool_id = pool_id
        self.token_a = token_a
        self.token_b = token_b
        self.fee_rate_bps = SafeMath.require_bps(fee_rate_bps, "fee_rate_bps")
        self.is_stable = is_stable
        # Stored as configuration metadata; the stable curve does not read it
        self.amplification = amplification
        self.flash_loan_fee_bps = SafeMath.require_bps(flash_loan_fee_bps, "flash_loan_fee_bps")
        self.flash_loan_max_bps = SafeMath.require_bps(flash_loan_max_bps, "flash_loan_max_bps")

        # Pool reserves
        self.reserve_a = 0
        self.reserve_b = 0

        # Liquidity provider tracking
        self.lp_supply = 0
        self.lp_balances: dict[str, int] = {}

        # Price accumulator
        self.last_price = 0
        self.cumulative_price_last = 0
        self.last_update_time = 0

        # Stats
        self.total_volume_a = 0
        self.total_volume_b = 0
        self.total_fees_a = 0
        self.total_fees_b = 0
        self.swap_count = 0
        self.flash_loan_count = 0

        self.event_bus = event_bus or EventBus()
        self._active_loan: FlashLoanReceipt | None = None
        self._lock = threading.RLock()

    # ==================== Liquidity ====================

    def add_liquidity(
        self,
        provider: str,
        amount_a: int,
        amount_b: int,
        min_lp_out: int = 0,
        now: int | None = None,
    ) -> LiquidityResult:
        """
        Add liquidity to the pool.

        The first deposit into an empty pool mints isqrt(amount_a * amount_b)
        shares. Later deposits are trimmed to the current reserve ratio and
        mint shares proportional to the deposited fraction of reserves;
        the unused input is returned as a refund.

        Raises:
            InvalidAmountError: Zero amounts or a deposit too small to mint shares
            SlippageExceededError: Minted shares below min_lp_out
            PoolLockedError: A flash loan is outstanding
        """
        SafeMath.require_amount(amount_a, "amount_a")
        SafeMath.require_amount(amount_b, "amount_b")
        SafeMath.require_amount(min_lp_out, "min_lp_out", allow_zero=True)

        with self._lock:
            self._require_unlocked()

            if self.reserve_a == 0 and self.reserve_b == 0:
                used_a, used_b = amount_a, amount_b
                lp_minted = isqrt(amount_a * amount_b)
            else:
                optimal_b = quote_optimal_amount(amount_a, self.reserve_a, self.reserve_b)
                if optimal_b <= amount_b:
                    used_a, used_b = amount_a, optimal_b
                else:
                    used_a = quote_optimal_amount(amount_b, self.reserve_b, self.reserve_a)
                    used_b = amount_b
                lp_minted = min(
                    mul_div(used_a, self.lp_supply, self.reserve_a),
                    mul_div(used_b, self.lp_supply, self.reserve_b),
                )

            if lp_minted == 0 or used_a == 0 or used_b == 0:
                raise InvalidAmountError(
                    "Deposit too small to mint LP shares",
                    details={"amount_a": amount_a, "amount_b": amount_b},
                )
            if lp_minted < min_lp_out:
                raise SlippageExceededError(
                    "LP shares below minimum",
                    expected=min_lp_out,
                    actual=lp_minted,
                )

            self.reserve_a += used_a
            self.reserve_b += used_b
            self.lp_supply += lp_minted
            self.lp_balances[provider] = self.lp_balances.get(provider, 0) + lp_minted
            self._update_price_accumulator(now)

            result = LiquidityResult(
                lp_minted=lp_minted,
                amount_a=used_a,
                amount_b=used_b,
                refund_a=amount_a - used_a,
                refund_b=amount_b - used_b,
            )

            track_liquidity_change(self.pool_id, self.token_a, used_a, "add")
            track_liquidity_change(self.pool_id, self.token_b, used_b, "add")
            self._record_pool_metrics()

        self.event_bus.emit(
            LiquidityAdded(
                pool=self.pool_id,
                amount_a=used_a,
                amount_b=used_b,
                lp_minted=lp_minted,
                provider=provider,
            )
        )
        logger.info(
            "Liquidity added",
            extra={
                "event": "pool.liquidity_added",
                "pool": self.pool_id,
                "provider": provider[:10],
                "lp_minted": lp_minted,
            },
        )
        return result

    def remove_liquidity(
        self,
        provider: str,
        shares: int,
        min_amount_a: int = 0,
        min_amount_b: int = 0,
        now: int | None = None,
    ) -> RemovalResult:
        """
        Burn LP shares and return the proportional share of both reserves.

        Raises:
            InvalidAmountError: Provider holds fewer shares than requested
            InsufficientLiquidityError: Withdrawal would empty a reserve
            SlippageExceededError: A returned amount is below its minimum
        """
        SafeMath.require_amount(shares, "shares")

        with self._lock:
            self._require_unlocked()

            balance = self.lp_balances.get(provider, 0)
            if shares > balance:
                raise InvalidAmountError(
                    "Insufficient LP shares",
                    details={"available": balance, "requested": shares},
                )

            amount_a = mul_div(shares, self.reserve_a, self.lp_supply)
            amount_b = mul_div(shares, self.reserve_b, self.lp_supply)

            if amount_a == 0 or amount_b == 0:
                raise InvalidAmountError(
                    "Withdrawal too small to return both assets",
                    details={"shares": shares},
                )
            if amount_a >= self.reserve_a or amount_b >= self.reserve_b:
                raise InsufficientLiquidityError(
                    "Withdrawal would empty the pool",
                    details={"shares": shares, "lp_supply": self.lp_supply},
                )
            if amount_a < min_amount_a:
                raise SlippageExceededError(
                    "Returned amount A below minimum", expected=min_amount_a, actual=amount_a
                )
            if amount_b < min_amount_b:
                raise SlippageExceededError(
                    "Returned amount B below minimum", expected=min_amount_b, actual=amount_b
                )

            self.reserve_a -= amount_a
            self.reserve_b -= amount_b
            self.lp_supply -= shares
            self.lp_balances[provider] = balance - shares
            self._update_price_accumulator(now)

            track_liquidity_change(self.pool_id, self.token_a, amount_a, "remove")
            track_liquidity_change(self.pool_id, self.token_b, amount_b, "remove")
            self._record_pool_metrics()

        self.event_bus.emit(
            LiquidityRemoved(
                pool=self.pool_id,
                amount_a=amount_a,
                amount_b=amount_b,
                lp_burned=shares,
                provider=provider,
            )
        )
        logger.info(
            "Liquidity removed",
            extra={
                "event": "pool.liquidity_removed",
                "pool": self.pool_id,
                "provider": provider[:10],
                "lp_burned": shares,
            },
        )
        return RemovalResult(amount_a=amount_a, amount_b=amount_b, lp_burned=shares)

    # ==================== Swaps ====================

    def get_quote(self, amount_in: int, a_to_b: bool = True) -> SwapQuote:
        """
        Price a swap without executing it.

        Raises:
            PoolLockedError: A flash loan is outstanding and reserves are short
        """
        with self._lock:
            self._require_unlocked()
            reserve_in, reserve_out = self._oriented_reserves(a_to_b)
            if reserve_in == 0 or reserve_out == 0:
                raise InsufficientLiquidityError("Pool has no liquidity")
            return quote_swap(
                amount_in,
                reserve_in,
                reserve_out,
                self.fee_rate_bps,
                is_stable=self.is_stable,
                amplification=self.amplification,
            )

    def swap_exact_input(
        self,
        amount_in: int,
        min_amount_out: int = 0,
        a_to_b: bool = True,
        now: int | None = None,
    ) -> SwapQuote:
        """
        Swap an exact input amount for as much output as the curve allows.

        Raises:
            InsufficientLiquidityError: Output rounds to zero or pool is empty
            SlippageExceededError: Output below min_amount_out
            PoolLockedError: A flash loan is outstanding
        """
        SafeMath.require_amount(min_amount_out, "min_amount_out", allow_zero=True)
        token_in, token_out = (self.token_a, self.token_b) if a_to_b else (self.token_b, self.token_a)

        with self._lock:
            self._require_unlocked()
            quote = self.get_quote(amount_in, a_to_b)

            if quote.amount_out == 0:
                raise InsufficientLiquidityError(
                    "Swap output rounds to zero", details={"amount_in": amount_in}
                )
            if quote.amount_out < min_amount_out:
                track_swap(self.pool_id, token_in, token_out, amount_in, 0, 0, status="slippage")
                raise SlippageExceededError(
                    "Swap output below minimum",
                    expected=min_amount_out,
                    actual=quote.amount_out,
                )

            reserve_in, reserve_out = self._oriented_reserves(a_to_b)
            if quote.new_reserve_in * quote.new_reserve_out < reserve_in * reserve_out:
                raise StateError(
                    "Invariant violation: reserve product decreased",
                    details={"pool": self.pool_id},
                )

            if a_to_b:
                self.reserve_a, self.reserve_b = quote.new_reserve_in, quote.new_reserve_out
                self.total_volume_a += amount_in
                self.total_fees_a += quote.fee_amount
            else:
                self.reserve_b, self.reserve_a = quote.new_reserve_in, quote.new_reserve_out
                self.total_volume_b += amount_in
                self.total_fees_b += quote.fee_amount
            self.swap_count += 1
            self._update_price_accumulator(now)

            track_swap(
                self.pool_id, token_in, token_out, amount_in, quote.fee_amount, quote.price_impact_bps
            )
            self._record_pool_metrics()

        self.event_bus.emit(
            SwapExecuted(
                pool=self.pool_id,
                amount_in=amount_in,
                amount_out=quote.amount_out,
                fee_amount=quote.fee_amount,
                price_impact=quote.price_impact_bps,
                a_to_b=a_to_b,
            )
        )
        logger.info(
            "Swap executed",
            extra={
                "event": "pool.swap",
                "pool": self.pool_id,
                "amount_in": amount_in,
                "amount_out": quote.amount_out,
                "price_impact_bps": quote.price_impact_bps,
            },
        )
        return quote

    # ==================== Flash Loans ====================

    def flash_borrow(self, amount: int, borrow_a: bool = True) -> FlashLoanReceipt:
        """
        Borrow up to flash_loan_max_bps of one reserve.

        The pool stays locked until the returned receipt is repaid or, when
        the receipt is used as a context manager, until its block exits.

        Raises:
            InvalidAmountError: Zero amount or above the per-loan cap
            PoolLockedError: Another flash loan is outstanding
        """
        SafeMath.require_amount(amount, "amount")

        with self._lock:
            self._require_unlocked()
            reserve = self.reserve_a if borrow_a else self.reserve_b
            max_loan = apply_bps(reserve, self.flash_loan_max_bps)
            if amount > max_loan:
                raise InvalidAmountError(
                    "Flash loan exceeds available liquidity",
                    details={"amount": amount, "max_loan": max_loan},
                )

            receipt = FlashLoanReceipt(
                pool_id=self.pool_id,
                amount=amount,
                fee=apply_bps(amount, self.flash_loan_fee_bps),
                borrow_a=borrow_a,
                pool=self,
            )
            if borrow_a:
                self.reserve_a = SafeMath.safe_sub(self.reserve_a, amount, "reserve_a")
            else:
                self.reserve_b = SafeMath.safe_sub(self.reserve_b, amount, "reserve_b")
            self._active_loan = receipt

        logger.info(
            "Flash loan issued",
            extra={
                "event": "pool.flash_borrow",
                "pool": self.pool_id,
                "amount": amount,
                "fee": receipt.fee,
            },
        )
        return receipt

    def flash_repay(self, receipt: FlashLoanReceipt, repayment: int) -> int:
        """
        Repay an outstanding flash loan and consume its receipt.

        Returns:
            Fee retained by the pool

        Raises:
            InsufficientRepaymentError: repayment < principal + fee; the loan stays open
            StateError: Receipt was not issued by this pool or already consumed
        """
        SafeMath.require_amount(repayment, "repayment", allow_zero=True)

        with self._lock:
            if receipt.consumed or receipt is not self._active_loan:
                raise StateError(
                    "Flash loan receipt is not outstanding on this pool",
                    details={"receipt": receipt.receipt_id, "pool": self.pool_id},
                )
            if repayment < receipt.repayment_due:
                get_dex_metrics().flash_loans_total.labels(pool=self.pool_id, status="short").inc()
                raise InsufficientRepaymentError(
                    "Flash loan repayment below principal plus fee",
                    required=receipt.repayment_due,
                    provided=repayment,
                )

            if receipt.borrow_a:
                self.reserve_a += repayment
            else:
                self.reserve_b += repayment
            receipt._consumed = True
            self._active_loan = None
            self.flash_loan_count += 1
            fee = repayment - receipt.amount
            self._update_price_accumulator(None)

            metrics = get_dex_metrics()
            metrics.flash_loans_total.labels(pool=self.pool_id, status="repaid").inc()
            metrics.flash_loan_fees.labels(
                pool=self.pool_id, denom=self.token_a if receipt.borrow_a else self.token_b
            ).inc(fee)
            self._record_pool_metrics()

        self.event_bus.emit(
            FlashLoanRepaid(pool=self.pool_id, amount=receipt.amount, fee=fee, borrowed_a=receipt.borrow_a)
        )
        logger.info(
            "Flash loan repaid",
            extra={"event": "pool.flash_repay", "pool": self.pool_id, "fee": fee},
        )
        return fee

    def flash_loan(
        self,
        amount: int,
        callback: Callable[[int, int], int],
        borrow_a: bool = True,
    ) -> int:
        """
        Borrow, run callback(amount, fee) and repay with its return value as
        one atomic call. On any failure the borrowed amount is restored and
        the error propagates.

        Returns:
            Fee retained by the pool
        """
        with self._lock:
            with self.flash_borrow(amount, borrow_a) as receipt:
                repayment = callback(receipt.amount, receipt.fee)
                return self.flash_repay(receipt, repayment)

    def release_loan(self, receipt: FlashLoanReceipt) -> bool:
        """
        Unwind a receipt that was never repaid.

        Returns:
            True if the loan was still open and has been unwound
        """
        with self._lock:
            if receipt.consumed or receipt is not self._active_loan:
                return False
            self._unwind_loan(receipt)
            return True

    def _unwind_loan(self, receipt: FlashLoanReceipt) -> None:
        if receipt.borrow_a:
            self.reserve_a += receipt.amount
        else:
            self.reserve_b += receipt.amount
        receipt._consumed = True
        self._active_loan = None
        logger.warning(
            "Flash loan unwound",
            extra={"event": "pool.flash_unwound", "pool": self.pool_id, "amount": receipt.amount},
        )

    # ==================== Views ====================

    def get_lp_balance(self, provider: str) -> int:
        with self._lock:
            return self.lp_balances.get(provider, 0)

    def get_position(self, provider: str) -> LiquidityPosition | None:
        """Provider's shares with their underlying amounts, or None if it holds none."""
        with self._lock:
            shares = self.lp_balances.get(provider, 0)
            if shares == 0:
                return None
            return LiquidityPosition(
                pool_id=self.pool_id,
                shares=shares,
                amount_a=mul_div(shares, self.reserve_a, self.lp_supply),
                amount_b=mul_div(shares, self.reserve_b, self.lp_supply),
                share_of_pool_bps=mul_div(shares, BPS_DENOMINATOR, self.lp_supply),
            )

    def get_pool_info(self) -> dict:
        """Get pool statistics"""
        with self._lock:
            return {
                "pool_id": self.pool_id,
                "token_a": self.token_a,
                "token_b": self.token_b,
                "reserve_a": self.reserve_a,
                "reserve_b": self.reserve_b,
                "lp_supply": self.lp_supply,
                "fee_rate_bps": self.fee_rate_bps,
                "is_stable": self.is_stable,
                "amplification": self.amplification,
                "current_price": spot_price(self.reserve_a, self.reserve_b),
                "last_price": self.last_price,
                "cumulative_price_last": self.cumulative_price_last,
                "last_update_time": self.last_update_time,
                "liquidity_providers_count": sum(1 for v in self.lp_balances.values() if v > 0),
                "total_volume_a": self.total_volume_a,
                "total_volume_b": self.total_volume_b,
                "total_fees_a": self.total_fees_a,
                "total_fees_b": self.total_fees_b,
                "swap_count": self.swap_count,
                "flash_loan_count": self.flash_loan_count,
                "flash_loan_active": self._active_loan is not None,
            }

    # ==================== Helpers ====================

    def _oriented_reserves(self, a_to_b: bool) -> tuple[int, int]:
        if a_to_b:
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    def _require_unlocked(self) -> None:
        if self._active_loan is not None:
            raise PoolLockedError(
                "Pool locked by outstanding flash loan",
                details={"pool": self.pool_id, "receipt": self._active_loan.receipt_id},
            )

    def _update_price_accumulator(self, now: int | None) -> None:
        if now is not None:
            if self.last_update_time and now > self.last_update_time:
                self.cumulative_price_last += self.last_price * (now - self.last_update_time)
            if now > self.last_update_time:
                self.last_update_time = now
        self.last_price = spot_price(self.reserve_a, self.reserve_b)

    def _record_pool_metrics(self) -> None:
        track_pool_state(
            self.pool_id, self.token_a, self.token_b, self.reserve_a, self.reserve_b, self.lp_supply
        )


class PoolRepository:
    """Repository of reserve pools keyed by pair identifier."""

    def __init__(self, event_bus: EventBus | None = None):
        self.pools: dict[str, ReservePool] = {}
        self.event_bus = event_bus or EventBus()
        self._lock = threading.RLock()

    def initialize_pool(
        self,
        pair: str,
        fee_rate_bps: int,
        is_stable: bool,
        amplification: int,
        initial_a: int,
        initial_b: int,
        provider: str = "",
        now: int | None = None,
    ) -> ReservePool:
        """
        Create a pool seeded by its first deposit.

        lp_supply = isqrt(initial_a * initial_b), credited to provider.

        Raises:
            InvalidAmountError: A zero deposit or an out-of-range fee
            AlreadyExistsError: A pool for this pair already exists
        """
        try:
            params = PoolInitInput(
                pair=pair,
                fee_rate_bps=fee_rate_bps,
                is_stable=is_stable,
                amplification=amplification,
                initial_a=initial_a,
                initial_b=initial_b,
            )
        except SchemaValidationError as exc:
            raise InvalidAmountError(
                "Invalid pool parameters",
                details={"errors": [err["loc"] for err in exc.errors()]},
            ) from exc

        token_a, _, token_b = params.pair.partition("/")

        with self._lock:
            if params.pair in self.pools:
                raise AlreadyExistsError(f"Pool {params.pair} already exists")

            pool = ReservePool(
                pool_id=params.pair,
                token_a=token_a or "A",
                token_b=token_b or "B",
                fee_rate_bps=params.fee_rate_bps,
                is_stable=params.is_stable,
                amplification=params.amplification,
                event_bus=self.event_bus,
            )
            pool.add_liquidity(provider, params.initial_a, params.initial_b, now=now)
            self.pools[params.pair] = pool

            metrics = get_dex_metrics()
            metrics.pools_total.set(len(self.pools))
            metrics.pool_fee_tier.labels(pool=params.pair).set(params.fee_rate_bps)

        logger.info(
            "Pool initialized",
            extra={
                "event": "pool.initialized",
                "pool": params.pair,
                "fee_rate_bps": params.fee_rate_bps,
                "is_stable": params.is_stable,
                "lp_supply": pool.lp_supply,
            },
        )
        return pool

    def get_pool(self, pair: str) -> ReservePool:
        with self._lock:
            pool = self.pools.get(pair)
        if pool is None:
            raise NotFoundError(f"Pool {pair} not found")
        return pool

    def get_all_pools_stats(self) -> list[dict]:
        """Get stats for all pools, deepest first."""
        with self._lock:
            pools = list(self.pools.values())
        stats = [pool.get_pool_info() for pool in pools]
        stats.sort(key=lambda s: s["reserve_a"] * s["reserve_b"], reverse=True)
        return stats

    def get_user_positions(self, provider: str) -> list[LiquidityPosition]:
        """Every pool position held by provider, largest share of pool first."""
        with self._lock:
            pools = list(self.pools.values())
        positions = [p for p in (pool.get_position(provider) for pool in pools) if p is not None]
        positions.sort(key=lambda p: p.share_of_pool_bps, reverse=True)
        return positions

    def find_best_quote(self, token_in: str, token_out: str, amount_in: int) -> tuple[str | None, SwapQuote | None]:
        """
        Find the pool giving the largest output for a swap.

        Returns:
            (pool_id, quote), or (None, None) if no pool trades the pair
        """
        with self._lock:
            pools = list(self.pools.values())

        best_pool = None
        best_quote = None
        for pool in pools:
            if (pool.token_a, pool.token_b) == (token_in, token_out):
                a_to_b = True
            elif (pool.token_b, pool.token_a) == (token_in, token_out):
                a_to_b = False
            else:
                continue
            try:
                quote = pool.get_quote(amount_in, a_to_b)
            except (InsufficientLiquidityError, PoolLockedError):
                continue
            if best_quote is None or quote.amount_out > best_quote.amount_out:
                best_pool, best_quote = pool.pool_id, quote

        return best_pool, best_quote

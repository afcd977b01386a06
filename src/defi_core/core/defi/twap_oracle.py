"""
Price History

Rolling per-pair history of published oracle prices. Each publish appends
one PriceBucket; the ledger keeps a bounded number of them and derives the
TWAP as the mean weighted price over the most recent buckets.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceBucket:
    """One published price with its open/high/low/close summary."""

    timestamp: int
    open: int
    high: int
    low: int
    close: int
    volume: int
    weighted_price: int

    def to_dict(self) -> dict:
        return asdict(self)


class HistoryLedger:
    """
    Rolling window of published prices for one pair.

    Holds at most `capacity` buckets; the oldest is evicted first. The TWAP
    is the truncated mean of the last `twap_window` buckets' weighted price.
    """

    def __init__(self, capacity: int = 24 * 30, twap_window: int = 24):
        if not isinstance(capacity, int) or capacity <= 0:
            raise ValueError("Capacity must be a positive integer.")
        if not isinstance(twap_window, int) or twap_window <= 0:
            raise ValueError("TWAP window must be a positive integer.")
        self.capacity = capacity
        self.twap_window = twap_window
        self._buckets: deque[PriceBucket] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._buckets)

    def record_price(
        self,
        price: int,
        timestamp: int,
        previous_price: int = 0,
        volume: int = 0,
        weighted_price: int | None = None,
    ) -> PriceBucket:
        """
        Append a bucket for a newly published price.

        The bucket opens at the previously published price (or at this price
        if there is none) and closes at this price.
        """
        if price <= 0:
            raise ValueError("Price must be a positive integer.")
        if timestamp < 0:
            raise ValueError("Timestamp must be non-negative.")

        open_price = previous_price or price
        bucket = PriceBucket(
            timestamp=timestamp,
            open=open_price,
            high=max(open_price, price),
            low=min(open_price, price),
            close=price,
            volume=volume,
            weighted_price=price if weighted_price is None else weighted_price,
        )
        evicted = len(self._buckets) == self.capacity
        self._buckets.append(bucket)
        logger.debug(
            "Recorded price %d at %s (total buckets %d, evicted=%s)",
            price,
            timestamp,
            len(self._buckets),
            evicted,
        )
        return bucket

    def get_twap(self, window: int | None = None) -> int:
        """Mean weighted price of the most recent `window` buckets, or 0 if empty."""
        window = window or self.twap_window
        if not self._buckets:
            return 0
        recent = list(self._buckets)[-window:]
        return sum(b.weighted_price for b in recent) // len(recent)

    def latest(self) -> PriceBucket | None:
        return self._buckets[-1] if self._buckets else None

    def recent(self, limit: int = 24) -> list[PriceBucket]:
        """Most recent buckets, oldest first."""
        if limit <= 0:
            return []
        return list(self._buckets)[-limit:]

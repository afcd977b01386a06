"""
Price Deviation Circuit Breaker.

One breaker per oracle pair. It trips when an aggregated price deviates from
the last published price by more than the trip threshold, and halts
publication until either:
- an admin resets it, or
- a later round, built only from submissions within the reset threshold
  of the last normal price, publishes successfully.

All timestamps are supplied by the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from .safe_math import deviation_bps

logger = logging.getLogger(__name__)


class BreakerStatus(Enum):
    """Status of a circuit breaker."""
    NORMAL = "normal"
    TRIPPED = "tripped"


@dataclass
class BreakerEvent:
    """Record of a circuit breaker transition."""
    pair_id: str
    event_type: str  # "triggered", "recovered", "manual_reset"
    timestamp: int
    details: dict
    actor: str = "system"


@dataclass
class PriceCircuitBreaker:
    """
    Circuit breaker guarding a single price pair.

    Tracks the last price that published normally; while tripped, only
    submissions close to that price are admitted so the feed can heal.
    """

    pair_id: str = ""

    # State
    is_triggered: bool = False
    trigger_price: int = 0
    trigger_timestamp: int = 0
    consecutive_anomalies: int = 0
    last_normal_price: int = 0

    # Auto-reset band around last_normal_price
    reset_deviation_threshold_bps: int = 1000
    enabled: bool = True

    events: list[BreakerEvent] = field(default_factory=list)
    max_events: int = 100

    @property
    def status(self) -> BreakerStatus:
        return BreakerStatus.TRIPPED if self.is_triggered else BreakerStatus.NORMAL

    def deviation_from_normal(self, price: int) -> int:
        return deviation_bps(price, self.last_normal_price)

    def admits_submission(self, price: int) -> bool:
        """Whether a submission may join a round in the current state."""
        if not self.is_triggered:
            return True
        return self.deviation_from_normal(price) <= self.reset_deviation_threshold_bps

    def should_trip(self, deviation: int, trip_threshold_bps: int) -> bool:
        return self.enabled and deviation > trip_threshold_bps

    def trip(self, price: int, previous_price: int, deviation: int, timestamp: int) -> None:
        """Trip the breaker for an anomalous aggregated price."""
        self.is_triggered = True
        self.trigger_price = price
        self.trigger_timestamp = timestamp
        self.consecutive_anomalies += 1

        self._record(
            "triggered",
            timestamp,
            {
                "trigger_price": price,
                "previous_price": previous_price,
                "deviation_bps": deviation,
                "consecutive_anomalies": self.consecutive_anomalies,
            },
        )
        logger.warning(
            "Circuit breaker triggered",
            extra={
                "event": "breaker.triggered",
                "pair": self.pair_id,
                "trigger_price": price,
                "deviation_bps": deviation,
                "consecutive_anomalies": self.consecutive_anomalies,
            },
        )

    def record_normal(self, price: int, timestamp: int) -> bool:
        """
        Record a normally published price.

        Returns:
            True if this publication auto-reset a tripped breaker
        """
        self.last_normal_price = price
        if not self.is_triggered:
            self.consecutive_anomalies = 0
            return False

        self.is_triggered = False
        self.consecutive_anomalies = 0
        self._record("recovered", timestamp, {"price": price})
        logger.info(
            "Circuit breaker recovered",
            extra={"event": "breaker.recovered", "pair": self.pair_id, "price": price},
        )
        return True

    def reset(self, actor: str, timestamp: int = 0) -> None:
        """Force the breaker back to NORMAL."""
        was_triggered = self.is_triggered
        self.is_triggered = False
        self.consecutive_anomalies = 0

        self._record("manual_reset", timestamp, {"was_triggered": was_triggered}, actor=actor)
        logger.info(
            "Circuit breaker reset",
            extra={
                "event": "breaker.manual_reset",
                "pair": self.pair_id,
                "actor": actor[:10],
                "was_triggered": was_triggered,
            },
        )

    def get_recent_events(self, limit: int = 10) -> list[dict]:
        """Get recent breaker events."""
        return [
            {
                "pair_id": e.pair_id,
                "type": e.event_type,
                "timestamp": e.timestamp,
                "actor": e.actor,
                "details": e.details,
            }
            for e in self.events[-limit:]
        ]

    def snapshot(self) -> dict:
        return {
            "pair_id": self.pair_id,
            "status": self.status.value,
            "is_triggered": self.is_triggered,
            "trigger_price": self.trigger_price,
            "trigger_timestamp": self.trigger_timestamp,
            "reset_deviation_threshold_bps": self.reset_deviation_threshold_bps,
            "consecutive_anomalies": self.consecutive_anomalies,
            "last_normal_price": self.last_normal_price,
        }

    def _record(self, event_type: str, timestamp: int, details: dict, actor: str = "system") -> None:
        self.events.append(
            BreakerEvent(
                pair_id=self.pair_id,
                event_type=event_type,
                timestamp=timestamp,
                details=details,
                actor=actor,
            )
        )
        if len(self.events) > self.max_events:
            self.events = self.events[-self.max_events:]

"""
Protocol notifications.

Events are fire-and-forget records emitted exactly once per successful
state transition. Subscribers are plain callables; a failing subscriber is
logged and never fails the operation that emitted the event.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProtocolEvent:
    """Base class for all emitted notifications."""

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["type"] = self.event_type
        return payload


@dataclass(frozen=True)
class PriceUpdated(ProtocolEvent):
    pair: str
    new_price: int
    old_price: int
    confidence: int
    source_count: int
    deviation: int
    timestamp: int


@dataclass(frozen=True)
class CircuitBreakerTriggered(ProtocolEvent):
    pair: str
    trigger_price: int
    previous_price: int
    deviation: int
    timestamp: int


@dataclass(frozen=True)
class SwapExecuted(ProtocolEvent):
    pool: str
    amount_in: int
    amount_out: int
    fee_amount: int
    price_impact: int
    a_to_b: bool = True


@dataclass(frozen=True)
class LiquidityAdded(ProtocolEvent):
    pool: str
    amount_a: int
    amount_b: int
    lp_minted: int
    provider: str = ""


@dataclass(frozen=True)
class LiquidityRemoved(ProtocolEvent):
    pool: str
    amount_a: int
    amount_b: int
    lp_burned: int
    provider: str = ""


@dataclass(frozen=True)
class FlashLoanRepaid(ProtocolEvent):
    pool: str
    amount: int
    fee: int
    borrowed_a: bool = True


class EventBus:
    """
    Dispatches protocol events to subscribers and keeps a bounded history.

    Usage:
        bus = EventBus()
        bus.subscribe(lambda event: print(event.to_dict()))
    """

    def __init__(self, max_history: int = 1000):
        self.max_history = max_history
        self.history: list[ProtocolEvent] = []
        self._subscribers: dict[str, Callable[[ProtocolEvent], None]] = {}
        self._lock = threading.RLock()

    def subscribe(self, callback: Callable[[ProtocolEvent], None], name: str | None = None) -> str:
        """Register a callback for every emitted event. Returns the subscription name."""
        with self._lock:
            key = name or f"subscriber-{len(self._subscribers) + 1}"
            self._subscribers[key] = callback
            return key

    def unsubscribe(self, name: str) -> None:
        with self._lock:
            self._subscribers.pop(name, None)

    def emit(self, event: ProtocolEvent) -> None:
        """Record an event and notify every subscriber."""
        with self._lock:
            self.history.append(event)
            if len(self.history) > self.max_history:
                self.history = self.history[-self.max_history:]
            subscribers = list(self._subscribers.items())

        logger.debug(
            "Event emitted: %s",
            event.event_type,
            extra={"event": "events.emitted", "event_type": event.event_type},
        )

        for name, callback in subscribers:
            try:
                callback(event)
            except (TypeError, ValueError, RuntimeError, AttributeError, KeyError) as e:
                logger.error(
                    "Event subscriber failed: %s - %s",
                    type(e).__name__,
                    str(e),
                    extra={
                        "subscriber": name,
                        "error_type": type(e).__name__,
                        "event": "events.subscriber_error",
                    },
                )

    def events_of(self, event_type: type[ProtocolEvent]) -> list[ProtocolEvent]:
        """Return recorded events of a single type, oldest first."""
        with self._lock:
            return [e for e in self.history if isinstance(e, event_type)]

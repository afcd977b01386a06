"""
Multi-Reporter Price Oracle

Aggregates independent reporter observations into one trusted reference
price per trading pair.

Features:
- Staked reporter roster with admin authorization
- Per-reporter submission buffer per pair; quorum triggers aggregation
- Staleness filtering against a caller-supplied clock
- Confidence-weighted price with deterministic truncation
- Circuit breaker on extreme deviation, self-healing on in-band submissions
- Rolling price history and bucket TWAP
- Reporter accuracy and reputation tracking

Every operation on a pair runs under that pair's lock, so an aggregation
round (filter, compute, publish-or-trip) is atomic to concurrent callers.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace

from pydantic import ValidationError as SchemaValidationError

from ..api.dex_metrics import get_dex_metrics
from ..config import OracleConfig
from ..exceptions import (
    AlreadyExistsError,
    CircuitBreakerActiveError,
    InsufficientDataSourcesError,
    InvalidConfidenceError,
    InvalidConfigurationError,
    InvalidStakeError,
    NotFoundError,
    ProtocolPausedError,
    StalePriceError,
    UnauthorizedError,
)
from ..input_validation_schemas import OracleSettingsUpdate
from .access_control import AccessControl
from .circuit_breaker import PriceCircuitBreaker
from .events import CircuitBreakerTriggered, EventBus, PriceUpdated, ProtocolEvent
from .safe_math import SafeMath, deviation_bps
from .twap_oracle import HistoryLedger, PriceBucket

logger = logging.getLogger(__name__)

MAX_CONFIDENCE = 100


@dataclass
class OracleSettings:
    """Tunable oracle parameters."""

    min_sources: int = OracleConfig.MIN_SOURCES
    stale_threshold: int = OracleConfig.STALE_THRESHOLD_SECONDS
    confidence_threshold: int = OracleConfig.CONFIDENCE_THRESHOLD
    trip_threshold_bps: int = OracleConfig.TRIP_THRESHOLD_BPS
    reset_threshold_bps: int = OracleConfig.RESET_THRESHOLD_BPS
    accuracy_threshold_bps: int = OracleConfig.ACCURACY_THRESHOLD_BPS
    history_capacity: int = OracleConfig.HISTORY_CAPACITY
    twap_window: int = OracleConfig.TWAP_WINDOW_BUCKETS
    breaker_enabled: bool = True


@dataclass(frozen=True)
class PriceSubmission:
    """A single reporter observation, held until its round ends."""

    price: int
    confidence: int
    timestamp: int
    reporter_id: str


@dataclass
class PriceFeed:
    """Published reference price for a pair."""

    pair_id: str
    current_price: int = 0
    confidence: int = 0
    last_update_time: int = 0
    source_count: int = 0
    twap: int = 0
    volume_weighted_price: int = 0
    is_active: bool = False


@dataclass
class OracleReporter:
    """Registered price reporter."""

    address: str
    stake_amount: int
    reputation_score: int = OracleConfig.INITIAL_REPUTATION
    total_submissions: int = 0
    accurate_submissions: int = 0
    last_submission_time: int = 0
    is_authorized: bool = False
    reward_multiplier: int = OracleConfig.DEFAULT_REWARD_MULTIPLIER


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of submit_price."""

    accepted: bool
    buffered: int = 0
    round_completed: bool = False
    published: bool = False
    tripped: bool = False
    price: int = 0
    reason: str = ""


@dataclass(frozen=True)
class AggregatedPrice:
    price: int
    confidence: int
    source_count: int
    submissions: tuple[PriceSubmission, ...]


@dataclass
class PairState:
    """Everything the oracle holds for one pair, guarded by one lock."""

    pair_id: str
    feed: PriceFeed
    breaker: PriceCircuitBreaker
    history: HistoryLedger
    pending: dict[str, PriceSubmission] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)


class PriceFeedRegistry:
    """
    Repository of oracle pairs and the reporter roster.

    Lock order: a pair lock may be held while taking the registry lock,
    never the reverse.
    """

    def __init__(self):
        self.pairs: dict[str, PairState] = {}
        self.reporters: dict[str, OracleReporter] = {}
        self._lock = threading.RLock()

    def create_pair(
        self,
        pair_id: str,
        history_capacity: int,
        twap_window: int,
        reset_threshold_bps: int,
    ) -> PairState:
        with self._lock:
            if pair_id in self.pairs:
                raise AlreadyExistsError(f"Pair {pair_id} already exists")
            state = PairState(
                pair_id=pair_id,
                feed=PriceFeed(pair_id=pair_id, is_active=True),
                breaker=PriceCircuitBreaker(
                    pair_id=pair_id,
                    reset_deviation_threshold_bps=reset_threshold_bps,
                ),
                history=HistoryLedger(capacity=history_capacity, twap_window=twap_window),
            )
            self.pairs[pair_id] = state
            return state

    def find_pair(self, pair_id: str) -> PairState | None:
        with self._lock:
            return self.pairs.get(pair_id)

    def get_pair(self, pair_id: str) -> PairState:
        state = self.find_pair(pair_id)
        if state is None:
            raise NotFoundError(f"Pair {pair_id} not found")
        return state

    def pair_ids(self) -> list[str]:
        with self._lock:
            return list(self.pairs)

    def add_reporter(self, reporter: OracleReporter) -> None:
        with self._lock:
            if reporter.address in self.reporters:
                raise InvalidStakeError(
                    "Reporter already registered", details={"address": reporter.address}
                )
            self.reporters[reporter.address] = reporter

    def find_reporter(self, address: str) -> OracleReporter | None:
        with self._lock:
            return self.reporters.get(address.lower())

    def update_reporter(self, address: str, **changes) -> None:
        with self._lock:
            reporter = self.reporters[address]
            for name, value in changes.items():
                setattr(reporter, name, value)

    def record_submission(self, address: str, timestamp: int) -> None:
        with self._lock:
            reporter = self.reporters[address]
            reporter.total_submissions += 1
            reporter.last_submission_time = max(reporter.last_submission_time, timestamp)

    def record_accuracy(self, address: str, accurate: bool) -> None:
        """Credit one scored submission and recompute reputation from the totals."""
        with self._lock:
            reporter = self.reporters.get(address)
            if reporter is None:
                return
            if accurate:
                reporter.accurate_submissions += 1
            total = max(reporter.total_submissions, 1)
            reporter.reputation_score = min(reporter.accurate_submissions * 100 // total, 100)


class OracleAggregator:
    """
    Aggregation engine and admin surface for the price oracle.

    Example usage:
        oracle = OracleAggregator(admin="0xadmin")
        oracle.add_pair("0xadmin", "IOTA/USD")
        oracle.register_reporter("0xr1", stake_amount=1_000)
        oracle.authorize_reporter("0xadmin", "0xr1")
        oracle.submit_price("0xr1", "IOTA/USD", price=250_000_000, confidence=95, timestamp=now)
    """

    def __init__(
        self,
        admin: str,
        registry: PriceFeedRegistry | None = None,
        settings: OracleSettings | None = None,
        event_bus: EventBus | None = None,
        access_control: AccessControl | None = None,
    ):
        self.registry = registry or PriceFeedRegistry()
        self.settings = settings or OracleSettings()
        self.event_bus = event_bus or EventBus()
        self.access_control = access_control or AccessControl(admin_address=admin)
        self.paused = False
        self._lock = threading.RLock()

    # ==================== Reporter Management ====================

    def register_reporter(self, caller: str, stake_amount: int, now: int = 0) -> OracleReporter:
        """
        Register the caller as a reporter. Reporters start unauthorized.

        Raises:
            InvalidStakeError: Zero stake or caller already registered
        """
        if not caller:
            raise UnauthorizedError("Caller identity required")
        if isinstance(stake_amount, bool) or not isinstance(stake_amount, int) or stake_amount <= 0:
            raise InvalidStakeError("Stake amount must be positive", details={"stake": stake_amount})

        reporter = OracleReporter(address=caller.lower(), stake_amount=stake_amount)
        self.registry.add_reporter(reporter)

        logger.info(
            "Reporter registered",
            extra={
                "event": "oracle.reporter_registered",
                "reporter": caller[:10],
                "stake": stake_amount,
                "timestamp": now,
            },
        )
        return replace(reporter)

    def authorize_reporter(self, caller: str, address: str) -> None:
        """Allow a registered reporter to count toward quorum. Admin only."""
        self._set_reporter_authorization(caller, address, True)

    def revoke_reporter(self, caller: str, address: str) -> None:
        """Stop a reporter from submitting. Admin only."""
        self._set_reporter_authorization(caller, address, False)

    def _set_reporter_authorization(self, caller: str, address: str, authorized: bool) -> None:
        self.access_control.require_admin(caller)
        reporter = self.registry.find_reporter(address)
        if reporter is None:
            raise NotFoundError(f"Reporter {address} not registered")
        self.registry.update_reporter(reporter.address, is_authorized=authorized)

        logger.info(
            "Reporter authorization changed",
            extra={
                "event": "oracle.reporter_authorized" if authorized else "oracle.reporter_revoked",
                "reporter": address[:10],
                "admin": caller[:10],
            },
        )

    # ==================== Pair Management ====================

    def add_pair(self, caller: str, pair_id: str) -> PriceFeed:
        """Create a feed, breaker and history ledger for a pair. Admin only."""
        self.access_control.require_admin(caller)
        if not pair_id:
            raise InvalidConfigurationError("Pair identifier required")

        with self._lock:
            settings = replace(self.settings)
        state = self.registry.create_pair(
            pair_id,
            history_capacity=settings.history_capacity,
            twap_window=settings.twap_window,
            reset_threshold_bps=settings.reset_threshold_bps,
        )
        get_dex_metrics().circuit_breaker_active.labels(pair=pair_id).set(0)

        logger.info(
            "Oracle pair added",
            extra={"event": "oracle.pair_added", "pair": pair_id, "admin": caller[:10]},
        )
        return replace(state.feed)

    # ==================== Submissions ====================

    def submit_price(
        self,
        caller: str,
        pair_id: str,
        price: int,
        confidence: int,
        timestamp: int,
        now: int | None = None,
    ) -> SubmissionResult:
        """
        Buffer a reporter observation and aggregate once quorum is reached.

        While the pair's breaker is tripped, observations outside the reset
        band around the last normal price are excluded from the round
        (returned with accepted=False) rather than rejected.

        Args:
            caller: Reporter address
            pair_id: Trading pair
            price: Observed price (fixed-point)
            confidence: Reporter confidence, 0-100
            timestamp: Observation time
            now: Current time for staleness checks (defaults to timestamp)

        Raises:
            ProtocolPausedError: Submissions are paused
            UnauthorizedError: Caller is not an authorized reporter
            InvalidConfidenceError: Confidence outside [0, 100]
            InvalidAmountError: Zero price
            NotFoundError: Unknown pair
            InsufficientDataSourcesError: Quorum reached but too few fresh submissions
        """
        if self.paused:
            raise ProtocolPausedError("Price submissions are paused")

        reporter = self.registry.find_reporter(caller or "")
        if reporter is None or not reporter.is_authorized:
            # Unknown pair names are caller-controlled; keep them out of label values
            label = pair_id if self.registry.find_pair(pair_id) is not None else "unknown"
            get_dex_metrics().price_submissions.labels(pair=label, status="unauthorized").inc()
            raise UnauthorizedError(
                "Caller is not an authorized reporter", details={"caller": caller}
            )

        if isinstance(confidence, bool) or not isinstance(confidence, int) or not 0 <= confidence <= MAX_CONFIDENCE:
            raise InvalidConfidenceError(
                f"Confidence must be in [0, {MAX_CONFIDENCE}]", details={"confidence": confidence}
            )
        SafeMath.require_amount(price, "price")
        SafeMath.require_amount(timestamp, "timestamp", allow_zero=True)
        now = timestamp if now is None else now

        state = self.registry.get_pair(pair_id)
        submission = PriceSubmission(
            price=price,
            confidence=confidence,
            timestamp=timestamp,
            reporter_id=reporter.address,
        )

        with self._lock:
            settings = replace(self.settings)

        events: list[ProtocolEvent] = []
        with state.lock:
            if not state.breaker.admits_submission(price):
                get_dex_metrics().price_submissions.labels(pair=pair_id, status="excluded").inc()
                logger.info(
                    "Submission excluded while circuit breaker is tripped",
                    extra={
                        "event": "oracle.submission_excluded",
                        "pair": pair_id,
                        "reporter": reporter.address[:10],
                        "deviation_bps": state.breaker.deviation_from_normal(price),
                    },
                )
                return SubmissionResult(
                    accepted=False, buffered=len(state.pending), reason="circuit_breaker"
                )

            candidate = dict(state.pending)
            candidate[reporter.address] = submission

            if len(candidate) < settings.min_sources:
                state.pending = candidate
                self.registry.record_submission(reporter.address, timestamp)
                get_dex_metrics().price_submissions.labels(pair=pair_id, status="buffered").inc()
                return SubmissionResult(accepted=True, buffered=len(candidate))

            # Raises before anything is committed
            aggregated = self._aggregate(candidate.values(), now, settings)

            self.registry.record_submission(reporter.address, timestamp)
            get_dex_metrics().price_submissions.labels(pair=pair_id, status="buffered").inc()
            result = self._complete_round(state, aggregated, now, settings, events)

        for event in events:
            self.event_bus.emit(event)
        return result

    # ==================== Aggregation ====================

    @staticmethod
    def _aggregate(submissions, now: int, settings: OracleSettings) -> AggregatedPrice:
        """
        Filter stale submissions and compute the confidence-weighted price.

            weighted = floor(sum(price_i * confidence_i) / 100)
            price = floor(weighted * 100 / sum(confidence_i))
            confidence = floor(sum(confidence_i) / n)
        """
        fresh = tuple(
            s for s in submissions if now - s.timestamp <= settings.stale_threshold
        )
        if len(fresh) < settings.min_sources:
            raise InsufficientDataSourcesError(
                "Not enough fresh price submissions",
                available=len(fresh),
                required=settings.min_sources,
            )

        total_confidence = sum(s.confidence for s in fresh)
        if total_confidence == 0:
            raise InsufficientDataSourcesError(
                "Fresh submissions carry no confidence weight",
                available=len(fresh),
                required=settings.min_sources,
            )

        weighted = sum(s.price * s.confidence for s in fresh) // 100
        price = weighted * 100 // total_confidence
        confidence = total_confidence // len(fresh)
        if price == 0:
            raise InsufficientDataSourcesError(
                "Aggregated price truncates to zero",
                available=len(fresh),
                required=settings.min_sources,
            )

        return AggregatedPrice(
            price=price,
            confidence=confidence,
            source_count=len(fresh),
            submissions=fresh,
        )

    def _complete_round(
        self,
        state: PairState,
        aggregated: AggregatedPrice,
        now: int,
        settings: OracleSettings,
        events: list[ProtocolEvent],
    ) -> SubmissionResult:
        """Publish the aggregated price or trip the breaker. Caller holds state.lock."""
        feed = state.feed
        breaker = state.breaker
        old_price = feed.current_price
        deviation = deviation_bps(aggregated.price, old_price)
        metrics = get_dex_metrics()

        # The round is over either way
        state.pending = {}

        if settings.breaker_enabled and breaker.should_trip(deviation, settings.trip_threshold_bps):
            breaker.trip(aggregated.price, old_price, deviation, now)
            metrics.circuit_breaker_triggers.labels(pair=state.pair_id, reason="price_deviation").inc()
            metrics.circuit_breaker_active.labels(pair=state.pair_id).set(1)
            events.append(
                CircuitBreakerTriggered(
                    pair=state.pair_id,
                    trigger_price=aggregated.price,
                    previous_price=old_price,
                    deviation=deviation,
                    timestamp=now,
                )
            )
            return SubmissionResult(
                accepted=True,
                round_completed=True,
                tripped=True,
                price=aggregated.price,
                reason="price_deviation",
            )

        feed.current_price = aggregated.price
        feed.confidence = aggregated.confidence
        feed.last_update_time = now
        feed.source_count = aggregated.source_count
        feed.volume_weighted_price = aggregated.price
        feed.is_active = True
        state.history.record_price(
            aggregated.price,
            now,
            previous_price=old_price,
            volume=aggregated.source_count,
            weighted_price=aggregated.price,
        )
        feed.twap = state.history.get_twap(settings.twap_window)

        if breaker.record_normal(aggregated.price, now):
            metrics.circuit_breaker_active.labels(pair=state.pair_id).set(0)

        self._score_reporters(aggregated, settings)

        metrics.price_updates.labels(pair=state.pair_id).inc()
        metrics.oracle_price.labels(pair=state.pair_id).set(aggregated.price)
        metrics.twap_price.labels(pair=state.pair_id).set(feed.twap)
        events.append(
            PriceUpdated(
                pair=state.pair_id,
                new_price=aggregated.price,
                old_price=old_price,
                confidence=aggregated.confidence,
                source_count=aggregated.source_count,
                deviation=deviation,
                timestamp=now,
            )
        )
        logger.info(
            "Price published",
            extra={
                "event": "oracle.price_published",
                "pair": state.pair_id,
                "price": aggregated.price,
                "confidence": aggregated.confidence,
                "sources": aggregated.source_count,
                "deviation_bps": deviation,
            },
        )
        return SubmissionResult(
            accepted=True,
            round_completed=True,
            published=True,
            price=aggregated.price,
        )

    def _score_reporters(self, aggregated: AggregatedPrice, settings: OracleSettings) -> None:
        """Credit reporters whose submission landed near the published price."""
        for submission in aggregated.submissions:
            self.registry.record_accuracy(
                submission.reporter_id,
                deviation_bps(submission.price, aggregated.price) <= settings.accuracy_threshold_bps,
            )

    # ==================== Reads ====================

    def get_price(self, pair_id: str) -> PriceFeed:
        """Current feed snapshot; an all-zero inactive feed for an unknown pair."""
        state = self.registry.find_pair(pair_id)
        if state is None:
            return PriceFeed(pair_id=pair_id)
        with state.lock:
            return replace(state.feed)

    def get_twap(self, pair_id: str) -> int:
        state = self.registry.find_pair(pair_id)
        if state is None:
            return 0
        with state.lock:
            return state.feed.twap

    def is_healthy(self, pair_id: str, now: int) -> bool:
        """Fresh, confident and not tripped."""
        state = self.registry.find_pair(pair_id)
        if state is None:
            return False
        with self._lock:
            settings = replace(self.settings)
        with state.lock:
            return self._health_problem(state, now, settings) is None

    def require_price(self, pair_id: str, now: int) -> PriceFeed:
        """
        Return the feed only if it can be trusted right now.

        Raises:
            NotFoundError: Unknown pair
            CircuitBreakerActiveError: Breaker tripped
            StalePriceError: No price yet, stale, or under-confident
        """
        state = self.registry.get_pair(pair_id)
        with self._lock:
            settings = replace(self.settings)
        with state.lock:
            problem = self._health_problem(state, now, settings)
            if problem == "circuit_breaker":
                raise CircuitBreakerActiveError(
                    f"Circuit breaker active for {pair_id}",
                    details=state.breaker.snapshot(),
                )
            if problem is not None:
                raise StalePriceError(
                    f"No trusted price for {pair_id}: {problem}",
                    details={
                        "last_update_time": state.feed.last_update_time,
                        "confidence": state.feed.confidence,
                        "now": now,
                    },
                )
            return replace(state.feed)

    @staticmethod
    def _health_problem(state: PairState, now: int, settings: OracleSettings) -> str | None:
        feed = state.feed
        if state.breaker.is_triggered:
            return "circuit_breaker"
        if not feed.is_active or feed.last_update_time == 0:
            return "no_price"
        if now - feed.last_update_time > settings.stale_threshold:
            return "stale"
        if feed.confidence < settings.confidence_threshold:
            return "low_confidence"
        return None

    def get_reporter_reputation(self, address: str) -> int:
        reporter = self.registry.find_reporter(address)
        return reporter.reputation_score if reporter else 0

    def get_reporter(self, address: str) -> OracleReporter | None:
        reporter = self.registry.find_reporter(address)
        return replace(reporter) if reporter else None

    def get_price_history(self, pair_id: str, limit: int = 24) -> list[PriceBucket]:
        state = self.registry.get_pair(pair_id)
        with state.lock:
            return state.history.recent(limit)

    def get_breaker_status(self, pair_id: str) -> dict:
        state = self.registry.get_pair(pair_id)
        with state.lock:
            return state.breaker.snapshot()

    def pending_count(self, pair_id: str) -> int:
        state = self.registry.get_pair(pair_id)
        with state.lock:
            return len(state.pending)

    # ==================== Admin ====================

    def update_settings(
        self,
        caller: str,
        min_sources: int | None = None,
        confidence_threshold: int | None = None,
        deviation_threshold: int | None = None,
    ) -> OracleSettings:
        """
        Update oracle settings. Admin only; omitted fields are unchanged.

        Raises:
            InvalidConfigurationError: A value is out of range; nothing is stored
        """
        self.access_control.require_admin(caller)
        try:
            update = OracleSettingsUpdate(
                min_sources=min_sources,
                confidence_threshold=confidence_threshold,
                deviation_threshold=deviation_threshold,
            )
        except SchemaValidationError as exc:
            raise InvalidConfigurationError(
                "Invalid oracle settings",
                details={"errors": [err["loc"] for err in exc.errors()]},
            ) from exc

        with self._lock:
            if update.min_sources is not None:
                self.settings.min_sources = update.min_sources
            if update.confidence_threshold is not None:
                self.settings.confidence_threshold = update.confidence_threshold
            if update.deviation_threshold is not None:
                self.settings.trip_threshold_bps = update.deviation_threshold
            snapshot = replace(self.settings)

        logger.info(
            "Oracle settings updated",
            extra={
                "event": "oracle.settings_updated",
                "admin": caller[:10],
                "min_sources": snapshot.min_sources,
                "confidence_threshold": snapshot.confidence_threshold,
                "trip_threshold_bps": snapshot.trip_threshold_bps,
            },
        )
        return snapshot

    def reset_circuit_breaker(self, caller: str, pair_id: str, now: int = 0) -> None:
        """Force a pair's breaker back to NORMAL. Admin only."""
        self.access_control.require_admin(caller)
        state = self.registry.get_pair(pair_id)
        with state.lock:
            state.breaker.reset(caller, now)
        get_dex_metrics().circuit_breaker_active.labels(pair=pair_id).set(0)

    def set_pause(self, caller: str, paused: bool) -> None:
        """Halt or resume all price submissions. Admin only."""
        self.access_control.require_admin(caller)
        with self._lock:
            self.paused = bool(paused)

        logger.warning(
            "Oracle submissions %s",
            "paused" if paused else "resumed",
            extra={"event": "oracle.paused" if paused else "oracle.unpaused", "admin": caller[:10]},
        )

from defi_core.core.defi.circuit_breaker import BreakerStatus, PriceCircuitBreaker


def make_breaker(**kwargs) -> PriceCircuitBreaker:
    breaker = PriceCircuitBreaker(pair_id="IOTA/USD", reset_deviation_threshold_bps=1000, **kwargs)
    breaker.record_normal(100, timestamp=1)
    return breaker


def test_should_trip_is_strictly_greater():
    breaker = make_breaker()
    assert breaker.should_trip(2001, 2000) is True
    assert breaker.should_trip(2000, 2000) is False


def test_disabled_breaker_never_trips():
    breaker = make_breaker(enabled=False)
    assert breaker.should_trip(9999, 2000) is False


def test_trip_and_admission_band():
    breaker = make_breaker()
    assert breaker.admits_submission(1_000) is True

    breaker.trip(125, previous_price=100, deviation=2500, timestamp=10)

    assert breaker.status == BreakerStatus.TRIPPED
    assert breaker.trigger_price == 125
    assert breaker.trigger_timestamp == 10
    assert breaker.consecutive_anomalies == 1
    assert breaker.admits_submission(104) is True
    assert breaker.admits_submission(110) is True
    assert breaker.admits_submission(111) is False
    assert breaker.admits_submission(125) is False


def test_normal_publication_recovers():
    breaker = make_breaker()
    breaker.trip(125, 100, 2500, 10)
    breaker.trip(130, 100, 3000, 11)
    assert breaker.consecutive_anomalies == 2

    assert breaker.record_normal(104, timestamp=20) is True
    assert breaker.status == BreakerStatus.NORMAL
    assert breaker.consecutive_anomalies == 0
    assert breaker.last_normal_price == 104
    assert breaker.record_normal(105, timestamp=21) is False


def test_manual_reset_records_actor():
    breaker = make_breaker()
    breaker.trip(125, 100, 2500, 10)
    breaker.reset("0xadmin", timestamp=15)

    assert not breaker.is_triggered
    events = breaker.get_recent_events()
    assert [e["type"] for e in events] == ["triggered", "manual_reset"]
    assert events[-1]["actor"] == "0xadmin"


def test_event_history_is_bounded():
    breaker = make_breaker(max_events=3)
    for i in range(5):
        breaker.trip(200 + i, 100, 10_000, i)
    assert len(breaker.events) == 3
    assert breaker.events[-1].details["trigger_price"] == 204


def test_snapshot():
    breaker = make_breaker()
    breaker.trip(125, 100, 2500, 10)
    snap = breaker.snapshot()
    assert snap["status"] == "tripped"
    assert snap["last_normal_price"] == 100
    assert snap["reset_deviation_threshold_bps"] == 1000

from prometheus_client import CollectorRegistry

from defi_core.core.api.dex_metrics import DEXMetrics, get_dex_metrics


def test_metrics_register_on_custom_registry():
    registry = CollectorRegistry()
    metrics = DEXMetrics(registry=registry)

    metrics.swaps_total.labels(pool="IOTA/USD", token_in="IOTA", token_out="USD", status="success").inc()
    metrics.circuit_breaker_active.labels(pair="IOTA/USD").set(1)
    metrics.price_submissions.labels(pair="IOTA/USD", status="buffered").inc(2)

    assert registry.get_sample_value(
        "defi_dex_swaps_total",
        {"pool": "IOTA/USD", "token_in": "IOTA", "token_out": "USD", "status": "success"},
    ) == 1.0
    assert registry.get_sample_value("defi_oracle_circuit_breaker_active", {"pair": "IOTA/USD"}) == 1.0
    assert registry.get_sample_value(
        "defi_oracle_price_submissions_total", {"pair": "IOTA/USD", "status": "buffered"}
    ) == 2.0


def test_singleton():
    assert get_dex_metrics() is get_dex_metrics()


def test_pool_activity_updates_gauges(pool):
    metrics = get_dex_metrics()
    pool.swap_exact_input(10_000)

    assert metrics.pool_reserves.labels(pool="IOTA/USD", denom="IOTA")._value.get() == 1_010_000
    assert metrics.lp_token_supply.labels(pool="IOTA/USD")._value.get() == 1_000_000

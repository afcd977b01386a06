"""
DEX and Oracle Metrics

Prometheus metrics for swap operations, liquidity management, flash loans,
and price feed health.
"""

from prometheus_client import REGISTRY, Counter, Gauge, Histogram


class DEXMetrics:
    """Metrics for reserve pools and the price oracle."""

    def __init__(self, registry=None):
        self.registry = registry or REGISTRY

        # Swap metrics
        self.swaps_total = Counter(
            'defi_dex_swaps_total',
            'Total number of swaps executed',
            ['pool', 'token_in', 'token_out', 'status'],
            registry=self.registry
        )

        self.swap_volume = Counter(
            'defi_dex_swap_volume_total',
            'Total swap volume in base units',
            ['pool', 'denom'],
            registry=self.registry
        )

        self.swap_fees_collected = Counter(
            'defi_dex_swap_fees_collected_total',
            'Total swap fees collected',
            ['pool', 'denom'],
            registry=self.registry
        )

        self.price_impact = Histogram(
            'defi_dex_price_impact_bps',
            'Price impact of swaps in basis points',
            buckets=[1, 10, 50, 100, 200, 500, 1000, 2000],
            registry=self.registry
        )

        # Liquidity metrics
        self.liquidity_added = Counter(
            'defi_dex_liquidity_added_total',
            'Total liquidity added to pools',
            ['pool', 'denom'],
            registry=self.registry
        )

        self.liquidity_removed = Counter(
            'defi_dex_liquidity_removed_total',
            'Total liquidity removed from pools',
            ['pool', 'denom'],
            registry=self.registry
        )

        self.pool_reserves = Gauge(
            'defi_dex_pool_reserves',
            'Current pool reserves',
            ['pool', 'denom'],
            registry=self.registry
        )

        self.lp_token_supply = Gauge(
            'defi_dex_lp_token_supply',
            'LP token supply per pool',
            ['pool'],
            registry=self.registry
        )

        self.pools_total = Gauge(
            'defi_dex_pools_total',
            'Total number of liquidity pools',
            registry=self.registry
        )

        self.pool_fee_tier = Gauge(
            'defi_dex_pool_fee_tier',
            'Pool fee tier in basis points',
            ['pool'],
            registry=self.registry
        )

        # Flash loan metrics
        self.flash_loans_total = Counter(
            'defi_dex_flash_loans_total',
            'Flash loans by outcome',
            ['pool', 'status'],
            registry=self.registry
        )

        self.flash_loan_fees = Counter(
            'defi_dex_flash_loan_fees_total',
            'Flash loan fees collected',
            ['pool', 'denom'],
            registry=self.registry
        )

        # Oracle metrics
        self.price_submissions = Counter(
            'defi_oracle_price_submissions_total',
            'Reporter price submissions',
            ['pair', 'status'],
            registry=self.registry
        )

        self.price_updates = Counter(
            'defi_oracle_price_updates_total',
            'Published aggregated prices',
            ['pair'],
            registry=self.registry
        )

        self.oracle_price = Gauge(
            'defi_oracle_price',
            'Current published price',
            ['pair'],
            registry=self.registry
        )

        self.circuit_breaker_active = Gauge(
            'defi_oracle_circuit_breaker_active',
            'Circuit breaker activation status (0=inactive, 1=active)',
            ['pair'],
            registry=self.registry
        )

        self.circuit_breaker_triggers = Counter(
            'defi_oracle_circuit_breaker_triggers_total',
            'Circuit breaker trigger events',
            ['pair', 'reason'],
            registry=self.registry
        )

        self.twap_price = Gauge(
            'defi_oracle_twap_price',
            'Time-weighted average price',
            ['pair'],
            registry=self.registry
        )


# Singleton instance
_dex_metrics_instance = None


def get_dex_metrics(registry=None):
    """Get or create singleton DEX metrics instance."""
    global _dex_metrics_instance
    if _dex_metrics_instance is None:
        _dex_metrics_instance = DEXMetrics(registry=registry)
    return _dex_metrics_instance


def track_swap(pool_id, token_in, token_out, volume, fee, impact_bps, status='success'):
    """Track swap execution with automatic metric updates."""
    metrics = get_dex_metrics()

    metrics.swaps_total.labels(
        pool=pool_id,
        token_in=token_in,
        token_out=token_out,
        status=status
    ).inc()

    if status == 'success':
        metrics.swap_volume.labels(pool=pool_id, denom=token_in).inc(volume)
        metrics.swap_fees_collected.labels(pool=pool_id, denom=token_in).inc(fee)
        metrics.price_impact.observe(impact_bps)


def track_liquidity_change(pool_id, denom, amount, operation='add'):
    """Track liquidity additions/removals."""
    metrics = get_dex_metrics()

    if operation == 'add':
        metrics.liquidity_added.labels(pool=pool_id, denom=denom).inc(amount)
    elif operation == 'remove':
        metrics.liquidity_removed.labels(pool=pool_id, denom=denom).inc(amount)


def track_pool_state(pool_id, token_a, token_b, reserve_a, reserve_b, lp_supply):
    """Refresh reserve and LP supply gauges for a pool."""
    metrics = get_dex_metrics()
    metrics.pool_reserves.labels(pool=pool_id, denom=token_a).set(reserve_a)
    metrics.pool_reserves.labels(pool=pool_id, denom=token_b).set(reserve_b)
    metrics.lp_token_supply.labels(pool=pool_id).set(lp_supply)

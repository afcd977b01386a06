import sys
from pathlib import Path

import pytest

# Ensure src and the shared helpers are importable before collection runs.
project_root = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(project_root / "src"))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from defi_core.core.defi.events import EventBus
from defi_core.core.defi.liquidity_pools import PoolRepository, ReservePool
from defi_test_helpers import T0, make_oracle


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def pool(event_bus):
    """1M/1M constant product pool with a 0.3% fee, seeded by alice."""
    pool = ReservePool("IOTA/USD", "IOTA", "USD", fee_rate_bps=30, event_bus=event_bus)
    pool.add_liquidity("alice", 1_000_000, 1_000_000, now=T0)
    return pool


@pytest.fixture
def repository(event_bus):
    return PoolRepository(event_bus=event_bus)


@pytest.fixture
def oracle():
    return make_oracle()

"""Pytest configuration and shared snapshot fixtures."""

from __future__ import annotations

import math
from typing import Any, Iterator

import pytest

from signal_engine.snapshot import PriceSnapshot


# =============================================================================
# Helpers
# =============================================================================


def iter_floats(value: Any) -> Iterator[float]:
    """Yield every float inside nested dicts and lists."""
    if isinstance(value, float):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_floats(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_floats(item)


def all_finite(value: Any) -> bool:
    return all(math.isfinite(v) for v in iter_floats(value))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def crash_snapshot() -> PriceSnapshot:
    """20% drop inside a 49k-51k range with volume 4x the baseline turnover."""
    return PriceSnapshot(
        symbol="BTC", price=50000, volume_24h=2e11, market_cap=1e12,
        change_24h=-20, high_24h=51000, low_24h=49000,
    )


@pytest.fixture
def neutral_snapshot() -> PriceSnapshot:
    """Flat day mid-range with a known all-time range."""
    return PriceSnapshot(
        symbol="BTC", price=50000, volume_24h=3e10, market_cap=1e12,
        change_24h=0, high_24h=51000, low_24h=49000, ath=69000, atl=3000,
    )


@pytest.fixture
def overextended_snapshot() -> PriceSnapshot:
    """Price far above a 49k-51k range."""
    return PriceSnapshot(
        symbol="BTC", price=60000, volume_24h=3e10, market_cap=1e12,
        change_24h=0, high_24h=51000, low_24h=49000,
    )


@pytest.fixture
def capitulation_snapshot() -> PriceSnapshot:
    """Every crash condition true: -30%, huge range, 10x volume."""
    return PriceSnapshot(
        symbol="LUNA", price=50000, volume_24h=5e11, market_cap=1e12,
        change_24h=-30, high_24h=80000, low_24h=30000,
    )


@pytest.fixture
def rally_snapshot() -> PriceSnapshot:
    """+10% day inside a normal-width range."""
    return PriceSnapshot(
        symbol="ETH", price=50500, volume_24h=5e10, market_cap=1e12,
        change_24h=10, high_24h=51000, low_24h=49000,
    )


@pytest.fixture
def quiet_snapshot() -> PriceSnapshot:
    """Very tight range and baseline volume."""
    return PriceSnapshot(
        symbol="XRP", price=50000, volume_24h=5e10, market_cap=1e12,
        change_24h=0, high_24h=50100, low_24h=49900,
    )


@pytest.fixture
def near_atl_snapshot() -> PriceSnapshot:
    """Rising asset just above its all-time low with doubled volume."""
    return PriceSnapshot(
        symbol="ADA", price=4000, volume_24h=1e10, market_cap=1e11,
        change_24h=5, high_24h=4100, low_24h=3900, ath=69000, atl=3000,
    )


@pytest.fixture
def flat_snapshot() -> PriceSnapshot:
    """high == low == price."""
    return PriceSnapshot(
        symbol="FLAT", price=100, volume_24h=1e6, market_cap=1e8,
        change_24h=0, high_24h=100, low_24h=100,
    )


@pytest.fixture
def stablecoin_snapshot() -> PriceSnapshot:
    return PriceSnapshot(
        symbol="USDT", price=1.0, volume_24h=4.5e10, market_cap=8.3e10,
        change_24h=0.01, high_24h=1.001, low_24h=0.999,
    )


@pytest.fixture
def sample_snapshots(crash_snapshot, neutral_snapshot, overextended_snapshot,
                     capitulation_snapshot, rally_snapshot, quiet_snapshot,
                     near_atl_snapshot, flat_snapshot, stablecoin_snapshot):
    """A varied batch covering every regime family."""
    return [crash_snapshot, neutral_snapshot, overextended_snapshot,
            capitulation_snapshot, rally_snapshot, quiet_snapshot,
            near_atl_snapshot, flat_snapshot, stablecoin_snapshot]

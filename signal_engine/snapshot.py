"""
Market Snapshot Model
=====================

The pipeline consumes a single point-in-time observation per asset. This
module defines that observation, validates it at the boundary, and
synthesizes the short pseudo-series that the period-based indicators run on.

DERIVED SERIES
--------------
A snapshot has no history, so the series are degenerate by construction:

    closes  = [low, price, high]   when both high and low are known
              [price]               otherwise
    highs   = [high] * 3            or [price]
    lows    = [low] * 3             or [price]
    volumes = [baseline, volume]

The volume baseline is the previous 24h volume when supplied, otherwise a
typical daily turnover of the market cap, otherwise the volume itself.

Indicators computed on these series (MACD, ADX, ATR) carry much less
information than on real history. They are still well defined because
every formula accepts input shorter than its lookback.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .config import ENTRY_PLAN, SNAPSHOT

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SnapshotValidationError(ValueError):
    """Raised when a raw record cannot be turned into a PriceSnapshot."""


# Accepted spellings for each field
_FIELD_ALIASES: Dict[str, tuple] = {
    "symbol": ("symbol", "ticker"),
    "price": ("price", "current_price", "currentPrice"),
    "volume_24h": ("volume_24h", "volume24h", "total_volume", "totalVolume"),
    "market_cap": ("market_cap", "marketCap"),
    "change_24h": ("change_24h", "change24h", "price_change_percentage_24h",
                   "priceChangePercentage24h"),
    "high_24h": ("high_24h", "high24h"),
    "low_24h": ("low_24h", "low24h"),
    "timestamp": ("timestamp",),
    "ath": ("ath",),
    "atl": ("atl",),
    "ath_change_percentage": ("ath_change_percentage", "athChangePercentage"),
    "atl_change_percentage": ("atl_change_percentage", "atlChangePercentage"),
    "previous_volume_24h": ("previous_volume_24h", "previousVolume24h"),
}

_REQUIRED = ("symbol", "price", "volume_24h", "market_cap", "change_24h")


def _lookup(raw: Mapping[str, Any], name: str) -> Any:
    for key in _FIELD_ALIASES[name]:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _to_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise SnapshotValidationError(f"{name} must be numeric, got bool")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise SnapshotValidationError(f"{name} must be numeric, got {value!r}") from None
    if not math.isfinite(result):
        raise SnapshotValidationError(f"{name} must be finite, got {value!r}")
    return result


def _to_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000.0 if value > 1e11 else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise SnapshotValidationError(f"timestamp is not ISO-8601: {value!r}") from None
    raise SnapshotValidationError(f"unsupported timestamp: {value!r}")


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class PriceSnapshot:
    """Point-in-time market observation for one asset."""
    symbol: str
    price: float
    volume_24h: float
    market_cap: float
    change_24h: float                           # Percent, e.g. -3.2
    high_24h: Optional[float] = None
    low_24h: Optional[float] = None
    timestamp: datetime = EPOCH
    ath: Optional[float] = None
    atl: Optional[float] = None
    ath_change_percentage: Optional[float] = None
    atl_change_percentage: Optional[float] = None
    previous_volume_24h: Optional[float] = None

    @property
    def has_range(self) -> bool:
        """True when both 24h extremes are known."""
        return self.high_24h is not None and self.low_24h is not None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> 'PriceSnapshot':
        """
        Build a snapshot from a raw mapping.

        Accepts snake_case and camelCase keys. Raises SnapshotValidationError
        for missing or malformed required fields and for negative prices.
        """
        if not isinstance(raw, Mapping):
            raise SnapshotValidationError(f"expected a mapping, got {type(raw).__name__}")

        missing = [name for name in _REQUIRED if _lookup(raw, name) is None]
        if missing:
            raise SnapshotValidationError(f"missing required field(s): {', '.join(missing)}")

        symbol = str(_lookup(raw, "symbol")).strip()
        if not symbol:
            raise SnapshotValidationError("symbol must be a non-empty string")

        values: Dict[str, Any] = {"symbol": symbol}
        for name in _REQUIRED[1:]:
            values[name] = _to_float(name, _lookup(raw, name))

        for name in ("high_24h", "low_24h", "ath", "atl", "ath_change_percentage",
                     "atl_change_percentage", "previous_volume_24h"):
            value = _lookup(raw, name)
            if value is not None:
                values[name] = _to_float(name, value)

        for name in ("price", "high_24h", "low_24h", "ath", "atl"):
            if values.get(name) is not None and values[name] < 0:
                raise SnapshotValidationError(f"{name} must be non-negative, got {values[name]}")

        stamp = _lookup(raw, "timestamp")
        if stamp is not None:
            values["timestamp"] = _to_timestamp(stamp)

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "volume_24h": self.volume_24h,
            "market_cap": self.market_cap,
            "change_24h": self.change_24h,
            "high_24h": self.high_24h,
            "low_24h": self.low_24h,
            "timestamp": self.timestamp.isoformat(),
            "ath": self.ath,
            "atl": self.atl,
            "ath_change_percentage": self.ath_change_percentage,
            "atl_change_percentage": self.atl_change_percentage,
            "previous_volume_24h": self.previous_volume_24h,
        }


@dataclass(frozen=True)
class DerivedSeries:
    """Pseudo price/volume series synthesized from one snapshot."""
    closes: List[float] = field(default_factory=list)
    highs: List[float] = field(default_factory=list)
    lows: List[float] = field(default_factory=list)
    volumes: List[float] = field(default_factory=list)


def volume_baseline(snapshot: PriceSnapshot) -> float:
    """Reference volume the current 24h volume is compared against."""
    if snapshot.previous_volume_24h is not None and snapshot.previous_volume_24h > 0:
        return snapshot.previous_volume_24h
    if snapshot.market_cap > 0:
        return snapshot.market_cap * SNAPSHOT.typical_daily_turnover
    return snapshot.volume_24h


def derive_series(snapshot: PriceSnapshot) -> DerivedSeries:
    """Synthesize the degenerate series used by period-based indicators."""
    price = snapshot.price
    high = snapshot.high_24h
    low = snapshot.low_24h

    closes = [low, price, high] if snapshot.has_range else [price]
    highs = [high] * 3 if high is not None else [price]
    lows = [low] * 3 if low is not None else [price]
    volumes = [volume_baseline(snapshot), snapshot.volume_24h]

    return DerivedSeries(closes=closes, highs=highs, lows=lows, volumes=volumes)


# =============================================================================
# TRADEABILITY
# =============================================================================

def is_stablecoin(symbol: str) -> bool:
    """True for USD-pegged assets (with or without a trailing USD quote)."""
    upper = symbol.upper()
    stripped = upper[:-3] if upper.endswith("USD") and len(upper) > 3 else upper
    return upper in ENTRY_PLAN.stablecoins or stripped in ENTRY_PLAN.stablecoins


def is_tradeable(snapshot: PriceSnapshot, natr: float) -> bool:
    """Exclude stablecoins and assets with too little volatility or volume."""
    if is_stablecoin(snapshot.symbol):
        return False
    return natr >= ENTRY_PLAN.min_natr and snapshot.volume_24h >= ENTRY_PLAN.min_volume

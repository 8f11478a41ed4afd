"""
Market Regime Detection
=======================

Deterministic, rule-based classification of a snapshot into one of seven
market regimes. The regime decides which strategies run and sets the base
risk level.

POLICIES
--------
Rules are evaluated top to bottom and the first match wins. Two named
policies are available; BOLLINGER is the default.

    BOLLINGER
        1. natr > 10 or bandwidth > 0.30        HIGH_VOLATILITY
        2. bandwidth < 0.10                     LOW_VOLATILITY
        3. %B > 0.90 or %B < 0.10               MEAN_REVERSION
        4. |RSI - 50| > 20                      BULL / BEAR / TRENDING
        5. otherwise                            SIDEWAYS

    ADX_ATR
        1. natr > 10                            HIGH_VOLATILITY
        2. natr < 2                             LOW_VOLATILITY
        3. ADX > 40                             BULL / BEAR (|change| > 5) / TRENDING
        4. ADX < 20                             SIDEWAYS
        5. 40 < RSI < 60 and |change| < 3       MEAN_REVERSION
        6. otherwise                            TRENDING

Volatility rules always come first, so an extreme %B in a high-volatility
market is HIGH_VOLATILITY, never MEAN_REVERSION.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from .classifications import IndicatorResult
from .config import REGIME
from .indicators import IndicatorSet, compute_indicators
from .snapshot import PriceSnapshot
from .volatility import VolatilityIndicators

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class MarketRegime(Enum):
    """Market regime classification."""
    BULL_MARKET = "BULL_MARKET"
    BEAR_MARKET = "BEAR_MARKET"
    SIDEWAYS = "SIDEWAYS"
    HIGH_VOLATILITY = "HIGH_VOLATILITY"
    LOW_VOLATILITY = "LOW_VOLATILITY"
    MEAN_REVERSION = "MEAN_REVERSION"
    TRENDING = "TRENDING"


class RegimePolicy(Enum):
    """Named regime rule tables."""
    BOLLINGER = "BOLLINGER"         # Band width and %B driven (default)
    ADX_ATR = "ADX_ATR"             # Trend strength and ATR driven

    @classmethod
    def from_name(cls, name: str) -> 'RegimePolicy':
        """Case-insensitive lookup, e.g. ``"adx_atr"``."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            valid = ", ".join(p.name.lower() for p in cls)
            raise ValueError(f"unknown regime policy {name!r} (expected one of: {valid})") from None


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class RegimeInputs(IndicatorResult):
    """The values the rule table looked at."""
    rsi: float
    change_24h: float
    normalized_atr: float
    adx: float
    bandwidth: float
    percent_b: float


@dataclass(frozen=True)
class RegimeAssessment(IndicatorResult):
    """Regime label with the policy and inputs that produced it."""
    regime: MarketRegime
    policy: RegimePolicy
    inputs: RegimeInputs


# =============================================================================
# RULE TABLES
# =============================================================================

def _directional(rsi: float, change: float) -> MarketRegime:
    if rsi > 50 and change > 0:
        return MarketRegime.BULL_MARKET
    if rsi < 50 and change < 0:
        return MarketRegime.BEAR_MARKET
    return MarketRegime.TRENDING


def classify_bollinger(inputs: RegimeInputs) -> MarketRegime:
    """Band-driven regime table."""
    if inputs.normalized_atr > REGIME.high_vol_natr or inputs.bandwidth > REGIME.high_vol_bandwidth:
        return MarketRegime.HIGH_VOLATILITY
    if inputs.bandwidth < REGIME.low_vol_bandwidth:
        return MarketRegime.LOW_VOLATILITY
    if (inputs.percent_b > REGIME.extreme_percent_b_upper
            or inputs.percent_b < REGIME.extreme_percent_b_lower):
        return MarketRegime.MEAN_REVERSION
    if abs(inputs.rsi - 50) > REGIME.trend_rsi_distance:
        return _directional(inputs.rsi, inputs.change_24h)
    return MarketRegime.SIDEWAYS


def classify_adx_atr(inputs: RegimeInputs) -> MarketRegime:
    """Trend-strength-driven regime table."""
    if inputs.normalized_atr > REGIME.high_vol_natr:
        return MarketRegime.HIGH_VOLATILITY
    if inputs.normalized_atr < REGIME.low_vol_natr:
        return MarketRegime.LOW_VOLATILITY
    if inputs.adx > REGIME.strong_trend_adx:
        if inputs.change_24h > REGIME.directional_change:
            return MarketRegime.BULL_MARKET
        if inputs.change_24h < -REGIME.directional_change:
            return MarketRegime.BEAR_MARKET
        return MarketRegime.TRENDING
    if inputs.adx < REGIME.weak_trend_adx:
        return MarketRegime.SIDEWAYS
    if (REGIME.range_rsi_low < inputs.rsi < REGIME.range_rsi_high
            and abs(inputs.change_24h) < REGIME.range_change):
        return MarketRegime.MEAN_REVERSION
    return MarketRegime.TRENDING


_POLICIES: Dict[RegimePolicy, Callable[[RegimeInputs], MarketRegime]] = {
    RegimePolicy.BOLLINGER: classify_bollinger,
    RegimePolicy.ADX_ATR: classify_adx_atr,
}


# =============================================================================
# PUBLIC API
# =============================================================================

def detect_regime(
    snapshot: PriceSnapshot,
    indicators: Optional[IndicatorSet] = None,
    policy: RegimePolicy = RegimePolicy.BOLLINGER,
) -> RegimeAssessment:
    """
    Classify a snapshot into a market regime.

    Args:
        snapshot: Point-in-time observation
        indicators: Precomputed indicator set (computed when omitted)
        policy: Rule table to apply

    Returns:
        RegimeAssessment with the regime and the inputs used
    """
    indicators = indicators or compute_indicators(snapshot)
    bands = VolatilityIndicators.calculate_snapshot_bollinger(snapshot)

    inputs = RegimeInputs(
        rsi=indicators.rsi.value,
        change_24h=snapshot.change_24h,
        normalized_atr=indicators.atr.normalized,
        adx=indicators.adx.adx,
        bandwidth=bands.bandwidth,
        percent_b=bands.percent_b,
    )
    regime = _POLICIES[policy](inputs)

    logger.debug("%s regime=%s (policy=%s, natr=%.2f, bw=%.4f, %%b=%.4f, rsi=%.1f)",
                 snapshot.symbol, regime.value, policy.value, inputs.normalized_atr,
                 inputs.bandwidth, inputs.percent_b, inputs.rsi)
    return RegimeAssessment(regime=regime, policy=policy, inputs=inputs)

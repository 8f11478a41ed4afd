"""
Volume Analysis
===============

Volume confirms or contradicts price. This module measures how unusual the
current volume is (Volume ROC) and how it is distributed across price
moves (OBV, VWAP, MFI, Chaikin Money Flow, Accumulation/Distribution).
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from .classifications import IndicatorResult, Trend, Zone
from .config import INDICATORS
from .math_utils import round_to, safe_divide

warnings.filterwarnings('ignore', category=RuntimeWarning)

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class VolumeSignal(Enum):
    """Magnitude of a volume change."""
    SURGE = "SURGE"         # > 100%
    HIGH = "HIGH"           # > 50%
    NORMAL = "NORMAL"       # > 20%
    LOW = "LOW"


class VolumeActivity(Enum):
    UNUSUAL = "UNUSUAL"
    ELEVATED = "ELEVATED"
    NORMAL = "NORMAL"
    QUIET = "QUIET"


class VWAPPosition(Enum):
    ABOVE = "ABOVE"
    AT = "AT"
    BELOW = "BELOW"


class MoneyFlowSignal(Enum):
    STRONG_BUYING = "STRONG_BUYING"
    BUYING = "BUYING"
    NEUTRAL = "NEUTRAL"
    SELLING = "SELLING"
    STRONG_SELLING = "STRONG_SELLING"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class VolumeROCResult(IndicatorResult):
    value: float                    # Percent change
    signal: VolumeSignal
    activity: VolumeActivity


@dataclass(frozen=True)
class OBVResult(IndicatorResult):
    value: float
    trend: Trend
    momentum: float                 # % change versus the previous bar


@dataclass(frozen=True)
class VWAPResult(IndicatorResult):
    value: float
    position: VWAPPosition
    deviation: float                # % from VWAP


@dataclass(frozen=True)
class MFIResult(IndicatorResult):
    value: float                    # [0, 100]
    signal: Zone


@dataclass(frozen=True)
class ChaikinMoneyFlowResult(IndicatorResult):
    value: float                    # [-1, 1]
    signal: MoneyFlowSignal
    pressure: Trend


@dataclass(frozen=True)
class ADLineResult(IndicatorResult):
    value: float
    trend: Trend
    momentum: float


# =============================================================================
# HELPERS
# =============================================================================

def _money_flow_volume(highs: Sequence[float], lows: Sequence[float],
                       closes: Sequence[float],
                       volumes: Sequence[float]) -> Tuple[pd.Series, pd.Series]:
    """(money flow volume, volume) series; a zero-range bar has multiplier 0."""
    n = min(len(highs), len(lows), len(closes), len(volumes))
    high = pd.Series(highs[:n], dtype=float)
    low = pd.Series(lows[:n], dtype=float)
    close = pd.Series(closes[:n], dtype=float)
    volume = pd.Series(volumes[:n], dtype=float)

    range_hl = (high - low).replace(0, np.nan)
    mf_mult = (((close - low) - (high - close)) / range_hl).fillna(0.0)
    return mf_mult * volume, volume


def _cumulative_trend(series: List[float], lookback: int) -> Trend:
    if len(series) < 2:
        return Trend.NEUTRAL
    start = series[-lookback - 1] if len(series) > lookback else series[0]
    change = series[-1] - start
    if change > 0:
        return Trend.ACCUMULATION
    elif change < 0:
        return Trend.DISTRIBUTION
    return Trend.NEUTRAL


# =============================================================================
# VOLUME INDICATORS
# =============================================================================

class VolumeIndicators:
    """Volume-based indicator calculations."""

    @staticmethod
    def calculate_volume_roc(volumes: Sequence[float],
                             period: int = INDICATORS.volume_roc_period) -> VolumeROCResult:
        """
        Volume Rate of Change.

        Compares the latest volume with the one ``period`` bars earlier (or the
        first available). A zero baseline gives 0.

        Parameters
        ----------
        volumes : Sequence[float]
            Volume series, oldest first
        period : int
            Lookback (default: 14)

        Returns
        -------
        VolumeROCResult
            Percent change rounded to 2 decimals with signal and activity
        """
        if not volumes:
            return VolumeROCResult(0.0, VolumeSignal.LOW, VolumeActivity.QUIET)

        current = volumes[-1]
        past = volumes[-1 - period] if len(volumes) > period else volumes[0]
        value = safe_divide(current - past, past) * 100.0
        magnitude = abs(value)

        if magnitude > 100:
            signal = VolumeSignal.SURGE
        elif magnitude > 50:
            signal = VolumeSignal.HIGH
        elif magnitude > 20:
            signal = VolumeSignal.NORMAL
        else:
            signal = VolumeSignal.LOW

        if value > 100:
            activity = VolumeActivity.UNUSUAL
        elif value > 50:
            activity = VolumeActivity.ELEVATED
        elif value > 10:
            activity = VolumeActivity.NORMAL
        else:
            activity = VolumeActivity.QUIET

        return VolumeROCResult(round_to(value, 2), signal, activity)

    @staticmethod
    def calculate_obv(closes: Sequence[float], volumes: Sequence[float],
                      lookback: int = INDICATORS.trend_lookback) -> OBVResult:
        """On-Balance Volume: volume added on up closes, subtracted on down closes."""
        n = min(len(closes), len(volumes))
        if n == 0:
            return OBVResult(0.0, Trend.NEUTRAL, 0.0)

        series = [0.0]
        for i in range(1, n):
            if closes[i] > closes[i - 1]:
                series.append(series[-1] + volumes[i])
            elif closes[i] < closes[i - 1]:
                series.append(series[-1] - volumes[i])
            else:
                series.append(series[-1])

        previous = series[-2] if len(series) > 1 else series[-1]
        momentum = safe_divide(series[-1] - previous, abs(previous)) * 100.0

        return OBVResult(
            value=round_to(series[-1], 2),
            trend=_cumulative_trend(series, lookback),
            momentum=round_to(momentum, 2),
        )

    @staticmethod
    def calculate_vwap(highs: Sequence[float], lows: Sequence[float],
                       closes: Sequence[float], volumes: Sequence[float]) -> VWAPResult:
        """Volume-weighted average of the typical price."""
        n = min(len(highs), len(lows), len(closes), len(volumes))
        if n == 0:
            return VWAPResult(0.0, VWAPPosition.AT, 0.0)

        weighted = sum((highs[i] + lows[i] + closes[i]) / 3 * volumes[i] for i in range(n))
        total_volume = sum(volumes[:n])
        current = closes[n - 1]
        vwap = safe_divide(weighted, total_volume, default=current)

        if current > vwap * 1.001:
            position = VWAPPosition.ABOVE
        elif current < vwap * 0.999:
            position = VWAPPosition.BELOW
        else:
            position = VWAPPosition.AT

        return VWAPResult(
            value=round_to(vwap, 4),
            position=position,
            deviation=round_to(safe_divide(current - vwap, vwap) * 100, 2),
        )

    @staticmethod
    def calculate_mfi(highs: Sequence[float], lows: Sequence[float],
                      closes: Sequence[float], volumes: Sequence[float],
                      period: int = INDICATORS.mfi_period) -> MFIResult:
        """Money Flow Index: volume-weighted RSI of the typical price."""
        n = min(len(highs), len(lows), len(closes), len(volumes))
        positive = negative = 0.0
        if n >= 2:
            typical_price = (pd.Series(highs[:n], dtype=float) + pd.Series(lows[:n], dtype=float)
                             + pd.Series(closes[:n], dtype=float)) / 3
            raw_mf = typical_price * pd.Series(volumes[:n], dtype=float)

            tp_diff = typical_price.diff()
            positive_mf = raw_mf.where(tp_diff > 0, 0.0).iloc[1:]
            negative_mf = raw_mf.where(tp_diff < 0, 0.0).iloc[1:]
            positive = float(positive_mf.rolling(window=period, min_periods=1).sum().iloc[-1])
            negative = float(negative_mf.rolling(window=period, min_periods=1).sum().iloc[-1])

        if positive == 0 and negative == 0:
            mfi = 50.0
        else:
            ratio = safe_divide(positive, negative, default=100.0)
            mfi = 100.0 - 100.0 / (1.0 + ratio)

        if mfi > 80:
            signal = Zone.OVERBOUGHT
        elif mfi < 20:
            signal = Zone.OVERSOLD
        else:
            signal = Zone.NEUTRAL

        return MFIResult(round_to(mfi, 2), signal)

    @staticmethod
    def calculate_cmf(highs: Sequence[float], lows: Sequence[float],
                      closes: Sequence[float], volumes: Sequence[float],
                      period: int = INDICATORS.cmf_period) -> ChaikinMoneyFlowResult:
        """Chaikin Money Flow over the last ``period`` bars."""
        mf_volume, volume = _money_flow_volume(highs, lows, closes, volumes)
        cmf = 0.0
        if len(volume):
            cmf = safe_divide(mf_volume.rolling(window=period, min_periods=1).sum().iloc[-1],
                              volume.rolling(window=period, min_periods=1).sum().iloc[-1])

        if cmf > 0.25:
            signal = MoneyFlowSignal.STRONG_BUYING
        elif cmf > 0:
            signal = MoneyFlowSignal.BUYING
        elif cmf < -0.25:
            signal = MoneyFlowSignal.STRONG_SELLING
        elif cmf < 0:
            signal = MoneyFlowSignal.SELLING
        else:
            signal = MoneyFlowSignal.NEUTRAL

        if cmf > 0.05:
            pressure = Trend.ACCUMULATION
        elif cmf < -0.05:
            pressure = Trend.DISTRIBUTION
        else:
            pressure = Trend.NEUTRAL

        return ChaikinMoneyFlowResult(round_to(cmf, 3), signal, pressure)

    @staticmethod
    def calculate_ad_line(highs: Sequence[float], lows: Sequence[float],
                          closes: Sequence[float], volumes: Sequence[float],
                          lookback: int = INDICATORS.trend_lookback) -> ADLineResult:
        """Accumulation/Distribution line: cumulative money flow volume."""
        mf_volume, _ = _money_flow_volume(highs, lows, closes, volumes)
        series = [0.0, *mf_volume.cumsum().tolist()]

        previous = series[-2] if len(series) > 1 else 0.0
        divisor = abs(previous) if previous != 0 else 1.0
        momentum = (series[-1] - previous) / divisor * 100.0

        return ADLineResult(
            value=round_to(series[-1], 2),
            trend=_cumulative_trend(series, lookback),
            momentum=round_to(momentum, 2),
        )

"""
Trend Indicators
================

Direction and strength of the prevailing move.

    - MACD: fast EMA minus slow EMA, with a signal line and crossover flag
    - ADX / DMI: Wilder's directional movement system
    - Parabolic SAR: trailing stop-and-reverse
    - SuperTrend: ATR band around the bar midpoint

On snapshot-derived series (three bars with constant highs and lows) MACD
collapses to zero and ADX has no complete DX window, so both read neutral.
Longer series produce the textbook values.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from .classifications import Crossover, Direction, IndicatorResult, StrengthLevel
from .config import INDICATORS
from .math_utils import (
    average_true_range, ema, ema_series, round_to, safe_divide, true_range_series,
)

warnings.filterwarnings('ignore', category=RuntimeWarning)

logger = logging.getLogger(__name__)


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class MACDResult(IndicatorResult):
    """Moving Average Convergence Divergence reading."""
    macd: float
    signal: float
    histogram: float
    trend: Direction
    crossover: Crossover            # BULLISH / BEARISH / NONE
    crossover_strength: float       # [0, 100]


@dataclass(frozen=True)
class ADXResult(IndicatorResult):
    """Average Directional Index with directional indicators."""
    adx: float
    plus_di: float
    minus_di: float
    trend_strength: StrengthLevel
    trend_direction: Direction


@dataclass(frozen=True)
class ParabolicSARResult(IndicatorResult):
    sar: float
    trend: Direction
    acceleration_factor: float
    extreme_point: float
    reversal: bool


@dataclass(frozen=True)
class SuperTrendResult(IndicatorResult):
    value: float
    trend: Direction
    upper_band: float
    lower_band: float
    reversal: bool


# =============================================================================
# CLASSIFIERS
# =============================================================================

def classify_trend_strength(adx: float) -> StrengthLevel:
    """ADX strength bands."""
    if adx < 20:
        return StrengthLevel.VERY_WEAK
    elif adx < 25:
        return StrengthLevel.WEAK
    elif adx < 40:
        return StrengthLevel.MODERATE
    elif adx < 50:
        return StrengthLevel.STRONG
    return StrengthLevel.VERY_STRONG


def classify_macd_trend(macd: float, histogram: float) -> Direction:
    """Bullish when MACD and histogram are both positive, bearish when both negative."""
    if macd > 0 and histogram > 0:
        return Direction.BULLISH
    elif macd < 0 and histogram < 0:
        return Direction.BEARISH
    return Direction.NEUTRAL


# =============================================================================
# TREND INDICATORS
# =============================================================================

class TrendIndicators:
    """Trend-following indicator calculations."""

    @staticmethod
    def calculate_macd(
        closes: Sequence[float],
        fast_period: int = INDICATORS.macd_fast,
        slow_period: int = INDICATORS.macd_slow,
        signal_period: int = INDICATORS.macd_signal,
    ) -> MACDResult:
        """
        MACD line, signal line and histogram.

        Each EMA period is capped at the series length so short input still
        yields a value. The MACD series pairs fast and slow EMA values from
        the start of both series.

        Parameters
        ----------
        closes : Sequence[float]
            Closing prices, oldest first
        fast_period, slow_period, signal_period : int
            EMA periods (default 12 / 26 / 9)

        Returns
        -------
        MACDResult
            Values rounded to 4 decimals, trend and crossover flag
        """
        n = len(closes)
        if n == 0:
            return MACDResult(0.0, 0.0, 0.0, Direction.NEUTRAL, Crossover.NONE, 0.0)

        fast = min(fast_period, n)
        slow = min(slow_period, n)

        fast_series = ema_series(closes, fast)
        slow_series = ema_series(closes, slow)
        macd_series = [f - s for f, s in zip(fast_series, slow_series)]

        macd = ema(closes, fast) - ema(closes, slow)
        signal = ema(macd_series, signal_period)
        histogram = macd - signal

        crossover = Crossover.NONE
        strength = 0.0
        if abs(histogram) < abs(macd) * 0.1:
            crossover = Crossover.BULLISH if histogram > 0 else Crossover.BEARISH
            strength = min(abs(histogram) * 10, 100.0)

        return MACDResult(
            macd=round_to(macd, 4),
            signal=round_to(signal, 4),
            histogram=round_to(histogram, 4),
            trend=classify_macd_trend(macd, histogram),
            crossover=crossover,
            crossover_strength=round_to(strength, 2),
        )

    @staticmethod
    def calculate_adx(
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        period: int = INDICATORS.adx_period,
    ) -> ADXResult:
        """
        Wilder's Average Directional Index.

        +DM/-DM and true range are EMA-smoothed into +DI/-DI. DX is computed
        on every complete ``period`` window and ADX is the EMA of the DX
        series (0 when no complete window exists).
        """
        n = min(len(highs), len(lows), len(closes))
        if n < 2:
            return ADXResult(0.0, 0.0, 0.0, classify_trend_strength(0.0), Direction.NEUTRAL)

        high = pd.Series(highs[:n], dtype=float)
        low = pd.Series(lows[:n], dtype=float)

        up_move = high.diff()
        down_move = -low.diff()
        plus_dm = up_move.where((up_move > down_move) & (up_move > 0), 0.0).iloc[1:]
        minus_dm = down_move.where((down_move > up_move) & (down_move > 0), 0.0).iloc[1:]
        tr = pd.Series(true_range_series(highs, lows, closes), index=plus_dm.index)

        smoothed_tr = ema(tr.tolist(), period)
        plus_di = safe_divide(100 * ema(plus_dm.tolist(), period), smoothed_tr)
        minus_di = safe_divide(100 * ema(minus_dm.tolist(), period), smoothed_tr)

        # DX on every complete window; a zero range or zero movement reads 0
        window_tr = tr.rolling(window=period).mean()
        complete = window_tr.notna()
        window_pdi = (100.0 * plus_dm.rolling(window=period).mean()
                      / window_tr.replace(0, np.nan)).fillna(0.0)
        window_mdi = (100.0 * minus_dm.rolling(window=period).mean()
                      / window_tr.replace(0, np.nan)).fillna(0.0)
        dx = (100.0 * (window_pdi - window_mdi).abs()
              / (window_pdi + window_mdi).replace(0, np.nan)).fillna(0.0)
        dx_series = dx[complete].tolist()

        adx = ema(dx_series, period) if dx_series else 0.0

        diff = plus_di - minus_di
        if diff > 5:
            direction = Direction.BULLISH
        elif diff < -5:
            direction = Direction.BEARISH
        else:
            direction = Direction.NEUTRAL

        return ADXResult(
            adx=round_to(adx, 2),
            plus_di=round_to(plus_di, 2),
            minus_di=round_to(minus_di, 2),
            trend_strength=classify_trend_strength(adx),
            trend_direction=direction,
        )

    @staticmethod
    def calculate_parabolic_sar(
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        af_start: float = INDICATORS.sar_af_start,
        af_increment: float = INDICATORS.sar_af_increment,
        af_max: float = INDICATORS.sar_af_max,
    ) -> ParabolicSARResult:
        """
        Wilder's Parabolic Stop-and-Reverse.

        The initial trend is taken from the first two closes. SAR never
        enters the previous two bars' range; a penetration flips the trend,
        resets SAR to the extreme point and restarts acceleration.
        """
        n = min(len(highs), len(lows), len(closes))
        if n == 0:
            return ParabolicSARResult(0.0, Direction.BULLISH, af_start, 0.0, False)
        if n < 2:
            return ParabolicSARResult(round_to(closes[0], 4), Direction.BULLISH,
                                      af_start, round_to(highs[0], 4), False)

        bullish = closes[1] > closes[0]
        sar = lows[0] if bullish else highs[0]
        extreme = max(highs[0], highs[1]) if bullish else min(lows[0], lows[1])
        af = af_start
        reversal = False

        for i in range(2, n):
            reversal = False
            sar = sar + af * (extreme - sar)

            if bullish:
                sar = min(sar, lows[i - 1], lows[i - 2])
                if lows[i] < sar:
                    bullish, reversal = False, True
                    sar, extreme, af = extreme, lows[i], af_start
                elif highs[i] > extreme:
                    extreme = highs[i]
                    af = min(af + af_increment, af_max)
            else:
                sar = max(sar, highs[i - 1], highs[i - 2])
                if highs[i] > sar:
                    bullish, reversal = True, True
                    sar, extreme, af = extreme, highs[i], af_start
                elif lows[i] < extreme:
                    extreme = lows[i]
                    af = min(af + af_increment, af_max)

        return ParabolicSARResult(
            sar=round_to(sar, 4),
            trend=Direction.BULLISH if bullish else Direction.BEARISH,
            acceleration_factor=round_to(af, 4),
            extreme_point=round_to(extreme, 4),
            reversal=reversal,
        )

    @staticmethod
    def calculate_supertrend(
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        period: int = INDICATORS.supertrend_period,
        multiplier: float = INDICATORS.supertrend_multiplier,
    ) -> SuperTrendResult:
        """SuperTrend: hl2 +/- multiplier * ATR on the latest bar."""
        n = min(len(highs), len(lows), len(closes))
        if n == 0:
            return SuperTrendResult(0.0, Direction.NEUTRAL, 0.0, 0.0, False)

        atr = average_true_range(highs, lows, closes, period)
        hl2 = (highs[-1] + lows[-1]) / 2
        upper = hl2 + multiplier * atr
        lower = hl2 - multiplier * atr

        bullish = closes[-1] > hl2
        reversal = False
        if n > period + 1:
            prev_hl2 = (highs[-2] + lows[-2]) / 2
            reversal = (closes[-2] > prev_hl2) != bullish

        return SuperTrendResult(
            value=round_to(lower if bullish else upper, 4),
            trend=Direction.BULLISH if bullish else Direction.BEARISH,
            upper_band=round_to(upper, 4),
            lower_band=round_to(lower, 4),
            reversal=reversal,
        )

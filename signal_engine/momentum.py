"""
Momentum Oscillators
====================

Velocity-of-price indicators used to spot stretched conditions and
reversals.

    - Snapshot RSI: 24h change mapped onto the RSI scale, blended with the
      position inside the all-time range. This is the RSI the pipeline uses.
    - Series RSI: Wilder's smoothing on a close series.
    - RSI divergence: price near an all-time extreme without RSI agreement.
    - Stochastic %K/%D, Williams %R, Rate of Change, raw momentum.
    - Awesome Oscillator, Commodity Channel Index, Ultimate Oscillator.

Every calculation is total: short series fall back to the available points
and zero ranges map to the oscillator's midpoint.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .classifications import (
    Crossover, Direction, ExtendedZone, IndicatorResult, Outlook, Zone,
)
from .config import INDICATORS
from .math_utils import clamp, round_to, safe_divide, sma
from .snapshot import PriceSnapshot

warnings.filterwarnings('ignore', category=RuntimeWarning)

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class PriceAction(Enum):
    """Where price sits relative to its all-time range."""
    HIGHER_HIGH = "HIGHER_HIGH"
    LOWER_LOW = "LOWER_LOW"
    NEUTRAL = "NEUTRAL"


class Movement(Enum):
    """Sign of a raw momentum reading."""
    UP = "UP"
    DOWN = "DOWN"
    FLAT = "FLAT"


class MomentumSign(Enum):
    """Sign of a rate of change."""
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"


class Acceleration(Enum):
    """Change of the Awesome Oscillator versus the previous bar."""
    INCREASING = "INCREASING"
    DECREASING = "DECREASING"
    STABLE = "STABLE"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class RSIResult(IndicatorResult):
    """Relative Strength Index reading."""
    value: float                    # [10, 90] for the snapshot variant
    signal: Zone
    momentum: float                 # (rsi - 50) / 50, in [-1, 1]


@dataclass(frozen=True)
class DivergenceResult(IndicatorResult):
    """RSI divergence against the all-time range."""
    has_divergence: bool
    divergence_type: Crossover      # BULLISH / BEARISH / NONE
    strength: float                 # [0, 100]
    rsi: float
    price_action: PriceAction


@dataclass(frozen=True)
class StochasticResult(IndicatorResult):
    k: float
    d: float
    signal: Zone
    crossover: Crossover


@dataclass(frozen=True)
class WilliamsRResult(IndicatorResult):
    value: float                    # [-100, 0]
    signal: Zone
    momentum: Direction


@dataclass(frozen=True)
class ROCResult(IndicatorResult):
    value: float                    # Percent
    signal: Outlook
    momentum: MomentumSign


@dataclass(frozen=True)
class MomentumResult(IndicatorResult):
    value: float                    # Absolute price difference
    percent: float
    direction: Movement
    strength: float                 # [0, 100]


@dataclass(frozen=True)
class AwesomeOscillatorResult(IndicatorResult):
    value: float
    signal: Direction
    momentum: Acceleration
    histogram: str                  # GREEN / RED


@dataclass(frozen=True)
class CCIResult(IndicatorResult):
    value: float
    signal: ExtendedZone
    trend: Outlook


@dataclass(frozen=True)
class UltimateOscillatorResult(IndicatorResult):
    value: float                    # [0, 100]
    signal: Zone
    trend: Direction


# =============================================================================
# CLASSIFIERS
# =============================================================================

def classify_rsi(rsi: float) -> Zone:
    """Snapshot RSI zone."""
    if rsi > INDICATORS.rsi_overbought:
        return Zone.OVERBOUGHT
    elif rsi < INDICATORS.rsi_oversold:
        return Zone.OVERSOLD
    return Zone.NEUTRAL


def _classify_band(value: float, upper: float, lower: float) -> Zone:
    if value > upper:
        return Zone.OVERBOUGHT
    elif value < lower:
        return Zone.OVERSOLD
    return Zone.NEUTRAL


def _classify_direction(value: float, pivot: float = 0.0) -> Direction:
    if value > pivot:
        return Direction.BULLISH
    elif value < pivot:
        return Direction.BEARISH
    return Direction.NEUTRAL


# =============================================================================
# MOMENTUM INDICATORS
# =============================================================================

class MomentumIndicators:
    """
    Momentum oscillator calculations.

    All methods are static and pure. Series arguments are plain sequences
    ordered oldest to newest.
    """

    @staticmethod
    def calculate_rsi(snapshot: PriceSnapshot) -> RSIResult:
        """
        Snapshot RSI.

        rsi = 50 + 3 * change_24h, blended 80/20 with the price's position
        inside the ATH/ATL range when both are known, then clamped to
        [10, 90].

        Parameters
        ----------
        snapshot : PriceSnapshot
            Point-in-time observation

        Returns
        -------
        RSIResult
            RSI rounded to one decimal with zone and normalized momentum
        """
        rsi = 50.0 + snapshot.change_24h * INDICATORS.rsi_change_multiplier

        ath, atl = snapshot.ath, snapshot.atl
        if ath is not None and atl is not None and ath > atl:
            range_position = (snapshot.price - atl) / (ath - atl) * 100.0
            weight = INDICATORS.rsi_ath_weight
            rsi = rsi * (1 - weight) + range_position * weight

        rsi = clamp(rsi, INDICATORS.rsi_floor, INDICATORS.rsi_ceiling)

        return RSIResult(
            value=round_to(rsi, 1),
            signal=classify_rsi(rsi),
            momentum=round_to((rsi - 50.0) / 50.0, 4),
        )

    @staticmethod
    def calculate_rsi_series(closes: Sequence[float],
                             period: int = INDICATORS.rsi_period) -> float:
        """
        Wilder RSI on a close series.

        RSI = 100 - (100 / (1 + RS)), RS = average gain / average loss,
        smoothed with alpha = 1 / period. Returns 50 with fewer than two
        closes or when the series is flat.
        """
        if len(closes) < 2:
            return 50.0

        delta = pd.Series(closes, dtype=float).diff()
        gains = delta.where(delta > 0, 0.0)
        losses = (-delta).where(delta < 0, 0.0)

        # Wilder's smoothing (exponential with alpha = 1/period)
        alpha = 1.0 / period
        avg_gain = gains.ewm(alpha=alpha, adjust=False).mean().iloc[-1]
        avg_loss = losses.ewm(alpha=alpha, adjust=False).mean().iloc[-1]

        if avg_loss == 0:
            return 100.0 if avg_gain > 0 else 50.0
        rs = avg_gain / avg_loss
        return round_to(100.0 - (100.0 / (1.0 + rs)), 2)

    @staticmethod
    def calculate_divergence(snapshot: PriceSnapshot,
                             rsi: Optional[RSIResult] = None) -> DivergenceResult:
        """
        RSI divergence against the all-time range.

        Price within 10% of the ATH while RSI is below 70 is a bearish
        divergence; price within 50% above the ATL while RSI is above 30 is a
        bullish one. Requires both ATH and ATL.
        """
        rsi_value = (rsi or MomentumIndicators.calculate_rsi(snapshot)).value
        ath, atl = snapshot.ath, snapshot.atl

        if ath is None or atl is None or ath <= 0 or atl <= 0:
            return DivergenceResult(False, Crossover.NONE, 0.0, rsi_value, PriceAction.NEUTRAL)

        price = snapshot.price
        if price / ath > 0.9:
            if rsi_value < 70:
                strength = min(round((70 - rsi_value) * 2), 100)
                return DivergenceResult(True, Crossover.BEARISH, float(strength),
                                        rsi_value, PriceAction.HIGHER_HIGH)
            return DivergenceResult(False, Crossover.NONE, 0.0, rsi_value, PriceAction.HIGHER_HIGH)

        if price / atl < 1.5:
            if rsi_value > 30:
                strength = min(round((rsi_value - 30) * 2), 100)
                return DivergenceResult(True, Crossover.BULLISH, float(strength),
                                        rsi_value, PriceAction.LOWER_LOW)
            return DivergenceResult(False, Crossover.NONE, 0.0, rsi_value, PriceAction.LOWER_LOW)

        return DivergenceResult(False, Crossover.NONE, 0.0, rsi_value, PriceAction.NEUTRAL)

    @staticmethod
    def calculate_stochastic(
        closes: Sequence[float],
        highs: Sequence[float],
        lows: Sequence[float],
        k_period: int = INDICATORS.stochastic_k_period,
        d_period: int = INDICATORS.stochastic_d_period,
    ) -> StochasticResult:
        """
        Lane's Stochastic Oscillator.

        %K = (close - lowest low) / (highest high - lowest low) * 100 over the
        last ``k_period`` bars (50 on a zero range); %D is the mean of the
        last ``d_period`` %K values.
        """
        n = min(len(closes), len(highs), len(lows))
        if n == 0:
            return StochasticResult(50.0, 50.0, Zone.NEUTRAL, Crossover.NONE)

        close = pd.Series(closes[:n], dtype=float)
        lowest_low = pd.Series(lows[:n], dtype=float).rolling(window=k_period, min_periods=1).min()
        highest_high = pd.Series(highs[:n], dtype=float).rolling(window=k_period, min_periods=1).max()

        range_hl = (highest_high - lowest_low).replace(0, np.nan)
        fast_k = (100.0 * (close - lowest_low) / range_hl).fillna(50.0)

        # %K history starts at the first complete window
        k_series = fast_k.iloc[min(k_period, n) - 1:]
        d_series = k_series.rolling(window=d_period, min_periods=1).mean()
        k = float(k_series.iloc[-1])
        d = float(d_series.iloc[-1])

        crossover = Crossover.NONE
        if len(k_series) >= 2:
            prev_k = float(k_series.iloc[-2])
            prev_d = float(d_series.iloc[-2])
            if prev_k <= prev_d and k > d:
                crossover = Crossover.BULLISH
            elif prev_k >= prev_d and k < d:
                crossover = Crossover.BEARISH

        return StochasticResult(
            k=round_to(k, 2),
            d=round_to(d, 2),
            signal=_classify_band(k, 80, 20),
            crossover=crossover,
        )

    @staticmethod
    def calculate_williams_r(
        closes: Sequence[float],
        highs: Sequence[float],
        lows: Sequence[float],
        period: int = INDICATORS.williams_period,
    ) -> WilliamsRResult:
        """Williams %R in [-100, 0]; -50 on a zero range."""
        if not closes or not highs or not lows:
            return WilliamsRResult(-50.0, Zone.NEUTRAL, Direction.NEUTRAL)

        hh = max(highs[-period:])
        ll = min(lows[-period:])
        value = safe_divide(hh - closes[-1], hh - ll, default=0.5) * -100.0

        return WilliamsRResult(
            value=round_to(value, 2),
            signal=_classify_band(value, -20, -80),
            momentum=_classify_direction(value, pivot=-50),
        )

    @staticmethod
    def calculate_roc(values: Sequence[float],
                      period: int = INDICATORS.roc_period) -> ROCResult:
        """Rate of change versus ``period`` bars ago (or the first bar)."""
        if not values:
            return ROCResult(0.0, Outlook.NEUTRAL, MomentumSign.NEUTRAL)

        current = values[-1]
        past = values[-1 - period] if len(values) > period else values[0]
        roc = safe_divide(current - past, past) * 100.0

        if roc > 10:
            signal = Outlook.STRONG_BULLISH
        elif roc > 0:
            signal = Outlook.BULLISH
        elif roc < -10:
            signal = Outlook.STRONG_BEARISH
        elif roc < 0:
            signal = Outlook.BEARISH
        else:
            signal = Outlook.NEUTRAL

        if roc > 0:
            momentum = MomentumSign.POSITIVE
        elif roc < 0:
            momentum = MomentumSign.NEGATIVE
        else:
            momentum = MomentumSign.NEUTRAL

        return ROCResult(round_to(roc, 2), signal, momentum)

    @staticmethod
    def calculate_momentum(values: Sequence[float],
                           period: int = INDICATORS.momentum_period) -> MomentumResult:
        """Raw momentum: current minus the value ``period`` bars ago."""
        if not values:
            return MomentumResult(0.0, 0.0, Movement.FLAT, 0.0)

        current = values[-1]
        past = values[-1 - period] if len(values) > period else values[0]
        value = current - past
        percent = safe_divide(value, past) * 100.0

        if value > 0:
            direction = Movement.UP
        elif value < 0:
            direction = Movement.DOWN
        else:
            direction = Movement.FLAT

        return MomentumResult(
            value=round_to(value, 4),
            percent=round_to(percent, 2),
            direction=direction,
            strength=round_to(min(abs(percent) * 10, 100.0), 2),
        )

    @staticmethod
    def calculate_awesome_oscillator(
        highs: Sequence[float],
        lows: Sequence[float],
        fast_period: int = INDICATORS.ao_fast_period,
        slow_period: int = INDICATORS.ao_slow_period,
    ) -> AwesomeOscillatorResult:
        """
        Awesome Oscillator: SMA(midpoint, 5) - SMA(midpoint, 34).

        Acceleration compares against the previous bar once more than
        ``slow_period`` midpoints are available.
        """
        midpoints = [(h + l) / 2 for h, l in zip(highs, lows)]
        if not midpoints:
            return AwesomeOscillatorResult(0.0, Direction.NEUTRAL, Acceleration.STABLE, "RED")

        ao = sma(midpoints, fast_period) - sma(midpoints, slow_period)

        delta = 0.0
        if len(midpoints) > slow_period:
            previous = midpoints[:-1]
            delta = ao - (sma(previous, fast_period) - sma(previous, slow_period))

        if delta > 0:
            acceleration = Acceleration.INCREASING
        elif delta < 0:
            acceleration = Acceleration.DECREASING
        else:
            acceleration = Acceleration.STABLE

        return AwesomeOscillatorResult(
            value=round_to(ao, 2),
            signal=_classify_direction(ao),
            momentum=acceleration,
            histogram="GREEN" if acceleration is Acceleration.INCREASING else "RED",
        )

    @staticmethod
    def calculate_cci(
        closes: Sequence[float],
        highs: Sequence[float],
        lows: Sequence[float],
        period: int = INDICATORS.cci_period,
    ) -> CCIResult:
        """
        Commodity Channel Index.

        CCI = (TP - SMA(TP)) / (0.015 * mean absolute deviation), with
        TP = (high + low + close) / 3. Zero deviation gives 0.
        """
        typical = [(h + l + c) / 3 for h, l, c in zip(highs, lows, closes)]
        if not typical:
            return CCIResult(0.0, ExtendedZone.NEUTRAL, Outlook.NEUTRAL)

        window = np.asarray(typical[-period:], dtype=float)
        average = float(window.mean())
        mean_deviation = float(np.abs(window - average).mean())
        cci = safe_divide(typical[-1] - average, INDICATORS.cci_constant * mean_deviation)

        if cci > 200:
            signal, trend = ExtendedZone.EXTREME_OVERBOUGHT, Outlook.STRONG_BULLISH
        elif cci > 100:
            signal, trend = ExtendedZone.OVERBOUGHT, Outlook.BULLISH
        elif cci < -200:
            signal, trend = ExtendedZone.EXTREME_OVERSOLD, Outlook.STRONG_BEARISH
        elif cci < -100:
            signal, trend = ExtendedZone.OVERSOLD, Outlook.BEARISH
        else:
            signal, trend = ExtendedZone.NEUTRAL, Outlook.NEUTRAL

        return CCIResult(round_to(cci, 2), signal, trend)

    @staticmethod
    def calculate_ultimate_oscillator(
        closes: Sequence[float],
        highs: Sequence[float],
        lows: Sequence[float],
        periods: Sequence[int] = INDICATORS.uo_periods,
    ) -> UltimateOscillatorResult:
        """
        Williams' Ultimate Oscillator over three windows weighted 4:2:1.

        BP = close - min(low, prev close); TR = max(high, prev close) -
        min(low, prev close).
        """
        n = min(len(closes), len(highs), len(lows))
        buying: List[float] = []
        ranges: List[float] = []
        for i in range(1, n):
            prev_close = closes[i - 1]
            floor = min(lows[i], prev_close)
            buying.append(closes[i] - floor)
            ranges.append(max(highs[i], prev_close) - floor)

        def window_average(period: int) -> float:
            return safe_divide(sum(buying[-period:]), sum(ranges[-period:]))

        short, medium, long_ = (window_average(p) for p in periods)
        uo = 100.0 * (4 * short + 2 * medium + long_) / 7.0

        return UltimateOscillatorResult(
            value=round_to(uo, 2),
            signal=_classify_band(uo, 70, 30),
            trend=_classify_direction(uo, pivot=50),
        )

"""
Mean-Reversion Indicators and Composite Scores
==============================================

Measures how far price has stretched from its equilibrium and how likely a
snap-back is.

    %B                  position inside the snapshot Bollinger band
    Bollinger width     band compression / expansion
    Distance from MA    % gap to the (high + low + price) / 3 pivot
    Keltner width       range-based channel width
    Mean-reversion score
        weighted blend of the four: %B 30%, width 25%, distance 25%,
        Keltner 20%

COMPOSITE SCORES
----------------
Three summary scores and a single quality number used to rank assets:

    Momentum        RSI 50% / volume ROC 25% / price change 25%, in [-100, 100]
    Volatility      band width 40% / daily range 40% / ATH distance 20%, in [0, 100]
    Mean reversion  %B 60% / MA distance 40%, in [-100, 100]
    Overall quality |momentum| 40% + volatility quality 30% + |MR| 30%
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .classifications import (
    ExtendedZone, IndicatorResult, Outlook, StrengthLevel, VolatilityLevel,
)
from .config import SNAPSHOT
from .math_utils import clamp, round_to, safe_divide
from .snapshot import PriceSnapshot
from .volatility import BollingerBandsResult, VolatilityIndicators

warnings.filterwarnings('ignore', category=RuntimeWarning)

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class BandLocation(Enum):
    """Where price sits relative to the Bollinger band."""
    ABOVE_BANDS = "ABOVE_BANDS"
    UPPER_HALF = "UPPER_HALF"
    MIDDLE = "MIDDLE"
    LOWER_HALF = "LOWER_HALF"
    BELOW_BANDS = "BELOW_BANDS"


class SqueezeLevel(Enum):
    TIGHT = "TIGHT"
    MODERATE = "MODERATE"
    NORMAL = "NORMAL"
    WIDE = "WIDE"


class WidthTrend(Enum):
    NARROWING = "NARROWING"
    STABLE = "STABLE"
    WIDENING = "WIDENING"


class MADistance(Enum):
    EXTREME_ABOVE = "EXTREME_ABOVE"
    ABOVE = "ABOVE"
    NEUTRAL = "NEUTRAL"
    BELOW = "BELOW"
    EXTREME_BELOW = "EXTREME_BELOW"


class ReversionDirection(Enum):
    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


class VolatilityRegime(Enum):
    """Regime label of the composite volatility score."""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    EXTREME = "EXTREME"


class StretchSignal(Enum):
    OVERSOLD = "OVERSOLD"
    NEUTRAL = "NEUTRAL"
    OVERBOUGHT = "OVERBOUGHT"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class PercentBResult(IndicatorResult):
    value: float
    signal: ExtendedZone
    position: BandLocation
    mean_reversion_setup: bool      # Price outside the band


@dataclass(frozen=True)
class BollingerWidthResult(IndicatorResult):
    width: float                    # Fraction of middle band
    width_percent: float
    squeeze: SqueezeLevel
    trend: WidthTrend


@dataclass(frozen=True)
class DistanceFromMAResult(IndicatorResult):
    distance: float                 # Percent
    moving_average: float
    signal: MADistance
    mean_reversion_setup: bool
    strength: float                 # [0, 100]


@dataclass(frozen=True)
class KeltnerWidthResult(IndicatorResult):
    width: float
    width_percent: float
    upper: float
    lower: float
    volatility: VolatilityLevel


@dataclass(frozen=True)
class MeanReversionScoreResult(IndicatorResult):
    score: float                    # [0, 100]
    direction: ReversionDirection
    strength: StrengthLevel
    percent_b_component: float
    width_component: float
    distance_component: float
    keltner_component: float


@dataclass(frozen=True)
class MomentumScore(IndicatorResult):
    rsi: float
    volume_roc: float
    change_24h: float
    score: float                    # [-100, 100]
    signal: Outlook
    insight: str


@dataclass(frozen=True)
class VolatilityScore(IndicatorResult):
    bollinger_width: float          # %
    daily_range: float              # %
    ath_distance: float             # %
    score: float                    # [0, 100]
    regime: VolatilityRegime
    insight: str


@dataclass(frozen=True)
class ReversionScore(IndicatorResult):
    percent_b: float
    distance_from_ma: float
    score: float                    # [-100, 100]
    signal: StretchSignal
    insight: str


@dataclass(frozen=True)
class CompositeScores(IndicatorResult):
    momentum: MomentumScore
    volatility: VolatilityScore
    mean_reversion: ReversionScore
    overall_quality: float          # [0, 100]


# =============================================================================
# MEAN-REVERSION INDICATORS
# =============================================================================

class MeanReversionIndicators:
    """Snapshot-based stretch measures."""

    @staticmethod
    def calculate_percent_b(snapshot: PriceSnapshot,
                            bands: Optional[BollingerBandsResult] = None) -> PercentBResult:
        """
        %B classification.

        Values above 1 or below 0 mean price has left the band, which is
        flagged as a mean-reversion setup.
        """
        bands = bands or VolatilityIndicators.calculate_snapshot_bollinger(snapshot)
        value = bands.percent_b

        if value > 1.2:
            signal = ExtendedZone.EXTREME_OVERBOUGHT
        elif value > 0.8:
            signal = ExtendedZone.OVERBOUGHT
        elif value < -0.2:
            signal = ExtendedZone.EXTREME_OVERSOLD
        elif value < 0.2:
            signal = ExtendedZone.OVERSOLD
        else:
            signal = ExtendedZone.NEUTRAL

        if value > 1:
            position = BandLocation.ABOVE_BANDS
        elif value > 0.6:
            position = BandLocation.UPPER_HALF
        elif value > 0.4:
            position = BandLocation.MIDDLE
        elif value >= 0:
            position = BandLocation.LOWER_HALF
        else:
            position = BandLocation.BELOW_BANDS

        return PercentBResult(
            value=round_to(value, 4),
            signal=signal,
            position=position,
            mean_reversion_setup=value > 1 or value < 0,
        )

    @staticmethod
    def calculate_bollinger_width(snapshot: PriceSnapshot,
                                  bands: Optional[BollingerBandsResult] = None) -> BollingerWidthResult:
        """Band compression level and trend bucket."""
        bands = bands or VolatilityIndicators.calculate_snapshot_bollinger(snapshot)
        width = bands.bandwidth

        if width < 0.05:
            squeeze = SqueezeLevel.TIGHT
        elif width < 0.10:
            squeeze = SqueezeLevel.MODERATE
        elif width < 0.20:
            squeeze = SqueezeLevel.NORMAL
        else:
            squeeze = SqueezeLevel.WIDE

        if width < 0.08:
            trend = WidthTrend.NARROWING
        elif width > 0.18:
            trend = WidthTrend.WIDENING
        else:
            trend = WidthTrend.STABLE

        return BollingerWidthResult(
            width=round_to(width, 4),
            width_percent=round_to(width * 100, 2),
            squeeze=squeeze,
            trend=trend,
        )

    @staticmethod
    def calculate_distance_from_ma(snapshot: PriceSnapshot) -> DistanceFromMAResult:
        """Percent distance from the (high + low + price) / 3 pivot."""
        price = snapshot.price
        if snapshot.has_range:
            ma = (snapshot.high_24h + snapshot.low_24h + price) / 3
        else:
            ma = price
        distance = safe_divide(price - ma, ma) * 100

        if distance > 10:
            signal = MADistance.EXTREME_ABOVE
        elif distance > 5:
            signal = MADistance.ABOVE
        elif distance < -10:
            signal = MADistance.EXTREME_BELOW
        elif distance < -5:
            signal = MADistance.BELOW
        else:
            signal = MADistance.NEUTRAL

        return DistanceFromMAResult(
            distance=round_to(distance, 2),
            moving_average=round_to(ma, 4),
            signal=signal,
            mean_reversion_setup=abs(distance) > 5,
            strength=float(round(min(abs(distance) * 5, 100))),
        )

    @staticmethod
    def calculate_keltner_width(snapshot: PriceSnapshot) -> KeltnerWidthResult:
        """Channel width from half the 24h range (2% of price without a range)."""
        price = snapshot.price
        if snapshot.has_range:
            atr = (snapshot.high_24h - snapshot.low_24h) / 2
        else:
            atr = price * SNAPSHOT.keltner_atr_fraction
        upper = price + 2 * atr
        lower = price - 2 * atr
        width = safe_divide(upper - lower, price)

        if width < 0.04:
            level = VolatilityLevel.VERY_LOW
        elif width < 0.08:
            level = VolatilityLevel.LOW
        elif width < 0.15:
            level = VolatilityLevel.NORMAL
        elif width < 0.25:
            level = VolatilityLevel.HIGH
        else:
            level = VolatilityLevel.VERY_HIGH

        return KeltnerWidthResult(
            width=round_to(width, 4),
            width_percent=round_to(width * 100, 2),
            upper=round_to(upper, 4),
            lower=round_to(lower, 4),
            volatility=level,
        )

    @staticmethod
    def calculate_mean_reversion_score(snapshot: PriceSnapshot) -> MeanReversionScoreResult:
        """Weighted mean-reversion opportunity score in [0, 100]."""
        bands = VolatilityIndicators.calculate_snapshot_bollinger(snapshot)
        percent_b = MeanReversionIndicators.calculate_percent_b(snapshot, bands)
        width = MeanReversionIndicators.calculate_bollinger_width(snapshot, bands)
        distance = MeanReversionIndicators.calculate_distance_from_ma(snapshot)
        keltner = MeanReversionIndicators.calculate_keltner_width(snapshot)

        pb = percent_b.value
        pb_component = 100.0 if pb > 1 or pb < 0 else abs(pb - 0.5) * 200
        width_component = {SqueezeLevel.TIGHT: 100.0,
                           SqueezeLevel.MODERATE: 70.0}.get(width.squeeze, 40.0)
        distance_component = min(abs(distance.distance) * 5, 100.0)
        keltner_component = {VolatilityLevel.VERY_LOW: 100.0,
                             VolatilityLevel.LOW: 70.0}.get(keltner.volatility, 40.0)

        score = (pb_component * 0.30 + width_component * 0.25
                 + distance_component * 0.25 + keltner_component * 0.20)

        if pb < 0.2 or distance.distance < -5:
            direction = ReversionDirection.BUY
        elif pb > 0.8 or distance.distance > 5:
            direction = ReversionDirection.SELL
        else:
            direction = ReversionDirection.NEUTRAL

        if score > 80:
            strength = StrengthLevel.VERY_STRONG
        elif score > 60:
            strength = StrengthLevel.STRONG
        elif score > 40:
            strength = StrengthLevel.MODERATE
        elif score > 20:
            strength = StrengthLevel.WEAK
        else:
            strength = StrengthLevel.VERY_WEAK

        return MeanReversionScoreResult(
            score=float(round(score)),
            direction=direction,
            strength=strength,
            percent_b_component=round_to(pb_component, 2),
            width_component=width_component,
            distance_component=round_to(distance_component, 2),
            keltner_component=keltner_component,
        )


# =============================================================================
# COMPOSITE SCORES
# =============================================================================

def calculate_momentum_score(rsi: float, volume_roc: float, change_24h: float) -> MomentumScore:
    """RSI 50% / volume ROC 25% / price change 25% on a [-100, 100] scale."""
    rsi_score = (rsi - 50) * 2
    volume_score = clamp(volume_roc, -50.0, 50.0)
    price_score = clamp(change_24h * 2, -50.0, 50.0)
    score = float(round(rsi_score * 0.5 + volume_score * 0.25 + price_score * 0.25))

    if score > 60:
        signal, insight = Outlook.STRONG_BULLISH, "Strong buying pressure with high volume"
    elif score > 20:
        signal, insight = Outlook.BULLISH, "Positive momentum building"
    elif score < -60:
        signal, insight = Outlook.STRONG_BEARISH, "Strong selling pressure with high volume"
    elif score < -20:
        signal, insight = Outlook.BEARISH, "Negative momentum building"
    else:
        signal, insight = Outlook.NEUTRAL, "Sideways movement, wait for clear direction"

    return MomentumScore(rsi, round_to(volume_roc, 2), change_24h, score, signal, insight)


def calculate_volatility_score(bollinger_width: float, daily_range: float,
                               ath_distance: float) -> VolatilityScore:
    """Band width 40% / daily range 40% / ATH distance 20% on a [0, 100] scale."""
    bb_score = min(100.0, bollinger_width * 10)
    range_score = min(100.0, daily_range * 10)
    ath_score = min(100.0, 100 - ath_distance)
    score = float(round(bb_score * 0.4 + range_score * 0.4 + ath_score * 0.2))

    if score > 75:
        regime, insight = VolatilityRegime.EXTREME, "Extreme volatility - high risk, high reward"
    elif score > 50:
        regime, insight = VolatilityRegime.HIGH, "High volatility - expect large price swings"
    elif score > 25:
        regime, insight = VolatilityRegime.NORMAL, "Normal volatility - typical market conditions"
    else:
        regime, insight = VolatilityRegime.LOW, "Low volatility - potential breakout coming"

    return VolatilityScore(round_to(bollinger_width, 2), round_to(daily_range, 2),
                           round_to(ath_distance, 2), score, regime, insight)


def calculate_reversion_score(percent_b: float, distance_from_ma: float) -> ReversionScore:
    """%B 60% / MA distance 40% on a [-100, 100] scale."""
    pb_score = (percent_b - 0.5) * 200
    ma_score = clamp(distance_from_ma * 10, -100.0, 100.0)
    score = float(round(pb_score * 0.6 + ma_score * 0.4))

    if score < -40:
        signal, insight = StretchSignal.OVERSOLD, "Price below average - potential bounce"
    elif score > 40:
        signal, insight = StretchSignal.OVERBOUGHT, "Price above average - potential pullback"
    else:
        signal, insight = (StretchSignal.NEUTRAL,
                           "Price near average - no clear mean reversion signal")

    return ReversionScore(percent_b, distance_from_ma, score, signal, insight)


# Volatility regime -> quality contribution
_VOLATILITY_QUALITY = {
    VolatilityRegime.NORMAL: 80.0,
    VolatilityRegime.HIGH: 60.0,
    VolatilityRegime.LOW: 40.0,
    VolatilityRegime.EXTREME: 20.0,
}


def calculate_composite_scores(snapshot: PriceSnapshot, rsi: float,
                               volume_roc: float) -> CompositeScores:
    """Momentum, volatility and mean-reversion summaries plus overall quality."""
    bands = VolatilityIndicators.calculate_snapshot_bollinger(snapshot)
    width = MeanReversionIndicators.calculate_bollinger_width(snapshot, bands)
    distance = MeanReversionIndicators.calculate_distance_from_ma(snapshot)

    daily_range = 0.0
    if snapshot.has_range:
        daily_range = safe_divide(snapshot.high_24h - snapshot.low_24h, snapshot.price) * 100
    ath_distance = 0.0
    if snapshot.ath:
        ath_distance = safe_divide(snapshot.ath - snapshot.price, snapshot.ath) * 100

    momentum = calculate_momentum_score(rsi, volume_roc, snapshot.change_24h)
    volatility = calculate_volatility_score(width.width_percent, daily_range, ath_distance)
    reversion = calculate_reversion_score(bands.percent_b, distance.distance)

    quality = round(abs(momentum.score) * 0.4
                    + _VOLATILITY_QUALITY[volatility.regime] * 0.3
                    + abs(reversion.score) * 0.3)

    return CompositeScores(momentum, volatility, reversion, float(quality))

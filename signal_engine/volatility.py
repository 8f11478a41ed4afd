"""
Volatility Systems
==================

Price dispersion measures and the bands built on them.

BANDS
-----
    ATR                 EMA of true range, plus ATR as % of price
    Bollinger (series)  SMA +/- 2 population sigma over 20 bars
    Bollinger (snapshot)
        A snapshot has a single 24h range, not 20 closes. The band is built
        from that range instead:

            middle  = (high + low) / 2
            sigma_d = ln(high / low) / (2 * sqrt(ln 2))       Parkinson, 1 bar
            sigma   = middle * sigma_d * sqrt((n^2 - 1) / (6n))

        The last factor is the expected dispersion of a 20-bar random walk
        around its own mean, so the snapshot band has the same width a
        20-bar Bollinger band would have for a random walk with that daily
        range. Without a range the band defaults to price +/- 10%.
    Squeeze             bandwidth below 10%
    Donchian            N-bar high/low channel
    Keltner             EMA +/- 2 ATR

ESTIMATORS
----------
    Close-to-close, Parkinson (high/low) and Garman-Klass (OHLC), all
    annualized with 252 periods.
"""

from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from .classifications import (
    Direction, EstimatorLevel, IndicatorResult, VolatilityLevel, classify_estimator,
)
from .config import INDICATORS
from .math_utils import (
    average_true_range, clamp, ema, log_returns, round_to, safe_divide, std_dev,
)
from .snapshot import PriceSnapshot

warnings.filterwarnings('ignore', category=RuntimeWarning)

logger = logging.getLogger(__name__)

# sqrt((n^2 - 1) / (6n)): dispersion of an n-step random walk around its mean
_BB_WINDOW_SCALE = math.sqrt((INDICATORS.bb_period ** 2 - 1) / (6 * INDICATORS.bb_period))
_PARKINSON_DENOMINATOR = 2.0 * math.sqrt(math.log(2.0))


# =============================================================================
# ENUMERATIONS
# =============================================================================

class ChannelSignal(Enum):
    """Donchian breakout state."""
    BULLISH_BREAKOUT = "BULLISH_BREAKOUT"
    BEARISH_BREAKOUT = "BEARISH_BREAKOUT"
    NEUTRAL = "NEUTRAL"


class ChannelPosition(Enum):
    """Price relative to a Keltner channel."""
    ABOVE = "ABOVE"
    WITHIN = "WITHIN"
    BELOW = "BELOW"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class ATRResult(IndicatorResult):
    """Average True Range."""
    value: float
    normalized: float               # ATR as % of the last close
    level: VolatilityLevel


@dataclass(frozen=True)
class BollingerBandsResult(IndicatorResult):
    """Bollinger band levels with bandwidth and %B."""
    upper: float
    middle: float
    lower: float
    bandwidth: float                # (upper - lower) / middle
    percent_b: float                # (price - lower) / (upper - lower)


@dataclass(frozen=True)
class SqueezeResult(IndicatorResult):
    is_squeezing: bool
    intensity: float                # [0, 100]
    bandwidth: float
    breakout_direction: Direction
    confidence: float               # [0, 100]


@dataclass(frozen=True)
class DonchianResult(IndicatorResult):
    upper: float
    middle: float
    lower: float
    width: float                    # % of middle
    position: float                 # [0, 1] inside the channel
    signal: ChannelSignal


@dataclass(frozen=True)
class KeltnerResult(IndicatorResult):
    upper: float
    middle: float
    lower: float
    width: float                    # % of middle
    position: float
    signal: ChannelPosition


@dataclass(frozen=True)
class VolatilityEstimate(IndicatorResult):
    """Annualized volatility estimate."""
    value: float                    # Annualized, %
    daily_vol: float
    level: EstimatorLevel
    efficiency: Optional[float] = None


# =============================================================================
# CLASSIFIERS
# =============================================================================

def classify_atr_level(normalized: float) -> VolatilityLevel:
    """Bucket ATR expressed as a percentage of price."""
    if normalized < 1:
        return VolatilityLevel.VERY_LOW
    elif normalized < 2:
        return VolatilityLevel.LOW
    elif normalized < 4:
        return VolatilityLevel.NORMAL
    elif normalized < 6:
        return VolatilityLevel.HIGH
    return VolatilityLevel.VERY_HIGH


def _default_bands(price: float) -> BollingerBandsResult:
    band = INDICATORS.bb_default_band
    return BollingerBandsResult(
        upper=round_to(price * (1 + band), 4),
        middle=round_to(price, 4),
        lower=round_to(price * (1 - band), 4),
        bandwidth=round_to(2 * band, 4),
        percent_b=0.5,
    )


def _bands(middle: float, sigma: float, price: float,
           std_devs: float) -> BollingerBandsResult:
    upper = middle + std_devs * sigma
    lower = middle - std_devs * sigma
    return BollingerBandsResult(
        upper=round_to(upper, 4),
        middle=round_to(middle, 4),
        lower=round_to(lower, 4),
        bandwidth=round_to(safe_divide(upper - lower, middle), 4),
        percent_b=round_to(safe_divide(price - lower, upper - lower, default=0.5), 4),
    )


# =============================================================================
# VOLATILITY INDICATORS
# =============================================================================

class VolatilityIndicators:
    """Volatility measurement and band construction."""

    @staticmethod
    def calculate_atr(
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        period: int = INDICATORS.atr_period,
    ) -> ATRResult:
        """
        Average True Range.

        TR = max(high - low, |high - prev close|, |low - prev close|),
        smoothed by EMA. Normalized ATR is ATR / last close * 100.

        Parameters
        ----------
        highs, lows, closes : Sequence[float]
            Price series, oldest first
        period : int
            Smoothing period (default: 14)

        Returns
        -------
        ATRResult
            ATR and normalized ATR rounded to 2 decimals, with level
        """
        atr = average_true_range(highs, lows, closes, period)
        last_close = closes[-1] if closes else 0.0
        normalized = safe_divide(atr, last_close) * 100.0

        return ATRResult(
            value=round_to(atr, 2),
            normalized=round_to(normalized, 2),
            level=classify_atr_level(normalized),
        )

    @staticmethod
    def calculate_bollinger_bands(
        closes: Sequence[float],
        period: int = INDICATORS.bb_period,
        std_devs: float = INDICATORS.bb_std_dev,
    ) -> BollingerBandsResult:
        """Classic Bollinger Bands over the last ``period`` closes."""
        if not closes:
            return _default_bands(0.0)

        window = np.asarray(closes[-period:], dtype=float)
        return _bands(float(window.mean()), std_dev(window.tolist()), closes[-1], std_devs)

    @staticmethod
    def calculate_snapshot_bollinger(
        snapshot: PriceSnapshot,
        std_devs: float = INDICATORS.bb_std_dev,
    ) -> BollingerBandsResult:
        """
        Bollinger Bands from a single 24h range.

        See the module docstring for the derivation. A flat range (high equal
        to low) gives zero width and %B 0.5.
        """
        if not snapshot.has_range:
            return _default_bands(snapshot.price)

        high, low = snapshot.high_24h, snapshot.low_24h
        middle = (high + low) / 2
        if high <= 0 or low <= 0 or high < low:
            return _default_bands(snapshot.price)

        daily_sigma = math.log(high / low) / _PARKINSON_DENOMINATOR
        sigma = middle * daily_sigma * _BB_WINDOW_SCALE
        return _bands(middle, sigma, snapshot.price, std_devs)

    @staticmethod
    def calculate_squeeze(
        bands: BollingerBandsResult,
        threshold: float = INDICATORS.squeeze_threshold,
    ) -> SqueezeResult:
        """
        Bollinger squeeze and the likely breakout side.

        Squeezing when bandwidth is below ``threshold``. The breakout side
        follows %B: above 0.6 bullish, below 0.4 bearish.
        """
        bandwidth = bands.bandwidth
        if bandwidth >= threshold:
            return SqueezeResult(False, 0.0, bandwidth, Direction.NEUTRAL, 50.0)

        intensity = float(round((1 - bandwidth / threshold) * 100))
        percent_b = bands.percent_b
        if percent_b > 0.6:
            direction = Direction.BULLISH
            confidence = min(100.0, 60.0 + round((percent_b - 0.6) * 100))
        elif percent_b < 0.4:
            direction = Direction.BEARISH
            confidence = min(100.0, 60.0 + round((0.4 - percent_b) * 100))
        else:
            direction = Direction.NEUTRAL
            confidence = 50.0

        return SqueezeResult(True, intensity, bandwidth, direction, float(confidence))

    @staticmethod
    def calculate_donchian(
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        period: int = INDICATORS.donchian_period,
        current_price: Optional[float] = None,
    ) -> DonchianResult:
        """
        Donchian channel over the last ``period`` bars.

        ``current_price`` overrides the last close for the position and
        breakout checks.
        """
        if not highs or not lows:
            price = current_price if current_price is not None else 0.0
            return DonchianResult(price, price, price, 0.0, 0.5, ChannelSignal.NEUTRAL)

        upper = max(highs[-period:])
        lower = min(lows[-period:])
        middle = (upper + lower) / 2
        if current_price is not None:
            current = current_price
        else:
            current = closes[-1] if closes else middle

        if current >= upper:
            signal = ChannelSignal.BULLISH_BREAKOUT
        elif current <= lower:
            signal = ChannelSignal.BEARISH_BREAKOUT
        else:
            signal = ChannelSignal.NEUTRAL

        return DonchianResult(
            upper=round_to(upper, 4),
            middle=round_to(middle, 4),
            lower=round_to(lower, 4),
            width=round_to(safe_divide(upper - lower, middle) * 100, 2),
            position=round_to(safe_divide(current - lower, upper - lower, default=0.5), 3),
            signal=signal,
        )

    @staticmethod
    def calculate_keltner(
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        period: int = INDICATORS.keltner_period,
        multiplier: float = INDICATORS.keltner_multiplier,
    ) -> KeltnerResult:
        """Keltner channel: EMA(close) +/- multiplier * ATR."""
        middle = ema(closes, period)
        atr = average_true_range(highs, lows, closes, period)
        upper = middle + multiplier * atr
        lower = middle - multiplier * atr
        current = closes[-1] if closes else middle

        if current > upper:
            signal = ChannelPosition.ABOVE
        elif current < lower:
            signal = ChannelPosition.BELOW
        else:
            signal = ChannelPosition.WITHIN

        return KeltnerResult(
            upper=round_to(upper, 2),
            middle=round_to(middle, 2),
            lower=round_to(lower, 2),
            width=round_to(safe_divide(upper - lower, middle) * 100, 2),
            position=round_to(safe_divide(current - lower, upper - lower, default=0.5), 3),
            signal=signal,
        )

    @staticmethod
    def calculate_historical_volatility(
        closes: Sequence[float],
        period: int = INDICATORS.hv_period,
        annualization: int = INDICATORS.trading_days_year,
    ) -> VolatilityEstimate:
        """Close-to-close volatility: population sigma of log returns, annualized."""
        returns = log_returns(closes)[-period:]
        daily = std_dev(returns)
        annualized = daily * math.sqrt(annualization) * 100
        return VolatilityEstimate(
            value=round_to(annualized, 2),
            daily_vol=round_to(daily, 4),
            level=classify_estimator(annualized),
        )

    @staticmethod
    def calculate_parkinson_volatility(
        highs: Sequence[float],
        lows: Sequence[float],
        period: int = INDICATORS.hv_period,
        annualization: int = INDICATORS.trading_days_year,
    ) -> VolatilityEstimate:
        """Parkinson (1980) high-low range estimator."""
        squared = [math.log(h / l) ** 2
                   for h, l in zip(highs[-period:], lows[-period:]) if h > 0 and l > 0]
        if not squared:
            return VolatilityEstimate(0.0, 0.0, EstimatorLevel.VERY_LOW)

        daily = math.sqrt(sum(squared) / len(squared) / (4 * math.log(2)))
        annualized = daily * math.sqrt(annualization) * 100
        return VolatilityEstimate(
            value=round_to(annualized, 2),
            daily_vol=round_to(daily, 4),
            level=classify_estimator(annualized),
        )

    @staticmethod
    def calculate_garman_klass_volatility(
        opens: Sequence[float],
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        period: int = INDICATORS.hv_period,
        annualization: int = INDICATORS.trading_days_year,
    ) -> VolatilityEstimate:
        """
        Garman-Klass (1980) OHLC estimator.

        sigma^2 = mean(0.5 * ln(H/L)^2 - (2 ln 2 - 1) * ln(C/O)^2). A negative
        mean (possible with tiny ranges) is floored at zero.
        """
        gk_constant = 2 * math.log(2) - 1
        terms = []
        for o, h, l, c in zip(opens[-period:], highs[-period:], lows[-period:], closes[-period:]):
            if min(o, h, l, c) <= 0:
                continue
            terms.append(0.5 * math.log(h / l) ** 2 - gk_constant * math.log(c / o) ** 2)

        if not terms:
            return VolatilityEstimate(0.0, 0.0, EstimatorLevel.VERY_LOW,
                                      INDICATORS.garman_klass_efficiency)

        daily = math.sqrt(clamp(sum(terms) / len(terms), 0.0, math.inf))
        annualized = daily * math.sqrt(annualization) * 100
        return VolatilityEstimate(
            value=round_to(annualized, 2),
            daily_vol=round_to(daily, 4),
            level=classify_estimator(annualized),
            efficiency=INDICATORS.garman_klass_efficiency,
        )

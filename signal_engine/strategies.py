"""
Regime Strategies
=================

Four scoring strategies, each specialised for a family of market regimes.
A strategy reads the shared indicator set plus whatever extra indicators it
needs, turns every indicator into a weighted BUY / SELL / NEUTRAL vote, and
reports a signal, a confidence and a short reasoning string.

REGIME MAP
----------
    BULL_MARKET, BEAR_MARKET, TRENDING   Momentum
    MEAN_REVERSION, SIDEWAYS             Mean reversion
    LOW_VOLATILITY                       Breakout, then mean reversion
    HIGH_VOLATILITY                      Volatility

SCORE THRESHOLDS
----------------
    Momentum, Breakout    +/-20 BUY/SELL, +/-60 STRONG
    Mean reversion        +/-15 BUY/SELL, +/-50 STRONG
    Volatility            +/-40 BUY/SELL, +/-70 STRONG
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .classifications import Crossover, Direction, IndicatorResult, VolatilityLevel, Zone
from .config import SCORING, STRATEGIES
from .indicators import IndicatorSet, compute_indicators
from .math_utils import clamp, round_to
from .mean_reversion import MeanReversionIndicators
from .momentum import MomentumIndicators
from .regime_detector import MarketRegime
from .scoring import Signal, Vote, calculate_confidence, calculate_indicator_agreement
from .snapshot import PriceSnapshot, derive_series
from .volatility import VolatilityIndicators
from .volume import VolumeSignal

logger = logging.getLogger(__name__)

Votes = List[Tuple[Vote, float]]


# =============================================================================
# DATA STRUCTURES
# =============================================================================

class StrategyName(Enum):
    """Producer of a strategy signal."""
    MOMENTUM = "MOMENTUM"
    MEAN_REVERSION = "MEAN_REVERSION"
    BREAKOUT = "BREAKOUT"
    VOLATILITY = "VOLATILITY"
    COMBINED = "COMBINED"           # Merged opinion of several strategies
    NONE = "NONE"                   # Nothing ran


@dataclass(frozen=True)
class StrategySignal(IndicatorResult):
    """One strategy's opinion on a snapshot."""
    strategy: StrategyName
    signal: Signal
    confidence: float               # [0, 100]
    reasoning: str
    metrics: Dict[str, float] = field(default_factory=dict)


StrategyFn = Callable[[PriceSnapshot, Optional[IndicatorSet]], StrategySignal]


# =============================================================================
# VOTE HELPERS
# =============================================================================

def _threshold_vote(value: float, buy_below: float, sell_above: float) -> Vote:
    if value < buy_below:
        return Vote.BUY
    if value > sell_above:
        return Vote.SELL
    return Vote.NEUTRAL


def _direction_vote(direction: Direction) -> Vote:
    if direction is Direction.BULLISH:
        return Vote.BUY
    if direction is Direction.BEARISH:
        return Vote.SELL
    return Vote.NEUTRAL


def _change_vote(change: float, threshold: float) -> Vote:
    if change > threshold:
        return Vote.BUY
    if change < -threshold:
        return Vote.SELL
    return Vote.NEUTRAL


def _weighted_score(votes: Votes) -> float:
    score = 0.0
    for vote, weight in votes:
        if vote is Vote.BUY:
            score += weight
        elif vote is Vote.SELL:
            score -= weight
    return score


def _trend_flag(direction: Direction) -> float:
    return {Direction.BULLISH: 1.0, Direction.BEARISH: -1.0}.get(direction, 0.0)


def _change_sign(change: float) -> float:
    return 1.0 if change > 0 else -1.0


# =============================================================================
# MOMENTUM
# =============================================================================

def momentum_strategy(snapshot: PriceSnapshot,
                      indicators: Optional[IndicatorSet] = None) -> StrategySignal:
    """
    Trend-following consensus of RSI, MACD, 24h change and RSI divergence.

    Default weights are 30 / 30 / 25 / 15 (``STRATEGIES``). RSI is read with a
    tight 48/52 band and the 24h change with +/-0.5% so that single-snapshot
    data still votes.
    """
    indicators = indicators or compute_indicators(snapshot)
    rsi = indicators.rsi.value
    macd_trend = indicators.macd.trend
    divergence = indicators.divergence

    divergence_vote = Vote.NEUTRAL
    if divergence.has_divergence:
        if divergence.divergence_type is Crossover.BULLISH:
            divergence_vote = Vote.BUY
        elif divergence.divergence_type is Crossover.BEARISH:
            divergence_vote = Vote.SELL

    rsi_w, macd_w, change_w, divergence_w = STRATEGIES.momentum_weights
    votes: Votes = [
        (_threshold_vote(rsi, *STRATEGIES.momentum_rsi_band), rsi_w),
        (_direction_vote(macd_trend), macd_w),
        (_change_vote(snapshot.change_24h, STRATEGIES.momentum_change), change_w),
        (divergence_vote, divergence_w),
    ]
    agreement = calculate_indicator_agreement(votes).ratio
    score = _weighted_score(votes)
    agreement_pct = round(agreement * 100)

    parts = []
    if agreement_pct >= STRATEGIES.strong_agreement_pct:
        parts.append(f"strong consensus ({agreement_pct}%)")
    elif agreement_pct >= STRATEGIES.moderate_agreement_pct:
        parts.append(f"moderate agreement ({agreement_pct}%)")
    else:
        parts.append(f"mixed signals ({agreement_pct}%)")
    rsi_low, rsi_high = STRATEGIES.momentum_rsi_note
    if rsi < rsi_low:
        parts.append(f"RSI bullish ({round(rsi)})")
    elif rsi > rsi_high:
        parts.append(f"RSI bearish ({round(rsi)})")
    if macd_trend is not Direction.NEUTRAL:
        parts.append(f"MACD {macd_trend.value.lower()}")
    if indicators.adx.adx > STRATEGIES.momentum_strong_adx:
        parts.append("strong trend")
    elif indicators.adx.adx < STRATEGIES.momentum_weak_adx:
        parts.append("weak trend")

    return StrategySignal(
        strategy=StrategyName.MOMENTUM,
        signal=Signal.from_score(score),
        confidence=calculate_confidence(score, agreement, indicators.adx.adx,
                                        indicators.atr.normalized),
        reasoning=", ".join(parts),
        metrics={
            "rsi": float(round(rsi)),
            "macd_trend": _trend_flag(macd_trend),
            "adx_value": float(round(indicators.adx.adx)),
            "normalized_atr": round_to(indicators.atr.normalized, 2),
            "indicator_agreement": float(agreement_pct),
            "price_change_24h": round_to(snapshot.change_24h, 2),
        },
    )


# =============================================================================
# MEAN REVERSION
# =============================================================================

def mean_reversion_strategy(snapshot: PriceSnapshot,
                            indicators: Optional[IndicatorSet] = None) -> StrategySignal:
    """
    Balanced six-indicator consensus for range-bound markets.

    Stochastic %K saturates at 0 or 100 on a three-point series; in that case
    RSI stands in for it.
    """
    indicators = indicators or compute_indicators(snapshot)
    series = derive_series(snapshot)

    rsi = indicators.rsi.value
    macd_trend = indicators.macd.trend
    percent_b = MeanReversionIndicators.calculate_percent_b(snapshot)
    distance = MeanReversionIndicators.calculate_distance_from_ma(snapshot)
    stochastic = MomentumIndicators.calculate_stochastic(series.closes, series.highs, series.lows)
    effective_stoch = rsi if stochastic.k in (0.0, 100.0) else stochastic.k

    weights = STRATEGIES.reversion_weights
    votes: Votes = [
        (_threshold_vote(rsi, *STRATEGIES.reversion_rsi_band), weights[0]),
        (_threshold_vote(effective_stoch, *STRATEGIES.reversion_stoch_band), weights[1]),
        (_threshold_vote(percent_b.value, *STRATEGIES.reversion_percent_b_band), weights[2]),
        (_direction_vote(macd_trend), weights[3]),
        (_threshold_vote(distance.distance, *STRATEGIES.reversion_distance_band), weights[4]),
        (_change_vote(snapshot.change_24h, STRATEGIES.reversion_change), weights[5]),
    ]
    agreement = calculate_indicator_agreement(votes).ratio
    score = float(round(_weighted_score(votes)))
    agreement_pct = round(agreement * 100)

    if agreement_pct >= STRATEGIES.strong_agreement_pct:
        parts = [f"strong indicator consensus ({agreement_pct}%)"]
    elif agreement_pct >= STRATEGIES.moderate_agreement_pct:
        parts = [f"moderate indicator agreement ({agreement_pct}%)"]
    else:
        parts = [f"mixed signals ({agreement_pct}% agreement)"]
    rsi_low, rsi_high = STRATEGIES.reversion_rsi_note
    band_low, band_high = STRATEGIES.reversion_band_note
    if rsi < rsi_low:
        parts.append(f"RSI oversold ({round(rsi)})")
    elif rsi > rsi_high:
        parts.append(f"RSI overbought ({round(rsi)})")
    if macd_trend is not Direction.NEUTRAL:
        parts.append(f"MACD {macd_trend.value.lower()}")
    if percent_b.value < band_low:
        parts.append("near lower BB")
    elif percent_b.value > band_high:
        parts.append("near upper BB")

    return StrategySignal(
        strategy=StrategyName.MEAN_REVERSION,
        signal=Signal.from_score(score, strong=STRATEGIES.reversion_strong,
                                 threshold=STRATEGIES.reversion_threshold),
        confidence=calculate_confidence(score, agreement, indicators.adx.adx,
                                        indicators.atr.normalized),
        reasoning=", ".join(parts),
        metrics={
            "percent_b": round_to(percent_b.value, 2),
            "distance_from_ma": round_to(distance.distance, 2),
            "rsi": float(round(rsi)),
            "stochastic": float(round(stochastic.k)),
            "adx_value": float(round(indicators.adx.adx)),
            "normalized_atr": round_to(indicators.atr.normalized, 2),
            "macd_trend": _trend_flag(macd_trend),
            "indicator_agreement": float(agreement_pct),
        },
    )


# =============================================================================
# BREAKOUT
# =============================================================================

def breakout_strategy(snapshot: PriceSnapshot,
                      indicators: Optional[IndicatorSet] = None) -> StrategySignal:
    """
    Squeeze breakout scoring.

    Score terms:
        squeeze intensity / 100 * 40 * breakout side    (only while squeezing)
        Donchian position > 0.8: +30, < 0.2: -30
        volume ROC > 20%: 20 in the direction of the 24h change
        ATR level HIGH or VERY_HIGH: 10 in the direction of the 24h change
    """
    indicators = indicators or compute_indicators(snapshot)
    series = derive_series(snapshot)

    squeeze = VolatilityIndicators.calculate_squeeze(
        VolatilityIndicators.calculate_snapshot_bollinger(snapshot))
    donchian = VolatilityIndicators.calculate_donchian(
        series.highs, series.lows, series.closes, current_price=snapshot.price)
    volume_roc = indicators.volume_roc
    atr = indicators.atr
    expanding = atr.level in (VolatilityLevel.HIGH, VolatilityLevel.VERY_HIGH)
    change_sign = _change_sign(snapshot.change_24h)

    channel_low, channel_high = STRATEGIES.breakout_channel_band

    squeeze_score = 0.0
    squeeze_vote = Vote.NEUTRAL
    if squeeze.is_squeezing:
        squeeze_score = (squeeze.intensity / 100 * STRATEGIES.breakout_squeeze_weight
                         * _trend_flag(squeeze.breakout_direction))
        squeeze_vote = _direction_vote(squeeze.breakout_direction)

    donchian_score = 0.0
    if donchian.position > channel_high:
        donchian_score = STRATEGIES.breakout_channel_weight
    elif donchian.position < channel_low:
        donchian_score = -STRATEGIES.breakout_channel_weight
    volume_score = 0.0
    if volume_roc.value > STRATEGIES.breakout_volume_roc:
        volume_score = STRATEGIES.breakout_volume_weight * change_sign
    atr_score = STRATEGIES.breakout_atr_weight * change_sign if expanding else 0.0

    score = clamp(squeeze_score + donchian_score + volume_score + atr_score, -100.0, 100.0)

    votes: Votes = [
        (squeeze_vote, STRATEGIES.breakout_squeeze_weight),
        (_change_vote(donchian_score, 0), STRATEGIES.breakout_channel_weight),
        (_change_vote(volume_score, 0), STRATEGIES.breakout_volume_weight),
        (_change_vote(atr_score, 0), STRATEGIES.breakout_atr_weight),
    ]
    agreement = calculate_indicator_agreement(votes).ratio

    if squeeze.is_squeezing:
        parts = [f"Bollinger Squeeze detected ({squeeze.intensity:g}% intensity)"]
        if squeeze.breakout_direction is not Direction.NEUTRAL:
            parts.append(f"potential {squeeze.breakout_direction.value.lower()} breakout")
    else:
        parts = ["no squeeze pattern detected"]
    if volume_roc.signal is VolumeSignal.SURGE:
        parts.append("strong volume surge")
    elif volume_roc.signal is VolumeSignal.HIGH:
        parts.append("increasing volume")
    if expanding:
        parts.append("volatility expanding")
    elif atr.level in (VolatilityLevel.LOW, VolatilityLevel.VERY_LOW):
        parts.append("volatility contracting")
    if donchian.position > channel_high:
        parts.append("price near upper channel")
    elif donchian.position < channel_low:
        parts.append("price near lower channel")

    return StrategySignal(
        strategy=StrategyName.BREAKOUT,
        signal=Signal.from_score(score),
        confidence=calculate_confidence(score, agreement, indicators.adx.adx, atr.normalized),
        reasoning=", ".join(parts),
        metrics={
            "squeeze_intensity": squeeze.intensity,
            "atr": atr.value,
            "normalized_atr": atr.normalized,
            "volume_roc": volume_roc.value,
            "donchian_position": donchian.position,
            "adx_value": indicators.adx.adx,
            "indicator_agreement": float(round(agreement * 100)),
        },
    )


# =============================================================================
# VOLATILITY
# =============================================================================

def volatility_strategy(snapshot: PriceSnapshot,
                        indicators: Optional[IndicatorSet] = None) -> StrategySignal:
    """
    Cautious band-extreme fading for high-volatility markets.

    Scores only when %B sits at an extreme, with extra weight when RSI
    confirms. Historical volatility discounts both the score and the
    confidence.
    """
    indicators = indicators or compute_indicators(snapshot)
    series = derive_series(snapshot)

    bands = VolatilityIndicators.calculate_snapshot_bollinger(snapshot)
    historical = VolatilityIndicators.calculate_historical_volatility(series.closes)
    rsi = indicators.rsi
    percent_b = bands.percent_b

    extreme_low, extreme_high = STRATEGIES.volatility_extreme_band
    confirm_low, confirm_high = STRATEGIES.volatility_confirm_band

    extreme_score = 0.0
    if percent_b < extreme_low:
        extreme_score = STRATEGIES.volatility_extreme_weight
    elif percent_b > extreme_high:
        extreme_score = -STRATEGIES.volatility_extreme_weight

    confirmation_score = 0.0
    if rsi.signal is Zone.OVERSOLD and percent_b < confirm_low:
        confirmation_score = STRATEGIES.volatility_confirm_weight
    elif rsi.signal is Zone.OVERBOUGHT and percent_b > confirm_high:
        confirmation_score = -STRATEGIES.volatility_confirm_weight

    vol_penalty = min(historical.value / STRATEGIES.volatility_score_hv_divisor,
                      STRATEGIES.volatility_score_hv_cap)
    score = clamp((extreme_score + confirmation_score) * (1 - vol_penalty), -100.0, 100.0)

    votes: Votes = [
        (_change_vote(extreme_score, 0), STRATEGIES.volatility_extreme_weight),
        (_change_vote(confirmation_score, 0), STRATEGIES.volatility_confirm_weight),
    ]
    agreement = calculate_indicator_agreement(votes).ratio
    base_confidence = calculate_confidence(score, agreement, indicators.adx.adx,
                                           indicators.atr.normalized)
    vol_adjustment = 1 - min(historical.value / STRATEGIES.volatility_confidence_hv_divisor,
                             STRATEGIES.volatility_confidence_hv_cap)
    confidence = float(round(clamp(base_confidence * vol_adjustment,
                                   SCORING.confidence_floor, SCORING.confidence_ceiling)))

    if percent_b < extreme_low:
        position = "price at extreme lower band"
    elif percent_b > extreme_high:
        position = "price at extreme upper band"
    else:
        position = "price not at extremes"
    if rsi.signal is Zone.OVERSOLD:
        rsi_text = "RSI confirms oversold condition"
    elif rsi.signal is Zone.OVERBOUGHT:
        rsi_text = "RSI confirms overbought condition"
    else:
        rsi_text = "RSI shows no clear signal"
    parts = [
        f"High volatility environment ({historical.value:.1f}%)",
        position,
        rsi_text,
        "exercise caution due to high volatility",
    ]

    return StrategySignal(
        strategy=StrategyName.VOLATILITY,
        signal=Signal.from_score(score, strong=STRATEGIES.volatility_strong,
                                 threshold=STRATEGIES.volatility_threshold),
        confidence=confidence,
        reasoning=", ".join(parts),
        metrics={
            "atr": indicators.atr.value,
            "normalized_atr": indicators.atr.normalized,
            "historical_vol": historical.value,
            "bb_width": round_to(bands.bandwidth, 4),
            "rsi": rsi.value,
            "adx_value": indicators.adx.adx,
            "indicator_agreement": float(round(agreement * 100)),
        },
    )


# =============================================================================
# SELECTION AND EXECUTION
# =============================================================================

REGIME_STRATEGIES: Dict[MarketRegime, Tuple[StrategyFn, ...]] = {
    MarketRegime.BULL_MARKET: (momentum_strategy,),
    MarketRegime.BEAR_MARKET: (momentum_strategy,),
    MarketRegime.TRENDING: (momentum_strategy,),
    MarketRegime.MEAN_REVERSION: (mean_reversion_strategy,),
    MarketRegime.SIDEWAYS: (mean_reversion_strategy,),
    MarketRegime.LOW_VOLATILITY: (breakout_strategy, mean_reversion_strategy),
    MarketRegime.HIGH_VOLATILITY: (volatility_strategy,),
}


def select_strategies(regime: MarketRegime) -> Tuple[StrategyFn, ...]:
    """Strategies suited to ``regime``, in execution order."""
    return REGIME_STRATEGIES.get(regime, ())


def empty_signal() -> StrategySignal:
    """Neutral placeholder used when no strategy ran."""
    return StrategySignal(StrategyName.NONE, Signal.HOLD, 0.0, "No strategies executed", {})


def execute_strategies(snapshot: PriceSnapshot,
                       strategies: Sequence[StrategyFn],
                       indicators: Optional[IndicatorSet] = None) -> List[StrategySignal]:
    """
    Run each strategy against the same indicator set.

    Strategies share no state, so the order only affects the order of the
    returned list.
    """
    if not strategies:
        return []
    indicators = indicators or compute_indicators(snapshot)

    signals = []
    for strategy in strategies:
        result = strategy(snapshot, indicators)
        logger.debug("%s %s -> %s (confidence %.0f)", snapshot.symbol,
                     result.strategy.value, result.signal.value, result.confidence)
        signals.append(result)
    return signals

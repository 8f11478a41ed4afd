"""
Crash and Entry Detectors
=========================

Threshold counters that run beside the strategy layer and reuse the shared
indicator set.

CRASH
-----
    rapid_drop          24h change < -15%
    volume_spike        volume ROC > 100%
    oversold_extreme    RSI < 20
    high_volatility     normalized ATR > 10%

BULL ENTRY
----------
    trend_reversal      MACD bullish with 40 < RSI < 70
    volume_increase     volume ROC > 20%
    momentum_building   ADX > 25 with a positive 24h change
    divergence          bullish RSI divergence

Tier is a function of the true-count alone (4 / 3 / 2 / else) and the
signal triggers at two or more.

ENTRY PLAN
----------
``plan_entry`` turns a strategy signal into a LONG / SHORT setup with
ATR-scaled target and stop levels and a leverage suggestion. Stablecoins and
assets with too little range or volume get a NEUTRAL plan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .classifications import Crossover, Direction, IndicatorResult, StrengthLevel
from .config import DETECTORS, ENTRY_PLAN
from .indicators import IndicatorSet, compute_indicators
from .math_utils import clamp, round_to, safe_divide
from .scoring import Signal
from .snapshot import PriceSnapshot, is_stablecoin, is_tradeable

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class CrashSeverity(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    EXTREME = "EXTREME"


class TradeDirection(Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"


_CRASH_TIERS: Dict[int, CrashSeverity] = {
    4: CrashSeverity.EXTREME,
    3: CrashSeverity.HIGH,
    2: CrashSeverity.MEDIUM,
}

_ENTRY_TIERS: Dict[int, StrengthLevel] = {
    4: StrengthLevel.VERY_STRONG,
    3: StrengthLevel.STRONG,
    2: StrengthLevel.MODERATE,
}


def crash_severity(count: int) -> CrashSeverity:
    """Severity tier for a crash true-count."""
    return _CRASH_TIERS.get(count, CrashSeverity.LOW)


def entry_strength(count: int) -> StrengthLevel:
    """Strength tier for an entry true-count."""
    return _ENTRY_TIERS.get(count, StrengthLevel.WEAK)


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class CrashIndicators(IndicatorResult):
    rapid_drop: bool
    volume_spike: bool
    oversold_extreme: bool
    high_volatility: bool

    @property
    def count(self) -> int:
        return sum((self.rapid_drop, self.volume_spike,
                    self.oversold_extreme, self.high_volatility))


@dataclass(frozen=True)
class EntryIndicators(IndicatorResult):
    trend_reversal: bool
    volume_increase: bool
    momentum_building: bool
    divergence: bool                # In the direction of the entry

    @property
    def count(self) -> int:
        return sum((self.trend_reversal, self.volume_increase,
                    self.momentum_building, self.divergence))


@dataclass(frozen=True)
class CrashSignal(IndicatorResult):
    """Crash detector verdict."""
    is_crashing: bool
    severity: CrashSeverity
    confidence: float               # [0, 100]
    indicators: CrashIndicators
    recommendation: str


@dataclass(frozen=True)
class EntrySignal(IndicatorResult):
    """Bull-entry detector verdict with fixed-percentage levels."""
    is_optimal_entry: bool
    strength: StrengthLevel
    confidence: float               # [0, 100]
    indicators: EntryIndicators
    entry_price: float
    target_price: float
    stop_loss: float
    recommendation: str


@dataclass(frozen=True)
class EntryPlan(IndicatorResult):
    """Directional setup with ATR-scaled levels."""
    symbol: str
    direction: TradeDirection
    is_optimal_entry: bool
    strength: StrengthLevel
    confidence: float               # [0, 100]
    indicators: EntryIndicators
    entry_price: float
    target_price: float
    stop_loss: float
    risk_reward_ratio: float
    suggested_leverage: int
    max_leverage: int
    recommendation: str


# =============================================================================
# CRASH DETECTOR
# =============================================================================

def crash_recommendation(is_crashing: bool, severity: CrashSeverity, change_24h: float) -> str:
    if not is_crashing:
        return "No crash detected. Normal market conditions."
    if severity is CrashSeverity.EXTREME:
        return (f"EXTREME CRASH: {abs(change_24h):.1f}% drop. AVOID buying. "
                "Wait for stabilization. Consider stop-losses.")
    if severity is CrashSeverity.HIGH:
        return ("HIGH SEVERITY CRASH: Significant selling pressure. "
                "Wait for RSI to recover above 30 before considering entry.")
    if severity is CrashSeverity.MEDIUM:
        return ("MEDIUM CRASH: Market stress detected. Only enter with tight stop-losses. "
                "Watch for reversal signals.")
    return "LOW SEVERITY: Minor crash indicators. Monitor closely but not critical yet."


def detect_crash(snapshot: PriceSnapshot,
                 indicators: Optional[IndicatorSet] = None) -> CrashSignal:
    """
    Count the four crash conditions and grade the result.

    Args:
        snapshot: Point-in-time observation
        indicators: Precomputed indicator set (computed when omitted)

    Returns:
        CrashSignal; ``is_crashing`` when at least two conditions hold
    """
    indicators = indicators or compute_indicators(snapshot)
    flags = CrashIndicators(
        rapid_drop=snapshot.change_24h < DETECTORS.crash_change,
        volume_spike=indicators.volume_roc.value > DETECTORS.crash_volume_roc,
        oversold_extreme=indicators.rsi.value < DETECTORS.crash_rsi,
        high_volatility=indicators.atr.normalized > DETECTORS.crash_natr,
    )
    count = flags.count
    severity = crash_severity(count)
    is_crashing = count >= 2

    if is_crashing:
        logger.debug("%s crash conditions: %d/4 (%s)", snapshot.symbol, count, severity.value)
    return CrashSignal(
        is_crashing=is_crashing,
        severity=severity,
        confidence=float(round(count / 4 * 100)),
        indicators=flags,
        recommendation=crash_recommendation(is_crashing, severity, snapshot.change_24h),
    )


# =============================================================================
# BULL ENTRY DETECTOR
# =============================================================================

def entry_levels(price: float, strength: StrengthLevel) -> Tuple[float, float]:
    """(target, stop-loss) at the fixed percentages for ``strength``."""
    target_mult, stop_distance = DETECTORS.entry_levels.get(
        strength.value, DETECTORS.entry_levels["WEAK"])
    return price * target_mult, price * (1 - stop_distance)


def entry_recommendation(is_optimal: bool, strength: StrengthLevel,
                         entry: float, target: float, stop: float) -> str:
    if not is_optimal:
        return "Not optimal entry. Wait for stronger bull signals."
    rr = safe_divide(target - entry, entry - stop)
    levels = f"Entry: {entry:.2f}, Target: {target:.2f}, Stop: {stop:.2f}. Risk/Reward: {rr:.2f}:1."
    if strength is StrengthLevel.VERY_STRONG:
        return f"VERY STRONG BULL ENTRY: Multiple confirmations. {levels} Consider larger position."
    if strength is StrengthLevel.STRONG:
        return f"STRONG BULL ENTRY: Good setup with confirmation. {levels}"
    if strength is StrengthLevel.MODERATE:
        return f"MODERATE BULL ENTRY: Decent setup but watch closely. {levels} Use smaller position."
    return "WEAK BULL SIGNAL: Entry possible but risky. Consider waiting for stronger confirmation."


def detect_bull_entry(snapshot: PriceSnapshot,
                      indicators: Optional[IndicatorSet] = None) -> EntrySignal:
    """
    Count the four bull-entry conditions and attach fixed-percentage levels.

    Confidence blends the true-count (70%) with ADX (30%).
    """
    indicators = indicators or compute_indicators(snapshot)
    rsi = indicators.rsi.value
    adx = indicators.adx.adx
    divergence = indicators.divergence

    flags = EntryIndicators(
        trend_reversal=(indicators.macd.trend is Direction.BULLISH
                        and DETECTORS.entry_rsi_low < rsi < DETECTORS.entry_rsi_high),
        volume_increase=indicators.volume_roc.value > DETECTORS.entry_volume_roc,
        momentum_building=adx > DETECTORS.entry_adx and snapshot.change_24h > 0,
        divergence=(divergence.has_divergence
                    and divergence.divergence_type is Crossover.BULLISH),
    )
    count = flags.count
    strength = entry_strength(count)
    is_optimal = count >= 2
    target, stop = entry_levels(snapshot.price, strength)

    return EntrySignal(
        is_optimal_entry=is_optimal,
        strength=strength,
        confidence=clamp(float(round(count / 4 * 70 + adx / 100 * 30)), 0.0, 100.0),
        indicators=flags,
        entry_price=snapshot.price,
        target_price=target,
        stop_loss=stop,
        recommendation=entry_recommendation(is_optimal, strength, snapshot.price, target, stop),
    )


# =============================================================================
# ENTRY PLAN
# =============================================================================

def _side_indicators(snapshot: PriceSnapshot, indicators: IndicatorSet,
                     direction: TradeDirection) -> EntryIndicators:
    """Entry conditions for one side of the market."""
    long_side = direction is TradeDirection.LONG
    trend = Direction.BULLISH if long_side else Direction.BEARISH
    divergence_type = Crossover.BULLISH if long_side else Crossover.BEARISH
    rsi = indicators.rsi.value
    moving = snapshot.change_24h > 0 if long_side else snapshot.change_24h < 0

    return EntryIndicators(
        trend_reversal=(indicators.macd.trend is trend
                        and ENTRY_PLAN.indicator_rsi_low < rsi < ENTRY_PLAN.indicator_rsi_high),
        volume_increase=indicators.volume_roc.value > DETECTORS.entry_volume_roc,
        momentum_building=indicators.adx.adx > DETECTORS.entry_adx and moving,
        divergence=(indicators.divergence.has_divergence
                    and indicators.divergence.divergence_type is divergence_type),
    )


def _choose_direction(snapshot: PriceSnapshot, indicators: IndicatorSet,
                      signal: Signal) -> Tuple[TradeDirection, EntryIndicators]:
    if signal.is_bullish:
        return TradeDirection.LONG, _side_indicators(snapshot, indicators, TradeDirection.LONG)
    if signal.is_bearish:
        return TradeDirection.SHORT, _side_indicators(snapshot, indicators, TradeDirection.SHORT)

    long_flags = _side_indicators(snapshot, indicators, TradeDirection.LONG)
    short_flags = _side_indicators(snapshot, indicators, TradeDirection.SHORT)
    if long_flags.count > short_flags.count and long_flags.count >= 2:
        return TradeDirection.LONG, long_flags
    if short_flags.count > long_flags.count and short_flags.count >= 2:
        return TradeDirection.SHORT, short_flags
    return TradeDirection.NEUTRAL, long_flags


def _plan_strength(signal: Signal, count: int, adx: float, has_divergence: bool) -> StrengthLevel:
    if signal in (Signal.STRONG_BUY, Signal.STRONG_SELL):
        points = 80
    elif signal in (Signal.BUY, Signal.SELL):
        points = 60
    else:
        points = 40

    points += count * 5
    if adx > 25:
        points += 10
    elif adx > 15:
        points += 5
    if has_divergence:
        points += 10

    if points >= 80:
        return StrengthLevel.VERY_STRONG
    if points >= 60:
        return StrengthLevel.STRONG
    if points >= 40:
        return StrengthLevel.MODERATE
    return StrengthLevel.WEAK


def _plan_confidence(signal: Signal, strategy_confidence: float, count: int,
                     adx: float, has_divergence: bool) -> float:
    if signal in (Signal.STRONG_BUY, Signal.STRONG_SELL):
        base = 70.0
    elif signal in (Signal.BUY, Signal.SELL):
        base = 50.0
    else:
        base = 20.0
    confidence = max(base, strategy_confidence)

    if count >= 3:
        confidence = min(confidence + 15, 100.0)
    elif count == 2:
        confidence = min(confidence + 10, 100.0)
    elif count == 1:
        confidence = min(confidence + 5, 100.0)
    if has_divergence:
        confidence = min(confidence + 10, 100.0)
    if adx < 15:
        confidence = max(confidence - 10, 10.0)
    return float(round(confidence))


def dynamic_levels(price: float, direction: TradeDirection, natr: float,
                   strength: StrengthLevel) -> Tuple[float, float, float]:
    """
    ATR-scaled (target, stop-loss, risk/reward).

    ATR below 1.5% is treated as 1.5%; targets are at least 2% away and stops
    at least 1%. A NEUTRAL plan keeps both levels at the price.
    """
    if direction is TradeDirection.NEUTRAL:
        return price, price, 0.0

    effective_atr = max(natr, ENTRY_PLAN.min_atr_percent)
    target_pct = max(effective_atr * ENTRY_PLAN.target_multipliers.get(strength.value, 1.5),
                     ENTRY_PLAN.min_target_percent) / 100
    stop_pct = max(effective_atr * ENTRY_PLAN.stop_multipliers.get(strength.value, 2.0),
                   ENTRY_PLAN.min_stop_percent) / 100

    if direction is TradeDirection.LONG:
        target, stop = price * (1 + target_pct), price * (1 - stop_pct)
        rr = safe_divide(target - price, price - stop)
    else:
        target, stop = price * (1 - target_pct), price * (1 + stop_pct)
        rr = safe_divide(price - target, stop - price)
    return target, stop, round_to(rr, 2)


def leverage_for(natr: float) -> Tuple[int, int]:
    """(suggested, max) leverage for a normalized ATR."""
    for ceiling, suggested, maximum in ENTRY_PLAN.leverage_table:
        if natr < ceiling:
            return suggested, maximum
    return ENTRY_PLAN.fallback_leverage


def plan_recommendation(direction: TradeDirection, strength: StrengthLevel, entry: float,
                        target: float, stop: float, rr: float, leverage: int) -> str:
    if direction is TradeDirection.NEUTRAL:
        return "No clear setup. Wait for stronger confirmation signals."

    if direction is TradeDirection.LONG:
        target_pct = safe_divide(target - entry, entry) * 100
        stop_pct = safe_divide(entry - stop, entry) * 100
    else:
        target_pct = safe_divide(entry - target, entry) * 100
        stop_pct = safe_divide(stop - entry, entry) * 100
    setup = (f"{direction.value} setup: Target +{target_pct:.1f}%, "
             f"Stop -{stop_pct:.1f}%, R:R {rr:g}:1.")

    if strength is StrengthLevel.VERY_STRONG:
        return f"{setup} Strong confirmation. Consider {leverage}x leverage."
    if strength is StrengthLevel.STRONG:
        return f"{setup} Good setup. Suggested {leverage}x leverage."
    if strength is StrengthLevel.MODERATE:
        return f"{setup} Moderate setup. Use smaller position size."
    return f"{setup} Weak confirmation. Consider waiting for better entry."


def plan_entry(snapshot: PriceSnapshot,
               signal: Signal = Signal.HOLD,
               strategy_confidence: float = 50.0,
               indicators: Optional[IndicatorSet] = None) -> EntryPlan:
    """
    Build a directional entry plan from a strategy signal.

    Args:
        snapshot: Point-in-time observation
        signal: Primary strategy signal; HOLD lets the indicators pick a side
        strategy_confidence: Confidence of that signal
        indicators: Precomputed indicator set (computed when omitted)

    Returns:
        EntryPlan. Untradeable assets get a NEUTRAL plan with zero confidence.
    """
    indicators = indicators or compute_indicators(snapshot)
    natr = indicators.atr.normalized
    price = snapshot.price

    if not is_tradeable(snapshot, natr):
        if is_stablecoin(snapshot.symbol):
            reason = f"{snapshot.symbol} is a stablecoin - not suitable for directional trading."
        else:
            reason = f"{snapshot.symbol} has insufficient volatility or volume for trading."
        logger.debug("%s not tradeable: %s", snapshot.symbol, reason)
        return EntryPlan(
            symbol=snapshot.symbol,
            direction=TradeDirection.NEUTRAL,
            is_optimal_entry=False,
            strength=StrengthLevel.WEAK,
            confidence=0.0,
            indicators=EntryIndicators(False, False, False, False),
            entry_price=price,
            target_price=price,
            stop_loss=price,
            risk_reward_ratio=0.0,
            suggested_leverage=1,
            max_leverage=1,
            recommendation=reason,
        )

    direction, flags = _choose_direction(snapshot, indicators, signal)
    adx = indicators.adx.adx
    has_divergence = indicators.divergence.has_divergence
    strength = _plan_strength(signal, flags.count, adx, has_divergence)
    confidence = _plan_confidence(signal, strategy_confidence, flags.count, adx, has_divergence)
    target, stop, rr = dynamic_levels(price, direction, natr, strength)
    suggested, maximum = leverage_for(natr)

    return EntryPlan(
        symbol=snapshot.symbol,
        direction=direction,
        is_optimal_entry=(direction is not TradeDirection.NEUTRAL
                          and strength in (StrengthLevel.STRONG, StrengthLevel.VERY_STRONG)),
        strength=strength,
        confidence=confidence,
        indicators=flags,
        entry_price=price,
        target_price=target,
        stop_loss=stop,
        risk_reward_ratio=rr,
        suggested_leverage=suggested,
        max_leverage=maximum,
        recommendation=plan_recommendation(direction, strength, price, target, stop,
                                           rr, suggested),
    )

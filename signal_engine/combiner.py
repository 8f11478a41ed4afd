"""
Signal Combiner
===============

Merges the opinions of the strategies that ran into one primary signal and
attaches a risk score.

    one signal      passed through unchanged
    several         COMBINED: confidence-weighted score mapped back to a
                    signal, mean confidence, reasoning "NAME: text; ...",
                    metrics prefixed with the strategy name
    none            NONE / HOLD / confidence 0, risk 50

Risk uses the volatility and agreement figures reported by the first signal
(``normalized_atr`` defaulting to 3, ``indicator_agreement`` in percent). An
agreement of 0 counts as unreported and takes the missing-agreement penalty.

``combine_results`` then lets the crash and bull-entry detectors override
the strategy verdict and writes the final recommendation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .classifications import IndicatorResult, StrengthLevel
from .config import SCORING
from .detectors import CrashSeverity, CrashSignal, EntrySignal
from .math_utils import safe_divide
from .regime_detector import MarketRegime
from .scoring import Signal, calculate_risk_score
from .strategies import StrategyName, StrategySignal, empty_signal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyResult(IndicatorResult):
    """Terminal artifact of a normal analysis."""
    regime: MarketRegime
    signals: List[StrategySignal]
    primary_signal: StrategySignal
    overall_confidence: float
    risk_score: float               # [15, 85], or 50 when nothing ran


def combine_signals(signals: Sequence[StrategySignal]) -> StrategySignal:
    """
    Merge strategy signals into one.

    The combined score is the confidence-weighted mean of each signal's
    anchor score (0 when every confidence is 0).
    """
    if not signals:
        return empty_signal()
    if len(signals) == 1:
        return signals[0]

    total_weight = sum(s.confidence for s in signals)
    weighted = sum(s.signal.score * s.confidence for s in signals)
    score = safe_divide(weighted, total_weight)

    metrics: Dict[str, float] = {}
    for s in signals:
        for key, value in s.metrics.items():
            metrics[f"{s.strategy.value}_{key}"] = value

    return StrategySignal(
        strategy=StrategyName.COMBINED,
        signal=Signal.from_score(score),
        confidence=float(round(total_weight / len(signals))),
        reasoning="; ".join(f"{s.strategy.value}: {s.reasoning}" for s in signals),
        metrics=metrics,
    )


def _risk_inputs(signal: StrategySignal) -> Tuple[float, Optional[float]]:
    natr = signal.metrics.get("normalized_atr", SCORING.default_natr)
    agreement: Optional[float] = None
    if signal.metrics.get("indicator_agreement"):
        agreement = signal.metrics["indicator_agreement"] / 100
    return natr, agreement


def build_result(regime: MarketRegime, signals: Sequence[StrategySignal]) -> StrategyResult:
    """Combine ``signals`` and score the risk of the outcome in ``regime``."""
    signals = list(signals)
    if not signals:
        return StrategyResult(regime, [], empty_signal(), 0.0, 50.0)

    primary = combine_signals(signals)
    natr, agreement = _risk_inputs(signals[0])
    risk = calculate_risk_score(regime.value, primary.confidence, natr, agreement)

    logger.debug("combined %d signal(s) in %s -> %s (confidence %.0f, risk %.0f)",
                 len(signals), regime.value, primary.signal.value, primary.confidence, risk)
    return StrategyResult(
        regime=regime,
        signals=signals,
        primary_signal=primary,
        overall_confidence=primary.confidence,
        risk_score=risk,
    )


# =============================================================================
# FINAL DECISION
# =============================================================================

_ACTIONS: Dict[Signal, str] = {
    Signal.STRONG_BUY: "ACTION: Strong buy opportunity. Consider entering position.",
    Signal.BUY: "ACTION: Buy signal. Consider smaller position or DCA.",
    Signal.HOLD: "ACTION: Hold current positions. Wait for clearer signals.",
    Signal.SELL: "ACTION: Consider taking profits or reducing exposure.",
    Signal.STRONG_SELL: "ACTION: Exit positions. Protect capital.",
}


@dataclass(frozen=True)
class FinalDecision(IndicatorResult):
    """Strategy verdict after the crash and bull-entry detectors had their say."""
    overall_signal: Signal
    confidence: float               # [0, 100]
    risk_score: float               # [15, 90]
    recommendation: str


def _join_sentences(parts: Sequence[str]) -> str:
    return ". ".join(p.strip().rstrip(".") for p in parts if p.strip()) + "."


def combine_results(result: StrategyResult, crash: CrashSignal,
                    entry: EntrySignal) -> FinalDecision:
    """
    Fold detector verdicts into the strategy result.

    Rules, in order:
        HIGH / EXTREME crash    STRONG_SELL, risk raised to 90
        MEDIUM crash            STRONG_BUY -> HOLD, anything else -> SELL,
                                risk raised to 70
        optimal bull entry      BUY -> STRONG_BUY when the entry is STRONG or
                                VERY_STRONG and no crash is flagged

    Confidence only ever rises to the overriding detector's confidence.
    """
    primary = result.primary_signal
    signal = primary.signal
    confidence = result.overall_confidence
    risk = result.risk_score

    if crash.is_crashing:
        if crash.severity in (CrashSeverity.HIGH, CrashSeverity.EXTREME):
            signal = Signal.STRONG_SELL
            confidence = max(confidence, crash.confidence)
            risk = max(risk, SCORING.severe_crash_risk)
        elif crash.severity is CrashSeverity.MEDIUM:
            signal = Signal.HOLD if signal is Signal.STRONG_BUY else Signal.SELL
            risk = max(risk, SCORING.medium_crash_risk)
    elif (entry.is_optimal_entry and signal is Signal.BUY
          and entry.strength in (StrengthLevel.STRONG, StrengthLevel.VERY_STRONG)):
        signal = Signal.STRONG_BUY
        confidence = max(confidence, entry.confidence)

    parts = [f"Market Regime: {result.regime.value}"]
    if crash.is_crashing:
        parts.append(crash.recommendation)
    else:
        if entry.is_optimal_entry:
            parts.append(entry.recommendation)
        parts.append(primary.reasoning)
        parts.append(_ACTIONS[signal])

    if signal is not primary.signal:
        logger.info("detector override: %s -> %s (crash %s, entry %s)",
                    primary.signal.value, signal.value, crash.severity.value,
                    entry.strength.value if entry.is_optimal_entry else "none")

    return FinalDecision(
        overall_signal=signal,
        confidence=float(round(confidence)),
        risk_score=float(round(risk)),
        recommendation=_join_sentences(parts),
    )

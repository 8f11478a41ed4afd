"""
Signal Pipeline
===============

Facade over the signal layers. One snapshot goes in and a decision comes
out:

    1. INDICATORS   core indicator set, computed once
    2. REGIME       rule-table classification
    3. STRATEGIES   regime-appropriate strategies
    4. COMBINE      primary signal, confidence and risk
    5. DETECT       crash and bull entry detectors (assess only)
    6. DECIDE       detector overrides, recommendation and entry plan (assess only)

Every stage is pure, so batches can be fanned out over a thread pool without
locks. Results come back in input order whether or not a pool is used.
"""

from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from .classifications import IndicatorResult
from .combiner import FinalDecision, StrategyResult, build_result, combine_results
from .config import SCORING
from .detectors import CrashSignal, EntryPlan, EntrySignal, plan_entry
from .detectors import detect_bull_entry as _detect_bull_entry
from .detectors import detect_crash as _detect_crash
from .indicators import IndicatorSet, compute_indicators
from .math_utils import mean, round_to
from .mean_reversion import CompositeScores, calculate_composite_scores
from .regime_detector import RegimeAssessment, RegimePolicy, detect_regime
from .scoring import Signal
from .snapshot import PriceSnapshot
from .statistical import NoiseScoreResult, StatisticalMeasures
from .strategies import execute_strategies, select_strategies

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class MarketAssessment(IndicatorResult):
    """Everything the engine can say about one snapshot."""
    symbol: str
    price: float
    timestamp: datetime
    regime: RegimeAssessment
    strategy: StrategyResult
    decision: FinalDecision
    crash: CrashSignal
    bull_entry: EntrySignal
    entry_plan: EntryPlan
    composite: CompositeScores
    noise: NoiseScoreResult

    @property
    def signal(self) -> Signal:
        return self.decision.overall_signal

    @property
    def confidence(self) -> float:
        return self.decision.confidence

    @property
    def risk_score(self) -> float:
        return self.decision.risk_score

    @property
    def recommendation(self) -> str:
        return self.decision.recommendation


@dataclass(frozen=True)
class MarketOverview(IndicatorResult):
    """Summary of a batch of assessments."""
    total_analyzed: int
    high_risk_assets: List[str]     # risk score above the high-risk cutoff
    average_risk_score: float
    signal_distribution: Dict[str, int]
    crashing_assets: List[str]


# =============================================================================
# PIPELINE
# =============================================================================

class SignalPipeline:
    """
    Runs the signal layers for single snapshots and batches.

    Args:
        policy: Regime rule table
        max_workers: Thread pool size for batches; ``None`` or 1 runs them
            sequentially
    """

    def __init__(self, policy: RegimePolicy = RegimePolicy.BOLLINGER,
                 max_workers: Optional[int] = None):
        self.policy = policy
        self.max_workers = max_workers

    def __repr__(self) -> str:
        return f"SignalPipeline(policy={self.policy.value}, max_workers={self.max_workers})"

    # -------------------------------------------------------------------------
    # Single snapshot
    # -------------------------------------------------------------------------

    def _strategy_result(self, snapshot: PriceSnapshot,
                         indicators: IndicatorSet) -> StrategyResult:
        regime = detect_regime(snapshot, indicators, self.policy).regime
        signals = execute_strategies(snapshot, select_strategies(regime), indicators)
        return build_result(regime, signals)

    def analyze(self, snapshot: PriceSnapshot) -> StrategyResult:
        """Regime, strategy signals, primary signal, confidence and risk."""
        indicators = compute_indicators(snapshot)
        result = self._strategy_result(snapshot, indicators)
        logger.debug("%s -> %s %s (confidence %.0f, risk %.0f)", snapshot.symbol,
                     result.regime.value, result.primary_signal.signal.value,
                     result.overall_confidence, result.risk_score)
        return result

    def detect_crash(self, snapshot: PriceSnapshot) -> CrashSignal:
        return _detect_crash(snapshot)

    def detect_bull_entry(self, snapshot: PriceSnapshot) -> EntrySignal:
        return _detect_bull_entry(snapshot)

    def assess(self, snapshot: PriceSnapshot) -> MarketAssessment:
        """
        Full assessment: strategy result, detectors, final decision, entry
        plan, composite scores and signal noise.

        All parts read one shared indicator set. The entry plan follows the
        final decision, so a detected crash turns it SHORT or NEUTRAL.
        """
        indicators = compute_indicators(snapshot)
        regime = detect_regime(snapshot, indicators, self.policy)
        signals = execute_strategies(snapshot, select_strategies(regime.regime), indicators)
        result = build_result(regime.regime, signals)
        primary = result.primary_signal

        crash = _detect_crash(snapshot, indicators)
        bull_entry = _detect_bull_entry(snapshot, indicators)
        decision = combine_results(result, crash, bull_entry)

        agreement = primary.metrics.get("indicator_agreement")
        if agreement is None and signals:
            agreement = signals[0].metrics.get("indicator_agreement")
        noise = StatisticalMeasures.calculate_noise_score(
            indicators.adx.adx, indicators.atr.normalized,
            agreement / 100 if agreement is not None else None)

        assessment = MarketAssessment(
            symbol=snapshot.symbol,
            price=snapshot.price,
            timestamp=snapshot.timestamp,
            regime=regime,
            strategy=result,
            decision=decision,
            crash=crash,
            bull_entry=bull_entry,
            entry_plan=plan_entry(snapshot, decision.overall_signal, decision.confidence,
                                  indicators),
            composite=calculate_composite_scores(snapshot, indicators.rsi.value,
                                                 indicators.volume_roc.value),
            noise=noise,
        )
        logger.debug("%s assessed: %s %s, crash=%s, plan=%s", snapshot.symbol,
                     regime.regime.value, decision.overall_signal.value,
                     assessment.crash.severity.value, assessment.entry_plan.direction.value)
        return assessment

    # -------------------------------------------------------------------------
    # Batches
    # -------------------------------------------------------------------------

    def _map(self, fn: Callable[[PriceSnapshot], T],
             snapshots: Sequence[PriceSnapshot]) -> List[T]:
        if not snapshots:
            return []
        if self.max_workers is None or self.max_workers <= 1 or len(snapshots) == 1:
            return [fn(s) for s in snapshots]
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(fn, snapshots))

    def analyze_batch(self, snapshots: Sequence[PriceSnapshot]) -> List[StrategyResult]:
        """``analyze`` for every snapshot, in input order."""
        results = self._map(self.analyze, snapshots)
        logger.info("Analyzed %d snapshot(s) with the %s policy",
                    len(results), self.policy.value.lower())
        return results

    def assess_batch(self, snapshots: Sequence[PriceSnapshot]) -> List[MarketAssessment]:
        """``assess`` for every snapshot, in input order."""
        assessments = self._map(self.assess, snapshots)
        logger.info("Assessed %d snapshot(s) with the %s policy",
                    len(assessments), self.policy.value.lower())
        return assessments


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def analyze(snapshot: PriceSnapshot,
            policy: RegimePolicy = RegimePolicy.BOLLINGER) -> StrategyResult:
    return SignalPipeline(policy).analyze(snapshot)


def detect_crash(snapshot: PriceSnapshot) -> CrashSignal:
    return _detect_crash(snapshot)


def detect_bull_entry(snapshot: PriceSnapshot) -> EntrySignal:
    return _detect_bull_entry(snapshot)


def analyze_batch(snapshots: Sequence[PriceSnapshot],
                  policy: RegimePolicy = RegimePolicy.BOLLINGER,
                  max_workers: Optional[int] = None) -> List[StrategyResult]:
    return SignalPipeline(policy, max_workers).analyze_batch(snapshots)


# =============================================================================
# BATCH SUMMARIES
# =============================================================================

def create_market_overview(assessments: Sequence[MarketAssessment]) -> MarketOverview:
    """Counts, high-risk symbols and the signal distribution of a batch."""
    distribution = Counter(a.signal.value for a in assessments)
    return MarketOverview(
        total_analyzed=len(assessments),
        high_risk_assets=[a.symbol for a in assessments
                          if a.risk_score > SCORING.high_risk_cutoff],
        average_risk_score=round_to(mean([a.risk_score for a in assessments]), 2),
        signal_distribution={s.value: distribution.get(s.value, 0) for s in Signal},
        crashing_assets=[a.symbol for a in assessments if a.crash.is_crashing],
    )


def filter_high_confidence(assessments: Sequence[MarketAssessment],
                           min_confidence: float = SCORING.high_confidence_cutoff,
                           ) -> List[MarketAssessment]:
    """Assessments whose primary signal meets ``min_confidence``."""
    return [a for a in assessments if a.confidence >= min_confidence]


def rank_by_quality(assessments: Sequence[MarketAssessment]) -> List[MarketAssessment]:
    """Best composite quality first; ties keep input order."""
    return sorted(assessments, key=lambda a: a.composite.overall_quality, reverse=True)


# =============================================================================
# REPORT FORMATTING
# =============================================================================

def format_analysis_report(assessment: MarketAssessment) -> str:
    """
    Format an assessment as a human-readable text report.

    Args:
        assessment: Result of ``SignalPipeline.assess``

    Returns:
        Formatted multi-line string
    """
    result = assessment.strategy
    primary = result.primary_signal
    inputs = assessment.regime.inputs
    crash = assessment.crash
    entry = assessment.bull_entry
    plan = assessment.entry_plan
    composite = assessment.composite

    lines = [
        "=" * 70,
        f"SIGNAL ANALYSIS: {assessment.symbol}",
        "=" * 70,
        f"Price: {assessment.price:,.2f}",
        f"Regime: {result.regime.value} ({assessment.regime.policy.value.lower()} policy)",
        f"Strategy Signal: {primary.signal.value} "
        f"(confidence {result.overall_confidence:.0f}, risk {result.risk_score:.0f})",
        f"DECISION: {assessment.signal.value}",
        f"Confidence: {assessment.confidence:.0f}",
        f"Risk Score: {assessment.risk_score:.0f}",
        "",
        assessment.recommendation,
        "",
        "-" * 70,
        "REGIME INPUTS",
        "-" * 70,
        f"  RSI:              {inputs.rsi:.2f}",
        f"  24h Change:       {inputs.change_24h:+.2f}%",
        f"  Normalized ATR:   {inputs.normalized_atr:.2f}%",
        f"  ADX:              {inputs.adx:.2f}",
        f"  BB Bandwidth:     {inputs.bandwidth:.4f}",
        f"  %B:               {inputs.percent_b:.4f}",
        "",
        "-" * 70,
        "STRATEGIES",
        "-" * 70,
    ]
    if result.signals:
        for s in result.signals:
            lines.append(f"  {s.strategy.value:<15} {s.signal.value:<12} "
                         f"confidence {s.confidence:.0f}")
            lines.append(f"    {s.reasoning}")
    else:
        lines.append(f"  {primary.reasoning}")

    lines.extend([
        "",
        "-" * 70,
        "DETECTORS",
        "-" * 70,
        f"  Crash:       {crash.severity.value} ({crash.confidence:.0f}%) "
        f"{'TRIGGERED' if crash.is_crashing else 'clear'}",
        f"    {crash.recommendation}",
        f"  Bull Entry:  {entry.strength.value} ({entry.confidence:.0f}%) "
        f"{'OPTIMAL' if entry.is_optimal_entry else 'not optimal'}",
        f"    {entry.recommendation}",
        f"  Entry Plan:  {plan.direction.value} {plan.strength.value} "
        f"(confidence {plan.confidence:.0f}, leverage {plan.suggested_leverage}x/"
        f"{plan.max_leverage}x)",
        f"    {plan.recommendation}",
        "",
        "-" * 70,
        "COMPOSITE SCORES",
        "-" * 70,
        f"  Momentum:        {composite.momentum.score:+.0f} ({composite.momentum.signal.value})",
        f"  Volatility:      {composite.volatility.score:.0f} "
        f"({composite.volatility.regime.value})",
        f"  Mean Reversion:  {composite.mean_reversion.score:+.0f} "
        f"({composite.mean_reversion.signal.value})",
        f"  Overall Quality: {composite.overall_quality:.0f}",
        f"  Signal Noise:    {assessment.noise.score:.0f} ({assessment.noise.level.value})",
        "=" * 70,
    ])
    return "\n".join(lines)


def format_overview(overview: MarketOverview) -> str:
    """One-screen summary of a batch."""
    distribution = ", ".join(f"{name} {count}"
                             for name, count in overview.signal_distribution.items() if count)
    lines = [
        "=" * 70,
        "MARKET OVERVIEW",
        "=" * 70,
        f"Assets Analyzed:    {overview.total_analyzed}",
        f"Average Risk Score: {overview.average_risk_score:.1f}",
        f"Signals:            {distribution or 'none'}",
        f"High Risk:          {', '.join(overview.high_risk_assets) or 'none'}",
        f"Crashing:           {', '.join(overview.crashing_assets) or 'none'}",
        "=" * 70,
    ]
    return "\n".join(lines)

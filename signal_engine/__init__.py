"""
Snapshot signal engine.

Turns a single 24h market snapshot into a regime label, a combined trading
signal with confidence and risk, and crash / entry detector verdicts.

    >>> from signal_engine import PriceSnapshot, analyze
    >>> snap = PriceSnapshot("BTC", 50000, 3e10, 1e12, 1.2, 51000, 49000)
    >>> analyze(snap).primary_signal.signal
"""

from .combiner import FinalDecision, StrategyResult, combine_results, combine_signals
from .config import (
    DETECTORS, ENTRY_PLAN, INDICATORS, REGIME, SCORING, SNAPSHOT, STRATEGIES,
)
from .detectors import CrashSignal, EntryPlan, EntrySignal, plan_entry
from .indicators import IndicatorSet, compute_indicators, compute_quick_indicators
from .pipeline import (
    MarketAssessment,
    MarketOverview,
    SignalPipeline,
    analyze,
    analyze_batch,
    create_market_overview,
    detect_bull_entry,
    detect_crash,
    filter_high_confidence,
    format_analysis_report,
    rank_by_quality,
)
from .regime_detector import MarketRegime, RegimePolicy, detect_regime
from .scoring import Signal
from .snapshot import PriceSnapshot, SnapshotValidationError
from .strategies import StrategyName, StrategySignal

__version__ = "1.0.0"

__all__ = [
    "CrashSignal",
    "DETECTORS",
    "ENTRY_PLAN",
    "EntryPlan",
    "EntrySignal",
    "FinalDecision",
    "INDICATORS",
    "IndicatorSet",
    "MarketAssessment",
    "MarketOverview",
    "MarketRegime",
    "PriceSnapshot",
    "REGIME",
    "RegimePolicy",
    "SCORING",
    "SNAPSHOT",
    "STRATEGIES",
    "Signal",
    "SignalPipeline",
    "SnapshotValidationError",
    "StrategyName",
    "StrategyResult",
    "StrategySignal",
    "analyze",
    "analyze_batch",
    "combine_results",
    "combine_signals",
    "compute_indicators",
    "compute_quick_indicators",
    "create_market_overview",
    "detect_bull_entry",
    "detect_crash",
    "detect_regime",
    "filter_high_confidence",
    "format_analysis_report",
    "plan_entry",
    "rank_by_quality",
]

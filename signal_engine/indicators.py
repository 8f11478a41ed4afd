"""
Indicator Aggregator
====================

Computes the core indicator set for a snapshot in one pass. The regime
classifier, the strategies and the detectors all read from the same
``IndicatorSet`` so every layer sees identical numbers.

Core set:
    RSI (snapshot)     MACD         ADX
    ATR                Volume ROC   Drawdown
    RSI divergence
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .classifications import IndicatorResult
from .momentum import DivergenceResult, MomentumIndicators, RSIResult
from .risk_analytics import DrawdownResult, RiskMetrics
from .snapshot import DerivedSeries, PriceSnapshot, derive_series
from .trend import ADXResult, MACDResult, TrendIndicators
from .volatility import ATRResult, VolatilityIndicators
from .volume import VolumeIndicators, VolumeROCResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndicatorSet(IndicatorResult):
    """Core indicators for one snapshot."""
    rsi: RSIResult
    macd: MACDResult
    adx: ADXResult
    atr: ATRResult
    volume_roc: VolumeROCResult
    drawdown: DrawdownResult
    divergence: DivergenceResult


@dataclass(frozen=True)
class QuickIndicators(IndicatorResult):
    """Screening subset: RSI, ATR and ADX only."""
    rsi: RSIResult
    atr: ATRResult
    adx: ADXResult


def compute_indicators(snapshot: PriceSnapshot) -> IndicatorSet:
    """Compute the full core indicator set."""
    series: DerivedSeries = derive_series(snapshot)
    rsi = MomentumIndicators.calculate_rsi(snapshot)

    indicators = IndicatorSet(
        rsi=rsi,
        macd=TrendIndicators.calculate_macd(series.closes),
        adx=TrendIndicators.calculate_adx(series.highs, series.lows, series.closes),
        atr=VolatilityIndicators.calculate_atr(series.highs, series.lows, series.closes),
        volume_roc=VolumeIndicators.calculate_volume_roc(series.volumes),
        drawdown=RiskMetrics.calculate_max_drawdown(series.closes),
        divergence=MomentumIndicators.calculate_divergence(snapshot, rsi),
    )
    logger.debug("%s indicators: rsi=%.1f natr=%.2f adx=%.2f vroc=%.2f",
                 snapshot.symbol, rsi.value, indicators.atr.normalized,
                 indicators.adx.adx, indicators.volume_roc.value)
    return indicators


def compute_quick_indicators(snapshot: PriceSnapshot) -> QuickIndicators:
    """Cheap screening pass with RSI, ATR and ADX."""
    series = derive_series(snapshot)
    return QuickIndicators(
        rsi=MomentumIndicators.calculate_rsi(snapshot),
        atr=VolatilityIndicators.calculate_atr(series.highs, series.lows, series.closes),
        adx=TrendIndicators.calculate_adx(series.highs, series.lows, series.closes),
    )

"""Tests for mean-reversion indicators and composite scores.

This module verifies:
1. %B zones, band location and the outside-band setup flag
2. Bollinger width squeeze buckets and the MA-distance pivot
3. Keltner width from half the 24h range
4. Weighted mean-reversion score and its direction
5. Momentum / volatility / reversion composites and overall quality
"""

from __future__ import annotations

import pytest

from signal_engine.classifications import ExtendedZone, Outlook, StrengthLevel, VolatilityLevel
from signal_engine.mean_reversion import (
    BandLocation,
    MADistance,
    MeanReversionIndicators,
    ReversionDirection,
    SqueezeLevel,
    StretchSignal,
    VolatilityRegime,
    WidthTrend,
    calculate_composite_scores,
    calculate_momentum_score,
    calculate_reversion_score,
    calculate_volatility_score,
)
from signal_engine.snapshot import PriceSnapshot


# ===========================================================================
# STRETCH INDICATORS
# ===========================================================================


class TestPercentB:

    def test_price_far_above_band(self, overextended_snapshot):
        result = MeanReversionIndicators.calculate_percent_b(overextended_snapshot)
        assert result.value == pytest.approx(1.641, abs=1e-3)
        assert result.signal is ExtendedZone.EXTREME_OVERBOUGHT
        assert result.position is BandLocation.ABOVE_BANDS
        assert result.mean_reversion_setup

    def test_mid_band(self, neutral_snapshot):
        result = MeanReversionIndicators.calculate_percent_b(neutral_snapshot)
        assert result.value == 0.5
        assert result.signal is ExtendedZone.NEUTRAL
        assert result.position is BandLocation.MIDDLE
        assert not result.mean_reversion_setup


class TestWidthAndDistance:

    def test_tight_band(self, quiet_snapshot):
        result = MeanReversionIndicators.calculate_bollinger_width(quiet_snapshot)
        assert result.squeeze is SqueezeLevel.TIGHT
        assert result.trend is WidthTrend.NARROWING

    def test_normal_band(self, neutral_snapshot):
        result = MeanReversionIndicators.calculate_bollinger_width(neutral_snapshot)
        assert result.width_percent == pytest.approx(17.52, abs=0.01)
        assert result.squeeze is SqueezeLevel.NORMAL
        assert result.trend is WidthTrend.STABLE

    def test_default_band_is_wide(self):
        snap = PriceSnapshot("BTC", 50000, 3e10, 1e12, 0.0)
        result = MeanReversionIndicators.calculate_bollinger_width(snap)
        assert result.squeeze is SqueezeLevel.WIDE
        assert result.trend is WidthTrend.WIDENING

    def test_distance_from_pivot(self, overextended_snapshot):
        result = MeanReversionIndicators.calculate_distance_from_ma(overextended_snapshot)
        assert result.distance == 12.5
        assert result.moving_average == pytest.approx(53333.3333, abs=1e-3)
        assert result.signal is MADistance.EXTREME_ABOVE
        assert result.mean_reversion_setup

    def test_distance_without_range_is_zero(self):
        snap = PriceSnapshot("BTC", 50000, 3e10, 1e12, 0.0)
        result = MeanReversionIndicators.calculate_distance_from_ma(snap)
        assert result.distance == 0.0
        assert result.signal is MADistance.NEUTRAL

    def test_keltner_width(self, quiet_snapshot, capitulation_snapshot):
        quiet = MeanReversionIndicators.calculate_keltner_width(quiet_snapshot)
        assert quiet.width == pytest.approx(0.008)
        assert quiet.volatility is VolatilityLevel.VERY_LOW

        wild = MeanReversionIndicators.calculate_keltner_width(capitulation_snapshot)
        assert wild.width == pytest.approx(2.0)
        assert wild.volatility is VolatilityLevel.VERY_HIGH


class TestMeanReversionScore:
    """%B 30%, width 25%, distance 25%, Keltner 20%."""

    def test_overextended(self, overextended_snapshot):
        result = MeanReversionIndicators.calculate_mean_reversion_score(overextended_snapshot)
        assert result.percent_b_component == 100.0
        assert result.width_component == 40.0
        assert result.distance_component == 62.5
        assert result.keltner_component == 70.0
        assert result.score == 70.0
        assert result.direction is ReversionDirection.SELL
        assert result.strength is StrengthLevel.STRONG

    def test_quiet_market(self, quiet_snapshot):
        result = MeanReversionIndicators.calculate_mean_reversion_score(quiet_snapshot)
        assert result.score == 45.0
        assert result.direction is ReversionDirection.NEUTRAL
        assert result.strength is StrengthLevel.MODERATE


# ===========================================================================
# COMPOSITES
# ===========================================================================


class TestCompositeScores:

    def test_momentum_score(self):
        result = calculate_momentum_score(rsi=80, volume_roc=0, change_24h=10)
        assert result.score == 35.0
        assert result.signal is Outlook.BULLISH
        assert result.insight == "Positive momentum building"

    def test_momentum_score_clamps_volume(self):
        result = calculate_momentum_score(rsi=10, volume_roc=300, change_24h=-20)
        assert result.signal is Outlook.BEARISH
        assert -38 <= result.score <= -37

    def test_volatility_score(self):
        low = calculate_volatility_score(1, 1, 100)
        assert low.score == 8.0
        assert low.regime is VolatilityRegime.LOW

        wild = calculate_volatility_score(17.52, 4.0, 0.0)
        assert wild.score == 76.0
        assert wild.regime is VolatilityRegime.EXTREME

    @pytest.mark.parametrize("percent_b,distance,signal", [
        (1.0, 10, StretchSignal.OVERBOUGHT),
        (0.0, -10, StretchSignal.OVERSOLD),
        (0.5, 0, StretchSignal.NEUTRAL),
    ])
    def test_reversion_score(self, percent_b, distance, signal):
        assert calculate_reversion_score(percent_b, distance).signal is signal

    def test_composite_for_neutral_snapshot(self, neutral_snapshot):
        composite = calculate_composite_scores(neutral_snapshot, rsi=54.2, volume_roc=-40.0)
        assert composite.momentum.score == -6.0
        assert composite.volatility.regime is VolatilityRegime.HIGH
        assert composite.mean_reversion.score == 0.0
        assert composite.overall_quality == 20.0

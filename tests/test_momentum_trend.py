"""Tests for momentum oscillators and trend indicators.

This module verifies:
1. Snapshot RSI mapping, ATH/ATL blend, clamping and zones
2. Divergence against the all-time range
3. Series oscillators (stochastic, Williams %R, ROC, CCI, UO, AO)
4. MACD and ADX collapse to neutral on snapshot-derived series
5. ADX, Parabolic SAR and SuperTrend on longer textbook series
"""

from __future__ import annotations

import pytest

from signal_engine.classifications import (
    Crossover, Direction, ExtendedZone, Outlook, StrengthLevel, Zone,
)
from signal_engine.momentum import (
    Acceleration, MomentumIndicators, Movement, PriceAction, classify_rsi,
)
from signal_engine.snapshot import PriceSnapshot, derive_series
from signal_engine.trend import TrendIndicators, classify_macd_trend, classify_trend_strength


# ===========================================================================
# SNAPSHOT RSI
# ===========================================================================


class TestSnapshotRSI:
    """RSI = 50 + 3 * change, blended with the all-time range position."""

    def test_flat_day_is_fifty(self):
        snap = PriceSnapshot("BTC", 100, 1e6, 1e8, 0.0)
        rsi = MomentumIndicators.calculate_rsi(snap)
        assert rsi.value == 50.0
        assert rsi.signal is Zone.NEUTRAL
        assert rsi.momentum == 0.0

    def test_rally_is_overbought(self, rally_snapshot):
        rsi = MomentumIndicators.calculate_rsi(rally_snapshot)
        assert rsi.value == 80.0
        assert rsi.signal is Zone.OVERBOUGHT
        assert rsi.momentum == pytest.approx(0.6)

    def test_crash_clamps_to_floor(self, crash_snapshot):
        rsi = MomentumIndicators.calculate_rsi(crash_snapshot)
        assert rsi.value == 10.0
        assert rsi.signal is Zone.OVERSOLD

    def test_extreme_rally_clamps_to_ceiling(self):
        snap = PriceSnapshot("PUMP", 1.0, 1e6, 1e7, 40.0)
        assert MomentumIndicators.calculate_rsi(snap).value == 90.0

    def test_ath_atl_blend(self, neutral_snapshot):
        """0.8 * 50 + 0.2 * (47000 / 66000 * 100) = 54.2."""
        assert MomentumIndicators.calculate_rsi(neutral_snapshot).value == 54.2

    @pytest.mark.parametrize("value,zone", [
        (66, Zone.OVERBOUGHT), (65, Zone.NEUTRAL), (35, Zone.NEUTRAL), (34.9, Zone.OVERSOLD),
    ])
    def test_zone_boundaries(self, value, zone):
        assert classify_rsi(value) is zone


class TestDivergence:
    """Price near an all-time extreme without RSI agreement."""

    def test_bullish_divergence_near_atl(self, near_atl_snapshot):
        result = MomentumIndicators.calculate_divergence(near_atl_snapshot)
        assert result.has_divergence
        assert result.divergence_type is Crossover.BULLISH
        assert result.price_action is PriceAction.LOWER_LOW
        assert result.strength == 45.0

    def test_bearish_divergence_near_ath(self):
        snap = PriceSnapshot("BTC", 66000, 3e10, 1e12, 0.0, ath=69000, atl=3000)
        result = MomentumIndicators.calculate_divergence(snap)
        assert result.divergence_type is Crossover.BEARISH
        assert result.price_action is PriceAction.HIGHER_HIGH
        assert 0 < result.strength <= 100

    def test_no_all_time_range(self, rally_snapshot):
        result = MomentumIndicators.calculate_divergence(rally_snapshot)
        assert not result.has_divergence
        assert result.divergence_type is Crossover.NONE

    def test_mid_range_has_no_divergence(self, neutral_snapshot):
        result = MomentumIndicators.calculate_divergence(neutral_snapshot)
        assert not result.has_divergence
        assert result.price_action is PriceAction.NEUTRAL


# ===========================================================================
# SERIES OSCILLATORS
# ===========================================================================


class TestSeriesOscillators:
    """Oscillators on derived and synthetic series."""

    def test_series_rsi(self):
        assert MomentumIndicators.calculate_rsi_series([1, 2, 3, 4, 5]) == 100.0
        assert MomentumIndicators.calculate_rsi_series([5, 5, 5]) == 50.0
        assert MomentumIndicators.calculate_rsi_series([5]) == 50.0
        assert MomentumIndicators.calculate_rsi_series([5, 4, 3]) == 0.0

    def test_stochastic_on_derived_series(self, neutral_snapshot):
        series = derive_series(neutral_snapshot)
        result = MomentumIndicators.calculate_stochastic(series.closes, series.highs, series.lows)
        assert result.k == 100.0
        assert result.d == 100.0
        assert result.signal is Zone.OVERBOUGHT

    def test_stochastic_flat_range_is_midpoint(self, flat_snapshot):
        series = derive_series(flat_snapshot)
        result = MomentumIndicators.calculate_stochastic(series.closes, series.highs, series.lows)
        assert result.k == 50.0
        assert result.signal is Zone.NEUTRAL

    def test_stochastic_empty(self):
        result = MomentumIndicators.calculate_stochastic([], [], [])
        assert (result.k, result.d) == (50.0, 50.0)

    def test_williams_r(self, neutral_snapshot):
        series = derive_series(neutral_snapshot)
        result = MomentumIndicators.calculate_williams_r(series.closes, series.highs, series.lows)
        assert result.value == 0.0
        assert result.signal is Zone.OVERBOUGHT
        assert result.momentum is Direction.BULLISH

    def test_roc(self):
        assert MomentumIndicators.calculate_roc([100, 120]).signal is Outlook.STRONG_BULLISH
        assert MomentumIndicators.calculate_roc([100, 95]).signal is Outlook.BEARISH
        assert MomentumIndicators.calculate_roc([]).value == 0.0

    def test_raw_momentum(self):
        result = MomentumIndicators.calculate_momentum([100, 105])
        assert result.value == 5.0
        assert result.percent == 5.0
        assert result.direction is Movement.UP
        assert result.strength == 50.0

    def test_cci_flat_is_zero(self):
        result = MomentumIndicators.calculate_cci([10] * 5, [10] * 5, [10] * 5)
        assert result.value == 0.0
        assert result.signal is ExtendedZone.NEUTRAL

    def test_ultimate_oscillator_on_derived_series(self, neutral_snapshot):
        series = derive_series(neutral_snapshot)
        result = MomentumIndicators.calculate_ultimate_oscillator(
            series.closes, series.highs, series.lows)
        assert result.value == 75.0
        assert result.signal is Zone.OVERBOUGHT

    def test_awesome_oscillator_constant_range(self, neutral_snapshot):
        series = derive_series(neutral_snapshot)
        result = MomentumIndicators.calculate_awesome_oscillator(series.highs, series.lows)
        assert result.value == 0.0
        assert result.momentum is Acceleration.STABLE


# ===========================================================================
# TREND
# ===========================================================================


class TestMACD:
    """MACD on short and long series."""

    def test_derived_series_is_neutral(self, rally_snapshot):
        series = derive_series(rally_snapshot)
        result = TrendIndicators.calculate_macd(series.closes)
        assert result.macd == 0.0
        assert result.histogram == 0.0
        assert result.trend is Direction.NEUTRAL
        assert result.crossover is Crossover.NONE

    def test_empty_series(self):
        result = TrendIndicators.calculate_macd([])
        assert result.trend is Direction.NEUTRAL

    def test_rising_series_has_positive_macd(self):
        closes = [100 * 1.01 ** i for i in range(60)]
        assert TrendIndicators.calculate_macd(closes).macd > 0

    def test_trend_classifier(self):
        assert classify_macd_trend(1, 1) is Direction.BULLISH
        assert classify_macd_trend(-1, -1) is Direction.BEARISH
        assert classify_macd_trend(1, -1) is Direction.NEUTRAL


class TestADX:
    """Directional movement system."""

    def test_derived_series_has_no_complete_window(self, neutral_snapshot):
        series = derive_series(neutral_snapshot)
        result = TrendIndicators.calculate_adx(series.highs, series.lows, series.closes)
        assert result.adx == 0.0
        assert result.trend_strength is StrengthLevel.VERY_WEAK
        assert result.trend_direction is Direction.NEUTRAL

    def test_steady_uptrend(self):
        highs = [100 + i for i in range(40)]
        lows = [98 + i for i in range(40)]
        closes = [99 + i for i in range(40)]
        result = TrendIndicators.calculate_adx(highs, lows, closes)
        assert result.adx == pytest.approx(100.0)
        assert result.minus_di == 0.0
        assert result.trend_direction is Direction.BULLISH
        assert result.trend_strength is StrengthLevel.VERY_STRONG

    def test_steady_downtrend(self):
        highs = [200 - i for i in range(40)]
        lows = [198 - i for i in range(40)]
        closes = [199 - i for i in range(40)]
        result = TrendIndicators.calculate_adx(highs, lows, closes)
        assert result.adx == pytest.approx(100.0)
        assert result.plus_di == 0.0
        assert result.minus_di == pytest.approx(50.0)
        assert result.trend_direction is Direction.BEARISH

    @pytest.mark.parametrize("adx,level", [
        (10, StrengthLevel.VERY_WEAK), (22, StrengthLevel.WEAK), (30, StrengthLevel.MODERATE),
        (45, StrengthLevel.STRONG), (60, StrengthLevel.VERY_STRONG),
    ])
    def test_strength_bands(self, adx, level):
        assert classify_trend_strength(adx) is level


class TestStopAndReverse:

    def test_parabolic_sar_uptrend(self):
        result = TrendIndicators.calculate_parabolic_sar(
            [10, 11, 12, 13], [9, 10, 11, 12], [9.5, 10.5, 11.5, 12.5])
        assert result.trend is Direction.BULLISH
        assert result.sar == pytest.approx(9.12)
        assert result.acceleration_factor == pytest.approx(0.06)
        assert result.extreme_point == 13
        assert not result.reversal

    def test_parabolic_sar_reversal(self):
        result = TrendIndicators.calculate_parabolic_sar(
            [10, 11, 12, 8], [9, 10, 11, 5], [9.5, 10.5, 11.5, 6])
        assert result.trend is Direction.BEARISH
        assert result.reversal

    def test_supertrend_on_derived_series(self, neutral_snapshot):
        series = derive_series(neutral_snapshot)
        result = TrendIndicators.calculate_supertrend(series.highs, series.lows, series.closes)
        assert result.trend is Direction.BULLISH
        assert result.value == pytest.approx(44000)
        assert result.upper_band == pytest.approx(56000)

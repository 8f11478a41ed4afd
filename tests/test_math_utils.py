"""Tests for the numeric primitives.

This module verifies:
1. Guarded arithmetic (safe_divide, clamp, round_to) never yields NaN/inf
2. Descriptive statistics against hand-computed values
3. Moving averages: SMA seed, EMA step, short-series behaviour
4. True range and ATR on degenerate series
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from signal_engine.math_utils import (
    average_true_range,
    clamp,
    correlation,
    covariance,
    ema,
    ema_series,
    log_returns,
    mean,
    normalize,
    percentile,
    round_to,
    safe_divide,
    sign,
    simple_returns,
    sma,
    sma_series,
    std_dev,
    true_range_series,
    variance,
    z_score,
)


# ===========================================================================
# GUARDED ARITHMETIC
# ===========================================================================


class TestGuardedArithmetic:
    """Division and rounding never leak NaN or infinity."""

    def test_safe_divide_normal(self):
        assert safe_divide(10, 4) == 2.5

    def test_safe_divide_zero_denominator_uses_default(self):
        assert safe_divide(1, 0) == 0.0
        assert safe_divide(1, 0, default=0.5) == 0.5

    def test_safe_divide_non_finite_denominator(self):
        assert safe_divide(1, float("inf"), default=7.0) == 7.0
        assert safe_divide(1, float("nan"), default=7.0) == 7.0

    def test_clamp(self):
        assert clamp(5, 0, 10) == 5
        assert clamp(-5, 0, 10) == 0
        assert clamp(50, 0, 10) == 10

    def test_round_to_maps_non_finite_to_zero(self):
        assert round_to(float("nan")) == 0.0
        assert round_to(float("inf")) == 0.0
        assert round_to(1.23456, 3) == 1.235

    def test_sign(self):
        assert [sign(-3), sign(0), sign(2.5)] == [-1, 0, 1]


# ===========================================================================
# DESCRIPTIVE STATISTICS
# ===========================================================================


class TestDescriptiveStatistics:
    """Hand-checked statistics."""

    def test_mean_and_empty(self):
        assert mean([1, 2, 3, 4]) == 2.5
        assert mean([]) == 0.0

    def test_population_and_sample_variance(self):
        values = [2, 4, 4, 4, 5, 5, 7, 9]
        assert variance(values) == pytest.approx(4.0)
        assert std_dev(values) == pytest.approx(2.0)
        assert variance(values, sample=True) == pytest.approx(32 / 7)

    def test_sample_variance_single_value_falls_back(self):
        assert variance([3.0], sample=True) == 0.0

    def test_covariance_and_correlation(self):
        x = [1, 2, 3, 4, 5]
        y = [2, 4, 6, 8, 10]
        assert covariance(x, y) == pytest.approx(4.0)
        assert correlation(x, y) == pytest.approx(1.0)
        assert correlation(x, [-v for v in y]) == pytest.approx(-1.0)

    def test_correlation_without_dispersion_is_zero(self):
        assert correlation([1, 1, 1], [1, 2, 3]) == 0.0
        assert correlation([1], [2]) == 0.0

    def test_percentile_matches_numpy(self):
        values = [5, 1, 4, 2, 3]
        assert percentile(values, 50) == 3.0
        assert percentile(values, 90) == pytest.approx(np.percentile(values, 90))
        assert percentile([], 50) == 0.0

    def test_z_score(self):
        assert z_score(9, [2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)
        assert z_score(5, [5, 5, 5]) == 0.0

    def test_normalize(self):
        assert normalize([0, 5, 10]) == [0.0, 0.5, 1.0]
        assert normalize([3, 3]) == [0.5, 0.5]


# ===========================================================================
# MOVING AVERAGES
# ===========================================================================


class TestMovingAverages:
    """SMA/EMA including inputs shorter than the period."""

    def test_sma_uses_last_period_values(self):
        assert sma([1, 2, 3, 4, 5], 2) == 4.5

    def test_sma_short_series_uses_all_points(self):
        assert sma([1, 2, 3], 20) == 2.0
        assert sma([], 5) == 0.0

    def test_sma_series(self):
        assert sma_series([1, 2, 3, 4], 2) == pytest.approx([1.5, 2.5, 3.5])
        assert sma_series([1, 2], 5) == []

    def test_ema_series_seeds_with_sma(self):
        series = ema_series([1, 2, 3, 4], 3)
        alpha = 2 / 4
        assert series[0] == pytest.approx(2.0)
        assert series[1] == pytest.approx(alpha * 4 + (1 - alpha) * 2.0)

    def test_ema_series_length_and_values(self):
        """SMA seed over the first period, then one step per remaining value."""
        assert ema_series([1, 2, 3, 4], 3) == pytest.approx([2.0, 3.0])
        assert ema_series([5], 3) == [5.0]
        assert ema_series([], 3) == []

    def test_ema_short_series_is_mean(self):
        assert ema([10, 20], 14) == pytest.approx(15.0)
        assert ema([], 14) == 0.0


# ===========================================================================
# PRICE TRANSFORMS
# ===========================================================================


class TestPriceTransforms:

    def test_log_and_simple_returns(self):
        assert log_returns([100, 110]) == pytest.approx([math.log(1.1)])
        assert simple_returns([100, 110, 99]) == pytest.approx([0.1, -0.1])

    def test_log_returns_skip_non_positive(self):
        assert log_returns([0, 100, 110]) == pytest.approx([math.log(1.1)])

    def test_true_range_on_derived_series(self):
        highs, lows, closes = [51000] * 3, [49000] * 3, [49000, 50000, 51000]
        assert true_range_series(highs, lows, closes) == [2000, 2000]
        assert average_true_range(highs, lows, closes, 14) == pytest.approx(2000)

    def test_true_range_includes_gap_from_previous_close(self):
        ranges = true_range_series([51000] * 3, [49000] * 3, [49000, 60000, 51000])
        assert ranges == [2000, 11000]

    def test_atr_single_bar_is_zero(self):
        assert average_true_range([100], [90], [95], 14) == 0.0

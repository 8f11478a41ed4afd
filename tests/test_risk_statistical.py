"""Tests for risk-adjusted analytics and statistical measures.

This module verifies:
1. Maximum drawdown and severity bands
2. Sharpe, Sortino and Calmar ratios with ratings
3. Historical/parametric VaR and CVaR
4. Beta against a market series
5. Descriptive statistics, z-score percentile and OLS fit
6. Composite noise score weights and levels
"""

from __future__ import annotations

import pytest
from scipy import stats

from signal_engine.classifications import RiskLevel, RiskRating, StrengthLevel
from signal_engine.risk_analytics import (
    BetaProfile, DrawdownSeverity, RiskMetrics, classify_drawdown,
)
from signal_engine.statistical import (
    NoiseLevel, Relationship, StatisticalMeasures, Unusualness,
)

SYMMETRIC_RETURNS = [k / 100 for k in range(-10, 11)]


# ===========================================================================
# DRAWDOWN
# ===========================================================================


class TestDrawdown:

    def test_peak_to_trough(self):
        result = RiskMetrics.calculate_max_drawdown([100, 120, 90, 130])
        assert result.value == -25.0
        assert result.peak == 120
        assert result.trough == 90
        assert result.severity is DrawdownSeverity.SIGNIFICANT

    def test_monotone_rise_has_no_drawdown(self):
        result = RiskMetrics.calculate_max_drawdown([1, 2, 3])
        assert result.value == 0.0
        assert result.severity is DrawdownSeverity.NONE

    def test_empty(self):
        assert RiskMetrics.calculate_max_drawdown([]).value == 0.0

    @pytest.mark.parametrize("fraction,severity", [
        (-0.01, DrawdownSeverity.NONE), (-0.07, DrawdownSeverity.MILD),
        (-0.15, DrawdownSeverity.MODERATE), (-0.30, DrawdownSeverity.SIGNIFICANT),
        (-0.60, DrawdownSeverity.SEVERE),
    ])
    def test_severity_bands(self, fraction, severity):
        assert classify_drawdown(fraction) is severity


# ===========================================================================
# RATIOS
# ===========================================================================


class TestRatios:
    """Annualized return per unit of risk."""

    def test_sharpe(self):
        result = RiskMetrics.calculate_sharpe_ratio([0.01, 0.03])
        assert result.value > 3
        assert result.rating is RiskRating.EXCELLENT
        assert result.annual_return == pytest.approx(504.0)

    def test_sharpe_without_volatility_is_zero(self):
        result = RiskMetrics.calculate_sharpe_ratio([0.01, 0.01])
        assert result.value == 0.0
        assert result.rating is RiskRating.POOR

    def test_sortino_uses_downside_only(self):
        result = RiskMetrics.calculate_sortino_ratio([0.02, -0.01])
        assert result.risk == pytest.approx(0.1122, abs=1e-4)
        assert result.rating is RiskRating.EXCELLENT

    def test_calmar(self):
        result = RiskMetrics.calculate_calmar_ratio([0.1, -0.5, 0.1])
        assert result.risk == 50.0
        assert result.value < 0
        assert result.rating is RiskRating.POOR

    def test_empty_returns(self):
        assert RiskMetrics.calculate_sortino_ratio([]).value == 0.0
        assert RiskMetrics.calculate_calmar_ratio([]).value == 0.0


# ===========================================================================
# TAIL RISK
# ===========================================================================


class TestTailRisk:

    def test_historical_var(self):
        result = RiskMetrics.calculate_var(SYMMETRIC_RETURNS)
        assert result.var_95 == pytest.approx(-9.0)
        assert result.var_99 == pytest.approx(-9.8)
        assert result.risk_level is RiskLevel.VERY_HIGH

    def test_parametric_var_uses_normal_quantile(self):
        result = RiskMetrics.calculate_var(SYMMETRIC_RETURNS)
        sigma = (sum(r * r for r in SYMMETRIC_RETURNS) / len(SYMMETRIC_RETURNS)) ** 0.5
        expected = stats.norm.ppf(0.05) * sigma * 100
        assert result.parametric_var_95 == pytest.approx(expected, abs=0.01)

    def test_cvar(self):
        result = RiskMetrics.calculate_cvar(SYMMETRIC_RETURNS)
        assert result.cvar_95 == pytest.approx(-9.5)
        assert result.tail_ratio == pytest.approx(1.06, abs=0.01)
        assert result.tail_risk is RiskLevel.LOW

    def test_empty(self):
        assert RiskMetrics.calculate_var([]).risk_level is RiskLevel.LOW
        assert RiskMetrics.calculate_cvar([]).cvar_95 == 0.0

    def test_beta(self):
        market = [0.01, -0.02, 0.03]
        result = RiskMetrics.calculate_beta([2 * r for r in market], market)
        assert result.beta == pytest.approx(2.0)
        assert result.correlation == pytest.approx(1.0)
        assert result.volatility_ratio == pytest.approx(2.0)
        assert result.interpretation is BetaProfile.AGGRESSIVE


# ===========================================================================
# STATISTICS
# ===========================================================================


class TestStatisticalMeasures:

    def test_standard_deviation(self):
        result = StatisticalMeasures.calculate_standard_deviation([2, 4, 4, 4, 5, 5, 7, 9])
        assert result.population == 2.0
        assert result.sample == pytest.approx(2.1381, abs=1e-4)
        assert result.variance == 4.0
        assert result.mean == 5.0

    def test_correlation_labels(self):
        result = StatisticalMeasures.calculate_correlation([1, 2, 3], [2, 4, 6])
        assert result.strength is StrengthLevel.VERY_STRONG
        assert result.direction is Relationship.POSITIVE
        assert result.r_squared == 1.0

    def test_covariance(self):
        result = StatisticalMeasures.calculate_covariance([1, 2, 3], [3, 2, 1])
        assert result.value == pytest.approx(-0.6667, abs=1e-4)
        assert result.relationship is Relationship.NEGATIVE
        assert result.normalized == pytest.approx(-1.0)

    def test_z_score_percentile(self):
        result = StatisticalMeasures.calculate_z_score(9, [2, 4, 4, 4, 5, 5, 7, 9])
        assert result.value == 2.0
        assert result.interpretation is Unusualness.NORMAL
        assert result.percentile == pytest.approx(97.72, abs=0.01)

    def test_z_score_very_unusual(self):
        result = StatisticalMeasures.calculate_z_score(20, [2, 4, 4, 4, 5, 5, 7, 9])
        assert result.interpretation is Unusualness.VERY_UNUSUAL

    def test_linear_regression(self):
        fit = StatisticalMeasures.calculate_linear_regression([0, 1, 2, 3], [1, 3, 5, 7])
        assert fit.slope == pytest.approx(2.0)
        assert fit.intercept == pytest.approx(1.0)
        assert fit.r_squared == pytest.approx(1.0)
        assert fit.predict(4) == pytest.approx(9.0)

    def test_regression_constant_x(self):
        fit = StatisticalMeasures.calculate_linear_regression([1, 1, 1], [2, 4, 6])
        assert fit.slope == 0.0
        assert fit.intercept == 4.0


class TestNoiseScore:
    """Blend of ADX, ATR and agreement noise."""

    def test_without_agreement_reweights(self):
        result = StatisticalMeasures.calculate_noise_score(adx=0, natr=3.92)
        assert result.weights == (0.55, 0.45, 0.0)
        assert result.agreement_noise == 35.0
        assert result.score == 55.0
        assert result.level is NoiseLevel.HIGH

    def test_with_agreement(self):
        result = StatisticalMeasures.calculate_noise_score(adx=0, natr=3.92, agreement=0.3)
        assert result.weights == (0.4, 0.3, 0.3)
        assert result.agreement_noise == pytest.approx(49.8)
        assert result.score == 55.0

    def test_clean_environment(self):
        result = StatisticalMeasures.calculate_noise_score(adx=40, natr=2, agreement=1.0)
        assert result.score == 0.0
        assert result.level is NoiseLevel.LOW

    @pytest.mark.parametrize("natr,expected", [(0.5, 40.0), (3.0, 0.0), (5.0, 20.0), (8.0, 60.0)])
    def test_atr_noise_piecewise(self, natr, expected):
        assert StatisticalMeasures.calculate_noise_score(35, natr).atr_noise == pytest.approx(expected)

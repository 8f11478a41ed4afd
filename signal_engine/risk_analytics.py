"""
================================================================================
RISK-ADJUSTED RETURN ANALYTICS
================================================================================

Drawdown and return-per-unit-of-risk measures over a price or return series.

Components:
-----------
1. DRAWDOWN
   - Maximum peak-to-trough decline with severity bands

2. RISK-ADJUSTED RATIOS
   - Sharpe (excess return over total volatility)
   - Sortino (excess return over downside deviation)
   - Calmar (annual return over maximum drawdown)

3. TAIL RISK
   - Value at Risk: historical quantiles at 95/99 and a parametric 95%
     estimate from the normal distribution
   - Conditional VaR (expected shortfall) with a tail-heaviness ratio

4. MARKET SENSITIVITY
   - Beta, correlation and volatility ratio against a market series

Academic References:
-------------------
- Sharpe (1966): "Mutual Fund Performance"
- Sortino & Price (1994): "Performance Measurement in a Downside Risk Framework"
- Young (1991): "Calmar Ratio: A Smoother Tool"
- Rockafellar & Uryasev (2000): "Optimization of Conditional Value-at-Risk"
================================================================================
"""

from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

import numpy as np
from scipy import stats

from .classifications import IndicatorResult, RiskLevel, RiskRating
from .config import INDICATORS
from .math_utils import (
    correlation, covariance, mean, percentile, round_to, safe_divide, std_dev, variance,
)

warnings.filterwarnings('ignore', category=RuntimeWarning)

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class DrawdownSeverity(Enum):
    """Drawdown magnitude bands (fraction of peak)."""
    NONE = "NONE"                   # < 5%
    MILD = "MILD"                   # < 10%
    MODERATE = "MODERATE"           # < 20%
    SIGNIFICANT = "SIGNIFICANT"     # < 50%
    SEVERE = "SEVERE"


class BetaProfile(Enum):
    INVERSE = "INVERSE"
    DEFENSIVE = "DEFENSIVE"
    NEUTRAL = "NEUTRAL"
    AGGRESSIVE = "AGGRESSIVE"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class DrawdownResult(IndicatorResult):
    """Maximum drawdown of a price path."""
    value: float                    # Percent, <= 0
    peak: float
    trough: float
    severity: DrawdownSeverity


@dataclass(frozen=True)
class RatioResult(IndicatorResult):
    """A risk-adjusted return ratio with its rating."""
    value: float
    rating: RiskRating
    annual_return: float            # Percent
    risk: float                     # Denominator (annualized vol, downside dev, or |MDD| %)


@dataclass(frozen=True)
class VaRResult(IndicatorResult):
    """Value at Risk in percent of position."""
    var_95: float
    var_99: float
    parametric_var_95: float
    risk_level: RiskLevel


@dataclass(frozen=True)
class CVaRResult(IndicatorResult):
    """Expected shortfall beyond VaR."""
    cvar_95: float
    cvar_99: float
    var_95: float
    tail_ratio: float
    tail_risk: RiskLevel


@dataclass(frozen=True)
class BetaResult(IndicatorResult):
    beta: float
    correlation: float
    volatility_ratio: float
    interpretation: BetaProfile


# =============================================================================
# HELPERS
# =============================================================================

def _drawdown_path(prices: Sequence[float]):
    peak = prices[0]
    worst, worst_peak, worst_trough = 0.0, prices[0], prices[0]
    for price in prices:
        if price > peak:
            peak = price
        drawdown = safe_divide(price - peak, peak)
        if drawdown < worst:
            worst, worst_peak, worst_trough = drawdown, peak, price
    return worst, worst_peak, worst_trough


def classify_drawdown(fraction: float) -> DrawdownSeverity:
    """Severity of a drawdown expressed as a fraction of the peak."""
    magnitude = abs(fraction)
    if magnitude < 0.05:
        return DrawdownSeverity.NONE
    elif magnitude < 0.10:
        return DrawdownSeverity.MILD
    elif magnitude < 0.20:
        return DrawdownSeverity.MODERATE
    elif magnitude < 0.50:
        return DrawdownSeverity.SIGNIFICANT
    return DrawdownSeverity.SEVERE


def _tail_quantile(returns: Sequence[float], confidence: float) -> float:
    return percentile(returns, (1 - confidence) * 100)


# =============================================================================
# RISK METRICS
# =============================================================================

class RiskMetrics:
    """
    Risk-adjusted performance measures.

    Ratio methods take periodic simple returns; drawdown takes prices.
    Annualization uses 252 periods unless overridden.
    """

    @staticmethod
    def calculate_max_drawdown(prices: Sequence[float]) -> DrawdownResult:
        """
        Largest peak-to-trough decline.

        Args:
            prices: Price path, oldest first

        Returns:
            DrawdownResult with the drawdown in percent (non-positive)
        """
        if not prices:
            return DrawdownResult(0.0, 0.0, 0.0, DrawdownSeverity.NONE)

        worst, peak, trough = _drawdown_path(prices)
        return DrawdownResult(
            value=round_to(worst * 100, 2),
            peak=round_to(peak, 4),
            trough=round_to(trough, 4),
            severity=classify_drawdown(worst),
        )

    @staticmethod
    def calculate_sharpe_ratio(
        returns: Sequence[float],
        risk_free_rate: float = INDICATORS.risk_free_rate,
        periods: int = INDICATORS.trading_days_year,
    ) -> RatioResult:
        """Annualized Sharpe ratio: (mean * N - rf) / (sigma * sqrt(N))."""
        annual_return = mean(returns) * periods
        annual_vol = std_dev(returns) * math.sqrt(periods)
        sharpe = safe_divide(annual_return - risk_free_rate, annual_vol)

        if sharpe > 3:
            rating = RiskRating.EXCELLENT
        elif sharpe > 2:
            rating = RiskRating.VERY_GOOD
        elif sharpe > 1:
            rating = RiskRating.GOOD
        elif sharpe > 0:
            rating = RiskRating.ACCEPTABLE
        else:
            rating = RiskRating.POOR

        return RatioResult(round_to(sharpe, 4), rating,
                           round_to(annual_return * 100, 2), round_to(annual_vol, 4))

    @staticmethod
    def calculate_sortino_ratio(
        returns: Sequence[float],
        risk_free_rate: float = INDICATORS.risk_free_rate,
        target: float = 0.0,
        periods: int = INDICATORS.trading_days_year,
    ) -> RatioResult:
        """Annualized Sortino ratio using downside deviation below ``target``."""
        if not returns:
            return RatioResult(0.0, RiskRating.POOR, 0.0, 0.0)

        shortfall = np.minimum(0.0, np.asarray(returns, dtype=float) - target)
        downside = math.sqrt(float(np.mean(shortfall ** 2))) * math.sqrt(periods)
        annual_return = mean(returns) * periods
        sortino = safe_divide(annual_return - risk_free_rate, downside)

        if sortino > 2:
            rating = RiskRating.EXCELLENT
        elif sortino > 1:
            rating = RiskRating.GOOD
        elif sortino > 0:
            rating = RiskRating.ACCEPTABLE
        else:
            rating = RiskRating.POOR

        return RatioResult(round_to(sortino, 4), rating,
                           round_to(annual_return * 100, 2), round_to(downside, 4))

    @staticmethod
    def calculate_calmar_ratio(
        returns: Sequence[float],
        periods: int = INDICATORS.trading_days_year,
    ) -> RatioResult:
        """Calmar ratio: annual return (%) over |maximum drawdown| (%) of the equity curve."""
        if not returns:
            return RatioResult(0.0, RiskRating.POOR, 0.0, 0.0)

        equity: List[float] = [1.0]
        for r in returns:
            equity.append(equity[-1] * (1 + r))
        worst, _, _ = _drawdown_path(equity)

        annual_return_pct = mean(returns) * periods * 100
        mdd_pct = abs(worst) * 100
        calmar = safe_divide(annual_return_pct, mdd_pct)

        if calmar > 3:
            rating = RiskRating.EXCELLENT
        elif calmar > 1:
            rating = RiskRating.GOOD
        elif calmar > 0.5:
            rating = RiskRating.ACCEPTABLE
        else:
            rating = RiskRating.POOR

        return RatioResult(round_to(calmar, 4), rating,
                           round_to(annual_return_pct, 2), round_to(mdd_pct, 2))

    @staticmethod
    def calculate_var(returns: Sequence[float]) -> VaRResult:
        """
        Historical and parametric Value at Risk.

        Historical VaR is the linear-interpolated lower quantile of the
        returns. The parametric figure assumes normal returns and uses
        scipy.stats.norm.ppf. Results are in percent.
        """
        if not returns:
            return VaRResult(0.0, 0.0, 0.0, RiskLevel.LOW)

        level_95, level_99 = INDICATORS.var_confidence_levels
        var_95 = _tail_quantile(returns, level_95)
        var_99 = _tail_quantile(returns, level_99)
        parametric = mean(returns) + stats.norm.ppf(1 - level_95) * std_dev(returns)

        magnitude = abs(var_95)
        if magnitude < 0.01:
            risk_level = RiskLevel.LOW
        elif magnitude < 0.02:
            risk_level = RiskLevel.MODERATE
        elif magnitude < 0.05:
            risk_level = RiskLevel.HIGH
        else:
            risk_level = RiskLevel.VERY_HIGH

        return VaRResult(
            var_95=round_to(var_95 * 100, 2),
            var_99=round_to(var_99 * 100, 2),
            parametric_var_95=round_to(parametric * 100, 2),
            risk_level=risk_level,
        )

    @staticmethod
    def calculate_cvar(returns: Sequence[float]) -> CVaRResult:
        """Conditional VaR: mean of returns at or below the VaR threshold."""
        if not returns:
            return CVaRResult(0.0, 0.0, 0.0, 0.0, RiskLevel.LOW)

        level_95, level_99 = INDICATORS.var_confidence_levels
        var_95 = _tail_quantile(returns, level_95)
        var_99 = _tail_quantile(returns, level_99)
        cvar_95 = mean([r for r in returns if r <= var_95]) if returns else 0.0
        cvar_99 = mean([r for r in returns if r <= var_99]) if returns else 0.0

        ratio = abs(safe_divide(cvar_95, var_95))
        if ratio < 1.2:
            tail = RiskLevel.LOW
        elif ratio < 1.5:
            tail = RiskLevel.MODERATE
        elif ratio < 2:
            tail = RiskLevel.HIGH
        else:
            tail = RiskLevel.EXTREME

        return CVaRResult(
            cvar_95=round_to(cvar_95 * 100, 2),
            cvar_99=round_to(cvar_99 * 100, 2),
            var_95=round_to(var_95 * 100, 2),
            tail_ratio=round_to(ratio, 2),
            tail_risk=tail,
        )

    @staticmethod
    def calculate_beta(asset_returns: Sequence[float],
                       market_returns: Sequence[float]) -> BetaResult:
        """Beta = cov(asset, market) / var(market)."""
        n = min(len(asset_returns), len(market_returns))
        asset = list(asset_returns[:n])
        market = list(market_returns[:n])

        beta = safe_divide(covariance(asset, market), variance(market))
        corr = correlation(asset, market)
        vol_ratio = safe_divide(std_dev(asset), std_dev(market))

        if beta < 0:
            profile = BetaProfile.INVERSE
        elif beta < 0.8:
            profile = BetaProfile.DEFENSIVE
        elif beta < 1.2:
            profile = BetaProfile.NEUTRAL
        else:
            profile = BetaProfile.AGGRESSIVE

        return BetaResult(round_to(beta, 4), round_to(corr, 4),
                          round_to(vol_ratio, 4), profile)

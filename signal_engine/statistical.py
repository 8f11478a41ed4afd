"""
Statistical Measures
====================

Descriptive statistics with interpretation labels, plus the composite noise
score that estimates how untrustworthy the current signal environment is.

The noise score blends three independent sources of noise:

    ADX noise        weak trends produce whipsaws           clamp((35 - adx) * 2.85)
    ATR noise        very quiet or very wild ranges         piecewise on normalized ATR
    Agreement noise  indicators pointing different ways    max(0, (0.6 - agreement) * 166)

Weights are 0.4 / 0.3 / 0.3, or 0.55 / 0.45 when agreement is not known.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from .classifications import IndicatorResult, StrengthLevel
from .math_utils import (
    clamp, correlation, covariance, mean, round_to, safe_divide, std_dev, variance,
)

warnings.filterwarnings('ignore', category=RuntimeWarning)

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class Relationship(Enum):
    """Sign of a co-movement measure."""
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NONE = "NONE"


class Unusualness(Enum):
    VERY_UNUSUAL = "VERY_UNUSUAL"   # |z| > 3
    UNUSUAL = "UNUSUAL"             # |z| > 2
    NORMAL = "NORMAL"


class NoiseLevel(Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    EXTREME = "EXTREME"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class StandardDeviationResult(IndicatorResult):
    population: float
    sample: float
    variance: float
    mean: float


@dataclass(frozen=True)
class CorrelationResult(IndicatorResult):
    value: float                    # Pearson r
    strength: StrengthLevel
    direction: Relationship
    r_squared: float


@dataclass(frozen=True)
class CovarianceResult(IndicatorResult):
    value: float
    relationship: Relationship
    normalized: float


@dataclass(frozen=True)
class ZScoreResult(IndicatorResult):
    value: float
    interpretation: Unusualness
    percentile: float               # Normal CDF, [0, 100]


@dataclass(frozen=True)
class LinearRegressionResult(IndicatorResult):
    slope: float
    intercept: float
    r_squared: float
    correlation: float

    def predict(self, x: float) -> float:
        """Fitted value at ``x``."""
        return self.slope * x + self.intercept


@dataclass(frozen=True)
class NoiseScoreResult(IndicatorResult):
    score: float                    # [0, 100]
    level: NoiseLevel
    adx_noise: float
    atr_noise: float
    agreement_noise: float
    weights: Tuple[float, float, float]


# =============================================================================
# STATISTICAL MEASURES
# =============================================================================

class StatisticalMeasures:
    """Descriptive statistics and signal-noise estimation."""

    @staticmethod
    def calculate_standard_deviation(values: Sequence[float]) -> StandardDeviationResult:
        """Population and sample standard deviation."""
        return StandardDeviationResult(
            population=round_to(std_dev(values), 4),
            sample=round_to(std_dev(values, sample=True), 4),
            variance=round_to(variance(values), 4),
            mean=round_to(mean(values), 4),
        )

    @staticmethod
    def calculate_correlation(x: Sequence[float], y: Sequence[float]) -> CorrelationResult:
        """Pearson correlation with strength and direction labels."""
        r = correlation(x, y)
        magnitude = abs(r)

        if magnitude > 0.9:
            strength = StrengthLevel.VERY_STRONG
        elif magnitude > 0.7:
            strength = StrengthLevel.STRONG
        elif magnitude > 0.5:
            strength = StrengthLevel.MODERATE
        elif magnitude > 0.3:
            strength = StrengthLevel.WEAK
        else:
            strength = StrengthLevel.VERY_WEAK

        if r > 0.1:
            direction = Relationship.POSITIVE
        elif r < -0.1:
            direction = Relationship.NEGATIVE
        else:
            direction = Relationship.NONE

        return CorrelationResult(round_to(r, 4), strength, direction, round_to(r * r, 4))

    @staticmethod
    def calculate_covariance(x: Sequence[float], y: Sequence[float]) -> CovarianceResult:
        """Population covariance and its correlation-normalized form."""
        n = min(len(x), len(y))
        cov = covariance(x, y)
        normalized = safe_divide(cov, std_dev(x[:n]) * std_dev(y[:n]))

        if cov > 0.01:
            relationship = Relationship.POSITIVE
        elif cov < -0.01:
            relationship = Relationship.NEGATIVE
        else:
            relationship = Relationship.NONE

        return CovarianceResult(round_to(cov, 4), relationship, round_to(normalized, 4))

    @staticmethod
    def calculate_z_score(value: float, dataset: Sequence[float]) -> ZScoreResult:
        """Standard score of ``value`` with its normal-distribution percentile."""
        z = safe_divide(value - mean(dataset), std_dev(dataset))
        magnitude = abs(z)

        if magnitude > 3:
            interpretation = Unusualness.VERY_UNUSUAL
        elif magnitude > 2:
            interpretation = Unusualness.UNUSUAL
        else:
            interpretation = Unusualness.NORMAL

        return ZScoreResult(
            value=round_to(z, 4),
            interpretation=interpretation,
            percentile=round_to(float(stats.norm.cdf(z)) * 100, 2),
        )

    @staticmethod
    def calculate_linear_regression(x: Sequence[float],
                                    y: Sequence[float]) -> LinearRegressionResult:
        """
        Ordinary least squares fit of ``y`` on ``x``.

        Uses scipy.stats.linregress. Fewer than two points or a constant x
        yields a flat line through the mean of y.
        """
        n = min(len(x), len(y))
        xs = np.asarray(x[:n], dtype=float)
        ys = np.asarray(y[:n], dtype=float)

        if n < 2 or np.ptp(xs) == 0:
            return LinearRegressionResult(0.0, round_to(mean(ys.tolist()), 4), 0.0, 0.0)

        fit = stats.linregress(xs, ys)
        r = float(fit.rvalue) if np.isfinite(fit.rvalue) else 0.0
        return LinearRegressionResult(
            slope=round_to(fit.slope, 4),
            intercept=round_to(fit.intercept, 4),
            r_squared=round_to(r * r, 4),
            correlation=round_to(r, 4),
        )

    @staticmethod
    def calculate_noise_score(adx: float, natr: float,
                              agreement: Optional[float] = None) -> NoiseScoreResult:
        """
        Composite signal-noise score.

        Args:
            adx: ADX value
            natr: ATR as a percentage of price
            agreement: Indicator agreement in [0, 1], if known

        Returns:
            NoiseScoreResult with score in [0, 100] and its level
        """
        adx_noise = clamp((35 - adx) * 2.85, 0.0, 100.0)

        if natr < 1:
            atr_noise = 40.0
        elif natr > 6:
            atr_noise = min(100.0, 40 + (natr - 6) * 10)
        elif natr > 4:
            atr_noise = (natr - 4) * 20
        else:
            atr_noise = 0.0

        if agreement is None:
            weights = (0.55, 0.45, 0.0)
            agreement_noise = 35.0
        else:
            weights = (0.4, 0.3, 0.3)
            agreement_noise = max(0.0, (0.6 - agreement) * 166)
        blended = (adx_noise * weights[0] + atr_noise * weights[1]
                   + agreement_noise * weights[2])

        score = clamp(float(round(blended)), 0.0, 100.0)
        if score < 30:
            level = NoiseLevel.LOW
        elif score < 55:
            level = NoiseLevel.MODERATE
        elif score < 75:
            level = NoiseLevel.HIGH
        else:
            level = NoiseLevel.EXTREME

        return NoiseScoreResult(
            score=score,
            level=level,
            adx_noise=round_to(adx_noise, 2),
            atr_noise=round_to(atr_noise, 2),
            agreement_noise=round_to(agreement_noise, 2),
            weights=weights,
        )

"""
Numerical Primitives
====================

Small, total numerical helpers shared by every indicator family.

Every function accepts short or empty input and returns a finite number
(or a list of finite numbers). Division is routed through ``safe_divide`` so
that degenerate snapshots (zero range, zero volume) never leak NaN or inf
into downstream classifications.

Conventions
-----------
    - Variance and standard deviation are population statistics unless
      ``sample=True`` is passed.
    - EMA uses alpha = 2 / (period + 1) and is seeded with the SMA of the
      first ``period`` values (or all values when fewer are available),
      then run through ``pd.Series.ewm(adjust=False)``.
    - Percentiles use linear interpolation between closest ranks.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import List, Sequence

import numpy as np
import pandas as pd

warnings.filterwarnings('ignore', category=RuntimeWarning)

logger = logging.getLogger(__name__)


# =============================================================================
# SCALAR HELPERS
# =============================================================================

def safe_divide(a: float, b: float, default: float = 0.0) -> float:
    """Safe division handling zero and invalid values."""
    try:
        if b == 0 or not np.isfinite(b):
            return default
        result = a / b
        return default if not np.isfinite(result) else float(result)
    except (ZeroDivisionError, TypeError, ValueError):
        return default


def clamp(value: float, lower: float, upper: float) -> float:
    """Restrict ``value`` to the closed interval [lower, upper]."""
    return max(lower, min(upper, value))


def round_to(value: float, places: int = 2) -> float:
    """Round to ``places`` decimals, mapping non-finite input to 0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return round(float(value), places)


def sign(value: float) -> int:
    """Return -1, 0 or 1."""
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


# =============================================================================
# DESCRIPTIVE STATISTICS
# =============================================================================

def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def variance(values: Sequence[float], sample: bool = False) -> float:
    """
    Variance of ``values``.

    Population variance by default. The sample estimator (n - 1) falls back
    to the population value when only one observation is available.
    """
    n = len(values)
    if n == 0:
        return 0.0
    ddof = 1 if sample and n > 1 else 0
    return float(np.var(np.asarray(values, dtype=float), ddof=ddof))


def std_dev(values: Sequence[float], sample: bool = False) -> float:
    """Standard deviation (population by default)."""
    return math.sqrt(variance(values, sample=sample))


def covariance(x: Sequence[float], y: Sequence[float]) -> float:
    """Population covariance over the common prefix of ``x`` and ``y``."""
    n = min(len(x), len(y))
    if n == 0:
        return 0.0
    xa = np.asarray(x[:n], dtype=float)
    ya = np.asarray(y[:n], dtype=float)
    return float(np.mean((xa - xa.mean()) * (ya - ya.mean())))


def correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation; 0 when either side has no dispersion."""
    n = min(len(x), len(y))
    if n < 2:
        return 0.0
    denominator = std_dev(x[:n]) * std_dev(y[:n])
    return clamp(safe_divide(covariance(x, y), denominator), -1.0, 1.0)


def percentile(values: Sequence[float], pct: float) -> float:
    """
    Linear-interpolated percentile.

    Args:
        values: Observations (unsorted)
        pct: Percentile in [0, 100]

    Returns:
        Interpolated value, 0 for empty input
    """
    if len(values) == 0:
        return 0.0
    return float(np.percentile(np.asarray(values, dtype=float),
                               clamp(pct, 0.0, 100.0)))


def z_score(value: float, values: Sequence[float]) -> float:
    """Standard score of ``value`` against ``values``."""
    return safe_divide(value - mean(values), std_dev(values))


def normalize(values: Sequence[float]) -> List[float]:
    """Min-max scale to [0, 1]; a flat series maps to 0.5."""
    if len(values) == 0:
        return []
    lo, hi = min(values), max(values)
    span = hi - lo
    if span == 0:
        return [0.5] * len(values)
    return [(v - lo) / span for v in values]


# =============================================================================
# MOVING AVERAGES
# =============================================================================

def ema_alpha(period: int) -> float:
    """Smoothing factor 2 / (period + 1)."""
    return 2.0 / (period + 1)


def sma(values: Sequence[float], period: int) -> float:
    """Simple moving average of the last ``period`` values."""
    if len(values) == 0:
        return 0.0
    period = max(1, min(period, len(values)))
    return mean(values[-period:])


def sma_series(values: Sequence[float], period: int) -> List[float]:
    """Rolling SMA, one value per complete window."""
    if len(values) < period or period <= 0:
        return []
    window = np.ones(period) / period
    return np.convolve(np.asarray(values, dtype=float), window, mode='valid').tolist()


def ema_series(values: Sequence[float], period: int) -> List[float]:
    """
    Exponential moving average series.

    The first element is the SMA seed over the first ``period`` values;
    each subsequent element applies one EMA step.
    """
    if len(values) == 0:
        return []
    period = max(1, period)
    seed_len = min(period, len(values))
    seeded = pd.Series([mean(values[:seed_len]), *values[seed_len:]], dtype=float)
    return seeded.ewm(alpha=ema_alpha(period), adjust=False).mean().tolist()


def ema(values: Sequence[float], period: int) -> float:
    """Last value of ``ema_series``; 0 for empty input."""
    series = ema_series(values, period)
    return series[-1] if series else 0.0


# =============================================================================
# PRICE TRANSFORMS
# =============================================================================

def log_returns(prices: Sequence[float]) -> List[float]:
    """Log returns between consecutive strictly positive prices."""
    returns = []
    for prev, cur in zip(prices[:-1], prices[1:]):
        if prev > 0 and cur > 0:
            returns.append(math.log(cur / prev))
    return returns


def simple_returns(prices: Sequence[float]) -> List[float]:
    """Arithmetic returns between consecutive prices."""
    return [safe_divide(cur - prev, prev) for prev, cur in zip(prices[:-1], prices[1:])]


def true_range_series(highs: Sequence[float], lows: Sequence[float],
                      closes: Sequence[float]) -> List[float]:
    """True range for every bar after the first."""
    n = min(len(highs), len(lows), len(closes))
    if n < 2:
        return []
    high = pd.Series(highs[:n], dtype=float)
    low = pd.Series(lows[:n], dtype=float)
    prev_close = pd.Series(closes[:n], dtype=float).shift(1)

    tr1 = high - low
    tr2 = (high - prev_close).abs()
    tr3 = (low - prev_close).abs()
    tr = pd.concat([tr1, tr2, tr3], axis=1).max(axis=1)
    return tr.iloc[1:].tolist()


def average_true_range(highs: Sequence[float], lows: Sequence[float],
                       closes: Sequence[float], period: int) -> float:
    """EMA-smoothed true range; 0 with fewer than two bars."""
    return ema(true_range_series(highs, lows, closes), period)

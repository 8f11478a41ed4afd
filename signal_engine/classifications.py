"""
Classification labels and the common result base shared by the indicator
families.
"""

from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict


def to_plain(value: Any) -> Any:
    """Recursively convert enums, dataclasses and datetimes to JSON-ready data."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {str(to_plain(k)): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


class IndicatorResult:
    """Mixin giving every frozen result dataclass a ``to_dict``."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return to_plain(self)


class Direction(Enum):
    """Directional bias of an indicator reading."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class Zone(Enum):
    """Oscillator zone."""
    OVERBOUGHT = "OVERBOUGHT"
    OVERSOLD = "OVERSOLD"
    NEUTRAL = "NEUTRAL"


class StrengthLevel(Enum):
    """Five-step strength scale (ADX, mean-reversion score, entry strength)."""
    VERY_WEAK = "VERY_WEAK"
    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"
    VERY_STRONG = "VERY_STRONG"


class VolatilityLevel(Enum):
    """ATR-style volatility bands."""
    VERY_LOW = "VERY_LOW"
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


class EstimatorLevel(Enum):
    """Annualized volatility estimator bands."""
    VERY_LOW = "VERY_LOW"      # < 10%
    LOW = "LOW"                # < 20%
    MODERATE = "MODERATE"      # < 40%
    HIGH = "HIGH"              # < 60%
    VERY_HIGH = "VERY_HIGH"


class Crossover(Enum):
    """Line crossover event."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NONE = "NONE"


class RiskRating(Enum):
    """Rating of a risk-adjusted return ratio."""
    EXCELLENT = "EXCELLENT"
    VERY_GOOD = "VERY_GOOD"
    GOOD = "GOOD"
    ACCEPTABLE = "ACCEPTABLE"
    POOR = "POOR"


class RiskLevel(Enum):
    """Risk scale (VaR, tail risk)."""
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"
    EXTREME = "EXTREME"


def classify_estimator(annualized_pct: float) -> EstimatorLevel:
    """Bucket an annualized volatility percentage."""
    if annualized_pct < 10:
        return EstimatorLevel.VERY_LOW
    elif annualized_pct < 20:
        return EstimatorLevel.LOW
    elif annualized_pct < 40:
        return EstimatorLevel.MODERATE
    elif annualized_pct < 60:
        return EstimatorLevel.HIGH
    return EstimatorLevel.VERY_HIGH


class Outlook(Enum):
    """Five-step directional outlook (ROC, CCI trend, composite momentum)."""
    STRONG_BULLISH = "STRONG_BULLISH"
    BULLISH = "BULLISH"
    NEUTRAL = "NEUTRAL"
    BEARISH = "BEARISH"
    STRONG_BEARISH = "STRONG_BEARISH"


class ExtendedZone(Enum):
    """Oscillator zone with extreme bands (CCI, %B)."""
    EXTREME_OVERBOUGHT = "EXTREME_OVERBOUGHT"
    OVERBOUGHT = "OVERBOUGHT"
    NEUTRAL = "NEUTRAL"
    OVERSOLD = "OVERSOLD"
    EXTREME_OVERSOLD = "EXTREME_OVERSOLD"


class Trend(Enum):
    """Accumulation / distribution bias of a cumulative volume line."""
    ACCUMULATION = "ACCUMULATION"
    DISTRIBUTION = "DISTRIBUTION"
    NEUTRAL = "NEUTRAL"

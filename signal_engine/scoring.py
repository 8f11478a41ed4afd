"""
Shared Scoring Utilities
========================

The numeric conventions every strategy and the combiner agree on.

    Signal <-> score
        STRONG_BUY = 100, BUY = 50, HOLD = 0, SELL = -50, STRONG_SELL = -100
        score > 60 STRONG_BUY, > 20 BUY, < -60 STRONG_SELL, < -20 SELL

    Confidence [20, 90]
        |score| * 0.4 + (20 + agreement * 30) + min(15, ADX * 0.4) + vol adj
        vol adj: -5 below 2% ATR, -10 above 6%, +5 otherwise

    Risk [15, 85]
        regime base + (50 - confidence) * 0.3 + volatility term + agreement term
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from .config import SCORING
from .math_utils import clamp, safe_divide

logger = logging.getLogger(__name__)


class Signal(Enum):
    """Trading recommendation with numeric mapping for aggregation."""
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"

    @property
    def score(self) -> float:
        """Anchor score of this signal."""
        return {
            Signal.STRONG_BUY: 100.0,
            Signal.BUY: 50.0,
            Signal.HOLD: 0.0,
            Signal.SELL: -50.0,
            Signal.STRONG_SELL: -100.0,
        }[self]

    @property
    def is_bullish(self) -> bool:
        return self in (Signal.STRONG_BUY, Signal.BUY)

    @property
    def is_bearish(self) -> bool:
        return self in (Signal.STRONG_SELL, Signal.SELL)

    @classmethod
    def from_score(cls, score: float,
                   strong: float = SCORING.strong_threshold,
                   threshold: float = SCORING.signal_threshold) -> 'Signal':
        """
        Map a score in [-100, 100] to a signal.

        Thresholds default to the canonical +/-20 / +/-60; strategies with
        their own cut-offs pass them explicitly.
        """
        if score > strong:
            return cls.STRONG_BUY
        elif score > threshold:
            return cls.BUY
        elif score < -strong:
            return cls.STRONG_SELL
        elif score < -threshold:
            return cls.SELL
        return cls.HOLD


class Vote(Enum):
    """Direction of a single indicator's vote."""
    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True)
class Agreement:
    """Weighted share of indicators on the dominant side."""
    ratio: float                    # [0, 1]
    direction: Vote


def calculate_indicator_agreement(votes: Iterable[Tuple[Vote, float]]) -> Agreement:
    """
    Share of total weight held by the stronger of the buy and sell sides.

    Neutral votes count toward the total, which dilutes agreement.
    """
    buy = sell = total = 0.0
    for vote, weight in votes:
        total += weight
        if vote is Vote.BUY:
            buy += weight
        elif vote is Vote.SELL:
            sell += weight

    if buy > sell:
        direction = Vote.BUY
    elif sell > buy:
        direction = Vote.SELL
    else:
        direction = Vote.NEUTRAL
    return Agreement(ratio=safe_divide(max(buy, sell), total), direction=direction)


def volatility_adjustment(natr: float) -> float:
    """Confidence penalty for very quiet or very wild markets."""
    if natr < 2:
        return -5.0
    if natr > 6:
        return -10.0
    return 5.0


def calculate_confidence(strength: float, agreement: float, adx: float, natr: float) -> float:
    """
    Strategy confidence in [20, 90].

    Args:
        strength: Raw strategy score (sign ignored)
        agreement: Indicator agreement in [0, 1]
        adx: Trend strength
        natr: ATR as % of price

    Returns:
        Rounded, clamped confidence
    """
    raw = (abs(strength) * SCORING.confidence_strength_weight
           + SCORING.confidence_agreement_base + agreement * SCORING.confidence_agreement_weight
           + min(SCORING.confidence_adx_cap, adx * SCORING.confidence_adx_weight)
           + volatility_adjustment(natr))
    return float(round(clamp(raw, SCORING.confidence_floor, SCORING.confidence_ceiling)))


def calculate_risk_score(regime: str, confidence: float, natr: float,
                         agreement: Optional[float] = None) -> float:
    """
    Risk score in [15, 85].

    ``regime`` is the regime name (e.g. ``"BULL_MARKET"``); unknown names
    start from the neutral SIDEWAYS base of 45.
    """
    risk = SCORING.regime_base_risk.get(regime, SCORING.unknown_regime_risk)
    risk += (50 - confidence) * SCORING.risk_confidence_weight

    if natr < 2:
        risk -= 5
    elif natr > 6:
        risk += 15
    elif natr > 4:
        risk += 5

    if agreement is None:
        risk += SCORING.risk_missing_agreement
    else:
        risk += (0.5 - agreement) * SCORING.risk_agreement_weight

    return float(round(clamp(risk, SCORING.risk_floor, SCORING.risk_ceiling)))

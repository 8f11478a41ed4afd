"""Tests for the shared scoring conventions.

This module verifies:
1. Signal <-> score anchors and threshold mapping
2. Weighted indicator agreement
3. Confidence model and its [20, 90] clamp
4. Risk model and its [15, 85] clamp
"""

from __future__ import annotations

import pytest

from signal_engine.config import SCORING
from signal_engine.scoring import (
    Signal,
    Vote,
    calculate_confidence,
    calculate_indicator_agreement,
    calculate_risk_score,
    volatility_adjustment,
)


# ===========================================================================
# SIGNALS
# ===========================================================================


class TestSignalMapping:

    @pytest.mark.parametrize("score,signal", [
        (100, Signal.STRONG_BUY), (61, Signal.STRONG_BUY), (60, Signal.BUY),
        (50, Signal.BUY), (21, Signal.BUY), (20, Signal.HOLD), (0, Signal.HOLD),
        (-20, Signal.HOLD), (-21, Signal.SELL), (-50, Signal.SELL),
        (-60, Signal.SELL), (-61, Signal.STRONG_SELL), (-100, Signal.STRONG_SELL),
    ])
    def test_canonical_thresholds(self, score, signal):
        assert Signal.from_score(score) is signal

    def test_custom_thresholds(self):
        assert Signal.from_score(45, strong=40, threshold=15) is Signal.STRONG_BUY
        assert Signal.from_score(16, strong=40, threshold=15) is Signal.BUY

    def test_anchor_scores_round_trip(self):
        for signal in Signal:
            assert Signal.from_score(signal.score) is signal

    def test_direction_flags(self):
        assert Signal.BUY.is_bullish and not Signal.BUY.is_bearish
        assert Signal.STRONG_SELL.is_bearish
        assert not Signal.HOLD.is_bullish and not Signal.HOLD.is_bearish


# ===========================================================================
# AGREEMENT
# ===========================================================================


class TestAgreement:
    """Neutral votes dilute agreement."""

    def test_dominant_side(self):
        result = calculate_indicator_agreement([
            (Vote.BUY, 40), (Vote.BUY, 30), (Vote.SELL, 20), (Vote.NEUTRAL, 10),
        ])
        assert result.ratio == pytest.approx(0.7)
        assert result.direction is Vote.BUY

    def test_tie_is_neutral(self):
        result = calculate_indicator_agreement([
            (Vote.BUY, 30), (Vote.SELL, 30), (Vote.NEUTRAL, 40),
        ])
        assert result.ratio == pytest.approx(0.3)
        assert result.direction is Vote.NEUTRAL

    def test_no_votes(self):
        result = calculate_indicator_agreement([])
        assert result.ratio == 0.0
        assert result.direction is Vote.NEUTRAL


# ===========================================================================
# CONFIDENCE AND RISK
# ===========================================================================


class TestConfidence:

    @pytest.mark.parametrize("natr,adjustment", [(1.0, -5.0), (3.0, 5.0), (7.0, -10.0)])
    def test_volatility_adjustment(self, natr, adjustment):
        assert volatility_adjustment(natr) == adjustment

    def test_base_case(self):
        assert calculate_confidence(0, 0, 0, 3.92) == 25.0

    def test_components_add_up(self):
        """20 + 0.4*50 + 0.5*30 + min(15, 0.4*25) + 5 = 70."""
        assert calculate_confidence(-50, 0.5, 25, 3.0) == 70.0

    def test_clamped_to_ceiling(self):
        assert calculate_confidence(100, 1.0, 100, 3.0) == 90.0

    def test_clamped_to_floor(self):
        assert calculate_confidence(0, 0, 0, 1.0) == 20.0


class TestRiskScore:

    def test_clamped_to_ceiling(self):
        assert calculate_risk_score("HIGH_VOLATILITY", 20, 8, 0.0) == 85.0

    def test_clamped_to_floor(self):
        assert calculate_risk_score("BULL_MARKET", 90, 1, 1.0) == 15.0

    def test_missing_agreement_adds_penalty(self):
        assert calculate_risk_score("SIDEWAYS", 50, 3, None) == 50.0
        assert calculate_risk_score("SIDEWAYS", 50, 3, 0.5) == 45.0

    def test_unknown_regime_starts_at_sideways_base(self):
        assert calculate_risk_score("UNKNOWN", 50, 3, 0.5) == 45.0
        assert SCORING.unknown_regime_risk == SCORING.regime_base_risk["SIDEWAYS"]

    @pytest.mark.parametrize("natr,expected", [(1.0, 40.0), (3.0, 45.0), (5.0, 50.0), (7.0, 60.0)])
    def test_volatility_term(self, natr, expected):
        assert calculate_risk_score("SIDEWAYS", 50, natr, 0.5) == expected

"""Tests for the crash detector, bull-entry detector and entry planner.

This module verifies:
1. Crash condition counting, severity tiers and recommendation texts
2. Bull-entry counting, fixed-percentage levels and recommendation texts
3. Entry plan direction choice, strength, confidence and ATR-scaled levels
4. Tradeability filtering (stablecoins, dead ranges) and leverage bands
"""

from __future__ import annotations

import pytest

from signal_engine.classifications import StrengthLevel
from signal_engine.detectors import (
    CrashSeverity,
    TradeDirection,
    crash_severity,
    detect_bull_entry,
    detect_crash,
    dynamic_levels,
    entry_levels,
    entry_recommendation,
    entry_strength,
    leverage_for,
    plan_entry,
)
from signal_engine.scoring import Signal
from signal_engine.snapshot import PriceSnapshot


@pytest.fixture
def busy_rally_snapshot():
    """The rally snapshot with twice the baseline turnover."""
    return PriceSnapshot("ETH", 50500, 1e11, 1e12, 10.0, high_24h=51000, low_24h=49000)


# ===========================================================================
# CRASH DETECTOR
# ===========================================================================


class TestCrashDetector:
    """Four conditions, crashing at two or more."""

    def test_high_severity_crash(self, crash_snapshot):
        result = detect_crash(crash_snapshot)
        assert result.is_crashing
        assert result.severity is CrashSeverity.HIGH
        assert result.confidence == 75.0
        assert result.indicators.rapid_drop
        assert result.indicators.volume_spike
        assert result.indicators.oversold_extreme
        assert not result.indicators.high_volatility
        assert result.recommendation == (
            "HIGH SEVERITY CRASH: Significant selling pressure. "
            "Wait for RSI to recover above 30 before considering entry.")

    def test_extreme_crash(self, capitulation_snapshot):
        result = detect_crash(capitulation_snapshot)
        assert result.severity is CrashSeverity.EXTREME
        assert result.confidence == 100.0
        assert result.indicators.count == 4
        assert result.recommendation.startswith("EXTREME CRASH: 30.0% drop. AVOID buying.")

    def test_medium_crash(self):
        snap = PriceSnapshot("SOL", 100, 5e9, 1e11, -16.0, high_24h=101, low_24h=99)
        result = detect_crash(snap)
        assert result.severity is CrashSeverity.MEDIUM
        assert result.confidence == 50.0
        assert result.recommendation.startswith("MEDIUM CRASH:")

    def test_normal_market(self, neutral_snapshot):
        result = detect_crash(neutral_snapshot)
        assert not result.is_crashing
        assert result.severity is CrashSeverity.LOW
        assert result.confidence == 0.0
        assert result.recommendation == "No crash detected. Normal market conditions."

    @pytest.mark.parametrize("count,severity", [
        (0, CrashSeverity.LOW), (1, CrashSeverity.LOW), (2, CrashSeverity.MEDIUM),
        (3, CrashSeverity.HIGH), (4, CrashSeverity.EXTREME),
    ])
    def test_tier_depends_on_count_only(self, count, severity):
        assert crash_severity(count) is severity


# ===========================================================================
# BULL ENTRY DETECTOR
# ===========================================================================


class TestBullEntryDetector:

    def test_moderate_entry_near_atl(self, near_atl_snapshot):
        result = detect_bull_entry(near_atl_snapshot)
        assert result.is_optimal_entry
        assert result.strength is StrengthLevel.MODERATE
        assert result.confidence == 35.0
        assert result.indicators.volume_increase
        assert result.indicators.divergence
        assert result.target_price == pytest.approx(4400)
        assert result.stop_loss == pytest.approx(3600)
        assert result.recommendation == (
            "MODERATE BULL ENTRY: Decent setup but watch closely. Entry: 4000.00, "
            "Target: 4400.00, Stop: 3600.00. Risk/Reward: 1.00:1. Use smaller position.")

    def test_no_entry(self, neutral_snapshot):
        result = detect_bull_entry(neutral_snapshot)
        assert not result.is_optimal_entry
        assert result.strength is StrengthLevel.WEAK
        assert result.confidence == 0.0
        assert result.target_price == pytest.approx(52500)
        assert result.stop_loss == pytest.approx(44000)
        assert result.recommendation == "Not optimal entry. Wait for stronger bull signals."

    @pytest.mark.parametrize("count,strength", [
        (0, StrengthLevel.WEAK), (1, StrengthLevel.WEAK), (2, StrengthLevel.MODERATE),
        (3, StrengthLevel.STRONG), (4, StrengthLevel.VERY_STRONG),
    ])
    def test_strength_tiers(self, count, strength):
        assert entry_strength(count) is strength

    def test_fixed_levels(self):
        assert entry_levels(100, StrengthLevel.VERY_STRONG) == pytest.approx((120, 95))
        assert entry_levels(100, StrengthLevel.WEAK) == pytest.approx((105, 88))

    def test_recommendation_texts(self):
        assert entry_recommendation(True, StrengthLevel.VERY_STRONG, 100, 120, 95).startswith(
            "VERY STRONG BULL ENTRY: Multiple confirmations. Entry: 100.00")
        assert entry_recommendation(True, StrengthLevel.STRONG, 100, 115, 93).startswith(
            "STRONG BULL ENTRY:")
        assert entry_recommendation(True, StrengthLevel.WEAK, 100, 105, 88).startswith(
            "WEAK BULL SIGNAL:")


# ===========================================================================
# ENTRY PLAN
# ===========================================================================


class TestEntryPlan:
    """Signal-driven directional setups."""

    def test_long_from_buy_signal(self, busy_rally_snapshot):
        plan = plan_entry(busy_rally_snapshot, Signal.BUY, strategy_confidence=60)
        assert plan.direction is TradeDirection.LONG
        assert plan.indicators.count == 1
        assert plan.strength is StrengthLevel.STRONG
        assert plan.confidence == 55.0
        assert plan.target_price == pytest.approx(50500 * 1.098)
        assert plan.stop_loss == pytest.approx(50500 * (1 - 0.04704))
        assert plan.risk_reward_ratio == 2.08
        assert (plan.suggested_leverage, plan.max_leverage) == (3, 5)
        assert plan.is_optimal_entry
        assert plan.recommendation == (
            "LONG setup: Target +9.8%, Stop -4.7%, R:R 2.08:1. "
            "Good setup. Suggested 3x leverage.")

    def test_short_from_sell_signal(self, crash_snapshot):
        plan = plan_entry(crash_snapshot, Signal.SELL, strategy_confidence=40)
        assert plan.direction is TradeDirection.SHORT
        assert plan.confidence == 45.0
        assert plan.target_price < plan.entry_price < plan.stop_loss
        assert plan.recommendation.startswith("SHORT setup: Target +9.8%, Stop -4.7%")

    def test_hold_lets_indicators_pick_a_side(self, near_atl_snapshot):
        """Long side: volume + divergence; short side: volume only."""
        plan = plan_entry(near_atl_snapshot)
        assert plan.direction is TradeDirection.LONG
        assert plan.strength is StrengthLevel.STRONG
        assert plan.confidence == 60.0
        assert plan.risk_reward_ratio == 2.08
        assert (plan.suggested_leverage, plan.max_leverage) == (2, 3)

    def test_hold_without_conviction_is_neutral(self, neutral_snapshot):
        plan = plan_entry(neutral_snapshot)
        assert plan.direction is TradeDirection.NEUTRAL
        assert not plan.is_optimal_entry
        assert plan.target_price == plan.stop_loss == plan.entry_price
        assert plan.risk_reward_ratio == 0.0
        assert plan.recommendation == "No clear setup. Wait for stronger confirmation signals."

    def test_stablecoin_is_not_traded(self, stablecoin_snapshot):
        plan = plan_entry(stablecoin_snapshot, Signal.STRONG_BUY, 90)
        assert plan.direction is TradeDirection.NEUTRAL
        assert plan.confidence == 0.0
        assert (plan.suggested_leverage, plan.max_leverage) == (1, 1)
        assert plan.recommendation == (
            "USDT is a stablecoin - not suitable for directional trading.")

    def test_dead_range_is_not_traded(self, flat_snapshot):
        plan = plan_entry(flat_snapshot, Signal.BUY, 70)
        assert plan.direction is TradeDirection.NEUTRAL
        assert plan.recommendation == (
            "FLAT has insufficient volatility or volume for trading.")


class TestLevelsAndLeverage:

    @pytest.mark.parametrize("natr,leverage", [
        (0.5, (10, 20)), (1.5, (5, 10)), (3.0, (3, 5)), (5.0, (2, 3)), (8.0, (1, 2)),
    ])
    def test_leverage_bands(self, natr, leverage):
        assert leverage_for(natr) == leverage

    def test_minimum_atr_floor(self):
        """ATR below 1.5% is lifted to 1.5% before the multipliers apply."""
        target, stop, rr = dynamic_levels(100, TradeDirection.LONG, 0.5, StrengthLevel.WEAK)
        assert target == pytest.approx(102.25)
        assert stop == pytest.approx(97.0)
        assert rr == 0.75

    def test_short_levels_mirror_long(self):
        target, stop, rr = dynamic_levels(100, TradeDirection.SHORT, 2.0, StrengthLevel.VERY_STRONG)
        assert target == pytest.approx(94.0)
        assert stop == pytest.approx(102.0)
        assert rr == 3.0

    def test_neutral_levels(self):
        assert dynamic_levels(100, TradeDirection.NEUTRAL, 3.0, StrengthLevel.STRONG) == (100, 100, 0.0)

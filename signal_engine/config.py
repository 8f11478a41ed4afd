"""
Configuration Module for the Snapshot Signal Engine

Centralizes every period, threshold and weight used by the indicator
formulas, the regime classifier, the strategies and the detectors.

Thresholds are grouped into frozen dataclasses so a value can be read from
anywhere but never reassigned at runtime:

    INDICATORS   Lookback periods and multipliers for the formula families
    REGIME       Regime classification cut-offs (both policies)
    SCORING      Score-to-signal anchors, confidence and risk model
    STRATEGIES   Vote bands, weights and signal cut-offs per strategy
    DETECTORS    Crash and bull-entry detector triggers
    ENTRY_PLAN   Directional entry planner (tradeability, levels, leverage)
    SNAPSHOT     Defaults used when a snapshot field is missing
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Tuple


# =============================================================================
# INDICATOR PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class IndicatorParameters:
    """Lookback periods and multipliers for every indicator family."""

    # Momentum
    rsi_period: int = 14
    rsi_change_multiplier: float = 3.0      # RSI points per 1% of 24h change
    rsi_ath_weight: float = 0.2             # Weight of the ATH/ATL range position
    rsi_floor: float = 10.0
    rsi_ceiling: float = 90.0
    rsi_overbought: float = 65.0
    rsi_oversold: float = 35.0
    stochastic_k_period: int = 14
    stochastic_d_period: int = 3
    williams_period: int = 14
    roc_period: int = 12
    momentum_period: int = 10
    ao_fast_period: int = 5
    ao_slow_period: int = 34
    cci_period: int = 20
    cci_constant: float = 0.015             # Lambert's constant
    uo_periods: Tuple[int, int, int] = (7, 14, 28)

    # Trend
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    adx_period: int = 14
    sar_af_start: float = 0.02
    sar_af_increment: float = 0.02
    sar_af_max: float = 0.2
    supertrend_period: int = 10
    supertrend_multiplier: float = 3.0

    # Volatility
    atr_period: int = 14
    bb_period: int = 20
    bb_std_dev: float = 2.0
    bb_default_band: float = 0.10           # +/-10% band when the range is unknown
    squeeze_threshold: float = 0.10
    donchian_period: int = 20
    keltner_period: int = 20
    keltner_multiplier: float = 2.0
    hv_period: int = 30
    trading_days_year: int = 252
    garman_klass_efficiency: float = 7.4

    # Volume
    volume_roc_period: int = 14
    mfi_period: int = 14
    cmf_period: int = 21
    trend_lookback: int = 10                # OBV / A-D trend window

    # Risk-adjusted returns
    risk_free_rate: float = 0.02
    var_confidence_levels: Tuple[float, float] = (0.95, 0.99)


# =============================================================================
# REGIME THRESHOLDS
# =============================================================================

@dataclass(frozen=True)
class RegimeThresholds:
    """Cut-offs for both regime classification policies."""

    # Bollinger policy
    high_vol_natr: float = 10.0             # Normalized ATR (%) above = high vol
    high_vol_bandwidth: float = 0.30
    low_vol_bandwidth: float = 0.10
    extreme_percent_b_upper: float = 0.90
    extreme_percent_b_lower: float = 0.10
    trend_rsi_distance: float = 20.0        # |RSI - 50| above = directional

    # ADX / ATR policy
    low_vol_natr: float = 2.0
    strong_trend_adx: float = 40.0
    weak_trend_adx: float = 20.0
    directional_change: float = 5.0
    range_rsi_low: float = 40.0
    range_rsi_high: float = 60.0
    range_change: float = 3.0


# =============================================================================
# SCORING PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class ScoringParameters:
    """Signal thresholds, confidence model and risk model."""

    strong_threshold: float = 60.0
    signal_threshold: float = 20.0

    confidence_floor: float = 20.0
    confidence_ceiling: float = 90.0
    confidence_strength_weight: float = 0.4
    confidence_agreement_base: float = 20.0
    confidence_agreement_weight: float = 30.0
    confidence_adx_weight: float = 0.4
    confidence_adx_cap: float = 15.0

    risk_floor: float = 15.0
    risk_ceiling: float = 85.0
    risk_confidence_weight: float = 0.3
    risk_agreement_weight: float = 20.0
    risk_missing_agreement: float = 5.0
    default_natr: float = 3.0

    high_risk_cutoff: float = 70.0          # Market overview "high risk"
    high_confidence_cutoff: float = 70.0

    unknown_regime_risk: float = 45.0
    # Final decision: risk floors forced by the crash detector
    severe_crash_risk: float = 90.0         # HIGH / EXTREME
    medium_crash_risk: float = 70.0

    regime_base_risk: Dict[str, float] = field(default_factory=lambda: {
        "HIGH_VOLATILITY": 70.0,
        "BEAR_MARKET": 65.0,
        "SIDEWAYS": 45.0,
        "MEAN_REVERSION": 40.0,
        "TRENDING": 35.0,
        "LOW_VOLATILITY": 30.0,
        "BULL_MARKET": 25.0,
    })


# =============================================================================
# STRATEGY PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class StrategyParameters:
    """Vote bands, vote weights and signal cut-offs of the four strategies."""

    # Agreement wording ("strong consensus" / "moderate agreement" / "mixed")
    strong_agreement_pct: int = 70
    moderate_agreement_pct: int = 50

    # Momentum: (buy below, sell above) bands and vote weights
    momentum_rsi_band: Tuple[float, float] = (48.0, 52.0)
    momentum_change: float = 0.5
    momentum_weights: Tuple[float, float, float, float] = (30.0, 30.0, 25.0, 15.0)
    momentum_rsi_note: Tuple[float, float] = (40.0, 60.0)
    momentum_strong_adx: float = 40.0
    momentum_weak_adx: float = 20.0

    # Mean reversion
    reversion_rsi_band: Tuple[float, float] = (45.0, 55.0)
    reversion_stoch_band: Tuple[float, float] = (40.0, 60.0)
    reversion_percent_b_band: Tuple[float, float] = (0.4, 0.6)
    reversion_distance_band: Tuple[float, float] = (-1.0, 1.0)
    reversion_change: float = 1.0
    # rsi, stochastic, %B, MACD, MA distance, 24h change
    reversion_weights: Tuple[float, ...] = (25.0, 20.0, 20.0, 20.0, 10.0, 15.0)
    reversion_rsi_note: Tuple[float, float] = (35.0, 65.0)
    reversion_band_note: Tuple[float, float] = (0.25, 0.75)
    reversion_strong: float = 50.0
    reversion_threshold: float = 15.0

    # Breakout
    breakout_squeeze_weight: float = 40.0
    breakout_channel_band: Tuple[float, float] = (0.2, 0.8)
    breakout_channel_weight: float = 30.0
    breakout_volume_roc: float = 20.0
    breakout_volume_weight: float = 20.0
    breakout_atr_weight: float = 10.0

    # Volatility
    volatility_extreme_band: Tuple[float, float] = (0.1, 0.9)
    volatility_extreme_weight: float = 40.0
    volatility_confirm_band: Tuple[float, float] = (0.2, 0.8)
    volatility_confirm_weight: float = 30.0
    volatility_score_hv_divisor: float = 100.0
    volatility_score_hv_cap: float = 0.3
    volatility_confidence_hv_divisor: float = 200.0
    volatility_confidence_hv_cap: float = 0.4
    volatility_strong: float = 70.0
    volatility_threshold: float = 40.0


# =============================================================================
# DETECTOR THRESHOLDS
# =============================================================================

@dataclass(frozen=True)
class DetectorThresholds:
    """Triggers for the crash and bull-entry detectors."""

    crash_change: float = -15.0             # 24h change (%) below = rapid drop
    crash_volume_roc: float = 100.0
    crash_rsi: float = 20.0
    crash_natr: float = 10.0

    entry_rsi_low: float = 40.0
    entry_rsi_high: float = 70.0
    entry_volume_roc: float = 20.0
    entry_adx: float = 25.0

    # Tier -> (target multiplier, stop-loss distance)
    entry_levels: Dict[str, Tuple[float, float]] = field(default_factory=lambda: {
        "VERY_STRONG": (1.20, 0.05),
        "STRONG": (1.15, 0.07),
        "MODERATE": (1.10, 0.10),
        "WEAK": (1.05, 0.12),
    })


# =============================================================================
# ENTRY PLAN PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class EntryPlanParameters:
    """Directional entry planner: tradeability filter, levels and leverage."""

    min_natr: float = 0.3                   # Below = effectively pegged
    min_volume: float = 100_000.0
    indicator_rsi_low: float = 30.0
    indicator_rsi_high: float = 70.0
    min_atr_percent: float = 1.5
    min_target_percent: float = 2.0
    min_stop_percent: float = 1.0

    # Strength tier -> ATR multiple
    target_multipliers: Dict[str, float] = field(default_factory=lambda: {
        "VERY_STRONG": 3.0, "STRONG": 2.5, "MODERATE": 2.0, "WEAK": 1.5,
    })
    stop_multipliers: Dict[str, float] = field(default_factory=lambda: {
        "VERY_STRONG": 1.0, "STRONG": 1.2, "MODERATE": 1.5, "WEAK": 2.0,
    })

    # (natr upper bound, suggested leverage, max leverage), checked in order
    leverage_table: Tuple[Tuple[float, int, int], ...] = (
        (1.0, 10, 20),
        (2.0, 5, 10),
        (4.0, 3, 5),
        (6.0, 2, 3),
    )
    fallback_leverage: Tuple[int, int] = (1, 2)

    stablecoins: FrozenSet[str] = frozenset({
        "USDT", "USDC", "BUSD", "DAI", "TUSD", "USDP", "FRAX", "LUSD", "USDD",
        "FDUSD", "PYUSD", "GUSD", "SUSD", "CUSD", "USDJ", "UST", "MIM", "DOLA",
        "CRVUSD",
    })


# =============================================================================
# SNAPSHOT DEFAULTS
# =============================================================================

@dataclass(frozen=True)
class SnapshotDefaults:
    """Fallbacks for missing snapshot fields."""

    typical_daily_turnover: float = 0.05    # Volume / market cap baseline
    keltner_atr_fraction: float = 0.02      # ATR proxy when the range is unknown


# Global instances for easy access
INDICATORS = IndicatorParameters()
REGIME = RegimeThresholds()
SCORING = ScoringParameters()
STRATEGIES = StrategyParameters()
DETECTORS = DetectorThresholds()
ENTRY_PLAN = EntryPlanParameters()
SNAPSHOT = SnapshotDefaults()

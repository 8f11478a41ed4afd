#!/usr/bin/env python3
"""
Snapshot Signal Engine - Demo Runner

Runs the full signal pipeline over a set of 24h market snapshots and prints
one report per asset followed by a market overview:

    1. Indicators     RSI, MACD, ADX, ATR, volume ROC, drawdown, divergence
    2. Regime         rule-table classification (bollinger or adx_atr policy)
    3. Strategies     momentum, mean reversion, breakout, volatility
    4. Combination    primary signal, confidence and risk score
    5. Detectors      crash and bull entry
    6. Decision       detector overrides, recommendation and entry plan

EXECUTION
    python run_demo.py
    python run_demo.py --symbol BTC
    python run_demo.py --input snapshots.json --policy adx_atr --workers 4
    python run_demo.py --json > assessments.json

INPUT FORMAT
    A JSON list of snapshot objects (or {"snapshots": [...]}). Keys may be
    snake_case or camelCase:

        {"symbol": "BTC", "price": 50000, "volume24h": 3.1e10,
         "marketCap": 9.8e11, "change24h": 1.2,
         "high24h": 51000, "low24h": 49000, "ath": 69000, "atl": 67.8}

    Records that fail validation are logged and skipped.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from signal_engine import (
    MarketAssessment,
    PriceSnapshot,
    RegimePolicy,
    SignalPipeline,
    SnapshotValidationError,
    __version__,
    create_market_overview,
    format_analysis_report,
    rank_by_quality,
)
from signal_engine.pipeline import format_overview

logger = logging.getLogger("run_demo")


# =============================================================================
# CONSTANTS
# =============================================================================

VERSION: str = __version__

SAMPLE_SNAPSHOTS: List[Dict[str, Any]] = [
    {"symbol": "BTC", "price": 50000, "volume_24h": 3.1e10, "market_cap": 9.8e11,
     "change_24h": 0.4, "high_24h": 51000, "low_24h": 49000,
     "ath": 69000, "atl": 67.81},
    {"symbol": "ETH", "price": 3120, "volume_24h": 1.9e10, "market_cap": 3.75e11,
     "change_24h": 6.8, "high_24h": 3150, "low_24h": 2890,
     "ath": 4878, "atl": 0.43},
    {"symbol": "SOL", "price": 110.5, "volume_24h": 4.2e9, "market_cap": 5.2e10,
     "change_24h": -2.1, "high_24h": 112, "low_24h": 108,
     "ath": 260, "atl": 0.5},
    {"symbol": "LUNA", "price": 50000, "volume_24h": 5e11, "market_cap": 1e12,
     "change_24h": -30, "high_24h": 80000, "low_24h": 30000},
    {"symbol": "DOGE", "price": 0.081, "volume_24h": 3.9e8, "market_cap": 1.15e10,
     "change_24h": 0.1, "high_24h": 0.0812, "low_24h": 0.0808},
    {"symbol": "USDT", "price": 1.0, "volume_24h": 4.5e10, "market_cap": 8.3e10,
     "change_24h": 0.01, "high_24h": 1.001, "low_24h": 0.999},
]


# =============================================================================
# DISPLAY COMPONENTS
# =============================================================================

BANNER = r'''
╔═══════════════════════════════════════════════════════════════════════════════╗
║                                                                               ║
║                        SNAPSHOT SIGNAL ENGINE                                 ║
║                                                                               ║
║          regime detection  ·  strategy consensus  ·  crash detection          ║
║                                                                               ║
╚═══════════════════════════════════════════════════════════════════════════════╝
'''


def print_section_header(title: str, char: str = "═") -> None:
    """Print a formatted section header."""
    width = 79
    print()
    print(char * width)
    print(f"  {title}")
    print(char * width)
    print()


def summary_table(assessments: Sequence[MarketAssessment]) -> pd.DataFrame:
    """One row per asset, best composite quality first."""
    rows = [{
        "symbol": a.symbol,
        "regime": a.strategy.regime.value,
        "signal": a.signal.value,
        "confidence": a.confidence,
        "risk": a.risk_score,
        "crash": a.crash.severity.value,
        "plan": a.entry_plan.direction.value,
        "quality": a.composite.overall_quality,
    } for a in rank_by_quality(assessments)]
    return pd.DataFrame(rows, columns=["symbol", "regime", "signal", "confidence",
                                       "risk", "crash", "plan", "quality"])


# =============================================================================
# INPUT
# =============================================================================

def parse_snapshots(records: Any) -> List[PriceSnapshot]:
    """
    Validate raw records, skipping the ones that fail.

    Args:
        records: List of snapshot mappings, a ``{"snapshots": [...]}`` wrapper
            or a single mapping

    Returns:
        Valid snapshots in input order
    """
    if isinstance(records, dict):
        records = records.get("snapshots", [records])
    if not isinstance(records, list):
        raise SnapshotValidationError(
            f"expected a list of snapshots, got {type(records).__name__}")

    snapshots = []
    for index, record in enumerate(records):
        try:
            snapshots.append(PriceSnapshot.from_dict(record))
        except SnapshotValidationError as exc:
            logger.warning(f"Skipping record {index}: {exc}")
    return snapshots


def load_snapshots(path: Optional[Path]) -> List[PriceSnapshot]:
    """Snapshots from a JSON file, or the built-in samples when ``path`` is None."""
    if path is None:
        return parse_snapshots(SAMPLE_SNAPSHOTS)
    with path.open(encoding="utf-8") as handle:
        return parse_snapshots(json.load(handle))


# =============================================================================
# MAIN
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Snapshot Signal Engine - Demo Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_demo.py                               # Built-in sample snapshots
  python run_demo.py --symbol BTC                  # One asset only
  python run_demo.py --input snapshots.json        # Your own snapshots
  python run_demo.py --policy adx_atr --workers 4  # Alternative regime table
  python run_demo.py --json                        # Machine-readable output

Regime policies:
  bollinger   band width and %B driven (default)
  adx_atr     trend strength and normalized ATR driven
        """
    )

    parser.add_argument(
        "--input", "-i",
        type=Path,
        default=None,
        help="JSON file with snapshots (default: built-in samples)"
    )

    parser.add_argument(
        "--symbol", "-s",
        type=str,
        default=None,
        help="Only analyze this symbol"
    )

    parser.add_argument(
        "--policy", "-p",
        choices=[p.name.lower() for p in RegimePolicy],
        default=RegimePolicy.BOLLINGER.name.lower(),
        help="Regime rule table (default: bollinger)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=1,
        help="Worker threads for the batch (default: 1)"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print assessments as JSON instead of text reports"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the demo runner.

    Returns
    -------
    int
        Exit code (0 for success, 1 for failure)
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="  %(asctime)s │ %(levelname)s │ %(message)s",
        datefmt="%H:%M:%S"
    )

    try:
        snapshots = load_snapshots(args.input)
    except (OSError, json.JSONDecodeError, SnapshotValidationError) as exc:
        logger.error(f"Cannot read snapshots from {args.input}: {exc}")
        return 1

    if args.symbol:
        wanted = args.symbol.strip().upper()
        snapshots = [s for s in snapshots if s.symbol.upper() == wanted]
        if not snapshots:
            logger.error(f"No snapshot for symbol {args.symbol}")
            return 1

    if not snapshots:
        logger.error("No valid snapshots to analyze")
        return 1

    pipeline = SignalPipeline(RegimePolicy.from_name(args.policy), max_workers=args.workers)
    logger.info(f"Running {pipeline} on {len(snapshots)} snapshot(s)")
    assessments = pipeline.assess_batch(snapshots)

    if args.json:
        print(json.dumps([a.to_dict() for a in assessments], indent=2))
        return 0

    print(BANNER)
    print(f"  Snapshots:  {len(snapshots)}")
    print(f"  Policy:     {pipeline.policy.value.lower()}")
    print(f"  Version:    {VERSION}")

    for assessment in assessments:
        print()
        print(format_analysis_report(assessment))

    if len(assessments) > 1:
        print_section_header("SUMMARY")
        print(summary_table(assessments).to_string(index=False))
        print()
        print(format_overview(create_market_overview(assessments)))

    logger.info(f"Completed in {time.time() - start_time:.2f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Market Regime Classifier

Labels the tape state for one instrument:
- HIGH_RISK: volatility index elevated (overrides everything)
- SIDEWAYS: overlapping bars or a negligible move
- TRENDING_UP / TRENDING_DOWN: EMA stacking with a decisive move
- NO_TRADE: anything ambiguous, or missing inputs

Only the TRENDING regimes are considered tradeable; the default for
unclear inputs is NO_TRADE, never a guessed direction.
"""

from typing import Optional

from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.models.verdicts import ClassifierVerdict


TRENDING_UP = "TRENDING_UP"
TRENDING_DOWN = "TRENDING_DOWN"
SIDEWAYS = "SIDEWAYS"
HIGH_RISK = "HIGH_RISK"
NO_TRADE = "NO_TRADE"

TRADEABLE_REGIMES = frozenset({TRENDING_UP, TRENDING_DOWN})

VIX_HIGH_RISK = 20.0
OVERLAP_SIDEWAYS_PCT = 60.0
SLOW_MOVE_PCT = 0.15
STRONG_MOVE_PCT = 0.35
MIN_CANDLE_SIZE_PCT = 0.25


def bar_overlap_percent(snapshot: MarketSnapshot) -> Optional[float]:
    """
    Overlap of the last bar with the bar before it, as % of the last bar's range.

    Requires at least two bars of high/low history.
    """
    if len(snapshot.highs) < 2 or len(snapshot.lows) < 2:
        return None

    cur_high, prev_high = snapshot.highs[-1], snapshot.highs[-2]
    cur_low, prev_low = snapshot.lows[-1], snapshot.lows[-2]
    cur_range = cur_high - cur_low
    if cur_range <= 0:
        return 100.0

    overlap = min(cur_high, prev_high) - max(cur_low, prev_low)
    return max(overlap, 0.0) / cur_range * 100


def detect_market_regime(
    snapshot: MarketSnapshot,
    candle_size_pct: Optional[float] = None,
    overlap_pct: Optional[float] = None,
) -> ClassifierVerdict:
    """
    Classify the market regime.

    Args:
        snapshot: Market snapshot (close, prev_close, EMA20, EMA50, VIX)
        candle_size_pct: Bar change %, defaults to |close - prev_close| / prev_close
        overlap_pct: Bar overlap %, defaults to bar_overlap_percent(snapshot)

    Returns:
        ClassifierVerdict tagged with the regime
    """
    close, prev, ema20, ema50 = snapshot.close, snapshot.prev_close, snapshot.ema20, snapshot.ema50
    if close is None or not prev or ema20 is None or ema50 is None:
        return ClassifierVerdict(
            name="regime", tag=NO_TRADE, reason="Insufficient data for regime detection"
        )

    if snapshot.vix is not None and snapshot.vix >= VIX_HIGH_RISK:
        return ClassifierVerdict(
            name="regime", tag=HIGH_RISK, reason=f"High volatility environment (VIX {snapshot.vix})"
        )

    move_pct = abs(close - prev) / prev * 100
    if candle_size_pct is None:
        candle_size_pct = move_pct
    if overlap_pct is None:
        overlap_pct = bar_overlap_percent(snapshot)

    details = (("move_pct", round(move_pct, 3)), ("overlap_pct", overlap_pct))

    if (overlap_pct is not None and overlap_pct >= OVERLAP_SIDEWAYS_PCT) or move_pct < SLOW_MOVE_PCT:
        return ClassifierVerdict(
            name="regime", tag=SIDEWAYS, reason="Price overlapping / low momentum", details=details
        )

    strong_move = move_pct >= STRONG_MOVE_PCT and candle_size_pct >= MIN_CANDLE_SIZE_PCT

    if strong_move and close > ema20 > ema50:
        return ClassifierVerdict(
            name="regime", tag=TRENDING_UP, active=True, direction="BULLISH",
            reason="Price > EMA20 > EMA50 with strong momentum", details=details,
        )
    if strong_move and close < ema20 < ema50:
        return ClassifierVerdict(
            name="regime", tag=TRENDING_DOWN, active=True, direction="BEARISH",
            reason="Price < EMA20 < EMA50 with strong momentum", details=details,
        )

    return ClassifierVerdict(
        name="regime", tag=NO_TRADE, reason="Regime unclear - capital protection", details=details
    )


def is_regime_tradeable(regime: ClassifierVerdict) -> bool:
    return regime.tag in TRADEABLE_REGIMES

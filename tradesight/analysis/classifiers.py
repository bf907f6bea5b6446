"""
Market-state classifiers.

Each classifier is a pure function of a MarketSnapshot (plus, where the
rule depends on it, the trend tag) and returns a ClassifierVerdict.
Missing inputs never raise: they yield an UNKNOWN / neutral verdict and
the scoring aggregator decides what to do with it.

Classifiers:
- classify_trend: price vs EMA20/EMA50
- check_rsi: blocks extremes, boosts aligned mid-zones
- check_volume: current vs average volume tiers
- detect_breakout: hard/soft breakout vs the rolling range
- classify_candle: body-to-range ratio and bar-over-bar change
- check_htf_alignment: higher-timeframe trend agreement
- check_institutional: OI / PCR / breadth layer
"""

from typing import List, Optional

from tradesight.shared.models.snapshot import HigherTimeframeSnapshot, MarketSnapshot
from tradesight.shared.models.verdicts import ClassifierVerdict


UPTREND = "UPTREND"
DOWNTREND = "DOWNTREND"
SIDEWAYS = "SIDEWAYS"
UNKNOWN = "UNKNOWN"

TREND_STRENGTH_SPREAD = 0.01  # |EMA20-EMA50|/EMA50
RSI_UP_BLOCK = 75.0
RSI_DOWN_BLOCK = 25.0
SOFT_BREAKOUT_PROXIMITY = 0.002  # within 0.2% of the range edge
HTF_TIMEFRAMES = ("15m", "1h", "1d")
HTF_MIN_ALIGNED = 2


def trend_from_emas(close: Optional[float], ema20: Optional[float], ema50: Optional[float]) -> str:
    """UPTREND / DOWNTREND / SIDEWAYS from price-vs-EMA stacking (UNKNOWN on gaps)."""
    if close is None or ema20 is None or ema50 is None:
        return UNKNOWN
    if close > ema20 > ema50:
        return UPTREND
    if close < ema20 < ema50:
        return DOWNTREND
    return SIDEWAYS


def trend_direction(trend: str) -> Optional[str]:
    if trend == UPTREND:
        return "BULLISH"
    if trend == DOWNTREND:
        return "BEARISH"
    return None


def classify_trend(snapshot: MarketSnapshot) -> ClassifierVerdict:
    """
    Classify trend from close, EMA20 and EMA50.

    UPTREND iff close > EMA20 > EMA50, DOWNTREND iff close < EMA20 < EMA50,
    otherwise SIDEWAYS. Directional strength is STRONG when the EMA spread
    exceeds 1% of EMA50, else MODERATE.
    """
    close, ema20, ema50 = snapshot.close, snapshot.ema20, snapshot.ema50
    trend = trend_from_emas(close, ema20, ema50)

    if trend == UNKNOWN:
        return ClassifierVerdict(name="trend", tag=UNKNOWN, strength="WEAK", reason="Insufficient EMA data")

    if trend == SIDEWAYS:
        return ClassifierVerdict(
            name="trend", tag=SIDEWAYS, strength="WEAK", reason="No clear EMA stacking"
        )

    spread = abs(ema20 - ema50) / ema50 if ema50 else 0.0
    strength = "STRONG" if spread > TREND_STRENGTH_SPREAD else "MODERATE"
    arrow = ">" if trend == UPTREND else "<"
    return ClassifierVerdict(
        name="trend",
        tag=trend,
        strength=strength,
        reason=f"Price {arrow} EMA20 {arrow} EMA50",
        direction=trend_direction(trend),
        details=(("ema_spread_pct", round(spread * 100, 3)),),
    )


def check_rsi(snapshot: MarketSnapshot, trend: str) -> ClassifierVerdict:
    """
    Momentum validator.

    Blocks only at extremes (UPTREND at RSI >= 75, DOWNTREND at RSI <= 25).
    Boosts in the aligned mid-zone (50-70 up, 30-50 down). Missing RSI is
    allowed without a boost.
    """
    rsi = snapshot.rsi
    if rsi is None:
        return ClassifierVerdict(name="rsi", tag="MISSING", reason="RSI data missing")

    if trend == UPTREND and rsi >= RSI_UP_BLOCK:
        return ClassifierVerdict(
            name="rsi", tag="OVERBOUGHT", allowed=False, reason=f"RSI {rsi:.1f} overbought - BUY blocked"
        )
    if trend == DOWNTREND and rsi <= RSI_DOWN_BLOCK:
        return ClassifierVerdict(
            name="rsi", tag="OVERSOLD", allowed=False, reason=f"RSI {rsi:.1f} oversold - SELL blocked"
        )

    if trend == UPTREND and 50 <= rsi < 70:
        return ClassifierVerdict(
            name="rsi", tag="BULLISH_ZONE", boost=True, direction="BULLISH",
            reason=f"RSI {rsi:.1f} in bullish zone",
        )
    if trend == DOWNTREND and 30 < rsi <= 50:
        return ClassifierVerdict(
            name="rsi", tag="BEARISH_ZONE", boost=True, direction="BEARISH",
            reason=f"RSI {rsi:.1f} in bearish zone",
        )

    return ClassifierVerdict(name="rsi", tag="NEUTRAL", reason="RSI neutral")


def check_volume(snapshot: MarketSnapshot) -> ClassifierVerdict:
    """
    Grade current volume against average volume.

    <1.1 WEAK, [1.1,1.5) MODERATE, [1.5,2.0) STRONG, >=2.0 VERY_STRONG.
    Zero/missing average or missing volume is UNKNOWN and never confirms.
    """
    volume, avg = snapshot.volume, snapshot.avg_volume
    if volume is None or not avg:
        return ClassifierVerdict(
            name="volume", tag=UNKNOWN, strength=UNKNOWN, reason="Volume data missing"
        )

    ratio = volume / avg
    if ratio >= 2.0:
        strength, confirmed = "VERY_STRONG", True
    elif ratio >= 1.5:
        strength, confirmed = "STRONG", True
    elif ratio >= 1.1:
        strength, confirmed = "MODERATE", True
    else:
        strength, confirmed = "WEAK", False

    return ClassifierVerdict(
        name="volume",
        tag=strength,
        strength=strength,
        confirmed=confirmed,
        reason=f"Volume {ratio:.2f}x average",
        details=(("ratio", round(ratio, 2)),),
    )


def detect_breakout(snapshot: MarketSnapshot) -> ClassifierVerdict:
    """
    Classify close against the rolling range.

    Hard breakout/breakdown when close is strictly beyond the range edge;
    soft when within 0.2% of the edge. A hard result always wins and only
    one directional type is returned.
    """
    close, high, low = snapshot.close, snapshot.range_high, snapshot.range_low
    if close is None or high is None or low is None:
        return ClassifierVerdict(name="breakout", tag="NONE", reason="Range data missing")

    if close > high:
        return ClassifierVerdict(
            name="breakout", tag="BULLISH_BREAKOUT", strength="HARD", hard=True, active=True,
            direction="BULLISH", reason=f"Close {close} above range high {high}",
        )
    if close < low:
        return ClassifierVerdict(
            name="breakout", tag="BEARISH_BREAKDOWN", strength="HARD", hard=True, active=True,
            direction="BEARISH", reason=f"Close {close} below range low {low}",
        )

    near_high = close >= high * (1 - SOFT_BREAKOUT_PROXIMITY)
    near_low = close <= low * (1 + SOFT_BREAKOUT_PROXIMITY)

    # A very tight range can put close near both edges; pick the nearer one
    if near_high and near_low:
        if (high - close) <= (close - low):
            near_low = False
        else:
            near_high = False

    if near_high:
        return ClassifierVerdict(
            name="breakout", tag="BULLISH_BREAKOUT", strength="SOFT", active=True,
            direction="BULLISH", reason="Close approaching range high",
        )
    if near_low:
        return ClassifierVerdict(
            name="breakout", tag="BEARISH_BREAKDOWN", strength="SOFT", active=True,
            direction="BEARISH", reason="Close approaching range low",
        )

    return ClassifierVerdict(name="breakout", tag="NONE", reason="Inside range")


def classify_candle(snapshot: MarketSnapshot) -> ClassifierVerdict:
    """
    Grade the current candle.

    STRONG needs body > 60% of range and change > 0.5%; MODERATE needs
    body > 40%; otherwise WEAK. Zero range or missing OHLC is UNKNOWN.
    """
    o, h, l, c = snapshot.open, snapshot.high, snapshot.low, snapshot.close
    if None in (o, h, l, c):
        return ClassifierVerdict(name="candle", tag=UNKNOWN, strength=UNKNOWN, reason="Candle data missing")

    candle_range = h - l
    if candle_range <= 0:
        return ClassifierVerdict(name="candle", tag=UNKNOWN, strength=UNKNOWN, reason="Zero-range candle")

    body_pct = abs(c - o) / candle_range * 100
    prev = snapshot.prev_close
    change_pct = abs(c - prev) / prev * 100 if prev else 0.0

    if body_pct > 60 and change_pct > 0.5:
        strength = "STRONG"
    elif body_pct > 40:
        strength = "MODERATE"
    else:
        strength = "WEAK"

    return ClassifierVerdict(
        name="candle",
        tag=strength,
        strength=strength,
        direction="BULLISH" if c > o else "BEARISH" if c < o else None,
        reason=f"Body {body_pct:.0f}% of range, change {change_pct:.2f}%",
        details=(("body_pct", round(body_pct, 2)), ("change_pct", round(change_pct, 2))),
    )


def _htf_trend(snap: HigherTimeframeSnapshot) -> str:
    if snap.trend:
        return snap.trend
    return trend_from_emas(snap.close, snap.ema20, snap.ema50)


def check_htf_alignment(snapshot: MarketSnapshot, trend: str) -> ClassifierVerdict:
    """Aligned when at least two of 15m / 1h / daily share the current trend."""
    if trend not in (UPTREND, DOWNTREND):
        return ClassifierVerdict.neutral("htf_alignment", "No directional trend to align")

    aligned: List[str] = []
    for timeframe in HTF_TIMEFRAMES:
        snap = snapshot.higher_timeframe(timeframe)
        if snap is not None and _htf_trend(snap) == trend:
            aligned.append(timeframe)

    is_aligned = len(aligned) >= HTF_MIN_ALIGNED
    return ClassifierVerdict(
        name="htf_alignment",
        tag="ALIGNED" if is_aligned else "NOT_ALIGNED",
        active=is_aligned,
        direction=trend_direction(trend) if is_aligned else None,
        score=len(aligned),
        reason=f"{len(aligned)}/{len(HTF_TIMEFRAMES)} higher timeframes agree"
        + (f" ({', '.join(aligned)})" if aligned else ""),
    )


def check_institutional(snapshot: MarketSnapshot) -> ClassifierVerdict:
    """
    Institutional layer from OI change, PCR and market breadth.

    OI change >10% +2 (OI_BUILDUP), < -10% +1 (OI_UNWINDING); PCR >1.2 +2
    (BULLISH_PCR), <0.8 +2 (BEARISH_PCR); A/D ratio >2 +2 (STRONG_BREADTH),
    <0.5 +2 (WEAK_BREADTH). Active at score >= 3.
    """
    oi, pcr, breadth = snapshot.oi_change, snapshot.pcr, snapshot.advance_decline_ratio
    if oi is None and pcr is None and breadth is None:
        return ClassifierVerdict.neutral("institutional", "No institutional data")

    score = 0
    signals: List[str] = []
    if oi is not None:
        if oi > 10:
            score += 2
            signals.append("OI_BUILDUP")
        elif oi < -10:
            score += 1
            signals.append("OI_UNWINDING")
    if pcr is not None:
        if pcr > 1.2:
            score += 2
            signals.append("BULLISH_PCR")
        elif pcr < 0.8:
            score += 2
            signals.append("BEARISH_PCR")
    if breadth is not None:
        if breadth > 2:
            score += 2
            signals.append("STRONG_BREADTH")
        elif breadth < 0.5:
            score += 2
            signals.append("WEAK_BREADTH")

    bullish = "BULLISH_PCR" in signals or "STRONG_BREADTH" in signals
    bearish = "BEARISH_PCR" in signals or "WEAK_BREADTH" in signals
    active = score >= 3

    return ClassifierVerdict(
        name="institutional",
        tag="ACTIVE" if active else "INACTIVE",
        active=active,
        score=score,
        reason=", ".join(signals) if signals else "No institutional signals",
        details=(("signals", tuple(signals)), ("bullish", bullish), ("bearish", bearish)),
    )

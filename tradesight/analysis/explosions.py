"""
Explosive-move detectors.

EARLY_EXPANSION
    Catch the start of a big move: change >= 1.5%, volume >= 2x average,
    bar range >= 1.8x ATR, body >= 60% of range, EMA20/EMA50 aligned with
    the move. Detected at 4 of 5 conditions (HIGH at 5).

Momentum runners (by absolute change)
    >= 8%  stage 1 MOMENTUM_BUILDING
    >= 15% stage 2 HIGH_MOMENTUM_RUNNER
    >= 20% stage 3 EXPLOSIVE_RUNNER
    Stage 1 needs volume >= 3x average to be reported.

SWING_CONTINUATION (daily data)
    Close beyond the weekly level, EMA20/EMA50 stacked, close beyond EMA20,
    volume >= 1.8x, RSI in the trend band (50-75 up, 25-50 down).
    Detected at 3 of 5 conditions (HIGH at 4).
"""

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from tradesight.indicators.normalizer import normalize_value
from tradesight.shared.models.scan import ExplosionDetection
from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.models.verdicts import BUY, SELL, STRONG_BUY, STRONG_SELL

EARLY_EXPANSION = "EARLY_EXPANSION"
MOMENTUM_BUILDING = "MOMENTUM_BUILDING"
HIGH_MOMENTUM_RUNNER = "HIGH_MOMENTUM_RUNNER"
EXPLOSIVE_RUNNER = "EXPLOSIVE_RUNNER"
SWING_CONTINUATION = "SWING_CONTINUATION"

EXPLOSION_TYPES = (
    EARLY_EXPANSION,
    MOMENTUM_BUILDING,
    HIGH_MOMENTUM_RUNNER,
    EXPLOSIVE_RUNNER,
    SWING_CONTINUATION,
)

STRONG_EXPLOSIONS = frozenset({EARLY_EXPANSION, HIGH_MOMENTUM_RUNNER, EXPLOSIVE_RUNNER})

# Upstream daily-context keys
DAILY_KEYS = {
    "dailyClose": "close",
    "weeklyLevel": "weekly_level",
    "dailyEma20": "ema20",
    "dailyEma50": "ema50",
    "dailyVolume": "volume",
    "dailyAvgVolume": "avg_volume",
    "dailyRsi": "rsi",
}


@dataclass(frozen=True)
class DailyContext:
    """Daily-bar context for the swing continuation detector."""
    close: Optional[float] = None
    weekly_level: Optional[float] = None
    ema20: Optional[float] = None
    ema50: Optional[float] = None
    volume: Optional[float] = None
    avg_volume: Optional[float] = None
    rsi: Optional[float] = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> Optional["DailyContext"]:
        """Build from upstream keys (dailyClose, weeklyLevel, ...); None without a daily close."""
        values = {name: normalize_value(raw.get(key)) for key, name in DAILY_KEYS.items()}
        if values["close"] is None:
            return None
        return cls(**values)


def detect_early_expansion(snapshot: MarketSnapshot) -> Optional[ExplosionDetection]:
    s = snapshot
    if not (s.close and s.prev_close and s.volume and s.avg_volume and s.atr):
        return None

    change = (s.close - s.prev_close) / s.prev_close * 100
    volume_ratio = s.volume / s.avg_volume
    high = s.high if s.high is not None else s.close
    low = s.low if s.low is not None else s.close
    bar_range = high - low
    range_ratio = bar_range / s.atr
    open_ = s.open if s.open is not None else s.close
    body_pct = abs(s.close - open_) / bar_range * 100 if bar_range > 0 else 0.0
    ema_aligned = bool(s.ema20 and s.ema50) and (
        (change > 0 and s.ema20 > s.ema50) or (change < 0 and s.ema20 < s.ema50)
    )

    conditions = {
        "change": abs(change) >= 1.5,
        "volume": volume_ratio >= 2.0,
        "range": range_ratio >= 1.8,
        "body": body_pct >= 60,
        "ema": ema_aligned,
    }
    score = sum(conditions.values())
    if score < 4:
        return None

    return ExplosionDetection(
        symbol=s.symbol,
        type=EARLY_EXPANSION,
        direction="BULLISH" if change > 0 else "BEARISH",
        score=score,
        confidence="HIGH" if score >= 5 else "MEDIUM",
        details=(
            ("change_percent", round(change, 2)),
            ("volume_ratio", round(volume_ratio, 2)),
            ("range_ratio", round(range_ratio, 2)),
            ("body_percent", round(body_pct, 2)),
            ("conditions", tuple(k for k, v in conditions.items() if v)),
        ),
    )


def detect_momentum_runner(snapshot: MarketSnapshot) -> Optional[ExplosionDetection]:
    s = snapshot
    if not (s.close and s.prev_close and s.volume and s.avg_volume):
        return None

    change = (s.close - s.prev_close) / s.prev_close * 100
    move = abs(change)
    if move >= 20:
        stage, tag = 3, EXPLOSIVE_RUNNER
    elif move >= 15:
        stage, tag = 2, HIGH_MOMENTUM_RUNNER
    elif move >= 8:
        stage, tag = 1, MOMENTUM_BUILDING
    else:
        return None

    volume_ratio = s.volume / s.avg_volume
    if volume_ratio < 3.0 and stage < 2:
        return None

    return ExplosionDetection(
        symbol=s.symbol,
        type=tag,
        direction="BULLISH" if change > 0 else "BEARISH",
        score=stage,
        confidence="HIGH" if stage >= 2 else "MEDIUM",
        stage=stage,
        details=(("change_percent", round(change, 2)), ("volume_ratio", round(volume_ratio, 2))),
    )


def detect_swing_continuation(symbol: str, daily: Optional[DailyContext]) -> Optional[ExplosionDetection]:
    if daily is None or not (daily.close and daily.ema20 and daily.ema50):
        return None

    d = daily
    volume_ratio = d.volume / d.avg_volume if d.volume and d.avg_volume else 0.0
    volume_ok = volume_ratio >= 1.8
    rsi = d.rsi

    for direction, conditions in (
        ("BULLISH", {
            "weekly_breakout": d.weekly_level is not None and d.close > d.weekly_level,
            "ema_aligned": d.ema20 > d.ema50,
            "price_above_ema": d.close > d.ema20,
            "volume_confirmed": volume_ok,
            "rsi_ok": rsi is not None and 50 < rsi < 75,
        }),
        ("BEARISH", {
            "weekly_breakdown": d.weekly_level is not None and d.close < d.weekly_level,
            "ema_bearish": d.ema20 < d.ema50,
            "price_below_ema": d.close < d.ema20,
            "volume_confirmed": volume_ok,
            "rsi_bearish": rsi is not None and 25 < rsi < 50,
        }),
    ):
        score = sum(conditions.values())
        if score >= 3:
            return ExplosionDetection(
                symbol=symbol,
                type=SWING_CONTINUATION,
                direction=direction,
                score=score,
                confidence="HIGH" if score >= 4 else "MEDIUM",
                details=(
                    ("volume_ratio", round(volume_ratio, 2)),
                    ("weekly_level", d.weekly_level),
                    ("conditions", tuple(k for k, v in conditions.items() if v)),
                ),
            )
    return None


def detect_explosions(snapshot: MarketSnapshot, daily: Optional[DailyContext] = None) -> List[ExplosionDetection]:
    """Run every detector; at most one detection per type."""
    found = [detect_early_expansion(snapshot), detect_momentum_runner(snapshot)]
    if daily is not None:
        found.append(detect_swing_continuation(snapshot.symbol, daily))
    return [d for d in found if d is not None]


def explosion_to_signal(explosion: Optional[ExplosionDetection]) -> Optional[str]:
    """STRONG_* for expansions and high-stage runners, plain BUY/SELL otherwise."""
    if explosion is None:
        return None
    bullish = explosion.direction == "BULLISH"
    if explosion.type in STRONG_EXPLOSIONS:
        return STRONG_BUY if bullish else STRONG_SELL
    return BUY if bullish else SELL

"""
Market snapshot models.

A MarketSnapshot is the single input of one evaluation: the latest bar,
its indicators and optional context (higher timeframes, institutional
flow, candle history). It is frozen once built and never shared across
instruments.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from tradesight.indicators.normalizer import normalize_series, normalize_value
from tradesight.shared.utils.error_policy import InvalidSnapshotError


# Upstream quote feeds use camelCase and broker-specific names
FIELD_ALIASES: Dict[str, str] = {
    "ltp": "close",
    "prevClose": "prev_close",
    "avgVolume": "avg_volume",
    "rangeHigh": "range_high",
    "rangeLow": "range_low",
    "oiChange": "oi_change",
    "advanceDeclineRatio": "advance_decline_ratio",
    "totalBuyQty": "buy_qty",
    "totalSellQty": "sell_qty",
    "indiaVix": "vix",
}

HISTORY_FIELDS = ("highs", "lows", "closes", "volumes")
HTF_KEYS = {"htf15m": "15m", "htf1h": "1h", "htfDaily": "1d"}


@dataclass(frozen=True)
class HigherTimeframeSnapshot:
    """
    Trend context from a higher timeframe.

    Attributes:
        timeframe: Timeframe label ('15m', '1h', '1d')
        trend: Pre-computed trend tag, if the feed supplies one
        close/ema20/ema50: Used to derive the trend when no tag is given
    """
    timeframe: str
    trend: Optional[str] = None
    close: Optional[float] = None
    ema20: Optional[float] = None
    ema50: Optional[float] = None

    @classmethod
    def from_raw(cls, timeframe: str, raw: Any) -> "HigherTimeframeSnapshot":
        if isinstance(raw, str):
            return cls(timeframe=timeframe, trend=raw.upper())
        if not isinstance(raw, Mapping):
            return cls(timeframe=timeframe)
        trend = raw.get("trend")
        return cls(
            timeframe=timeframe,
            trend=trend.upper() if isinstance(trend, str) else None,
            close=normalize_value(raw.get("close")),
            ema20=normalize_value(raw.get("ema20")),
            ema50=normalize_value(raw.get("ema50")),
        )


@dataclass(frozen=True)
class MarketSnapshot:
    """
    Per-instrument, per-evaluation market state.

    Every numeric field is optional: absence means "insufficient data"
    and each classifier decides whether it can proceed without it.
    """
    symbol: str
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    close: Optional[float] = None
    prev_close: Optional[float] = None
    volume: Optional[float] = None
    avg_volume: Optional[float] = None
    ema20: Optional[float] = None
    ema50: Optional[float] = None
    rsi: Optional[float] = None
    atr: Optional[float] = None
    range_high: Optional[float] = None
    range_low: Optional[float] = None
    vix: Optional[float] = None

    # Intraday quote extras
    vwap: Optional[float] = None
    buy_qty: Optional[float] = None
    sell_qty: Optional[float] = None
    resistance: Optional[float] = None

    # Institutional layer
    oi_change: Optional[float] = None
    pcr: Optional[float] = None
    advance_decline_ratio: Optional[float] = None

    # Candle history (oldest -> newest) for auxiliary scanners
    highs: Tuple[float, ...] = ()
    lows: Tuple[float, ...] = ()
    closes: Tuple[float, ...] = ()
    volumes: Tuple[float, ...] = ()

    htf: Tuple[HigherTimeframeSnapshot, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_core_data(self) -> bool:
        """close, EMA20, EMA50 and RSI are all present."""
        return None not in (self.close, self.ema20, self.ema50, self.rsi)

    @property
    def change_percent(self) -> Optional[float]:
        if self.close is None or not self.prev_close:
            return None
        return (self.close - self.prev_close) / self.prev_close * 100

    def higher_timeframe(self, timeframe: str) -> Optional[HigherTimeframeSnapshot]:
        for snap in self.htf:
            if snap.timeframe == timeframe:
                return snap
        return None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], symbol: Optional[str] = None) -> "MarketSnapshot":
        """
        Build a snapshot from an upstream mapping.

        Scalar fields go through the indicator normalizer (sequences
        collapse to their last value). Unknown keys are ignored.

        Raises:
            InvalidSnapshotError: If no symbol is available
        """
        data = {FIELD_ALIASES.get(k, k): v for k, v in raw.items()}
        sym = symbol or data.get("symbol")
        if not sym:
            raise InvalidSnapshotError("MarketSnapshot requires a symbol")

        kwargs: Dict[str, Any] = {"symbol": str(sym)}
        for f in fields(cls):
            if f.name in ("symbol", "htf", "timestamp") or f.name not in data:
                continue
            if f.name in HISTORY_FIELDS:
                kwargs[f.name] = normalize_series(data[f.name])
            else:
                kwargs[f.name] = normalize_value(data[f.name])

        htf = []
        nested = data.get("htf")
        if isinstance(nested, Mapping):
            for timeframe, value in nested.items():
                htf.append(HigherTimeframeSnapshot.from_raw(str(timeframe), value))
        for key, timeframe in HTF_KEYS.items():
            if key in data:
                htf.append(HigherTimeframeSnapshot.from_raw(timeframe, data[key]))
        kwargs["htf"] = tuple(htf)

        if isinstance(data.get("timestamp"), datetime):
            kwargs["timestamp"] = data["timestamp"]

        return cls(**kwargs)

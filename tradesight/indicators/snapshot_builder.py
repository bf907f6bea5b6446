"""
Snapshot builder - candles in, MarketSnapshot out.

Computes EMA20/EMA50, RSI, ATR, average volume and the rolling range from
an OHLCV DataFrame and folds them, together with any extra context
(VIX, higher timeframes, institutional fields), into a MarketSnapshot.
An indicator that cannot be computed becomes an absent field rather than
an error, so the classifiers see "insufficient data".
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

import pandas as pd

from tradesight.indicators.momentum import compute_ema, compute_rsi
from tradesight.indicators.normalizer import normalize_value
from tradesight.indicators.validation import require_columns, validate_ohlcv
from tradesight.indicators.volatility import (
    compute_atr,
    compute_average_volume,
    compute_range_bounds,
)
from tradesight.shared.models.snapshot import MarketSnapshot

logger = logging.getLogger(__name__)

HISTORY_BARS = 20


def _last_or_none(symbol: str, name: str, func: Callable[[], pd.Series]) -> Optional[float]:
    try:
        return normalize_value(func().dropna())
    except ValueError as e:
        logger.debug("%s: %s unavailable (%s)", symbol, name, e)
        return None


def build_snapshot_from_candles(
    symbol: str,
    df: pd.DataFrame,
    extra: Optional[Mapping[str, Any]] = None,
    range_lookback: int = 20,
    volume_window: int = 20,
) -> MarketSnapshot:
    """
    Build a MarketSnapshot from OHLCV candles (oldest first).

    Args:
        symbol: Instrument symbol
        df: DataFrame with open/high/low/close/volume columns
        extra: Additional raw fields merged over the computed ones
        range_lookback: Bars used for the breakout range
        volume_window: Bars used for the average volume

    Returns:
        MarketSnapshot with every computable field populated

    Raises:
        ValueError: If the frame is empty, lacks OHLCV columns or holds corrupt candles
    """
    require_columns(df, ['open'])
    validate_ohlcv(df, require_volume=True)
    if df.empty:
        raise ValueError(f"{symbol}: no candles to build a snapshot from")

    last = df.iloc[-1]
    raw: Dict[str, Any] = {
        "open": last['open'],
        "high": last['high'],
        "low": last['low'],
        "close": last['close'],
        "volume": last['volume'],
        "prev_close": df['close'].iloc[-2] if len(df) > 1 else None,
        "ema20": _last_or_none(symbol, "EMA20", lambda: compute_ema(df, 20)),
        "ema50": _last_or_none(symbol, "EMA50", lambda: compute_ema(df, 50)),
        "rsi": _last_or_none(symbol, "RSI", lambda: compute_rsi(df, 14)),
        "atr": _last_or_none(symbol, "ATR", lambda: compute_atr(df, 14)),
        "avg_volume": _last_or_none(
            symbol, "avg volume", lambda: compute_average_volume(df, volume_window)
        ),
    }

    try:
        raw["range_high"], raw["range_low"] = compute_range_bounds(df, range_lookback)
    except ValueError as e:
        logger.debug("%s: range bounds unavailable (%s)", symbol, e)

    tail = df.iloc[-HISTORY_BARS:]
    raw["highs"] = tail['high'].tolist()
    raw["lows"] = tail['low'].tolist()
    raw["closes"] = tail['close'].tolist()
    raw["volumes"] = tail['volume'].tolist()

    if extra:
        raw.update(extra)

    return MarketSnapshot.from_raw(raw, symbol=symbol)

"""
Volatility and Volume Indicators Module

- ATR (Average True Range, Wilder smoothing) used to size targets/stops
- Rolling average volume used by the volume validator
- Rolling range bounds used by the breakout detector
"""

from typing import Tuple

import pandas as pd
import numpy as np

from tradesight.indicators.momentum import _seeded_ewm
from tradesight.indicators.validation import require_columns, require_rows


def compute_atr(df: pd.DataFrame, period: int = 14) -> pd.Series:
    """
    Compute Average True Range (ATR).

    True Range is the greatest of:
    - Current High - Current Low
    - |Current High - Previous Close|
    - |Current Low - Previous Close|

    Args:
        df: DataFrame with 'high', 'low', 'close' columns
        period: ATR period (default 14)

    Returns:
        pd.Series: ATR values

    Raises:
        ValueError: If df is too short or missing required columns
    """
    require_columns(df, ['high', 'low', 'close'])
    require_rows(df, period + 1, "ATR")

    prev_close = df['close'].shift()
    high_low = df['high'] - df['low']
    high_close = (df['high'] - prev_close).abs()
    low_close = (df['low'] - prev_close).abs()
    true_range = pd.concat([high_low, high_close, low_close], axis=1).max(axis=1).iloc[1:]

    atr = _seeded_ewm(true_range, period, alpha=1.0 / period)
    return atr.reindex(df.index)


def compute_average_volume(df: pd.DataFrame, window: int = 20, exclude_current: bool = True) -> pd.Series:
    """
    Rolling mean volume.

    Args:
        df: DataFrame with 'volume' column
        window: Averaging window
        exclude_current: Average the `window` bars before each bar, so a
            spike is compared against its own history

    Returns:
        pd.Series: Average volume (NaN until the window fills)
    """
    require_columns(df, ['volume'])
    require_rows(df, window + (1 if exclude_current else 0), "average volume")

    volume = df['volume'].shift(1) if exclude_current else df['volume']
    return volume.rolling(window=window, min_periods=window).mean()


def compute_range_bounds(df: pd.DataFrame, lookback: int = 20, skip_recent: int = 1) -> Tuple[float, float]:
    """
    Rolling range high/low excluding the most recent bars.

    The current bar is excluded so a close beyond the range can register
    as a breakout.

    Returns:
        Tuple[float, float]: (range_high, range_low)
    """
    require_columns(df, ['high', 'low'])
    require_rows(df, lookback + skip_recent, "range bounds")

    end = len(df) - skip_recent
    window = df.iloc[end - lookback:end]
    return float(np.max(window['high'])), float(np.min(window['low']))

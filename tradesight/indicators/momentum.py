"""
Momentum Indicators Module

Implements the trend and momentum inputs of a MarketSnapshot:
- EMA (SMA-seeded exponential moving average)
- RSI (Relative Strength Index, Wilder smoothing)

All functions return pandas Series aligned to the input index; values
before the first full window are NaN.
"""

import pandas as pd
import numpy as np
import logging

from tradesight.indicators.validation import require_columns, require_rows

logger = logging.getLogger(__name__)


def _seeded_ewm(values: pd.Series, period: int, alpha: float) -> pd.Series:
    """
    Exponential smoothing seeded with the simple mean of the first window.

    The seed sits at position period-1 of `values`; earlier positions are NaN.
    """
    seeded = pd.Series(np.nan, index=values.index, dtype=float)
    seeded.iloc[period - 1] = values.iloc[:period].mean()
    seeded.iloc[period:] = values.iloc[period:].to_numpy(dtype=float)
    return seeded.ewm(alpha=alpha, adjust=False).mean()


def compute_ema(df: pd.DataFrame, period: int = 20, column: str = 'close') -> pd.Series:
    """
    Compute an Exponential Moving Average.

    Args:
        df: DataFrame with the source column
        period: EMA period
        column: Source column (default 'close')

    Returns:
        pd.Series: EMA values

    Raises:
        ValueError: If df is too short or missing the column
    """
    require_columns(df, [column])
    require_rows(df, period, f"EMA{period}")

    return _seeded_ewm(df[column], period, alpha=2.0 / (period + 1))


def compute_rsi(df: pd.DataFrame, period: int = 14) -> pd.Series:
    """
    Compute Relative Strength Index (RSI) with Wilder smoothing.

    RSI measures the magnitude of recent price changes to evaluate
    overbought or oversold conditions. A window with no losses reads 100.

    Args:
        df: DataFrame with 'close' column
        period: RSI period (default 14)

    Returns:
        pd.Series: RSI values (0-100)

    Raises:
        ValueError: If df is too short or missing required columns
    """
    require_columns(df, ['close'])
    require_rows(df, period + 1, "RSI")

    delta = df['close'].diff().iloc[1:]
    gains = delta.clip(lower=0.0)
    losses = (-delta).clip(lower=0.0)

    avg_gains = _seeded_ewm(gains, period, alpha=1.0 / period)
    avg_losses = _seeded_ewm(losses, period, alpha=1.0 / period)

    rs = avg_gains / avg_losses.replace(0.0, np.nan)
    rsi = 100 - (100 / (1 + rs))
    rsi = rsi.where(avg_losses != 0.0, 100.0).where(avg_gains.notna())

    return rsi.reindex(df.index)

"""
OHLCV Data Validation

Input validation for indicator calculations: catches short frames,
missing columns and corrupt candles before NaN values propagate into
a MarketSnapshot.
"""

from typing import Iterable, Optional
import logging

import pandas as pd

from tradesight.shared.utils.error_policy import InsufficientDataError

logger = logging.getLogger(__name__)


class DataValidationError(ValueError):
    """Raised when OHLCV data fails validation checks."""


def require_columns(df: pd.DataFrame, columns: Iterable[str]) -> None:
    missing_cols = [col for col in columns if col not in df.columns]
    if missing_cols:
        raise DataValidationError(f"DataFrame missing required columns: {missing_cols}")


def require_rows(df: pd.DataFrame, min_rows: int, indicator: str) -> None:
    if len(df) < min_rows:
        raise InsufficientDataError(
            f"DataFrame too short for {indicator} calculation (need {min_rows} rows, got {len(df)})"
        )


def validate_ohlcv(
    df: pd.DataFrame,
    require_volume: bool = True,
    min_rows: Optional[int] = None,
) -> None:
    """
    Validate an OHLCV DataFrame before indicator calculation.

    Args:
        df: DataFrame with OHLCV columns
        require_volume: If True, require a 'volume' column
        min_rows: Minimum required rows (None = no minimum)

    Raises:
        DataValidationError: Missing columns, NaN prices, non-positive
            prices, inverted candles or negative volume
        InsufficientDataError: Fewer than min_rows rows
    """
    columns = ["high", "low", "close"] + (["volume"] if require_volume else [])
    require_columns(df, columns)

    if min_rows is not None:
        require_rows(df, min_rows, "indicator")

    errors = []
    for col in ("high", "low", "close"):
        nan_count = int(df[col].isna().sum())
        if nan_count:
            errors.append(f"Column '{col}' has {nan_count} NaN values")
        non_positive = int((df[col] <= 0).sum())
        if non_positive:
            errors.append(f"Column '{col}' has {non_positive} non-positive values")

    inverted = int((df["high"] < df["low"]).sum())
    if inverted:
        errors.append(f"Found {inverted} inverted candles (high < low) - data corruption suspected")

    if "volume" in df.columns:
        negative_volume = int((df["volume"] < 0).sum())
        if negative_volume:
            errors.append(f"Found {negative_volume} negative volume values")

    if errors:
        raise DataValidationError("; ".join(errors))

"""
Technical Indicators Package

Provides:
- Indicator normalizer (scalar-or-sequence -> scalar)
- Momentum indicators (EMA, RSI)
- Volatility/volume indicators (ATR, average volume, range bounds)
- Data validation utilities

All indicator functions follow consistent patterns:
- Accept pandas DataFrame with OHLCV columns
- Return pandas Series (or a tuple of floats for range bounds)
- Raise ValueError for insufficient data or missing columns
"""

from tradesight.indicators.normalizer import (
    normalize_value,
    normalize_series,
    normalize_snapshot,
)

from tradesight.indicators.momentum import (
    compute_ema,
    compute_rsi,
)

from tradesight.indicators.volatility import (
    compute_atr,
    compute_average_volume,
    compute_range_bounds,
)

from tradesight.indicators.validation import (
    DataValidationError,
    validate_ohlcv,
)

__all__ = [
    # Normalizer
    'normalize_value',
    'normalize_series',
    'normalize_snapshot',
    # Momentum
    'compute_ema',
    'compute_rsi',
    # Volatility / volume
    'compute_atr',
    'compute_average_volume',
    'compute_range_bounds',
    # Validation
    'DataValidationError',
    'validate_ohlcv',
]

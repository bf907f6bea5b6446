"""
Indicator Normalizer

Upstream feeds hand us indicator fields in mixed shapes: a scalar, a
Python list of historical values, a numpy array or a pandas Series.
Classifiers need exactly one scalar per field. The rule is simple:

- a finite number is returned as-is
- a non-empty sequence yields its last element (normalized recursively)
- anything else (None, empty sequence, strings, NaN, bools) is absent

Absent values are returned as None and never raise; downstream
classifiers decide for themselves whether they can proceed.
"""

import math
from numbers import Real
from typing import Any, Dict, Iterable, Mapping, Optional

import numpy as np
import pandas as pd


def normalize_value(value: Any) -> Optional[float]:
    """
    Coerce a scalar-or-sequence field into a single float.

    Args:
        value: Scalar, list/tuple, numpy array or pandas Series

    Returns:
        Float value, or None when the input carries no usable number
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None

    if isinstance(value, (Real, np.number)):
        number = float(value)
        return number if math.isfinite(number) else None

    if isinstance(value, pd.Series):
        if value.empty:
            return None
        return normalize_value(value.iloc[-1])

    if isinstance(value, np.ndarray):
        if value.size == 0:
            return None
        return normalize_value(value.reshape(-1)[-1])

    if isinstance(value, (list, tuple)):
        if not value:
            return None
        return normalize_value(value[-1])

    return None


def normalize_series(values: Any) -> tuple:
    """
    Coerce a history field into a tuple of floats.

    Non-numeric entries are dropped; a scalar becomes a one-element tuple.
    """
    if values is None:
        return ()
    if isinstance(values, pd.Series):
        values = values.tolist()
    elif isinstance(values, np.ndarray):
        values = values.reshape(-1).tolist()
    elif not isinstance(values, (list, tuple)):
        single = normalize_value(values)
        return (single,) if single is not None else ()

    cleaned = (normalize_value(v) for v in values)
    return tuple(v for v in cleaned if v is not None)


def normalize_snapshot(raw: Mapping[str, Any], fields: Iterable[str]) -> Dict[str, Optional[float]]:
    """Normalize the given numeric fields of a raw mapping."""
    return {name: normalize_value(raw.get(name)) for name in fields}

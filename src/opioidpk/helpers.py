# src/opioidpk/helpers.py
import math

import numpy as np

from .errors import InvalidParameter


def require_positive(name: str, x: float) -> float:
    if not _is_real(x) or not math.isfinite(x) or not (x > 0):
        raise InvalidParameter(f"{name} must be a finite number > 0 (got {x!r}).")
    return float(x)


def require_non_negative(name: str, x: float) -> float:
    if not _is_real(x) or not math.isfinite(x) or x < 0:
        raise InvalidParameter(f"{name} must be a finite number >= 0 (got {x!r}).")
    return float(x)


def require_fraction(name: str, x: float, *, low_open: bool = False, high_open: bool = False) -> float:
    """Check x lies in [0, 1]; either end can be made exclusive."""
    if not _is_real(x) or not math.isfinite(x):
        raise InvalidParameter(f"{name} must be a finite number (got {x!r}).")
    too_low = x <= 0 if low_open else x < 0
    too_high = x >= 1 if high_open else x > 1
    if too_low or too_high:
        lo = "(" if low_open else "["
        hi = ")" if high_open else "]"
        raise InvalidParameter(f"{name} must be in {lo}0, 1{hi} (got {x!r}).")
    return float(x)


def as_float_array(name: str, values) -> np.ndarray:
    """Coerce array-like input to a 1-D float array, rejecting NaN/inf."""
    try:
        arr = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidParameter(f"{name} must be numeric (got {values!r}).") from exc
    if arr.ndim == 0:
        arr = arr.reshape(1)
    if arr.ndim != 1:
        raise InvalidParameter(f"{name} must be one-dimensional (got shape {arr.shape}).")
    if not np.all(np.isfinite(arr)):
        raise InvalidParameter(f"{name} must contain only finite values.")
    return arr


def _is_real(x) -> bool:
    # bool is an int subclass; True/False are never meaningful PK inputs
    return isinstance(x, (int, float, np.integer, np.floating)) and not isinstance(x, (bool, np.bool_))

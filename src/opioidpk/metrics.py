# src/opioidpk/metrics.py
import numpy as np
from typing import Dict

from .errors import InvalidParameter
from .helpers import as_float_array
from .types import ConcentrationProfile


def trapezoidal_auc(times, concentrations) -> float:
    """
    Area Under the Curve (AUC) via trapezoidal rule (mg*h/L for mg/L inputs).

    AUC = sum((C[i] + C[i+1]) / 2 * (t[i+1] - t[i]))
    times must be strictly increasing; at least two points are required.
    """
    t = as_float_array("times", times)
    C = as_float_array("concentrations", concentrations)
    if t.size != C.size:
        raise InvalidParameter(f"times and concentrations must have the same length ({t.size} != {C.size}).")
    if t.size < 2:
        raise InvalidParameter("Need at least 2 time points to calculate AUC.")
    if np.any(np.diff(t) <= 0):
        raise InvalidParameter("times must be strictly increasing.")
    return float(np.trapezoid(C, t))


def cmax(profile: ConcentrationProfile) -> float:
    """Global maximum concentration (mg/L)."""
    return float(np.max(profile.concentration_mg_l))


def tmax(profile: ConcentrationProfile) -> float:
    """Time of maximum concentration (h)."""
    return float(profile.time_h[int(np.argmax(profile.concentration_mg_l))])


def cmin(profile: ConcentrationProfile) -> float:
    """Global minimum concentration (mg/L)."""
    return float(np.min(profile.concentration_mg_l))


def interval_peaks(profile: ConcentrationProfile) -> Dict[int, float]:
    """Peak concentration (mg/L) within each dosing interval, keyed by 1-based dose index."""
    peaks: Dict[int, float] = {}
    for k in np.unique(profile.dose_index):
        peaks[int(k)] = float(np.max(profile.concentration_mg_l[profile.dose_index == k]))
    return peaks


def last_interval_mask(profile: ConcentrationProfile, interval_h: float) -> np.ndarray:
    """
    Boolean mask for samples in the last full dosing interval [T - interval, T],
    where T is the last dose time that still has a full interval before it.
    If no full interval fits, fall back to all samples.
    """
    t = profile.time_h
    if interval_h <= 0:
        return np.ones_like(t, dtype=bool)
    last_edge = (t[-1] // interval_h) * interval_h
    start = last_edge - interval_h
    if start < t[0]:
        return np.ones_like(t, dtype=bool)
    # samples at last_edge already include the next dose, so stop just before it
    return (t >= start) & (t < last_edge)


def peak_to_trough_ratio(profile: ConcentrationProfile, interval_h: float | None = None) -> float:
    """
    Observed Cmax / Cmin.
    If interval_h is provided, compute over the last full dosing interval; otherwise use the full series.
    """
    C = profile.concentration_mg_l
    if interval_h:
        C = C[last_interval_mask(profile, float(interval_h))]
    cmax_val = float(np.max(C))
    cmin_val = float(np.min(C))
    if cmin_val <= 0:
        return float('inf')
    return cmax_val / cmin_val

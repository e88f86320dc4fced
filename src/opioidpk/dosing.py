# src/opioidpk/dosing.py
from __future__ import annotations

import math

import numpy as np

from .errors import InvalidParameter
from .helpers import require_positive
from .types import DosingRegimen, DrugConstants, Route
from .units import HOURS_PER_DAY

# Sample and dose times are compared with this slack so that grid points built
# as k * step land on the dose they coincide with.
TIME_TOLERANCE_H = 1e-9

# Grid times are rounded to this many decimals to keep k * step from drifting.
_GRID_DECIMALS = 9

# Upper bound on output samples and on administrations per simulation
MAX_SAMPLES = 10_000_000


def _point_count(name: str, span_h: float, step_h: float) -> int:
    """floor(span / step), refused before anything is allocated when it exceeds MAX_SAMPLES."""
    ratio = span_h / step_h + TIME_TOLERANCE_H
    if not math.isfinite(ratio) or ratio >= MAX_SAMPLES:
        raise InvalidParameter(
            f"{name} would exceed {MAX_SAMPLES} points (span {span_h!r} h, step {step_h!r} h)."
        )
    return int(math.floor(ratio))


def administration_times(interval_h: float, duration_h: float) -> np.ndarray:
    """
    Dose times 0, interval, 2*interval, ... up to and including duration.
    Example: interval 4 h over 12 h -> [0, 4, 8, 12]
    """
    interval_h = require_positive("interval_h", interval_h)
    duration_h = require_positive("duration_h", duration_h)
    n_doses = _point_count("dose schedule", duration_h, interval_h) + 1
    return np.round(np.arange(n_doses, dtype=float) * interval_h, _GRID_DECIMALS)


def sample_times(duration_h: float, time_step_h: float) -> np.ndarray:
    """
    Output grid from 0 to duration at time_step spacing.
    If duration is not a multiple of the step, duration itself is appended so the
    grid always ends exactly at the end of the simulation.
    """
    duration_h = require_positive("duration_h", duration_h)
    time_step_h = require_positive("time_step_h", time_step_h)
    n_steps = _point_count("sample grid", duration_h, time_step_h)
    t = np.round(np.arange(n_steps + 1, dtype=float) * time_step_h, _GRID_DECIMALS)
    if duration_h - t[-1] > TIME_TOLERANCE_H:
        t = np.append(t, duration_h)
    else:
        t[-1] = min(t[-1], duration_h)
    return t


def dose_index(time_h: np.ndarray, interval_h: float) -> np.ndarray:
    """1-based index of the dosing interval containing each time: 1 + floor(t / interval)."""
    interval_h = require_positive("interval_h", interval_h)
    t = np.asarray(time_h, dtype=float)
    return (np.floor(t / interval_h + TIME_TOLERANCE_H) + 1).astype(int)


def effective_dose(regimen: DosingRegimen, drug: DrugConstants) -> float:
    """Dose reaching the circulation: IV doses pass through unchanged, others scale by bioavailability."""
    if regimen.route is Route.IV:
        return float(regimen.dose_mg)
    return float(regimen.dose_mg) * drug.bioavailability(regimen.route)


def doses_per_day(interval_h: float) -> float:
    return HOURS_PER_DAY / require_positive("interval_h", interval_h)


def total_daily_dose(dose_mg: float, interval_h: float) -> float:
    """Nominal (pre-bioavailability) mg per 24 h."""
    return require_positive("dose_mg", dose_mg) * doses_per_day(interval_h)

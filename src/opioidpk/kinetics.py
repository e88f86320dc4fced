# src/opioidpk/kinetics.py
"""
First-order elimination for a one-compartment IV bolus.

  ke   = ln(2) / t½
  C(t) = (Dose / V) * exp(-ke * t)
"""

import math

import numpy as np

from .errors import InvalidParameter
from .helpers import as_float_array, require_non_negative, require_positive
from .units import LN2


def elimination_rate(half_life_h: float) -> float:
    """Elimination rate constant ke (1/h) from half-life (h)."""
    half_life_h = require_positive("half_life_h", half_life_h)
    return LN2 / half_life_h


def single_dose_concentration(dose_mg: float, volume_l: float, half_life_h: float, time_h):
    """
    Concentration (mg/L) after a single IV bolus.

    time_h may be a scalar (returns float) or any sequence of non-negative times
    (returns a numpy array of the same length). C(0) is exactly dose/volume.
    """
    dose_mg = require_non_negative("dose_mg", dose_mg)
    volume_l = require_positive("volume_l", volume_l)
    ke = elimination_rate(half_life_h)

    scalar = np.ndim(time_h) == 0
    t = as_float_array("time_h", time_h)
    if np.any(t < 0):
        raise InvalidParameter("time_h must be non-negative.")

    c0 = dose_mg / volume_l
    conc = c0 * np.exp(-ke * t)
    if scalar:
        return float(conc[0])
    return conc


def half_life_from_clearance(clearance_l_per_h: float, volume_l: float) -> float:
    """t½ = ln(2) * V / CL."""
    clearance_l_per_h = require_positive("clearance_l_per_h", clearance_l_per_h)
    volume_l = require_positive("volume_l", volume_l)
    return LN2 * volume_l / clearance_l_per_h


def clearance_from_half_life(half_life_h: float, volume_l: float) -> float:
    """CL = ln(2) * V / t½."""
    volume_l = require_positive("volume_l", volume_l)
    cl = volume_l * elimination_rate(half_life_h)
    if not math.isfinite(cl):
        raise InvalidParameter(f"clearance is not finite for half_life_h={half_life_h!r}.")
    return cl

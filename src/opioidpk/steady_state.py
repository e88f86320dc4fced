# src/opioidpk/steady_state.py
"""
Closed-form steady-state analytics for repeated IV bolus dosing.

  R       = 1 / (1 - exp(-ke * tau))       accumulation factor
  Cmax,ss = (Dose / V) * R
  Cmin,ss = Cmax,ss * exp(-ke * tau)
  Cavg,ss = (Dose / V) / (ke * tau)          exact time-average over one interval, i.e. Dose / (CL * tau)
"""

import math

from .errors import NumericOverflow, NumericUnderflow
from .helpers import require_fraction, require_non_negative, require_positive
from .kinetics import elimination_rate
from .types import SteadyStateSummary
from .units import LN2


def accumulation_factor(half_life_h: float, interval_h: float) -> float:
    """
    Ratio of steady-state peak to single-dose peak.
    Raises NumericOverflow when 1 - exp(-ke * tau) is indistinguishable from zero
    (half-life enormous relative to the interval).
    """
    interval_h = require_positive("interval_h", interval_h)
    ke = elimination_rate(half_life_h)
    # -expm1(-x) == 1 - exp(-x) without cancellation for small x
    denominator = -math.expm1(-ke * interval_h)
    if denominator <= 0.0:
        raise NumericOverflow(
            f"Accumulation factor diverges: 1 - exp(-ke*tau) underflowed to zero "
            f"(half_life_h={half_life_h!r}, interval_h={interval_h!r})."
        )
    factor = 1.0 / denominator
    if not math.isfinite(factor):
        raise NumericOverflow(f"Accumulation factor is not finite ({factor!r}).")
    return factor


def steady_state_levels(dose_mg: float, volume_l: float, half_life_h: float,
                        interval_h: float) -> SteadyStateSummary:
    """Peak, trough, average, fluctuation and accumulation at steady state (mg/L)."""
    dose_mg = require_positive("dose_mg", dose_mg)
    volume_l = require_positive("volume_l", volume_l)
    interval_h = require_positive("interval_h", interval_h)
    ke = elimination_rate(half_life_h)

    r = accumulation_factor(half_life_h, interval_h)
    c0 = dose_mg / volume_l
    cmax = c0 * r
    decay = math.exp(-ke * interval_h)
    cmin = cmax * decay
    if cmin <= 0.0:
        raise NumericUnderflow(
            f"Steady-state trough underflowed to zero (half_life_h={half_life_h!r}, interval_h={interval_h!r}); "
            "fluctuation is undefined."
        )
    # Equal to (cmax - cmin) / (ke * tau) but free of cancellation when ke * tau is tiny.
    # The clamp only absorbs last-ulp rounding.
    cavg = min(max(c0 / (ke * interval_h), cmin), cmax)
    fluctuation = cmax / cmin
    if not all(math.isfinite(v) for v in (cmax, cmin, cavg, fluctuation)):
        raise NumericOverflow("Steady-state levels are not finite.")

    return SteadyStateSummary(
        cmax=cmax,
        cmin=cmin,
        cavg=cavg,
        fluctuation=fluctuation,
        accumulation_factor=r,
    )


def loading_dose(maintenance_dose_mg: float, half_life_h: float, interval_h: float) -> float:
    """Dose that reaches the steady-state peak immediately: maintenance dose x accumulation factor."""
    maintenance_dose_mg = require_non_negative("maintenance_dose_mg", maintenance_dose_mg)
    return maintenance_dose_mg * accumulation_factor(half_life_h, interval_h)


def time_to_steady_state(half_life_h: float, proportion: float = 0.97) -> float:
    """
    Hours to reach `proportion` of steady state (0 < proportion < 1).
    97% takes about five half-lives.
    """
    half_life_h = require_positive("half_life_h", half_life_h)
    proportion = require_fraction("proportion", proportion, low_open=True, high_open=True)
    n_half_lives = -math.log1p(-proportion) / LN2
    return n_half_lives * half_life_h

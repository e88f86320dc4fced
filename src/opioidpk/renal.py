# src/opioidpk/renal.py
"""
Renal-function adjustment of clearance and half-life.

Two paths exist:

- algebraic (`adjust_for_renal_function`): clearance is split into a renal and a
  non-renal part; the renal part scales linearly with CrCl / normal CrCl and the
  half-life scales inversely with total clearance (volume unchanged).
- categorical (`categorical_half_life`): the half-life tabulated for the
  patient's renal category is used as-is.

They do not generally agree for the same patient. The orchestrator picks one per
request and records which (see `opioidpk.types.RenalPath`).
"""

import math
from dataclasses import dataclass

from .errors import InvalidParameter, NumericOverflow
from .helpers import require_fraction, require_non_negative, require_positive
from .types import DrugConstants, RenalFunction

# Lower CrCl bounds (mL/min) for each category, checked top-down
_CRCL_CATEGORY_BOUNDS = (
    (80.0, RenalFunction.NORMAL),
    (50.0, RenalFunction.MILD),
    (30.0, RenalFunction.MODERATE),
    (10.0, RenalFunction.SEVERE),
)

_COCKCROFT_GAULT_FEMALE_FACTOR = 0.85


@dataclass(frozen=True)
class RenalAdjustment:
    clearance_adjusted: float
    half_life_adjusted: float
    clearance_reduction_percent: float


def adjust_for_renal_function(clearance_normal: float, half_life_normal: float,
                              creatinine_clearance: float, normal_creatinine_clearance: float,
                              fraction_renal: float, *, allow_supranormal: bool = False) -> RenalAdjustment:
    """
    Scale the renal share of clearance by residual renal function.

    clearance_normal            : total clearance with normal kidneys (any volume/time unit)
    half_life_normal            : half-life with normal kidneys (h)
    creatinine_clearance        : patient CrCl (mL/min)
    normal_creatinine_clearance : reference CrCl for "normal" (mL/min)
    fraction_renal              : share of clearance that is renal, 0..1
    allow_supranormal           : when False, CrCl above normal is treated as normal

    The adjusted clearance is returned in the unit of clearance_normal.
    """
    clearance_normal = require_positive("clearance_normal", clearance_normal)
    half_life_normal = require_positive("half_life_normal", half_life_normal)
    creatinine_clearance = require_non_negative("creatinine_clearance", creatinine_clearance)
    normal_creatinine_clearance = require_positive("normal_creatinine_clearance", normal_creatinine_clearance)
    fraction_renal = require_fraction("fraction_renal", fraction_renal)

    ratio = creatinine_clearance / normal_creatinine_clearance
    if not allow_supranormal:
        ratio = min(ratio, 1.0)

    cl_renal = clearance_normal * fraction_renal
    cl_non_renal = clearance_normal * (1.0 - fraction_renal)
    clearance_adjusted = max(cl_renal * ratio, 0.0) + cl_non_renal

    if clearance_adjusted <= 0.0:
        raise NumericOverflow(
            "Adjusted clearance is zero (fully renal elimination with no renal function); "
            "half-life is unbounded."
        )
    half_life_adjusted = half_life_normal * (clearance_normal / clearance_adjusted)
    if not math.isfinite(half_life_adjusted):
        raise NumericOverflow(f"Adjusted half-life is not finite (clearance {clearance_adjusted!r}).")

    return RenalAdjustment(
        clearance_adjusted=clearance_adjusted,
        half_life_adjusted=half_life_adjusted,
        clearance_reduction_percent=(1.0 - clearance_adjusted / clearance_normal) * 100.0,
    )


def categorical_half_life(drug: DrugConstants, renal_function) -> float:
    """Tabulated half-life (h) for the renal category; dialysis maps to severe."""
    return drug.half_life_for(RenalFunction.parse(renal_function))


def categorize_renal_function(creatinine_clearance: float) -> RenalFunction:
    """Renal category from CrCl (mL/min)."""
    creatinine_clearance = require_non_negative("creatinine_clearance", creatinine_clearance)
    for lower_bound, category in _CRCL_CATEGORY_BOUNDS:
        if creatinine_clearance >= lower_bound:
            return category
    return RenalFunction.DIALYSIS


def estimate_creatinine_clearance(age_years: float, weight_kg: float,
                                  serum_creatinine_mg_dl: float, sex: str = "male") -> float:
    """
    Cockcroft-Gault estimate of CrCl (mL/min).

    CrCl = ((140 - age) * weight) / (72 * SCr), times 0.85 for women.
    """
    age_years = require_positive("age_years", age_years)
    weight_kg = require_positive("weight_kg", weight_kg)
    serum_creatinine_mg_dl = require_positive("serum_creatinine_mg_dl", serum_creatinine_mg_dl)
    sex_key = sex.strip().lower() if isinstance(sex, str) else sex
    if sex_key not in ("male", "female"):
        raise InvalidParameter(f"sex must be 'male' or 'female' (got {sex!r}).")

    crcl = ((140.0 - age_years) * weight_kg) / (72.0 * serum_creatinine_mg_dl)
    if sex_key == "female":
        crcl *= _COCKCROFT_GAULT_FEMALE_FACTOR
    # beyond age 140 the formula goes negative
    return max(crcl, 0.0)

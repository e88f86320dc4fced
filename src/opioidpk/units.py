# src/opioidpk/units.py
"""
Unit conventions and conversion constants.

Internal convention:
- concentration: mg/L (presentation layer shows ng/mL)
- time: hours
- dose: mg
- tabulated clearance: mL/min/kg, reconciled to L/h for the whole patient
- volume of distribution: L/kg, reconciled to L for the whole patient
"""

import math

LN2 = math.log(2.0)

# mg/L -> ng/mL
MG_PER_L_TO_NG_PER_ML = 1000.0

# mL/min -> L/h  (60 min/h, 1/1000 L/mL)
ML_PER_MIN_TO_L_PER_H = 60.0 / 1000.0

HOURS_PER_DAY = 24.0


def mg_per_l_to_ng_per_ml(concentration):
    """Works on floats and numpy arrays alike."""
    return concentration * MG_PER_L_TO_NG_PER_ML


def total_clearance_l_per_h(clearance_ml_min_kg: float, weight_kg: float) -> float:
    """Weight-normalised clearance (mL/min/kg) to whole-patient clearance (L/h)."""
    return clearance_ml_min_kg * weight_kg * ML_PER_MIN_TO_L_PER_H


def total_volume_l(volume_l_per_kg: float, weight_kg: float) -> float:
    return volume_l_per_kg * weight_kg

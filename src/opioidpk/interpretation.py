# src/opioidpk/interpretation.py
"""
Clinical interpretation of a steady-state summary.

Everything here is a threshold comparison against DrugConstants fields and the
patient's renal category; no PK is computed.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from .types import DrugConstants, PatientState, RenalFunction

MINIMAL_ACCUMULATION_BELOW = 1.5
MODERATE_ACCUMULATION_BELOW = 2.5

# Renal share of clearance at or above which renal impairment calls for dose reduction
RENAL_CAUTION_FRACTION = 0.1

# Half-lives shorter than this need frequent dosing or an infusion
SHORT_HALF_LIFE_H = 2.0

_IMPAIRED = (RenalFunction.MODERATE, RenalFunction.SEVERE, RenalFunction.DIALYSIS)
_SEVERELY_IMPAIRED = (RenalFunction.SEVERE, RenalFunction.DIALYSIS)


class AccumulationTier(str, Enum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"


class RenalRisk(str, Enum):
    NOT_APPLICABLE = "not_applicable"  # renal function normal or mildly reduced
    LOW = "low"
    CAUTION = "caution"
    HIGH = "high"


class WarningLevel(str, Enum):
    CONTRAINDICATED = "contraindicated"
    CAUTION = "caution"
    TOXIC = "toxic"
    HIGH = "high"
    LOW = "low"


@dataclass(frozen=True)
class ClinicalWarning:
    level: WarningLevel
    message: str


@dataclass(frozen=True)
class Interpretation:
    accumulation_tier: AccumulationTier
    renal_risk: RenalRisk
    notes: Tuple[str, ...]
    warnings: Tuple[ClinicalWarning, ...]


def accumulation_tier(factor: float) -> AccumulationTier:
    if factor < MINIMAL_ACCUMULATION_BELOW:
        return AccumulationTier.MINIMAL
    if factor < MODERATE_ACCUMULATION_BELOW:
        return AccumulationTier.MODERATE
    return AccumulationTier.SIGNIFICANT


def renal_risk(drug: DrugConstants, renal_function: RenalFunction) -> RenalRisk:
    """How much the patient's renal impairment matters for this drug."""
    if renal_function not in _IMPAIRED:
        return RenalRisk.NOT_APPLICABLE
    if drug.metabolite is not None and drug.metabolite.accumulates_in_renal_failure:
        return RenalRisk.HIGH
    if drug.fraction_renal >= RENAL_CAUTION_FRACTION:
        return RenalRisk.CAUTION
    return RenalRisk.LOW


def interpretation_notes(drug: DrugConstants, factor: float, risk: RenalRisk) -> List[str]:
    notes: List[str] = []
    tier = accumulation_tier(factor)
    if tier is AccumulationTier.MINIMAL:
        notes.append(f"Minimal accumulation (factor: {factor:.2f}). "
                     "Drug reaches steady state quickly with minimal build-up.")
    elif tier is AccumulationTier.MODERATE:
        notes.append(f"Moderate accumulation (factor: {factor:.2f}). Expect steady state in 3-5 doses.")
    else:
        notes.append(f"Significant accumulation (factor: {factor:.2f}). "
                     "Concentrations will increase substantially with repeated dosing.")

    if risk is RenalRisk.HIGH:
        metabolite = drug.metabolite.name if drug.metabolite else "active metabolite"
        notes.append(f"WARNING: {drug.display_name} and {metabolite} accumulate in renal impairment. "
                     "High risk of prolonged sedation and respiratory depression. Consider alternative opioid.")
    elif risk is RenalRisk.CAUTION:
        notes.append("CAUTION: Dose reduction recommended in renal impairment. Monitor closely for adverse effects.")
    elif risk is RenalRisk.LOW:
        notes.append(f"SAFE: {drug.display_name} is minimally affected by renal impairment. "
                     "Preferred option in this setting.")

    if drug.half_life_normal_h < SHORT_HALF_LIFE_H:
        notes.append("NOTE: Short half-life requires frequent dosing or continuous infusion for sustained effect.")
    return notes


def renal_warnings(drug: DrugConstants, renal_function: RenalFunction) -> List[ClinicalWarning]:
    risk = renal_risk(drug, renal_function)
    if renal_function in _SEVERELY_IMPAIRED:
        if risk is RenalRisk.HIGH:
            return [ClinicalWarning(WarningLevel.CONTRAINDICATED,
                                    f"CONTRAINDICATED: {drug.display_name} should be avoided in severe renal "
                                    "impairment due to active metabolite accumulation.")]
        if risk is RenalRisk.CAUTION:
            return [ClinicalWarning(WarningLevel.CAUTION,
                                    f"USE WITH CAUTION: {drug.display_name} requires significant dose reduction "
                                    "in severe renal impairment.")]
    elif renal_function is RenalFunction.MODERATE and risk is RenalRisk.HIGH:
        return [ClinicalWarning(WarningLevel.CAUTION,
                                f"CAUTION: Consider dose reduction and extended intervals for {drug.display_name} "
                                "in moderate renal impairment.")]
    return []


def concentration_warnings(drug: DrugConstants, concentration_ng_ml: float) -> List[ClinicalWarning]:
    """Compare a concentration of the drug itself (ng/mL) with its thresholds."""
    if concentration_ng_ml > drug.toxic_ng_ml:
        return [ClinicalWarning(WarningLevel.TOXIC,
                                f"TOXIC LEVEL: Concentration ({concentration_ng_ml:.1f} ng/mL) exceeds toxic "
                                f"threshold ({drug.toxic_ng_ml:.1f} ng/mL).")]
    if concentration_ng_ml > drug.therapeutic_max_ng_ml:
        return [ClinicalWarning(WarningLevel.HIGH,
                                f"HIGH LEVEL: Concentration ({concentration_ng_ml:.1f} ng/mL) above therapeutic range.")]
    if concentration_ng_ml < drug.therapeutic_min_ng_ml:
        return [ClinicalWarning(WarningLevel.LOW,
                                f"LOW LEVEL: Concentration ({concentration_ng_ml:.1f} ng/mL) below therapeutic range.")]
    return []


def interpret(drug: DrugConstants, patient: PatientState, factor: float,
              peak_ng_ml: float) -> Interpretation:
    """Build the interpretation record for one drug at steady state."""
    risk = renal_risk(drug, patient.renal_function)
    warnings = renal_warnings(drug, patient.renal_function) + concentration_warnings(drug, peak_ng_ml)
    return Interpretation(
        accumulation_tier=accumulation_tier(factor),
        renal_risk=risk,
        notes=tuple(interpretation_notes(drug, factor, risk)),
        warnings=tuple(warnings),
    )

# src/opioidpk/simulate.py
"""
High-level wrappers: drug constants + patient + regimen -> profile and summary.

Per request:
  1. adjust half-life / volume / clearance for the patient (renal path per settings)
  2. scale the dose by route bioavailability
  3. simulate the concentration profile (superposition or ODE solver)
  4. derive closed-form steady-state metrics from the same adjusted parameters
  5. convert to ng/mL and to morphine equivalents, identically for profile and summary
  6. attach the clinical interpretation
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

import numpy as np
import pandas as pd

from .config import SimulationSettings
from .dosing import effective_dose, total_daily_dose
from .errors import OpioidPkError
from .interpretation import Interpretation, interpret
from .kinetics import clearance_from_half_life
from .metrics import trapezoidal_auc
from .parameters import GENERAL, ParameterStore
from .potency import to_reference_equivalent
from .renal import adjust_for_renal_function, categorical_half_life
from .solvers import SOLVERS
from .steady_state import loading_dose, steady_state_levels, time_to_steady_state
from .types import (
    AdjustedPkParameters, ConcentrationProfile, DosingRegimen, DrugConstants, DrugName,
    PatientState, RenalFunction, RenalPath, Route, SteadyStateSummary,
)
from .units import mg_per_l_to_ng_per_ml, total_clearance_l_per_h, total_volume_l

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClinicalSummary:
    """Scalar per-drug summary. Concentrations in ng/mL, times in h, doses in mg."""
    drug: str
    dose_mg: float
    route: Route
    interval_h: float
    effective_dose_mg: float
    renal_path: RenalPath

    half_life_h: float
    volume_l: float
    clearance_l_per_h: float
    accumulation_factor: float

    cmax_ss_ng_ml: float
    cmin_ss_ng_ml: float
    cavg_ss_ng_ml: float
    fluctuation: float

    cmax_reference_eq_ng_ml: float
    cmin_reference_eq_ng_ml: float

    time_to_steady_state_h: float
    doses_to_steady_state: float

    loading_dose_mg: float
    total_daily_dose_mg: float
    auc_mg_h_l: float

    interpretation: Interpretation

    @property
    def warnings(self):
        return self.interpretation.warnings


@dataclass(frozen=True)
class DrugSimulation:
    """Everything produced for one drug in one request."""
    drug: DrugConstants
    patient: PatientState
    regimen: DosingRegimen
    parameters: AdjustedPkParameters
    profile: ConcentrationProfile
    reference_equivalent_ng_ml: np.ndarray
    steady_state: SteadyStateSummary
    summary: ClinicalSummary

    def profile_frame(self) -> pd.DataFrame:
        """Profile with display units and morphine-equivalent concentrations."""
        frame = self.profile.to_frame()
        frame["drug"] = self.drug.display_name
        frame["concentration_mg_L"] = frame["concentration"]
        frame["concentration_ng_mL"] = mg_per_l_to_ng_per_ml(frame["concentration"])
        frame["reference_equivalent_ng_mL"] = self.reference_equivalent_ng_ml
        return frame


@dataclass(frozen=True)
class BatchResult:
    """
    simulations : successful drugs, in request order
    errors      : failed drugs and the error each raised; a drug is never in both
    """
    simulations: Dict[str, DrugSimulation]
    errors: Dict[str, OpioidPkError]

    @property
    def ok(self) -> bool:
        return not self.errors


def adjust_parameters(drug: DrugConstants, patient: PatientState,
                      settings: Optional[SimulationSettings] = None) -> AdjustedPkParameters:
    """
    Patient-specific half-life, volume and clearance.

    Categorical path: tabulated half-life for the renal category; clearance is
    reconciled from it as ln(2) * V / t½ so the two never disagree.
    Algebraic path: tabulated normal clearance (scaled to the patient's weight) has
    its renal share scaled by CrCl / normal CrCl, CrCl above normal counting as normal.
    """
    settings = settings or SimulationSettings()
    volume_l = total_volume_l(drug.volume_l_per_kg, patient.weight_kg)

    if settings.renal_path is RenalPath.CATEGORICAL:
        half_life_h = categorical_half_life(drug, patient.renal_function)
        clearance = clearance_from_half_life(half_life_h, volume_l)
        clearance_normal = clearance_from_half_life(drug.half_life_normal_h, volume_l)
        if patient.renal_function in (RenalFunction.SEVERE, RenalFunction.DIALYSIS):
            tabulated = total_clearance_l_per_h(drug.clearance_severe_ml_min_kg, patient.weight_kg)
            logger.debug("%s: categorical severe clearance %.2f L/h vs tabulated %.2f L/h",
                         drug.name.value, clearance, tabulated)
    else:
        clearance_normal = total_clearance_l_per_h(drug.clearance_normal_ml_min_kg, patient.weight_kg)
        adjusted = adjust_for_renal_function(
            clearance_normal=clearance_normal,
            half_life_normal=drug.half_life_normal_h,
            creatinine_clearance=patient.creatinine_clearance_ml_min,
            normal_creatinine_clearance=settings.normal_crcl_ml_min,
            fraction_renal=drug.fraction_renal,
        )
        half_life_h = adjusted.half_life_adjusted
        clearance = adjusted.clearance_adjusted

    return AdjustedPkParameters(
        half_life_h=half_life_h,
        volume_l=volume_l,
        clearance_l_per_h=clearance,
        clearance_normal_l_per_h=clearance_normal,
        renal_path=settings.renal_path,
    )


def run_single(drug: DrugConstants, patient: PatientState, regimen: DosingRegimen,
               settings: Optional[SimulationSettings] = None) -> DrugSimulation:
    """Simulate one drug for one patient and regimen."""
    settings = settings or SimulationSettings()
    params = adjust_parameters(drug, patient, settings)
    dose_mg = effective_dose(regimen, drug)
    time_step_h = regimen.time_step_h or settings.time_step_h

    logger.debug("%s: t1/2=%.3f h V=%.1f L dose=%.3f mg (%s path, %s solver)",
                 drug.name.value, params.half_life_h, params.volume_l, dose_mg,
                 params.renal_path.value, settings.solver)

    profile = SOLVERS[settings.solver](
        dose_mg, params.volume_l, params.half_life_h,
        regimen.interval_h, regimen.duration_h, time_step_h,
    )
    ss = steady_state_levels(dose_mg, params.volume_l, params.half_life_h, regimen.interval_h)

    reference_eq = to_reference_equivalent(
        mg_per_l_to_ng_per_ml(profile.concentration_mg_l), drug.potency_ratio)
    reference_eq.setflags(write=False)

    cmax_ng = mg_per_l_to_ng_per_ml(ss.cmax)
    cmin_ng = mg_per_l_to_ng_per_ml(ss.cmin)
    t_ss = time_to_steady_state(params.half_life_h, settings.steady_state_proportion)

    summary = ClinicalSummary(
        drug=drug.display_name,
        dose_mg=regimen.dose_mg,
        route=regimen.route,
        interval_h=regimen.interval_h,
        effective_dose_mg=dose_mg,
        renal_path=params.renal_path,
        half_life_h=params.half_life_h,
        volume_l=params.volume_l,
        clearance_l_per_h=params.clearance_l_per_h,
        accumulation_factor=ss.accumulation_factor,
        cmax_ss_ng_ml=cmax_ng,
        cmin_ss_ng_ml=cmin_ng,
        cavg_ss_ng_ml=mg_per_l_to_ng_per_ml(ss.cavg),
        fluctuation=ss.fluctuation,
        cmax_reference_eq_ng_ml=to_reference_equivalent(cmax_ng, drug.potency_ratio),
        cmin_reference_eq_ng_ml=to_reference_equivalent(cmin_ng, drug.potency_ratio),
        time_to_steady_state_h=t_ss,
        doses_to_steady_state=t_ss / regimen.interval_h,
        loading_dose_mg=loading_dose(regimen.dose_mg, params.half_life_h, regimen.interval_h),
        total_daily_dose_mg=total_daily_dose(regimen.dose_mg, regimen.interval_h),
        auc_mg_h_l=trapezoidal_auc(profile.time_h, profile.concentration_mg_l),
        interpretation=interpret(drug, patient, ss.accumulation_factor, cmax_ng),
    )
    return DrugSimulation(
        drug=drug,
        patient=patient,
        regimen=regimen,
        parameters=params,
        profile=profile,
        reference_equivalent_ng_ml=reference_eq,
        steady_state=ss,
        summary=summary,
    )


def simulate_drug(store: ParameterStore, drug, patient: PatientState, regimen: DosingRegimen,
                  settings: Optional[SimulationSettings] = None) -> DrugSimulation:
    """Resolve a drug by name in the parameter store, then simulate it."""
    return run_single(store.drug_constants(DrugName.parse(drug)), patient, regimen, settings)


def simulate_batch(store: ParameterStore, regimens: Mapping, patient: PatientState,
                   settings: Optional[SimulationSettings] = None) -> BatchResult:
    """
    Simulate several drugs independently for one patient.

    regimens maps drug name -> DosingRegimen. Each drug runs in its own task; an
    engine error in one drug is recorded under that drug's name and the others
    still complete.
    """
    settings = settings or SimulationSettings()
    order = [_request_key(drug) for drug in regimens]
    simulations: Dict[str, DrugSimulation] = {}
    errors: Dict[str, OpioidPkError] = {}

    with ThreadPoolExecutor(max_workers=settings.max_workers) as executor:
        futures = {
            executor.submit(simulate_drug, store, drug, patient, regimen, settings): _request_key(drug)
            for drug, regimen in regimens.items()
        }
        for future in as_completed(futures):
            key = futures[future]
            try:
                simulations[key] = future.result()
            except OpioidPkError as e:
                logger.warning(f"Simulation failed for {key}: {e}")
                errors[key] = e

    return BatchResult(
        simulations={k: simulations[k] for k in order if k in simulations},
        errors={k: errors[k] for k in order if k in errors},
    )


def comparison_table(simulations: Iterable[DrugSimulation]) -> pd.DataFrame:
    """One display row per drug, rounded the way the summary table shows it."""
    rows = []
    for sim in simulations:
        s = sim.summary
        rows.append({
            "Drug": s.drug,
            "Dose_mg": s.dose_mg,
            "Interval_hr": s.interval_h,
            "HalfLife_hr": round(s.half_life_h, 1),
            "Accumulation": round(s.accumulation_factor, 2),
            "Cmax_ng_mL": round(s.cmax_ss_ng_ml, 1),
            "Cmin_ng_mL": round(s.cmin_ss_ng_ml, 1),
            "Cmax_MorphineEq": round(s.cmax_reference_eq_ng_ml, 1),
            "TimeToSS_hr": round(s.time_to_steady_state_h, 1),
        })
    columns = ["Drug", "Dose_mg", "Interval_hr", "HalfLife_hr", "Accumulation",
               "Cmax_ng_mL", "Cmin_ng_mL", "Cmax_MorphineEq", "TimeToSS_hr"]
    return pd.DataFrame(rows, columns=columns)


# Renal categories swept by renal_impact, with the general-row CrCl used for each
_RENAL_IMPACT_LEVELS = (
    (RenalFunction.NORMAL, "normal_crcl"),
    (RenalFunction.MILD, "mild_crcl"),
    (RenalFunction.MODERATE, "moderate_crcl"),
    (RenalFunction.SEVERE, "severe_crcl"),
)


def renal_impact(store: ParameterStore, drug, regimen: DosingRegimen, weight_kg: float = 70.0,
                 settings: Optional[SimulationSettings] = None) -> pd.DataFrame:
    """
    The same drug and regimen simulated from normal to severe renal function.

    Each category uses the representative CrCl from the table's general rows.
    Returns the stacked profile frames with renal_function, crcl_ml_min and a
    display label such as "Moderate (CrCl=40)".
    """
    frames = []
    for category, crcl_key in _RENAL_IMPACT_LEVELS:
        crcl = store.get_float(GENERAL, crcl_key)
        patient = PatientState(weight_kg=weight_kg, creatinine_clearance_ml_min=crcl, renal_function=category)
        frame = simulate_drug(store, drug, patient, regimen, settings).profile_frame()
        frame["renal_function"] = category.value
        frame["crcl_ml_min"] = crcl
        frame["renal_label"] = f"{category.value.title()} (CrCl={crcl:g})"
        frames.append(frame)
    logger.debug("renal impact for %s: %d categories", _request_key(drug), len(frames))
    return pd.concat(frames, ignore_index=True)


def _request_key(drug) -> str:
    if isinstance(drug, DrugName):
        return drug.value
    return str(drug).strip().lower()

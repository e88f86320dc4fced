# src/opioidpk/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Tuple

import numpy as np
import pandas as pd

from .errors import InvalidParameter
from .helpers import require_fraction, require_non_negative, require_positive

# We keep *all* time in HOURS internally, concentrations in mg/L, doses in mg.


class _ChoiceEnum(str, Enum):
    """String enum that parses user input case-insensitively and fails loudly."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if member.value.lower() == key:
                    return member
        valid = ", ".join(m.value for m in cls)
        raise InvalidParameter(f"Unknown {cls._label()} {value!r}. Valid options: {valid}")

    @classmethod
    def _label(cls) -> str:
        return cls.__name__


class DrugName(_ChoiceEnum):
    """Closed set of drugs the engine knows parameters for."""
    MORPHINE = "morphine"
    OXYCODONE = "oxycodone"
    ALFENTANIL = "alfentanil"

    @classmethod
    def _label(cls) -> str:
        return "drug"


class Route(_ChoiceEnum):
    IV = "IV"
    SC = "SC"

    @classmethod
    def _label(cls) -> str:
        return "route"


class RenalFunction(_ChoiceEnum):
    NORMAL = "normal"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    DIALYSIS = "dialysis"

    @classmethod
    def _label(cls) -> str:
        return "renal function"

    @property
    def is_impaired(self) -> bool:
        return self is not RenalFunction.NORMAL


class HepaticFunction(_ChoiceEnum):
    NORMAL = "normal"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

    @classmethod
    def _label(cls) -> str:
        return "hepatic function"


class RenalPath(_ChoiceEnum):
    """
    Which renal adjustment produced the effective half-life.

    CATEGORICAL : tabulated half-life for the patient's renal category
    ALGEBRAIC   : clearance split into renal/non-renal parts, renal part scaled by CrCl
    """
    CATEGORICAL = "categorical"
    ALGEBRAIC = "algebraic"

    @classmethod
    def _label(cls) -> str:
        return "renal adjustment path"


@dataclass(frozen=True)
class ActiveMetabolite:
    """
    Active metabolite of a parent drug.

    potency_ratio      : potency relative to the reference drug (morphine = 1)
    half_life_h        : half-life with normal renal function
    renal_accumulation : how many times the metabolite accumulates in renal failure
                         (None when not tabulated)
    half_life_renal_h  : half-life in severe renal impairment (None when not tabulated)
    contribution       : fraction of the parent's effect attributed to the metabolite
    """
    name: str
    potency_ratio: float
    half_life_h: float
    renal_accumulation: Optional[float] = None
    half_life_renal_h: Optional[float] = None
    contribution: Optional[float] = None

    def __post_init__(self):
        require_positive("metabolite potency_ratio", self.potency_ratio)
        require_positive("metabolite half_life_h", self.half_life_h)
        if self.renal_accumulation is not None:
            require_positive("metabolite renal_accumulation", self.renal_accumulation)
        if self.half_life_renal_h is not None:
            require_positive("metabolite half_life_renal_h", self.half_life_renal_h)
        if self.contribution is not None:
            require_fraction("metabolite contribution", self.contribution)

    @property
    def accumulates_in_renal_failure(self) -> bool:
        return self.renal_accumulation is not None and self.renal_accumulation > 1.0


@dataclass(frozen=True)
class DrugConstants:
    """
    Fixed PK constants of one drug, loaded once from the parameter store.

    Half-lives in hours, volume in L/kg, clearances in mL/min/kg,
    therapeutic/toxic thresholds in ng/mL.
    """
    name: DrugName
    display_name: str
    drug_class: str
    potency_ratio: float
    half_life_normal_h: float
    half_life_mild_h: float
    half_life_moderate_h: float
    half_life_severe_h: float
    volume_l_per_kg: float
    clearance_normal_ml_min_kg: float
    clearance_severe_ml_min_kg: float
    fraction_renal: float
    bioavailability_iv: float
    bioavailability_sc: float
    therapeutic_min_ng_ml: float
    therapeutic_max_ng_ml: float
    toxic_ng_ml: float
    metabolite: Optional[ActiveMetabolite] = None
    notes: str = ""

    def __post_init__(self):
        object.__setattr__(self, "name", DrugName.parse(self.name))
        for attr in ("potency_ratio", "half_life_normal_h", "half_life_mild_h",
                     "half_life_moderate_h", "half_life_severe_h", "volume_l_per_kg",
                     "clearance_normal_ml_min_kg", "clearance_severe_ml_min_kg",
                     "therapeutic_min_ng_ml", "therapeutic_max_ng_ml", "toxic_ng_ml"):
            require_positive(attr, getattr(self, attr))
        require_fraction("fraction_renal", self.fraction_renal)
        require_fraction("bioavailability_iv", self.bioavailability_iv, low_open=True)
        require_fraction("bioavailability_sc", self.bioavailability_sc, low_open=True)

        half_lives = (self.half_life_normal_h, self.half_life_mild_h,
                      self.half_life_moderate_h, self.half_life_severe_h)
        if any(later < earlier for earlier, later in zip(half_lives, half_lives[1:])):
            raise InvalidParameter(
                f"{self.display_name}: half-lives must not shorten as renal function worsens (got {half_lives})."
            )
        if self.clearance_severe_ml_min_kg > self.clearance_normal_ml_min_kg:
            raise InvalidParameter(
                f"{self.display_name}: severe-renal clearance exceeds normal clearance."
            )
        if not (self.therapeutic_min_ng_ml < self.therapeutic_max_ng_ml < self.toxic_ng_ml):
            raise InvalidParameter(
                f"{self.display_name}: thresholds must satisfy therapeutic_min < therapeutic_max < toxic."
            )

    @property
    def has_active_metabolite(self) -> bool:
        return self.metabolite is not None

    def half_life_for(self, renal_function: RenalFunction) -> float:
        """Tabulated half-life for a renal category; dialysis uses the severe constant."""
        renal_function = RenalFunction.parse(renal_function)
        return {
            RenalFunction.NORMAL: self.half_life_normal_h,
            RenalFunction.MILD: self.half_life_mild_h,
            RenalFunction.MODERATE: self.half_life_moderate_h,
            RenalFunction.SEVERE: self.half_life_severe_h,
            RenalFunction.DIALYSIS: self.half_life_severe_h,
        }[renal_function]

    def bioavailability(self, route: Route) -> float:
        route = Route.parse(route)
        return self.bioavailability_iv if route is Route.IV else self.bioavailability_sc


@dataclass(frozen=True)
class PatientState:
    """
    Patient description for one simulation request.

    Categorical fields accept strings (case-insensitive) and are stored as enums.
    """
    weight_kg: float = 70.0
    age_years: float = 65.0
    creatinine_clearance_ml_min: float = 90.0
    renal_function: RenalFunction = RenalFunction.NORMAL
    hepatic_function: HepaticFunction = HepaticFunction.NORMAL

    def __post_init__(self):
        require_positive("weight_kg", self.weight_kg)
        require_positive("age_years", self.age_years)
        require_non_negative("creatinine_clearance_ml_min", self.creatinine_clearance_ml_min)
        object.__setattr__(self, "renal_function", RenalFunction.parse(self.renal_function))
        object.__setattr__(self, "hepatic_function", HepaticFunction.parse(self.hepatic_function))


@dataclass(frozen=True)
class DosingRegimen:
    """
    Repeated fixed-interval dosing.

    dose_mg     : amount per administration
    interval_h  : time between administrations
    duration_h  : total simulated time
    route       : IV or SC
    time_step_h : output resolution; None means "use the configured default"
    """
    dose_mg: float
    interval_h: float
    duration_h: float
    route: Route = Route.IV
    time_step_h: Optional[float] = None

    def __post_init__(self):
        require_positive("dose_mg", self.dose_mg)
        require_positive("interval_h", self.interval_h)
        require_positive("duration_h", self.duration_h)
        if self.time_step_h is not None:
            require_positive("time_step_h", self.time_step_h)
        object.__setattr__(self, "route", Route.parse(self.route))


@dataclass(frozen=True)
class AdjustedPkParameters:
    """
    Patient-specific PK parameters, recomputed per request.

    half_life_h          : effective half-life
    volume_l             : whole-patient volume of distribution
    clearance_l_per_h    : effective whole-patient clearance
    clearance_normal_l_per_h : clearance the same patient would have with normal renal function
    renal_path           : which adjustment produced half_life_h / clearance_l_per_h
    """
    half_life_h: float
    volume_l: float
    clearance_l_per_h: float
    clearance_normal_l_per_h: float
    renal_path: RenalPath

    @property
    def elimination_rate_per_h(self) -> float:
        return self.clearance_l_per_h / self.volume_l


@dataclass(frozen=True)
class ConcentrationProfile:
    """
    Concentration-time series.

    time_h             : strictly increasing sample times, 0 .. duration
    concentration_mg_l : non-negative concentration at each sample
    dose_index         : 1-based dosing interval containing each sample
    """
    time_h: np.ndarray
    concentration_mg_l: np.ndarray
    dose_index: np.ndarray = field(repr=False)

    def __post_init__(self):
        arrays = []
        for attr, dtype in (("time_h", float), ("concentration_mg_l", float), ("dose_index", int)):
            arr = np.array(getattr(self, attr), dtype=dtype)
            arr.setflags(write=False)
            object.__setattr__(self, attr, arr)
            arrays.append(arr)
        if len({a.shape for a in arrays}) != 1 or self.time_h.ndim != 1:
            raise InvalidParameter("profile arrays must be one-dimensional and of equal length.")
        if np.any(np.diff(self.time_h) <= 0):
            raise InvalidParameter("profile times must be strictly increasing.")
        if not np.all(np.isfinite(self.concentration_mg_l)) or np.any(self.concentration_mg_l < 0):
            raise InvalidParameter("profile concentrations must be finite and non-negative.")

    def __len__(self) -> int:
        return int(self.time_h.size)

    def samples(self) -> Iterator[Tuple[float, float, int]]:
        for t, c, k in zip(self.time_h, self.concentration_mg_l, self.dose_index):
            yield float(t), float(c), int(k)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "time": self.time_h,
            "concentration": self.concentration_mg_l,
            "dose_number": self.dose_index,
        })


@dataclass(frozen=True)
class SteadyStateSummary:
    """Closed-form steady-state metrics, concentrations in mg/L."""
    cmax: float
    cmin: float
    cavg: float
    fluctuation: float
    accumulation_factor: float

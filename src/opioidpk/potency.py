# src/opioidpk/potency.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from .errors import InvalidParameter
from .helpers import as_float_array, require_positive
from .types import DrugName

if TYPE_CHECKING:
    from .parameters import ParameterStore


def to_reference_equivalent(concentration, potency_ratio: float):
    """
    Rescale a concentration (or dose) to the reference drug (morphine = 1).

    Scalars give a float back; sequences give a numpy array. The same function is
    used for profile samples and for summary metrics so both stay on one basis.
    """
    potency_ratio = require_positive("potency_ratio", potency_ratio)
    scalar = np.ndim(concentration) == 0
    conc = as_float_array("concentration", concentration)
    if np.any(conc < 0):
        raise InvalidParameter("concentration must be non-negative.")
    scaled = conc * potency_ratio
    if scalar:
        return float(scaled[0])
    return scaled


@dataclass(frozen=True)
class EquianalgesicConversion:
    from_drug: str
    from_dose_mg: float
    to_drug: str
    to_dose_mg: float
    conversion_ratio: float
    reference_equivalent_mg: float

    @property
    def note(self) -> str:
        return (f"{self.from_dose_mg:.1f} mg {self.from_drug} ~ {self.to_dose_mg:.1f} mg {self.to_drug} "
                f"(via {self.reference_equivalent_mg:.1f} mg morphine equivalent)")


def equianalgesic_dose(store: "ParameterStore", from_drug, dose_mg: float, to_drug) -> EquianalgesicConversion:
    """Convert a dose of one drug into an equally potent dose of another via morphine equivalents."""
    dose_mg = require_positive("dose_mg", dose_mg)
    source = store.drug_constants(DrugName.parse(from_drug))
    target = store.drug_constants(DrugName.parse(to_drug))

    reference_mg = to_reference_equivalent(dose_mg, source.potency_ratio)
    target_mg = reference_mg / target.potency_ratio
    return EquianalgesicConversion(
        from_drug=source.display_name,
        from_dose_mg=dose_mg,
        to_drug=target.display_name,
        to_dose_mg=target_mg,
        conversion_ratio=target_mg / dose_mg,
        reference_equivalent_mg=reference_mg,
    )

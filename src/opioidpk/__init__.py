"""opioid-pk: repeated-dose one-compartment PK for comparing opioids.

Elimination kinetics, dose superposition, closed-form steady-state analytics,
renal adjustment and morphine-equivalent normalisation, orchestrated per drug
and patient.

Run the CLI with: python -m opioidpk.cli --drug morphine=10 --drug alfentanil=1
"""

from .config import SimulationSettings
from .errors import InvalidParameter, NumericOverflow, NumericUnderflow, OpioidPkError, ParameterNotFound
from .parameters import ParameterStore
from .simulate import (
    BatchResult, DrugSimulation, comparison_table, renal_impact, run_single, simulate_batch, simulate_drug,
)
from .types import (
    ConcentrationProfile, DosingRegimen, DrugConstants, DrugName, HepaticFunction,
    PatientState, RenalFunction, RenalPath, Route, SteadyStateSummary,
)

__all__ = [
    "BatchResult",
    "ConcentrationProfile",
    "DosingRegimen",
    "DrugConstants",
    "DrugName",
    "DrugSimulation",
    "HepaticFunction",
    "InvalidParameter",
    "NumericOverflow",
    "NumericUnderflow",
    "OpioidPkError",
    "ParameterNotFound",
    "ParameterStore",
    "PatientState",
    "RenalFunction",
    "RenalPath",
    "Route",
    "SimulationSettings",
    "SteadyStateSummary",
    "comparison_table",
    "renal_impact",
    "run_single",
    "simulate_batch",
    "simulate_drug",
]

__version__ = "0.1.0"

# src/opioidpk/cli.py
import argparse
import logging
import sys
from typing import Dict, List, Optional

import pandas as pd

from .config import SimulationSettings
from .errors import OpioidPkError
from .parameters import ParameterStore
from .renal import categorize_renal_function
from .simulate import comparison_table, simulate_batch
from .solvers import SOLVERS
from .types import DosingRegimen, DrugName, HepaticFunction, PatientState, RenalFunction, RenalPath, Route


def _drug_dose(text: str):
    """Parse NAME=DOSE_MG, e.g. morphine=10."""
    name, sep, dose = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected NAME=DOSE_MG, got {text!r}")
    try:
        return name.strip().lower(), float(dose)
    except ValueError:
        raise argparse.ArgumentTypeError(f"dose must be a number in {text!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Repeated-dose opioid PK comparison")
    parser.add_argument("--drug", dest="drugs", type=_drug_dose, action="append", required=True,
                        metavar="NAME=DOSE_MG",
                        help=f"Drug and dose in mg (repeatable). Drugs: {', '.join(d.value for d in DrugName)}")
    parser.add_argument("--interval", type=float, default=4.0, help="Dosing interval (h)")
    parser.add_argument("--duration", type=float, default=72.0, help="Simulation duration (h)")
    parser.add_argument("--route", choices=[r.value for r in Route], default=Route.IV.value, help="Route")
    parser.add_argument("--time-step", type=float, default=None, help="Output resolution (h)")
    parser.add_argument("--weight", type=float, default=70.0, help="Patient weight (kg)")
    parser.add_argument("--age", type=float, default=65.0, help="Patient age (years)")
    parser.add_argument("--crcl", type=float, default=90.0, help="Creatinine clearance (mL/min)")
    parser.add_argument("--renal-function", choices=[r.value for r in RenalFunction], default=None,
                        help="Renal category (default: derived from --crcl)")
    parser.add_argument("--hepatic-function", choices=[h.value for h in HepaticFunction],
                        default=HepaticFunction.NORMAL.value, help="Hepatic category")
    parser.add_argument("--renal-path", choices=[p.value for p in RenalPath],
                        default=RenalPath.CATEGORICAL.value, help="Renal adjustment used for the half-life")
    parser.add_argument("--solver", choices=list(SOLVERS), default="superposition", help="Profile solver")
    parser.add_argument("--params", type=str, default=None, help="Parameter CSV (default: packaged values)")
    parser.add_argument("--profile-csv", type=str, default=None, help="Write concentration profiles here")
    parser.add_argument("--summary-csv", type=str, default=None, help="Write the comparison table here")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        store = ParameterStore.from_csv(args.params)
        settings = SimulationSettings.from_store(store, renal_path=args.renal_path, solver=args.solver)
        renal = args.renal_function or categorize_renal_function(args.crcl)
        patient = PatientState(
            weight_kg=args.weight,
            age_years=args.age,
            creatinine_clearance_ml_min=args.crcl,
            renal_function=renal,
            hepatic_function=args.hepatic_function,
        )
        regimens: Dict[str, DosingRegimen] = {
            name: DosingRegimen(dose_mg=dose, interval_h=args.interval, duration_h=args.duration,
                                route=args.route, time_step_h=args.time_step)
            for name, dose in args.drugs
        }
    except (OpioidPkError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    result = simulate_batch(store, regimens, patient, settings)
    sims = list(result.simulations.values())

    if sims:
        table = comparison_table(sims)
        print(table.to_string(index=False))
        for sim in sims:
            for warning in sim.summary.warnings:
                print(f"[{sim.drug.display_name}] {warning.message}")
        if args.summary_csv:
            table.to_csv(args.summary_csv, index=False)
        if args.profile_csv:
            pd.concat([s.profile_frame() for s in sims], ignore_index=True).to_csv(args.profile_csv, index=False)

    for name, error in result.errors.items():
        print(f"{name}: {error}", file=sys.stderr)
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())

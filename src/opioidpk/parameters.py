# src/opioidpk/parameters.py
"""
Tabular drug parameter store.

The table has one row per (drug, parameter) with columns
drug, parameter, value, unit, reference, notes. A store is loaded once and never
mutated; `reload()` hands back a fresh store from the same source.
"""
from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Optional, Tuple, Union

import pandas as pd

from .errors import InvalidParameter, ParameterNotFound
from .types import ActiveMetabolite, DrugConstants, DrugName

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("drug", "parameter", "value", "unit", "reference", "notes")
GENERAL = "general"

_MISSING = object()

# DrugConstants field -> table parameter name
_NUMERIC_FIELDS = {
    "potency_ratio": "potency_ratio",
    "half_life_normal_h": "half_life_normal",
    "half_life_mild_h": "half_life_renal_mild",
    "half_life_moderate_h": "half_life_renal_moderate",
    "half_life_severe_h": "half_life_renal_severe",
    "volume_l_per_kg": "volume_distribution",
    "clearance_normal_ml_min_kg": "clearance_normal",
    "clearance_severe_ml_min_kg": "clearance_renal_severe",
    "fraction_renal": "fraction_renal",
    "bioavailability_iv": "bioavailability_iv",
    "bioavailability_sc": "bioavailability_sc",
    "therapeutic_min_ng_ml": "therapeutic_min",
    "therapeutic_max_ng_ml": "therapeutic_max",
    "toxic_ng_ml": "toxic_concentration",
}


def default_parameter_path() -> Path:
    return Path(str(resources.files("opioidpk").joinpath("data", "reference_values.csv")))


class ParameterStore:
    """Immutable (drug, parameter) -> value lookup with case-insensitive keys."""

    def __init__(self, table: pd.DataFrame, source: Optional[Path] = None):
        missing = [c for c in REQUIRED_COLUMNS if c not in table.columns]
        if missing:
            raise InvalidParameter(f"Missing required columns in parameter table: {', '.join(missing)}")
        table = table.loc[:, list(REQUIRED_COLUMNS)].copy()
        table["drug"] = table["drug"].astype(str).str.strip().str.lower()
        table["parameter"] = table["parameter"].astype(str).str.strip().str.lower()
        self._table = table.reset_index(drop=True)
        self._source = source

    @classmethod
    def from_csv(cls, path: Union[str, Path, None] = None) -> "ParameterStore":
        """Load from a CSV file; without a path the packaged reference values are used."""
        path = Path(path) if path is not None else default_parameter_path()
        if not path.exists():
            raise FileNotFoundError(f"Reference values file not found: {path}")
        table = pd.read_csv(path, dtype=str, keep_default_na=False)
        logger.debug("Loaded %d parameter rows from %s", len(table), path)
        return cls(table, source=path)

    def reload(self) -> "ParameterStore":
        """Re-read the source file into a new store; this store is left untouched."""
        if self._source is None:
            raise InvalidParameter("This parameter store was not loaded from a file and cannot be reloaded.")
        return type(self).from_csv(self._source)

    @property
    def source(self) -> Optional[Path]:
        return self._source

    def __len__(self) -> int:
        return len(self._table)

    def get(self, drug, parameter: str, default=_MISSING):
        """
        Value for (drug, parameter). Numeric strings come back as float.
        Raises ParameterNotFound when absent and no default was given.
        """
        drug_key = _key(drug)
        param_key = parameter.strip().lower()
        rows = self._table[(self._table["drug"] == drug_key) & (self._table["parameter"] == param_key)]
        if rows.empty:
            if default is not _MISSING:
                return default
            raise ParameterNotFound(drug_key, param_key)
        if len(rows) > 1:
            logger.warning("Multiple values found for %s:%s. Using first.", drug_key, param_key)
        return _coerce(rows["value"].iloc[0])

    def get_float(self, drug, parameter: str, default=_MISSING) -> Optional[float]:
        value = self.get(drug, parameter, default)
        if value is None or isinstance(value, float):
            return value
        raise InvalidParameter(f"Parameter '{parameter}' for drug '{_key(drug)}' is not numeric: {value!r}")

    def available_drugs(self) -> Tuple[DrugName, ...]:
        """Known drugs that have rows in this table."""
        present = set(self._table["drug"])
        return tuple(d for d in DrugName if d.value in present)

    def drug_constants(self, drug) -> DrugConstants:
        """Build DrugConstants for one of the known drugs; unknown names raise InvalidParameter."""
        name = DrugName.parse(drug)
        values = {field: self.get_float(name, param) for field, param in _NUMERIC_FIELDS.items()}
        constants = DrugConstants(
            name=name,
            display_name=str(self.get(name, "display_name", name.value.title())),
            drug_class=str(self.get(name, "drug_class", "Opioid analgesic")),
            metabolite=self._metabolite(name),
            notes=str(self.get(name, "notes", "")),
            **values,
        )
        logger.debug("Resolved constants for %s", name.value)
        return constants

    def _metabolite(self, name: DrugName) -> Optional[ActiveMetabolite]:
        potency = self.get_float(name, "metabolite_potency", None)
        if potency is None:
            return None
        return ActiveMetabolite(
            name=str(self.get(name, "metabolite_name", "Active metabolite")),
            potency_ratio=potency,
            half_life_h=self.get_float(name, "metabolite_half_life_normal"),
            renal_accumulation=self.get_float(name, "metabolite_accumulation_renal", None),
            half_life_renal_h=self.get_float(name, "metabolite_half_life_renal", None),
            contribution=self.get_float(name, "metabolite_contribution", None),
        )


def _key(drug) -> str:
    if isinstance(drug, DrugName):
        return drug.value
    return str(drug).strip().lower()


def _coerce(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return value

import pandas as pd
import pytest

from opioidpk.parameters import ParameterStore
from opioidpk.types import DosingRegimen, PatientState


@pytest.fixture(scope="session")
def store():
    """Packaged reference values, loaded once."""
    return ParameterStore.from_csv()


@pytest.fixture
def patient():
    """Standard 70 kg adult with normal renal function."""
    return PatientState(weight_kg=70, age_years=65, creatinine_clearance_ml_min=90, renal_function="normal")


@pytest.fixture
def regimen():
    """10 mg IV every 4 h for 48 h."""
    return DosingRegimen(dose_mg=10, interval_h=4, duration_h=48, route="IV")


@pytest.fixture
def store_table(store):
    """Editable copy of the packaged table for building custom stores."""
    return pd.read_csv(store.source, dtype=str, keep_default_na=False)

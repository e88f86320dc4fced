import math

import numpy as np
import pytest

from opioidpk.config import SimulationSettings
from opioidpk.interpretation import AccumulationTier, RenalRisk, WarningLevel
from opioidpk.metrics import cmax, interval_peaks, peak_to_trough_ratio
from opioidpk.simulate import comparison_table, renal_impact, simulate_batch, simulate_drug
from opioidpk.parameters import ParameterStore
from opioidpk.errors import InvalidParameter, ParameterNotFound
from opioidpk.types import DosingRegimen, PatientState, RenalFunction, RenalPath


def test_profile_structure(store, patient, regimen):
    sim = simulate_drug(store, "morphine", patient, regimen)
    p = sim.profile
    assert len(p) == len(p.concentration_mg_l) == len(sim.reference_equivalent_ng_ml)
    assert p.time_h[0] == 0.0 and p.time_h[-1] == pytest.approx(48.0)
    assert np.all(p.concentration_mg_l >= 0)
    assert p.concentration_mg_l[0] == pytest.approx(10 / (3.5 * 70))
    assert not sim.reference_equivalent_ng_ml.flags.writeable


def test_reference_equivalent_matches_potency(store, patient, regimen):
    sim = simulate_drug(store, "oxycodone", patient, regimen)
    expected = sim.profile.concentration_mg_l * 1000 * 1.5
    np.testing.assert_allclose(sim.reference_equivalent_ng_ml, expected)
    assert sim.summary.cmax_reference_eq_ng_ml == pytest.approx(sim.summary.cmax_ss_ng_ml * 1.5)


def test_profile_frame_columns(store, patient, regimen):
    frame = simulate_drug(store, "alfentanil", patient, regimen).profile_frame()
    assert {"time", "concentration", "dose_number", "drug", "concentration_ng_mL",
            "reference_equivalent_ng_mL"} <= set(frame.columns)
    assert (frame["drug"] == "Alfentanil").all()
    np.testing.assert_allclose(frame["reference_equivalent_ng_mL"], frame["concentration_ng_mL"] * 15)


def test_subcutaneous_bioavailability(store, patient):
    sc = DosingRegimen(dose_mg=10, interval_h=4, duration_h=24, route="sc")
    sim = simulate_drug(store, "morphine", patient, sc)
    assert sim.summary.effective_dose_mg == pytest.approx(9.0)
    assert sim.profile.concentration_mg_l[0] == pytest.approx(9.0 / 245)


def test_summary_matches_closed_form(store, patient, regimen):
    s = simulate_drug(store, "morphine", patient, regimen).summary
    ke = math.log(2) / 3
    c0_ng = 10 / 245 * 1000
    assert s.accumulation_factor == pytest.approx(1 / (1 - math.exp(-ke * 4)))
    assert s.cmax_ss_ng_ml == pytest.approx(c0_ng * s.accumulation_factor)
    assert s.cmin_ss_ng_ml == pytest.approx(s.cmax_ss_ng_ml * math.exp(-ke * 4))
    assert s.total_daily_dose_mg == pytest.approx(60)
    assert s.doses_to_steady_state == pytest.approx(s.time_to_steady_state_h / 4)
    assert s.renal_path is RenalPath.CATEGORICAL


def test_profile_metrics(store, patient, regimen):
    sim = simulate_drug(store, "morphine", patient, regimen)
    peaks = interval_peaks(sim.profile)
    assert list(peaks) == list(range(1, 13)) + [13]
    assert all(later > earlier for earlier, later in zip(list(peaks.values())[:11], list(peaks.values())[1:12]))
    assert cmax(sim.profile) <= sim.steady_state.cmax
    assert 2.0 < peak_to_trough_ratio(sim.profile, 4) < 2.6


def test_severe_categorical_uses_tabulated_half_life(store):
    severe = PatientState(creatinine_clearance_ml_min=20, renal_function="severe")
    regimen = DosingRegimen(dose_mg=10, interval_h=4, duration_h=24)
    params = simulate_drug(store, "morphine", severe, regimen).parameters
    assert params.half_life_h == 8.0
    assert params.clearance_l_per_h == pytest.approx(math.log(2) * 245 / 8)
    assert params.renal_path is RenalPath.CATEGORICAL


def test_algebraic_path_prolongs_half_life(store):
    settings = SimulationSettings(renal_path="algebraic")
    severe = PatientState(creatinine_clearance_ml_min=20, renal_function="severe")
    regimen = DosingRegimen(dose_mg=10, interval_h=4, duration_h=24)
    params = simulate_drug(store, "morphine", severe, regimen, settings).parameters
    assert params.renal_path is RenalPath.ALGEBRAIC
    assert params.half_life_h > 3.0
    assert params.clearance_l_per_h <= params.clearance_normal_l_per_h


@pytest.mark.parametrize("drug", ["morphine", "oxycodone", "alfentanil"])
def test_worse_kidneys_never_speed_elimination(store, drug):
    regimen = DosingRegimen(dose_mg=1, interval_h=6, duration_h=12)
    previous = None
    for category in RenalFunction:
        params = simulate_drug(store, drug, PatientState(renal_function=category), regimen).parameters
        assert params.clearance_l_per_h <= params.clearance_normal_l_per_h * (1 + 1e-12)
        if previous is not None:
            assert params.half_life_h >= previous.half_life_h
            assert params.clearance_l_per_h <= previous.clearance_l_per_h * (1 + 1e-12)
        previous = params


def test_ode_solver_matches_superposition(store, patient, regimen):
    closed = simulate_drug(store, "oxycodone", patient, regimen)
    numeric = simulate_drug(store, "oxycodone", patient, regimen, SimulationSettings(solver="ode"))
    np.testing.assert_allclose(numeric.profile.concentration_mg_l, closed.profile.concentration_mg_l,
                               rtol=1e-6, atol=1e-9)


def test_batch_isolates_unknown_drug(store, patient, regimen):
    result = simulate_batch(store, {"morphine": regimen, "fentanyl": regimen, "Alfentanil": regimen}, patient)
    assert list(result.simulations) == ["morphine", "alfentanil"]
    assert list(result.errors) == ["fentanyl"]
    assert isinstance(result.errors["fentanyl"], InvalidParameter)
    assert not result.ok


def test_batch_isolates_missing_parameter(store_table, patient, regimen):
    table = store_table[~((store_table["drug"] == "oxycodone") & (store_table["parameter"] == "volume_distribution"))]
    store = ParameterStore(table)
    result = simulate_batch(store, {"oxycodone": regimen, "morphine": regimen, "alfentanil": regimen}, patient,
                            SimulationSettings(max_workers=2))
    assert set(result.simulations) == {"morphine", "alfentanil"}
    assert isinstance(result.errors["oxycodone"], ParameterNotFound)
    assert result.errors["oxycodone"].parameter == "volume_distribution"


def test_batch_isolates_oversized_regimen(store, patient, regimen):
    huge = DosingRegimen(dose_mg=10, interval_h=4, duration_h=1e15, time_step_h=1e-3)
    result = simulate_batch(store, {"morphine": regimen, "oxycodone": huge}, patient)
    assert list(result.simulations) == ["morphine"]
    assert isinstance(result.errors["oxycodone"], InvalidParameter)


def test_batch_all_ok(store, patient, regimen):
    result = simulate_batch(store, {"morphine": regimen, "oxycodone": regimen}, patient)
    assert result.ok
    single = simulate_drug(store, "morphine", patient, regimen)
    np.testing.assert_allclose(result.simulations["morphine"].profile.concentration_mg_l,
                               single.profile.concentration_mg_l)


def test_comparison_table(store, patient, regimen):
    result = simulate_batch(store, {"morphine": regimen, "alfentanil": regimen}, patient)
    table = comparison_table(result.simulations.values())
    assert list(table.columns) == ["Drug", "Dose_mg", "Interval_hr", "HalfLife_hr", "Accumulation",
                                   "Cmax_ng_mL", "Cmin_ng_mL", "Cmax_MorphineEq", "TimeToSS_hr"]
    assert table["Drug"].tolist() == ["Morphine", "Alfentanil"]
    assert table.loc[0, "HalfLife_hr"] == 3.0


def test_morphine_contraindicated_in_severe_renal_failure(store):
    severe = PatientState(creatinine_clearance_ml_min=15, renal_function="severe")
    s = simulate_drug(store, "morphine", severe, DosingRegimen(dose_mg=10, interval_h=4, duration_h=24)).summary
    assert s.interpretation.renal_risk is RenalRisk.HIGH
    assert WarningLevel.CONTRAINDICATED in [w.level for w in s.warnings]
    assert s.interpretation.accumulation_tier is AccumulationTier.SIGNIFICANT


def test_alfentanil_preferred_in_severe_renal_failure(store):
    severe = PatientState(creatinine_clearance_ml_min=15, renal_function="severe")
    s = simulate_drug(store, "alfentanil", severe, DosingRegimen(dose_mg=1, interval_h=4, duration_h=24)).summary
    assert s.interpretation.renal_risk is RenalRisk.LOW
    assert not [w for w in s.warnings if w.level is WarningLevel.CONTRAINDICATED]
    assert any("Short half-life" in note for note in s.interpretation.notes)


def test_concentration_warnings(store, patient):
    toxic = simulate_drug(store, "morphine", patient, DosingRegimen(dose_mg=40, interval_h=4, duration_h=24))
    assert toxic.summary.cmax_ss_ng_ml == pytest.approx(270, rel=0.01)
    assert [w.level for w in toxic.summary.warnings] == [WarningLevel.TOXIC]

    usual = simulate_drug(store, "morphine", patient, DosingRegimen(dose_mg=10, interval_h=4, duration_h=24))
    assert usual.summary.cmax_ss_ng_ml == pytest.approx(67.7, rel=0.01)
    assert usual.summary.warnings == ()


def test_renal_impact_sweeps_categories(store):
    frame = renal_impact(store, "morphine", DosingRegimen(dose_mg=10, interval_h=4, duration_h=24), weight_kg=70)
    assert frame["renal_function"].drop_duplicates().tolist() == ["normal", "mild", "moderate", "severe"]
    assert frame["crcl_ml_min"].drop_duplicates().tolist() == [100.0, 65.0, 40.0, 20.0]
    assert "Moderate (CrCl=40)" in set(frame["renal_label"])

    peaks = frame.groupby("renal_function", sort=False)["concentration_ng_mL"].max()
    assert peaks["severe"] > peaks["normal"]
    assert (frame["drug"] == "Morphine").all()


def test_renal_impact_needs_category_crcl(store_table):
    store = ParameterStore(store_table[store_table["parameter"] != "severe_crcl"])
    with pytest.raises(ParameterNotFound):
        renal_impact(store, "alfentanil", DosingRegimen(dose_mg=1, interval_h=4, duration_h=12))

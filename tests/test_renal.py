import pytest

from opioidpk.errors import InvalidParameter, NumericOverflow
from opioidpk.renal import (
    adjust_for_renal_function, categorical_half_life, categorize_renal_function, estimate_creatinine_clearance,
)
from opioidpk.types import RenalFunction


def test_half_renal_function_for_mostly_renal_drug():
    """
    CL 60 L/h, 90% renal, CrCl at 50% of normal:
    renal 54 -> 27, non-renal 6, total 33 L/h.
    """
    adjusted = adjust_for_renal_function(
        clearance_normal=60, half_life_normal=3, creatinine_clearance=50,
        normal_creatinine_clearance=100, fraction_renal=0.9,
    )
    assert adjusted.clearance_adjusted == pytest.approx(33)
    assert adjusted.half_life_adjusted == pytest.approx(3 * 60 / 33)
    assert adjusted.half_life_adjusted > 3
    assert adjusted.clearance_reduction_percent == pytest.approx(45)


def test_hepatic_drug_barely_affected():
    adjusted = adjust_for_renal_function(60, 3, 20, 100, fraction_renal=0.05)
    assert adjusted.clearance_adjusted > 55


def test_normal_function_changes_nothing():
    adjusted = adjust_for_renal_function(60, 3, 100, 100, 0.9)
    assert adjusted.clearance_adjusted == pytest.approx(60)
    assert adjusted.half_life_adjusted == pytest.approx(3)


def test_supranormal_crcl_is_clamped_unless_allowed():
    clamped = adjust_for_renal_function(60, 3, 150, 100, 0.9)
    assert clamped.clearance_adjusted == pytest.approx(60)

    amplified = adjust_for_renal_function(60, 3, 150, 100, 0.9, allow_supranormal=True)
    assert amplified.clearance_adjusted == pytest.approx(54 * 1.5 + 6)
    assert amplified.half_life_adjusted < 3


def test_impairment_never_improves_elimination():
    previous = None
    for crcl in (100, 80, 50, 30, 10, 0):
        adjusted = adjust_for_renal_function(60, 3, crcl, 100, 0.7)
        assert adjusted.clearance_adjusted <= 60
        assert adjusted.half_life_adjusted >= 3
        if previous is not None:
            assert adjusted.half_life_adjusted >= previous.half_life_adjusted
        previous = adjusted


def test_fully_renal_drug_without_kidney_function_overflows():
    with pytest.raises(NumericOverflow):
        adjust_for_renal_function(60, 3, 0, 100, 1.0)


@pytest.mark.parametrize("args", [
    (0, 3, 50, 100, 0.9),
    (60, -3, 50, 100, 0.9),
    (60, 3, -1, 100, 0.9),
    (60, 3, 50, 0, 0.9),
    (60, 3, 50, 100, 1.2),
    (60, 3, 50, 100, -0.1),
])
def test_adjust_rejects_invalid_inputs(args):
    with pytest.raises(InvalidParameter):
        adjust_for_renal_function(*args)


@pytest.mark.parametrize("crcl, category", [
    (120, RenalFunction.NORMAL),
    (80, RenalFunction.NORMAL),
    (79.9, RenalFunction.MILD),
    (50, RenalFunction.MILD),
    (30, RenalFunction.MODERATE),
    (29, RenalFunction.SEVERE),
    (10, RenalFunction.SEVERE),
    (9.9, RenalFunction.DIALYSIS),
    (0, RenalFunction.DIALYSIS),
])
def test_categorize_renal_function(crcl, category):
    assert categorize_renal_function(crcl) is category


def test_categorize_rejects_negative_crcl():
    with pytest.raises(InvalidParameter):
        categorize_renal_function(-5)


def test_cockcroft_gault():
    male = estimate_creatinine_clearance(65, 70, 1.0, "male")
    assert male == pytest.approx((75 * 70) / 72)
    assert estimate_creatinine_clearance(65, 70, 1.0, "Female") == pytest.approx(male * 0.85)


@pytest.mark.parametrize("args", [(0, 70, 1.0, "male"), (65, -70, 1.0, "male"), (65, 70, 0, "male"),
                                  (65, 70, 1.0, "other")])
def test_cockcroft_gault_rejects_invalid_inputs(args):
    with pytest.raises(InvalidParameter):
        estimate_creatinine_clearance(*args)


def test_categorical_path_uses_tabulated_half_life(store):
    morphine = store.drug_constants("morphine")
    assert categorical_half_life(morphine, "normal") == morphine.half_life_normal_h
    assert categorical_half_life(morphine, RenalFunction.MODERATE) == morphine.half_life_moderate_h
    assert categorical_half_life(morphine, "severe") == morphine.half_life_severe_h
    assert categorical_half_life(morphine, "dialysis") == morphine.half_life_severe_h


def test_categorical_path_rejects_unknown_category(store):
    with pytest.raises(InvalidParameter):
        categorical_half_life(store.drug_constants("morphine"), "terrible")

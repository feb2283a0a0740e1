"""Tests for fluid_disposal module"""

from pytest import approx

from catalog import ResolvedRecipe, get_recipe_template
from fluid_disposal import (
    BASE_WASTE_CYCLE_TIME,
    apply_fluid_disposal,
    apply_waste_facility_settings,
    calculate_waste_facility_metrics,
    fluid_pollution,
)


def _recipe(recipe_id):
    return ResolvedRecipe.from_template(get_recipe_template(recipe_id))


def test_fluid_pollution():
    """water is clean, residue pollutes heavily, other fluids a little"""
    assert fluid_pollution("p_water", 15) == 0
    assert fluid_pollution("p_residue", 15) == approx(129.6)
    assert fluid_pollution("p_sulfuric_acid", 15) == approx(0.324)
    assert fluid_pollution(None, 15) == 0


def test_liquid_burner_binds_slots():
    """configured slots should bind and the rest stay placeholders"""
    recipe = apply_fluid_disposal(_recipe("r_liquid_burner"), ("p_sulfuric_acid", None), 8)
    assert len(recipe.inputs) == 8
    assert recipe.inputs[0].product_id == "p_sulfuric_acid"
    assert all(i.is_placeholder for i in recipe.inputs[1:])
    assert all(i.quantity == 15 for i in recipe.inputs)
    assert recipe.pollution == approx(0.324)


def test_any_fluid_stays_unbound():
    """the any-fluid product should not bind a slot"""
    recipe = apply_fluid_disposal(_recipe("r_liquid_dump"), ("p_any_fluid", "p_residue"), 2)
    assert recipe.inputs[0].is_placeholder
    assert recipe.inputs[1].product_id == "p_residue"
    assert recipe.pollution == approx(129.6)


def test_waste_metrics_low_flow():
    """flows up to 240 should use the base cycle"""
    metrics = calculate_waste_facility_metrics(100, 100)
    assert metrics.cycle_time == approx(BASE_WASTE_CYCLE_TIME)
    assert metrics.storage_per_cycle == 7000


def test_waste_metrics_high_flow():
    """flows of 480 or more should halve the cycle"""
    metrics = calculate_waste_facility_metrics(1000, 1000)
    assert metrics.total_flow == 480
    assert metrics.cycle_time == approx(BASE_WASTE_CYCLE_TIME / 2)
    assert metrics.storage_per_cycle == approx(3500)


def test_waste_metrics_scaled():
    """flows between 240 and 480 should scale by 240 / total"""
    metrics = calculate_waste_facility_metrics(200, 160)
    assert metrics.storage_per_cycle == approx(7000 * 240 / 360)


def test_waste_facility_inputs():
    """the facility should take item, fluid, concrete and lead"""
    recipe = apply_waste_facility_settings(
        _recipe("r_underground_waste_facility"), "p_bauxite_residue", None, 100, 0
    )
    assert [i.product_id for i in recipe.inputs] == [
        "p_bauxite_residue", "p_variableproduct", "p_concrete_block", "p_lead_ingot"
    ]
    assert recipe.power == 1000000

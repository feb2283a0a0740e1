"""Tests for tree_farm module"""

from pytest import approx

from catalog import VARIABLE, ResolvedRecipe, get_recipe_template
from tree_farm import apply_tree_farm_settings, growth_time, log_output, required_water_tanks


def _recipe():
    return ResolvedRecipe.from_template(get_recipe_template("r_tree_farm"))


def test_growth_time_bands():
    """growth time should follow the pollution bands"""
    assert growth_time(0) == 345
    assert growth_time(-60) == 345
    assert growth_time(30) == 325
    assert growth_time(60) == 345
    assert growth_time(80) == 425
    assert growth_time(-100) == 425
    assert growth_time(100) == 690
    assert growth_time(-200) == 690


def test_log_output_limited_by_growth():
    """many harvesters should be limited by tree regrowth"""
    assert log_output(450, 20, 0) == approx(450 / 345 * 2)


def test_log_output_limited_by_harvesters():
    """few harvesters should limit the harvest"""
    assert log_output(450, 1, 0) == approx(1 / 11 * 2)


def test_required_water_tanks():
    """one tank should serve up to three sprinklers"""
    assert required_water_tanks(0) == 0
    assert required_water_tanks(3) == 1
    assert required_water_tanks(4) == 2


def test_apply_settings():
    """a configured farm should have water, logs and harvester power"""
    recipe = apply_tree_farm_settings(_recipe(), 450, 20, 24, 30)
    assert recipe.inputs[0].quantity == 24
    assert recipe.outputs[0].quantity == approx(450 / 325 * 2, abs=1e-6)
    assert recipe.power == approx(20 * 200000 / 11)
    assert recipe.cycle_time == 1


def test_apply_empty_farm():
    """a farm without trees, harvesters or sprinklers should stay variable"""
    recipe = apply_tree_farm_settings(_recipe(), 0, 0, 0, 0)
    assert recipe.inputs[0].quantity == VARIABLE
    assert recipe.outputs[0].quantity == VARIABLE
    assert recipe.power == VARIABLE

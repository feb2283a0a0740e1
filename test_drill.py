"""Tests for drill module"""

import math

from pytest import approx

from catalog import VARIABLE, Power, ResolvedRecipe, get_recipe_template
from drill import (
    REPLACEMENT_TIME,
    apply_drill_settings,
    calculate_drill_metrics,
    drill_head_multiplier,
    get_available_depths,
    get_depth_outputs,
)


def _recipe():
    return ResolvedRecipe.from_template(get_recipe_template("r_mineshaft_drill"))


def test_available_depths_sorted():
    """depths should come back sorted and include the surface layer"""
    depths = get_available_depths()
    assert depths == sorted(depths)
    assert 100 in depths and 900 in depths


def test_surface_wears_like_300():
    """the 100m layer should use the 300m wear rate"""
    assert drill_head_multiplier("copper", 100) == approx(2.0)
    assert drill_head_multiplier("copper", 300) == approx(2.0)


def test_metrics_cycle():
    """total cycle should be lifetime plus replacement and round trip travel"""
    metrics = calculate_drill_metrics("iron", "water", False, 900)
    assert metrics.lifetime == math.ceil(100 / metrics.deterioration_rate)
    assert metrics.travel_time == approx(36)
    assert metrics.total_cycle_time == approx(metrics.lifetime + REPLACEMENT_TIME + 36)
    assert metrics.duty_cycle == approx(metrics.lifetime / metrics.total_cycle_time)


def test_machine_oil_speeds_travel():
    """machine oil should halve the travel time"""
    metrics = calculate_drill_metrics("iron", "water", True, 900)
    assert metrics.travel_time == approx(18)


def test_metrics_require_head_and_depth():
    """missing drill head or depth should give no metrics"""
    assert calculate_drill_metrics(None, "water", False, 900) is None
    assert calculate_drill_metrics("iron", "water", False, None) is None


def test_apply_configured_drill():
    """a configured drill should get head, consumable and depth outputs"""
    metrics = calculate_drill_metrics("steel", "water", False, 900)
    recipe = apply_drill_settings(_recipe(), "steel", "water", False, 900)

    assert recipe.cycle_time == 1
    assert [i.product_id for i in recipe.inputs] == ["p_steel_drill_head", "p_water"]
    assert recipe.inputs[0].quantity == approx(1 / metrics.total_cycle_time, abs=1e-6)
    assert recipe.inputs[1].quantity == approx(10 * metrics.duty_cycle, abs=1e-6)

    base = get_depth_outputs(900)
    outputs = {i.product_id: i.quantity for i in recipe.outputs}
    assert set(outputs) == set(base)
    for product_id, quantity in base.items():
        assert outputs[product_id] == approx(quantity * metrics.duty_cycle, abs=1e-4)
    assert isinstance(recipe.power, Power)
    assert recipe.pollution == 0.02


def test_apply_machine_oil_input():
    """machine oil should be the last input and boost outputs by 10 percent"""
    recipe = apply_drill_settings(_recipe(), "iron", "none", True, 900)
    assert [i.product_id for i in recipe.inputs] == ["p_iron_drill_head", "p_machine_oil"]
    assert recipe.inputs[1].quantity == 2


def test_apply_unconfigured_drill():
    """an unconfigured drill should keep variable power and pollution"""
    recipe = apply_drill_settings(_recipe(), None, "none", False, None)
    assert recipe.power == VARIABLE
    assert recipe.pollution == VARIABLE
    assert recipe.inputs == ()
    assert recipe.outputs == ()


def test_unknown_depth_has_no_outputs():
    """a depth without a table entry should produce nothing"""
    assert get_depth_outputs(123) == {}

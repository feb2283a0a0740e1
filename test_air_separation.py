"""Tests for air_separation module"""

import math

from pytest import approx

from air_separation import apply_air_separation, residue_amount
from catalog import ResolvedRecipe, get_recipe_template


def test_residue_zero_without_pollution():
    """clean air and negative pollution should produce no residue"""
    assert residue_amount(0) == 0
    assert residue_amount(-10) == 0


def test_residue_grows_with_pollution():
    """residue should increase with pollution"""
    assert residue_amount(50) > residue_amount(10) > 0
    assert residue_amount(10) == approx(math.log(1 + 54290 / 7322) ** 1.1)


def test_apply_sets_residue_only():
    """only the residue output should change"""
    template = ResolvedRecipe.from_template(get_recipe_template("r_air_separation_unit"))
    recipe = apply_air_separation(template, 10)
    assert recipe.outputs[:2] == template.outputs[:2]
    assert recipe.outputs[2].product_id == "p_residue"
    assert recipe.outputs[2].quantity == approx(residue_amount(10), abs=1e-6)

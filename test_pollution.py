"""Tests for pollution module"""

import math

from catalog import get_recipe_template, ResolvedRecipe
from pollution import Environment, TickClock, advance_by_rate, total_pollution_rate


def test_advance_one_tick():
    """36 %/hr should add 0.01 per tick"""
    assert advance_by_rate(Environment(), 36).global_pollution == 0.01


def test_advance_rounds_to_four_decimals():
    """pollution should be rounded to 4 decimals after each tick"""
    environment = advance_by_rate(Environment(global_pollution=1.0), 1)
    assert environment.global_pollution == 1.0003


def test_paused_and_editing_do_not_advance():
    """paused or editing environments should be unchanged"""
    paused = Environment(global_pollution=5, paused=True)
    editing = Environment(global_pollution=5, editing=True)
    assert advance_by_rate(paused, 3600) is paused
    assert advance_by_rate(editing, 3600) is editing


def test_negative_rate_reduces_pollution():
    """negative pollution rates should clean the air"""
    assert advance_by_rate(Environment(global_pollution=1), -36).global_pollution == 0.99


def test_non_finite_pollution_unchanged():
    """a non-finite value should be kept instead of advanced"""
    environment = Environment(global_pollution=math.inf)
    assert advance_by_rate(environment, 36) is environment


def test_total_pollution_rate():
    """pollution should be summed times machine count, skipping variable values"""
    recipes = {
        "smelter": ResolvedRecipe.from_template(get_recipe_template("r_smelter_iron")),
        "drill": ResolvedRecipe.from_template(get_recipe_template("r_mineshaft_drill")),
    }
    assert total_pollution_rate(recipes, {"smelter": 4, "drill": 1}) == 2.0


def test_tick_clock():
    """the clock should report whole elapsed intervals"""
    now = [100.0]
    clock = TickClock(interval=1.0, now=lambda: now[0])
    assert clock.due_ticks() == 0
    now[0] = 102.5
    assert clock.due_ticks() == 2
    now[0] = 103.1
    assert clock.due_ticks() == 1
    now[0] = 110.0
    clock.reset()
    assert clock.due_ticks() == 0

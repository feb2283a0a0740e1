"""Mineshaft drill head wear, consumables and depth outputs.

Drill quantities are already per second; the drill recipe runs on a 1 second cycle.
"""

import json
import math
import os
from dataclasses import dataclass, replace

from catalog import VARIABLE, Ingredient, Power, ResolvedRecipe

DRILL_HEADS = {
    "copper": "p_copper_drill_head",
    "iron": "p_iron_drill_head",
    "steel": "p_steel_drill_head",
    "tungsten_carbide": "p_tungsten_carbide_drill_head",
}

CONSUMABLES = {
    "none": None,
    "water": "p_water",
    "acetic_acid": "p_acetic_acid",
    "hydrochloric_acid": "p_hydrochloric_acid",
    "sulfuric_acid": "p_sulfuric_acid",
}

CONSUMABLE_RATES = {
    "water": 10,
    "acetic_acid": 3,
    "hydrochloric_acid": 1.5,
    "sulfuric_acid": 1,
}

MACHINE_OIL = "p_machine_oil"

REPLACEMENT_TIME = 12
POWER_DRILLING = 3.1  # MMF/s
POWER_TRAVELING = 0.1  # MMF/s
POLLUTION_RATE = 0.02
MACHINE_OIL_RATE = 2

with open(os.path.join(os.path.dirname(os.path.abspath(__file__)), "drill_depths.json"), "r", encoding="utf-8") as f:
    _DEPTH_OUTPUTS: dict[int, dict[str, float]] = {int(depth): outputs for depth, outputs in json.load(f).items()}


def get_available_depths() -> list[int]:
    return sorted(_DEPTH_OUTPUTS)


def get_depth_outputs(depth: int) -> dict[str, float]:
    """Base outputs per second at a depth, empty for depths without a table entry."""
    return dict(_DEPTH_OUTPUTS.get(depth, {}))


def _effective_depth(depth: int) -> int:
    # the surface layer wears like 300m
    return 300 if depth == 100 else depth


def drill_head_multiplier(drill_head: str, depth: int) -> float:
    d = _effective_depth(depth)
    if drill_head == "copper":
        return d / 150
    if drill_head == "iron":
        return 0.04 * d ** 0.25
    if drill_head == "steel":
        return 0.02 * d ** 0.25
    if drill_head == "tungsten_carbide":
        return 0.005 * d ** 0.25
    return 1


def acid_multiplier(consumable: str, depth: int) -> float:
    d = _effective_depth(depth)
    if consumable == "none":
        return d ** 2 / 900000
    if consumable == "water":
        return d ** 2 / 1875000
    if consumable == "acetic_acid":
        return d ** 0.8 / 450
    if consumable == "sulfuric_acid":
        return 0.09 * d ** 0.25
    if consumable == "hydrochloric_acid":
        if d < 6000:
            return 0.000013 * d ** (1.5 - 0.00005 * d) + 4.3875 * 10 ** -13.3 * d ** 3
        return 0.09 * d ** 0.25
    return 1


@dataclass(frozen=True)
class DrillMetrics:
    deterioration_rate: float
    lifetime: int
    travel_time: float
    total_cycle_time: float
    duty_cycle: float


def calculate_drill_metrics(
    drill_head: str | None, consumable: str | None, machine_oil: bool, depth: int | None
) -> DrillMetrics | None:
    """Compute head lifetime, travel time and duty cycle.

    Precondition:
        depth is a positive depth in meters or None

    Postcondition:
        returns None without a drill head or a depth
        lifetime = ceil(100 / deterioration)
        total cycle = lifetime + replacement time + round trip travel
        duty cycle = lifetime / total cycle

    Args:
        drill_head: key of DRILL_HEADS
        consumable: key of CONSUMABLES
        machine_oil: whether machine oil is supplied
        depth: drilling depth

    Returns:
        DrillMetrics or None
    """
    if not drill_head or not depth:
        return None
    oil_multiplier = 1.1 if machine_oil else 1
    deterioration = 0.5 * drill_head_multiplier(drill_head, depth) * acid_multiplier(consumable or "none", depth) * oil_multiplier
    lifetime = math.ceil(100 / deterioration)
    travel_speed = 100 if machine_oil else 50
    travel_time = 2 * depth / travel_speed
    total = lifetime + REPLACEMENT_TIME + travel_time
    return DrillMetrics(deterioration, lifetime, travel_time, total, lifetime / total)


def build_drill_inputs(
    drill_head: str | None, consumable: str | None, machine_oil: bool, metrics: DrillMetrics | None
) -> tuple[Ingredient, ...]:
    """Build the drill's input ports.

    Precondition:
        metrics was computed from the same settings (or is None)

    Postcondition:
        head, consumable (unless none) and machine oil appear in that order
        without metrics, head and consumable quantities are VARIABLE
    """
    inputs = []
    if head_product := DRILL_HEADS.get(drill_head):
        quantity = round(1 / metrics.total_cycle_time, 6) if metrics else VARIABLE
        inputs.append(Ingredient(head_product, quantity))
    if consumable_product := CONSUMABLES.get(consumable):
        quantity = round(CONSUMABLE_RATES[consumable] * metrics.duty_cycle, 6) if metrics else VARIABLE
        inputs.append(Ingredient(consumable_product, quantity))
    if machine_oil:
        inputs.append(Ingredient(MACHINE_OIL, MACHINE_OIL_RATE if metrics else VARIABLE))
    return tuple(inputs)


def build_drill_outputs(depth: int | None, machine_oil: bool, metrics: DrillMetrics | None) -> tuple[Ingredient, ...]:
    """Scale the depth table by the oil bonus and duty cycle, rounded to 4 decimals."""
    base_outputs = _DEPTH_OUTPUTS.get(depth, {})
    if metrics is None:
        return tuple(Ingredient(product_id, VARIABLE) for product_id in base_outputs)
    oil_bonus = 1.1 if machine_oil else 1
    return tuple(
        Ingredient(product_id, round(quantity * oil_bonus * metrics.duty_cycle, 4))
        for product_id, quantity in base_outputs.items()
    )


def apply_drill_settings(
    recipe: ResolvedRecipe,
    drill_head: str | None,
    consumable: str | None,
    machine_oil: bool,
    depth: int | None,
) -> ResolvedRecipe:
    """Resolve the mineshaft drill recipe for a configuration.

    Precondition:
        recipe is the mineshaft drill template

    Postcondition:
        cycle time is 1 second
        with metrics, power averages drilling and traveling power over the cycle
        and pollution is POLLUTION_RATE; without metrics both are VARIABLE

    Args:
        recipe: recipe to modify
        drill_head: key of DRILL_HEADS or None
        consumable: key of CONSUMABLES or None
        machine_oil: whether machine oil is supplied
        depth: drilling depth or None

    Returns:
        modified recipe
    """
    metrics = calculate_drill_metrics(drill_head, consumable, machine_oil, depth)
    if metrics is None:
        power, pollution = VARIABLE, VARIABLE
    else:
        average = (
            POWER_DRILLING * metrics.lifetime + POWER_TRAVELING * (REPLACEMENT_TIME + metrics.travel_time)
        ) / metrics.total_cycle_time
        power = Power(max=POWER_DRILLING * 1e6, average=average * 1e6)
        pollution = POLLUTION_RATE
    return replace(
        recipe,
        inputs=build_drill_inputs(drill_head, consumable, machine_oil, metrics),
        outputs=build_drill_outputs(depth, machine_oil, metrics),
        cycle_time=1,
        power=power,
        pollution=pollution,
    )

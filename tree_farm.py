"""Tree farm growth and harvest rates, driven by global pollution."""

import math
from dataclasses import replace

from catalog import VARIABLE, Ingredient, ResolvedRecipe

HARVEST_CYCLE_TIME = 11
LOGS_PER_TREE = 2
HARVESTER_POWER = 200000
WATER_PER_SPRINKLER = 1
SPRINKLERS_PER_TANK = 3

OAK_LOG = "p_oak_log"
WATER = "p_water"

DEFAULT_TREES = 450
DEFAULT_HARVESTERS = 20
DEFAULT_SPRINKLERS = 24
DEFAULT_OUTPUTS = 8
DEFAULT_CONTROLLER = 1


def growth_time(global_pollution: float) -> float:
    """Seconds for a tree to regrow at a pollution level.

    Precondition:
        global_pollution is a finite number

    Postcondition:
        345 in [-60, 25) and [50, 75)
        325 in [25, 50)
        425 in [75, 100) and [-150, -60)
        690 otherwise
    """
    if -60 <= global_pollution < 25 or 50 <= global_pollution < 75:
        return 345
    if 25 <= global_pollution < 50:
        return 325
    if 75 <= global_pollution < 100 or -150 <= global_pollution < -60:
        return 425
    return 690


def required_water_tanks(sprinklers: int) -> int:
    return math.ceil(sprinklers / SPRINKLERS_PER_TANK)


def log_output(trees: int, harvesters: int, global_pollution: float) -> float:
    """Logs per second, limited by regrowth or by harvester throughput."""
    sustainable = trees / growth_time(global_pollution)
    harvestable = harvesters / HARVEST_CYCLE_TIME
    return min(sustainable, harvestable) * LOGS_PER_TREE


def apply_tree_farm_settings(
    recipe: ResolvedRecipe, trees: int, harvesters: int, sprinklers: int, global_pollution: float
) -> ResolvedRecipe:
    """Resolve the tree farm recipe for its population and the current pollution.

    Precondition:
        recipe is the tree farm template

    Postcondition:
        water = sprinklers per second, VARIABLE with no sprinklers
        logs rounded to 6 decimals, VARIABLE with no trees or harvesters
        power = harvesters * 200000 / 11, VARIABLE with no harvesters
        cycle time is 1 second and pollution 0

    Args:
        recipe: recipe to modify
        trees: number of trees
        harvesters: number of harvesters
        sprinklers: number of sprinklers
        global_pollution: current environment pollution

    Returns:
        modified recipe
    """
    water = sprinklers * WATER_PER_SPRINKLER if sprinklers and sprinklers >= 1 else VARIABLE
    if trees and harvesters:
        logs = round(log_output(trees, harvesters, global_pollution), 6)
    else:
        logs = VARIABLE
    power = harvesters * HARVESTER_POWER / HARVEST_CYCLE_TIME if harvesters else VARIABLE
    return replace(
        recipe,
        inputs=(Ingredient(WATER, water),),
        outputs=(Ingredient(OAK_LOG, logs),),
        cycle_time=1,
        power=power,
        pollution=0,
    )

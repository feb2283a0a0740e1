"""Industrial firebox fuel handling.

The firebox burns one unit of fuel per second until the recipe's energy
requirement is met, so the wait time and the fuel per cycle are the same number.
"""

from dataclasses import dataclass, replace

from catalog import Ingredient, ResolvedRecipe

# fuel product -> energy per unit
FUEL_ENERGY = {
    "p_coal": 30000,
    "p_coke_fuel": 600000,
    "p_planks": 9000,
    "p_oak_log": 16000,
}

DEFAULT_FUEL = "p_coal"

RECIPE_ENERGY_REQUIREMENTS = {
    "r_industrial_firebox_01": 900000,
    "r_industrial_firebox_02": 900000,
    "r_industrial_firebox_03": 300000,
    "r_industrial_firebox_04": 300000,
    "r_industrial_firebox_05": 300000,
    "r_industrial_firebox_06": 300000,
    "r_industrial_firebox_07": 16000,
}

RECIPE_ADDITIONAL_WAIT = {
    "r_industrial_firebox_07": 1,
}


@dataclass(frozen=True)
class FireboxMetrics:
    energy_needed: float
    fuel_energy: float
    wait_time: float
    additional_wait: float
    cycle_time: float


def calculate_firebox_metrics(recipe_id: str, fuel_id: str | None) -> FireboxMetrics | None:
    """Compute wait and cycle time for a recipe burning a given fuel.

    Precondition:
        recipe_id and fuel_id are strings or None

    Postcondition:
        returns None if the recipe has no energy requirement or the fuel is unknown
        otherwise cycle_time = energy / fuel energy + additional wait

    Args:
        recipe_id: industrial firebox recipe id
        fuel_id: fuel product id

    Returns:
        FireboxMetrics or None
    """
    energy_needed = RECIPE_ENERGY_REQUIREMENTS.get(recipe_id)
    fuel_energy = FUEL_ENERGY.get(fuel_id)
    if not energy_needed or not fuel_energy:
        return None
    wait_time = energy_needed / fuel_energy
    additional_wait = RECIPE_ADDITIONAL_WAIT.get(recipe_id, 0)
    return FireboxMetrics(energy_needed, fuel_energy, wait_time, additional_wait, wait_time + additional_wait)


def apply_firebox_fuel(recipe: ResolvedRecipe, fuel_id: str | None) -> ResolvedRecipe:
    """Put the chosen fuel into the first input slot and recompute the cycle time.

    Precondition:
        recipe is an industrial firebox recipe

    Postcondition:
        power is always 0
        if metrics are available, placeholder and fuel inputs are removed
        and the chosen fuel is inserted first with quantity = wait time
        otherwise inputs and cycle time are unchanged

    Args:
        recipe: recipe to modify
        fuel_id: fuel product id

    Returns:
        modified recipe
    """
    metrics = calculate_firebox_metrics(recipe.recipe_id, fuel_id)
    if metrics is None:
        return replace(recipe, power=0)

    fuel_input = Ingredient(fuel_id, round(metrics.wait_time, 6))
    remaining = tuple(
        ingredient for ingredient in recipe.inputs
        if not ingredient.is_placeholder and ingredient.product_id not in FUEL_ENERGY
    )
    return replace(
        recipe,
        inputs=(fuel_input,) + remaining,
        cycle_time=metrics.cycle_time,
        power=0,
    )

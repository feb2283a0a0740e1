"""Chemical plant speed and efficiency factors."""

from dataclasses import dataclass, replace

from catalog import ResolvedRecipe, is_numeric

DEFAULT_SPEED = 100
DEFAULT_EFFICIENCY = 100

# Factors move in steps of this many percentage points around 100
_STEP = 5


@dataclass(frozen=True)
class ChemicalPlantMultipliers:
    """multipliers applied to a chemical plant recipe"""

    input_multiplier: float
    output_multiplier: float
    power_multiplier: float


def _speed_factors(speed: float) -> tuple[float, float]:
    """Map a speed factor to (input/output multiplier, power multiplier).

    Precondition:
        speed is a percentage, 100 meaning unmodified

    Postcondition:
        both factors are 1.0 at 100
        below 100 power falls by a fifteenth per step, above it rises by a tenth per step
    """
    steps = (speed - 100) / _STEP
    if speed < 100:
        return 1 + steps * 0.05, 1 + steps * 0.06666666666666666
    if speed > 100:
        return 1 + steps * 0.05, 1 + steps * 0.10
    return 1.0, 1.0


def _efficiency_factors(efficiency: float) -> tuple[float, float]:
    """Map an efficiency factor to (input multiplier, power multiplier).

    Precondition:
        efficiency is a percentage, 100 meaning unmodified

    Postcondition:
        both factors are 1.0 at 100
        lower efficiency consumes more input at lower power
        higher efficiency consumes less input at much higher power
    """
    steps = (efficiency - 100) / _STEP
    if efficiency < 100:
        return 1 + steps * -0.0625, 1 + steps * 0.05
    if efficiency > 100:
        return 1 + steps * -0.0425, 1 + steps * 0.25
    return 1.0, 1.0


def calculate_multipliers(speed: float, efficiency: float) -> ChemicalPlantMultipliers:
    """Combine the speed and efficiency contributions.

    Precondition:
        speed and efficiency are percentages around 100

    Postcondition:
        input multiplier is the product of the speed and efficiency input factors
        output multiplier depends on speed only
        power multiplier is the sum of both power factors minus one

    Args:
        speed: speed factor in percent
        efficiency: efficiency factor in percent

    Returns:
        ChemicalPlantMultipliers for the recipe
    """
    io_from_speed, power_from_speed = _speed_factors(speed)
    input_from_efficiency, power_from_efficiency = _efficiency_factors(efficiency)
    return ChemicalPlantMultipliers(
        input_multiplier=io_from_speed * input_from_efficiency,
        output_multiplier=io_from_speed,
        power_multiplier=power_from_speed + power_from_efficiency - 1,
    )


def _scale(ingredients, multiplier: float):
    return tuple(
        ingredient.with_quantity(round(ingredient.quantity * multiplier, 6))
        if is_numeric(ingredient.quantity) else ingredient
        for ingredient in ingredients
    )


def apply_chemical_plant_settings(
    recipe: ResolvedRecipe, speed: float = DEFAULT_SPEED, efficiency: float = DEFAULT_EFFICIENCY
) -> ResolvedRecipe:
    """Apply speed and efficiency factors to a chemical plant recipe.

    Precondition:
        recipe is the unmodified chemical plant recipe

    Postcondition:
        numeric quantities are scaled and rounded to 6 decimals
        non-numeric quantities pass through unchanged
        numeric power is scaled and rounded to 2 decimals
        cycle time and pollution are unchanged

    Args:
        recipe: recipe to modify
        speed: speed factor in percent
        efficiency: efficiency factor in percent

    Returns:
        modified recipe
    """
    multipliers = calculate_multipliers(speed, efficiency)
    power = recipe.power
    if is_numeric(power):
        power = round(power * multipliers.power_multiplier, 2)
    return replace(
        recipe,
        inputs=_scale(recipe.inputs, multipliers.input_multiplier),
        outputs=_scale(recipe.outputs, multipliers.output_multiplier),
        power=power,
    )

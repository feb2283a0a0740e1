"""Air separation residue output, which grows with global pollution."""

import math
from dataclasses import replace

from catalog import ResolvedRecipe

RESIDUE = "p_residue"


def residue_amount(global_pollution: float) -> float:
    """Residue per cycle: ln(1 + 5429x / 7322) ** 1.1, zero for negative pollution."""
    if global_pollution < 0:
        return 0
    return math.log(1 + (5429 * global_pollution) / 7322) ** 1.1


def apply_air_separation(recipe: ResolvedRecipe, global_pollution: float) -> ResolvedRecipe:
    """Set the residue output from the current pollution, rounded to 6 decimals."""
    amount = round(residue_amount(global_pollution), 6)
    return replace(
        recipe,
        outputs=tuple(
            output.with_quantity(amount) if output.product_id == RESIDUE else output
            for output in recipe.outputs
        ),
    )

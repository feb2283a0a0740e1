"""Logic assembler microchip stages."""

import math
from dataclasses import dataclass, replace

from catalog import VARIABLE, PLACEHOLDER_PRODUCT, Ingredient, Power, ResolvedRecipe

STEPS_PER_STAGE = 4
AVG_STEP_TIME = 20
AVG_STEP_TIME_WITH_OIL = 4
POWER_STORAGE_REQUIREMENT = 500000
MACHINE_OIL_RATE = 0.3
BASE_CYCLE_TIME = 10
TICKS_PER_SECOND = 30

OUTER_STAGES = range(1, 9)
INNER_STAGES = tuple(2 ** power for power in range(1, 7))

# materials consumed per stage, in input order
BASE_MATERIALS = (
    ("p_logic_plate", 3),
    ("p_copper_wire", 12),
    ("p_semiconductor", 3),
    ("p_gold_wire", 6),
)

MACHINE_OIL = "p_machine_oil"


def microchip_product_id(outer_stage: int, inner_stage: int) -> str:
    """Product id of a microchip stage: p_{inner}x_microchip or p_{outer}x{inner}x_microchip."""
    if outer_stage == 1:
        return f"p_{inner_stage}x_microchip"
    return f"p_{outer_stage}x{inner_stage}x_microchip"


def is_valid_stage(outer_stage: int, inner_stage: int) -> bool:
    return outer_stage in OUTER_STAGES and inner_stage in INNER_STAGES


@dataclass(frozen=True)
class AssemblerMetrics:
    total_stages: int
    avg_step_time: float
    cycle_time: float
    avg_power: float
    max_power: float


def calculate_assembler_metrics(
    outer_stage: int, inner_stage: int, machine_oil: bool, tick_delay: float = 0
) -> AssemblerMetrics | None:
    """Compute the stage count, cycle time and power of a microchip stage.

    Precondition:
        tick_delay is a non-negative number of game ticks

    Postcondition:
        returns None for stages outside 1..8 x 2..64
        total stages = log2(inner) + 6 * (outer - 1)
        cycle = stages * 4 * (avg step + tick delay / 30) + 10

    Args:
        outer_stage: outer stage (1..8)
        inner_stage: inner stage (power of two, 2..64)
        machine_oil: whether machine oil speeds up the steps
        tick_delay: circuit delay in ticks added to every step

    Returns:
        AssemblerMetrics or None
    """
    if not is_valid_stage(outer_stage, inner_stage):
        return None
    total_stages = int(math.log2(inner_stage)) + (outer_stage - 1) * 6
    avg_step_time = AVG_STEP_TIME_WITH_OIL if machine_oil else AVG_STEP_TIME
    cycle_time = total_stages * STEPS_PER_STAGE * (avg_step_time + tick_delay / TICKS_PER_SECOND) + BASE_CYCLE_TIME
    return AssemblerMetrics(
        total_stages=total_stages,
        avg_step_time=avg_step_time,
        cycle_time=cycle_time,
        avg_power=POWER_STORAGE_REQUIREMENT / avg_step_time,
        max_power=POWER_STORAGE_REQUIREMENT / (0.8 if machine_oil else 4),
    )


def apply_assembler_settings(
    recipe: ResolvedRecipe, outer_stage: int, inner_stage: int, machine_oil: bool, tick_delay: float = 0
) -> ResolvedRecipe:
    """Resolve the logic assembler recipe for a microchip stage.

    Precondition:
        recipe is the logic assembler template

    Postcondition:
        inputs scale with the total number of stages
        machine oil adds 0.3 per second of cycle, rounded to 6 decimals
        output is one microchip of the configured stage
        invalid stages leave VARIABLE quantities and a placeholder output
    """
    metrics = calculate_assembler_metrics(outer_stage, inner_stage, machine_oil, tick_delay)
    if metrics is None:
        return replace(
            recipe,
            inputs=tuple(Ingredient(product_id, VARIABLE) for product_id, _ in BASE_MATERIALS),
            outputs=(Ingredient(PLACEHOLDER_PRODUCT, VARIABLE),),
            cycle_time=VARIABLE,
            power=VARIABLE,
        )

    inputs = [Ingredient(product_id, per_stage * metrics.total_stages) for product_id, per_stage in BASE_MATERIALS]
    if machine_oil:
        inputs.append(Ingredient(MACHINE_OIL, round(MACHINE_OIL_RATE * metrics.cycle_time, 6)))
    return replace(
        recipe,
        inputs=tuple(inputs),
        outputs=(Ingredient(microchip_product_id(outer_stage, inner_stage), 1),),
        cycle_time=metrics.cycle_time,
        power=Power(max=metrics.max_power, average=metrics.avg_power),
    )

"""Machines that destroy products: liquid burner, liquid dump and underground waste facility."""

from dataclasses import dataclass, replace

from catalog import PLACEHOLDER_PRODUCT, Ingredient, ResolvedRecipe

ANY_FLUID = "p_any_fluid"
ANY_ITEM = "p_any_item"
RESIDUE = "p_residue"

WATER_VARIANTS = frozenset({
    "p_water",
    "p_filtered_water",
    "p_distilled_water",
    "p_steam",
    "p_low_pressure_steam",
    "p_high_pressure_steam",
})

MAX_FLOW_PER_FLUID_INPUT = 15
LIQUID_BURNER_INPUTS = 8
LIQUID_DUMP_INPUTS = 2

# pollution in %/hr per unit/s of flow
RESIDUE_POLLUTION = 8.64
FLUID_POLLUTION = 0.0216

STORAGE_CAPACITY = 7000
CONCRETE_BLOCKS_PER_FILL = 140
LEAD_INGOTS_PER_FILL = 70
WASTE_FACILITY_POWER = 1000000
MAX_FLOW_PER_WASTE_INPUT = 240
BASE_WASTE_CYCLE_TIME = STORAGE_CAPACITY / MAX_FLOW_PER_WASTE_INPUT
MIN_FLOW_FOR_SCALING = 240
MAX_FLOW_FOR_SCALING = 480


def _bound_product(product_id: str | None) -> str:
    # "any" products accept whatever is connected, so they bind to nothing here
    if not product_id or product_id in (ANY_FLUID, ANY_ITEM):
        return PLACEHOLDER_PRODUCT
    return product_id


def fluid_pollution(product_id: str | None, flow_rate: float) -> float:
    """Pollution from destroying one fluid stream."""
    if not product_id or product_id in (ANY_FLUID, PLACEHOLDER_PRODUCT):
        return 0
    if product_id in WATER_VARIANTS:
        return 0
    if product_id == RESIDUE:
        return RESIDUE_POLLUTION * flow_rate
    return FLUID_POLLUTION * flow_rate


def apply_fluid_disposal(recipe: ResolvedRecipe, fluids: tuple[str | None, ...], slot_count: int) -> ResolvedRecipe:
    """Bind the configured fluids to the disposal slots.

    Precondition:
        recipe is a liquid burner or liquid dump template
        slot_count is the number of fluid slots of the machine

    Postcondition:
        every slot takes 15 per 1 second cycle
        unset slots stay placeholders and are never rated
        pollution is the sum of each slot's fluid pollution
    """
    inputs = []
    for slot in range(slot_count):
        product_id = _bound_product(fluids[slot] if slot < len(fluids) else None)
        inputs.append(Ingredient(product_id, MAX_FLOW_PER_FLUID_INPUT))
    pollution = sum(fluid_pollution(ingredient.product_id, ingredient.quantity) for ingredient in inputs)
    return replace(recipe, inputs=tuple(inputs), outputs=(), cycle_time=1, power=0, pollution=pollution)


@dataclass(frozen=True)
class WasteFacilityMetrics:
    total_flow: float
    cycle_time: float
    storage_per_cycle: float


def calculate_waste_facility_metrics(item_flow: float, fluid_flow: float) -> WasteFacilityMetrics:
    """Scale the fill cycle with the combined input flow.

    Precondition:
        item_flow and fluid_flow are non-negative

    Postcondition:
        each flow is capped at 240
        total <= 240: base cycle and full storage
        total >= 480: half cycle and half storage
        in between: both scaled by 240 / total

    Args:
        item_flow: item input flow per second
        fluid_flow: fluid input flow per second

    Returns:
        WasteFacilityMetrics
    """
    total = min(item_flow, MAX_FLOW_PER_WASTE_INPUT) + min(fluid_flow, MAX_FLOW_PER_WASTE_INPUT)
    if total <= MIN_FLOW_FOR_SCALING:
        scale = 1
    elif total >= MAX_FLOW_FOR_SCALING:
        scale = 0.5
    else:
        scale = MIN_FLOW_FOR_SCALING / total
    return WasteFacilityMetrics(total, BASE_WASTE_CYCLE_TIME * scale, STORAGE_CAPACITY * scale)


def apply_waste_facility_settings(
    recipe: ResolvedRecipe,
    item_product: str | None,
    fluid_product: str | None,
    item_flow: float,
    fluid_flow: float,
) -> ResolvedRecipe:
    """Resolve the underground waste facility for its configured products and flows.

    Postcondition:
        inputs are [item, fluid, concrete block, lead ingot]
        unset products stay placeholders
        power is 1 MMF/s
    """
    metrics = calculate_waste_facility_metrics(item_flow, fluid_flow)
    inputs = (
        Ingredient(_bound_product(item_product), metrics.storage_per_cycle),
        Ingredient(_bound_product(fluid_product), metrics.storage_per_cycle),
        Ingredient("p_concrete_block", CONCRETE_BLOCKS_PER_FILL),
        Ingredient("p_lead_ingot", LEAD_INGOTS_PER_FILL),
    )
    return replace(
        recipe,
        inputs=inputs,
        outputs=(),
        cycle_time=metrics.cycle_time,
        power=WASTE_FACILITY_POWER,
        pollution=0,
    )

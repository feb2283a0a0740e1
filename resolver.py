"""Recipe Parameter Resolver.

Turns a recipe template, a node configuration and the environment into a
concrete ResolvedRecipe. Every machine behavior has one pure resolver function
in _RESOLVERS; machines without a behavior resolve to their template.
"""

import logging
from dataclasses import replace
from functools import lru_cache

import air_separation
import assembler
import chemical_plant
import drill
import firebox
import fluid_disposal
import heat
import tree_farm
from catalog import RecipeTemplate, ResolvedRecipe, get_machine_kind, get_recipe_template
from freezeargs import freezeargs
from pollution import Environment
from settings import (
    AssemblerSettings,
    ChemicalPlantSettings,
    DrillSettings,
    FireboxSettings,
    FluidDisposalSettings,
    HeaterSettings,
    Settings,
    TreeFarmSettings,
    WasteFacilitySettings,
    default_settings,
    settings_class_for,
    settings_from_dict,
)

_LOGGER = logging.getLogger("production_network")


def _resolve_drill(recipe: ResolvedRecipe, settings: DrillSettings, global_pollution: float) -> ResolvedRecipe:
    return drill.apply_drill_settings(
        recipe, settings.drill_head, settings.consumable, settings.machine_oil, settings.depth
    )


def _resolve_assembler(recipe: ResolvedRecipe, settings: AssemblerSettings, global_pollution: float) -> ResolvedRecipe:
    return assembler.apply_assembler_settings(
        recipe, settings.outer_stage, settings.inner_stage, settings.machine_oil, settings.tick_delay
    )


def _resolve_tree_farm(recipe: ResolvedRecipe, settings: TreeFarmSettings, global_pollution: float) -> ResolvedRecipe:
    return tree_farm.apply_tree_farm_settings(
        recipe, settings.trees, settings.harvesters, settings.sprinklers, global_pollution
    )


def _resolve_firebox(recipe: ResolvedRecipe, settings: FireboxSettings, global_pollution: float) -> ResolvedRecipe:
    return firebox.apply_firebox_fuel(recipe, settings.fuel)


def _resolve_chemical_plant(
    recipe: ResolvedRecipe, settings: ChemicalPlantSettings, global_pollution: float
) -> ResolvedRecipe:
    return chemical_plant.apply_chemical_plant_settings(recipe, settings.speed, settings.efficiency)


def _resolve_liquid_burner(
    recipe: ResolvedRecipe, settings: FluidDisposalSettings, global_pollution: float
) -> ResolvedRecipe:
    return fluid_disposal.apply_fluid_disposal(recipe, settings.fluids, fluid_disposal.LIQUID_BURNER_INPUTS)


def _resolve_liquid_dump(
    recipe: ResolvedRecipe, settings: FluidDisposalSettings, global_pollution: float
) -> ResolvedRecipe:
    return fluid_disposal.apply_fluid_disposal(recipe, settings.fluids, fluid_disposal.LIQUID_DUMP_INPUTS)


def _resolve_waste_facility(
    recipe: ResolvedRecipe, settings: WasteFacilitySettings, global_pollution: float
) -> ResolvedRecipe:
    return fluid_disposal.apply_waste_facility_settings(
        recipe, settings.item_product, settings.fluid_product, settings.item_flow, settings.fluid_flow
    )


def _resolve_air_separation(recipe: ResolvedRecipe, settings: None, global_pollution: float) -> ResolvedRecipe:
    return air_separation.apply_air_separation(recipe, global_pollution)


def _resolve_water_heater(recipe: ResolvedRecipe, settings: HeaterSettings, global_pollution: float) -> ResolvedRecipe:
    power = heat.heater_power(settings.temperature)
    return recipe if power is None else replace(recipe, power=power)


def _resolve_unchanged(recipe: ResolvedRecipe, settings, global_pollution: float) -> ResolvedRecipe:
    # boiler and temperature-dependent machines are finished by the temperature pass
    return recipe


_RESOLVERS = {
    "drill": _resolve_drill,
    "assembler": _resolve_assembler,
    "tree_farm": _resolve_tree_farm,
    "firebox": _resolve_firebox,
    "chemical_plant": _resolve_chemical_plant,
    "liquid_burner": _resolve_liquid_burner,
    "liquid_dump": _resolve_liquid_dump,
    "waste_facility": _resolve_waste_facility,
    "air_separation": _resolve_air_separation,
    "water_heater": _resolve_water_heater,
    "boiler": _resolve_unchanged,
    "temperature_dependent": _resolve_unchanged,
}

# behaviors whose formula reads global pollution
POLLUTION_DEPENDENT_BEHAVIORS = frozenset({"tree_farm", "air_separation"})

RESOLVE_CACHE_SIZE = 4096
PREVIEW_CACHE_SIZE = 256


def _settings_for(behavior: str | None, configuration: Settings | None) -> Settings | None:
    """Pick the configuration a resolver runs with.

    Precondition:
        behavior is a machine behavior tag or None

    Postcondition:
        a configuration of the behavior's settings class is returned as is
        a missing or mismatched configuration is replaced by the defaults
    """
    expected = settings_class_for(behavior)
    if expected is None:
        return None
    if isinstance(configuration, expected):
        return configuration
    if configuration is not None:
        _LOGGER.debug("Ignoring %s for a '%s' machine", type(configuration).__name__, behavior)
    return default_settings(behavior)


def resolve(template: RecipeTemplate, configuration: Settings | None, environment: Environment) -> ResolvedRecipe:
    """Resolve a recipe template for a configuration and environment.

    Precondition:
        template is a catalog RecipeTemplate
        configuration is a Settings object or None
        environment is an Environment

    Postcondition:
        identical arguments always return an identical ResolvedRecipe
        machines without a behavior return their template unchanged
        global pollution is only read by pollution-dependent behaviors
        no other node is read

    Args:
        template: recipe template of the node
        configuration: node configuration
        environment: current environment

    Returns:
        ResolvedRecipe for the node
    """
    global_pollution = environment.global_pollution if reads_pollution(template) else 0.0
    return _resolve_cached(template, configuration, global_pollution)


@lru_cache(maxsize=RESOLVE_CACHE_SIZE)
def _resolve_cached(template: RecipeTemplate, configuration: Settings | None, global_pollution: float) -> ResolvedRecipe:
    recipe = ResolvedRecipe.from_template(template)
    behavior = get_machine_kind(template.machine_id).behavior
    if (resolver := _RESOLVERS.get(behavior)) is None:
        return recipe
    return resolver(recipe, _settings_for(behavior, configuration), global_pollution)


def resolve_cache_info():
    """Hit, miss and size counters of the resolver cache."""
    return _resolve_cached.cache_info()


def reads_pollution(template: RecipeTemplate) -> bool:
    """True if the template's resolution changes with global pollution."""
    return get_machine_kind(template.machine_id).behavior in POLLUTION_DEPENDENT_BEHAVIORS


@freezeargs
@lru_cache(maxsize=PREVIEW_CACHE_SIZE)
def preview_recipe(recipe_id: str, configuration: dict | None = None, global_pollution: float = 0.0) -> ResolvedRecipe:
    """Resolve a recipe from a persisted (dict) configuration.

    Precondition:
        configuration is None or a dict accepted by settings_from_dict

    Postcondition:
        returns the same ResolvedRecipe resolve() would for the parsed settings

    Args:
        recipe_id: catalog recipe id
        configuration: persisted configuration
        global_pollution: pollution value to resolve against

    Returns:
        ResolvedRecipe

    Raises:
        ValueError: if the recipe or the configuration is invalid
    """
    return resolve(
        get_recipe_template(recipe_id),
        settings_from_dict(configuration),
        Environment(global_pollution=global_pollution),
    )

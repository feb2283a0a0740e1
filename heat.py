"""Heat sources and temperature-dependent cycle times.

All temperatures are in degrees Celsius.
"""

import math
from dataclasses import dataclass, field

from frozendict import frozendict

TEMPERATURE_PRODUCTS = frozenset({
    "p_water",
    "p_filtered_water",
    "p_distilled_water",
    "p_steam",
    "p_low_pressure_steam",
    "p_high_pressure_steam",
})

STEAM_PRODUCTS = ("p_steam", "p_low_pressure_steam", "p_high_pressure_steam")

DEFAULT_WATER_TEMPERATURE = 18
DEFAULT_BOILER_INPUT_TEMPERATURE = 18
DEFAULT_STEAM_TEMPERATURE = 100

# Heat source types
FIXED = "fixed"
ADDITIVE = "additive"
CONFIGURABLE = "configurable"
PRODUCT_DEPENDENT = "product_dependent"
BOILER = "boiler"
PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class HeatSource:
    """how a machine sets the temperature of its outputs"""

    type: str
    output_temperature: float | None = None
    temperature_increase: float = 0
    max_temperature: float | None = None
    max_chains: int = 0
    # temperature -> power draw
    temperature_options: frozendict = field(default_factory=frozendict)
    # input product -> output temperature
    temperatures_by_product: frozendict = field(default_factory=frozendict)
    default_heat_loss: float = 0
    min_steam_temperature: float = DEFAULT_STEAM_TEMPERATURE
    input_product: str | None = None


HEAT_SOURCES: dict[str, HeatSource] = {
    "m_geothermal_well": HeatSource(ADDITIVE, temperature_increase=80, max_temperature=220, max_chains=3),
    "m_firebox": HeatSource(FIXED, output_temperature=240),
    "m_industrial_firebox": HeatSource(FIXED, output_temperature=300),
    "m_electric_water_heater": HeatSource(
        CONFIGURABLE, temperature_options=frozendict({120: 300000, 220: 800000, 320: 1500000})
    ),
    "m_gas_burner": HeatSource(
        PRODUCT_DEPENDENT,
        temperatures_by_product=frozendict({"p_water": 400, "p_filtered_water": 405, "p_distilled_water": 410}),
    ),
    "m_liquid_boiler": HeatSource(PRODUCT_DEPENDENT, temperatures_by_product=frozendict({"p_water": 105})),
    "m_boiler": HeatSource(BOILER, default_heat_loss=0, min_steam_temperature=DEFAULT_STEAM_TEMPERATURE),
    "m_coal_generator": HeatSource(FIXED, output_temperature=150),
    "m_coal_power_plant": HeatSource(FIXED, output_temperature=500),
    "m_nuclear_power_plant": HeatSource(FIXED, output_temperature=1500),
    "m_modular_turbine": HeatSource(PASSTHROUGH, input_product="p_high_pressure_steam"),
}

DEFAULT_HEATER_TEMPERATURE = 120


def get_heat_source(machine_id: str) -> HeatSource | None:
    return HEAT_SOURCES.get(machine_id)


def heater_power(temperature: float) -> float | None:
    """Power draw of the electric water heater at a setting, None for unknown settings."""
    return HEAT_SOURCES["m_electric_water_heater"].temperature_options.get(temperature)


def is_temperature_product(product_id: str) -> bool:
    return product_id in TEMPERATURE_PRODUCTS


def steam_input_index(product_ids) -> int:
    """Index of the first steam-family product, -1 if there is none."""
    for index, product_id in enumerate(product_ids):
        if product_id in STEAM_PRODUCTS:
            return index
    return -1


def industrial_drill_seconds(temperature: float) -> float:
    if temperature <= 0:
        return math.inf
    if temperature >= 400:
        return 2
    return 800 / temperature


def alloyer_seconds(temperature: float) -> float:
    if temperature <= 0:
        return 40
    if temperature <= 300:
        return 1500 / temperature + 5
    if temperature < 350:
        return 10 - (temperature - 300) / 25
    return 8


def coal_liquefaction_seconds(temperature: float) -> float:
    if temperature <= 18:
        return 88
    if temperature <= 300:
        return 3000 / temperature + 10
    if temperature < 350:
        return 20 - 0.2 * (temperature - 300)
    return 10


_CRACKING_KNEE = 2973 / 11
_CRACKING_FLOOR = 4000 / 11


def steam_cracking_seconds(temperature: float) -> float:
    if temperature <= 0:
        return 30
    if temperature <= _CRACKING_KNEE:
        return 30 + (-165 / 1982) * temperature
    if temperature < _CRACKING_FLOOR:
        return (-99 / 2054) * temperature + (21081 / 1027)
    return 3


def water_treatment_seconds(temperature: float) -> float:
    if temperature <= 0:
        return math.inf
    return 64 / (0.176 * abs(temperature))


TEMPERATURE_DEPENDENT_CYCLES = {
    "m_industrial_drill": industrial_drill_seconds,
    "m_alloyer": alloyer_seconds,
    "m_coal_liquefaction_plant": coal_liquefaction_seconds,
    "m_steam_cracking_plant": steam_cracking_seconds,
    "m_water_treatment_plant": water_treatment_seconds,
}

WATER_TREATMENT_PLANT = "m_water_treatment_plant"
WATER_TREATMENT_STEAM_PER_SECOND = 90
WATER_TREATMENT_STEAM_INDEX = 1


def has_temperature_dependent_cycle(machine_id: str) -> bool:
    return machine_id in TEMPERATURE_DEPENDENT_CYCLES


def temperature_dependent_cycle_time(machine_id: str, temperature: float, base_cycle_time: float) -> float:
    """Cycle time of a machine fed at a temperature.

    Precondition:
        temperature is a finite number

    Postcondition:
        machines without a formula keep base_cycle_time
        a non-finite formula result keeps base_cycle_time

    Args:
        machine_id: machine kind id
        temperature: temperature arriving on the steam input
        base_cycle_time: cycle time to fall back to

    Returns:
        cycle time in seconds
    """
    formula = TEMPERATURE_DEPENDENT_CYCLES.get(machine_id)
    if formula is None:
        return base_cycle_time
    seconds = formula(temperature)
    return seconds if math.isfinite(seconds) else base_cycle_time

"""Temperature Propagator.

Walks temperature-carrying edges from upstream to downstream, assigning a
temperature to every such edge and to the ports at both ends, then derives
the cycle times and quantities that depend on those temperatures.
"""

import logging
from dataclasses import dataclass, field, replace

from frozendict import frozendict

import heat
from catalog import ResolvedRecipe, is_numeric
from settings import BoilerSettings, HeaterSettings

_LOGGER = logging.getLogger("production_network")

INPUT_TEMPERATURE_DECIMALS = 10
BOILER_WATER_FACTOR = 0.85
GEOTHERMAL_WELL = "m_geothermal_well"

_IN_PROGRESS = "in_progress"
_DONE = "done"


@dataclass(frozen=True)
class TemperatureOverlay:
    """temperatures and the recipe adjustments they cause"""

    # edge id -> temperature carried
    edge_temperatures: frozendict = field(default_factory=frozendict)
    # (node_id, index) -> temperature, None for unconnected inputs
    input_temperatures: frozendict = field(default_factory=frozendict)
    output_temperatures: frozendict = field(default_factory=frozendict)
    # node id -> cycle time
    cycle_times: frozendict = field(default_factory=frozendict)
    # (node_id, direction, index) -> quantity per cycle
    quantity_overrides: frozendict = field(default_factory=frozendict)
    # node id -> number of geothermal wells chained directly upstream
    geothermal_chains: frozendict = field(default_factory=frozendict)
    unresolved_edges: tuple[str, ...] = ()


def _temperature_edges(graph, recipes: dict[str, ResolvedRecipe]) -> list:
    edges = []
    for edge in graph.edges:
        if graph.edge_problem(edge, recipes) is not None:
            continue
        if heat.is_temperature_product(recipes[edge.source_id].outputs[edge.source_index].product_id):
            edges.append(edge)
    return edges


def _upstream_order(node_ids, incoming: dict) -> tuple[list[str], set[str]]:
    """Order nodes so every node comes after the nodes feeding it.

    Precondition:
        incoming maps node id -> sorted list of temperature edges into it

    Postcondition:
        returns (order, unresolved edge ids)
        an edge back to a node still being visited closes a cycle; it is
        left out of the ordering constraints and reported as unresolved

    Args:
        node_ids: every node to order
        incoming: temperature edges into each node

    Returns:
        tuple of ordered node ids and the ids of cycle-closing edges
    """
    order = []
    unresolved = set()
    state = {}
    for root in sorted(node_ids):
        if root in state:
            continue
        state[root] = _IN_PROGRESS
        stack = [(root, iter(incoming.get(root, ())))]
        while stack:
            node_id, pending = stack[-1]
            if (edge := next(pending, None)) is None:
                stack.pop()
                state[node_id] = _DONE
                order.append(node_id)
                continue
            upstream = edge.source_id
            if state.get(upstream) == _IN_PROGRESS:
                unresolved.add(edge.id)
            elif upstream not in state:
                state[upstream] = _IN_PROGRESS
                stack.append((upstream, iter(incoming.get(upstream, ()))))
    return order, unresolved


def mix_temperatures(temperatures_and_flows: list[tuple[float, float | None]]) -> float | None:
    """Flow-weighted mean temperature of the streams entering one input.

    A simple mean is used when no stream has a known positive flow.
    Returns None when nothing is connected.
    """
    if not temperatures_and_flows:
        return None
    flows = [flow for _, flow in temperatures_and_flows if flow is not None]
    total_flow = sum(flows)
    if len(flows) == len(temperatures_and_flows) and total_flow > 0:
        mixed = sum(temperature * flow for temperature, flow in temperatures_and_flows) / total_flow
    else:
        mixed = sum(temperature for temperature, _ in temperatures_and_flows) / len(temperatures_and_flows)
    return round(mixed, INPUT_TEMPERATURE_DECIMALS)


def _first_temperature_input(recipe: ResolvedRecipe) -> int:
    for index, ingredient in enumerate(recipe.inputs):
        if heat.is_temperature_product(ingredient.product_id):
            return index
    return -1


def _boiler_steam_temperature(recipe: ResolvedRecipe, inputs: dict, configuration) -> float:
    source = heat.HEAT_SOURCES["m_boiler"]
    coolant = inputs.get(1)
    if coolant is None:
        coolant = heat.DEFAULT_BOILER_INPUT_TEMPERATURE
    heat_loss = configuration.heat_loss if isinstance(configuration, BoilerSettings) else source.default_heat_loss
    return coolant - heat_loss


def _heat_source_temperature(
    source: heat.HeatSource,
    recipe: ResolvedRecipe,
    index: int,
    inputs: dict,
    configuration,
    chain: int,
) -> float | None:
    """Temperature a heat source gives one of its outputs, None to fall back to the default."""
    if source.type == heat.FIXED:
        return source.output_temperature
    if source.type == heat.ADDITIVE:
        water_index = _first_temperature_input(recipe)
        if water_index < 0:
            return None
        incoming = inputs.get(water_index)
        if incoming is None:
            incoming = heat.DEFAULT_WATER_TEMPERATURE
        if incoming > source.max_temperature or chain >= source.max_chains:
            return incoming
        return min(incoming + source.temperature_increase, source.max_temperature)
    if source.type == heat.CONFIGURABLE:
        if isinstance(configuration, HeaterSettings):
            return configuration.temperature
        return heat.DEFAULT_HEATER_TEMPERATURE
    if source.type == heat.PRODUCT_DEPENDENT:
        if not recipe.inputs:
            return None
        return source.temperatures_by_product.get(recipe.inputs[0].product_id)
    if source.type == heat.BOILER:
        steam = _boiler_steam_temperature(recipe, inputs, configuration)
        if index == 0:
            return BOILER_WATER_FACTOR * steam
        return steam if steam >= source.min_steam_temperature else max(steam, heat.DEFAULT_WATER_TEMPERATURE)
    if source.type == heat.PASSTHROUGH:
        for input_index, ingredient in enumerate(recipe.inputs):
            if ingredient.product_id == source.input_product:
                passed = inputs.get(input_index)
                return heat.DEFAULT_WATER_TEMPERATURE if passed is None else passed
        return None
    return None


def _output_temperatures(recipe: ResolvedRecipe, inputs: dict, configuration, chain: int) -> dict[int, float]:
    source = heat.get_heat_source(recipe.machine_id)
    temperatures = {}
    for index, ingredient in enumerate(recipe.outputs):
        if not heat.is_temperature_product(ingredient.product_id):
            continue
        temperature = None
        if source is not None:
            temperature = _heat_source_temperature(source, recipe, index, inputs, configuration, chain)
        if temperature is None:
            temperature = ingredient.temperature
        if temperature is None:
            temperature = heat.DEFAULT_WATER_TEMPERATURE
        temperatures[index] = temperature
    return temperatures


def _recipe_adjustments(node_id: str, recipe: ResolvedRecipe, inputs: dict, outputs: dict):
    """Cycle time and quantity overrides caused by the node's temperatures."""
    cycle_time = None
    overrides = {}
    if heat.has_temperature_dependent_cycle(recipe.machine_id):
        steam_index = heat.steam_input_index([ingredient.product_id for ingredient in recipe.inputs])
        steam_temperature = inputs.get(steam_index) if steam_index >= 0 else None
        if steam_temperature is not None and is_numeric(recipe.cycle_time):
            cycle_time = heat.temperature_dependent_cycle_time(recipe.machine_id, steam_temperature, recipe.cycle_time)
            if recipe.machine_id == heat.WATER_TREATMENT_PLANT:
                overrides[(node_id, "in", heat.WATER_TREATMENT_STEAM_INDEX)] = (
                    heat.WATER_TREATMENT_STEAM_PER_SECOND * cycle_time
                )
    source = heat.get_heat_source(recipe.machine_id)
    if source is not None and source.type == heat.BOILER:
        for index, ingredient in enumerate(recipe.outputs):
            if ingredient.product_id in heat.STEAM_PRODUCTS and outputs.get(index, 0) < source.min_steam_temperature:
                overrides[(node_id, "out", index)] = 0
    return cycle_time, overrides


def propagate(graph, recipes: dict[str, ResolvedRecipe], flows: dict[str, float] | None = None) -> TemperatureOverlay:
    """Propagate temperatures through the network.

    Precondition:
        graph is a NetworkGraph
        recipes holds the resolved recipe of every node
        flows, when given, maps edge id -> delivered flow from a previous solve

    Postcondition:
        every valid edge of a temperature product has a temperature
        an edge closing a cycle carries the default water temperature and is
        listed in unresolved_edges
        temperature-dependent machines with a connected steam input get a
        cycle time from their formula, others keep their base cycle time

    Args:
        graph: network topology and configurations
        recipes: resolved recipes by node id
        flows: per-edge flows used to weight mixed input temperatures

    Returns:
        TemperatureOverlay
    """
    temperature_edges = _temperature_edges(graph, recipes)
    incoming = {}
    for edge in temperature_edges:
        incoming.setdefault(edge.target_id, []).append(edge)
    order, unresolved = _upstream_order(recipes, incoming)
    if unresolved:
        _LOGGER.warning(
            "Temperature cycle detected; using %s C on %s", heat.DEFAULT_WATER_TEMPERATURE, ", ".join(sorted(unresolved))
        )

    edge_temperatures = {}
    input_temperatures = {}
    output_temperatures = {}
    cycle_times = {}
    quantity_overrides = {}
    chains = {}
    for node_id in order:
        recipe = recipes[node_id]
        node = graph.get_node(node_id)

        streams = {}
        chain = 0
        for edge in incoming.get(node_id, ()):
            if edge.id in unresolved:
                temperature = heat.DEFAULT_WATER_TEMPERATURE
            else:
                temperature = output_temperatures[(edge.source_id, edge.source_index)]
                if graph.get_node(edge.source_id).machine_id == GEOTHERMAL_WELL:
                    chain = max(chain, chains.get(edge.source_id, 0) + 1)
            edge_temperatures[edge.id] = temperature
            flow = None if flows is None else flows.get(edge.id)
            streams.setdefault(edge.target_index, []).append((temperature, flow))

        inputs = {}
        for index, ingredient in enumerate(recipe.inputs):
            if heat.is_temperature_product(ingredient.product_id):
                inputs[index] = mix_temperatures(streams.get(index, []))
                input_temperatures[(node_id, index)] = inputs[index]
        if recipe.machine_id == GEOTHERMAL_WELL:
            chains[node_id] = chain

        outputs = _output_temperatures(recipe, inputs, node.configuration, chain)
        for index, temperature in outputs.items():
            output_temperatures[(node_id, index)] = temperature

        cycle_time, overrides = _recipe_adjustments(node_id, recipe, inputs, outputs)
        if cycle_time is not None:
            cycle_times[node_id] = cycle_time
        quantity_overrides.update(overrides)

    return TemperatureOverlay(
        edge_temperatures=frozendict(sorted(edge_temperatures.items())),
        input_temperatures=frozendict(sorted(input_temperatures.items())),
        output_temperatures=frozendict(sorted(output_temperatures.items())),
        cycle_times=frozendict(sorted(cycle_times.items())),
        quantity_overrides=frozendict(sorted(quantity_overrides.items())),
        geothermal_chains=frozendict(sorted(chains.items())),
        unresolved_edges=tuple(sorted(unresolved)),
    )


def _adjust_ports(node_id: str, direction: str, ports, temperatures: dict, overlay: TemperatureOverlay):
    adjusted = []
    for index, ingredient in enumerate(ports):
        if (node_id, index) in temperatures:
            ingredient = replace(ingredient, temperature=temperatures[(node_id, index)])
        if (quantity := overlay.quantity_overrides.get((node_id, direction, index))) is not None:
            ingredient = ingredient.with_quantity(quantity)
        adjusted.append(ingredient)
    return tuple(adjusted)


def apply_overlay(recipes: dict[str, ResolvedRecipe], overlay: TemperatureOverlay) -> dict[str, ResolvedRecipe]:
    """Final recipes with propagated temperatures, cycle times and quantities applied."""
    final = {}
    for node_id in sorted(recipes):
        recipe = recipes[node_id]
        final[node_id] = replace(
            recipe,
            cycle_time=overlay.cycle_times.get(node_id, recipe.cycle_time),
            inputs=_adjust_ports(node_id, "in", recipe.inputs, overlay.input_temperatures, overlay),
            outputs=_adjust_ports(node_id, "out", recipe.outputs, overlay.output_temperatures, overlay),
        )
    return final

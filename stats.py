"""Network statistics derived from a solution: value, power, pollution, build cost."""

import math
from collections import defaultdict
from dataclasses import dataclass

import tree_farm
from catalog import Power, find_product, get_machine_kind, is_numeric
from settings import TreeFarmSettings

DEFICIENCY_PENALTY = 15
EXCESS_PENALTY = 5
POWER_PER_MODEL_PAIR = 1500000
FIREBOX_MACHINE = "m_industrial_firebox"
TREE_FARM_MACHINE = "m_tree_farm"

# tree farm part machine -> parts per farm
_TREE_FARM_PARTS = {
    "m_tree": lambda settings: settings.trees,
    "m_tree_harvester": lambda settings: settings.harvesters,
    "m_tree_farm_sprinkler": lambda settings: settings.sprinklers,
    "m_tree_farm_water_tank": lambda settings: tree_farm.required_water_tanks(settings.sprinklers),
    "m_tree_farm_output": lambda settings: settings.outputs,
    "m_tree_farm_controller": lambda settings: settings.controller,
}


@dataclass(frozen=True)
class NetworkSummary:
    excess_products: int
    deficient_products: int
    total_excess_value: float
    health_score: float


@dataclass(frozen=True)
class TotalStats:
    total_power: float
    total_pollution: float
    total_model_count: int


@dataclass(frozen=True)
class MachineStat:
    machine_id: str
    name: str
    count: int
    cost: float

    @property
    def total_cost(self) -> float:
        return self.count * self.cost


def _price(product_id: str) -> float | None:
    product = find_product(product_id)
    return product.price if product is not None and is_numeric(product.price) else None


def network_summary(solution) -> NetworkSummary:
    """Counts, value of excess and a 0-100 health score for a solution.

    Each deficient product costs 15 points and each excess product 5.
    """
    total_excess_value = sum((_price(entry.product_id) or 0) * entry.rate for entry in solution.excess)
    health_score = max(
        0,
        100 - DEFICIENCY_PENALTY * len(solution.deficiency) - EXCESS_PENALTY * len(solution.excess),
    )
    return NetworkSummary(len(solution.excess), len(solution.deficiency), total_excess_value, health_score)


def sold_products_profit(solution, sold_products: dict[str, bool] | None = None) -> float:
    """Income per second from selling excess products.

    Precondition:
        sold_products maps product id -> whether the user sells it

    Postcondition:
        products without an explicit choice are sold when their price is positive
        products without a price earn nothing

    Args:
        solution: ProductionSolution
        sold_products: explicit sell choices

    Returns:
        profit per second
    """
    sold_products = sold_products or {}
    profit = 0.0
    for entry in solution.excess:
        if (price := _price(entry.product_id)) is None:
            continue
        if sold_products.get(entry.product_id, price > 0):
            profit += price * entry.rate
    return profit


def _power_value(power) -> float:
    if isinstance(power, Power):
        return power.max
    if is_numeric(power) and math.isfinite(power):
        return power
    return 0


def _tree_farm_settings(node) -> TreeFarmSettings:
    configuration = node.configuration
    return configuration if isinstance(configuration, TreeFarmSettings) else TreeFarmSettings()


def total_stats(graph, recipes) -> TotalStats:
    """Aggregate power, pollution and model count of a network.

    Precondition:
        recipes maps node id -> ResolvedRecipe for every node in graph

    Postcondition:
        power uses the maximum of {max, average} power entries
        non-numeric power and pollution contribute nothing
        model counts use machine counts rounded up

    Args:
        graph: NetworkGraph
        recipes: resolved recipes by node id

    Returns:
        TotalStats
    """
    total_power = 0.0
    total_pollution = 0.0
    total_model_count = 0
    for node in graph.nodes:
        recipe = recipes[node.id]
        power = _power_value(recipe.power)
        if recipe.machine_id != FIREBOX_MACHINE:
            total_power += power * node.machine_count
        if is_numeric(recipe.pollution) and math.isfinite(recipe.pollution):
            total_pollution += recipe.pollution * node.machine_count

        machines = math.ceil(node.machine_count)
        power_models = 0 if recipe.machine_id == FIREBOX_MACHINE else math.ceil(power / POWER_PER_MODEL_PAIR) * 2
        if recipe.machine_id == TREE_FARM_MACHINE:
            settings = _tree_farm_settings(node)
            tanks = tree_farm.required_water_tanks(settings.sprinklers)
            per_farm = (
                settings.trees + settings.harvesters + settings.sprinklers
                + tanks * 3 + settings.controller + settings.outputs * 3 + power_models
            )
        else:
            per_farm = 1 + power_models + 2 * (len(recipe.inputs) + len(recipe.outputs))
        total_model_count += machines * per_farm
    return TotalStats(total_power, total_pollution, total_model_count)


def machine_stats(graph) -> tuple[list[MachineStat], float]:
    """Machines to build per kind, with cost; tree farms are counted by part.

    Returns:
        tuple of stats sorted by machine name and the total cost
    """
    counts = defaultdict(int)
    for node in graph.nodes:
        if node.machine_id == TREE_FARM_MACHINE:
            settings = _tree_farm_settings(node)
            for part_id, count_of in _TREE_FARM_PARTS.items():
                counts[part_id] += math.ceil(count_of(settings) * node.machine_count)
        else:
            counts[node.machine_id] += math.ceil(node.machine_count)

    stats = []
    for machine_id, count in counts.items():
        machine = get_machine_kind(machine_id)
        cost = machine.cost if is_numeric(machine.cost) else 0
        stats.append(MachineStat(machine_id, machine.name, count, cost))
    stats.sort(key=lambda stat: (stat.name, stat.machine_id))
    return stats, sum(stat.total_cost for stat in stats)

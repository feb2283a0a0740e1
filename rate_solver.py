"""Rate Graph Solver.

Turns resolved recipes, machine counts and edges into per-port rates, per-edge
delivered flows, and the per-product excess / deficiency report.

Rates are per second: a port with quantity q per cycle on a node with cycle
time t and machine count m runs at (q / t) * m.
"""

import enum
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field

from frozendict import frozendict
from tarjan import tarjan

from catalog import ResolvedRecipe, is_numeric
from lp_solver import max_flow_allocation
from pollution import total_pollution_rate

_LOGGER = logging.getLogger("production_network")

TOLERANCE = 1e-9
MAX_ALLOCATION_PASSES = 200
DEFAULT_CYCLE_TIME = 1

# port keys: (node_id, direction, index)
_IN = "in"
_OUT = "out"


class AllocationRule(enum.Enum):
    """how flow is shared between edges that meet at one port"""

    FAIR_SHARE = "fair_share"
    MAX_FLOW = "max_flow"


@dataclass(frozen=True)
class PortRate:
    """rate of one port; rate is None for ports that are variable or unbound"""

    product_id: str
    rate: float | None
    # delivered through edges (outputs) or received through edges (inputs)
    flow: float = 0.0
    temperature: float | None = None


@dataclass(frozen=True)
class NodeRates:
    node_id: str
    cycle_time: float
    machine_count: float
    inputs: tuple[PortRate, ...]
    outputs: tuple[PortRate, ...]


@dataclass(frozen=True)
class ProductBalance:
    product_id: str
    supply: float
    demand: float
    consumed: float


@dataclass(frozen=True)
class Excess:
    product_id: str
    rate: float
    total_production: float
    connected: float


@dataclass(frozen=True)
class Deficiency:
    product_id: str
    rate: float
    total_demand: float
    connected: float
    # (node_id, input_index, shortage)
    affected_nodes: tuple[tuple[str, int, float], ...]

    @property
    def affected_node_ids(self) -> tuple[str, ...]:
        return tuple(sorted({node_id for node_id, _, _ in self.affected_nodes}))


@dataclass(frozen=True)
class ProductionSolution:
    """Result of one full evaluation pass; never partially updated."""

    node_rates: frozendict
    edge_flows: frozendict
    excess: tuple[Excess, ...]
    deficiency: tuple[Deficiency, ...]
    balances: frozendict
    stale_edges: tuple[str, ...]
    total_pollution: float
    recipes: frozendict
    edge_temperatures: frozendict = field(default_factory=frozendict)
    unresolved_edges: tuple[str, ...] = ()

    def excess_for(self, product_id: str) -> float:
        return next((entry.rate for entry in self.excess if entry.product_id == product_id), 0.0)

    def deficiency_for(self, product_id: str) -> float:
        return next((entry.rate for entry in self.deficiency if entry.product_id == product_id), 0.0)

    def is_balanced(self) -> bool:
        return not self.excess and not self.deficiency


def effective_cycle_time(recipe: ResolvedRecipe, node_id: str = "") -> float:
    """Cycle time used for rate arithmetic.

    Non-numeric, non-finite and non-positive cycle times become 1.
    """
    cycle_time = recipe.cycle_time
    if is_numeric(cycle_time) and math.isfinite(cycle_time) and cycle_time > 0:
        return cycle_time
    _LOGGER.debug("Cycle time %r of '%s' replaced with %s", cycle_time, node_id, DEFAULT_CYCLE_TIME)
    return DEFAULT_CYCLE_TIME


def port_rate(quantity, cycle_time: float, machine_count: float) -> float | None:
    if not is_numeric(quantity) or not math.isfinite(quantity):
        return None
    return quantity / cycle_time * machine_count


def _port_rates(recipes: dict[str, ResolvedRecipe], machine_counts: dict[str, float]) -> dict:
    """Rate of every rated port, keyed by port key.

    Placeholder ports and ports with variable quantities are left out.
    """
    rates = {}
    for node_id in sorted(recipes):
        recipe = recipes[node_id]
        cycle_time = effective_cycle_time(recipe, node_id)
        machine_count = machine_counts.get(node_id, 0)
        for direction, ports in ((_IN, recipe.inputs), (_OUT, recipe.outputs)):
            for index, ingredient in enumerate(ports):
                if ingredient.is_placeholder:
                    continue
                if (rate := port_rate(ingredient.quantity, cycle_time, machine_count)) is not None:
                    rates[(node_id, direction, index)] = max(rate, 0.0)
    return rates


def allocation_components(edge_ports: dict) -> list[list[str]]:
    """Group edges whose allocations influence each other.

    Two edges interact when they share a port, so the components are the
    connected components of the undirected port graph.

    Precondition:
        edge_ports maps edge id -> (source port key, target port key)

    Postcondition:
        returns lists of edge ids, each list sorted, lists ordered by first edge id
    """
    adjacency = defaultdict(list)
    for source, target in edge_ports.values():
        adjacency[source].append(target)
        adjacency[target].append(source)
    port_component = {}
    for number, component in enumerate(tarjan(dict(adjacency))):
        for port in component:
            port_component[port] = number
    grouped = defaultdict(list)
    for edge_id in sorted(edge_ports):
        grouped[port_component[edge_ports[edge_id][0]]].append(edge_id)
    return sorted(grouped.values())


def _scale_to_capacity(claims: dict, edges_by_port: dict, capacity: dict) -> None:
    """Scale claims so no port carries more than its capacity."""
    for port in sorted(edges_by_port):
        edge_ids = edges_by_port[port]
        total = sum(claims[edge_id] for edge_id in edge_ids)
        limit = capacity[port]
        if total > limit:
            factor = limit / total if total > 0 else 0.0
            for edge_id in edge_ids:
                claims[edge_id] *= factor


def fair_share_allocation(edge_ports: dict, rates: dict) -> dict[str, float]:
    """Allocate flow across edges by proportional fair share.

    Precondition:
        edge_ports maps edge id -> (output port key, input port key)
        rates holds the rate of every port named in edge_ports

    Postcondition:
        no output port delivers more than its rate
        no input port receives more than its rate
        an output shared by several edges is split in proportion to the demand
        of each edge's input, and unmet demand is offered to suppliers with
        spare output until the allocation stops changing

    Args:
        edge_ports: ports joined by each edge
        rates: per-port rates

    Returns:
        delivered flow per edge id
    """
    outgoing = defaultdict(list)
    incoming = defaultdict(list)
    for edge_id in sorted(edge_ports):
        source, target = edge_ports[edge_id]
        outgoing[source].append(edge_id)
        incoming[target].append(edge_id)

    claims = {edge_id: rates[edge_ports[edge_id][1]] for edge_id in sorted(edge_ports)}
    for _ in range(MAX_ALLOCATION_PASSES):
        previous = dict(claims)
        _scale_to_capacity(claims, outgoing, rates)
        _scale_to_capacity(claims, incoming, rates)

        # offer each input's unmet demand to suppliers that still have output left
        spare = {
            port: rates[port] - sum(claims[edge_id] for edge_id in edge_ids)
            for port, edge_ids in outgoing.items()
        }
        for port in sorted(incoming):
            edge_ids = incoming[port]
            unmet = rates[port] - sum(claims[edge_id] for edge_id in edge_ids)
            if unmet <= TOLERANCE:
                continue
            offers = {edge_id: spare[edge_ports[edge_id][0]] for edge_id in edge_ids}
            total_offer = sum(offer for offer in offers.values() if offer > TOLERANCE)
            if total_offer <= TOLERANCE:
                continue
            taken = min(unmet, total_offer)
            for edge_id, offer in offers.items():
                if offer > TOLERANCE:
                    claims[edge_id] += taken * offer / total_offer

        if max((abs(claims[edge_id] - previous[edge_id]) for edge_id in claims), default=0.0) < TOLERANCE:
            break
    else:
        _LOGGER.debug("Fair-share allocation stopped after %d passes", MAX_ALLOCATION_PASSES)

    _scale_to_capacity(claims, outgoing, rates)
    _scale_to_capacity(claims, incoming, rates)
    return claims


def _allocate(edge_ports: dict, rates: dict, rule: AllocationRule) -> dict[str, float]:
    flows = {}
    for component in allocation_components(edge_ports):
        component_ports = {edge_id: edge_ports[edge_id] for edge_id in component}
        if rule is AllocationRule.MAX_FLOW:
            allocated = max_flow_allocation(component_ports, rates)
            if allocated is None:
                _LOGGER.warning("Max-flow allocation failed; using fair share for %s", component[0])
                allocated = fair_share_allocation(component_ports, rates)
        else:
            allocated = fair_share_allocation(component_ports, rates)
        flows.update(allocated)
    return flows


def _sorted_report(entries):
    return tuple(sorted(entries, key=lambda entry: (-entry.rate, entry.product_id)))


def solve(
    graph,
    recipes: dict[str, ResolvedRecipe],
    rule: AllocationRule = AllocationRule.FAIR_SHARE,
) -> ProductionSolution:
    """Compute rates, flows, excess and deficiency for a network.

    Precondition:
        graph is a NetworkGraph
        recipes holds the final (temperature-adjusted) recipe of every node

    Postcondition:
        for every product: supply = consumed + excess and demand = consumed + deficiency
        outputs without edges are fully excess, inputs without edges fully deficient
        stale edges carry no flow and are listed in the solution
        identical inputs give identical solutions

    Args:
        graph: network topology and machine counts
        recipes: resolved recipes by node id
        rule: flow sharing rule at ports with several edges

    Returns:
        ProductionSolution
    """
    machine_counts = graph.machine_counts()
    rates = _port_rates(recipes, machine_counts)

    stale = []
    edge_products = {}
    edge_ports = {}
    for edge in graph.edges:
        if (problem := graph.edge_problem(edge, recipes)) is not None:
            _LOGGER.info("Skipping stale edge %s: %s", edge.id, problem)
            stale.append(edge.id)
            continue
        edge_products[edge.id] = recipes[edge.source_id].outputs[edge.source_index].product_id
        source = (edge.source_id, _OUT, edge.source_index)
        target = (edge.target_id, _IN, edge.target_index)
        if source in rates and target in rates:
            edge_ports[edge.id] = (source, target)

    allocated = _allocate(edge_ports, rates, rule)
    edge_flows = {edge_id: allocated.get(edge_id, 0.0) for edge_id in sorted(edge_products)}

    port_flows = defaultdict(float)
    for edge_id, (source, target) in sorted(edge_ports.items()):
        port_flows[source] += edge_flows[edge_id]
        port_flows[target] += edge_flows[edge_id]

    node_rates = {}
    supply = defaultdict(float)
    demand = defaultdict(float)
    shortages = defaultdict(list)
    for node_id in sorted(recipes):
        recipe = recipes[node_id]
        ports = {}
        for direction, ingredients in ((_IN, recipe.inputs), (_OUT, recipe.outputs)):
            port_list = []
            for index, ingredient in enumerate(ingredients):
                key = (node_id, direction, index)
                rate = rates.get(key)
                flow = port_flows.get(key, 0.0)
                port_list.append(PortRate(ingredient.product_id, rate, flow, ingredient.temperature))
                if rate is None:
                    continue
                if direction == _OUT:
                    supply[ingredient.product_id] += rate
                else:
                    demand[ingredient.product_id] += rate
                    if rate - flow > TOLERANCE:
                        shortages[ingredient.product_id].append((node_id, index, rate - flow))
            ports[direction] = tuple(port_list)
        node_rates[node_id] = NodeRates(
            node_id,
            effective_cycle_time(recipe, node_id),
            machine_counts.get(node_id, 0),
            ports[_IN],
            ports[_OUT],
        )

    consumed = defaultdict(float)
    for edge_id in sorted(edge_ports):
        consumed[edge_products[edge_id]] += edge_flows[edge_id]

    balances = {}
    excess = []
    deficiency = []
    for product_id in sorted(set(supply) | set(demand)):
        balance = ProductBalance(product_id, supply[product_id], demand[product_id], consumed[product_id])
        balances[product_id] = balance
        if (surplus := balance.supply - balance.consumed) > TOLERANCE:
            excess.append(Excess(product_id, surplus, balance.supply, balance.consumed))
        if (shortfall := balance.demand - balance.consumed) > TOLERANCE:
            deficiency.append(Deficiency(
                product_id, shortfall, balance.demand, balance.consumed, tuple(shortages[product_id])
            ))

    return ProductionSolution(
        node_rates=frozendict(node_rates),
        edge_flows=frozendict(edge_flows),
        excess=_sorted_report(excess),
        deficiency=_sorted_report(deficiency),
        balances=frozendict(balances),
        stale_edges=tuple(stale),
        total_pollution=total_pollution_rate(recipes, machine_counts),
        recipes=frozendict(recipes),
    )

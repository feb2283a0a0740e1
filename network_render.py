"""Graphviz rendering of a solved production network."""

import graphviz

from catalog import find_product, get_recipe_template
from rate_solver import TOLERANCE

FLUID_EDGE_COLOR = "steelblue"
ITEM_EDGE_COLOR = "black"
STALE_EDGE_COLOR = "red"


def _product_name(product_id: str) -> str:
    product = find_product(product_id)
    return product.name if product is not None else product_id


def _format_rate(rate: float) -> str:
    return f"{rate:.4g}/s"


def _node_color(node_id: str, deficient_nodes: set[str]) -> str:
    return "salmon" if node_id in deficient_nodes else "lightblue"


def _edge_color(product_id: str) -> str:
    """Fluids are drawn as pipes, items as belts.

    Precondition:
        product_id is a catalog product id

    Postcondition:
        returns a graphviz color name
    """
    product = find_product(product_id)
    return FLUID_EDGE_COLOR if product is not None and product.is_fluid else ITEM_EDGE_COLOR


def _add_machine_nodes(dot: graphviz.Digraph, graph, solution, deficient_nodes: set[str]) -> None:
    """Add one box per node.

    Precondition:
        dot is graphviz.Digraph
        solution has node rates for every node of graph

    Postcondition:
        every node is a filled box labelled with recipe name and machine count
        nodes with an under-supplied input are highlighted
    """
    for node in graph.nodes:
        template = get_recipe_template(node.recipe_id)
        rates = solution.node_rates[node.id]
        dot.node(
            node.id,
            f"{template.name}\nx{node.machine_count:g}  ({rates.cycle_time:.4g}s)",
            shape="box",
            style="filled",
            fillcolor=_node_color(node.id, deficient_nodes),
        )


def _add_edges(dot: graphviz.Digraph, graph, solution) -> None:
    """Add one arrow per edge, labelled with product, flow and temperature."""
    stale = set(solution.stale_edges)
    unresolved = set(solution.unresolved_edges)
    for edge in graph.edges:
        node_rates = solution.node_rates.get(edge.source_id)
        if edge.id in stale or node_rates is None or edge.source_index >= len(node_rates.outputs):
            dot.edge(edge.source_id, edge.target_id, label="stale", color=STALE_EDGE_COLOR, style="dotted")
            continue
        product_id = node_rates.outputs[edge.source_index].product_id
        label = f"{_product_name(product_id)}\n{_format_rate(solution.edge_flows.get(edge.id, 0.0))}"
        if (temperature := solution.edge_temperatures.get(edge.id)) is not None:
            label += f"\n{temperature:g}C"
        dot.edge(
            edge.source_id,
            edge.target_id,
            label=label,
            color=_edge_color(product_id),
            style="dashed" if edge.id in unresolved else "solid",
        )


def _add_excess_nodes(dot: graphviz.Digraph, solution) -> None:
    """Add a sink per excess product fed by every output port with leftover supply."""
    if not solution.excess:
        return
    with dot.subgraph(name="excess") as excess_group:
        excess_group.attr(rank="same")
        for entry in solution.excess:
            excess_group.node(
                f"Excess_{entry.product_id}",
                f"{_product_name(entry.product_id)}\n{_format_rate(entry.rate)}",
                shape="box",
                style="filled",
                fillcolor="lightgreen",
            )
    excess_products = {entry.product_id for entry in solution.excess}
    for node_id in sorted(solution.node_rates):
        for port in solution.node_rates[node_id].outputs:
            if port.rate is None or port.product_id not in excess_products:
                continue
            if (leftover := port.rate - port.flow) > TOLERANCE:
                dot.edge(
                    node_id,
                    f"Excess_{port.product_id}",
                    label=_format_rate(leftover),
                    color=_edge_color(port.product_id),
                )


def render_network(graph, solution) -> graphviz.Digraph:
    """Draw a network and its solution.

    Precondition:
        solution was computed for graph

    Postcondition:
        returns a left-to-right Digraph with machines, edges and excess sinks

    Args:
        graph: NetworkGraph
        solution: ProductionSolution

    Returns:
        graphviz.Digraph
    """
    dot = graphviz.Digraph(comment="Production Network")
    dot.attr(rankdir="LR")
    deficient_nodes = {
        node_id for entry in solution.deficiency for node_id in entry.affected_node_ids
    }
    _add_machine_nodes(dot, graph, solution, deficient_nodes)
    _add_edges(dot, graph, solution)
    _add_excess_nodes(dot, solution)
    return dot

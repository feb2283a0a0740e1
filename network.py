"""Production network graph: placed machines, their connections, and snapshots.

The graph enforces the editor-boundary rules (known recipes, valid
configurations, matching port products) so the evaluation engine only ever
sees structurally valid input. Rules that can break after the fact, such as a
configuration change altering a port's product, are reported as stale edges
rather than rejected.
"""

import json
import logging
import math
from dataclasses import dataclass, field, replace

from catalog import ResolvedRecipe, get_machine_kind, get_recipe_template, is_numeric
from pollution import Environment
from resolver import resolve
from settings import Settings, settings_from_dict, settings_to_dict, validate_settings

_LOGGER = logging.getLogger("production_network")

INPUT = "input"
OUTPUT = "output"


@dataclass(frozen=True)
class NodeInstance:
    """a placed machine group running one recipe"""

    id: str
    recipe_id: str
    machine_count: float = 1
    configuration: Settings | None = None

    @property
    def machine_id(self) -> str:
        return get_recipe_template(self.recipe_id).machine_id

    @property
    def behavior(self) -> str | None:
        return get_machine_kind(self.machine_id).behavior


@dataclass(frozen=True)
class Edge:
    """a directed connection from one node's output port to another node's input port"""

    id: str
    source_id: str
    source_index: int
    target_id: str
    target_index: int


def default_edge_id(source_id: str, source_index: int, target_id: str, target_index: int) -> str:
    return f"{source_id}:{source_index}->{target_id}:{target_index}"


def _check_machine_count(machine_count) -> float:
    """Validate a machine count.

    Raises:
        ValueError: if the count is not a finite non-negative number
    """
    if not is_numeric(machine_count) or not math.isfinite(machine_count):
        raise ValueError(f"Machine count must be a number, got {machine_count!r}")
    if machine_count < 0:
        raise ValueError(f"Machine count must be non-negative, got {machine_count}")
    return machine_count


class NetworkGraph:
    """Mutable collection of nodes and edges.

    Nodes and edges are immutable records; every mutation replaces a record.
    Iteration order is always by id so evaluation never depends on the
    order in which the user built the graph.
    """

    def __init__(self):
        self._nodes: dict[str, NodeInstance] = {}
        self._edges: dict[str, Edge] = {}

    # ========== Queries ==========

    @property
    def nodes(self) -> tuple[NodeInstance, ...]:
        return tuple(self._nodes[node_id] for node_id in sorted(self._nodes))

    @property
    def edges(self) -> tuple[Edge, ...]:
        return tuple(self._edges[edge_id] for edge_id in sorted(self._edges))

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> NodeInstance:
        """Look up a node by id.

        Raises:
            ValueError: if there is no such node
        """
        try:
            return self._nodes[node_id]
        except KeyError as exc:
            raise ValueError(f"Unknown node '{node_id}'") from exc

    def get_edge(self, edge_id: str) -> Edge:
        """Look up an edge by id.

        Raises:
            ValueError: if there is no such edge
        """
        try:
            return self._edges[edge_id]
        except KeyError as exc:
            raise ValueError(f"Unknown edge '{edge_id}'") from exc

    def edges_into(self, node_id: str) -> tuple[Edge, ...]:
        return tuple(edge for edge in self.edges if edge.target_id == node_id)

    def edges_from(self, node_id: str) -> tuple[Edge, ...]:
        return tuple(edge for edge in self.edges if edge.source_id == node_id)

    def next_node_id(self, recipe_id: str) -> str:
        """First unused id of the form '<recipe_id>_<n>'."""
        number = 1
        while f"{recipe_id}_{number}" in self._nodes:
            number += 1
        return f"{recipe_id}_{number}"

    def machine_counts(self) -> dict[str, float]:
        return {node.id: node.machine_count for node in self.nodes}

    def resolved_recipes(self, environment: Environment) -> dict[str, ResolvedRecipe]:
        """Resolve every node against an environment, keyed by node id."""
        return {
            node.id: resolve(get_recipe_template(node.recipe_id), node.configuration, environment)
            for node in self.nodes
        }

    # ========== Node Mutations ==========

    def add_node(self, node: NodeInstance) -> NodeInstance:
        """Add a node to the graph.

        Precondition:
            node.id is not used by another node

        Postcondition:
            the node is part of the graph

        Args:
            node: node to add

        Returns:
            the added node

        Raises:
            ValueError: if the id is taken, the recipe is unknown, the machine
                count is invalid, or the configuration does not fit the machine
        """
        if node.id in self._nodes:
            raise ValueError(f"Node '{node.id}' already exists")
        template = get_recipe_template(node.recipe_id)
        _check_machine_count(node.machine_count)
        validate_settings(node.configuration, get_machine_kind(template.machine_id).behavior)
        self._nodes[node.id] = node
        return node

    def remove_node(self, node_id: str) -> tuple[Edge, ...]:
        """Remove a node together with every edge attached to it.

        Returns:
            the edges that were removed with the node

        Raises:
            ValueError: if there is no such node
        """
        self.get_node(node_id)
        attached = tuple(
            edge for edge in self.edges if node_id in (edge.source_id, edge.target_id)
        )
        for edge in attached:
            del self._edges[edge.id]
        del self._nodes[node_id]
        return attached

    def set_machine_count(self, node_id: str, machine_count: float) -> NodeInstance:
        node = replace(self.get_node(node_id), machine_count=_check_machine_count(machine_count))
        self._nodes[node_id] = node
        return node

    def set_configuration(self, node_id: str, configuration: Settings | None) -> NodeInstance:
        """Replace a node's configuration.

        Edges are left in place even if a port changes product; such edges
        show up in stale_edges().

        Raises:
            ValueError: if there is no such node or the configuration does not fit
        """
        node = self.get_node(node_id)
        validate_settings(configuration, node.behavior)
        node = replace(node, configuration=configuration)
        self._nodes[node_id] = node
        return node

    # ========== Edge Mutations ==========

    def connect(
        self,
        source_id: str,
        source_index: int,
        target_id: str,
        target_index: int,
        environment: Environment,
        edge_id: str | None = None,
    ) -> Edge:
        """Connect an output port to an input port carrying the same product.

        Precondition:
            both nodes exist in the graph

        Postcondition:
            the new edge is part of the graph
            the source port product equals the target port product under environment

        Args:
            source_id: node owning the output port
            source_index: index into the source's outputs
            target_id: node owning the input port
            target_index: index into the target's inputs
            environment: environment the ports are resolved against
            edge_id: id for the edge, derived from the ports when omitted

        Returns:
            the new Edge

        Raises:
            ValueError: if a node or port does not exist, a port is unbound,
                the products differ, or the edge id is taken
        """
        edge = Edge(
            edge_id or default_edge_id(source_id, source_index, target_id, target_index),
            source_id,
            source_index,
            target_id,
            target_index,
        )
        if edge.id in self._edges:
            raise ValueError(f"Edge '{edge.id}' already exists")
        source_product = self._port_product(self.get_node(source_id), OUTPUT, source_index, environment)
        target_product = self._port_product(self.get_node(target_id), INPUT, target_index, environment)
        if source_product != target_product:
            raise ValueError(
                f"Cannot connect {source_product} output of '{source_id}' "
                f"to {target_product} input of '{target_id}'"
            )
        self._edges[edge.id] = edge
        return edge

    def restore_edge(self, edge: Edge) -> Edge:
        """Add a previously persisted edge without re-checking port products.

        Raises:
            ValueError: if the edge id is taken or an endpoint node is missing
        """
        if edge.id in self._edges:
            raise ValueError(f"Edge '{edge.id}' already exists")
        self.get_node(edge.source_id)
        self.get_node(edge.target_id)
        self._edges[edge.id] = edge
        return edge

    def disconnect(self, edge_id: str) -> Edge:
        edge = self.get_edge(edge_id)
        del self._edges[edge_id]
        return edge

    @staticmethod
    def _port_product(node: NodeInstance, direction: str, index: int, environment: Environment) -> str:
        """Product bound to a port of a node.

        Raises:
            ValueError: if the index is out of range or the port is unbound
        """
        recipe = resolve(get_recipe_template(node.recipe_id), node.configuration, environment)
        ports = recipe.outputs if direction == OUTPUT else recipe.inputs
        if not 0 <= index < len(ports):
            raise ValueError(f"Node '{node.id}' has no {direction} port {index}")
        if ports[index].is_placeholder:
            raise ValueError(f"{direction.capitalize()} port {index} of '{node.id}' has no product selected")
        return ports[index].product_id

    # ========== Stale Edges ==========

    def edge_problem(self, edge: Edge, recipes: dict[str, ResolvedRecipe]) -> str | None:
        """Describe why an edge cannot carry flow, None if it can.

        Precondition:
            recipes holds the resolved recipe of every node

        Postcondition:
            returns a message for missing nodes, out-of-range ports,
            unbound ports, and product mismatches
        """
        source = recipes.get(edge.source_id)
        target = recipes.get(edge.target_id)
        if source is None or target is None:
            return "missing node"
        if not 0 <= edge.source_index < len(source.outputs):
            return f"no output port {edge.source_index}"
        if not 0 <= edge.target_index < len(target.inputs):
            return f"no input port {edge.target_index}"
        source_port = source.outputs[edge.source_index]
        target_port = target.inputs[edge.target_index]
        if source_port.is_placeholder or target_port.is_placeholder:
            return "unbound port"
        if source_port.product_id != target_port.product_id:
            return f"{source_port.product_id} feeds a {target_port.product_id} input"
        return None

    def stale_edges(self, recipes: dict[str, ResolvedRecipe]) -> tuple[str, ...]:
        return tuple(edge.id for edge in self.edges if self.edge_problem(edge, recipes) is not None)

    def prune_stale_edges(self, recipes: dict[str, ResolvedRecipe]) -> tuple[Edge, ...]:
        """Remove every edge that can no longer carry flow."""
        pruned = tuple(self._edges[edge_id] for edge_id in self.stale_edges(recipes))
        for edge in pruned:
            _LOGGER.info("Removing stale edge %s", edge.id)
            del self._edges[edge.id]
        return pruned

    def copy(self) -> "NetworkGraph":
        graph = NetworkGraph()
        graph._nodes = dict(self._nodes)
        graph._edges = dict(self._edges)
        return graph


# ========== Snapshots ==========


@dataclass
class Snapshot:
    """everything persisted for one network"""

    graph: NetworkGraph
    environment: Environment = field(default_factory=Environment)
    # settings kind -> last used configuration
    last_used: dict[str, Settings] = field(default_factory=dict)


def node_to_dict(node: NodeInstance) -> dict:
    return {
        "id": node.id,
        "recipe_id": node.recipe_id,
        "machine_count": node.machine_count,
        "configuration": settings_to_dict(node.configuration),
    }


def edge_to_dict(edge: Edge) -> dict:
    return {
        "id": edge.id,
        "source": edge.source_id,
        "source_index": edge.source_index,
        "target": edge.target_id,
        "target_index": edge.target_index,
    }


def snapshot_to_dict(snapshot: Snapshot) -> dict:
    return {
        "nodes": [node_to_dict(node) for node in snapshot.graph.nodes],
        "edges": [edge_to_dict(edge) for edge in snapshot.graph.edges],
        "environment": {
            "global_pollution": snapshot.environment.global_pollution,
            "paused": snapshot.environment.paused,
        },
        "last_used": {kind: settings_to_dict(settings) for kind, settings in sorted(snapshot.last_used.items())},
    }


def snapshot_from_dict(data: dict) -> Snapshot:
    """Rebuild a snapshot from its JSON form.

    Precondition:
        data has "nodes" and "edges" lists; "environment" and "last_used" are optional

    Postcondition:
        nodes pass the same validation as NetworkGraph.add_node
        edges are restored without re-checking port products, so edges made
        stale since the snapshot was written are kept and reported later

    Args:
        data: parsed snapshot document

    Returns:
        Snapshot

    Raises:
        ValueError: if a node, edge or configuration is malformed
    """
    graph = NetworkGraph()
    try:
        for raw in data["nodes"]:
            graph.add_node(NodeInstance(
                id=raw["id"],
                recipe_id=raw["recipe_id"],
                machine_count=raw.get("machine_count", 1),
                configuration=settings_from_dict(raw.get("configuration")),
            ))
        for raw in data["edges"]:
            edge = Edge(
                id=raw.get("id") or default_edge_id(
                    raw["source"], raw["source_index"], raw["target"], raw["target_index"]
                ),
                source_id=raw["source"],
                source_index=int(raw["source_index"]),
                target_id=raw["target"],
                target_index=int(raw["target_index"]),
            )
            graph.restore_edge(edge)
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed snapshot: {exc!r}") from exc

    raw_environment = data.get("environment") or {}
    global_pollution = raw_environment.get("global_pollution", 0.0)
    if not is_numeric(global_pollution) or not math.isfinite(global_pollution):
        raise ValueError(f"Global pollution must be a finite number, got {global_pollution!r}")
    environment = Environment(
        global_pollution=global_pollution,
        paused=bool(raw_environment.get("paused", False)),
    )
    last_used = {}
    for kind, raw in (data.get("last_used") or {}).items():
        if (settings := settings_from_dict(raw)) is not None:
            last_used[kind] = settings
    return Snapshot(graph, environment, last_used)


def load_snapshot(path: str) -> Snapshot:
    """Read a snapshot JSON file.

    Raises:
        ValueError: if the file is not valid JSON or not a valid snapshot
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path} is not valid JSON: {exc}") from exc
    return snapshot_from_dict(data)


def save_snapshot(path: str, snapshot: Snapshot) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot_to_dict(snapshot), f, indent=2)

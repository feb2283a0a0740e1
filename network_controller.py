"""Controller for production network evaluation - no GUI dependencies"""

import logging
import math
from dataclasses import dataclass, replace

from catalog import get_machine_kind, get_recipe_template, is_numeric
from engine import recompute
from network import INPUT, OUTPUT, Edge, NetworkGraph, NodeInstance, Snapshot, load_snapshot, save_snapshot
from parsing_utils import parse_count_lines
from pollution import Environment, TickClock, advance
from rate_solver import AllocationRule, ProductionSolution
from settings import REMEMBERED_KINDS, Settings, default_settings, settings_class_for
from stats import NetworkSummary, network_summary, sold_products_profit

_LOGGER = logging.getLogger("production_network")


@dataclass
class ValidationResult:
    """Result of network validation"""
    is_valid: bool
    warnings: list[str]
    errors: list[str]


@dataclass(frozen=True)
class PendingConnection:
    """a connection to make once a newly created node exists"""
    node_id: str
    other_id: str
    other_index: int
    # direction of the other node's port
    other_direction: str


class NetworkController:
    """Stateful controller - single source of truth for graph, environment and solution"""

    def __init__(
        self,
        snapshot: Snapshot | None = None,
        rule: AllocationRule = AllocationRule.FAIR_SHARE,
        clock: TickClock | None = None,
    ):
        """Initialize controller from an optional snapshot.

        Precondition:
            snapshot is None or a Snapshot

        Postcondition:
            graph, environment and last used configurations come from the snapshot
            an empty graph with zero pollution is used when snapshot is None
            the solution is computed for the initial state

        Args:
            snapshot: persisted network to start from
            rule: flow sharing rule
            clock: tick clock, a fresh TickClock when omitted
        """
        snapshot = snapshot or Snapshot(NetworkGraph())
        self._graph = snapshot.graph
        self._environment = snapshot.environment
        self._last_used: dict[str, Settings] = dict(snapshot.last_used)
        self._rule = rule
        self._clock = clock or TickClock()
        self._pending: list[PendingConnection] = []
        self._sold_products: dict[str, bool] = {}
        self._solution: ProductionSolution = recompute(self._graph, self._environment, self._rule)

    @classmethod
    def from_file(cls, path: str, rule: AllocationRule = AllocationRule.FAIR_SHARE) -> "NetworkController":
        return cls(load_snapshot(path), rule)

    # ========== State Getters ==========

    def get_graph(self) -> NetworkGraph:
        """Get a copy of the current graph; edits must go through the controller."""
        return self._graph.copy()

    def get_environment(self) -> Environment:
        return self._environment

    def get_solution(self) -> ProductionSolution:
        """Get the latest solution.

        Precondition:
            none

        Postcondition:
            returns the solution of the last completed recompute
            the returned object is immutable and never updated in place

        Returns:
            current ProductionSolution
        """
        return self._solution

    def get_rule(self) -> AllocationRule:
        return self._rule

    def get_last_used(self, kind: str) -> Settings | None:
        return self._last_used.get(kind)

    def get_pending_connections(self) -> tuple[PendingConnection, ...]:
        return tuple(self._pending)

    def get_snapshot(self) -> Snapshot:
        return Snapshot(self._graph.copy(), self._environment, dict(self._last_used))

    # ========== Derived State / Queries ==========

    def get_summary(self) -> NetworkSummary:
        return network_summary(self._solution)

    def get_profit(self) -> float:
        return sold_products_profit(self._solution, self._sold_products)

    def set_product_sold(self, product_id: str, sold: bool):
        self._sold_products[product_id] = sold

    def validate(self) -> ValidationResult:
        """Check the network for conditions the user should fix.

        Precondition:
            none

        Postcondition:
            stale edges are errors
            unresolved temperature edges and idle nodes are warnings

        Returns:
            ValidationResult with any warnings or errors
        """
        errors = [f"Edge {edge_id} no longer matches its ports" for edge_id in self._solution.stale_edges]
        warnings = [
            f"Edge {edge_id} is part of a temperature cycle" for edge_id in self._solution.unresolved_edges
        ]
        warnings.extend(
            f"Node {node.id} has no machines" for node in self._graph.nodes if node.machine_count == 0
        )
        return ValidationResult(is_valid=len(errors) == 0, warnings=warnings, errors=errors)

    # ========== Graph Actions ==========

    def add_node(
        self,
        recipe_id: str,
        machine_count: float = 1,
        configuration: Settings | None = None,
        node_id: str | None = None,
    ) -> NodeInstance:
        """Place a new node.

        Precondition:
            recipe_id is a catalog recipe

        Postcondition:
            parametric nodes without a configuration start from the last used
            configuration of their kind, or its defaults
            the solution is recomputed

        Args:
            recipe_id: recipe the node runs
            machine_count: number of machines
            configuration: explicit configuration
            node_id: explicit id, generated from the recipe id when omitted

        Returns:
            the new NodeInstance

        Raises:
            ValueError: if the node is invalid
        """
        behavior = get_machine_kind(get_recipe_template(recipe_id).machine_id).behavior
        if configuration is None and (settings_class := settings_class_for(behavior)) is not None:
            configuration = self._last_used.get(settings_class.kind) or default_settings(behavior)
        node = self._graph.add_node(NodeInstance(
            id=node_id or self._graph.next_node_id(recipe_id),
            recipe_id=recipe_id,
            machine_count=machine_count,
            configuration=configuration,
        ))
        self._recompute()
        return node

    def remove_node(self, node_id: str) -> tuple[Edge, ...]:
        removed = self._graph.remove_node(node_id)
        self._pending = [pending for pending in self._pending if node_id not in (pending.node_id, pending.other_id)]
        self._recompute()
        return removed

    def set_machine_count(self, node_id: str, machine_count: float) -> NodeInstance:
        node = self._graph.set_machine_count(node_id, machine_count)
        self._recompute()
        return node

    def set_configuration(self, node_id: str, configuration: Settings | None) -> NodeInstance:
        """Change a node's configuration and remember it for its kind.

        Raises:
            ValueError: if the configuration does not fit the node's machine
        """
        node = self._graph.set_configuration(node_id, configuration)
        if configuration is not None and configuration.kind in REMEMBERED_KINDS:
            self._last_used[configuration.kind] = configuration
        self._recompute()
        return node

    def connect(self, source_id: str, source_index: int, target_id: str, target_index: int) -> Edge:
        edge = self._graph.connect(source_id, source_index, target_id, target_index, self._environment)
        self._recompute()
        return edge

    def disconnect(self, edge_id: str) -> Edge:
        edge = self._graph.disconnect(edge_id)
        self._recompute()
        return edge

    def prune_stale_edges(self) -> tuple[Edge, ...]:
        pruned = self._graph.prune_stale_edges(self._graph.resolved_recipes(self._environment))
        if pruned:
            self._recompute()
        return pruned

    def set_rule(self, rule: AllocationRule):
        self._rule = rule
        self._recompute()

    def apply_counts_text(self, text: str) -> list[tuple[str, float]]:
        """Set machine counts from 'Node:Count' lines.

        Raises:
            ValueError: if a line is malformed or names an unknown node
        """
        counts = self.parse_counts_text(text)
        for node_id, _ in counts:
            self._graph.get_node(node_id)
        for node_id, count in counts:
            self._graph.set_machine_count(node_id, count)
        self._recompute()
        return counts

    # ========== Deferred Auto-Connect ==========

    def request_auto_connect(self, node_id: str, other_id: str, other_index: int, other_direction: str):
        """Queue a connection between a node being created and an existing port.

        Precondition:
            other_direction is INPUT (the new node should feed that input)
            or OUTPUT (that output should feed the new node)

        Postcondition:
            the request is kept until process_pending_connections runs
            while node_id exists
        """
        if other_direction not in (INPUT, OUTPUT):
            raise ValueError(f"Invalid port direction '{other_direction}'")
        self._pending.append(PendingConnection(node_id, other_id, other_index, other_direction))

    def process_pending_connections(self) -> list[Edge]:
        """Make queued connections whose new node now exists.

        Postcondition:
            each request links the first port of the new node carrying the
            other port's product; requests without a match are dropped
            requests for nodes that do not exist yet stay queued

        Returns:
            the edges created
        """
        created = []
        waiting = []
        recipes = self._graph.resolved_recipes(self._environment)
        for pending in self._pending:
            if not self._graph.has_node(pending.node_id) or not self._graph.has_node(pending.other_id):
                waiting.append(pending)
                continue
            if (edge := self._auto_connect(pending, recipes)) is not None:
                created.append(edge)
        self._pending = waiting
        if created:
            self._recompute()
        return created

    def _auto_connect(self, pending: PendingConnection, recipes) -> Edge | None:
        other = recipes[pending.other_id]
        new = recipes[pending.node_id]
        other_ports = other.inputs if pending.other_direction == INPUT else other.outputs
        if not 0 <= pending.other_index < len(other_ports):
            _LOGGER.info("Auto-connect target port %s of %s does not exist", pending.other_index, pending.other_id)
            return None
        product_id = other_ports[pending.other_index].product_id
        new_ports = new.outputs if pending.other_direction == INPUT else new.inputs
        for index, ingredient in enumerate(new_ports):
            if ingredient.product_id != product_id or ingredient.is_placeholder:
                continue
            try:
                if pending.other_direction == INPUT:
                    return self._graph.connect(
                        pending.node_id, index, pending.other_id, pending.other_index, self._environment
                    )
                return self._graph.connect(
                    pending.other_id, pending.other_index, pending.node_id, index, self._environment
                )
            except ValueError as exc:
                _LOGGER.info("Auto-connect skipped: %s", exc)
                return None
        _LOGGER.info("No %s port on %s to auto-connect", product_id, pending.node_id)
        return None

    # ========== Pollution Actions ==========

    def set_pollution(self, value: float):
        """Override global pollution with a user-entered value.

        Raises:
            ValueError: if value is not a finite number
        """
        if not is_numeric(value) or not math.isfinite(value):
            raise ValueError(f"Global pollution must be a finite number, got {value!r}")
        self._environment = replace(self._environment, global_pollution=value)
        self._recompute()

    def pause(self):
        _LOGGER.info("Pollution paused")
        self._environment = replace(self._environment, paused=True)

    def resume(self):
        _LOGGER.info("Pollution resumed")
        self._environment = replace(self._environment, paused=False)
        self._clock.reset()

    def begin_pollution_edit(self):
        self._environment = replace(self._environment, editing=True)

    def end_pollution_edit(self, value: float | None = None):
        """Finish a pollution edit, optionally committing a new value.

        Raises:
            ValueError: if value is not a finite number
        """
        self._environment = replace(self._environment, editing=False)
        if value is not None:
            self.set_pollution(value)
        self._clock.reset()

    def tick(self) -> bool:
        """Advance pollution by one tick.

        Precondition:
            none

        Postcondition:
            paused or editing environments are left unchanged
            a changed pollution value triggers a full recompute

        Returns:
            True if global pollution changed
        """
        advanced = advance(self._environment, self._solution)
        if advanced == self._environment:
            return False
        self._environment = advanced
        self._recompute()
        return True

    def poll_clock(self) -> int:
        """Run every tick that is due on the clock; returns the number of ticks run."""
        due = self._clock.due_ticks()
        for _ in range(due):
            self.tick()
        return due

    # ========== Persistence ==========

    def save(self, path: str):
        save_snapshot(path, self.get_snapshot())
        _LOGGER.info("Network saved to %s", path)

    # ========== Static Helper Methods ==========

    @staticmethod
    def parse_counts_text(text: str) -> list[tuple[str, float]]:
        """Parse 'Node:Count' lines; blank lines and # comments are skipped.

        Raises:
            ValueError: if any line is malformed
        """
        return parse_count_lines(text)

    # ========== Internals ==========

    def _recompute(self):
        _LOGGER.info("Recomputing network...")
        self._solution = recompute(self._graph, self._environment, self._rule)

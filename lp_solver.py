"""LP solver abstraction layer.

Builds and solves the max-flow linear program used by the MAX_FLOW
allocation rule. In Python, uses the mip package.
"""

from collections import defaultdict

from mip import CONTINUOUS, Model, OptimizationStatus as MipStatus, maximize, xsum


# Solver status constants - abstracted from mip
class SolverStatus:
    """Optimization status constants."""
    OPTIMAL = "OPTIMAL"
    INFEASIBLE = "INFEASIBLE"
    UNBOUNDED = "UNBOUNDED"
    FEASIBLE = "FEASIBLE"
    LOADED = "LOADED"
    ERROR = "ERROR"


_STATUS_MAP = {
    MipStatus.OPTIMAL: SolverStatus.OPTIMAL,
    MipStatus.INFEASIBLE: SolverStatus.INFEASIBLE,
    MipStatus.UNBOUNDED: SolverStatus.UNBOUNDED,
    MipStatus.FEASIBLE: SolverStatus.FEASIBLE,
    MipStatus.LOADED: SolverStatus.LOADED,
}


class SolverResult:
    """Result from LP solver.

    Attributes:
        status: optimization status (SolverStatus constant)
        variable_values: dict mapping variable name to solution value
    """
    def __init__(self, status: str, variable_values: dict[str, float]):
        self.status = status
        self.variable_values = variable_values

    def is_optimal(self) -> bool:
        """Check if optimization succeeded."""
        return self.status == SolverStatus.OPTIMAL


def _create_model() -> Model:
    model = Model()
    model.verbose = 0
    return model


def solve_max_flow(edge_ports: dict, rates: dict) -> SolverResult:
    """Maximize total delivered flow subject to port capacities.

    Precondition:
        edge_ports maps edge id -> (output port key, input port key)
        rates holds a non-negative rate for every port in edge_ports

    Postcondition:
        returns SolverResult keyed by edge id
        on success every output delivers at most its rate
        and every input receives at most its rate

    Args:
        edge_ports: ports joined by each edge
        rates: per-port capacities

    Returns:
        SolverResult containing status and per-edge flows
    """
    model = _create_model()
    edge_ids = sorted(edge_ports)
    flow_vars = {
        edge_id: model.add_var(name=f"f{number}", var_type=CONTINUOUS, lb=0)
        for number, edge_id in enumerate(edge_ids)
    }

    by_port = defaultdict(list)
    for edge_id in edge_ids:
        source, target = edge_ports[edge_id]
        by_port[source].append(flow_vars[edge_id])
        by_port[target].append(flow_vars[edge_id])
    for port in sorted(by_port):
        model += xsum(by_port[port]) <= rates[port]

    model.objective = maximize(xsum(flow_vars.values()))
    model.optimize()

    status = _STATUS_MAP.get(model.status, SolverStatus.ERROR)
    variable_values = {}
    for edge_id, var in flow_vars.items():
        if var.x is not None:
            variable_values[edge_id] = var.x
    return SolverResult(status, variable_values)


def max_flow_allocation(edge_ports: dict, rates: dict) -> dict[str, float] | None:
    """Per-edge flows of a maximum flow, None if the solver did not finish.

    Solver noise is clipped so flows stay within [0, port rate].
    """
    result = solve_max_flow(edge_ports, rates)
    if not result.is_optimal():
        return None
    flows = {}
    for edge_id in sorted(edge_ports):
        source, target = edge_ports[edge_id]
        value = result.variable_values.get(edge_id, 0.0)
        flows[edge_id] = min(max(value, 0.0), rates[source], rates[target])
    return flows

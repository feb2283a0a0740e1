"""Tests for LP solver abstraction."""

from pytest import approx

from lp_solver import SolverStatus, max_flow_allocation, solve_max_flow

PUMP = ("pump", "out", 0)
BOILER_A = ("a", "in", 0)
BOILER_B = ("b", "in", 0)


def test_single_edge_limited_by_consumer():
    """a single edge should carry the smaller of its two port rates"""
    result = solve_max_flow({"e1": (PUMP, BOILER_A)}, {PUMP: 60, BOILER_A: 20})
    assert result.is_optimal()
    assert result.status == SolverStatus.OPTIMAL
    assert result.variable_values["e1"] == approx(20)


def test_shared_output_capacity():
    """edges sharing an output should not exceed its rate"""
    edge_ports = {"e1": (PUMP, BOILER_A), "e2": (PUMP, BOILER_B)}
    flows = max_flow_allocation(edge_ports, {PUMP: 15, BOILER_A: 10, BOILER_B: 10})
    assert flows["e1"] + flows["e2"] == approx(15)
    assert 0 <= flows["e1"] <= 10
    assert 0 <= flows["e2"] <= 10


def test_all_demand_met():
    """with enough supply every input should be filled"""
    edge_ports = {"e1": (PUMP, BOILER_A), "e2": (PUMP, BOILER_B)}
    flows = max_flow_allocation(edge_ports, {PUMP: 60, BOILER_A: 10, BOILER_B: 20})
    assert flows["e1"] == approx(10)
    assert flows["e2"] == approx(20)


def test_zero_capacity():
    """zero rate ports should carry no flow"""
    flows = max_flow_allocation({"e1": (PUMP, BOILER_A)}, {PUMP: 0, BOILER_A: 10})
    assert flows["e1"] == approx(0)

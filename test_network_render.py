"""Tests for network_render module"""

from engine import recompute
from network import Edge, NetworkGraph, NodeInstance
from network_render import render_network
from pollution import Environment

ENV = Environment()


def _render(graph):
    return render_network(graph, recompute(graph, ENV)).source


def test_render_machines_and_edges():
    """nodes and edges should be labelled with names, counts, flows and temperatures"""
    graph = NetworkGraph()
    graph.add_node(NodeInstance("generator", "r_coal_generator", machine_count=2))
    graph.add_node(NodeInstance("drill", "r_industrial_drill_01"))
    graph.connect("generator", 0, "drill", 0, ENV)
    source = _render(graph)

    assert "rankdir=LR" in source
    assert "Coal Generator" in source
    assert "x2" in source
    assert "150C" in source
    assert "3.75/s" in source
    assert "color=steelblue" in source


def test_render_deficient_node_highlighted():
    """nodes short on an input should be filled salmon"""
    graph = NetworkGraph()
    graph.add_node(NodeInstance("smelter", "r_smelter_iron"))
    assert "fillcolor=salmon" in _render(graph)


def test_render_excess_sink():
    """leftover output should flow into an excess node"""
    graph = NetworkGraph()
    graph.add_node(NodeInstance("pump", "r_water_pump"))
    source = _render(graph)
    assert "Excess_p_water" in source
    assert "fillcolor=lightgreen" in source
    assert "60/s" in source


def test_render_stale_edge():
    """stale edges should be drawn dotted red"""
    graph = NetworkGraph()
    graph.add_node(NodeInstance("pump", "r_water_pump"))
    graph.add_node(NodeInstance("smelter", "r_smelter_iron"))
    graph.restore_edge(Edge("pump:0->smelter:0", "pump", 0, "smelter", 0))
    source = _render(graph)
    assert "stale" in source
    assert "color=red" in source
    assert "style=dotted" in source


def test_render_temperature_cycle_dashed():
    """edges in a temperature cycle should be dashed"""
    graph = NetworkGraph()
    graph.add_node(NodeInstance("a", "r_electric_water_heater"))
    graph.add_node(NodeInstance("b", "r_electric_water_heater"))
    graph.connect("a", 0, "b", 0, ENV)
    graph.connect("b", 0, "a", 0, ENV)
    assert "style=dashed" in _render(graph)

"""Tests for temperature module"""

from pytest import approx

from network import NetworkGraph, NodeInstance
from pollution import Environment
from settings import BoilerSettings, HeaterSettings
from temperature import apply_overlay, mix_temperatures, propagate

ENV = Environment()


def _graph(nodes, edges):
    graph = NetworkGraph()
    for node in nodes:
        graph.add_node(node)
    for source_id, source_index, target_id, target_index in edges:
        graph.connect(source_id, source_index, target_id, target_index, ENV)
    return graph


def _propagate(graph, flows=None):
    return propagate(graph, graph.resolved_recipes(ENV), flows)


def test_mix_temperatures_weighted():
    """known flows should weight the mixed temperature"""
    assert mix_temperatures([(100, 10), (20, 30)]) == approx(40)


def test_mix_temperatures_unweighted():
    """unknown or zero flows should give a simple mean"""
    assert mix_temperatures([(100, None), (20, 30)]) == approx(60)
    assert mix_temperatures([(100, 0), (20, 0)]) == approx(60)


def test_mix_temperatures_nothing_connected():
    """an input with no streams should have no temperature"""
    assert mix_temperatures([]) is None


def test_geothermal_chain():
    """each chained well should add 80C up to 220C and the fourth should pass through"""
    wells = [NodeInstance(f"well{n}", "r_geothermal_well") for n in range(1, 5)]
    graph = _graph(
        [NodeInstance("pump", "r_water_pump")] + wells,
        [("pump", 0, "well1", 0), ("well1", 0, "well2", 0), ("well2", 0, "well3", 0), ("well3", 0, "well4", 0)],
    )
    overlay = _propagate(graph)

    assert overlay.edge_temperatures["pump:0->well1:0"] == 18
    assert overlay.edge_temperatures["well1:0->well2:0"] == 98
    assert overlay.edge_temperatures["well2:0->well3:0"] == 178
    assert overlay.edge_temperatures["well3:0->well4:0"] == 220
    assert overlay.output_temperatures[("well4", 0)] == 220
    assert overlay.geothermal_chains == {"well1": 0, "well2": 1, "well3": 2, "well4": 3}


def test_unconnected_well_heats_default_water():
    """a well with nothing connected should heat 18C water"""
    overlay = _propagate(_graph([NodeInstance("well", "r_geothermal_well")], []))
    assert overlay.input_temperatures[("well", 0)] is None
    assert overlay.output_temperatures[("well", 0)] == 98


def test_heater_setting():
    """the electric heater should output its configured temperature"""
    graph = _graph([NodeInstance("heater", "r_electric_water_heater", configuration=HeaterSettings(320))], [])
    assert _propagate(graph).output_temperatures[("heater", 0)] == 320


def test_boiler_with_hot_water():
    """a boiler fed hot water should make steam at that temperature"""
    graph = _graph(
        [
            NodeInstance("heater", "r_electric_water_heater", configuration=HeaterSettings(220)),
            NodeInstance("boiler", "r_boiler", configuration=BoilerSettings(heat_loss=20)),
        ],
        [("heater", 0, "boiler", 1)],
    )
    overlay = _propagate(graph)
    assert overlay.output_temperatures[("boiler", 1)] == 200
    assert overlay.output_temperatures[("boiler", 0)] == approx(170)
    assert ("boiler", "out", 1) not in overlay.quantity_overrides


def test_boiler_without_hot_water_makes_no_steam():
    """steam below 100C should have its output quantity zeroed"""
    graph = _graph([NodeInstance("boiler", "r_boiler")], [])
    overlay = _propagate(graph)
    assert overlay.output_temperatures[("boiler", 1)] == 18
    assert overlay.quantity_overrides[("boiler", "out", 1)] == 0


def test_industrial_drill_cycle_from_steam():
    """a drill fed 150C steam should run at 800 / 150 seconds"""
    graph = _graph(
        [NodeInstance("generator", "r_coal_generator"), NodeInstance("drill", "r_industrial_drill_01")],
        [("generator", 0, "drill", 0)],
    )
    recipes = graph.resolved_recipes(ENV)
    overlay = propagate(graph, recipes)
    assert overlay.cycle_times["drill"] == approx(800 / 150)

    final = apply_overlay(recipes, overlay)
    assert final["drill"].cycle_time == approx(800 / 150)
    assert final["drill"].inputs[0].temperature == 150
    assert final["generator"].outputs[0].temperature == 150


def test_unconnected_drill_keeps_base_cycle():
    """a temperature-dependent machine without steam should keep its base cycle"""
    graph = _graph([NodeInstance("drill", "r_industrial_drill_01")], [])
    recipes = graph.resolved_recipes(ENV)
    overlay = propagate(graph, recipes)
    assert "drill" not in overlay.cycle_times
    assert apply_overlay(recipes, overlay)["drill"].cycle_time == 8


def test_water_treatment_steam_demand():
    """water treatment should consume 90 steam per second of its cycle"""
    graph = _graph(
        [NodeInstance("generator", "r_coal_generator"), NodeInstance("plant", "r_water_treatment_01")],
        [("generator", 0, "plant", 1)],
    )
    overlay = _propagate(graph)
    cycle_time = 64 / (0.176 * 150)
    assert overlay.cycle_times["plant"] == approx(cycle_time)
    assert overlay.quantity_overrides[("plant", "in", 1)] == approx(90 * cycle_time)


def test_flow_weighted_mixing():
    """streams into one input should mix by delivered flow"""
    graph = _graph(
        [
            NodeInstance("hot", "r_electric_water_heater", configuration=HeaterSettings(320)),
            NodeInstance("warm", "r_electric_water_heater", configuration=HeaterSettings(120)),
            NodeInstance("well", "r_geothermal_well"),
        ],
        [("hot", 0, "well", 0), ("warm", 0, "well", 0)],
    )
    overlay = _propagate(graph, {"hot:0->well:0": 1, "warm:0->well:0": 3})
    assert overlay.input_temperatures[("well", 0)] == approx(170)


def test_temperature_cycle_is_flagged():
    """an edge closing a cycle should carry 18C and be reported"""
    graph = _graph(
        [NodeInstance("a", "r_electric_water_heater"), NodeInstance("b", "r_electric_water_heater")],
        [("a", 0, "b", 0), ("b", 0, "a", 0)],
    )
    overlay = _propagate(graph)
    assert overlay.unresolved_edges == ("a:0->b:0",)
    assert overlay.edge_temperatures["a:0->b:0"] == 18
    assert overlay.edge_temperatures["b:0->a:0"] == 120


def test_propagation_is_deterministic():
    """propagating twice should give identical overlays"""
    graph = _graph(
        [NodeInstance("pump", "r_water_pump"), NodeInstance("well", "r_geothermal_well")],
        [("pump", 0, "well", 0)],
    )
    assert _propagate(graph) == _propagate(graph)

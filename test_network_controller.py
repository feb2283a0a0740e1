"""Tests for network controller"""

import math

from pytest import approx, raises

from network import INPUT, OUTPUT
from network_controller import NetworkController
from pollution import TickClock
from rate_solver import AllocationRule
from settings import ChemicalPlantSettings, DrillSettings, TreeFarmSettings


class FakeTime:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _polluting_controller(clock=None):
    controller = NetworkController(clock=clock)
    controller.add_node("r_smelter_iron", machine_count=72, node_id="smelter")
    return controller


def test_controller_init():
    """an empty controller should have an empty balanced solution"""
    controller = NetworkController()
    assert controller.get_graph().nodes == ()
    assert controller.get_solution().is_balanced()
    assert controller.get_environment().global_pollution == 0
    assert controller.get_rule() is AllocationRule.FAIR_SHARE


def test_add_node_generates_id():
    """add_node should number nodes and recompute"""
    controller = NetworkController()
    node = controller.add_node("r_water_pump")
    assert node.id == "r_water_pump_1"
    assert controller.get_solution().excess_for("p_water") == approx(60)


def test_add_node_uses_defaults():
    """parametric nodes should start from default settings"""
    controller = NetworkController()
    node = controller.add_node("r_tree_farm")
    assert node.configuration == TreeFarmSettings()
    assert controller.add_node("r_water_pump").configuration is None


def test_last_used_configuration():
    """new drills should start from the last drill configuration"""
    controller = NetworkController()
    first = controller.add_node("r_mineshaft_drill")
    settings = DrillSettings("iron", "water", False, 900)
    controller.set_configuration(first.id, settings)
    assert controller.get_last_used("drill") == settings

    second = controller.add_node("r_mineshaft_drill")
    assert second.configuration == settings


def test_unremembered_kind():
    """chemical plant settings should not be remembered"""
    controller = NetworkController()
    node = controller.add_node("r_chemical_plant_01")
    controller.set_configuration(node.id, ChemicalPlantSettings(speed=110))
    assert controller.get_last_used("chemical_plant") is None


def test_invalid_configuration():
    """a configuration for another machine should raise ValueError"""
    controller = NetworkController()
    node = controller.add_node("r_water_pump")
    with raises(ValueError, match="cannot configure"):
        controller.set_configuration(node.id, DrillSettings())


def test_connect_and_disconnect():
    """connect should deliver flow and disconnect should remove it"""
    controller = NetworkController()
    controller.add_node("r_water_pump", node_id="pump")
    controller.add_node("r_coal_generator", node_id="generator")
    edge = controller.connect("pump", 0, "generator", 1)
    assert controller.get_solution().edge_flows[edge.id] == approx(10)

    controller.disconnect(edge.id)
    assert controller.get_solution().deficiency_for("p_water") == approx(10)


def test_get_graph_is_a_copy():
    """edits to the returned graph should not reach the controller"""
    controller = NetworkController()
    controller.add_node("r_water_pump", node_id="pump")
    controller.get_graph().remove_node("pump")
    assert controller.get_graph().has_node("pump")


def test_validate_reports_stale_and_idle():
    """stale edges should be errors and idle nodes warnings"""
    controller = NetworkController()
    controller.add_node("r_mineshaft_drill", node_id="drill", configuration=DrillSettings("iron", "water", False, 900))
    controller.add_node("r_smelter_iron", node_id="smelter", machine_count=0)
    edge = controller.connect("drill", 2, "smelter", 0)
    controller.set_configuration("drill", DrillSettings("iron", "water", False, 300))

    result = controller.validate()
    assert not result.is_valid
    assert result.errors == [f"Edge {edge.id} no longer matches its ports"]
    assert result.warnings == ["Node smelter has no machines"]

    assert controller.prune_stale_edges() == (edge,)
    assert controller.validate().errors == []


def test_auto_connect_waits_for_node():
    """a request for a node not yet created should stay queued"""
    controller = NetworkController()
    controller.add_node("r_water_pump", node_id="pump")
    controller.request_auto_connect("r_boiler_1", "pump", 0, OUTPUT)
    assert controller.process_pending_connections() == []
    assert len(controller.get_pending_connections()) == 1

    controller.add_node("r_boiler")
    edges = controller.process_pending_connections()
    assert [edge.id for edge in edges] == ["pump:0->r_boiler_1:0"]
    assert controller.get_pending_connections() == ()


def test_auto_connect_feeds_input():
    """a new node should feed the input it was requested for"""
    controller = NetworkController()
    controller.add_node("r_boiler", node_id="boiler")
    controller.add_node("r_water_pump", node_id="pump")
    controller.request_auto_connect("pump", "boiler", 1, INPUT)
    edges = controller.process_pending_connections()
    assert [edge.id for edge in edges] == ["pump:0->boiler:1"]


def test_auto_connect_without_match():
    """a request with no matching port should be dropped"""
    controller = NetworkController()
    controller.add_node("r_water_pump", node_id="pump")
    controller.add_node("r_smelter_iron", node_id="smelter")
    controller.request_auto_connect("smelter", "pump", 0, OUTPUT)
    assert controller.process_pending_connections() == []
    assert controller.get_pending_connections() == ()
    assert controller.get_graph().edges == ()


def test_auto_connect_bad_direction():
    """an unknown port direction should raise ValueError"""
    with raises(ValueError, match="Invalid port direction"):
        NetworkController().request_auto_connect("a", "b", 0, "sideways")


def test_remove_node_drops_pending():
    """removing a node should drop requests involving it"""
    controller = NetworkController()
    controller.add_node("r_water_pump", node_id="pump")
    controller.request_auto_connect("boiler", "pump", 0, OUTPUT)
    controller.remove_node("pump")
    assert controller.get_pending_connections() == ()


def test_tick_and_pause():
    """ticks should advance pollution unless paused"""
    controller = _polluting_controller()
    assert controller.tick()
    assert controller.get_environment().global_pollution == 0.01

    controller.pause()
    assert not controller.tick()
    assert controller.get_environment().global_pollution == 0.01

    controller.resume()
    assert controller.tick()
    assert controller.get_environment().global_pollution == 0.02


def test_pollution_edit():
    """ticks should stop while pollution is being edited"""
    controller = _polluting_controller()
    controller.begin_pollution_edit()
    assert not controller.tick()
    controller.end_pollution_edit(5)
    assert controller.get_environment().global_pollution == 5
    assert controller.tick()


def test_set_pollution_rejects_non_finite():
    """non-finite pollution values should raise ValueError"""
    controller = NetworkController()
    with raises(ValueError, match="finite"):
        controller.set_pollution(math.nan)
    with raises(ValueError, match="finite"):
        controller.set_pollution("high")


def test_poll_clock():
    """poll_clock should run every tick that is due"""
    fake_time = FakeTime()
    controller = _polluting_controller(TickClock(now=fake_time))
    fake_time.now = 3.5
    assert controller.poll_clock() == 3
    assert controller.get_environment().global_pollution == approx(0.03)
    assert controller.poll_clock() == 0


def test_apply_counts_text():
    """count text should update machine counts"""
    controller = NetworkController()
    controller.add_node("r_water_pump", node_id="pump")
    assert controller.apply_counts_text("# pumps\npump:2\n") == [("pump", 2.0)]
    assert controller.get_solution().excess_for("p_water") == approx(120)


def test_apply_counts_text_unknown_node():
    """unknown nodes should raise without changing any count"""
    controller = NetworkController()
    controller.add_node("r_water_pump", node_id="pump")
    with raises(ValueError, match="Unknown node"):
        controller.apply_counts_text("pump:2\nmissing:1")
    assert controller.get_graph().get_node("pump").machine_count == 1


def test_parse_counts_text_with_comments():
    """parse_counts_text should skip comments and empty lines"""
    text = """
# pumps
pump:2

boiler:1.5
"""
    assert NetworkController.parse_counts_text(text) == [("pump", 2.0), ("boiler", 1.5)]


def test_parse_counts_text_invalid():
    """parse_counts_text should raise on invalid format"""
    with raises(ValueError, match="Invalid format"):
        NetworkController.parse_counts_text("pump 2")


def test_profit_and_sold_products():
    """unsold products should not count toward profit"""
    controller = NetworkController()
    controller.add_node("r_smelter_iron")
    assert controller.get_profit() == approx(5)
    controller.set_product_sold("p_iron_ingot", False)
    assert controller.get_profit() == 0


def test_set_rule():
    """the allocation rule should be switchable"""
    controller = NetworkController()
    controller.set_rule(AllocationRule.MAX_FLOW)
    assert controller.get_rule() is AllocationRule.MAX_FLOW


def test_save_and_load(tmp_path):
    """a saved controller should reload with the same graph and pollution"""
    path = str(tmp_path / "network.json")
    controller = NetworkController()
    controller.add_node("r_water_pump", node_id="pump")
    controller.add_node("r_boiler", node_id="boiler")
    controller.connect("pump", 0, "boiler", 1)
    controller.set_pollution(4.5)
    controller.save(path)

    loaded = NetworkController.from_file(path)
    assert loaded.get_graph().edges == controller.get_graph().edges
    assert loaded.get_environment().global_pollution == 4.5
    assert loaded.get_solution() == controller.get_solution()

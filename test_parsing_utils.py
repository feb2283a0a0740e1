"""Tests for parsing_utils module"""

from pytest import raises

from parsing_utils import parse_count_lines, parse_node_count


def test_parse_node_count_basic():
    """parse_node_count should parse basic Node:Count strings"""
    assert parse_node_count("r_water_pump_1:2") == ("r_water_pump_1", 2.0)


def test_parse_node_count_with_spaces():
    """parse_node_count should handle extra whitespace"""
    assert parse_node_count("  r_boiler_1 : 2.5  ") == ("r_boiler_1", 2.5)


def test_parse_node_count_last_colon():
    """node ids containing colons should split on the last colon"""
    assert parse_node_count("area:1:r_boiler_1:3") == ("area:1:r_boiler_1", 3.0)


def test_parse_node_count_zero():
    """a zero count should be accepted"""
    assert parse_node_count("r_boiler_1:0") == ("r_boiler_1", 0.0)


def test_parse_node_count_no_colon():
    """parse_node_count should raise error without colon"""
    with raises(ValueError, match="Invalid format"):
        parse_node_count("r_boiler_1 3")


def test_parse_node_count_empty_id():
    """parse_node_count should raise error for an empty node id"""
    with raises(ValueError, match="Node id is empty"):
        parse_node_count(":3")


def test_parse_node_count_not_a_number():
    """parse_node_count should raise error for non-numeric counts"""
    with raises(ValueError, match="Must be a number"):
        parse_node_count("r_boiler_1:many")


def test_parse_node_count_negative():
    """parse_node_count should raise error for negative counts"""
    with raises(ValueError, match="Must be non-negative"):
        parse_node_count("r_boiler_1:-1")


def test_parse_node_count_not_finite():
    """infinite and nan counts should be rejected"""
    with raises(ValueError, match="Must be finite"):
        parse_node_count("r_boiler_1:inf")
    with raises(ValueError, match="Must be finite"):
        parse_node_count("r_boiler_1:nan")


def test_parse_count_lines_skips_comments():
    """blank lines and comments should be ignored"""
    text = "# boilers\n\nr_boiler_1:2\n  # pumps\nr_water_pump_1 : 1.5\n"
    assert parse_count_lines(text) == [("r_boiler_1", 2.0), ("r_water_pump_1", 1.5)]


def test_parse_count_lines_names_bad_line():
    """errors should report the line they came from"""
    with raises(ValueError, match="Line 3: Invalid machine count"):
        parse_count_lines("r_boiler_1:2\n# note\nr_water_pump_1:x")


def test_parse_count_lines_empty():
    """empty text should give no overrides"""
    assert parse_count_lines("") == []

"""Tests for node flow state and air loop topology."""
import pytest
from hvacsim.core.nodes import AirLoopFlowPath, NodeFlowState, NodeRegistry


def test_with_design_limits_sets_available_limits():
    node = NodeFlowState.with_design_limits(max_flow=0.8, min_flow=0.1)

    assert node.limits == (0.1, 0.8)


def test_restore_design_limits():
    # Arrange
    node = NodeFlowState.with_design_limits(max_flow=0.8, min_flow=0.1)
    node.mass_flow_rate_max_avail = 0.3
    node.mass_flow_rate_min_avail = 0.2

    # Act
    node.restore_design_limits()

    # Assert
    assert node.limits == (0.1, 0.8)


def test_invalid_design_limits_raise_error():
    with pytest.raises(ValueError, match="must not be below the minimum"):
        NodeFlowState(mass_flow_rate_max=0.1, mass_flow_rate_min=0.2)


def test_air_loop_with_unknown_node_raises_error():
    nodes = NodeRegistry()
    nodes.add_node(1, NodeFlowState.with_design_limits(max_flow=1.0))

    with pytest.raises(ValueError, match="unknown node 2"):
        nodes.add_air_loop(AirLoopFlowPath(air_sys_num=1, name="AHU", supply_node=1, terminal_nodes=(2,)))


def test_air_loop_without_terminals_raises_error():
    with pytest.raises(ValueError, match="at least one terminal"):
        AirLoopFlowPath(air_sys_num=1, name="AHU", supply_node=1, terminal_nodes=())


def test_duplicate_node_raises_error():
    nodes = NodeRegistry()
    nodes.add_node(1, NodeFlowState())

    with pytest.raises(ValueError, match="already registered"):
        nodes.add_node(1, NodeFlowState())


def test_reset_flows(single_zone_nodes):
    # Arrange
    single_zone_nodes[2].mass_flow_rate = 0.4
    single_zone_nodes[2].mass_flow_rate_max_avail = 0.2

    # Act
    single_zone_nodes.reset_flows()

    # Assert
    assert single_zone_nodes[2].mass_flow_rate == 0.0
    assert single_zone_nodes[2].limits == (0.1, 1.0)
    assert [node_id for node_id, _ in single_zone_nodes.terminal_nodes()] == [2]

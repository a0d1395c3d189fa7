"""Tests for air loop flow limit resolution."""
import pytest
from hvacsim.core.errors import FlowResolutionError
from hvacsim.core.nodes import AirLoopFlowPath, NodeFlowState, NodeRegistry
from hvacsim.core.state import SimulationState, Subsystem
from hvacsim.manager.flow_limits import FlowLimitResolver


def limits(nodes, *node_ids):
    return [nodes[node_id].limits for node_id in node_ids]


def test_reset_terminal_flow_limits_is_idempotent(two_zone_nodes, output):
    # Arrange
    resolver = FlowLimitResolver(two_zone_nodes, output)
    two_zone_nodes[11].mass_flow_rate_max_avail = 0.3
    two_zone_nodes[12].mass_flow_rate_min_avail = 0.25

    # Act
    resolver.reset_terminal_flow_limits()
    first = limits(two_zone_nodes, 10, 11, 12)
    resolver.reset_terminal_flow_limits()
    second = limits(two_zone_nodes, 10, 11, 12)

    # Assert
    assert first == second
    assert first[1:] == [(0.1, 0.8), (0.1, 0.8)]


def test_top_down_clamp_shares_supply_by_request(two_zone_nodes, output):
    # Arrange
    resolver = FlowLimitResolver(two_zone_nodes, output)
    two_zone_nodes[11].mass_flow_rate = 0.7
    two_zone_nodes[12].mass_flow_rate = 0.5
    state = SimulationState()

    # Act
    changed = resolver.resolve_air_loop_flow_limits(state)

    # Assert
    assert changed is True
    assert two_zone_nodes[11].mass_flow_rate_max_avail == pytest.approx(0.58)
    assert two_zone_nodes[12].mass_flow_rate_max_avail == pytest.approx(0.42)
    assert two_zone_nodes[11].mass_flow_rate == pytest.approx(0.58)
    assert two_zone_nodes[12].mass_flow_rate == pytest.approx(0.42)
    assert two_zone_nodes[10].mass_flow_rate_min_avail == pytest.approx(0.2)
    assert resolver.flow_resolution_needed is False
    assert state.graph.dirty() == (Subsystem.AIR_LOOPS, Subsystem.ZONE_EQUIPMENT)


def test_bottom_up_clamp_limits_supply_to_terminal_capacity(output):
    # Arrange
    nodes = NodeRegistry()
    nodes.add_node(1, NodeFlowState.with_design_limits(max_flow=2.0))
    nodes.add_node(2, NodeFlowState.with_design_limits(max_flow=0.3))
    nodes.add_node(3, NodeFlowState.with_design_limits(max_flow=0.5))
    nodes.add_air_loop(AirLoopFlowPath(air_sys_num=1, name="AHU", supply_node=1, terminal_nodes=(2, 3)))
    resolver = FlowLimitResolver(nodes, output)

    # Act
    resolver.resolve_air_loop_flow_limits(SimulationState())

    # Assert
    assert nodes[1].mass_flow_rate_max_avail == pytest.approx(0.8)
    assert nodes[1].mass_flow_rate_max == pytest.approx(2.0)


def test_consistent_limits_do_not_mark_subsystems(output):
    # Arrange
    nodes = NodeRegistry()
    nodes.add_node(1, NodeFlowState.with_design_limits(max_flow=1.0))
    nodes.add_node(2, NodeFlowState.with_design_limits(max_flow=0.5))
    nodes.add_node(3, NodeFlowState.with_design_limits(max_flow=0.5))
    nodes.add_air_loop(AirLoopFlowPath(air_sys_num=1, name="AHU", supply_node=1, terminal_nodes=(2, 3)))
    nodes[2].mass_flow_rate = 0.2
    nodes[3].mass_flow_rate = 0.3
    resolver = FlowLimitResolver(nodes, output)
    state = SimulationState()

    # Act
    changed = resolver.resolve_air_loop_flow_limits(state)

    # Assert
    assert changed is False
    assert state.settled


def test_repeated_identical_clamp_is_not_a_change(two_zone_nodes, output):
    # Arrange
    resolver = FlowLimitResolver(two_zone_nodes, output)
    state = SimulationState()
    two_zone_nodes[11].mass_flow_rate = 0.7
    two_zone_nodes[12].mass_flow_rate = 0.5
    resolver.resolve_air_loop_flow_limits(state)
    state.graph.clear_all()

    # Act: next sweep, the terminals request the same flows again
    resolver.reset_terminal_flow_limits()
    two_zone_nodes[11].mass_flow_rate = 0.7
    two_zone_nodes[12].mass_flow_rate = 0.5
    changed = resolver.resolve_air_loop_flow_limits(state)

    # Assert
    assert changed is False
    assert state.settled


def test_released_clamp_is_a_change_once(two_zone_nodes, output):
    # Arrange
    resolver = FlowLimitResolver(two_zone_nodes, output)
    state = SimulationState()
    two_zone_nodes[11].mass_flow_rate = 0.7
    two_zone_nodes[12].mass_flow_rate = 0.5
    resolver.resolve_air_loop_flow_limits(state)

    # Act: the clamped requests stay put, so the limits relax back to design
    resolver.reset_terminal_flow_limits()
    second = resolver.resolve_air_loop_flow_limits(state)
    resolver.reset_terminal_flow_limits()
    third = resolver.resolve_air_loop_flow_limits(state)

    # Assert
    assert second is True
    assert third is False


def test_begin_timestep_forgets_previous_limits(two_zone_nodes, output):
    # Arrange
    resolver = FlowLimitResolver(two_zone_nodes, output)
    two_zone_nodes[11].mass_flow_rate = 0.7
    two_zone_nodes[12].mass_flow_rate = 0.5
    resolver.resolve_air_loop_flow_limits(SimulationState())
    resolver.reset_terminal_flow_limits()

    # Act
    resolver.begin_timestep()
    changed = resolver.resolve_air_loop_flow_limits(SimulationState())

    # Assert
    assert changed is False


def test_switched_off_air_loop_is_reconciled_not_fatal(output):
    # Arrange
    nodes = NodeRegistry()
    nodes.add_node(1, NodeFlowState.with_design_limits(max_flow=1.0))
    nodes.add_node(2, NodeFlowState.with_design_limits(max_flow=0.8, min_flow=0.1))
    nodes.add_air_loop(AirLoopFlowPath(air_sys_num=1, name="AHU-1", supply_node=1, terminal_nodes=(2,)))
    nodes[1].mass_flow_rate_max_avail = 0.0
    nodes[2].mass_flow_rate = 0.1
    resolver = FlowLimitResolver(nodes, output)
    state = SimulationState()

    # Act
    changed = resolver.resolve_air_loop_flow_limits(state)

    # Assert
    assert changed is True
    assert output.fatal == []
    assert nodes[2].limits == (0.0, 0.0)
    assert nodes[2].mass_flow_rate == 0.0
    assert nodes[1].limits == (0.0, 0.0)
    assert resolver.flow_resolution_needed is False


def test_supply_shortfall_below_hard_minima_splits_by_minimum(output):
    # Arrange
    nodes = NodeRegistry()
    nodes.add_node(1, NodeFlowState.with_design_limits(max_flow=1.0))
    nodes.add_node(2, NodeFlowState.with_design_limits(max_flow=0.8, min_flow=0.3))
    nodes.add_node(3, NodeFlowState.with_design_limits(max_flow=0.8, min_flow=0.1))
    nodes.add_air_loop(AirLoopFlowPath(air_sys_num=1, name="AHU-1", supply_node=1, terminal_nodes=(2, 3)))
    nodes[1].mass_flow_rate_max_avail = 0.2
    resolver = FlowLimitResolver(nodes, output)

    # Act
    resolver.resolve_air_loop_flow_limits(SimulationState())

    # Assert
    assert nodes[2].mass_flow_rate_max_avail == pytest.approx(0.15)
    assert nodes[3].mass_flow_rate_max_avail == pytest.approx(0.05)
    assert nodes[1].mass_flow_rate_min_avail <= nodes[1].mass_flow_rate_max_avail
    assert output.fatal == []


def test_minimum_flows_above_system_maximum_are_fatal(output):
    # Arrange
    nodes = NodeRegistry()
    nodes.add_node(1, NodeFlowState.with_design_limits(max_flow=1.0))
    nodes.add_node(2, NodeFlowState.with_design_limits(max_flow=0.8, min_flow=0.6))
    nodes.add_node(3, NodeFlowState.with_design_limits(max_flow=0.8, min_flow=0.6))
    nodes.add_air_loop(AirLoopFlowPath(air_sys_num=7, name="AHU-7", supply_node=1, terminal_nodes=(2, 3)))
    nodes[2].mass_flow_rate = 0.6
    nodes[3].mass_flow_rate = 0.6
    resolver = FlowLimitResolver(nodes, output, max_passes=3)

    # Act & Assert
    with pytest.raises(FlowResolutionError, match="AHU-7") as exc_info:
        resolver.resolve_air_loop_flow_limits(SimulationState())
    assert exc_info.value.air_sys_num == 7
    assert len(output.fatal) == 1
    assert "exceeds the system maximum" in output.fatal[0]


def test_invalid_max_passes_raises_error(two_zone_nodes, output):
    with pytest.raises(ValueError, match="max_passes"):
        FlowLimitResolver(two_zone_nodes, output, max_passes=0)

"""Shared fakes for the convergence controller tests."""
from typing import Callable, Iterable, List, Optional
import pytest

from hvacsim.core.channels import ConvErrorCallType
from hvacsim.core.config import HVACManagerConfig
from hvacsim.core.interfaces import OutputReporter, ResidualSource, SubsystemSimulator
from hvacsim.core.nodes import AirLoopFlowPath, NodeFlowState, NodeRegistry
from hvacsim.core.residuals import ResidualSample
from hvacsim.core.state import SimulationState, Subsystem


class RecordingSimulator(SubsystemSimulator):
    def __init__(self, subsystem: Subsystem, log: List[Subsystem], on_simulate: Optional[Callable[[SimulationState, int], None]] = None):
        self.subsystem = subsystem
        self.log = log
        self.on_simulate = on_simulate
        self.calls = 0
        self.first_iteration_flags: List[bool] = []

    def simulate(self, state: SimulationState) -> None:
        self.calls += 1
        self.log.append(self.subsystem)
        self.first_iteration_flags.append(state.first_hvac_iteration)
        if self.on_simulate is not None:
            self.on_simulate(state, self.calls)


class CollectingOutputReporter(OutputReporter):
    def __init__(self):
        self.severe: List[str] = []
        self.fatal: List[str] = []

    def log_severe(self, text: str) -> None:
        self.severe.append(text)

    def log_fatal(self, text: str) -> None:
        self.fatal.append(text)


class ScriptedResidualSource(ResidualSource):
    def __init__(self, script: Callable[[int], Iterable[ResidualSample]]):
        self.script = script
        self.calls = 0

    def residual_samples(self) -> Iterable[ResidualSample]:
        self.calls += 1
        return list(self.script(self.calls))


def oscillating_mass_flow(air_sys_num: int = 1, amplitude: float = 0.5):
    """Residual that flips sign every sweep and never enters the tolerance band."""
    def script(call: int):
        value = amplitude if call % 2 else -amplitude
        return [ResidualSample(air_sys_num=air_sys_num, channel=ConvErrorCallType.MASS_FLOW, demand_to_supply=[value])]
    return script


def steady_residuals(air_sys_num: int = 1):
    def script(call: int):
        return [
            ResidualSample(air_sys_num=air_sys_num, channel=ConvErrorCallType.MASS_FLOW, demand_to_supply=[0.0]),
            ResidualSample(air_sys_num=air_sys_num, channel=ConvErrorCallType.TEMPERATURE, demand_to_supply=[0.001]),
        ]
    return script


@pytest.fixture
def call_log() -> List[Subsystem]:
    return []


@pytest.fixture
def simulators(call_log):
    return {subsystem: RecordingSimulator(subsystem, call_log) for subsystem in Subsystem}


@pytest.fixture
def output() -> CollectingOutputReporter:
    return CollectingOutputReporter()


@pytest.fixture
def single_zone_nodes() -> NodeRegistry:
    """One air loop (supply node 1) serving one terminal (node 2), with return node 3 and outdoor air node 4."""
    nodes = NodeRegistry()
    nodes.add_node(1, NodeFlowState.with_design_limits(max_flow=1.0))
    nodes.add_node(2, NodeFlowState.with_design_limits(max_flow=1.0, min_flow=0.1))
    nodes.add_node(3, NodeFlowState.with_design_limits(max_flow=1.0))
    nodes.add_node(4, NodeFlowState.with_design_limits(max_flow=0.5))
    nodes.add_air_loop(AirLoopFlowPath(air_sys_num=1, name="AHU-1", supply_node=1, terminal_nodes=(2,), return_node=3, outdoor_air_node=4))
    return nodes


@pytest.fixture
def two_zone_nodes() -> NodeRegistry:
    """One air loop (supply node 10) serving terminals 11 and 12."""
    nodes = NodeRegistry()
    nodes.add_node(10, NodeFlowState.with_design_limits(max_flow=1.0))
    nodes.add_node(11, NodeFlowState.with_design_limits(max_flow=0.8, min_flow=0.1))
    nodes.add_node(12, NodeFlowState.with_design_limits(max_flow=0.8, min_flow=0.1))
    nodes.add_air_loop(AirLoopFlowPath(air_sys_num=1, name="VAV-1", supply_node=10, terminal_nodes=(11, 12)))
    return nodes


@pytest.fixture
def config() -> HVACManagerConfig:
    return HVACManagerConfig(max_iter=20, max_err_count=5)

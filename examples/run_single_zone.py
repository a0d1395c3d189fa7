# Drives the convergence controller with toy subsystem models for one design day.

import logging
import yaml

from hvacsim.core.channels import ConvErrorCallType
from hvacsim.core.config import config_from_dict
from hvacsim.core.context import EnvironmentContext
from hvacsim.core.interfaces import ResidualSource, SubsystemSimulator
from hvacsim.core.nodes import AirLoopFlowPath, NodeFlowState, NodeRegistry
from hvacsim.core.residuals import ResidualSample
from hvacsim.core.state import SimulationState, Subsystem
from hvacsim.manager.factory import HVACManagerFactory
from hvacsim.manager.lockout import ZoneDemandCache

logging.basicConfig(level=logging.INFO)

yaml_str = """
max_iter: 20
max_err_count: 5
tolerances:
  mass_flow: 0.01
  temperature: 0.01
flow_resolution:
  max_passes: 5
lockout:
  deadband: 0.000001
"""


class ToyAirLoop(SubsystemSimulator):
    """Relaxes the supply flow towards the terminal request; asks for zone equipment while it moves."""

    def __init__(self, nodes: NodeRegistry):
        self.nodes = nodes
        self.residual = 0.0

    def simulate(self, state: SimulationState) -> None:
        supply = self.nodes[1]
        target = self.nodes[2].mass_flow_rate
        new_flow = supply.mass_flow_rate + 0.7 * (target - supply.mass_flow_rate)
        self.residual = new_flow - supply.mass_flow_rate
        supply.mass_flow_rate = new_flow
        self.nodes[3].mass_flow_rate = 0.8 * new_flow
        self.nodes[4].mass_flow_rate = 0.2 * new_flow
        if abs(self.residual) > 1e-4:
            state.request(Subsystem.ZONE_EQUIPMENT)


class ToyTerminal(SubsystemSimulator):
    def __init__(self, nodes: NodeRegistry, cache: ZoneDemandCache, load_w: float):
        self.nodes = nodes
        self.cache = cache
        self.load_w = load_w

    def simulate(self, state: SimulationState) -> None:
        self.cache.update_zone("Zone 1", self.load_w)
        self.nodes[2].mass_flow_rate = min(self.load_w / 10000.0, self.nodes[2].mass_flow_rate_max_avail)


class Idle(SubsystemSimulator):
    def simulate(self, state: SimulationState) -> None:
        pass


class AirLoopResiduals(ResidualSource):
    def __init__(self, air_loop: ToyAirLoop):
        self.air_loop = air_loop

    def residual_samples(self):
        return [ResidualSample(air_sys_num=1, channel=ConvErrorCallType.MASS_FLOW, demand_to_supply=[self.air_loop.residual])]


nodes = NodeRegistry()
nodes.add_node(1, NodeFlowState.with_design_limits(max_flow=1.0))
nodes.add_node(2, NodeFlowState.with_design_limits(max_flow=1.0, min_flow=0.05))
nodes.add_node(3, NodeFlowState.with_design_limits(max_flow=1.0))
nodes.add_node(4, NodeFlowState.with_design_limits(max_flow=0.3))
nodes.add_air_loop(AirLoopFlowPath(air_sys_num=1, name="AHU-1", supply_node=1, terminal_nodes=(2,), return_node=3, outdoor_air_node=4))

cache = ZoneDemandCache()
air_loop = ToyAirLoop(nodes)
simulators = {
    Subsystem.PLANT_LOOPS: Idle(),
    Subsystem.AIR_LOOPS: air_loop,
    Subsystem.ZONE_EQUIPMENT: ToyTerminal(nodes, cache, load_w=4500.0),
    Subsystem.NON_ZONE_EQUIPMENT: Idle(),
    Subsystem.ELECTRICAL_CIRCUITS: Idle(),
}

config = config_from_dict(yaml.safe_load(yaml_str))
coordinator = HVACManagerFactory.create_coordinator(
    config=config,
    nodes=nodes,
    simulators=simulators,
    residual_sources=[AirLoopResiduals(air_loop)],
    demand_cache=cache,
)

context = EnvironmentContext()
context.on_new_environment("SUMMER DESIGN DAY")
for step in range(4):
    context.timestep_label = f"07/21 {step // 4:02d}:{(step % 4) * 15:02d}"
    result = coordinator.manage_timestep(context)
    print(f"{context.timestep_label}: converged={result.converged} after {result.iterations} sweep(s)")

print(coordinator.end_run())

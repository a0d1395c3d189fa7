from hvacsim.core.channels import ConvErrorCallType
from hvacsim.core.config import HVACManagerConfig, load_config
from hvacsim.core.context import EnvironmentContext
from hvacsim.core.errors import FlowResolutionError, HVACManagerError
from hvacsim.core.nodes import AirLoopFlowPath, NodeFlowState, NodeRegistry
from hvacsim.core.state import SimulationState, Subsystem

__all__ = [
    "AirLoopFlowPath",
    "ConvErrorCallType",
    "EnvironmentContext",
    "FlowResolutionError",
    "HVACManagerConfig",
    "HVACManagerError",
    "NodeFlowState",
    "NodeRegistry",
    "SimulationState",
    "Subsystem",
    "load_config",
]

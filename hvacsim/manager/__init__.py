from hvacsim.manager.coordinator import ConvergenceCoordinator
from hvacsim.manager.diagnostics import ConvergenceDiagnostics, LoggingOutputReporter
from hvacsim.manager.factory import HVACManagerFactory
from hvacsim.manager.flow_limits import FlowLimitResolver
from hvacsim.manager.lockout import LockoutResolver, ZoneDemandCache
from hvacsim.manager.solver import ConvergenceResult, EquipmentGraphSolver

__all__ = [
    "ConvergenceCoordinator",
    "ConvergenceDiagnostics",
    "ConvergenceResult",
    "EquipmentGraphSolver",
    "FlowLimitResolver",
    "HVACManagerFactory",
    "LockoutResolver",
    "LoggingOutputReporter",
    "ZoneDemandCache",
]

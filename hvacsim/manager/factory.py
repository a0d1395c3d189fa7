from typing import Mapping, Optional, Sequence

from hvacsim.core.config import HVACManagerConfig
from hvacsim.core.interfaces import HVACReporter, OutputReporter, ResidualSource, SubsystemSimulator
from hvacsim.core.nodes import NodeRegistry
from hvacsim.core.residuals import ConvergenceResidualSet
from hvacsim.core.state import IterationCounter, Subsystem
from hvacsim.manager.coordinator import ConvergenceCoordinator
from hvacsim.manager.diagnostics import ConvergenceDiagnostics, LoggingOutputReporter
from hvacsim.manager.flow_limits import FlowLimitResolver
from hvacsim.manager.lockout import LockoutResolver, ZoneDemandCache
from hvacsim.manager.solver import EquipmentGraphSolver


class HVACManagerFactory:
    @staticmethod
    def create_coordinator(
        config: HVACManagerConfig,
        nodes: NodeRegistry,
        simulators: Mapping[Subsystem, SubsystemSimulator],
        residual_sources: Sequence[ResidualSource] = (),
        demand_cache: Optional[ZoneDemandCache] = None,
        output: Optional[OutputReporter] = None,
        reporter: Optional[HVACReporter] = None,
    ) -> ConvergenceCoordinator:
        """Wire the resolvers, diagnostics and solver described by ``config``."""
        output = output or LoggingOutputReporter()
        demand_cache = demand_cache if demand_cache is not None else ZoneDemandCache()

        flow_resolver = FlowLimitResolver(
            nodes,
            output,
            max_passes=config.flow_resolution.max_passes,
            flow_tolerance=config.flow_resolution.flow_tolerance,
        )
        lockout = LockoutResolver(demand_cache, deadband=config.lockout.deadband)
        diagnostics = ConvergenceDiagnostics(output, config.max_err_count)
        residuals = ConvergenceResidualSet(config.tolerances.as_mapping(), capacity=config.tracked_legs)
        counter = IterationCounter()

        solver = EquipmentGraphSolver(
            simulators=simulators,
            flow_resolver=flow_resolver,
            lockout=lockout,
            diagnostics=diagnostics,
            residuals=residuals,
            counter=counter,
            max_iter=config.max_iter,
            residual_sources=residual_sources,
        )
        return ConvergenceCoordinator(
            solver=solver,
            nodes=nodes,
            demand_cache=demand_cache,
            reporter=reporter,
            air_balance_tolerance=config.air_balance_tolerance,
        )

from typing import Dict, List, Optional, Set
import logging

from hvacsim.core.context import EnvironmentContext
from hvacsim.core.interfaces import HVACReporter, NullHVACReporter
from hvacsim.core.nodes import NodeRegistry
from hvacsim.manager.lockout import ZoneDemandCache
from hvacsim.manager.solver import ConvergenceResult, EquipmentGraphSolver

logger = logging.getLogger(__name__)


class ConvergenceCoordinator:
    """
    Per-timestep entry point of the HVAC convergence controller.

    Handles one-time and per-environment setup, runs the equipment solver and
    performs the bookkeeping that follows it. None of the bookkeeping feeds
    back into convergence.
    """

    def __init__(
        self,
        solver: EquipmentGraphSolver,
        nodes: NodeRegistry,
        demand_cache: ZoneDemandCache,
        reporter: Optional[HVACReporter] = None,
        air_balance_tolerance: float = 1e-3,
    ):
        self.solver = solver
        self.nodes = nodes
        self.demand_cache = demand_cache
        self.reporter = reporter or NullHVACReporter()
        self.air_balance_tolerance = air_balance_tolerance

        self.timesteps = 0
        self.environments_started = 0
        self._unbalanced_loops: Set[int] = set()

    def manage_timestep(self, context: EnvironmentContext, lock_plant_flows: bool = False) -> ConvergenceResult:
        if not context.one_time_setup_done:
            self._register_air_system_names()
            context.mark_one_time_setup_done()

        if context.environment_reset_pending:
            self._reset_environment(context)
            context.mark_environment_ready()

        result = self.solver.run_to_convergence(context, lock_plant_flows=lock_plant_flows)

        self.reporter.update_zone_group_loads(context)
        self.reporter.report_air_heat_balance(context)
        self.reporter.update_zone_inlet_convergence_log(context)
        if not context.warmup:
            self.check_air_loop_flow_balance(context)

        self.timesteps += 1
        return result

    def _register_air_system_names(self) -> None:
        names = {air_sys_num: path.name for air_sys_num, path in self.nodes.air_loops.items()}
        self.solver.diagnostics.air_system_names.update(names)
        logger.info("Registered %d air system(s) for convergence diagnostics", len(names))

    def _reset_environment(self, context: EnvironmentContext) -> None:
        logger.info("Starting environment '%s' (warmup=%s)", context.environment_name, context.warmup)
        self.nodes.reset_flows()
        self.solver.flow_resolver.reset()
        self.solver.residuals.clear()
        self.solver.counter.start_timestep()
        self.demand_cache.clear()
        self.reporter.reset()
        self.environments_started += 1

    def check_air_loop_flow_balance(self, context: EnvironmentContext) -> List[int]:
        """
        Warn about air loops whose supply flow exceeds return plus outdoor air flow.

        Each loop is reported once per run. Returns the loops newly reported.
        """
        reported = []
        for air_sys_num, path in self.nodes.air_loops.items():
            if air_sys_num in self._unbalanced_loops or path.return_node is None:
                continue
            supply = self.nodes[path.supply_node].mass_flow_rate
            returned = self.nodes[path.return_node].mass_flow_rate
            outdoor = self.nodes.get(path.outdoor_air_node)
            outdoor_flow = outdoor.mass_flow_rate if outdoor is not None else 0.0
            imbalance = supply - (returned + outdoor_flow)
            if imbalance <= self.air_balance_tolerance:
                continue
            self._unbalanced_loops.add(air_sys_num)
            reported.append(air_sys_num)
            logger.warning(
                f"CheckAirLoopFlowBalance: AirLoopHVAC {path.name} is unbalanced at {context.location}. "
                f"Supply is > return plus outdoor air. Flows [kg/s]: Supply={supply:.6f} "
                f"Return={returned:.6f} Outdoor Air={outdoor_flow:.6f} Imbalance={imbalance:.6f}. "
                "This error will only be reported once per system."
            )
        return reported

    def end_run(self) -> Dict[str, int]:
        """Log and return the run-wide non-convergence summary."""
        summary = self.solver.diagnostics.summary()
        err_count = self.solver.counter.err_count
        if err_count:
            logger.warning(
                f"SimHVAC: Maximum iterations exceeded in {err_count} of {self.timesteps} HVAC timesteps."
            )
        for (air_sys_num, channel), record in sorted(summary.items(), key=lambda item: (item[0][0], item[0][1].name)):
            logger.warning(
                f"Air System #{air_sys_num} did not converge for {channel.label} {record.occurrences} time(s) "
                f"({record.suppressed} message(s) suppressed)."
            )
        return {
            "timesteps": self.timesteps,
            "err_count": err_count,
            "suppressed_messages": sum(r.suppressed for r in summary.values()),
        }

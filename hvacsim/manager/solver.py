from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple
import logging

from hvacsim.core.channels import ConvErrorCallType
from hvacsim.core.context import EnvironmentContext
from hvacsim.core.interfaces import ResidualSource, SubsystemSimulator
from hvacsim.core.residuals import ConvergenceResidualSet
from hvacsim.core.state import IterationCounter, SimulationState, Subsystem
from hvacsim.manager.diagnostics import ConvergenceDiagnostics
from hvacsim.manager.flow_limits import FlowLimitResolver
from hvacsim.manager.lockout import LockoutResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConvergenceResult:
    """Outcome of one timestep's fixed-point iteration."""

    iterations: int
    converged: bool
    hvac_not_converged: Tuple[bool, bool, bool] = (False, False, False)
    not_converged_channels: Tuple[Tuple[int, ConvErrorCallType], ...] = field(default_factory=tuple)


class EquipmentGraphSolver:
    """
    Nonlinear Gauss-Seidel sweep over the coupled HVAC subsystems.

    Each sweep:

    1.  Restores terminal flow limits and applies the air-loop lockout.
    2.  Runs every dirty subsystem in the fixed sweep order, clearing its bit
        first and marking its static dependents afterwards.
    3.  Reconciles air loop flow limits.
    4.  Pulls residuals from the residual sources and checks them against the
        channel tolerances; an air system out of tolerance re-marks air loops.

    Iteration stops once no subsystem is dirty and all residuals are within
    tolerance, or when the sweep budget ``max_iter`` is spent. Running out of
    budget is logged and the timestep continues with the last values.
    """

    def __init__(
        self,
        simulators: Mapping[Subsystem, SubsystemSimulator],
        flow_resolver: FlowLimitResolver,
        lockout: LockoutResolver,
        diagnostics: ConvergenceDiagnostics,
        residuals: ConvergenceResidualSet,
        counter: IterationCounter,
        max_iter: int,
        residual_sources: Sequence[ResidualSource] = (),
        state: Optional[SimulationState] = None,
    ):
        if max_iter < 1:
            raise ValueError("max_iter must be at least 1.")
        self.state = state or SimulationState()
        missing = [s.value for s in self.state.graph.order if s not in simulators]
        if missing:
            raise ValueError(f"Missing simulators for subsystems: {', '.join(missing)}")
        self.simulators: Dict[Subsystem, SubsystemSimulator] = dict(simulators)
        self.flow_resolver = flow_resolver
        self.lockout = lockout
        self.diagnostics = diagnostics
        self.residuals = residuals
        self.counter = counter
        self.max_iter = max_iter
        self.residual_sources = list(residual_sources)

    def run_to_convergence(
        self,
        context: Optional[EnvironmentContext] = None,
        lock_plant_flows: bool = False,
    ) -> ConvergenceResult:
        state = self.state
        state.graph.mark_all()
        state.first_hvac_iteration = True
        state.lock_plant_flows = lock_plant_flows
        self.counter.start_timestep()
        self.residuals.clear()
        self.flow_resolver.begin_timestep()

        while True:
            self._sweep(state)

            within_tolerance = self._update_residuals(state)
            iteration = self.counter.advance()
            state.first_hvac_iteration = False

            if state.settled and within_tolerance:
                logger.debug("HVAC converged after %d sweep(s)", iteration)
                return ConvergenceResult(iterations=iteration, converged=True)

            if iteration >= self.max_iter:
                return self._handle_non_convergence(iteration, context)

    def _sweep(self, state: SimulationState) -> None:
        self.flow_resolver.reset_terminal_flow_limits()
        state.sim_air_loops = self.lockout.resolve(state.sim_air_loops)

        for subsystem in state.graph.order:
            if not state.needs(subsystem):
                continue
            state.graph.clear(subsystem)
            self.simulators[subsystem].simulate(state)
            state.graph.propagate(subsystem)

        self.flow_resolver.resolve_air_loop_flow_limits(state)

    def _update_residuals(self, state: SimulationState) -> bool:
        self.residuals.begin_sweep()
        for source in self.residual_sources:
            self.residuals.update(source.residual_samples())
        within_tolerance = self.residuals.evaluate()
        if not within_tolerance:
            unconverged = sorted(self.residuals.air_systems_out_of_tolerance())
            logger.debug("Residuals out of tolerance for air system(s) %s", unconverged)
            state.request(Subsystem.AIR_LOOPS)
        return within_tolerance

    def _handle_non_convergence(self, iteration: int, context: Optional[EnvironmentContext]) -> ConvergenceResult:
        out_of_tolerance = self.residuals.out_of_tolerance()
        channels = tuple((e.air_sys_num, e.channel) for e in out_of_tolerance)
        hvac_not_converged = tuple(self.residuals.hvac_not_converged)

        if context is not None and context.warmup:
            logger.debug("Maximum iterations (%d) exceeded during warmup", self.max_iter)
        else:
            err_count = self.counter.record_failure()
            where = f", at {context.location}" if context is not None and context.location else ""
            dirty = ", ".join(s.value for s in self.state.graph.dirty()) or "none"
            logger.warning(
                f"SimHVAC: Maximum iterations ({self.max_iter}) exceeded for all HVAC loops{where} "
                f"(occurrence {err_count}; subsystems still requesting simulation: {dirty})"
            )
            for entry in out_of_tolerance:
                self.diagnostics.report(
                    entry.air_sys_num,
                    entry.channel,
                    entry.not_converged,
                    entry.demand_to_supply,
                    entry.supply_deck1_to_demand,
                    entry.supply_deck2_to_demand,
                )

        return ConvergenceResult(
            iterations=iteration,
            converged=False,
            hvac_not_converged=hvac_not_converged,
            not_converged_channels=channels,
        )

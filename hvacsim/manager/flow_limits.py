from typing import Dict, List, Tuple
import logging

from hvacsim.core.errors import FlowResolutionError
from hvacsim.core.interfaces import OutputReporter
from hvacsim.core.nodes import AirLoopFlowPath, NodeFlowState, NodeRegistry
from hvacsim.core.state import SimulationState, Subsystem

logger = logging.getLogger(__name__)

FlowLimits = Dict[int, Tuple[float, float]]


class FlowLimitResolver:
    """
    Keeps system-level and terminal-level air flow limits mutually consistent.

    Each air loop is reconciled with a two-pass clamp repeated until a pass
    makes no adjustment:

    1.  Top-down: when the terminals together request, or are guaranteed,
        more than the supply node can deliver, each terminal's maximum
        available flow is lowered to its hard minimum plus a share of the
        remaining supply proportional to its request above that minimum.
        A supply that cannot cover the hard minima (an air loop switched off)
        is split in proportion to those minima instead. Minimum available
        flows and current flows follow the lowered maxima.
    2.  Bottom-up: the supply node's maximum available flow is capped by the
        sum of terminal maxima and its minimum available flow is raised to the
        sum of terminal minima, never above its own maximum.

    A shortfall in available flow is reconciled this way. Only terminal hard
    minima that the supply's design maximum cannot carry are reported as
    fatal and raised as ``FlowResolutionError``.
    """

    def __init__(
        self,
        nodes: NodeRegistry,
        reporter: OutputReporter,
        max_passes: int = 5,
        flow_tolerance: float = 1e-9,
    ):
        if max_passes < 1:
            raise ValueError("max_passes must be at least 1.")
        self.nodes = nodes
        self.reporter = reporter
        self.max_passes = max_passes
        self.flow_tolerance = flow_tolerance
        self.flow_resolution_needed = False
        self._last_resolved: FlowLimits = {}

    def reset_terminal_flow_limits(self) -> None:
        """Restore every terminal inlet node's available-flow limits to its design limits."""
        for _, node in self.nodes.terminal_nodes():
            node.restore_design_limits()

    def begin_timestep(self) -> None:
        self._last_resolved = {}

    def reset(self) -> None:
        self._last_resolved = {}
        self.flow_resolution_needed = False

    def resolve_air_loop_flow_limits(self, state: SimulationState) -> bool:
        """
        Reconcile the limits of every air loop.

        Returns True, and re-marks air loops and zone equipment on ``state``,
        when the resolved limits differ from those of the previous sweep.
        """
        adjusted = False
        unsettled = False
        for path in self.nodes.air_loops.values():
            loop_adjusted, loop_settled = self._resolve_loop(path)
            adjusted |= loop_adjusted
            unsettled |= not loop_settled
        self.flow_resolution_needed = unsettled

        snapshot = self._snapshot()
        changed = self._differs(snapshot, self._last_resolved) and (bool(self._last_resolved) or adjusted)
        self._last_resolved = snapshot
        if changed:
            logger.debug("Air loop flow limits changed; air loops and zone equipment re-marked")
            state.request(Subsystem.AIR_LOOPS, Subsystem.ZONE_EQUIPMENT)
        return changed

    def _resolve_loop(self, path: AirLoopFlowPath) -> Tuple[bool, bool]:
        supply = self.nodes[path.supply_node]
        terminals = [self.nodes[node_id] for node_id in path.terminal_nodes]

        adjusted = False
        settled = False
        for pass_num in range(1, self.max_passes + 1):
            pass_adjusted = self._clamp_top_down(supply, terminals)
            pass_adjusted |= self._clamp_bottom_up(supply, terminals)
            adjusted |= pass_adjusted
            if not pass_adjusted:
                settled = True
                break
            logger.debug("Air loop '%s': flow limits adjusted on pass %d", path.name, pass_num)

        problem = self._inconsistency(supply, terminals)
        if problem is not None:
            text = (
                f"ResolveAirLoopFlowLimits: flow limits of air loop '{path.name}' "
                f"(air system #{path.air_sys_num}) cannot be reconciled: {problem}. "
                "Check the minimum flow rates of the terminal units served by this air loop."
            )
            self.reporter.log_fatal(text)
            raise FlowResolutionError(path.air_sys_num, text)
        if not settled:
            logger.warning(
                f"Air loop '{path.name}': flow limits still changing after {self.max_passes} passes."
            )
        return adjusted, settled

    def _clamp_top_down(self, supply: NodeFlowState, terminals: List[NodeFlowState]) -> bool:
        available = supply.mass_flow_rate_max_avail
        requested = sum(t.mass_flow_rate for t in terminals)
        floor = sum(t.mass_flow_rate_min_avail for t in terminals)
        if requested <= available + self.flow_tolerance and floor <= available + self.flow_tolerance:
            return False

        hard_minimum = sum(t.mass_flow_rate_min for t in terminals)
        spare_supply = max(available - hard_minimum, 0.0)
        spare_request = sum(max(t.mass_flow_rate - t.mass_flow_rate_min, 0.0) for t in terminals)

        adjusted = False
        for terminal in terminals:
            if available < hard_minimum:
                # Supply cannot even cover the hard minima (e.g. the loop is off)
                share = available * terminal.mass_flow_rate_min / hard_minimum
            else:
                share = terminal.mass_flow_rate_min
                if spare_request > 0.0:
                    extra = max(terminal.mass_flow_rate - terminal.mass_flow_rate_min, 0.0)
                    share += spare_supply * extra / spare_request
            new_max = min(terminal.mass_flow_rate_max_avail, share)
            if new_max < terminal.mass_flow_rate_max_avail - self.flow_tolerance:
                terminal.mass_flow_rate_max_avail = new_max
                adjusted = True
            if terminal.mass_flow_rate_min_avail > terminal.mass_flow_rate_max_avail + self.flow_tolerance:
                terminal.mass_flow_rate_min_avail = terminal.mass_flow_rate_max_avail
                adjusted = True
            if terminal.mass_flow_rate > terminal.mass_flow_rate_max_avail + self.flow_tolerance:
                terminal.mass_flow_rate = terminal.mass_flow_rate_max_avail
                adjusted = True
        return adjusted

    def _clamp_bottom_up(self, supply: NodeFlowState, terminals: List[NodeFlowState]) -> bool:
        capacity = sum(t.mass_flow_rate_max_avail for t in terminals)
        floor = sum(t.mass_flow_rate_min_avail for t in terminals)

        adjusted = False
        if supply.mass_flow_rate_max_avail > capacity + self.flow_tolerance:
            supply.mass_flow_rate_max_avail = capacity
            adjusted = True
        floor = min(floor, supply.mass_flow_rate_max_avail)
        if supply.mass_flow_rate_min_avail < floor - self.flow_tolerance:
            supply.mass_flow_rate_min_avail = floor
            adjusted = True
        if supply.mass_flow_rate_min_avail > supply.mass_flow_rate_max_avail + self.flow_tolerance:
            supply.mass_flow_rate_min_avail = supply.mass_flow_rate_max_avail
            adjusted = True
        return adjusted

    def _inconsistency(self, supply: NodeFlowState, terminals: List[NodeFlowState]):
        hard_minimum = sum(t.mass_flow_rate_min for t in terminals)
        if hard_minimum > supply.mass_flow_rate_max + self.flow_tolerance:
            return (
                f"sum of terminal minimum flows {hard_minimum:.6f} kg/s exceeds "
                f"the system maximum {supply.mass_flow_rate_max:.6f} kg/s"
            )
        return None

    def _snapshot(self) -> FlowLimits:
        snapshot: FlowLimits = {}
        for path in self.nodes.air_loops.values():
            for node_id in (path.supply_node, *path.terminal_nodes):
                snapshot[node_id] = self.nodes[node_id].limits
        return snapshot

    def _differs(self, a: FlowLimits, b: FlowLimits) -> bool:
        if a.keys() != b.keys():
            return True
        return any(
            abs(a[k][0] - b[k][0]) > self.flow_tolerance or abs(a[k][1] - b[k][1]) > self.flow_tolerance
            for k in a
        )

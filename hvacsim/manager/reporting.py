from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Sequence, Tuple
import logging

from hvacsim.core.buffers import BoundedBuffer
from hvacsim.core.context import EnvironmentContext
from hvacsim.core.interfaces import HVACReporter
from hvacsim.core.residuals import DEFAULT_TRACKED_LEGS

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class ZoneGroup:
    name: str
    zones: Tuple[str, ...]
    multiplier: int = 1

    def __post_init__(self):
        if self.multiplier < 1:
            raise ValueError("Zone group multiplier must be at least 1.")


def aggregate_zone_group_loads(groups: Sequence[ZoneGroup], zone_loads: Mapping[str, float]) -> Dict[str, float]:
    """Group load is the multiplier times the sum of its member zone loads."""
    loads = {}
    for group in groups:
        missing = [z for z in group.zones if z not in zone_loads]
        if missing:
            raise KeyError(f"Zone group '{group.name}' references zones without loads: {', '.join(missing)}")
        loads[group.name] = group.multiplier * sum(zone_loads[z] for z in group.zones)
    return loads


class ZoneInletConvergenceLog:
    """Most recent temperature and humidity ratio of each zone inlet node."""

    def __init__(self, depth: int = DEFAULT_TRACKED_LEGS):
        self.depth = depth
        self._temperature: Dict[int, BoundedBuffer] = {}
        self._humidity_ratio: Dict[int, BoundedBuffer] = {}

    def push(self, node_id: int, temperature: float, humidity_ratio: float) -> None:
        if node_id not in self._temperature:
            self._temperature[node_id] = BoundedBuffer(self.depth)
            self._humidity_ratio[node_id] = BoundedBuffer(self.depth)
        self._temperature[node_id].push(temperature)
        self._humidity_ratio[node_id].push(humidity_ratio)

    def temperature(self, node_id: int) -> BoundedBuffer:
        return self._temperature[node_id]

    def humidity_ratio(self, node_id: int) -> BoundedBuffer:
        return self._humidity_ratio[node_id]

    def clear(self) -> None:
        self._temperature.clear()
        self._humidity_ratio.clear()


class StandardHVACReporter(HVACReporter):
    """
    Reporter backed by callables into the zone model.

    ``zone_loads`` returns the current load (W) per zone name and
    ``zone_inlet_conditions`` the (temperature, humidity ratio) of every zone
    inlet node. Air heat balance reporting is delegated to an optional hook.
    """

    def __init__(
        self,
        zone_groups: Sequence[ZoneGroup],
        zone_loads: Callable[[], Mapping[str, float]],
        zone_inlet_conditions: Callable[[], Mapping[int, Tuple[float, float]]],
        log_depth: int = DEFAULT_TRACKED_LEGS,
        air_heat_balance: Optional[Callable[[EnvironmentContext], None]] = None,
    ):
        self.zone_groups = list(zone_groups)
        self._zone_loads = zone_loads
        self._zone_inlet_conditions = zone_inlet_conditions
        self._air_heat_balance = air_heat_balance
        self.group_loads: Dict[str, float] = {}
        self.convergence_log = ZoneInletConvergenceLog(log_depth)

    def update_zone_group_loads(self, context: EnvironmentContext) -> None:
        if self.zone_groups:
            self.group_loads = aggregate_zone_group_loads(self.zone_groups, self._zone_loads())

    def report_air_heat_balance(self, context: EnvironmentContext) -> None:
        if self._air_heat_balance is not None:
            self._air_heat_balance(context)

    def update_zone_inlet_convergence_log(self, context: EnvironmentContext) -> None:
        for node_id, (temperature, humidity_ratio) in self._zone_inlet_conditions().items():
            self.convergence_log.push(node_id, temperature, humidity_ratio)

    def reset(self) -> None:
        self.group_loads = {}
        self.convergence_log.clear()
        logger.debug("Zone group loads and zone inlet convergence log cleared")

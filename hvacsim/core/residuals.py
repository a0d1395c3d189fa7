from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from hvacsim.core.buffers import BoundedBuffer
from hvacsim.core.channels import ConvErrorCallType

DEFAULT_TRACKED_LEGS = 10

LEG_NAMES: Tuple[str, str, str] = (
    "demand to supply",
    "supply deck 1 to demand",
    "supply deck 2 to demand",
)


@dataclass(frozen=True, slots=True, kw_only=True)
class ResidualSample:
    """Residuals reported by an external model for one air system and channel."""

    air_sys_num: int
    channel: ConvErrorCallType
    demand_to_supply: Sequence[float] = ()
    supply_deck1_to_demand: Sequence[float] = ()
    supply_deck2_to_demand: Sequence[float] = ()


class AirSystemResiduals:
    """Residual slots of one (air system, channel) pair."""

    def __init__(self, air_sys_num: int, channel: ConvErrorCallType, capacity: int = DEFAULT_TRACKED_LEGS):
        self.air_sys_num = air_sys_num
        self.channel = channel
        self.demand_to_supply = BoundedBuffer(capacity)
        self.supply_deck1_to_demand = BoundedBuffer(capacity)
        self.supply_deck2_to_demand = BoundedBuffer(capacity)
        self.not_converged: List[bool] = [False, False, False]

    @property
    def legs(self) -> Tuple[BoundedBuffer, BoundedBuffer, BoundedBuffer]:
        return self.demand_to_supply, self.supply_deck1_to_demand, self.supply_deck2_to_demand

    def update(self, sample: ResidualSample) -> None:
        self.demand_to_supply.assign(sample.demand_to_supply)
        self.supply_deck1_to_demand.assign(sample.supply_deck1_to_demand)
        self.supply_deck2_to_demand.assign(sample.supply_deck2_to_demand)

    def evaluate(self, tolerance: float) -> bool:
        """Refresh ``not_converged``; True when any leg is outside ``tolerance``."""
        self.not_converged = [leg.max_abs() > tolerance for leg in self.legs]
        return any(self.not_converged)

    def clear(self) -> None:
        for leg in self.legs:
            leg.clear()
        self.not_converged = [False, False, False]


class ConvergenceResidualSet:
    """All tracked residuals of the current timestep, keyed by (air system, channel)."""

    def __init__(self, tolerances: Mapping[ConvErrorCallType, float], capacity: int = DEFAULT_TRACKED_LEGS):
        self._tolerances = dict(tolerances)
        self._capacity = capacity
        self._entries: Dict[Tuple[int, ConvErrorCallType], AirSystemResiduals] = {}
        self.hvac_not_converged: List[bool] = [False, False, False]

    @property
    def capacity(self) -> int:
        return self._capacity

    def tolerance(self, channel: ConvErrorCallType) -> float:
        return self._tolerances.get(channel, channel.default_tolerance)

    def entry(self, air_sys_num: int, channel: ConvErrorCallType) -> AirSystemResiduals:
        key = (air_sys_num, channel)
        if key not in self._entries:
            self._entries[key] = AirSystemResiduals(air_sys_num, channel, self._capacity)
        return self._entries[key]

    def begin_sweep(self) -> None:
        """Forget the previous sweep's residuals; only pairs sampled again are evaluated."""
        for entry in self._entries.values():
            entry.clear()

    def update(self, samples: Iterable[ResidualSample]) -> None:
        for sample in samples:
            self.entry(sample.air_sys_num, sample.channel).update(sample)

    def evaluate(self) -> bool:
        """Check every entry against its channel tolerance; True when all are within."""
        aggregate = [False, False, False]
        for entry in self._entries.values():
            entry.evaluate(self.tolerance(entry.channel))
            aggregate = [a or b for a, b in zip(aggregate, entry.not_converged)]
        self.hvac_not_converged = aggregate
        return not any(aggregate)

    def out_of_tolerance(self) -> List[AirSystemResiduals]:
        return [e for e in self._entries.values() if any(e.not_converged)]

    def air_systems_out_of_tolerance(self) -> set:
        return {e.air_sys_num for e in self.out_of_tolerance()}

    def clear(self) -> None:
        self._entries.clear()
        self.hvac_not_converged = [False, False, False]

    def __len__(self) -> int:
        return len(self._entries)

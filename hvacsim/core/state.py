from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Mapping, Tuple


class Subsystem(Enum):
    PLANT_LOOPS = "plant_loops"
    AIR_LOOPS = "air_loops"
    ZONE_EQUIPMENT = "zone_equipment"
    NON_ZONE_EQUIPMENT = "non_zone_equipment"
    ELECTRICAL_CIRCUITS = "electrical_circuits"


# Later subsystems consume what earlier ones produced within the same sweep.
SWEEP_ORDER: Tuple[Subsystem, ...] = (
    Subsystem.PLANT_LOOPS,
    Subsystem.AIR_LOOPS,
    Subsystem.ZONE_EQUIPMENT,
    Subsystem.NON_ZONE_EQUIPMENT,
    Subsystem.ELECTRICAL_CIRCUITS,
)

# Any air-side change alters electric loads, so electrical circuits follow.
DEFAULT_EDGES: Dict[Subsystem, Tuple[Subsystem, ...]] = {
    Subsystem.AIR_LOOPS: (Subsystem.ELECTRICAL_CIRCUITS,),
    Subsystem.ZONE_EQUIPMENT: (Subsystem.ELECTRICAL_CIRCUITS,),
    Subsystem.NON_ZONE_EQUIPMENT: (Subsystem.ELECTRICAL_CIRCUITS,),
}


class InvalidationGraph:
    """
    Dirty bits for the coupled subsystems plus their static dependencies.

    A subsystem is re-simulated while its bit is set. Collaborators mark bits
    when their output invalidates another subsystem's boundary conditions;
    static edges are marked automatically after a subsystem runs. Static edges
    may only point downstream in the sweep order, otherwise every sweep would
    re-dirty an earlier subsystem and the iteration could never settle.
    """

    def __init__(
        self,
        order: Iterable[Subsystem] = SWEEP_ORDER,
        edges: Mapping[Subsystem, Iterable[Subsystem]] = DEFAULT_EDGES,
    ):
        self._order = tuple(order)
        if len(set(self._order)) != len(self._order):
            raise ValueError("Sweep order must not repeat a subsystem.")
        position = {s: i for i, s in enumerate(self._order)}
        self._edges: Dict[Subsystem, Tuple[Subsystem, ...]] = {}
        for source, targets in edges.items():
            targets = tuple(targets)
            for target in targets:
                if source not in position or target not in position:
                    raise ValueError(f"Edge {source.value} -> {target.value} uses an unknown subsystem.")
                if position[target] <= position[source]:
                    raise ValueError(
                        f"Edge {source.value} -> {target.value} points upstream in the sweep order."
                    )
            self._edges[source] = targets
        self._dirty: Dict[Subsystem, bool] = {s: False for s in self._order}

    @property
    def order(self) -> Tuple[Subsystem, ...]:
        return self._order

    def dependents(self, subsystem: Subsystem) -> Tuple[Subsystem, ...]:
        return self._edges.get(subsystem, ())

    def mark(self, *subsystems: Subsystem) -> None:
        for subsystem in subsystems:
            self._dirty[subsystem] = True

    def clear(self, subsystem: Subsystem) -> None:
        self._dirty[subsystem] = False

    def set(self, subsystem: Subsystem, dirty: bool) -> None:
        self._dirty[subsystem] = bool(dirty)

    def mark_all(self) -> None:
        for subsystem in self._order:
            self._dirty[subsystem] = True

    def clear_all(self) -> None:
        for subsystem in self._order:
            self._dirty[subsystem] = False

    def propagate(self, subsystem: Subsystem) -> None:
        """Mark the static dependents of ``subsystem``."""
        self.mark(*self.dependents(subsystem))

    def is_dirty(self, subsystem: Subsystem) -> bool:
        return self._dirty[subsystem]

    def any_dirty(self) -> bool:
        return any(self._dirty.values())

    def dirty(self) -> Tuple[Subsystem, ...]:
        return tuple(s for s in self._order if self._dirty[s])

    def __repr__(self) -> str:
        bits = ", ".join(f"{s.value}={int(self._dirty[s])}" for s in self._order)
        return f"<InvalidationGraph({bits})>"


@dataclass(slots=True)
class SimulationState:
    """
    Per-timestep flags shared with every collaborator during a sweep.

    The five ``sim_*`` flags are views over the invalidation graph's dirty
    bits; collaborators may use either the flags or ``request()``.
    """

    graph: InvalidationGraph = field(default_factory=InvalidationGraph)
    first_hvac_iteration: bool = True
    lock_plant_flows: bool = False

    def request(self, *subsystems: Subsystem) -> None:
        """Ask for ``subsystems`` to be (re)simulated."""
        self.graph.mark(*subsystems)

    def needs(self, subsystem: Subsystem) -> bool:
        return self.graph.is_dirty(subsystem)

    @property
    def settled(self) -> bool:
        """True when no subsystem requests re-simulation."""
        return not self.graph.any_dirty()

    @property
    def sim_air_loops(self) -> bool:
        return self.graph.is_dirty(Subsystem.AIR_LOOPS)

    @sim_air_loops.setter
    def sim_air_loops(self, value: bool) -> None:
        self.graph.set(Subsystem.AIR_LOOPS, value)

    @property
    def sim_zone_equipment(self) -> bool:
        return self.graph.is_dirty(Subsystem.ZONE_EQUIPMENT)

    @sim_zone_equipment.setter
    def sim_zone_equipment(self, value: bool) -> None:
        self.graph.set(Subsystem.ZONE_EQUIPMENT, value)

    @property
    def sim_non_zone_equipment(self) -> bool:
        return self.graph.is_dirty(Subsystem.NON_ZONE_EQUIPMENT)

    @sim_non_zone_equipment.setter
    def sim_non_zone_equipment(self, value: bool) -> None:
        self.graph.set(Subsystem.NON_ZONE_EQUIPMENT, value)

    @property
    def sim_plant_loops(self) -> bool:
        return self.graph.is_dirty(Subsystem.PLANT_LOOPS)

    @sim_plant_loops.setter
    def sim_plant_loops(self, value: bool) -> None:
        self.graph.set(Subsystem.PLANT_LOOPS, value)

    @property
    def sim_elec_circuits(self) -> bool:
        return self.graph.is_dirty(Subsystem.ELECTRICAL_CIRCUITS)

    @sim_elec_circuits.setter
    def sim_elec_circuits(self, value: bool) -> None:
        self.graph.set(Subsystem.ELECTRICAL_CIRCUITS, value)


@dataclass(slots=True)
class IterationCounter:
    """Sweep count for the current timestep and the run-wide failure count."""

    hvac_manage_iteration: int = 0
    err_count: int = 0

    def start_timestep(self) -> None:
        self.hvac_manage_iteration = 0

    def advance(self) -> int:
        self.hvac_manage_iteration += 1
        return self.hvac_manage_iteration

    def record_failure(self) -> int:
        self.err_count += 1
        return self.err_count

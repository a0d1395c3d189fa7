from dataclasses import dataclass, field
from typing import Dict, Mapping
import logging

logger = logging.getLogger(__name__)


@dataclass
class ZoneDemandCache:
    """Latest sensible load requests of the controlled zones (W)."""

    zone_demands: Dict[str, float] = field(default_factory=dict)

    def update_zone(self, zone: str, demand_w: float) -> None:
        self.zone_demands[zone] = demand_w

    def update_zones(self, demands: Mapping[str, float]) -> None:
        self.zone_demands.update(demands)

    def clear(self) -> None:
        self.zone_demands.clear()


class LockoutResolver:
    """
    Skips an air-loop pass when no controlled zone asks for conditioning.

    The decision only depends on the demand cache: with at least one cached
    zone and every zone demand within the deadband, the air loops are not
    re-simulated this sweep. An empty cache carries no information and leaves
    the request unchanged.
    """

    def __init__(self, cache: ZoneDemandCache, deadband: float = 1e-6):
        if deadband < 0.0:
            raise ValueError("Deadband must be non-negative.")
        self.cache = cache
        self.deadband = deadband

    def all_zones_satisfied(self) -> bool:
        demands = self.cache.zone_demands
        return bool(demands) and all(abs(d) <= self.deadband for d in demands.values())

    def resolve(self, sim_air: bool) -> bool:
        if self.all_zones_satisfied():
            if sim_air:
                logger.debug("All %d zone demands within deadband; air loop pass locked out", len(self.cache.zone_demands))
            return False
        return sim_air
